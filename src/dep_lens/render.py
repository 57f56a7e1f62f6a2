"""
Text rendering for dependency tables and trees.

Produces plain strings with embedded ANSI styles. Column widths are measured
in terminal cells with styles excluded, so colored and uncolored cells line up.
"""

from dataclasses import dataclass
from typing import Callable, Generic, List, Optional, Sequence, TypeVar

from rich.cells import cell_len
from rich.style import Style
from rich.text import Text

from .chain import ChainNode

T = TypeVar("T")

MUTED = Style(color="bright_black")

COLUMN_GAP = "  "
CONTINUATION = "│ "
BLANK_RUN = "  "


@dataclass
class Column(Generic[T]):
    """A table column: header text plus how to read a cell from a row."""

    header: str
    accessor: Callable[[T], str]
    format: Optional[Callable[[str, T], str]] = None
    visible: bool = True


def paint(text: str, style: Style, enabled: bool = True) -> str:
    """Wrap ``text`` in the ANSI codes for ``style``."""
    if not enabled or not text:
        return text
    return style.render(text)


def strip_styles(value: str) -> str:
    return Text.from_ansi(value).plain


def display_width(value: str) -> int:
    """Width in terminal cells, ignoring ANSI control sequences."""
    return cell_len(strip_styles(value))


def pad(value: str, width: int) -> str:
    return value + " " * max(0, width - display_width(value))


def branch_glyph(is_last: bool, has_children: bool) -> str:
    if has_children:
        return "└─┬ " if is_last else "├─┬ "
    return "└── " if is_last else "├── "


def tree_prefix(
    depth: int,
    is_last: bool,
    has_children: bool,
    ancestor_is_last: Sequence[bool],
) -> str:
    """
    Box-drawing prefix for a tree row.

    Roots have no prefix. Below them, each non-root ancestor contributes a
    two-cell run: a continuation strand when more siblings of that ancestor
    follow, blanks otherwise.
    """
    if depth <= 0:
        return ""
    runs = "".join(
        BLANK_RUN if last else CONTINUATION for last in ancestor_is_last[1:depth]
    )
    return runs + branch_glyph(is_last, has_children)


def _tree_cell(column: Column, row, column_position: int, color: bool) -> str:
    value = column.accessor(row)
    if row.depth > 0 and column.format is None and value.strip():
        value = paint(value, MUTED, color)
    if column_position == 0:
        value = (
            tree_prefix(row.depth, row.is_last, row.has_children, row.ancestor_is_last)
            + value
        )
    return value


def format_table(
    columns: Sequence[Column],
    rows: Sequence,
    tree: bool = False,
    color: bool = True,
) -> List[str]:
    """
    Format rows as an aligned table: header, dashed separator, then rows.

    With ``tree`` set, rows must expose ``depth``, ``is_last``,
    ``has_children`` and ``ancestor_is_last``; the first column then carries
    the tree prefix and nested rows are muted.
    """
    visible = [column for column in columns if column.visible]
    if not rows or not visible:
        return []

    cells = [
        [
            _tree_cell(column, row, position, color) if tree else column.accessor(row)
            for position, column in enumerate(visible)
        ]
        for row in rows
    ]

    widths = [
        max([display_width(column.header)] + [display_width(row_cells[position]) for row_cells in cells])
        for position, column in enumerate(visible)
    ]

    lines = [
        COLUMN_GAP.join(pad(column.header, width) for column, width in zip(visible, widths)),
        "-" * (sum(widths) + len(COLUMN_GAP) * (len(visible) - 1)),
    ]

    for row, row_cells in zip(rows, cells):
        parts = []
        for column, width, value in zip(visible, widths, row_cells):
            if column.format is not None:
                parts.append(column.format(pad(strip_styles(value), width), row))
            else:
                parts.append(pad(value, width))
        lines.append(COLUMN_GAP.join(parts))

    return lines


def format_chain(
    node: ChainNode,
    prefix: str = "",
    is_last: bool = True,
    is_root: bool = True,
    color: bool = True,
) -> List[str]:
    """Render a chain tree as ``name version`` lines with box glyphs."""
    label = f"{node.name} {paint(node.version, MUTED, color)}"
    if is_root:
        lines = [label]
        child_prefix = ""
    else:
        lines = [prefix + branch_glyph(is_last, bool(node.children)) + label]
        child_prefix = prefix + (BLANK_RUN if is_last else CONTINUATION)

    for position, child in enumerate(node.children):
        lines.extend(
            format_chain(
                child,
                child_prefix,
                is_last=position == len(node.children) - 1,
                is_root=False,
                color=color,
            )
        )
    return lines
