"""
Console output for dependency listings, chains and outdated reports.

Table and tree lines are built by ``render`` as ANSI strings and printed
through a Rich console, which drops the styling when stdout is not a terminal.
"""

from typing import List, Optional, Sequence

from rich.console import Console
from rich.style import Style
from rich.text import Text

from .chain import ChainNode, WhyResult
from .graph import GraphIndex
from .outdated import OutdatedEntry
from .render import MUTED, Column, format_chain, format_table, paint
from .semver import get_semver_level
from .tree import RenderEntry

DEV_MARKER = "(dev)"
NO_MARKER = "    "

VERSION_STYLES = {
    None: Style(color="white"),
    "patch": Style(color="green"),
    "minor": Style(color="yellow"),
    "major": Style(color="red"),
}


def version_style(current: str, target: Optional[str]) -> Style:
    """White when unchanged, then green, yellow, red by update level."""
    if not target:
        return VERSION_STYLES[None]
    return VERSION_STYLES[get_semver_level(current, target)]


def show_ecosystem_column(ecosystems: Sequence[str], ecosystem_filter: Optional[str]) -> bool:
    return len(set(ecosystems)) > 1 and not ecosystem_filter


class DependencyReporter:
    """Formats and displays dependency information."""

    def __init__(self, console: Optional[Console] = None, color: bool = True):
        self.console = console or Console()
        self.color = color

    def _print_lines(self, lines: List[str]) -> None:
        for line in lines:
            self.console.print(Text.from_ansi(line), soft_wrap=True)

    def print_message(self, message: str, style: Optional[str] = None) -> None:
        self.console.print(message, style=style, markup=False, highlight=False)

    def _dev_marker(self, is_dev: bool) -> str:
        return paint(DEV_MARKER, MUTED, self.color) if is_dev else NO_MARKER

    def print_dependency_tree(
        self,
        entries: Sequence[RenderEntry],
        index: GraphIndex,
        ecosystem_filter: Optional[str] = None,
        show_summary: bool = True,
        show_unrecognized: bool = True,
    ) -> None:
        """
        Print the dependency table with tree glyphs and a summary line.

        Args:
            entries: Materialized tree rows
            index: Index the rows were built from, used for the summary counts
            ecosystem_filter: Ecosystem the listing was restricted to
            show_summary: Print the totals line
            show_unrecognized: Mention dropped provenance strings
        """
        columns: List[Column[RenderEntry]] = [
            Column("Package", lambda e: e.name),
            Column(
                "",
                lambda e: self._dev_marker(e.depth == 0 and e.is_dev_dependency),
            ),
            Column("Current", lambda e: e.version),
            Column(
                "Ecosystem",
                lambda e: e.ecosystem,
                visible=show_ecosystem_column([e.ecosystem for e in entries], ecosystem_filter),
            ),
        ]
        self._print_lines(format_table(columns, entries, tree=True, color=self.color))

        if show_summary:
            roots = [entry for entry in entries if entry.depth == 0]
            dev_count = sum(1 for entry in roots if entry.is_dev_dependency)
            prod_count = len(roots) - dev_count
            sub_count = max(0, index.record_count - len(roots))
            self.console.print()
            self.print_message(
                f"{index.record_count} total ({prod_count} dependencies, "
                f"{dev_count} devDependencies, {sub_count} subdependencies)"
            )

        if show_unrecognized and index.unrecognized:
            self.print_message(
                f"{len(index.unrecognized)} provenance entries in an unrecognized "
                "format were ignored.",
                style="dim",
            )

    def _print_chain_section(self, title: str, chains: Sequence[ChainNode]) -> None:
        if not chains:
            return
        self.print_message(f"{title}:")
        for position, chain in enumerate(chains):
            self._print_lines(
                format_chain(
                    chain,
                    is_last=position == len(chains) - 1,
                    is_root=True,
                    color=self.color,
                )
            )
        self.console.print()

    def print_why(self, result: WhyResult) -> None:
        """Print the chains explaining why a dependency is installed."""
        if not result.found:
            self.print_message(f'Dependency "{result.dependency}" not found in this project.')
            return

        self._print_chain_section("dependencies", result.dependencies)
        self._print_chain_section("devDependencies", result.dev_dependencies)

        if not result.has_chains:
            self.print_message(
                f'Could not determine dependency chain for "{result.dependency}".'
            )

    def print_outdated(
        self, entries: Sequence[OutdatedEntry], ecosystem_filter: Optional[str] = None
    ) -> None:
        """Print outdated dependencies with versions colored by update level."""

        def colored(attribute: str):
            def format_version(value: str, entry: OutdatedEntry) -> str:
                return paint(
                    value,
                    version_style(entry.current, getattr(entry, attribute)),
                    self.color,
                )

            return format_version

        columns: List[Column[OutdatedEntry]] = [
            Column("Package", lambda e: e.name),
            Column("", lambda e: self._dev_marker(e.is_dev_dependency)),
            Column("Current", lambda e: e.current),
            Column("Wanted", lambda e: e.wanted or "", format=colored("wanted")),
            Column("Latest", lambda e: e.latest or "", format=colored("latest")),
            Column(
                "Ecosystem",
                lambda e: e.ecosystem,
                visible=show_ecosystem_column([e.ecosystem for e in entries], ecosystem_filter),
            ),
        ]
        self._print_lines(format_table(columns, entries, color=self.color))
