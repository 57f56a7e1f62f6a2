"""
Tree materialization.

Expands the graph index into a flat, pre-order list of entries that carry
everything a renderer needs to draw box glyphs: depth, last-sibling flags for
the entry and every ancestor, and whether children follow.
"""

from dataclasses import dataclass
from typing import FrozenSet, List, Tuple, Union

from .graph import ChildRef, GraphIndex, RootRef


@dataclass(frozen=True)
class RenderEntry:
    """One row of a materialized dependency tree."""

    name: str
    version: str
    ecosystem: str
    is_dev_dependency: bool
    depth: int
    is_last: bool
    has_children: bool
    ancestor_is_last: Tuple[bool, ...] = ()

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "version": self.version,
            "ecosystem": self.ecosystem,
            "isDevDependency": self.is_dev_dependency,
            "depth": self.depth,
            "isLast": self.is_last,
            "hasChildren": self.has_children,
            "ancestorIsLast": list(self.ancestor_is_last),
        }


def materialize(index: GraphIndex, max_depth: int = 0) -> List[RenderEntry]:
    """
    Expand roots depth first down to ``max_depth``.

    Roots always appear, ordered by (ecosystem, name). A node already on the
    current root-to-node path is emitted but not expanded again; the visited
    set is per branch, so a diamond dependency is expanded under each parent.
    """
    if max_depth < 0:
        raise ValueError("max_depth must be non-negative")

    entries: List[RenderEntry] = []
    roots = sorted(index.roots, key=lambda root: (root.ecosystem, root.name))
    for position, root in enumerate(roots):
        _expand(
            index,
            root,
            depth=0,
            is_last=position == len(roots) - 1,
            ancestor_is_last=(),
            visited=frozenset(),
            max_depth=max_depth,
            entries=entries,
        )
    return entries


def _expand(
    index: GraphIndex,
    node: Union[RootRef, ChildRef],
    depth: int,
    is_last: bool,
    ancestor_is_last: Tuple[bool, ...],
    visited: FrozenSet[str],
    max_depth: int,
    entries: List[RenderEntry],
) -> None:
    edges = index.children_of(node.key)
    cyclic = node.key in visited

    if cyclic:
        children: List[ChildRef] = []
        has_children = bool(edges)
    elif depth < max_depth:
        children = sorted(edges, key=lambda child: child.name)
        has_children = bool(children)
    else:
        children = []
        has_children = False

    entries.append(
        RenderEntry(
            name=node.name,
            version=node.version,
            ecosystem=node.ecosystem,
            is_dev_dependency=isinstance(node, RootRef) and node.is_dev_dependency,
            depth=depth,
            is_last=is_last,
            has_children=has_children,
            ancestor_is_last=ancestor_is_last,
        )
    )

    branch_visited = visited | {node.key}
    branch_path = ancestor_is_last + (is_last,)
    for position, child in enumerate(children):
        _expand(
            index,
            child,
            depth=depth + 1,
            is_last=position == len(children) - 1,
            ancestor_is_last=branch_path,
            visited=branch_visited,
            max_depth=max_depth,
            entries=entries,
        )
