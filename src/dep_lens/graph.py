"""
Edge index construction.

Turns the flat record list into a set of roots (direct dependencies) and a
``parent key -> children`` map. Nodes are identified by value keys
(``name@version``), never by object identity, so cyclic provenance data needs
no special ownership handling.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

from .dependency import DependencyRecord, DependencyRole
from .provenance import (
    LOCKFILE_PREFIXES,
    ClassifiedProvenance,
    DirectMarker,
    TransitiveEdge,
    Unrecognized,
    classify,
    package_key,
)
from .structured_logging import log_index_built, log_unrecognized_provenance


@dataclass(frozen=True)
class RootRef:
    """A direct dependency at one resolved version."""

    name: str
    version: str
    ecosystem: str
    role: DependencyRole

    @property
    def key(self) -> str:
        return package_key(self.name, self.version)

    @property
    def is_dev_dependency(self) -> bool:
        return self.role is DependencyRole.DEV


@dataclass(frozen=True)
class ChildRef:
    """A package version reached through a lockfile edge."""

    name: str
    version: str
    ecosystem: str

    @property
    def key(self) -> str:
        return package_key(self.name, self.version)


@dataclass
class GraphIndex:
    """Roots, edges and classified provenance for one invocation."""

    roots: List[RootRef] = field(default_factory=list)
    edges_by_parent_key: Dict[str, List[ChildRef]] = field(default_factory=dict)
    provenance_by_key: Dict[str, List[ClassifiedProvenance]] = field(
        default_factory=dict
    )
    unrecognized: List[str] = field(default_factory=list)
    record_count: int = 0

    def children_of(self, key: str) -> List[ChildRef]:
        return self.edges_by_parent_key.get(key, [])

    def provenance_for(self, name: str, version: str) -> List[ClassifiedProvenance]:
        return self.provenance_by_key.get(package_key(name, version), [])

    def direct_role(self, name: str, version: str) -> Optional[DependencyRole]:
        """Role of the first direct marker recorded for ``name@version``."""
        for classified in self.provenance_for(name, version):
            if isinstance(classified, DirectMarker):
                return classified.role
        return None

    @property
    def edge_count(self) -> int:
        return sum(len(children) for children in self.edges_by_parent_key.values())


def filter_records(
    records: Iterable[DependencyRecord], ecosystem_filter: Optional[str] = None
) -> List[DependencyRecord]:
    """Drop records outside an explicit ecosystem filter."""
    if not ecosystem_filter:
        return list(records)
    return [record for record in records if record.ecosystem == ecosystem_filter]


def build_index(
    records: Iterable[DependencyRecord],
    ecosystem_filter: Optional[str] = None,
    lockfile_prefixes: Sequence[str] = LOCKFILE_PREFIXES,
) -> GraphIndex:
    """
    Build the edge index for a set of dependency records.

    Args:
        records: Flat, deduplicated records from the ecosystem plugins
        ecosystem_filter: Only keep records of this ecosystem
        lockfile_prefixes: Recognized lockfile provenance prefixes

    Returns:
        GraphIndex: roots sorted by (name, version), children sorted likewise
    """
    selected = filter_records(records, ecosystem_filter)
    index = GraphIndex(record_count=len(selected))

    roots_by_key: Dict[str, RootRef] = {}
    children_by_parent: Dict[str, Dict[str, ChildRef]] = {}

    for record in selected:
        for version, source in record.iter_provenance():
            classified = classify(source, lockfile_prefixes)
            key = package_key(record.name, version)
            index.provenance_by_key.setdefault(key, []).append(classified)

            if isinstance(classified, DirectMarker):
                if key not in roots_by_key:
                    roots_by_key[key] = RootRef(
                        name=record.name,
                        version=version,
                        ecosystem=record.ecosystem,
                        role=classified.role,
                    )
            elif isinstance(classified, TransitiveEdge):
                children = children_by_parent.setdefault(classified.parent_key, {})
                children.setdefault(
                    key,
                    ChildRef(name=record.name, version=version, ecosystem=record.ecosystem),
                )
            elif isinstance(classified, Unrecognized):
                index.unrecognized.append(source)

    index.roots = sorted(roots_by_key.values(), key=lambda root: (root.name, root.version))
    index.edges_by_parent_key = {
        parent_key: sorted(children.values(), key=lambda child: (child.name, child.version))
        for parent_key, children in children_by_parent.items()
    }

    log_index_built(
        total_records=index.record_count,
        root_count=len(index.roots),
        edge_count=index.edge_count,
        unrecognized_count=len(index.unrecognized),
        ecosystem_filter=ecosystem_filter,
    )
    log_unrecognized_provenance(len(index.unrecognized), index.unrecognized)
    return index
