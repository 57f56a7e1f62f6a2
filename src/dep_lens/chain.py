"""
Reverse dependency chains.

Answers "why is this package installed" by walking lockfile provenance from a
package up to the direct dependency that pulled it in, then merging the
resulting paths into shared ancestor trees.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .dependency import DependencyRecord, DependencyRole
from .graph import GraphIndex, build_index
from .provenance import (
    LOCKFILE_PREFIXES,
    ClassifiedProvenance,
    DirectMarker,
    TransitiveEdge,
    classify,
    package_key,
)
from .structured_logging import log_chain_resolved

DEFAULT_MAX_WALK_DEPTH = 50


@dataclass(frozen=True)
class ChainNode:
    """A node of a chain tree; equal name and version mean the same node."""

    name: str
    version: str
    children: Tuple["ChainNode", ...] = ()

    @property
    def key(self) -> str:
        return package_key(self.name, self.version)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "version": self.version,
            "children": [child.to_dict() for child in self.children],
        }


@dataclass
class WhyResult:
    """Outcome of a "why" query for one package name."""

    dependency: str
    found: bool
    dependencies: List[ChainNode] = field(default_factory=list)
    dev_dependencies: List[ChainNode] = field(default_factory=list)

    @property
    def has_chains(self) -> bool:
        return bool(self.dependencies or self.dev_dependencies)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "dependency": self.dependency,
            "found": self.found,
            "dependencies": [chain.to_dict() for chain in self.dependencies],
            "devDependencies": [chain.to_dict() for chain in self.dev_dependencies],
        }


def _next_provenance(
    index: GraphIndex, name: str, version: str
) -> Optional[ClassifiedProvenance]:
    """Pick one provenance of ``name@version``, preferring a direct marker."""
    recorded = index.provenance_for(name, version)
    if not recorded:
        return None
    for classified in recorded:
        if isinstance(classified, DirectMarker):
            return classified
    for classified in recorded:
        if isinstance(classified, TransitiveEdge):
            return classified
    return recorded[0]


def _link(path: Sequence[Tuple[str, str]]) -> ChainNode:
    node = ChainNode(*path[-1])
    for name, version in reversed(path[:-1]):
        node = ChainNode(name, version, (node,))
    return node


def resolve_chain(
    target_name: str,
    target_version: str,
    target_provenance: ClassifiedProvenance,
    index: GraphIndex,
    max_walk_depth: int = DEFAULT_MAX_WALK_DEPTH,
) -> Optional[ChainNode]:
    """
    Build the root-to-target chain for one resolved version of a package.

    Returns a single node when the target is itself direct, ``None`` when its
    provenance is unrecognized, and otherwise the longest chain that could be
    walked. Missing parents, repeated keys and the walk bound all end the walk
    early with a partial chain rooted at the deepest ancestor found.
    """
    if isinstance(target_provenance, DirectMarker):
        return ChainNode(target_name, target_version)
    if not isinstance(target_provenance, TransitiveEdge):
        return None

    path: List[Tuple[str, str]] = [(target_name, target_version)]
    seen = {package_key(target_name, target_version)}
    current: Optional[ClassifiedProvenance] = target_provenance
    steps = 0

    while isinstance(current, TransitiveEdge) and steps < max_walk_depth:
        if current.parent_key in seen:
            break
        path.insert(0, (current.parent_name, current.parent_version))
        seen.add(current.parent_key)
        current = _next_provenance(index, current.parent_name, current.parent_version)
        steps += 1

    log_chain_resolved(
        target_name,
        target_version,
        chain_length=len(path),
        complete=isinstance(current, DirectMarker),
    )
    return _link(path)


def merge_chain(forest: Sequence[ChainNode], chain: ChainNode) -> List[ChainNode]:
    """
    Return a new forest with ``chain`` merged in.

    A tree whose root equals the chain's root (same name and version) absorbs
    the chain's children recursively; otherwise the chain is appended. The
    input forest is left untouched.
    """
    merged = list(forest)
    for position, existing in enumerate(merged):
        if existing.name == chain.name and existing.version == chain.version:
            children: List[ChainNode] = list(existing.children)
            for child in chain.children:
                children = merge_chain(children, child)
            merged[position] = ChainNode(existing.name, existing.version, tuple(children))
            return merged
    merged.append(chain)
    return merged


def resolve_why(
    records: Sequence[DependencyRecord],
    target_name: str,
    max_walk_depth: int = DEFAULT_MAX_WALK_DEPTH,
    lockfile_prefixes: Sequence[str] = LOCKFILE_PREFIXES,
    index: Optional[GraphIndex] = None,
) -> WhyResult:
    """
    Resolve every chain leading to ``target_name``.

    Chains are split by the role of their root: a chain rooted in a direct dev
    dependency goes to ``dev_dependencies``, anything else to ``dependencies``.
    """
    targets = [record for record in records if record.name == target_name]
    result = WhyResult(dependency=target_name, found=bool(targets))
    if not targets:
        return result

    if index is None:
        index = build_index(records, lockfile_prefixes=lockfile_prefixes)

    for record in targets:
        for version, source in record.iter_provenance():
            chain = resolve_chain(
                record.name,
                version,
                classify(source, lockfile_prefixes),
                index,
                max_walk_depth=max_walk_depth,
            )
            if chain is None:
                continue
            if index.direct_role(chain.name, chain.version) is DependencyRole.DEV:
                result.dev_dependencies = merge_chain(result.dev_dependencies, chain)
            else:
                result.dependencies = merge_chain(result.dependencies, chain)

    return result
