"""
Provenance string classification.

A provenance string records why a resolved version is present: either it was
declared in a manifest section (``package.json#devDependencies``) or a lockfile
lists it under a parent package (``pnpm-lock.yaml:tsup@8.5.0``).
"""

import re
from dataclasses import dataclass
from typing import Iterable, Union

from .dependency import DependencyRole

LOCKFILE_PREFIXES = (
    "pnpm-lock.yaml:",
    "yarn.lock:",
    "Gemfile.lock:",
    "uv.lock:",
    "deno.lock:",
)

MANIFEST_SUFFIXES = (
    ("#dependencies", DependencyRole.PRODUCTION),
    ("#devDependencies", DependencyRole.DEV),
)

# "name@version" or "name@version(peer@1.0.0)"; a leading "@" belongs to a scope
_PARENT_REF = re.compile(r"^(@?[^@(]+)@([^(@]+)")


@dataclass(frozen=True)
class DirectMarker:
    """Declared directly in the project manifest."""

    role: DependencyRole

    @property
    def is_dev(self) -> bool:
        return self.role is DependencyRole.DEV


@dataclass(frozen=True)
class TransitiveEdge:
    """Introduced by ``parent_name@parent_version``."""

    parent_name: str
    parent_version: str

    @property
    def parent_key(self) -> str:
        return package_key(self.parent_name, self.parent_version)


@dataclass(frozen=True)
class Unrecognized:
    """A provenance string in no known format."""

    provenance: str


ClassifiedProvenance = Union[DirectMarker, TransitiveEdge, Unrecognized]


def package_key(name: str, version: str) -> str:
    return f"{name}@{version}"


def classify(
    provenance: str, lockfile_prefixes: Iterable[str] = LOCKFILE_PREFIXES
) -> ClassifiedProvenance:
    """
    Classify a provenance string.

    Lockfile prefixes are checked first; a matching string that does not
    contain a ``name@version`` reference is unrecognized rather than direct.

    Examples:
        >>> classify("pnpm-lock.yaml:tsup@8.5.0")
        TransitiveEdge(parent_name='tsup', parent_version='8.5.0')
        >>> classify(".#devDependencies")
        DirectMarker(role=<DependencyRole.DEV: 'devDependencies'>)
    """
    if not isinstance(provenance, str):
        return Unrecognized(str(provenance))

    for prefix in lockfile_prefixes:
        if prefix and provenance.startswith(prefix):
            match = _PARENT_REF.match(provenance[len(prefix):])
            if not match:
                return Unrecognized(provenance)
            name, version = match.group(1).strip(), match.group(2).strip()
            if not name or not version:
                return Unrecognized(provenance)
            return TransitiveEdge(parent_name=name, parent_version=version)

    for suffix, role in MANIFEST_SUFFIXES:
        if provenance.endswith(suffix):
            return DirectMarker(role=role)

    return Unrecognized(provenance)
