"""
Outdated direct dependencies.

Compares the resolved version of each direct dependency with the highest
version its specifier allows ("wanted") and the newest release ("latest").
Both come from the plugin export, or from the package registry on request.
"""

import asyncio
from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Sequence

from .dependency import DependencyRecord
from .graph import filter_records
from .provenance import LOCKFILE_PREFIXES, DirectMarker, classify
from .registry_clients import (
    RegistryVersions,
    get_registry_client,
    registry_for_ecosystem,
)
from .semver import (
    SemverFilter,
    find_wanted_version,
    get_semver_level,
    matches_semver_filter,
)


@dataclass(frozen=True)
class OutdatedEntry:
    """A direct dependency with its current, wanted and latest versions."""

    name: str
    ecosystem: str
    current: str
    is_dev_dependency: bool = False
    specifier: Optional[str] = None
    wanted: Optional[str] = None
    latest: Optional[str] = None

    @property
    def is_outdated(self) -> bool:
        return any(
            target is not None and target != self.current
            for target in (self.wanted, self.latest)
        )

    @property
    def semver_level(self):
        """Update level between current and wanted."""
        if self.wanted is None:
            return None
        return get_semver_level(self.current, self.wanted)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "ecosystem": self.ecosystem,
            "isDevDependency": self.is_dev_dependency,
            "current": self.current,
            "wanted": self.wanted,
            "latest": self.latest,
        }


def direct_entries(
    records: Sequence[DependencyRecord],
    lockfile_prefixes: Sequence[str] = LOCKFILE_PREFIXES,
) -> List[OutdatedEntry]:
    """One entry per directly declared record, at its first direct version."""
    entries = []
    for record in records:
        for version, source in record.iter_provenance():
            classified = classify(source, lockfile_prefixes)
            if isinstance(classified, DirectMarker):
                entries.append(
                    OutdatedEntry(
                        name=record.name,
                        ecosystem=record.ecosystem,
                        current=version,
                        is_dev_dependency=classified.is_dev,
                        specifier=record.specifiers.get(source),
                        wanted=record.wanted,
                        latest=record.latest,
                    )
                )
                break
    return entries


def apply_registry_versions(
    entry: OutdatedEntry, found: Optional[RegistryVersions]
) -> OutdatedEntry:
    """Fill in wanted and latest the plugin did not supply."""
    if found is None or found.error or not found.exists:
        return entry

    wanted = entry.wanted
    if wanted is None and found.versions:
        wanted = find_wanted_version(
            found.versions,
            entry.specifier,
            pep440=found.registry_type == "pypi",
        )
    return replace(entry, wanted=wanted, latest=entry.latest or found.latest)


async def fetch_latest_versions(
    entries: Sequence[OutdatedEntry],
    max_concurrent: int = 10,
    rate_limit_rps: Optional[float] = None,
    transport=None,
) -> Dict[str, RegistryVersions]:
    """
    Look up every entry missing wanted or latest in its ecosystem's registry.

    Returns:
        Dict keyed by ``ecosystem:name``; entries without a registry are absent.
    """
    semaphore = asyncio.Semaphore(max_concurrent)
    by_registry: Dict[str, List[OutdatedEntry]] = {}
    for entry in entries:
        if entry.wanted is not None and entry.latest is not None:
            continue
        registry = registry_for_ecosystem(entry.ecosystem)
        if registry is not None:
            by_registry.setdefault(registry, []).append(entry)

    results: Dict[str, RegistryVersions] = {}

    for registry, pending in by_registry.items():
        async with get_registry_client(
            registry, rate_limit_rps=rate_limit_rps, transport=transport
        ) as client:

            async def lookup(entry: OutdatedEntry) -> None:
                async with semaphore:
                    found = await client.fetch_versions(entry.name)
                results[f"{entry.ecosystem}:{entry.name}"] = found

            await asyncio.gather(*(lookup(entry) for entry in pending))

    return results


def collect_outdated(
    records: Sequence[DependencyRecord],
    ecosystem_filter: Optional[str] = None,
    semver_filter: Optional[SemverFilter] = None,
    registry_versions: Optional[Dict[str, RegistryVersions]] = None,
    lockfile_prefixes: Sequence[str] = LOCKFILE_PREFIXES,
) -> List[OutdatedEntry]:
    """
    Outdated direct dependencies, sorted by (ecosystem, name).

    Args:
        records: Dependency records
        ecosystem_filter: Only keep this ecosystem
        semver_filter: "patch" or "minor" level filter
        registry_versions: Lookups from ``fetch_latest_versions``
        lockfile_prefixes: Recognized lockfile provenance prefixes
    """
    registry_versions = registry_versions or {}
    entries = []
    for entry in direct_entries(filter_records(records, ecosystem_filter), lockfile_prefixes):
        entry = apply_registry_versions(
            entry, registry_versions.get(f"{entry.ecosystem}:{entry.name}")
        )
        if not entry.is_outdated:
            continue
        if semver_filter and not matches_semver_filter(entry.semver_level, semver_filter):
            continue
        entries.append(entry)

    return sorted(entries, key=lambda entry: (entry.ecosystem, entry.name))


def empty_message(
    ecosystem_filter: Optional[str] = None, semver_filter: Optional[str] = None
) -> str:
    if ecosystem_filter and semver_filter:
        return f'No {semver_filter}-level updates available for ecosystem "{ecosystem_filter}".'
    if ecosystem_filter:
        return f'No outdated dependencies found for ecosystem "{ecosystem_filter}".'
    if semver_filter:
        return f"No {semver_filter}-level updates available."
    return "All dependencies are up to date!"
