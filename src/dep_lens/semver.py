"""Version comparison helpers built atop packaging.version.

Supported range expressions for ``satisfies``:
- exact versions (e.g., "1.2.3", "=1.2.3")
- caret ranges ^x.y.z -> >=x.y.z,<x+1.0.0 (^0.y.z -> <0.y+1.0)
- tilde ranges ~x.y.z -> >=x.y.z,<x.y+1.0
- pessimistic ranges ~> x.y -> >=x.y,<x+1.0 and ~> x.y.z -> <x.y+1.0
- space or comma separated comparator sets, e.g. ">=1.0.0 <2.0.0"
- "*", "x", "latest" and the empty string match any release
"""

from __future__ import annotations

from typing import Iterable, Literal, Optional

from packaging.specifiers import InvalidSpecifier, SpecifierSet
from packaging.version import InvalidVersion, Version

SemverLevel = Literal["major", "minor", "patch"]
SemverFilter = Literal["patch", "minor"]

_ANY = {"", "*", "x", "latest"}


def parse_version(value: str) -> Optional[Version]:
    try:
        return Version(value.strip().lstrip("vV"))
    except (InvalidVersion, AttributeError):
        return None


def get_semver_level(current: str, target: str) -> Optional[SemverLevel]:
    """Return the update level from ``current`` to ``target``, or None."""
    if current == target:
        return None
    a, b = parse_version(current), parse_version(target)
    if a is None or b is None or a == b:
        return None
    if a.major != b.major:
        return "major"
    if a.minor != b.minor:
        return "minor"
    # micro or prerelease-only change
    return "patch"


def matches_semver_filter(level: Optional[SemverLevel], semver_filter: SemverFilter) -> bool:
    """'patch' keeps patch updates only; 'minor' keeps minor and patch."""
    if level is None:
        return False
    if semver_filter == "patch":
        return level == "patch"
    if semver_filter == "minor":
        return level in ("patch", "minor")
    return False


def _next_major(v: Version) -> Version:
    return Version(f"{v.major + 1}.0.0")


def _next_minor(v: Version) -> Version:
    return Version(f"{v.major}.{v.minor + 1}.0")


def _comparator(v: Version, token: str) -> bool:
    for op in (">=", "<=", ">", "<", "==", "="):
        if token.startswith(op):
            bound = parse_version(token[len(op):])
            if bound is None:
                return False
            return {
                ">=": v >= bound,
                "<=": v <= bound,
                ">": v > bound,
                "<": v < bound,
                "==": v == bound,
                "=": v == bound,
            }[op]
    bound = parse_version(token)
    return bound is not None and v == bound


def satisfies(installed: str, expr: str) -> bool:
    v = parse_version(installed)
    if v is None:
        return False
    expr = (expr or "").strip()

    # prereleases only match when named exactly
    if v.is_prerelease:
        return parse_version(expr.lstrip("=")) == v

    if expr in _ANY:
        return True

    if expr.startswith("~>"):
        base = parse_version(expr[2:])
        if base is None:
            return False
        segments = expr[2:].strip().count(".") + 1
        upper = _next_major(base) if segments <= 2 else _next_minor(base)
        return base <= v < upper

    if expr.startswith("^"):
        base = parse_version(expr[1:])
        if base is None:
            return False
        upper = _next_minor(base) if base.major == 0 else _next_major(base)
        return base <= v < upper

    if expr.startswith("~"):
        base = parse_version(expr[1:])
        if base is None:
            return False
        return base <= v < _next_minor(base)

    tokens = expr.replace(",", " ").split()
    return all(_comparator(v, token) for token in tokens)


def satisfies_pep440(installed: str, expr: str) -> bool:
    """PEP 440 specifier check, used for PyPI requirements."""
    if not expr or expr.strip() in _ANY:
        v = parse_version(installed)
        return v is not None and not v.is_prerelease
    try:
        return SpecifierSet(expr).contains(installed)
    except (InvalidSpecifier, InvalidVersion):
        return False


def find_wanted_version(
    versions: Iterable[str], specifier: Optional[str], pep440: bool = False
) -> Optional[str]:
    """Highest published version satisfying ``specifier``."""
    check = satisfies_pep440 if pep440 else satisfies
    candidates = [
        candidate
        for candidate in versions
        if parse_version(candidate) is not None and check(candidate, specifier or "")
    ]
    if not candidates:
        return None
    return max(candidates, key=parse_version)
