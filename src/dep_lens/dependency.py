# In src/dep_lens/dependency.py
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, Optional, Tuple


class DependencyRole(Enum):
    """Manifest section a direct dependency was declared in."""

    PRODUCTION = "dependencies"
    DEV = "devDependencies"


@dataclass(frozen=True)
class DependencyRecord:
    """A resolved dependency as reported by an ecosystem plugin."""

    name: str
    ecosystem: str
    versions: Dict[str, Tuple[str, ...]] = field(default_factory=dict)
    specifiers: Dict[str, str] = field(default_factory=dict)
    id: Optional[str] = None
    wanted: Optional[str] = None
    latest: Optional[str] = None

    @property
    def record_id(self) -> str:
        return self.id or f"{self.ecosystem}:{self.name}"

    def iter_provenance(self) -> Iterator[Tuple[str, str]]:
        """Yield ``(resolved_version, provenance)`` pairs in recorded order."""
        for version, sources in self.versions.items():
            for source in sources:
                yield version, source
