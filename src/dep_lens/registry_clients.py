"""
Registry clients for looking up published package versions.

Rate-limited httpx clients for npm, PyPI and RubyGems, used by the
``outdated --fetch`` command to find the latest release and the highest
release satisfying a recorded specifier.
"""

import asyncio
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

import httpx
from httpx import HTTPStatusError, RequestError

from .cli_config import get_config
from .error_handling import log_network_error
from .semver import parse_version
from .structured_logging import log_registry_lookup


@dataclass(frozen=True)
class RegistryVersions:
    """Published versions of one package in one registry."""

    package_name: str
    registry_type: str
    latest: Optional[str] = None
    versions: Tuple[str, ...] = ()
    exists: bool = True
    error: Optional[str] = None
    check_duration_ms: Optional[int] = None


class RateLimiter:
    """Simple rate limiter to avoid overwhelming registries."""

    def __init__(self, requests_per_second: float = 10.0):
        self.requests_per_second = requests_per_second
        self.min_interval = 1.0 / requests_per_second
        self.last_request_time = 0.0
        self._lock = asyncio.Lock()

    async def acquire(self) -> None:
        """Wait if necessary to respect rate limits."""
        async with self._lock:
            current_time = time.monotonic()
            time_since_last = current_time - self.last_request_time

            if time_since_last < self.min_interval:
                await asyncio.sleep(self.min_interval - time_since_last)

            self.last_request_time = time.monotonic()


class BaseRegistryClient(ABC):
    """
    Base class for registry clients.

    The HTTP client is created on context entry and closed on exit. A custom
    ``transport`` may be passed through to httpx, e.g. ``httpx.MockTransport``.
    """

    def __init__(
        self,
        base_url: str,
        rate_limit_rps: float = 10.0,
        timeout: float = 30.0,
        user_agent: str = "dep-lens/1.0.0 (Dependency Inspector)",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.rate_limiter = RateLimiter(rate_limit_rps)
        self.timeout = timeout
        self.transport = transport
        self.client: Optional[httpx.AsyncClient] = None
        self._headers = {
            "User-Agent": user_agent,
            "Accept": "application/json",
        }

    async def __aenter__(self):
        self.client = httpx.AsyncClient(
            timeout=self.timeout, headers=self._headers, transport=self.transport
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self.client:
            await self.client.aclose()
            self.client = None

    @abstractmethod
    def get_registry_type(self) -> str:
        """Get the registry type identifier."""

    @abstractmethod
    def versions_url(self, package_name: str) -> str:
        """URL of the document listing a package's releases."""

    @abstractmethod
    def parse_versions(self, data: Any) -> Tuple[Optional[str], List[str]]:
        """Extract ``(latest, all_versions)`` from the registry document."""

    async def fetch_versions(self, package_name: str) -> RegistryVersions:
        """
        Fetch the published versions of a package.

        Network and HTTP failures are logged and reported through the
        ``error`` field rather than raised.
        """
        if self.client is None:
            raise RuntimeError("HTTP client not initialized - use within async context manager")

        start_time = time.monotonic()
        url = self.versions_url(package_name)

        try:
            await self.rate_limiter.acquire()
            response = await self.client.get(url)
            duration_ms = int((time.monotonic() - start_time) * 1000)

            if response.status_code == 404:
                log_registry_lookup(package_name, self.get_registry_type(), None, duration_ms)
                return RegistryVersions(
                    package_name=package_name,
                    registry_type=self.get_registry_type(),
                    exists=False,
                    check_duration_ms=duration_ms,
                )

            response.raise_for_status()
            latest, versions = self.parse_versions(response.json())

        except HTTPStatusError as e:
            log_network_error(
                f"Registry returned HTTP {e.response.status_code} for {package_name}",
                __name__,
                "fetch_versions",
                url=url,
                status_code=e.response.status_code,
                exception=e,
            )
            return RegistryVersions(
                package_name=package_name,
                registry_type=self.get_registry_type(),
                error=f"HTTP {e.response.status_code}",
            )
        except RequestError as e:
            log_network_error(
                f"Network error looking up {package_name}",
                __name__,
                "fetch_versions",
                url=url,
                exception=e,
            )
            return RegistryVersions(
                package_name=package_name,
                registry_type=self.get_registry_type(),
                error=f"Network error: {e}",
            )
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            log_network_error(
                f"Unexpected registry response for {package_name}",
                __name__,
                "fetch_versions",
                url=url,
                exception=e,
            )
            return RegistryVersions(
                package_name=package_name,
                registry_type=self.get_registry_type(),
                error=f"Invalid registry response: {e}",
            )

        log_registry_lookup(package_name, self.get_registry_type(), latest, duration_ms)
        return RegistryVersions(
            package_name=package_name,
            registry_type=self.get_registry_type(),
            latest=latest,
            versions=tuple(versions),
            check_duration_ms=duration_ms,
        )


def _highest_release(versions: List[str]) -> Optional[str]:
    releases = [
        version
        for version in versions
        if (parsed := parse_version(version)) is not None and not parsed.is_prerelease
    ]
    if not releases:
        return None
    return max(releases, key=parse_version)


class NPMClient(BaseRegistryClient):
    """Client for the npm registry."""

    def __init__(self, base_url: str = "https://registry.npmjs.org", **kwargs):
        super().__init__(base_url, **kwargs)

    def get_registry_type(self) -> str:
        return "npm"

    def versions_url(self, package_name: str) -> str:
        # scoped packages are requested as @scope%2Fname
        return f"{self.base_url}/{quote(package_name.strip(), safe='@')}"

    def parse_versions(self, data: Any) -> Tuple[Optional[str], List[str]]:
        versions = list((data.get("versions") or {}).keys())
        latest = (data.get("dist-tags") or {}).get("latest") or _highest_release(versions)
        return latest, versions


class PyPIClient(BaseRegistryClient):
    """Client for the Python Package Index."""

    def __init__(self, base_url: str = "https://pypi.org/pypi", **kwargs):
        super().__init__(base_url, **kwargs)

    def get_registry_type(self) -> str:
        return "pypi"

    def versions_url(self, package_name: str) -> str:
        return f"{self.base_url}/{quote(package_name.strip())}/json"

    def parse_versions(self, data: Any) -> Tuple[Optional[str], List[str]]:
        releases = data.get("releases") or {}
        # releases whose files were all yanked or removed have no downloads
        versions = [version for version, files in releases.items() if files]
        latest = (data.get("info") or {}).get("version") or _highest_release(versions)
        return latest, versions


class RubyGemsClient(BaseRegistryClient):
    """Client for rubygems.org."""

    def __init__(self, base_url: str = "https://rubygems.org", **kwargs):
        super().__init__(base_url, **kwargs)

    def get_registry_type(self) -> str:
        return "rubygems"

    def versions_url(self, package_name: str) -> str:
        return f"{self.base_url}/api/v1/versions/{quote(package_name.strip())}.json"

    def parse_versions(self, data: Any) -> Tuple[Optional[str], List[str]]:
        versions = [str(entry["number"]) for entry in data]
        return _highest_release(versions), versions


_CLIENTS = {
    "npm": NPMClient,
    "pypi": PyPIClient,
    "rubygems": RubyGemsClient,
}

_ECOSYSTEM_ALIASES: Dict[str, str] = {
    "npm": "npm",
    "pnpm": "npm",
    "yarn": "npm",
    "pypi": "pypi",
    "python": "pypi",
    "uv": "pypi",
    "rubygems": "rubygems",
    "ruby": "rubygems",
    "gem": "rubygems",
}


def registry_for_ecosystem(ecosystem: str) -> Optional[str]:
    """Registry type serving ``ecosystem``, or None when there is none."""
    return _ECOSYSTEM_ALIASES.get(ecosystem.lower())


def get_registry_client(
    registry_type: str,
    rate_limit_rps: Optional[float] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> BaseRegistryClient:
    """
    Factory function to get the appropriate registry client.

    Base URL, timeout, user agent and default rate limit come from the
    ``network`` configuration section.

    Raises:
        ValueError: If registry_type is not supported
    """
    client_class = _CLIENTS.get(registry_type)
    if client_class is None:
        raise ValueError(f"Unsupported registry type: {registry_type}")

    network = get_config().network
    kwargs: Dict[str, Any] = {
        "rate_limit_rps": rate_limit_rps or network.rate_limit,
        "timeout": network.timeout_seconds,
        "user_agent": network.user_agent,
        "transport": transport,
    }
    base_url = network.registry_urls.get(registry_type)
    if base_url:
        kwargs["base_url"] = base_url
    return client_class(**kwargs)
