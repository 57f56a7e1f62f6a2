"""
Tests for registry version lookups, with registries stubbed by httpx.MockTransport.
"""

import httpx
import pytest

from dep_lens.error_handling import get_error_handler
from dep_lens.registry_clients import (
    NPMClient,
    PyPIClient,
    RateLimiter,
    RubyGemsClient,
    get_registry_client,
    registry_for_ecosystem,
)

NPM_DOCUMENT = {
    "name": "react",
    "dist-tags": {"latest": "18.3.1", "next": "19.0.0-rc.1"},
    "versions": {"18.2.0": {}, "18.3.1": {}, "19.0.0-rc.1": {}},
}

PYPI_DOCUMENT = {
    "info": {"version": "2.32.3"},
    "releases": {"2.31.0": [{"filename": "a.whl"}], "2.32.3": [{"filename": "b.whl"}], "2.32.1": []},
}

RUBYGEMS_DOCUMENT = [
    {"number": "3.1.0.beta1", "prerelease": True},
    {"number": "3.0.9", "prerelease": False},
    {"number": "3.0.8", "prerelease": False},
]


def registry_transport(routes, seen=None):
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        path = request.url.raw_path.decode()
        if path in routes:
            status, body = routes[path]
            return httpx.Response(status, json=body)
        return httpx.Response(404, json={"error": "Not found"})

    return httpx.MockTransport(handler)


class TestClients:
    """Parsing each registry's version document."""

    @pytest.mark.asyncio
    async def test_npm(self):
        """Test the npm version document."""
        transport = registry_transport({"/react": (200, NPM_DOCUMENT)})
        async with NPMClient(rate_limit_rps=1000, transport=transport) as client:
            result = await client.fetch_versions("react")

        assert result.registry_type == "npm"
        assert result.latest == "18.3.1"
        assert result.versions == ("18.2.0", "18.3.1", "19.0.0-rc.1")
        assert result.error is None

    @pytest.mark.asyncio
    async def test_npm_scoped_name_is_escaped(self):
        """Test escaping of scoped npm names."""
        seen = []
        transport = registry_transport({"/@babel%2Fcore": (200, NPM_DOCUMENT)}, seen)
        async with NPMClient(rate_limit_rps=1000, transport=transport) as client:
            result = await client.fetch_versions("@babel/core")

        assert seen[0].url.raw_path == b"/@babel%2Fcore"
        assert result.latest == "18.3.1"

    @pytest.mark.asyncio
    async def test_pypi_skips_empty_releases(self):
        """Test that PyPI releases without files are skipped."""
        transport = registry_transport({"/pypi/requests/json": (200, PYPI_DOCUMENT)})
        async with PyPIClient(rate_limit_rps=1000, transport=transport) as client:
            result = await client.fetch_versions("requests")

        assert result.latest == "2.32.3"
        assert result.versions == ("2.31.0", "2.32.3")

    @pytest.mark.asyncio
    async def test_rubygems_latest_is_highest_release(self):
        """Test that RubyGems latest is the highest release."""
        transport = registry_transport({"/api/v1/versions/rack.json": (200, RUBYGEMS_DOCUMENT)})
        async with RubyGemsClient(rate_limit_rps=1000, transport=transport) as client:
            result = await client.fetch_versions("rack")

        assert result.latest == "3.0.9"
        assert "3.1.0.beta1" in result.versions

    @pytest.mark.asyncio
    async def test_missing_package(self):
        """Test a package missing from the registry."""
        async with NPMClient(rate_limit_rps=1000, transport=registry_transport({})) as client:
            result = await client.fetch_versions("definitely-not-a-package")

        assert result.exists is False
        assert result.latest is None
        assert result.error is None

    @pytest.mark.asyncio
    async def test_server_error_is_reported(self):
        """Test reporting of server errors."""
        handler = get_error_handler()
        handler.reset_stats()
        transport = registry_transport({"/react": (503, {"error": "unavailable"})})

        async with NPMClient(rate_limit_rps=1000, transport=transport) as client:
            result = await client.fetch_versions("react")

        assert result.error == "HTTP 503"
        assert handler.get_error_stats()["NETWORK_ERROR"] == 1

    @pytest.mark.asyncio
    async def test_connection_error_is_reported(self):
        """Test reporting of connection errors."""
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with NPMClient(rate_limit_rps=1000, transport=httpx.MockTransport(handler)) as client:
            result = await client.fetch_versions("react")

        assert result.error.startswith("Network error")

    @pytest.mark.asyncio
    async def test_client_requires_context(self):
        """Test that lookups need an open client."""
        with pytest.raises(RuntimeError):
            await NPMClient().fetch_versions("react")


class TestFactory:
    def test_known_registries(self):
        """Test the client factory for known registries."""
        assert isinstance(get_registry_client("npm"), NPMClient)
        assert isinstance(get_registry_client("pypi"), PyPIClient)
        assert isinstance(get_registry_client("rubygems"), RubyGemsClient)

    def test_configured_base_url(self):
        """Test the configured base URL."""
        assert get_registry_client("pypi").base_url == "https://pypi.org/pypi"

    def test_unknown_registry(self):
        """Test that an unknown registry is rejected."""
        with pytest.raises(ValueError):
            get_registry_client("crates")

    def test_ecosystem_aliases(self):
        """Test mapping ecosystems to registries."""
        assert registry_for_ecosystem("npm") == "npm"
        assert registry_for_ecosystem("PyPI") == "pypi"
        assert registry_for_ecosystem("ruby") == "rubygems"
        assert registry_for_ecosystem("system") is None


@pytest.mark.asyncio
async def test_rate_limiter_spaces_requests(monkeypatch):
    """Test that the rate limiter spaces requests."""
    delays = []

    async def fake_sleep(seconds):
        delays.append(seconds)

    monkeypatch.setattr("dep_lens.registry_clients.asyncio.sleep", fake_sleep)
    limiter = RateLimiter(requests_per_second=2.0)

    await limiter.acquire()
    await limiter.acquire()

    assert len(delays) == 1
    assert 0 < delays[0] <= 0.5
