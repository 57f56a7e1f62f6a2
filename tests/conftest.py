"""
Shared fixtures for dep-lens tests.
"""

import json
import tempfile
from pathlib import Path

import pytest

from dep_lens.cli_config import reset_config
from dep_lens.dependency import DependencyRecord

ENV_VARS = (
    "DEP_LENS_MAX_DEPTH",
    "DEP_LENS_INPUT",
    "DEP_LENS_LOG_LEVEL",
    "DEP_LENS_TIMEOUT",
    "DEP_LENS_RATE_LIMIT",
    "DEP_LENS_MAX_CONCURRENT",
    "DEP_LENS_MAX_WALK_DEPTH",
    "NO_COLOR",
)


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep config lookups away from the developer's own files."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(tmp_path)
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    reset_config()
    yield
    reset_config()


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmp:
        yield Path(tmp)


def make_record(name, versions, ecosystem="npm", **kwargs):
    return DependencyRecord(
        name=name,
        ecosystem=ecosystem,
        versions={version: tuple(sources) for version, sources in versions.items()},
        **kwargs,
    )


@pytest.fixture
def tsup_records():
    """tsup is a direct dev dependency that pulls in sucrase."""
    return [
        make_record("tsup", {"8.5.0": [".#devDependencies"]}),
        make_record("sucrase", {"3.35.0": ["pnpm-lock.yaml:tsup@8.5.0"]}),
    ]


@pytest.fixture
def project_records():
    """A small mixed project with a diamond, a scoped package and two ecosystems."""
    return [
        make_record("react", {"18.2.0": ["package.json#dependencies"]}),
        make_record("loose-envify", {"1.4.0": ["pnpm-lock.yaml:react@18.2.0"]}),
        make_record(
            "js-tokens",
            {"4.0.0": ["pnpm-lock.yaml:loose-envify@1.4.0", "pnpm-lock.yaml:@babel/code-frame@7.24.2"]},
        ),
        make_record("@babel/code-frame", {"7.24.2": ["pnpm-lock.yaml:vitest@1.6.0"]}),
        make_record("vitest", {"1.6.0": ["package.json#devDependencies"]}),
        make_record("rack", {"3.0.8": ["Gemfile#dependencies"]}, ecosystem="rubygems"),
        make_record("rack-test", {"2.1.0": ["Gemfile.lock:rack@3.0.8"]}, ecosystem="rubygems"),
    ]


@pytest.fixture(name="make_record")
def make_record_fixture():
    return make_record


def records_to_json(records):
    return [
        {
            "name": record.name,
            "ecosystem": record.ecosystem,
            "versions": {version: list(sources) for version, sources in record.versions.items()},
            **({"wanted": record.wanted} if record.wanted else {}),
            **({"latest": record.latest} if record.latest else {}),
        }
        for record in records
    ]


@pytest.fixture
def write_records(tmp_path):
    """Write records to a JSON file and return its path."""

    def _write(records, name="dependencies.json"):
        path = tmp_path / name
        path.write_text(json.dumps(records_to_json(records)), encoding="utf-8")
        return path

    return _write
