"""
Loading dependency records exported by ecosystem plugins.

Accepts JSON or YAML documents holding either a list of records or an object
with a ``dependencies`` list. A record's ``versions`` maps each resolved
version to its provenance strings, given either as a list or as an object of
``provenance -> specifier``.
"""

import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from .dependency import DependencyRecord
from .error_handling import ErrorCategory, get_error_handler, log_parsing_error


class RecordLoadError(ValueError):
    """The input document could not be read or has the wrong shape."""


class RecordYamlLoader(yaml.SafeLoader):
    """SafeLoader that keeps numeric scalars as text, so version 1.10 stays "1.10"."""


_NUMERIC_TAGS = {"tag:yaml.org,2002:int", "tag:yaml.org,2002:float"}
RecordYamlLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag not in _NUMERIC_TAGS]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}


def _normalize_versions(
    raw_versions: Any,
) -> Tuple[Dict[str, Tuple[str, ...]], Dict[str, str]]:
    if not isinstance(raw_versions, dict):
        raise ValueError("'versions' must be a mapping of resolved version to sources")

    versions: Dict[str, Tuple[str, ...]] = {}
    specifiers: Dict[str, str] = {}
    for resolved, sources in raw_versions.items():
        if not isinstance(resolved, str):
            raise ValueError(f"resolved version {resolved!r} must be a string")
        if isinstance(sources, str):
            sources = [sources]
        if isinstance(sources, dict):
            for source, specifier in sources.items():
                if specifier is not None:
                    specifiers.setdefault(str(source), str(specifier))
            sources = list(sources.keys())
        if not isinstance(sources, (list, tuple)):
            raise ValueError(f"sources for version {resolved!r} must be a list or mapping")
        # dict.fromkeys keeps first-seen order while dropping duplicates
        versions[resolved] = tuple(dict.fromkeys(str(source) for source in sources))
    return versions, specifiers


def _record_from_dict(raw: Any) -> DependencyRecord:
    if not isinstance(raw, dict):
        raise ValueError("record must be an object")
    name = raw.get("name")
    if not name or not isinstance(name, str):
        raise ValueError("record is missing a name")
    if "versions" not in raw:
        raise ValueError("record is missing versions")
    versions, specifiers = _normalize_versions(raw["versions"])
    return DependencyRecord(
        name=name,
        ecosystem=str(raw.get("ecosystem") or "unknown"),
        versions=versions,
        specifiers=specifiers,
        id=raw.get("id"),
        wanted=raw.get("wanted"),
        latest=raw.get("latest"),
    )


def _merge_duplicate(existing: DependencyRecord, extra: DependencyRecord) -> DependencyRecord:
    versions = dict(existing.versions)
    for version, sources in extra.versions.items():
        versions[version] = tuple(dict.fromkeys(versions.get(version, ()) + sources))
    specifiers = {**extra.specifiers, **existing.specifiers}
    return DependencyRecord(
        name=existing.name,
        ecosystem=existing.ecosystem,
        versions=versions,
        specifiers=specifiers,
        id=existing.id,
        wanted=existing.wanted or extra.wanted,
        latest=existing.latest or extra.latest,
    )


def parse_dependency_records(
    document: Any, file_path: Optional[str] = None
) -> List[DependencyRecord]:
    """
    Convert a decoded document into records, deduplicated by (name, ecosystem).

    Records that cannot be understood are skipped and reported through the
    error handler; a document of the wrong overall shape raises
    RecordLoadError.
    """
    if isinstance(document, dict):
        document = document.get("dependencies")
    if document is None:
        return []
    if not isinstance(document, list):
        raise RecordLoadError("expected a list of dependency records")

    records: Dict[Tuple[str, str], DependencyRecord] = {}
    for position, raw in enumerate(document):
        try:
            record = _record_from_dict(raw)
        except ValueError as e:
            log_parsing_error(
                f"Skipping malformed dependency record: {e}",
                __name__,
                "parse_dependency_records",
                record_index=position,
                file_path=file_path,
                exception=e,
            )
            continue

        key = (record.name, record.ecosystem)
        if key in records:
            records[key] = _merge_duplicate(records[key], record)
        else:
            records[key] = record

    return list(records.values())


def load_dependency_records(file_path: str) -> List[DependencyRecord]:
    """
    Load records from a JSON or YAML file, or JSON on stdin when ``-``.

    Raises:
        RecordLoadError: If the file cannot be read or decoded
    """
    try:
        if file_path == "-":
            document = json.load(sys.stdin)
        else:
            path = Path(file_path)
            with open(path, encoding="utf-8") as f:
                if path.suffix.lower() in (".yaml", ".yml"):
                    document = yaml.load(f, Loader=RecordYamlLoader)
                else:
                    document = json.load(f)
    except FileNotFoundError as e:
        raise RecordLoadError(f"Dependency file not found: {file_path}") from e
    except (OSError, UnicodeDecodeError) as e:
        get_error_handler().error(
            ErrorCategory.FILESYSTEM,
            f"Could not read dependency file: {e}",
            __name__,
            "load_dependency_records",
            exception=e,
        )
        raise RecordLoadError(f"Could not read {file_path}: {e}") from e
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise RecordLoadError(f"Invalid dependency document {file_path}: {e}") from e

    return parse_dependency_records(document, file_path=file_path)
