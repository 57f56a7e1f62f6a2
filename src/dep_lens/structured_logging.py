"""
Structured logging configuration for dep-lens.

Provides consistent, machine-readable logging for graph construction, chain
resolution and registry lookups. Records go to stderr so that command output
on stdout stays parseable.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

_RESERVED_ATTRIBUTES = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "getMessage",
    "exc_info",
    "exc_text",
    "stack_info",
    "taskName",
}


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "component": getattr(record, "component", record.name),
            "message": record.getMessage(),
        }

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRIBUTES:
                log_entry[key] = value

        return json.dumps(log_entry, default=str)


class GraphLogger:
    """Structured logger for dependency graph events."""

    def __init__(self, name: str = "dep_lens"):
        self.logger = logging.getLogger(f"dep_lens.{name}")
        self.logger.propagate = False
        self._setup_logger()
        self.command_context: Dict[str, Any] = {}

    def _setup_logger(self) -> None:
        if not self.logger.handlers:
            handler = logging.StreamHandler(sys.stderr)
            handler.setFormatter(StructuredFormatter())
            self.logger.addHandler(handler)
            self.logger.setLevel(logging.WARNING)

    def set_formatter(self, formatter: logging.Formatter) -> None:
        for handler in self.logger.handlers:
            handler.setFormatter(formatter)

    def set_command_context(
        self,
        command: Optional[str] = None,
        input_path: Optional[str] = None,
        total_records: Optional[int] = None,
    ) -> None:
        """Set command context attached to every event."""
        self.command_context = {}
        if command:
            self.command_context["command"] = command
        if input_path:
            self.command_context["input_path"] = input_path
        if total_records is not None:
            self.command_context["total_records"] = total_records

    def clear_command_context(self) -> None:
        self.command_context.clear()

    def _log(self, level: str, event_type: str, **kwargs) -> None:
        log_data = {"event_type": event_type, **self.command_context, **kwargs}
        getattr(self.logger, level.lower())(event_type, extra=log_data)

    def info(self, event_type: str, **kwargs) -> None:
        self._log("info", event_type, **kwargs)

    def warning(self, event_type: str, **kwargs) -> None:
        self._log("warning", event_type, **kwargs)

    def error(self, event_type: str, **kwargs) -> None:
        self._log("error", event_type, **kwargs)

    def debug(self, event_type: str, **kwargs) -> None:
        self._log("debug", event_type, **kwargs)


# Global logger instances
_graph_logger = GraphLogger("graph")
_chain_logger = GraphLogger("chain")
_registry_logger = GraphLogger("registry")

_ALL_LOGGERS: List[GraphLogger] = [_graph_logger, _chain_logger, _registry_logger]


def log_index_built(
    total_records: int,
    root_count: int,
    edge_count: int,
    unrecognized_count: int,
    ecosystem_filter: Optional[str] = None,
) -> None:
    """Log completion of the edge index."""
    log_data: Dict[str, Any] = {
        "total_records": total_records,
        "root_count": root_count,
        "edge_count": edge_count,
        "unrecognized_count": unrecognized_count,
    }
    if ecosystem_filter:
        log_data["ecosystem_filter"] = ecosystem_filter
    _graph_logger.info("index_built", **log_data)


def log_unrecognized_provenance(
    count: int, samples: Sequence[str], max_samples: int = 5
) -> None:
    """Log provenance strings that were dropped from the graph."""
    if count <= 0:
        return
    _graph_logger.debug(
        "unrecognized_provenance",
        unrecognized_count=count,
        samples=list(samples[:max_samples]),
    )


def log_chain_resolved(
    target: str, version: str, chain_length: int, complete: bool
) -> None:
    """Log the outcome of a reverse chain walk."""
    if complete:
        _chain_logger.debug(
            "chain_resolved", target=target, version=version, chain_length=chain_length
        )
    else:
        _chain_logger.info(
            "chain_partial", target=target, version=version, chain_length=chain_length
        )


def log_registry_lookup(
    package_name: str,
    registry: str,
    latest: Optional[str],
    response_time_ms: Optional[float] = None,
) -> None:
    """Log a registry version lookup."""
    log_data: Dict[str, Any] = {
        "package_name": package_name,
        "registry": registry,
        "latest": latest,
    }
    if response_time_ms is not None:
        log_data["response_time_ms"] = response_time_ms

    if latest is None:
        _registry_logger.warning("latest_version_unavailable", **log_data)
    else:
        _registry_logger.debug("registry_lookup_completed", **log_data)


def set_command_context(
    command: Optional[str] = None,
    input_path: Optional[str] = None,
    total_records: Optional[int] = None,
) -> None:
    """Set global command context for all loggers."""
    for logger in _ALL_LOGGERS:
        logger.set_command_context(command, input_path, total_records)


def clear_command_context() -> None:
    for logger in _ALL_LOGGERS:
        logger.clear_command_context()


def configure_logging(
    log_level: str = "WARNING",
    enable_json: bool = True,
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
) -> None:
    """Configure logging for the application."""
    level = getattr(logging, log_level.upper(), logging.WARNING)

    for logger in _ALL_LOGGERS:
        logger.logger.setLevel(level)
        logger.set_formatter(
            StructuredFormatter() if enable_json else logging.Formatter(log_format)
        )


# Initialize with default configuration
configure_logging()
