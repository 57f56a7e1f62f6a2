"""
Error reporting for dep-lens.

dep-lens only fails at its edges: reading the records document, reading
the filesystem and talking to package registries. Problems found there are
turned into an ErrorContext, counted per category, written to stderr with
any credentials masked, and handed to registered listeners.
"""

import logging
import re
import sys
import traceback
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import urlparse


class ErrorLevel(Enum):
    WARNING = logging.WARNING
    ERROR = logging.ERROR


class ErrorCategory(Enum):
    PARSING = "PARSING"
    NETWORK = "NETWORK"
    FILESYSTEM = "FILESYSTEM"


@dataclass
class ErrorContext:
    """One reported problem and where it came from."""

    level: ErrorLevel
    category: ErrorCategory
    message: str
    module: str
    function: str
    details: Dict[str, Any] = field(default_factory=dict)
    exception: Optional[Exception] = None
    suggestions: List[str] = field(default_factory=list)

    @property
    def traceback_info(self) -> Optional[str]:
        if self.exception is None:
            return None
        return "".join(
            traceback.format_exception(
                type(self.exception), self.exception, self.exception.__traceback__
            )
        )

    @property
    def stat_key(self) -> str:
        return f"{self.category.value}_{self.level.name}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level.name,
            "category": self.category.value,
            "message": self.message,
            "location": f"{self.module}.{self.function}",
            "details": self.details,
            "exception_type": type(self.exception).__name__ if self.exception else None,
            "exception_message": str(self.exception) if self.exception else None,
            "suggestions": self.suggestions,
        }


# Registry URLs may carry basic-auth credentials or tokens from user config
_REDACTIONS = [
    (re.compile(r"(https?://[^@\s/]+:)[^@\s]+@", re.IGNORECASE), r"\1[REDACTED]@"),
    (re.compile(r"(authorization:\s*\w+\s+)\S+", re.IGNORECASE), r"\1[REDACTED]"),
    (re.compile(r"(token[\"']?\s*[:=]\s*[\"']?)[\w\-+=/.]{8,}", re.IGNORECASE), r"\1[REDACTED]"),
]
_SECRET_KEY_PARTS = ("token", "password", "secret", "credential", "auth")


def redact_text(text: str) -> str:
    """Mask credentials embedded in free text."""
    for pattern, replacement in _REDACTIONS:
        text = pattern.sub(replacement, text)
    return text


def redact_mapping(data: Dict[str, Any]) -> Dict[str, Any]:
    """Mask values whose key names a secret, recursing into nested mappings."""
    redacted: Dict[str, Any] = {}
    for key, value in data.items():
        if any(part in key.lower() for part in _SECRET_KEY_PARTS):
            redacted[key] = "[REDACTED]"
        elif isinstance(value, dict):
            redacted[key] = redact_mapping(value)
        elif isinstance(value, str):
            redacted[key] = redact_text(value)
        else:
            redacted[key] = value
    return redacted


def _stderr_logger(name: str, level: int) -> logging.Logger:
    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.propagate = False
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
        logger.addHandler(handler)
    return logger


ErrorCallback = Callable[[ErrorContext], None]


class ErrorHandler:
    """
    Collects problems reported by the loader and the registry clients.

    Listeners registered for a category only see problems of that category;
    listeners registered without one see everything.
    """

    def __init__(
        self,
        logger_name: str = "dep_lens",
        log_level: int = logging.WARNING,
        enable_callbacks: bool = True,
    ):
        self.logger = _stderr_logger(logger_name, log_level)
        self.enable_callbacks = enable_callbacks
        self._listeners: Dict[Optional[ErrorCategory], List[ErrorCallback]] = {}
        self._stats: Dict[str, int] = {}

    def register_callback(
        self, callback: ErrorCallback, category: Optional[ErrorCategory] = None
    ) -> None:
        if self.enable_callbacks:
            self._listeners.setdefault(category, []).append(callback)

    def report(self, context: ErrorContext) -> ErrorContext:
        """Count, log and dispatch a problem."""
        self._stats[context.stat_key] = self._stats.get(context.stat_key, 0) + 1

        summary = {
            "category": context.category.value,
            "location": f"{context.module}.{context.function}",
            "details": redact_mapping(context.details),
        }
        if context.exception is not None:
            summary["exception"] = type(context.exception).__name__
        self.logger.log(context.level.value, f"{redact_text(context.message)} | {summary}")

        if not self.enable_callbacks:
            return context
        listeners = self._listeners.get(context.category, []) + self._listeners.get(None, [])
        for listener in listeners:
            try:
                listener(context)
            except Exception as listener_error:
                self.logger.error(f"Error listener failed: {listener_error}")
        return context

    def warning(
        self, category: ErrorCategory, message: str, module: str, function: str, **kwargs
    ) -> ErrorContext:
        return self.report(
            ErrorContext(ErrorLevel.WARNING, category, message, module, function, **kwargs)
        )

    def error(
        self, category: ErrorCategory, message: str, module: str, function: str, **kwargs
    ) -> ErrorContext:
        return self.report(
            ErrorContext(ErrorLevel.ERROR, category, message, module, function, **kwargs)
        )

    def get_error_stats(self) -> Dict[str, int]:
        return dict(self._stats)

    def reset_stats(self) -> None:
        self._stats.clear()


# Created at import so the stderr handler binds to the process stream
_global_error_handler = ErrorHandler()


def get_error_handler() -> ErrorHandler:
    return _global_error_handler


def log_parsing_error(
    message: str,
    module: str,
    function: str,
    record_index: Optional[int] = None,
    file_path: Optional[str] = None,
    exception: Optional[Exception] = None,
) -> ErrorContext:
    """
    Report a record that could not be read from the dependency document.

    Args:
        message: What was wrong with the record
        module: Reporting module
        function: Reporting function
        record_index: Position of the record in the document
        file_path: Document the record came from (only the file name is kept)
        exception: The exception raised while reading the record
    """
    details: Dict[str, Any] = {}
    if record_index is not None:
        details["record_index"] = record_index
    if file_path is not None:
        details["file_path"] = Path(file_path).name

    return get_error_handler().warning(
        ErrorCategory.PARSING,
        message,
        module,
        function,
        details=details,
        exception=exception,
        suggestions=[
            "Check that every record has a name and a versions mapping",
            "Regenerate the dependency export from the ecosystem plugin",
        ],
    )


def log_network_error(
    message: str,
    module: str,
    function: str,
    url: Optional[str] = None,
    status_code: Optional[int] = None,
    exception: Optional[Exception] = None,
) -> ErrorContext:
    """Report a failed registry lookup. Query strings and credentials are dropped from the URL."""
    details: Dict[str, Any] = {}
    if url is not None:
        parsed = urlparse(url)
        host = parsed.hostname or ""
        if parsed.port:
            host = f"{host}:{parsed.port}"
        details["url"] = f"{parsed.scheme}://{host}{parsed.path}"
    if status_code is not None:
        details["status_code"] = status_code

    return get_error_handler().error(
        ErrorCategory.NETWORK,
        message,
        module,
        function,
        details=details,
        exception=exception,
        suggestions=[
            "Check network connectivity",
            "Verify the registry URL in the network.registry_urls setting",
        ],
    )
