"""
Core Module - Exceptions.

============================================================
EXCEPTION HIERARCHY
============================================================
AnalyzerError (base)
├── ConfigurationError      bad environment value at startup
├── CacheError              backend I/O; absorbed by TTLCache
├── InvalidQueryError       empty query or unknown type      -> 400
└── EntityNotFoundError     nothing usable from any source   -> 404

Provider failures are a separate family (data_sources.exceptions)
and are turned into None before they reach this layer.

============================================================
"""

from enum import Enum
from typing import Any, Dict, Optional


class Severity(Enum):
    """Log level hint carried by every AnalyzerError."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class AnalyzerError(Exception):
    """
    Base exception for the analyzer.

    ``context`` holds structured details for logs and error bodies;
    a ``cause`` is recorded there by type and message.
    """

    default_severity: Severity = Severity.MEDIUM
    http_status: int = 500

    def __init__(
        self,
        message: str,
        severity: Optional[Severity] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.message = message
        self.severity = severity or self.default_severity
        self.context = dict(context or {})
        if cause is not None:
            self.context["cause"] = f"{type(cause).__name__}: {cause}"
            self.__cause__ = cause

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": type(self).__name__,
            "message": self.message,
            "severity": self.severity.value,
            "context": self.context,
        }


class ConfigurationError(AnalyzerError):
    """An environment variable holds an unusable value."""

    default_severity = Severity.HIGH

    def __init__(self, message: str, config_key: Optional[str] = None, actual_value: Any = None, **kwargs):
        context = kwargs.pop("context", {})
        if config_key:
            context["config_key"] = config_key
        if actual_value is not None:
            context["actual_value"] = str(actual_value)[:100]
        super().__init__(message, context=context, **kwargs)


class CacheError(AnalyzerError):
    """A cache entry could not be read, written or deleted."""

    default_severity = Severity.LOW

    def __init__(self, message: str, key: Optional[str] = None, **kwargs):
        context = kwargs.pop("context", {})
        if key:
            context["key"] = key
        super().__init__(message, context=context, **kwargs)


class InvalidQueryError(AnalyzerError):
    """Query is missing or empty after normalization, or names an unknown type."""

    default_severity = Severity.LOW
    http_status = 400


class EntityNotFoundError(AnalyzerError):
    """No provider, fallback or scrape produced usable data for a query."""

    default_severity = Severity.LOW
    http_status = 404

    def __init__(self, query: str, message: Optional[str] = None, **kwargs):
        super().__init__(
            message or "No data found. Check the name and try again.",
            context={"query": query},
            **kwargs,
        )
        self.query = query
