"""
Core Module Package.

Infrastructure shared by every other package.

Components:
- clock: time abstraction (system / mock)
- config: environment-driven configuration
- exceptions: request-level exception hierarchy
- logging_config: process logging setup
"""

from core.clock import ClockProtocol, MockClock, SystemClock
from core.config import AppConfig, CacheConfig, HttpConfig, SearchConfig
from core.exceptions import (
    AnalyzerError,
    CacheError,
    ConfigurationError,
    EntityNotFoundError,
    InvalidQueryError,
)
from core.logging_config import setup_logging


__all__ = [
    "ClockProtocol",
    "MockClock",
    "SystemClock",
    "AppConfig",
    "CacheConfig",
    "HttpConfig",
    "SearchConfig",
    "AnalyzerError",
    "CacheError",
    "ConfigurationError",
    "EntityNotFoundError",
    "InvalidQueryError",
    "setup_logging",
]
