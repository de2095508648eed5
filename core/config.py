"""
Core Module - Configuration.

============================================================
PURPOSE
============================================================
Process-level configuration loaded from the environment.

A ``.env`` file in the working directory is honoured via
python-dotenv. Every value has a working default so the
analyzer runs with no environment at all.

============================================================
ENVIRONMENT VARIABLES
============================================================
LOG_LEVEL                 INFO
HOST / PORT               0.0.0.0 / 8000
HTTP_USER_AGENT           browser-like UA (scraper needs it)
HTTP_TIMEOUT_SECONDS      10
HTTP_LIST_TIMEOUT_SECONDS 15
HTTP_HTML_TIMEOUT_SECONDS 20
HTTP_RETRY_ATTEMPTS       2
HTTP_RETRY_BASE_DELAY     1.0
COINGECKO_API_KEY         (unset)
CACHE_BACKEND             disk | memory
CACHE_DIR                 .cache
CACHE_TTL_MARKET          1800
CACHE_TTL_PROTOCOL        3600
CACHE_TTL_HISTORY         7200
CACHE_TTL_SCRAPE          1800
SEARCH_INDEX_TTL          21600

============================================================
"""

import os
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from dotenv import load_dotenv

from core.exceptions import ConfigurationError


DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


def env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigurationError(
            f"{name} must be a number",
            config_key=name,
            actual_value=raw,
            cause=e,
        )


def env_int(name: str, default: int) -> int:
    return int(env_float(name, default))


# ============================================================
# HTTP
# ============================================================

@dataclass(frozen=True)
class HttpConfig:
    """Transport settings shared by every provider client."""

    user_agent: str = DEFAULT_USER_AGENT
    timeout_seconds: float = 10.0
    list_timeout_seconds: float = 15.0
    html_timeout_seconds: float = 20.0
    retry_attempts: int = 2
    retry_base_delay: float = 1.0
    coingecko_api_key: Optional[str] = None

    @classmethod
    def from_env(cls) -> "HttpConfig":
        return cls(
            user_agent=os.getenv("HTTP_USER_AGENT", DEFAULT_USER_AGENT),
            timeout_seconds=env_float("HTTP_TIMEOUT_SECONDS", 10.0),
            list_timeout_seconds=env_float("HTTP_LIST_TIMEOUT_SECONDS", 15.0),
            html_timeout_seconds=env_float("HTTP_HTML_TIMEOUT_SECONDS", 20.0),
            retry_attempts=env_int("HTTP_RETRY_ATTEMPTS", 2),
            retry_base_delay=env_float("HTTP_RETRY_BASE_DELAY", 1.0),
            coingecko_api_key=os.getenv("COINGECKO_API_KEY") or None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_agent": self.user_agent,
            "timeout_seconds": self.timeout_seconds,
            "list_timeout_seconds": self.list_timeout_seconds,
            "html_timeout_seconds": self.html_timeout_seconds,
            "retry_attempts": self.retry_attempts,
            "retry_base_delay": self.retry_base_delay,
            "coingecko_api_key_set": self.coingecko_api_key is not None,
        }


# ============================================================
# CACHE
# ============================================================

@dataclass(frozen=True)
class CacheConfig:
    """
    Cache backend and per-provider TTLs (seconds).

    Market data is volatile (30 min); chain and protocol data
    moves slower (1 h); TVL history slower still (2 h).
    """

    backend: str = "disk"
    directory: str = ".cache"
    market_ttl: int = 1800
    protocol_ttl: int = 3600
    history_ttl: int = 7200
    scrape_ttl: int = 1800

    @classmethod
    def from_env(cls) -> "CacheConfig":
        backend = os.getenv("CACHE_BACKEND", "disk").lower()
        if backend not in ("disk", "memory"):
            raise ConfigurationError(
                "CACHE_BACKEND must be 'disk' or 'memory'",
                config_key="CACHE_BACKEND",
                actual_value=backend,
            )
        return cls(
            backend=backend,
            directory=os.getenv("CACHE_DIR", ".cache"),
            market_ttl=env_int("CACHE_TTL_MARKET", 1800),
            protocol_ttl=env_int("CACHE_TTL_PROTOCOL", 3600),
            history_ttl=env_int("CACHE_TTL_HISTORY", 7200),
            scrape_ttl=env_int("CACHE_TTL_SCRAPE", 1800),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "backend": self.backend,
            "directory": self.directory,
            "market_ttl": self.market_ttl,
            "protocol_ttl": self.protocol_ttl,
            "history_ttl": self.history_ttl,
            "scrape_ttl": self.scrape_ttl,
        }


# ============================================================
# SEARCH INDEX
# ============================================================

@dataclass(frozen=True)
class SearchConfig:
    """Search index build and query settings."""

    index_ttl_seconds: int = 6 * 3600
    market_pages: int = 5
    market_page_size: int = 250
    market_page_delay_seconds: float = 1.0
    coin_list_cap: int = 5000
    threshold: float = 25.0
    default_limit: int = 15
    max_limit: int = 50

    @classmethod
    def from_env(cls) -> "SearchConfig":
        return cls(
            index_ttl_seconds=env_int("SEARCH_INDEX_TTL", 6 * 3600),
            market_pages=env_int("SEARCH_MARKET_PAGES", 5),
            market_page_delay_seconds=env_float("SEARCH_MARKET_PAGE_DELAY", 1.0),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index_ttl_seconds": self.index_ttl_seconds,
            "market_pages": self.market_pages,
            "market_page_size": self.market_page_size,
            "coin_list_cap": self.coin_list_cap,
            "threshold": self.threshold,
            "default_limit": self.default_limit,
        }


# ============================================================
# APPLICATION
# ============================================================

@dataclass(frozen=True)
class AppConfig:
    """Top-level configuration for the API process."""

    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000
    http: HttpConfig = field(default_factory=HttpConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    search: SearchConfig = field(default_factory=SearchConfig)

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None) -> "AppConfig":
        """Load configuration from environment variables (and .env)."""
        load_dotenv(dotenv_path)
        return cls(
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            host=os.getenv("HOST", "0.0.0.0"),
            port=env_int("PORT", 8000),
            http=HttpConfig.from_env(),
            cache=CacheConfig.from_env(),
            search=SearchConfig.from_env(),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "log_level": self.log_level,
            "host": self.host,
            "port": self.port,
            "http": self.http.to_dict(),
            "cache": self.cache.to_dict(),
            "search": self.search.to_dict(),
        }
