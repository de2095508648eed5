"""
Base Provider Client - Shared transport for all upstream providers.

============================================================
LAYERS (inside out)
============================================================
_request      one HTTP GET, status -> DataSourceError subclass
fetch_json    _request under the retry policy
cached_json   fetch_json under the TTL cache, keyed "<name>:<id>"
_guard        public-method wrapper: never raises, tracks health

A 404 inside _guard is an ordinary miss: it returns None without
counting against the provider's health.

============================================================
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

import aiohttp

from cache.ttl_cache import TTLCache
from core.config import CacheConfig, HttpConfig
from data_sources.exceptions import (
    DataSourceError,
    FetchError,
    NormalizationError,
    ProviderTimeoutError,
    RateLimitError,
)
from data_sources.models import SourceHealth, SourceStatus
from data_sources.retry import retry_with_backoff


logger = logging.getLogger(__name__)

T = TypeVar("T")

HTML_ACCEPT = {"Accept": "text/html,application/xhtml+xml"}


def _retry_after(value: Optional[str]) -> Optional[int]:
    return int(value) if value and value.isdigit() else None


class BaseProviderClient(ABC):
    """
    Abstract base class for provider clients.

    Subclasses set ``BASE_URL``, implement ``name`` and expose public
    methods built from ``cached_json`` / ``fetch_text`` inside ``_guard``.
    """

    BASE_URL = ""
    DEGRADED_AFTER = 3
    UNAVAILABLE_AFTER = 5

    def __init__(
        self,
        cache: Optional[TTLCache] = None,
        http_config: Optional[HttpConfig] = None,
        session: Optional[aiohttp.ClientSession] = None,
        cache_config: Optional[CacheConfig] = None,
    ) -> None:
        self._cache = cache or TTLCache()
        self._http = http_config or HttpConfig()
        self._ttl = cache_config or CacheConfig()
        self._session = session
        self._owns_session = session is None
        self._health = SourceHealth(status=SourceStatus.UNKNOWN, last_check=datetime.now(timezone.utc))

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider identifier; also the cache key prefix."""
        pass

    def _url(self, path: str) -> str:
        return path if path.startswith(("http://", "https://")) else f"{self.BASE_URL}{path}"

    def _extra_headers(self) -> Optional[Dict[str, str]]:
        """Per-provider headers (API keys)."""
        return None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                headers={"Accept": "application/json", "User-Agent": self._http.user_agent}
            )
            self._owns_session = True
        return self._session

    # ------------------------------------------------------------
    # transport
    # ------------------------------------------------------------

    def _raise_for_status(self, status: int, url: str, retry_after: Optional[str], body: str) -> None:
        if status == 429:
            raise RateLimitError(
                "Rate limit exceeded",
                source_name=self.name,
                retry_after_seconds=_retry_after(retry_after),
                request_url=url,
            )
        if status >= 400:
            raise FetchError(
                f"HTTP {status}",
                source_name=self.name,
                status_code=status,
                request_url=url,
                response_body=body[:1000],
            )

    async def _request(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
        as_text: bool = False,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        """Single HTTP GET. Raises DataSourceError subclasses."""
        session = await self._get_session()
        limit = timeout or self._http.timeout_seconds
        started = time.monotonic()

        try:
            async with session.get(
                url,
                params=params,
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=limit),
            ) as response:
                body = await response.text() if as_text or response.status >= 400 else None
                self._raise_for_status(response.status, url, response.headers.get("Retry-After"), body or "")
                if as_text:
                    data = body
                else:
                    try:
                        data = await response.json(content_type=None)
                    except ValueError as e:
                        raise NormalizationError(
                            "Response is not valid JSON",
                            source_name=self.name,
                            original_error=e,
                            context={"url": url},
                        )
        except asyncio.TimeoutError as e:
            raise ProviderTimeoutError(
                f"Timed out after {limit}s",
                source_name=self.name,
                timeout_seconds=limit,
                original_error=e,
            )
        except aiohttp.ClientError as e:
            raise FetchError(f"Connection error: {e}", source_name=self.name, request_url=url, original_error=e)

        logger.debug(f"[{self.name}] GET {url} {(time.monotonic() - started) * 1000:.0f}ms")
        return data

    async def _with_retry(self, operation: Callable[[], Awaitable[T]], path: str) -> T:
        return await retry_with_backoff(
            operation,
            max_attempts=self._http.retry_attempts,
            base_delay=self._http.retry_base_delay,
            operation_name=f"{self.name} GET {path}",
        )

    async def fetch_json(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        url = self._url(path)
        return await self._with_retry(
            lambda: self._request(url, params=params, timeout=timeout, headers=self._extra_headers()),
            path,
        )

    async def fetch_text(self, path: str, timeout: Optional[float] = None) -> str:
        url = self._url(path)
        return await self._with_retry(
            lambda: self._request(
                url,
                timeout=timeout or self._http.html_timeout_seconds,
                as_text=True,
                headers=HTML_ACCEPT,
            ),
            path,
        )

    async def cached_json(
        self,
        cache_key: str,
        path: str,
        ttl: int,
        params: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
        force_refresh: bool = False,
    ) -> Any:
        """fetch_json behind the TTL cache, keyed by (provider, canonical id)."""
        return await self._cache.get_or_fetch(
            f"{self.name}:{cache_key}",
            lambda: self.fetch_json(path, params=params, timeout=timeout),
            ttl=ttl,
            force_refresh=force_refresh,
        )

    # ------------------------------------------------------------
    # isolation + health
    # ------------------------------------------------------------

    async def _guard(
        self,
        operation: Callable[[], Awaitable[Optional[T]]],
        description: str,
    ) -> Optional[T]:
        """Run a provider operation; any failure becomes None."""
        try:
            result = await operation()
        except asyncio.CancelledError:
            raise
        except FetchError as e:
            if e.is_not_found():
                logger.debug(f"[{self.name}] {description}: not found")
            else:
                self._record_failure(e, description)
            return None
        except DataSourceError as e:
            self._record_failure(e, description)
            return None
        except Exception as e:
            self._record_failure(
                DataSourceError(f"Unexpected error: {e}", source_name=self.name, original_error=e),
                description,
            )
            return None

        if self._health.record_success(datetime.now(timezone.utc)):
            logger.info(f"[{self.name}] Recovered to HEALTHY status")
        return result

    def _record_failure(self, error: DataSourceError, description: str) -> None:
        logger.warning(f"[{self.name}] {description} failed: {error}")
        logger.debug(f"[{self.name}] Incident: {error.to_dict()}")
        changed = self._health.record_failure(
            str(error),
            datetime.now(timezone.utc),
            degraded_after=self.DEGRADED_AFTER,
            unavailable_after=self.UNAVAILABLE_AFTER,
        )
        if changed == SourceStatus.UNAVAILABLE:
            logger.error(f"[{self.name}] Marked UNAVAILABLE after {self._health.consecutive_failures} failures")
        elif changed == SourceStatus.DEGRADED:
            logger.warning(f"[{self.name}] Marked DEGRADED after {self._health.consecutive_failures} failures")

    def get_health(self) -> SourceHealth:
        return self._health

    async def close(self) -> None:
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self) -> "BaseProviderClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
