"""
DefiLlama Provider - Chain and protocol TVL.

============================================================
ENDPOINTS (https://api.llama.fi)
============================================================
/protocols                      list of every protocol (large, 15s timeout)
/protocol/{slug}                details incl. TVL history
/v2/chains                      list of chains with current TVL
/v2/historicalChainTvl/{name}   daily TVL series for one chain

============================================================
LOOKUP STRATEGY
============================================================
search_protocol:
    1. direct /protocol/{slug} for the alias slug and the
       hyphenated query
    2. list-scan: exact slug / name / symbol
    3. list-scan: name or slug contains the query
    4. details for the matched slug (list row if details fail)

search_chain:
    exact name > gecko_id > token symbol > name contains

============================================================
"""

import logging
from typing import Any, List, Optional, Tuple
from urllib.parse import quote

from data_sources.base import BaseProviderClient
from data_sources.exceptions import DataSourceError, FetchError
from data_sources.models import (
    ChainRecord,
    ProtocolRecord,
    TvlPoint,
    finite_or_none,
)
from identity.aliases import generate_query_variations, normalize_query


logger = logging.getLogger(__name__)

SITE_URL = "https://defillama.com"

# partial matches on very short queries are noise
MIN_PARTIAL_QUERY = 3


def protocol_page_url(slug: str) -> str:
    return f"{SITE_URL}/protocol/{slug}"


def chain_page_url(name: str) -> str:
    return f"{SITE_URL}/chain/{quote(name)}"


class DefiLlamaClient(BaseProviderClient):
    """Chain/protocol provider."""

    BASE_URL = "https://api.llama.fi"

    @property
    def name(self) -> str:
        return "defillama"

    # ------------------------------------------------------------
    # raw (unguarded, cached)
    # ------------------------------------------------------------

    async def _protocols(self, force_refresh: bool = False) -> List[dict]:
        data = await self.cached_json(
            "protocols",
            "/protocols",
            ttl=self._ttl.protocol_ttl,
            timeout=self._http.list_timeout_seconds,
            force_refresh=force_refresh,
        )
        return [row for row in (data or []) if isinstance(row, dict)]

    async def _chains(self, force_refresh: bool = False) -> List[dict]:
        data = await self.cached_json(
            "chains",
            "/v2/chains",
            ttl=self._ttl.protocol_ttl,
            timeout=self._http.list_timeout_seconds,
            force_refresh=force_refresh,
        )
        return [row for row in (data or []) if isinstance(row, dict)]

    async def _protocol_details(self, slug: str, force_refresh: bool = False) -> Optional[dict]:
        data = await self.cached_json(
            f"protocol:{slug}",
            f"/protocol/{quote(slug)}",
            ttl=self._ttl.protocol_ttl,
            force_refresh=force_refresh,
        )
        return data if isinstance(data, dict) and data.get("name") else None

    async def _probe_protocol(self, slug: str, force_refresh: bool) -> Optional[dict]:
        """Direct slug lookup; any failure just means 'try the next strategy'."""
        try:
            return await self._protocol_details(slug, force_refresh)
        except FetchError as e:
            if not e.is_not_found():
                logger.debug(f"[{self.name}] Slug probe '{slug}' failed: {e}")
            return None
        except DataSourceError as e:
            logger.debug(f"[{self.name}] Slug probe '{slug}' failed: {e}")
            return None

    # ------------------------------------------------------------
    # public (guarded)
    # ------------------------------------------------------------

    async def fetch_protocols(self, force_refresh: bool = False) -> Optional[List[dict]]:
        return await self._guard(lambda: self._protocols(force_refresh), "fetch_protocols")

    async def fetch_chains(self, force_refresh: bool = False) -> Optional[List[dict]]:
        return await self._guard(lambda: self._chains(force_refresh), "fetch_chains")

    async def fetch_protocol(self, slug: str, force_refresh: bool = False) -> Optional[ProtocolRecord]:
        async def operation() -> Optional[ProtocolRecord]:
            raw = await self._protocol_details(slug, force_refresh)
            if raw is None:
                return None
            return ProtocolRecord.from_api(raw, url=protocol_page_url(raw.get("slug") or slug))

        return await self._guard(operation, f"fetch_protocol({slug})")

    async def search_protocol(
        self,
        query: str,
        slug_hint: Optional[str] = None,
        force_refresh: bool = False,
    ) -> Optional[ProtocolRecord]:
        """Resolve a query to a protocol with TVL history."""

        async def operation() -> Optional[ProtocolRecord]:
            normalized = normalize_query(query)
            if not normalized:
                return None

            for slug in self._direct_slugs(normalized, slug_hint):
                raw = await self._probe_protocol(slug, force_refresh)
                if raw is not None:
                    logger.debug(f"[{self.name}] Direct slug hit '{slug}'")
                    return ProtocolRecord.from_api(raw, url=protocol_page_url(raw.get("slug") or slug))

            protocols = await self._protocols(force_refresh)
            row = self.match_protocol(protocols, normalized)
            if row is None:
                logger.debug(f"[{self.name}] No protocol matches '{query}'")
                return None

            slug = row.get("slug") or normalized
            details = await self._probe_protocol(slug, force_refresh)
            return ProtocolRecord.from_api(details or row, url=protocol_page_url(slug))

        return await self._guard(operation, f"search_protocol({query})")

    async def search_chain(self, query: str, force_refresh: bool = False) -> Optional[ChainRecord]:
        async def operation() -> Optional[ChainRecord]:
            normalized = normalize_query(query)
            if not normalized:
                return None
            row = self.match_chain(await self._chains(force_refresh), normalized)
            if row is None:
                return None
            return ChainRecord.from_api(row, url=chain_page_url(row.get("name", "")))

        return await self._guard(operation, f"search_chain({query})")

    async def search_chain_by_exact_name(self, name: str, force_refresh: bool = False) -> Optional[ChainRecord]:
        """Lookup by the chain API's own name (from a chain mapping)."""

        async def operation() -> Optional[ChainRecord]:
            target = normalize_query(name)
            for row in await self._chains(force_refresh):
                if normalize_query(row.get("name")) == target:
                    return ChainRecord.from_api(row, url=chain_page_url(row.get("name", "")))
            return None

        return await self._guard(operation, f"search_chain_by_exact_name({name})")

    async def fetch_chain_tvl_history(self, name: str, force_refresh: bool = False) -> Optional[Tuple[TvlPoint, ...]]:
        async def operation() -> Optional[Tuple[TvlPoint, ...]]:
            data = await self.cached_json(
                f"chain-history:{name}",
                f"/v2/historicalChainTvl/{quote(name)}",
                ttl=self._ttl.history_ttl,
                force_refresh=force_refresh,
            )
            points = []
            for row in data or []:
                if not isinstance(row, dict):
                    continue
                ts = finite_or_none(row.get("date"))
                value = finite_or_none(row.get("tvl"))
                if ts is not None and value is not None:
                    points.append(TvlPoint(ts, value))
            return tuple(points) or None

        return await self._guard(operation, f"fetch_chain_tvl_history({name})")

    # ------------------------------------------------------------
    # matching (pure)
    # ------------------------------------------------------------

    @staticmethod
    def _direct_slugs(normalized: str, slug_hint: Optional[str]) -> List[str]:
        slugs: List[str] = []
        for candidate in (slug_hint, normalized.replace(" ", "-")):
            if candidate and candidate not in slugs:
                slugs.append(candidate)
        return slugs

    @staticmethod
    def match_protocol(protocols: List[dict], normalized: str) -> Optional[dict]:
        """Exact slug/name/symbol over query variations, then partial name/slug."""
        variations = generate_query_variations(normalized)
        for variation in variations:
            for row in protocols:
                if variation in (
                    normalize_query(row.get("slug")),
                    normalize_query(row.get("name")),
                    normalize_query(row.get("symbol")),
                ):
                    return row

        if len(normalized) < MIN_PARTIAL_QUERY:
            return None

        partial = [
            row for row in protocols
            if normalized in normalize_query(row.get("name")) or normalized in normalize_query(row.get("slug"))
        ]
        if not partial:
            return None
        # biggest TVL among partial hits
        return max(partial, key=lambda row: finite_or_none(row.get("tvl")) or 0.0)

    @staticmethod
    def match_chain(chains: List[dict], normalized: str) -> Optional[dict]:
        passes: Tuple[Any, ...] = (
            lambda row: normalize_query(row.get("name")) == normalized,
            lambda row: normalize_query(row.get("gecko_id")) == normalized,
            lambda row: normalize_query(row.get("tokenSymbol")) == normalized,
        )
        for predicate in passes:
            for row in chains:
                if predicate(row):
                    return row
        if len(normalized) < MIN_PARTIAL_QUERY:
            return None
        for row in chains:
            if normalized in normalize_query(row.get("name")):
                return row
        return None
