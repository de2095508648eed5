"""
CoinGecko Provider - Market data.

============================================================
ENDPOINTS (https://api.coingecko.com/api/v3)
============================================================
/search?query=                   coin search (top hit is used)
/coins/{id}                      price, caps, supply, changes, logo
/coins/{id}/market_chart         price history per window
/coins/markets                   ranked market rows (search index)
/coins/list                      every coin id (search index)

An optional demo API key is sent as ``x-cg-demo-api-key``.

============================================================
"""

import asyncio
import logging
from typing import List, Optional

from data_sources.base import BaseProviderClient
from data_sources.exceptions import DataSourceError
from data_sources.models import (
    PRICE_HISTORY_WINDOWS,
    MarketRecord,
    PriceHistory,
)
from identity.aliases import normalize_query


logger = logging.getLogger(__name__)

SITE_URL = "https://www.coingecko.com"

COIN_DETAIL_PARAMS = {
    "localization": "false",
    "tickers": "false",
    "community_data": "false",
    "developer_data": "false",
    "sparkline": "false",
}


def coin_page_url(coin_id: str) -> str:
    return f"{SITE_URL}/en/coins/{coin_id}"


class CoinGeckoClient(BaseProviderClient):
    """Market-data provider."""

    BASE_URL = "https://api.coingecko.com/api/v3"

    @property
    def name(self) -> str:
        return "coingecko"

    def _extra_headers(self) -> Optional[dict[str, str]]:
        if self._http.coingecko_api_key:
            return {"x-cg-demo-api-key": self._http.coingecko_api_key}
        return None

    # ------------------------------------------------------------
    # raw (unguarded, cached)
    # ------------------------------------------------------------

    async def _coin(self, coin_id: str, force_refresh: bool = False) -> Optional[dict]:
        data = await self.cached_json(
            f"coin:{coin_id}",
            f"/coins/{coin_id}",
            ttl=self._ttl.market_ttl,
            params=COIN_DETAIL_PARAMS,
            force_refresh=force_refresh,
        )
        return data if isinstance(data, dict) and data.get("id") else None

    async def _search_top_id(self, query: str, force_refresh: bool = False) -> Optional[str]:
        data = await self.cached_json(
            f"search:{query}",
            "/search",
            ttl=self._ttl.market_ttl,
            params={"query": query},
            force_refresh=force_refresh,
        )
        coins = (data or {}).get("coins") if isinstance(data, dict) else None
        if not coins:
            return None
        top = coins[0]
        return top.get("id") if isinstance(top, dict) else None

    async def _probe_coin(self, coin_id: str, force_refresh: bool) -> Optional[dict]:
        """Curated id lookup; a stale id falls through to /search."""
        try:
            return await self._coin(coin_id, force_refresh)
        except DataSourceError as e:
            logger.debug(f"[{self.name}] Id probe '{coin_id}' failed: {e}")
            return None

    # ------------------------------------------------------------
    # public (guarded)
    # ------------------------------------------------------------

    async def fetch_coin(self, coin_id: str, force_refresh: bool = False) -> Optional[MarketRecord]:
        async def operation() -> Optional[MarketRecord]:
            raw = await self._coin(coin_id, force_refresh)
            if raw is None:
                return None
            return MarketRecord.from_api(raw, url=coin_page_url(raw["id"]))

        return await self._guard(operation, f"fetch_coin({coin_id})")

    async def search_coin(
        self,
        query: str,
        coin_id_hint: Optional[str] = None,
        force_refresh: bool = False,
    ) -> Optional[MarketRecord]:
        """Known id first, else the top /search hit."""

        async def operation() -> Optional[MarketRecord]:
            if coin_id_hint:
                raw = await self._probe_coin(coin_id_hint, force_refresh)
                if raw is not None:
                    return MarketRecord.from_api(raw, url=coin_page_url(raw["id"]))

            normalized = normalize_query(query)
            if not normalized:
                return None
            coin_id = await self._search_top_id(normalized, force_refresh)
            if not coin_id:
                logger.debug(f"[{self.name}] No search hit for '{query}'")
                return None
            raw = await self._coin(coin_id, force_refresh)
            if raw is None:
                return None
            return MarketRecord.from_api(raw, url=coin_page_url(raw["id"]))

        return await self._guard(operation, f"search_coin({query})")

    async def fetch_price_history(self, coin_id: str, force_refresh: bool = False) -> Optional[PriceHistory]:
        """
        Fetch every window concurrently; a failed window is just empty.

        Returns None when all windows are empty.
        """

        async def fetch_window(days: int) -> tuple:
            try:
                data = await self.cached_json(
                    f"chart:{coin_id}:{days}",
                    f"/coins/{coin_id}/market_chart",
                    ttl=self._ttl.market_ttl,
                    params={
                        "vs_currency": "usd",
                        "days": str(days),
                        "interval": "hourly" if days == 1 else "daily",
                    },
                    force_refresh=force_refresh,
                )
            except DataSourceError as e:
                logger.debug(f"[{self.name}] market_chart {coin_id} {days}d failed: {e}")
                return ()
            prices = data.get("prices") if isinstance(data, dict) else None
            return PriceHistory.parse_points(prices)

        async def operation() -> Optional[PriceHistory]:
            results = await asyncio.gather(*(fetch_window(days) for _, days in PRICE_HISTORY_WINDOWS))
            history = PriceHistory(
                windows={label: points for (label, _), points in zip(PRICE_HISTORY_WINDOWS, results)}
            )
            return None if history.is_empty() else history

        return await self._guard(operation, f"fetch_price_history({coin_id})")

    async def fetch_markets_page(self, page: int, per_page: int = 250) -> Optional[List[MarketRecord]]:
        async def operation() -> Optional[List[MarketRecord]]:
            data = await self.cached_json(
                f"markets:{per_page}:{page}",
                "/coins/markets",
                ttl=self._ttl.market_ttl,
                params={
                    "vs_currency": "usd",
                    "order": "market_cap_desc",
                    "per_page": str(per_page),
                    "page": str(page),
                    "sparkline": "false",
                },
                timeout=self._http.list_timeout_seconds,
            )
            return [MarketRecord.from_markets_row(row) for row in (data or []) if isinstance(row, dict)]

        return await self._guard(operation, f"fetch_markets_page({page})")

    async def fetch_coin_list(self) -> Optional[List[dict]]:
        async def operation() -> Optional[List[dict]]:
            data = await self.cached_json(
                "coins-list",
                "/coins/list",
                ttl=self._ttl.history_ttl,
                timeout=self._http.list_timeout_seconds,
            )
            return [row for row in (data or []) if isinstance(row, dict) and row.get("id")]

        return await self._guard(operation, "fetch_coin_list")
