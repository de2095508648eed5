"""
CryptoCompare Provider - Secondary supply source.

Used only by the supply helper, which compares its figures with
the market-data provider's and keeps whichever is more complete.
"""

import logging
from typing import Optional

from data_sources.base import BaseProviderClient
from data_sources.models import SupplyRecord, positive_or_none


logger = logging.getLogger(__name__)


class CryptoCompareClient(BaseProviderClient):
    """Supply figures from /data/pricemultifull."""

    BASE_URL = "https://min-api.cryptocompare.com"

    @property
    def name(self) -> str:
        return "cryptocompare"

    async def fetch_supply(self, symbol: str, force_refresh: bool = False) -> Optional[SupplyRecord]:
        ticker = (symbol or "").strip().upper()
        if not ticker:
            return None

        async def operation() -> Optional[SupplyRecord]:
            data = await self.cached_json(
                f"supply:{ticker}",
                "/data/pricemultifull",
                ttl=self._ttl.market_ttl,
                params={"fsyms": ticker, "tsyms": "USD"},
                force_refresh=force_refresh,
            )
            raw = ((data or {}).get("RAW") or {}).get(ticker, {}).get("USD") if isinstance(data, dict) else None
            if not isinstance(raw, dict):
                return None
            record = SupplyRecord(
                source=self.name,
                circulating=positive_or_none(raw.get("CIRCULATINGSUPPLY")),
                total=positive_or_none(raw.get("SUPPLY")),
                max_supply=positive_or_none(raw.get("MAXSUPPLY")),
            )
            return record if record.populated_count else None

        return await self._guard(operation, f"fetch_supply({ticker})")
