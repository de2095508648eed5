"""
Supply helper - picks the most complete supply figures.

Candidates come from a dedicated supply source and from the
market-data record already fetched for the request. The candidate
with the most populated fields wins; ties keep the earlier one.
"""

import logging
from typing import Iterable, Optional

from data_sources.models import MarketRecord, SupplyRecord
from data_sources.providers.cryptocompare import CryptoCompareClient


logger = logging.getLogger(__name__)


def pick_best_supply(candidates: Iterable[Optional[SupplyRecord]]) -> Optional[SupplyRecord]:
    best: Optional[SupplyRecord] = None
    for candidate in candidates:
        if candidate is None or candidate.populated_count == 0:
            continue
        if best is None or candidate.populated_count > best.populated_count:
            best = candidate
    return best


def supply_from_market(market: Optional[MarketRecord], source: str = "coingecko") -> Optional[SupplyRecord]:
    if market is None:
        return None
    record = SupplyRecord(
        source=source,
        circulating=market.circulating_supply,
        total=market.total_supply,
        max_supply=market.max_supply,
    )
    return record if record.populated_count else None


class SupplyFetcher:
    """Supply lookup across sources."""

    def __init__(self, cryptocompare: Optional[CryptoCompareClient] = None):
        self._cryptocompare = cryptocompare

    async def fetch_supply(
        self,
        symbol: Optional[str],
        market: Optional[MarketRecord] = None,
        force_refresh: bool = False,
    ) -> Optional[SupplyRecord]:
        candidates = []
        if self._cryptocompare is not None and symbol:
            candidates.append(await self._cryptocompare.fetch_supply(symbol, force_refresh))
        candidates.append(supply_from_market(market))

        best = pick_best_supply(candidates)
        if best is not None:
            logger.debug(f"[supply] {symbol}: using {best.source} ({best.populated_count} fields)")
        return best
