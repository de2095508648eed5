"""
Data Source Models - Normalized provider records.

============================================================
PURPOSE
============================================================
One immutable record type per upstream shape:

- ProtocolRecord   chain/protocol API, /protocol/{slug} or /protocols row
- ChainRecord      chain/protocol API, /v2/chains row
- MarketRecord     market-data API, /coins/{id} or /coins/markets row
- PriceHistory     market-data API, market_chart windows
- ScrapedRecord    HTML fallback (embedded page JSON or regex)
- SupplyRecord     supply helper candidates

============================================================
NUMERIC DISCIPLINE
============================================================
Every numeric field is a finite float or None. Upstream zeros for
prices, caps and supplies mean "not reported" and become None;
percentage changes keep zero.

============================================================
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple


# ============================================================
# NUMERIC HELPERS
# ============================================================

def finite_or_none(value: Any) -> Optional[float]:
    """Coerce to a finite float; anything else is None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def positive_or_none(value: Any) -> Optional[float]:
    """Finite and strictly positive, else None."""
    number = finite_or_none(value)
    if number is None or number <= 0:
        return None
    return number


def _str_or_none(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _dig(data: Any, *path: str) -> Any:
    for key in path:
        if not isinstance(data, Mapping):
            return None
        data = data.get(key)
    return data


# ============================================================
# CHAIN TVL BREAKDOWN
# ============================================================

ACCOUNTING_SUFFIXES = ("-borrowed", "-staking", "-pool2")
ACCOUNTING_KEYS = frozenset({"staking", "pool2", "borrowed"})


def is_accounting_key(key: str) -> bool:
    """Synthetic breakdown keys that are not TVL."""
    lowered = key.lower()
    if lowered in ACCOUNTING_KEYS:
        return True
    return any(suffix in lowered for suffix in ACCOUNTING_SUFFIXES)


def filter_chain_tvls(raw: Any) -> Optional[Dict[str, float]]:
    """
    Per-chain TVL with accounting artifacts and non-numeric values removed.

    Returns None when nothing usable remains.
    """
    if not isinstance(raw, Mapping):
        return None
    filtered: Dict[str, float] = {}
    for chain, value in raw.items():
        if not isinstance(chain, str) or is_accounting_key(chain):
            continue
        number = finite_or_none(value)
        if number is None:
            continue
        filtered[chain] = number
    return filtered or None


# ============================================================
# HEALTH
# ============================================================

class SourceStatus(Enum):
    """Health status of a provider client."""
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNAVAILABLE = "unavailable"
    UNKNOWN = "unknown"


@dataclass
class SourceHealth:
    """Health status of a provider client."""
    status: SourceStatus
    last_check: datetime
    error_count: int = 0
    last_error: Optional[str] = None
    last_error_time: Optional[datetime] = None
    consecutive_failures: int = 0

    def is_usable(self) -> bool:
        return self.status in (SourceStatus.HEALTHY, SourceStatus.DEGRADED, SourceStatus.UNKNOWN)

    def record_success(self, now: datetime) -> bool:
        """Reset the failure streak. True when a failing source recovered."""
        recovered = self.status in (SourceStatus.DEGRADED, SourceStatus.UNAVAILABLE)
        self.status = SourceStatus.HEALTHY
        self.consecutive_failures = 0
        self.last_check = now
        return recovered

    def record_failure(
        self,
        error: str,
        now: datetime,
        degraded_after: int,
        unavailable_after: int,
    ) -> Optional[SourceStatus]:
        """Count one failure. Returns the new status when it changed."""
        self.error_count += 1
        self.consecutive_failures += 1
        self.last_error = error
        self.last_error_time = now
        self.last_check = now

        if self.consecutive_failures >= unavailable_after:
            new_status = SourceStatus.UNAVAILABLE
        elif self.consecutive_failures >= degraded_after:
            new_status = SourceStatus.DEGRADED
        else:
            return None
        if new_status == self.status:
            return None
        self.status = new_status
        return new_status

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "last_check": self.last_check.isoformat(),
            "error_count": self.error_count,
            "last_error": self.last_error,
            "last_error_time": self.last_error_time.isoformat() if self.last_error_time else None,
            "consecutive_failures": self.consecutive_failures,
        }


# ============================================================
# TIME SERIES
# ============================================================

@dataclass(frozen=True)
class TvlPoint:
    """TVL observation. timestamp in unix seconds."""
    timestamp: float
    value: float


@dataclass(frozen=True)
class PricePoint:
    """Price observation. timestamp in unix milliseconds."""
    timestamp: float
    price: float


PRICE_HISTORY_WINDOWS: Tuple[Tuple[str, int], ...] = (
    ("24h", 1),
    ("7d", 7),
    ("30d", 30),
    ("365d", 365),
)


@dataclass(frozen=True)
class PriceHistory:
    """Price series keyed by window label ('24h', '7d', '30d', '365d')."""

    windows: Dict[str, Tuple[PricePoint, ...]] = field(default_factory=dict)

    def is_empty(self) -> bool:
        return not any(self.windows.values())

    def to_dict(self) -> Dict[str, list]:
        return {
            label: [[p.timestamp, p.price] for p in points]
            for label, points in self.windows.items()
        }

    @staticmethod
    def parse_points(raw: Any) -> Tuple[PricePoint, ...]:
        """market_chart ``prices`` array -> points. Malformed rows are kept as
        non-finite so validation can see them; unparseable rows are skipped."""
        points = []
        if not isinstance(raw, list):
            return ()
        for row in raw:
            if not isinstance(row, (list, tuple)) or len(row) < 2:
                continue
            try:
                points.append(PricePoint(float(row[0]), float(row[1])))
            except (TypeError, ValueError):
                continue
        return tuple(points)


# ============================================================
# CHAIN / PROTOCOL API RECORDS
# ============================================================

@dataclass(frozen=True)
class ProtocolRecord:
    """Protocol as reported by the chain/protocol API."""

    slug: str
    name: str
    symbol: Optional[str] = None
    category: Optional[str] = None
    logo: Optional[str] = None
    gecko_id: Optional[str] = None
    chains: Tuple[str, ...] = ()
    tvl: Optional[float] = None
    tvl_history: Tuple[TvlPoint, ...] = ()
    chain_tvls: Optional[Dict[str, float]] = None
    change_1d: Optional[float] = None
    change_7d: Optional[float] = None
    change_1m: Optional[float] = None
    mcap: Optional[float] = None
    url: Optional[str] = None

    @classmethod
    def from_api(cls, raw: Mapping[str, Any], url: Optional[str] = None) -> "ProtocolRecord":
        """Build from a /protocol/{slug} payload or a /protocols row."""
        raw_tvl = raw.get("tvl")
        history: Tuple[TvlPoint, ...] = ()
        tvl_number: Optional[float] = None
        if isinstance(raw_tvl, list):
            points = []
            for row in raw_tvl:
                ts = finite_or_none(_dig(row, "date"))
                value = finite_or_none(_dig(row, "totalLiquidityUSD"))
                if ts is not None and value is not None:
                    points.append(TvlPoint(ts, value))
            history = tuple(points)
        else:
            tvl_number = positive_or_none(raw_tvl)

        chain_tvls = filter_chain_tvls(raw.get("currentChainTvls")) or filter_chain_tvls(raw.get("chainTvls"))
        chains = tuple(c for c in (raw.get("chains") or []) if isinstance(c, str))
        slug = _str_or_none(raw.get("slug")) or (_str_or_none(raw.get("name")) or "").lower().replace(" ", "-")

        return cls(
            slug=slug,
            name=_str_or_none(raw.get("name")) or slug,
            symbol=_str_or_none(raw.get("symbol")) if raw.get("symbol") != "-" else None,
            category=_str_or_none(raw.get("category")),
            logo=_str_or_none(raw.get("logo")),
            gecko_id=_str_or_none(raw.get("gecko_id")),
            chains=chains,
            tvl=tvl_number,
            tvl_history=history,
            chain_tvls=chain_tvls,
            change_1d=finite_or_none(raw.get("change_1d")),
            change_7d=finite_or_none(raw.get("change_7d")),
            change_1m=finite_or_none(raw.get("change_1m")),
            mcap=positive_or_none(raw.get("mcap")),
            url=url,
        )


@dataclass(frozen=True)
class ChainRecord:
    """Chain as reported by the /v2/chains list."""

    name: str
    symbol: Optional[str] = None
    gecko_id: Optional[str] = None
    tvl: Optional[float] = None
    chain_id: Optional[str] = None
    cmc_id: Optional[str] = None
    url: Optional[str] = None

    @classmethod
    def from_api(cls, raw: Mapping[str, Any], url: Optional[str] = None) -> "ChainRecord":
        chain_id = raw.get("chainId")
        cmc_id = raw.get("cmcId")
        return cls(
            name=_str_or_none(raw.get("name")) or "",
            symbol=_str_or_none(raw.get("tokenSymbol")),
            gecko_id=_str_or_none(raw.get("gecko_id")),
            tvl=positive_or_none(raw.get("tvl")),
            chain_id=str(chain_id) if chain_id is not None else None,
            cmc_id=str(cmc_id) if cmc_id is not None else None,
            url=url,
        )


# ============================================================
# MARKET-DATA API RECORDS
# ============================================================

@dataclass(frozen=True)
class MarketRecord:
    """Coin as reported by the market-data API."""

    coin_id: str
    name: str
    symbol: Optional[str] = None
    logo: Optional[str] = None
    categories: Tuple[str, ...] = ()
    market_cap_rank: Optional[int] = None
    price: Optional[float] = None
    market_cap: Optional[float] = None
    fdv: Optional[float] = None
    volume_24h: Optional[float] = None
    circulating_supply: Optional[float] = None
    total_supply: Optional[float] = None
    max_supply: Optional[float] = None
    price_change_24h: Optional[float] = None
    price_change_7d: Optional[float] = None
    price_change_30d: Optional[float] = None
    price_change_1y: Optional[float] = None
    url: Optional[str] = None

    @classmethod
    def from_api(cls, raw: Mapping[str, Any], url: Optional[str] = None) -> "MarketRecord":
        """Build from a /coins/{id} payload."""
        market = raw.get("market_data") or {}
        image = raw.get("image") or {}
        logo = None
        if isinstance(image, Mapping):
            logo = _str_or_none(image.get("large")) or _str_or_none(image.get("small"))
        rank = raw.get("market_cap_rank")
        symbol = _str_or_none(raw.get("symbol"))
        return cls(
            coin_id=str(raw.get("id") or ""),
            name=_str_or_none(raw.get("name")) or str(raw.get("id") or ""),
            symbol=symbol.upper() if symbol else None,
            logo=logo,
            categories=tuple(c for c in (raw.get("categories") or []) if isinstance(c, str) and c),
            market_cap_rank=int(rank) if isinstance(rank, (int, float)) and not isinstance(rank, bool) else None,
            price=positive_or_none(_dig(market, "current_price", "usd")),
            market_cap=positive_or_none(_dig(market, "market_cap", "usd")),
            fdv=positive_or_none(_dig(market, "fully_diluted_valuation", "usd")),
            volume_24h=positive_or_none(_dig(market, "total_volume", "usd")),
            circulating_supply=positive_or_none(market.get("circulating_supply")),
            total_supply=positive_or_none(market.get("total_supply")),
            max_supply=positive_or_none(market.get("max_supply")),
            price_change_24h=finite_or_none(market.get("price_change_percentage_24h")),
            price_change_7d=finite_or_none(market.get("price_change_percentage_7d")),
            price_change_30d=finite_or_none(market.get("price_change_percentage_30d")),
            price_change_1y=finite_or_none(market.get("price_change_percentage_1y")),
            url=url,
        )

    @classmethod
    def from_markets_row(cls, row: Mapping[str, Any]) -> "MarketRecord":
        """Build from a flat /coins/markets row."""
        rank = row.get("market_cap_rank")
        symbol = _str_or_none(row.get("symbol"))
        return cls(
            coin_id=str(row.get("id") or ""),
            name=_str_or_none(row.get("name")) or str(row.get("id") or ""),
            symbol=symbol.upper() if symbol else None,
            logo=_str_or_none(row.get("image")),
            market_cap_rank=int(rank) if isinstance(rank, (int, float)) and not isinstance(rank, bool) else None,
            price=positive_or_none(row.get("current_price")),
            market_cap=positive_or_none(row.get("market_cap")),
            fdv=positive_or_none(row.get("fully_diluted_valuation")),
            volume_24h=positive_or_none(row.get("total_volume")),
            circulating_supply=positive_or_none(row.get("circulating_supply")),
            total_supply=positive_or_none(row.get("total_supply")),
            max_supply=positive_or_none(row.get("max_supply")),
            price_change_24h=finite_or_none(row.get("price_change_percentage_24h")),
        )


# ============================================================
# SCRAPE / SUPPLY
# ============================================================

@dataclass(frozen=True)
class ScrapedRecord:
    """Figures recovered from a rendered provider page."""

    source_url: str
    tvl: Optional[float] = None
    name: Optional[str] = None
    category: Optional[str] = None
    change_1d: Optional[float] = None
    change_7d: Optional[float] = None
    change_1m: Optional[float] = None
    chain_tvls: Optional[Dict[str, float]] = None
    mcap: Optional[float] = None
    structured: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source_url": self.source_url,
            "tvl": self.tvl,
            "name": self.name,
            "category": self.category,
            "change_1d": self.change_1d,
            "change_7d": self.change_7d,
            "change_1m": self.change_1m,
            "chain_tvls": self.chain_tvls,
            "mcap": self.mcap,
            "structured": self.structured,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ScrapedRecord":
        return cls(
            source_url=str(data.get("source_url") or ""),
            tvl=positive_or_none(data.get("tvl")),
            name=_str_or_none(data.get("name")),
            category=_str_or_none(data.get("category")),
            change_1d=finite_or_none(data.get("change_1d")),
            change_7d=finite_or_none(data.get("change_7d")),
            change_1m=finite_or_none(data.get("change_1m")),
            chain_tvls=filter_chain_tvls(data.get("chain_tvls")),
            mcap=positive_or_none(data.get("mcap")),
            structured=bool(data.get("structured", True)),
        )


@dataclass(frozen=True)
class SupplyRecord:
    """Supply figures from one source."""

    source: str
    circulating: Optional[float] = None
    total: Optional[float] = None
    max_supply: Optional[float] = None

    @property
    def populated_count(self) -> int:
        return sum(v is not None for v in (self.circulating, self.total, self.max_supply))
