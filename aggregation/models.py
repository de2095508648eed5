"""
Aggregation Models.

============================================================
PURPOSE
============================================================
SourceBundle     everything fetched for one request (input to merge)
TvlResolution    outcome of the TVL rule
AggregatedRecord merged, immutable report data (output)

AggregatedRecord is built once per request and never persisted;
only the upstream provider payloads are cached.

============================================================
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from data_sources.models import (
    ChainRecord,
    MarketRecord,
    PriceHistory,
    ProtocolRecord,
    ScrapedRecord,
    SupplyRecord,
)
from identity.types import AliasEntry, ChainMapping, Classification, EntityType


PRICE_CHANGE_WINDOWS: Tuple[str, ...] = ("24h", "7d", "30d", "365d")


# ============================================================
# INTERMEDIATE
# ============================================================

@dataclass(frozen=True)
class TvlResolution:
    """TVL value plus the matching change windows and chain breakdown."""

    tvl: Optional[float] = None
    source: Optional[str] = None
    changes: Dict[str, Optional[float]] = field(default_factory=dict)
    change_source: Optional[str] = None
    chain_tvls: Optional[Dict[str, float]] = None
    chain_tvls_source: Optional[str] = None
    scraped: bool = False


@dataclass(frozen=True)
class SourceBundle:
    """
    Everything the providers returned for one query.

    ``defi`` is the primary chain/protocol record picked for the
    metric-bearing fields (or None when only market data exists).
    """

    query: str
    entity_type: EntityType
    classification: Classification
    alias: Optional[AliasEntry] = None
    mapping: Optional[ChainMapping] = None
    protocol: Optional[ProtocolRecord] = None
    chain: Optional[ChainRecord] = None
    market: Optional[MarketRecord] = None
    scrape: Optional[ScrapedRecord] = None
    supply: Optional[SupplyRecord] = None
    price_history: Optional[PriceHistory] = None
    tvl: TvlResolution = field(default_factory=TvlResolution)
    primary: str = "market"

    @property
    def defi(self):
        if self.primary == "protocol":
            return self.protocol
        if self.primary == "chain":
            return self.chain
        return None

    @property
    def has_provider_data(self) -> bool:
        return any(r is not None for r in (self.protocol, self.chain, self.market))


# ============================================================
# OUTPUT
# ============================================================

@dataclass(frozen=True)
class AggregatedRecord:
    """
    Merged view of one asset.

    Every numeric field is a finite float or None.
    ``sources`` maps top-level field -> provider name;
    ``urls`` maps provider name -> page link.
    """

    name: str
    symbol: str
    category: str
    entity_type: EntityType
    logo: Optional[str] = None
    price: Optional[float] = None
    market_cap: Optional[float] = None
    fdv: Optional[float] = None
    volume_24h: Optional[float] = None
    circulating_supply: Optional[float] = None
    total_supply: Optional[float] = None
    max_supply: Optional[float] = None
    tvl: Optional[float] = None
    tvl_change: Dict[str, Optional[float]] = field(default_factory=dict)
    price_change: Dict[str, Optional[float]] = field(default_factory=dict)
    price_history: Optional[PriceHistory] = None
    chain_tvls: Optional[Dict[str, float]] = None
    chains: Tuple[str, ...] = ()
    sources: Dict[str, str] = field(default_factory=dict)
    urls: Dict[str, str] = field(default_factory=dict)
    scraped: bool = False
    classification: Optional[Classification] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "symbol": self.symbol,
            "logo": self.logo,
            "category": self.category,
            "type": self.entity_type.value,
            "price": self.price,
            "marketCap": self.market_cap,
            "fdv": self.fdv,
            "volume24h": self.volume_24h,
            "circulatingSupply": self.circulating_supply,
            "totalSupply": self.total_supply,
            "maxSupply": self.max_supply,
            "tvl": self.tvl,
            "tvlChange": dict(self.tvl_change),
            "priceChange": dict(self.price_change),
            "priceHistory": self.price_history.to_dict() if self.price_history else None,
            "chainTvls": dict(self.chain_tvls) if self.chain_tvls else None,
            "chains": list(self.chains),
            "sources": dict(self.sources),
            "urls": dict(self.urls),
            "scraped": self.scraped,
            "classification": self.classification.to_dict() if self.classification else None,
        }
