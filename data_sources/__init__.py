"""
Data Sources Package - Upstream provider layer.

Provides isolated, fail-safe clients for every upstream:

- DefiLlamaClient     chain / protocol TVL (API)
- CoinGeckoClient     market data, price history, index lists
- CryptoCompareClient secondary supply figures
- DefiLlamaScraper    HTML fallback for TVL

Every public client method returns ``None`` instead of raising.
Responses are cached per (provider, canonical id) with provider-
specific TTLs, and retried with exponential backoff underneath
the cache.

Quick Start:
    from cache import create_cache
    from data_sources import ProviderSet

    async with ProviderSet.create(create_cache("memory")) as providers:
        market = await providers.coingecko.search_coin("ethereum")
"""

from data_sources.base import BaseProviderClient
from data_sources.exceptions import (
    DataSourceError,
    FetchError,
    NormalizationError,
    ProviderTimeoutError,
    RateLimitError,
)
from data_sources.models import (
    ChainRecord,
    MarketRecord,
    PriceHistory,
    PricePoint,
    ProtocolRecord,
    ScrapedRecord,
    SourceHealth,
    SourceStatus,
    SupplyRecord,
    TvlPoint,
)
from data_sources.providers import (
    CoinGeckoClient,
    CryptoCompareClient,
    DefiLlamaClient,
    DefiLlamaScraper,
)
from data_sources.registry import ProviderSet
from data_sources.retry import retry_with_backoff
from data_sources.supply import SupplyFetcher


__all__ = [
    "BaseProviderClient",
    "DataSourceError",
    "FetchError",
    "NormalizationError",
    "ProviderTimeoutError",
    "RateLimitError",
    "ChainRecord",
    "MarketRecord",
    "PriceHistory",
    "PricePoint",
    "ProtocolRecord",
    "ScrapedRecord",
    "SourceHealth",
    "SourceStatus",
    "SupplyRecord",
    "TvlPoint",
    "CoinGeckoClient",
    "CryptoCompareClient",
    "DefiLlamaClient",
    "DefiLlamaScraper",
    "ProviderSet",
    "retry_with_backoff",
    "SupplyFetcher",
]
