"""
Provider Registry - Owns every provider client for one process.

Provides:
- One place that builds clients from configuration
- Shared cache and HTTP settings across clients
- Health snapshot for the liveness endpoint
- Single close() for all sessions
"""

import asyncio
import logging
from typing import Any, Dict, Optional

from cache.ttl_cache import TTLCache
from core.config import CacheConfig, HttpConfig
from data_sources.base import BaseProviderClient
from data_sources.providers.coingecko import CoinGeckoClient
from data_sources.providers.cryptocompare import CryptoCompareClient
from data_sources.providers.defillama import DefiLlamaClient
from data_sources.providers.defillama_scraper import DefiLlamaScraper
from data_sources.supply import SupplyFetcher


logger = logging.getLogger(__name__)


class ProviderSet:
    """
    Central registry for provider clients.

    Usage:
        async with ProviderSet.create(cache, http, cache_config) as providers:
            record = await providers.defillama.search_protocol("aave")
    """

    def __init__(
        self,
        defillama: DefiLlamaClient,
        coingecko: CoinGeckoClient,
        scraper: DefiLlamaScraper,
        cryptocompare: Optional[CryptoCompareClient] = None,
    ) -> None:
        self.defillama = defillama
        self.coingecko = coingecko
        self.scraper = scraper
        self.cryptocompare = cryptocompare
        self.supply = SupplyFetcher(cryptocompare)

    @classmethod
    def create(
        cls,
        cache: TTLCache,
        http_config: Optional[HttpConfig] = None,
        cache_config: Optional[CacheConfig] = None,
    ) -> "ProviderSet":
        http_config = http_config or HttpConfig()
        cache_config = cache_config or CacheConfig()
        kwargs = {"cache": cache, "http_config": http_config, "cache_config": cache_config}
        return cls(
            defillama=DefiLlamaClient(**kwargs),
            coingecko=CoinGeckoClient(**kwargs),
            scraper=DefiLlamaScraper(**kwargs),
            cryptocompare=CryptoCompareClient(**kwargs),
        )

    def clients(self) -> Dict[str, BaseProviderClient]:
        clients = {
            self.defillama.name: self.defillama,
            self.coingecko.name: self.coingecko,
            self.scraper.name: self.scraper,
        }
        if self.cryptocompare is not None:
            clients[self.cryptocompare.name] = self.cryptocompare
        return clients

    def health(self) -> Dict[str, Any]:
        return {name: client.get_health().to_dict() for name, client in self.clients().items()}

    async def close(self) -> None:
        results = await asyncio.gather(
            *(client.close() for client in self.clients().values()),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, Exception):
                logger.warning(f"[providers] Error closing client: {result}")

    async def __aenter__(self) -> "ProviderSet":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
