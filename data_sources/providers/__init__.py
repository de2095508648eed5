"""
Providers package - Upstream client implementations.
"""

from data_sources.providers.coingecko import CoinGeckoClient
from data_sources.providers.cryptocompare import CryptoCompareClient
from data_sources.providers.defillama import DefiLlamaClient
from data_sources.providers.defillama_scraper import DefiLlamaScraper


__all__ = [
    "CoinGeckoClient",
    "CryptoCompareClient",
    "DefiLlamaClient",
    "DefiLlamaScraper",
]
