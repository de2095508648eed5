"""
Shared test fixtures.
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from aggregation.models import AggregatedRecord
from cache.backends import MemoryCacheBackend
from cache.ttl_cache import TTLCache
from core.clock import MockClock
from identity.types import EntityType


FIXED_TIME = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def mock_clock():
    return MockClock(FIXED_TIME)


@pytest.fixture
def memory_cache(mock_clock):
    return TTLCache(MemoryCacheBackend(), clock=mock_clock)


@pytest.fixture
def mock_providers():
    """ProviderSet stand-in where every provider call returns None."""
    providers = MagicMock()

    providers.defillama.search_protocol = AsyncMock(return_value=None)
    providers.defillama.search_chain = AsyncMock(return_value=None)
    providers.defillama.search_chain_by_exact_name = AsyncMock(return_value=None)
    providers.defillama.fetch_chain_tvl_history = AsyncMock(return_value=None)
    providers.defillama.fetch_protocols = AsyncMock(return_value=None)
    providers.defillama.fetch_chains = AsyncMock(return_value=None)

    providers.coingecko.search_coin = AsyncMock(return_value=None)
    providers.coingecko.fetch_coin = AsyncMock(return_value=None)
    providers.coingecko.fetch_price_history = AsyncMock(return_value=None)
    providers.coingecko.fetch_markets_page = AsyncMock(return_value=None)
    providers.coingecko.fetch_coin_list = AsyncMock(return_value=None)

    providers.scraper.scrape_protocol = AsyncMock(return_value=None)
    providers.scraper.scrape_chain = AsyncMock(return_value=None)
    providers.scraper.scrape_with_variations = AsyncMock(return_value=None)

    providers.supply.fetch_supply = AsyncMock(return_value=None)
    providers.close = AsyncMock()
    providers.health = MagicMock(return_value={})
    return providers


@pytest.fixture
def make_record():
    """Factory for AggregatedRecord with sensible defaults."""

    def factory(**overrides) -> AggregatedRecord:
        values = dict(
            name="Example",
            symbol="EXM",
            category="Token",
            entity_type=EntityType.TOKEN,
            sources={"name": "coingecko"},
        )
        values.update(overrides)
        return AggregatedRecord(**values)

    return factory
