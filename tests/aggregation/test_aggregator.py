"""
Tests for entity-type resolution, field merging and the aggregation flow.

============================================================
TEST PRINCIPLES:
- Providers are AsyncMocks returning None unless a test says otherwise
- Fan-out must respect the resolved entity type
- Every merged field carries its source
============================================================
"""

import asyncio

import pytest

from aggregation import (
    Aggregator,
    AggregatorConfig,
    FieldResolver,
    SourceBundle,
    TvlResolution,
    build_record,
    resolve_entity_type,
    select_primary,
)
from data_sources.models import (
    ChainRecord,
    MarketRecord,
    ProtocolRecord,
    ScrapedRecord,
    SupplyRecord,
    TvlPoint,
)
from identity import Classification, Confidence, EntityType, resolve_alias


# ============================================================
# FIXTURES
# ============================================================

@pytest.fixture
def eth_chain():
    return ChainRecord(
        name="Ethereum",
        symbol="ETH",
        gecko_id="ethereum",
        tvl=5.0e10,
        url="https://defillama.com/chain/Ethereum",
    )


@pytest.fixture
def eth_market():
    return MarketRecord(
        coin_id="ethereum",
        name="Ethereum",
        symbol="ETH",
        logo="https://img/eth.png",
        price=3000.0,
        market_cap=3.6e11,
        fdv=3.6e11,
        volume_24h=1.5e10,
        circulating_supply=1.2e8,
        total_supply=1.2e8,
        price_change_24h=1.2,
        price_change_7d=-3.4,
        url="https://www.coingecko.com/en/coins/ethereum",
    )


@pytest.fixture
def aave_protocol():
    return ProtocolRecord(
        slug="aave-v3",
        name="Aave V3",
        symbol="AAVE",
        category="Lending",
        gecko_id="aave",
        chains=("Ethereum", "Arbitrum"),
        tvl=2.0e10,
        chain_tvls={"Ethereum": 1.5e10, "Arbitrum": 5.0e9},
        change_1d=1.0,
        change_7d=-2.0,
        url="https://defillama.com/protocol/aave-v3",
    )


@pytest.fixture
def aave_market():
    return MarketRecord(
        coin_id="aave",
        name="Aave",
        symbol="AAVE",
        price=95.0,
        market_cap=1.4e9,
        categories=("Decentralized Finance (DeFi)",),
        url="https://www.coingecko.com/en/coins/aave",
    )


@pytest.fixture
def aggregator(mock_providers, mock_clock):
    return Aggregator(mock_providers, clock=mock_clock)


# ============================================================
# ENTITY TYPE
# ============================================================

class TestResolveEntityType:

    def test_classifier_verdict(self):
        result = resolve_entity_type("aave")
        assert result.entity_type == EntityType.PROTOCOL
        assert result.confidence == Confidence.HIGH

    def test_explicit_non_token_wins(self):
        result = resolve_entity_type("aave", EntityType.CHAIN)
        assert result.entity_type == EntityType.CHAIN
        assert "Caller requested" in result.reason

    def test_token_hint_overridden_by_strong_chain(self):
        assert resolve_entity_type("ethereum", EntityType.TOKEN).entity_type == EntityType.CHAIN

    def test_chain_mapping_promotes_to_chain(self):
        result = resolve_entity_type("gnosis")
        assert result.entity_type == EntityType.CHAIN
        assert result.confidence == Confidence.HIGH

    def test_token_hint_kept(self):
        result = resolve_entity_type("quokka", EntityType.TOKEN)
        assert result.entity_type == EntityType.TOKEN
        assert result.confidence == Confidence.MEDIUM

    def test_default_token(self):
        result = resolve_entity_type("quokka")
        assert result.entity_type == EntityType.TOKEN
        assert result.confidence == Confidence.LOW


class TestSelectPrimary:

    @pytest.mark.parametrize("entity_type,registry_chain,has_protocol,has_chain,expected", [
        (EntityType.CHAIN, False, True, False, "market"),
        (EntityType.CHAIN, False, True, True, "chain"),
        (EntityType.PROTOCOL, True, True, True, "protocol"),
        (EntityType.TOKEN, True, True, True, "chain"),
        (EntityType.TOKEN, False, True, True, "protocol"),
        (EntityType.TOKEN, False, False, True, "chain"),
        (EntityType.TOKEN, False, False, False, "market"),
    ])
    def test_priority(self, entity_type, registry_chain, has_protocol, has_chain, expected, aave_protocol, eth_chain):
        protocol = aave_protocol if has_protocol else None
        chain = eth_chain if has_chain else None
        assert select_primary(entity_type, registry_chain, protocol, chain) == expected


# ============================================================
# MERGE
# ============================================================

def make_bundle(**overrides) -> SourceBundle:
    values = dict(
        query="quokka",
        entity_type=EntityType.TOKEN,
        classification=Classification(EntityType.TOKEN, Confidence.LOW, "test"),
    )
    values.update(overrides)
    return SourceBundle(**values)


class TestMerge:

    def test_blank_values_are_skipped(self):
        resolver = FieldResolver("name", (("a", lambda b: "  "), ("b", lambda b: "Quokka")))
        assert resolver.resolve(make_bundle()) == ("Quokka", "b")

    def test_query_is_last_resort(self):
        record = build_record(make_bundle(query="Quokka "))
        assert record.name == "Quokka"
        assert record.symbol == "QUOKKA"
        assert record.sources["name"] == "query"
        assert record.category == "Token"
        assert record.sources["category"] == "inferred"

    def test_supply_source_beats_market(self, eth_market):
        supply = SupplyRecord("cryptocompare", circulating=1.21e8, max_supply=None)
        record = build_record(make_bundle(market=eth_market, supply=supply))
        assert record.circulating_supply == 1.21e8
        assert record.sources["circulatingSupply"] == "cryptocompare"
        assert record.total_supply == 1.2e8
        assert record.sources["totalSupply"] == "coingecko"

    def test_alias_category_requires_matching_type(self, aave_market):
        alias = resolve_alias("aave")
        as_protocol = build_record(make_bundle(
            entity_type=EntityType.PROTOCOL, alias=alias, market=aave_market,
        ))
        as_token = build_record(make_bundle(
            entity_type=EntityType.TOKEN, alias=alias, market=aave_market,
        ))
        assert as_protocol.category == "Protocol"
        assert as_token.category == "Decentralized Finance (DeFi)"
        assert as_token.sources["category"] == "coingecko"

    def test_market_fields_only_from_market(self, aave_protocol):
        record = build_record(make_bundle(protocol=aave_protocol, primary="protocol"))
        assert record.name == "Aave V3"
        assert record.market_cap is None
        assert "marketCap" not in record.sources

    def test_tvl_attribution(self):
        tvl = TvlResolution(
            tvl=1e9,
            source="defillama-scraper",
            changes={"1d": 2.0},
            change_source="defillama-scraper",
            chain_tvls={"Ethereum": 1e9},
            chain_tvls_source="defillama-scraper",
            scraped=True,
        )
        record = build_record(make_bundle(tvl=tvl))
        assert record.sources["tvl"] == "defillama-scraper"
        assert record.sources["tvlChange"] == "defillama-scraper"
        assert record.tvl_change == {"1d": 2.0, "7d": None, "30d": None, "365d": None}
        assert record.chains == ("Ethereum",)
        assert record.scraped is True


# ============================================================
# AGGREGATION FLOW
# ============================================================

class TestChainAggregation:

    @pytest.mark.asyncio
    async def test_ethereum(self, aggregator, mock_providers, eth_chain, eth_market):
        mock_providers.defillama.search_chain_by_exact_name.return_value = eth_chain
        mock_providers.coingecko.search_coin.return_value = eth_market

        record = await aggregator.aggregate("Ethereum")

        mock_providers.defillama.search_chain_by_exact_name.assert_awaited_once_with("Ethereum", False)
        mock_providers.coingecko.search_coin.assert_awaited_once_with("ethereum", "ethereum", False)
        mock_providers.defillama.search_protocol.assert_not_awaited()
        mock_providers.scraper.scrape_chain.assert_awaited_once_with("Ethereum", False)

        assert record.entity_type == EntityType.CHAIN
        assert record.name == "Ethereum"
        assert record.category == "Chain"
        assert record.price == 3000.0
        assert record.tvl == 5.0e10
        assert record.sources["price"] == "coingecko"
        assert record.sources["tvl"] == "defillama"
        assert record.price_change["7d"] == -3.4
        assert record.urls == {
            "coingecko": "https://www.coingecko.com/en/coins/ethereum",
            "defillama": "https://defillama.com/chain/Ethereum",
        }

    @pytest.mark.asyncio
    async def test_scrape_preferred_and_history_fills_windows(
        self, aggregator, mock_providers, mock_clock, eth_chain, eth_market,
    ):
        now = mock_clock.timestamp()
        mock_providers.defillama.search_chain_by_exact_name.return_value = eth_chain
        mock_providers.coingecko.search_coin.return_value = eth_market
        mock_providers.scraper.scrape_chain.return_value = ScrapedRecord(
            source_url="https://defillama.com/chain/Ethereum",
            tvl=6.0e10,
            change_7d=5.0,
        )
        mock_providers.defillama.fetch_chain_tvl_history.return_value = (
            TvlPoint(now - 86400, 100.0),
            TvlPoint(now, 110.0),
        )

        record = await aggregator.aggregate("ethereum")

        assert record.tvl == 6.0e10
        assert record.scraped is True
        assert record.sources["tvl"] == "defillama-scraper"
        assert record.tvl_change["7d"] == 5.0
        assert record.tvl_change["1d"] == pytest.approx(10.0)

    @pytest.mark.asyncio
    async def test_follow_up_market_by_id(self, aggregator, mock_providers, eth_chain, eth_market):
        mock_providers.defillama.search_chain_by_exact_name.return_value = eth_chain
        mock_providers.coingecko.fetch_coin.return_value = eth_market

        record = await aggregator.aggregate("ethereum")

        mock_providers.coingecko.fetch_coin.assert_awaited_once_with("ethereum", False)
        assert record.price == 3000.0

    @pytest.mark.asyncio
    async def test_failing_provider_is_isolated(self, aggregator, mock_providers, eth_chain):
        mock_providers.defillama.search_chain_by_exact_name.return_value = eth_chain
        mock_providers.coingecko.search_coin.side_effect = RuntimeError("boom")

        record = await aggregator.aggregate("ethereum")

        assert record.tvl == 5.0e10
        assert record.name == "Ethereum"


class TestProtocolAggregation:

    @pytest.mark.asyncio
    async def test_aave(self, aggregator, mock_providers, aave_protocol, aave_market):
        mock_providers.defillama.search_protocol.return_value = aave_protocol
        mock_providers.coingecko.search_coin.return_value = aave_market

        record = await aggregator.aggregate("aave")

        mock_providers.defillama.search_protocol.assert_awaited_once_with("aave", "aave-v3", False)
        mock_providers.coingecko.search_coin.assert_awaited_once_with("aave", "aave", False)
        mock_providers.defillama.search_chain.assert_not_awaited()
        mock_providers.scraper.scrape_protocol.assert_not_awaited()

        assert record.entity_type == EntityType.PROTOCOL
        assert record.name == "Aave"
        assert record.category == "Protocol"
        assert record.tvl == 2.0e10
        assert record.tvl_change["1d"] == 1.0
        assert record.tvl_change["7d"] == -2.0
        assert record.chains == ("Ethereum", "Arbitrum")
        assert record.chain_tvls == {"Ethereum": 1.5e10, "Arbitrum": 5.0e9}

    @pytest.mark.asyncio
    async def test_low_tvl_confirmed_by_scrape(self, aggregator, mock_providers):
        mock_providers.defillama.search_protocol.return_value = ProtocolRecord(
            slug="quokka",
            name="Quokka",
            symbol="QKA",
            category="Dex",
            chains=("Ethereum",),
            tvl=5.0e5,
        )
        mock_providers.scraper.scrape_protocol.return_value = ScrapedRecord(
            source_url="https://defillama.com/protocol/quokka",
            tvl=8.0e5,
        )

        record = await aggregator.aggregate("quokka")

        mock_providers.scraper.scrape_protocol.assert_awaited_once_with("quokka", False)
        mock_providers.supply.fetch_supply.assert_awaited_once_with("QKA", None, False)
        assert record.entity_type == EntityType.PROTOCOL
        assert record.classification.confidence == Confidence.MEDIUM
        assert record.tvl == 8.0e5
        assert record.sources["tvl"] == "defillama-scraper"
        assert record.category == "Dex"
        assert record.symbol == "QKA"

    @pytest.mark.asyncio
    async def test_priority_scrape(self, mock_providers, mock_clock, aave_protocol):
        config = AggregatorConfig(scrape_priority=("aave",))
        aggregator = Aggregator(mock_providers, config=config, clock=mock_clock)
        mock_providers.defillama.search_protocol.return_value = aave_protocol
        mock_providers.scraper.scrape_protocol.return_value = ScrapedRecord(
            source_url="https://defillama.com/protocol/aave-v3",
            tvl=2.2e10,
            change_1d=0.5,
        )

        record = await aggregator.aggregate("aave")

        assert record.tvl == 2.2e10
        assert record.tvl_change["1d"] == 0.5
        assert record.tvl_change["7d"] == -2.0
        assert record.sources["tvlChange"] == "defillama-scraper"


class TestNotFound:

    @pytest.mark.asyncio
    async def test_nothing_anywhere(self, aggregator, mock_providers):
        record = await aggregator.aggregate("nothing at all")

        mock_providers.scraper.scrape_with_variations.assert_awaited_once_with("nothing at all", False)
        assert record is None

    @pytest.mark.asyncio
    async def test_empty_query(self, aggregator, mock_providers):
        assert await aggregator.aggregate("   ") is None
        mock_providers.coingecko.search_coin.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_chain_scrape_fallback(self, aggregator, mock_providers):
        mock_providers.scraper.scrape_chain.return_value = ScrapedRecord(
            source_url="https://defillama.com/chain/Berachain",
            tvl=3.0e9,
            change_1d=2.0,
        )

        record = await aggregator.aggregate("berachain")

        mock_providers.scraper.scrape_chain.assert_awaited_once_with("Berachain", False)
        mock_providers.scraper.scrape_with_variations.assert_not_awaited()
        assert record.name == "Berachain"
        assert record.symbol == "BERA"
        assert record.tvl == 3.0e9
        assert record.scraped is True
        assert record.tvl_change["1d"] == 2.0
        assert record.urls == {"defillama-scraper": "https://defillama.com/chain/Berachain"}


class TestDeadline:

    @pytest.mark.asyncio
    async def test_slow_call_settled_after_deadline(self, mock_providers, mock_clock, eth_chain, eth_market):
        calls = {"count": 0}

        async def slow_then_fast(*args):
            calls["count"] += 1
            if calls["count"] == 1:
                await asyncio.sleep(5)
            return eth_market

        mock_providers.defillama.search_chain_by_exact_name.return_value = eth_chain
        mock_providers.coingecko.search_coin.side_effect = slow_then_fast
        aggregator = Aggregator(mock_providers, config=AggregatorConfig(deadline_seconds=0.05), clock=mock_clock)

        record = await aggregator.aggregate("ethereum")

        assert calls["count"] == 2
        assert record.price == 3000.0
