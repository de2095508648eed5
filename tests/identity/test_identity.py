"""
Tests for alias resolution, registries and the entity classifier.
"""

import pytest

from identity import (
    Classification,
    Confidence,
    DataHints,
    EntityType,
    classify,
    classify_batch,
    find_blockchain,
    find_chain_mapping,
    generate_query_variations,
    infer_category,
    is_known_chain,
    normalize_query,
    resolve_alias,
    should_reclassify,
)


# ============================================================
# ALIASES
# ============================================================

class TestResolveAlias:

    def test_exact_match(self):
        entry = resolve_alias("ETH")
        assert entry.display_name == "Ethereum"
        assert entry.entity_type == EntityType.CHAIN
        assert entry.canonical_market_id == "ethereum"

    def test_whitespace_and_case(self):
        assert resolve_alias("  Aave ").canonical_chain_id == "aave-v3"

    def test_contained_whole_word(self):
        entry = resolve_alias("aave v2 lending")
        assert entry.display_name == "Aave"

    def test_short_terms_not_contained(self):
        # "op" is an alias of optimism but only as an exact query
        assert resolve_alias("op") is not None
        assert resolve_alias("top gainers") is None

    def test_no_partial_word_match(self):
        assert resolve_alias("aavex") is None

    def test_empty(self):
        assert resolve_alias("") is None
        assert resolve_alias(None) is None

    def test_category_follows_type(self):
        assert resolve_alias("bitcoin").category == "Token"
        assert resolve_alias("uniswap").category == "Protocol"


class TestQueryVariations:

    def test_normalize(self):
        assert normalize_query("  Hello World ") == "hello world"
        assert normalize_query(None) == ""

    def test_order_and_forms(self):
        variations = generate_query_variations("Curve Finance")
        assert variations[0] == "curve finance"
        assert "curve-finance" in variations
        assert "curvefinance" in variations
        assert "curve" in variations

    def test_suffix_stripped(self):
        variations = generate_query_variations("Sei Network")
        assert "sei" not in variations[:3]
        assert "sei" in variations

    def test_no_duplicates(self):
        variations = generate_query_variations("aave")
        assert variations == ["aave"]

    def test_empty(self):
        assert generate_query_variations("   ") == []


# ============================================================
# REGISTRIES
# ============================================================

class TestBlockchainRegistry:

    @pytest.mark.parametrize("query", ["ethereum", "ETH", "ether"])
    def test_matches_id_symbol_alias(self, query):
        assert find_blockchain(query).id == "ethereum"

    def test_bsc_alias(self):
        entry = find_blockchain("bsc")
        assert entry.id == "bnb"
        assert entry.defillama_name == "BSC"

    def test_hyperliquid_is_registered(self):
        assert find_blockchain("hyperliquid").defillama_name == "Hyperliquid"

    def test_no_substring(self):
        assert find_blockchain("ethereum classic") is None


class TestChainMappings:

    def test_symbol_match(self):
        mapping = find_chain_mapping("BNB")
        assert mapping.chain_api_name == "BSC"
        assert mapping.market_api_id == "binancecoin"

    def test_api_name_differs_from_key(self):
        assert find_chain_mapping("optimism").chain_api_name == "OP Mainnet"
        assert find_chain_mapping("hyperliquid").chain_api_name == "Hyperliquid L1"

    def test_missing_market_id(self):
        assert find_chain_mapping("base").market_api_id is None

    def test_exact_only(self):
        assert find_chain_mapping("based") is None
        assert not is_known_chain("uniswap")
        assert is_known_chain("Solana")


# ============================================================
# CLASSIFIER
# ============================================================

class TestClassify:

    def test_registry_wins(self):
        result = classify("Ethereum")
        assert result.entity_type == EntityType.CHAIN
        assert result.confidence == Confidence.HIGH
        assert "registry" in result.reason

    def test_registry_via_symbol_hint(self):
        result = classify("Wrapped thing", DataHints(symbol="SOL"))
        assert result.entity_type == EntityType.CHAIN

    def test_alias(self):
        result = classify("aave")
        assert result.entity_type == EntityType.PROTOCOL
        assert result.confidence == Confidence.HIGH

    def test_chain_name_pattern(self):
        result = classify("Quokka Network")
        assert result.entity_type == EntityType.CHAIN
        assert result.confidence == Confidence.MEDIUM

    def test_exchange_with_tvl_is_protocol(self):
        result = classify("Quokka Swap", DataHints(tvl=5e6, chains=("Ethereum",)))
        assert result.entity_type == EntityType.PROTOCOL
        assert result.confidence == Confidence.MEDIUM

    def test_multi_chain_tvl(self):
        result = classify("Quokka", DataHints(tvl=5e6, chains=("Ethereum", "Arbitrum")))
        assert result.entity_type == EntityType.PROTOCOL
        assert result.confidence == Confidence.HIGH

    def test_tvl_on_own_chain(self):
        result = classify("Quokka", DataHints(tvl=5e6, chains=("Quokka",)))
        assert result.entity_type == EntityType.CHAIN
        assert result.confidence == Confidence.HIGH

    def test_tvl_on_other_chain(self):
        result = classify("Quokka", DataHints(tvl=5e6, chains=("Ethereum",)))
        assert result.entity_type == EntityType.PROTOCOL
        assert result.confidence == Confidence.MEDIUM

    def test_tvl_without_chains(self):
        result = classify("Quokka", DataHints(tvl=5e6))
        assert result.entity_type == EntityType.CHAIN
        assert result.confidence == Confidence.MEDIUM

    def test_protocol_category(self):
        result = classify("Quokka", DataHints(category="Lending"))
        assert result.entity_type == EntityType.PROTOCOL
        assert result.confidence == Confidence.HIGH

    def test_exchange_name(self):
        result = classify("Quokka Exchange")
        assert result.entity_type == EntityType.EXCHANGE

    def test_prior_type_fallback(self):
        result = classify("Quokka", DataHints(prior_type=EntityType.PROTOCOL))
        assert result.entity_type == EntityType.PROTOCOL
        assert result.confidence == Confidence.LOW

    def test_default_token(self):
        result = classify("Quokka")
        assert result.entity_type == EntityType.TOKEN
        assert result.confidence == Confidence.LOW

    def test_to_dict(self):
        data = classify("Quokka").to_dict()
        assert data["type"] == "token"
        assert data["confidence"] == "low"


class TestShouldReclassify:

    def test_agreement(self):
        verdict = Classification(EntityType.CHAIN, Confidence.HIGH, "x")
        assert should_reclassify(EntityType.CHAIN, verdict) is None

    def test_high_wins(self):
        verdict = Classification(EntityType.CHAIN, Confidence.HIGH, "x")
        assert should_reclassify(EntityType.PROTOCOL, verdict) == EntityType.CHAIN

    def test_medium_overrides_token_only(self):
        verdict = Classification(EntityType.PROTOCOL, Confidence.MEDIUM, "x")
        assert should_reclassify(EntityType.TOKEN, verdict) == EntityType.PROTOCOL
        assert should_reclassify(EntityType.CHAIN, verdict) is None

    def test_low_never_overrides(self):
        verdict = Classification(EntityType.CHAIN, Confidence.LOW, "x")
        assert should_reclassify(EntityType.TOKEN, verdict) is None


class TestClassifyBatch:

    def test_stats(self):
        batch = classify_batch([
            DataHints(name="Ethereum", prior_type=EntityType.TOKEN),
            DataHints(name="Quokka", tvl=1e6, chains=("Ethereum", "Arbitrum"), prior_type=EntityType.PROTOCOL),
            DataHints(name="Quokka Coin"),
        ])
        stats = batch.stats
        assert stats["total"] == 3
        assert stats["chain"] == 1
        assert stats["protocol"] == 1
        assert stats["token"] == 1
        assert stats["exchange"] == 0
        assert stats["high_confidence"] == 2
        assert stats["reclassified"] == 1

    def test_infer_category(self):
        assert infer_category(EntityType.CHAIN) == "Chain"
        assert infer_category(EntityType.EXCHANGE) == "Exchange"
