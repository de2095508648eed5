"""
Tests for process configuration and request exceptions.
"""

import pytest

from aggregation.config import AggregatorConfig, DEFAULT_SCRAPE_PRIORITY
from core.config import AppConfig, CacheConfig, HttpConfig, SearchConfig, env_float, env_int
from core.exceptions import ConfigurationError, EntityNotFoundError, InvalidQueryError


# ============================================================
# ENV HELPERS
# ============================================================

class TestEnvHelpers:

    def test_default_when_unset(self, monkeypatch):
        monkeypatch.delenv("SOME_NUMBER", raising=False)
        assert env_float("SOME_NUMBER", 2.5) == 2.5

    def test_default_when_blank(self, monkeypatch):
        monkeypatch.setenv("SOME_NUMBER", "")
        assert env_int("SOME_NUMBER", 7) == 7

    def test_parses_value(self, monkeypatch):
        monkeypatch.setenv("SOME_NUMBER", "12")
        assert env_int("SOME_NUMBER", 7) == 12

    def test_invalid_number_raises(self, monkeypatch):
        monkeypatch.setenv("SOME_NUMBER", "twelve")
        with pytest.raises(ConfigurationError) as exc:
            env_float("SOME_NUMBER", 1.0)
        assert exc.value.context["config_key"] == "SOME_NUMBER"


# ============================================================
# DATACLASSES
# ============================================================

class TestHttpConfig:

    def test_defaults(self):
        config = HttpConfig()
        assert config.timeout_seconds == 10.0
        assert config.retry_attempts == 2
        assert config.coingecko_api_key is None

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("HTTP_TIMEOUT_SECONDS", "3")
        monkeypatch.setenv("COINGECKO_API_KEY", "demo-key")
        config = HttpConfig.from_env()
        assert config.timeout_seconds == 3.0
        assert config.coingecko_api_key == "demo-key"
        assert config.to_dict()["coingecko_api_key_set"] is True


class TestCacheConfig:

    def test_ttls(self):
        config = CacheConfig()
        assert config.market_ttl == 1800
        assert config.protocol_ttl == 3600
        assert config.history_ttl == 7200

    def test_rejects_unknown_backend(self, monkeypatch):
        monkeypatch.setenv("CACHE_BACKEND", "redis")
        with pytest.raises(ConfigurationError):
            CacheConfig.from_env()

    def test_memory_backend(self, monkeypatch):
        monkeypatch.setenv("CACHE_BACKEND", "MEMORY")
        assert CacheConfig.from_env().backend == "memory"


class TestAppConfig:

    def test_to_dict_sections(self):
        data = AppConfig().to_dict()
        assert set(data) >= {"log_level", "host", "port", "http", "cache", "search"}
        assert data["port"] == 8000

    def test_search_defaults(self):
        config = SearchConfig()
        assert config.index_ttl_seconds == 6 * 3600
        assert config.threshold == 25.0
        assert config.default_limit == 15
        assert config.max_limit == 50


class TestAggregatorConfig:

    def test_defaults(self):
        config = AggregatorConfig()
        assert config.deadline_seconds == 25.0
        assert config.low_tvl_floor == 1_000_000.0
        assert config.scrape_priority == DEFAULT_SCRAPE_PRIORITY

    def test_priority_substring_match(self):
        config = AggregatorConfig()
        assert config.prioritizes_scrape("Solana")
        assert config.prioritizes_scrape("jito on sol")
        assert not config.prioritizes_scrape("aave")

    def test_priority_from_env(self, monkeypatch):
        monkeypatch.setenv("SCRAPE_PRIORITY", " Foo, bar ,,")
        monkeypatch.setenv("ALWAYS_SCRAPE_CHAINS", "false")
        config = AggregatorConfig.from_env()
        assert config.scrape_priority == ("foo", "bar")
        assert config.always_scrape_chains is False


# ============================================================
# EXCEPTIONS
# ============================================================

class TestExceptions:

    def test_not_found_carries_query(self):
        error = EntityNotFoundError("nothing")
        assert error.query == "nothing"
        assert error.context == {"query": "nothing"}
        assert error.to_dict()["type"] == "EntityNotFoundError"

    def test_invalid_query_message(self):
        error = InvalidQueryError("Query parameter required")
        assert str(error) == "Query parameter required"
        assert error.to_dict()["severity"] == "low"
