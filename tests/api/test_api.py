"""
Tests for the analysis service and the HTTP routes.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from api.main import create_app
from api.routers.analyze import CACHE_CONTROL
from api.services import AnalysisResult, AnalysisService, SearchOutcome, parse_entity_type
from core.config import SearchConfig
from core.exceptions import EntityNotFoundError, InvalidQueryError
from identity.types import EntityType
from risk_scoring import RiskScoringEngine
from search import ScoredMatch, SearchIndexItem
from validation.validator import DataValidator


def analysis_result(record) -> AnalysisResult:
    assessment, score = RiskScoringEngine().analyze(record)
    return AnalysisResult(
        record=record,
        assessment=assessment,
        score=score,
        validation=DataValidator().validate(record),
    )


@pytest.fixture
def priced_record(make_record):
    return make_record(
        name="Quokka",
        symbol="QKA",
        price=1.5,
        market_cap=50e9,
        sources={"name": "coingecko", "price": "coingecko", "marketCap": "coingecko"},
    )


@pytest.fixture
def mock_aggregator(priced_record):
    aggregator = MagicMock()
    aggregator.aggregate = AsyncMock(return_value=priced_record)
    return aggregator


@pytest.fixture
def mock_indexer():
    indexer = MagicMock()
    indexer.search = AsyncMock(return_value=[])
    indexer.close = AsyncMock()
    indexer.snapshot = None
    return indexer


@pytest.fixture
def service(mock_providers, mock_aggregator, mock_indexer):
    return AnalysisService(mock_providers, aggregator=mock_aggregator, indexer=mock_indexer)


@pytest.fixture
def mock_service():
    svc = MagicMock()
    svc.analyze = AsyncMock()
    svc.search = AsyncMock()
    svc.health = MagicMock(return_value={"providers": {}, "searchIndex": None})
    return svc


@pytest.fixture
def client(mock_service):
    with TestClient(create_app(service=mock_service)) as c:
        yield c


# ============================================================
# SERVICE
# ============================================================

class TestParseEntityType:

    def test_values(self):
        assert parse_entity_type(None) is None
        assert parse_entity_type(" Chain ") == EntityType.CHAIN

    def test_unknown(self):
        with pytest.raises(InvalidQueryError) as exc:
            parse_entity_type("nft")
        assert "chain" in exc.value.context["allowed"]


class TestAnalysisService:

    @pytest.mark.asyncio
    async def test_analyze(self, service, mock_aggregator):
        result = await service.analyze("quokka")

        mock_aggregator.aggregate.assert_awaited_once_with("quokka", None, False)
        data = result.to_dict()
        assert set(data) == {"data", "riskAnalysis", "riskScore", "validation"}
        assert data["data"]["name"] == "Quokka"
        assert data["riskAnalysis"]["positives"] == ["Large-Cap - established project"]
        assert data["riskScore"]["score"] == 58

    @pytest.mark.asyncio
    async def test_explicit_type_and_refresh(self, service, mock_aggregator):
        await service.analyze("quokka", entity_type="protocol", force_refresh=True)
        mock_aggregator.aggregate.assert_awaited_once_with("quokka", EntityType.PROTOCOL, True)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("query", [None, "", "   "])
    async def test_empty_query(self, service, mock_aggregator, query):
        with pytest.raises(InvalidQueryError):
            await service.analyze(query)
        mock_aggregator.aggregate.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_insufficient_data(self, service, mock_aggregator, make_record):
        mock_aggregator.aggregate.return_value = make_record(name="Quokka")
        with pytest.raises(EntityNotFoundError) as exc:
            await service.analyze("quokka")
        assert exc.value.query == "quokka"

    @pytest.mark.asyncio
    async def test_invalid_record_still_scored(self, service, mock_aggregator, make_record):
        mock_aggregator.aggregate.return_value = make_record(
            price=2.0,
            circulating_supply=200.0,
            total_supply=100.0,
        )
        result = await service.analyze("quokka")

        assert result.validation.is_valid is False
        assert result.score.score is not None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("limit,expected", [(None, 15), (0, 1), (500, 50), (7, 7)])
    async def test_search_limit_clamp(self, service, mock_indexer, limit, expected):
        outcome = await service.search(" eth ", limit)

        mock_indexer.search.assert_awaited_once_with("eth", limit=expected)
        assert outcome.to_dict()["total"] == 0
        assert outcome.to_dict()["responseTime"].endswith("ms")

    @pytest.mark.asyncio
    async def test_search_blank(self, service):
        with pytest.raises(InvalidQueryError):
            await service.search("  ")

    @pytest.mark.asyncio
    async def test_configured_default_limit(self, mock_providers, mock_aggregator, mock_indexer):
        svc = AnalysisService(
            mock_providers,
            aggregator=mock_aggregator,
            indexer=mock_indexer,
            search_config=SearchConfig(default_limit=5),
        )
        await svc.search("eth")
        mock_indexer.search.assert_awaited_once_with("eth", limit=5)

    def test_health(self, service, mock_providers):
        mock_providers.health.return_value = {"coingecko": {"status": "healthy"}}
        assert service.health() == {"providers": {"coingecko": {"status": "healthy"}}, "searchIndex": None}

    @pytest.mark.asyncio
    async def test_close(self, service, mock_providers, mock_indexer):
        await service.close()
        mock_indexer.close.assert_awaited_once()
        mock_providers.close.assert_awaited_once()


# ============================================================
# ROUTES
# ============================================================

class TestAnalyzeRoute:

    def test_success(self, client, mock_service, priced_record):
        mock_service.analyze.return_value = analysis_result(priced_record)
        response = client.get("/api/analyze", params={"q": "quokka", "type": "token", "refresh": "true"})

        assert response.status_code == 200
        assert response.headers["cache-control"] == CACHE_CONTROL
        assert CACHE_CONTROL == "public, s-maxage=300, stale-while-revalidate=600"
        body = response.json()
        assert body["data"]["symbol"] == "QKA"
        assert body["riskScore"]["classification"] == "FAIR - Elevated Risk"
        mock_service.analyze.assert_awaited_once_with("quokka", entity_type="token", force_refresh=True)

    def test_missing_query(self, client, mock_service):
        mock_service.analyze.side_effect = InvalidQueryError('Query parameter "q" is required')
        response = client.get("/api/analyze")

        assert response.status_code == 400
        assert response.json() == {"error": 'Query parameter "q" is required'}
        mock_service.analyze.assert_awaited_once_with(None, entity_type=None, force_refresh=False)

    def test_not_found(self, client, mock_service):
        mock_service.analyze.side_effect = EntityNotFoundError("nothing")
        response = client.get("/api/analyze", params={"q": "nothing"})

        assert response.status_code == 404
        assert response.json()["details"] == {"query": "nothing"}

    def test_unexpected_failure(self, client, mock_service):
        mock_service.analyze.side_effect = RuntimeError("boom")
        response = client.get("/api/analyze", params={"q": "quokka"})

        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error", "details": "boom"}

    def test_cors(self, client, mock_service, priced_record):
        mock_service.analyze.return_value = analysis_result(priced_record)
        response = client.get("/api/analyze", params={"q": "quokka"}, headers={"Origin": "https://example.org"})
        assert response.headers["access-control-allow-origin"] == "*"


class TestSearchRoute:

    def test_results(self, client, mock_service):
        item = SearchIndexItem(id="quokka", name="Quokka", type=EntityType.TOKEN, source="coingecko", symbol="QKA")
        mock_service.search.return_value = SearchOutcome(
            query="quo",
            matches=[ScoredMatch(item=item, score=95.0)],
            elapsed_ms=3,
        )
        response = client.get("/api/search", params={"q": "quo"})

        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 1
        assert body["responseTime"] == "3ms"
        assert body["results"][0]["id"] == "quokka"
        assert body["results"][0]["type"] == "token"
        mock_service.search.assert_awaited_once_with("quo", 15)

    def test_empty_query(self, client, mock_service):
        mock_service.search.side_effect = InvalidQueryError("Query parameter required")
        response = client.get("/api/search")

        assert response.status_code == 400
        assert response.json() == {"error": "Query parameter required"}

    def test_failure(self, client, mock_service):
        mock_service.search.side_effect = RuntimeError("index down")
        response = client.get("/api/search", params={"q": "eth"})

        assert response.status_code == 500
        assert response.json()["error"] == "Search failed"


class TestMiscRoutes:

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_health(self, client, mock_service):
        mock_service.health.return_value = {
            "providers": {"coingecko": {"status": "healthy", "consecutive_failures": 0}},
            "searchIndex": {"total": 3, "chain": 1, "protocol": 1, "token": 1, "exchange": 0},
        }
        response = client.get("/api/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["searchIndex"]["total"] == 3
