"""
Analysis service.

Glue between the HTTP layer and the engine: aggregation,
validation, risk scoring and search behind two calls.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from aggregation.aggregator import Aggregator
from aggregation.config import AggregatorConfig
from aggregation.models import AggregatedRecord
from cache import create_cache
from core.config import AppConfig, SearchConfig
from core.exceptions import EntityNotFoundError, InvalidQueryError
from data_sources.registry import ProviderSet
from identity.aliases import normalize_query
from identity.types import EntityType
from risk_scoring import RiskAssessment, RiskScore, RiskScoringEngine
from search.fuzzy import ScoredMatch
from search.indexer import SearchIndexItem, SearchIndexer
from validation.validator import DataValidator, ValidationResult, has_minimum_data


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnalysisResult:
    record: AggregatedRecord
    assessment: RiskAssessment
    score: RiskScore
    validation: ValidationResult

    def to_dict(self) -> Dict[str, Any]:
        return {
            "data": self.record.to_dict(),
            "riskAnalysis": self.assessment.to_dict(),
            "riskScore": self.score.to_dict(),
            "validation": self.validation.to_dict(),
        }


@dataclass(frozen=True)
class SearchOutcome:
    query: str
    matches: List[ScoredMatch[SearchIndexItem]]
    elapsed_ms: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "query": self.query,
            "results": [m.item.to_dict() for m in self.matches],
            "total": len(self.matches),
            "responseTime": f"{self.elapsed_ms}ms",
        }


def parse_entity_type(value: Optional[str]) -> Optional[EntityType]:
    if not value:
        return None
    try:
        return EntityType(value.strip().lower())
    except ValueError:
        raise InvalidQueryError(
            f"Unknown type '{value}'",
            context={"allowed": [t.value for t in EntityType]},
        )


class AnalysisService:
    """
    Request-level operations used by the routers.

    Usage:
        service = AnalysisService.create(AppConfig.from_env())
        result = await service.analyze("ethereum")
        await service.close()
    """

    def __init__(
        self,
        providers: ProviderSet,
        aggregator: Optional[Aggregator] = None,
        indexer: Optional[SearchIndexer] = None,
        validator: Optional[DataValidator] = None,
        risk_engine: Optional[RiskScoringEngine] = None,
        search_config: Optional[SearchConfig] = None,
    ):
        self._providers = providers
        self._search_config = search_config or SearchConfig()
        self._aggregator = aggregator or Aggregator(providers)
        self._indexer = indexer or SearchIndexer(providers, self._search_config)
        self._validator = validator or DataValidator()
        self._risk_engine = risk_engine or RiskScoringEngine()

    @classmethod
    def create(cls, config: AppConfig) -> "AnalysisService":
        cache = create_cache(config.cache.backend, config.cache.directory)
        providers = ProviderSet.create(cache, http_config=config.http, cache_config=config.cache)
        return cls(
            providers,
            aggregator=Aggregator(providers, AggregatorConfig.from_env()),
            indexer=SearchIndexer(providers, config.search),
            search_config=config.search,
        )

    @property
    def providers(self) -> ProviderSet:
        return self._providers

    async def analyze(
        self,
        query: Optional[str],
        entity_type: Optional[str] = None,
        force_refresh: bool = False,
    ) -> AnalysisResult:
        """
        Aggregate, validate and score one query.

        Raises:
            InvalidQueryError: empty query or unknown type
            EntityNotFoundError: nothing usable came back
        """
        if not normalize_query(query):
            raise InvalidQueryError('Query parameter "q" is required')
        explicit_type = parse_entity_type(entity_type)

        record = await self._aggregator.aggregate(query, explicit_type, force_refresh)
        if not has_minimum_data(record):
            logger.info(f"[service] no usable data for '{query}'")
            raise EntityNotFoundError(query)

        validation = self._validator.validate(record)
        if not validation.is_valid:
            logger.warning(f"[service] '{query}' failed validation: {validation.errors}")

        assessment, score = self._risk_engine.analyze(record)
        return AnalysisResult(record=record, assessment=assessment, score=score, validation=validation)

    async def search(self, query: Optional[str], limit: Optional[int] = None) -> SearchOutcome:
        if not query or not query.strip():
            raise InvalidQueryError("Query parameter required")

        c = self._search_config
        limit = c.default_limit if limit is None else max(1, min(c.max_limit, limit))

        started = time.perf_counter()
        matches = await self._indexer.search(query.strip(), limit=limit)
        elapsed_ms = int((time.perf_counter() - started) * 1000)

        logger.debug(f"[service] search '{query}': {len(matches)} results in {elapsed_ms}ms")
        return SearchOutcome(query=query, matches=matches, elapsed_ms=elapsed_ms)

    def health(self) -> Dict[str, Any]:
        snapshot = self._indexer.snapshot
        return {
            "providers": self._providers.health(),
            "searchIndex": snapshot.stats() if snapshot else None,
        }

    async def close(self) -> None:
        await self._indexer.close()
        await self._providers.close()
