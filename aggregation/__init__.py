"""
Aggregation Package - Multi-source reconciliation.

Resolves what a query refers to, fans out to the matching
providers, applies the fallback chain and merges the results
under fixed per-field priorities.

Quick Start:
    from aggregation import Aggregator

    record = await Aggregator(providers).aggregate("ethereum")
"""

from aggregation.aggregator import Aggregator, resolve_entity_type, select_primary
from aggregation.config import AggregatorConfig, DEFAULT_SCRAPE_PRIORITY
from aggregation.merge import FieldResolver, RESOLVERS, build_record, resolve_fields
from aggregation.models import AggregatedRecord, SourceBundle, TvlResolution
from aggregation.tvl_calculator import (
    TVL_CHANGE_WINDOWS,
    calculate_changes,
    direct_deltas,
    extract_latest_tvl,
    find_closest_point,
)


__all__ = [
    "Aggregator",
    "resolve_entity_type",
    "select_primary",
    "AggregatorConfig",
    "DEFAULT_SCRAPE_PRIORITY",
    "FieldResolver",
    "RESOLVERS",
    "build_record",
    "resolve_fields",
    "AggregatedRecord",
    "SourceBundle",
    "TvlResolution",
    "TVL_CHANGE_WINDOWS",
    "calculate_changes",
    "direct_deltas",
    "extract_latest_tvl",
    "find_closest_point",
]
