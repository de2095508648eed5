"""
Search Package - Fuzzy matching and the autocomplete index.
"""

from search.fuzzy import (
    ScoredMatch,
    calculate_similarity,
    fuzzy_search,
    item_similarity,
    normalize_for_search,
)
from search.indexer import (
    SearchIndex,
    SearchIndexItem,
    SearchIndexer,
    curated_items,
    deduplicate,
    merge_items,
    rank_matches,
    ranking_boost,
)


__all__ = [
    "ScoredMatch",
    "calculate_similarity",
    "fuzzy_search",
    "item_similarity",
    "normalize_for_search",
    "SearchIndex",
    "SearchIndexItem",
    "SearchIndexer",
    "curated_items",
    "deduplicate",
    "merge_items",
    "rank_matches",
    "ranking_boost",
]
