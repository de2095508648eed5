"""
Fuzzy Matcher.

============================================================
PURPOSE
============================================================
Tiered similarity between a query and an item's name, symbol
and aliases, used for autocomplete.

============================================================
SCORING
============================================================
exact match                 100
target starts with query     95
target contains query        85
otherwise                    (maxLen - levenshtein) / maxLen * 70

An item scores the maximum over its fields. Edit-distance
matches therefore always rank below exact, prefix and
contains matches.

============================================================
"""

import re
import unicodedata
from dataclasses import dataclass
from typing import Any, Generic, Iterable, List, Optional, TypeVar

from rapidfuzz.distance import Levenshtein


EXACT_SCORE = 100.0
PREFIX_SCORE = 95.0
CONTAINS_SCORE = 85.0
FUZZY_CEILING = 70.0

DEFAULT_THRESHOLD = 30.0

T = TypeVar("T")


@dataclass(frozen=True)
class ScoredMatch(Generic[T]):
    item: T
    score: float


def normalize_for_search(text: Optional[str]) -> str:
    """Lowercase, strip accents and punctuation, collapse whitespace."""
    if not text:
        return ""
    decomposed = unicodedata.normalize("NFD", text.lower())
    stripped = "".join(c for c in decomposed if not unicodedata.combining(c))
    cleaned = re.sub(r"[^a-z0-9\s]", "", stripped)
    return re.sub(r"\s+", " ", cleaned).strip()


def calculate_similarity(query: str, target: str) -> float:
    """Similarity of target to query on a 0-100 scale."""
    q = (query or "").lower()
    t = (target or "").lower()
    if not q or not t:
        return 0.0
    if q == t:
        return EXACT_SCORE
    if t.startswith(q):
        return PREFIX_SCORE
    if q in t:
        return CONTAINS_SCORE

    distance = Levenshtein.distance(q, t)
    max_len = max(len(q), len(t))
    return (max_len - distance) / max_len * FUZZY_CEILING


def item_similarity(query: str, item: Any) -> float:
    """Best score over name, symbol and aliases of an item."""
    fields = [getattr(item, "name", None), getattr(item, "symbol", None)]
    fields.extend(getattr(item, "aliases", None) or ())
    normalized = (normalize_for_search(f) for f in fields)
    return max((calculate_similarity(query, f) for f in normalized if f), default=0.0)


def fuzzy_search(
    query: str,
    items: Iterable[T],
    threshold: float = DEFAULT_THRESHOLD,
) -> List[ScoredMatch[T]]:
    """
    Score every item and keep those at or above threshold.

    Returns matches sorted by descending score; equal scores keep
    corpus order.
    """
    q = normalize_for_search(query)
    if not q:
        return []

    matches = []
    for item in items:
        best = item_similarity(q, item)
        if best >= threshold:
            matches.append(ScoredMatch(item=item, score=best))

    matches.sort(key=lambda m: m.score, reverse=True)
    return matches
