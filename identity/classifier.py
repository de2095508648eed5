"""
Identity - Classifier.

============================================================
PURPOSE
============================================================
Decides whether a query names a chain, a protocol, a token or
an exchange.

============================================================
PRIORITY ORDER (first match wins)
============================================================
1. Blockchain registry exact hit           -> chain, high
2. Known alias hit                         -> alias type, high
3. Name patterns ("...chain", "zk...")     -> chain, medium
   exchange patterns with TVL on chains    -> protocol, medium
4. Data shape of an already-fetched record
   - TVL on >1 chains                      -> protocol, high
   - TVL on one chain == own name/symbol   -> chain, high
   - TVL on one other chain                -> protocol, medium
   - TVL with no chain list                -> chain, medium
   - protocol category keyword             -> protocol, high
   - category "chain"                      -> chain, high
   exchange patterns (no stronger signal)  -> exchange, medium
5. Prior type                              -> prior, low
   otherwise                               -> token, low

Pure: no I/O, static tables only.

============================================================
"""

import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from identity.aliases import normalize_query, resolve_alias
from identity.blockchain_registry import find_blockchain
from identity.types import Classification, Confidence, DataHints, EntityType


CHAIN_NAME_PATTERNS: Tuple[re.Pattern, ...] = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"chain$",
        r"network$",
        r"blockchain$",
        r"^l1",
        r"^l2",
        r"layer[- ]?[12]",
        r"rollup$",
        r"^zk",
        r"sidechain$",
    )
)

EXCHANGE_NAME_PATTERNS: Tuple[re.Pattern, ...] = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (r"exchange$", r"swap$", r"dex$", r"^dex")
)

PROTOCOL_CATEGORIES: Tuple[str, ...] = (
    "dex",
    "lending",
    "yield",
    "derivatives",
    "cdp",
    "synthetics",
    "liquid staking",
    "bridge",
    "staking",
    "options",
    "prediction market",
    "insurance",
    "algo-stables",
    "indexes",
    "reserve currency",
    "launchpad",
)


def classify(query: Optional[str], hints: Optional[DataHints] = None) -> Classification:
    """
    Classify a query, optionally using the shape of fetched data.

    Args:
        query: Raw user query or item name
        hints: Data-shape hints and prior type

    Returns:
        Classification (type, confidence, reason)
    """
    hints = hints or DataHints()
    name = normalize_query(hints.name or query)
    candidates = [
        c for c in (name, normalize_query(query), normalize_query(hints.symbol), normalize_query(hints.item_id)) if c
    ]

    # 1. registry
    for candidate in candidates:
        entry = find_blockchain(candidate)
        if entry is not None:
            return Classification(
                EntityType.CHAIN,
                Confidence.HIGH,
                f"Blockchain registry hit '{entry.id}' ({entry.category})",
            )

    # 2. aliases
    for candidate in candidates:
        alias = resolve_alias(candidate)
        if alias is not None:
            return Classification(
                alias.entity_type,
                Confidence.HIGH,
                f"Known alias '{alias.display_name}' declared as {alias.entity_type.value}",
            )

    symbol = normalize_query(hints.symbol)

    # 3. name patterns
    for pattern in CHAIN_NAME_PATTERNS:
        if pattern.search(name) or (symbol and pattern.search(symbol)):
            return Classification(
                EntityType.CHAIN,
                Confidence.MEDIUM,
                f"Name matches chain pattern {pattern.pattern}",
            )

    has_tvl = bool(hints.tvl)
    chains = [c.lower() for c in hints.chains if c]
    exchange_like = any(p.search(name) for p in EXCHANGE_NAME_PATTERNS)

    if exchange_like and has_tvl and chains:
        return Classification(
            EntityType.PROTOCOL,
            Confidence.MEDIUM,
            "Exchange-style name with TVL on chains",
        )

    # 4. data shape
    if has_tvl and len(chains) > 1:
        return Classification(
            EntityType.PROTOCOL,
            Confidence.HIGH,
            f"TVL spread across {len(chains)} chains",
        )

    if has_tvl and len(chains) == 1:
        if chains[0] == name or (symbol and chains[0] == symbol):
            return Classification(
                EntityType.CHAIN,
                Confidence.HIGH,
                "TVL reported on its own chain",
            )
        return Classification(
            EntityType.PROTOCOL,
            Confidence.MEDIUM,
            f"TVL deployed on {hints.chains[0]}",
        )

    if has_tvl and not chains:
        return Classification(
            EntityType.CHAIN,
            Confidence.MEDIUM,
            "TVL without a chain breakdown",
        )

    if hints.category:
        category = hints.category.lower()
        if any(keyword in category for keyword in PROTOCOL_CATEGORIES):
            return Classification(
                EntityType.PROTOCOL,
                Confidence.HIGH,
                f"Provider category '{hints.category}'",
            )
        if category == "chain":
            return Classification(
                EntityType.CHAIN,
                Confidence.HIGH,
                "Provider category 'Chain'",
            )

    if exchange_like:
        return Classification(
            EntityType.EXCHANGE,
            Confidence.MEDIUM,
            "Exchange-style name",
        )

    # 5. fallback
    if hints.prior_type is not None:
        return Classification(
            hints.prior_type,
            Confidence.LOW,
            f"Prior type from source: {hints.prior_type.value}",
        )

    return Classification(EntityType.TOKEN, Confidence.LOW, "No registry or data signal; assuming token")


def should_reclassify(current: EntityType, classification: Classification) -> Optional[EntityType]:
    """
    Corrected type for an item, or None if the current type stands.

    High-confidence disagreement always wins; medium-confidence
    chain/protocol only overrides a token.
    """
    if classification.entity_type == current:
        return None
    if classification.confidence == Confidence.HIGH:
        return classification.entity_type
    if (
        classification.confidence == Confidence.MEDIUM
        and classification.entity_type in (EntityType.CHAIN, EntityType.PROTOCOL)
        and current == EntityType.TOKEN
    ):
        return classification.entity_type
    return None


@dataclass
class BatchClassification:
    """Result of classify_batch."""

    results: List[Tuple[DataHints, Classification]] = field(default_factory=list)

    @property
    def stats(self) -> Dict[str, int]:
        counts = {t.value: 0 for t in EntityType}
        high = 0
        reclassified = 0
        for hints, result in self.results:
            counts[result.entity_type.value] += 1
            if result.confidence == Confidence.HIGH:
                high += 1
            if hints.prior_type is not None and hints.prior_type != result.entity_type:
                reclassified += 1
        return {
            "total": len(self.results),
            **counts,
            "high_confidence": high,
            "reclassified": reclassified,
        }


def classify_batch(items: Iterable[DataHints]) -> BatchClassification:
    """Classify many items (by their name) and collect statistics."""
    batch = BatchClassification()
    for hints in items:
        batch.results.append((hints, classify(hints.name, hints)))
    return batch


def infer_category(entity_type: EntityType) -> str:
    return entity_type.display_category
