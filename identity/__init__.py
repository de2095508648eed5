"""
Identity Package.

Static alias/registry tables and the entity-type classifier.
"""

from identity.aliases import (
    KNOWN_ALIASES,
    generate_query_variations,
    normalize_query,
    resolve_alias,
)
from identity.blockchain_registry import BLOCKCHAIN_REGISTRY, find_blockchain
from identity.chain_mappings import CHAIN_MAPPINGS, find_chain_mapping, is_known_chain
from identity.classifier import (
    classify,
    classify_batch,
    infer_category,
    should_reclassify,
)
from identity.types import (
    AliasEntry,
    BlockchainEntry,
    ChainMapping,
    Classification,
    Confidence,
    DataHints,
    EntityType,
)


__all__ = [
    "KNOWN_ALIASES",
    "BLOCKCHAIN_REGISTRY",
    "CHAIN_MAPPINGS",
    "generate_query_variations",
    "normalize_query",
    "resolve_alias",
    "find_blockchain",
    "find_chain_mapping",
    "is_known_chain",
    "classify",
    "classify_batch",
    "infer_category",
    "should_reclassify",
    "AliasEntry",
    "BlockchainEntry",
    "ChainMapping",
    "Classification",
    "Confidence",
    "DataHints",
    "EntityType",
]
