"""
Identity - Type Definitions.

Enums and immutable records shared by the alias store, the
registries and the classifier.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional


class EntityType(str, Enum):
    """What a query refers to. Selects the provider fallback chain."""

    CHAIN = "chain"
    PROTOCOL = "protocol"
    TOKEN = "token"
    EXCHANGE = "exchange"

    @property
    def display_category(self) -> str:
        """Category label inferred from the type alone."""
        return self.value.capitalize()


class Confidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass(frozen=True)
class Classification:
    """Classifier verdict."""

    entity_type: EntityType
    confidence: Confidence
    reason: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.entity_type.value,
            "confidence": self.confidence.value,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class DataHints:
    """
    Shape of an already-fetched record, used by the data-shape rules.

    All fields optional; an empty DataHints only carries the prior type.
    """

    name: Optional[str] = None
    symbol: Optional[str] = None
    item_id: Optional[str] = None
    chains: tuple = ()
    category: Optional[str] = None
    tvl: Optional[float] = None
    prior_type: Optional[EntityType] = None


@dataclass(frozen=True)
class AliasEntry:
    """
    Manually curated mapping from user queries to provider ids.

    queries are lowercase. At most one entry should match a given
    query exactly.
    """

    queries: FrozenSet[str]
    entity_type: EntityType
    display_name: str
    symbol: Optional[str] = None
    canonical_chain_id: Optional[str] = None
    canonical_market_id: Optional[str] = None

    @property
    def category(self) -> str:
        return self.entity_type.display_category


@dataclass(frozen=True)
class ChainMapping:
    """Chain names/symbols to the chain API name and market-data id."""

    key: str
    names: FrozenSet[str]
    symbols: FrozenSet[str]
    chain_api_name: str
    market_api_id: Optional[str]
    category: str


@dataclass(frozen=True)
class BlockchainEntry:
    """Definitive list of known base networks."""

    id: str
    name: str
    symbol: str
    aliases: FrozenSet[str] = field(default_factory=frozenset)
    category: str = "layer1"
    coingecko_id: Optional[str] = None
    defillama_name: Optional[str] = None
