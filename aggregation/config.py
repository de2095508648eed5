"""
Aggregation Configuration.

Tunable constants for the reconciliation pass. The scrape allow-list
and the low-TVL floor are empirically tuned and kept here so they
can be adjusted without touching the merge code.
"""

import os
from dataclasses import dataclass
from typing import Any, Dict, Tuple

from core.config import env_float


DEFAULT_SCRAPE_PRIORITY: Tuple[str, ...] = (
    "solana", "sol",
    "ethereum", "eth",
    "bitcoin", "btc",
    "binance", "bnb",
    "avalanche", "avax",
    "polygon", "matic",
    "arbitrum",
    "optimism",
    "base",
    "blast",
)


@dataclass(frozen=True)
class AggregatorConfig:
    """
    Aggregator settings.

    Attributes:
        deadline_seconds: Global deadline around the provider fan-out
        scrape_priority: Names whose protocol TVL is taken from the
            rendered page first
        low_tvl_floor: API TVL below this triggers a confirmatory scrape
        always_scrape_chains: Chains try the rendered page first
        fetch_price_history: Fetch price series when a market id is known
    """

    deadline_seconds: float = 25.0
    scrape_priority: Tuple[str, ...] = DEFAULT_SCRAPE_PRIORITY
    low_tvl_floor: float = 1_000_000.0
    always_scrape_chains: bool = True
    fetch_price_history: bool = True

    def prioritizes_scrape(self, query: str) -> bool:
        """Substring match of the query against the allow-list."""
        lowered = (query or "").lower()
        return any(term in lowered for term in self.scrape_priority)

    @classmethod
    def from_env(cls) -> "AggregatorConfig":
        priority = os.getenv("SCRAPE_PRIORITY")
        return cls(
            deadline_seconds=env_float("AGGREGATOR_DEADLINE_SECONDS", 25.0),
            scrape_priority=(
                tuple(t.strip().lower() for t in priority.split(",") if t.strip())
                if priority
                else DEFAULT_SCRAPE_PRIORITY
            ),
            low_tvl_floor=env_float("LOW_TVL_FLOOR", 1_000_000.0),
            always_scrape_chains=os.getenv("ALWAYS_SCRAPE_CHAINS", "true").lower() != "false",
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "deadline_seconds": self.deadline_seconds,
            "scrape_priority": list(self.scrape_priority),
            "low_tvl_floor": self.low_tvl_floor,
            "always_scrape_chains": self.always_scrape_chains,
            "fetch_price_history": self.fetch_price_history,
        }
