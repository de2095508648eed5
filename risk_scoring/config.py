"""
Risk Scoring Engine - Configuration.

============================================================
PURPOSE
============================================================
Thresholds for every heuristic and the scoring weights.

============================================================
THRESHOLD PHILOSOPHY
============================================================
Each heuristic maps a ratio or percentage to at most one
finding: a flag, a warning or a positive. Values between the
thresholds produce nothing where noted.

Scoring starts at a neutral base, subtracts per flag and per
warning, adds per positive, and clamps to [0, 100].

============================================================
"""

from dataclasses import dataclass, field
from typing import Any, Dict


# ============================================================
# HEURISTIC THRESHOLDS
# ============================================================


@dataclass(frozen=True)
class RiskHeuristicsConfig:
    """
    Thresholds for the asset heuristics.

    ============================================================
    THRESHOLDS
    ============================================================
    Circulating / total supply (%):
    - FLAG below 30, WARNING below 50, POSITIVE otherwise

    FDV / market cap (x):
    - FLAG above 10, WARNING above 3, POSITIVE below 1.5

    24h volume / market cap (%):
    - FLAG below 1, WARNING below 5, POSITIVE otherwise

    Market cap / TVL (x):
    - POSITIVE below 0.5, WARNING above 3

    7d TVL change (%):
    - FLAG below -20, POSITIVE above +20

    7d price change (%):
    - WARNING below -30

    Market cap tier (USD):
    - large >= 10B (POSITIVE), mid >= 1B, small otherwise (WARNING)

    ============================================================
    """

    circulating_flag_pct: float = 30.0
    circulating_warning_pct: float = 50.0

    fdv_ratio_flag: float = 10.0
    fdv_ratio_warning: float = 3.0
    fdv_ratio_positive: float = 1.5

    volume_flag_pct: float = 1.0
    volume_warning_pct: float = 5.0

    mcap_tvl_positive: float = 0.5
    mcap_tvl_warning: float = 3.0

    tvl_drop_flag_pct: float = -20.0
    tvl_growth_positive_pct: float = 20.0

    price_drop_warning_pct: float = -30.0

    large_cap_usd: float = 10e9
    mid_cap_usd: float = 1e9

    def to_dict(self) -> Dict[str, Any]:
        return {
            "circulating_flag_pct": self.circulating_flag_pct,
            "circulating_warning_pct": self.circulating_warning_pct,
            "fdv_ratio_flag": self.fdv_ratio_flag,
            "fdv_ratio_warning": self.fdv_ratio_warning,
            "fdv_ratio_positive": self.fdv_ratio_positive,
            "volume_flag_pct": self.volume_flag_pct,
            "volume_warning_pct": self.volume_warning_pct,
            "mcap_tvl_positive": self.mcap_tvl_positive,
            "mcap_tvl_warning": self.mcap_tvl_warning,
            "tvl_drop_flag_pct": self.tvl_drop_flag_pct,
            "tvl_growth_positive_pct": self.tvl_growth_positive_pct,
            "price_drop_warning_pct": self.price_drop_warning_pct,
            "large_cap_usd": self.large_cap_usd,
            "mid_cap_usd": self.mid_cap_usd,
        }


# ============================================================
# SCORING WEIGHTS
# ============================================================


@dataclass(frozen=True)
class ScoringConfig:
    """
    Score arithmetic and band boundaries.

    score = base - flags*flag_penalty - warnings*warning_penalty
            + positives*positive_bonus, clamped to [min_score, max_score]
    """

    base_score: int = 50
    flag_penalty: int = 15
    warning_penalty: int = 5
    positive_bonus: int = 8
    min_score: int = 0
    max_score: int = 100

    excellent_min: int = 80
    good_min: int = 60
    fair_min: int = 40
    poor_min: int = 20

    def to_dict(self) -> Dict[str, Any]:
        return {
            "base_score": self.base_score,
            "flag_penalty": self.flag_penalty,
            "warning_penalty": self.warning_penalty,
            "positive_bonus": self.positive_bonus,
            "bands": {
                "excellent": self.excellent_min,
                "good": self.good_min,
                "fair": self.fair_min,
                "poor": self.poor_min,
            },
        }


# ============================================================
# COMBINED
# ============================================================


@dataclass(frozen=True)
class RiskScoringConfig:
    """Complete engine configuration."""

    heuristics: RiskHeuristicsConfig = field(default_factory=RiskHeuristicsConfig)
    scoring: ScoringConfig = field(default_factory=ScoringConfig)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "heuristics": self.heuristics.to_dict(),
            "scoring": self.scoring.to_dict(),
        }
