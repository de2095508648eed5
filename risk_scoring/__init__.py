"""
Risk Scoring Engine - Package.

============================================================
PURPOSE
============================================================
Heuristic fundamental risk assessment for a single asset.

============================================================
HEURISTICS
============================================================
1. Supply distribution: circulating / total
2. Dilution: FDV / market cap
3. Liquidity: 24h volume / market cap
4. Valuation: market cap / TVL
5. TVL momentum: 7d TVL change
6. Price momentum: 7d price change
7. Market cap tier: large / mid / small

============================================================
SCORING
============================================================
Start at 50, -15 per flag, -5 per warning, +8 per positive,
clamped to 0-100.

- EXCELLENT (80+), GOOD (60+), FAIR (40+), POOR (20+), CRITICAL

============================================================
USAGE
============================================================
    from risk_scoring import RiskScoringEngine

    engine = RiskScoringEngine()
    assessment = engine.assess_risk(record)
    result = engine.score(assessment)
    print(result.classification, result.score)

============================================================
"""

from .assessors import (
    BaseHeuristic,
    DilutionHeuristic,
    LiquidityHeuristic,
    MarketCapTierHeuristic,
    PriceMomentumHeuristic,
    SupplyDistributionHeuristic,
    TvlMomentumHeuristic,
    ValuationHeuristic,
    market_cap_tier,
)
from .config import RiskHeuristicsConfig, RiskScoringConfig, ScoringConfig
from .engine import RiskScoringEngine, assess_risk, band_for_score, score
from .types import (
    FindingSeverity,
    RiskAssessment,
    RiskBand,
    RiskFinding,
    RiskInput,
    RiskScore,
    RiskScoringError,
)


__all__ = [
    "BaseHeuristic",
    "DilutionHeuristic",
    "LiquidityHeuristic",
    "MarketCapTierHeuristic",
    "PriceMomentumHeuristic",
    "SupplyDistributionHeuristic",
    "TvlMomentumHeuristic",
    "ValuationHeuristic",
    "market_cap_tier",
    "RiskHeuristicsConfig",
    "RiskScoringConfig",
    "ScoringConfig",
    "RiskScoringEngine",
    "assess_risk",
    "band_for_score",
    "score",
    "FindingSeverity",
    "RiskAssessment",
    "RiskBand",
    "RiskFinding",
    "RiskInput",
    "RiskScore",
    "RiskScoringError",
]
