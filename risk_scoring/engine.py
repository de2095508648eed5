"""
Risk Scoring Engine - Main Engine.

============================================================
PURPOSE
============================================================
Runs every heuristic over a record and turns the resulting
flags, warnings and positives into a 0-100 score.

============================================================
FLOW
============================================================
1. Build RiskInput from the record
2. Evaluate heuristics in fixed order
3. Collect findings into a RiskAssessment
4. Apply score arithmetic and pick the band

Both steps are pure; the same record always yields the same
assessment and score.

============================================================
"""

import logging
from typing import Any, List, Optional, Tuple

from .assessors import (
    BaseHeuristic,
    DilutionHeuristic,
    LiquidityHeuristic,
    MarketCapTierHeuristic,
    PriceMomentumHeuristic,
    SupplyDistributionHeuristic,
    TvlMomentumHeuristic,
    ValuationHeuristic,
)
from .config import RiskScoringConfig, ScoringConfig
from .types import RiskAssessment, RiskBand, RiskInput, RiskScore, RiskScoringError


logger = logging.getLogger(__name__)


class RiskScoringEngine:
    """
    Fundamental risk scoring for one asset.

    Usage:
        engine = RiskScoringEngine()
        assessment = engine.assess_risk(record)
        result = engine.score(assessment)
    """

    def __init__(self, config: Optional[RiskScoringConfig] = None):
        self._config = config or RiskScoringConfig()
        heuristics = self._config.heuristics
        self._heuristics: List[BaseHeuristic] = [
            SupplyDistributionHeuristic(heuristics),
            DilutionHeuristic(heuristics),
            LiquidityHeuristic(heuristics),
            ValuationHeuristic(heuristics),
            TvlMomentumHeuristic(heuristics),
            PriceMomentumHeuristic(heuristics),
            MarketCapTierHeuristic(heuristics),
        ]

    @property
    def config(self) -> RiskScoringConfig:
        return self._config

    def assess_risk(self, record: Any) -> RiskAssessment:
        """Evaluate every heuristic against an aggregated record."""
        if record is None:
            raise RiskScoringError("Cannot assess a missing record")

        data = record if isinstance(record, RiskInput) else RiskInput.from_record(record)
        assessment = RiskAssessment()
        for heuristic in self._heuristics:
            finding = heuristic.evaluate(data)
            if finding is not None:
                assessment = assessment.with_finding(finding)

        logger.debug(
            f"[risk] {getattr(record, 'name', '?')}: flags={len(assessment.flags)} "
            f"warnings={len(assessment.warnings)} positives={len(assessment.positives)}"
        )
        return assessment

    def score(self, assessment: RiskAssessment) -> RiskScore:
        """Turn an assessment into a clamped score and band."""
        s = self._config.scoring
        raw = (
            s.base_score
            - len(assessment.flags) * s.flag_penalty
            - len(assessment.warnings) * s.warning_penalty
            + len(assessment.positives) * s.positive_bonus
        )
        value = max(s.min_score, min(s.max_score, raw))
        return RiskScore(score=value, band=band_for_score(value, s))

    def analyze(self, record: Any) -> Tuple[RiskAssessment, RiskScore]:
        assessment = self.assess_risk(record)
        return assessment, self.score(assessment)


# ============================================================
# CONVENIENCE FUNCTIONS
# ============================================================


def band_for_score(value: int, scoring: Optional[ScoringConfig] = None) -> RiskBand:
    s = scoring or ScoringConfig()
    if value >= s.excellent_min:
        return RiskBand.EXCELLENT
    if value >= s.good_min:
        return RiskBand.GOOD
    if value >= s.fair_min:
        return RiskBand.FAIR
    if value >= s.poor_min:
        return RiskBand.POOR
    return RiskBand.CRITICAL


_default_engine = RiskScoringEngine()


def assess_risk(record: Any) -> RiskAssessment:
    """Assess a record with the default configuration."""
    return _default_engine.assess_risk(record)


def score(assessment: RiskAssessment) -> RiskScore:
    """Score an assessment with the default configuration."""
    return _default_engine.score(assessment)
