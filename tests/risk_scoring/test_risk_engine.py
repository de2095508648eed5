"""
Tests for the risk heuristics, score arithmetic and bands.

============================================================
TEST PRINCIPLES:
- Each heuristic is checked at its thresholds
- Missing or zero metrics never produce a finding
- Score = 50 - 15*flags - 5*warnings + 8*positives, clamped
============================================================
"""

import pytest

from risk_scoring import (
    DilutionHeuristic,
    FindingSeverity,
    LiquidityHeuristic,
    MarketCapTierHeuristic,
    PriceMomentumHeuristic,
    RiskAssessment,
    RiskBand,
    RiskFinding,
    RiskHeuristicsConfig,
    RiskInput,
    RiskScoringConfig,
    RiskScoringEngine,
    RiskScoringError,
    ScoringConfig,
    SupplyDistributionHeuristic,
    TvlMomentumHeuristic,
    ValuationHeuristic,
    assess_risk,
    band_for_score,
    market_cap_tier,
    score,
)


def finding(severity: FindingSeverity) -> RiskFinding:
    return RiskFinding(heuristic="test", severity=severity, message=severity.value)


def assessment_with(flags: int = 0, warnings: int = 0, positives: int = 0) -> RiskAssessment:
    findings = (
        [finding(FindingSeverity.FLAG)] * flags
        + [finding(FindingSeverity.WARNING)] * warnings
        + [finding(FindingSeverity.POSITIVE)] * positives
    )
    return RiskAssessment(findings=findings)


# ============================================================
# HEURISTICS
# ============================================================

class TestSupplyDistribution:

    @pytest.mark.parametrize("circulating,severity", [
        (25, FindingSeverity.FLAG),
        (45, FindingSeverity.WARNING),
        (50, FindingSeverity.POSITIVE),
    ])
    def test_thresholds(self, circulating, severity):
        result = SupplyDistributionHeuristic().evaluate(RiskInput(circulating_supply=circulating, total_supply=100))
        assert result.severity == severity
        assert result.value == pytest.approx(circulating)

    def test_message(self):
        result = SupplyDistributionHeuristic().evaluate(RiskInput(circulating_supply=25, total_supply=100))
        assert result.message == "Only 25.0% of supply in circulation - high dilution risk"

    def test_missing_or_zero(self):
        heuristic = SupplyDistributionHeuristic()
        assert heuristic.evaluate(RiskInput(circulating_supply=10)) is None
        assert heuristic.evaluate(RiskInput(circulating_supply=10, total_supply=0)) is None


class TestDilution:

    @pytest.mark.parametrize("fdv,severity", [
        (1100, FindingSeverity.FLAG),
        (400, FindingSeverity.WARNING),
        (120, FindingSeverity.POSITIVE),
    ])
    def test_thresholds(self, fdv, severity):
        result = DilutionHeuristic().evaluate(RiskInput(fdv=fdv, market_cap=100))
        assert result.severity == severity

    def test_neutral_band(self):
        assert DilutionHeuristic().evaluate(RiskInput(fdv=200, market_cap=100)) is None

    def test_message(self):
        result = DilutionHeuristic().evaluate(RiskInput(fdv=2000, market_cap=100))
        assert result.message == "FDV/MCap ratio of 20.0x - extreme dilution ahead"


class TestLiquidity:

    @pytest.mark.parametrize("volume,severity", [
        (0.5, FindingSeverity.FLAG),
        (3, FindingSeverity.WARNING),
        (5, FindingSeverity.POSITIVE),
    ])
    def test_thresholds(self, volume, severity):
        result = LiquidityHeuristic().evaluate(RiskInput(volume_24h=volume, market_cap=100))
        assert result.severity == severity


class TestValuation:

    def test_undervalued(self):
        result = ValuationHeuristic().evaluate(RiskInput(market_cap=40, tvl=100))
        assert result.severity == FindingSeverity.POSITIVE
        assert "undervalued" in result.message

    def test_overvalued(self):
        result = ValuationHeuristic().evaluate(RiskInput(market_cap=400, tvl=100))
        assert result.severity == FindingSeverity.WARNING

    def test_neutral(self):
        assert ValuationHeuristic().evaluate(RiskInput(market_cap=200, tvl=100)) is None

    def test_no_tvl(self):
        assert ValuationHeuristic().evaluate(RiskInput(market_cap=200)) is None


class TestMomentum:

    def test_tvl_drop(self):
        result = TvlMomentumHeuristic().evaluate(RiskInput(tvl_change_7d=-25.0))
        assert result.severity == FindingSeverity.FLAG
        assert result.message == "TVL fell 25.0% in 7 days - capital outflow"

    def test_tvl_growth(self):
        assert TvlMomentumHeuristic().evaluate(RiskInput(tvl_change_7d=30.0)).severity == FindingSeverity.POSITIVE

    def test_tvl_flat(self):
        assert TvlMomentumHeuristic().evaluate(RiskInput(tvl_change_7d=-5.0)) is None

    def test_price_drop(self):
        assert PriceMomentumHeuristic().evaluate(RiskInput(price_change_7d=-35.0)).severity == FindingSeverity.WARNING
        assert PriceMomentumHeuristic().evaluate(RiskInput(price_change_7d=-10.0)) is None


class TestMarketCapTier:

    def test_large(self):
        result = MarketCapTierHeuristic().evaluate(RiskInput(market_cap=50e9))
        assert result.severity == FindingSeverity.POSITIVE
        assert result.message == "Large-Cap - established project"

    def test_mid_is_neutral(self):
        assert MarketCapTierHeuristic().evaluate(RiskInput(market_cap=5e9)) is None

    def test_small(self):
        assert MarketCapTierHeuristic().evaluate(RiskInput(market_cap=5e8)).severity == FindingSeverity.WARNING

    def test_labels(self):
        assert market_cap_tier(50e9) == "Large-Cap"
        assert market_cap_tier(5e9) == "Mid-Cap"
        assert market_cap_tier(5e8) == "Small-Cap"
        assert market_cap_tier(None) is None

    def test_tiers_follow_config(self):
        config = RiskHeuristicsConfig(large_cap_usd=1e9, mid_cap_usd=1e8)
        result = MarketCapTierHeuristic(config).evaluate(RiskInput(market_cap=5e9))
        assert result.severity == FindingSeverity.POSITIVE
        assert MarketCapTierHeuristic(config).evaluate(RiskInput(market_cap=5e8)) is None


# ============================================================
# SCORING
# ============================================================

class TestScore:

    def test_neutral_start(self):
        result = score(RiskAssessment())
        assert result.score == 50
        assert result.band == RiskBand.FAIR

    def test_arithmetic(self):
        assert score(assessment_with(flags=1, warnings=2, positives=3)).score == 50 - 15 - 10 + 24

    def test_clamped_low(self):
        result = score(assessment_with(flags=5))
        assert result.score == 0
        assert result.band == RiskBand.CRITICAL
        assert result.recommendation.startswith("AVOID!")

    def test_clamped_high(self):
        assert score(assessment_with(positives=10)).score == 100

    @pytest.mark.parametrize("value,band", [
        (100, RiskBand.EXCELLENT),
        (80, RiskBand.EXCELLENT),
        (79, RiskBand.GOOD),
        (60, RiskBand.GOOD),
        (59, RiskBand.FAIR),
        (40, RiskBand.FAIR),
        (39, RiskBand.POOR),
        (20, RiskBand.POOR),
        (19, RiskBand.CRITICAL),
        (0, RiskBand.CRITICAL),
    ])
    def test_bands(self, value, band):
        assert band_for_score(value) == band

    def test_to_dict(self):
        data = score(assessment_with(positives=4)).to_dict()
        assert data["score"] == 82
        assert data["classification"] == "EXCELLENT - Low Risk"
        assert data["recommendation"]

    def test_custom_penalty(self):
        engine = RiskScoringEngine(RiskScoringConfig(scoring=ScoringConfig(flag_penalty=20)))
        assert engine.score(assessment_with(flags=1)).score == 30


# ============================================================
# ENGINE
# ============================================================

class TestEngine:

    def test_healthy_large_cap(self, make_record):
        record = make_record(
            market_cap=50e9,
            fdv=55e9,
            volume_24h=5e9,
            circulating_supply=90e6,
            total_supply=100e6,
            tvl=20e9,
            tvl_change={"7d": 25.0},
            price_change={"7d": 5.0},
        )
        assessment, result = RiskScoringEngine().analyze(record)

        assert assessment.flags == []
        assert assessment.warnings == []
        assert len(assessment.positives) == 5
        assert result.score == 90
        assert result.band == RiskBand.EXCELLENT

    def test_risky_small_cap(self, make_record):
        record = make_record(
            market_cap=50e6,
            fdv=1e9,
            volume_24h=1e5,
            circulating_supply=10e6,
            total_supply=100e6,
            tvl=10e6,
            tvl_change={"7d": -30.0},
            price_change={"7d": -40.0},
        )
        assessment, result = RiskScoringEngine().analyze(record)

        assert len(assessment.flags) == 4
        assert len(assessment.warnings) == 3
        assert assessment.positives == []
        assert result.score == 0
        assert result.classification == "CRITICAL - Extreme Risk"

    def test_findings_in_heuristic_order(self, make_record):
        record = make_record(market_cap=5e8, circulating_supply=10, total_supply=100)
        names = [f.heuristic for f in assess_risk(record).findings]
        assert names == ["supply_distribution", "market_cap_tier"]

    def test_empty_record(self, make_record):
        assessment = assess_risk(make_record())
        assert assessment.to_dict() == {"flags": [], "warnings": [], "positives": []}

    def test_missing_record(self):
        with pytest.raises(RiskScoringError):
            assess_risk(None)

    def test_accepts_risk_input(self):
        assessment = assess_risk(RiskInput(market_cap=50e9))
        assert assessment.positives == ["Large-Cap - established project"]
