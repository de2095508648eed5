"""
Risk Scoring Engine - Type Definitions.

============================================================
PURPOSE
============================================================
Data contracts for the Risk Scoring Engine.

Input:   RiskInput (metric view of an aggregated record)
Middle:  RiskFinding / RiskAssessment (flags, warnings, positives)
Output:  RiskScore (0-100, band classification, recommendation)

============================================================
DESIGN PRINCIPLES
============================================================
- All types are immutable
- Enums for discrete values
- Pure functions of the input; nothing persisted

============================================================
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


# ============================================================
# ENUMS
# ============================================================


class FindingSeverity(str, Enum):
    """
    Polarity of a single heuristic outcome.

    - FLAG: serious red flag
    - WARNING: point of attention
    - POSITIVE: favourable signal
    """

    FLAG = "flag"
    WARNING = "warning"
    POSITIVE = "positive"


class RiskBand(str, Enum):
    """
    Score band with its fixed classification and recommendation.

    Score Range:
    - EXCELLENT: 80-100
    - GOOD: 60-79
    - FAIR: 40-59
    - POOR: 20-39
    - CRITICAL: 0-19
    """

    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"
    CRITICAL = "critical"

    @property
    def classification(self) -> str:
        return _BAND_TEXT[self][0]

    @property
    def recommendation(self) -> str:
        return _BAND_TEXT[self][1]


_BAND_TEXT: Dict[RiskBand, tuple] = {
    RiskBand.EXCELLENT: (
        "EXCELLENT - Low Risk",
        "Project with solid fundamentals. Suitable for conservative and long-term investors.",
    ),
    RiskBand.GOOD: (
        "GOOD - Moderate Risk",
        "Project with good fundamentals but some points of attention. Suitable for a moderate risk profile.",
    ),
    RiskBand.FAIR: (
        "FAIR - Elevated Risk",
        "Project with significant risks. Only for experienced investors with risk tolerance.",
    ),
    RiskBand.POOR: (
        "POOR - High Risk",
        "Project with multiple red flags. High risk of loss. Consider avoiding it or investing only minimal amounts.",
    ),
    RiskBand.CRITICAL: (
        "CRITICAL - Extreme Risk",
        "AVOID! Multiple critical red flags identified. Extreme risk of total capital loss.",
    ),
}


# ============================================================
# INPUT DATA CONTRACT
# ============================================================


@dataclass(frozen=True)
class RiskInput:
    """
    Metrics the heuristics read.

    Built from an aggregated record (or anything exposing the same
    attribute names); every field is optional.
    """

    market_cap: Optional[float] = None
    fdv: Optional[float] = None
    volume_24h: Optional[float] = None
    circulating_supply: Optional[float] = None
    total_supply: Optional[float] = None
    tvl: Optional[float] = None
    tvl_change_7d: Optional[float] = None
    price_change_7d: Optional[float] = None

    @classmethod
    def from_record(cls, record: Any) -> "RiskInput":
        tvl_change = getattr(record, "tvl_change", None) or {}
        price_change = getattr(record, "price_change", None) or {}
        return cls(
            market_cap=getattr(record, "market_cap", None),
            fdv=getattr(record, "fdv", None),
            volume_24h=getattr(record, "volume_24h", None),
            circulating_supply=getattr(record, "circulating_supply", None),
            total_supply=getattr(record, "total_supply", None),
            tvl=getattr(record, "tvl", None),
            tvl_change_7d=tvl_change.get("7d"),
            price_change_7d=price_change.get("7d"),
        )


# ============================================================
# ASSESSMENT
# ============================================================


@dataclass(frozen=True)
class RiskFinding:
    """One heuristic outcome."""

    heuristic: str
    severity: FindingSeverity
    message: str
    value: Optional[float] = None


@dataclass(frozen=True)
class RiskAssessment:
    """
    Flags, warnings and positives derived from one record.

    Order follows heuristic evaluation order.
    """

    findings: List[RiskFinding] = field(default_factory=list)

    def _messages(self, severity: FindingSeverity) -> List[str]:
        return [f.message for f in self.findings if f.severity == severity]

    @property
    def flags(self) -> List[str]:
        return self._messages(FindingSeverity.FLAG)

    @property
    def warnings(self) -> List[str]:
        return self._messages(FindingSeverity.WARNING)

    @property
    def positives(self) -> List[str]:
        return self._messages(FindingSeverity.POSITIVE)

    def with_finding(self, finding: RiskFinding) -> "RiskAssessment":
        return RiskAssessment(findings=[*self.findings, finding])

    def to_dict(self) -> Dict[str, Any]:
        return {
            "flags": self.flags,
            "warnings": self.warnings,
            "positives": self.positives,
        }


# ============================================================
# OUTPUT
# ============================================================


@dataclass(frozen=True)
class RiskScore:
    """Final 0-100 score with its band."""

    score: int
    band: RiskBand

    @property
    def classification(self) -> str:
        return self.band.classification

    @property
    def recommendation(self) -> str:
        return self.band.recommendation

    def to_dict(self) -> Dict[str, Any]:
        return {
            "score": self.score,
            "classification": self.classification,
            "recommendation": self.recommendation,
        }


# ============================================================
# ERROR TYPES
# ============================================================


class RiskScoringError(Exception):
    """Base exception for risk scoring errors."""

    def __init__(self, message: str, heuristic: Optional[str] = None) -> None:
        super().__init__(message)
        self.heuristic = heuristic
