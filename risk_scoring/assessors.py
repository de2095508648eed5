"""
Risk Scoring Engine - Heuristics.

============================================================
PURPOSE
============================================================
One heuristic per fundamental ratio.

Each heuristic:
1. Reads the metrics it needs from RiskInput
2. Skips silently when a metric is missing or zero
3. Returns at most one RiskFinding

============================================================
ASSESSMENT LOGIC PATTERN
============================================================
For each ratio:
    if ratio crosses FLAG threshold:
        FLAG
    elif ratio crosses WARNING threshold:
        WARNING
    elif ratio crosses POSITIVE threshold:
        POSITIVE
    else:
        nothing

============================================================
"""

from abc import ABC, abstractmethod
from typing import Optional

from .config import RiskHeuristicsConfig
from .types import FindingSeverity, RiskFinding, RiskInput


# ============================================================
# BASE HEURISTIC
# ============================================================


class BaseHeuristic(ABC):
    """
    Abstract base class for risk heuristics.

    Subclasses declare a `name` and implement `evaluate`.
    """

    def __init__(self, config: Optional[RiskHeuristicsConfig] = None):
        self._config = config or RiskHeuristicsConfig()

    @property
    @abstractmethod
    def name(self) -> str:
        """Stable identifier of this heuristic."""
        pass

    @abstractmethod
    def evaluate(self, data: RiskInput) -> Optional[RiskFinding]:
        """Return a finding, or None when nothing applies."""
        pass

    def _finding(self, severity: FindingSeverity, message: str, value: float) -> RiskFinding:
        return RiskFinding(heuristic=self.name, severity=severity, message=message, value=value)

    @staticmethod
    def _ratio(numerator: Optional[float], denominator: Optional[float]) -> Optional[float]:
        if not numerator or not denominator:
            return None
        return numerator / denominator


# ============================================================
# SUPPLY DISTRIBUTION
# ============================================================


class SupplyDistributionHeuristic(BaseHeuristic):
    """Circulating share of total supply."""

    @property
    def name(self) -> str:
        return "supply_distribution"

    def evaluate(self, data: RiskInput) -> Optional[RiskFinding]:
        ratio = self._ratio(data.circulating_supply, data.total_supply)
        if ratio is None:
            return None
        pct = ratio * 100
        c = self._config
        if pct < c.circulating_flag_pct:
            return self._finding(
                FindingSeverity.FLAG,
                f"Only {pct:.1f}% of supply in circulation - high dilution risk",
                pct,
            )
        if pct < c.circulating_warning_pct:
            return self._finding(
                FindingSeverity.WARNING,
                f"{pct:.1f}% of supply in circulation - moderate dilution risk",
                pct,
            )
        return self._finding(
            FindingSeverity.POSITIVE,
            f"{pct:.1f}% of supply in circulation - healthy distribution",
            pct,
        )


# ============================================================
# DILUTION
# ============================================================


class DilutionHeuristic(BaseHeuristic):
    """Fully diluted valuation relative to market cap."""

    @property
    def name(self) -> str:
        return "dilution"

    def evaluate(self, data: RiskInput) -> Optional[RiskFinding]:
        ratio = self._ratio(data.fdv, data.market_cap)
        if ratio is None:
            return None
        c = self._config
        if ratio > c.fdv_ratio_flag:
            return self._finding(
                FindingSeverity.FLAG,
                f"FDV/MCap ratio of {ratio:.1f}x - extreme dilution ahead",
                ratio,
            )
        if ratio > c.fdv_ratio_warning:
            return self._finding(
                FindingSeverity.WARNING,
                f"FDV/MCap ratio of {ratio:.1f}x - significant dilution ahead",
                ratio,
            )
        if ratio < c.fdv_ratio_positive:
            return self._finding(
                FindingSeverity.POSITIVE,
                f"FDV/MCap ratio of {ratio:.1f}x - low future dilution",
                ratio,
            )
        return None


# ============================================================
# LIQUIDITY
# ============================================================


class LiquidityHeuristic(BaseHeuristic):
    """24h volume as a share of market cap."""

    @property
    def name(self) -> str:
        return "liquidity"

    def evaluate(self, data: RiskInput) -> Optional[RiskFinding]:
        ratio = self._ratio(data.volume_24h, data.market_cap)
        if ratio is None:
            return None
        pct = ratio * 100
        c = self._config
        if pct < c.volume_flag_pct:
            return self._finding(
                FindingSeverity.FLAG,
                f"24h volume only {pct:.2f}% of market cap - very low liquidity",
                pct,
            )
        if pct < c.volume_warning_pct:
            return self._finding(
                FindingSeverity.WARNING,
                f"24h volume at {pct:.2f}% of market cap - limited liquidity",
                pct,
            )
        return self._finding(
            FindingSeverity.POSITIVE,
            f"24h volume at {pct:.2f}% of market cap - healthy liquidity",
            pct,
        )


# ============================================================
# VALUATION
# ============================================================


class ValuationHeuristic(BaseHeuristic):
    """Market cap relative to TVL."""

    @property
    def name(self) -> str:
        return "valuation"

    def evaluate(self, data: RiskInput) -> Optional[RiskFinding]:
        ratio = self._ratio(data.market_cap, data.tvl)
        if ratio is None:
            return None
        c = self._config
        if ratio < c.mcap_tvl_positive:
            return self._finding(
                FindingSeverity.POSITIVE,
                f"MCap/TVL of {ratio:.2f} - potentially undervalued",
                ratio,
            )
        if ratio > c.mcap_tvl_warning:
            return self._finding(
                FindingSeverity.WARNING,
                f"MCap/TVL of {ratio:.2f} - potentially overvalued",
                ratio,
            )
        return None


# ============================================================
# MOMENTUM
# ============================================================


class TvlMomentumHeuristic(BaseHeuristic):
    """Seven-day TVL change."""

    @property
    def name(self) -> str:
        return "tvl_momentum"

    def evaluate(self, data: RiskInput) -> Optional[RiskFinding]:
        change = data.tvl_change_7d
        if change is None:
            return None
        c = self._config
        if change < c.tvl_drop_flag_pct:
            return self._finding(
                FindingSeverity.FLAG,
                f"TVL fell {abs(change):.1f}% in 7 days - capital outflow",
                change,
            )
        if change > c.tvl_growth_positive_pct:
            return self._finding(
                FindingSeverity.POSITIVE,
                f"TVL grew {change:.1f}% in 7 days - strong capital inflow",
                change,
            )
        return None


class PriceMomentumHeuristic(BaseHeuristic):
    """Seven-day price change."""

    @property
    def name(self) -> str:
        return "price_momentum"

    def evaluate(self, data: RiskInput) -> Optional[RiskFinding]:
        change = data.price_change_7d
        if change is None:
            return None
        if change < self._config.price_drop_warning_pct:
            return self._finding(
                FindingSeverity.WARNING,
                f"Price fell {abs(change):.1f}% in 7 days - high volatility",
                change,
            )
        return None


# ============================================================
# MARKET CAP TIER
# ============================================================


class MarketCapTierHeuristic(BaseHeuristic):
    """Large-cap, mid-cap or small-cap."""

    @property
    def name(self) -> str:
        return "market_cap_tier"

    def evaluate(self, data: RiskInput) -> Optional[RiskFinding]:
        tier = market_cap_tier(data.market_cap, self._config)
        if tier == "Large-Cap":
            return self._finding(
                FindingSeverity.POSITIVE,
                "Large-Cap - established project",
                data.market_cap,
            )
        if tier != "Small-Cap":
            return None
        return self._finding(
            FindingSeverity.WARNING,
            "Small-Cap - higher risk and volatility",
            data.market_cap,
        )


def market_cap_tier(market_cap: Optional[float], config: Optional[RiskHeuristicsConfig] = None) -> Optional[str]:
    """Tier label for a market cap, or None when unknown."""
    if not market_cap:
        return None
    c = config or RiskHeuristicsConfig()
    if market_cap >= c.large_cap_usd:
        return "Large-Cap"
    if market_cap >= c.mid_cap_usd:
        return "Mid-Cap"
    return "Small-Cap"
