"""
Data Validator.

============================================================
PURPOSE
============================================================
Checks a merged record for internal consistency and grades its
quality. Never raises: every finding is a warning or an error.

============================================================
RULES
============================================================
Errors (record is not valid):
- missing name
- circulating > total, total > max supply
- negative or non-finite price-history values
- no source attributed

Warnings:
- missing symbol
- numeric field outside its sane absolute range
- market cap off price x circulating by more than 10%
- FDV below market cap
- 24h volume below 0.01% of market cap
- TVL above 100x market cap
- extreme TVL / price changes (>500% 24h, >1000% 7d)
- price history out of chronological order
- per-chain TVL sum off total TVL by more than 20%
- per-chain TVL outside the TVL range

============================================================
QUALITY
============================================================
Completeness = populated share of
    price, marketCap, fdv, volume24h, circulating, tvl, priceHistory

poor       any error
fair       warnings > 3 or completeness < 40%
good       warnings > 0 or completeness < 70%
excellent  otherwise

============================================================
"""

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from aggregation.models import AggregatedRecord
from aggregation.tvl_calculator import sum_chain_tvls


logger = logging.getLogger(__name__)


class DataQuality(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"


@dataclass(frozen=True)
class ValidationBounds:
    """Sane absolute ranges and consistency tolerances."""

    price_min: float = 1e-6
    price_max: float = 1e7
    cap_min: float = 1e3
    cap_max: float = 1e13
    volume_min: float = 0.0
    volume_max: float = 1e12
    supply_min: float = 1.0
    supply_max: float = 1e15
    market_cap_tolerance: float = 0.10
    min_volume_ratio: float = 0.0001
    max_tvl_to_mcap: float = 100.0
    max_change_24h: float = 500.0
    max_change_7d: float = 1000.0
    chain_tvl_tolerance: float = 0.20
    fair_warning_limit: int = 3
    fair_completeness: float = 0.4
    good_completeness: float = 0.7


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating one record."""

    is_valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    quality: DataQuality = DataQuality.POOR
    completeness: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "isValid": self.is_valid,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "quality": self.quality.value,
            "completeness": round(self.completeness, 4),
        }


def _in_range(value: Optional[float], low: float, high: float) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and (math.isnan(value) or math.isinf(value)):
        return False
    return low <= value <= high


def _within_percent(value: Optional[float], limit: float) -> bool:
    if value is None:
        return True
    if math.isnan(value) or math.isinf(value):
        return False
    return abs(value) <= limit


def completeness(record: AggregatedRecord) -> float:
    points = (
        record.price,
        record.market_cap,
        record.fdv,
        record.volume_24h,
        record.circulating_supply,
        record.tvl,
        record.price_history,
    )
    return sum(p is not None for p in points) / len(points)


def has_minimum_data(record: Optional[AggregatedRecord]) -> bool:
    """Name plus at least one of price, market cap or TVL."""
    if record is None:
        return False
    if not record.name or record.name == "N/A":
        return False
    return bool(record.price or record.market_cap or record.tvl)


class DataValidator:
    """
    Consistency checks for AggregatedRecord.

    Usage:
        result = DataValidator().validate(record)
        if not result.is_valid:
            ...
    """

    def __init__(self, bounds: Optional[ValidationBounds] = None):
        self._bounds = bounds or ValidationBounds()

    def validate(self, record: AggregatedRecord) -> ValidationResult:
        errors: List[str] = []
        warnings: List[str] = []

        self._check_identity(record, errors, warnings)
        self._check_market(record, warnings)
        self._check_supply(record, errors, warnings)
        self._check_tvl(record, warnings)
        self._check_changes(record, warnings)
        self._check_price_history(record, errors, warnings)
        self._check_chain_tvls(record, warnings)

        if not record.sources:
            errors.append("No data source attributed")

        score = completeness(record)
        quality = self._grade(errors, warnings, score)

        if errors or warnings:
            logger.debug(
                f"[validator] {record.name}: quality={quality.value} "
                f"errors={len(errors)} warnings={len(warnings)} completeness={score:.0%}"
            )

        return ValidationResult(
            is_valid=not errors,
            errors=errors,
            warnings=warnings,
            quality=quality,
            completeness=score,
        )

    def _grade(self, errors: List[str], warnings: List[str], score: float) -> DataQuality:
        b = self._bounds
        if errors:
            return DataQuality.POOR
        if len(warnings) > b.fair_warning_limit or score < b.fair_completeness:
            return DataQuality.FAIR
        if warnings or score < b.good_completeness:
            return DataQuality.GOOD
        return DataQuality.EXCELLENT

    # ------------------------------------------------------------
    # checks
    # ------------------------------------------------------------

    @staticmethod
    def _check_identity(record: AggregatedRecord, errors: List[str], warnings: List[str]) -> None:
        if not record.name or record.name == "N/A":
            errors.append("Asset name missing")
        if not record.symbol or record.symbol == "N/A":
            warnings.append("Symbol missing")

    def _check_market(self, record: AggregatedRecord, warnings: List[str]) -> None:
        b = self._bounds

        if not _in_range(record.price, b.price_min, b.price_max):
            warnings.append(f"Price outside expected range: ${record.price}")

        if record.market_cap is not None:
            if not _in_range(record.market_cap, b.cap_min, b.cap_max):
                warnings.append(f"Market cap outside expected range: ${record.market_cap}")
            if record.price and record.circulating_supply:
                implied = record.price * record.circulating_supply
                difference = abs(record.market_cap - implied) / implied
                if difference > b.market_cap_tolerance:
                    warnings.append(
                        f"Market cap inconsistent with price x circulating supply ({difference * 100:.1f}% off)"
                    )

        if record.fdv is not None:
            if not _in_range(record.fdv, b.cap_min, b.cap_max):
                warnings.append(f"FDV outside expected range: ${record.fdv}")
            if record.market_cap and record.fdv < record.market_cap:
                warnings.append("FDV below market cap")

        if record.volume_24h is not None:
            if not _in_range(record.volume_24h, b.volume_min, b.volume_max):
                warnings.append(f"24h volume outside expected range: ${record.volume_24h}")
            if record.market_cap and record.volume_24h < record.market_cap * b.min_volume_ratio:
                warnings.append("24h volume implausibly low relative to market cap (<0.01%)")

    def _check_supply(self, record: AggregatedRecord, errors: List[str], warnings: List[str]) -> None:
        b = self._bounds
        for label, value in (
            ("Circulating supply", record.circulating_supply),
            ("Total supply", record.total_supply),
            ("Max supply", record.max_supply),
        ):
            if not _in_range(value, b.supply_min, b.supply_max):
                warnings.append(f"{label} outside expected range: {value}")

        circulating, total, maximum = record.circulating_supply, record.total_supply, record.max_supply
        if circulating and total and circulating > total:
            errors.append(f"Circulating supply ({circulating:,.0f}) exceeds total supply ({total:,.0f})")
        if total and maximum and total > maximum:
            errors.append(f"Total supply ({total:,.0f}) exceeds max supply ({maximum:,.0f})")
        if circulating and maximum and not total and circulating > maximum:
            errors.append(f"Circulating supply ({circulating:,.0f}) exceeds max supply ({maximum:,.0f})")

    def _check_tvl(self, record: AggregatedRecord, warnings: List[str]) -> None:
        b = self._bounds
        if record.tvl is None:
            return
        if not _in_range(record.tvl, b.cap_min, b.cap_max):
            warnings.append(f"TVL outside expected range: ${record.tvl}")
        if record.market_cap and record.tvl > record.market_cap * b.max_tvl_to_mcap:
            warnings.append(f"TVL far above market cap ({record.tvl / record.market_cap:.0f}x)")

    def _check_changes(self, record: AggregatedRecord, warnings: List[str]) -> None:
        b = self._bounds
        checks = (
            ("TVL", "24h", record.tvl_change.get("1d"), b.max_change_24h),
            ("TVL", "7d", record.tvl_change.get("7d"), b.max_change_7d),
            ("Price", "24h", record.price_change.get("24h"), b.max_change_24h),
            ("Price", "7d", record.price_change.get("7d"), b.max_change_7d),
        )
        for metric, window, value, limit in checks:
            if not _within_percent(value, limit):
                warnings.append(f"Extreme {metric} change {window}: {value:.2f}%")

    @staticmethod
    def _check_price_history(record: AggregatedRecord, errors: List[str], warnings: List[str]) -> None:
        if record.price_history is None:
            return
        for window, points in record.price_history.windows.items():
            if not points:
                continue
            if any(not math.isfinite(p.price) for p in points):
                errors.append(f"Price history {window} contains non-finite values")
            if any(math.isfinite(p.price) and p.price < 0 for p in points):
                errors.append(f"Price history {window} contains negative prices")
            if any(later.timestamp < earlier.timestamp for earlier, later in zip(points, points[1:])):
                warnings.append(f"Price history {window} out of chronological order")

    def _check_chain_tvls(self, record: AggregatedRecord, warnings: List[str]) -> None:
        b = self._bounds
        if not record.chain_tvls:
            return
        chain_sum = sum_chain_tvls(record.chain_tvls)
        if record.tvl and chain_sum:
            difference = abs(record.tvl - chain_sum) / record.tvl
            if difference > b.chain_tvl_tolerance:
                warnings.append(f"Per-chain TVL sum differs from total TVL by {difference * 100:.1f}%")
        for chain, value in record.chain_tvls.items():
            if not _in_range(value, b.cap_min, b.cap_max):
                warnings.append(f"TVL for chain {chain} outside expected range: ${value}")
