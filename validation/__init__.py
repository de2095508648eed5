"""
Validation Package - Consistency checks and quality grading.
"""

from validation.validator import (
    DataQuality,
    DataValidator,
    ValidationBounds,
    ValidationResult,
    completeness,
    has_minimum_data,
)


__all__ = [
    "DataQuality",
    "DataValidator",
    "ValidationBounds",
    "ValidationResult",
    "completeness",
    "has_minimum_data",
]
