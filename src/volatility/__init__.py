"""
Volatility engine: ReturnSeries Builder, три калькулятора,
Consistency Checker и pipeline окна.
"""

from src.volatility.calculators import (
    CircuitCalculator,
    OptimizedCalculator,
    ReferenceCalculator,
    VolatilityCalculator,
)
from src.volatility.consistency import ConsistencyChecker, ConsistencyReport
from src.volatility.series_builder import (
    build_return_series,
    series_from_deltas,
    validate_samples,
)

__all__ = [
    "VolatilityCalculator",
    "ReferenceCalculator",
    "OptimizedCalculator",
    "CircuitCalculator",
    "ConsistencyChecker",
    "ConsistencyReport",
    "build_return_series",
    "series_from_deltas",
    "validate_samples",
]
