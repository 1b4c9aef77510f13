"""Reference, Optimized и Circuit калькуляторы realized volatility."""

from src.volatility.calculators.base import VolatilityCalculator
from src.volatility.calculators.circuit import (
    CircuitCalculator,
    ConstraintSystem,
    constraint_count_for,
    synthesize,
)
from src.volatility.calculators.optimized import OptimizedCalculator
from src.volatility.calculators.reference import ReferenceCalculator

__all__ = [
    "VolatilityCalculator",
    "ReferenceCalculator",
    "OptimizedCalculator",
    "CircuitCalculator",
    "ConstraintSystem",
    "constraint_count_for",
    "synthesize",
]
