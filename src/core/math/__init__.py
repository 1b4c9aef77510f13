"""
Core math modules

Целочисленные примитивы с фиксированной точкой и детерминированные
численные алгоритмы: одинаковый результат на любой машине.
"""

# Numerical Safeguards
from src.core.math.numerical_safeguards import (
    # Width constants
    DEFAULT_ACCUMULATOR_BITS,
    DEFAULT_SCALE_BITS,
    DEFAULT_VALUE_BITS,
    MAX_SCALE_BITS,
    ROUND_TOWARD_ZERO,
    # Range checks
    checked_range,
    fits_signed,
    signed_bounds,
    # Rounding
    div_toward_zero,
    shift_right_toward_zero,
    # Validation
    validate_non_negative_int,
    validate_positive_int,
    validate_scale_bits,
    validate_value_bits,
)

# Fixed Point
from src.core.math.fixed_point import (
    DEFAULT_SQRT_ITERATIONS,
    ROUNDING_MODE,
    FixedPoint,
    fixed_iteration_isqrt,
    required_sqrt_iterations,
)

# Log Returns
from src.core.math.log_returns import (
    GUARD_BITS,
    LogDomainViolation,
    ln2_fixed,
    ln_ratio_fixed,
    ln_tick_base_fixed,
    log2_ratio_fixed,
    sqrt_price_log_return,
    tick_log_return,
)

__all__ = [
    # Numerical Safeguards — Constants
    "DEFAULT_ACCUMULATOR_BITS",
    "DEFAULT_SCALE_BITS",
    "DEFAULT_VALUE_BITS",
    "MAX_SCALE_BITS",
    "ROUND_TOWARD_ZERO",
    # Numerical Safeguards — Range checks
    "checked_range",
    "fits_signed",
    "signed_bounds",
    # Numerical Safeguards — Rounding
    "div_toward_zero",
    "shift_right_toward_zero",
    # Numerical Safeguards — Validation
    "validate_non_negative_int",
    "validate_positive_int",
    "validate_scale_bits",
    "validate_value_bits",
    # Fixed Point
    "DEFAULT_SQRT_ITERATIONS",
    "ROUNDING_MODE",
    "FixedPoint",
    "fixed_iteration_isqrt",
    "required_sqrt_iterations",
    # Log Returns
    "GUARD_BITS",
    "LogDomainViolation",
    "ln2_fixed",
    "ln_ratio_fixed",
    "ln_tick_base_fixed",
    "log2_ratio_fixed",
    "sqrt_price_log_return",
    "tick_log_return",
]
