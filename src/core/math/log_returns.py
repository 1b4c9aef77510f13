"""
Log Returns — Deterministic Fixed-Point Logarithms

Модуль вычисляет log-доходности цен пула без float:
- ln(2) через ряд atanh с фиксированным числом членов
- log2(a/b) для положительных рациональных через нормализацию и
  последовательное возведение в квадрат (один бит дроби за шаг)
- ln(P_i / P_{i-1}) для тиков и для sqrtPriceX96

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Только целочисленная арифметика: одинаковый результат на любой машине
2. Domain: аргументы логарифма строго положительны (LogDomainViolation)
3. Вычисление ведётся с GUARD_BITS запасом, финальное округление toward zero
4. ln(a/b) = -ln(b/a) точно (знак применяется после округления)

ФОРМУЛЫ:
    price(tick) = 1.0001^tick
    ln(P_i / P_{i-1}) = (tick_i - tick_{i-1}) · ln(1.0001)
    price = (sqrtPriceX96 / 2^96)^2
    ln(P_i / P_{i-1}) = 2 · ln(sqrtP_i / sqrtP_{i-1})
    ln(2) = 2 · Σ 1 / ((2k+1) · 3^(2k+1))
"""

from functools import lru_cache
from typing import Final

from src.core.errors import InputError
from src.core.math.numerical_safeguards import (
    shift_right_toward_zero,
    validate_non_negative_int,
)

# =============================================================================
# ПАРАМЕТРЫ ТОЧНОСТИ
# =============================================================================

# Дополнительные биты точности промежуточных вычислений
GUARD_BITS: Final[int] = 32

# Основание тиковой шкалы Uniswap V3: price = (TICK_BASE_NUM / TICK_BASE_DEN)^tick
TICK_BASE_NUM: Final[int] = 10001
TICK_BASE_DEN: Final[int] = 10000


# =============================================================================
# EXCEPTIONS
# =============================================================================


class LogDomainViolation(InputError):
    """
    Аргумент логарифма вне domain (<= 0).

    Для цен пула означает битый сэмпл: sqrtPriceX96 всегда > 0.
    """


# =============================================================================
# КОНСТАНТЫ
# =============================================================================


@lru_cache(maxsize=None)
def ln2_fixed(precision_bits: int) -> int:
    """
    ln(2) · 2^precision_bits, округлённый toward zero.

    Ряд atanh(1/3) сходится как 9^-k, поэтому число членов зависит только
    от precision_bits, а не от данных.

    Args:
        precision_bits: Число дробных бит результата

    Returns:
        floor(ln(2) · 2^precision_bits) (с точностью до последнего бита)
    """
    validate_non_negative_int(precision_bits, "precision_bits")
    work = precision_bits + GUARD_BITS
    one = 1 << work
    terms = (work + 8) // 3 + 1

    total = 0
    power = 3
    for k in range(terms):
        total += one // ((2 * k + 1) * power)
        power *= 9
    return (2 * total) >> GUARD_BITS


def log2_ratio_fixed(numerator: int, denominator: int, precision_bits: int) -> int:
    """
    log2(numerator / denominator) · 2^precision_bits для положительных целых.

    Алгоритм:
        1. k = целая часть: 2^k · den <= num < 2^(k+1) · den
        2. y = num / (den · 2^k) ∈ [1, 2) в фиксированной точке
        3. precision_bits раз: y = y^2; если y >= 2 → бит = 1, y /= 2

    Для num < den используется log2(num/den) = -log2(den/num).

    Raises:
        LogDomainViolation: Если numerator <= 0 или denominator <= 0
    """
    if numerator <= 0 or denominator <= 0:
        raise LogDomainViolation(
            f"log domain violation: ratio {numerator}/{denominator} must be positive"
        )
    validate_non_negative_int(precision_bits, "precision_bits")

    if numerator == denominator:
        return 0
    if numerator < denominator:
        return -log2_ratio_fixed(denominator, numerator, precision_bits)

    k = numerator.bit_length() - denominator.bit_length()
    if (denominator << k) > numerator:
        k -= 1

    work = precision_bits + GUARD_BITS
    y = (numerator << work) // (denominator << k)
    two = 2 << work

    fraction = 0
    for i in range(1, precision_bits + 1):
        y = (y * y) >> work
        if y >= two:
            y >>= 1
            fraction |= 1 << (precision_bits - i)

    return (k << precision_bits) | fraction


def ln_ratio_fixed(numerator: int, denominator: int, precision_bits: int) -> int:
    """
    ln(numerator / denominator) · 2^precision_bits, округлённый toward zero.

    ln(x) = log2(x) · ln(2); вычисляется с GUARD_BITS запасом.

    Examples:
        >>> ln_ratio_fixed(1, 1, 40)
        0
    """
    if numerator <= 0 or denominator <= 0:
        raise LogDomainViolation(
            f"log domain violation: ratio {numerator}/{denominator} must be positive"
        )
    if numerator < denominator:
        return -ln_ratio_fixed(denominator, numerator, precision_bits)

    work = precision_bits + GUARD_BITS
    log2_value = log2_ratio_fixed(numerator, denominator, work)
    ln_work = (log2_value * ln2_fixed(work)) >> work
    return ln_work >> GUARD_BITS


@lru_cache(maxsize=None)
def ln_tick_base_fixed(precision_bits: int) -> int:
    """ln(1.0001) · 2^precision_bits."""
    return ln_ratio_fixed(TICK_BASE_NUM, TICK_BASE_DEN, precision_bits)


# =============================================================================
# LOG RETURNS
# =============================================================================


def tick_log_return(delta_tick: int, scale_bits: int) -> int:
    """
    Log-доходность между тиками как raw FixedPoint.

    ln(P_i / P_{i-1}) = delta_tick · ln(1.0001)

    Args:
        delta_tick: tick_i - tick_{i-1}
        scale_bits: scale результата

    Returns:
        raw значение со scale_bits дробными битами (toward zero)

    Examples:
        >>> tick_log_return(0, 40)
        0
    """
    product = delta_tick * ln_tick_base_fixed(scale_bits + GUARD_BITS)
    return shift_right_toward_zero(product, GUARD_BITS)


def sqrt_price_log_return(sqrt_price_prev: int, sqrt_price_curr: int, scale_bits: int) -> int:
    """
    Log-доходность между двумя sqrtPriceX96 как raw FixedPoint.

    ln(P_i / P_{i-1}) = 2 · ln(sqrtP_i / sqrtP_{i-1})

    Raises:
        LogDomainViolation: Если какая-либо sqrtPrice <= 0
    """
    ln_sqrt = ln_ratio_fixed(sqrt_price_curr, sqrt_price_prev, scale_bits + GUARD_BITS)
    return shift_right_toward_zero(2 * ln_sqrt, GUARD_BITS)
