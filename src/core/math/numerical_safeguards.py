"""
Numerical Safeguards — Checked Integer Primitives

Модуль обеспечивает численную корректность всех целочисленных операций,
на которых построен FixedPoint:
- Проверка разрядности (signed two's complement) без silent wraparound
- Деление с единственным документированным режимом округления (toward zero)
- Сдвиги вправо с тем же режимом округления
- Валидация параметров разрядности и scale

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Значение вне [-2^(W-1), 2^(W-1) - 1] никогда не возвращается (ArithmeticOverflow)
2. Деление на ноль никогда не происходит (FixedPointDivisionByZero)
3. Округление всегда toward zero, одинаково для всех калькуляторов
4. Все операции детерминированы: только int, никаких float
"""

from typing import Final

from src.core.errors import ArithmeticOverflow, FixedPointDivisionByZero

# =============================================================================
# ПАРАМЕТРЫ РАЗРЯДНОСТИ
# =============================================================================

# Число дробных бит по умолчанию (I24F40 в исходном прувере)
DEFAULT_SCALE_BITS: Final[int] = 40

# Разрядность значений FixedPoint (signed)
DEFAULT_VALUE_BITS: Final[int] = 128

# Разрядность промежуточного аккумулятора суммы квадратов
DEFAULT_ACCUMULATOR_BITS: Final[int] = 256

# Верхняя граница scale_bits FixedPoint (вмещает промежуточный scale 2S)
MAX_SCALE_BITS: Final[int] = 192

# Минимальная/максимальная разрядность значения
MIN_VALUE_BITS: Final[int] = 8
MAX_VALUE_BITS: Final[int] = 1024

# Единственный режим округления для div/shift/sqrt
ROUND_TOWARD_ZERO: Final[str] = "toward_zero"


# =============================================================================
# ПРОВЕРКА РАЗРЯДНОСТИ
# =============================================================================


def signed_bounds(bits: int) -> tuple[int, int]:
    """
    Границы signed значения заданной разрядности.

    Args:
        bits: Разрядность (включая знаковый бит)

    Returns:
        (min_value, max_value) = (-2^(bits-1), 2^(bits-1) - 1)

    Examples:
        >>> signed_bounds(8)
        (-128, 127)
    """
    if bits < 1:
        raise ValueError(f"bits must be positive, got {bits}")
    half = 1 << (bits - 1)
    return (-half, half - 1)


def fits_signed(value: int, bits: int) -> bool:
    """Проверка, что value представимо в signed разрядности bits."""
    lo, hi = signed_bounds(bits)
    return lo <= value <= hi


def checked_range(value: int, bits: int, what: str = "value") -> int:
    """
    Проверка разрядности с исключением вместо wraparound.

    Args:
        value: Целое значение
        bits: Допустимая signed разрядность
        what: Имя операции/значения для сообщения об ошибке

    Returns:
        value без изменений

    Raises:
        ArithmeticOverflow: Если value вне signed диапазона bits
    """
    if not fits_signed(value, bits):
        raise ArithmeticOverflow(
            f"{what} overflows {bits}-bit signed range: "
            f"bit_length={value.bit_length()}"
        )
    return value


# =============================================================================
# ДЕЛЕНИЕ И СДВИГИ (ROUND TOWARD ZERO)
# =============================================================================


def div_toward_zero(numerator: int, denominator: int) -> int:
    """
    Целочисленное деление с округлением к нулю.

    Python `//` округляет к -inf, поэтому знак обрабатывается отдельно.

    Args:
        numerator: Числитель
        denominator: Знаменатель

    Returns:
        trunc(numerator / denominator)

    Raises:
        FixedPointDivisionByZero: Если denominator == 0

    Examples:
        >>> div_toward_zero(7, 2)
        3
        >>> div_toward_zero(-7, 2)
        -3
    """
    if denominator == 0:
        raise FixedPointDivisionByZero(f"division by zero (numerator={numerator})")

    quotient = abs(numerator) // abs(denominator)
    if (numerator < 0) != (denominator < 0):
        return -quotient
    return quotient


def shift_right_toward_zero(value: int, shift: int) -> int:
    """
    Сдвиг вправо на shift бит с округлением к нулю.

    Эквивалент div_toward_zero(value, 2^shift); для shift == 0 — identity.

    Examples:
        >>> shift_right_toward_zero(-5, 1)
        -2
    """
    if shift < 0:
        raise ValueError(f"shift must be non-negative, got {shift}")
    if value >= 0:
        return value >> shift
    return -((-value) >> shift)


# =============================================================================
# ВАЛИДАЦИЯ ПАРАМЕТРОВ
# =============================================================================


def validate_scale_bits(scale_bits: int) -> None:
    """
    Валидация числа дробных бит.

    Raises:
        ValueError: Если scale_bits вне [0, MAX_SCALE_BITS]
    """
    if not 0 <= scale_bits <= MAX_SCALE_BITS:
        raise ValueError(
            f"scale_bits must be in [0, {MAX_SCALE_BITS}], got {scale_bits}"
        )


def validate_value_bits(bits: int, name: str = "bits") -> None:
    """
    Валидация разрядности.

    Raises:
        ValueError: Если bits вне [MIN_VALUE_BITS, MAX_VALUE_BITS]
    """
    if not MIN_VALUE_BITS <= bits <= MAX_VALUE_BITS:
        raise ValueError(
            f"{name} must be in [{MIN_VALUE_BITS}, {MAX_VALUE_BITS}], got {bits}"
        )


def validate_positive_int(value: int, name: str) -> None:
    """
    Валидация, что целое значение положительное.

    Raises:
        ValueError: Если value <= 0
    """
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")


def validate_non_negative_int(value: int, name: str) -> None:
    """
    Валидация, что целое значение неотрицательное.

    Raises:
        ValueError: Если value < 0
    """
    if value < 0:
        raise ValueError(f"{name} must be non-negative, got {value}")
