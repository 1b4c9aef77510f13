"""
FixedPoint — Scaled Integer Arithmetic

Знаковое целое raw со scale S дробных бит: value = raw / 2^S.
Разрядность W фиксирована на экземпляр: raw ∈ [-2^(W-1), 2^(W-1) - 1].

Правила:
- add/sub: точные, проверка разрядности (ArithmeticOverflow, без wraparound)
- mul: точное произведение raw, затем сдвиг на S toward zero, проверка разрядности
- div: (a.raw << S) / b.raw toward zero; b == 0 → FixedPointDivisionByZero
- sqrt: Newton-Raphson с ФИКСИРОВАННЫМ числом итераций (не порог сходимости)
- scale операндов должен совпадать (ScaleMismatchError)

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Каждая операция либо возвращает точно представимое значение, либо бросает
2. Единственный режим округления — ROUND_TOWARD_ZERO
3. sqrt выполняет одинаковую последовательность шагов для любого входа
4. Экземпляры immutable (frozen dataclass)
"""

from dataclasses import dataclass
from functools import total_ordering
from typing import Final, Optional

from src.core.errors import ScaleMismatchError
from src.core.math.numerical_safeguards import (
    DEFAULT_VALUE_BITS,
    ROUND_TOWARD_ZERO,
    checked_range,
    div_toward_zero,
    shift_right_toward_zero,
    validate_non_negative_int,
    validate_positive_int,
    validate_scale_bits,
)

# Число итераций Newton-Raphson по умолчанию
DEFAULT_SQRT_ITERATIONS: Final[int] = 10

# Режим округления, применяемый div/mul/sqrt
ROUNDING_MODE: Final[str] = ROUND_TOWARD_ZERO


# =============================================================================
# FIXED-ITERATION SQRT
# =============================================================================


def required_sqrt_iterations(input_bits: int) -> int:
    """
    Минимальное число итераций Newton, гарантирующее сходимость isqrt.

    Начальное приближение 2^ceil(bitlen/2) даёт относительную ошибку <= 1,
    дальше ошибка убывает квадратично: e_k <= 2^-(3·2^(k-1) - 1).
    Формула ниже консервативна (с запасом на floor-эффекты).

    Args:
        input_bits: Максимальная разрядность подкоренного целого

    Returns:
        Минимальное число итераций (>= 2)

    Examples:
        >>> required_sqrt_iterations(104)
        8
    """
    validate_positive_int(input_bits, "input_bits")
    return (input_bits // 2).bit_length() + 2


def fixed_iteration_isqrt(n: int, iterations: int) -> int:
    """
    Целочисленный floor(sqrt(n)) за фиксированное число шагов Newton.

    Шаги (одинаковые для любого n):
        x_0 = 2^ceil(bitlen(n) / 2)          (x_0 >= sqrt(n))
        x_{k+1} = (x_k + n // x_k) // 2      (iterations раз)
        x = x - [x^2 > n]                    (branch-free коррекция)

    После сходимости floor-Newton колеблется между r и r+1; коррекция
    возвращает r = floor(sqrt(n)).

    Args:
        n: Неотрицательное целое
        iterations: Число шагов Newton (фиксировано конфигурацией)

    Returns:
        floor(sqrt(n)) при iterations >= required_sqrt_iterations(bitlen(n))

    Raises:
        ValueError: Если n < 0 или iterations <= 0

    Examples:
        >>> fixed_iteration_isqrt(16, 10)
        4
        >>> fixed_iteration_isqrt(15, 10)
        3
    """
    if n < 0:
        raise ValueError(f"sqrt of negative value: {n}")
    validate_positive_int(iterations, "iterations")

    x = 1 << ((n.bit_length() + 1) // 2)
    for _ in range(iterations):
        # x == 0 только при n == 0; делитель x + 1 сохраняет форму шага
        x = (x + n // (x + int(x == 0))) // 2
    x -= int(x * x > n)
    return x


# =============================================================================
# FIXED POINT
# =============================================================================


@total_ordering
@dataclass(frozen=True, eq=False)
class FixedPoint:
    """
    Знаковое число с фиксированной точкой: raw / 2^scale_bits.

    Immutable. Арифметика между экземплярами разного scale запрещена,
    результат бинарной операции имеет разрядность max(a.bits, b.bits),
    если явно не запрошена другая.
    """

    raw: int
    scale_bits: int
    bits: int = DEFAULT_VALUE_BITS

    def __post_init__(self) -> None:
        validate_scale_bits(self.scale_bits)
        validate_positive_int(self.bits, "bits")
        checked_range(self.raw, self.bits, "FixedPoint raw")

    # -------------------------------------------------------------------------
    # Конструкторы и конверсии
    # -------------------------------------------------------------------------

    @classmethod
    def from_int(
        cls, value: int, scale_bits: int, bits: int = DEFAULT_VALUE_BITS
    ) -> "FixedPoint":
        """
        Явная конверсия целого в FixedPoint (raw = value << scale_bits).

        Raises:
            ArithmeticOverflow: Если value << scale_bits не помещается в bits
        """
        validate_scale_bits(scale_bits)
        return cls(raw=value << scale_bits, scale_bits=scale_bits, bits=bits)

    @classmethod
    def from_raw(
        cls, raw: int, scale_bits: int, bits: int = DEFAULT_VALUE_BITS
    ) -> "FixedPoint":
        """Явная конверсия raw-представления (проверка разрядности)."""
        return cls(raw=raw, scale_bits=scale_bits, bits=bits)

    @classmethod
    def zero(cls, scale_bits: int, bits: int = DEFAULT_VALUE_BITS) -> "FixedPoint":
        return cls(raw=0, scale_bits=scale_bits, bits=bits)

    def to_int(self) -> int:
        """Целая часть с округлением toward zero."""
        return shift_right_toward_zero(self.raw, self.scale_bits)

    def to_float(self) -> float:
        """
        Приближённое float-значение.

        Только для отображения: в вычисления не попадает.
        """
        return self.raw / (1 << self.scale_bits)

    def widen(self, bits: int) -> "FixedPoint":
        """Расширение разрядности (raw не меняется)."""
        if bits < self.bits:
            raise ValueError(f"widen target {bits} < current {self.bits}")
        return FixedPoint(self.raw, self.scale_bits, bits)

    def narrow(self, bits: int) -> "FixedPoint":
        """
        Сужение разрядности с проверкой.

        Raises:
            ArithmeticOverflow: Если raw не помещается в bits
        """
        return FixedPoint(self.raw, self.scale_bits, bits)

    def rescale(self, scale_bits: int, bits: Optional[int] = None) -> "FixedPoint":
        """
        Перевод в другой scale: вверх точно (сдвиг влево), вниз toward zero.

        Raises:
            ArithmeticOverflow: Если результат не помещается в bits
        """
        validate_scale_bits(scale_bits)
        target_bits = bits if bits is not None else self.bits
        if scale_bits >= self.scale_bits:
            raw = self.raw << (scale_bits - self.scale_bits)
        else:
            raw = shift_right_toward_zero(self.raw, self.scale_bits - scale_bits)
        return FixedPoint(raw, scale_bits, target_bits)

    # -------------------------------------------------------------------------
    # Арифметика
    # -------------------------------------------------------------------------

    def _check_scale(self, other: "FixedPoint") -> None:
        if self.scale_bits != other.scale_bits:
            raise ScaleMismatchError(
                f"scale mismatch: {self.scale_bits} vs {other.scale_bits}"
            )

    def _result_bits(self, other: "FixedPoint", bits: Optional[int]) -> int:
        return bits if bits is not None else max(self.bits, other.bits)

    def add(self, other: "FixedPoint", bits: Optional[int] = None) -> "FixedPoint":
        self._check_scale(other)
        return FixedPoint(
            self.raw + other.raw, self.scale_bits, self._result_bits(other, bits)
        )

    def sub(self, other: "FixedPoint", bits: Optional[int] = None) -> "FixedPoint":
        self._check_scale(other)
        return FixedPoint(
            self.raw - other.raw, self.scale_bits, self._result_bits(other, bits)
        )

    def mul(self, other: "FixedPoint", bits: Optional[int] = None) -> "FixedPoint":
        """
        Умножение: точное произведение raw (2S дробных бит), затем
        сдвиг на S toward zero и проверка разрядности результата.
        """
        self._check_scale(other)
        product = self.raw * other.raw
        return FixedPoint(
            shift_right_toward_zero(product, self.scale_bits),
            self.scale_bits,
            self._result_bits(other, bits),
        )

    def div(self, other: "FixedPoint", bits: Optional[int] = None) -> "FixedPoint":
        """
        Деление: (self.raw << S) / other.raw toward zero.

        Raises:
            FixedPointDivisionByZero: Если other == 0
            ArithmeticOverflow: Если частное не помещается в разрядность
        """
        self._check_scale(other)
        quotient = div_toward_zero(self.raw << self.scale_bits, other.raw)
        return FixedPoint(quotient, self.scale_bits, self._result_bits(other, bits))

    def div_int(self, divisor: int, bits: Optional[int] = None) -> "FixedPoint":
        """
        Деление на целое toward zero (scale не меняется).

        Raises:
            FixedPointDivisionByZero: Если divisor == 0
        """
        quotient = div_toward_zero(self.raw, divisor)
        return FixedPoint(quotient, self.scale_bits, bits if bits is not None else self.bits)

    def neg(self) -> "FixedPoint":
        return FixedPoint(-self.raw, self.scale_bits, self.bits)

    def abs(self) -> "FixedPoint":
        return FixedPoint(abs(self.raw), self.scale_bits, self.bits)

    def square(self, bits: Optional[int] = None) -> "FixedPoint":
        return self.mul(self, bits)

    def sqrt(
        self, iterations: int = DEFAULT_SQRT_ITERATIONS, scale_bits: Optional[int] = None
    ) -> "FixedPoint":
        """
        Квадратный корень с фиксированным числом итераций Newton.

        Результат в scale T (по умолчанию scale операнда A):
        sqrt(raw / 2^A) · 2^T = sqrt(raw · 2^(2T - A)), поэтому
        raw результата = floor(sqrt(raw << (2T - A))).

        Дисперсия в scale 2S с T = S берётся без сдвига: единственное
        округление — floor самого корня.

        Raises:
            ValueError: Если значение отрицательное или 2T < A
        """
        validate_non_negative_int(self.raw, "sqrt operand")
        target = self.scale_bits if scale_bits is None else scale_bits
        validate_scale_bits(target)
        shift = 2 * target - self.scale_bits
        if shift < 0:
            raise ValueError(
                f"sqrt result scale {target} is below half of operand scale {self.scale_bits}"
            )
        root = fixed_iteration_isqrt(self.raw << shift, iterations)
        return FixedPoint(root, target, self.bits)

    # -------------------------------------------------------------------------
    # Операторы
    # -------------------------------------------------------------------------

    def __add__(self, other: "FixedPoint") -> "FixedPoint":
        return self.add(other)

    def __sub__(self, other: "FixedPoint") -> "FixedPoint":
        return self.sub(other)

    def __mul__(self, other: "FixedPoint") -> "FixedPoint":
        return self.mul(other)

    def __truediv__(self, other: "FixedPoint") -> "FixedPoint":
        return self.div(other)

    def __neg__(self) -> "FixedPoint":
        return self.neg()

    def __abs__(self) -> "FixedPoint":
        return self.abs()

    def __eq__(self, other: object) -> bool:
        # Сравнение по значению: разрядность на равенство не влияет
        if not isinstance(other, FixedPoint):
            return NotImplemented
        return self.raw == other.raw and self.scale_bits == other.scale_bits

    def __hash__(self) -> int:
        return hash((self.raw, self.scale_bits))

    def __lt__(self, other: "FixedPoint") -> bool:
        if not isinstance(other, FixedPoint):
            return NotImplemented
        self._check_scale(other)
        return self.raw < other.raw

    def __str__(self) -> str:
        return f"{self.to_float():.12g}"
