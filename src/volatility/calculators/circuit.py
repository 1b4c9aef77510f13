"""
Circuit Calculator — Optimized в виде схемы фиксированной формы

Тот же алгоритм, что у Optimized, выраженный гаджетами ограничений:
- форма (sample_count, разрядности, итерации sqrt, demean) фиксирована
  при конструировании; циклы идут по форме, а не по длине данных
- каждое промежуточное значение проходит range check
- деления — witness частного/остатка с ограничением q·d + r == a, 0 <= r < d
- sqrt: разложение на биты → длина в битах → one-hot выбор начальной
  степени двойки → фиксированные шаги Newton (гаджеты деления) →
  branch-free коррекция → финальное ограничение x² <= N < (x + 1)²

Вычисление производит CircuitTrace (публичные входы + witness + число
ограничений) для proving backend.

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Circuit.value == Optimized.value точно (нулевая толерантность)
2. Число ограничений зависит только от формы, не от данных
3. Нарушенное ограничение (кроме range check) — DivergenceDefect
"""

from functools import lru_cache
from typing import Sequence

import structlog

from src.core.domain.config import VolatilityConfig
from src.core.domain.proof import CircuitShape, CircuitTrace, PublicInputs
from src.core.domain.results import CalculationMode, VolatilityResult
from src.core.domain.series import ReturnSeries
from src.core.errors import ArithmeticOverflow, DivergenceDefect, InputError
from src.core.math.fixed_point import FixedPoint
from src.core.math.numerical_safeguards import checked_range
from src.volatility.calculators.base import VolatilityCalculator

logger = structlog.get_logger(__name__)


# =============================================================================
# CONSTRAINT SYSTEM
# =============================================================================


class ConstraintSystem:
    """
    Накопитель witness и счётчик ограничений.

    Значения-подсказки (hints) вычисляются обычной арифметикой, затем
    проверяются ограничениями: так же строится witness для proving backend.
    """

    def __init__(self) -> None:
        self.witness: list[int] = []
        self.constraint_count = 0

    def assign(self, value: int) -> int:
        self.witness.append(value)
        return value

    def gate(self) -> None:
        self.constraint_count += 1

    def enforce(self, holds: bool, what: str) -> None:
        self.constraint_count += 1
        if not holds:
            raise DivergenceDefect(f"circuit constraint violated: {what}")

    def range_check(self, value: int, bits: int, what: str) -> int:
        self.constraint_count += 1
        return checked_range(value, bits, what)

    # -------------------------------------------------------------------------
    # Арифметические гаджеты
    # -------------------------------------------------------------------------

    def add(self, a: int, b: int, bits: int, what: str) -> int:
        c = self.assign(a + b)
        self.gate()
        return self.range_check(c, bits, what)

    def sub(self, a: int, b: int, bits: int, what: str) -> int:
        c = self.assign(a - b)
        self.gate()
        return self.range_check(c, bits, what)

    def mul(self, a: int, b: int, bits: int, what: str) -> int:
        c = self.assign(a * b)
        self.gate()
        return self.range_check(c, bits, what)

    def div(self, a: int, d: int, bits: int, what: str) -> int:
        """
        Деление неотрицательного a на положительный d.

        Для a >= 0 floor и toward zero совпадают.
        """
        self.enforce(a >= 0, f"{what}: dividend >= 0")
        self.enforce(d > 0, f"{what}: divisor > 0")
        hint_q, hint_r = divmod(a, d)
        q = self.assign(hint_q)
        r = self.assign(hint_r)
        self.enforce(q * d + r == a, f"{what}: q*d + r == a")
        self.enforce(0 <= r < d, f"{what}: 0 <= r < d")
        return self.range_check(q, bits, what)

    def boolean(self, hint: int, what: str) -> int:
        b = self.assign(hint)
        self.enforce(b * (b - 1) == 0, f"{what}: boolean")
        return b

    def is_zero(self, x: int, what: str) -> int:
        """z = [x == 0] для x >= 0: z·x == 0 и x >= 1 - z."""
        z = self.boolean(int(x == 0), what)
        self.enforce(x * z == 0, f"{what}: x * z == 0")
        self.enforce(x - (1 - z) >= 0, f"{what}: x >= 1 - z")
        return z

    def to_bits(self, value: int, width: int, what: str) -> list[int]:
        """Разложение на width бит (little-endian) с проверкой рекомпозиции."""
        self.constraint_count += 1
        if value < 0 or value.bit_length() > width:
            raise ArithmeticOverflow(
                f"{what} overflows {width}-bit unsigned range: "
                f"bit_length={value.bit_length()}"
            )
        bits = [self.boolean((value >> i) & 1, f"{what} bit {i}") for i in range(width)]
        self.enforce(
            sum(b << i for i, b in enumerate(bits)) == value, f"{what}: recomposition"
        )
        return bits

    # -------------------------------------------------------------------------
    # SQRT
    # -------------------------------------------------------------------------

    def isqrt(self, n: int, width: int, iterations: int) -> int:
        """
        floor(sqrt(n)) фиксированной формы для n < 2^width.

        Повторяет fixed_iteration_isqrt шаг в шаг.
        """
        bits = self.to_bits(n, width, "radicand")

        # h_i = OR(b_i..b_{width-1}) = [n >> i != 0];  bit_length = Σ h_i
        prefix = 0
        bit_length = 0
        for b in reversed(bits):
            prefix = self.assign(prefix + b - prefix * b)
            self.gate()
            bit_length += prefix
        bit_length = self.assign(bit_length)
        self.gate()

        half = self.div(bit_length + 1, 2, width.bit_length() + 2, "initial exponent")

        # one-hot выбор начального приближения x_0 = 2^half
        selectors = []
        for k in range((width + 1) // 2 + 1):
            s = self.boolean(int(half == k), f"exponent selector {k}")
            self.enforce(s * (half - k) == 0, f"exponent selector {k}: match")
            selectors.append(s)
        self.enforce(sum(selectors) == 1, "exponent selector: one-hot")
        x = self.assign(sum(s << k for k, s in enumerate(selectors)))
        self.gate()

        for step in range(iterations):
            z = self.is_zero(x, f"newton {step} zero guard")
            t = self.div(n, x + z, width + 1, f"newton {step} quotient")
            x = self.div(x + t, 2, width + 1, f"newton {step} average")

        square_bits = 2 * width + 4
        square = self.mul(x, x, square_bits, "sqrt square")
        c = self.boolean(int(square > n), "sqrt correction")
        self.enforce(
            c * (square - n - 1) + (1 - c) * (n - square) >= 0, "sqrt correction: consistent"
        )
        x = self.assign(x - c)
        self.gate()

        lower = self.mul(x, x, square_bits, "sqrt lower square")
        self.enforce(n - lower >= 0, "sqrt: x^2 <= n")
        upper = self.mul(x + 1, x + 1, square_bits, "sqrt upper square")
        self.enforce(upper - n - 1 >= 0, "sqrt: n < (x + 1)^2")
        return x


# =============================================================================
# SYNTHESIS
# =============================================================================


def synthesize(shape: CircuitShape, raw_deltas: Sequence[int]) -> tuple[int, int, ConstraintSystem]:
    """
    Построение witness схемы для серии дельт.

    Args:
        shape: Форма схемы
        raw_deltas: Ровно shape.delta_count raw значений

    Returns:
        (variance_raw, volatility_raw, constraint system)

    Raises:
        InputError: Длина raw_deltas != shape.delta_count
        ArithmeticOverflow: Провал range check
        DivergenceDefect: Нарушено ограничение схемы
    """
    m = shape.delta_count
    if len(raw_deltas) != m:
        raise InputError(
            f"circuit shape expects {m} deltas (sample_count {shape.sample_count}), "
            f"got {len(raw_deltas)}"
        )

    cs = ConstraintSystem()
    value_bits = shape.value_bits
    acc_bits = shape.accumulator_bits

    sum_raw = 0
    sum_sq = 0
    for i in range(m):
        d = cs.range_check(cs.assign(raw_deltas[i]), value_bits, "delta")
        square = cs.mul(d, d, acc_bits, "delta square")
        sum_sq = cs.add(sum_sq, square, acc_bits, "sum of squares")
        # ветвление по форме, а не по данным
        if shape.demean:
            sum_raw = cs.add(sum_raw, d, acc_bits, "sum of deltas")

    if shape.demean:
        scaled = cs.mul(sum_sq, m, acc_bits, "m * sum of squares")
        squared_sum = cs.mul(sum_raw, sum_raw, acc_bits, "squared sum of deltas")
        numerator = cs.sub(scaled, squared_sum, acc_bits, "demeaned numerator")
        divisor = m * (m - 1)
    else:
        numerator = sum_sq
        divisor = m

    # дисперсия в scale 2S: корень из неё сразу в scale S
    variance = cs.div(numerator, divisor, shape.radicand_bits, "variance")
    root = cs.isqrt(variance, shape.radicand_bits, shape.sqrt_iterations)
    root = cs.range_check(root, value_bits, "volatility")
    return variance, root, cs


@lru_cache(maxsize=32)
def constraint_count_for(shape: CircuitShape) -> int:
    """
    Число ограничений схемы данной формы.

    Синтез на нулевом witness: форма схемы не зависит от данных.
    """
    _, _, cs = synthesize(shape, (0,) * shape.delta_count)
    return cs.constraint_count


# =============================================================================
# CALCULATOR
# =============================================================================


class CircuitCalculator(VolatilityCalculator):
    """Circuit: Optimized алгоритм как схема фиксированной формы."""

    mode = CalculationMode.CIRCUIT

    def __init__(self, config: VolatilityConfig):
        super().__init__(config)
        self.shape = config.circuit_shape()

    def constraint_count(self) -> int:
        return constraint_count_for(self.shape)

    def compute_volatility(self, series: ReturnSeries) -> VolatilityResult:
        result, _ = self.compute_with_trace(series)
        return result

    def compute_with_trace(self, series: ReturnSeries) -> tuple[VolatilityResult, CircuitTrace]:
        """
        Вычисление с trace для proving backend.

        Raises:
            InputError: Длина серии не совпадает с формой схемы
            ArithmeticOverflow: Провал range check
            DivergenceDefect: Нарушено ограничение схемы
        """
        self._check_series(series)
        variance, root, cs = synthesize(self.shape, series.raw_deltas)

        public_inputs = PublicInputs(
            volatility_raw=root,
            variance_raw=variance,
            sample_count=series.sample_count,
            scale_bits=self.shape.scale_bits,
            input_digest=series.digest(),
        )
        trace = CircuitTrace(
            shape=self.shape,
            public_inputs=public_inputs,
            witness=tuple(cs.witness),
            constraint_count=cs.constraint_count,
        )
        logger.debug(
            "circuit_synthesized",
            deltas=self.shape.delta_count,
            witness_cells=len(trace.witness),
            constraints=trace.constraint_count,
            result_raw=root,
        )
        value = FixedPoint.from_raw(root, self.shape.scale_bits, self.shape.value_bits)
        return self._result(value, series), trace
