"""
Optimized Calculator — Одно деление, широкий аккумулятор

    S2       = Σ raw_i²                          (точно, accumulator_bits)
    variance = S2 / m                            (единственное деление, floor;
                                                  scale 2S, без сужения до S)
    result   = sqrt(variance)                    (тот же fixed-iteration sqrt,
                                                  корень сразу в scale S)

demean (выборочная дисперсия):
    S1       = Σ raw_i
    variance = (m · S2 - S1²) / (m · (m - 1))

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Никаких делений до финального: ошибка округления не накапливается
2. Каждый шаг аккумуляции проверяется по accumulator_bits (без wraparound)
3. Дисперсия хранит 2S дробных бит: единственные округления — деление и floor корня
4. sqrt — тот же FixedPoint.sqrt, что и в Reference
"""

import structlog

from src.core.domain.results import CalculationMode, VolatilityResult
from src.core.domain.series import ReturnSeries
from src.core.math.fixed_point import FixedPoint
from src.core.math.numerical_safeguards import checked_range
from src.volatility.calculators.base import VolatilityCalculator

logger = structlog.get_logger(__name__)


class OptimizedCalculator(VolatilityCalculator):
    """Optimized: Σ raw² в широком аккумуляторе и одно деление."""

    mode = CalculationMode.OPTIMIZED

    def compute_volatility(self, series: ReturnSeries) -> VolatilityResult:
        m = self._check_series(series)
        variance = FixedPoint.from_raw(
            self.variance_raw(series, m), self.variance_scale_bits, self.radicand_bits
        )
        result = variance.sqrt(self.sqrt_iterations, self.scale_bits).narrow(self.value_bits)
        logger.debug(
            "volatility_computed",
            mode=self.mode.value,
            deltas=m,
            variance_raw=variance.raw,
            result_raw=result.raw,
        )
        return self._result(result, series)

    def variance_raw(self, series: ReturnSeries, m: int) -> int:
        """
        Дисперсия в raw единицах scale 2S.

        Raises:
            ArithmeticOverflow: Аккумулятор вышел за accumulator_bits или
                дисперсия за value_bits + scale_bits
        """
        acc_bits = self.accumulator_bits
        sum_raw = 0
        sum_sq = 0
        for raw in series.raw_deltas:
            sum_sq = checked_range(sum_sq + raw * raw, acc_bits, "sum of squares")
            if self.demean:
                sum_raw = checked_range(sum_raw + raw, acc_bits, "sum of deltas")

        if not self.demean:
            return checked_range(sum_sq // m, self.radicand_bits, "variance")

        numerator = checked_range(
            checked_range(m * sum_sq, acc_bits, "m * sum of squares")
            - checked_range(sum_raw * sum_raw, acc_bits, "squared sum of deltas"),
            acc_bits,
            "demeaned numerator",
        )
        # m·S2 - S1² >= 0 (Cauchy–Schwarz): floor и toward zero совпадают
        return checked_range(numerator // (m * (m - 1)), self.radicand_bits, "variance")
