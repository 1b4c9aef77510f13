"""
Reference Calculator — Прямой перевод формулы

Дельты переводятся в scale 2S (точно), дальше:

    sumSq  = Σ d_i²           (FixedPoint mul в scale 2S, без потери бит)
    mean   = sumSq / m        (одно деление)
    result = sqrt(mean)       (фиксированные итерации Newton, результат в scale S)

demean:
    mu     = Σ d_i / m
    result = sqrt(Σ (d_i - mu)² / (m - 1))

Базовая линия корректности: ясность важнее эффективности. Промежуточные
значения живут в accumulator_bits, дисперсия проверяется по
value_bits + scale_bits, результат по value_bits.
"""

import structlog

from src.core.domain.results import CalculationMode, VolatilityResult
from src.core.domain.series import ReturnSeries
from src.core.math.fixed_point import FixedPoint
from src.volatility.calculators.base import VolatilityCalculator

logger = structlog.get_logger(__name__)


class ReferenceCalculator(VolatilityCalculator):
    """Reference: сумма квадратов в FixedPoint, затем одно деление и sqrt."""

    mode = CalculationMode.REFERENCE

    def compute_volatility(self, series: ReturnSeries) -> VolatilityResult:
        m = self._check_series(series)
        if self.demean:
            variance = self._demeaned_variance(series, m)
        else:
            variance = self._raw_variance(series, m)

        result = variance.sqrt(self.sqrt_iterations, self.scale_bits).narrow(self.value_bits)
        logger.debug(
            "volatility_computed",
            mode=self.mode.value,
            deltas=m,
            variance_raw=variance.raw,
            result_raw=result.raw,
        )
        return self._result(result, series)

    def _wide_deltas(self, series: ReturnSeries) -> list[FixedPoint]:
        return [
            delta.rescale(self.variance_scale_bits, bits=self.accumulator_bits)
            for delta in series
        ]

    def _raw_variance(self, series: ReturnSeries, m: int) -> FixedPoint:
        bits = self.accumulator_bits
        sum_sq = FixedPoint.zero(self.variance_scale_bits, bits)
        for delta in self._wide_deltas(series):
            sum_sq = sum_sq.add(delta.mul(delta, bits=bits), bits=bits)
        return sum_sq.div_int(m, bits=self.radicand_bits)

    def _demeaned_variance(self, series: ReturnSeries, m: int) -> FixedPoint:
        bits = self.accumulator_bits
        deltas = self._wide_deltas(series)
        total = FixedPoint.zero(self.variance_scale_bits, bits)
        for delta in deltas:
            total = total.add(delta, bits=bits)
        mean = total.div_int(m)

        sum_sq = FixedPoint.zero(self.variance_scale_bits, bits)
        for delta in deltas:
            deviation = delta.sub(mean, bits=bits)
            sum_sq = sum_sq.add(deviation.mul(deviation, bits=bits), bits=bits)
        return sum_sq.div_int(m - 1, bits=self.radicand_bits)
