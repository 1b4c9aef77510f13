"""
VolatilityCalculator — Общая способность трёх калькуляторов

compute_volatility(series) -> VolatilityResult

Consistency Checker работает с Reference, Optimized и Circuit
полиморфно через этот интерфейс.
"""

from abc import ABC, abstractmethod

from src.core.domain.config import VolatilityConfig
from src.core.domain.results import CalculationMode, VolatilityResult
from src.core.domain.series import ReturnSeries
from src.core.errors import InputError, ScaleMismatchError
from src.core.math.numerical_safeguards import checked_range


class VolatilityCalculator(ABC):
    """
    Базовый калькулятор realized volatility.

    Калькулятор stateless между вызовами: параметры разрядности берутся
    из конфигурации, данные только из series.
    """

    mode: CalculationMode

    def __init__(self, config: VolatilityConfig):
        self.config = config

    @property
    def scale_bits(self) -> int:
        return self.config.scale_bits

    @property
    def value_bits(self) -> int:
        return self.config.value_bits

    @property
    def accumulator_bits(self) -> int:
        return self.config.accumulator_bits

    @property
    def variance_scale_bits(self) -> int:
        """Scale дисперсии: 2S, квадраты дельт без округления."""
        return 2 * self.config.scale_bits

    @property
    def radicand_bits(self) -> int:
        return self.config.value_bits + self.config.scale_bits

    @property
    def sqrt_iterations(self) -> int:
        return self.config.sqrt_iterations

    @property
    def demean(self) -> bool:
        return self.config.demean

    def _check_series(self, series: ReturnSeries) -> int:
        """
        Проверка серии против конфигурации.

        Returns:
            m — число дельт

        Raises:
            ScaleMismatchError: scale серии != scale конфигурации
            InputError: demean при m < 2
            ArithmeticOverflow: Дельта не помещается в value_bits
        """
        if series.scale_bits != self.scale_bits:
            raise ScaleMismatchError(
                f"series scale {series.scale_bits} != configured scale {self.scale_bits}"
            )
        m = len(series)
        if self.demean and m < 2:
            raise InputError(f"demeaned variance needs at least 2 deltas, got {m}")
        for raw in series.raw_deltas:
            checked_range(raw, self.value_bits, "delta")
        return m

    def _result(self, value, series: ReturnSeries) -> VolatilityResult:
        return VolatilityResult(value=value, sample_count=series.sample_count, mode=self.mode)

    @abstractmethod
    def compute_volatility(self, series: ReturnSeries) -> VolatilityResult:
        """
        Realized volatility серии.

        Raises:
            ArithmeticOverflow: Выход промежуточного значения за разрядность
        """
