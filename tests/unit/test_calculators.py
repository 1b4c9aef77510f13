"""
Тесты для Reference / Optimized / Circuit калькуляторов

Проверяемые инварианты:
1. Известные значения: одинаковы для всех трёх калькуляторов
2. Circuit == Optimized точно (tick и log_price, с demean и без)
3. Переполнение → ArithmeticOverflow, а не wraparound
4. Детерминизм и неотрицательность результата
5. Число ограничений схемы зависит только от формы
6. Нарушение ограничения sqrt → DivergenceDefect
7. log_price: Reference == Optimized без demean, n = 2 даёт ровно |d|
"""

import math

import pytest

from src.core.domain.results import CalculationMode
from src.core.domain.samples import TickSample
from src.core.domain.series import DeltaMode
from src.core.errors import ArithmeticOverflow, DivergenceDefect, InputError, ScaleMismatchError
from src.core.math.fixed_point import FixedPoint
from src.volatility.calculators import (
    CircuitCalculator,
    ConstraintSystem,
    OptimizedCalculator,
    ReferenceCalculator,
    constraint_count_for,
    synthesize,
)
from src.volatility.consistency import ConsistencyChecker
from src.volatility.series_builder import build_return_series, series_from_deltas

CALCULATORS = [ReferenceCalculator, OptimizedCalculator, CircuitCalculator]


def _all_results(config, series):
    return [cls(config).compute_volatility(series) for cls in CALCULATORS]


# =============================================================================
# ИЗВЕСТНЫЕ ЗНАЧЕНИЯ
# =============================================================================


class TestKnownValues:
    """Ручные примеры, одинаковые для всех калькуляторов"""

    @pytest.mark.parametrize("calculator_cls", CALCULATORS)
    def test_alternating_deltas_scale_zero(self, make_config, calculator_cls) -> None:
        # Σd² = 16, m = 4 → variance 4 → sqrt 2
        config = make_config(sample_count=5, scale_bits=0)
        result = calculator_cls(config).compute_volatility(series_from_deltas([2, -2, 2, -2], 0))
        assert result.value == FixedPoint.from_int(2, 0)
        assert result.sample_count == 5

    @pytest.mark.parametrize("calculator_cls", CALCULATORS)
    def test_alternating_deltas_scale_40(self, make_config, calculator_cls) -> None:
        config = make_config(sample_count=5)
        result = calculator_cls(config).compute_volatility(series_from_deltas([2, -2, 2, -2], 40))
        assert result.value.raw == 2 << 40
        assert result.value.to_float() == 2.0

    @pytest.mark.parametrize("calculator_cls", CALCULATORS)
    def test_constant_deltas(self, make_config, calculator_cls) -> None:
        config = make_config(sample_count=4, scale_bits=0)
        result = calculator_cls(config).compute_volatility(series_from_deltas([1, 1, 1], 0))
        assert result.value.raw == 1

    @pytest.mark.parametrize("calculator_cls", CALCULATORS)
    def test_single_delta(self, make_config, calculator_cls) -> None:
        config = make_config(sample_count=2, scale_bits=0)
        result = calculator_cls(config).compute_volatility(series_from_deltas([-7], 0))
        assert result.value.raw == 7

    @pytest.mark.parametrize("calculator_cls", CALCULATORS)
    def test_zero_deltas(self, make_config, calculator_cls) -> None:
        config = make_config(sample_count=4)
        result = calculator_cls(config).compute_volatility(series_from_deltas([0, 0, 0], 40))
        assert result.value.raw == 0

    @pytest.mark.parametrize("calculator_cls", CALCULATORS)
    def test_demeaned(self, make_config, calculator_cls) -> None:
        # mean 7/3; sample variance 14/6 → 2 (scale 0) → sqrt 1
        config = make_config(sample_count=4, scale_bits=0, demean=True)
        result = calculator_cls(config).compute_volatility(series_from_deltas([1, 2, 4], 0))
        assert result.value.raw == 1

    @pytest.mark.parametrize("calculator_cls", CALCULATORS)
    def test_demeaned_alternating(self, make_config, calculator_cls) -> None:
        # mean 0; Σd² / (m - 1) = 16 / 3 → 5 → sqrt 2
        config = make_config(sample_count=5, scale_bits=0, demean=True)
        result = calculator_cls(config).compute_volatility(series_from_deltas([2, -2, 2, -2], 0))
        assert result.value.raw == 2

    def test_modes_reported(self, make_config) -> None:
        config = make_config(sample_count=3)
        modes = [r.mode for r in _all_results(config, series_from_deltas([1, 2], 40))]
        assert modes == [CalculationMode.REFERENCE, CalculationMode.OPTIMIZED, CalculationMode.CIRCUIT]


# =============================================================================
# CIRCUIT == OPTIMIZED
# =============================================================================


class TestCircuitMatchesOptimized:
    """Circuit повторяет Optimized без единой единицы расхождения"""

    @pytest.mark.parametrize("seed", [1, 2, 3])
    def test_tick_mode(self, make_config, synthetic_window, seed) -> None:
        config = make_config(sample_count=64)
        series = build_return_series(synthetic_window(seed=seed), config)

        optimized = OptimizedCalculator(config).compute_volatility(series)
        circuit = CircuitCalculator(config).compute_volatility(series)
        assert circuit.value == optimized.value

    def test_tick_mode_reference_exact(self, make_config, synthetic_window) -> None:
        # целые дельты: FixedPoint.mul точен, Reference совпадает с Optimized
        config = make_config(sample_count=64)
        series = build_return_series(synthetic_window(), config)
        reference, optimized, circuit = _all_results(config, series)
        assert reference.value == optimized.value == circuit.value

    def test_demeaned(self, make_config, synthetic_window) -> None:
        config = make_config(sample_count=48, demean=True)
        series = build_return_series(synthetic_window(count=48, seed=5), config)
        reference, optimized, circuit = _all_results(config, series)

        assert circuit.value == optimized.value
        assert abs(reference.value.raw - optimized.value.raw) <= config.tolerance_units

    def test_matches_float_estimate(self, make_config, synthetic_window) -> None:
        config = make_config(sample_count=64)
        samples = synthetic_window()
        series = build_return_series(samples, config)
        result = OptimizedCalculator(config).compute_volatility(series)

        deltas = [b.tick - a.tick for a, b in zip(samples, samples[1:])]
        expected = math.sqrt(sum(d * d for d in deltas) / len(deltas))
        assert abs(result.value.to_float() - expected) < 1e-9


# =============================================================================
# LOG_PRICE
# =============================================================================


def _as_sqrt_price_samples(samples):
    """Те же окна в виде sqrtPriceX96: sqrtP = 1.0001^(tick / 2) · 2^96."""
    return [
        TickSample(timestamp=s.timestamp, sqrt_price_x96=int(1.0001 ** (s.tick / 2) * 2**96))
        for s in samples
    ]


SAMPLE_SOURCES = {
    "tick": lambda samples: samples,
    "sqrt_price": _as_sqrt_price_samples,
}


class TestLogPriceMode:
    """Дробные дельты: дисперсия в scale 2S не теряет бит до sqrt"""

    @pytest.mark.parametrize("source", sorted(SAMPLE_SOURCES))
    @pytest.mark.parametrize("seed", range(20))
    def test_windows_agree(self, make_config, synthetic_window, source, seed) -> None:
        config = make_config(sample_count=30, delta_mode=DeltaMode.LOG_PRICE)
        samples = SAMPLE_SOURCES[source](synthetic_window(count=30, seed=seed))
        series = build_return_series(samples, config)
        reference, optimized, circuit = _all_results(config, series)

        assert circuit.value == optimized.value
        assert reference.value == optimized.value
        assert optimized.value.raw > 0

    @pytest.mark.parametrize("source", sorted(SAMPLE_SOURCES))
    @pytest.mark.parametrize("seed", range(20))
    def test_demeaned_windows_within_tolerance(
        self, make_config, synthetic_window, source, seed
    ) -> None:
        config = make_config(sample_count=30, delta_mode=DeltaMode.LOG_PRICE, demean=True)
        samples = SAMPLE_SOURCES[source](synthetic_window(count=30, seed=seed))
        series = build_return_series(samples, config)
        reference, optimized, circuit = _all_results(config, series)

        assert circuit.value == optimized.value
        assert abs(reference.value.raw - optimized.value.raw) <= config.tolerance_units

    @pytest.mark.parametrize("calculator_cls", CALCULATORS)
    def test_two_samples_return_abs_delta(self, make_config, calculator_cls) -> None:
        # m = 1: дисперсия d² точна, корень возвращает |d| без потерь
        config = make_config(sample_count=2, delta_mode=DeltaMode.LOG_PRICE)
        samples = [TickSample(timestamp=1, tick=0), TickSample(timestamp=2, tick=7)]
        series = build_return_series(samples, config)

        result = calculator_cls(config).compute_volatility(series)
        assert result.value.raw == abs(series.raw_deltas[0])

    @pytest.mark.parametrize("calculator_cls", CALCULATORS)
    def test_two_samples_falling_price(self, make_config, calculator_cls) -> None:
        config = make_config(sample_count=2, delta_mode=DeltaMode.LOG_PRICE)
        samples = [
            TickSample(timestamp=1, sqrt_price_x96=3 << 96),
            TickSample(timestamp=2, sqrt_price_x96=2 << 96),
        ]
        series = build_return_series(samples, config)

        assert series.raw_deltas[0] < 0
        result = calculator_cls(config).compute_volatility(series)
        assert result.value.raw == abs(series.raw_deltas[0])

    def test_matches_float_estimate(self, make_config, synthetic_window) -> None:
        config = make_config(sample_count=30, delta_mode=DeltaMode.LOG_PRICE)
        samples = synthetic_window(count=30, seed=11)
        result = OptimizedCalculator(config).compute_volatility(build_return_series(samples, config))

        deltas = [(b.tick - a.tick) * math.log(1.0001) for a, b in zip(samples, samples[1:])]
        expected = math.sqrt(sum(d * d for d in deltas) / len(deltas))
        assert abs(result.value.to_float() - expected) < 1e-10

    def test_consistency_report_within_tolerance(self, make_config, synthetic_window) -> None:
        config = make_config(sample_count=30, delta_mode=DeltaMode.LOG_PRICE, demean=True)
        checker = ConsistencyChecker(config)
        for seed in range(20):
            report = checker.check(build_return_series(synthetic_window(count=30, seed=seed), config))
            assert report.within_tolerance
            assert report.optimized_vs_circuit == 0


# =============================================================================
# ПЕРЕПОЛНЕНИЕ И ОШИБКИ
# =============================================================================


class TestErrors:
    """Ошибки вычисления"""

    @pytest.mark.parametrize("calculator_cls", CALCULATORS)
    def test_overflow_raises(self, make_config, calculator_cls) -> None:
        # 16-битные значения, 32-битный аккумулятор: 3 · 30000² > 2^31
        config = make_config(sample_count=5, scale_bits=0, value_bits=16, accumulator_bits=32)
        series = series_from_deltas([30000] * 4, 0, value_bits=16)
        with pytest.raises(ArithmeticOverflow):
            calculator_cls(config).compute_volatility(series)

    @pytest.mark.parametrize("calculator_cls", CALCULATORS)
    def test_delta_wider_than_value_bits(self, make_config, calculator_cls) -> None:
        config = make_config(sample_count=2, scale_bits=0, value_bits=16, accumulator_bits=32)
        series = series_from_deltas([1 << 20], 0)
        with pytest.raises(ArithmeticOverflow):
            calculator_cls(config).compute_volatility(series)

    @pytest.mark.parametrize("calculator_cls", CALCULATORS)
    def test_scale_mismatch(self, make_config, calculator_cls) -> None:
        config = make_config(sample_count=3, scale_bits=40)
        with pytest.raises(ScaleMismatchError):
            calculator_cls(config).compute_volatility(series_from_deltas([1, 2], 32))

    def test_circuit_rejects_other_shape(self, make_config) -> None:
        config = make_config(sample_count=5)
        with pytest.raises(InputError, match="circuit shape expects 4 deltas"):
            CircuitCalculator(config).compute_volatility(series_from_deltas([1, 2], 40))


# =============================================================================
# СВОЙСТВА
# =============================================================================


class TestProperties:
    """Детерминизм и неотрицательность"""

    @pytest.mark.parametrize("calculator_cls", CALCULATORS)
    def test_deterministic(self, make_config, synthetic_window, calculator_cls) -> None:
        config = make_config(sample_count=64)
        series = build_return_series(synthetic_window(), config)
        calculator = calculator_cls(config)
        assert calculator.compute_volatility(series) == calculator.compute_volatility(series)

    def test_non_negative(self, make_config, synthetic_window) -> None:
        config = make_config(sample_count=16, demean=True)
        for seed in range(5):
            series = build_return_series(synthetic_window(count=16, seed=seed), config)
            for result in _all_results(config, series):
                assert result.value.raw >= 0

    def test_sign_invariant(self, make_config) -> None:
        config = make_config(sample_count=4)
        up = series_from_deltas([3, -1, 4], 40)
        down = series_from_deltas([-3, 1, -4], 40)
        for cls in CALCULATORS:
            assert cls(config).compute_volatility(up) == cls(config).compute_volatility(down)


# =============================================================================
# CONSTRAINT SYSTEM
# =============================================================================


class TestConstraintSystem:
    """Гаджеты схемы"""

    def test_isqrt_matches_math_isqrt(self) -> None:
        for n in range(300):
            assert ConstraintSystem().isqrt(n, 10, iterations=6) == math.isqrt(n)

    def test_isqrt_insufficient_iterations_is_defect(self) -> None:
        # 2^19 + 1: одной итерации Newton не хватает, x² <= n нарушено
        with pytest.raises(DivergenceDefect, match="x\\^2 <= n"):
            ConstraintSystem().isqrt(524289, 20, iterations=1)

    def test_isqrt_constraint_count_independent_of_input(self) -> None:
        counts = set()
        for n in (0, 1, 2, 1000, (1 << 19) - 1):
            cs = ConstraintSystem()
            cs.isqrt(n, 20, iterations=6)
            counts.add(cs.constraint_count)
        assert len(counts) == 1

    def test_div_gadget(self) -> None:
        cs = ConstraintSystem()
        assert cs.div(17, 5, 16, "q") == 3
        assert cs.witness[-2:] == [3, 2]

    def test_div_rejects_negative_dividend(self) -> None:
        with pytest.raises(DivergenceDefect, match="dividend"):
            ConstraintSystem().div(-1, 5, 16, "q")

    def test_range_check_overflow(self) -> None:
        with pytest.raises(ArithmeticOverflow):
            ConstraintSystem().mul(200, 200, 16, "square")

    def test_to_bits(self) -> None:
        assert ConstraintSystem().to_bits(6, 4, "v") == [0, 1, 1, 0]
        with pytest.raises(ArithmeticOverflow):
            ConstraintSystem().to_bits(16, 4, "v")

    def test_is_zero(self) -> None:
        assert ConstraintSystem().is_zero(0, "z") == 1
        assert ConstraintSystem().is_zero(9, "z") == 0


class TestCircuitTrace:
    """Trace и число ограничений"""

    def test_trace_public_inputs(self, make_config) -> None:
        config = make_config(sample_count=5, scale_bits=0)
        series = series_from_deltas([2, -2, 2, -2], 0)
        result, trace = CircuitCalculator(config).compute_with_trace(series)

        assert trace.public_inputs.volatility_raw == result.value.raw == 2
        assert trace.public_inputs.variance_raw == 4
        assert trace.public_inputs.sample_count == 5
        assert trace.public_inputs.input_digest == series.digest()
        assert trace.shape == config.circuit_shape()

    def test_constraint_count_depends_only_on_shape(self, make_config, synthetic_window) -> None:
        config = make_config(sample_count=64)
        calculator = CircuitCalculator(config)
        for seed in (1, 2):
            series = build_return_series(synthetic_window(seed=seed), config)
            _, trace = calculator.compute_with_trace(series)
            assert trace.constraint_count == calculator.constraint_count()
            assert trace.constraint_count == constraint_count_for(config.circuit_shape())

    def test_constraint_count_grows_with_window(self, make_config) -> None:
        small = constraint_count_for(make_config(sample_count=8).circuit_shape())
        large = constraint_count_for(make_config(sample_count=16).circuit_shape())
        assert large > small

    def test_synthesize_requires_shape_length(self, make_config) -> None:
        shape = make_config(sample_count=4).circuit_shape()
        with pytest.raises(InputError):
            synthesize(shape, [1, 2])
