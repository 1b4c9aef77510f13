"""
ReturnSeries Builder — Сэмплы пула → серия дельт FixedPoint

Единственная точка подготовки входа для всех трёх калькуляторов: любая
последующая разница между ними относится к алгоритму волатильности,
а не к конверсии входа.

Проверки ДО вычислений (InputError):
- sample_count >= 2
- фактическая длина == объявленный sample_count
- timestamps неубывающие
- все сэмплы одного типа (tick или sqrtPriceX96)

Режимы дельт:
- tick: d_i = tick_i - tick_{i-1} (целое, raw = d << S)
- log_price: d_i = ln(P_i / P_{i-1}) в FixedPoint (целочисленный логарифм)
"""

from typing import Sequence

import structlog

from src.core.domain.config import VolatilityConfig
from src.core.domain.samples import SampleKind, TickSample
from src.core.domain.series import DeltaMode, ReturnSeries
from src.core.errors import ConfigurationError, InputError
from src.core.math.fixed_point import FixedPoint
from src.core.math.log_returns import sqrt_price_log_return, tick_log_return
from src.core.math.numerical_safeguards import DEFAULT_VALUE_BITS

logger = structlog.get_logger(__name__)


# =============================================================================
# ВАЛИДАЦИЯ ВХОДА
# =============================================================================


def validate_samples(samples: Sequence[TickSample], declared_count: int) -> SampleKind:
    """
    Проверка последовательности сэмплов против объявленной формы.

    Args:
        samples: Сэмплы в порядке наблюдения
        declared_count: sample_count из конфигурации/ключей

    Returns:
        Общий тип ценового поля сэмплов

    Raises:
        InputError: Слишком короткая последовательность, несовпадение длины,
            немонотонные timestamps, смешанные типы сэмплов
    """
    if len(samples) < 2:
        raise InputError(
            f"volatility window needs at least 2 samples, got {len(samples)}"
        )
    if len(samples) != declared_count:
        raise InputError(
            f"sample count {len(samples)} does not match declared "
            f"sample_count {declared_count}"
        )

    kind = samples[0].kind
    previous = samples[0]
    for index, sample in enumerate(samples[1:], start=1):
        if sample.timestamp < previous.timestamp:
            raise InputError(
                f"timestamps must be non-decreasing: sample {index} has "
                f"{sample.timestamp} < {previous.timestamp}"
            )
        if sample.kind != kind:
            raise InputError(
                f"mixed sample kinds: sample {index} is {sample.kind.value}, "
                f"expected {kind.value}"
            )
        previous = sample
    return kind


# =============================================================================
# ПОСТРОЕНИЕ СЕРИИ
# =============================================================================


def _tick_delta_raw(prev: TickSample, curr: TickSample, config: VolatilityConfig) -> int:
    delta_tick = curr.tick - prev.tick
    if config.delta_mode == DeltaMode.TICK:
        return delta_tick << config.scale_bits
    return tick_log_return(delta_tick, config.scale_bits)


def _sqrt_price_delta_raw(
    prev: TickSample, curr: TickSample, config: VolatilityConfig
) -> int:
    if config.delta_mode == DeltaMode.TICK:
        raise ConfigurationError(
            "delta_mode 'tick' requires tick samples; use 'log_price' for sqrtPriceX96 input"
        )
    return sqrt_price_log_return(prev.sqrt_price_x96, curr.sqrt_price_x96, config.scale_bits)


def build_return_series(
    samples: Sequence[TickSample], config: VolatilityConfig
) -> ReturnSeries:
    """
    Построение серии дельт по конфигурации.

    Raises:
        InputError: Невалидная последовательность сэмплов
        ConfigurationError: delta_mode несовместим с типом сэмплов
        ArithmeticOverflow: Дельта не помещается в value_bits
    """
    kind = validate_samples(samples, config.sample_count)
    delta_raw = _tick_delta_raw if kind == SampleKind.TICK else _sqrt_price_delta_raw

    deltas = tuple(
        FixedPoint.from_raw(
            delta_raw(prev, curr, config), config.scale_bits, config.value_bits
        )
        for prev, curr in zip(samples, samples[1:])
    )
    series = ReturnSeries(
        deltas=deltas,
        scale_bits=config.scale_bits,
        delta_mode=config.delta_mode,
        sample_count=len(samples),
    )
    logger.debug(
        "return_series_built",
        sample_kind=kind.value,
        delta_mode=config.delta_mode.value,
        sample_count=series.sample_count,
        scale_bits=series.scale_bits,
    )
    return series


def series_from_deltas(
    deltas: Sequence[int],
    scale_bits: int,
    value_bits: int = DEFAULT_VALUE_BITS,
    delta_mode: DeltaMode = DeltaMode.TICK,
) -> ReturnSeries:
    """
    Серия из готовых целых дельт (raw = d << scale_bits).

    Examples:
        >>> len(series_from_deltas([2, -2, 2, -2], scale_bits=0))
        4
    """
    if not deltas:
        raise InputError("series needs at least one delta (sample_count >= 2)")
    return ReturnSeries(
        deltas=tuple(FixedPoint.from_int(d, scale_bits, value_bits) for d in deltas),
        scale_bits=scale_bits,
        delta_mode=delta_mode,
        sample_count=len(deltas) + 1,
    )
