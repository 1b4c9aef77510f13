"""
Synthetic — Детерминированные синтетические тики

Случайное блуждание тика с нормальными приращениями. seed фиксирует
последовательность: одинаковый seed → одинаковые сэмплы.
"""

import random
from typing import Final

from src.core.domain.samples import MAX_TICK, MIN_TICK, TickSample
from src.core.math.numerical_safeguards import validate_positive_int

DEFAULT_TICK_SIGMA: Final[float] = 25.0
DEFAULT_START_TICK: Final[int] = 200_000
DEFAULT_BLOCK_STEP: Final[int] = 1


def generate_synthetic_samples(
    count: int,
    seed: int = 0,
    sigma: float = DEFAULT_TICK_SIGMA,
    start_tick: int = DEFAULT_START_TICK,
    block_step: int = DEFAULT_BLOCK_STEP,
) -> list[TickSample]:
    """
    count сэмплов случайного блуждания тика.

    Приращения ~ round(N(0, sigma)); тик ограничивается границами пула.

    Args:
        count: Число сэмплов
        seed: Seed генератора
        sigma: Стандартное отклонение приращения (тики)
        start_tick: Начальный тик
        block_step: Шаг timestamp между сэмплами

    Returns:
        Сэмплы с неубывающими timestamps

    Examples:
        >>> len(generate_synthetic_samples(8, seed=1))
        8
    """
    validate_positive_int(count, "count")
    if sigma < 0:
        raise ValueError(f"sigma must be non-negative, got {sigma}")

    rng = random.Random(seed)
    tick = start_tick
    samples = []
    for i in range(count):
        samples.append(TickSample(timestamp=i * block_step, tick=tick))
        tick = min(MAX_TICK, max(MIN_TICK, tick + round(rng.gauss(0.0, sigma))))
    return samples
