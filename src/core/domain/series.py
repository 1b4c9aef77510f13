"""
ReturnSeries — Упорядоченная серия дельт в FixedPoint

Value object: создаётся заново на каждый вызов и не мутирует, так как
доказательство атрибутирует конкретный trace вычисления.

Инварианты:
- len(deltas) == sample_count - 1 >= 1
- все дельты имеют один scale_bits
- digest() детерминирован (big-endian signed кодирование raw)
"""

import hashlib
from dataclasses import dataclass
from enum import Enum

from src.core.errors import InputError, ScaleMismatchError
from src.core.math.fixed_point import FixedPoint


class DeltaMode(str, Enum):
    """Способ вычисления дельты между соседними сэмплами"""

    TICK = "tick"
    LOG_PRICE = "log_price"


@dataclass(frozen=True)
class ReturnSeries:
    """Серия дельт d_1..d_m, m = sample_count - 1."""

    deltas: tuple[FixedPoint, ...]
    scale_bits: int
    delta_mode: DeltaMode
    sample_count: int

    def __post_init__(self) -> None:
        if self.sample_count < 2:
            raise InputError(
                f"sample_count must be >= 2 for a volatility window, got {self.sample_count}"
            )
        if len(self.deltas) != self.sample_count - 1:
            raise InputError(
                f"series length {len(self.deltas)} does not match "
                f"sample_count - 1 = {self.sample_count - 1}"
            )
        for delta in self.deltas:
            if delta.scale_bits != self.scale_bits:
                raise ScaleMismatchError(
                    f"delta scale {delta.scale_bits} != series scale {self.scale_bits}"
                )

    def __len__(self) -> int:
        return len(self.deltas)

    def __iter__(self):
        return iter(self.deltas)

    @property
    def raw_deltas(self) -> tuple[int, ...]:
        return tuple(delta.raw for delta in self.deltas)

    def digest(self) -> str:
        """
        SHA-256 коммитмент к входу схемы.

        Каждая дельта кодируется big-endian signed фиксированной ширины
        (по разрядности дельты), затем добавляются scale и число сэмплов.
        """
        hasher = hashlib.sha256()
        hasher.update(self.sample_count.to_bytes(8, "big"))
        hasher.update(self.scale_bits.to_bytes(8, "big"))
        for delta in self.deltas:
            width = (delta.bits + 7) // 8
            hasher.update(delta.raw.to_bytes(width, "big", signed=True))
        return hasher.hexdigest()
