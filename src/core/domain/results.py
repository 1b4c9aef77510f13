"""
VolatilityResult — Результат одного калькулятора

Immutable после создания.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from src.core.math.fixed_point import FixedPoint


class CalculationMode(str, Enum):
    """Реализация, посчитавшая результат"""

    REFERENCE = "REFERENCE"
    OPTIMIZED = "OPTIMIZED"
    CIRCUIT = "CIRCUIT"


@dataclass(frozen=True)
class VolatilityResult:
    """Realized volatility в FixedPoint."""

    value: FixedPoint
    sample_count: int
    mode: CalculationMode

    def to_dict(self) -> dict[str, Any]:
        return {
            "mode": self.mode.value,
            "sample_count": self.sample_count,
            "scale_bits": self.value.scale_bits,
            "raw": str(self.value.raw),
            "value": self.value.to_float(),
        }
