"""
VolatilityConfig — Конфигурация вычисления волатильности

Immutable Pydantic модель, загружаемая из --config JSON.
Полная совместимость с JSON Schema (contracts/schema/volatility_config.json).

Все параметры формы (sample_count, разрядности, число итераций sqrt)
фиксируются ДО генерации witness: sample_count объявляется явно и
сверяется с фактической длиной входа, а не выводится из него.
"""

from typing import Final

from pydantic import AliasChoices, BaseModel, Field, model_validator

from src.core.domain.proof import PUBLIC_VALUE_WIDTH, CircuitShape
from src.core.domain.series import DeltaMode
from src.core.math.fixed_point import DEFAULT_SQRT_ITERATIONS, required_sqrt_iterations
from src.core.math.numerical_safeguards import (
    DEFAULT_ACCUMULATOR_BITS,
    DEFAULT_SCALE_BITS,
    DEFAULT_VALUE_BITS,
)

# Толерантность Reference vs Optimized по умолчанию (единицы младшего разряда)
DEFAULT_TOLERANCE_UNITS: Final[int] = 2

# Предельные разрядности конфигурации
MAX_CONFIG_SCALE_BITS: Final[int] = 96
MAX_CONFIG_VALUE_BITS: Final[int] = 256
MAX_CONFIG_ACCUMULATOR_BITS: Final[int] = 1024


class VolatilityConfig(BaseModel):
    """
    Параметры одного запуска.

    Принимает и snake_case имена, и короткие имена внешнего формата
    (scale, iterations, tolerance, sampleCount).
    """

    sample_count: int = Field(
        ...,
        ge=2,
        validation_alias=AliasChoices("sample_count", "sampleCount"),
        description="Объявленное число сэмплов (форма схемы)",
    )
    scale_bits: int = Field(
        DEFAULT_SCALE_BITS,
        ge=0,
        le=MAX_CONFIG_SCALE_BITS,
        validation_alias=AliasChoices("scale_bits", "scale"),
        description="Число дробных бит FixedPoint",
    )
    value_bits: int = Field(
        DEFAULT_VALUE_BITS,
        ge=8,
        le=MAX_CONFIG_VALUE_BITS,
        description="Signed разрядность значений",
    )
    accumulator_bits: int = Field(
        DEFAULT_ACCUMULATOR_BITS,
        ge=16,
        le=MAX_CONFIG_ACCUMULATOR_BITS,
        description="Signed разрядность аккумулятора суммы квадратов",
    )
    sqrt_iterations: int = Field(
        DEFAULT_SQRT_ITERATIONS,
        ge=1,
        validation_alias=AliasChoices("sqrt_iterations", "iterations"),
        description="Фиксированное число итераций Newton-Raphson",
    )
    tolerance_units: int = Field(
        DEFAULT_TOLERANCE_UNITS,
        ge=0,
        validation_alias=AliasChoices("tolerance_units", "tolerance"),
        description="Допуск |Reference - Optimized| в raw единицах",
    )
    strict: bool = Field(
        False, description="Превышение толерантности фатально (CI режим)"
    )
    delta_mode: DeltaMode = Field(
        DeltaMode.TICK,
        validation_alias=AliasChoices("delta_mode", "deltaMode"),
        description="tick (разность тиков) или log_price (разность log-цен)",
    )
    demean: bool = Field(
        False, description="Выборочная дисперсия с вычитанием среднего (m - 1)"
    )

    model_config = {"frozen": True, "extra": "forbid", "populate_by_name": True}

    @model_validator(mode="after")
    def validate_widths(self) -> "VolatilityConfig":
        """
        Согласованность разрядностей и числа итераций.

        - scale_bits < value_bits - 1 (хотя бы один целый бит)
        - accumulator_bits >= 2 · value_bits (квадрат дельты без переполнения)
        - sqrt_iterations достаточно для подкоренного value_bits + scale_bits
        - дисперсия (scale 2S) помещается в публичное значение PUBLIC_VALUE_WIDTH
        """
        if self.scale_bits >= self.value_bits - 1:
            raise ValueError(
                f"scale_bits {self.scale_bits} leaves no integer bits in "
                f"value_bits {self.value_bits}"
            )
        if self.accumulator_bits < 2 * self.value_bits:
            raise ValueError(
                f"accumulator_bits {self.accumulator_bits} must be >= "
                f"2 * value_bits ({2 * self.value_bits})"
            )
        required = required_sqrt_iterations(self.value_bits + self.scale_bits)
        if self.sqrt_iterations < required:
            raise ValueError(
                f"sqrt_iterations {self.sqrt_iterations} < {required} required "
                f"for {self.value_bits + self.scale_bits}-bit radicands"
            )
        radicand_bits = self.value_bits + self.scale_bits
        if radicand_bits - 1 > 8 * PUBLIC_VALUE_WIDTH:
            raise ValueError(
                f"value_bits + scale_bits = {radicand_bits} exceeds the "
                f"{8 * PUBLIC_VALUE_WIDTH}-bit public variance value"
            )
        if self.demean and self.sample_count < 3:
            raise ValueError("demean requires sample_count >= 3")
        return self

    def circuit_shape(self) -> CircuitShape:
        """Форма схемы, фиксируемая на keygen."""
        return CircuitShape(
            sample_count=self.sample_count,
            scale_bits=self.scale_bits,
            value_bits=self.value_bits,
            accumulator_bits=self.accumulator_bits,
            sqrt_iterations=self.sqrt_iterations,
            demean=self.demean,
        )
