"""
TickSample — Модель сэмпла состояния пула

Immutable Pydantic модель одного наблюдения пула Uniswap V3.
Полная совместимость с JSON Schema (contracts/schema/tick_samples.json).

Сэмпл несёт ровно одно из полей:
- tick: целочисленный уровень цены, price = 1.0001^tick
- sqrtPriceX96: sqrt(price) · 2^96 (uint160)
"""

from enum import Enum
from typing import Final, Optional

from pydantic import BaseModel, Field, model_validator


# =============================================================================
# ГРАНИЦЫ UNISWAP V3 (TickMath)
# =============================================================================

MIN_TICK: Final[int] = -887272
MAX_TICK: Final[int] = 887272

MIN_SQRT_RATIO: Final[int] = 4295128739
MAX_SQRT_RATIO: Final[int] = 1461446703485210103287273052203988822378723970342


# =============================================================================
# ENUMS
# =============================================================================


class SampleKind(str, Enum):
    """Тип ценового поля сэмпла"""

    TICK = "tick"
    SQRT_PRICE = "sqrtPriceX96"


# =============================================================================
# TICK SAMPLE MODEL
# =============================================================================


class TickSample(BaseModel):
    """
    Сэмпл пула: timestamp + tick или sqrtPriceX96.

    Immutable модель (frozen=True): сэмплы загружаются один раз за запуск
    и только читаются ядром.
    """

    timestamp: int = Field(
        ..., ge=0, description="Время наблюдения (неубывающее в последовательности)"
    )
    tick: Optional[int] = Field(
        None, ge=MIN_TICK, le=MAX_TICK, description="Тик пула (nullable)"
    )
    sqrt_price_x96: Optional[int] = Field(
        None,
        alias="sqrtPriceX96",
        ge=MIN_SQRT_RATIO,
        le=MAX_SQRT_RATIO,
        description="sqrt(price) · 2^96 (nullable)",
    )

    model_config = {"frozen": True, "populate_by_name": True}

    @model_validator(mode="after")
    def validate_single_price_field(self) -> "TickSample":
        """Ровно одно из tick / sqrtPriceX96 должно быть задано."""
        has_tick = self.tick is not None
        has_sqrt_price = self.sqrt_price_x96 is not None
        if has_tick == has_sqrt_price:
            raise ValueError(
                "sample must carry exactly one of 'tick' or 'sqrtPriceX96'"
            )
        return self

    @property
    def kind(self) -> SampleKind:
        return SampleKind.TICK if self.tick is not None else SampleKind.SQRT_PRICE
