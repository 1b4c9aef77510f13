"""
Proof Boundary — Модели границы с proving backend

Immutable модели объектов, которыми ядро обменивается с внешним
proving backend:
- CircuitShape: форма схемы, фиксируемая на keygen
- PublicInputs: публичные входы (выход Circuit + коммитмент sample_count)
- CircuitTrace: trace вычисления Circuit Calculator
- ProofArtifact: результат submit (JSON, camelCase)
- ProvingKey / VerifyingKey: артефакты keygen

Полная совместимость с JSON Schema (contracts/schema/proof_artifact.json).
"""

import hashlib
from dataclasses import dataclass
from typing import Final

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# Ширина полей кодирования публичных значений (байты, big-endian)
PUBLIC_VALUE_WIDTH: Final[int] = 32
PUBLIC_COUNT_WIDTH: Final[int] = 8

HEX_DIGEST_PATTERN: Final[str] = "^[a-f0-9]{64}$"


# =============================================================================
# CIRCUIT SHAPE
# =============================================================================


class CircuitShape(BaseModel):
    """
    Форма схемы: все размеры, фиксируемые до генерации witness.

    Ключи keygen привязаны к shape_id; запуск с другой формой — ошибка
    конфигурации.
    """

    sample_count: int = Field(..., ge=2, description="Число сэмплов окна")
    scale_bits: int = Field(..., ge=0, description="Дробные биты FixedPoint")
    value_bits: int = Field(..., ge=8, description="Разрядность значений")
    accumulator_bits: int = Field(..., ge=16, description="Разрядность аккумулятора")
    sqrt_iterations: int = Field(..., ge=1, description="Итерации Newton-Raphson")
    demean: bool = Field(False, description="Выборочная дисперсия")

    model_config = ConfigDict(frozen=True)

    @property
    def delta_count(self) -> int:
        return self.sample_count - 1

    @property
    def radicand_bits(self) -> int:
        """Разрядность подкоренного выражения sqrt (дисперсия в scale 2S)."""
        return self.value_bits + self.scale_bits

    @property
    def witness_bits(self) -> int:
        """Signed разрядность, вмещающая любую ячейку witness."""
        return max(self.accumulator_bits, 2 * self.radicand_bits + 4)

    def shape_id(self) -> str:
        """SHA-256 канонического JSON формы."""
        return hashlib.sha256(self.model_dump_json().encode("utf-8")).hexdigest()


# =============================================================================
# PUBLIC INPUTS
# =============================================================================


class PublicInputs(BaseModel):
    """
    Публичные входы доказательства.

    Кодирование (encode) — кортеж фиксированной ширины, big-endian:
        bytes32 volatility_raw | bytes32 variance_raw |
        bytes8 sample_count    | bytes8 scale_bits    | bytes32 input_digest
    """

    volatility_raw: int = Field(..., ge=0, description="Выход Circuit (raw)")
    variance_raw: int = Field(..., ge=0, description="Дисперсия до sqrt (raw, scale 2S)")
    sample_count: int = Field(..., ge=2, description="Коммитмент числа сэмплов")
    scale_bits: int = Field(..., ge=0, description="Scale FixedPoint")
    input_digest: str = Field(
        ..., pattern=HEX_DIGEST_PATTERN, description="SHA-256 серии дельт"
    )

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    def encode(self) -> bytes:
        """
        Кодирование публичных значений.

        Raises:
            OverflowError: Если значение не помещается в 32 байта
        """
        return b"".join(
            [
                self.volatility_raw.to_bytes(PUBLIC_VALUE_WIDTH, "big"),
                self.variance_raw.to_bytes(PUBLIC_VALUE_WIDTH, "big"),
                self.sample_count.to_bytes(PUBLIC_COUNT_WIDTH, "big"),
                self.scale_bits.to_bytes(PUBLIC_COUNT_WIDTH, "big"),
                bytes.fromhex(self.input_digest),
            ]
        )

    def digest(self) -> str:
        return hashlib.sha256(self.encode()).hexdigest()


# =============================================================================
# CIRCUIT TRACE
# =============================================================================


@dataclass(frozen=True)
class CircuitTrace:
    """
    Trace вычисления Circuit Calculator.

    witness — значения всех промежуточных ячеек в порядке назначения;
    constraint_count зависит только от shape.
    """

    shape: CircuitShape
    public_inputs: PublicInputs
    witness: tuple[int, ...]
    constraint_count: int

    def witness_commitment(self) -> str:
        """SHA-256 witness (signed big-endian фиксированной ширины)."""
        width = (self.shape.witness_bits + 7) // 8
        hasher = hashlib.sha256()
        for value in self.witness:
            hasher.update(value.to_bytes(width, "big", signed=True))
        return hasher.hexdigest()


# =============================================================================
# PROOF ARTIFACT
# =============================================================================


class ProofArtifact(BaseModel):
    """
    Артефакт доказательства (JSON, camelCase).

    Точный формат backendProofBytes определяется backend.
    """

    public_inputs_digest: str = Field(
        ..., pattern=HEX_DIGEST_PATTERN, description="SHA-256 закодированных public inputs"
    )
    backend_proof_bytes: str = Field(
        ..., pattern="^([a-f0-9]{2})*$", description="Байты доказательства (hex)"
    )
    backend_kind: str = Field(..., min_length=1, description="Тип proving backend")
    shape_id: str = Field(..., pattern=HEX_DIGEST_PATTERN, description="ID формы схемы")
    public_inputs: PublicInputs = Field(..., description="Публичные входы")

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    def proof_bytes(self) -> bytes:
        return bytes.fromhex(self.backend_proof_bytes)


# =============================================================================
# KEYS
# =============================================================================


class _CircuitKey(BaseModel):
    """Общие поля ключей keygen."""

    backend_kind: str = Field(..., min_length=1, description="Тип proving backend")
    shape: CircuitShape = Field(..., description="Форма схемы")
    degree: int = Field(..., ge=1, le=32, description="log2 числа строк схемы")
    key_id: str = Field(..., min_length=1, description="Идентификатор пары ключей")
    material: str = Field(..., pattern="^([a-f0-9]{2})*$", description="Материал ключа (hex)")

    model_config = ConfigDict(frozen=True)


class ProvingKey(_CircuitKey):
    """Proving key: нужен для submit."""


class VerifyingKey(_CircuitKey):
    """Verifying key: нужен для verify."""
