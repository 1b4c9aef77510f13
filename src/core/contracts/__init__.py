"""
Contract Validation Module

Модуль для валидации JSON контрактов: входные сэмплы, конфигурация,
артефакт доказательства.
"""

from .validators import (
    ContractValidator,
    ProofArtifactValidator,
    SchemaLoader,
    TickSamplesValidator,
    ValidationError,
    VolatilityConfigValidator,
    validate_proof_artifact,
    validate_tick_samples,
    validate_volatility_config,
)

__all__ = [
    # Classes
    "SchemaLoader",
    "ContractValidator",
    "TickSamplesValidator",
    "VolatilityConfigValidator",
    "ProofArtifactValidator",
    "ValidationError",
    # Functions
    "validate_tick_samples",
    "validate_volatility_config",
    "validate_proof_artifact",
]
