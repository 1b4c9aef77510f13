"""
Domain models and value objects.

Contains fundamental domain entities: TickSample, ReturnSeries,
VolatilityResult, VolatilityConfig and the proof boundary objects.
"""

from src.core.domain.config import DEFAULT_TOLERANCE_UNITS, VolatilityConfig
from src.core.domain.proof import (
    CircuitShape,
    CircuitTrace,
    ProofArtifact,
    ProvingKey,
    PublicInputs,
    VerifyingKey,
)
from src.core.domain.results import CalculationMode, VolatilityResult
from src.core.domain.samples import (
    MAX_SQRT_RATIO,
    MAX_TICK,
    MIN_SQRT_RATIO,
    MIN_TICK,
    SampleKind,
    TickSample,
)
from src.core.domain.series import DeltaMode, ReturnSeries

__all__ = [
    # Samples
    "MIN_TICK",
    "MAX_TICK",
    "MIN_SQRT_RATIO",
    "MAX_SQRT_RATIO",
    "SampleKind",
    "TickSample",
    # Series
    "DeltaMode",
    "ReturnSeries",
    # Results
    "CalculationMode",
    "VolatilityResult",
    # Config
    "DEFAULT_TOLERANCE_UNITS",
    "VolatilityConfig",
    # Proof boundary
    "CircuitShape",
    "CircuitTrace",
    "ProofArtifact",
    "ProvingKey",
    "PublicInputs",
    "VerifyingKey",
]
