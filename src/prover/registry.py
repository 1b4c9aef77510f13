"""Реестр proving backend по имени (kind в ключах keygen)."""

from typing import Optional

from src.core.domain.proof import ProvingKey, VerifyingKey
from src.core.errors import ConfigurationError
from src.prover.backend import ProofBackend
from src.prover.digest_backend import DIGEST_BACKEND_KIND, DigestProofBackend

BACKENDS: dict[str, type[DigestProofBackend]] = {
    DIGEST_BACKEND_KIND: DigestProofBackend,
}


def ensure_backend_kind(kind: str) -> None:
    """
    Raises:
        ConfigurationError: Неизвестный тип backend
    """
    if kind not in BACKENDS:
        raise ConfigurationError(
            f"unknown proof backend '{kind}', available: {sorted(BACKENDS)}"
        )


def create_backend(
    kind: str,
    proving_key: Optional[ProvingKey] = None,
    verifying_key: Optional[VerifyingKey] = None,
) -> ProofBackend:
    """
    Backend по имени.

    Raises:
        ConfigurationError: Неизвестный тип backend
    """
    ensure_backend_kind(kind)
    return BACKENDS[kind](proving_key=proving_key, verifying_key=verifying_key)
