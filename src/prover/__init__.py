"""Prover — граница с proving backend: ключи, backend, submit с таймаутом."""

from src.prover.backend import ProofBackend
from src.prover.digest_backend import DIGEST_BACKEND_KIND, DigestProofBackend
from src.prover.keys import (
    DEFAULT_DEGREE,
    PROVING_KEY_FILE,
    VERIFYING_KEY_FILE,
    ensure_shape,
    generate_keys,
    load_proving_key,
    load_verifying_key,
    write_keys,
)
from src.prover.registry import BACKENDS, create_backend, ensure_backend_kind
from src.prover.submitter import ProofSubmitter

__all__ = [
    "BACKENDS",
    "DEFAULT_DEGREE",
    "DIGEST_BACKEND_KIND",
    "PROVING_KEY_FILE",
    "VERIFYING_KEY_FILE",
    "DigestProofBackend",
    "ProofBackend",
    "ProofSubmitter",
    "create_backend",
    "ensure_backend_kind",
    "ensure_shape",
    "generate_keys",
    "load_proving_key",
    "load_verifying_key",
    "write_keys",
]
