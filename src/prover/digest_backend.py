"""
Digest Backend — Детерминированный backend для локальной разработки

"Доказательство" = witness_commitment || HMAC-SHA256(материал ключа,
закодированные public inputs || shape_id || witness_commitment).

Не обладает криптографической стойкостью zk-доказательства: proving и
verifying ключи делят один материал. Нужен для round-trip
submit → verify без внешнего backend.
"""

import hashlib
import hmac
from typing import Final, Optional

import structlog

from src.core.domain.proof import (
    CircuitTrace,
    ProofArtifact,
    ProvingKey,
    PublicInputs,
    VerifyingKey,
)
from src.core.errors import BackendFailure
from src.prover.backend import ProofBackend

logger = structlog.get_logger(__name__)

DIGEST_BACKEND_KIND: Final[str] = "digest"

# Длина частей proof bytes
COMMITMENT_BYTES: Final[int] = 32
MAC_BYTES: Final[int] = 32


def _mac(material: str, public_inputs: PublicInputs, shape_id: str, commitment: bytes) -> bytes:
    message = public_inputs.encode() + bytes.fromhex(shape_id) + commitment
    return hmac.new(bytes.fromhex(material), message, hashlib.sha256).digest()


class DigestProofBackend(ProofBackend):
    """Keyed SHA-256 backend (dev)."""

    kind = DIGEST_BACKEND_KIND

    def __init__(
        self,
        proving_key: Optional[ProvingKey] = None,
        verifying_key: Optional[VerifyingKey] = None,
    ):
        self.proving_key = proving_key
        self.verifying_key = verifying_key

    def submit(self, trace: CircuitTrace) -> ProofArtifact:
        key = self.proving_key
        if key is None:
            raise BackendFailure("digest backend has no proving key", retryable=False)
        if key.backend_kind != self.kind:
            raise BackendFailure(
                f"proving key is for backend '{key.backend_kind}', not '{self.kind}'",
                retryable=False,
            )
        if key.shape != trace.shape:
            raise BackendFailure(
                f"proving key {key.key_id} was generated for a different circuit shape",
                retryable=False,
            )

        shape_id = trace.shape.shape_id()
        commitment = bytes.fromhex(trace.witness_commitment())
        proof = commitment + _mac(key.material, trace.public_inputs, shape_id, commitment)

        artifact = ProofArtifact(
            public_inputs_digest=trace.public_inputs.digest(),
            backend_proof_bytes=proof.hex(),
            backend_kind=self.kind,
            shape_id=shape_id,
            public_inputs=trace.public_inputs,
        )
        logger.info(
            "proof_generated",
            backend=self.kind,
            key_id=key.key_id,
            constraints=trace.constraint_count,
            public_inputs_digest=artifact.public_inputs_digest,
        )
        return artifact

    def verify(self, artifact: ProofArtifact, public_inputs: PublicInputs) -> bool:
        key = self.verifying_key
        if key is None:
            raise BackendFailure("digest backend has no verifying key", retryable=False)

        log = logger.bind(backend=self.kind, key_id=key.key_id)
        checks = {
            "backend_kind": artifact.backend_kind == self.kind == key.backend_kind,
            "shape_id": artifact.shape_id == key.shape.shape_id(),
            "public_inputs": artifact.public_inputs == public_inputs,
            "public_inputs_digest": artifact.public_inputs_digest == public_inputs.digest(),
        }
        failed = [name for name, ok in checks.items() if not ok]
        if failed:
            log.warning("proof_rejected", failed_checks=failed)
            return False

        proof = artifact.proof_bytes()
        if len(proof) != COMMITMENT_BYTES + MAC_BYTES:
            log.warning("proof_rejected", failed_checks=["proof_length"])
            return False

        commitment, mac = proof[:COMMITMENT_BYTES], proof[COMMITMENT_BYTES:]
        expected = _mac(key.material, public_inputs, artifact.shape_id, commitment)
        if not hmac.compare_digest(mac, expected):
            log.warning("proof_rejected", failed_checks=["mac"])
            return False

        log.info("proof_verified", public_inputs_digest=artifact.public_inputs_digest)
        return True
