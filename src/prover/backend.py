"""
Proof Backend Adapter — Граница с proving backend

Ядро знает о backend только это:
- submit(trace) -> ProofArtifact: долгая операция, может упасть
- verify(artifact, public_inputs) -> bool

Публичные входы артефакта содержат выход Circuit и коммитмент
sample_count.
"""

from abc import ABC, abstractmethod

from src.core.domain.proof import CircuitTrace, ProofArtifact, PublicInputs


class ProofBackend(ABC):
    """Абстрактный proving backend."""

    kind: str

    @abstractmethod
    def submit(self, trace: CircuitTrace) -> ProofArtifact:
        """
        Генерация доказательства по trace Circuit.

        Raises:
            BackendFailure: Сбой backend (retryable определяет политику повтора)
        """

    @abstractmethod
    def verify(self, artifact: ProofArtifact, public_inputs: PublicInputs) -> bool:
        """Проверка доказательства против ожидаемых публичных входов."""
