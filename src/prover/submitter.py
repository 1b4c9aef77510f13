"""
Proof Submitter — Ограниченный по времени и отменяемый вызов submit

submit backend может блокироваться секундами и дольше. Вызов идёт через
worker thread: вызывающий ждёт future не дольше timeout_sec и может отменить
запрос через threading.Event, не блокируя процесс.

Политика повторов:
- BackendFailure(retryable=True), таймаут и прочие ошибки backend
  повторяются до max_retries раз с линейным backoff
- BackendFailure(retryable=False) не повторяется
- исчерпание повторов → BackendFailure, связанный (from) с последней ошибкой

Зависший worker нельзя прервать: он дорабатывает в фоне, результат
отбрасывается.
"""

import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Final, Optional

import structlog

from src.core.domain.proof import CircuitTrace, ProofArtifact
from src.core.errors import BackendFailure
from src.prover.backend import ProofBackend

logger = structlog.get_logger(__name__)

DEFAULT_SUBMIT_TIMEOUT_SEC: Final[float] = 120.0
DEFAULT_MAX_RETRIES: Final[int] = 2
DEFAULT_RETRY_BACKOFF_SEC: Final[float] = 1.0
DEFAULT_SUBMIT_WORKERS: Final[int] = 4

# Период проверки cancel_event во время ожидания
CANCEL_POLL_SEC: Final[float] = 0.1


class ProofSubmitter:
    """
    Обёртка ProofBackend.submit с таймаутом, отменой и повторами.

    Потокобезопасна: каждый вызов submit независим, общий только пул
    потоков.
    """

    def __init__(
        self,
        backend: ProofBackend,
        timeout_sec: float = DEFAULT_SUBMIT_TIMEOUT_SEC,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_backoff_sec: float = DEFAULT_RETRY_BACKOFF_SEC,
        max_workers: int = DEFAULT_SUBMIT_WORKERS,
    ):
        if timeout_sec <= 0:
            raise ValueError(f"timeout_sec must be positive, got {timeout_sec}")
        if max_retries < 0:
            raise ValueError(f"max_retries must be non-negative, got {max_retries}")
        self.backend = backend
        self.timeout_sec = timeout_sec
        self.max_retries = max_retries
        self.retry_backoff_sec = retry_backoff_sec
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="proof-submit"
        )

    def submit(
        self, trace: CircuitTrace, cancel_event: Optional[threading.Event] = None
    ) -> ProofArtifact:
        """
        Отправка trace в backend.

        Args:
            trace: Trace Circuit Calculator
            cancel_event: Установленный event прекращает ожидание и повторы

        Returns:
            Артефакт доказательства

        Raises:
            BackendFailure: Отмена, неповторяемая ошибка или исчерпание повторов
        """
        cancel = cancel_event or threading.Event()
        log = logger.bind(
            backend=self.backend.kind,
            public_inputs_digest=trace.public_inputs.digest(),
        )
        attempts = self.max_retries + 1
        last_error: Optional[BaseException] = None

        for attempt in range(1, attempts + 1):
            if cancel.is_set():
                raise BackendFailure(
                    f"proof submission cancelled before attempt {attempt}",
                    retryable=False,
                    attempts=attempt - 1,
                ) from last_error

            future = self._executor.submit(self.backend.submit, trace)
            try:
                artifact = self._wait(future, cancel)
            except BackendFailure as e:
                if not e.retryable:
                    e.attempts = attempt
                    log.error("proof_submit_failed", attempt=attempt, error=str(e))
                    raise
                last_error = e
            except FutureTimeoutError as e:
                future.cancel()
                last_error = e
                log.warning("proof_submit_timeout", attempt=attempt, timeout_sec=self.timeout_sec)
            except Exception as e:
                last_error = e
            else:
                log.info("proof_submitted", attempt=attempt)
                return artifact

            log.warning(
                "proof_submit_retry",
                attempt=attempt,
                max_attempts=attempts,
                error=repr(last_error),
            )
            if attempt < attempts and cancel.wait(self.retry_backoff_sec * attempt):
                raise BackendFailure(
                    "proof submission cancelled during retry backoff",
                    retryable=False,
                    attempts=attempt,
                ) from last_error

        raise BackendFailure(
            f"proof submission failed after {attempts} attempts: {last_error!r}",
            retryable=False,
            attempts=attempts,
        ) from last_error

    def _wait(self, future: Future, cancel: threading.Event) -> ProofArtifact:
        """
        Ожидание future с проверкой отмены.

        Raises:
            FutureTimeoutError: Истёк timeout_sec
            BackendFailure: Запрос отменён
        """
        deadline = time.monotonic() + self.timeout_sec
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise FutureTimeoutError(f"backend did not respond in {self.timeout_sec}s")
            done, _ = wait([future], timeout=min(remaining, CANCEL_POLL_SEC))
            if done:
                return future.result()
            if cancel.is_set():
                future.cancel()
                raise BackendFailure("proof submission cancelled", retryable=False)

    def close(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)

    def __enter__(self) -> "ProofSubmitter":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
