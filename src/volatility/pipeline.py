"""
Pipeline — Окно сэмплов → отчёт согласованности → (опционально) доказательство

run_window:   сэмплы → ReturnSeries → ConsistencyChecker
prove_window: run_window + submit trace Circuit через ProofSubmitter
run_batch:    независимые окна в пуле потоков, результат на каждое окно

Каждое окно владеет своими сэмплами и результатами: общего изменяемого
состояния между окнами нет, ошибка одного окна не влияет на другие.
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Final, Optional, Sequence

import structlog

from src.core.domain.config import VolatilityConfig
from src.core.domain.proof import CircuitTrace, ProofArtifact
from src.core.domain.samples import TickSample
from src.core.domain.series import ReturnSeries
from src.core.errors import VolatilityError
from src.prover.submitter import ProofSubmitter
from src.volatility.consistency import ConsistencyChecker, ConsistencyReport
from src.volatility.series_builder import build_return_series

logger = structlog.get_logger(__name__)

DEFAULT_BATCH_WORKERS: Final[int] = 4


@dataclass(frozen=True)
class WindowOutcome:
    """Результат обработки одного окна."""

    series: ReturnSeries
    report: ConsistencyReport
    trace: CircuitTrace
    artifact: Optional[ProofArtifact] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "sampleCount": self.series.sample_count,
            "deltaMode": self.series.delta_mode.value,
            "inputDigest": self.series.digest(),
            "constraintCount": self.trace.constraint_count,
            "report": self.report.to_dict(),
        }
        if self.artifact is not None:
            data["artifact"] = self.artifact.model_dump(mode="json", by_alias=True)
        return data


@dataclass(frozen=True)
class BatchItemResult:
    """Результат окна в batch: outcome или ошибка."""

    index: int
    outcome: Optional[WindowOutcome] = None
    error: Optional[VolatilityError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        if self.error is not None:
            return {
                "index": self.index,
                "ok": False,
                "errorType": type(self.error).__name__,
                "error": str(self.error),
            }
        return {"index": self.index, "ok": True, **self.outcome.to_dict()}


def run_window(samples: Sequence[TickSample], config: VolatilityConfig) -> WindowOutcome:
    """
    Вычисление и сверка трёх калькуляторов для одного окна.

    Raises:
        InputError: Невалидные сэмплы
        ArithmeticOverflow: Переполнение в вычислении
        DivergenceDefect: Optimized != Circuit
        DivergenceWarning: strict режим и превышена толерантность
    """
    series = build_return_series(samples, config)
    report, trace = ConsistencyChecker(config).check_with_trace(series)
    return WindowOutcome(series=series, report=report, trace=trace)


def prove_window(
    samples: Sequence[TickSample], config: VolatilityConfig, submitter: ProofSubmitter
) -> WindowOutcome:
    """
    run_window + доказательство trace Circuit.

    Raises:
        BackendFailure: Сбой backend после всех повторов
    """
    outcome = run_window(samples, config)
    artifact = submitter.submit(outcome.trace)
    return WindowOutcome(
        series=outcome.series,
        report=outcome.report,
        trace=outcome.trace,
        artifact=artifact,
    )


def _process(
    index: int,
    samples: Sequence[TickSample],
    config: VolatilityConfig,
    submitter: Optional[ProofSubmitter],
) -> BatchItemResult:
    log = logger.bind(window=index)
    try:
        if submitter is None:
            outcome = run_window(samples, config)
        else:
            outcome = prove_window(samples, config, submitter)
    except VolatilityError as e:
        log.warning("window_failed", error_type=type(e).__name__, error=str(e))
        return BatchItemResult(index=index, error=e)
    log.info("window_done", volatility_raw=outcome.report.circuit.value.raw)
    return BatchItemResult(index=index, outcome=outcome)


def run_batch(
    windows: Sequence[Sequence[TickSample]],
    config: VolatilityConfig,
    submitter: Optional[ProofSubmitter] = None,
    max_workers: int = DEFAULT_BATCH_WORKERS,
) -> list[BatchItemResult]:
    """
    Обработка независимых окон параллельно.

    Ошибки VolatilityError фиксируются по окну; результаты в порядке
    входа.
    """
    with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="rv-window") as pool:
        futures = [
            pool.submit(_process, index, samples, config, submitter)
            for index, samples in enumerate(windows)
        ]
        results = [future.result() for future in futures]

    failed = sum(1 for r in results if not r.ok)
    logger.info("batch_done", windows=len(results), failed=failed)
    return results
