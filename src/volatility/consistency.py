"""
Consistency Checker — Регрессионная защита трёх калькуляторов

Прогоняет Reference, Optimized и Circuit по одной ReturnSeries и строит
отчёт о расхождениях (абсолютная разница raw единиц).

Политика:
- optimized_vs_circuit != 0 → DivergenceDefect (всегда фатально)
- reference_vs_optimized > tolerance_units → within_tolerance=False,
  warning в лог; в strict режиме → DivergenceWarning
"""

from dataclasses import dataclass
from typing import Any, Optional

import structlog

from src.core.domain.config import VolatilityConfig
from src.core.domain.proof import CircuitTrace
from src.core.domain.results import VolatilityResult
from src.core.domain.series import ReturnSeries
from src.core.errors import DivergenceDefect, DivergenceWarning
from src.volatility.calculators.base import VolatilityCalculator
from src.volatility.calculators.circuit import CircuitCalculator
from src.volatility.calculators.optimized import OptimizedCalculator
from src.volatility.calculators.reference import ReferenceCalculator

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ConsistencyReport:
    """Результаты трёх калькуляторов и расхождения между ними."""

    reference: VolatilityResult
    optimized: VolatilityResult
    circuit: VolatilityResult
    reference_vs_optimized: int
    optimized_vs_circuit: int
    tolerance_units: int
    within_tolerance: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "reference": self.reference.to_dict(),
            "optimized": self.optimized.to_dict(),
            "circuit": self.circuit.to_dict(),
            "referenceVsOptimized": self.reference_vs_optimized,
            "optimizedVsCircuit": self.optimized_vs_circuit,
            "toleranceUnits": self.tolerance_units,
            "withinTolerance": self.within_tolerance,
        }


class ConsistencyChecker:
    """
    Сверка Reference / Optimized / Circuit.

    Калькуляторы можно подменить (например, экспериментальной версией
    Optimized) — проверка работает через compute_volatility.
    """

    def __init__(
        self,
        config: VolatilityConfig,
        reference: Optional[VolatilityCalculator] = None,
        optimized: Optional[VolatilityCalculator] = None,
        circuit: Optional[CircuitCalculator] = None,
    ):
        self.config = config
        self.reference = reference or ReferenceCalculator(config)
        self.optimized = optimized or OptimizedCalculator(config)
        self.circuit = circuit or CircuitCalculator(config)
        self._logger = logger.bind(component="consistency_checker")

    def check(self, series: ReturnSeries) -> ConsistencyReport:
        """
        Отчёт о согласованности без trace.

        Raises:
            DivergenceDefect: Optimized и Circuit расходятся
            DivergenceWarning: strict режим и превышена толерантность
            ArithmeticOverflow: Переполнение в любом калькуляторе
        """
        report, _ = self.check_with_trace(series)
        return report

    def check_with_trace(self, series: ReturnSeries) -> tuple[ConsistencyReport, CircuitTrace]:
        """Отчёт о согласованности и trace Circuit для proving backend."""
        reference = self.reference.compute_volatility(series)
        optimized = self.optimized.compute_volatility(series)
        circuit, trace = self.circuit.compute_with_trace(series)

        reference_vs_optimized = abs(reference.value.raw - optimized.value.raw)
        optimized_vs_circuit = abs(optimized.value.raw - circuit.value.raw)
        tolerance = self.config.tolerance_units

        report = ConsistencyReport(
            reference=reference,
            optimized=optimized,
            circuit=circuit,
            reference_vs_optimized=reference_vs_optimized,
            optimized_vs_circuit=optimized_vs_circuit,
            tolerance_units=tolerance,
            within_tolerance=reference_vs_optimized <= tolerance,
        )
        self._enforce(report)
        return report, trace

    def _enforce(self, report: ConsistencyReport) -> None:
        log = self._logger.bind(
            sample_count=report.optimized.sample_count,
            reference_raw=report.reference.value.raw,
            optimized_raw=report.optimized.value.raw,
            circuit_raw=report.circuit.value.raw,
        )

        if report.optimized_vs_circuit != 0:
            log.error("optimized_circuit_divergence", delta=report.optimized_vs_circuit)
            raise DivergenceDefect(
                f"Optimized and Circuit differ by {report.optimized_vs_circuit} units "
                f"({report.optimized.value.raw} vs {report.circuit.value.raw})",
                report=report,
            )

        if not report.within_tolerance:
            log.warning(
                "reference_optimized_divergence",
                delta=report.reference_vs_optimized,
                tolerance=report.tolerance_units,
                strict=self.config.strict,
            )
            if self.config.strict:
                raise DivergenceWarning(
                    f"Reference and Optimized differ by {report.reference_vs_optimized} "
                    f"units, tolerance is {report.tolerance_units}",
                    report=report,
                )
            return

        log.info("consistency_ok", delta=report.reference_vs_optimized)
