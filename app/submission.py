"""Submission pipeline — evaluate, gate, apply duplicate policy, ingest.

Evaluation failures (``ExecutionFailure``, ``InsufficientTrades``)
propagate to the caller unchanged; a threshold miss is a normal outcome
with ``passed=False``.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from app.backtest.models import EvaluationResult
from app.evaluation.acceptance import AcceptanceThresholds
from app.evaluation.evaluator import StrategyEvaluator
from app.master.service import MasterModelService

logger = logging.getLogger("strategyforge.submission")


@dataclass(frozen=True)
class SubmissionOutcome:
    metrics: EvaluationResult
    passed: bool
    duplicate: bool
    failures: list[str] = field(default_factory=list)
    master_model: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "metrics": self.metrics.to_dict(),
            "passed": self.passed,
            "duplicate": self.duplicate,
            "failures": list(self.failures),
            "masterModel": self.master_model,
        }


class SubmissionService:
    """Runs one submitted strategy through the full acceptance pipeline.

    Args:
        evaluator: Produces metrics for strategy source.
        master: Shared master model service.
        thresholds: Acceptance gate.
        reject_duplicates: When ``True`` a passing strategy whose code is
            already in the master model is reported as a duplicate and not
            added again.
    """

    def __init__(
        self,
        evaluator: StrategyEvaluator,
        master: MasterModelService,
        thresholds: Optional[AcceptanceThresholds] = None,
        reject_duplicates: bool = True,
    ) -> None:
        self._evaluator = evaluator
        self._master = master
        self._thresholds = thresholds or AcceptanceThresholds()
        self._reject_duplicates = reject_duplicates

    async def submit(self, code: str) -> SubmissionOutcome:
        metrics = await self._evaluator.evaluate(code)
        failures = self._thresholds.failures(metrics)
        passed = not failures

        if not passed:
            logger.info("Strategy rejected: %s", "; ".join(failures))
            return SubmissionOutcome(
                metrics=metrics,
                passed=False,
                duplicate=self._master.contains(code),
                failures=failures,
                master_model=self._master.snapshot(),
            )

        if self._reject_duplicates and self._master.contains(code):
            logger.info("Strategy passed but is already in the master model")
            return SubmissionOutcome(
                metrics=metrics,
                passed=True,
                duplicate=True,
                master_model=self._master.snapshot(),
            )

        snapshot = self._master.add_strategy(code, metrics)
        return SubmissionOutcome(
            metrics=metrics, passed=True, duplicate=False, master_model=snapshot,
        )
