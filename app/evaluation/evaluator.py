"""Strategy evaluator — runs every dataset trial and scores the pooled trades.

Trial ``k``: generate a series from its seed → run the strategy in the
sandbox → simulate trades.  Trials run concurrently; trades are pooled in
trial order so identical inputs always yield identical metrics.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

from app.backtest.models import EvaluationResult, Trade
from app.backtest.simulator import SimulationParams, TradeSimulator
from app.backtest.stats import calculate_metrics
from app.errors import InsufficientTrades
from app.market.generator import generate_series, trial_seed
from app.market.models import MarketSeries
from app.sandbox.models import StepError
from app.sandbox.runner import StrategyExecutor

logger = logging.getLogger("strategyforge.evaluation")

MIN_TRADES = 30


@dataclass(frozen=True)
class TrialSummary:
    """Diagnostics for one dataset trial."""

    index: int
    seed: int
    trades: int
    step_errors: int


@dataclass(frozen=True)
class EvaluationReport:
    """Metrics plus per-trial diagnostics for one evaluation."""

    result: EvaluationResult
    trials: list[TrialSummary] = field(default_factory=list)


class StrategyEvaluator:
    """Evaluates strategy source over several synthetic datasets.

    Args:
        executor: Sandbox used to turn source + series into step results.
        num_datasets: Number of independent trials.
        dataset_length: Points per generated series.
        base_seed: Seed of trial 0.
        distinct_seeds: When ``False`` every trial reuses *base_seed*.
        params: Simulation parameters passed to ``TradeSimulator``.
        min_trades: Pooled trades required before metrics are computed.
        generator: ``(length, seed) -> MarketSeries`` factory.
    """

    def __init__(
        self,
        executor: StrategyExecutor,
        num_datasets: int = 5,
        dataset_length: int = 1000,
        base_seed: int = 12345,
        distinct_seeds: bool = True,
        params: Optional[SimulationParams] = None,
        min_trades: int = MIN_TRADES,
        generator: Callable[[int, int], MarketSeries] = generate_series,
    ) -> None:
        if num_datasets < 1:
            raise ValueError(f"num_datasets must be >= 1, got {num_datasets}")
        self._executor = executor
        self._num_datasets = num_datasets
        self._dataset_length = dataset_length
        self._base_seed = base_seed
        self._distinct_seeds = distinct_seeds
        self._simulator = TradeSimulator(params)
        self._min_trades = min_trades
        self._generator = generator

    # ── Public API ───────────────────────────────────────────────────────

    async def evaluate(self, source: str) -> EvaluationResult:
        """Evaluate *source* and return its pooled metrics.

        Raises:
            ExecutionFailure: A sandbox run failed as a whole.
            InsufficientTrades: Fewer than ``min_trades`` pooled trades.
        """
        report = await self.evaluate_report(source)
        return report.result

    async def evaluate_report(self, source: str) -> EvaluationReport:
        """Like :meth:`evaluate` but also returns per-trial diagnostics."""
        logger.info("Starting strategy evaluation over %d datasets", self._num_datasets)

        outcomes = await asyncio.gather(
            *(self._run_trial(source, k) for k in range(self._num_datasets)),
            return_exceptions=True,
        )
        # Wait for every trial, then report the lowest-index failure.
        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                raise outcome

        pooled: list[Trade] = []
        summaries: list[TrialSummary] = []
        for trades, summary in outcomes:
            pooled.extend(trades)
            summaries.append(summary)

        if len(pooled) < self._min_trades:
            logger.info(
                "Evaluation rejected: %d trades < minimum %d",
                len(pooled), self._min_trades,
            )
            raise InsufficientTrades(len(pooled), self._min_trades)

        result = calculate_metrics(pooled)
        logger.info(
            "Evaluation complete: %d trades, Sharpe %.3f, return %.2f%%, "
            "drawdown %.2f%%, profit factor %.3f",
            result.number_of_trades,
            result.sharpe_ratio,
            result.total_return,
            result.max_drawdown,
            result.profit_factor,
        )
        return EvaluationReport(result=result, trials=summaries)

    # ── Helpers ──────────────────────────────────────────────────────────

    async def _run_trial(self, source: str, index: int) -> tuple[list[Trade], TrialSummary]:
        seed = trial_seed(self._base_seed, index, self._distinct_seeds)
        series = self._generator(self._dataset_length, seed)
        steps = await self._executor.execute(source, series)

        errors = [s for s in steps if isinstance(s, StepError)]
        for pos, step in enumerate(steps):
            if isinstance(step, StepError):
                logger.debug("Trial %d index %d: %s", index, pos, step.detail)
        if errors:
            logger.info(
                "Trial %d (seed=%d): %d step errors treated as no-signal (first: %s)",
                index, seed, len(errors), errors[0].detail,
            )

        sim = self._simulator.run_series(steps, series)
        return sim.trades, TrialSummary(
            index=index, seed=seed, trades=len(sim.trades), step_errors=len(errors),
        )
