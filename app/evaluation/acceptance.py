"""Acceptance gate — fixed thresholds a strategy must meet to be admitted."""

from dataclasses import dataclass

from app.backtest.models import EvaluationResult


@dataclass(frozen=True)
class AcceptanceThresholds:
    """Minimum (or maximum, for drawdown) metric values for acceptance."""

    min_sharpe_ratio: float = 0.5
    max_drawdown: float = 20.0
    min_total_return: float = 5.0
    min_profit_factor: float = 1.3
    min_trades: int = 30

    def failures(self, result: EvaluationResult) -> list[str]:
        """Human-readable list of every criterion *result* misses."""
        failed = []
        if result.sharpe_ratio < self.min_sharpe_ratio:
            failed.append(
                f"Sharpe ratio {result.sharpe_ratio:.3f} < {self.min_sharpe_ratio}"
            )
        if result.max_drawdown > self.max_drawdown:
            failed.append(
                f"Max drawdown {result.max_drawdown:.2f}% > {self.max_drawdown}%"
            )
        if result.total_return < self.min_total_return:
            failed.append(
                f"Total return {result.total_return:.2f}% < {self.min_total_return}%"
            )
        if result.profit_factor < self.min_profit_factor:
            failed.append(
                f"Profit factor {result.profit_factor:.3f} < {self.min_profit_factor}"
            )
        if result.number_of_trades < self.min_trades:
            failed.append(
                f"Number of trades {result.number_of_trades} < {self.min_trades}"
            )
        return failed

    def passes(self, result: EvaluationResult) -> bool:
        return not self.failures(result)
