"""Evaluation statistics — pure functions over a pooled trade list.

Every metric works on per-trade percent profits in pooled order; drawdown
and total return compound those profits sequentially.
"""

import math
from typing import Sequence

from app.backtest.models import EvaluationResult, Trade

PROFIT_FACTOR_CAP = 10.0


def calculate_metrics(trades: Sequence[Trade]) -> EvaluationResult:
    """Compute the summary metrics for a pooled list of closed trades."""
    profits = [t.profit for t in trades]
    return EvaluationResult(
        sharpe_ratio=sharpe_ratio(profits),
        max_drawdown=max_drawdown(profits),
        total_return=total_return(profits),
        profit_factor=profit_factor(profits),
        number_of_trades=len(profits),
    )


def sharpe_ratio(profits: Sequence[float]) -> float:
    """Mean over population standard deviation of per-trade profits.

    Not annualised.  Returns 0.0 for an empty series or zero variance.
    """
    n = len(profits)
    if n == 0:
        return 0.0
    mean = sum(profits) / n
    variance = sum((p - mean) ** 2 for p in profits) / n
    std = math.sqrt(variance)
    if std == 0:
        return 0.0
    return mean / std


def max_drawdown(profits: Sequence[float]) -> float:
    """Largest peak-to-trough decline of the compounded curve, in percent.

    The curve starts at 100, which counts as the initial peak.
    """
    value = 100.0
    peak = 100.0
    max_dd = 0.0
    for p in profits:
        value *= 1 + p / 100.0
        if value > peak:
            peak = value
        dd = (peak - value) / peak * 100.0
        if dd > max_dd:
            max_dd = dd
    return max_dd


def total_return(profits: Sequence[float]) -> float:
    """Compounded return of the trade sequence, in percent."""
    value = 100.0
    for p in profits:
        value *= 1 + p / 100.0
    return value - 100.0


def profit_factor(profits: Sequence[float]) -> float:
    """Gross profit over gross loss, capped at ``PROFIT_FACTOR_CAP``.

    With no losing trades: 1.0 if anything was won, else 0.0.
    """
    gross_profit = sum(p for p in profits if p > 0)
    gross_loss = sum(-p for p in profits if p < 0)
    if gross_loss == 0:
        return 1.0 if gross_profit > 0 else 0.0
    return min(gross_profit / gross_loss, PROFIT_FACTOR_CAP)
