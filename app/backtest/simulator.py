"""Trade simulator — replays a signal sequence through the position state machine.

Position is one of flat / long / short.  An opposite signal closes the open
position at the current price and, unless a loss breaker is tripped, opens
the new side; a blocked re-entry leaves the old side booked.  Closes are
throttled to one per ``min_trade_interval_days``.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional, Sequence

from app.backtest.models import SimulationResult, Trade
from app.market.models import MarketSeries
from app.risk.position_sizer import position_fraction, realised_profit
from app.risk.streaks import StreakTracker
from app.sandbox.models import Signal, StepResult, to_signal

logger = logging.getLogger("strategyforge.backtest")

_TARGET_SIDE = {Signal.BUY: "long", Signal.SELL: "short"}


@dataclass(frozen=True)
class SimulationParams:
    """Sizing and risk-control parameters for one simulation."""

    position_size: float = 0.10
    min_trade_interval_days: int = 5
    max_consecutive_losses: int = 3
    max_total_losses: int = 8
    win_streak_threshold: int = 5
    win_streak_multiplier: float = 1.5
    initial_portfolio_value: float = 100.0


class TradeSimulator:
    """Simulates trading a signal sequence on one price series.

    Args:
        params: Sizing and risk parameters.  Defaults match the acceptance
                benchmark.
    """

    def __init__(self, params: Optional[SimulationParams] = None) -> None:
        self._params = params or SimulationParams()

    # ── Public API ───────────────────────────────────────────────────────

    def run_series(
        self, steps: Sequence[StepResult], series: MarketSeries,
    ) -> SimulationResult:
        """Simulate sandbox step results on *series*; step errors act as no-signal."""
        signals = [to_signal(s) for s in steps]
        return self.run(signals, series.prices, series.timestamps)

    def run(
        self,
        signals: Sequence[Optional[Signal]],
        prices: Sequence[float],
        timestamps: Sequence,
    ) -> SimulationResult:
        """Execute the state machine over aligned signals/prices/timestamps.

        Returns:
            ``SimulationResult`` with the ordered closed trades.  The side
            still booked at the end of the series is reported, not realised.

        Raises:
            ValueError: If the three sequences differ in length.
        """
        if not len(signals) == len(prices) == len(timestamps):
            raise ValueError(
                f"signals/prices/timestamps length mismatch: "
                f"{len(signals)}/{len(prices)}/{len(timestamps)}"
            )

        p = self._params
        streaks = StreakTracker(
            p.max_consecutive_losses,
            p.max_total_losses,
            p.win_streak_threshold,
            p.win_streak_multiplier,
        )
        min_gap = timedelta(days=p.min_trade_interval_days)

        portfolio_value = p.initial_portfolio_value
        position: Optional[str] = None
        entry_price = 0.0
        entry_time = None
        last_trade_time = None
        trades: list[Trade] = []

        for i, raw in enumerate(signals):
            now = timestamps[i]
            if last_trade_time is not None and now - last_trade_time < min_gap:
                continue

            signal = Signal(raw) if raw is not None else None
            if signal is None:
                continue

            target = _TARGET_SIDE[signal]
            if position == target:
                continue

            # Size is fixed before the close so the streak it extends only
            # affects the following trade.
            fraction = position_fraction(p.position_size, streaks.size_multiplier)
            price = prices[i]

            if position is not None:
                profit = realised_profit(
                    position, entry_price, price, fraction, portfolio_value,
                )
                portfolio_value += profit
                streaks.record_close(profit)
                trades.append(Trade(
                    entry_price=entry_price,
                    exit_price=price,
                    entry_time=entry_time,
                    exit_time=now,
                    profit=profit / portfolio_value * 100.0,
                ))
                last_trade_time = now

            # While entries are blocked the closed side stays booked at its
            # old entry, so the next matching signal closes it again and a
            # win can re-arm the consecutive-loss breaker.
            if streaks.can_open:
                position = target
                entry_price = price
                entry_time = now

        logger.debug(
            "Simulation finished: %d trades, final value %.4f, losses %d",
            len(trades), portfolio_value, streaks.total_losses,
        )
        return SimulationResult(
            trades=trades, final_value=portfolio_value, open_position=position,
        )
