"""Backtest data models — realised trades and evaluation metrics."""

from dataclasses import asdict, dataclass, field
from datetime import date


@dataclass(frozen=True)
class Trade:
    """A closed position.

    ``profit`` is the realised gain as a percent of portfolio value at close.
    """

    entry_price: float
    exit_price: float
    entry_time: date
    exit_time: date
    profit: float


@dataclass(frozen=True)
class SimulationResult:
    """Output of one simulation run over a single series."""

    trades: list[Trade] = field(default_factory=list)
    final_value: float = 100.0
    open_position: str | None = None  # side still booked at the end, unrealised


# Persisted documents keep the camelCase keys of existing masterModel.json files.
_RESULT_KEYS = {
    "sharpe_ratio": "sharpeRatio",
    "max_drawdown": "maxDrawdown",
    "total_return": "totalReturn",
    "profit_factor": "profitFactor",
    "number_of_trades": "numberOfTrades",
}


@dataclass(frozen=True)
class EvaluationResult:
    """Summary metrics for one pooled evaluation."""

    sharpe_ratio: float
    max_drawdown: float  # percent, non-negative
    total_return: float  # percent
    profit_factor: float  # capped at 10
    number_of_trades: int

    def to_dict(self) -> dict:
        return {_RESULT_KEYS[k]: v for k, v in asdict(self).items()}

    @classmethod
    def from_dict(cls, data: dict) -> "EvaluationResult":
        """Build from a camelCase document.  Raises ``KeyError`` on a missing field."""
        return cls(
            sharpe_ratio=float(data["sharpeRatio"]),
            max_drawdown=float(data["maxDrawdown"]),
            total_return=float(data["totalReturn"]),
            profit_factor=float(data["profitFactor"]),
            number_of_trades=int(data["numberOfTrades"]),
        )
