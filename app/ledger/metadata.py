"""Ledger metadata — the fixed-shape record an external contract accepts.

The core only builds the record; signing and submitting it is the caller's
job.  Metrics and weight are fixed-point integers scaled by ``SCALE``.
"""

import hashlib
from dataclasses import asdict, dataclass

from app.backtest.models import EvaluationResult

SCALE = 10_000


@dataclass(frozen=True)
class LedgerRecord:
    strategy_hash: str  # SHA-256 hex of the strategy source
    derived_id: str  # opaque identity/wallet hash supplied by the caller
    sharpe: int
    drawdown: int
    total_return: int
    profit_factor: int
    weight: int

    def to_dict(self) -> dict:
        return asdict(self)


def strategy_hash(code: str) -> str:
    return hashlib.sha256(code.encode("utf-8")).hexdigest()


def build_ledger_record(
    code: str,
    derived_id: str,
    result: EvaluationResult,
    weight: float,
) -> LedgerRecord:
    """Scale *result* and *weight* into a ``LedgerRecord``.

    Raises:
        ValueError: If *derived_id* is empty.
    """
    if not derived_id:
        raise ValueError("derived_id must be a non-empty string")
    return LedgerRecord(
        strategy_hash=strategy_hash(code),
        derived_id=derived_id,
        sharpe=_scaled(result.sharpe_ratio),
        drawdown=_scaled(result.max_drawdown),
        total_return=_scaled(result.total_return),
        profit_factor=_scaled(result.profit_factor),
        weight=_scaled(weight),
    )


def _scaled(value: float) -> int:
    return int(round(value * SCALE))
