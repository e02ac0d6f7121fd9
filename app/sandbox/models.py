"""Sandbox data models — signals and tagged per-step results.

Each index of a strategy run yields exactly one step result:
``SignalStep`` (buy/sell), ``NoSignal``, or ``StepError``.  Errors keep
their diagnostic detail for logging but always collapse to no-signal
before the trade simulator sees them.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union


class Signal(str, Enum):
    """A per-step trading decision token."""

    BUY = "buy"
    SELL = "sell"


@dataclass(frozen=True)
class SignalStep:
    signal: Signal


@dataclass(frozen=True)
class NoSignal:
    pass


@dataclass(frozen=True)
class StepError:
    """The strategy raised, timed out, or returned an unknown token."""

    detail: str


StepResult = Union[SignalStep, NoSignal, StepError]


def step_from_dict(data: dict) -> StepResult:
    """Decode one harness output record.

    Raises ``ValueError`` for anything that is not a well-formed record.
    """
    if not isinstance(data, dict):
        raise ValueError(f"step record must be an object, got {data!r}")
    kind = data.get("kind")
    if kind == "signal":
        return SignalStep(Signal(data.get("value")))
    if kind == "none":
        return NoSignal()
    if kind == "error":
        return StepError(str(data.get("detail", "")))
    raise ValueError(f"unknown step kind {kind!r}")


def to_signal(step: StepResult) -> Optional[Signal]:
    """Collapse a step result to the simulator's view: a signal or ``None``."""
    if isinstance(step, SignalStep):
        return step.signal
    return None
