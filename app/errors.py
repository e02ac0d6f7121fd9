"""Error taxonomy for strategy evaluation and master-model persistence.

Per-step strategy errors are not exceptions at this level: they are carried
as ``StepError`` results (see ``app.sandbox.models``) and collapse to
no-signal before reaching the simulator.
"""


class EvaluationError(Exception):
    """Base class for failures surfaced to the submitter."""


class GenerationError(EvaluationError):
    """Synthetic market data could not be produced (invalid length/seed)."""


class ExecutionFailure(EvaluationError):
    """The sandboxed strategy process failed as a whole.

    Raised when the process cannot be started, exits non-zero, times out,
    or writes output that is not a valid signal sequence.  No partial
    signals are ever used after this is raised.
    """

    def __init__(self, message: str, stderr: str = "") -> None:
        super().__init__(message)
        self.stderr = stderr


class InsufficientTrades(EvaluationError):
    """Pooled trade count is below the minimum required for scoring."""

    def __init__(self, number_of_trades: int, minimum: int) -> None:
        super().__init__(
            f"Strategy did not generate enough trades "
            f"({number_of_trades} < minimum {minimum})"
        )
        self.number_of_trades = number_of_trades
        self.minimum = minimum


class PersistenceError(Exception):
    """Master-model storage could not be written."""
