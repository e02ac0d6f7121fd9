"""Loss/win streak tracking and circuit breakers — pure state, no I/O.

Two breakers gate new positions: a consecutive-loss breaker that re-arms
after the next winning close, and a lifetime-loss breaker that never
re-arms.  A long enough win streak scales up the next position.
"""


class StreakTracker:
    """Tracks the outcome of closed trades within one simulation run.

    Args:
        max_consecutive_losses: Consecutive losing closes that pause entries.
        max_total_losses: Total losing closes that stop entries for good.
        win_streak_threshold: Consecutive wins that enable size-up.
        win_streak_multiplier: Size multiplier applied once the threshold
                               is reached.
    """

    def __init__(
        self,
        max_consecutive_losses: int = 3,
        max_total_losses: int = 8,
        win_streak_threshold: int = 5,
        win_streak_multiplier: float = 1.5,
    ) -> None:
        if max_consecutive_losses <= 0:
            raise ValueError(
                f"max_consecutive_losses must be positive, got {max_consecutive_losses}"
            )
        if max_total_losses <= 0:
            raise ValueError(
                f"max_total_losses must be positive, got {max_total_losses}"
            )
        self._max_consecutive_losses = max_consecutive_losses
        self._max_total_losses = max_total_losses
        self._win_streak_threshold = win_streak_threshold
        self._win_streak_multiplier = win_streak_multiplier
        self._consecutive_losses = 0
        self._total_losses = 0
        self._win_streak = 0

    # ── Mutation ─────────────────────────────────────────────────────────

    def record_close(self, profit: float) -> None:
        """Register a closed trade.  Zero profit counts as a win."""
        if profit < 0:
            self._consecutive_losses += 1
            self._total_losses += 1
            self._win_streak = 0
        else:
            self._consecutive_losses = 0
            self._win_streak += 1

    # ── Queries ──────────────────────────────────────────────────────────

    @property
    def consecutive_losses(self) -> int:
        return self._consecutive_losses

    @property
    def total_losses(self) -> int:
        return self._total_losses

    @property
    def win_streak(self) -> int:
        return self._win_streak

    @property
    def can_open(self) -> bool:
        """``False`` while either loss breaker is tripped."""
        return (
            self._consecutive_losses < self._max_consecutive_losses
            and self._total_losses < self._max_total_losses
        )

    @property
    def size_multiplier(self) -> float:
        """Multiplier for the next position, driven by the win streak."""
        if self._win_streak >= self._win_streak_threshold:
            return self._win_streak_multiplier
        return 1.0
