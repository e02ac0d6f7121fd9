"""MasterModelService — single-writer access to the shared master model.

Owns the in-memory ``MasterModel`` and its repository.  Every mutation runs
under one lock and persists before the lock is released, so weight
recomputation passes never interleave and the persisted document tracks
the in-memory state.
"""

import logging
import threading
from typing import Optional

from app.backtest.models import EvaluationResult
from app.master.model import MasterModel, PortfolioRow, StrategyEntry
from app.repos.master_repo import MasterModelRepo

logger = logging.getLogger("strategyforge.master")


class MasterModelService:
    """Serialized access wrapper around the master model.

    Args:
        repo: Persistence backend.
        model: Initial state.  Loaded from *repo* when omitted.
    """

    def __init__(self, repo: MasterModelRepo, model: Optional[MasterModel] = None) -> None:
        self._repo = repo
        self._model = model if model is not None else repo.load()
        self._lock = threading.Lock()
        logger.info("Master model ready with %d strategies", len(self._model))

    # ── Mutation ─────────────────────────────────────────────────────────

    def add_strategy(self, code: str, metrics: EvaluationResult) -> dict:
        """Add an accepted strategy, recompute weights, persist.

        Returns the model snapshot after the addition.

        Raises:
            PersistenceError: Saving failed; the in-memory model already
                includes the entry.  Call :meth:`persist` to retry.
        """
        with self._lock:
            self._model.add_strategy(StrategyEntry(code=code, metrics=metrics))
            logger.info(
                "Added strategy #%d (scores: %s)",
                len(self._model), _fmt_scores(self._model.scores),
            )
            self._repo.save(self._model)
            return self._model.to_dict()

    def clear_strategies(self) -> dict:
        """Remove every strategy, reset scores, persist."""
        with self._lock:
            self._model.clear_strategies()
            logger.info("Master model cleared")
            self._repo.save(self._model)
            return self._model.to_dict()

    def persist(self) -> None:
        """Write the current in-memory state (retry after a failed save)."""
        with self._lock:
            self._repo.save(self._model)

    # ── Queries ──────────────────────────────────────────────────────────

    def contains(self, code: str) -> bool:
        with self._lock:
            return self._model.contains(code)

    def find(self, code: str) -> Optional[StrategyEntry]:
        with self._lock:
            entry = self._model.find(code)
            if entry is None:
                return None
            return StrategyEntry(entry.code, entry.metrics, dict(entry.weights))

    def snapshot(self) -> dict:
        """Persisted-layout document of the current state."""
        with self._lock:
            return self._model.to_dict()

    def portfolio(self, tier: str) -> list[PortfolioRow]:
        with self._lock:
            return self._model.portfolio(tier)


def _fmt_scores(scores: dict[str, float]) -> str:
    return ", ".join(f"{k}={v:.3f}" for k, v in scores.items())
