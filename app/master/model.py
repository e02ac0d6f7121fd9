"""Master aggregation model — accepted strategies and per-tier weights.

Weights are recomputed over the whole strategy list on every addition:
each metric is min-max normalised across entries, combined with the tier's
coefficients, then normalised so that weights within a tier sum to 1.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from app.backtest.models import EvaluationResult

RISK_TIERS: tuple[str, ...] = ("low", "medium", "high")

# Coefficients for (sharpe, 1 - drawdown, profit_factor, total_return).
TIER_COEFFICIENTS: dict[str, tuple[float, float, float, float]] = {
    "low": (0.4, 0.3, 0.2, 0.1),
    "medium": (0.25, 0.25, 0.25, 0.25),
    "high": (0.1, 0.1, 0.3, 0.5),
}


def _zero_tiers() -> dict[str, float]:
    return {tier: 0.0 for tier in RISK_TIERS}


@dataclass
class StrategyEntry:
    """One accepted strategy; *code* is its identity."""

    code: str
    metrics: EvaluationResult
    weights: dict[str, float] = field(default_factory=_zero_tiers)

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "metrics": self.metrics.to_dict(),
            "weights": dict(self.weights),
        }

    @classmethod
    def from_dict(cls, data: dict) -> StrategyEntry:
        weights = _zero_tiers()
        weights.update({k: float(v) for k, v in (data.get("weights") or {}).items()})
        return cls(
            code=str(data["code"]),
            metrics=EvaluationResult.from_dict(data["metrics"]),
            weights=weights,
        )


@dataclass(frozen=True)
class PortfolioRow:
    code: str
    weight: float
    metrics: EvaluationResult


class MasterModel:
    """In-memory master model.  Not thread-safe; see ``MasterModelService``."""

    def __init__(
        self,
        strategies: list[StrategyEntry] | None = None,
        scores: dict[str, float] | None = None,
    ) -> None:
        self._strategies: list[StrategyEntry] = list(strategies or [])
        self._scores = _zero_tiers()
        if scores:
            self._scores.update({k: float(v) for k, v in scores.items()})

    # ── Queries ──────────────────────────────────────────────────────────

    @property
    def strategies(self) -> list[StrategyEntry]:
        """Entries in acceptance order (a shallow copy of the list)."""
        return list(self._strategies)

    @property
    def scores(self) -> dict[str, float]:
        return dict(self._scores)

    def __len__(self) -> int:
        return len(self._strategies)

    def contains(self, code: str) -> bool:
        """``True`` if an entry with exactly this *code* exists."""
        return any(s.code == code for s in self._strategies)

    def find(self, code: str) -> StrategyEntry | None:
        for s in self._strategies:
            if s.code == code:
                return s
        return None

    def portfolio(self, tier: str) -> list[PortfolioRow]:
        """Strategies with their weight in *tier*.  Raises ``KeyError`` for an unknown tier."""
        if tier not in RISK_TIERS:
            raise KeyError(f"Unknown risk tier '{tier}'. Available: {', '.join(RISK_TIERS)}")
        return [PortfolioRow(s.code, s.weights[tier], s.metrics) for s in self._strategies]

    # ── Mutation ─────────────────────────────────────────────────────────

    def add_strategy(self, entry: StrategyEntry) -> None:
        """Append *entry* (duplicates allowed) and recompute weights and scores."""
        self._strategies.append(entry)
        self._adjust_weights()
        self._update_scores()

    def clear_strategies(self) -> None:
        self._strategies = []
        self._scores = _zero_tiers()

    # ── Serialisation ────────────────────────────────────────────────────

    def to_dict(self) -> dict:
        return {
            "strategies": [s.to_dict() for s in self._strategies],
            "scores": dict(self._scores),
        }

    @classmethod
    def from_dict(cls, data: dict) -> MasterModel:
        """Rebuild from a persisted document.  Raises ``KeyError``/``TypeError``/``ValueError`` on malformed input."""
        strategies = [StrategyEntry.from_dict(s) for s in data.get("strategies") or []]
        return cls(strategies=strategies, scores=data.get("scores") or None)

    # ── Helpers ──────────────────────────────────────────────────────────

    def _adjust_weights(self) -> None:
        columns = {
            "sharpe": [s.metrics.sharpe_ratio for s in self._strategies],
            "drawdown": [s.metrics.max_drawdown for s in self._strategies],
            "profit_factor": [s.metrics.profit_factor for s in self._strategies],
            "total_return": [s.metrics.total_return for s in self._strategies],
        }
        normalised = {name: _min_max(values) for name, values in columns.items()}

        for i, s in enumerate(self._strategies):
            features = (
                normalised["sharpe"][i],
                1 - normalised["drawdown"][i],  # lower drawdown is better
                normalised["profit_factor"][i],
                normalised["total_return"][i],
            )
            for tier, coeffs in TIER_COEFFICIENTS.items():
                s.weights[tier] = sum(c * f for c, f in zip(coeffs, features))

        for tier in RISK_TIERS:
            total = sum(s.weights[tier] for s in self._strategies) or 1.0
            for s in self._strategies:
                s.weights[tier] = s.weights[tier] / total

    def _update_scores(self) -> None:
        for tier in RISK_TIERS:
            self._scores[tier] = sum(
                s.metrics.total_return * s.weights[tier] for s in self._strategies
            )


def _min_max(values: list[float]) -> list[float]:
    """Scale to [0, 1]; a constant column maps to 0.5."""
    lo, hi = min(values), max(values)
    if hi == lo:
        return [0.5] * len(values)
    return [(v - lo) / (hi - lo) for v in values]
