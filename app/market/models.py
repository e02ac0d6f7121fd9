"""Market data models — immutable synthetic price series."""

from dataclasses import dataclass
from datetime import date


@dataclass(frozen=True)
class Regime:
    """A (drift, volatility) pair governing one block of price steps."""

    drift: float
    volatility: float


@dataclass(frozen=True)
class MarketSeries:
    """Ordered (price, timestamp) points produced for one evaluation trial."""

    prices: tuple[float, ...]
    timestamps: tuple[date, ...]
    seed: int

    def __post_init__(self) -> None:
        if len(self.prices) != len(self.timestamps):
            raise ValueError(
                f"prices/timestamps length mismatch: "
                f"{len(self.prices)} != {len(self.timestamps)}"
            )

    def __len__(self) -> int:
        return len(self.prices)
