"""Synthetic market generator — deterministic regime-switching random walk.

Every draw comes from one linear-congruential stream, so a given
``(length, seed)`` pair always reproduces the identical series.
"""

from datetime import date, timedelta

from app.errors import GenerationError
from app.market.models import MarketSeries, Regime

BASE_PRICE = 100.0
REGIME_BLOCK = 50
NOISE_SPREAD = 0.03  # ±1.5 % multiplicative perturbation of drift/volatility
EPOCH = date(2023, 1, 1)

REGIMES: tuple[Regime, ...] = (
    Regime(0.006, 0.004),   # steady uptrend
    Regime(-0.006, 0.004),  # steady downtrend
    Regime(0.003, 0.003),   # slow uptrend
    Regime(-0.003, 0.003),  # slow downtrend
    Regime(0.002, 0.002),   # very slow uptrend
    Regime(-0.002, 0.002),  # very slow downtrend
    Regime(0.0, 0.003),     # flat, low volatility
    Regime(0.0, 0.002),     # flat, very low volatility
)


class SeededRandom:
    """Linear-congruential generator yielding floats in ``[0, 1)``."""

    _MULTIPLIER = 9301
    _INCREMENT = 49297
    _MODULUS = 233280

    def __init__(self, seed: int) -> None:
        self._state = seed % self._MODULUS

    def random(self) -> float:
        self._state = (self._state * self._MULTIPLIER + self._INCREMENT) % self._MODULUS
        return self._state / self._MODULUS


def generate_series(length: int, seed: int) -> MarketSeries:
    """Generate *length* daily price points from *seed*.

    A new regime is drawn every ``REGIME_BLOCK`` steps.  Within a step the
    draw order is: drift noise, volatility noise, price noise.

    Raises:
        GenerationError: If *length* is negative or either argument is not
            an integer.
    """
    if isinstance(length, bool) or not isinstance(length, int):
        raise GenerationError(f"length must be an int, got {length!r}")
    if isinstance(seed, bool) or not isinstance(seed, int):
        raise GenerationError(f"seed must be an int, got {seed!r}")
    if length < 0:
        raise GenerationError(f"length must be non-negative, got {length}")

    rng = SeededRandom(seed)
    prices: list[float] = []
    timestamps: list[date] = []
    price = BASE_PRICE
    regime = REGIMES[0]

    for i in range(length):
        if i % REGIME_BLOCK == 0:
            regime = REGIMES[int(rng.random() * len(REGIMES))]

        drift = regime.drift * (1 + (rng.random() - 0.5) * NOISE_SPREAD)
        volatility = regime.volatility * (1 + (rng.random() - 0.5) * NOISE_SPREAD)
        price *= 1 + drift + (rng.random() - 0.5) * volatility

        prices.append(price)
        timestamps.append(EPOCH + timedelta(days=i))

    return MarketSeries(prices=tuple(prices), timestamps=tuple(timestamps), seed=seed)


def trial_seed(base_seed: int, trial_index: int, distinct: bool = True) -> int:
    """Seed for evaluation trial *trial_index*.

    With ``distinct=False`` every trial replays *base_seed*, which yields
    identical datasets.
    """
    return base_seed + trial_index if distinct else base_seed
