"""Position sizing — pure math, no I/O.

Positions are a fraction of current portfolio value; profits are realised
on that notional when the position closes.
"""


def position_fraction(base_fraction: float, multiplier: float = 1.0) -> float:
    """Fraction of portfolio value committed to the next position.

    Raises:
        ValueError: If either input is non-positive.
    """
    if base_fraction <= 0:
        raise ValueError(f"base_fraction must be positive, got {base_fraction}")
    if multiplier <= 0:
        raise ValueError(f"multiplier must be positive, got {multiplier}")
    return base_fraction * multiplier


def realised_profit(
    direction: str,
    entry_price: float,
    exit_price: float,
    fraction: float,
    portfolio_value: float,
) -> float:
    """Cash profit of closing a position.

    Formula::

        long:   (exit  − entry) / entry × fraction × portfolio_value
        short:  (entry − exit)  / entry × fraction × portfolio_value

    Raises:
        ValueError: If *entry_price* is non-positive or *direction* is unknown.
    """
    if entry_price <= 0:
        raise ValueError(f"entry_price must be positive, got {entry_price}")
    if direction == "long":
        change = (exit_price - entry_price) / entry_price
    elif direction == "short":
        change = (entry_price - exit_price) / entry_price
    else:
        raise ValueError(f"direction must be 'long' or 'short', got {direction!r}")
    return change * fraction * portfolio_value
