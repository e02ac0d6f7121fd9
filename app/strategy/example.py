"""Bundled example strategy — returned by ``GET /example-strategy``.

Submitted strategies define ``strategy(prices, timestamps)``; both arguments
are the history up to and including the current step (timestamps as ISO
date strings).  ``np`` is pre-imported in the sandbox.
"""

EXAMPLE_STRATEGY = '''\
def strategy(prices, timestamps):
    import numpy as np

    px = np.asarray(prices, dtype=float)
    last, prev = px[-1], px[-2]

    rets = np.diff(px) / px[:-1]
    vol = np.std(rets[-20:]) * np.sqrt(252)
    if vol > 0.4:
        return None

    high_20, low_20 = px[-20:].max(), px[-20:].min()
    sma_20, sma_50 = px[-20:].mean(), px[-50:].mean()
    trend = (sma_20 - sma_50) / sma_50 * 100
    change = (last - prev) / prev * 100

    delta = np.diff(px)[-14:]
    gain = np.clip(delta, 0, None).mean()
    loss = np.clip(-delta, 0, None).mean()
    rsi = 100.0 if loss == 0 else 100 - 100 / (1 + gain / loss)

    # trend following
    if last > sma_20 > sma_50 and change > 0 and 50 < rsi < 65 \\
            and last < high_20 * 1.005 and trend > 0.1:
        return "buy"
    if last < sma_20 < sma_50 and change < 0 and 35 < rsi < 50 \\
            and last > low_20 * 0.995 and trend < -0.1:
        return "sell"

    # fade stretched moves in quiet markets
    if rsi > 70 and change < 0 and high_20 * 1.005 < last < high_20 * 1.01 and vol < 0.3:
        return "sell"
    if rsi < 30 and change > 0 and low_20 * 0.99 < last < low_20 * 0.995 and vol < 0.3:
        return "buy"

    # breakout with trend confirmation
    if abs(change) > vol * 1.2:
        if change > 0 and rsi > 55 and last > sma_20 and trend > 0.05:
            return "buy"
        if change < 0 and rsi < 45 and last < sma_20 and trend < -0.05:
            return "sell"

    return None
'''
