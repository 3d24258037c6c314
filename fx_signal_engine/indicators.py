from __future__ import annotations

import math
from typing import Optional, Sequence

import numpy as np

def rolling_sma(values: Sequence[float], period: int) -> np.ndarray:
    """Simple moving average aligned to each index (NaN until enough bars)."""
    arr = np.asarray(values, dtype=float)
    n = len(arr)
    out = np.full(n, np.nan)
    if n < period or period <= 0:
        return out
    cumsum = np.cumsum(arr)
    out[period - 1 :] = (cumsum[period - 1 :] - np.concatenate(([0.0], cumsum[: -period]))) / period
    return out

def rolling_rsi(values: Sequence[float], period: int = 14) -> np.ndarray:
    """RSI using simple average of the last `period` gains/losses.

    Returns array with NaN for the first `period` bars where RSI is undefined.

    Note:
      - This uses a simple moving average (SMA) of gains/losses, not Wilder's RMA.
      - A window with zero average loss is saturated at 100, flat windows included.
    """
    c = np.asarray(values, dtype=float)
    n = len(c)
    out = np.full(n, np.nan)
    if n < period + 1 or period <= 0:
        return out

    d = np.diff(c)
    gains = np.clip(d, 0, None)
    losses = np.clip(-d, 0, None)

    # map diffs (len n-1) to indices 1..n-1
    g = np.zeros(n, dtype=float)
    l = np.zeros(n, dtype=float)
    g[1:] = gains
    l[1:] = losses

    gsum = np.cumsum(g)
    lsum = np.cumsum(l)

    # RSI at index i uses gains/losses over (i-period+1..i)
    for i in range(period, n):
        g_avg = (gsum[i] - gsum[i - period]) / period
        l_avg = (lsum[i] - lsum[i - period]) / period
        if l_avg <= 0.0:
            out[i] = 100.0
        else:
            rs = g_avg / l_avg
            out[i] = 100.0 - (100.0 / (1.0 + rs))
    return out

def change_pct(values: Sequence[float]) -> np.ndarray:
    """Bar-over-bar % change; the first bar is 0."""
    c = np.asarray(values, dtype=float)
    out = np.zeros(len(c), dtype=float)
    if len(c) < 2:
        return out
    prev = c[:-1]
    with np.errstate(divide="ignore", invalid="ignore"):
        out[1:] = np.where(prev != 0, (c[1:] - prev) / prev * 100.0, 0.0)
    return out

def latest_sma(values: Sequence[float], period: int) -> Optional[float]:
    """Mean of the last `period` closes, anchored on the newest close so a flat window returns it exactly."""
    arr = np.asarray(values, dtype=float)
    if period <= 0 or len(arr) < period:
        return None
    window = arr[-period:]
    base = float(window[-1])
    return base + math.fsum(window - base) / period

def latest_rsi(values: Sequence[float], period: int = 14) -> Optional[float]:
    arr = np.asarray(values, dtype=float)
    if period <= 0 or len(arr) < period + 1:
        return None
    d = np.diff(arr[-(period + 1):])
    avg_gain = math.fsum(np.clip(d, 0, None)) / period
    avg_loss = math.fsum(np.clip(-d, 0, None)) / period
    if avg_loss <= 0:
        return 100.0
    return 100.0 - 100.0 / (1.0 + avg_gain / avg_loss)
