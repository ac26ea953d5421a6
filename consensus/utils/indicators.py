"""
Technical indicator primitives.

All functions take a newest-first sequence (index 0 is the latest value)
and return None instead of raising when there is not enough data.
"""

from __future__ import annotations

from typing import Optional, Sequence

import numpy as np


def sma(data: Sequence[float], period: int) -> Optional[float]:
    """Simple moving average of the first ``period`` values."""
    if period <= 0 or len(data) < period:
        return None
    return float(np.mean(np.asarray(data[:period], dtype=float)))


def ema(data: Sequence[float], period: int) -> Optional[float]:
    """Exponential moving average, evaluated at the newest value.

    Seeded with the SMA of the oldest ``period`` samples, then rolled
    forward in time with k = 2 / (period + 1).
    """
    if period <= 0 or len(data) < period:
        return None
    chronological = np.asarray(data, dtype=float)[::-1]
    k = 2.0 / (period + 1)

    value = float(np.mean(chronological[:period]))
    for price in chronological[period:]:
        value = float(price) * k + value * (1 - k)
    return value


def stddev(data: Sequence[float], period: int) -> Optional[float]:
    """Sample standard deviation (n - 1) of the first ``period`` values."""
    if period <= 0 or len(data) < period or period < 2:
        return None
    window = np.asarray(data[:period], dtype=float)
    return float(np.std(window, ddof=1))


def rsi(data: Sequence[float], period: int = 14) -> Optional[float]:
    """Wilder relative strength index (0-100).

    The first ``period`` deltas seed the average gain/loss, later deltas are
    smoothed with weight (period - 1) / period. No losses at all gives 100.
    """
    if period <= 0 or len(data) < period + 1:
        return None
    deltas = np.diff(np.asarray(data, dtype=float)[::-1])
    gains = np.where(deltas > 0, deltas, 0.0)
    losses = np.where(deltas < 0, -deltas, 0.0)

    avg_gain = float(np.sum(gains[:period])) / period
    avg_loss = float(np.sum(losses[:period])) / period
    for gain, loss in zip(gains[period:], losses[period:]):
        avg_gain = (avg_gain * (period - 1) + float(gain)) / period
        avg_loss = (avg_loss * (period - 1) + float(loss)) / period

    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return 100.0 - (100.0 / (1.0 + rs))


def macd_line(data: Sequence[float], fast: int = 12, slow: int = 26) -> Optional[float]:
    """MACD line: fast EMA minus slow EMA."""
    fast_ema = ema(data, fast)
    slow_ema = ema(data, slow)
    if fast_ema is None or slow_ema is None:
        return None
    return fast_ema - slow_ema
