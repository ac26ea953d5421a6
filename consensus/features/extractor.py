"""
Feature Extractor.

Turns the newest-first outcome numbers into the fixed set of named
features scored by the primary model. Every feature is always present;
an indicator without enough data contributes 0.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from consensus.config import ModelConfig
from consensus.utils.indicators import ema, macd_line, rsi, sma, stddev

logger = logging.getLogger(__name__)

FEATURE_NAMES = (
    "rsi_strength",
    "rsi_is_overbought",
    "rsi_is_oversold",
    "macd_hist",
    "trend_strength_score",
    "bollinger_pct_reversal",
    "last_move",
)

FeatureVector = dict[str, float]


@dataclass(frozen=True)
class TrendContext:
    """EMA-stack reading of the recent trend."""
    strength: str = "UNKNOWN"  # STRONG, RANGING, UNKNOWN
    direction: str = "NONE"  # UP, DOWN, NONE

    @property
    def score(self) -> float:
        if self.strength != "STRONG":
            return 0.0
        return 1.0 if self.direction == "UP" else -1.0


def trend_context(
    numbers: Sequence[float], periods: tuple[int, int, int] = (5, 10, 20)
) -> TrendContext:
    """Compare short/medium/long EMAs; a clean stack is a strong trend."""
    short_p, medium_p, long_p = periods
    if len(numbers) < long_p:
        return TrendContext()

    short_ma = ema(numbers, short_p)
    medium_ma = ema(numbers, medium_p)
    long_ma = ema(numbers, long_p)
    if short_ma is None or medium_ma is None or long_ma is None:
        return TrendContext()

    if short_ma > medium_ma > long_ma:
        return TrendContext("STRONG", "UP")
    if short_ma < medium_ma < long_ma:
        return TrendContext("STRONG", "DOWN")
    return TrendContext("RANGING", "NONE")


def macd_histogram(
    numbers: Sequence[float], fast: int = 12, slow: int = 26, signal: int = 9
) -> Optional[float]:
    """MACD line minus its signal line.

    The signal line is the EMA of the MACD line computed over progressively
    shorter trailing windows, newest window first.
    """
    line = macd_line(numbers, fast, slow)
    if line is None:
        return None
    series = [
        value
        for value in (macd_line(numbers[i:], fast, slow) for i in range(len(numbers)))
        if value is not None
    ]
    signal_line = ema(series, signal)
    if signal_line is None:
        return None
    return line - signal_line


def bollinger_percent_b(
    numbers: Sequence[float], period: int = 20, width: float = 2.0
) -> Optional[float]:
    """Position of the latest value inside the band (0 = lower, 1 = upper)."""
    mid = sma(numbers, period)
    sigma = stddev(numbers, period)
    if mid is None or not sigma:
        return None
    upper = mid + sigma * width
    lower = mid - sigma * width
    return (numbers[0] - lower) / (upper - lower)


class FeatureExtractor:
    """Builds the primary model's feature vector from an outcome window."""

    def __init__(self, config: Optional[ModelConfig] = None):
        self._config = config or ModelConfig()

    def extract(self, numbers: Sequence[float]) -> FeatureVector:
        """Compute all features for a newest-first window.

        Args:
            numbers: Raw outcome numbers, index 0 is the latest round.
                The orchestrator only calls this past the history gate.

        Returns:
            Mapping of every name in FEATURE_NAMES to a float.
        """
        cfg = self._config
        numbers = list(numbers)

        rsi_value = rsi(numbers, cfg.rsi_period)
        hist = macd_histogram(numbers, cfg.macd_fast, cfg.macd_slow, cfg.macd_signal)
        trend = trend_context(numbers, cfg.trend_periods)
        pct_b = bollinger_percent_b(numbers, cfg.bollinger_period, cfg.bollinger_width)

        features: FeatureVector = {}
        features["rsi_strength"] = (rsi_value - 50.0) / 50.0 if rsi_value is not None else 0.0
        features["rsi_is_overbought"] = (
            1.0 if rsi_value is not None and rsi_value > cfg.rsi_overbought else 0.0
        )
        features["rsi_is_oversold"] = (
            -1.0 if rsi_value is not None and rsi_value < cfg.rsi_oversold else 0.0
        )
        features["macd_hist"] = hist if hist is not None else 0.0
        features["trend_strength_score"] = trend.score

        if pct_b is None:
            features["bollinger_pct_reversal"] = 0.0
        elif pct_b > 1:
            features["bollinger_pct_reversal"] = pct_b - 1
        elif pct_b < 0:
            features["bollinger_pct_reversal"] = pct_b
        else:
            features["bollinger_pct_reversal"] = 0.0

        features["last_move"] = (
            1.0 if len(numbers) >= 2 and numbers[0] > numbers[1] else -1.0
        )

        logger.debug(
            "Features: rsi=%s trend=%s/%s %%B=%s",
            f"{rsi_value:.1f}" if rsi_value is not None else "n/a",
            trend.strength, trend.direction,
            f"{pct_b:.2f}" if pct_b is not None else "n/a",
        )
        return features
