"""
Advisory Ensemble.

Six independent heuristic detectors, each reading the newest-first raw
numbers and either voting HIGH/LOW or abstaining:

1. RSI Trend - RSI above/below its own moving average
2. Stochastic - %K overbought/oversold reversal
3. Pattern - HIGH/LOW letter sequences (streaks, alternation, sandwiches)
4. Volatility Breakout - std-dev expansion continues the last move
5. Price Action - higher highs / lower lows
6. Mean Reversion - z-score stretch back to the mean

The consensus score is the share of voting detectors that agree with the
primary model.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional, Sequence

from consensus.config import AdvisoryConfig, Outcome
from consensus.data.outcome import classify_number
from consensus.utils.indicators import rsi, sma, stddev

logger = logging.getLogger(__name__)


class AdvisorKind(Enum):
    RSI_TREND = "rsi_trend"
    STOCHASTIC = "stochastic"
    PATTERN = "pattern"
    VOLATILITY = "volatility"
    PRICE_ACTION = "price_action"
    MEAN_REVERSION = "mean_reversion"


@dataclass(frozen=True)
class AdvisorySignal:
    """A single detector vote."""
    prediction: Outcome
    source: str
    kind: AdvisorKind


Detector = Callable[[Sequence[int], AdvisoryConfig], Optional[AdvisorySignal]]

# Letter sequences are chronological (oldest first) and matched on the
# trailing end. Streak breaks go before streak continuations, otherwise a
# five-long streak would always be read as a four-long one.
PATTERN_RULES: tuple[tuple[str, Outcome, str], ...] = (
    ("BBBBB", Outcome.LOW, "Pattern:StreakBreak"),
    ("SSSSS", Outcome.HIGH, "Pattern:StreakBreak"),
    ("BBBB", Outcome.HIGH, "Pattern:StreakCont"),
    ("SSSS", Outcome.LOW, "Pattern:StreakCont"),
    ("BSBS", Outcome.HIGH, "Pattern:AltBreak"),
    ("SBSB", Outcome.LOW, "Pattern:AltBreak"),
    ("BBSBB", Outcome.HIGH, "Pattern:Interrupt"),
    ("SSBSS", Outcome.LOW, "Pattern:Interrupt"),
    ("BSB", Outcome.LOW, "Pattern:DoubleTop"),
    ("SBS", Outcome.HIGH, "Pattern:DoubleBottom"),
)


def _letter(number: int) -> str:
    return "B" if classify_number(number) is Outcome.HIGH else "S"


def analyze_rsi_trend(numbers: Sequence[int], config: AdvisoryConfig) -> Optional[AdvisorySignal]:
    """Vote with the RSI when it runs away from its own moving average."""
    period = config.rsi_period
    ma_period = config.rsi_ma_period
    if len(numbers) < period + ma_period:
        return None

    # Oldest shifted window first, so the last value is the current RSI
    rsi_values: list[float] = []
    for shift in range(ma_period - 1, -1, -1):
        value = rsi(numbers[shift:], period)
        if value is None:
            return None
        rsi_values.append(value)

    current = rsi_values[-1]
    rsi_ma = sma(rsi_values, ma_period)
    if rsi_ma is None:
        return None

    if current > rsi_ma + config.rsi_trend_margin:
        return AdvisorySignal(Outcome.HIGH, "RSITrend", AdvisorKind.RSI_TREND)
    if current < rsi_ma - config.rsi_trend_margin:
        return AdvisorySignal(Outcome.LOW, "RSITrend", AdvisorKind.RSI_TREND)
    return None


def analyze_stochastic(numbers: Sequence[int], config: AdvisoryConfig) -> Optional[AdvisorySignal]:
    """Fade %K extremes over the recent window."""
    window = list(numbers[: config.stochastic_period])
    if len(window) < config.stochastic_period:
        return None

    lowest = min(window)
    highest = max(window)
    if highest == lowest:
        return None

    k = 100.0 * (window[0] - lowest) / (highest - lowest)
    if k > config.stochastic_overbought:
        return AdvisorySignal(Outcome.LOW, "Stochastic", AdvisorKind.STOCHASTIC)
    if k < config.stochastic_oversold:
        return AdvisorySignal(Outcome.HIGH, "Stochastic", AdvisorKind.STOCHASTIC)
    return None


def analyze_patterns(numbers: Sequence[int], config: AdvisoryConfig) -> Optional[AdvisorySignal]:
    """Match the recent HIGH/LOW letter sequence against PATTERN_RULES."""
    recent = list(numbers[: config.pattern_window])
    if len(recent) < config.pattern_min_samples:
        return None

    sequence = "".join(_letter(n) for n in reversed(recent))
    for suffix, prediction, source in PATTERN_RULES:
        if sequence.endswith(suffix):
            return AdvisorySignal(prediction, source, AdvisorKind.PATTERN)
    return None


def analyze_volatility_breakout(
    numbers: Sequence[int], config: AdvisoryConfig
) -> Optional[AdvisorySignal]:
    """Follow the last move when recent volatility expands sharply."""
    period = config.volatility_period
    if len(numbers) < period * 2:
        return None

    recent_vol = stddev(numbers[:period], period)
    prior_vol = stddev(numbers[period : period * 2], period)
    if recent_vol is None or prior_vol is None or prior_vol == 0:
        return None

    if recent_vol > prior_vol * config.volatility_expansion_ratio:
        direction = Outcome.HIGH if numbers[0] > numbers[1] else Outcome.LOW
        return AdvisorySignal(direction, "Volatility", AdvisorKind.VOLATILITY)
    return None


def analyze_price_action(numbers: Sequence[int], config: AdvisoryConfig) -> Optional[AdvisorySignal]:
    """Higher high and higher low is up, lower high and lower low is down."""
    if len(numbers) < config.price_action_min_samples:
        return None

    p0, p1, p2, p3 = numbers[0], numbers[1], numbers[2], numbers[3]
    if p0 > p2 and p1 > p3:
        return AdvisorySignal(Outcome.HIGH, "PriceAction", AdvisorKind.PRICE_ACTION)
    if p0 < p2 and p1 < p3:
        return AdvisorySignal(Outcome.LOW, "PriceAction", AdvisorKind.PRICE_ACTION)
    return None


def analyze_mean_reversion(
    numbers: Sequence[int], config: AdvisoryConfig
) -> Optional[AdvisorySignal]:
    """Expect a stretched value to revert towards its moving average."""
    period = config.mean_reversion_period
    window = list(numbers[:period])
    if len(window) < period:
        return None

    mean = sma(window, period)
    sigma = stddev(window, period)
    if mean is None or not sigma:
        return None

    z_score = (window[0] - mean) / sigma
    if z_score > config.mean_reversion_z:
        return AdvisorySignal(Outcome.LOW, "MeanReversion", AdvisorKind.MEAN_REVERSION)
    if z_score < -config.mean_reversion_z:
        return AdvisorySignal(Outcome.HIGH, "MeanReversion", AdvisorKind.MEAN_REVERSION)
    return None


DETECTORS: dict[AdvisorKind, Detector] = {
    AdvisorKind.RSI_TREND: analyze_rsi_trend,
    AdvisorKind.STOCHASTIC: analyze_stochastic,
    AdvisorKind.PATTERN: analyze_patterns,
    AdvisorKind.VOLATILITY: analyze_volatility_breakout,
    AdvisorKind.PRICE_ACTION: analyze_price_action,
    AdvisorKind.MEAN_REVERSION: analyze_mean_reversion,
}


def consensus_score(signals: Sequence[AdvisorySignal], primary: Outcome) -> float:
    """Share of voting detectors agreeing with ``primary``; 0.5 if none voted."""
    if not signals:
        return 0.5
    agreeing = sum(1 for s in signals if s.prediction is primary)
    return agreeing / len(signals)


@dataclass
class AdvisoryResult:
    """Votes from all detectors measured against the primary prediction."""
    signals: list[AdvisorySignal] = field(default_factory=list)
    consensus_score: float = 0.5
    agreeing: int = 0

    @property
    def total(self) -> int:
        return len(self.signals)

    @property
    def label(self) -> str:
        return f"{self.agreeing}/{self.total}"


class AdvisoryEnsemble:
    """Runs every detector and measures agreement with the primary model."""

    def __init__(self, config: Optional[AdvisoryConfig] = None):
        self._config = config or AdvisoryConfig()

    def run(self, numbers: Sequence[int], primary: Outcome) -> AdvisoryResult:
        numbers = list(numbers)
        signals: list[AdvisorySignal] = []
        for kind, detector in DETECTORS.items():
            signal = detector(numbers, self._config)
            if signal is not None:
                signals.append(signal)
            logger.debug("Advisor %s: %s", kind.value, signal.prediction.value if signal else "abstain")

        agreeing = sum(1 for s in signals if s.prediction is primary)
        return AdvisoryResult(
            signals=signals,
            consensus_score=consensus_score(signals, primary),
            agreeing=agreeing,
        )
