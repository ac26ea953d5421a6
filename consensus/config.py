"""
Configuration management for the Consensus Core predictor.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


class Outcome(Enum):
    HIGH = "HIGH"
    LOW = "LOW"

    @property
    def opposite(self) -> "Outcome":
        return Outcome.LOW if self is Outcome.HIGH else Outcome.HIGH


class ResolutionStatus(Enum):
    PENDING = "Pending"
    WIN = "Win"
    LOSS = "Loss"
    COOLDOWN = "Cooldown"

    @property
    def is_resolved(self) -> bool:
        return self in (ResolutionStatus.WIN, ResolutionStatus.LOSS)


class SystemHealth(Enum):
    OK = "OK"
    DEFENSIVE_MODE = "DEFENSIVE_MODE"
    INSUFFICIENT_HISTORY = "INSUFFICIENT_HISTORY"
    MODEL_UNCERTAIN = "MODEL_UNCERTAIN"


# Raw results are single digits; 0-4 is LOW, 5-9 is HIGH
NUMBER_MIN = 0
NUMBER_MAX = 9
HIGH_FROM = 5

OVERALL_LOGIC = "ConsensusCore-v60.1"

# Starting weight table for the primary model. The last four entries have no
# matching feature yet and are carried unchanged through evolution.
DEFAULT_FEATURE_WEIGHTS: dict[str, float] = {
    # Core indicators
    "rsi_strength": 1.5,
    "rsi_is_overbought": -2.0,
    "rsi_is_oversold": 2.0,
    "macd_hist": 2.5,
    "trend_strength_score": 3.0,
    # Price action & volatility
    "bollinger_pct_reversal": -2.5,
    "last_move": 0.5,
    "volatility_expansion": 1.2,
    # External factors
    "market_sentiment": 1.0,
    # Advisory-derived
    "stochastic_k": -1.8,
    "rsi_trend_strength": 1.0,
}


@dataclass(frozen=True)
class HistoryConfig:
    """Outcome history limits."""
    max_length: int = 150
    min_history: int = 100  # Gate before the model is trusted


@dataclass(frozen=True)
class ModelConfig:
    """Primary model and consensus composition."""
    initial_weights: dict[str, float] = field(
        default_factory=lambda: dict(DEFAULT_FEATURE_WEIGHTS)
    )
    rsi_period: int = 14
    rsi_overbought: float = 70.0
    rsi_oversold: float = 30.0
    macd_fast: int = 12
    macd_slow: int = 26
    macd_signal: int = 9
    trend_periods: tuple[int, int, int] = (5, 10, 20)
    bollinger_period: int = 20
    bollinger_width: float = 2.0
    primary_share: float = 0.6
    consensus_share: float = 0.4
    defensive_penalty: float = 0.7
    confidence_level_threshold: float = 0.55


@dataclass(frozen=True)
class AdvisoryConfig:
    """Thresholds for the six advisory detectors."""
    rsi_period: int = 14
    rsi_ma_period: int = 9
    rsi_trend_margin: float = 2.0
    stochastic_period: int = 14
    stochastic_overbought: float = 85.0
    stochastic_oversold: float = 15.0
    pattern_window: int = 10
    pattern_min_samples: int = 5
    volatility_period: int = 20
    volatility_expansion_ratio: float = 1.8
    price_action_min_samples: int = 5
    mean_reversion_period: int = 20
    mean_reversion_z: float = 1.5


@dataclass(frozen=True)
class EvolutionConfig:
    """Self-tuning, weight evolution and defensive-mode parameters."""
    bad_trend_threshold: float = 0.45
    bad_trend_floor: float = 0.42
    bad_trend_ceiling: float = 0.48
    target_accuracy: float = 0.54
    accuracy_tolerance: float = 0.02
    evolution_rate: float = 0.005
    evolution_interval: int = 5  # Every Nth confirmed record
    learning_rate: float = 0.01
    weight_floor: float = 0.1
    weight_ceiling: float = 5.0
    evolution_window: int = 50
    min_evolution_records: int = 20
    bad_trend_window: int = 30
    bad_trend_min_resolved: int = 15
    recovery_streak: int = 3


@dataclass(frozen=True)
class SentimentConfig:
    """Simulated news-event process."""
    event_probability: float = 0.05
    decay_rate: float = 0.90
    prune_threshold: float = 0.05
    event_impact: float = 1.0


@dataclass
class EngineConfig:
    """Top-level engine configuration."""
    history: HistoryConfig = field(default_factory=HistoryConfig)
    model: ModelConfig = field(default_factory=ModelConfig)
    advisory: AdvisoryConfig = field(default_factory=AdvisoryConfig)
    evolution: EvolutionConfig = field(default_factory=EvolutionConfig)
    sentiment: SentimentConfig = field(default_factory=SentimentConfig)

    seed: Optional[int] = None  # None = nondeterministic
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "EngineConfig":
        """Load configuration from environment variables."""
        seed = os.getenv("CONSENSUS_SEED", "")
        return cls(
            history=HistoryConfig(
                max_length=int(os.getenv("CONSENSUS_MAX_HISTORY", "150")),
                min_history=int(os.getenv("CONSENSUS_MIN_HISTORY", "100")),
            ),
            evolution=EvolutionConfig(
                bad_trend_threshold=float(
                    os.getenv("CONSENSUS_BAD_TREND_THRESHOLD", "0.45")
                ),
                target_accuracy=float(
                    os.getenv("CONSENSUS_TARGET_ACCURACY", "0.54")
                ),
            ),
            seed=int(seed) if seed else None,
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )
