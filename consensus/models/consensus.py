"""
Consensus Composer.

Blends the primary model's confidence with the advisory consensus and
applies the defensive-mode penalty. Also defines the decision object
returned to the request layer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from consensus.config import OVERALL_LOGIC, ModelConfig, Outcome, SystemHealth
from consensus.models.advisory import AdvisorySignal


@dataclass
class Decision:
    """Result of one prediction cycle."""

    prediction: Outcome
    confidence: float = 0.0
    confidence_level: int = 0
    source: str = OVERALL_LOGIC
    health: SystemHealth = SystemHealth.OK
    overall_logic: str = OVERALL_LOGIC
    consensus_score: Optional[float] = None
    advisory_signals: list[AdvisorySignal] = field(default_factory=list)

    @property
    def is_confident(self) -> bool:
        return self.confidence_level == 1

    def to_dict(self) -> dict:
        return {
            "finalDecision": self.prediction.value,
            "finalConfidence": self.confidence,
            "confidenceLevel": self.confidence_level,
            "overallLogic": self.overall_logic,
            "source": self.source,
            "systemHealth": self.health.value,
            "advisorySignals": [
                {"prediction": s.prediction.value, "source": s.source}
                for s in self.advisory_signals
            ],
        }


class ConsensusComposer:
    """Turns primary confidence plus consensus into the final confidence."""

    def __init__(self, config: Optional[ModelConfig] = None):
        self._config = config or ModelConfig()

    def final_confidence(
        self, primary_confidence: float, consensus_score: float, defensive: bool
    ) -> float:
        cfg = self._config
        confidence = primary_confidence * (
            cfg.primary_share + cfg.consensus_share * consensus_score
        )
        if defensive:
            confidence *= cfg.defensive_penalty
        return confidence

    def confidence_level(self, final_confidence: float, defensive: bool) -> int:
        """Binary confidence flag, always 0 in defensive mode."""
        if defensive:
            return 0
        return 1 if final_confidence > self._config.confidence_level_threshold else 0

    def compose(
        self, primary_confidence: float, consensus_score: float, defensive: bool
    ) -> tuple[float, int]:
        confidence = self.final_confidence(primary_confidence, consensus_score, defensive)
        return confidence, self.confidence_level(confidence, defensive)
