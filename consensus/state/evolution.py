"""
State & Evolution Manager.

Owns the process-lifetime state of the predictor (weight vector, system
parameters, defensive-mode flag, sentiment simulator) and the three ways
it adapts:

- Parameter self-tuning: nudge the bad-trend threshold towards the
  target accuracy.
- Weight evolution: reward features that sided with correct predictions,
  penalise those that sided with wrong ones.
- Defensive mode: a NORMAL/DEFENSIVE state machine with hysteresis.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional

from consensus.config import (
    EngineConfig,
    EvolutionConfig,
    Outcome,
    ResolutionStatus,
)
from consensus.data.outcome import OutcomeRecord
from consensus.models.primary import feature_votes_high
from consensus.sentiment.simulator import SentimentSimulator

logger = logging.getLogger(__name__)

TRANSITION_LOG_SIZE = 50  # Most recent defensive-mode transitions kept


class DefensiveState(Enum):
    NORMAL = "normal"
    DEFENSIVE = "defensive"


@dataclass
class SystemParameters:
    """Tunable system parameters."""
    min_history: int = 100
    bad_trend_threshold: float = 0.45
    target_accuracy: float = 0.54
    evolution_rate: float = 0.005
    defensive_mode: bool = False

    @property
    def state(self) -> DefensiveState:
        return DefensiveState.DEFENSIVE if self.defensive_mode else DefensiveState.NORMAL


@dataclass
class EngineState:
    """Mutable state carried across prediction cycles.

    Only one cycle may touch it at a time; the round session enforces that.
    ``cycles`` counts every confirmed record handed to the predictor and
    keeps growing after the history reaches its cap.
    """
    parameters: SystemParameters
    weights: dict[str, float]
    sentiment: SentimentSimulator
    cycles: int = 0
    evolution_steps: int = 0  # Periodic steps run, including skipped passes
    evolution_passes: int = 0
    transitions: deque[tuple[DefensiveState, DefensiveState]] = field(
        default_factory=lambda: deque(maxlen=TRANSITION_LOG_SIZE)
    )
    transition_count: int = 0

    @classmethod
    def from_config(
        cls, config: EngineConfig, sentiment: Optional[SentimentSimulator] = None
    ) -> "EngineState":
        evo = config.evolution
        return cls(
            parameters=SystemParameters(
                min_history=config.history.min_history,
                bad_trend_threshold=evo.bad_trend_threshold,
                target_accuracy=evo.target_accuracy,
                evolution_rate=evo.evolution_rate,
            ),
            weights=dict(config.model.initial_weights),
            sentiment=sentiment or SentimentSimulator(config.sentiment),
        )

    @property
    def defensive(self) -> bool:
        return self.parameters.defensive_mode


def resolved_win_rate(records: Iterable[OutcomeRecord]) -> tuple[int, int]:
    """Return (wins, resolved) over the given records."""
    wins = 0
    resolved = 0
    for record in records:
        if record.status == ResolutionStatus.WIN:
            wins += 1
            resolved += 1
        elif record.status == ResolutionStatus.LOSS:
            resolved += 1
    return wins, resolved


class EvolutionManager:
    """Adapts the engine state from resolved outcomes."""

    def __init__(self, config: Optional[EvolutionConfig] = None):
        self._config = config or EvolutionConfig()

    # ── Parameter self-tuning ────────────────────────────────

    def tune_parameters(self, state: EngineState, global_accuracy: float) -> bool:
        """Move the bad-trend threshold against the accuracy error.

        Returns True when the threshold changed.
        """
        cfg = self._config
        params = state.parameters
        before = params.bad_trend_threshold

        if global_accuracy < params.target_accuracy - cfg.accuracy_tolerance:
            params.bad_trend_threshold = min(
                cfg.bad_trend_ceiling, params.bad_trend_threshold + params.evolution_rate
            )
        elif global_accuracy > params.target_accuracy + cfg.accuracy_tolerance:
            params.bad_trend_threshold = max(
                cfg.bad_trend_floor, params.bad_trend_threshold - params.evolution_rate
            )

        changed = params.bad_trend_threshold != before
        if changed:
            logger.info(
                "Bad-trend threshold %.3f -> %.3f (accuracy %.3f, target %.3f)",
                before, params.bad_trend_threshold, global_accuracy, params.target_accuracy,
            )
        return changed

    # ── Weight evolution ─────────────────────────────────────

    def learning_records(self, history: Iterable[OutcomeRecord]) -> list[OutcomeRecord]:
        """Most recent records with a feature snapshot and a resolved status."""
        records = [
            r for r in history
            if r.features and r.predicted is not None and r.is_resolved
        ]
        return records[: self._config.evolution_window]

    def evolve_weights(
        self, state: EngineState, history: Iterable[OutcomeRecord]
    ) -> Optional[dict[str, float]]:
        """Run one evolution pass over the recent resolved predictions.

        Returns the summed adjustments, or None when there were too few
        qualifying records and the pass was skipped.
        """
        cfg = self._config
        records = self.learning_records(history)
        if len(records) < cfg.min_evolution_records:
            logger.debug(
                "Weight evolution skipped: %d/%d qualifying records",
                len(records), cfg.min_evolution_records,
            )
            return None

        weights = state.weights
        adjustments = {name: 0.0 for name in weights}

        for record in records:
            was_correct = record.status == ResolutionStatus.WIN
            predicted_high = record.predicted is Outcome.HIGH
            for name, value in record.features.items():
                if name not in weights:
                    continue
                votes_high = feature_votes_high(value, weights[name])
                aligned = votes_high if predicted_high else not votes_high
                if not aligned:
                    continue
                adjustments[name] += cfg.learning_rate if was_correct else -cfg.learning_rate

        for name in weights:
            weights[name] = max(
                cfg.weight_floor, min(cfg.weight_ceiling, weights[name] + adjustments[name])
            )

        state.evolution_passes += 1
        logger.debug("Weights evolved over %d records: %s", len(records), adjustments)
        return adjustments

    # ── Defensive mode ───────────────────────────────────────

    def detect_bad_trend(self, state: EngineState, history: list[OutcomeRecord]) -> bool:
        """Win rate of the recent window is below the bad-trend threshold."""
        cfg = self._config
        if len(history) < cfg.bad_trend_window:
            return False
        wins, resolved = resolved_win_rate(history[: cfg.bad_trend_window])
        if resolved < cfg.bad_trend_min_resolved:
            return False
        return wins / resolved < state.parameters.bad_trend_threshold

    def has_recovered(self, history: list[OutcomeRecord]) -> bool:
        """The most recent resolved statuses form a winning streak."""
        streak = self._config.recovery_streak
        recent = [r.status for r in history if r.is_resolved][:streak]
        return len(recent) == streak and all(s == ResolutionStatus.WIN for s in recent)

    def update_defensive_mode(
        self, state: EngineState, history: list[OutcomeRecord]
    ) -> DefensiveState:
        """Evaluate the state machine once and return the resulting state."""
        params = state.parameters
        current = params.state

        if current == DefensiveState.NORMAL and self.detect_bad_trend(state, history):
            params.defensive_mode = True
        elif current == DefensiveState.DEFENSIVE and self.has_recovered(history):
            params.defensive_mode = False

        new_state = params.state
        if new_state != current:
            state.transitions.append((current, new_state))
            state.transition_count += 1
            logger.info("Defensive mode: %s -> %s", current.value, new_state.value)
        return new_state
