"""Tests for parameter tuning, weight evolution and defensive mode."""

from __future__ import annotations

from typing import Optional

import pytest

from consensus.config import EngineConfig, Outcome, ResolutionStatus
from consensus.data.outcome import OutcomeRecord
from consensus.state.evolution import (
    TRANSITION_LOG_SIZE,
    DefensiveState,
    EngineState,
    EvolutionManager,
    resolved_win_rate,
)

START_ROUND = 20240101000


@pytest.fixture
def state() -> EngineState:
    return EngineState.from_config(EngineConfig(seed=1))


@pytest.fixture
def manager() -> EvolutionManager:
    return EvolutionManager()


def make_resolved(
    status: ResolutionStatus,
    round_id: int = START_ROUND,
    predicted: Outcome = Outcome.HIGH,
    features: Optional[dict[str, float]] = None,
) -> OutcomeRecord:
    record = OutcomeRecord(round_id=str(round_id), number=7, status=status)
    record.predicted = predicted
    record.features = features
    return record


def records_with(statuses: list[ResolutionStatus], features=None, predicted=Outcome.HIGH):
    """Newest-first records carrying the given statuses."""
    count = len(statuses)
    return [
        make_resolved(
            status,
            round_id=START_ROUND + count - i,
            predicted=predicted,
            features=dict(features) if features else None,
        )
        for i, status in enumerate(statuses)
    ]


WIN = ResolutionStatus.WIN
LOSS = ResolutionStatus.LOSS
PENDING = ResolutionStatus.PENDING


class TestParameterTuning:
    def test_low_accuracy_raises_threshold(self, state, manager):
        assert manager.tune_parameters(state, 0.51)
        assert state.parameters.bad_trend_threshold == pytest.approx(0.455)

    def test_threshold_capped(self, state, manager):
        for _ in range(20):
            manager.tune_parameters(state, 0.30)
        assert state.parameters.bad_trend_threshold == pytest.approx(0.48)
        assert state.parameters.bad_trend_threshold <= 0.48

    def test_high_accuracy_lowers_threshold(self, state, manager):
        manager.tune_parameters(state, 0.57)
        assert state.parameters.bad_trend_threshold == pytest.approx(0.445)

    def test_threshold_floored(self, state, manager):
        for _ in range(20):
            manager.tune_parameters(state, 0.90)
        assert state.parameters.bad_trend_threshold == pytest.approx(0.42)
        assert state.parameters.bad_trend_threshold >= 0.42

    def test_within_tolerance_unchanged(self, state, manager):
        assert not manager.tune_parameters(state, 0.55)
        assert state.parameters.bad_trend_threshold == 0.45


class TestWeightEvolution:
    def test_correct_aligned_feature_rewarded(self, state, manager):
        history = records_with([WIN] * 25, features={"rsi_strength": 1.0})
        adjustments = manager.evolve_weights(state, history)
        assert adjustments["rsi_strength"] == pytest.approx(0.25)
        assert state.weights["rsi_strength"] == pytest.approx(1.75)
        assert state.evolution_passes == 1

    def test_wrong_aligned_feature_penalised(self, state, manager):
        history = records_with([LOSS] * 25, features={"macd_hist": 1.0})
        manager.evolve_weights(state, history)
        assert state.weights["macd_hist"] == pytest.approx(2.25)

    def test_unaligned_feature_untouched(self, state, manager):
        # Feature voted HIGH but the prediction was LOW
        history = records_with([WIN] * 25, features={"rsi_strength": 1.0}, predicted=Outcome.LOW)
        manager.evolve_weights(state, history)
        assert state.weights["rsi_strength"] == pytest.approx(1.5)

    def test_window_limits_records(self, state, manager):
        history = records_with([WIN] * 60, features={"rsi_strength": 1.0})
        manager.evolve_weights(state, history)
        assert state.weights["rsi_strength"] == pytest.approx(2.0)

    def test_weights_clamped_after_pass(self, state, manager):
        history = records_with([WIN] * 25, features={"rsi_strength": 1.0})
        manager.evolve_weights(state, history)
        assert all(0.1 <= w <= 5.0 for w in state.weights.values())
        assert state.weights["rsi_is_overbought"] == pytest.approx(0.1)

    def test_skipped_below_minimum(self, state, manager):
        before = dict(state.weights)
        history = records_with([WIN] * 19, features={"rsi_strength": 1.0})
        assert manager.evolve_weights(state, history) is None
        assert state.weights == before
        assert state.evolution_passes == 0

    def test_pending_and_cooldown_excluded(self, manager):
        history = records_with(
            [WIN, PENDING, ResolutionStatus.COOLDOWN, LOSS], features={"rsi_strength": 1.0}
        )
        history.append(make_resolved(WIN, round_id=START_ROUND - 5, features=None))
        learning = manager.learning_records(history)
        assert [r.status for r in learning] == [WIN, LOSS]


class TestDefensiveMode:
    def test_win_rate(self):
        assert resolved_win_rate(records_with([WIN, LOSS, PENDING, WIN])) == (2, 3)

    def test_bad_trend_detected(self, state, manager):
        history = records_with([WIN] * 5 + [LOSS] * 15 + [PENDING] * 10)
        assert manager.detect_bad_trend(state, history)

    def test_needs_full_window(self, state, manager):
        history = records_with([LOSS] * 29)
        assert not manager.detect_bad_trend(state, history)

    def test_needs_enough_resolved(self, state, manager):
        history = records_with([LOSS] * 14 + [PENDING] * 16)
        assert not manager.detect_bad_trend(state, history)

    def test_good_trend(self, state, manager):
        history = records_with([WIN, LOSS] * 15)
        assert not manager.detect_bad_trend(state, history)

    def test_enters_defensive(self, state, manager):
        history = records_with([LOSS] * 30)
        assert manager.update_defensive_mode(state, history) is DefensiveState.DEFENSIVE
        assert state.defensive
        assert list(state.transitions) == [(DefensiveState.NORMAL, DefensiveState.DEFENSIVE)]
        assert state.transition_count == 1

    def test_stays_defensive_without_streak(self, state, manager):
        state.parameters.defensive_mode = True
        history = records_with([WIN, WIN] + [LOSS] * 28)
        assert manager.update_defensive_mode(state, history) is DefensiveState.DEFENSIVE
        assert len(state.transitions) == 0

    def test_recovers_after_three_wins(self, state, manager):
        state.parameters.defensive_mode = True
        # Pending records are skipped; the window is still a bad trend
        history = records_with([WIN, PENDING, WIN, WIN] + [LOSS] * 26)
        assert manager.update_defensive_mode(state, history) is DefensiveState.NORMAL
        assert not state.defensive

    def test_normal_stays_normal_on_wins(self, state, manager):
        history = records_with([WIN] * 30)
        assert manager.update_defensive_mode(state, history) is DefensiveState.NORMAL
        assert len(state.transitions) == 0

    def test_transition_log_is_bounded(self, state, manager):
        bad = records_with([LOSS] * 30)
        recovered = records_with([WIN] * 3 + [LOSS] * 27)
        for _ in range(TRANSITION_LOG_SIZE + 10):
            manager.update_defensive_mode(state, bad)
            manager.update_defensive_mode(state, recovered)

        assert state.transition_count == 2 * (TRANSITION_LOG_SIZE + 10)
        assert len(state.transitions) == TRANSITION_LOG_SIZE
        assert state.transitions[-1] == (DefensiveState.DEFENSIVE, DefensiveState.NORMAL)
