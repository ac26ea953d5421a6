"""Tests for the round session."""

from __future__ import annotations

import pytest

from consensus.config import ResolutionStatus
from consensus.data.history_loader import synthetic_outcomes
from consensus.session.round_session import CycleInProgressError, RoundSession


def feed(session: RoundSession, count: int, seed: int = 3):
    result = None
    for round_id, number in synthetic_outcomes(count, seed=seed):
        result = session.submit(round_id, number)
    return result


class TestRoundSession:
    def test_warm_up_prediction(self, engine_config):
        session = RoundSession(engine_config)
        result = session.submit("20240101000", 4)
        prediction = result.prediction

        assert prediction.round_id == "20240101001"
        assert prediction.health == "INSUFFICIENT_HISTORY"
        assert prediction.confidence == 50
        assert prediction.confidence_level == 0
        assert result.resolved_status is None

    def test_duplicate_round(self, engine_config):
        session = RoundSession(engine_config)
        first = session.submit("20240101000", 4)
        second = session.submit("20240101000", 4)
        assert second.already_processed
        assert second.prediction is first.prediction
        assert len(session.history) == 1

    def test_concurrent_submission_rejected(self, engine_config):
        session = RoundSession(engine_config)
        session._lock.acquire()
        try:
            with pytest.raises(CycleInProgressError):
                session.submit("20240101000", 4)
        finally:
            session._lock.release()

    def test_invalid_round_releases_lock(self, engine_config):
        session = RoundSession(engine_config)
        with pytest.raises(ValueError):
            session.submit("abc", 4)
        assert session.submit("20240101000", 4).prediction is not None

    def test_prediction_resolves_on_next_round(self, engine_config):
        session = RoundSession(engine_config)
        outcomes = synthetic_outcomes(61, seed=3)
        for round_id, number in outcomes[:60]:
            session.submit(round_id, number)

        waiting = session.current_prediction
        assert waiting.health == "OK"
        assert waiting.round_id == outcomes[60][0]
        assert 0 <= waiting.confidence <= 100

        result = session.submit(*outcomes[60])
        assert result.resolved_status in (ResolutionStatus.WIN, ResolutionStatus.LOSS)
        assert session.history.latest().status is result.resolved_status

    def test_mark_cooldown(self, engine_config):
        session = RoundSession(engine_config)
        outcomes = synthetic_outcomes(61, seed=4)
        for round_id, number in outcomes[:60]:
            session.submit(round_id, number)
        session.mark_cooldown()
        result = session.submit(*outcomes[60])
        assert result.resolved_status is ResolutionStatus.COOLDOWN

    def test_long_term_accuracy(self, engine_config):
        session = RoundSession(engine_config)
        feed(session, 70)
        # Only ten predictions have resolved so far
        assert session.long_term_accuracy() is None

        feed_more = synthetic_outcomes(100, seed=3)[70:]
        for round_id, number in feed_more:
            session.submit(round_id, number)
        accuracy = session.long_term_accuracy()
        assert accuracy is not None
        assert 0.0 <= accuracy <= 1.0
        assert session.memory.long_term_global_accuracy is not None

    def test_to_dict(self, engine_config):
        session = RoundSession(engine_config)
        payload = session.submit("20240101000", 4).prediction.to_dict()
        assert payload["period"] == "20240101001"
        assert payload["systemHealth"] == "INSUFFICIENT_HISTORY"
        assert set(payload) >= {"prediction", "confidence", "confidenceLevel", "overallLogic"}

    def test_recent(self, engine_config):
        session = RoundSession(engine_config)
        feed(session, 10)
        assert len(session.recent(5)) == 5
        assert session.recent(5)[0] is session.history.latest()

    def test_evolution_interval_past_history_cap(self, engine_config):
        session = RoundSession(engine_config)
        feed(session, 400, seed=7)
        state = session.predictor.state

        assert len(session.history) == 150
        assert state.cycles == 400
        # One step per 5 confirmed records from the 60-record gate onwards
        assert state.evolution_steps == (400 - 60) // 5 + 1
        assert state.evolution_passes <= state.evolution_steps
