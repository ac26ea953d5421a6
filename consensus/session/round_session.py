"""
Round Session.

The in-process half of the request layer: receives each ended round,
keeps the capped history and the cycle memory, runs one prediction cycle
per new round and keeps the prediction for the round that follows.
Fetching the result from the upstream source is left to the caller.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from consensus.config import EngineConfig, ResolutionStatus
from consensus.data.outcome import CycleMemory, OutcomeHistory, OutcomeRecord, next_round_id
from consensus.models.consensus import Decision
from consensus.predictor import ConsensusPredictor
from consensus.state.evolution import resolved_win_rate

logger = logging.getLogger(__name__)

MIN_RESOLVED_FOR_ACCURACY = 20


class CycleInProgressError(RuntimeError):
    """Raised when a round is submitted while another cycle is running."""


@dataclass
class RoundPrediction:
    """Prediction published for the next round."""

    round_id: str
    prediction: str
    confidence: int  # Percentage
    confidence_level: int
    overall_logic: str
    source: str
    health: str
    timestamp: datetime = field(default_factory=datetime.utcnow)
    decision: Optional[Decision] = None

    def to_dict(self) -> dict:
        return {
            "period": self.round_id,
            "prediction": self.prediction,
            "confidence": self.confidence,
            "confidenceLevel": self.confidence_level,
            "overallLogic": self.overall_logic,
            "source": self.source,
            "systemHealth": self.health,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class SubmitResult:
    """What a submission produced."""
    prediction: Optional[RoundPrediction]
    already_processed: bool = False
    resolved_status: Optional[ResolutionStatus] = None


class RoundSession:
    """Feeds resolved rounds to the predictor one at a time.

    Usage:
        session = RoundSession(EngineConfig())
        result = session.submit("20240101001", 7)
        print(result.prediction.to_dict())
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        predictor: Optional[ConsensusPredictor] = None,
    ):
        self._config = config or EngineConfig()
        self._predictor = predictor or ConsensusPredictor(self._config)
        self._history = OutcomeHistory(max_length=self._config.history.max_length)
        self._memory = CycleMemory()
        self._current: Optional[RoundPrediction] = None
        self._last_round: Optional[str] = None
        self._lock = threading.Lock()

    @property
    def history(self) -> OutcomeHistory:
        return self._history

    @property
    def memory(self) -> CycleMemory:
        return self._memory

    @property
    def predictor(self) -> ConsensusPredictor:
        return self._predictor

    @property
    def current_prediction(self) -> Optional[RoundPrediction]:
        return self._current

    def submit(self, round_id: str, number: int) -> SubmitResult:
        """Record an ended round and predict the next one.

        Raises:
            CycleInProgressError: another submission is still running.
            ValueError: malformed round id or number.
        """
        if not self._lock.acquire(blocking=False):
            raise CycleInProgressError("Prediction cycle already in progress.")
        try:
            round_id = str(round_id).strip()
            if round_id == self._last_round:
                logger.info("Round %s already processed. Returning current prediction.", round_id)
                return SubmitResult(prediction=self._current, already_processed=True)

            record = OutcomeRecord(round_id=round_id, number=number)
            self._history.add(record)
            self._last_round = round_id
            self._memory.long_term_global_accuracy = self.long_term_accuracy()

            decision = self._predictor.predict(self._history, self._memory)

            self._current = RoundPrediction(
                round_id=next_round_id(round_id),
                prediction=decision.prediction.value,
                confidence=round(decision.confidence * 100) if decision.confidence else 50,
                confidence_level=decision.confidence_level,
                overall_logic=decision.overall_logic,
                source=decision.source,
                health=decision.health.value,
                decision=decision,
            )
            status = record.status if record.status != ResolutionStatus.PENDING else None
            return SubmitResult(prediction=self._current, resolved_status=status)
        finally:
            self._lock.release()

    def mark_cooldown(self) -> None:
        """Flag the pending prediction as a placeholder that was not played."""
        self._memory.cooldown = True

    def long_term_accuracy(self) -> Optional[float]:
        """Win rate over every resolved record still in the history."""
        wins, resolved = resolved_win_rate(self._history)
        if resolved < MIN_RESOLVED_FOR_ACCURACY:
            return None
        return wins / resolved

    def recent(self, count: int = 50) -> list[OutcomeRecord]:
        return self._history.recent(count)
