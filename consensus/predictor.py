"""
Consensus Predictor - one prediction cycle end to end.

History gate → evolution → resolve last prediction → defensive mode
→ features → primary model → advisory ensemble → consensus → decision.

The caller supplies the newest-first outcome history and the cycle memory;
the predictor owns the process-lifetime EngineState. Calls must not
overlap: nothing here is locked.
"""

from __future__ import annotations

import logging
import random
from typing import Iterable, Optional

from consensus.config import (
    OVERALL_LOGIC,
    EngineConfig,
    Outcome,
    ResolutionStatus,
    SystemHealth,
)
from consensus.data.outcome import CycleMemory, OutcomeRecord, next_round_id
from consensus.features.extractor import FeatureExtractor
from consensus.models.advisory import AdvisoryEnsemble
from consensus.models.consensus import ConsensusComposer, Decision
from consensus.models.primary import WeightedScoringModel
from consensus.sentiment.simulator import SentimentSimulator
from consensus.state.evolution import EngineState, EvolutionManager

logger = logging.getLogger(__name__)


class ConsensusPredictor:
    """Sequences the prediction pipeline for one resolved round.

    Usage:
        predictor = ConsensusPredictor(EngineConfig())
        decision = predictor.predict(history, memory)
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        rng: Optional[random.Random] = None,
        state: Optional[EngineState] = None,
    ):
        self._config = config or EngineConfig()
        self._rng = rng or random.Random(self._config.seed)
        self.state = state or EngineState.from_config(
            self._config,
            SentimentSimulator(self._config.sentiment, rng=random.Random(self._config.seed)),
        )

        self._extractor = FeatureExtractor(self._config.model)
        self._model = WeightedScoringModel()
        self._ensemble = AdvisoryEnsemble(self._config.advisory)
        self._composer = ConsensusComposer(self._config.model)
        self._evolution = EvolutionManager(self._config.evolution)

    @property
    def config(self) -> EngineConfig:
        return self._config

    @property
    def evolution(self) -> EvolutionManager:
        return self._evolution

    def predict(self, history: Iterable[OutcomeRecord], memory: CycleMemory) -> Decision:
        """Run one cycle and hand the decision to ``memory`` for the next one.

        Args:
            history: Outcome records, newest first.
            memory: Cycle memory shared with the request layer; updated in place.

        Returns:
            The decision for the round after the newest record.
        """
        records = list(history)
        state = self.state
        params = state.parameters
        state.cycles += 1

        # (a) history gate
        if len(records) < params.min_history:
            logger.debug("Insufficient history: %d/%d", len(records), params.min_history)
            return self._fallback(SystemHealth.INSUFFICIENT_HISTORY)

        # (b) periodic evolution, keyed on confirmed records seen rather than
        # the capped history length
        if state.cycles % self._config.evolution.evolution_interval == 0:
            state.evolution_steps += 1
            if memory.long_term_global_accuracy is not None:
                self._evolution.tune_parameters(state, memory.long_term_global_accuracy)
            self._evolution.evolve_weights(state, records)
            state.sentiment.update()

        # (c) settle the previous prediction, then the defensive state machine
        self._resolve_pending(records[0], memory)
        self._evolution.update_defensive_mode(state, records)

        # (d) features and primary model
        numbers = [r.number for r in records]
        features = self._extractor.extract(numbers)
        primary = self._model.predict(features, state.weights)
        if primary is None:
            return self._fallback(SystemHealth.MODEL_UNCERTAIN)

        # (e) advisory consensus
        advisory = self._ensemble.run(numbers, primary.prediction)
        defensive = state.defensive
        confidence, level = self._composer.compose(
            primary.confidence, advisory.consensus_score, defensive
        )

        # (f) decision and memory hand-off
        decision = Decision(
            prediction=primary.prediction,
            confidence=confidence,
            confidence_level=level,
            source=f"ML+{advisory.label}_Advisors",
            health=SystemHealth.DEFENSIVE_MODE if defensive else SystemHealth.OK,
            overall_logic=OVERALL_LOGIC,
            consensus_score=advisory.consensus_score,
            advisory_signals=advisory.signals,
        )

        memory.decision = decision
        memory.pending_round = next_round_id(records[0].round_id)
        memory.predicted = decision.prediction
        memory.confidence = decision.confidence
        memory.confidence_level = decision.confidence_level
        memory.features = dict(features)
        memory.status = ResolutionStatus.PENDING
        memory.cooldown = False

        logger.info(
            "%s: %s @ Lvl:%d | Conf:%.2f | Source: %s",
            OVERALL_LOGIC,
            decision.prediction.value,
            decision.confidence_level,
            decision.confidence,
            decision.source,
        )
        return decision

    def _resolve_pending(self, latest: OutcomeRecord, memory: CycleMemory) -> Optional[ResolutionStatus]:
        """Score the stored prediction against the round that just resolved."""
        if not memory.awaits(latest.round_id):
            return None

        if memory.cooldown:
            status = ResolutionStatus.COOLDOWN
        elif latest.outcome is memory.predicted:
            status = ResolutionStatus.WIN
        else:
            status = ResolutionStatus.LOSS

        latest.status = status
        latest.predicted = memory.predicted
        latest.features = dict(memory.features) if memory.features else None

        memory.status = status
        memory.last_actual_outcome = latest.number
        memory.last_predicted_outcome = memory.predicted
        memory.last_confidence_level = memory.confidence_level

        logger.debug(
            "Round %s resolved: predicted %s, actual %s -> %s",
            latest.round_id, memory.predicted.value, latest.outcome.value, status.value,
        )
        return status

    def _fallback(self, health: SystemHealth) -> Decision:
        prediction = Outcome.HIGH if self._rng.random() > 0.5 else Outcome.LOW
        return Decision(
            prediction=prediction,
            confidence=0.0,
            confidence_level=0,
            source=OVERALL_LOGIC,
            health=health,
        )
