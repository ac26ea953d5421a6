"""
Primary Weighted Model.

Scores the feature vector against the evolving weight vector. Each
feature pushes either the HIGH or the LOW accumulator depending on the
sign of its value and of its weight; confidence is the normalised gap
between the two.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping, Optional

from consensus.config import Outcome

logger = logging.getLogger(__name__)


@dataclass
class PrimaryPrediction:
    """Output from the primary model."""
    prediction: Outcome
    confidence: float
    high_score: float = 0.0
    low_score: float = 0.0
    source: str = "LearningML"


def feature_votes_high(value: float, weight: float) -> bool:
    """Whether a feature's signed contribution favours HIGH."""
    return value * weight > 0


def score_features(
    features: Mapping[str, float], weights: Mapping[str, float]
) -> tuple[float, float]:
    """Accumulate (high_score, low_score) for a feature vector.

    Features without a weight are ignored. A non-negative weight sends
    positive values to HIGH and the rest to LOW; a negative weight inverts
    the assignment.
    """
    high_score = 0.0
    low_score = 0.0
    for name, value in features.items():
        weight = weights.get(name)
        if weight is None:
            continue
        if weight >= 0:
            if value > 0:
                high_score += value * weight
            else:
                low_score += abs(value * weight)
        else:
            if value > 0:
                low_score += value * abs(weight)
            else:
                high_score += abs(value * weight)
    return high_score, low_score


class WeightedScoringModel:
    """Linear vote model over named features."""

    def predict(
        self, features: Mapping[str, float], weights: Mapping[str, float]
    ) -> Optional[PrimaryPrediction]:
        """Predict the next outcome class.

        Returns None when both accumulators are zero; the caller treats
        that as an uncertain model.
        """
        high_score, low_score = score_features(features, weights)
        total = high_score + low_score
        if total == 0:
            logger.debug("Primary model abstained: no weighted signal")
            return None

        confidence = abs(high_score - low_score) / total
        prediction = Outcome.HIGH if high_score > low_score else Outcome.LOW
        return PrimaryPrediction(
            prediction=prediction,
            confidence=confidence,
            high_score=high_score,
            low_score=low_score,
        )
