"""
Market Sentiment Simulator.

An independent stochastic process: news events appear at random, decay
every update and drop out once insignificant. The aggregate is exposed for
observability and is not part of the feature vector.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from consensus.config import SentimentConfig

logger = logging.getLogger(__name__)


@dataclass
class SentimentEvent:
    """A simulated news event with decaying impact."""
    polarity: str  # PositiveNews / NegativeNews
    impact: float
    created_at: datetime = field(default_factory=datetime.utcnow)


class SentimentSimulator:
    """Owns the active events and their decay cycle."""

    def __init__(
        self,
        config: Optional[SentimentConfig] = None,
        rng: Optional[random.Random] = None,
    ):
        self._config = config or SentimentConfig()
        self._rng = rng or random.Random()
        self._events: list[SentimentEvent] = []

    @property
    def events(self) -> list[SentimentEvent]:
        return list(self._events)

    def update(self) -> Optional[SentimentEvent]:
        """Decay, prune, then maybe spawn one event. Returns the new event."""
        cfg = self._config
        for event in self._events:
            event.impact *= cfg.decay_rate
        self._events = [e for e in self._events if abs(e.impact) > cfg.prune_threshold]

        if self._rng.random() >= cfg.event_probability:
            return None

        positive = self._rng.random() > 0.5
        event = SentimentEvent(
            polarity="PositiveNews" if positive else "NegativeNews",
            impact=cfg.event_impact if positive else -cfg.event_impact,
        )
        self._events.append(event)
        logger.info("Market event created: %s with impact %.1f", event.polarity, event.impact)
        return event

    def add_event(self, event: SentimentEvent) -> None:
        self._events.append(event)

    @property
    def aggregate(self) -> float:
        """Sum of active impacts, clamped to [-1, 1]."""
        if not self._events:
            return 0.0
        total = sum(e.impact for e in self._events)
        return max(-1.0, min(1.0, total))
