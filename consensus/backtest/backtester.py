"""
Backtesting Framework.

Replays a sequence of ended rounds through a fresh round session
(history → predictor → next-round prediction) and scores every
prediction once its round resolves.
"""

from __future__ import annotations

import logging
import random
from collections import Counter
from dataclasses import asdict, dataclass, field
from typing import Iterable, Optional

import pandas as pd

from consensus.config import EngineConfig, ResolutionStatus
from consensus.data.outcome import classify_number
from consensus.predictor import ConsensusPredictor
from consensus.session.round_session import RoundSession

logger = logging.getLogger(__name__)


@dataclass
class RoundResult:
    """One replayed round and the prediction that was waiting for it."""

    round_id: str
    number: int
    actual: str
    predicted: Optional[str] = None
    confidence: float = 0.0
    confidence_level: int = 0
    health: str = ""
    status: Optional[str] = None


@dataclass
class BacktestSummary:
    """Aggregate results across all replayed rounds."""

    rounds: list[RoundResult] = field(default_factory=list)
    health_counts: Counter = field(default_factory=Counter)

    @property
    def total_rounds(self) -> int:
        return len(self.rounds)

    @property
    def wins(self) -> int:
        return sum(1 for r in self.rounds if r.status == ResolutionStatus.WIN.value)

    @property
    def losses(self) -> int:
        return sum(1 for r in self.rounds if r.status == ResolutionStatus.LOSS.value)

    @property
    def resolved(self) -> int:
        return self.wins + self.losses

    @property
    def accuracy(self) -> float:
        return self.wins / self.resolved if self.resolved > 0 else 0.0

    @property
    def confident_predictions(self) -> int:
        return sum(1 for r in self.rounds if r.status and r.confidence_level == 1)

    @property
    def confident_accuracy(self) -> float:
        confident = [r for r in self.rounds if r.status and r.confidence_level == 1]
        if not confident:
            return 0.0
        return sum(1 for r in confident if r.status == ResolutionStatus.WIN.value) / len(confident)

    @property
    def defensive_cycles(self) -> int:
        return self.health_counts.get("DEFENSIVE_MODE", 0)

    @property
    def longest_losing_streak(self) -> int:
        longest = 0
        current = 0
        for r in self.rounds:
            if r.status == ResolutionStatus.LOSS.value:
                current += 1
                longest = max(longest, current)
            elif r.status == ResolutionStatus.WIN.value:
                current = 0
        return longest

    def to_frame(self) -> pd.DataFrame:
        """Per-round results as a DataFrame."""
        return pd.DataFrame([asdict(r) for r in self.rounds])

    def summary_str(self) -> str:
        """Human-readable summary."""
        health = ", ".join(f"{k}: {v}" for k, v in sorted(self.health_counts.items()))
        return (
            f"=== BACKTEST SUMMARY ===\n"
            f"Rounds: {self.total_rounds}\n"
            f"Resolved predictions: {self.resolved} "
            f"(W {self.wins} / L {self.losses})\n"
            f"Accuracy: {self.accuracy*100:.1f}%\n"
            f"Confident: {self.confident_predictions} "
            f"@ {self.confident_accuracy*100:.1f}%\n"
            f"Longest losing streak: {self.longest_losing_streak}\n"
            f"Defensive cycles: {self.defensive_cycles}\n"
            f"Health: {health or 'n/a'}\n"
        )


class Backtester:
    """Runs historical rounds through the prediction pipeline.

    Usage:
        bt = Backtester(config)
        summary = bt.run(load_outcomes_csv("rounds.csv"))
        print(summary.summary_str())
    """

    def __init__(self, config: Optional[EngineConfig] = None, seed: Optional[int] = None):
        self._config = config or EngineConfig()
        self._seed = seed if seed is not None else self._config.seed

    def run(self, outcomes: Iterable[tuple[str, int]]) -> BacktestSummary:
        """Replay ``(round_id, number)`` pairs in chronological order."""
        predictor = ConsensusPredictor(self._config, rng=random.Random(self._seed))
        session = RoundSession(self._config, predictor=predictor)
        summary = BacktestSummary()

        for round_id, number in outcomes:
            waiting = session.current_prediction
            result = session.submit(round_id, number)
            if result.already_processed:
                continue

            row = RoundResult(
                round_id=str(round_id),
                number=int(number),
                actual=classify_number(number).value,
            )
            if waiting is not None and waiting.round_id == str(round_id).strip():
                row.predicted = waiting.prediction
                row.confidence = waiting.decision.confidence if waiting.decision else 0.0
                row.confidence_level = waiting.confidence_level
                row.health = waiting.health
                if result.resolved_status is not None:
                    row.status = result.resolved_status.value
            summary.rounds.append(row)

            if result.prediction is not None:
                summary.health_counts[result.prediction.health] += 1

        logger.info(
            "Backtest complete: %d rounds, accuracy %.1f%% over %d resolved",
            summary.total_rounds, summary.accuracy * 100, summary.resolved,
        )
        return summary
