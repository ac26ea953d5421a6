"""
Round outcome data model.

Defines the outcome record that the request layer appends once per resolved
round, the capped newest-first history the core windows over, and the cycle
memory that carries the previous prediction into the next cycle.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Iterator, Optional

from consensus.config import (
    HIGH_FROM,
    NUMBER_MAX,
    NUMBER_MIN,
    Outcome,
    ResolutionStatus,
)

if TYPE_CHECKING:
    from consensus.models.consensus import Decision


def classify_number(number: int) -> Outcome:
    """Map a raw result (0-9) to its outcome class."""
    if number is None:
        raise ValueError("Outcome number is missing")
    value = int(number)
    if value < NUMBER_MIN or value > NUMBER_MAX:
        raise ValueError(f"Outcome number out of range: {number}")
    return Outcome.HIGH if value >= HIGH_FROM else Outcome.LOW


def next_round_id(round_id: str) -> str:
    """Round identifier that follows ``round_id``."""
    return str(int(round_id) + 1)


@dataclass
class OutcomeRecord:
    """A single resolved round."""

    round_id: str
    number: int
    status: ResolutionStatus = ResolutionStatus.PENDING
    created_at: datetime = field(default_factory=datetime.utcnow)

    # Prediction issued for this round, attached when it resolves
    predicted: Optional[Outcome] = None
    features: Optional[dict[str, float]] = None

    outcome: Outcome = field(init=False)

    def __post_init__(self) -> None:
        self.round_id = str(self.round_id).strip()
        if not self.round_id.isdigit():
            raise ValueError(f"Round id must be a decimal integer: {self.round_id!r}")
        self.outcome = classify_number(self.number)
        self.number = int(self.number)

    @property
    def round_number(self) -> int:
        return int(self.round_id)

    @property
    def is_resolved(self) -> bool:
        return self.status.is_resolved


class OutcomeHistory:
    """Newest-first record sequence, capped at ``max_length``.

    Index 0 is always the most recent round. Adding past the cap evicts the
    oldest record.
    """

    def __init__(self, max_length: int = 150, records: Optional[list[OutcomeRecord]] = None):
        self._records: deque[OutcomeRecord] = deque(maxlen=max_length)
        for record in reversed(records or []):
            self.add(record)

    @property
    def max_length(self) -> int:
        return self._records.maxlen or 0

    def add(self, record: OutcomeRecord) -> None:
        self._records.appendleft(record)

    def find(self, round_id: str) -> Optional[OutcomeRecord]:
        target = str(round_id).strip()
        for record in self._records:
            if record.round_id == target:
                return record
        return None

    def numbers(self) -> list[int]:
        return [r.number for r in self._records]

    def statuses(self) -> list[ResolutionStatus]:
        return [r.status for r in self._records]

    def latest(self) -> Optional[OutcomeRecord]:
        return self._records[0] if self._records else None

    def recent(self, count: int) -> list[OutcomeRecord]:
        return list(self._records)[:count]

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[OutcomeRecord]:
        return iter(self._records)

    def __getitem__(self, index: int) -> OutcomeRecord:
        return self._records[index]


@dataclass
class CycleMemory:
    """State handed from one prediction cycle to the next.

    The first four fields are what the request layer reads and writes; the
    rest describe the prediction still waiting for its round to resolve.
    """

    last_actual_outcome: Optional[int] = None
    last_predicted_outcome: Optional[Outcome] = None
    last_confidence_level: Optional[int] = None
    long_term_global_accuracy: Optional[float] = None

    pending_round: Optional[str] = None
    predicted: Optional[Outcome] = None
    confidence: float = 0.0
    confidence_level: int = 0
    features: Optional[dict[str, float]] = None
    status: ResolutionStatus = ResolutionStatus.PENDING
    cooldown: bool = False  # Placeholder prediction that was not acted on
    decision: Optional[Decision] = None

    def awaits(self, round_id: str) -> bool:
        """Whether the pending prediction is for ``round_id`` and unresolved."""
        return (
            self.pending_round is not None
            and self.predicted is not None
            and self.pending_round == str(round_id)
            and self.status == ResolutionStatus.PENDING
        )
