"""
Round history loader.

Loads historical round results from CSV files for replays and
backtesting, and generates synthetic rounds for demos.

Expected columns: a round identifier (``round_id``, ``period`` or
``issueNumber``) and the raw result (``number``).
"""

from __future__ import annotations

import logging
import random
from pathlib import Path
from typing import Optional

import pandas as pd

from consensus.config import NUMBER_MAX, NUMBER_MIN

logger = logging.getLogger(__name__)

ROUND_COLUMNS = ("round_id", "period", "issueNumber")
NUMBER_COLUMN = "number"


def load_outcomes_csv(csv_path: Path) -> list[tuple[str, int]]:
    """Load ``(round_id, number)`` pairs in chronological order.

    Rows without a number are dropped. Rows are sorted by round id so the
    file may be stored newest-first.

    Raises:
        ValueError: the file is empty or lacks the required columns.
    """
    csv_path = Path(csv_path)
    frame = pd.read_csv(csv_path, dtype=str)
    if frame.empty:
        raise ValueError(f"Empty CSV file: {csv_path}")

    round_column = next((c for c in ROUND_COLUMNS if c in frame.columns), None)
    if round_column is None or NUMBER_COLUMN not in frame.columns:
        raise ValueError(
            f"{csv_path} needs a round column ({', '.join(ROUND_COLUMNS)}) "
            f"and a '{NUMBER_COLUMN}' column"
        )

    frame = frame[[round_column, NUMBER_COLUMN]].copy()
    missing = frame[NUMBER_COLUMN].isna() | frame[round_column].isna()
    if missing.any():
        logger.warning("Dropping %d rows without a round or number from %s", int(missing.sum()), csv_path)
        frame = frame[~missing]

    frame[round_column] = frame[round_column].str.strip()
    frame["_order"] = frame[round_column].map(int)
    frame = frame.sort_values("_order")

    outcomes = [
        (round_id, int(float(number)))
        for round_id, number in zip(frame[round_column], frame[NUMBER_COLUMN])
    ]
    logger.info("Loaded %d rounds from %s", len(outcomes), csv_path)
    return outcomes


def synthetic_outcomes(
    count: int,
    seed: Optional[int] = None,
    start_round: int = 20240101000,
) -> list[tuple[str, int]]:
    """Uniformly random rounds with consecutive identifiers."""
    rng = random.Random(seed)
    return [
        (str(start_round + i), rng.randint(NUMBER_MIN, NUMBER_MAX))
        for i in range(count)
    ]
