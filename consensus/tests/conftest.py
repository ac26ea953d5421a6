"""Shared test fixtures for consensus predictor tests."""

from __future__ import annotations

import random

import pytest

from consensus.config import EngineConfig, EvolutionConfig, HistoryConfig
from consensus.data.outcome import OutcomeHistory, OutcomeRecord

START_ROUND = 20240101000


@pytest.fixture
def engine_config() -> EngineConfig:
    """Standard test configuration with a small history gate."""
    return EngineConfig(
        history=HistoryConfig(max_length=150, min_history=60),
        evolution=EvolutionConfig(),
        seed=1234,
    )


@pytest.fixture
def make_history():
    """Factory: newest-first numbers to a history with consecutive round ids."""

    def _make(numbers: list[int], max_length: int = 150) -> OutcomeHistory:
        count = len(numbers)
        records = [
            OutcomeRecord(round_id=str(START_ROUND + count - 1 - i), number=n)
            for i, n in enumerate(numbers)
        ]
        return OutcomeHistory(max_length=max_length, records=records)

    return _make


@pytest.fixture
def random_numbers():
    """Factory: seeded uniform 0..9 results."""

    def _numbers(count: int, seed: int = 42) -> list[int]:
        rng = random.Random(seed)
        return [rng.randint(0, 9) for _ in range(count)]

    return _numbers
