"""
Consensus Core Orchestrator.

Main entry point that coordinates the full pipeline:
Round Results → History → Predictor (features → model → advisors → consensus)
→ Next-Round Prediction

Supports two modes:
1. Demo: Synthetic uniform rounds through a live session
2. Replay: Backtest over a CSV of historical rounds

Usage:
    python -m consensus.orchestrator --demo --rounds 300 --seed 7
    python -m consensus.orchestrator --replay data/rounds.csv
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Optional

from consensus.config import EngineConfig

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("consensus.orchestrator")


def run_demo(config: EngineConfig, rounds: int = 300) -> None:
    """Backtest over synthetic uniform rounds and print the summary."""
    from consensus.backtest.backtester import Backtester
    from consensus.data.history_loader import synthetic_outcomes

    logger.info("=" * 60)
    logger.info("CONSENSUS CORE - DEMO MODE")
    logger.info("=" * 60)
    logger.info("Rounds: %d | Seed: %s", rounds, config.seed)
    logger.info("Min history: %d | Max history: %d",
                config.history.min_history, config.history.max_length)
    logger.info("")

    outcomes = synthetic_outcomes(rounds, seed=config.seed)
    summary = Backtester(config).run(outcomes)

    print("\n" + summary.summary_str())


def run_replay(config: EngineConfig, csv_path: str, max_rounds: Optional[int] = None) -> None:
    """Backtest over historical rounds loaded from CSV."""
    from consensus.backtest.backtester import Backtester
    from consensus.data.history_loader import load_outcomes_csv

    logger.info("=" * 60)
    logger.info("CONSENSUS CORE - REPLAY MODE")
    logger.info("=" * 60)
    logger.info("Source: %s", csv_path)
    logger.info("Max rounds: %s", max_rounds or "unlimited")
    logger.info("")

    outcomes = load_outcomes_csv(Path(csv_path))
    if max_rounds:
        outcomes = outcomes[:max_rounds]

    summary = Backtester(config).run(outcomes)
    print("\n" + summary.summary_str())


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Consensus Core HIGH/LOW round predictor",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m consensus.orchestrator --demo
  python -m consensus.orchestrator --demo --rounds 500 --seed 11
  python -m consensus.orchestrator --replay data/rounds.csv
        """,
    )

    mode = parser.add_mutually_exclusive_group(required=True)
    mode.add_argument("--demo", action="store_true", help="Run demo with synthetic rounds")
    mode.add_argument("--replay", type=str, metavar="CSV", help="Replay rounds from a CSV file")

    parser.add_argument("--rounds", type=int, default=300, help="Synthetic rounds for --demo")
    parser.add_argument("--max-rounds", type=int, help="Maximum rounds to replay")
    parser.add_argument("--seed", type=int, help="Random seed for reproducible runs")
    parser.add_argument("--min-history", type=int, help="Override the history gate")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    args = parser.parse_args()

    config = EngineConfig.from_env()
    logging.getLogger().setLevel(config.log_level.upper())
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    if args.seed is not None:
        config = replace(config, seed=args.seed)
    if args.min_history is not None:
        config = replace(config, history=replace(config.history, min_history=args.min_history))

    if args.demo:
        run_demo(config, rounds=args.rounds)
    elif args.replay:
        if not Path(args.replay).exists():
            logger.error("Replay file not found: %s", args.replay)
            sys.exit(1)
        run_replay(config, args.replay, max_rounds=args.max_rounds)


if __name__ == "__main__":
    main()
