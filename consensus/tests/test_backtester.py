"""Tests for the backtester and the command-line entry point."""

from __future__ import annotations

import sys

from consensus.backtest.backtester import Backtester, BacktestSummary, RoundResult
from consensus.data.history_loader import synthetic_outcomes


class TestBacktester:
    def test_replay_scores_every_prediction(self, engine_config):
        summary = Backtester(engine_config).run(synthetic_outcomes(120, seed=2))

        assert summary.total_rounds == 120
        # Predictions start at the 60th round and resolve one round later
        assert summary.resolved == 60
        assert summary.wins + summary.losses == summary.resolved
        assert 0.0 <= summary.accuracy <= 1.0
        assert sum(summary.health_counts.values()) == 120
        assert summary.health_counts["INSUFFICIENT_HISTORY"] == 59

    def test_deterministic_with_seed(self, engine_config):
        outcomes = synthetic_outcomes(100, seed=6)
        first = Backtester(engine_config, seed=11).run(outcomes)
        second = Backtester(engine_config, seed=11).run(outcomes)
        assert [r.predicted for r in first.rounds] == [r.predicted for r in second.rounds]
        assert first.accuracy == second.accuracy

    def test_duplicate_rounds_skipped(self, engine_config):
        outcomes = synthetic_outcomes(10, seed=2)
        summary = Backtester(engine_config).run(outcomes + outcomes[-1:])
        assert summary.total_rounds == 10

    def test_frame(self, engine_config):
        summary = Backtester(engine_config).run(synthetic_outcomes(70, seed=2))
        frame = summary.to_frame()
        assert len(frame) == 70
        assert {"round_id", "actual", "predicted", "status"} <= set(frame.columns)
        assert "BACKTEST SUMMARY" in summary.summary_str()


class TestBacktestSummary:
    def test_streak_and_confident_accuracy(self):
        summary = BacktestSummary(rounds=[
            RoundResult("1", 7, "HIGH", "HIGH", 0.7, 1, "OK", "Win"),
            RoundResult("2", 2, "LOW", "HIGH", 0.7, 1, "OK", "Loss"),
            RoundResult("3", 1, "LOW", "HIGH", 0.3, 0, "OK", "Loss"),
            RoundResult("4", 0, "LOW", "HIGH", 0.2, 0, "OK", "Loss"),
            RoundResult("5", 9, "HIGH", "HIGH", 0.2, 0, "OK", "Win"),
            RoundResult("6", 3, "LOW"),
        ])
        assert summary.resolved == 5
        assert summary.accuracy == 2 / 5
        assert summary.longest_losing_streak == 3
        assert summary.confident_predictions == 2
        assert summary.confident_accuracy == 0.5

    def test_empty(self):
        summary = BacktestSummary()
        assert summary.accuracy == 0.0
        assert summary.confident_accuracy == 0.0
        assert summary.longest_losing_streak == 0


class TestOrchestratorCli:
    def test_demo(self, monkeypatch, capsys):
        from consensus import orchestrator

        monkeypatch.setattr(
            sys, "argv",
            ["consensus-core", "--demo", "--rounds", "80", "--seed", "3", "--min-history", "60"],
        )
        orchestrator.main()
        assert "BACKTEST SUMMARY" in capsys.readouterr().out

    def test_replay(self, monkeypatch, capsys, tmp_path):
        from consensus import orchestrator

        path = tmp_path / "rounds.csv"
        rows = "\n".join(f"{r},{n}" for r, n in synthetic_outcomes(70, seed=5))
        path.write_text("period,number\n" + rows + "\n")
        monkeypatch.setattr(
            sys, "argv",
            ["consensus-core", "--replay", str(path), "--min-history", "60"],
        )
        orchestrator.main()
        assert "Rounds: 70" in capsys.readouterr().out
