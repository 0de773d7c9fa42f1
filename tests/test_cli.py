"""Tests for the console dashboard and the command-line entry point."""

import pytest

from switchcx.backtest.engine import BacktestResult, compare_modes
from switchcx.cli.dashboard import print_analysis, print_backtest, print_comparison
from switchcx.main import main
from switchcx.strategy.models import TierResult, TimeframeCriteria, TimeframeScore
from switchcx.strategy.signals import MarketAnalysis


TFS = ("4h", "1h", "15m", "5m")


def _write_1h(directory, n: int = 30) -> None:
    rows = ["time,open,high,low,close,volume"]
    for i in range(n):
        close = 2000.0 + i
        rows.append(f"{i * 3_600_000},{close - 0.5},{close + 1.5},{close - 1.5},{close},1000")
    (directory / "1h.csv").write_text("\n".join(rows) + "\n")


@pytest.fixture(autouse=True)
def _isolated(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)


class TestDashboard:
    def test_print_analysis(self, capsys):
        scores = {
            tf: TimeframeScore(timeframe=tf, score=3, criteria=TimeframeCriteria(), adx_value=float("nan"))
            for tf in TFS
        }
        analysis = MarketAnalysis(
            scores=scores,
            trends=dict.fromkeys(TFS, "bullish"),
            tier=TierResult(tier=3, mode="aggressive"),
        )
        output = print_analysis(analysis, 2345.678)
        assert "$2,345.68" in output
        assert "3 (aggressive)" in output
        assert "ADX=N/A" in output
        assert output in capsys.readouterr().out
        assert "Session:" not in output

    def test_print_analysis_with_session(self):
        scores = {
            tf: TimeframeScore(timeframe=tf, score=4, criteria=TimeframeCriteria(), adx_value=30.0)
            for tf in TFS
        }
        analysis = MarketAnalysis(
            scores=scores,
            trends=dict.fromkeys(TFS, "bearish"),
            tier=TierResult(tier=4, mode="conservative"),
        )
        output = print_analysis(analysis, 2000.0, session="overlap")
        assert "Session:         London/NY Overlap" in output

    def test_print_backtest(self):
        result = BacktestResult(mode="conservative", total_signals=4, wins=3, losses=1, win_rate=75.0)
        output = print_backtest(result)
        assert "4 (3W / 1L)" in output
        assert "75.0%" in output

    def test_print_comparison(self):
        comparison = compare_modes(
            BacktestResult(mode="conservative", win_rate=60.0, avg_r_multiple=1.0),
            BacktestResult(mode="aggressive"),
        )
        assert "conservative" in print_comparison(comparison)


class TestMain:
    def test_backtest_command(self, tmp_path, capsys):
        _write_1h(tmp_path)
        assert main(["backtest", "--data", str(tmp_path), "--mode", "conservative"]) == 0
        assert "Backtest" in capsys.readouterr().out

    def test_compare_command(self, tmp_path):
        _write_1h(tmp_path)
        assert main(["backtest", "--data", str(tmp_path)]) == 0

    def test_scan_command(self, tmp_path, capsys):
        _write_1h(tmp_path)
        assert main(["scan", "--data", str(tmp_path), "--ignore-hours"]) == 0
        out = capsys.readouterr().out
        assert "Tier" in out
        # last bar opens 1970-01-02 05:00 UTC
        assert "Session:         Asian" in out

    def test_scan_without_1h_data(self, tmp_path):
        assert main(["scan", "--data", str(tmp_path)]) == 1

    def test_missing_data_directory(self, tmp_path):
        assert main(["backtest", "--data", str(tmp_path / "missing")]) == 1

    def test_bad_config(self, tmp_path, monkeypatch, capsys):
        monkeypatch.setenv("SWITCHCX_MIN_CANDLES", "lots")
        assert main(["backtest", "--data", str(tmp_path)]) == 2
        assert "SWITCHCX_MIN_CANDLES" in capsys.readouterr().err
