"""Tests for the console report and the command-line entry point."""

import json
import math

import pytest

from tradelens.analysis.models import CandleData
from tradelens.cli.report import print_decision
from tradelens.data.loader import save_candles
from tradelens.decision.models import (
    DataQuality,
    DecisionResult,
    EntryExitLevels,
    QualityMetrics,
    WaitCondition,
)
from tradelens.main import _run_cli

_QUALITY = DataQuality(
    is_valid=True,
    confidence=0.95,
    warnings=(),
    metrics=QualityMetrics(1.0, 1.0, 1.0, 0.8),
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    monkeypatch.delenv("TRADELENS_LOG_LEVEL", raising=False)
    monkeypatch.delenv("TRADELENS_EXPECTED_CANDLES", raising=False)


def _result(**overrides) -> DecisionResult:
    params = dict(
        verdict="BUY",
        confidence=0.82,
        score=84.5,
        reasons=("Golden alignment: price above MA50 and MA200 (strong uptrend)",),
        risks=("High volatility (6.2%), size positions carefully",),
        data_quality=_QUALITY,
        timestamp="2025-01-09T07:00:00Z",
        timeframe="1h",
        symbol="BTCUSDT",
        levels=EntryExitLevels(
            entry_price=99.8, stop_loss=97.0, targets=(103.0, 106.0, 110.5), risk_reward_ratio=2.0,
        ),
    )
    params.update(overrides)
    return DecisionResult(**params)


class TestPrintDecision:
    def test_buy_report(self, capsys):
        output = print_decision(_result())
        captured = capsys.readouterr().out
        assert output in captured
        assert "TradeLens Decision" in output
        assert "Verdict:         BUY" in output
        assert "Score:           +84.5" in output
        assert "Confidence:      82%" in output
        assert "Stop Loss:       97.0000" in output
        assert "103.0000 / 106.0000 / 110.5000" in output
        assert "• Golden alignment" in output
        assert "! High volatility" in output

    def test_hold_report_lists_wait_conditions(self):
        output = print_decision(_result(
            verdict="HOLD",
            score=12.0,
            confidence=0.12,
            levels=None,
            risks=(),
            wait_for=(WaitCondition("STRONGER_SIGNAL", "Need stronger signal", "low"),),
        ))
        assert "Entry:" not in output
        assert "Risks:" not in output
        assert "[low] STRONGER_SIGNAL: Need stronger signal" in output

    def test_missing_symbol(self):
        output = print_decision(_result(symbol="", timestamp=""))
        assert "Symbol:          N/A" in output
        assert "As of:           N/A" in output


class TestRunCli:
    @pytest.fixture
    def candle_file(self, tmp_path):
        candles = [
            CandleData(
                time=f"2025-01-{1 + i // 24:02d}T{i % 24:02d}:00:00Z",
                open=100 + 4 * math.sin(i / 5),
                high=101 + 4 * math.sin(i / 5),
                low=99 + 4 * math.sin(i / 5),
                close=100 + 4 * math.sin(i / 5),
                volume=1000.0,
            )
            for i in range(200)
        ]
        path = tmp_path / "candles.parquet"
        save_candles(candles, path)
        return str(path)

    def test_analyze_prints_report(self, candle_file, capsys):
        code = _run_cli([
            "analyze", "--candles", candle_file, "--volume-24h", "5000000", "--symbol", "BTCUSDT",
        ])
        assert code == 0
        out = capsys.readouterr().out
        assert "TradeLens Decision" in out
        assert "BTCUSDT" in out

    def test_analyze_json(self, candle_file, capsys):
        code = _run_cli([
            "analyze", "--candles", candle_file, "--volume-24h", "50000",
            "--spread-percent", "1.2", "--json",
        ])
        assert code == 0
        data = json.loads(capsys.readouterr().out)
        assert data["verdict"] == "HOLD"
        assert data["data_quality"]["is_valid"] is False

    def test_requires_command(self):
        with pytest.raises(SystemExit):
            _run_cli([])
