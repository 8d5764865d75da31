"""Tests for the HTTP analysis API."""

import json
import math

from fastapi.testclient import TestClient

from tradelens.api.routers import configure_routers
from tradelens.config import Config
from tradelens.main import app

client = TestClient(app)


# ── Helpers ──────────────────────────────────────────────────────────────


def _candles(n: int = 200, step: float = 0.0) -> list[dict]:
    candles = []
    for i in range(n):
        close = 100 + 6 * math.sin(i / 7) + 2 * math.sin(i / 3) + step * i
        candles.append({
            "time": f"2025-01-{1 + i // 24:02d}T{i % 24:02d}:00:00Z",
            "open": close,
            "high": close + 0.8,
            "low": close - 0.8,
            "close": close,
            "volume": 1000 + (i % 7) * 50,
        })
    return candles


def _klines(n: int = 120) -> list[list]:
    start = 1735689600000
    return [
        [start + i * 3_600_000, str(100 + i * 0.1), str(101 + i * 0.1),
         str(99 + i * 0.1), str(100.05 + i * 0.1), "1000", start + (i + 1) * 3_600_000 - 1]
        for i in range(n)
    ]


# ── Tests ────────────────────────────────────────────────────────────────


class TestHealth:
    def test_health(self):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}


class TestAnalyzeEndpoint:
    def setup_method(self):
        configure_routers()

    def test_returns_decision(self):
        resp = client.post("/analyze", json={
            "candles": _candles(),
            "ticker": {"volume_24h": 5_000_000},
            "symbol": "BTCUSDT",
            "timeframe": "4h",
        })
        assert resp.status_code == 200
        data = resp.json()
        assert data["verdict"] in ("BUY", "SELL", "HOLD")
        assert data["symbol"] == "BTCUSDT"
        assert data["timeframe"] == "4h"
        assert -100 <= data["score"] <= 100
        assert 0 <= data["confidence"] <= 0.95
        assert data["data_quality"]["is_valid"] is True
        assert data["timestamp"] == _candles()[-1]["time"]

    def test_accepts_klines(self):
        resp = client.post("/analyze", json={
            "candles": _klines(),
            "ticker": {"volume_24h": 5_000_000},
        })
        assert resp.status_code == 200
        assert resp.json()["timestamp"].startswith("2025-01-")

    def test_thin_market_is_forced_hold(self):
        resp = client.post("/analyze", json={
            "candles": _candles(),
            "ticker": {"volume_24h": 50_000},
            "orderbook": {"spread_percent": 1.2},
        })
        assert resp.status_code == 200
        data = resp.json()
        assert data["verdict"] == "HOLD"
        assert data["data_quality"]["is_valid"] is False
        assert data["wait_for"][0]["condition"] == "DATA_QUALITY"

    def test_configured_thresholds_are_used(self):
        configure_routers(Config(min_liquidity=10_000_000.0))
        resp = client.post("/analyze", json={
            "candles": _candles(),
            "ticker": {"volume_24h": 1_000_000},
        })
        assert resp.json()["data_quality"]["warnings"][0].startswith("Low liquidity")

    def test_empty_candles_rejected(self):
        resp = client.post("/analyze", json={"candles": [], "ticker": {"volume_24h": 1}})
        assert resp.status_code == 422
        assert "non-empty" in resp.json()["detail"]

    def _post_raw(self, payload: dict):
        # json.dumps writes NaN/Infinity literals, which the server's parser accepts
        return client.post(
            "/analyze",
            content=json.dumps(payload),
            headers={"Content-Type": "application/json"},
        )

    def test_nan_candle_rejected(self):
        candles = _candles()
        candles[30]["close"] = float("nan")
        resp = self._post_raw({"candles": candles, "ticker": {"volume_24h": 5_000_000}})
        assert resp.status_code == 422
        assert "'close' must be a finite number" in resp.json()["detail"]

    def test_infinite_volume_rejected(self):
        candles = _candles()
        candles[-1]["volume"] = float("inf")
        resp = self._post_raw({"candles": candles, "ticker": {"volume_24h": 5_000_000}})
        assert resp.status_code == 422
        assert "'volume'" in resp.json()["detail"]

    def test_non_finite_ticker_rejected(self):
        resp = self._post_raw({"candles": _candles(), "ticker": {"volume_24h": float("nan")}})
        assert resp.status_code == 422
        assert "volume_24h" in resp.json()["detail"]

    def test_missing_ticker_rejected(self):
        resp = client.post("/analyze", json={"candles": _candles(10)})
        assert resp.status_code == 422
        assert "ticker" in resp.json()["detail"]


class TestDivergenceEndpoint:
    def test_lists_divergences(self):
        resp = client.post("/divergences", json={"candles": _candles()})
        assert resp.status_code == 200
        divergences = resp.json()["divergences"]
        assert isinstance(divergences, list)
        strengths = [d["strength"] for d in divergences]
        assert strengths == sorted(strengths, reverse=True)

    def test_bad_candle_rejected(self):
        resp = client.post("/divergences", json={"candles": [{"time": "t0"}]})
        assert resp.status_code == 422

    def test_all_non_finite_klines_rejected(self):
        rows = [[row[0], "nan", "nan", "nan", "nan", "1000"] for row in _klines(10)]
        resp = client.post("/divergences", json={"candles": rows})
        assert resp.status_code == 422
        assert "finite" in resp.json()["detail"]


class TestVolumeEndpoint:
    def test_returns_profile(self):
        resp = client.post("/volume", json={"candles": _candles(), "resolution": 50})
        assert resp.status_code == 200
        data = resp.json()
        assert data["profile"]["val"] <= data["profile"]["poc"] <= data["profile"]["vah"]
        assert len(data["profile"]["levels"]) <= 50
        assert data["recommendation"]["signal"] in ("BUY", "SELL", "HOLD")


class TestMultiTimeframeEndpoint:
    def test_uptrend(self):
        resp = client.post("/multi-timeframe", json={
            "symbol": "BTCUSDT",
            "timeframes": {"1h": _candles(250, step=0.5)},
        })
        assert resp.status_code == 200
        data = resp.json()
        assert data["overall"] == "BUY"
        assert data["timeframes"]["1h"]["trend"] == "bullish"

    def test_timeframes_must_be_object(self):
        resp = client.post("/multi-timeframe", json={"timeframes": []})
        assert resp.status_code == 422
