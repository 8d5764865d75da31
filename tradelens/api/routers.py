"""HTTP routers — /analyze, /divergences, /volume, /multi-timeframe endpoints.

No analysis logic here.  Handlers parse the JSON payload into engine types,
delegate to the pure analysis functions and return the result dataclasses
as plain dicts.
"""

import logging
import math
from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, HTTPException

from tradelens.analysis.divergence import detect_all_divergences
from tradelens.analysis.models import CandleData, OrderBookSnapshot, Ticker
from tradelens.analysis.multi_timeframe import analyze_multi_timeframe
from tradelens.analysis.volume import analyze_volume
from tradelens.config import Config
from tradelens.data.loader import candles_from_klines
from tradelens.decision.engine import analyze_async

logger = logging.getLogger("tradelens")
router = APIRouter()

_config: Config = Config()  # Replaced via configure_routers()


def configure_routers(config: Optional[Config] = None) -> None:
    """Inject the engine configuration used by every handler."""
    global _config
    _config = config or Config()


# ── Payload parsing ──────────────────────────────────────────────────────


def _finite(value, name: str) -> float:
    number = float(value)
    if not math.isfinite(number):
        raise ValueError(f"'{name}' must be a finite number, got {value!r}")
    return number


def _parse_candles(raw) -> list[CandleData]:
    """Accept either candle objects or exchange kline arrays.

    Kline rows with non-finite values are dropped by the loader; candle
    objects are rejected outright.
    """
    if not isinstance(raw, list) or not raw:
        raise ValueError("'candles' must be a non-empty list")
    if isinstance(raw[0], (list, tuple)):
        candles = candles_from_klines(raw)
        if not candles:
            raise ValueError("'candles' holds no finite kline rows")
        return candles
    return [
        CandleData(
            time=str(c["time"]),
            open=_finite(c["open"], "open"),
            high=_finite(c["high"], "high"),
            low=_finite(c["low"], "low"),
            close=_finite(c["close"], "close"),
            volume=_finite(c["volume"], "volume"),
        )
        for c in raw
    ]


def _parse_ticker(raw: dict, candles: list[CandleData]) -> Ticker:
    last = _finite(raw.get("last_price", candles[-1].close), "last_price")
    return Ticker(
        last_price=last,
        high_24h=_finite(raw.get("high_24h", last), "high_24h"),
        low_24h=_finite(raw.get("low_24h", last), "low_24h"),
        volume_24h=_finite(raw["volume_24h"], "volume_24h"),
    )


def _parse_orderbook(raw: Optional[dict]) -> Optional[OrderBookSnapshot]:
    if raw is None:
        return None
    return OrderBookSnapshot(
        spread=float(raw.get("spread", 0.0)),
        spread_percent=_finite(raw["spread_percent"], "spread_percent"),
        bid_depth=float(raw.get("bid_depth", 0.0)),
        ask_depth=float(raw.get("ask_depth", 0.0)),
    )


def _unprocessable(exc: Exception) -> HTTPException:
    detail = str(exc) if not isinstance(exc, KeyError) else f"missing field {exc}"
    logger.info("Rejected payload: %s", detail)
    return HTTPException(status_code=422, detail=detail)


# ── Endpoints ────────────────────────────────────────────────────────────


@router.post("/analyze")
async def post_analyze(body: dict):
    """Full decision for one candle history.

    Body: ``candles``, ``ticker`` (``volume_24h`` required), optional
    ``orderbook``, ``timeframe`` and ``symbol``.
    """
    try:
        candles = _parse_candles(body.get("candles"))
        ticker = _parse_ticker(body["ticker"], candles)
        orderbook = _parse_orderbook(body.get("orderbook"))
        result = await analyze_async(
            candles,
            ticker,
            orderbook,
            timeframe=str(body.get("timeframe", "1h")),
            symbol=str(body.get("symbol", "")),
            config=_config,
        )
    except (ValueError, KeyError, TypeError) as exc:
        raise _unprocessable(exc) from exc
    return result.to_dict()


@router.post("/divergences")
async def post_divergences(body: dict):
    try:
        candles = _parse_candles(body.get("candles"))
        found = detect_all_divergences(candles, str(body.get("timeframe", "1h")))
    except (ValueError, KeyError, TypeError) as exc:
        raise _unprocessable(exc) from exc
    return {"divergences": [asdict(d) for d in found]}


@router.post("/volume")
async def post_volume(body: dict):
    try:
        candles = _parse_candles(body.get("candles"))
        result = analyze_volume(candles, int(body.get("resolution", 100)))
    except (ValueError, KeyError, TypeError) as exc:
        raise _unprocessable(exc) from exc
    return asdict(result)


@router.post("/multi-timeframe")
async def post_multi_timeframe(body: dict):
    """Body: ``symbol`` and ``timeframes`` mapping label → candle list."""
    try:
        raw = body["timeframes"]
        if not isinstance(raw, dict):
            raise TypeError("'timeframes' must be an object")
        by_tf = {tf: _parse_candles(candles) for tf, candles in raw.items()}
        result = analyze_multi_timeframe(str(body.get("symbol", "")), by_tf)
    except (ValueError, KeyError, TypeError) as exc:
        raise _unprocessable(exc) from exc
    return asdict(result)
