"""Decision engine — fuses indicators, divergences and volume into a verdict.

Pipeline for one symbol/timeframe:

    1. Data quality gate.  An untrustworthy input short-circuits to a
       forced HOLD carrying the quality warnings as reasons and risks.
    2. Additive scoring (``tradelens.decision.scoring``).
    3. Verdict against the configured thresholds.
    4. BUY/SELL get entry/stop/target levels; HOLD gets ranked wait
       conditions describing what would upgrade it.

Every call is independent: identical inputs always yield an identical
``DecisionResult``.
"""

import asyncio
import logging
from typing import Optional

from tradelens.analysis.data_quality import check_data_quality, volatility_percent
from tradelens.analysis.divergence import detect_all_divergences
from tradelens.analysis.indicators import calculate_volatility, compute_indicators
from tradelens.analysis.models import CandleData, OrderBookSnapshot, Ticker
from tradelens.analysis.volume import analyze_volume
from tradelens.config import Config
from tradelens.decision.levels import calculate_levels
from tradelens.decision.models import (
    DataQuality,
    DecisionInput,
    DecisionResult,
    WaitCondition,
)
from tradelens.decision.scoring import calculate_score

logger = logging.getLogger("tradelens.decision")

_PRIORITY_RANK = {"high": 0, "medium": 1, "low": 2}

POC_WAIT_DISTANCE_PCT = 3.0
WEAK_SCORE = 30.0


# ── Confidence ───────────────────────────────────────────────────────────


def _confidence(score: float, data: DecisionInput, cfg: Config) -> float:
    """``min(|score| / 100, 0.95)`` with volatility and liquidity penalties."""
    confidence = min(abs(score) / 100, 0.95)
    if volatility_percent(data.indicators.volatility, data.price) > 5:
        confidence *= cfg.high_volatility_penalty
    if data.volume_24h < cfg.min_liquidity * 2:
        confidence *= cfg.low_volume_penalty
    return confidence


# ── Wait conditions ──────────────────────────────────────────────────────


def generate_wait_conditions(
    data: DecisionInput,
    score: float,
    config: Optional[Config] = None,
) -> tuple[WaitCondition, ...]:
    """Triggers that would turn a HOLD into an actionable verdict.

    Ranked high → medium → low; equal priorities keep generation order.
    """
    cfg = config or Config()
    ind = data.indicators
    conditions: list[WaitCondition] = []

    if 50 < ind.rsi < 70:
        conditions.append(WaitCondition(
            condition="RSI < 30",
            description="Wait for RSI to reach oversold territory (strong buying opportunity)",
            priority="high",
        ))
    elif ind.rsi > 70:
        conditions.append(WaitCondition(
            condition="RSI < 60",
            description="Wait for RSI to cool off out of the overbought zone",
            priority="medium",
        ))

    if data.volume_analysis is not None and data.price > 0:
        poc = data.volume_analysis.profile.poc
        distance = abs((data.price - poc) / data.price) * 100
        if distance > POC_WAIT_DISTANCE_PCT:
            conditions.append(WaitCondition(
                condition="Price approaching POC",
                description=f"POC level: {poc:.2f} (currently {distance:.1f}% away)",
                priority="medium",
            ))

    if ind.ma50 < ind.ma200 and data.price > ind.ma50:
        conditions.append(WaitCondition(
            condition="MA50 > MA200",
            description="Wait for a golden cross (MA50 crossing above MA200)",
            priority="high",
        ))

    if abs(score) < WEAK_SCORE:
        conditions.append(WaitCondition(
            condition="STRONGER_SIGNAL",
            description=(
                f"Need stronger signal: current score {score:.0f} "
                f"(threshold ±{cfg.buy_threshold:.0f}), wait for a clearer trend"
            ),
            priority="low",
        ))

    conditions.sort(key=lambda c: _PRIORITY_RANK[c.priority])
    return tuple(conditions)


# ── Decision ─────────────────────────────────────────────────────────────


def _timestamp(data: DecisionInput) -> str:
    return data.candles[-1].time if data.candles else ""


def _quality_hold(data: DecisionInput, quality: DataQuality) -> DecisionResult:
    logger.warning(
        "%s %s: data quality insufficient (%.2f) — forcing HOLD",
        data.symbol or "?",
        data.timeframe,
        quality.confidence,
    )
    return DecisionResult(
        verdict="HOLD",
        confidence=0.0,
        score=0.0,
        reasons=quality.warnings,
        risks=quality.warnings,
        data_quality=quality,
        timestamp=_timestamp(data),
        timeframe=data.timeframe,
        symbol=data.symbol,
        wait_for=(WaitCondition(
            condition="DATA_QUALITY",
            description=(
                "Data quality insufficient, reliable analysis is not possible: "
                "wait for higher liquidity, a tighter spread or more history"
            ),
            priority="high",
        ),),
    )


def decide(
    data: DecisionInput,
    config: Optional[Config] = None,
    quality: Optional[DataQuality] = None,
) -> DecisionResult:
    """Turn pre-computed analysis into a ``DecisionResult``.

    Args:
        data: Indicators, divergences, volume analysis and market context.
        config: Engine configuration (defaults to ``Config()``).
        quality: A pre-computed gate result; computed from *data* if omitted.
    """
    cfg = config or Config()
    if quality is None:
        quality = check_data_quality(
            data.price,
            data.indicators.volatility,
            data.volume_24h,
            len(data.candles),
            data.orderbook,
            cfg,
        )

    if not quality.is_valid:
        return _quality_hold(data, quality)

    card = calculate_score(data)
    score = card.score
    confidence = _confidence(score, data, cfg)

    if score >= cfg.buy_threshold:
        verdict = "BUY"
    elif score <= cfg.sell_threshold:
        verdict = "SELL"
    else:
        verdict = "HOLD"

    levels = None
    wait_for = None
    if verdict == "HOLD":
        wait_for = generate_wait_conditions(data, score, cfg)
    else:
        levels = calculate_levels(data.price, verdict, list(data.candles), cfg)

    logger.info(
        "%s %s: %s score=%.1f confidence=%.0f%%",
        data.symbol or "?",
        data.timeframe,
        verdict,
        score,
        confidence * 100,
    )

    return DecisionResult(
        verdict=verdict,
        confidence=confidence,
        score=score,
        reasons=tuple(card.reasons),
        risks=tuple(card.risks),
        data_quality=quality,
        timestamp=_timestamp(data),
        timeframe=data.timeframe,
        symbol=data.symbol,
        levels=levels,
        wait_for=wait_for,
    )


def _current_price(candles: list[CandleData], ticker: Ticker) -> float:
    return ticker.last_price if ticker.last_price > 0 else candles[-1].close


def analyze(
    candles: list[CandleData],
    ticker: Ticker,
    orderbook: Optional[OrderBookSnapshot] = None,
    timeframe: str = "1h",
    symbol: str = "",
    config: Optional[Config] = None,
) -> DecisionResult:
    """Run the full pipeline on one candle history.

    Raises:
        ValueError: If *candles* is empty.
    """
    if not candles:
        raise ValueError("Cannot analyze an empty candle list")

    cfg = config or Config()
    indicators = compute_indicators(candles)
    divergences = detect_all_divergences(candles, timeframe)
    volume = analyze_volume(candles)
    logger.debug(
        "%s %s: %d divergences, %d spikes, %d zones",
        symbol or "?", timeframe, len(divergences), len(volume.spikes), len(volume.zones),
    )

    data = DecisionInput(
        price=_current_price(candles, ticker),
        indicators=indicators,
        divergences=tuple(divergences),
        volume_analysis=volume,
        volume_24h=ticker.volume_24h,
        candles=tuple(candles),
        orderbook=orderbook,
        symbol=symbol,
        timeframe=timeframe,
    )
    return decide(data, cfg)


async def analyze_async(
    candles: list[CandleData],
    ticker: Ticker,
    orderbook: Optional[OrderBookSnapshot] = None,
    timeframe: str = "1h",
    symbol: str = "",
    config: Optional[Config] = None,
) -> DecisionResult:
    """Like :func:`analyze`, with the four sub-analyses run concurrently.

    The indicator bundle, divergence scan, volume analysis and quality gate
    each run in a worker thread; only the final composition waits on all
    of them.  The result is identical to :func:`analyze`.
    """
    if not candles:
        raise ValueError("Cannot analyze an empty candle list")

    cfg = config or Config()
    price = _current_price(candles, ticker)
    closes = [c.close for c in candles]

    indicators, divergences, volume, quality = await asyncio.gather(
        asyncio.to_thread(compute_indicators, candles),
        asyncio.to_thread(detect_all_divergences, candles, timeframe),
        asyncio.to_thread(analyze_volume, candles),
        asyncio.to_thread(
            lambda: check_data_quality(
                price,
                calculate_volatility(closes),
                ticker.volume_24h,
                len(candles),
                orderbook,
                cfg,
            )
        ),
    )

    data = DecisionInput(
        price=price,
        indicators=indicators,
        divergences=tuple(divergences),
        volume_analysis=volume,
        volume_24h=ticker.volume_24h,
        candles=tuple(candles),
        orderbook=orderbook,
        symbol=symbol,
        timeframe=timeframe,
    )
    return decide(data, cfg, quality=quality)
