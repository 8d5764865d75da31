"""Multi-timeframe trend classification and confluence.

Each timeframe with enough history is classified independently by a simple
vote over its indicator bundle; the per-timeframe strengths are then
weight-averaged into a confluence score and an overall bias.
"""

from dataclasses import dataclass, field
from typing import Literal, Mapping

from tradelens.analysis.data_quality import volatility_percent
from tradelens.analysis.indicators import compute_indicators
from tradelens.analysis.models import CandleData, TechnicalIndicators

TrendDirection = Literal["bullish", "bearish", "sideways"]
Signal = Literal["BUY", "SELL", "HOLD"]

TIMEFRAME_WEIGHTS: dict[str, float] = {
    "5m": 0.10,
    "15m": 0.15,
    "1h": 0.25,
    "4h": 0.30,
    "1d": 0.20,
}

MIN_CANDLES = 50
BIAS_MARGIN = 10.0
NEAR_LEVEL_PCT = 0.02


@dataclass(frozen=True)
class TimeframeSignal:
    """Indicator-rule signal for a single timeframe."""

    type: Signal
    confidence: float  # 0-100
    reasons: tuple[str, ...] = ()


@dataclass(frozen=True)
class TimeframeAnalysis:
    timeframe: str
    trend: TrendDirection
    strength: float  # 0-100, 50 = neutral
    signal: TimeframeSignal
    indicators: TechnicalIndicators


@dataclass(frozen=True)
class MultiTimeframeResult:
    symbol: str
    timeframes: dict[str, TimeframeAnalysis] = field(default_factory=dict)
    overall: Signal = "HOLD"
    confluence: float = 50.0
    bullish_score: float = 0.0
    bearish_score: float = 0.0


def classify_trend(price: float, ind: TechnicalIndicators) -> TrendDirection:
    """Vote over price/MA50, MA50/MA200, RSI, MACD and Ichimoku.

    A side wins only when it leads the other by more than one vote.
    """
    bullish = 0
    bearish = 0

    for condition in (price > ind.ma50, ind.ma50 > ind.ma200, ind.rsi > 50, ind.macd > 0):
        if condition:
            bullish += 1
        else:
            bearish += 1

    if ind.ichimoku is not None:
        if ind.ichimoku.signal == "bullish":
            bullish += 1
        elif ind.ichimoku.signal == "bearish":
            bearish += 1

    if bullish > bearish + 1:
        return "bullish"
    if bearish > bullish + 1:
        return "bearish"
    return "sideways"


def timeframe_strength(price: float, ind: TechnicalIndicators, trend: TrendDirection) -> float:
    """Directional strength in ``[0, 100]``; above 50 leans bullish."""
    strength = 50.0
    if trend == "bullish":
        strength += 15
    elif trend == "bearish":
        strength -= 15

    strength += (ind.rsi - 50) * 0.3
    strength += 5 if ind.macd > 0 else -5

    if volatility_percent(ind.volatility, price) > 5:
        strength -= 10

    return max(0.0, min(100.0, strength))


def timeframe_signal(price: float, ind: TechnicalIndicators) -> TimeframeSignal:
    """Rule-based signal from RSI, Bollinger, Ichimoku and S/R proximity.

    Later rules override the signal type of earlier ones; every matching
    rule adds to the confidence (base 50, capped at 100).
    """
    signal: Signal = "HOLD"
    confidence = 50.0
    reasons: list[str] = []

    if ind.rsi < 30:
        signal, confidence = "BUY", confidence + 15
        reasons.append("RSI oversold")
    elif ind.rsi > 70:
        signal, confidence = "SELL", confidence + 15
        reasons.append("RSI overbought")

    bb = ind.bollinger_bands
    if bb is not None:
        if price <= bb.lower:
            signal, confidence = "BUY", confidence + 10
            reasons.append("Bollinger lower band bounce")
        elif price >= bb.upper:
            signal, confidence = "SELL", confidence + 10
            reasons.append("Bollinger upper band rejection")
        if bb.squeeze:
            confidence += 5
            reasons.append("Bollinger squeeze setup")

    if ind.ichimoku is not None:
        if ind.ichimoku.signal == "bullish":
            if signal != "SELL":
                signal = "BUY"
            confidence += 10
            reasons.append("Ichimoku bullish")
        elif ind.ichimoku.signal == "bearish":
            if signal != "BUY":
                signal = "SELL"
            confidence += 10
            reasons.append("Ichimoku bearish")

    sr = ind.support_resistance
    if sr is not None and price > 0:
        if sr.nearest_support is not None and abs(price - sr.nearest_support) / price < NEAR_LEVEL_PCT:
            signal, confidence = "BUY", confidence + 10
            reasons.append("Near support level")
        if sr.nearest_resistance is not None and abs(price - sr.nearest_resistance) / price < NEAR_LEVEL_PCT:
            signal, confidence = "SELL", confidence + 10
            reasons.append("Near resistance level")

    return TimeframeSignal(type=signal, confidence=min(confidence, 100.0), reasons=tuple(reasons))


def analyze_multi_timeframe(
    symbol: str,
    candles_by_timeframe: Mapping[str, list[CandleData]],
) -> MultiTimeframeResult:
    """Analyze every supported timeframe that has at least 50 candles.

    Unknown timeframe labels are ignored.  With no usable timeframe the
    result is a neutral HOLD with confluence 50.
    """
    analyses: dict[str, TimeframeAnalysis] = {}
    weighted_strength = 0.0
    bullish_score = 0.0
    bearish_score = 0.0
    total_weight = 0.0

    for timeframe, weight in TIMEFRAME_WEIGHTS.items():
        candles = candles_by_timeframe.get(timeframe)
        if not candles or len(candles) < MIN_CANDLES:
            continue

        price = candles[-1].close
        ind = compute_indicators(candles)
        trend = classify_trend(price, ind)
        strength = timeframe_strength(price, ind, trend)

        analyses[timeframe] = TimeframeAnalysis(
            timeframe=timeframe,
            trend=trend,
            strength=strength,
            signal=timeframe_signal(price, ind),
            indicators=ind,
        )

        total_weight += weight
        weighted_strength += strength * weight
        if trend == "bullish":
            bullish_score += strength * weight
        elif trend == "bearish":
            bearish_score += (100 - strength) * weight

    if total_weight == 0:
        return MultiTimeframeResult(symbol=symbol)

    bullish_score /= total_weight
    bearish_score /= total_weight
    if bullish_score > bearish_score + BIAS_MARGIN:
        overall: Signal = "BUY"
    elif bearish_score > bullish_score + BIAS_MARGIN:
        overall = "SELL"
    else:
        overall = "HOLD"

    return MultiTimeframeResult(
        symbol=symbol,
        timeframes=analyses,
        overall=overall,
        confluence=weighted_strength / total_weight,
        bullish_score=bullish_score,
        bearish_score=bearish_score,
    )
