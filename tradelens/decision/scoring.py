"""Additive decision scoring — pure functions, no I/O.

Each factor contributes a signed amount; the sum is clamped to
``[-100, 100]``.  Positive is bullish, negative bearish.

    =====================  ==========
    Factor                 Max weight
    =====================  ==========
    RSI extremes           ±25
    MA trend alignment     ±30
    MACD momentum          ±15
    EMA12/EMA26 distance   ±15
    Strongest divergence   ±30
    Volume recommendation  ±25
    Price near POC         +10
    Buy/sell pressure      ±10
    =====================  ==========
"""

from dataclasses import dataclass, field

from tradelens.analysis.data_quality import volatility_percent
from tradelens.decision.models import DecisionInput

MAX_RSI_CONTRIBUTION = 25.0
POC_PROXIMITY_PCT = 2.0
EMA_SEPARATION_PCT = 0.5
HIGH_VOLATILITY_PCT = 5.0


@dataclass
class ScoreCard:
    """Running score with its explanation."""

    score: float = 0.0
    reasons: list[str] = field(default_factory=list)
    risks: list[str] = field(default_factory=list)


def _score_rsi(card: ScoreCard, rsi: float) -> None:
    if rsi < 30:
        card.score += min(30 - rsi, MAX_RSI_CONTRIBUTION)
        card.reasons.append(f"RSI oversold ({rsi:.1f}), strong buying opportunity")
    elif rsi > 70:
        card.score -= min(rsi - 70, MAX_RSI_CONTRIBUTION)
        card.reasons.append(f"RSI overbought ({rsi:.1f}), correction risk")
        card.risks.append("Short-term profit taking expected")
    elif 50 <= rsi <= 60:
        card.score += 10
        card.reasons.append(f"RSI in healthy zone ({rsi:.1f}), positive momentum")


def _score_trend(card: ScoreCard, price: float, ma50: float, ma200: float) -> None:
    above_ma50 = price > ma50
    ma50_above_ma200 = ma50 > ma200

    if above_ma50 and ma50_above_ma200:
        card.score += 30
        card.reasons.append("Golden alignment: price above MA50 and MA200 (strong uptrend)")
    elif not above_ma50 and not ma50_above_ma200:
        card.score -= 30
        card.reasons.append("Death alignment: price below MA50 and MA200 (strong downtrend)")
        card.risks.append("Downtrend may continue")
    elif above_ma50:
        card.score += 10
        card.reasons.append("Price above MA50 but MA50 below MA200 (mixed trend)")
        card.risks.append("Long-term trend not yet formed")


def _score_momentum(card: ScoreCard, macd: float, rsi: float) -> None:
    if macd > 0 and rsi < 70:
        card.score += 15
        card.reasons.append("MACD shows positive momentum")
    elif macd < 0 and rsi > 30:
        card.score -= 15
        card.reasons.append("MACD shows negative momentum")


def _score_ema(card: ScoreCard, ema12: float, ema26: float) -> None:
    if ema12 > ema26:
        distance = (ema12 - ema26) / ema26 * 100 if ema26 != 0 else 0.0
        if distance > EMA_SEPARATION_PCT:
            card.score += 15
            card.reasons.append(f"EMA12 > EMA26 ({distance:.2f}% apart), strong upswing")
        else:
            card.score += 5
            card.reasons.append("EMA12 just crossed above EMA26")
    elif ema12 < ema26:
        distance = (ema26 - ema12) / ema12 * 100 if ema12 != 0 else 0.0
        if distance > EMA_SEPARATION_PCT:
            card.score -= 15
            card.reasons.append(f"EMA12 < EMA26 ({distance:.2f}% apart), selling pressure")
        else:
            card.score -= 5
            card.reasons.append("EMA12 just crossed below EMA26")


def _score_divergence(card: ScoreCard, data: DecisionInput) -> None:
    if not data.divergences:
        return
    strongest = data.divergences[0]
    weight = (strongest.strength / 100) * (strongest.confidence / 100) * 30
    label = (
        f"{strongest.type} {strongest.indicator_kind} divergence detected "
        f"(strength: {strongest.strength:.0f}, confidence: {strongest.confidence:.0f}%)"
    )
    if strongest.is_bullish:
        card.score += weight
        card.reasons.append(label)
    else:
        card.score -= weight
        card.reasons.append(label)
        card.risks.append("Divergence signals a trend reversal")


def _score_volume(card: ScoreCard, data: DecisionInput) -> None:
    analysis = data.volume_analysis
    if analysis is None:
        return

    rec = analysis.recommendation
    weight = (rec.confidence / 100) * 25
    if rec.signal == "BUY":
        card.score += weight
        card.reasons.append(f"Volume analysis signals BUY (confidence: {rec.confidence:.0f}%)")
        card.reasons.extend(f"  - {r}" for r in rec.reasons[:2])
    elif rec.signal == "SELL":
        card.score -= weight
        card.reasons.append(f"Volume analysis signals SELL (confidence: {rec.confidence:.0f}%)")
        card.risks.append("Volume distribution is unfavourable")

    poc = analysis.profile.poc
    if data.price > 0 and abs((data.price - poc) / data.price * 100) < POC_PROXIMITY_PCT:
        card.score += 10
        card.reasons.append(f"Price in high-volume area (POC: {poc:.2f})")

    pressure = analysis.pressure
    if pressure.signal == "BUY":
        card.score += (pressure.confidence / 100) * 10
        card.reasons.append(f"Buying pressure dominant (MFI: {pressure.mfi:.0f})")
    elif pressure.signal == "SELL":
        card.score -= (pressure.confidence / 100) * 10
        card.risks.append(f"Selling pressure high (MFI: {pressure.mfi:.0f})")


def calculate_score(data: DecisionInput) -> ScoreCard:
    """Score *data* and collect the reasons and risks behind it."""
    ind = data.indicators
    card = ScoreCard()

    _score_rsi(card, ind.rsi)
    _score_trend(card, data.price, ind.ma50, ind.ma200)
    _score_momentum(card, ind.macd, ind.rsi)
    _score_ema(card, ind.ema12, ind.ema26)
    _score_divergence(card, data)
    _score_volume(card, data)

    vol_pct = volatility_percent(ind.volatility, data.price)
    if vol_pct > HIGH_VOLATILITY_PCT:
        card.risks.append(f"High volatility ({vol_pct:.1f}%), size positions carefully")

    card.score = max(-100.0, min(100.0, card.score))
    return card
