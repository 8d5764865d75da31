"""Data quality gate and input validation helpers.

The gate runs before any scoring.  It rates liquidity, spread, price
stability and candle completeness on ``[0, 1]`` and decides whether a
decision built on these inputs can be trusted at all.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from tradelens.analysis.models import OrderBookSnapshot
from tradelens.config import Config
from tradelens.decision.models import DataQuality, QualityMetrics

EXTREME_VOLATILITY_PCT = 10.0
MIN_PRICE_STABILITY = 0.3

MAX_SOURCE_DEVIATION = 0.005
HIGH_CONFIDENCE_DEVIATION = 0.001


def volatility_percent(volatility: float, price: float) -> float:
    """Volatility as a percentage of *price* (0.0 for a non-positive price)."""
    if price <= 0:
        return 0.0
    return volatility / price * 100


def check_data_quality(
    price: float,
    volatility: float,
    volume_24h: float,
    candle_count: int,
    orderbook: Optional[OrderBookSnapshot] = None,
    config: Optional[Config] = None,
) -> DataQuality:
    """Score input reliability.

    Sub-scores:
        - liquidity: ``volume_24h / min_liquidity`` below the floor, then
          ×0.7 when the order-book spread exceeds ``max_spread_percent``.
        - price stability: ``max(0.3, 1 − (vol% − 10) / 20)`` above 10 %
          volatility.
        - completeness: ``candle_count / expected_candles``, capped at 1.
        - volume reliability: fixed at 1.0 (no historical volume baseline).

    The result is valid when the mean confidence reaches
    ``min_data_quality``, fewer than three warnings were raised and the
    liquidity sub-score is at least ``min_liquidity_score``.
    """
    cfg = config or Config()
    warnings: list[str] = []

    liquidity = 1.0
    if volume_24h < cfg.min_liquidity:
        liquidity = max(volume_24h, 0.0) / cfg.min_liquidity
        warnings.append(
            f"Low liquidity: ${volume_24h / 1000:.0f}k "
            f"(min: ${cfg.min_liquidity / 1000:.0f}k)"
        )

    if orderbook is not None and orderbook.spread_percent > cfg.max_spread_percent:
        liquidity *= 0.7
        warnings.append(
            f"High spread: {orderbook.spread_percent:.3f}% "
            f"(max: {cfg.max_spread_percent}%)"
        )

    stability = 1.0
    vol_pct = volatility_percent(volatility, price)
    if vol_pct > EXTREME_VOLATILITY_PCT:
        stability = max(MIN_PRICE_STABILITY, 1 - (vol_pct - EXTREME_VOLATILITY_PCT) / 20)
        warnings.append(f"Extreme volatility: {vol_pct:.1f}%")

    completeness = min(candle_count / cfg.expected_candles, 1.0)
    if completeness < 1 - cfg.max_missing_candles:
        warnings.append(
            f"Missing data: {candle_count}/{cfg.expected_candles} candles "
            f"({completeness * 100:.0f}%)"
        )

    reliability = 1.0
    confidence = (liquidity + reliability + stability + completeness) / 4

    is_valid = (
        confidence >= cfg.min_data_quality
        and len(warnings) < 3
        and liquidity >= cfg.min_liquidity_score
    )

    return DataQuality(
        is_valid=is_valid,
        confidence=confidence,
        warnings=tuple(warnings),
        metrics=QualityMetrics(
            liquidity_score=liquidity,
            volume_reliability=reliability,
            price_stability=stability,
            data_completeness=completeness,
        ),
    )


# ── Cross-source and sanity checks ───────────────────────────────────────


@dataclass(frozen=True)
class ValidatedPrice:
    value: float
    confidence: float  # 0-100
    validated: bool
    deviation: Optional[float] = None


def _source_confidence(deviation: float) -> float:
    if deviation < HIGH_CONFIDENCE_DEVIATION:
        return 95.0
    if deviation < MAX_SOURCE_DEVIATION:
        return 85.0 - deviation * 10_000
    return 50.0


def validate_price_sources(primary: float, secondary: Optional[float] = None) -> ValidatedPrice:
    """Cross-check a price against a second venue.

    A single source is accepted unvalidated at confidence 70.  Two sources
    validate when they deviate by less than 0.5 %; the mean is then used.

    Raises:
        ValueError: If *primary* is not positive.
    """
    if primary <= 0:
        raise ValueError(f"primary price must be positive, got {primary}")
    if secondary is None:
        return ValidatedPrice(value=primary, confidence=70.0, validated=False)

    deviation = abs(primary - secondary) / primary
    validated = deviation < MAX_SOURCE_DEVIATION
    return ValidatedPrice(
        value=(primary + secondary) / 2 if validated else primary,
        confidence=_source_confidence(deviation),
        validated=validated,
        deviation=deviation,
    )


def indicators_consistent(rsi: float, macd: float, price: float, ma50: float) -> bool:
    """False when indicator readings contradict each other."""
    if rsi > 70 and macd > 0:
        return False
    if rsi < 30 and macd < 0:
        return False
    if price > ma50 and rsi < 25:
        return False
    if price < ma50 and rsi > 75:
        return False
    return True


def volume_ratio_plausible(current: float, average: float) -> bool:
    """True when ``current / average`` is inside ``(0.1, 50)``."""
    if average <= 0:
        return False
    ratio = current / average
    return 0.1 < ratio < 50


def is_data_fresh(
    timestamp: str,
    max_age_minutes: float = 5.0,
    now: Optional[datetime] = None,
) -> bool:
    """True when the ISO-8601 *timestamp* is at most *max_age_minutes* old."""
    ts = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    current = now or datetime.now(timezone.utc)
    return (current - ts).total_seconds() / 60 <= max_age_minutes
