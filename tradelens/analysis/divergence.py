"""Price/indicator divergence detection — pure functions, no I/O.

Pivot highs and lows are located independently in the price series and in
the indicator series.  Each consecutive pair of price pivots is matched to
the nearest indicator pivot of the same kind (within the pivot window) and
the two swings are compared:

    =================  ============  ===============  ==============
    Type               Price         Indicator        Reading
    =================  ============  ===============  ==============
    bullish            lower low     higher low       reversal up
    bearish            higher high   lower high       reversal down
    hidden-bullish     higher low    lower low        continuation up
    hidden-bearish     lower high    higher high      continuation down
    =================  ============  ===============  ==============
"""

import math
from dataclasses import dataclass
from typing import Literal, Optional

from tradelens.analysis.indicators import (
    calculate_macd_histogram_series,
    calculate_rsi_series,
    find_pivot_highs,
    find_pivot_lows,
)
from tradelens.analysis.models import CandleData

DivergenceType = Literal["bullish", "bearish", "hidden-bullish", "hidden-bearish"]
IndicatorKind = Literal["RSI", "MACD"]

MIN_DIVERGENCE_STRENGTH = 50.0
MIN_SERIES_LENGTH = 20

REGULAR_STRENGTH_BOOST = 1.2
HIDDEN_STRENGTH_SCALE = 0.8
REGULAR_CONFIDENCE_BONUS = 10.0
HIDDEN_CONFIDENCE_BONUS = 5.0


@dataclass(frozen=True)
class DivergencePoint:
    """One end of a divergence swing."""

    index: int
    price: float
    indicator_value: float
    time: Optional[str] = None


@dataclass(frozen=True)
class Divergence:
    """A detected divergence between price and an indicator."""

    type: DivergenceType
    indicator_kind: IndicatorKind
    timeframe: str
    strength: float  # 0-100
    confidence: float  # 0-100
    start_point: DivergencePoint
    end_point: DivergencePoint
    description: str

    @property
    def is_bullish(self) -> bool:
        return self.type in ("bullish", "hidden-bullish")


# ── Strength ─────────────────────────────────────────────────────────────


def _relative_change(a: float, b: float) -> float:
    """``|(b - a) / a|``, defined as 1.0 (full change) when *a* is zero."""
    if a == 0:
        return 0.0 if b == 0 else 1.0
    return abs((b - a) / a)


def _round_half_up(value: float) -> float:
    return float(math.floor(value + 0.5))


def divergence_strength(
    price1: float,
    price2: float,
    ind1: float,
    ind2: float,
    regular: bool,
) -> float:
    """Base strength in ``[0, 100]`` of a price/indicator disagreement.

    ``min(|price_change − indicator_change| × 500, 100)``, boosted ×1.2 for
    regular divergences, rounded and capped at 100.
    """
    ratio = abs(_relative_change(price1, price2) - _relative_change(ind1, ind2))
    strength = min(ratio * 500, 100.0)
    if regular:
        strength *= REGULAR_STRENGTH_BOOST
    return min(_round_half_up(strength), 100.0)


# ── Pivot matching ───────────────────────────────────────────────────────


def _nearest_pivot(target: int, pivots: list[int], max_distance: int) -> Optional[int]:
    best: Optional[int] = None
    for idx in pivots:
        distance = abs(idx - target)
        if distance > max_distance:
            continue
        if best is None or distance < abs(best - target):
            best = idx
    return best


def _matched_swings(
    price_pivots: list[int],
    indicator_pivots: list[int],
    window: int,
) -> list[tuple[int, int, int, int]]:
    """Pair consecutive price pivots with their nearest indicator pivots.

    Returns ``(price_idx1, price_idx2, ind_idx1, ind_idx2)`` tuples; pairs
    where either end has no indicator pivot within *window* bars, or both
    ends resolve to the same indicator pivot, are skipped.
    """
    swings: list[tuple[int, int, int, int]] = []
    for k in range(1, len(price_pivots)):
        p1 = price_pivots[k - 1]
        p2 = price_pivots[k]
        m1 = _nearest_pivot(p1, indicator_pivots, window)
        m2 = _nearest_pivot(p2, indicator_pivots, window)
        if m1 is None or m2 is None or m1 >= m2:
            continue
        swings.append((p1, p2, m1, m2))
    return swings


def _pct(a: float, b: float) -> float:
    return (b - a) / a * 100 if a != 0 else 0.0


# ── Detection ────────────────────────────────────────────────────────────


def detect_divergences(
    prices: list[float],
    indicator: list[float],
    indicator_kind: IndicatorKind,
    timeframe: str = "1h",
    *,
    times: Optional[list[str]] = None,
    window: int = 5,
    index_offset: int = 0,
    min_strength: float = MIN_DIVERGENCE_STRENGTH,
) -> list[Divergence]:
    """Detect all four divergence types for one price/indicator pair.

    Args:
        prices: Price series, oldest-first.
        indicator: Indicator series aligned index-for-index with *prices*.
        indicator_kind: ``"RSI"`` or ``"MACD"``.
        timeframe: Label copied onto every result.
        times: Optional timestamps aligned with *prices*.
        window: Pivot half-window; also the max distance for pivot matching.
        index_offset: Added to reported point indices, so callers passing a
            trailing slice can report positions in the full candle history.
        min_strength: Results weaker than this are discarded.

    Returns:
        Divergences sorted by descending strength.  Fewer than
        ``2 × window + 1`` points yields ``[]``.

    Raises:
        ValueError: If *prices* and *indicator* (or *times*) differ in length.
    """
    if len(prices) != len(indicator):
        raise ValueError(
            f"prices and indicator must be aligned, got {len(prices)} "
            f"and {len(indicator)} points"
        )
    if times is not None and len(times) != len(prices):
        raise ValueError(
            f"times must align with prices, got {len(times)} and {len(prices)}"
        )
    if len(prices) < 2 * window + 1:
        return []

    price_highs = find_pivot_highs(prices, window)
    price_lows = find_pivot_lows(prices, window)
    ind_highs = find_pivot_highs(indicator, window)
    ind_lows = find_pivot_lows(indicator, window)

    def _point(price_idx: int, ind_idx: int) -> DivergencePoint:
        return DivergencePoint(
            index=price_idx + index_offset,
            price=prices[price_idx],
            indicator_value=indicator[ind_idx],
            time=times[price_idx] if times is not None else None,
        )

    found: list[Divergence] = []

    # Lows → regular bullish / hidden bullish
    for p1, p2, m1, m2 in _matched_swings(price_lows, ind_lows, window):
        price1, price2 = prices[p1], prices[p2]
        ind1, ind2 = indicator[m1], indicator[m2]

        if price2 < price1 and ind2 > ind1:
            strength = divergence_strength(price1, price2, ind1, ind2, regular=True)
            found.append(Divergence(
                type="bullish",
                indicator_kind=indicator_kind,
                timeframe=timeframe,
                strength=strength,
                confidence=min(strength + REGULAR_CONFIDENCE_BONUS, 100.0),
                start_point=_point(p1, m1),
                end_point=_point(p2, m2),
                description=(
                    f"Regular bullish divergence: price {_pct(price1, price2):.2f}%, "
                    f"{indicator_kind} {_pct(ind1, ind2):+.2f}%"
                ),
            ))
        elif price2 > price1 and ind2 < ind1:
            base = divergence_strength(price1, price2, ind1, ind2, regular=False)
            found.append(Divergence(
                type="hidden-bullish",
                indicator_kind=indicator_kind,
                timeframe=timeframe,
                strength=base * HIDDEN_STRENGTH_SCALE,
                confidence=min(base * HIDDEN_STRENGTH_SCALE + HIDDEN_CONFIDENCE_BONUS, 100.0),
                start_point=_point(p1, m1),
                end_point=_point(p2, m2),
                description="Hidden bullish divergence: uptrend continuation",
            ))

    # Highs → regular bearish / hidden bearish
    for p1, p2, m1, m2 in _matched_swings(price_highs, ind_highs, window):
        price1, price2 = prices[p1], prices[p2]
        ind1, ind2 = indicator[m1], indicator[m2]

        if price2 > price1 and ind2 < ind1:
            strength = divergence_strength(price1, price2, ind1, ind2, regular=True)
            found.append(Divergence(
                type="bearish",
                indicator_kind=indicator_kind,
                timeframe=timeframe,
                strength=strength,
                confidence=min(strength + REGULAR_CONFIDENCE_BONUS, 100.0),
                start_point=_point(p1, m1),
                end_point=_point(p2, m2),
                description=(
                    f"Regular bearish divergence: price {_pct(price1, price2):+.2f}%, "
                    f"{indicator_kind} {_pct(ind1, ind2):.2f}%"
                ),
            ))
        elif price2 < price1 and ind2 > ind1:
            base = divergence_strength(price1, price2, ind1, ind2, regular=False)
            found.append(Divergence(
                type="hidden-bearish",
                indicator_kind=indicator_kind,
                timeframe=timeframe,
                strength=base * HIDDEN_STRENGTH_SCALE,
                confidence=min(base * HIDDEN_STRENGTH_SCALE + HIDDEN_CONFIDENCE_BONUS, 100.0),
                start_point=_point(p1, m1),
                end_point=_point(p2, m2),
                description="Hidden bearish divergence: downtrend continuation",
            ))

    strong = [d for d in found if d.strength >= min_strength]
    strong.sort(key=lambda d: d.strength, reverse=True)
    return strong


def detect_all_divergences(
    candles: list[CandleData],
    timeframe: str = "1h",
    *,
    window: int = 5,
    rsi_period: int = 14,
) -> list[Divergence]:
    """Scan closes against RSI and MACD-histogram series.

    Each indicator series is paired with the trailing closes it aligns
    with; a series shorter than 20 points is skipped.  The merged result
    is sorted by descending strength.
    """
    closes = [c.close for c in candles]
    times = [c.time for c in candles]
    found: list[Divergence] = []

    series_by_kind: list[tuple[IndicatorKind, list[float]]] = [
        ("RSI", calculate_rsi_series(closes, rsi_period)),
        ("MACD", calculate_macd_histogram_series(closes)),
    ]
    for kind, series in series_by_kind:
        if len(series) < MIN_SERIES_LENGTH:
            continue
        offset = len(closes) - len(series)
        found.extend(detect_divergences(
            closes[offset:],
            series,
            kind,
            timeframe,
            times=times[offset:],
            window=window,
            index_offset=offset,
        ))

    found.sort(key=lambda d: d.strength, reverse=True)
    return found
