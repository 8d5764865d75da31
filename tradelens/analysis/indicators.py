"""Technical indicators — RSI, SMA/EMA, MACD, volatility, Bollinger, Ichimoku,
Fibonacci, pivots, support/resistance, ATR. Pure functions, no I/O.

Short histories never raise here: each indicator returns its documented
neutral value instead (RSI 50, SMA → last price, volatility 0, ...).
"""

import math
from typing import Optional

from tradelens.analysis.models import (
    BollingerBands,
    CandleData,
    FibonacciLevel,
    IchimokuCloud,
    MACDSnapshot,
    SupportResistance,
    TechnicalIndicators,
)

NEUTRAL_RSI = 50.0

FIBONACCI_RATIOS: tuple[tuple[float, str], ...] = (
    (0.0, "0%"),
    (0.236, "23.6%"),
    (0.382, "38.2%"),
    (0.5, "50%"),
    (0.618, "61.8%"),
    (0.786, "78.6%"),
    (1.0, "100%"),
)


# ── RSI ──────────────────────────────────────────────────────────────────


def _rsi_from_window(window: list[float], period: int) -> float:
    """RSI of a window holding exactly ``period + 1`` prices."""
    gain_sum = 0.0
    loss_sum = 0.0
    for i in range(1, len(window)):
        change = window[i] - window[i - 1]
        if change > 0:
            gain_sum += change
        elif change < 0:
            loss_sum -= change

    avg_gain = gain_sum / period
    avg_loss = loss_sum / period
    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return 100.0 - 100.0 / (1.0 + rs)


def calculate_rsi(prices: list[float], period: int = 14) -> float:
    """Relative Strength Index over the last *period* price changes.

    Uses simple averages of gains and losses (not Wilder smoothing):
        RS  = avg_gain / avg_loss
        RSI = 100 - 100 / (1 + RS)

    Returns 50.0 when fewer than ``period + 1`` prices are available and
    100.0 when the average loss is zero.
    """
    if len(prices) < period + 1:
        return NEUTRAL_RSI
    return _rsi_from_window(list(prices[-(period + 1):]), period)


def calculate_rsi_series(prices: list[float], period: int = 14) -> list[float]:
    """RSI for every index that has a full window behind it.

    Element ``k`` is the RSI of ``prices[k : k + period + 1]``, so the
    series aligns with ``prices[period:]``.  Each window is summed directly
    (O(n × period)) so values are bit-identical to :func:`calculate_rsi`
    applied to the same slice.

    Returns ``[]`` when fewer than ``period + 1`` prices are available.
    """
    if len(prices) < period + 1:
        return []
    return [
        _rsi_from_window(list(prices[i - period : i + 1]), period)
        for i in range(period, len(prices))
    ]


# ── Moving averages ──────────────────────────────────────────────────────


def calculate_sma(prices: list[float], period: int) -> float:
    """Simple moving average of the last *period* prices.

    Falls back to the last price when the history is shorter than
    *period*, and to 0.0 for an empty sequence.
    """
    if not prices:
        return 0.0
    if len(prices) < period:
        return prices[-1]
    window = prices[-period:]
    return sum(window) / period


def calculate_sma_series(prices: list[float], period: int) -> list[float]:
    """Rolling SMA aligned with ``prices[period - 1:]``."""
    return [
        sum(prices[i - period + 1 : i + 1]) / period
        for i in range(period - 1, len(prices))
    ]


def calculate_ema_series(prices: list[float], period: int) -> list[float]:
    """Exponential Moving Average series.

    ``EMA_today = price × k + EMA_yesterday × (1 - k)`` with
    ``k = 2 / (period + 1)``, seeded with the first price (no SMA warm-up),
    so the series has the same length as *prices*.
    """
    if not prices:
        return []

    k = 2.0 / (period + 1)
    ema = prices[0]
    result = [ema]
    for price in prices[1:]:
        ema = price * k + ema * (1 - k)
        result.append(ema)
    return result


def calculate_ema(prices: list[float], period: int) -> float:
    """Latest EMA value (0.0 for an empty sequence)."""
    series = calculate_ema_series(prices, period)
    return series[-1] if series else 0.0


# ── MACD ─────────────────────────────────────────────────────────────────


def calculate_macd(
    prices: list[float], fast: int = 12, slow: int = 26,
) -> MACDSnapshot:
    """MACD line ``EMA(fast) − EMA(slow)``.

    The signal line is approximated as ``macd × 0.8`` rather than a
    9-period EMA of the MACD history, which makes the histogram
    ``0.2 × macd``.  An empty input yields an all-zero snapshot.
    """
    macd = calculate_ema(prices, fast) - calculate_ema(prices, slow)
    signal = macd * 0.8
    return MACDSnapshot(macd=macd, signal=signal, histogram=macd - signal)


def calculate_macd_histogram_series(
    prices: list[float], fast: int = 12, slow: int = 26,
) -> list[float]:
    """Windowed MACD histogram, one value per index from ``slow - 1``.

    Each value is the histogram of :func:`calculate_macd` on the trailing
    window ``prices[max(0, i - slow) : i + 1]`` (EMAs re-seeded per window).
    The series aligns with ``prices[slow - 1:]``.
    """
    return [
        calculate_macd(prices[max(0, i - slow) : i + 1], fast, slow).histogram
        for i in range(slow - 1, len(prices))
    ]


# ── Volatility ───────────────────────────────────────────────────────────


def _population_std(window: list[float]) -> tuple[float, float]:
    """Return ``(mean, population standard deviation)`` of *window*."""
    mean = sum(window) / len(window)
    variance = sum((x - mean) ** 2 for x in window) / len(window)
    return mean, math.sqrt(variance)


def calculate_volatility(prices: list[float], period: int = 20) -> float:
    """Population standard deviation of the last *period* prices.

    Returns 0.0 when fewer than *period* prices are available.
    """
    if len(prices) < period:
        return 0.0
    _, sigma = _population_std(list(prices[-period:]))
    return sigma


# ── Bollinger Bands ──────────────────────────────────────────────────────


def calculate_bollinger(
    prices: list[float],
    period: int = 20,
    std_dev: float = 2.0,
) -> tuple[list[float], list[float], list[float]]:
    """Calculate Bollinger Bands.

    Middle = SMA(price, *period*)
    Upper  = middle + *std_dev* × σ
    Lower  = middle − *std_dev* × σ

    Returns ``(upper, middle, lower)`` — each list has the same length
    as *prices*.  Entries before the seed period are ``float('nan')``.
    """
    n = len(prices)
    upper: list[float] = [float("nan")] * n
    middle: list[float] = [float("nan")] * n
    lower: list[float] = [float("nan")] * n

    for i in range(period - 1, n):
        sma, sigma = _population_std(list(prices[i - period + 1 : i + 1]))
        middle[i] = sma
        upper[i] = sma + std_dev * sigma
        lower[i] = sma - std_dev * sigma

    return upper, middle, lower


def bollinger_snapshot(
    prices: list[float],
    period: int = 20,
    std_dev: float = 2.0,
    squeeze_threshold: float = 0.10,
) -> Optional[BollingerBands]:
    """Latest Bollinger values, or ``None`` with fewer than *period* prices.

    ``squeeze`` is set when ``(upper - lower) / middle`` is below
    *squeeze_threshold*.
    """
    if len(prices) < period:
        return None

    upper, middle, lower = calculate_bollinger(prices[-period:], period, std_dev)
    mid = middle[-1]
    bandwidth = (upper[-1] - lower[-1]) / mid if mid != 0 else 0.0
    return BollingerBands(
        upper=upper[-1],
        middle=mid,
        lower=lower[-1],
        squeeze=bandwidth < squeeze_threshold,
    )


# ── Ichimoku ─────────────────────────────────────────────────────────────


def _midpoint(highs: list[float], lows: list[float], period: int) -> float:
    return (max(highs[-period:]) + min(lows[-period:])) / 2


def calculate_ichimoku(
    highs: list[float],
    lows: list[float],
    closes: list[float],
    tenkan_period: int = 9,
    kijun_period: int = 26,
    span_b_period: int = 52,
) -> Optional[IchimokuCloud]:
    """Latest Ichimoku lines from rolling high-low midpoints.

    Tenkan/Kijun/Senkou B are the midpoints of the last 9/26/52 bars and
    Senkou A is the mean of Tenkan and Kijun (no forward displacement).

    Signal rules:
        - **bullish**: close above both spans AND Tenkan > Kijun.
        - **bearish**: close below both spans AND Tenkan < Kijun.
        - **neutral**: everything else.

    Returns ``None`` with fewer than *span_b_period* bars.
    """
    if min(len(highs), len(lows), len(closes)) < span_b_period:
        return None

    tenkan = _midpoint(highs, lows, tenkan_period)
    kijun = _midpoint(highs, lows, kijun_period)
    span_a = (tenkan + kijun) / 2
    span_b = _midpoint(highs, lows, span_b_period)
    price = closes[-1]

    if price > max(span_a, span_b) and tenkan > kijun:
        signal = "bullish"
    elif price < min(span_a, span_b) and tenkan < kijun:
        signal = "bearish"
    else:
        signal = "neutral"

    return IchimokuCloud(
        tenkan_sen=tenkan,
        kijun_sen=kijun,
        senkou_span_a=span_a,
        senkou_span_b=span_b,
        signal=signal,
    )


# ── Fibonacci ────────────────────────────────────────────────────────────


def calculate_fibonacci(high: float, low: float) -> tuple[FibonacciLevel, ...]:
    """Retracement levels measured down from *high*: ``high − range × ratio``."""
    price_range = high - low
    return tuple(
        FibonacciLevel(level=ratio, price=high - price_range * ratio, label=label)
        for ratio, label in FIBONACCI_RATIOS
    )


# ── Pivots / Support & Resistance ────────────────────────────────────────


def find_pivot_highs(values: list[float], window: int = 5) -> list[int]:
    """Indices whose value is strictly greater than every other value within
    *window* bars on each side.  Edges without a full window are skipped."""
    pivots: list[int] = []
    for i in range(window, len(values) - window):
        current = values[i]
        is_pivot = True
        for j in range(i - window, i + window + 1):
            if j != i and values[j] >= current:
                is_pivot = False
                break
        if is_pivot:
            pivots.append(i)
    return pivots


def find_pivot_lows(values: list[float], window: int = 5) -> list[int]:
    """Indices whose value is strictly lower than every other value within
    *window* bars on each side."""
    pivots: list[int] = []
    for i in range(window, len(values) - window):
        current = values[i]
        is_pivot = True
        for j in range(i - window, i + window + 1):
            if j != i and values[j] <= current:
                is_pivot = False
                break
        if is_pivot:
            pivots.append(i)
    return pivots


def _merge_levels(levels: list[float], tolerance_pct: float = 1.0) -> tuple[float, ...]:
    """Drop levels within *tolerance_pct* % of an already kept level.

    Levels are scanned in ascending order; the first of each near-duplicate
    group is kept.
    """
    kept: list[float] = []
    for level in sorted(levels):
        if any(
            existing != 0 and abs(level - existing) / abs(existing) < tolerance_pct / 100
            for existing in kept
        ):
            continue
        kept.append(level)
    return tuple(kept)


def find_support_resistance(
    prices: list[float],
    window: int = 3,
    current_price: Optional[float] = None,
    tolerance_pct: float = 1.0,
) -> SupportResistance:
    """Pivot-based support (pivot lows) and resistance (pivot highs).

    Args:
        prices: Price history, oldest-first.
        window: Half-window size for pivot detection.
        current_price: Reference for ``nearest_*``; defaults to the last price.
        tolerance_pct: Near-duplicate merge tolerance in percent.

    Returns:
        ``SupportResistance`` with ascending levels.  Empty when fewer than
        ``2 × window + 1`` prices are available.
    """
    if len(prices) < 2 * window + 1:
        return SupportResistance()

    supports = _merge_levels(
        [prices[i] for i in find_pivot_lows(prices, window)], tolerance_pct,
    )
    resistances = _merge_levels(
        [prices[i] for i in find_pivot_highs(prices, window)], tolerance_pct,
    )

    ref = prices[-1] if current_price is None else current_price
    below = [s for s in supports if s < ref]
    above = [r for r in resistances if r > ref]

    return SupportResistance(
        supports=supports,
        resistances=resistances,
        nearest_support=max(below) if below else None,
        nearest_resistance=min(above) if above else None,
    )


# ── ATR ──────────────────────────────────────────────────────────────────


def calculate_atr(candles: list[CandleData], period: int = 14) -> Optional[float]:
    """Average True Range over the last *period* true ranges.

    Uses the standard True Range definition:
        TR = max(high - low, |high - prev_close|, |low - prev_close|)

    Returns ``None`` when fewer than *period* candles are available, so
    callers can fall back to percentage-based levels.
    """
    if len(candles) < period or len(candles) < 2:
        return None

    true_ranges: list[float] = []
    for i in range(1, len(candles)):
        high = candles[i].high
        low = candles[i].low
        prev_close = candles[i - 1].close
        tr = max(
            high - low,
            abs(high - prev_close),
            abs(low - prev_close),
        )
        true_ranges.append(tr)

    # Use the last *period* true ranges
    recent = true_ranges[-period:]
    return sum(recent) / len(recent)


# ── Bundle ───────────────────────────────────────────────────────────────


def compute_indicators(
    candles: list[CandleData],
    fib_lookback: int = 50,
    sr_lookback: int = 100,
    sr_window: int = 3,
) -> TechnicalIndicators:
    """Compute the full indicator bundle from a candle history.

    Raises ``ValueError`` for an empty candle list; every shorter-than-ideal
    history degrades to the neutral values documented per indicator.
    """
    if not candles:
        raise ValueError("Cannot compute indicators from an empty candle list")

    closes = [c.close for c in candles]
    highs = [c.high for c in candles]
    lows = [c.low for c in candles]

    recent = candles[-fib_lookback:]
    fibonacci = calculate_fibonacci(
        max(c.high for c in recent), min(c.low for c in recent),
    )

    return TechnicalIndicators(
        rsi=calculate_rsi(closes),
        ma50=calculate_sma(closes, 50),
        ma200=calculate_sma(closes, 200),
        ema12=calculate_ema(closes, 12),
        ema26=calculate_ema(closes, 26),
        macd=calculate_macd(closes).macd,
        volatility=calculate_volatility(closes),
        bollinger_bands=bollinger_snapshot(closes),
        ichimoku=calculate_ichimoku(highs, lows, closes),
        fibonacci=fibonacci,
        support_resistance=find_support_resistance(
            closes[-sr_lookback:], window=sr_window, current_price=closes[-1],
        ),
    )
