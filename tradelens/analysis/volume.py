"""Volume analysis — profile, spikes, buy/sell pressure, OBV zones.

All functions are pure and operate on oldest-first sequences.  The
per-bar inputs (prices, volumes, highs, lows) must be aligned; only the
volume profile escalates empty input, every other analysis degrades to a
neutral reading.
"""

from dataclasses import dataclass, field
from typing import Literal, Optional

from tradelens.analysis.models import CandleData

Signal = Literal["BUY", "SELL", "HOLD"]

VALUE_AREA_SHARE = 0.70
SPIKE_MULTIPLIER = 2.0
SPIKE_PRICE_THRESHOLD_PCT = 1.0
MAX_SPIKES = 10
ZONE_RANGE_PCT = 3.0
MAX_ZONES = 5
RECOMMENDATION_THRESHOLD = 30.0


# ── Models ───────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class VolumeProfileLevel:
    price: float
    volume: float
    percentage: float  # share of total volume, 0-100


@dataclass(frozen=True)
class VolumeProfile:
    """Volume-by-price histogram with its Point of Control and value area.

    ``levels`` is sorted by descending volume, so ``levels[0].price == poc``.
    """

    poc: float
    vah: float
    val: float
    levels: tuple[VolumeProfileLevel, ...]
    total_volume: float


@dataclass(frozen=True)
class VolumeSpike:
    index: int
    time: Optional[str]
    volume: float
    avg_volume: float
    multiplier: float
    price_change: float  # percent vs previous bar
    type: Literal["BULLISH", "BEARISH", "NEUTRAL"]
    strength: float


@dataclass(frozen=True)
class BuySellPressure:
    cumulative_delta: float
    buy_pressure: float
    sell_pressure: float
    dominant_side: Literal["BUYERS", "SELLERS", "BALANCED"]
    mfi: float
    signal: Signal
    confidence: float


@dataclass(frozen=True)
class AccumulationZone:
    low: float
    high: float
    volume: float
    duration: int
    type: Literal["ACCUMULATION", "DISTRIBUTION"]
    strength: float
    obv: float
    signal: Signal


@dataclass(frozen=True)
class VolumeRecommendation:
    signal: Signal
    confidence: float
    reasons: tuple[str, ...] = ()


@dataclass(frozen=True)
class VolumeAnalysisResult:
    profile: VolumeProfile
    spikes: tuple[VolumeSpike, ...]
    pressure: BuySellPressure
    zones: tuple[AccumulationZone, ...]
    recommendation: VolumeRecommendation
    score: float = field(default=0.0)


def _require_aligned(**series: list[float]) -> None:
    lengths = {name: len(values) for name, values in series.items()}
    if len(set(lengths.values())) > 1:
        detail = ", ".join(f"{name}={n}" for name, n in lengths.items())
        raise ValueError(f"Volume inputs must be aligned ({detail})")


# ── Volume profile ───────────────────────────────────────────────────────


def calculate_volume_profile(
    prices: list[float],
    volumes: list[float],
    resolution: int = 100,
) -> VolumeProfile:
    """Bucket traded volume into *resolution* equal-width price bins.

    Every non-empty bin is returned, sorted by descending volume (ties by
    ascending price), so ``sum(level.volume) == total_volume``.  A zero
    price range collapses to a single bin at that price.

    The value area starts at the POC bin and repeatedly absorbs the
    neighbouring bin (in price order) holding more volume, preferring the
    lower side on ties, until 70 % of total volume is covered.

    Raises:
        ValueError: If *prices* or *volumes* is empty or they differ in length.
    """
    if not prices or not volumes:
        raise ValueError("Cannot build a volume profile from empty price or volume data")
    _require_aligned(prices=prices, volumes=volumes)
    if resolution < 1:
        raise ValueError(f"resolution must be positive, got {resolution}")

    min_price = min(prices)
    max_price = max(prices)
    bin_size = (max_price - min_price) / resolution

    bins: dict[int, float] = {}
    for price, volume in zip(prices, volumes):
        if bin_size == 0:
            idx = 0
        else:
            idx = min(int((price - min_price) // bin_size), resolution - 1)
        bins[idx] = bins.get(idx, 0.0) + volume

    total_volume = sum(bins.values())
    ordered = sorted(bins.items(), key=lambda kv: (-kv[1], kv[0]))
    levels = tuple(
        VolumeProfileLevel(
            price=min_price + idx * bin_size,
            volume=vol,
            percentage=(vol / total_volume * 100) if total_volume > 0 else 0.0,
        )
        for idx, vol in ordered
    )
    poc = levels[0].price

    by_price = sorted(levels, key=lambda lv: lv.price)
    poc_index = next(i for i, lv in enumerate(by_price) if lv.price == poc)
    lower = upper = poc_index
    covered = by_price[poc_index].volume
    target = total_volume * VALUE_AREA_SHARE
    last = len(by_price) - 1

    while covered < target and (lower > 0 or upper < last):
        lower_vol = by_price[lower - 1].volume if lower > 0 else 0.0
        upper_vol = by_price[upper + 1].volume if upper < last else 0.0
        if lower > 0 and lower_vol >= upper_vol:
            lower -= 1
            covered += lower_vol
        elif upper < last:
            upper += 1
            covered += upper_vol
        else:
            break

    return VolumeProfile(
        poc=poc,
        vah=by_price[upper].price,
        val=by_price[lower].price,
        levels=levels,
        total_volume=total_volume,
    )


# ── Spikes ───────────────────────────────────────────────────────────────


def detect_volume_spikes(
    volumes: list[float],
    prices: list[float],
    times: Optional[list[str]] = None,
    lookback: int = 20,
) -> tuple[VolumeSpike, ...]:
    """Flag bars whose volume exceeds twice the trailing *lookback* average.

    The price change is measured against the previous close: above +1 %
    is BULLISH, below −1 % BEARISH, otherwise NEUTRAL.  Only the most
    recent 10 spikes are kept.
    """
    _require_aligned(volumes=volumes, prices=prices)
    spikes: list[VolumeSpike] = []

    for i in range(lookback, len(volumes)):
        avg_volume = sum(volumes[i - lookback : i]) / lookback
        if avg_volume <= 0:
            continue
        current = volumes[i]
        if current <= avg_volume * SPIKE_MULTIPLIER:
            continue

        prev = prices[i - 1]
        price_change = (prices[i] - prev) / prev * 100 if prev != 0 else 0.0
        if price_change > SPIKE_PRICE_THRESHOLD_PCT:
            kind = "BULLISH"
        elif price_change < -SPIKE_PRICE_THRESHOLD_PCT:
            kind = "BEARISH"
        else:
            kind = "NEUTRAL"

        multiplier = current / avg_volume
        spikes.append(VolumeSpike(
            index=i,
            time=times[i] if times else None,
            volume=current,
            avg_volume=avg_volume,
            multiplier=multiplier,
            price_change=price_change,
            type=kind,
            strength=min(multiplier * 20, 100.0),
        ))

    return tuple(spikes[-MAX_SPIKES:])


# ── Pressure / MFI ───────────────────────────────────────────────────────


def calculate_mfi(
    prices: list[float],
    volumes: list[float],
    highs: list[float],
    lows: list[float],
    period: int = 14,
) -> float:
    """Money Flow Index over the last *period* bars.

    Typical price is ``(high + low + close) / 3``.  A bar whose typical
    price does not rise counts as negative flow.  Returns 50.0 with fewer
    than ``period + 1`` bars and 100.0 when negative flow is zero.
    """
    if len(prices) < period + 1:
        return 50.0

    typical = [(h + l + c) / 3 for h, l, c in zip(highs, lows, prices)]
    positive = 0.0
    negative = 0.0
    for i in range(len(typical) - period, len(typical)):
        flow = typical[i] * volumes[i]
        if typical[i] > typical[i - 1]:
            positive += flow
        else:
            negative += flow

    if negative == 0:
        return 100.0
    ratio = positive / negative
    return 100.0 - 100.0 / (1.0 + ratio)


def calculate_buy_sell_pressure(
    prices: list[float],
    volumes: list[float],
    highs: list[float],
    lows: list[float],
) -> BuySellPressure:
    """Estimate buy/sell volume shares from bar-over-bar price direction.

    Unchanged bars split their volume 50/50; no directional volume at all
    reads as a balanced 50/50 market.
    """
    _require_aligned(prices=prices, volumes=volumes, highs=highs, lows=lows)

    delta = 0.0
    buy_volume = 0.0
    sell_volume = 0.0
    for i in range(1, len(prices)):
        change = prices[i] - prices[i - 1]
        volume = volumes[i]
        if change > 0:
            buy_volume += volume
            delta += volume
        elif change < 0:
            sell_volume += volume
            delta -= volume
        else:
            buy_volume += volume * 0.5
            sell_volume += volume * 0.5

    total = buy_volume + sell_volume
    if total > 0:
        buy_pressure = buy_volume / total * 100
        sell_pressure = sell_volume / total * 100
    else:
        buy_pressure = sell_pressure = 50.0

    if buy_pressure > 55:
        dominant = "BUYERS"
    elif sell_pressure > 55:
        dominant = "SELLERS"
    else:
        dominant = "BALANCED"

    mfi = calculate_mfi(prices, volumes, highs, lows)

    if buy_pressure > 60 and mfi > 50:
        signal: Signal = "BUY"
        confidence = min(buy_pressure + (mfi - 50), 100.0)
    elif sell_pressure > 60 and mfi < 50:
        signal = "SELL"
        confidence = min(sell_pressure + (50 - mfi), 100.0)
    else:
        signal = "HOLD"
        confidence = 50.0

    return BuySellPressure(
        cumulative_delta=delta,
        buy_pressure=buy_pressure,
        sell_pressure=sell_pressure,
        dominant_side=dominant,
        mfi=mfi,
        signal=signal,
        confidence=confidence,
    )


# ── Accumulation / distribution ──────────────────────────────────────────


def calculate_obv(prices: list[float], volumes: list[float]) -> list[float]:
    """On-Balance Volume, seeded with the first bar's volume."""
    if not prices:
        return []
    obv = [volumes[0]]
    for i in range(1, len(prices)):
        if prices[i] > prices[i - 1]:
            obv.append(obv[-1] + volumes[i])
        elif prices[i] < prices[i - 1]:
            obv.append(obv[-1] - volumes[i])
        else:
            obv.append(obv[-1])
    return obv


def detect_accumulation_zones(
    prices: list[float],
    volumes: list[float],
    duration: int = 5,
) -> tuple[AccumulationZone, ...]:
    """Find tight consolidation windows and classify them by OBV direction.

    A window of *duration* bars ending just before bar ``i`` qualifies
    when its price range is under 3 % of its mean price.  Rising OBV over
    the window marks ACCUMULATION, otherwise DISTRIBUTION.  After a match
    the scan skips ahead so zones never overlap; the last 5 are kept.
    """
    _require_aligned(prices=prices, volumes=volumes)
    obv = calculate_obv(prices, volumes)
    zones: list[AccumulationZone] = []

    i = duration
    while i < len(prices):
        window = prices[i - duration : i]
        avg_price = sum(window) / duration
        low, high = min(window), max(window)
        range_pct = (high - low) / avg_price * 100 if avg_price != 0 else float("inf")

        if range_pct < ZONE_RANGE_PCT:
            zone_volume = sum(volumes[i - duration : i])
            avg_volume = zone_volume / duration
            obv_change = obv[i - 1] - obv[i - duration]
            rising = obv_change > 0
            zones.append(AccumulationZone(
                low=low,
                high=high,
                volume=zone_volume,
                duration=duration,
                type="ACCUMULATION" if rising else "DISTRIBUTION",
                strength=min(avg_volume / 1_000_000 * 10, 100.0),
                obv=obv[i],
                signal="BUY" if rising else "SELL",
            ))
            i += duration
        i += 1

    return tuple(zones[-MAX_ZONES:])


# ── Recommendation ───────────────────────────────────────────────────────


def _recommend(
    price: float,
    profile: VolumeProfile,
    spikes: tuple[VolumeSpike, ...],
    pressure: BuySellPressure,
    zones: tuple[AccumulationZone, ...],
) -> tuple[float, VolumeRecommendation]:
    reasons: list[str] = []
    score = 0.0

    if pressure.signal == "BUY":
        score += pressure.confidence * 0.3
        reasons.append(f"Strong buying pressure ({pressure.buy_pressure:.1f}%)")
    elif pressure.signal == "SELL":
        score -= pressure.confidence * 0.3
        reasons.append(f"Strong selling pressure ({pressure.sell_pressure:.1f}%)")

    bullish = sum(1 for s in spikes if s.type == "BULLISH")
    bearish = sum(1 for s in spikes if s.type == "BEARISH")
    if bullish > bearish:
        score += 20
        reasons.append(f"{bullish} bullish volume spike(s)")
    elif bearish > bullish:
        score -= 20
        reasons.append(f"{bearish} bearish volume spike(s)")

    accumulation = sum(1 for z in zones if z.type == "ACCUMULATION")
    distribution = len(zones) - accumulation
    if accumulation > distribution:
        score += 15
        reasons.append(f"{accumulation} accumulation zone(s) detected")
    elif distribution > accumulation:
        score -= 15
        reasons.append(f"{distribution} distribution zone(s) detected")

    if price < profile.poc:
        score += 10
        reasons.append("Price below POC (potential support)")
    elif price > profile.poc:
        score -= 10
        reasons.append("Price above POC (potential resistance)")

    if score > RECOMMENDATION_THRESHOLD:
        signal: Signal = "BUY"
    elif score < -RECOMMENDATION_THRESHOLD:
        signal = "SELL"
    else:
        signal = "HOLD"
        reasons.append("Mixed volume signals, waiting is advised")

    return score, VolumeRecommendation(
        signal=signal,
        confidence=min(abs(score), 100.0),
        reasons=tuple(reasons),
    )


def analyze_volume(candles: list[CandleData], resolution: int = 100) -> VolumeAnalysisResult:
    """Run every volume analysis over *candles* and fuse them.

    Raises:
        ValueError: If *candles* is empty.
    """
    if not candles:
        raise ValueError("Cannot analyze volume of an empty candle list")

    closes = [c.close for c in candles]
    volumes = [c.volume for c in candles]
    highs = [c.high for c in candles]
    lows = [c.low for c in candles]
    times = [c.time for c in candles]

    profile = calculate_volume_profile(closes, volumes, resolution)
    spikes = detect_volume_spikes(volumes, closes, times)
    pressure = calculate_buy_sell_pressure(closes, volumes, highs, lows)
    zones = detect_accumulation_zones(closes, volumes)
    score, recommendation = _recommend(closes[-1], profile, spikes, pressure, zones)

    return VolumeAnalysisResult(
        profile=profile,
        spikes=spikes,
        pressure=pressure,
        zones=zones,
        recommendation=recommendation,
        score=score,
    )
