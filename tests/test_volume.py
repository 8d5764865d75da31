"""Tests for tradelens.analysis.volume — profile, spikes, pressure, zones."""

import pytest

from tradelens.analysis.models import CandleData
from tradelens.analysis.volume import (
    analyze_volume,
    calculate_buy_sell_pressure,
    calculate_mfi,
    calculate_obv,
    calculate_volume_profile,
    detect_accumulation_zones,
    detect_volume_spikes,
)


def _make_candle(i: int, close: float, volume: float = 1000.0) -> CandleData:
    return CandleData(
        time=f"2025-01-01T{i // 60:02d}:{i % 60:02d}:00Z",
        open=close,
        high=close + 0.05,
        low=close - 0.05,
        close=close,
        volume=volume,
    )


# ── Volume profile ───────────────────────────────────────────────────────


class TestVolumeProfile:
    def test_empty_input_raises(self):
        with pytest.raises(ValueError, match="empty"):
            calculate_volume_profile([], [])

    def test_mismatched_lengths_raise(self):
        with pytest.raises(ValueError, match="aligned"):
            calculate_volume_profile([1.0, 2.0], [1.0])

    def test_zero_range_collapses_to_single_bin(self):
        profile = calculate_volume_profile([100.0, 100.0, 100.0], [1.0, 2.0, 3.0])
        assert len(profile.levels) == 1
        assert profile.poc == profile.vah == profile.val == 100.0
        assert profile.total_volume == 6.0
        assert profile.levels[0].percentage == pytest.approx(100.0)

    def test_max_price_lands_in_last_bin(self):
        profile = calculate_volume_profile([10.0, 20.0, 30.0], [1.0, 5.0, 1.0], resolution=2)
        assert [(lv.price, lv.volume) for lv in profile.levels] == [(20.0, 6.0), (10.0, 1.0)]
        assert profile.poc == 20.0
        assert profile.levels[0].percentage == pytest.approx(600 / 7)

    def test_value_area_extends_toward_heavier_side(self):
        prices = [0.0, 10.0, 20.0, 30.0, 40.0]
        volumes = [10.0, 20.0, 40.0, 15.0, 15.0]
        profile = calculate_volume_profile(prices, volumes, resolution=4)
        # bins: 0 → 10, 10 → 20, 20 → 40, 30 → 30 (30 and 40 share the top bin)
        assert profile.poc == 20.0
        assert profile.val == 20.0
        assert profile.vah == 30.0

    def test_value_area_prefers_lower_side_on_ties(self):
        prices = [0.0, 10.0, 20.0, 30.0, 40.0]
        volumes = [5.0, 20.0, 50.0, 10.0, 10.0]
        profile = calculate_volume_profile(prices, volumes, resolution=4)
        # bins: 0 → 5, 10 → 20, 20 → 50, 30 → 20; one step reaches 70 %
        assert profile.poc == 20.0
        assert profile.val == 10.0
        assert profile.vah == 20.0

    def test_levels_sum_to_total_and_bracket_poc(self):
        prices = [100 + (i % 17) * 0.7 for i in range(150)]
        volumes = [100.0 + (i * 37) % 90 for i in range(150)]
        profile = calculate_volume_profile(prices, volumes)
        assert sum(lv.volume for lv in profile.levels) == pytest.approx(profile.total_volume)
        assert profile.val <= profile.poc <= profile.vah
        assert profile.levels[0].price == profile.poc
        vols = [lv.volume for lv in profile.levels]
        assert vols == sorted(vols, reverse=True)

    def test_zero_volume_has_zero_percentages(self):
        profile = calculate_volume_profile([1.0, 2.0], [0.0, 0.0])
        assert all(lv.percentage == 0.0 for lv in profile.levels)


# ── Spikes ───────────────────────────────────────────────────────────────


class TestVolumeSpikes:
    def test_bullish_spike(self):
        volumes = [100.0] * 20 + [300.0]
        prices = [100.0] * 20 + [102.0]
        spikes = detect_volume_spikes(volumes, prices)
        assert len(spikes) == 1
        spike = spikes[0]
        assert spike.index == 20
        assert spike.type == "BULLISH"
        assert spike.multiplier == pytest.approx(3.0)
        assert spike.strength == pytest.approx(60.0)
        assert spike.price_change == pytest.approx(2.0)

    def test_bearish_and_neutral_classification(self):
        volumes = [100.0] * 20 + [250.0]
        assert detect_volume_spikes(volumes, [100.0] * 20 + [98.0])[0].type == "BEARISH"
        assert detect_volume_spikes(volumes, [100.0] * 20 + [100.5])[0].type == "NEUTRAL"

    def test_exactly_double_is_not_a_spike(self):
        assert detect_volume_spikes([100.0] * 20 + [200.0], [100.0] * 21) == ()

    def test_zero_average_is_skipped(self):
        assert detect_volume_spikes([0.0] * 20 + [5.0], [100.0] * 21) == ()

    def test_only_last_ten_kept(self):
        volumes: list[float] = []
        for _ in range(15):
            volumes += [100.0] * 20 + [300.0]
        prices = [100.0] * len(volumes)
        times = [f"t{i}" for i in range(len(volumes))]
        spikes = detect_volume_spikes(volumes, prices, times)
        assert len(spikes) == 10
        assert spikes[-1].index == len(volumes) - 1
        assert spikes[-1].time == f"t{len(volumes) - 1}"

    def test_strength_capped(self):
        spikes = detect_volume_spikes([100.0] * 20 + [10_000.0], [100.0] * 21)
        assert spikes[0].strength == 100.0


# ── Pressure / MFI ───────────────────────────────────────────────────────


class TestMFI:
    def test_short_history_is_neutral(self):
        assert calculate_mfi([1.0] * 5, [1.0] * 5, [1.0] * 5, [1.0] * 5) == 50.0

    def test_no_negative_flow_saturates(self):
        prices = [float(p) for p in range(1, 21)]
        assert calculate_mfi(prices, [10.0] * 20, prices, prices) == 100.0

    def test_within_bounds(self):
        prices = [100.0 + (-1) ** i * (i % 5) for i in range(40)]
        mfi = calculate_mfi(prices, [50.0] * 40, [p + 1 for p in prices], [p - 1 for p in prices])
        assert 0.0 <= mfi <= 100.0


class TestBuySellPressure:
    def test_rising_market_is_buy(self):
        prices = [float(p) for p in range(100, 120)]
        pressure = calculate_buy_sell_pressure(prices, [10.0] * 20, prices, prices)
        assert pressure.buy_pressure == pytest.approx(100.0)
        assert pressure.sell_pressure == pytest.approx(0.0)
        assert pressure.dominant_side == "BUYERS"
        assert pressure.mfi == 100.0
        assert pressure.signal == "BUY"
        assert pressure.confidence == pytest.approx(100.0)
        assert pressure.cumulative_delta == pytest.approx(190.0)

    def test_falling_market_is_sell(self):
        prices = [float(p) for p in range(120, 100, -1)]
        pressure = calculate_buy_sell_pressure(prices, [10.0] * 20, prices, prices)
        assert pressure.dominant_side == "SELLERS"
        assert pressure.mfi == pytest.approx(0.0)
        assert pressure.signal == "SELL"
        assert pressure.confidence == pytest.approx(100.0)

    def test_unchanged_bars_split_evenly(self):
        prices = [100.0] * 20
        pressure = calculate_buy_sell_pressure(prices, [10.0] * 20, prices, prices)
        assert pressure.buy_pressure == pytest.approx(50.0)
        assert pressure.sell_pressure == pytest.approx(50.0)
        assert pressure.dominant_side == "BALANCED"
        assert pressure.signal == "HOLD"
        assert pressure.confidence == 50.0

    def test_zero_volume_is_balanced(self):
        prices = [float(p) for p in range(10)]
        pressure = calculate_buy_sell_pressure(prices, [0.0] * 10, prices, prices)
        assert pressure.buy_pressure == 50.0
        assert pressure.sell_pressure == 50.0


# ── Accumulation / distribution ──────────────────────────────────────────


class TestAccumulationZones:
    def test_obv(self):
        assert calculate_obv([10.0, 11.0, 10.0, 10.0], [5.0, 3.0, 2.0, 4.0]) == [5.0, 8.0, 6.0, 6.0]

    def test_flat_consolidation_is_distribution(self):
        zones = detect_accumulation_zones([100.0] * 12, [1_000_000.0] * 12)
        assert len(zones) == 2
        zone = zones[0]
        assert zone.type == "DISTRIBUTION"
        assert zone.signal == "SELL"
        assert zone.duration == 5
        assert zone.strength == pytest.approx(10.0)
        assert zone.obv == 1_000_000.0

    def test_rising_consolidation_is_accumulation(self):
        prices = [100.0 + i * 0.1 for i in range(12)]
        zones = detect_accumulation_zones(prices, [1000.0] * 12)
        assert zones
        assert all(z.type == "ACCUMULATION" for z in zones)
        assert zones[0].low == pytest.approx(100.0)
        assert zones[0].high == pytest.approx(100.4)

    def test_zones_do_not_overlap(self):
        zones = detect_accumulation_zones([100.0] * 40, [1000.0] * 40)
        assert len(zones) == 5  # six found, last five kept

    def test_wide_range_has_no_zones(self):
        prices = [100.0, 110.0] * 10
        assert detect_accumulation_zones(prices, [1000.0] * 20) == ()


# ── Full analysis ────────────────────────────────────────────────────────


class TestAnalyzeVolume:
    def test_empty_raises(self):
        with pytest.raises(ValueError, match="empty"):
            analyze_volume([])

    def test_rising_market_recommends_buy(self):
        candles = [_make_candle(i, 100.0 + i * 0.1) for i in range(30)]
        result = analyze_volume(candles)
        # pressure +30, accumulation +15, price above POC −10
        assert result.recommendation.signal == "BUY"
        assert result.recommendation.confidence == pytest.approx(35.0)
        assert result.score == pytest.approx(35.0)
        assert any("accumulation" in r for r in result.recommendation.reasons)

    def test_flat_market_is_mixed_hold(self):
        candles = [_make_candle(i, 100.0) for i in range(30)]
        result = analyze_volume(candles)
        assert result.recommendation.signal == "HOLD"
        assert result.recommendation.reasons[-1].startswith("Mixed")
        assert result.profile.poc == 100.0

    def test_single_candle(self):
        result = analyze_volume([_make_candle(0, 50.0)])
        assert result.profile.poc == 50.0
        assert result.spikes == ()
        assert result.zones == ()
        assert result.pressure.mfi == 50.0
