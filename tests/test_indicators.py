"""Deterministic tests for switchcx.strategy.indicators."""

import math

import pytest

from switchcx.strategy.indicators import (
    average_volume,
    calculate_adx,
    calculate_atr,
    calculate_chandelier_exit,
    calculate_ema,
    calculate_macd,
    calculate_rsi,
    calculate_sma,
    calculate_stoch_rsi,
    ensure_chronological,
    is_valid,
    true_ranges,
)
from switchcx.strategy.models import Candle


HOUR_MS = 3_600_000


def _make_candle(i: int, o: float, h: float, l: float, c: float, vol: float = 1000.0) -> Candle:
    return Candle(timestamp=i * HOUR_MS, open=o, high=h, low=l, close=c, volume=vol)


def _flat_candles(n: int, price: float = 2000.0) -> list[Candle]:
    return [_make_candle(i, price, price, price, price) for i in range(n)]


def _zigzag_candles(n: int) -> list[Candle]:
    """Rising series with alternating pullbacks so every bar has range."""
    candles = []
    price = 2000.0
    for i in range(n):
        step = 3.0 if i % 3 else -1.5
        o = price
        c = price + step
        candles.append(_make_candle(i, o, max(o, c) + 1.0, min(o, c) - 1.0, c))
        price = c
    return candles


class TestMovingAverages:
    def test_sma_warmup_is_nan(self):
        sma = calculate_sma([1.0, 2.0, 3.0, 4.0], 3)
        assert math.isnan(sma[0]) and math.isnan(sma[1])
        assert sma[2] == pytest.approx(2.0)
        assert sma[3] == pytest.approx(3.0)

    def test_ema_of_constant_series_is_constant(self):
        ema = calculate_ema([5.0] * 30, 10)
        assert all(math.isnan(v) for v in ema[:9])
        assert all(v == pytest.approx(5.0) for v in ema[9:])

    def test_ema_seed_is_sma(self):
        values = [1.0, 2.0, 3.0, 4.0, 5.0]
        ema = calculate_ema(values, 3)
        assert ema[2] == pytest.approx(2.0)
        k = 2.0 / 4
        assert ema[3] == pytest.approx(4.0 * k + 2.0 * (1 - k))

    def test_ema_skips_leading_nan(self):
        values = [float("nan"), float("nan"), 1.0, 1.0, 1.0]
        ema = calculate_ema(values, 3)
        assert math.isnan(ema[3])
        assert ema[4] == pytest.approx(1.0)

    def test_short_input_is_all_nan(self):
        assert all(math.isnan(v) for v in calculate_ema([1.0, 2.0], 5))
        assert all(math.isnan(v) for v in calculate_sma([1.0, 2.0], 5))

    @pytest.mark.parametrize("period", [0, -3])
    def test_bad_period_raises(self, period):
        with pytest.raises(ValueError):
            calculate_ema([1.0, 2.0, 3.0], period)
        with pytest.raises(ValueError):
            calculate_sma([1.0, 2.0, 3.0], period)


class TestATR:
    def test_first_true_range_is_high_minus_low(self):
        candles = [_make_candle(0, 10, 12, 9, 11), _make_candle(1, 11, 15, 10, 14)]
        trs = true_ranges(candles)
        assert trs[0] == pytest.approx(3.0)
        assert trs[1] == pytest.approx(5.0)

    def test_true_range_uses_previous_close_gap(self):
        candles = [_make_candle(0, 10, 10, 10, 10), _make_candle(1, 20, 21, 19, 20)]
        assert true_ranges(candles)[1] == pytest.approx(11.0)

    def test_flat_candles_give_zero_atr(self):
        atr = calculate_atr(_flat_candles(30), 14)
        assert math.isnan(atr[12])
        assert atr[13] == pytest.approx(0.0)
        assert atr[-1] == pytest.approx(0.0)

    def test_atr_non_negative(self):
        atr = calculate_atr(_zigzag_candles(60), 14)
        assert all(v >= 0 for v in atr if is_valid(v))

    def test_short_input(self):
        assert all(math.isnan(v) for v in calculate_atr(_flat_candles(5), 14))


class TestADX:
    def test_first_value_at_two_periods(self):
        adx = calculate_adx(_zigzag_candles(40), 14)
        assert math.isnan(adx[26])
        assert is_valid(adx[27])

    def test_range_is_zero_to_hundred(self):
        adx = calculate_adx(_zigzag_candles(80), 14)
        valid = [v for v in adx if is_valid(v)]
        assert valid
        assert all(0.0 <= v <= 100.0 for v in valid)

    def test_flat_market_has_zero_adx(self):
        adx = calculate_adx(_flat_candles(40), 14)
        assert adx[-1] == pytest.approx(0.0)

    def test_too_few_candles(self):
        adx = calculate_adx(_zigzag_candles(27), 14)
        assert all(math.isnan(v) for v in adx)


class TestMACD:
    def test_fast_must_be_below_slow(self):
        with pytest.raises(ValueError):
            calculate_macd([1.0] * 50, fast=26, slow=12)

    def test_constant_series_has_zero_macd(self):
        result = calculate_macd([100.0] * 60)
        assert result.macd[-1] == pytest.approx(0.0)
        assert result.histogram[-1] == pytest.approx(0.0)
        assert len(result.signal) == 60


class TestRSI:
    def test_monotonic_rise_is_100(self):
        rsi = calculate_rsi([float(i) for i in range(30)], 14)
        assert math.isnan(rsi[13])
        assert rsi[14] == pytest.approx(100.0)

    def test_values_bounded(self):
        values = [c.close for c in _zigzag_candles(60)]
        rsi = calculate_rsi(values, 14)
        assert all(0.0 <= v <= 100.0 for v in rsi if is_valid(v))

    def test_stoch_rsi_bounded(self):
        values = [c.close for c in _zigzag_candles(80)]
        result = calculate_stoch_rsi(values)
        valid_k = [v for v in result.k if is_valid(v)]
        assert valid_k
        assert all(0.0 <= v <= 100.0 for v in valid_k)
        assert len(result.d) == 80


class TestChandelier:
    def test_stops_bracket_recent_extremes(self):
        candles = _zigzag_candles(60)
        result = calculate_chandelier_exit(candles, 22, 3.0)
        highest = max(c.high for c in candles[-22:])
        lowest = min(c.low for c in candles[-22:])
        assert result.stop_long[-1] < highest
        assert result.stop_short[-1] > lowest

    def test_warmup_nan(self):
        result = calculate_chandelier_exit(_zigzag_candles(30), 22)
        assert math.isnan(result.stop_long[20])
        assert is_valid(result.stop_long[21])

    def test_flat_market_stops_equal_price(self):
        result = calculate_chandelier_exit(_flat_candles(30, 1950.0), 22)
        assert result.stop_long[-1] == pytest.approx(1950.0)
        assert result.stop_short[-1] == pytest.approx(1950.0)


class TestHelpers:
    def test_average_volume(self):
        candles = [_make_candle(i, 1, 1, 1, 1, vol=float(i)) for i in range(25)]
        assert average_volume(candles, 5) == pytest.approx(22.0)
        assert math.isnan(average_volume(candles[:3], 5))

    def test_ensure_chronological_accepts_ascending(self):
        ensure_chronological(_flat_candles(5))

    def test_ensure_chronological_rejects_duplicates(self):
        candles = _flat_candles(3)
        with pytest.raises(ValueError):
            ensure_chronological([candles[0], candles[0]])

    def test_ensure_chronological_rejects_descending(self):
        with pytest.raises(ValueError):
            ensure_chronological(list(reversed(_flat_candles(3))))
