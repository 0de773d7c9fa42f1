"""Technical indicators — SMA, EMA, ATR, ADX, MACD, RSI, StochRSI, Chandelier Exit.

Pure functions, no I/O.  Every series function returns a list the same
length as its input; positions still inside the warm-up window hold
``float('nan')``.  Short input never raises; it yields an all-NaN series.
A non-positive period is a programming error and raises ``ValueError``.
"""

import math
from dataclasses import dataclass

from switchcx.strategy.models import Candle


NAN = float("nan")


def is_valid(value: float | None) -> bool:
    """Return True if *value* is a defined (non-NaN, non-None) number."""
    return value is not None and not math.isnan(value)


def closes(candles: list[Candle]) -> list[float]:
    return [c.close for c in candles]


def ensure_chronological(candles: list[Candle]) -> None:
    """Raise ``ValueError`` unless timestamps are strictly ascending."""
    for i in range(1, len(candles)):
        if candles[i].timestamp <= candles[i - 1].timestamp:
            raise ValueError(
                f"Candles must be strictly ascending by timestamp: "
                f"index {i} ({candles[i].timestamp}) follows "
                f"{candles[i - 1].timestamp}"
            )


def _check_period(name: str, period: int) -> None:
    if period <= 0:
        raise ValueError(f"{name} period must be positive, got {period}")


def _first_valid(values: list[float]) -> int:
    for i, v in enumerate(values):
        if is_valid(v):
            return i
    return len(values)


# ── Moving averages ──────────────────────────────────────────────────────


def calculate_sma(values: list[float], period: int) -> list[float]:
    """Simple moving average over a trailing window of *period* values.

    A window containing an undefined value yields an undefined output.
    """
    _check_period("SMA", period)
    n = len(values)
    sma: list[float] = [NAN] * n
    for i in range(period - 1, n):
        window = values[i - period + 1 : i + 1]
        sma[i] = sum(window) / period
    return sma


def calculate_ema(values: list[float], period: int) -> list[float]:
    """Calculate an Exponential Moving Average series.

    Uses the standard EMA formula:
        ``EMA_today = value × k + EMA_yesterday × (1 - k)``
    where ``k = 2 / (period + 1)``.

    The first EMA value is seeded with the SMA of the first *period*
    defined values.  Leading undefined values (e.g. the warm-up of another
    indicator) are skipped, so the EMA of an EMA-derived series is still
    well formed.
    """
    _check_period("EMA", period)
    n = len(values)
    ema: list[float] = [NAN] * n

    start = _first_valid(values)
    seed_index = start + period - 1
    if seed_index >= n:
        return ema

    k = 2.0 / (period + 1)
    ema[seed_index] = sum(values[start : seed_index + 1]) / period

    for i in range(seed_index + 1, n):
        ema[i] = values[i] * k + ema[i - 1] * (1 - k)

    return ema


# ── ATR ──────────────────────────────────────────────────────────────────


def true_ranges(candles: list[Candle]) -> list[float]:
    """True range per candle; candle 0 has no previous close and uses high − low."""
    trs: list[float] = []
    for i, candle in enumerate(candles):
        if i == 0:
            trs.append(candle.high - candle.low)
            continue
        prev_close = candles[i - 1].close
        trs.append(
            max(
                candle.high - candle.low,
                abs(candle.high - prev_close),
                abs(candle.low - prev_close),
            )
        )
    return trs


def calculate_atr(candles: list[Candle], period: int = 14) -> list[float]:
    """Calculate the Average True Range series.

    The value at index ``period - 1`` is the simple average of the first
    *period* true ranges; later values use Wilder smoothing:
        ``atr[i] = (atr[i-1] × (period-1) + tr[i]) / period``
    """
    _check_period("ATR", period)
    n = len(candles)
    atr: list[float] = [NAN] * n
    if n < period:
        return atr

    trs = true_ranges(candles)
    atr[period - 1] = sum(trs[:period]) / period
    for i in range(period, n):
        atr[i] = (atr[i - 1] * (period - 1) + trs[i]) / period
    return atr


# ── ADX ──────────────────────────────────────────────────────────────────


def calculate_adx(candles: list[Candle], period: int = 14) -> list[float]:
    """Calculate the Average Directional Index (ADX).

    Algorithm:
        1. +DM / -DM directional movement per bar (only the larger of the
           two counts, and only when positive).
        2. Wilder-smooth +DM, -DM, and TR over *period*.
        3. +DI = 100 × smoothed_+DM / smoothed_TR
        4. -DI = 100 × smoothed_-DM / smoothed_TR
        5. DX = 100 × |+DI − −DI| / (+DI + −DI)
        6. ADX = Wilder-smoothed DX over *period*.

    The first defined value sits at index ``2 × period − 1``.
    """
    _check_period("ADX", period)
    n = len(candles)
    adx_result: list[float] = [NAN] * n
    if n < 2 * period:
        return adx_result

    # Step 1: raw +DM, -DM, TR per bar (index 0 is unused)
    plus_dm_raw: list[float] = [0.0]
    minus_dm_raw: list[float] = [0.0]
    tr_raw = true_ranges(candles)

    for i in range(1, n):
        up_move = candles[i].high - candles[i - 1].high
        down_move = candles[i - 1].low - candles[i].low

        plus_dm_raw.append(up_move if (up_move > down_move and up_move > 0) else 0.0)
        minus_dm_raw.append(down_move if (down_move > up_move and down_move > 0) else 0.0)

    # Step 2: seed the smoothed sums with bars 1..period
    smoothed_plus_dm = sum(plus_dm_raw[1 : period + 1])
    smoothed_minus_dm = sum(minus_dm_raw[1 : period + 1])
    smoothed_tr = sum(tr_raw[1 : period + 1])

    def _compute_dx(s_pdm: float, s_mdm: float, s_tr: float) -> float:
        if s_tr == 0:
            return 0.0
        plus_di = 100.0 * s_pdm / s_tr
        minus_di = 100.0 * s_mdm / s_tr
        di_sum = plus_di + minus_di
        if di_sum == 0:
            return 0.0
        return 100.0 * abs(plus_di - minus_di) / di_sum

    # Steps 3-5: dx_values[0] belongs to candle index *period*
    dx_values: list[float] = [
        _compute_dx(smoothed_plus_dm, smoothed_minus_dm, smoothed_tr)
    ]
    for i in range(period + 1, n):
        smoothed_plus_dm = smoothed_plus_dm - smoothed_plus_dm / period + plus_dm_raw[i]
        smoothed_minus_dm = smoothed_minus_dm - smoothed_minus_dm / period + minus_dm_raw[i]
        smoothed_tr = smoothed_tr - smoothed_tr / period + tr_raw[i]
        dx_values.append(
            _compute_dx(smoothed_plus_dm, smoothed_minus_dm, smoothed_tr)
        )

    # Step 6: ADX seed is the mean of the first *period* DX values
    adx_prev = sum(dx_values[:period]) / period
    adx_result[2 * period - 1] = adx_prev

    for j in range(period, len(dx_values)):
        adx_prev = (adx_prev * (period - 1) + dx_values[j]) / period
        adx_result[period + j] = adx_prev

    return adx_result


# ── MACD ─────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class MACDResult:
    macd: list[float]
    signal: list[float]
    histogram: list[float]


def calculate_macd(
    values: list[float],
    fast: int = 12,
    slow: int = 26,
    signal: int = 9,
) -> MACDResult:
    """MACD line = EMA(fast) − EMA(slow); signal = EMA(signal) of the MACD line."""
    _check_period("MACD signal", signal)
    if fast >= slow:
        raise ValueError(f"MACD fast period ({fast}) must be below slow ({slow})")

    ema_fast = calculate_ema(values, fast)
    ema_slow = calculate_ema(values, slow)
    macd_line = [f - s for f, s in zip(ema_fast, ema_slow)]
    signal_line = calculate_ema(macd_line, signal)
    histogram = [m - s for m, s in zip(macd_line, signal_line)]
    return MACDResult(macd=macd_line, signal=signal_line, histogram=histogram)


# ── RSI / StochRSI ───────────────────────────────────────────────────────


def calculate_rsi(values: list[float], period: int = 14) -> list[float]:
    """Calculate Wilder's Relative Strength Index.

    Algorithm (Wilder-smoothed):
        1. delta = value[i] - value[i-1]
        2. Separate gains (positive) and losses (|negative|).
        3. Seed average gain/loss = SMA of first *period* deltas.
        4. Subsequent: avg = (prev_avg × (period-1) + current) / period
        5. RSI = 100 - 100 / (1 + avg_gain / avg_loss)

    The first defined value sits at index *period*.
    """
    _check_period("RSI", period)
    rsi: list[float] = [NAN] * len(values)
    if len(values) < period + 1:
        return rsi

    deltas = [values[i] - values[i - 1] for i in range(1, len(values))]
    gains = [max(d, 0.0) for d in deltas]
    losses = [abs(min(d, 0.0)) for d in deltas]

    avg_gain = sum(gains[:period]) / period
    avg_loss = sum(losses[:period]) / period

    def _rsi_from_avgs(ag: float, al: float) -> float:
        if al == 0:
            return 100.0
        return 100.0 - 100.0 / (1.0 + ag / al)

    rsi[period] = _rsi_from_avgs(avg_gain, avg_loss)

    for i in range(period, len(deltas)):
        avg_gain = (avg_gain * (period - 1) + gains[i]) / period
        avg_loss = (avg_loss * (period - 1) + losses[i]) / period
        # deltas are offset by one against values
        rsi[i + 1] = _rsi_from_avgs(avg_gain, avg_loss)

    return rsi


@dataclass(frozen=True)
class StochRSIResult:
    k: list[float]
    d: list[float]


def calculate_stoch_rsi(
    values: list[float],
    rsi_period: int = 14,
    stoch_period: int = 14,
    k: int = 3,
    d: int = 3,
) -> StochRSIResult:
    """Stochastic oscillator applied to RSI, scaled to [0, 100].

    ``stoch = (rsi − min) / (max − min) × 100`` over a trailing
    *stoch_period* window of RSI values (0 when the window is flat).
    %K is the *k*-period SMA of that, %D the *d*-period SMA of %K.
    """
    _check_period("StochRSI", stoch_period)
    _check_period("StochRSI %K", k)
    _check_period("StochRSI %D", d)

    rsi = calculate_rsi(values, rsi_period)
    stoch: list[float] = [NAN] * len(values)
    for i in range(stoch_period - 1, len(rsi)):
        window = rsi[i - stoch_period + 1 : i + 1]
        if not all(is_valid(v) for v in window):
            continue
        lowest = min(window)
        highest = max(window)
        if highest == lowest:
            stoch[i] = 0.0
        else:
            stoch[i] = (rsi[i] - lowest) / (highest - lowest) * 100.0

    k_line = calculate_sma(stoch, k)
    d_line = calculate_sma(k_line, d)
    return StochRSIResult(k=k_line, d=d_line)


# ── Chandelier Exit ──────────────────────────────────────────────────────


@dataclass(frozen=True)
class ChandelierResult:
    stop_long: list[float]
    stop_short: list[float]


def calculate_chandelier_exit(
    candles: list[Candle],
    period: int = 22,
    multiplier: float = 3.0,
) -> ChandelierResult:
    """ATR-based trailing stops anchored to the *period*-candle extremes.

    ``stop_long  = highest high − multiplier × ATR(period)``
    ``stop_short = lowest low  + multiplier × ATR(period)``
    """
    _check_period("Chandelier", period)
    n = len(candles)
    stop_long: list[float] = [NAN] * n
    stop_short: list[float] = [NAN] * n

    atr = calculate_atr(candles, period)
    for i in range(period - 1, n):
        if not is_valid(atr[i]):
            continue
        window = candles[i - period + 1 : i + 1]
        highest = max(c.high for c in window)
        lowest = min(c.low for c in window)
        stop_long[i] = highest - multiplier * atr[i]
        stop_short[i] = lowest + multiplier * atr[i]

    return ChandelierResult(stop_long=stop_long, stop_short=stop_short)


# ── Volume ───────────────────────────────────────────────────────────────


def average_volume(candles: list[Candle], period: int = 20) -> float:
    """Mean volume of the last *period* candles (including the latest).

    Returns ``float('nan')`` when fewer than *period* candles exist.
    """
    _check_period("volume", period)
    if len(candles) < period:
        return NAN
    return sum(c.volume for c in candles[-period:]) / period
