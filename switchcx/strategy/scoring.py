"""Per-timeframe quality score — five pass/fail criteria, one point each."""

from typing import Mapping, Optional

from switchcx.config import StrategyConfig
from switchcx.strategy.indicators import (
    average_volume,
    calculate_adx,
    calculate_atr,
    calculate_chandelier_exit,
    calculate_ema,
    closes,
    is_valid,
)
from switchcx.strategy.models import (
    TIMEFRAMES,
    Candle,
    Timeframe,
    TimeframeCriteria,
    TimeframeScore,
)
from switchcx.strategy.trend import detect_trend


def _latest(series: list[float]) -> Optional[float]:
    if not series or not is_valid(series[-1]):
        return None
    return series[-1]


def analyze_timeframe(
    candles: list[Candle],
    timeframe: Timeframe,
    config: Optional[StrategyConfig] = None,
) -> TimeframeScore:
    """Score one timeframe out of 5.

    Criteria:
        1. ADX above threshold (15 on 1h, 18 elsewhere) and defined.
        2. Latest volume > 1.2 × 20-period average volume.
        3. EMA50 and EMA200 both defined.
        4. |EMA50 − EMA200| > 0.1% of the latest close.
        5. Latest ATR defined and positive.

    Fewer than ``config.min_candles`` candles scores 0 with every
    criterion false.
    """
    cfg = config or StrategyConfig()

    if len(candles) < cfg.min_candles:
        return TimeframeScore(
            timeframe=timeframe,
            score=0,
            criteria=TimeframeCriteria(),
            adx_value=0.0,
            trend_direction="ranging",
        )

    values = closes(candles)
    latest_close = values[-1]

    adx = _latest(calculate_adx(candles, cfg.adx_period))
    threshold = cfg.adx_threshold_1h if timeframe == "1h" else cfg.adx_threshold_default
    adx_ok = adx is not None and adx > threshold

    avg_vol = average_volume(candles, cfg.volume_period)
    volume_ok = is_valid(avg_vol) and candles[-1].volume > avg_vol * cfg.volume_multiplier

    ema_fast = _latest(calculate_ema(values, cfg.ema_fast))
    ema_slow = _latest(calculate_ema(values, cfg.ema_slow))
    emas_ok = ema_fast is not None and ema_slow is not None
    clarity_ok = emas_ok and abs(ema_fast - ema_slow) > latest_close * cfg.trend_clarity_pct

    atr = _latest(calculate_atr(candles, cfg.atr_period))
    atr_ok = atr is not None and atr > 0

    criteria = TimeframeCriteria(
        adx=adx_ok,
        volume=volume_ok,
        ema_alignment=emas_ok,
        trend_direction=clarity_ok,
        volatility=atr_ok,
    )

    chandelier = calculate_chandelier_exit(
        candles, cfg.chandelier_period, cfg.chandelier_multiplier,
    )

    return TimeframeScore(
        timeframe=timeframe,
        score=criteria.count(),
        criteria=criteria,
        adx_value=adx if adx is not None else 0.0,
        trend_direction=detect_trend(
            candles, cfg.ema_fast, cfg.ema_slow, cfg.min_candles,
        ),
        chandelier_long=_latest(chandelier.stop_long),
        chandelier_short=_latest(chandelier.stop_short),
    )


def score_timeframes(
    market_data: Mapping[str, list[Candle]],
    config: Optional[StrategyConfig] = None,
) -> dict[Timeframe, TimeframeScore]:
    """Score all four timeframes; a missing timeframe scores as empty."""
    return {
        tf: analyze_timeframe(market_data.get(tf, []), tf, config)
        for tf in TIMEFRAMES
    }
