"""Trend and volatility classification — EMA crossover, chop range, ATR regime."""

from typing import Optional

from switchcx.config import StrategyConfig
from switchcx.strategy.indicators import (
    calculate_atr,
    calculate_ema,
    closes,
    is_valid,
)
from switchcx.strategy.models import Candle, Direction, VolatilityMetrics


def detect_trend(
    candles: list[Candle],
    fast: int = 50,
    slow: int = 200,
    min_candles: int = 100,
) -> Direction:
    """Classify trend direction from the latest EMA(fast) vs EMA(slow).

    Args:
        candles: Candle history, oldest-first.
        fast: Fast EMA period (default 50; 8 for the aggressive variant).
        slow: Slow EMA period (default 200; 21 for the aggressive variant).
        min_candles: Below this many candles the trend is ``"ranging"``.

    Returns:
        ``"bullish"`` if EMA(fast) > EMA(slow), ``"bearish"`` if below,
        ``"ranging"`` when equal or when either EMA is still undefined.
    """
    if len(candles) < min_candles:
        return "ranging"

    values = closes(candles)
    ema_f = calculate_ema(values, fast)[-1]
    ema_s = calculate_ema(values, slow)[-1]

    if not is_valid(ema_f) or not is_valid(ema_s):
        return "ranging"
    if ema_f > ema_s:
        return "bullish"
    if ema_f < ema_s:
        return "bearish"
    return "ranging"


def _mean_recent_atr(atr: list[float], lookback: int) -> Optional[float]:
    recent = [v for v in atr[-lookback:] if is_valid(v)]
    if not recent:
        return None
    return sum(recent) / len(recent)


def detect_chop_range(
    candles: list[Candle],
    atr_period: int = 14,
    lookback: int = 50,
    ratio: float = 0.5,
) -> bool:
    """Return True when the market looks range-bound.

    Chop means the latest ATR is below *ratio* × the mean of the last
    *lookback* defined ATR values.  Short history or an undefined ATR is
    treated as chop.
    """
    if len(candles) < lookback:
        return True

    atr = calculate_atr(candles, atr_period)
    latest = atr[-1]
    if not is_valid(latest):
        return True

    avg = _mean_recent_atr(atr, lookback)
    if avg is None:
        return True
    return latest < avg * ratio


def detect_volatility_state(
    candles: list[Candle],
    atr_period: int = 14,
    lookback: int = 50,
    expansion_ratio: float = 1.5,
    compression_ratio: float = 0.7,
) -> tuple[bool, bool, float]:
    """Return ``(expansion, compression, score)`` for the latest candle.

    ``ratio = latest ATR / mean(last lookback ATR)``; expansion above
    *expansion_ratio*, compression below *compression_ratio*, and
    ``score = clamp((ratio − 0.5) × 50, 0, 100)``.
    """
    if len(candles) < lookback:
        return False, False, 0.0

    atr = calculate_atr(candles, atr_period)
    latest = atr[-1]
    avg = _mean_recent_atr(atr, lookback)
    if not is_valid(latest) or not avg:
        return False, False, 0.0

    ratio = latest / avg
    score = min(100.0, max(0.0, (ratio - 0.5) * 50.0))
    return ratio > expansion_ratio, ratio < compression_ratio, score


def calculate_volatility_metrics(
    candles: list[Candle],
    config: Optional[StrategyConfig] = None,
) -> VolatilityMetrics:
    """Bundle the latest ATR with the volatility state."""
    cfg = config or StrategyConfig()
    atr = calculate_atr(candles, cfg.atr_period)
    expansion, compression, score = detect_volatility_state(
        candles,
        atr_period=cfg.atr_period,
        lookback=cfg.volatility_lookback,
        expansion_ratio=cfg.expansion_ratio,
        compression_ratio=cfg.compression_ratio,
    )
    return VolatilityMetrics(
        atr=atr[-1] if atr else float("nan"),
        range_expansion=expansion,
        range_compression=compression,
        volatility_score=score,
    )
