"""Candlestick pattern recognition — secondary confirmation for breakouts.

Detectors look only at the trailing candles of the window; each returns
a ``CandlePattern`` or ``None``.
"""

from dataclasses import dataclass, replace
from typing import Literal, Optional

from switchcx.strategy.models import Candle


PatternType = Literal["bullish", "bearish", "indecision"]


@dataclass(frozen=True)
class CandlePattern:
    """A detected pattern.  ``index`` is the position of its first candle."""

    name: str
    pattern_type: PatternType
    strength: float
    index: int
    description: str


@dataclass(frozen=True)
class PatternConfirmation:
    confirmed: bool
    strength: float
    supporting_patterns: tuple[CandlePattern, ...]


# ── Candle geometry ──────────────────────────────────────────────────────


def _upper_shadow(c: Candle) -> float:
    return c.high - max(c.open, c.close)


def _lower_shadow(c: Candle) -> float:
    return min(c.open, c.close) - c.low


def _body_pct(c: Candle) -> float:
    """Body as a percentage of the full range (0 for a zero-range candle)."""
    if c.range <= 0:
        return 0.0
    return c.body / c.range * 100.0


def _count(candles: list[Candle], bullish: bool) -> int:
    if bullish:
        return sum(1 for c in candles if c.is_bullish)
    return sum(1 for c in candles if c.is_bearish)


# ── Single-candle patterns ───────────────────────────────────────────────


def detect_hammer(candles: list[Candle]) -> Optional[CandlePattern]:
    """Small body on top of a long lower shadow."""
    c = candles[-1]
    if not (
        c.range > 0
        and _body_pct(c) < 30
        and _lower_shadow(c) > c.body * 2
        and _upper_shadow(c) < c.body * 0.5
    ):
        return None
    downtrend = _count(candles[-4:-1], bullish=False) >= 2
    return CandlePattern(
        name="Hammer",
        pattern_type="bullish",
        strength=80.0 if downtrend else 60.0,
        index=len(candles) - 1,
        description="Bullish reversal - long lower shadow shows buying pressure",
    )


def detect_shooting_star(candles: list[Candle]) -> Optional[CandlePattern]:
    """Small body under a long upper shadow."""
    c = candles[-1]
    if not (
        c.range > 0
        and _body_pct(c) < 30
        and _upper_shadow(c) > c.body * 2
        and _lower_shadow(c) < c.body * 0.5
    ):
        return None
    uptrend = _count(candles[-4:-1], bullish=True) >= 2
    return CandlePattern(
        name="Shooting Star",
        pattern_type="bearish",
        strength=80.0 if uptrend else 60.0,
        index=len(candles) - 1,
        description="Bearish reversal - long upper shadow shows selling pressure",
    )


def detect_doji(candles: list[Candle]) -> Optional[CandlePattern]:
    c = candles[-1]
    if c.range <= 0 or _body_pct(c) >= 5:
        return None
    return CandlePattern(
        name="Doji",
        pattern_type="indecision",
        strength=75.0,
        index=len(candles) - 1,
        description="Market indecision - potential reversal or continuation",
    )


# ── Two-candle patterns ──────────────────────────────────────────────────


def detect_bullish_engulfing(candles: list[Candle]) -> Optional[CandlePattern]:
    if len(candles) < 2:
        return None
    prev, cur = candles[-2], candles[-1]
    if not (
        cur.is_bullish
        and prev.is_bearish
        and cur.open <= prev.close
        and cur.close >= prev.open
        and cur.body > prev.body
    ):
        return None
    downtrend = _count(candles[-5:-2], bullish=False) >= 2
    return CandlePattern(
        name="Bullish Engulfing",
        pattern_type="bullish",
        strength=85.0 if downtrend else 70.0,
        index=len(candles) - 2,
        description="Strong bullish reversal - buyers overwhelm sellers",
    )


def detect_bearish_engulfing(candles: list[Candle]) -> Optional[CandlePattern]:
    if len(candles) < 2:
        return None
    prev, cur = candles[-2], candles[-1]
    if not (
        cur.is_bearish
        and prev.is_bullish
        and cur.open >= prev.close
        and cur.close <= prev.open
        and cur.body > prev.body
    ):
        return None
    uptrend = _count(candles[-5:-2], bullish=True) >= 2
    return CandlePattern(
        name="Bearish Engulfing",
        pattern_type="bearish",
        strength=85.0 if uptrend else 70.0,
        index=len(candles) - 2,
        description="Strong bearish reversal - sellers overwhelm buyers",
    )


# ── Three-candle patterns ────────────────────────────────────────────────


def detect_three_white_soldiers(candles: list[Candle]) -> Optional[CandlePattern]:
    """Three strong bullish bodies, each opening inside the prior body and closing higher."""
    if len(candles) < 3:
        return None
    c1, c2, c3 = candles[-3:]
    if not (
        c1.is_bullish and c2.is_bullish and c3.is_bullish
        and all(_body_pct(c) > 60 for c in (c1, c2, c3))
        and c2.close > c1.close and c3.close > c2.close
        and c1.open < c2.open < c1.close
        and c2.open < c3.open < c2.close
    ):
        return None
    return CandlePattern(
        name="Three White Soldiers",
        pattern_type="bullish",
        strength=90.0,
        index=len(candles) - 3,
        description="Strong bullish continuation - sustained buying pressure",
    )


def detect_three_black_crows(candles: list[Candle]) -> Optional[CandlePattern]:
    """Three strong bearish bodies, each opening inside the prior body and closing lower."""
    if len(candles) < 3:
        return None
    c1, c2, c3 = candles[-3:]
    if not (
        c1.is_bearish and c2.is_bearish and c3.is_bearish
        and all(_body_pct(c) > 60 for c in (c1, c2, c3))
        and c2.close < c1.close and c3.close < c2.close
        and c1.close < c2.open < c1.open
        and c2.close < c3.open < c2.open
    ):
        return None
    return CandlePattern(
        name="Three Black Crows",
        pattern_type="bearish",
        strength=90.0,
        index=len(candles) - 3,
        description="Strong bearish continuation - sustained selling pressure",
    )


def detect_morning_star(candles: list[Candle]) -> Optional[CandlePattern]:
    """Large bearish, small body, large bullish closing past the first body's midpoint."""
    if len(candles) < 3:
        return None
    c1, c2, c3 = candles[-3:]
    if not (
        c1.is_bearish and _body_pct(c1) > 60
        and _body_pct(c2) < 30
        and c3.is_bullish and _body_pct(c3) > 60
        and c3.close > (c1.open + c1.close) / 2
    ):
        return None
    downtrend = _count(candles[-5:-3], bullish=False) >= 2
    return CandlePattern(
        name="Morning Star",
        pattern_type="bullish",
        strength=88.0 if downtrend else 70.0,
        index=len(candles) - 3,
        description="Bullish reversal - downtrend exhaustion",
    )


def detect_evening_star(candles: list[Candle]) -> Optional[CandlePattern]:
    """Large bullish, small body, large bearish closing past the first body's midpoint."""
    if len(candles) < 3:
        return None
    c1, c2, c3 = candles[-3:]
    if not (
        c1.is_bullish and _body_pct(c1) > 60
        and _body_pct(c2) < 30
        and c3.is_bearish and _body_pct(c3) > 60
        and c3.close < (c1.open + c1.close) / 2
    ):
        return None
    uptrend = _count(candles[-5:-3], bullish=True) >= 2
    return CandlePattern(
        name="Evening Star",
        pattern_type="bearish",
        strength=88.0 if uptrend else 70.0,
        index=len(candles) - 3,
        description="Bearish reversal - uptrend exhaustion",
    )


_DETECTORS = (
    detect_hammer,
    detect_shooting_star,
    detect_doji,
    detect_bullish_engulfing,
    detect_bearish_engulfing,
    detect_three_white_soldiers,
    detect_three_black_crows,
    detect_morning_star,
    detect_evening_star,
)


def detect_candle_patterns(candles: list[Candle], lookback: int = 20) -> list[CandlePattern]:
    """Run every detector over the last *lookback* candles.

    Pattern indices refer to positions in *candles*.  Results are sorted
    strongest first; fewer than 3 candles yields no patterns.
    """
    if len(candles) < 3:
        return []

    offset = max(0, len(candles) - lookback)
    recent = candles[offset:]

    patterns: list[CandlePattern] = []
    for detector in _DETECTORS:
        found = detector(recent)
        if found is not None:
            patterns.append(replace(found, index=found.index + offset))

    patterns.sort(key=lambda p: p.strength, reverse=True)
    return patterns


def patterns_confirm_direction(
    patterns: list[CandlePattern],
    direction: Literal["bullish", "bearish"],
) -> PatternConfirmation:
    """Confirmed when any supporting pattern is stronger than 70, or two or more support.

    ``strength`` is the average strength of the supporting patterns.
    """
    supporting = tuple(p for p in patterns if p.pattern_type == direction)
    if not supporting:
        return PatternConfirmation(confirmed=False, strength=0.0, supporting_patterns=())

    avg = sum(p.strength for p in supporting) / len(supporting)
    confirmed = any(p.strength > 70 for p in supporting) or len(supporting) >= 2
    return PatternConfirmation(confirmed=confirmed, strength=avg, supporting_patterns=supporting)
