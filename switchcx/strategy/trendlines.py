"""Trendline detection over swing-point pairs, and trendline breakout tests."""

from switchcx.strategy.models import NO_BREAKOUT, BreakoutResult, Candle, Trendline, TrendlineType
from switchcx.strategy.sr_zones import find_swing_highs, find_swing_lows


def _lines_through(
    swings: list[tuple[int, float]],
    line_type: TrendlineType,
    offset: int,
    min_slope: float,
    tolerance: float,
) -> list[Trendline]:
    lines: list[Trendline] = []
    for a in range(len(swings) - 1):
        for b in range(a + 1, len(swings)):
            i1, p1 = swings[a]
            i2, p2 = swings[b]
            slope = (p2 - p1) / (i2 - i1)

            if line_type == "descending" and slope >= -min_slope:
                continue
            if line_type == "ascending" and slope <= min_slope:
                continue

            # Full-series coordinates
            x1 = i1 + offset
            intercept = p1 - slope * x1

            touches = 2
            for k, (idx, price) in enumerate(swings):
                if k in (a, b):
                    continue
                projected = slope * (idx + offset) + intercept
                if abs(price - projected) / price < tolerance:
                    touches += 1

            lines.append(
                Trendline(
                    slope=slope,
                    intercept=intercept,
                    line_type=line_type,
                    strength=float(min(100, touches * 25)),
                    touches=touches,
                    start_index=x1,
                    end_index=i2 + offset,
                )
            )
    return lines


def detect_trendlines(
    candles: list[Candle],
    lookback: int = 50,
    min_slope: float = 0.1,
    tolerance: float = 0.005,
    max_lines: int = 3,
) -> list[Trendline]:
    """Fit descending lines through swing highs and ascending lines through swing lows.

    Only slopes steeper than *min_slope* per candle qualify.  Each other
    swing of the same type within *tolerance* (relative) of the line adds
    a touch; ``strength = min(100, touches × 25)``.  The *max_lines*
    strongest lines are returned, with indices relative to *candles*.
    """
    if len(candles) < lookback:
        return []

    offset = len(candles) - lookback
    recent = candles[offset:]

    lines = _lines_through(
        find_swing_highs(recent), "descending", offset, min_slope, tolerance,
    )
    lines += _lines_through(
        find_swing_lows(recent), "ascending", offset, min_slope, tolerance,
    )

    lines.sort(key=lambda t: t.strength, reverse=True)
    return lines[:max_lines]


def check_trendline_breakout(
    current_price: float,
    candles: list[Candle],
    trendlines: list[Trendline],
    threshold: float = 0.003,
    recent: int = 5,
) -> BreakoutResult:
    """Test *current_price* against each line projected onto the latest candle.

    A descending line breaks bullish when price clears it by *threshold*
    and at least one of the last *recent* closes was still below the line;
    an ascending line breaks bearish on the mirror condition.  The
    recent-close requirement rejects lines that price left long ago.
    """
    if not trendlines or not candles:
        return NO_BREAKOUT

    current_index = len(candles) - 1
    first_recent = max(0, len(candles) - recent)

    for line in trendlines:
        projected = line.price_at(current_index)

        if line.line_type == "descending":
            was_below = any(
                candles[i].close < line.price_at(i)
                for i in range(first_recent, len(candles))
            )
            if was_below and current_price > projected * (1 + threshold):
                return BreakoutResult(is_breakout=True, direction="bullish", trendline=line)

        elif line.line_type == "ascending":
            was_above = any(
                candles[i].close > line.price_at(i)
                for i in range(first_recent, len(candles))
            )
            if was_above and current_price < projected * (1 - threshold):
                return BreakoutResult(is_breakout=True, direction="bearish", trendline=line)

    return NO_BREAKOUT
