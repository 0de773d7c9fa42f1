"""Support/Resistance breakout zones — swing detection, clustering, breakout tests.

Pure functions.  Zones are rebuilt from scratch on every evaluation.
"""

from switchcx.strategy.models import (
    NO_BREAKOUT,
    BreakoutResult,
    BreakoutZone,
    Candle,
    ZoneType,
)


def find_swing_highs(candles: list[Candle], window: int = 2) -> list[tuple[int, float]]:
    """Identify swing highs as ``(index, price)`` pairs.

    A swing high is a candle whose high is strictly higher than the highs
    of the *window* candles on each side.
    """
    highs: list[tuple[int, float]] = []
    for i in range(window, len(candles) - window):
        high = candles[i].high
        is_swing = True
        for j in range(1, window + 1):
            if candles[i - j].high >= high or candles[i + j].high >= high:
                is_swing = False
                break
        if is_swing:
            highs.append((i, high))
    return highs


def find_swing_lows(candles: list[Candle], window: int = 2) -> list[tuple[int, float]]:
    """Identify swing lows as ``(index, price)`` pairs.

    A swing low is a candle whose low is strictly lower than the lows of
    the *window* candles on each side.
    """
    lows: list[tuple[int, float]] = []
    for i in range(window, len(candles) - window):
        low = candles[i].low
        is_swing = True
        for j in range(1, window + 1):
            if candles[i - j].low <= low or candles[i + j].low <= low:
                is_swing = False
                break
        if is_swing:
            lows.append((i, low))
    return lows


def cluster_levels(levels: list[float], tolerance: float = 0.001) -> list[tuple[float, int]]:
    """Merge nearby price levels into ``(level, touches)`` clusters.

    Levels are visited in the order given.  Each joins the first existing
    cluster within *tolerance* (relative to the incoming level); the
    cluster's level becomes the running average of its members.
    """
    sums: list[float] = []
    counts: list[int] = []

    for level in levels:
        for k in range(len(sums)):
            centre = sums[k] / counts[k]
            if abs(centre - level) / level < tolerance:
                sums[k] += level
                counts[k] += 1
                break
        else:
            sums.append(level)
            counts.append(1)

    return [(s / c, c) for s, c in zip(sums, counts)]


def _to_zones(clusters: list[tuple[float, int]], zone_type: ZoneType) -> list[BreakoutZone]:
    return [
        BreakoutZone(
            level=level,
            zone_type=zone_type,
            strength=float(min(100, touches * 20)),
            touches=touches,
        )
        for level, touches in clusters
    ]


def detect_breakout_zones(
    candles: list[Candle],
    lookback: int = 50,
    tolerance: float = 0.001,
    max_zones: int = 5,
) -> list[BreakoutZone]:
    """Detect the strongest support/resistance zones in the last *lookback* candles.

    Swing highs become resistance, swing lows support.  Zones are ranked
    by ``strength = min(100, touches × 20)`` (ties keep resistance-first
    discovery order) and the top *max_zones* are returned.

    Returns an empty list when fewer than *lookback* candles exist.
    """
    if len(candles) < lookback:
        return []

    recent = candles[-lookback:]
    highs = [price for _, price in find_swing_highs(recent)]
    lows = [price for _, price in find_swing_lows(recent)]

    zones = _to_zones(cluster_levels(highs, tolerance), "resistance")
    zones += _to_zones(cluster_levels(lows, tolerance), "support")

    zones.sort(key=lambda z: z.strength, reverse=True)
    return zones[:max_zones]


def check_breakout(
    current_price: float,
    candles: list[Candle],
    zones: list[BreakoutZone],
    sensitivity: float = 0.0002,
    band: float = 0.003,
) -> BreakoutResult:
    """Test *current_price* against each zone, in rank order.

    Bullish (resistance, ≥2 touches):
        - crossing: previous close below the level and price at or above
          ``level × (1 − sensitivity)``; or
        - continuation: previous close at/above the level, price within
          ``[level, level × (1 + band)]`` and non-zero volume on the last
          candle.

    Bearish is the mirror test against support.  The first zone that
    fires wins.
    """
    if not zones or not candles:
        return NO_BREAKOUT

    last = candles[-1]

    for zone in zones:
        if zone.touches < 2:
            continue
        level = zone.level

        if zone.zone_type == "resistance":
            crossed = last.close < level and current_price >= level * (1 - sensitivity)
            continued = (
                last.close >= level
                and level <= current_price <= level * (1 + band)
                and last.volume > 0
            )
            if crossed or continued:
                return BreakoutResult(is_breakout=True, direction="bullish", zone=zone)

        elif zone.zone_type == "support":
            crossed = last.close > level and current_price <= level * (1 + sensitivity)
            continued = (
                last.close <= level
                and level * (1 - band) <= current_price <= level
                and last.volume > 0
            )
            if crossed or continued:
                return BreakoutResult(is_breakout=True, direction="bearish", zone=zone)

    return NO_BREAKOUT


def validate_breakout_volume(
    candles: list[Candle],
    period: int = 20,
    multiplier: float = 1.2,
) -> bool:
    """Return True if the last candle's volume is ≥ *multiplier* × the
    average of the *period* candles before it."""
    if len(candles) < period + 1:
        return False

    previous = candles[-(period + 1) : -1]
    avg_volume = sum(c.volume for c in previous) / period
    return candles[-1].volume >= avg_volume * multiplier
