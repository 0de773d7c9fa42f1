"""Strategy data models — typed representations for strategy inputs and outputs."""

from dataclasses import dataclass, field
from typing import Literal, Optional


Timeframe = Literal["4h", "1h", "15m", "5m"]
Direction = Literal["bullish", "bearish", "ranging"]
Mode = Literal["conservative", "aggressive", "none"]
TradingSession = Literal["london", "new_york", "overlap", "asian"]
SignalStatus = Literal["active", "closed", "invalidated", "pending"]
ZoneType = Literal["support", "resistance"]
TrendlineType = Literal["ascending", "descending"]

# Coarsest first.
TIMEFRAMES: tuple[Timeframe, ...] = ("4h", "1h", "15m", "5m")

TIMEFRAME_MINUTES: dict[str, int] = {
    "4h": 240,
    "1h": 60,
    "15m": 15,
    "5m": 5,
}


@dataclass(frozen=True)
class Candle:
    """A single OHLCV bar. ``timestamp`` is epoch milliseconds."""

    timestamp: int
    open: float
    high: float
    low: float
    close: float
    volume: float

    @property
    def body(self) -> float:
        return abs(self.close - self.open)

    @property
    def range(self) -> float:
        return self.high - self.low

    @property
    def is_bullish(self) -> bool:
        return self.close > self.open

    @property
    def is_bearish(self) -> bool:
        return self.close < self.open


@dataclass(frozen=True)
class BreakoutZone:
    """A clustered support or resistance level."""

    level: float
    zone_type: ZoneType
    strength: float  # 0–100
    touches: int


@dataclass(frozen=True)
class Trendline:
    """A line through two swing points.

    ``start_index`` / ``end_index`` are positions in the candle list the
    line was detected on, so ``price_at(len(candles) - 1)`` projects the
    line onto the latest candle.
    """

    slope: float
    intercept: float
    line_type: TrendlineType
    strength: float
    touches: int
    start_index: int
    end_index: int

    def price_at(self, index: int) -> float:
        """Project the line onto candle *index*."""
        return self.slope * index + self.intercept


@dataclass(frozen=True)
class BreakoutResult:
    """Outcome of a zone or trendline breakout test."""

    is_breakout: bool
    direction: Direction
    zone: Optional[BreakoutZone] = None
    trendline: Optional[Trendline] = None


NO_BREAKOUT = BreakoutResult(is_breakout=False, direction="ranging")


@dataclass(frozen=True)
class TimeframeCriteria:
    """The five pass/fail checks behind a timeframe score."""

    adx: bool = False
    volume: bool = False
    ema_alignment: bool = False
    trend_direction: bool = False
    volatility: bool = False

    def count(self) -> int:
        return sum(
            (self.adx, self.volume, self.ema_alignment,
             self.trend_direction, self.volatility)
        )


@dataclass(frozen=True)
class TimeframeScore:
    """Quality score (0–5) for a single timeframe."""

    timeframe: Timeframe
    score: int
    criteria: TimeframeCriteria
    adx_value: float
    max_score: int = 5
    trend_direction: Optional[Direction] = None
    chandelier_long: Optional[float] = None
    chandelier_short: Optional[float] = None


@dataclass(frozen=True)
class TierDebugInfo:
    """Intermediate values the tier decision was based on."""

    strong_timeframes: int = 0
    partial_alignment: bool = False
    full_alignment: bool = False
    conservative_mode: bool = False
    aggressive_mode: bool = False
    conservative_5m_opposing: bool = False


@dataclass(frozen=True)
class TierResult:
    """Confirmation tier (0–4) and the mode that produced it."""

    tier: int
    mode: Mode
    debug_info: TierDebugInfo = field(default_factory=TierDebugInfo)


@dataclass(frozen=True)
class VolatilityMetrics:
    """ATR snapshot plus expansion/compression flags."""

    atr: float
    range_expansion: bool
    range_compression: bool
    volatility_score: float


@dataclass(frozen=True)
class TradingSignal:
    """A concrete trade proposal emitted by the signal generator."""

    id: str
    timestamp: int
    direction: Literal["bullish", "bearish"]
    entry_price: float
    stop_loss: float
    chandelier_stop: float
    tp1: float
    tp2: float
    status: SignalStatus
    breakout_zone: Optional[BreakoutZone]
    volatility: VolatilityMetrics
    timeframe_scores: tuple[TimeframeScore, ...]
    session: TradingSession
    trendline: Optional[Trendline] = None
    metadata: dict = field(default_factory=dict)

    @property
    def risk(self) -> float:
        """Distance between entry and the initial stop."""
        return abs(self.entry_price - self.stop_loss)

    @property
    def mode(self) -> Mode:
        return self.metadata.get("mode", "none")
