"""Market context — economic events and volatility regime supplied by the caller."""

from dataclasses import dataclass
from typing import Literal

from switchcx.strategy.indicators import is_valid


Impact = Literal["low", "medium", "high"]
VolatilityRegime = Literal["low", "normal", "high", "extreme"]

_HOUR_MS = 3_600_000


@dataclass(frozen=True)
class EconomicEvent:
    """A scheduled release.  ``time`` is epoch milliseconds."""

    name: str
    impact: Impact
    time: int


@dataclass(frozen=True)
class MarketContext:
    economic_events: tuple[EconomicEvent, ...] = ()
    volatility_regime: VolatilityRegime = "normal"
    confidence_adjustment: float = 0.0
    dxy_strength: Literal["strong", "weak", "neutral"] = "neutral"
    correlation_score: float = 50.0

    @property
    def high_impact_events(self) -> tuple[EconomicEvent, ...]:
        return tuple(e for e in self.economic_events if e.impact == "high")


NEUTRAL_CONTEXT = MarketContext()


def assess_volatility_regime(atr: float, historical_atr: list[float]) -> VolatilityRegime:
    """Classify *atr* against the mean of *historical_atr*.

    ``extreme`` above 2.5×, ``high`` above 1.5×, ``low`` below 0.5×,
    otherwise ``normal`` (also when there is no usable history).
    """
    history = [v for v in historical_atr if is_valid(v)]
    if not history or not is_valid(atr):
        return "normal"
    avg = sum(history) / len(history)
    if avg <= 0:
        return "normal"

    ratio = atr / avg
    if ratio > 2.5:
        return "extreme"
    if ratio > 1.5:
        return "high"
    if ratio < 0.5:
        return "low"
    return "normal"


def should_avoid_trading(context: MarketContext, now: int) -> bool:
    """True with a high-impact event within an hour of *now*, or an extreme regime."""
    imminent = any(abs(e.time - now) < _HOUR_MS for e in context.high_impact_events)
    return imminent or context.volatility_regime == "extreme"
