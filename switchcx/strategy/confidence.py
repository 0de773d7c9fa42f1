"""Signal confidence — weighted 0–100 quality score for a generated signal."""

from dataclasses import dataclass
from typing import Iterable, Literal, Optional

from switchcx.repos.trade_history import TradeHistoryStore
from switchcx.strategy.market_context import NEUTRAL_CONTEXT, MarketContext
from switchcx.strategy.models import TimeframeScore, TradingSignal


Recommendation = Literal["strong_buy", "buy", "hold", "avoid"]

WEIGHTS = {
    "breakout_quality": 0.25,
    "volume_surge": 0.20,
    "timeframe_alignment": 0.25,
    "market_context": 0.15,
    "historical_success": 0.15,
}

NO_HISTORY_RATE = 50.0


@dataclass(frozen=True)
class ConfidenceFactors:
    breakout_quality: float
    volume_surge: float
    timeframe_alignment: float
    market_context: float
    historical_success: float


@dataclass(frozen=True)
class SignalConfidence:
    score: int
    factors: ConfidenceFactors
    recommendation: Recommendation


def assess_breakout_quality(signal: TradingSignal) -> float:
    """Mean of touch score and zone strength; 65 for trendline breakouts."""
    zone = signal.breakout_zone
    if zone is None:
        return 65.0
    touch_score = min(100.0, zone.touches * 25.0)
    return (touch_score + zone.strength) / 2


def assess_volume_surge(signal: TradingSignal) -> float:
    """75 when the breakout volume was validated, 50 otherwise."""
    return 75.0 if signal.metadata.get("volume_confirmed", True) else 50.0


def assess_timeframe_alignment(scores: Iterable[TimeframeScore]) -> float:
    scores = list(scores)
    max_total = sum(s.max_score for s in scores)
    if max_total == 0:
        return 0.0
    return sum(s.score for s in scores) / max_total * 100.0


def assess_market_context(context: MarketContext) -> float:
    score = 50.0
    score -= 15.0 * len(context.high_impact_events)
    if context.volatility_regime == "low":
        score -= 20.0
    elif context.volatility_regime == "extreme":
        score -= 30.0
    elif context.volatility_regime == "high":
        score += 10.0
    score += context.confidence_adjustment
    return max(0.0, min(100.0, score))


def get_recommendation(score: float, context: MarketContext) -> Recommendation:
    if context.high_impact_events:
        return "avoid"
    if score >= 80:
        return "strong_buy"
    if score >= 65:
        return "buy"
    if score >= 50:
        return "hold"
    return "avoid"


def calculate_signal_confidence(
    signal: TradingSignal,
    market_context: Optional[MarketContext] = None,
    timeframe_scores: Optional[Iterable[TimeframeScore]] = None,
    history: Optional[TradeHistoryStore] = None,
) -> SignalConfidence:
    """Score *signal* out of 100.

    Args:
        signal: The signal to grade.
        market_context: Caller-supplied context; neutral when omitted.
        timeframe_scores: Scores to grade alignment on; defaults to the
            signal's own.
        history: Trade-history store consulted for the historical
            success rate near the entry price; 50 when omitted.

    Returns:
        ``SignalConfidence`` with the rounded score, the individual
        factors and a recommendation.
    """
    context = market_context or NEUTRAL_CONTEXT
    scores = timeframe_scores if timeframe_scores is not None else signal.timeframe_scores

    factors = ConfidenceFactors(
        breakout_quality=assess_breakout_quality(signal),
        volume_surge=assess_volume_surge(signal),
        timeframe_alignment=assess_timeframe_alignment(scores),
        market_context=assess_market_context(context),
        historical_success=(
            history.get_historical_success_rate(signal.entry_price, signal.direction)
            if history is not None
            else NO_HISTORY_RATE
        ),
    )
    score = sum(getattr(factors, name) * weight for name, weight in WEIGHTS.items())

    return SignalConfidence(
        score=round(score),
        factors=factors,
        recommendation=get_recommendation(score, context),
    )
