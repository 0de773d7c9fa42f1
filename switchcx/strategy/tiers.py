"""Confirmation tier state machine.

Combines the four timeframe scores with the four trend directions into a
tier (0–4) and the mode that earned it:

* **conservative** — 4h and 1h agree (and neither is ranging).
* **aggressive** — 1h, 15m and 5m agree (and none is ranging).

A 5m trend directly against an otherwise aligned 4h/1h bias caps the
tier at 2 ("get ready") however strong the slower timeframes are.
"""

from dataclasses import replace
from typing import Iterable, Mapping, Union

from switchcx.strategy.models import (
    Direction,
    TierDebugInfo,
    TierResult,
    TimeframeScore,
)


ScoreInput = Union[Iterable[TimeframeScore], Mapping[str, TimeframeScore]]


def _opposes(a: Direction, b: Direction) -> bool:
    return {a, b} == {"bullish", "bearish"}


def _agree(a: Direction, b: Direction) -> bool:
    return a == b and a != "ranging"


def calculate_confirmation_tier(
    timeframe_scores: ScoreInput,
    trend_4h: Direction,
    trend_1h: Direction,
    trend_15m: Direction,
    trend_5m: Direction,
) -> TierResult:
    """Compute the confirmation tier.  First matching rule wins.

    Args:
        timeframe_scores: The four ``TimeframeScore`` records, as a
            sequence or keyed by timeframe.
        trend_4h / trend_1h / trend_15m / trend_5m: Trend per timeframe.

    Returns:
        ``TierResult``.  ``mode == "none"`` only with tier 0 or 1, and
        tier 3+ always carries a mode.
    """
    if isinstance(timeframe_scores, Mapping):
        timeframe_scores = timeframe_scores.values()
    by_tf = {s.timeframe: s.score for s in timeframe_scores}
    if any(tf not in by_tf for tf in ("4h", "1h", "15m", "5m")):
        return TierResult(tier=0, mode="none")

    s4h, s1h, s15m, s5m = by_tf["4h"], by_tf["1h"], by_tf["15m"], by_tf["5m"]

    conservative = _agree(trend_4h, trend_1h)
    opposing_5m = conservative and _opposes(trend_5m, trend_4h)
    aggressive = _agree(trend_1h, trend_15m) and _agree(trend_15m, trend_5m)

    strong = sum((s4h >= 3, s1h >= 2, s15m >= 2, s5m >= 2))
    partial = (
        _agree(trend_1h, trend_15m)
        or _agree(trend_15m, trend_5m)
        or _agree(trend_4h, trend_1h)
    )

    debug = TierDebugInfo(
        strong_timeframes=strong,
        partial_alignment=partial,
        conservative_mode=conservative,
        aggressive_mode=aggressive,
        conservative_5m_opposing=opposing_5m,
    )
    aligned = replace(debug, full_alignment=True)

    # 1. enough strong timeframes
    if strong >= 2:
        if not partial:
            return TierResult(tier=1, mode="none", debug_info=debug)
        if aggressive and strong >= 3:
            return TierResult(tier=3, mode="aggressive", debug_info=aligned)
        if conservative and strong >= 3 and not opposing_5m:
            return TierResult(tier=3, mode="conservative", debug_info=aligned)
        if conservative and opposing_5m:
            return TierResult(tier=2, mode="conservative", debug_info=debug)
        if aggressive:
            mode = "aggressive"
        elif conservative:
            mode = "conservative"
        else:
            mode = "none"
        # partial alignment without a mode cannot reach tier 2
        if mode == "none":
            return TierResult(tier=1, mode="none", debug_info=debug)
        return TierResult(tier=2, mode=mode, debug_info=debug)

    # 2. a mode is aligned but scores are weaker
    if conservative or aggressive:
        tier = sum((s4h >= 3, s1h >= 2, s15m >= 1, s5m >= 1))
        if opposing_5m:
            return TierResult(tier=2, mode="conservative", debug_info=debug)
        mode = "conservative" if conservative else "aggressive"
        if tier == 4:
            return TierResult(tier=4, mode=mode, debug_info=aligned)
        return TierResult(
            tier=max(2, tier),
            mode=mode,
            debug_info=aligned if tier >= 3 else debug,
        )

    # 3. nothing aligned
    return TierResult(tier=0, mode="none", debug_info=debug)
