"""Signal generator — turns a confirmed multi-timeframe setup into a concrete trade.

Each precondition that fails returns ``None`` (no signal); only malformed
input raises.
"""

import logging
from dataclasses import dataclass
from typing import Mapping, Optional

from switchcx.config import StrategyConfig
from switchcx.models.engine_state import EngineState
from switchcx.risk.lockout import can_trade
from switchcx.strategy.indicators import (
    calculate_chandelier_exit,
    ensure_chronological,
    is_valid,
)
from switchcx.strategy.models import (
    TIMEFRAMES,
    BreakoutResult,
    Candle,
    Direction,
    Mode,
    TierResult,
    Timeframe,
    TimeframeScore,
    TradingSignal,
)
from switchcx.strategy.patterns import detect_candle_patterns, patterns_confirm_direction
from switchcx.strategy.scoring import score_timeframes
from switchcx.strategy.session_filter import SessionFilter, SessionProvider, to_utc
from switchcx.strategy.sr_zones import (
    check_breakout,
    detect_breakout_zones,
    validate_breakout_volume,
)
from switchcx.strategy.tiers import calculate_confirmation_tier
from switchcx.strategy.trend import (
    calculate_volatility_metrics,
    detect_chop_range,
    detect_trend,
)
from switchcx.strategy.trendlines import check_trendline_breakout, detect_trendlines

logger = logging.getLogger("switchcx")

MarketData = Mapping[str, list[Candle]]


@dataclass(frozen=True)
class MarketAnalysis:
    """Scores, trends and tier for one snapshot of all four timeframes."""

    scores: dict[Timeframe, TimeframeScore]
    trends: dict[Timeframe, Direction]
    tier: TierResult
    aggressive_trends: Optional[dict[Timeframe, Direction]] = None

    @property
    def ordered_scores(self) -> tuple[TimeframeScore, ...]:
        return tuple(self.scores[tf] for tf in TIMEFRAMES)

    def dominant_direction(self) -> Direction:
        """4h/1h bias when they agree, otherwise the 1h trend."""
        if self.trends["4h"] == self.trends["1h"]:
            return self.trends["4h"]
        return self.trends["1h"]

    def trends_for(self, mode: Mode) -> dict[Timeframe, Direction]:
        """Trends that judge *mode*.

        Aggressive mode reads 1h/15m/5m through the fast EMA pair when
        those trends were computed; everything else uses ``trends``.
        """
        if mode == "aggressive" and self.aggressive_trends is not None:
            return self.aggressive_trends
        return self.trends


def analyze_market(
    market_data: MarketData,
    config: Optional[StrategyConfig] = None,
) -> MarketAnalysis:
    """Score every timeframe, detect every trend and compute the tier.

    Raises ``ValueError`` if any timeframe's candles are out of order.
    """
    cfg = config or StrategyConfig()
    for tf in TIMEFRAMES:
        ensure_chronological(market_data.get(tf, []))

    scores = score_timeframes(market_data, cfg)
    trends: dict[Timeframe, Direction] = {
        tf: detect_trend(market_data.get(tf, []), cfg.ema_fast, cfg.ema_slow, cfg.min_candles)
        for tf in TIMEFRAMES
    }
    tier = calculate_confirmation_tier(
        scores, trends["4h"], trends["1h"], trends["15m"], trends["5m"],
    )
    aggressive_trends = {"4h": trends["4h"]}
    for tf in ("1h", "15m", "5m"):
        aggressive_trends[tf] = detect_trend(
            market_data.get(tf, []),
            cfg.aggressive_ema_fast,
            cfg.aggressive_ema_slow,
            cfg.min_candles,
        )
    return MarketAnalysis(
        scores=scores, trends=trends, tier=tier, aggressive_trends=aggressive_trends,
    )


class SignalGenerator:
    """Builds ``TradingSignal`` objects from multi-timeframe candle data.

    Args:
        config: Strategy parameters.
        session_provider: Session lookup; defaults to the fixed UTC table.
    """

    def __init__(
        self,
        config: Optional[StrategyConfig] = None,
        session_provider: Optional[SessionProvider] = None,
    ) -> None:
        self._config = config or StrategyConfig()
        self._sessions = session_provider or SessionFilter(
            self._config.asian_min_volatility,
        )

    @property
    def config(self) -> StrategyConfig:
        return self._config

    # ── Public API ───────────────────────────────────────────────────────

    def generate_signal(
        self,
        market_data: MarketData,
        current_price: float,
        state: EngineState,
        now: Optional[int] = None,
        allow_early_entry: Optional[bool] = None,
    ) -> Optional[TradingSignal]:
        """Evaluate the market and return a signal, or ``None``.

        Args:
            market_data: Candles per timeframe, oldest-first.
            current_price: Proposed entry price.
            state: Caller-owned engine state; ``session_trades`` is
                incremented when a signal is emitted.
            now: Evaluation time (epoch ms).  Defaults to the latest 1h
                candle's timestamp so results depend only on the input.
            allow_early_entry: Permit aggressive-mode signals (defaults
                to ``config.allow_early_entry``).

        Raises:
            ValueError: If candles are not in ascending timestamp order.
        """
        cfg = self._config
        if allow_early_entry is None:
            allow_early_entry = cfg.allow_early_entry

        candles_1h = market_data.get("1h", [])
        if now is None:
            if not candles_1h:
                logger.debug("No 1h candles, no signal")
                return None
            now = candles_1h[-1].timestamp

        allowed, reason = can_trade(state, now, cfg)
        if not allowed:
            logger.info("Signal blocked: %s", reason)
            return None

        analysis = analyze_market(market_data, cfg)
        trends = analysis.trends
        fast = analysis.trends_for("aggressive")
        scores = [analysis.scores[tf].score for tf in TIMEFRAMES]

        # 1. mode sufficiency
        conservative = trends["4h"] == trends["1h"] and trends["1h"] != "ranging"
        aggressive = (
            allow_early_entry
            and fast["1h"] != "ranging"
            and fast["1h"] == fast["15m"] == fast["5m"]
        )
        if not conservative and not aggressive:
            logger.debug(
                "No aligned mode: 4h=%s 1h=%s 15m=%s 5m=%s",
                trends["4h"], trends["1h"], trends["15m"], trends["5m"],
            )
            return None
        mode: Mode = "conservative" if conservative else "aggressive"
        mode_trends = analysis.trends_for(mode)

        # 2. confirmations
        strong = sum(s >= 3 for s in scores)
        moderate = sum(s >= 2 for s in scores)
        if strong < 2 and moderate < 2:
            logger.debug("Insufficient confirmations: scores=%s", scores)
            return None

        if detect_chop_range(
            candles_1h, cfg.atr_period, cfg.chop_min_candles, cfg.chop_atr_ratio,
        ) and moderate < 2:
            logger.debug("Chop range with %d moderate confirmations", moderate)
            return None

        # 3. session
        volatility = calculate_volatility_metrics(candles_1h, cfg)
        session = self._sessions.get_current_session(to_utc(now))
        if not self._sessions.should_trade_in_session(session, volatility.volatility_score):
            logger.debug(
                "Session %s not tradeable at volatility %.1f",
                session, volatility.volatility_score,
            )
            return None

        # 4. breakout on 1h
        breakout = self._find_breakout(candles_1h, current_price)
        if not breakout.is_breakout:
            logger.debug("No breakout at %.2f", current_price)
            return None
        direction = breakout.direction

        if mode == "conservative" and (direction != trends["4h"] or direction != trends["1h"]):
            logger.debug(
                "Breakout %s conflicts with 4h=%s 1h=%s",
                direction, trends["4h"], trends["1h"],
            )
            return None
        if mode == "aggressive" and direction != mode_trends["1h"]:
            logger.debug("Breakout %s conflicts with 1h=%s", direction, mode_trends["1h"])
            return None

        # 5. volume unless conviction is already strong
        volume_ok = validate_breakout_volume(
            candles_1h, cfg.volume_period, cfg.volume_multiplier,
        )
        if not volume_ok and strong < 2:
            logger.debug("Volume validation failed with %d strong confirmations", strong)
            return None

        # 6. 5m must not oppose
        if mode_trends["5m"] not in (direction, "ranging"):
            logger.debug("5m trend %s opposes %s breakout", mode_trends["5m"], direction)
            return None

        # 7. Chandelier stop and R-multiple targets
        chandelier = calculate_chandelier_exit(
            candles_1h, cfg.chandelier_period, cfg.chandelier_multiplier,
        )
        stop = chandelier.stop_long[-1] if direction == "bullish" else chandelier.stop_short[-1]
        if not is_valid(stop):
            logger.debug("Chandelier stop undefined")
            return None
        if (direction == "bullish" and stop >= current_price) or (
            direction == "bearish" and stop <= current_price
        ):
            logger.debug(
                "Chandelier stop %.2f on the wrong side of entry %.2f",
                stop, current_price,
            )
            return None

        # 8. candle patterns are recorded, never required
        patterns = patterns_confirm_direction(detect_candle_patterns(candles_1h), direction)

        risk = abs(current_price - stop)
        sign = 1.0 if direction == "bullish" else -1.0
        tp1 = current_price + sign * cfg.tp1_r_multiple * risk
        tp2 = current_price + sign * cfg.tp2_r_multiple * risk

        signal = TradingSignal(
            id=f"signal_{now}",
            timestamp=now,
            direction=direction,
            entry_price=current_price,
            stop_loss=stop,
            chandelier_stop=stop,
            tp1=tp1,
            tp2=tp2,
            status="active",
            breakout_zone=breakout.zone,
            trendline=breakout.trendline,
            volatility=volatility,
            timeframe_scores=analysis.ordered_scores,
            session=session,
            metadata={
                "mode": mode,
                "tier": analysis.tier.tier,
                "tier_mode": analysis.tier.mode,
                "volume_confirmed": volume_ok,
                "source": "zone" if breakout.zone is not None else "trendline",
                "strong_confirmations": strong,
                "moderate_confirmations": moderate,
                "pattern_confirmed": patterns.confirmed,
                "patterns": [p.name for p in patterns.supporting_patterns],
            },
        )

        state.session_trades += 1
        logger.info(
            "Signal %s: %s %s entry=%.2f stop=%.2f tp1=%.2f tp2=%.2f",
            signal.id, mode, direction, current_price, stop, tp1, tp2,
        )
        return signal

    # ── Helpers ──────────────────────────────────────────────────────────

    def _find_breakout(self, candles: list[Candle], current_price: float) -> BreakoutResult:
        """Zone breakout first, then trendline breakout."""
        cfg = self._config
        zones = detect_breakout_zones(
            candles, cfg.swing_lookback, cfg.zone_tolerance, cfg.max_zones,
        )
        result = check_breakout(
            current_price, candles, zones, cfg.breakout_sensitivity, cfg.breakout_band,
        )
        if result.is_breakout:
            return result

        lines = detect_trendlines(
            candles,
            cfg.swing_lookback,
            cfg.trendline_min_slope,
            cfg.trendline_tolerance,
            cfg.max_trendlines,
        )
        return check_trendline_breakout(
            current_price,
            candles,
            lines,
            cfg.trendline_breakout_threshold,
            cfg.trendline_recent_candles,
        )
