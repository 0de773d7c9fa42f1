"""Scan engine — one scan cycle over the latest candles of every timeframe.

Each cycle either exits an active signal that has turned against itself,
or raises tier-transition alerts (setup building, get ready, limit order)
as the confirmation tier climbs.  Alerts go to an injected sink; the
engine never places orders.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Literal, Optional, Union

from switchcx.config import StrategyConfig
from switchcx.models.engine_state import EngineState
from switchcx.repos.signal_store import InMemorySignalStore, SignalStore
from switchcx.repos.trade_history import (
    InMemoryTradeHistory,
    TradeHistoryStore,
    close_trade,
    open_trade_from_signal,
)
from switchcx.risk.lockout import (
    in_emergency_cooldown,
    record_emergency_exit,
    record_stop_loss,
    register_closed_trade,
)
from switchcx.strategy.confidence import SignalConfidence, calculate_signal_confidence
from switchcx.strategy.market_context import (
    NEUTRAL_CONTEXT,
    MarketContext,
    should_avoid_trading,
)
from switchcx.strategy.models import Direction, TimeframeScore, TradingSignal
from switchcx.strategy.session_filter import is_market_open, to_utc
from switchcx.strategy.signals import (
    MarketAnalysis,
    MarketData,
    SignalGenerator,
    analyze_market,
)

logger = logging.getLogger("switchcx")

AlertType = Literal["status", "get_ready", "limit_order", "reversal", "direction_change"]


@dataclass(frozen=True)
class Alert:
    """A notification produced by a scan cycle."""

    alert_type: AlertType
    message: str
    price: float
    signal: Optional[TradingSignal] = None
    timeframe_scores: tuple[TimeframeScore, ...] = ()
    confidence: Optional[SignalConfidence] = None


AlertSink = Callable[[Alert], None]
MarketOpen = Union[bool, Callable[[datetime], bool]]


def _opposite(direction: str) -> str:
    return "bearish" if direction == "bullish" else "bullish"


class ScanEngine:
    """Runs scan cycles against caller-supplied candles.

    Args:
        config: Strategy parameters.
        state: Engine state carried between cycles; a fresh one if omitted.
        generator: Signal generator; built from *config* if omitted.
        signal_store: Holder of the active signal.
        history: Trade-history store fed with opened and closed trades.
        alert_sink: Callable receiving every ``Alert``; alerts are only
            logged when omitted.
        market_open: Fixed flag or callable on the UTC time; defaults to
            the spot gold trading week.
    """

    def __init__(
        self,
        config: Optional[StrategyConfig] = None,
        state: Optional[EngineState] = None,
        generator: Optional[SignalGenerator] = None,
        signal_store: Optional[SignalStore] = None,
        history: Optional[TradeHistoryStore] = None,
        alert_sink: Optional[AlertSink] = None,
        market_open: MarketOpen = is_market_open,
    ) -> None:
        self._config = config or StrategyConfig()
        self._state = state or EngineState()
        self._generator = generator or SignalGenerator(self._config)
        self._signals = signal_store or InMemorySignalStore(
            self._config.signal_ttl_minutes * 60_000,
        )
        self._history = history or InMemoryTradeHistory()
        self._alert_sink = alert_sink
        self._market_open = market_open

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def signal_store(self) -> SignalStore:
        return self._signals

    @property
    def history(self) -> TradeHistoryStore:
        return self._history

    # ── Public API ───────────────────────────────────────────────────────

    def scan(
        self,
        market_data: MarketData,
        current_price: Optional[float] = None,
        now: Optional[int] = None,
        market_context: Optional[MarketContext] = None,
    ) -> dict:
        """Execute one scan cycle.

        Returns a dict describing the outcome:

        - ``{"action": "skipped", "reason": "no_data"}``
        - ``{"action": "emergency_exit", "reason": "...", "signal_id": ...}``
        - ``{"action": "blocked", "reason": "market_context", "tier": ...}``
        - ``{"action": "scanned", "tier": ..., "mode": ..., "alerts": [...]}``

        Args:
            market_data: Candles per timeframe, oldest-first.
            current_price: Latest price.  Defaults to the last 5m close
                (falling back to the last 1h close).
            now: Evaluation time in epoch ms.  Defaults to the wall clock.
            market_context: Economic events and volatility regime;
                neutral when omitted.

        Raises:
            ValueError: If candles are not in ascending timestamp order.
        """
        if now is None:
            now = int(datetime.now(timezone.utc).timestamp() * 1000)
        context = market_context or NEUTRAL_CONTEXT

        if current_price is None:
            latest = market_data.get("5m") or market_data.get("1h")
            if not latest:
                logger.debug("No candles to scan")
                return {"action": "skipped", "reason": "no_data"}
            current_price = latest[-1].close

        analysis = analyze_market(market_data, self._config)

        # 1 ── Active signal invalidation
        active = self._signals.get_active_signal(now)
        if active is not None:
            reason = self._reversal_reason(active, current_price, analysis)
            if reason is not None:
                self._emergency_exit(active, current_price, now, reason)
                return {"action": "emergency_exit", "reason": reason, "signal_id": active.id}
            logger.info(
                "Holding %s signal %s (open %d min)",
                active.direction, active.id, self._signals.get_signal_age(now) // 60_000,
            )

        tier = analysis.tier
        logger.info(
            "Scan: tier %d (%s) scores=%s price=%.2f",
            tier.tier, tier.mode,
            [s.score for s in analysis.ordered_scores], current_price,
        )

        # 2 ── Market context
        if should_avoid_trading(context, now):
            self._emit(Alert(
                alert_type="status",
                message="Trading paused: high-impact news or extreme volatility",
                price=current_price,
                timeframe_scores=analysis.ordered_scores,
            ))
            return {"action": "blocked", "reason": "market_context", "tier": tier.tier}

        # 3 ── Tier transitions
        alerts: list[Alert] = []
        should_alert = self._is_market_open(now) and tier.tier >= 3
        if should_alert and in_emergency_cooldown(self._state, now, self._config):
            logger.info("Tier %d alert suppressed by emergency cooldown", tier.tier)
            should_alert = False

        if should_alert and tier.tier == 3 and self._state.last_alert_tier < 3:
            alerts.extend(self._on_tier_3(market_data, analysis, current_price, now, context))
            self._state.last_alert_tier = 3
        elif should_alert and tier.tier == 4 and self._state.last_alert_tier < 4:
            alerts.extend(self._on_tier_4(market_data, analysis, current_price, now, context))
            self._state.last_alert_tier = 4
        elif tier.tier < 3 and self._state.last_alert_tier >= 3:
            logger.info("Tier dropped to %d, re-arming alerts", tier.tier)
            self._state.last_alert_tier = 0

        for alert in alerts:
            self._emit(alert)

        return {
            "action": "scanned",
            "tier": tier.tier,
            "mode": tier.mode,
            "alerts": [a.alert_type for a in alerts],
        }

    # ── Tier handlers ────────────────────────────────────────────────────

    def _on_tier_3(
        self,
        market_data: MarketData,
        analysis: MarketAnalysis,
        price: float,
        now: int,
        context: MarketContext,
    ) -> list[Alert]:
        if analysis.tier.mode == "aggressive":
            signal = self._generator.generate_signal(
                market_data, price, self._state, now=now, allow_early_entry=True,
            )
            if signal is not None:
                return self._open_signal(signal, analysis, price, now, context)
        return [Alert(
            alert_type="status",
            message=f"Setup Building: tier 3 {analysis.tier.mode} confirmation",
            price=price,
            timeframe_scores=analysis.ordered_scores,
        )]

    def _on_tier_4(
        self,
        market_data: MarketData,
        analysis: MarketAnalysis,
        price: float,
        now: int,
        context: MarketContext,
    ) -> list[Alert]:
        signal = self._generator.generate_signal(
            market_data, price, self._state, now=now,
        )
        if signal is not None:
            return self._open_signal(signal, analysis, price, now, context)
        direction = self._majority_direction(analysis)
        return [Alert(
            alert_type="get_ready",
            message=f"Get Ready: full {direction} alignment, waiting for breakout",
            price=price,
            timeframe_scores=analysis.ordered_scores,
        )]

    # ── Helpers ──────────────────────────────────────────────────────────

    def _open_signal(
        self,
        signal: TradingSignal,
        analysis: MarketAnalysis,
        price: float,
        now: int,
        context: MarketContext,
    ) -> list[Alert]:
        alerts: list[Alert] = []
        previous = self._state.last_signal_direction
        if previous is not None and previous != signal.direction:
            alerts.append(Alert(
                alert_type="direction_change",
                message=f"Direction change: {previous} to {signal.direction}",
                price=price,
                signal=signal,
            ))

        confidence = calculate_signal_confidence(
            signal, context, analysis.ordered_scores, self._history,
        )
        alerts.append(Alert(
            alert_type="limit_order",
            message=(
                f"{signal.direction.upper()} limit at ${signal.entry_price:.2f}, "
                f"SL ${signal.stop_loss:.2f}, TP1 ${signal.tp1:.2f}, "
                f"TP2 ${signal.tp2:.2f} (confidence {confidence.score})"
            ),
            price=price,
            signal=signal,
            timeframe_scores=analysis.ordered_scores,
            confidence=confidence,
        ))

        self._signals.set_active_signal(signal, now)
        self._history.add_trade(open_trade_from_signal(signal))
        self._state.last_signal_direction = signal.direction
        return alerts

    def _reversal_reason(
        self, signal: TradingSignal, price: float, analysis: MarketAnalysis,
    ) -> Optional[str]:
        """Why *signal* must be abandoned at *price*, or ``None``."""
        is_long = signal.direction == "bullish"
        if (is_long and price <= signal.stop_loss) or (
            not is_long and price >= signal.stop_loss
        ):
            return "stop_loss_hit"

        adverse = signal.entry_price - price if is_long else price - signal.entry_price
        risk = signal.risk
        if risk > 0 and adverse >= self._config.reversal_stop_fraction * risk:
            return "approaching_stop"

        against = _opposite(signal.direction)
        if analysis.trends["4h"] == against and analysis.trends["1h"] == against:
            return "trend_reversal"
        return None

    def _emergency_exit(
        self, signal: TradingSignal, price: float, now: int, reason: str,
    ) -> None:
        logger.warning(
            "Emergency exit on %s at %.2f: %s", signal.id, price, reason,
        )
        self._emit(Alert(
            alert_type="reversal",
            message=f"EXIT {signal.direction.upper()} at ${price:.2f} ({reason})",
            price=price,
            signal=signal,
        ))

        trade = self._history.get_trade(signal.id)
        if trade is not None and not trade.is_closed:
            closed = close_trade(trade, price, now, reason)
            self._history.update_trade(closed)
            register_closed_trade(self._state, closed.pnl, self._config)

        if reason == "stop_loss_hit":
            record_stop_loss(self._state, now)
        self._signals.invalidate_signal()
        record_emergency_exit(self._state, now)

    @staticmethod
    def _majority_direction(analysis: MarketAnalysis) -> Direction:
        trends = list(analysis.trends.values())
        bullish = trends.count("bullish")
        bearish = trends.count("bearish")
        if bullish > bearish:
            return "bullish"
        if bearish > bullish:
            return "bearish"
        return analysis.dominant_direction()

    def _is_market_open(self, now: int) -> bool:
        if callable(self._market_open):
            return self._market_open(to_utc(now))
        return bool(self._market_open)

    def _emit(self, alert: Alert) -> None:
        logger.info("Alert [%s]: %s", alert.alert_type, alert.message)
        if self._alert_sink is None:
            return
        try:
            self._alert_sink(alert)
        except Exception as exc:
            logger.error("Alert delivery failed: %s", exc)
