"""Trade manager — partial take-profits, breakeven and trailing stop per open signal.

Each price update yields at most one action, checked in priority order:

1. TP1 reached → ``close_50``
2. TP2 reached (after TP1) → ``close_remaining`` (terminal)
3. +1R profit → ``move_to_breakeven``
4. Chandelier value tighter than the current stop → ``trail_stop``
5. Price through the current stop → ``stop_hit`` (terminal)
"""

import logging
from dataclasses import dataclass, field
from typing import Literal, Optional

from switchcx.risk.trailing_stop import ChandelierTrailingStop
from switchcx.strategy.models import TradingSignal

logger = logging.getLogger("switchcx")

ActionType = Literal[
    "close_50", "close_remaining", "move_to_breakeven", "trail_stop", "stop_hit",
]


@dataclass
class TradeManagementState:
    """Mutable per-signal management record."""

    stop: ChandelierTrailingStop
    tp1_hit: bool = False
    tp2_hit: bool = False
    break_even_set: bool = False
    trailing_stop_active: bool = False
    partial_close_at: list[float] = field(default_factory=list)

    @property
    def current_stop_loss(self) -> float:
        return self.stop.current_sl


@dataclass(frozen=True)
class TradeAction:
    action: Optional[ActionType] = None
    new_stop_loss: Optional[float] = None
    message: str = ""


NO_ACTION = TradeAction()


def _reached(price: float, target: float, is_long: bool) -> bool:
    return price >= target if is_long else price <= target


class TradeManager:
    """Owns the management state of every open signal, keyed by signal id."""

    def __init__(self) -> None:
        self._management: dict[str, TradeManagementState] = {}

    def initialize_trade(self, signal: TradingSignal) -> TradeManagementState:
        state = TradeManagementState(
            stop=ChandelierTrailingStop(
                signal.entry_price, signal.stop_loss, signal.direction,
            ),
        )
        self._management[signal.id] = state
        return state

    def get_management(self, signal_id: str) -> Optional[TradeManagementState]:
        return self._management.get(signal_id)

    def remove_trade(self, signal_id: str) -> None:
        self._management.pop(signal_id, None)

    def update_trade(
        self,
        signal: TradingSignal,
        current_price: float,
        chandelier_stop: Optional[float] = None,
    ) -> TradeAction:
        """Advance *signal*'s management with a new price.

        Args:
            signal: The managed signal.
            current_price: Latest price.
            chandelier_stop: Latest Chandelier Exit value for the trade's
                direction; defaults to the signal's own.

        Returns:
            The single ``TradeAction`` for this update (empty if nothing
            happened or the signal is not managed).
        """
        mgmt = self._management.get(signal.id)
        if mgmt is None:
            return NO_ACTION

        stop = mgmt.stop
        is_long = stop.is_long

        if not mgmt.tp1_hit and _reached(current_price, signal.tp1, is_long):
            mgmt.tp1_hit = True
            mgmt.partial_close_at.append(current_price)
            return TradeAction(
                action="close_50",
                message=f"TP1 hit! Close 50% at ${current_price:.2f}. Move stop to breakeven.",
            )

        if mgmt.tp1_hit and not mgmt.tp2_hit and _reached(current_price, signal.tp2, is_long):
            mgmt.tp2_hit = True
            mgmt.partial_close_at.append(current_price)
            self.remove_trade(signal.id)
            return TradeAction(
                action="close_remaining",
                message=f"TP2 hit! Close remaining 50% at ${current_price:.2f}.",
            )

        if not mgmt.break_even_set and stop.reached_breakeven_trigger(current_price):
            mgmt.break_even_set = True
            new_sl = stop.move_to_breakeven()
            return TradeAction(
                action="move_to_breakeven",
                new_stop_loss=new_sl,
                message=f"Profit at +1R! Moving stop to breakeven (${new_sl:.2f}).",
            )

        if mgmt.break_even_set:
            mgmt.trailing_stop_active = True
            candidate = chandelier_stop if chandelier_stop is not None else signal.chandelier_stop
            new_sl = stop.tighten(candidate)
            if new_sl is not None:
                return TradeAction(
                    action="trail_stop",
                    new_stop_loss=new_sl,
                    message=f"Trailing stop updated to ${new_sl:.2f} (Chandelier Exit).",
                )

        if stop.is_hit(current_price):
            self.remove_trade(signal.id)
            logger.info("Stop hit on %s at %.2f", signal.id, current_price)
            return TradeAction(
                action="stop_hit",
                message=f"Stop loss hit at ${current_price:.2f}. Exit trade.",
            )

        return NO_ACTION
