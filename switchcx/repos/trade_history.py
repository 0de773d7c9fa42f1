"""Trade history — the store the confidence scorer and scan engine record trades in.

``TradeHistoryStore`` is the interface; ``InMemoryTradeHistory`` keeps the
most recent trades in a bounded list.
"""

import logging
from dataclasses import dataclass, replace
from typing import Optional, Protocol, runtime_checkable

import numpy as np

from switchcx.strategy.models import TradingSignal

logger = logging.getLogger("switchcx")

MAX_STORED_TRADES = 100


@dataclass(frozen=True)
class TradeRecord:
    """One trade taken from a signal.  Times are epoch milliseconds."""

    id: str
    signal: TradingSignal
    entry_price: float
    entry_time: int
    exit_price: Optional[float] = None
    exit_time: Optional[int] = None
    exit_reason: Optional[str] = None
    pnl: Optional[float] = None
    pnl_percent: Optional[float] = None
    r_multiple: Optional[float] = None

    @property
    def is_closed(self) -> bool:
        return self.exit_time is not None and self.pnl is not None

    @property
    def duration(self) -> int:
        if self.exit_time is None:
            return 0
        return self.exit_time - self.entry_time


@dataclass(frozen=True)
class PerformanceMetrics:
    total_trades: int = 0
    winning_trades: int = 0
    losing_trades: int = 0
    win_rate: float = 0.0  # percent
    avg_win: float = 0.0
    avg_loss: float = 0.0
    profit_factor: float = 0.0
    avg_r_multiple: float = 0.0
    max_drawdown: float = 0.0
    total_pnl: float = 0.0
    best_trade: float = 0.0
    worst_trade: float = 0.0
    avg_hold_time: float = 0.0  # ms
    sharpe_ratio: float = 0.0


def open_trade_from_signal(signal: TradingSignal) -> TradeRecord:
    return TradeRecord(
        id=signal.id,
        signal=signal,
        entry_price=signal.entry_price,
        entry_time=signal.timestamp,
    )


def close_trade(
    trade: TradeRecord, exit_price: float, exit_time: int, reason: str,
) -> TradeRecord:
    """Return *trade* closed at *exit_price*, with P&L and R-multiple filled in."""
    sign = 1.0 if trade.signal.direction == "bullish" else -1.0
    pnl = sign * (exit_price - trade.entry_price)
    risk = trade.signal.risk
    return replace(
        trade,
        exit_price=exit_price,
        exit_time=exit_time,
        exit_reason=reason,
        pnl=pnl,
        pnl_percent=pnl / trade.entry_price * 100.0 if trade.entry_price else 0.0,
        r_multiple=pnl / risk if risk > 0 else 0.0,
    )


@runtime_checkable
class TradeHistoryStore(Protocol):
    def add_trade(self, trade: TradeRecord) -> None: ...

    def update_trade(self, trade: TradeRecord) -> None: ...

    def get_trade(self, trade_id: str) -> Optional[TradeRecord]: ...

    def get_all_trades(self) -> list[TradeRecord]: ...

    def get_open_trades(self) -> list[TradeRecord]: ...

    def get_historical_success_rate(
        self, price_level: float, direction: str, tolerance: float = 50.0,
    ) -> float: ...

    def calculate_performance_metrics(self) -> PerformanceMetrics: ...


class InMemoryTradeHistory:
    """Bounded in-memory ``TradeHistoryStore``.

    Args:
        max_trades: Oldest trades are dropped beyond this many.
    """

    def __init__(self, max_trades: int = MAX_STORED_TRADES) -> None:
        self._trades: list[TradeRecord] = []
        self._max_trades = max_trades

    # ── Write ────────────────────────────────────────────────────────────

    def add_trade(self, trade: TradeRecord) -> None:
        self._trades.append(trade)
        if len(self._trades) > self._max_trades:
            del self._trades[: len(self._trades) - self._max_trades]
        logger.debug("Trade added to history: %s", trade.id)

    def update_trade(self, trade: TradeRecord) -> None:
        """Replace the stored trade with the same ``id``; unknown ids are ignored."""
        for i, existing in enumerate(self._trades):
            if existing.id == trade.id:
                self._trades[i] = trade
                return
        logger.warning("Cannot update unknown trade %s", trade.id)

    def clear(self) -> None:
        self._trades.clear()

    # ── Read ─────────────────────────────────────────────────────────────

    def get_trade(self, trade_id: str) -> Optional[TradeRecord]:
        for trade in self._trades:
            if trade.id == trade_id:
                return trade
        return None

    def get_all_trades(self) -> list[TradeRecord]:
        return list(self._trades)

    def get_open_trades(self) -> list[TradeRecord]:
        return [t for t in self._trades if not t.is_closed]

    def get_historical_success_rate(
        self, price_level: float, direction: str, tolerance: float = 50.0,
    ) -> float:
        """Win percentage of closed trades in *direction* entered within
        *tolerance* of *price_level*; 50 with no such history."""
        relevant = [
            t for t in self._trades
            if t.is_closed
            and t.signal.direction == direction
            and abs(t.entry_price - price_level) <= tolerance
        ]
        if not relevant:
            return 50.0
        winners = sum(1 for t in relevant if t.pnl > 0)
        return winners / len(relevant) * 100.0

    def calculate_performance_metrics(self) -> PerformanceMetrics:
        """Aggregate statistics over closed trades.

        ``profit_factor`` is 999 when there are wins but no losses.
        """
        trades = [t for t in self._trades if t.is_closed]
        if not trades:
            return PerformanceMetrics()

        pnls = np.array([t.pnl for t in trades], dtype=float)
        wins = pnls[pnls > 0]
        losses = pnls[pnls < 0]

        total_win = float(wins.sum())
        total_loss = float(abs(losses.sum()))
        if total_loss > 0:
            profit_factor = total_win / total_loss
        else:
            profit_factor = 999.0 if total_win > 0 else 0.0

        equity = np.cumsum(pnls)
        peaks = np.maximum.accumulate(np.concatenate(([0.0], equity)))[1:]
        max_drawdown = float((peaks - equity).max())

        returns = np.array([t.pnl_percent or 0.0 for t in trades], dtype=float)
        std = float(returns.std())
        sharpe = float(returns.mean()) / std if std > 0 else 0.0

        return PerformanceMetrics(
            total_trades=len(trades),
            winning_trades=int(wins.size),
            losing_trades=int(losses.size),
            win_rate=wins.size / len(trades) * 100.0,
            avg_win=total_win / wins.size if wins.size else 0.0,
            avg_loss=total_loss / losses.size if losses.size else 0.0,
            profit_factor=profit_factor,
            avg_r_multiple=sum(t.r_multiple or 0.0 for t in trades) / len(trades),
            max_drawdown=max_drawdown,
            total_pnl=float(pnls.sum()),
            best_trade=float(pnls.max()),
            worst_trade=float(pnls.min()),
            avg_hold_time=sum(t.duration for t in trades) / len(trades),
            sharpe_ratio=sharpe,
        )
