"""Backtest simulator — replays the signal generator over historical candles.

Walks the 1h series with a cursor, hands the generator the data that
would have been visible at each step, and forward-simulates every
accepted signal against the following 1h candles.  No orders are placed;
outcomes are measured in R-multiples.
"""

import logging
from dataclasses import dataclass, field
from typing import Literal, Optional

from switchcx.backtest.stats import calculate_stats
from switchcx.config import StrategyConfig
from switchcx.models.engine_state import EngineState
from switchcx.strategy.models import Candle, Direction, Timeframe
from switchcx.strategy.signals import MarketData, SignalGenerator

logger = logging.getLogger("switchcx.backtest")

BacktestMode = Literal["conservative", "aggressive"]


@dataclass(frozen=True)
class BacktestSignal:
    """One simulated trade."""

    timestamp: int
    direction: Direction
    entry: float
    stop: float
    tp1: float
    tp2: float
    exit_price: float
    r_multiple: float
    outcome: Literal["win", "loss"]
    exit_reason: Literal["stop_loss", "tp1_hit", "timeout"]


@dataclass(frozen=True)
class BacktestResult:
    mode: str
    total_signals: int = 0
    wins: int = 0
    losses: int = 0
    win_rate: float = 0.0  # percent
    total_r_multiples: float = 0.0
    avg_r_multiple: float = 0.0
    best_trade: float = 0.0
    worst_trade: float = 0.0
    profit_factor: float = 0.0
    max_drawdown_r: float = 0.0
    sharpe_ratio: float = 0.0
    signals: tuple[BacktestSignal, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class ModeComparison:
    conservative: BacktestResult
    aggressive: BacktestResult
    conservative_score: float
    aggressive_score: float
    recommendation: Literal["conservative", "aggressive", "both_equal"]


# ── Pure helpers ─────────────────────────────────────────────────────────


def simulate_trade(
    timestamp: int,
    direction: Direction,
    entry: float,
    stop: float,
    tp1: float,
    tp2: float,
    future_candles: list[Candle],
) -> BacktestSignal:
    """Resolve a trade against *future_candles*.

    Within each candle the stop is checked before TP1, so a candle that
    spans both resolves as a loss.  With neither touched the trade exits
    at the last forward close (``timeout``), or at entry when there are
    no forward candles.
    """
    is_long = direction == "bullish"
    exit_price = entry
    exit_reason = "timeout"

    for candle in future_candles:
        stop_hit = candle.low <= stop if is_long else candle.high >= stop
        if stop_hit:
            exit_price, exit_reason = stop, "stop_loss"
            break
        target_hit = candle.high >= tp1 if is_long else candle.low <= tp1
        if target_hit:
            exit_price, exit_reason = tp1, "tp1_hit"
            break
    else:
        if future_candles:
            exit_price = future_candles[-1].close

    risk = abs(entry - stop)
    move = exit_price - entry if is_long else entry - exit_price
    r_multiple = move / risk if risk > 0 else 0.0

    return BacktestSignal(
        timestamp=timestamp,
        direction=direction,
        entry=entry,
        stop=stop,
        tp1=tp1,
        tp2=tp2,
        exit_price=exit_price,
        r_multiple=r_multiple,
        outcome="win" if r_multiple > 0 else "loss",
        exit_reason=exit_reason,
    )


def calculate_results(signals: list[BacktestSignal], mode: str) -> BacktestResult:
    """Aggregate simulated trades into a ``BacktestResult``."""
    stats = calculate_stats([s.r_multiple for s in signals])
    return BacktestResult(
        mode=mode,
        total_signals=stats["total_trades"],
        wins=stats["wins"],
        losses=stats["losses"],
        win_rate=stats["win_rate"],
        total_r_multiples=stats["total_r"],
        avg_r_multiple=stats["avg_r_multiple"],
        best_trade=stats["best_trade"],
        worst_trade=stats["worst_trade"],
        profit_factor=stats["profit_factor"],
        max_drawdown_r=stats["max_drawdown_r"],
        sharpe_ratio=stats["sharpe_ratio"],
        signals=tuple(signals),
    )


def compare_modes(conservative: BacktestResult, aggressive: BacktestResult) -> ModeComparison:
    """Rank the two modes by ``win_rate × avg_r_multiple``."""
    c_score = conservative.win_rate * conservative.avg_r_multiple
    a_score = aggressive.win_rate * aggressive.avg_r_multiple
    if c_score > a_score:
        recommendation = "conservative"
    elif a_score > c_score:
        recommendation = "aggressive"
    else:
        recommendation = "both_equal"
    return ModeComparison(
        conservative=conservative,
        aggressive=aggressive,
        conservative_score=c_score,
        aggressive_score=a_score,
        recommendation=recommendation,
    )


# ── Simulator ────────────────────────────────────────────────────────────


class BacktestSimulator:
    """Replays the signal generator over historical data.

    Args:
        config: Strategy and backtest parameters.
        generator: Signal generator to replay; built from *config* if omitted.
    """

    def __init__(
        self,
        config: Optional[StrategyConfig] = None,
        generator: Optional[SignalGenerator] = None,
    ) -> None:
        self._config = config or StrategyConfig()
        self._generator = generator or SignalGenerator(self._config)

    # ── Public API ───────────────────────────────────────────────────────

    def run(self, market_data: MarketData, mode: BacktestMode) -> BacktestResult:
        """Execute a backtest for one mode.

        Args:
            market_data: Full candle history per timeframe, oldest-first.
            mode: Only signals generated in this mode are simulated.

        Returns:
            ``BacktestResult`` for the accepted signals.
        """
        if mode not in ("conservative", "aggressive"):
            raise ValueError(f"mode must be conservative or aggressive, got {mode!r}")

        cfg = self._config
        candles_1h = market_data.get("1h", [])
        end = len(candles_1h) - cfg.backtest_end_margin
        signals: list[BacktestSignal] = []

        logger.info(
            "Backtest (%s) over %d 1h candles", mode, len(candles_1h),
        )

        cursor = cfg.backtest_start_index
        while cursor < end:
            snapshot = self.slice_market_data(market_data, cursor)
            candle = candles_1h[cursor]

            signal = self._generator.generate_signal(
                snapshot,
                candle.close,
                EngineState(),
                now=candle.timestamp,
                allow_early_entry=(mode == "aggressive"),
            )

            if signal is None or signal.mode != mode:
                cursor += cfg.backtest_step
                continue

            future = candles_1h[cursor + 1 : cursor + 1 + cfg.backtest_forward_candles]
            trade = simulate_trade(
                signal.timestamp,
                signal.direction,
                signal.entry_price,
                signal.stop_loss,
                signal.tp1,
                signal.tp2,
                future,
            )
            signals.append(trade)
            logger.debug(
                "Backtest trade at %d: %s %s %.2fR",
                cursor, trade.direction, trade.exit_reason, trade.r_multiple,
            )

            # Exclude the look-forward window from new entries
            cursor += cfg.backtest_step + cfg.backtest_skip_after_signal

        result = calculate_results(signals, mode)
        logger.info(
            "Backtest (%s): %d signals, win rate %.1f%%, avg %.2fR, PF %.2f",
            mode, result.total_signals, result.win_rate,
            result.avg_r_multiple, result.profit_factor,
        )
        return result

    def run_comparison(self, market_data: MarketData) -> ModeComparison:
        """Backtest both modes and recommend the better one."""
        return compare_modes(
            self.run(market_data, "conservative"),
            self.run(market_data, "aggressive"),
        )

    def slice_market_data(
        self, market_data: MarketData, cursor: int,
    ) -> dict[Timeframe, list[Candle]]:
        """Truncate every timeframe to what is visible at 1h index *cursor*."""
        return {
            "4h": market_data.get("4h", [])[: cursor // 4 + self._config.backtest_4h_offset],
            "1h": market_data.get("1h", [])[: cursor + 1],
            "15m": market_data.get("15m", [])[: cursor * 4 + 1],
            "5m": market_data.get("5m", [])[: cursor * 12 + 1],
        }
