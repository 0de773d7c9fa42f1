"""Risk lockout — session trade cap, consecutive-loss lockout, post-stop cooldowns.

Pure functions over a caller-owned ``EngineState``.
"""

import logging

from switchcx.config import StrategyConfig
from switchcx.models.engine_state import EngineState

logger = logging.getLogger("switchcx")

_MINUTE_MS = 60_000


# ── Mutation ─────────────────────────────────────────────────────────────


def record_stop_loss(state: EngineState, now: int) -> None:
    """Start the post-stop-loss cooldown at *now* (epoch ms)."""
    state.last_stop_loss_at = now
    logger.info("Stop loss recorded, cooldown started")


def record_emergency_exit(state: EngineState, now: int) -> None:
    """Start the emergency-exit cooldown and re-arm tier alerts."""
    state.last_emergency_exit_at = now
    state.last_alert_tier = 0


def register_closed_trade(
    state: EngineState,
    pnl: float,
    config: StrategyConfig | None = None,
) -> None:
    """Update the loss streak from a closed trade's P&L (or R-multiple).

    A loss extends the streak and locks trading once it reaches the
    lockout threshold; anything else clears the streak and the lock.
    """
    cfg = config or StrategyConfig()
    if pnl < 0:
        state.consecutive_losses += 1
        if state.consecutive_losses >= cfg.lockout_threshold:
            state.locked_out = True
            logger.warning(
                "Trading locked out after %d consecutive losses",
                state.consecutive_losses,
            )
    else:
        state.consecutive_losses = 0
        state.locked_out = False


def reset_session(state: EngineState) -> None:
    """Clear the per-session trade counter."""
    state.session_trades = 0


# ── Queries ──────────────────────────────────────────────────────────────


def in_stop_loss_cooldown(
    state: EngineState, now: int, config: StrategyConfig | None = None,
) -> bool:
    cfg = config or StrategyConfig()
    if state.last_stop_loss_at is None:
        return False
    return now - state.last_stop_loss_at < cfg.stop_loss_cooldown_minutes * _MINUTE_MS


def in_emergency_cooldown(
    state: EngineState, now: int, config: StrategyConfig | None = None,
) -> bool:
    cfg = config or StrategyConfig()
    if state.last_emergency_exit_at is None:
        return False
    return now - state.last_emergency_exit_at < cfg.emergency_cooldown_minutes * _MINUTE_MS


def can_trade(
    state: EngineState, now: int, config: StrategyConfig | None = None,
) -> tuple[bool, str]:
    """Check the risk preconditions for a new signal.

    Returns:
        ``(allowed, reason)``; *reason* is empty when allowed.
    """
    cfg = config or StrategyConfig()
    if state.locked_out:
        return False, "locked out after consecutive losses"
    if state.session_trades >= cfg.max_trades_per_session:
        return False, "max trades per session reached"
    if in_stop_loss_cooldown(state, now, cfg):
        remaining = cfg.stop_loss_cooldown_minutes * _MINUTE_MS - (now - state.last_stop_loss_at)
        return False, f"stop-loss cooldown, {-(-remaining // _MINUTE_MS)} min remaining"
    return True, ""
