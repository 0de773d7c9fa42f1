"""Engine state dataclass.

The mutable bookkeeping the decision core reads and updates between
evaluations.  The caller owns one instance per trading context and passes
it into every call; nothing in the core holds it globally.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class EngineState:
    """Session counters, risk lockout and alert bookkeeping.

    Timestamps are epoch milliseconds.
    """

    session_trades: int = 0
    consecutive_losses: int = 0
    locked_out: bool = False
    last_stop_loss_at: Optional[int] = None
    last_emergency_exit_at: Optional[int] = None
    last_alert_tier: int = 0
    last_signal_direction: Optional[str] = None  # direction of the last alerted signal
