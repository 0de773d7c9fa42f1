"""Trailing stop — stop-loss tracking for one open signal.

Rules:
  - At 1×R profit → the stop may move to breakeven (entry price).
  - Afterwards the stop follows the Chandelier Exit, but only ever in the
    trade's favour; a looser Chandelier value is ignored.
"""

import math
from typing import Literal


class ChandelierTrailingStop:
    """Tracks and updates the stop for a single position.

    Args:
        entry_price: Original entry price.
        initial_sl: Original stop-loss price.
        direction: ``"bullish"`` (long) or ``"bearish"`` (short).
    """

    def __init__(
        self,
        entry_price: float,
        initial_sl: float,
        direction: Literal["bullish", "bearish"],
    ) -> None:
        if direction not in ("bullish", "bearish"):
            raise ValueError(f"direction must be bullish or bearish, got {direction!r}")
        self.entry_price = entry_price
        self.initial_sl = initial_sl
        self.direction = direction
        self.current_sl = initial_sl
        self._risk = abs(entry_price - initial_sl)

    @property
    def is_long(self) -> bool:
        return self.direction == "bullish"

    @property
    def risk(self) -> float:
        return self._risk

    def profit(self, current_price: float) -> float:
        """Unrealised profit per unit at *current_price*."""
        if self.is_long:
            return current_price - self.entry_price
        return self.entry_price - current_price

    def reached_breakeven_trigger(self, current_price: float) -> bool:
        """True once profit is at least one initial risk."""
        return self._risk > 0 and self.profit(current_price) >= self._risk

    def move_to_breakeven(self) -> float:
        self.current_sl = self.entry_price
        return self.entry_price

    def tighten(self, candidate: float) -> float | None:
        """Adopt *candidate* if it reduces risk.

        Returns:
            The new stop if it moved, ``None`` if no change.
        """
        if math.isnan(candidate):
            return None
        if self.is_long and candidate > self.current_sl:
            self.current_sl = candidate
            return candidate
        if not self.is_long and candidate < self.current_sl:
            self.current_sl = candidate
            return candidate
        return None

    def is_hit(self, current_price: float) -> bool:
        if self.is_long:
            return current_price <= self.current_sl
        return current_price >= self.current_sl
