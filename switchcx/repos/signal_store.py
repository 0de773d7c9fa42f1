"""Signal store — holds the single active signal between scan cycles."""

import logging
from dataclasses import dataclass
from typing import Optional, Protocol, runtime_checkable

from switchcx.strategy.models import TradingSignal

logger = logging.getLogger("switchcx")

DEFAULT_TTL_MS = 4 * 60 * 60 * 1000


@runtime_checkable
class SignalStore(Protocol):
    def set_active_signal(self, signal: TradingSignal, now: int) -> None: ...

    def get_active_signal(self, now: int) -> Optional[TradingSignal]: ...

    def invalidate_signal(self) -> None: ...

    def has_active_signal(self) -> bool: ...

    def get_signal_age(self, now: int) -> int: ...

    def get_active_signal_direction(self) -> Optional[str]: ...


@dataclass
class _StoredSignal:
    signal: TradingSignal
    created_at: int
    last_validated: int


class InMemorySignalStore:
    """``SignalStore`` keeping one signal until it is invalidated or expires.

    Args:
        ttl_ms: Age (epoch ms) after which the active signal is dropped.
    """

    def __init__(self, ttl_ms: int = DEFAULT_TTL_MS) -> None:
        self._ttl_ms = ttl_ms
        self._active: Optional[_StoredSignal] = None

    def set_active_signal(self, signal: TradingSignal, now: int) -> None:
        self._active = _StoredSignal(signal=signal, created_at=now, last_validated=now)
        logger.info(
            "Active signal set: %s %s entry=%.2f",
            signal.id, signal.direction, signal.entry_price,
        )

    def get_active_signal(self, now: int) -> Optional[TradingSignal]:
        """Return the active signal, expiring it first if older than the TTL."""
        if self._active is None:
            return None
        age = now - self._active.created_at
        if age > self._ttl_ms:
            logger.info("Active signal expired after %d minutes", age // 60_000)
            self._active = None
            return None
        self._active.last_validated = now
        return self._active.signal

    def invalidate_signal(self) -> None:
        if self._active is not None:
            logger.info("Active signal %s invalidated", self._active.signal.id)
        self._active = None

    def has_active_signal(self) -> bool:
        return self._active is not None

    def get_signal_age(self, now: int) -> int:
        if self._active is None:
            return 0
        return now - self._active.created_at

    def get_active_signal_direction(self) -> Optional[str]:
        if self._active is None:
            return None
        return self._active.signal.direction
