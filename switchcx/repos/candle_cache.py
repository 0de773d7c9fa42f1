"""Candle cache — per-timeframe candle lists that expire after one bar."""

import logging
from dataclasses import dataclass
from typing import Optional, Protocol, runtime_checkable

from switchcx.strategy.models import TIMEFRAME_MINUTES, Candle, Timeframe

logger = logging.getLogger("switchcx")


@runtime_checkable
class CandleCache(Protocol):
    def get(self, timeframe: Timeframe, key: str, now: int) -> Optional[list[Candle]]: ...

    def set(self, timeframe: Timeframe, key: str, candles: list[Candle], now: int) -> None: ...

    def clear(self) -> None: ...

    def clear_timeframe(self, timeframe: Timeframe) -> None: ...


@dataclass
class _CacheEntry:
    candles: list[Candle]
    stored_at: int
    expires_at: int


class InMemoryCandleCache:
    """``CandleCache`` whose entries live for one bar of their timeframe.

    Entries are keyed by ``(timeframe, key)``; *key* identifies the
    source (a file path, a request size).  Times are epoch milliseconds.
    """

    def __init__(self) -> None:
        self._entries: dict[tuple[str, str], _CacheEntry] = {}

    def get(self, timeframe: Timeframe, key: str, now: int) -> Optional[list[Candle]]:
        entry = self._entries.get((timeframe, key))
        if entry is None:
            return None
        if now >= entry.expires_at:
            logger.debug("Candle cache expired for %s", timeframe)
            del self._entries[(timeframe, key)]
            return None
        logger.debug(
            "Candle cache hit for %s (age %ds)", timeframe, (now - entry.stored_at) // 1000,
        )
        return entry.candles

    def set(self, timeframe: Timeframe, key: str, candles: list[Candle], now: int) -> None:
        ttl = TIMEFRAME_MINUTES[timeframe] * 60_000
        self._entries[(timeframe, key)] = _CacheEntry(
            candles=list(candles), stored_at=now, expires_at=now + ttl,
        )
        logger.debug("Cached %d candles for %s", len(candles), timeframe)

    def clear(self) -> None:
        self._entries.clear()

    def clear_timeframe(self, timeframe: Timeframe) -> None:
        for cache_key in [k for k in self._entries if k[0] == timeframe]:
            del self._entries[cache_key]

    def __len__(self) -> int:
        return len(self._entries)
