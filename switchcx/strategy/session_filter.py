"""Session filter — which trading session a UTC instant falls in, and whether to trade it."""

from datetime import datetime, timezone
from typing import Protocol, runtime_checkable

from switchcx.strategy.models import TradingSession


# (start hour inclusive, end hour exclusive), UTC
LONDON_HOURS = (8, 13)
OVERLAP_HOURS = (13, 17)
NEW_YORK_HOURS = (17, 22)

SESSION_LABELS: dict[str, str] = {
    "london": "London",
    "new_york": "New York",
    "overlap": "London/NY Overlap",
    "asian": "Asian",
}


@runtime_checkable
class SessionProvider(Protocol):
    """What the signal generator needs to know about sessions."""

    def get_current_session(self, now: datetime) -> TradingSession: ...

    def should_trade_in_session(
        self, session: TradingSession, volatility_score: float,
    ) -> bool: ...


def to_utc(timestamp_ms: int) -> datetime:
    """Convert epoch milliseconds to an aware UTC datetime."""
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc)


def get_current_session(now: datetime) -> TradingSession:
    """Classify *now* (naive values are taken as UTC) into a session.

    Overlap 13:00–17:00, London 08:00–13:00, New York 17:00–22:00,
    Asian otherwise.
    """
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    hour = now.hour

    if OVERLAP_HOURS[0] <= hour < OVERLAP_HOURS[1]:
        return "overlap"
    if LONDON_HOURS[0] <= hour < LONDON_HOURS[1]:
        return "london"
    if NEW_YORK_HOURS[0] <= hour < NEW_YORK_HOURS[1]:
        return "new_york"
    return "asian"


def should_trade_in_session(
    session: TradingSession,
    volatility_score: float,
    asian_min_volatility: float = 20.0,
) -> bool:
    """London, New York and the overlap always trade; Asian only when
    *volatility_score* reaches *asian_min_volatility*."""
    if session in ("london", "new_york", "overlap"):
        return True
    return volatility_score >= asian_min_volatility


def session_label(session: TradingSession) -> str:
    return SESSION_LABELS.get(session, session)


class SessionFilter:
    """Default ``SessionProvider`` built on the fixed UTC session table."""

    def __init__(self, asian_min_volatility: float = 20.0) -> None:
        self.asian_min_volatility = asian_min_volatility

    def get_current_session(self, now: datetime) -> TradingSession:
        return get_current_session(now)

    def should_trade_in_session(
        self, session: TradingSession, volatility_score: float,
    ) -> bool:
        return should_trade_in_session(
            session, volatility_score, self.asian_min_volatility,
        )


def is_market_open(now: datetime) -> bool:
    """Spot gold trades from Sunday 23:00 UTC to Friday 22:00 UTC."""
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    weekday = now.weekday()  # Monday == 0
    if weekday == 5:
        return False
    if weekday == 4:
        return now.hour < 22
    if weekday == 6:
        return now.hour >= 23
    return True
