from __future__ import annotations

from datetime import UTC, datetime, timedelta

from fxsignal.domain.models import Session, SessionName
from fxsignal.market.instruments import SESSION_PAIRS

INTERVAL = timedelta(minutes=5)


def _as_utc(now: datetime) -> datetime:
    if now.tzinfo is None:
        raise ValueError("now must be timezone-aware")
    return now.astimezone(UTC)


def resolve_session(now: datetime) -> Session:
    hour = _as_utc(now).hour
    if hour < 8:
        name = SessionName.ASIAN
    elif hour < 16:
        name = SessionName.LONDON
    else:
        name = SessionName.NEW_YORK
    return Session(name=name, pairs=SESSION_PAIRS[name])


def next_five_minute_interval(now: datetime) -> tuple[datetime, datetime]:
    """Next 5-minute wall-clock window at or after ``now``.

    An instant exactly on a boundary (no seconds or microseconds) is its own
    start; anything later rolls forward to the following boundary.
    """
    current = _as_utc(now)
    floored = current.replace(
        minute=current.minute - current.minute % 5,
        second=0,
        microsecond=0,
    )
    start = floored if floored == current else floored + INTERVAL
    return start, start + INTERVAL


def time_until_next_interval(now: datetime) -> timedelta:
    start, _ = next_five_minute_interval(now)
    return start - _as_utc(now)
