from __future__ import annotations

from datetime import datetime, time
from typing import Iterable

from ..common.datetime_utils import minutes_of_day
from ..core.enums import SessionStatus
from .model import ClassSession

_DAY_START = time(0, 0)
_DAY_END = time(23, 59)

_PRIORITY = {
    SessionStatus.ONGOING: 0,
    SessionStatus.UPCOMING: 1,
    SessionStatus.COMPLETED: 2,
}


def session_status(session: ClassSession, now: datetime) -> SessionStatus:
    """Classify a session relative to `now`.

    Past dates are completed, future dates upcoming. On the session day the
    current minute is compared with start/end (inclusive on both ends).
    """

    today = now.date()
    if session.session_date < today:
        return SessionStatus.COMPLETED
    if session.session_date > today:
        return SessionStatus.UPCOMING

    current = now.hour * 60 + now.minute
    start = minutes_of_day(session.start_time or _DAY_START)
    end = minutes_of_day(session.end_time or _DAY_END)

    if current < start:
        return SessionStatus.UPCOMING
    if current > end:
        return SessionStatus.COMPLETED
    return SessionStatus.ONGOING


def sort_by_priority(sessions: Iterable[ClassSession], now: datetime) -> list[ClassSession]:
    """Ongoing first, then upcoming, then completed; ties by date and start time."""

    return sorted(
        sessions,
        key=lambda s: (
            _PRIORITY[session_status(s, now)],
            s.session_date,
            s.start_time or _DAY_START,
        ),
    )
