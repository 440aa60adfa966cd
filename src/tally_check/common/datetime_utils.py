from __future__ import annotations

import time as _time
from datetime import date, datetime, time
from typing import Any, Optional


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value[:10], "%Y-%m-%d").date()


def parse_time(value: Any) -> Optional[time]:
    """Parse Postgres TIME values ('08:30', '08:30:00', '08:30:00.123')."""

    if value is None or value == "":
        return None
    if isinstance(value, time):
        return value

    parts = str(value).strip().split(":")
    if len(parts) < 2:
        raise ValueError(f"Invalid time string: {value!r}")
    hours = int(parts[0])
    minutes = int(parts[1])
    seconds = int(float(parts[2])) if len(parts) >= 3 and parts[2] else 0
    return time(hour=hours, minute=minutes, second=seconds)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse Postgres TIMESTAMP/TIMESTAMPTZ strings returned by PostgREST."""

    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    s = str(value).strip().replace(" ", "T", 1)
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    return datetime.fromisoformat(s)


def format_time(value: Optional[time | datetime], fmt: str = "%H:%M") -> str:
    if value is None:
        return "-"
    return value.strftime(fmt)


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()


def now_epoch_ms() -> int:
    """Current time as epoch milliseconds (format of check_in_prompts.expires_at)."""
    return int(_time.time() * 1000)


def minutes_of_day(value: time) -> int:
    return value.hour * 60 + value.minute
