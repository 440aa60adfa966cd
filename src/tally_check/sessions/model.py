from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Optional


@dataclass(frozen=True)
class ClassSession:
    """Domain entity: one scheduled meeting of a course (`class_sessions` row)."""

    session_id: str
    course_id: str
    session_date: date
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    location: Optional[str] = None
    beacon_id: Optional[str] = None
    attendance_window_start: Optional[datetime] = None
    attendance_window_end: Optional[datetime] = None
    course_name: Optional[str] = None
    course_code: Optional[str] = None
    instructor_id: Optional[str] = None
