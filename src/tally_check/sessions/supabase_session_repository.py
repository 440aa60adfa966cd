from __future__ import annotations

from datetime import date
from typing import Any, Optional, Sequence

from ..common.datetime_utils import parse_iso_date, parse_time, parse_timestamp
from ..database.connection import SupabaseConnection
from ..database.supabase_base import embedded, execute, first_or_none
from .model import ClassSession
from .repository import SessionRepository

SESSION_WITH_COURSE = "*, courses (id, name, code, instructor_id)"


def row_to_session(row: dict[str, Any]) -> ClassSession:
    course = embedded(row, "courses")
    return ClassSession(
        session_id=str(row["id"]),
        course_id=str(row["course_id"]),
        session_date=parse_iso_date(str(row["session_date"])),
        start_time=parse_time(row.get("start_time")),
        end_time=parse_time(row.get("end_time")),
        location=row.get("location"),
        beacon_id=row.get("beacon_id"),
        attendance_window_start=parse_timestamp(row.get("attendance_window_start")),
        attendance_window_end=parse_timestamp(row.get("attendance_window_end")),
        course_name=course.get("name"),
        course_code=course.get("code"),
        instructor_id=course.get("instructor_id"),
    )


class SupabaseSessionRepository(SessionRepository):
    def __init__(self, conn: SupabaseConnection):
        self._conn = conn

    def _table(self):
        return self._conn.client().table("class_sessions")

    def get_by_id(self, session_id: str) -> Optional[ClassSession]:
        row = first_or_none(execute(self._table().select(SESSION_WITH_COURSE).eq("id", session_id).limit(1)))
        return row_to_session(row) if row else None

    def list_by_course(self, course_id: str) -> Sequence[ClassSession]:
        rows = execute(
            self._table().select(SESSION_WITH_COURSE).eq("course_id", course_id).order("session_date", desc=True)
        )
        return [row_to_session(r) for r in rows]

    def list_for_date(self, session_date: date, course_ids: Optional[Sequence[str]] = None) -> Sequence[ClassSession]:
        if course_ids is not None and not course_ids:
            return []
        query = self._table().select(SESSION_WITH_COURSE).eq("session_date", session_date.isoformat())
        if course_ids is not None:
            query = query.in_("course_id", list(course_ids))
        return [row_to_session(r) for r in execute(query.order("start_time"))]

    def list_for_beacon_on_date(self, beacon_id: str, session_date: date) -> Sequence[ClassSession]:
        rows = execute(
            self._table()
            .select(SESSION_WITH_COURSE)
            .eq("beacon_id", beacon_id)
            .eq("session_date", session_date.isoformat())
            .order("start_time")
        )
        return [row_to_session(r) for r in rows]

    def create_session(self, values: dict) -> ClassSession:
        rows = execute(self._table().insert(values))
        return row_to_session(rows[0])

    def update_session(self, session_id: str, changes: dict) -> Optional[ClassSession]:
        row = first_or_none(execute(self._table().update(changes).eq("id", session_id)))
        return row_to_session(row) if row else None

    def delete_by_id(self, session_id: str) -> bool:
        return bool(execute(self._table().delete().eq("id", session_id)))

    def clear_beacon(self, beacon_id: str) -> int:
        return len(execute(self._table().update({"beacon_id": None}).eq("beacon_id", beacon_id)))

    def delete_all(self) -> int:
        # PostgREST refuses an unfiltered DELETE; match every row explicitly.
        return len(execute(self._table().delete().neq("id", "00000000-0000-0000-0000-000000000000")))
