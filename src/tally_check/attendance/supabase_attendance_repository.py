from __future__ import annotations

from datetime import date
from typing import Any, Optional, Sequence

from ..common.datetime_utils import parse_iso_date, parse_time, parse_timestamp
from ..core.enums import AttendanceMethod, AttendanceStatus
from ..database.connection import SupabaseConnection
from ..database.supabase_base import embedded, execute, first_or_none
from .model import AttendanceRecord
from .repository import AttendanceRepository

RECORD_WITH_STUDENT = """
    *,
    users!attendance_records_student_id_fkey (id, full_name, email)
"""

RECORD_WITH_SESSION = """
    *,
    users!attendance_records_student_id_fkey (id, full_name, email),
    class_sessions!attendance_records_session_id_fkey (
        id, start_time, end_time, location,
        courses!class_sessions_course_id_fkey (id, name, code)
    )
"""


def _as_float(value: Any) -> Optional[float]:
    return float(value) if value is not None else None


def _status(value: Any) -> AttendanceStatus:
    # Older rows were written with "present" before the status set was narrowed.
    if value == "present":
        return AttendanceStatus.VERIFIED
    return AttendanceStatus(value or "pending")


def row_to_record(row: dict[str, Any]) -> AttendanceRecord:
    student = embedded(row, "users")
    session = embedded(row, "class_sessions")
    course = embedded(session, "courses") if session else {}
    return AttendanceRecord(
        record_id=str(row["id"]),
        student_id=str(row["student_id"]),
        record_date=parse_iso_date(str(row["date"])),
        method=AttendanceMethod(str(row.get("method") or "MANUAL").upper()),
        status=_status(row.get("status")),
        session_id=row.get("session_id"),
        course_id=row.get("course_id") or course.get("id"),
        course_code=row.get("course_code") or course.get("code"),
        course_name=row.get("course_name") or course.get("name"),
        check_in_time=parse_timestamp(row.get("check_in_time")),
        check_out_time=parse_timestamp(row.get("check_out_time")),
        verified_by=row.get("verified_by"),
        verified_at=parse_timestamp(row.get("verified_at")),
        beacon_id=row.get("beacon_id"),
        latitude=_as_float(row.get("latitude")),
        longitude=_as_float(row.get("longitude")),
        device_info=row.get("device_info"),
        student_name=student.get("full_name"),
        student_email=student.get("email"),
        session_start=parse_time(session.get("start_time")),
        session_end=parse_time(session.get("end_time")),
        session_location=session.get("location"),
    )


class SupabaseAttendanceRepository(AttendanceRepository):
    def __init__(self, conn: SupabaseConnection):
        self._conn = conn

    def _table(self):
        return self._conn.client().table("attendance_records")

    def get_by_id(self, record_id: str) -> Optional[AttendanceRecord]:
        row = first_or_none(execute(self._table().select(RECORD_WITH_STUDENT).eq("id", record_id).limit(1)))
        return row_to_record(row) if row else None

    def list_by_date(self, day: date) -> Sequence[AttendanceRecord]:
        rows = execute(
            self._table().select(RECORD_WITH_SESSION).eq("date", day.isoformat()).order("check_in_time", desc=True)
        )
        return [row_to_record(r) for r in rows]

    def list_between(self, start: date, end: date, course_id: Optional[str] = None) -> Sequence[AttendanceRecord]:
        query = (
            self._table()
            .select(RECORD_WITH_SESSION)
            .gte("date", start.isoformat())
            .lte("date", end.isoformat())
        )
        if course_id:
            query = query.eq("course_id", course_id)
        return [row_to_record(r) for r in execute(query.order("date", desc=True))]

    def list_since(self, since: date, course_ids: Optional[Sequence[str]] = None) -> Sequence[AttendanceRecord]:
        if course_ids is not None and not course_ids:
            return []
        query = self._table().select(RECORD_WITH_STUDENT).gte("date", since.isoformat())
        if course_ids is not None:
            query = query.in_("course_id", list(course_ids))
        return [row_to_record(r) for r in execute(query)]

    def list_verified_by(self, verifier_id: str) -> Sequence[AttendanceRecord]:
        rows = execute(
            self._table().select(RECORD_WITH_STUDENT).eq("verified_by", verifier_id).order("check_in_time", desc=True)
        )
        return [row_to_record(r) for r in rows]

    def list_for_student(self, student_id: str) -> Sequence[AttendanceRecord]:
        rows = execute(
            self._table().select(RECORD_WITH_SESSION).eq("student_id", student_id).order("check_in_time", desc=True)
        )
        return [row_to_record(r) for r in rows]

    def find_existing(
        self,
        *,
        student_id: str,
        session_id: Optional[str] = None,
        course_id: Optional[str] = None,
        day: Optional[date] = None,
    ) -> Optional[AttendanceRecord]:
        query = self._table().select("*").eq("student_id", student_id)
        if session_id:
            query = query.eq("session_id", session_id)
        if course_id:
            query = query.eq("course_id", course_id)
        if day:
            query = query.eq("date", day.isoformat())
        row = first_or_none(execute(query.limit(1)))
        return row_to_record(row) if row else None

    def create_record(self, values: dict) -> AttendanceRecord:
        return row_to_record(execute(self._table().insert(values))[0])

    def update_record(self, record_id: str, changes: dict) -> Optional[AttendanceRecord]:
        row = first_or_none(execute(self._table().update(changes).eq("id", record_id)))
        return row_to_record(row) if row else None

    def delete_all(self) -> int:
        return len(execute(self._table().delete().neq("id", "00000000-0000-0000-0000-000000000000")))
