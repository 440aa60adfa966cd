from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Optional

from ..core.enums import AttendanceMethod, AttendanceStatus


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: one check-in of a student (`attendance_records` row).

    Student and session details are filled from embedded relations when the
    query joins them.
    """

    record_id: str
    student_id: str
    record_date: date
    method: AttendanceMethod
    status: AttendanceStatus
    session_id: Optional[str] = None
    course_id: Optional[str] = None
    course_code: Optional[str] = None
    course_name: Optional[str] = None
    check_in_time: Optional[datetime] = None
    check_out_time: Optional[datetime] = None
    verified_by: Optional[str] = None
    verified_at: Optional[datetime] = None
    beacon_id: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    device_info: Optional[dict] = None
    student_name: Optional[str] = None
    student_email: Optional[str] = None
    session_start: Optional[time] = None
    session_end: Optional[time] = None
    session_location: Optional[str] = None

    @property
    def is_present(self) -> bool:
        return self.status == AttendanceStatus.VERIFIED

    @property
    def course_label(self) -> str:
        return self.course_code or self.course_name or "-"
