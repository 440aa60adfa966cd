from __future__ import annotations

import logging
import math
from datetime import date
from typing import Optional, Sequence

from ..attendance.model import AttendanceRecord
from ..attendance.repository import AttendanceRepository
from ..common.filters import filter_by_method, matches_search
from ..core.enums import AttendanceStatus, Role
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..courses.repository import CourseRepository
from .model import ReportData, ReportSummary

logger = logging.getLogger(__name__)


def summarize(records: Sequence[AttendanceRecord]) -> ReportSummary:
    """Counts shown at the top of an attendance report.

    Pending records are reported as late; the rate is rounded half up.
    """

    total = len(records)
    present = sum(1 for r in records if r.status == AttendanceStatus.VERIFIED)
    absent = sum(1 for r in records if r.status == AttendanceStatus.ABSENT)
    late = sum(1 for r in records if r.status == AttendanceStatus.PENDING)
    rate = int(math.floor(present / total * 100 + 0.5)) if total else 0
    return ReportSummary(total=total, present=present, absent=absent, late=late, rate=rate)


class ReportService:
    """Use case: build attendance reports for a date range (optionally one course)."""

    def __init__(self, attendance: AttendanceRepository, courses: CourseRepository):
        self._attendance = attendance
        self._courses = courses

    def build_attendance_report(
        self,
        *,
        start: date,
        end: date,
        course_id: Optional[str] = None,
        search: str = "",
        method: str = "all",
        current_role: Role = Role.ADMIN,
        current_user_id: Optional[str] = None,
    ) -> ReportData:
        if end < start:
            raise ValidationError("End date must be on or after start date")

        allowed: Optional[set[str]] = None
        if current_role == Role.LECTURER:
            allowed = {c.course_id for c in self._courses.list_by_instructor(current_user_id or "")}
            if course_id and course_id not in allowed:
                raise AuthorizationError("You can only report on your own courses")
        elif current_role != Role.ADMIN:
            raise AuthorizationError("You do not have permission to do this")

        if course_id and not self._courses.get_by_id(course_id):
            raise NotFoundError("Course not found")

        records = list(self._attendance.list_between(start, end, course_id or None))
        if allowed is not None:
            records = [r for r in records if r.course_id in allowed]
        records = [r for r in records if matches_search(search, r.student_name, r.student_email, r.student_id)]
        records = filter_by_method(records, method, lambda r: r.method.value)

        logger.info(
            "Attendance report %s..%s course=%s method=%s: %d rows", start, end, course_id or "all", method or "all", len(records)
        )
        return ReportData(
            start=start,
            end=end,
            course_id=course_id or None,
            search=search,
            method=method or "all",
            records=records,
            summary=summarize(records),
        )
