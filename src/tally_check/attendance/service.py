from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Optional, Sequence

from ..beacons.service import BeaconService
from ..cache import QueryCache
from ..common.datetime_utils import now_local
from ..common.filters import filter_by_method, matches_search
from ..common.validators import require_choice
from ..core.enums import AttendanceMethod, AttendanceStatus, Role
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..courses.repository import CourseRepository, EnrollmentRepository
from ..qr.service import QRCodeService
from ..sessions.model import ClassSession
from ..sessions.repository import SessionRepository
from .model import AttendanceRecord
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)


class AttendanceService:
    """Use case: record check-ins and read attendance for the dashboards."""

    def __init__(
        self,
        records: AttendanceRepository,
        sessions: SessionRepository,
        courses: CourseRepository,
        enrollments: EnrollmentRepository,
        qr_codes: QRCodeService,
        beacons: BeaconService,
        cache: Optional[QueryCache] = None,
    ):
        self._records = records
        self._sessions = sessions
        self._courses = courses
        self._enrollments = enrollments
        self._qr_codes = qr_codes
        self._beacons = beacons
        self._cache = cache or QueryCache()

    # ---- reads ----

    def list_today(self, *, today: Optional[date] = None) -> Sequence[AttendanceRecord]:
        return self.list_by_date(today or now_local().date())

    def list_by_date(self, day: date) -> Sequence[AttendanceRecord]:
        return self._cache.fetch(("attendance", "date", day.isoformat()), lambda: self._records.list_by_date(day))

    def list_for_student(self, student_id: str) -> Sequence[AttendanceRecord]:
        return self._records.list_for_student(student_id)

    def live_for_lecturer(self, lecturer_id: str, *, search: str = "", method: str = "all") -> list[AttendanceRecord]:
        """Records verified by a lecturer, narrowed by the search box and method filter."""

        records = self._cache.fetch(
            ("attendance", "live", lecturer_id),
            lambda: self._records.list_verified_by(lecturer_id),
            ttl=5,
        )
        matched = [r for r in records if matches_search(search, r.student_name, r.student_email, r.student_id)]
        return filter_by_method(matched, method, lambda r: r.method.value)

    # ---- writes ----

    def create_record(self, values: dict) -> AttendanceRecord:
        record = self._records.create_record(values)
        self._invalidate()
        return record

    def update_status(
        self, record_id: str, status: str, *, current_role: Role, current_user_id: str
    ) -> AttendanceRecord:
        """Change a record's status; lecturers only for courses they teach."""

        wanted = require_choice(status, AttendanceStatus, "status")
        if current_role not in (Role.LECTURER, Role.ADMIN):
            raise AuthorizationError("You do not have permission to do this")
        existing = self._records.get_by_id(record_id)
        if not existing:
            raise NotFoundError("Attendance record not found")
        if current_role == Role.LECTURER:
            course = self._courses.get_by_id(existing.course_id) if existing.course_id else None
            if not course or course.instructor_id != current_user_id:
                raise AuthorizationError("You can only update attendance for your own courses")

        changes = {
            "status": wanted.value,
            "verified_by": current_user_id,
            "verified_at": now_local().isoformat(),
        }
        record = self._records.update_record(record_id, changes)
        if not record:
            raise NotFoundError("Attendance record not found")
        logger.info("Attendance %s set to %s by %s", record_id, wanted.value, current_user_id)
        self._invalidate()
        return record

    def check_in_qr(self, student_id: str, qr_id: str, *, now: Optional[datetime] = None) -> AttendanceRecord:
        now = now or now_local()
        prompt = self._qr_codes.validate(qr_id)
        course = self._courses.get_by_id(prompt.course_id)
        if not course:
            raise NotFoundError("Course not found")
        self._require_enrolled(student_id, course.course_id)

        if self._records.find_existing(student_id=student_id, course_id=course.course_id, day=now.date()):
            raise ValidationError("You have already checked in for this course today")

        session = self._current_session(course.course_id, now)
        record = self.create_record(
            {
                "student_id": student_id,
                "session_id": session.session_id if session else None,
                "course_id": course.course_id,
                "course_code": course.code,
                "course_name": course.name,
                "date": now.date().isoformat(),
                "method": AttendanceMethod.QR.value,
                "status": AttendanceStatus.VERIFIED.value,
                "check_in_time": now.isoformat(),
                "verified_by": course.instructor_id,
                "verified_at": now.isoformat(),
            }
        )
        logger.info("QR check-in: student=%s course=%s prompt=%s", student_id, course.code, prompt.prompt_id)
        return record

    def check_in_ble(self, student_id: str, mac_address: str, *, now: Optional[datetime] = None) -> AttendanceRecord:
        now = now or now_local()
        match = self._beacons.validate_for_user(mac_address, student_id, now)
        if not match:
            raise ValidationError("No active class session for this beacon right now")
        self._require_enrolled(student_id, match.course_id)

        if self._records.find_existing(student_id=student_id, session_id=match.session_id):
            raise ValidationError("You have already checked in for this session")

        course = self._courses.get_by_id(match.course_id)
        record = self.create_record(
            {
                "student_id": student_id,
                "session_id": match.session_id,
                "course_id": match.course_id,
                "course_code": match.course_code,
                "course_name": match.course_name,
                "date": now.date().isoformat(),
                "method": AttendanceMethod.BLE.value,
                "status": AttendanceStatus.VERIFIED.value,
                "check_in_time": now.isoformat(),
                "beacon_id": match.beacon_id,
                "verified_by": course.instructor_id if course else None,
                "verified_at": now.isoformat(),
            }
        )
        logger.info("BLE check-in: student=%s session=%s", student_id, match.session_id)
        return record

    def mark_manual(
        self,
        *,
        current_role: Role,
        current_user_id: str,
        student_id: str,
        session_id: str,
        status: str = AttendanceStatus.VERIFIED.value,
        now: Optional[datetime] = None,
    ) -> AttendanceRecord:
        """Lecturer/admin records attendance for a student by hand."""

        now = now or now_local()
        wanted = require_choice(status, AttendanceStatus, "status")
        session = self._sessions.get_by_id(session_id)
        if not session:
            raise NotFoundError("Session not found")
        if current_role == Role.LECTURER:
            if session.instructor_id != current_user_id:
                raise AuthorizationError("You can only mark attendance for your own courses")
        elif current_role != Role.ADMIN:
            raise AuthorizationError("You do not have permission to do this")
        self._require_enrolled(student_id, session.course_id)

        if self._records.find_existing(student_id=student_id, session_id=session_id):
            raise ValidationError("Attendance already recorded for this session")

        return self.create_record(
            {
                "student_id": student_id,
                "session_id": session.session_id,
                "course_id": session.course_id,
                "course_code": session.course_code,
                "course_name": session.course_name,
                "date": session.session_date.isoformat(),
                "method": AttendanceMethod.MANUAL.value,
                "status": wanted.value,
                "check_in_time": now.isoformat(),
                "verified_by": current_user_id,
                "verified_at": now.isoformat(),
            }
        )

    # ---- helpers ----

    def _require_enrolled(self, student_id: str, course_id: str) -> None:
        if not any(e.course_id == course_id for e in self._enrollments.list_for_student(student_id)):
            raise ValidationError("You are not enrolled in this course")

    def _current_session(self, course_id: str, now: datetime) -> Optional[ClassSession]:
        """Session of the course running now, else the first one of today."""

        todays = list(self._sessions.list_for_date(now.date(), [course_id]))
        current = now.time()
        for s in todays:
            if s.start_time and s.end_time and s.start_time <= current <= s.end_time:
                return s
        return todays[0] if todays else None

    def _invalidate(self) -> None:
        self._cache.invalidate(("attendance",))
        self._cache.invalidate(("dashboard",))
