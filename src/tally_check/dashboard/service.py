from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Iterable, Optional, Sequence

from ..attendance.model import AttendanceRecord
from ..attendance.repository import AttendanceRepository
from ..beacons.repository import BeaconRepository
from ..cache import QueryCache
from ..common.datetime_utils import now_local
from ..core import constants
from ..core.enums import AlertSeverity, AttendanceMethod, Performance, Role, SessionStatus
from ..core.exceptions import ValidationError
from ..courses.model import Course
from ..courses.repository import CourseRepository, EnrollmentRepository
from ..sessions.repository import SessionRepository
from ..sessions.status import session_status
from ..users.repository import UserRepository
from .model import Alert, CourseStat, DashboardStats, LecturerStat, StudentSummary, SystemOverview

logger = logging.getLogger(__name__)


def rate(present: int, total: int) -> float:
    return (present / total) * 100 if total > 0 else 0.0


def performance_for(attendance_rate: float) -> Performance:
    if attendance_rate >= constants.EXCELLENT_MIN_RATE:
        return Performance.EXCELLENT
    if attendance_rate >= constants.GOOD_MIN_RATE:
        return Performance.GOOD
    if attendance_rate >= constants.AVERAGE_MIN_RATE:
        return Performance.AVERAGE
    return Performance.POOR


def _last_check_in(records: Iterable[AttendanceRecord]) -> Optional[datetime]:
    times = [r.check_in_time for r in records if r.check_in_time]
    return max(times) if times else None


def _dashboard_stats(total_students: int, records: Sequence[AttendanceRecord], classes_today: int) -> DashboardStats:
    present = len({r.student_id for r in records})
    return DashboardStats(
        total_students=total_students,
        present_students=present,
        classes_today=classes_today,
        ble_checkins=sum(1 for r in records if r.method == AttendanceMethod.BLE),
        qr_checkins=sum(1 for r in records if r.method == AttendanceMethod.QR),
        attendance_rate=rate(present, total_students),
    )


class DashboardService:
    """Headline numbers for the role dashboards."""

    def __init__(
        self,
        users: UserRepository,
        courses: CourseRepository,
        enrollments: EnrollmentRepository,
        sessions: SessionRepository,
        attendance: AttendanceRepository,
        cache: Optional[QueryCache] = None,
    ):
        self._users = users
        self._courses = courses
        self._enrollments = enrollments
        self._sessions = sessions
        self._attendance = attendance
        self._cache = cache or QueryCache()

    def get_stats(self, role: Role, user_id: Optional[str] = None, *, today: Optional[date] = None) -> DashboardStats:
        today = today or now_local().date()
        key = ("dashboard", role.value, user_id, today.isoformat())
        if role == Role.LECTURER:
            if not user_id:
                raise ValidationError("Lecturer id is required")
            return self._cache.fetch(key, lambda: self._lecturer_stats(user_id, today))
        return self._cache.fetch(key, lambda: self._admin_stats(today))

    def _lecturer_stats(self, lecturer_id: str, today: date) -> DashboardStats:
        course_ids = [c.course_id for c in self._courses.list_by_instructor(lecturer_id)]
        if not course_ids:
            return _dashboard_stats(0, [], 0)

        enrolled = {e.student_id for e in self._enrollments.list_for_courses(course_ids)}
        wanted = set(course_ids)
        records = [r for r in self._attendance.list_by_date(today) if r.course_id in wanted]
        sessions = self._sessions.list_for_date(today, course_ids)
        return _dashboard_stats(len(enrolled), records, len(sessions))

    def _admin_stats(self, today: date) -> DashboardStats:
        students = self._users.list_by_role(Role.STUDENT)
        records = self._attendance.list_by_date(today)
        sessions = self._sessions.list_for_date(today)
        return _dashboard_stats(len(students), list(records), len(sessions))

    def student_summary(self, student_id: str) -> StudentSummary:
        records = self._attendance.list_for_student(student_id)
        present = sum(1 for r in records if r.is_present)
        return StudentSummary(
            total_records=len(records),
            present=present,
            attendance_rate=rate(present, len(records)),
            enrolled_courses=len(self._enrollments.list_for_student(student_id)),
        )


class AnalyticsService:
    """System-wide reporting for admins and attendance alerts for lecturers."""

    def __init__(
        self,
        users: UserRepository,
        courses: CourseRepository,
        enrollments: EnrollmentRepository,
        sessions: SessionRepository,
        attendance: AttendanceRepository,
        beacons: BeaconRepository,
    ):
        self._users = users
        self._courses = courses
        self._enrollments = enrollments
        self._sessions = sessions
        self._attendance = attendance
        self._beacons = beacons

    @staticmethod
    def period_start(period: str, today: date) -> date:
        days = constants.REPORT_PERIOD_DAYS.get(period)
        if days is None:
            raise ValidationError(f"Invalid period: {period!r}")
        return today - timedelta(days=days)

    def system_overview(self, *, period: str = constants.DEFAULT_REPORT_PERIOD, now: Optional[datetime] = None) -> SystemOverview:
        now = now or now_local()
        users = self._users.list_by_role(None)
        records = self._attendance.list_since(self.period_start(period, now.date()))
        todays = self._sessions.list_for_date(now.date())
        beacons = self._beacons.list_all()
        present = sum(1 for r in records if r.is_present)
        return SystemOverview(
            total_students=sum(1 for u in users if u.role == Role.STUDENT),
            total_lecturers=sum(1 for u in users if u.role == Role.LECTURER),
            total_courses=len(self._courses.list_all()),
            avg_attendance_rate=rate(present, len(records)),
            classes_today=len(todays),
            active_sessions=sum(1 for s in todays if session_status(s, now) == SessionStatus.ONGOING),
            beacons_online=sum(1 for b in beacons if b.is_active),
            beacons_offline=sum(1 for b in beacons if not b.is_active),
        )

    def _enrollment_counts(self, courses: Sequence[Course]) -> dict[str, int]:
        counts: dict[str, int] = defaultdict(int)
        if courses:
            for e in self._enrollments.list_for_courses([c.course_id for c in courses]):
                counts[e.course_id] += 1
        return counts

    def course_stats(self, *, period: str = constants.DEFAULT_REPORT_PERIOD, today: Optional[date] = None) -> list[CourseStat]:
        today = today or now_local().date()
        courses = self._courses.list_all()
        records = self._attendance.list_since(self.period_start(period, today))
        enrolled = self._enrollment_counts(courses)

        by_course: dict[str, list[AttendanceRecord]] = defaultdict(list)
        for r in records:
            by_course[r.course_id].append(r)

        out = []
        for course in courses:
            course_records = by_course.get(course.course_id, [])
            present = sum(1 for r in course_records if r.is_present)
            avg = rate(present, len(course_records))
            out.append(
                CourseStat(
                    course_id=course.course_id,
                    name=course.name,
                    code=course.code or "N/A",
                    lecturer=course.instructor_name or "Unknown",
                    total_students=enrolled.get(course.course_id, 0),
                    total_classes=len(course_records),
                    present=present,
                    avg_attendance_rate=avg,
                    performance=performance_for(avg),
                    last_class=_last_check_in(course_records),
                )
            )
        return out

    def lecturer_stats(self, *, period: str = constants.DEFAULT_REPORT_PERIOD, today: Optional[date] = None) -> list[LecturerStat]:
        today = today or now_local().date()
        lecturers = self._users.list_by_role(Role.LECTURER)
        courses = self._courses.list_all()
        records = self._attendance.list_since(self.period_start(period, today))
        enrolled = self._enrollment_counts(courses)

        out = []
        for lecturer in lecturers:
            own = [c for c in courses if c.instructor_id == lecturer.user_id]
            own_ids = {c.course_id for c in own}
            own_records = [r for r in records if r.course_id in own_ids]
            present = sum(1 for r in own_records if r.is_present)
            avg = rate(present, len(own_records))
            out.append(
                LecturerStat(
                    lecturer_id=lecturer.user_id,
                    name=lecturer.full_name,
                    email=lecturer.email,
                    department=lecturer.department or "Unknown",
                    total_courses=len(own),
                    total_students=sum(enrolled.get(c.course_id, 0) for c in own),
                    total_classes=len(own_records),
                    avg_attendance_rate=avg,
                    performance=performance_for(avg),
                    last_active=_last_check_in(own_records),
                )
            )
        return out

    def lecturer_alerts(self, lecturer_id: str, *, today: Optional[date] = None) -> list[Alert]:
        """Attendance alerts for the courses a lecturer teaches (last 30 days, recent = last 7)."""

        today = today or now_local().date()
        courses = self._courses.list_by_instructor(lecturer_id)
        if not courses:
            return [
                Alert(
                    alert_id="no-courses",
                    alert_type="course",
                    severity=AlertSeverity.MEDIUM,
                    title="No Courses Assigned",
                    message="You don't have any courses assigned yet. Contact your administrator.",
                )
            ]

        since = today - timedelta(days=constants.ALERT_LOOKBACK_DAYS)
        recent_since = today - timedelta(days=constants.ALERT_RECENT_DAYS)
        records = self._attendance.list_since(since, [c.course_id for c in courses])
        if not records:
            return [
                Alert(
                    alert_id="no-attendance-data",
                    alert_type="attendance",
                    severity=AlertSeverity.MEDIUM,
                    title="No Recent Attendance Data",
                    message=f"No attendance records found for your courses in the last {constants.ALERT_LOOKBACK_DAYS} days",
                    action_required=False,
                )
            ]

        names = {c.course_id: c.name for c in courses}
        alerts: list[Alert] = []
        by_course: dict[str, list[AttendanceRecord]] = defaultdict(list)
        for r in records:
            by_course[r.course_id].append(r)

        for course_id, course_records in by_course.items():
            name = names.get(course_id, "Unknown")
            recent = [r for r in course_records if r.record_date >= recent_since]
            overall_rate = rate(sum(1 for r in course_records if r.is_present), len(course_records))
            recent_rate = rate(sum(1 for r in recent if r.is_present), len(recent))
            student_count = len({r.student_id for r in course_records})

            if overall_rate < constants.LOW_ATTENDANCE_RATE:
                if overall_rate < constants.CRITICAL_ATTENDANCE_RATE:
                    severity = AlertSeverity.CRITICAL
                elif overall_rate < constants.HIGH_ATTENDANCE_RATE:
                    severity = AlertSeverity.HIGH
                else:
                    severity = AlertSeverity.MEDIUM
                alerts.append(
                    Alert(
                        alert_id=f"attendance-{course_id}",
                        alert_type="attendance",
                        severity=severity,
                        title="Low Attendance Alert",
                        message=f"{name} has {overall_rate:.1f}% overall attendance rate",
                        course=name,
                        student_count=student_count,
                        metadata={"attendance_rate": overall_rate, "previous_rate": recent_rate},
                    )
                )

            if recent_rate > 0 and overall_rate > 0 and overall_rate - recent_rate > constants.DECLINE_THRESHOLD_POINTS:
                alerts.append(
                    Alert(
                        alert_id=f"trend-{course_id}",
                        alert_type="attendance",
                        severity=AlertSeverity.HIGH,
                        title="Declining Attendance Trend",
                        message=f"{name} attendance has dropped from {overall_rate:.1f}% to {recent_rate:.1f}%",
                        course=name,
                        student_count=student_count,
                        metadata={"attendance_rate": recent_rate, "previous_rate": overall_rate},
                    )
                )

        alerts.extend(self._student_alerts(records, names))
        logger.debug("Built %d alerts for lecturer %s", len(alerts), lecturer_id)
        return alerts

    def _student_alerts(self, records: Sequence[AttendanceRecord], names: dict[str, str]) -> list[Alert]:
        per_student: dict[tuple[str, str], list[AttendanceRecord]] = defaultdict(list)
        for r in records:
            per_student[(r.student_id, r.course_id)].append(r)

        alerts = []
        for (student_id, course_id), rows in per_student.items():
            student_rate = rate(sum(1 for r in rows if r.is_present), len(rows))
            if len(rows) >= constants.STUDENT_CONCERN_MIN_RECORDS and student_rate < constants.CRITICAL_ATTENDANCE_RATE:
                student_name = next((r.student_name for r in rows if r.student_name), student_id)
                course_name = names.get(course_id, "Unknown")
                alerts.append(
                    Alert(
                        alert_id=f"student-{student_id}-{course_id}",
                        alert_type="student",
                        severity=AlertSeverity.HIGH,
                        title="Student Attendance Concern",
                        message=f"{student_name} has only {student_rate:.1f}% attendance in {course_name}",
                        course=course_name,
                        metadata={"attendance_rate": student_rate, "student_names": [student_name]},
                    )
                )
        return alerts
