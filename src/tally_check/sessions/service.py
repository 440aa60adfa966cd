from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Optional, Sequence

from ..cache import QueryCache
from ..common.datetime_utils import now_local, parse_iso_date, parse_time
from ..core.enums import Role
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..courses.repository import CourseRepository
from .model import ClassSession
from .repository import SessionRepository
from .status import sort_by_priority

logger = logging.getLogger(__name__)


class SessionService:
    def __init__(self, sessions: SessionRepository, courses: CourseRepository, cache: Optional[QueryCache] = None):
        self._sessions = sessions
        self._courses = courses
        self._cache = cache or QueryCache()

    def _build_values(
        self,
        *,
        session_date: str,
        start_time: str,
        end_time: str,
        location: str,
        window_start: str,
        window_end: str,
        beacon_id: str,
    ) -> dict:
        try:
            day = parse_iso_date(session_date)
            start = parse_time(start_time)
            end = parse_time(end_time)
            w_start = parse_time(window_start)
            w_end = parse_time(window_end)
        except ValueError:
            raise ValidationError("Invalid date or time (expected YYYY-MM-DD and HH:MM)")

        if not start or not end:
            raise ValidationError("Start and end time are required")
        if end <= start:
            raise ValidationError("End time must be after start time")
        if w_start and w_end and w_end <= w_start:
            raise ValidationError("Attendance window must end after it starts")

        def _window(t) -> Optional[str]:
            return datetime.combine(day, t).isoformat(sep=" ") if t else None

        return {
            "session_date": day.isoformat(),
            "start_time": start.strftime("%H:%M:%S"),
            "end_time": end.strftime("%H:%M:%S"),
            "location": (location or "").strip() or None,
            "attendance_window_start": _window(w_start),
            "attendance_window_end": _window(w_end),
            "beacon_id": beacon_id or None,
        }

    def create_session(
        self,
        *,
        current_role: Role,
        current_user_id: str,
        course_id: str,
        session_date: str,
        start_time: str,
        end_time: str,
        location: str = "",
        window_start: str = "",
        window_end: str = "",
        beacon_id: str = "",
    ) -> ClassSession:
        self._require_course_owner(current_role, current_user_id, course_id)
        values = self._build_values(
            session_date=session_date,
            start_time=start_time,
            end_time=end_time,
            location=location,
            window_start=window_start,
            window_end=window_end,
            beacon_id=beacon_id,
        )
        values["course_id"] = course_id
        logger.info("Creating class session: %s", values)
        session = self._sessions.create_session(values)
        self._invalidate()
        return session

    def update_session(
        self,
        *,
        current_role: Role,
        current_user_id: str,
        session_id: str,
        session_date: str,
        start_time: str,
        end_time: str,
        location: str = "",
        window_start: str = "",
        window_end: str = "",
        beacon_id: str = "",
    ) -> ClassSession:
        existing = self.get_session(session_id)
        self._require_course_owner(current_role, current_user_id, existing.course_id)
        values = self._build_values(
            session_date=session_date,
            start_time=start_time,
            end_time=end_time,
            location=location,
            window_start=window_start,
            window_end=window_end,
            beacon_id=beacon_id,
        )
        session = self._sessions.update_session(session_id, values)
        if not session:
            raise NotFoundError("Session not found")
        self._invalidate()
        return session

    def delete_session(self, *, current_role: Role, current_user_id: str, session_id: str) -> None:
        existing = self.get_session(session_id)
        self._require_course_owner(current_role, current_user_id, existing.course_id)
        self._sessions.delete_by_id(session_id)
        self._invalidate()

    def get_session(self, session_id: str) -> ClassSession:
        session = self._sessions.get_by_id(session_id)
        if not session:
            raise NotFoundError("Session not found")
        return session

    def list_by_course(self, course_id: str, *, now: Optional[datetime] = None) -> list[ClassSession]:
        sessions = self._cache.fetch(("sessions", "course", course_id), lambda: self._sessions.list_by_course(course_id))
        return sort_by_priority(sessions, now or now_local())

    def list_for_courses(self, course_ids: Sequence[str], *, now: Optional[datetime] = None) -> list[ClassSession]:
        out: list[ClassSession] = []
        for course_id in course_ids:
            out.extend(self._sessions.list_by_course(course_id))
        return sort_by_priority(out, now or now_local())

    def list_today(self, course_ids: Optional[Sequence[str]] = None, *, today: Optional[date] = None) -> Sequence[ClassSession]:
        today = today or now_local().date()
        key = ("sessions", "today", today.isoformat(), tuple(course_ids) if course_ids is not None else None)
        return self._cache.fetch(key, lambda: self._sessions.list_for_date(today, course_ids))

    def _require_course_owner(self, current_role: Role, current_user_id: str, course_id: str) -> None:
        if current_role == Role.ADMIN:
            if not self._courses.get_by_id(course_id):
                raise NotFoundError("Course not found")
            return
        if current_role != Role.LECTURER:
            raise AuthorizationError("You do not have permission to do this")
        course = self._courses.get_by_id(course_id)
        if not course:
            raise NotFoundError("Course not found")
        if course.instructor_id != current_user_id:
            raise AuthorizationError("You can only manage sessions of your own courses")

    def _invalidate(self) -> None:
        self._cache.invalidate(("sessions",))
        self._cache.invalidate(("dashboard",))
