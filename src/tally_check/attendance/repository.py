from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from .model import AttendanceRecord


class AttendanceRepository(Protocol):
    def get_by_id(self, record_id: str) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def list_by_date(self, day: date) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def list_between(self, start: date, end: date, course_id: Optional[str] = None) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def list_since(self, since: date, course_ids: Optional[Sequence[str]] = None) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def list_verified_by(self, verifier_id: str) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def list_for_student(self, student_id: str) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def find_existing(
        self,
        *,
        student_id: str,
        session_id: Optional[str] = None,
        course_id: Optional[str] = None,
        day: Optional[date] = None,
    ) -> Optional[AttendanceRecord]:
        """Find a check-in of `student_id` for a session, or for a course on a given day."""

        raise NotImplementedError

    def create_record(self, values: dict) -> AttendanceRecord:
        raise NotImplementedError

    def update_record(self, record_id: str, changes: dict) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def delete_all(self) -> int:
        raise NotImplementedError
