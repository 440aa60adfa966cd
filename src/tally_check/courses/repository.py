from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import Course, Enrollment


class CourseRepository(Protocol):
    def list_all(self) -> Sequence[Course]:
        raise NotImplementedError

    def get_by_id(self, course_id: str) -> Optional[Course]:
        raise NotImplementedError

    def list_by_instructor(self, instructor_id: str) -> Sequence[Course]:
        raise NotImplementedError

    def list_by_ids(self, course_ids: Sequence[str]) -> Sequence[Course]:
        raise NotImplementedError

    def create_course(self, *, name: str, code: str, instructor_id: Optional[str] = None) -> Course:
        raise NotImplementedError

    def update_course(self, course_id: str, changes: dict) -> Optional[Course]:
        raise NotImplementedError

    def delete_by_id(self, course_id: str) -> bool:
        raise NotImplementedError

    def clear_instructor(self, instructor_id: str) -> int:
        """Set instructor_id = NULL on every course taught by `instructor_id`."""

        raise NotImplementedError


class EnrollmentRepository(Protocol):
    def list_for_course(self, course_id: str) -> Sequence[Enrollment]:
        raise NotImplementedError

    def list_for_courses(self, course_ids: Sequence[str]) -> Sequence[Enrollment]:
        raise NotImplementedError

    def list_for_student(self, student_id: str) -> Sequence[Enrollment]:
        raise NotImplementedError

    def enroll(self, *, student_id: str, course_id: str) -> Enrollment:
        raise NotImplementedError

    def unenroll(self, *, student_id: str, course_id: str) -> bool:
        raise NotImplementedError
