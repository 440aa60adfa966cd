from __future__ import annotations

import logging
from typing import Optional, Sequence

from ..cache import QueryCache
from ..common.filters import matches_search
from ..common.validators import require_non_empty
from ..core.enums import Role
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..users.model import User
from ..users.repository import UserRepository
from .model import Course
from .repository import CourseRepository, EnrollmentRepository

logger = logging.getLogger(__name__)


class CourseService:
    def __init__(
        self,
        courses: CourseRepository,
        enrollments: EnrollmentRepository,
        users: UserRepository,
        cache: Optional[QueryCache] = None,
    ):
        self._courses = courses
        self._enrollments = enrollments
        self._users = users
        self._cache = cache or QueryCache()

    def list_all(self, *, search: str = "") -> list[Course]:
        courses = self._cache.fetch(("courses", "all"), self._courses.list_all)
        return [c for c in courses if matches_search(search, c.name, c.code, c.instructor_name)]

    def get_course(self, course_id: str) -> Course:
        course = self._courses.get_by_id(course_id)
        if not course:
            raise NotFoundError("Course not found")
        return course

    def list_by_instructor(self, instructor_id: str) -> Sequence[Course]:
        return self._cache.fetch(
            ("courses", "instructor", instructor_id),
            lambda: self._courses.list_by_instructor(instructor_id),
        )

    def create_course(self, *, current_role: Role, name: str, code: str, instructor_id: str = "") -> Course:
        self._require_admin(current_role)
        name = require_non_empty(name, "Course name")
        code = require_non_empty(code, "Course code").upper()
        if any(c.code == code for c in self._courses.list_all()):
            raise ValidationError(f"Course code {code} already exists")
        if instructor_id:
            self._require_lecturer(instructor_id)

        course = self._courses.create_course(name=name, code=code, instructor_id=instructor_id or None)
        self._cache.invalidate(("courses",))
        return course

    def update_course(self, *, current_role: Role, course_id: str, name: str, code: str) -> Course:
        self._require_admin(current_role)
        course = self._courses.update_course(
            course_id,
            {"name": require_non_empty(name, "Course name"), "code": require_non_empty(code, "Course code").upper()},
        )
        if not course:
            raise NotFoundError("Course not found")
        self._cache.invalidate(("courses",))
        return course

    def delete_course(self, *, current_role: Role, course_id: str) -> None:
        self._require_admin(current_role)
        if not self._courses.delete_by_id(course_id):
            raise NotFoundError("Course not found")
        self._cache.invalidate(("courses",))

    def assign_instructor(self, *, current_role: Role, course_id: str, instructor_id: str) -> Course:
        self._require_admin(current_role)
        self._require_lecturer(instructor_id)
        course = self._courses.update_course(course_id, {"instructor_id": instructor_id})
        if not course:
            raise NotFoundError("Course not found")
        logger.info("Assigned lecturer %s to course %s", instructor_id, course.code)
        self._cache.invalidate(("courses",))
        return course

    def unassign_instructor(self, *, current_role: Role, course_id: str) -> Course:
        self._require_admin(current_role)
        course = self._courses.update_course(course_id, {"instructor_id": None})
        if not course:
            raise NotFoundError("Course not found")
        self._cache.invalidate(("courses",))
        return course

    def list_enrolled_students(self, course_id: str) -> Sequence[User]:
        student_ids = [e.student_id for e in self._enrollments.list_for_course(course_id)]
        if not student_ids:
            return []
        return self._users.list_by_ids(student_ids)

    def list_student_courses(self, student_id: str) -> Sequence[Course]:
        course_ids = [e.course_id for e in self._enrollments.list_for_student(student_id)]
        return self._courses.list_by_ids(course_ids)

    def enroll_student(self, *, current_role: Role, student_id: str, course_id: str) -> None:
        self._require_admin(current_role)
        student = self._users.get_by_id(student_id)
        if not student or student.role != Role.STUDENT:
            raise ValidationError("Selected user is not a student")
        if any(e.course_id == course_id for e in self._enrollments.list_for_student(student_id)):
            raise ValidationError("Student is already enrolled in this course")
        self._enrollments.enroll(student_id=student_id, course_id=course_id)
        self._cache.invalidate(("courses",))
        self._cache.invalidate(("dashboard",))

    def unenroll_student(self, *, current_role: Role, student_id: str, course_id: str) -> None:
        self._require_admin(current_role)
        if not self._enrollments.unenroll(student_id=student_id, course_id=course_id):
            raise NotFoundError("Enrollment not found")
        self._cache.invalidate(("courses",))
        self._cache.invalidate(("dashboard",))

    @staticmethod
    def _require_admin(current_role: Role) -> None:
        if current_role != Role.ADMIN:
            raise AuthorizationError("You do not have permission to do this")

    def _require_lecturer(self, user_id: str) -> None:
        user = self._users.get_by_id(user_id)
        if not user or user.role != Role.LECTURER:
            raise ValidationError("Selected user is not a lecturer")
