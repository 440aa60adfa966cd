from __future__ import annotations

from typing import Any, Optional, Sequence

from ..database.connection import SupabaseConnection
from ..database.supabase_base import embedded, execute, first_or_none
from .model import Course, Enrollment
from .repository import CourseRepository, EnrollmentRepository

COURSE_WITH_INSTRUCTOR = "*, users!courses_instructor_id_fkey (id, full_name, email)"


def row_to_course(row: dict[str, Any]) -> Course:
    instructor = embedded(row, "users")
    return Course(
        course_id=str(row["id"]),
        name=row.get("name") or "",
        code=row.get("code") or "",
        instructor_id=row.get("instructor_id"),
        instructor_name=instructor.get("full_name"),
        instructor_email=instructor.get("email"),
        department=row.get("department"),
    )


class SupabaseCourseRepository(CourseRepository):
    def __init__(self, conn: SupabaseConnection):
        self._conn = conn

    def _table(self):
        return self._conn.client().table("courses")

    def list_all(self) -> Sequence[Course]:
        rows = execute(self._table().select(COURSE_WITH_INSTRUCTOR).order("code"))
        return [row_to_course(r) for r in rows]

    def get_by_id(self, course_id: str) -> Optional[Course]:
        row = first_or_none(execute(self._table().select(COURSE_WITH_INSTRUCTOR).eq("id", course_id).limit(1)))
        return row_to_course(row) if row else None

    def list_by_instructor(self, instructor_id: str) -> Sequence[Course]:
        rows = execute(
            self._table().select(COURSE_WITH_INSTRUCTOR).eq("instructor_id", instructor_id).order("code")
        )
        return [row_to_course(r) for r in rows]

    def list_by_ids(self, course_ids: Sequence[str]) -> Sequence[Course]:
        if not course_ids:
            return []
        rows = execute(self._table().select(COURSE_WITH_INSTRUCTOR).in_("id", list(course_ids)).order("code"))
        return [row_to_course(r) for r in rows]

    def create_course(self, *, name: str, code: str, instructor_id: Optional[str] = None) -> Course:
        rows = execute(self._table().insert({"name": name, "code": code, "instructor_id": instructor_id}))
        return row_to_course(rows[0])

    def update_course(self, course_id: str, changes: dict) -> Optional[Course]:
        row = first_or_none(execute(self._table().update(changes).eq("id", course_id)))
        return row_to_course(row) if row else None

    def delete_by_id(self, course_id: str) -> bool:
        return bool(execute(self._table().delete().eq("id", course_id)))

    def clear_instructor(self, instructor_id: str) -> int:
        rows = execute(self._table().update({"instructor_id": None}).eq("instructor_id", instructor_id))
        return len(rows)


class SupabaseEnrollmentRepository(EnrollmentRepository):
    def __init__(self, conn: SupabaseConnection):
        self._conn = conn

    def _table(self):
        return self._conn.client().table("course_enrollments")

    @staticmethod
    def _to_enrollment(row: dict[str, Any]) -> Enrollment:
        return Enrollment(student_id=str(row["student_id"]), course_id=str(row["course_id"]))

    def list_for_course(self, course_id: str) -> Sequence[Enrollment]:
        rows = execute(self._table().select("student_id, course_id").eq("course_id", course_id))
        return [self._to_enrollment(r) for r in rows]

    def list_for_courses(self, course_ids: Sequence[str]) -> Sequence[Enrollment]:
        if not course_ids:
            return []
        rows = execute(self._table().select("student_id, course_id").in_("course_id", list(course_ids)))
        return [self._to_enrollment(r) for r in rows]

    def list_for_student(self, student_id: str) -> Sequence[Enrollment]:
        rows = execute(self._table().select("student_id, course_id").eq("student_id", student_id))
        return [self._to_enrollment(r) for r in rows]

    def enroll(self, *, student_id: str, course_id: str) -> Enrollment:
        rows = execute(self._table().insert({"student_id": student_id, "course_id": course_id}))
        return self._to_enrollment(rows[0])

    def unenroll(self, *, student_id: str, course_id: str) -> bool:
        rows = execute(self._table().delete().eq("student_id", student_id).eq("course_id", course_id))
        return bool(rows)
