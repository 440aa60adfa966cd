from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Course:
    """Domain entity: Course, with the instructor embedded when the query joins it."""

    course_id: str
    name: str
    code: str
    instructor_id: Optional[str] = None
    instructor_name: Optional[str] = None
    instructor_email: Optional[str] = None
    department: Optional[str] = None

    @property
    def label(self) -> str:
        return f"{self.code} - {self.name}"


@dataclass(frozen=True)
class Enrollment:
    student_id: str
    course_id: str
