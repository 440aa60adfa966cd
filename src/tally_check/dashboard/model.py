from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from ..core.enums import AlertSeverity, Performance


@dataclass(frozen=True)
class DashboardStats:
    total_students: int
    present_students: int
    classes_today: int
    ble_checkins: int
    qr_checkins: int
    attendance_rate: float

    def to_dict(self) -> dict:
        return {
            "totalStudents": self.total_students,
            "presentStudents": self.present_students,
            "classesToday": self.classes_today,
            "bleCheckins": self.ble_checkins,
            "qrCheckins": self.qr_checkins,
            "attendanceRate": round(self.attendance_rate, 1),
        }


@dataclass(frozen=True)
class StudentSummary:
    total_records: int
    present: int
    attendance_rate: float
    enrolled_courses: int


@dataclass(frozen=True)
class SystemOverview:
    total_students: int
    total_lecturers: int
    total_courses: int
    avg_attendance_rate: float
    classes_today: int
    active_sessions: int
    beacons_online: int
    beacons_offline: int


@dataclass(frozen=True)
class CourseStat:
    course_id: str
    name: str
    code: str
    lecturer: str
    total_students: int
    total_classes: int
    present: int
    avg_attendance_rate: float
    performance: Performance
    last_class: Optional[datetime] = None


@dataclass(frozen=True)
class LecturerStat:
    lecturer_id: str
    name: str
    email: str
    department: str
    total_courses: int
    total_students: int
    total_classes: int
    avg_attendance_rate: float
    performance: Performance
    last_active: Optional[datetime] = None


@dataclass(frozen=True)
class Alert:
    alert_id: str
    alert_type: str
    severity: AlertSeverity
    title: str
    message: str
    course: Optional[str] = None
    student_count: Optional[int] = None
    action_required: bool = True
    metadata: dict = field(default_factory=dict)
