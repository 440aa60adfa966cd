from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from ..attendance.model import AttendanceRecord


@dataclass(frozen=True)
class ReportSummary:
    total: int
    present: int
    absent: int
    late: int
    rate: int


@dataclass(frozen=True)
class ReportData:
    start: date
    end: date
    course_id: Optional[str]
    search: str = ""
    method: str = "all"
    records: list[AttendanceRecord] = field(default_factory=list)
    summary: ReportSummary = ReportSummary(total=0, present=0, absent=0, late=0, rate=0)
