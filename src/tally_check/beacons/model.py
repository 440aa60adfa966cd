from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, time
from typing import Optional


@dataclass(frozen=True)
class Beacon:
    """Domain entity: BLE beacon (`ble_beacons` row)."""

    beacon_id: str
    mac_address: str
    name: Optional[str] = None
    uuid: Optional[str] = None
    major: Optional[int] = None
    minor: Optional[int] = None
    location: Optional[str] = None
    description: Optional[str] = None
    is_active: bool = True
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class BeaconAssignment:
    assignment_id: str
    beacon_id: str
    course_id: str
    session_id: Optional[str] = None
    beacon_name: Optional[str] = None
    beacon_mac: Optional[str] = None
    course_name: Optional[str] = None
    course_code: Optional[str] = None


@dataclass(frozen=True)
class BeaconSessionMatch:
    """Read-model returned to the mobile app when a beacon maps to a running session."""

    session_id: str
    course_id: str
    course_name: Optional[str]
    course_code: Optional[str]
    start_time: Optional[time]
    end_time: Optional[time]
    location: Optional[str]
    beacon_id: str
    attendance_window_start: Optional[datetime] = None
    attendance_window_end: Optional[datetime] = None
    session_type: str = "BLE"

    def to_dict(self) -> dict:
        return {
            "sessionId": self.session_id,
            "courseId": self.course_id,
            "courseName": self.course_name,
            "courseCode": self.course_code,
            "startTime": self.start_time.strftime("%H:%M:%S") if self.start_time else None,
            "endTime": self.end_time.strftime("%H:%M:%S") if self.end_time else None,
            "location": self.location,
            "attendanceWindowStart": self.attendance_window_start.isoformat() if self.attendance_window_start else None,
            "attendanceWindowEnd": self.attendance_window_end.isoformat() if self.attendance_window_end else None,
            "beaconId": self.beacon_id,
            "beaconEnabled": True,
            "sessionType": self.session_type,
        }
