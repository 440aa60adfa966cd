from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import Optional, Sequence

from ..cache import QueryCache
from ..common.datetime_utils import now_local
from ..common.validators import require_non_empty
from ..core.enums import Role
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..courses.repository import CourseRepository
from ..sessions.repository import SessionRepository
from .model import Beacon, BeaconAssignment, BeaconSessionMatch
from .repository import BeaconAssignmentRepository, BeaconRepository

logger = logging.getLogger(__name__)

MAC_PATTERN = re.compile(r"^([0-9A-F]{2}:){5}[0-9A-F]{2}$")


def normalize_mac(value: str) -> str:
    mac = (value or "").strip().upper().replace("-", ":")
    if not MAC_PATTERN.match(mac):
        raise ValidationError("Invalid MAC address (expected AA:BB:CC:DD:EE:FF)")
    return mac


def _optional_int(value, field_name: str) -> Optional[int]:
    if value is None or str(value).strip() == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a number")


class BeaconService:
    """Use case: manage BLE beacons and resolve a scanned beacon to a running session."""

    def __init__(
        self,
        beacons: BeaconRepository,
        assignments: BeaconAssignmentRepository,
        sessions: SessionRepository,
        courses: CourseRepository,
        cache: Optional[QueryCache] = None,
    ):
        self._beacons = beacons
        self._assignments = assignments
        self._sessions = sessions
        self._courses = courses
        self._cache = cache or QueryCache()

    def list_all(self) -> Sequence[Beacon]:
        return self._cache.fetch(("beacons", "all"), self._beacons.list_all)

    def get_beacon(self, beacon_id: str) -> Beacon:
        beacon = self._beacons.get_by_id(beacon_id)
        if not beacon:
            raise NotFoundError("Beacon not found")
        return beacon

    def get_active_by_mac(self, mac_address: str) -> Optional[Beacon]:
        return self._beacons.get_active_by_mac(normalize_mac(mac_address))

    def _values(self, form: dict) -> dict:
        return {
            "mac_address": normalize_mac(form.get("mac_address", "")),
            "name": require_non_empty(form.get("name", ""), "Beacon name"),
            "uuid": (form.get("uuid") or "").strip() or None,
            "major": _optional_int(form.get("major"), "Major"),
            "minor": _optional_int(form.get("minor"), "Minor"),
            "location": (form.get("location") or "").strip() or None,
            "description": (form.get("description") or "").strip() or None,
        }

    def create_beacon(self, *, current_role: Role, form: dict) -> Beacon:
        self._require_admin(current_role)
        values = self._values(form)
        values["is_active"] = True
        beacon = self._beacons.create_beacon(values)
        logger.info("Created beacon %s (%s)", beacon.name, beacon.mac_address)
        self._invalidate()
        return beacon

    def update_beacon(self, *, current_role: Role, beacon_id: str, form: dict) -> Beacon:
        self._require_admin(current_role)
        values = self._values(form)
        values["updated_at"] = now_local().isoformat()
        beacon = self._beacons.update_beacon(beacon_id, values)
        if not beacon:
            raise NotFoundError("Beacon not found")
        self._invalidate()
        return beacon

    def set_active(self, *, current_role: Role, beacon_id: str, is_active: bool) -> Beacon:
        self._require_admin(current_role)
        beacon = self._beacons.update_beacon(
            beacon_id, {"is_active": bool(is_active), "updated_at": now_local().isoformat()}
        )
        if not beacon:
            raise NotFoundError("Beacon not found")
        self._invalidate()
        return beacon

    def delete_beacon(self, *, current_role: Role, beacon_id: str) -> None:
        """Delete a beacon after detaching it from assignments and sessions."""

        self._require_admin(current_role)
        self.get_beacon(beacon_id)
        removed = self._assignments.delete_for_beacon(beacon_id)
        cleared = self._sessions.clear_beacon(beacon_id)
        self._beacons.delete_by_id(beacon_id)
        logger.info(
            "Deleted beacon %s (assignments removed=%d, sessions detached=%d)", beacon_id, removed, cleared
        )
        self._invalidate()
        self._cache.invalidate(("sessions",))

    def list_assignments(self) -> Sequence[BeaconAssignment]:
        return self._cache.fetch(("beacons", "assignments"), self._assignments.list_all)

    def assign(self, *, current_role: Role, beacon_id: str, course_id: str, session_id: str = "") -> BeaconAssignment:
        self._require_admin(current_role)
        self.get_beacon(beacon_id)
        if not self._courses.get_by_id(course_id):
            raise NotFoundError("Course not found")
        assignment = self._assignments.create_assignment(
            beacon_id=beacon_id, course_id=course_id, session_id=session_id or None
        )
        self._invalidate()
        return assignment

    def unassign(self, *, current_role: Role, assignment_id: str) -> None:
        self._require_admin(current_role)
        if not self._assignments.delete_by_id(assignment_id):
            raise NotFoundError("Assignment not found")
        self._invalidate()

    def validate_for_user(
        self, mac_address: str, user_id: str, now: Optional[datetime] = None
    ) -> Optional[BeaconSessionMatch]:
        """Return the session a student can check in to with this beacon, if any.

        A match needs an active beacon and a session of today whose start and end
        times enclose the current time.
        """

        now = now or now_local()
        try:
            mac = normalize_mac(mac_address)
        except ValidationError:
            logger.info("Beacon scan with malformed MAC %r from user %s", mac_address, user_id)
            return None

        beacon = self._beacons.get_active_by_mac(mac)
        if not beacon:
            logger.info("Beacon %s not found or inactive", mac)
            return None

        current = now.time()
        candidates = [
            s
            for s in self._sessions.list_for_beacon_on_date(beacon.beacon_id, now.date())
            if s.start_time and s.end_time and s.start_time <= current <= s.end_time
        ]
        if not candidates:
            logger.info("No running session for beacon %s at %s", mac, current.strftime("%H:%M:%S"))
            return None

        session = min(candidates, key=lambda s: s.start_time)
        logger.info("Beacon %s matched session %s for user %s", mac, session.session_id, user_id)
        return BeaconSessionMatch(
            session_id=session.session_id,
            course_id=session.course_id,
            course_name=session.course_name,
            course_code=session.course_code,
            start_time=session.start_time,
            end_time=session.end_time,
            location=session.location,
            beacon_id=beacon.beacon_id,
            attendance_window_start=session.attendance_window_start,
            attendance_window_end=session.attendance_window_end,
        )

    @staticmethod
    def _require_admin(current_role: Role) -> None:
        if current_role != Role.ADMIN:
            raise AuthorizationError("Only admins can manage beacons")

    def _invalidate(self) -> None:
        self._cache.invalidate(("beacons",))
