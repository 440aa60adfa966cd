from __future__ import annotations

from typing import Any, Optional, Sequence

from ..common.datetime_utils import parse_timestamp
from ..database.connection import SupabaseConnection
from ..database.supabase_base import embedded, execute, first_or_none
from .model import Beacon, BeaconAssignment
from .repository import BeaconAssignmentRepository, BeaconRepository


def row_to_beacon(row: dict[str, Any]) -> Beacon:
    return Beacon(
        beacon_id=str(row["id"]),
        mac_address=row.get("mac_address") or "",
        name=row.get("name"),
        uuid=row.get("uuid"),
        major=row.get("major"),
        minor=row.get("minor"),
        location=row.get("location"),
        description=row.get("description"),
        is_active=bool(row.get("is_active", True)),
        updated_at=parse_timestamp(row.get("updated_at")),
    )


def row_to_assignment(row: dict[str, Any]) -> BeaconAssignment:
    beacon = embedded(row, "ble_beacons")
    course = embedded(row, "courses")
    return BeaconAssignment(
        assignment_id=str(row["id"]),
        beacon_id=str(row["beacon_id"]),
        course_id=str(row["course_id"]),
        session_id=row.get("session_id"),
        beacon_name=beacon.get("name"),
        beacon_mac=beacon.get("mac_address"),
        course_name=course.get("name"),
        course_code=course.get("code"),
    )


class SupabaseBeaconRepository(BeaconRepository):
    def __init__(self, conn: SupabaseConnection):
        self._conn = conn

    def _table(self):
        return self._conn.client().table("ble_beacons")

    def list_all(self) -> Sequence[Beacon]:
        return [row_to_beacon(r) for r in execute(self._table().select("*").order("name"))]

    def get_by_id(self, beacon_id: str) -> Optional[Beacon]:
        row = first_or_none(execute(self._table().select("*").eq("id", beacon_id).limit(1)))
        return row_to_beacon(row) if row else None

    def get_active_by_mac(self, mac_address: str) -> Optional[Beacon]:
        row = first_or_none(
            execute(self._table().select("*").eq("mac_address", mac_address).eq("is_active", True).limit(1))
        )
        return row_to_beacon(row) if row else None

    def create_beacon(self, values: dict) -> Beacon:
        return row_to_beacon(execute(self._table().insert(values))[0])

    def update_beacon(self, beacon_id: str, changes: dict) -> Optional[Beacon]:
        row = first_or_none(execute(self._table().update(changes).eq("id", beacon_id)))
        return row_to_beacon(row) if row else None

    def delete_by_id(self, beacon_id: str) -> bool:
        return bool(execute(self._table().delete().eq("id", beacon_id)))


class SupabaseBeaconAssignmentRepository(BeaconAssignmentRepository):
    def __init__(self, conn: SupabaseConnection):
        self._conn = conn

    def _table(self):
        return self._conn.client().table("beacon_assignments")

    def list_all(self) -> Sequence[BeaconAssignment]:
        rows = execute(self._table().select("*, ble_beacons (*), courses (*)").order("created_at", desc=True))
        return [row_to_assignment(r) for r in rows]

    def list_for_beacon(self, beacon_id: str) -> Sequence[BeaconAssignment]:
        rows = execute(self._table().select("*").eq("beacon_id", beacon_id))
        return [row_to_assignment(r) for r in rows]

    def create_assignment(self, *, beacon_id: str, course_id: str, session_id: Optional[str] = None) -> BeaconAssignment:
        rows = execute(self._table().insert({"beacon_id": beacon_id, "course_id": course_id, "session_id": session_id}))
        return row_to_assignment(rows[0])

    def delete_by_id(self, assignment_id: str) -> bool:
        return bool(execute(self._table().delete().eq("id", assignment_id)))

    def delete_for_beacon(self, beacon_id: str) -> int:
        return len(execute(self._table().delete().eq("beacon_id", beacon_id)))

    def delete_session_bound(self) -> int:
        return len(execute(self._table().delete().not_.is_("session_id", "null")))
