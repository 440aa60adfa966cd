"""Translate backend row-change events into bell notifications and cache invalidations."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Optional

from ..common.datetime_utils import now_local
from ..core.enums import NotificationType
from .model import Notification

# Cache key prefixes to drop when a table changes.
INVALIDATIONS: dict[str, tuple[tuple[str, ...], ...]] = {
    "attendance_records": (("attendance",), ("dashboard",)),
    "class_sessions": (("sessions",), ("dashboard",)),
    "ble_beacons": (("beacons",),),
    "users": (("users",), ("students",), ("lecturers",)),
    "courses": (("courses",),),
}

# (table, event) pairs the listener subscribes to.
SUBSCRIPTIONS: tuple[tuple[str, str], ...] = (
    ("attendance_records", "INSERT"),
    ("class_sessions", "INSERT"),
    ("ble_beacons", "UPDATE"),
    ("users", "UPDATE"),
    ("courses", "INSERT"),
)


@dataclass(frozen=True)
class ChangeEvent:
    table: str
    event: str
    new: dict[str, Any]
    old: dict[str, Any]

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "ChangeEvent":
        """Accept both payload shapes seen from the realtime server.

        Either {"table", "eventType", "new", "old"} or
        {"data": {"table", "type", "record", "old_record"}}.
        """

        data = payload.get("data") if isinstance(payload.get("data"), dict) else payload
        return cls(
            table=str(data.get("table") or ""),
            event=str(data.get("eventType") or data.get("type") or "").upper(),
            new=dict(data.get("new") or data.get("record") or {}),
            old=dict(data.get("old") or data.get("old_record") or {}),
        )


class ChangeEventMapper:
    def __init__(self, clock: Callable[[], datetime] = now_local):
        self._clock = clock

    def map(self, table: str, event: str, new: dict[str, Any], old: Optional[dict[str, Any]] = None) -> Optional[Notification]:
        """Return the notification for a change, or None when it is not worth showing."""

        old = old or {}
        event = event.upper()
        row_id = new.get("id", "")

        def _note(prefix: str, kind: NotificationType, title: str, message: str) -> Notification:
            return Notification(
                notification_id=f"{prefix}-{row_id}",
                type=kind,
                title=title,
                message=message,
                timestamp=self._clock(),
                data=new,
            )

        if table == "attendance_records" and event == "INSERT":
            return _note("attendance", NotificationType.SUCCESS, "Student Signed In", "A student has signed in for attendance")

        if table == "class_sessions" and event == "INSERT":
            return _note("session", NotificationType.INFO, "New Class Session", "A new class session has been created")

        if table in ("ble_beacons", "beacons") and event == "UPDATE":
            if "is_active" not in old or new.get("is_active") == old.get("is_active"):
                return None
            active = bool(new.get("is_active"))
            return _note(
                "beacon",
                NotificationType.SUCCESS if active else NotificationType.WARNING,
                "Beacon Activated" if active else "Beacon Deactivated",
                f"Beacon {new.get('name')} has been {'activated' if active else 'deactivated'}",
            )

        if table == "users" and event == "UPDATE":
            if "device_id" not in old or new.get("device_id") == old.get("device_id"):
                return None
            return _note(
                "device",
                NotificationType.INFO,
                "Device Verification",
                f"Device verification completed for {new.get('full_name')}",
            )

        if table == "courses" and event == "INSERT":
            return _note("course", NotificationType.INFO, "New Course Created", f'Course "{new.get("name")}" has been created')

        return None
