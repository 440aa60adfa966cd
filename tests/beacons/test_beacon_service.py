from __future__ import annotations

from datetime import datetime, time

import pytest

from tally_check.beacons.service import normalize_mac
from tally_check.core.enums import Role
from tally_check.core.exceptions import AuthorizationError, NotFoundError, ValidationError


def test_normalize_mac():
    assert normalize_mac(" aa-bb-cc-dd-ee-0f ") == "AA:BB:CC:DD:EE:0F"
    with pytest.raises(ValidationError):
        normalize_mac("AA:BB:CC")


def test_validate_returns_running_session(container, seeded, fixed_now):
    match = container.beacon_service.validate_for_user("AA:BB:CC:DD:EE:FF", "stu-1", fixed_now)

    assert match is not None
    assert match.session_id == "session-1"
    payload = match.to_dict()
    assert payload["courseCode"] == "CS101"
    assert payload["startTime"] == "09:00:00"
    assert payload["beaconEnabled"] is True
    assert payload["sessionType"] == "BLE"


def test_validate_boundaries_are_inclusive(container, seeded):
    assert container.beacon_service.validate_for_user("AA:BB:CC:DD:EE:FF", "stu-1", datetime(2026, 3, 2, 9, 0))
    assert container.beacon_service.validate_for_user("AA:BB:CC:DD:EE:FF", "stu-1", datetime(2026, 3, 2, 11, 0))
    assert container.beacon_service.validate_for_user("AA:BB:CC:DD:EE:FF", "stu-1", datetime(2026, 3, 2, 11, 0, 1)) is None


def test_validate_prefers_earliest_overlapping_session(container, seeded, db, fixed_now):
    db.insert(
        "class_sessions",
        {
            "id": "session-0",
            "course_id": "course-1",
            "session_date": fixed_now.date().isoformat(),
            "start_time": time(8, 0).isoformat(),
            "end_time": time(10, 30).isoformat(),
            "beacon_id": "beacon-1",
        },
        "session",
    )

    match = container.beacon_service.validate_for_user("AA:BB:CC:DD:EE:FF", "stu-1", fixed_now)

    assert match.session_id == "session-0"


def test_validate_ignores_inactive_unknown_or_malformed(container, seeded, fixed_now):
    assert container.beacon_service.validate_for_user("not-a-mac", "stu-1", fixed_now) is None
    assert container.beacon_service.validate_for_user("11:22:33:44:55:66", "stu-1", fixed_now) is None

    container.beacon_service.set_active(current_role=Role.ADMIN, beacon_id="beacon-1", is_active=False)
    assert container.beacon_service.validate_for_user("AA:BB:CC:DD:EE:FF", "stu-1", fixed_now) is None


def test_beacon_crud_is_admin_only(container, seeded):
    form = {"mac_address": "11-22-33-44-55-66", "name": "Lab", "major": "1", "minor": ""}

    with pytest.raises(AuthorizationError):
        container.beacon_service.create_beacon(current_role=Role.LECTURER, form=form)

    beacon = container.beacon_service.create_beacon(current_role=Role.ADMIN, form=form)
    assert beacon.mac_address == "11:22:33:44:55:66"
    assert beacon.major == 1 and beacon.minor is None
    assert beacon.is_active

    with pytest.raises(ValidationError, match="Major must be a number"):
        container.beacon_service.update_beacon(
            current_role=Role.ADMIN, beacon_id=beacon.beacon_id, form={**form, "major": "one"}
        )


def test_delete_beacon_detaches_sessions_and_assignments(container, seeded, db):
    container.beacon_service.assign(current_role=Role.ADMIN, beacon_id="beacon-1", course_id="course-1")
    assert len(container.beacon_service.list_assignments()) == 1

    container.beacon_service.delete_beacon(current_role=Role.ADMIN, beacon_id="beacon-1")

    assert "beacon-1" not in db.tables["ble_beacons"]
    assert db.tables["class_sessions"]["session-1"]["beacon_id"] is None
    assert db.rows("beacon_assignments") == []
    with pytest.raises(NotFoundError):
        container.beacon_service.delete_beacon(current_role=Role.ADMIN, beacon_id="beacon-1")


def test_assignment_needs_existing_course(container, seeded):
    with pytest.raises(NotFoundError, match="Course not found"):
        container.beacon_service.assign(current_role=Role.ADMIN, beacon_id="beacon-1", course_id="missing")
    with pytest.raises(NotFoundError):
        container.beacon_service.unassign(current_role=Role.ADMIN, assignment_id="missing")
