from __future__ import annotations

from datetime import datetime

import pytest

from conftest import add_record
from tally_check.core.enums import AttendanceMethod, AttendanceStatus, Role
from tally_check.core.exceptions import AuthorizationError, NotFoundError, ValidationError


def _qr(container):
    return container.qr_service.create_qr_code(current_role=Role.LECTURER, current_user_id="lec-1", course_id="course-1")


def test_qr_check_in_creates_verified_record_for_current_session(container, seeded, fixed_now):
    prompt = _qr(container)

    record = container.attendance_service.check_in_qr("stu-1", prompt.prompt_id, now=fixed_now)

    assert record.method == AttendanceMethod.QR
    assert record.status == AttendanceStatus.VERIFIED
    assert record.session_id == "session-1"
    assert record.verified_by == "lec-1"
    assert record.course_code == "CS101"
    assert record.student_name == "Esi Owusu"


def test_qr_check_in_twice_same_day_is_rejected(container, seeded, fixed_now):
    prompt = _qr(container)
    container.attendance_service.check_in_qr("stu-1", prompt.prompt_id, now=fixed_now)

    with pytest.raises(ValidationError, match="already checked in"):
        container.attendance_service.check_in_qr("stu-1", prompt.prompt_id, now=fixed_now)


def test_qr_check_in_requires_enrollment_and_valid_code(container, seeded, fixed_now):
    prompt = _qr(container)

    with pytest.raises(ValidationError, match="not enrolled"):
        container.attendance_service.check_in_qr("stu-2", prompt.prompt_id, now=fixed_now)
    with pytest.raises(ValidationError, match="Invalid or expired"):
        container.attendance_service.check_in_qr("stu-1", "qr-unknown", now=fixed_now)
    with pytest.raises(ValidationError, match="required"):
        container.attendance_service.check_in_qr("stu-1", "  ", now=fixed_now)


def test_ble_check_in_matches_running_session(container, seeded, fixed_now):
    record = container.attendance_service.check_in_ble("stu-1", "aa-bb-cc-dd-ee-ff", now=fixed_now)

    assert record.method == AttendanceMethod.BLE
    assert record.session_id == "session-1"
    assert record.beacon_id == "beacon-1"
    assert record.verified_by == "lec-1"

    with pytest.raises(ValidationError, match="already checked in for this session"):
        container.attendance_service.check_in_ble("stu-1", "AA:BB:CC:DD:EE:FF", now=fixed_now)


def test_ble_check_in_outside_session_hours(container, seeded):
    with pytest.raises(ValidationError, match="No active class session"):
        container.attendance_service.check_in_ble("stu-1", "AA:BB:CC:DD:EE:FF", now=datetime(2026, 3, 2, 12, 0))


def test_manual_marking_by_course_lecturer(container, seeded, fixed_now):
    record = container.attendance_service.mark_manual(
        current_role=Role.LECTURER, current_user_id="lec-1", student_id="stu-1", session_id="session-1", status="absent",
        now=fixed_now,
    )
    assert record.method == AttendanceMethod.MANUAL
    assert record.status == AttendanceStatus.ABSENT

    with pytest.raises(ValidationError, match="already recorded"):
        container.attendance_service.mark_manual(
            current_role=Role.ADMIN, current_user_id="admin-1", student_id="stu-1", session_id="session-1", now=fixed_now
        )


def test_manual_marking_permissions(container, seeded, db, fixed_now):
    db.insert("users", {"id": "lec-2", "full_name": "Other", "email": "other@uni.edu", "role": "lecturer"}, "user")

    with pytest.raises(AuthorizationError):
        container.attendance_service.mark_manual(
            current_role=Role.LECTURER, current_user_id="lec-2", student_id="stu-1", session_id="session-1", now=fixed_now
        )
    with pytest.raises(NotFoundError):
        container.attendance_service.mark_manual(
            current_role=Role.ADMIN, current_user_id="admin-1", student_id="stu-1", session_id="nope", now=fixed_now
        )


def test_update_status_stamps_verifier(container, seeded, db, fixed_now):
    row = add_record(db, student_id="stu-1", day=fixed_now.date(), status="pending", verified_by=None)

    record = container.attendance_service.update_status(
        row["id"], "verified", current_role=Role.LECTURER, current_user_id="lec-1"
    )

    assert record.status == AttendanceStatus.VERIFIED
    assert record.verified_by == "lec-1"
    assert record.verified_at is not None
    with pytest.raises(ValidationError):
        container.attendance_service.update_status(
            row["id"], "present", current_role=Role.ADMIN, current_user_id="admin-1"
        )
    with pytest.raises(NotFoundError):
        container.attendance_service.update_status(
            "missing", "verified", current_role=Role.ADMIN, current_user_id="admin-1"
        )


def test_update_status_limited_to_own_courses(container, seeded, db, fixed_now):
    db.insert("users", {"id": "lec-2", "full_name": "Abena Asante", "email": "abena@uni.edu", "role": "lecturer"}, "user")
    row = add_record(db, student_id="stu-1", day=fixed_now.date(), status="verified")

    with pytest.raises(AuthorizationError):
        container.attendance_service.update_status(
            row["id"], "absent", current_role=Role.LECTURER, current_user_id="lec-2"
        )
    with pytest.raises(AuthorizationError):
        container.attendance_service.update_status(
            row["id"], "absent", current_role=Role.STUDENT, current_user_id="stu-1"
        )
    assert db.tables["attendance_records"][row["id"]]["status"] == "verified"

    record = container.attendance_service.update_status(
        row["id"], "absent", current_role=Role.ADMIN, current_user_id="admin-1"
    )
    assert record.status == AttendanceStatus.ABSENT


def test_legacy_present_rows_read_as_verified(container, seeded, db, fixed_now):
    add_record(db, student_id="stu-1", day=fixed_now.date(), status="present")

    [record] = container.attendance_service.list_by_date(fixed_now.date())

    assert record.status == AttendanceStatus.VERIFIED
    assert record.is_present


def test_live_view_search_and_method_filter(container, seeded, db, fixed_now):
    add_record(db, student_id="stu-1", day=fixed_now.date(), method="BLE")
    add_record(db, student_id="stu-2", day=fixed_now.date(), method="QR")
    add_record(db, student_id="stu-2", day=fixed_now.date(), method="QR", verified_by="someone-else")

    everything = container.attendance_service.live_for_lecturer("lec-1")
    assert len(everything) == 2

    ble = container.attendance_service.live_for_lecturer("lec-1", method="BLE")
    assert [r.student_id for r in ble] == ["stu-1"]

    by_name = container.attendance_service.live_for_lecturer("lec-1", search="yaw")
    assert [r.student_id for r in by_name] == ["stu-2"]

    by_email = container.attendance_service.live_for_lecturer("lec-1", search="ESI@UNI")
    assert [r.student_id for r in by_email] == ["stu-1"]
