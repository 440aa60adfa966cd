from __future__ import annotations

from datetime import timedelta

import pytest

from conftest import add_record
from tally_check.core.enums import Role
from tally_check.core.exceptions import AuthorizationError, NotFoundError, ValidationError


def test_summary_counts_and_rate(container, seeded, db, fixed_now):
    today = fixed_now.date()
    add_record(db, student_id="stu-1", day=today)
    add_record(db, student_id="stu-2", day=today)
    add_record(db, student_id="stu-1", day=today - timedelta(days=1), status="absent")
    add_record(db, student_id="stu-2", day=today - timedelta(days=1), status="pending")
    add_record(db, student_id="stu-2", day=today - timedelta(days=1), status="present")
    add_record(db, student_id="stu-1", day=today - timedelta(days=1), status="absent")
    add_record(db, student_id="stu-1", day=today - timedelta(days=30))

    report = container.report_service.build_attendance_report(start=today - timedelta(days=7), end=today)

    assert len(report.records) == 6
    assert report.summary.total == 6
    assert report.summary.present == 3
    assert report.summary.absent == 2
    assert report.summary.late == 1
    assert report.summary.rate == 50


def test_rate_rounds_half_up(container, seeded, db, fixed_now):
    today = fixed_now.date()
    for status in ["verified"] * 5 + ["absent"] * 3:
        add_record(db, student_id="stu-1", day=today, status=status)

    report = container.report_service.build_attendance_report(start=today, end=today)

    assert report.summary.rate == 63


def test_lecturer_sees_only_own_courses(container, seeded, db, fixed_now):
    today = fixed_now.date()
    db.insert("courses", {"id": "course-2", "name": "Physics", "code": "PH100", "instructor_id": "lec-9"}, "course")
    add_record(db, student_id="stu-1", day=today)
    add_record(db, student_id="stu-2", day=today, course_id="course-2")

    report = container.report_service.build_attendance_report(
        start=today, end=today, current_role=Role.LECTURER, current_user_id="lec-1"
    )
    assert [r.course_id for r in report.records] == ["course-1"]

    filtered = container.report_service.build_attendance_report(start=today, end=today, course_id="course-2")
    assert [r.course_id for r in filtered.records] == ["course-2"]

    with pytest.raises(AuthorizationError):
        container.report_service.build_attendance_report(
            start=today, end=today, course_id="course-2", current_role=Role.LECTURER, current_user_id="lec-1"
        )
    with pytest.raises(AuthorizationError):
        container.report_service.build_attendance_report(start=today, end=today, current_role=Role.STUDENT)


def test_invalid_ranges_and_courses(container, seeded, fixed_now):
    today = fixed_now.date()

    with pytest.raises(ValidationError, match="End date"):
        container.report_service.build_attendance_report(start=today, end=today - timedelta(days=1))
    with pytest.raises(NotFoundError):
        container.report_service.build_attendance_report(start=today, end=today, course_id="missing")


def test_search_and_method_narrow_the_report(container, seeded, db, fixed_now):
    today = fixed_now.date()
    add_record(db, student_id="stu-1", day=today, method="BLE")
    add_record(db, student_id="stu-2", day=today, method="QR")
    add_record(db, student_id="stu-2", day=today, method="BLE", status="absent")

    ble = container.report_service.build_attendance_report(start=today, end=today, method="BLE")
    assert len(ble.records) == 2
    assert ble.summary.total == 2
    assert ble.method == "BLE"

    yaw_ble = container.report_service.build_attendance_report(start=today, end=today, search="yaw", method="ble")
    assert [r.student_id for r in yaw_ble.records] == ["stu-2"]
    assert yaw_ble.summary.absent == 1

    everything = container.report_service.build_attendance_report(start=today, end=today, method="all")
    assert len(everything.records) == 3
