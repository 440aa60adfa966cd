from __future__ import annotations

import pytest

from tally_check.core.enums import QRStatus, Role
from tally_check.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from tally_check.qr.service import QRCodeService

START_MS = 1_772_445_600_000


class FakeClock:
    def __init__(self, now_ms: int):
        self.now_ms = now_ms

    def __call__(self) -> int:
        return self.now_ms


@pytest.fixture()
def clock():
    return FakeClock(START_MS)


@pytest.fixture()
def qr_service(repos, seeded, clock):
    return QRCodeService(repos.check_in_prompts, repos.courses, default_duration_minutes=15, clock=clock)


def test_new_code_expires_after_duration(qr_service):
    prompt = qr_service.create_qr_code(current_role=Role.LECTURER, current_user_id="lec-1", course_id="course-1")

    assert prompt.course_name == "Algorithms"
    assert prompt.created_timestamp == START_MS
    assert prompt.expires_at == START_MS + 15 * 60 * 1000
    assert qr_service.remaining_seconds(prompt) == 900
    assert qr_service.status_of(prompt) == QRStatus.ACTIVE


def test_countdown_reaches_zero_and_code_expires(qr_service, clock):
    prompt = qr_service.create_qr_code(
        current_role=Role.LECTURER, current_user_id="lec-1", course_id="course-1", duration_minutes=1
    )

    clock.now_ms += 59_500
    assert qr_service.remaining_seconds(prompt) == 0
    assert qr_service.status_of(prompt) == QRStatus.ACTIVE
    assert qr_service.validate(prompt.prompt_id) == prompt

    clock.now_ms = prompt.expires_at
    assert qr_service.remaining_seconds(prompt) == 0
    assert qr_service.status_of(prompt) == QRStatus.EXPIRED
    assert qr_service.get_active("course-1") is None
    with pytest.raises(ValidationError, match="Invalid or expired"):
        qr_service.validate(prompt.prompt_id)

    clock.now_ms += 3_600_000
    assert qr_service.remaining_seconds(prompt) == 0


def test_get_active_returns_latest_unexpired(qr_service, clock):
    first = qr_service.create_qr_code(current_role=Role.ADMIN, current_user_id="admin-1", course_id="course-1")
    clock.now_ms += 1000
    second = qr_service.create_qr_code(current_role=Role.ADMIN, current_user_id="admin-1", course_id="course-1")

    assert qr_service.get_active("course-1") == second
    assert [p.prompt_id for p in qr_service.history("course-1")] == [second.prompt_id, first.prompt_id]


def test_duration_and_ownership_rules(qr_service, db):
    db.insert("courses", {"id": "course-2", "name": "Physics", "code": "PH100", "instructor_id": "lec-9"}, "course")

    with pytest.raises(ValidationError):
        qr_service.create_qr_code(current_role=Role.LECTURER, current_user_id="lec-1", course_id="course-1", duration_minutes=0)
    with pytest.raises(ValidationError):
        qr_service.create_qr_code(
            current_role=Role.LECTURER, current_user_id="lec-1", course_id="course-1", duration_minutes=181
        )
    with pytest.raises(AuthorizationError):
        qr_service.create_qr_code(current_role=Role.LECTURER, current_user_id="lec-1", course_id="course-2")
    with pytest.raises(AuthorizationError):
        qr_service.create_qr_code(current_role=Role.STUDENT, current_user_id="stu-1", course_id="course-1")
    with pytest.raises(NotFoundError):
        qr_service.create_qr_code(current_role=Role.ADMIN, current_user_id="admin-1", course_id="missing")
