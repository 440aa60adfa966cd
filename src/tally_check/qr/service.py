from __future__ import annotations

import logging
from typing import Callable, Optional, Sequence

from ..common.datetime_utils import now_epoch_ms
from ..core.constants import DEFAULT_QR_DURATION_MINUTES
from ..core.enums import QRStatus, Role
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..courses.repository import CourseRepository
from .model import CheckInPrompt
from .repository import CheckInPromptRepository

logger = logging.getLogger(__name__)

MAX_DURATION_MINUTES = 180


class QRCodeService:
    """Use case: issue, look up and validate time-limited check-in QR codes."""

    def __init__(
        self,
        prompts: CheckInPromptRepository,
        courses: CourseRepository,
        *,
        default_duration_minutes: int = DEFAULT_QR_DURATION_MINUTES,
        clock: Callable[[], int] = now_epoch_ms,
    ):
        self._prompts = prompts
        self._courses = courses
        self._default_duration = default_duration_minutes
        self._clock = clock

    def create_qr_code(
        self,
        *,
        current_role: Role,
        current_user_id: str,
        course_id: str,
        duration_minutes: Optional[int] = None,
    ) -> CheckInPrompt:
        duration = self._default_duration if duration_minutes is None else int(duration_minutes)
        if duration < 1 or duration > MAX_DURATION_MINUTES:
            raise ValidationError(f"Duration must be between 1 and {MAX_DURATION_MINUTES} minutes")

        course = self._courses.get_by_id(course_id)
        if not course:
            raise NotFoundError("Course not found")
        if current_role == Role.LECTURER and course.instructor_id != current_user_id:
            raise AuthorizationError("You can only generate QR codes for your own courses")
        if current_role not in (Role.LECTURER, Role.ADMIN):
            raise AuthorizationError("You do not have permission to do this")

        now = self._clock()
        prompt = self._prompts.create_prompt(
            course_id=course.course_id,
            course_name=course.name,
            created_timestamp=now,
            expires_at=now + duration * 60 * 1000,
        )
        logger.info("QR code %s issued for course %s (%d min)", prompt.prompt_id, course.code, duration)
        return prompt

    def get_active(self, course_id: str) -> Optional[CheckInPrompt]:
        return self._prompts.latest_unexpired(course_id, self._clock())

    def validate(self, qr_id: str) -> CheckInPrompt:
        """Return the prompt when it exists and has not expired yet."""

        qr_id = (qr_id or "").strip()
        if not qr_id:
            raise ValidationError("QR code is required")
        prompt = self._prompts.get_by_id(qr_id)
        if not prompt or not prompt.is_valid(self._clock()):
            raise ValidationError("Invalid or expired QR code")
        return prompt

    def history(self, course_id: Optional[str] = None) -> Sequence[CheckInPrompt]:
        return self._prompts.list_history(course_id)

    def remaining_seconds(self, prompt: CheckInPrompt, now_ms: Optional[int] = None) -> int:
        return prompt.remaining_seconds(self._clock() if now_ms is None else now_ms)

    def status_of(self, prompt: CheckInPrompt, now_ms: Optional[int] = None) -> QRStatus:
        return prompt.status(self._clock() if now_ms is None else now_ms)
