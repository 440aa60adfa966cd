from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional

from ..common.datetime_utils import now_local
from ..core.enums import VerificationStatus
from ..core.exceptions import ValidationError
from ..users.service import UserService
from .checks import calculate_risk_score, determine_status, perform_security_checks
from .model import DeviceFingerprint, VerificationResult

logger = logging.getLogger(__name__)


class DeviceVerificationService:
    """Use case: score a browser fingerprint and bind the device to the user when approved."""

    def __init__(self, users: UserService, *, expected_timezone: str):
        self._users = users
        self._expected_timezone = expected_timezone

    def verify(self, user_id: str, payload: Optional[dict[str, Any]], *, now: Optional[datetime] = None) -> VerificationResult:
        if not payload:
            raise ValidationError("Device fingerprint is required")

        fingerprint = DeviceFingerprint.from_payload(payload)
        checks = perform_security_checks(fingerprint, self._expected_timezone)
        score = calculate_risk_score(checks)
        status = determine_status(score, checks)
        result = VerificationResult(
            device_id=fingerprint.device_id,
            user_id=user_id,
            risk_score=score,
            status=status,
            checks=checks,
            timestamp=now or now_local(),
        )
        logger.info("Device verification for %s: score=%d status=%s", user_id, score, status.value)

        if status == VerificationStatus.APPROVED:
            self._users.set_device_id(user_id, result.device_id)
        return result
