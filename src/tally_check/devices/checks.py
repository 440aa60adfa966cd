"""Device security checks and the score/status rules built on them."""

from __future__ import annotations

import math
from typing import Sequence

from ..core.constants import APPROVE_MIN_SCORE, REVIEW_MIN_SCORE
from ..core.enums import CheckStatus, VerificationStatus
from .model import DeviceFingerprint, SecurityCheck


def _check(check_id: str, name: str, ok: bool, pass_score: int, miss_score: int, description: str, details: str,
           miss_status: CheckStatus = CheckStatus.WARNING) -> SecurityCheck:
    return SecurityCheck(
        check_id=check_id,
        name=name,
        status=CheckStatus.PASSED if ok else miss_status,
        score=pass_score if ok else miss_score,
        description=description,
        details=details,
    )


def perform_security_checks(fp: DeviceFingerprint, expected_timezone: str) -> list[SecurityCheck]:
    return [
        _check(
            "webdriver",
            "WebDriver Detection",
            not fp.webdriver,
            100,
            0,
            "Detecting automated browser testing tools",
            "WebDriver detected - possible automation" if fp.webdriver else "No automation detected",
            miss_status=CheckStatus.FAILED,
        ),
        _check(
            "canvas",
            "Canvas Fingerprint",
            bool(fp.canvas_fingerprint),
            90,
            50,
            "Checking canvas rendering consistency",
            "Canvas fingerprint generated successfully" if fp.canvas_fingerprint else "Canvas fingerprint missing",
        ),
        _check(
            "timezone",
            "Timezone Consistency",
            fp.timezone == expected_timezone,
            100,
            70,
            "Verifying timezone consistency",
            f"Expected: {expected_timezone}, Got: {fp.timezone}",
        ),
        _check(
            "hardware",
            "Hardware Profile",
            fp.hardware_concurrency > 0,
            100,
            60,
            "Checking hardware profile consistency",
            f"CPU cores: {fp.hardware_concurrency}",
        ),
        _check(
            "screen",
            "Screen Resolution",
            bool(fp.screen_resolution),
            100,
            60,
            "Verifying screen resolution",
            f"Resolution: {fp.screen_resolution}",
        ),
        _check(
            "language",
            "Language Settings",
            bool(fp.language),
            100,
            60,
            "Checking language settings",
            f"Language: {fp.language}",
        ),
    ]


def calculate_risk_score(checks: Sequence[SecurityCheck]) -> int:
    """Mean of check scores, rounded half up."""

    if not checks:
        return 0
    return int(math.floor(sum(c.score for c in checks) / len(checks) + 0.5))


def determine_status(risk_score: int, checks: Sequence[SecurityCheck]) -> VerificationStatus:
    if any(c.status == CheckStatus.FAILED for c in checks):
        return VerificationStatus.REJECTED
    has_warnings = any(c.status == CheckStatus.WARNING for c in checks)
    if risk_score >= APPROVE_MIN_SCORE and not has_warnings:
        return VerificationStatus.APPROVED
    if risk_score >= REVIEW_MIN_SCORE:
        return VerificationStatus.REQUIRES_REVIEW
    return VerificationStatus.REJECTED
