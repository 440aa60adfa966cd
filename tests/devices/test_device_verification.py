from __future__ import annotations

import pytest

from tally_check.core.enums import CheckStatus, VerificationStatus
from tally_check.core.exceptions import ValidationError
from tally_check.devices.checks import calculate_risk_score, determine_status, perform_security_checks
from tally_check.devices.model import DeviceFingerprint, SecurityCheck, derive_device_id


def _payload(**overrides) -> dict:
    payload = {
        "userAgent": "Mozilla/5.0 (X11; Linux x86_64)",
        "screenResolution": "1920x1080",
        "timezone": "Africa/Accra",
        "language": "en-GB",
        "platform": "Linux x86_64",
        "hardwareConcurrency": 8,
        "webdriver": False,
        "canvasFingerprint": "data:image/png;base64,AAAA",
    }
    payload.update(overrides)
    return payload


def _check(score: int, status: CheckStatus = CheckStatus.PASSED) -> SecurityCheck:
    return SecurityCheck(check_id=f"c{score}", name="c", status=status, score=score, description="")


def test_risk_score_is_mean_rounded_half_up():
    assert calculate_risk_score([_check(90), _check(91)]) == 91
    assert calculate_risk_score([_check(100), _check(90), _check(70), _check(100), _check(100), _check(100)]) == 93
    assert calculate_risk_score([]) == 0


def test_status_thresholds():
    passed = [_check(100)]
    warned = [_check(100), _check(80, CheckStatus.WARNING)]

    assert determine_status(90, passed) == VerificationStatus.APPROVED
    assert determine_status(95, warned) == VerificationStatus.REQUIRES_REVIEW
    assert determine_status(89, passed) == VerificationStatus.REQUIRES_REVIEW
    assert determine_status(70, passed) == VerificationStatus.REQUIRES_REVIEW
    assert determine_status(69, passed) == VerificationStatus.REJECTED
    assert determine_status(99, [_check(100), _check(0, CheckStatus.FAILED)]) == VerificationStatus.REJECTED


def test_clean_device_is_approved_and_bound(container, seeded, db, fixed_now):
    result = container.device_service.verify("stu-1", _payload(), now=fixed_now)

    assert result.risk_score == 98
    assert result.status == VerificationStatus.APPROVED
    assert db.tables["users"]["stu-1"]["device_id"] == result.device_id
    assert result.to_dict()["timestamp"] == fixed_now.isoformat()


def test_timezone_mismatch_needs_review(container, seeded, db):
    result = container.device_service.verify("stu-1", _payload(timezone="Europe/Berlin"))

    assert result.risk_score == 93
    assert result.status == VerificationStatus.REQUIRES_REVIEW
    assert "device_id" not in db.tables["users"]["stu-1"]
    [tz] = [c for c in result.checks if c.check_id == "timezone"]
    assert tz.status == CheckStatus.WARNING
    assert tz.details == "Expected: Africa/Accra, Got: Europe/Berlin"


def test_automation_is_rejected(container, seeded):
    result = container.device_service.verify("stu-1", _payload(webdriver=True))

    assert result.status == VerificationStatus.REJECTED
    assert result.risk_score == 82


def test_sparse_fingerprint_scores_low():
    fp = DeviceFingerprint.from_payload({"userAgent": "curl/8", "hardwareConcurrency": "n/a"})
    checks = perform_security_checks(fp, "Africa/Accra")

    assert fp.hardware_concurrency == 0
    assert calculate_risk_score(checks) == 67
    assert determine_status(67, checks) == VerificationStatus.REJECTED


def test_empty_payload_is_rejected(container):
    with pytest.raises(ValidationError, match="fingerprint is required"):
        container.device_service.verify("stu-1", {})


def test_device_id_depends_on_signals():
    base = dict(
        user_agent="UA-1", screen_resolution="1x1", timezone="UTC", language="en", platform="p", hardware_concurrency=4
    )

    first = derive_device_id(**base)
    assert len(first) == 16
    assert derive_device_id(**base) == first
    assert derive_device_id(**{**base, "user_agent": "UA-2"}) != first
