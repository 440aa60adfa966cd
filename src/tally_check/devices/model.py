from __future__ import annotations

import base64
import hashlib
import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from ..core.enums import CheckStatus, VerificationStatus


def derive_device_id(
    *,
    user_agent: str,
    screen_resolution: str,
    timezone: str,
    language: str,
    platform: str,
    hardware_concurrency: int,
) -> str:
    """Stable short id: first 16 chars of base64(sha256(JSON of the core browser signals)).

    The JSON itself always starts with the same key, so it is hashed first.
    """

    payload = json.dumps(
        {
            "userAgent": user_agent,
            "screenResolution": screen_resolution,
            "timezone": timezone,
            "language": language,
            "platform": platform,
            "hardwareConcurrency": hardware_concurrency,
        },
        separators=(",", ":"),
    )
    digest = hashlib.sha256(payload.encode("utf-8")).digest()
    return base64.urlsafe_b64encode(digest).decode("ascii")[:16]


@dataclass(frozen=True)
class DeviceFingerprint:
    user_agent: str = ""
    screen_resolution: str = ""
    timezone: str = ""
    language: str = ""
    platform: str = ""
    hardware_concurrency: int = 0
    device_memory: Optional[float] = None
    max_touch_points: int = 0
    cookie_enabled: bool = True
    do_not_track: Optional[str] = None
    webdriver: bool = False
    canvas_fingerprint: str = ""
    audio_fingerprint: str = ""
    battery_level: Optional[float] = None
    connection_type: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "DeviceFingerprint":
        """Build from the JSON the browser posts (camelCase keys)."""

        def _int(key: str) -> int:
            try:
                return int(payload.get(key) or 0)
            except (TypeError, ValueError):
                return 0

        return cls(
            user_agent=str(payload.get("userAgent") or ""),
            screen_resolution=str(payload.get("screenResolution") or ""),
            timezone=str(payload.get("timezone") or ""),
            language=str(payload.get("language") or ""),
            platform=str(payload.get("platform") or ""),
            hardware_concurrency=_int("hardwareConcurrency"),
            device_memory=payload.get("deviceMemory"),
            max_touch_points=_int("maxTouchPoints"),
            cookie_enabled=bool(payload.get("cookieEnabled", True)),
            do_not_track=payload.get("doNotTrack"),
            webdriver=bool(payload.get("webdriver", False)),
            canvas_fingerprint=str(payload.get("canvasFingerprint") or ""),
            audio_fingerprint=str(payload.get("audioFingerprint") or ""),
            battery_level=payload.get("batteryLevel"),
            connection_type=payload.get("connectionType"),
        )

    @property
    def device_id(self) -> str:
        return derive_device_id(
            user_agent=self.user_agent,
            screen_resolution=self.screen_resolution,
            timezone=self.timezone,
            language=self.language,
            platform=self.platform,
            hardware_concurrency=self.hardware_concurrency,
        )


@dataclass(frozen=True)
class SecurityCheck:
    check_id: str
    name: str
    status: CheckStatus
    score: int
    description: str
    details: str = ""

    def to_dict(self) -> dict:
        return {
            "id": self.check_id,
            "name": self.name,
            "status": self.status.value,
            "score": self.score,
            "description": self.description,
            "details": self.details,
        }


@dataclass(frozen=True)
class VerificationResult:
    device_id: str
    user_id: str
    risk_score: int
    status: VerificationStatus
    checks: list[SecurityCheck] = field(default_factory=list)
    timestamp: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "deviceId": self.device_id,
            "userId": self.user_id,
            "riskScore": self.risk_score,
            "status": self.status.value,
            "securityChecks": [c.to_dict() for c in self.checks],
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }
