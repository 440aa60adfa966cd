from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """User roles used for access control."""

    STUDENT = "student"
    LECTURER = "lecturer"
    ADMIN = "admin"


class AttendanceMethod(str, Enum):
    BLE = "BLE"
    QR = "QR"
    MANUAL = "MANUAL"


class AttendanceStatus(str, Enum):
    """Attendance record status as stored in the backend."""

    PENDING = "pending"
    VERIFIED = "verified"
    ABSENT = "absent"


class SessionStatus(str, Enum):
    UPCOMING = "upcoming"
    ONGOING = "ongoing"
    COMPLETED = "completed"


class QRStatus(str, Enum):
    ACTIVE = "active"
    EXPIRED = "expired"


class CheckStatus(str, Enum):
    """Outcome of a single device security check."""

    PENDING = "pending"
    PASSED = "passed"
    FAILED = "failed"
    WARNING = "warning"


class VerificationStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    REQUIRES_REVIEW = "requires_review"


class Performance(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    AVERAGE = "average"
    POOR = "poor"


class AlertSeverity(str, Enum):
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class NotificationType(str, Enum):
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"
    INFO = "info"
