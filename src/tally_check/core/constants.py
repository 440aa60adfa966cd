"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

APP_NAME = "Tally Check"

# Polling intervals (seconds) used by the browser refetch loops.
LIVE_ATTENDANCE_POLL_SECONDS = 5
NOTIFICATIONS_POLL_SECONDS = 10
DASHBOARD_POLL_SECONDS = 30

DEFAULT_PAGE_SIZE = 10
PAGE_SIZE_OPTIONS = (10, 20, 50, 100)

PASSWORD_MIN_LENGTH = 8
EMAIL_PATTERN = r"^[^\s@]+@[^\s@]+\.[^\s@]+$"

DEFAULT_QR_DURATION_MINUTES = 15
NOTIFICATION_HISTORY_SIZE = 10

# Device verification thresholds.
APPROVE_MIN_SCORE = 90
REVIEW_MIN_SCORE = 70

# Performance bands on attendance rate (%).
EXCELLENT_MIN_RATE = 85
GOOD_MIN_RATE = 70
AVERAGE_MIN_RATE = 50

# Lecturer alerts.
LOW_ATTENDANCE_RATE = 75
CRITICAL_ATTENDANCE_RATE = 50
HIGH_ATTENDANCE_RATE = 60
DECLINE_THRESHOLD_POINTS = 15
ALERT_LOOKBACK_DAYS = 30
ALERT_RECENT_DAYS = 7

DEFAULT_REPORT_DAYS = 7
# A student with at least this many records below the critical rate is flagged.
STUDENT_CONCERN_MIN_RECORDS = 5

# Analytics report periods (days back from today).
REPORT_PERIOD_DAYS = {"week": 7, "month": 30, "semester": 182, "year": 365}
DEFAULT_REPORT_PERIOD = "month"
