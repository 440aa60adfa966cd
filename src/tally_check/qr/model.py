from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import QRStatus


@dataclass(frozen=True)
class CheckInPrompt:
    """Domain entity: a time-limited QR code (`check_in_prompts` row).

    Timestamps are epoch milliseconds, the format the mobile app reads.
    """

    prompt_id: str
    course_id: str
    course_name: Optional[str]
    created_timestamp: int
    expires_at: int
    course_code: Optional[str] = None
    created_at: Optional[datetime] = None

    def remaining_ms(self, now_ms: int) -> int:
        return max(0, self.expires_at - now_ms)

    def remaining_seconds(self, now_ms: int) -> int:
        return self.remaining_ms(now_ms) // 1000

    def is_valid(self, now_ms: int) -> bool:
        return now_ms < self.expires_at

    def status(self, now_ms: int) -> QRStatus:
        return QRStatus.ACTIVE if self.is_valid(now_ms) else QRStatus.EXPIRED
