from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import Role


@dataclass(frozen=True)
class User:
    """Domain entity: a row of the `users` profile table.

    Note: Plain data object; no backend access here.
    """

    user_id: str
    full_name: str
    email: str
    role: Role
    department: Optional[str] = None
    phone: Optional[str] = None
    office_location: Optional[str] = None
    device_id: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def initials(self) -> str:
        parts = [p for p in self.full_name.split() if p]
        return "".join(p[0].upper() for p in parts[:2]) or "?"
