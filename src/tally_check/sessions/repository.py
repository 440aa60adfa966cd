from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from .model import ClassSession


class SessionRepository(Protocol):
    def get_by_id(self, session_id: str) -> Optional[ClassSession]:
        raise NotImplementedError

    def list_by_course(self, course_id: str) -> Sequence[ClassSession]:
        raise NotImplementedError

    def list_for_date(self, session_date: date, course_ids: Optional[Sequence[str]] = None) -> Sequence[ClassSession]:
        """Sessions on `session_date`; restricted to `course_ids` when given."""

        raise NotImplementedError

    def list_for_beacon_on_date(self, beacon_id: str, session_date: date) -> Sequence[ClassSession]:
        raise NotImplementedError

    def create_session(self, values: dict) -> ClassSession:
        raise NotImplementedError

    def update_session(self, session_id: str, changes: dict) -> Optional[ClassSession]:
        raise NotImplementedError

    def delete_by_id(self, session_id: str) -> bool:
        raise NotImplementedError

    def clear_beacon(self, beacon_id: str) -> int:
        """Set beacon_id = NULL on every session that references `beacon_id`."""

        raise NotImplementedError

    def delete_all(self) -> int:
        raise NotImplementedError
