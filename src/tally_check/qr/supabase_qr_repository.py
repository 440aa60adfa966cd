from __future__ import annotations

from typing import Any, Optional, Sequence

from ..common.datetime_utils import parse_timestamp
from ..database.connection import SupabaseConnection
from ..database.supabase_base import embedded, execute, first_or_none
from .model import CheckInPrompt
from .repository import CheckInPromptRepository

PROMPT_WITH_COURSE = "*, courses!check_in_prompts_course_id_fkey (id, name, code)"


def row_to_prompt(row: dict[str, Any]) -> CheckInPrompt:
    course = embedded(row, "courses")
    return CheckInPrompt(
        prompt_id=str(row["id"]),
        course_id=str(row["course_id"]),
        course_name=row.get("course_name") or course.get("name"),
        created_timestamp=int(row.get("created_timestamp") or 0),
        expires_at=int(row["expires_at"]),
        course_code=course.get("code"),
        created_at=parse_timestamp(row.get("created_at")),
    )


class SupabaseCheckInPromptRepository(CheckInPromptRepository):
    def __init__(self, conn: SupabaseConnection):
        self._conn = conn

    def _table(self):
        return self._conn.client().table("check_in_prompts")

    def create_prompt(self, *, course_id: str, course_name: str, created_timestamp: int, expires_at: int) -> CheckInPrompt:
        rows = execute(
            self._table().insert(
                {
                    "course_id": course_id,
                    "course_name": course_name,
                    "created_timestamp": created_timestamp,
                    "expires_at": expires_at,
                }
            )
        )
        return row_to_prompt(rows[0])

    def get_by_id(self, prompt_id: str) -> Optional[CheckInPrompt]:
        row = first_or_none(execute(self._table().select(PROMPT_WITH_COURSE).eq("id", prompt_id).limit(1)))
        return row_to_prompt(row) if row else None

    def latest_unexpired(self, course_id: str, now_ms: int) -> Optional[CheckInPrompt]:
        rows = execute(
            self._table()
            .select(PROMPT_WITH_COURSE)
            .eq("course_id", course_id)
            .gt("expires_at", now_ms)
            .order("created_at", desc=True)
            .limit(1)
        )
        row = first_or_none(rows)
        return row_to_prompt(row) if row else None

    def list_history(self, course_id: Optional[str] = None) -> Sequence[CheckInPrompt]:
        query = self._table().select(PROMPT_WITH_COURSE)
        if course_id:
            query = query.eq("course_id", course_id)
        return [row_to_prompt(r) for r in execute(query.order("created_at", desc=True))]
