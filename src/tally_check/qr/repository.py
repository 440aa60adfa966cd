from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import CheckInPrompt


class CheckInPromptRepository(Protocol):
    def create_prompt(self, *, course_id: str, course_name: str, created_timestamp: int, expires_at: int) -> CheckInPrompt:
        raise NotImplementedError

    def get_by_id(self, prompt_id: str) -> Optional[CheckInPrompt]:
        raise NotImplementedError

    def latest_unexpired(self, course_id: str, now_ms: int) -> Optional[CheckInPrompt]:
        raise NotImplementedError

    def list_history(self, course_id: Optional[str] = None) -> Sequence[CheckInPrompt]:
        raise NotImplementedError
