from __future__ import annotations

import threading
from collections import deque
from typing import Optional

from ..core.constants import NOTIFICATION_HISTORY_SIZE
from .model import Notification


class NotificationFeed:
    """Bell history shared by all requests: newest first, bounded length."""

    def __init__(self, max_items: int = NOTIFICATION_HISTORY_SIZE):
        self._items: deque[Notification] = deque(maxlen=max_items)
        self._lock = threading.Lock()

    def push(self, notification: Optional[Notification]) -> None:
        if notification is None:
            return
        with self._lock:
            self._items.appendleft(notification)

    def items(self) -> list[Notification]:
        with self._lock:
            return list(self._items)

    def clear(self, notification_id: str) -> bool:
        with self._lock:
            kept = [n for n in self._items if n.notification_id != notification_id]
            removed = len(kept) != len(self._items)
            self._items.clear()
            self._items.extend(kept)
        return removed

    def clear_all(self) -> None:
        with self._lock:
            self._items.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)
