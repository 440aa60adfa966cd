from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

from supabase import PostgrestAPIError

from ..core.exceptions import BackendError

logger = logging.getLogger(__name__)

# PostgREST error code for ".single()" with zero rows.
NO_ROWS_CODE = "PGRST116"


def execute(query) -> list[dict[str, Any]]:
    """Run a PostgREST query builder and return its rows.

    Backend failures are logged and re-raised as BackendError so controllers only
    need to handle domain exceptions.
    """

    try:
        response = query.execute()
    except PostgrestAPIError as e:
        logger.error("Supabase request failed: code=%s message=%s", e.code, e.message)
        raise BackendError(e.message or "Backend request failed") from e

    data = response.data if response is not None else None
    if data is None:
        return []
    if isinstance(data, dict):
        return [data]
    return list(data)


def execute_count(query) -> int:
    try:
        response = query.execute()
    except PostgrestAPIError as e:
        logger.error("Supabase count failed: code=%s message=%s", e.code, e.message)
        raise BackendError(e.message or "Backend request failed") from e
    return int(response.count or 0)


def first_or_none(rows: Sequence[dict[str, Any]]) -> Optional[dict[str, Any]]:
    return rows[0] if rows else None


def embedded(row: dict[str, Any], key: str) -> dict[str, Any]:
    """Return an embedded relation (PostgREST returns a dict, a list or None)."""

    value = row.get(key)
    if isinstance(value, list):
        return value[0] if value else {}
    return value or {}
