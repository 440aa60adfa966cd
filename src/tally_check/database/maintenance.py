"""Bulk maintenance against the Supabase tables, used by the scripts/ helpers."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

from ..attendance.supabase_attendance_repository import SupabaseAttendanceRepository
from ..beacons.supabase_beacon_repository import SupabaseBeaconAssignmentRepository
from ..sessions.supabase_session_repository import SupabaseSessionRepository
from .connection import SupabaseConnection
from .supabase_base import execute_count

logger = logging.getLogger(__name__)

COUNTED_TABLES: Sequence[str] = (
    "attendance_records",
    "beacon_assignments",
    "class_sessions",
    "courses",
    "users",
)


@dataclass(frozen=True)
class CleanupResult:
    attendance_records: int
    beacon_assignments: int
    class_sessions: int


def table_counts(conn: SupabaseConnection, tables: Sequence[str] = COUNTED_TABLES) -> dict[str, int]:
    client = conn.client()
    return {t: execute_count(client.table(t).select("id", count="exact").limit(1)) for t in tables}


def cleanup_sessions(conn: SupabaseConnection) -> CleanupResult:
    """Remove all class sessions and what hangs off them.

    Order matters: attendance rows and session-bound beacon assignments reference
    class_sessions and must go first.
    """

    records = SupabaseAttendanceRepository(conn).delete_all()
    assignments = SupabaseBeaconAssignmentRepository(conn).delete_session_bound()
    sessions = SupabaseSessionRepository(conn).delete_all()
    logger.info("Cleanup removed %d records, %d assignments, %d sessions", records, assignments, sessions)
    return CleanupResult(attendance_records=records, beacon_assignments=assignments, class_sessions=sessions)
