"""Delete every class session together with its attendance records and session-bound beacon assignments."""

from __future__ import annotations

import importlib
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT / "src") not in sys.path:
    sys.path.insert(0, str(REPO_ROOT / "src"))

from dotenv import load_dotenv

from tally_check.config import get_settings_module
from tally_check.database.connection import SupabaseConfig, SupabaseConnection
from tally_check.database.maintenance import cleanup_sessions, table_counts


def main() -> None:
    load_dotenv()
    settings = importlib.import_module(get_settings_module())
    cfg = settings.SUPABASE_CONFIG
    conn = SupabaseConnection.get_instance(SupabaseConfig(url=str(cfg["url"]), anon_key=str(cfg["anon_key"])))

    result = cleanup_sessions(conn)
    print(
        "OK: Removed "
        f"{result.attendance_records} attendance records, "
        f"{result.beacon_assignments} session beacon assignments, "
        f"{result.class_sessions} class sessions"
    )
    for table, count in table_counts(conn).items():
        print(f"  {table}: {count} remaining")


if __name__ == "__main__":
    main()
