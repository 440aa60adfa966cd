"""Create the first admin account (only works while no admin exists)."""

from __future__ import annotations

import argparse
import getpass
import importlib
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT / "src") not in sys.path:
    sys.path.insert(0, str(REPO_ROOT / "src"))

from dotenv import load_dotenv

from tally_check.config import get_settings_module
from tally_check.container import build_container
from tally_check.core.exceptions import DomainError


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--name", required=True)
    parser.add_argument("--email", required=True)
    args = parser.parse_args()

    load_dotenv()
    settings = importlib.import_module(get_settings_module())
    container = build_container(supabase_config=settings.SUPABASE_CONFIG)

    password = getpass.getpass("Password: ")
    try:
        user = container.auth_service.bootstrap_admin(full_name=args.name, email=args.email, password=password)
    except DomainError as e:
        raise SystemExit(f"Failed: {e}")
    print(f"OK: Admin {user.email} created (id={user.user_id})")


if __name__ == "__main__":
    main()
