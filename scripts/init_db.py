"""
Create tables and optionally seed a first account.

Usage:
  DATABASE_URL=sqlite:///canvashub.db SEED_USERNAME=demo SEED_PASSWORD=secret python scripts/init_db.py
"""
import os
import sys
from pathlib import Path

# Ensure repo root is on sys.path when running as a script.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from scripts._db_utils import script_session  # noqa: E402
from app.canvashub.accounts import register_user  # noqa: E402
from app.canvashub.models import Base  # noqa: E402
from app.canvashub.repositories import SqlUserRepository  # noqa: E402


def seed_only(*, database_url: str | None = None) -> None:
    """
    Create missing tables and seed SEED_USERNAME in an idempotent way.
    Does NOT overwrite an existing user's password.
    """
    db_url = (database_url or os.environ.get("DATABASE_URL") or "sqlite:///canvashub.db").strip()
    username = (os.environ.get("SEED_USERNAME") or "").strip()
    password = os.environ.get("SEED_PASSWORD") or ""

    with script_session(db_url) as s:
        Base.metadata.create_all(bind=s.get_bind())
        if not username:
            print("Initialized database (no seed user requested).")
            return
        if not password:
            raise RuntimeError("SEED_PASSWORD is required when SEED_USERNAME is set.")
        user = register_user(SqlUserRepository(s), username, password)
        if user is None:
            print(f"Seed user {username!r} already exists; left unchanged.")
        else:
            print(f"Seed user {username!r} created (id={user.id}).")


def main() -> None:
    seed_only(database_url=None)


if __name__ == "__main__":
    main()
