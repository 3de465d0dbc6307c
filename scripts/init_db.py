"""
Seed the single admin account.

Reads DEFAULT_PASSWORD (default "admin123") and CHANGE_PASSWORD_KEY.
An existing account's password is never touched; only a missing
change-password key is filled in.
"""

import os
import sys
from pathlib import Path

from werkzeug.security import generate_password_hash

# Ensure repo root is on sys.path when running as a script.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.course_archive.db import make_engine, make_sessionmaker  # noqa: E402
from app.course_archive.models import User  # noqa: E402


def seed_only(*, database_url: str | None = None) -> bool:
    """Return True when the admin account was created by this call."""
    password = os.environ.get("DEFAULT_PASSWORD") or "admin123"
    change_key = (os.environ.get("CHANGE_PASSWORD_KEY") or "").strip() or None
    db_url = (database_url or os.environ.get("DATABASE_URL") or "sqlite:///course_archive.db").strip()

    engine = make_engine(db_url)
    try:
        with make_sessionmaker(engine).begin() as s:
            existing = s.query(User).order_by(User.id.asc()).first()
            if existing is None:
                s.add(User(password_hash=generate_password_hash(password), change_password_key=change_key))
                created = True
            else:
                created = False
                if change_key and not existing.change_password_key:
                    existing.change_password_key = change_key
                    print("Admin user exists; stored CHANGE_PASSWORD_KEY.")
                else:
                    print("Admin user already exists. Skipping seed.")
    finally:
        engine.dispose()

    if created:
        print("Admin user created from DEFAULT_PASSWORD; change it after first login.")
        if not change_key:
            print("WARNING: CHANGE_PASSWORD_KEY not set; password rotation is disabled until it is.")
    return created


if __name__ == "__main__":
    seed_only()
