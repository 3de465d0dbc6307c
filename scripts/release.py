"""
Release-phase helper: migrate, prepare upload directories, seed the admin.

Every step is idempotent, so it runs on each deploy before the web process
starts. Production refuses sqlite and a missing JWT_SECRET up front.

Usage:
  python scripts/release.py
"""

from __future__ import annotations

import os
import sys
from pathlib import Path


ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def _is_production() -> bool:
    return (os.environ.get("ENV") or "").strip().lower() in ("prod", "production")


def check_environment() -> str:
    """Return DATABASE_URL, raising RuntimeError when the release cannot proceed."""
    db_url = (os.environ.get("DATABASE_URL") or "").strip()
    if not db_url:
        raise RuntimeError("Missing required environment variable DATABASE_URL.")
    if _is_production():
        if db_url.startswith("sqlite"):
            raise RuntimeError("Refusing to release against sqlite in production. Point DATABASE_URL at Postgres.")
        if not (os.environ.get("JWT_SECRET") or "").strip():
            raise RuntimeError("JWT_SECRET must be set in production; logins would fail without it.")
    return db_url


def migrate(db_url: str) -> None:
    from alembic import command
    from alembic.config import Config

    cfg = Config(str(ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(ROOT / "migrations"))
    cfg.set_main_option("sqlalchemy.url", db_url.replace("%", "%%"))
    command.upgrade(cfg, "head")


def prepare_uploads() -> Path:
    from app.course_archive.config import load_config
    from app.course_archive.storage import storage_from_config

    storage = storage_from_config(load_config())
    storage.ensure_dirs()
    return storage.resolved_root


def run_release() -> None:
    db_url = check_environment()
    print("=== course-archive release start ===", flush=True)

    print("Running Alembic migrations...", flush=True)
    migrate(db_url)

    print(f"Upload root ready: {prepare_uploads()}", flush=True)

    from scripts import init_db

    init_db.seed_only(database_url=db_url)
    print("=== course-archive release done ===", flush=True)


if __name__ == "__main__":
    run_release()
