#!/usr/bin/env python3
"""
Production entrypoint: run the release phase, then exec gunicorn.

Environment:
    PORT              listen port (default 5000)
    WEB_CONCURRENCY   gunicorn workers (default 2)
    GUNICORN_TIMEOUT  worker timeout in seconds (default 60)
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

DEFAULT_PORT = 5000


def _int_env(name: str, default: int, low: int, high: int) -> int:
    raw = (os.environ.get(name) or "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None
    if not low <= value <= high:
        raise ValueError(f"{name} must be between {low} and {high}, got {value}")
    return value


def gunicorn_argv() -> list[str]:
    port = _int_env("PORT", DEFAULT_PORT, 1, 65535)
    workers = _int_env("WEB_CONCURRENCY", 2, 1, 64)
    timeout = _int_env("GUNICORN_TIMEOUT", 60, 1, 3600)
    return [
        "gunicorn",
        "app.wsgi:app",
        "--bind", f"0.0.0.0:{port}",
        "--workers", str(workers),
        "--timeout", str(timeout),
        "--preload",
        "--access-logfile", "-",
        "--error-logfile", "-",
    ]


def main() -> None:
    try:
        argv = gunicorn_argv()
    except ValueError as e:
        print(f"ERROR: {e}", flush=True)
        sys.exit(1)

    from scripts.release import run_release

    try:
        run_release()
    except Exception as e:
        print(f"Release failed: {e}", flush=True)
        sys.exit(1)

    print(f"=== exec {' '.join(argv)} ===", flush=True)
    os.execvp(argv[0], argv)


if __name__ == "__main__":
    main()
