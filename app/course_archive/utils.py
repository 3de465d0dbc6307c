from __future__ import annotations

import math
from datetime import date, datetime
from typing import Any

from flask import jsonify, request

from app.course_archive.errors import ValidationError

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


def envelope(message: str, data: Any = None, *, status: int = 200, **extra: Any):
    """Success response: ``{success, message, data, ...}``."""
    body: dict[str, Any] = {"success": True, "message": message}
    if data is not None:
        body["data"] = data
    body.update(extra)
    return jsonify(body), status


def error_envelope(message: str, *, status: int, **extra: Any):
    body: dict[str, Any] = {"success": False, "message": message}
    body.update(extra)
    return jsonify(body), status


def pagination_meta(total: int, page: int, limit: int) -> dict[str, int]:
    return {
        "total": total,
        "page": page,
        "limit": limit,
        "totalPages": math.ceil(total / limit) if limit else 0,
    }


def parse_pagination() -> tuple[int, int]:
    """Read ``page``/``limit`` from the query string (defaults 1/10)."""
    page = _positive_arg("page", 1)
    limit = _positive_arg("limit", DEFAULT_PAGE_SIZE)
    return page, min(limit, MAX_PAGE_SIZE)


def _positive_arg(name: str, default: int) -> int:
    raw = (request.args.get(name) or "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValidationError.single(name, f"{name} must be an integer") from None
    if value < 1:
        raise ValidationError.single(name, f"{name} must be at least 1")
    return value


def parse_date(value: Any) -> date | None:
    """
    Parse an ISO-8601 date or datetime string into a calendar date.

    Raises ValueError for anything that is not a valid calendar date.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    s = str(value).strip()
    if not s:
        return None
    try:
        return date.fromisoformat(s)
    except ValueError:
        # Full timestamps such as 2024-03-01T00:00:00.000Z
        return datetime.fromisoformat(s.replace("Z", "+00:00")).date()


def format_date(value: date | None) -> str | None:
    return value.isoformat() if value else None


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError.single("body", "Request body must be a JSON object")
    return data
