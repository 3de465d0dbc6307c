from __future__ import annotations

from flask import Blueprint, current_app, request

from app.course_archive.auth import require_auth
from app.course_archive.db import db_session
from app.course_archive.errors import ValidationError
from app.course_archive.modules.course_fields.service import (
    bulk_create_fields,
    count_courses,
    create_field,
    delete_field,
    get_field,
    list_fields,
    update_field,
)
from app.course_archive.utils import envelope, json_body, pagination_meta, parse_pagination

bp = Blueprint("course_fields", __name__)


def _truthy(raw: str | None) -> bool:
    return (raw or "").strip().lower() in ("1", "true", "yes")


# ---------- List ----------
@bp.get("")
@require_auth
def fields_list():
    s = db_session()
    data = list_fields(
        s,
        search=request.args.get("search") or "",
        include_count=_truthy(request.args.get("includeCount")),
    )
    return envelope("Course fields fetched", data)


# ---------- Detail ----------
@bp.get("/<int:field_id>")
@require_auth
def field_detail(field_id: int):
    s = db_session()
    f = get_field(s, field_id)
    return envelope("Course field fetched", f.to_dict(course_count=count_courses(s, f.id)))


@bp.get("/<int:field_id>/courses")
@require_auth
def field_courses(field_id: int):
    from app.course_archive.modules.courses.service import CourseFilters, list_courses

    s = db_session()
    f = get_field(s, field_id)
    page, limit = parse_pagination()
    courses, total = list_courses(s, CourseFilters(field_id=f.id), page=page, limit=limit)
    return envelope(
        "Field courses fetched",
        {
            "field": f.to_dict(),
            "courses": [c.to_dict() for c in courses],
            "pagination": pagination_meta(total, page, limit),
        },
    )


# ---------- Create ----------
@bp.post("")
@require_auth
def field_create():
    s = db_session()
    f = create_field(s, json_body().get("name"))
    s.commit()
    current_app.logger.info("Course field created id=%s name=%r", f.id, f.name)
    return envelope("Course field created successfully", f.to_dict(), status=201)


@bp.post("/bulk")
@require_auth
def field_bulk_create():
    raw = json_body().get("fields")
    if not isinstance(raw, list) or not raw:
        raise ValidationError.single("fields", "Fields array is required")
    names = [item.get("name") if isinstance(item, dict) else item for item in raw]

    s = db_session()
    result = bulk_create_fields(s, names)
    s.commit()
    current_app.logger.info(
        "Bulk field create: created=%d skipped=%d errors=%d",
        len(result.created),
        len(result.skipped),
        len(result.errors),
    )
    return envelope(result.summary(), result.to_dict(), status=201)


# ---------- Update ----------
@bp.put("/<int:field_id>")
@require_auth
def field_update(field_id: int):
    s = db_session()
    f = update_field(s, field_id, json_body().get("name"))
    s.commit()
    return envelope("Course field updated successfully", f.to_dict(course_count=count_courses(s, f.id)))


# ---------- Delete ----------
@bp.delete("/<int:field_id>")
@require_auth
def field_delete(field_id: int):
    s = db_session()
    delete_field(s, field_id)
    s.commit()
    current_app.logger.info("Course field deleted id=%s", field_id)
    return envelope("Course field deleted successfully")
