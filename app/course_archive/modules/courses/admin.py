from __future__ import annotations

from flask import Blueprint, current_app, request

from app.course_archive.auth import require_auth
from app.course_archive.db import db_session
from app.course_archive.errors import FieldError, ValidationError
from app.course_archive.modules.courses.service import (
    INT_MAX,
    CourseFilters,
    create_course,
    delete_course,
    get_course,
    list_courses,
    parse_course_create,
    parse_course_update,
    update_course,
)
from app.course_archive.storage import storage_from_config
from app.course_archive.utils import envelope, json_body, pagination_meta, parse_date, parse_pagination

bp = Blueprint("courses", __name__)


def _filters_from_args() -> CourseFilters:
    errors: list[FieldError] = []

    field_id = None
    raw_field = (request.args.get("field") or "").strip()
    if raw_field:
        if raw_field.isdigit() and int(raw_field) <= INT_MAX:
            field_id = int(raw_field)
        else:
            errors.append(FieldError("field", "field must be a course field ID"))

    dates = {}
    for key in ("startDate", "endDate"):
        try:
            dates[key] = parse_date(request.args.get(key))
        except ValueError:
            errors.append(FieldError(key, f"Invalid {key}"))

    if errors:
        raise ValidationError(errors)
    return CourseFilters(
        search=request.args.get("search") or "",
        field_id=field_id,
        start_date=dates.get("startDate"),
        end_date=dates.get("endDate"),
    )


# ---------- List ----------
@bp.get("")
@require_auth
def course_list():
    s = db_session()
    page, limit = parse_pagination()
    courses, total = list_courses(s, _filters_from_args(), page=page, limit=limit)
    return envelope(
        "Courses fetched",
        [c.to_dict() for c in courses],
        pagination=pagination_meta(total, page, limit),
    )


# ---------- Detail ----------
@bp.get("/<int:course_id>")
@require_auth
def course_detail(course_id: int):
    s = db_session()
    return envelope("Course fetched", get_course(s, course_id).to_dict())


# ---------- Create ----------
@bp.post("")
@require_auth
def course_create():
    data = parse_course_create(json_body())
    s = db_session()
    course = create_course(s, data)
    s.commit()
    s.refresh(course)
    current_app.logger.info("Course created id=%s number=%s", course.id, course.course_number)
    return envelope("Course created successfully", course.to_dict(), status=201)


# ---------- Update ----------
@bp.put("/<int:course_id>")
@require_auth
def course_update(course_id: int):
    update = parse_course_update(json_body())
    s = db_session()
    course = update_course(s, course_id, update)
    s.commit()
    return envelope("Course updated successfully", course.to_dict())


# ---------- Delete ----------
@bp.delete("/<int:course_id>")
@require_auth
def course_delete(course_id: int):
    s = db_session()
    storage = storage_from_config(current_app.config)
    outcomes = delete_course(s, course_id, storage)
    s.commit()
    current_app.logger.info(
        "Course deleted id=%s files=%s",
        course_id,
        {o.pointer: o.status for o in outcomes},
    )
    return envelope("Course deleted successfully")
