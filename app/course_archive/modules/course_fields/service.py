from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from app.course_archive.errors import Blocked, Conflict, NotFound, ValidationError

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.course_archive.modules.course_fields.models import CourseField

logger = logging.getLogger(__name__)

NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 64


def normalize_name(raw) -> str:
    return raw.strip() if isinstance(raw, str) else ""


def validate_name(raw) -> str:
    """Return the trimmed name or raise ValidationError."""
    name = normalize_name(raw)
    if not name:
        raise ValidationError.single("name", "Field name is required")
    if not (NAME_MIN_LENGTH <= len(name) <= NAME_MAX_LENGTH):
        raise ValidationError.single(
            "name", f"Field name must be between {NAME_MIN_LENGTH} and {NAME_MAX_LENGTH} characters"
        )
    return name


def course_counts(s: "Session") -> dict[int, int]:
    from app.course_archive.modules.courses.models import Course

    rows = s.query(Course.course_field_id, func.count(Course.id)).group_by(Course.course_field_id).all()
    return {field_id: count for field_id, count in rows}


def count_courses(s: "Session", field_id: int) -> int:
    from app.course_archive.modules.courses.models import Course

    return s.query(func.count(Course.id)).filter(Course.course_field_id == field_id).scalar() or 0


def list_fields(s: "Session", search: str = "", include_count: bool = False) -> list[dict]:
    from app.course_archive.modules.course_fields.models import CourseField

    q = s.query(CourseField)
    search = (search or "").strip()
    if search:
        q = q.filter(func.lower(CourseField.name).contains(search.lower(), autoescape=True))
    fields = q.order_by(CourseField.name.asc()).all()
    if not include_count:
        return [f.to_dict() for f in fields]
    counts = course_counts(s)
    return [f.to_dict(course_count=counts.get(f.id, 0)) for f in fields]


def get_field(s: "Session", field_id: int) -> "CourseField":
    from app.course_archive.modules.course_fields.models import CourseField

    f = s.get(CourseField, field_id)
    if not f:
        raise NotFound("Course field not found")
    return f


def _name_taken(s: "Session", name: str, exclude_id: int | None = None) -> bool:
    from app.course_archive.modules.course_fields.models import CourseField

    q = s.query(CourseField.id).filter(CourseField.name == name)
    if exclude_id is not None:
        q = q.filter(CourseField.id != exclude_id)
    return q.first() is not None


def create_field(s: "Session", raw_name) -> "CourseField":
    from app.course_archive.modules.course_fields.models import CourseField

    name = validate_name(raw_name)
    if _name_taken(s, name):
        raise Conflict("A course field with this name already exists")
    f = CourseField(name=name)
    s.add(f)
    try:
        s.flush()
    except IntegrityError:
        s.rollback()
        raise Conflict("A course field with this name already exists") from None
    return f


def update_field(s: "Session", field_id: int, raw_name) -> "CourseField":
    name = validate_name(raw_name)
    f = get_field(s, field_id)
    if _name_taken(s, name, exclude_id=f.id):
        raise Conflict("A course field with this name already exists")
    f.name = name
    try:
        s.flush()
    except IntegrityError:
        s.rollback()
        raise Conflict("A course field with this name already exists") from None
    return f


def delete_field(s: "Session", field_id: int) -> None:
    f = get_field(s, field_id)
    count = count_courses(s, f.id)
    if count > 0:
        raise Blocked(
            count,
            f"Cannot delete field: {count} course(s) still reference it. Reassign or delete those courses first.",
        )
    s.delete(f)
    s.flush()


@dataclass
class BulkResult:
    created: list[dict] = field(default_factory=list)
    skipped: list[dict] = field(default_factory=list)
    errors: list[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"created": self.created, "skipped": self.skipped, "errors": self.errors}

    def summary(self) -> str:
        return (
            f"Bulk operation completed. Created: {len(self.created)}, "
            f"Skipped: {len(self.skipped)}, Errors: {len(self.errors)}"
        )


def bulk_create_fields(s: "Session", raw_names: list) -> BulkResult:
    """
    Create each name independently; one bad name never aborts the batch.
    Each insert runs in its own savepoint.
    """
    from app.course_archive.modules.course_fields.models import CourseField

    result = BulkResult()
    for raw in raw_names:
        display = raw if isinstance(raw, str) else str(raw)
        try:
            name = validate_name(raw)
        except ValidationError as e:
            result.errors.append({"name": display, "error": e.message})
            continue

        if _name_taken(s, name):
            result.skipped.append({"name": name, "reason": "Already exists"})
            continue

        try:
            with s.begin_nested():
                f = CourseField(name=name)
                s.add(f)
        except IntegrityError:
            result.skipped.append({"name": name, "reason": "Already exists"})
            continue
        except SQLAlchemyError as e:
            logger.error("Bulk field create failed for %r: %s", name, e)
            result.errors.append({"name": name, "error": str(e)})
            continue
        result.created.append(f.to_dict())
    return result
