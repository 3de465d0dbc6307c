from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from datetime import date
from typing import TYPE_CHECKING, Any

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError

from app.course_archive.errors import Conflict, FieldError, InvalidReference, NotFound, ValidationError
from app.course_archive.utils import parse_date

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.course_archive.modules.courses.models import Course
    from app.course_archive.storage import DeleteOutcome, LocalUploadStorage

logger = logging.getLogger(__name__)


# Upper bound of the INTEGER columns.
INT_MAX = 2**31 - 1

# wire name -> (attribute, label, max length or minimum)
_STRING_FIELDS = {
    "courseNumber": ("course_number", "Course number", 64),
    "courseCode": ("course_code", "Course code", 64),
    "courseName": ("course_name", "Course name", 255),
    "courseVenue": ("course_venue", "Course venue", 255),
    "trainerName": ("trainer_name", "Trainer name", 255),
    "trainerPhoneNumber": ("trainer_phone_number", "Trainer phone", 64),
}
_INT_FIELDS = {
    "courseFieldId": ("course_field_id", "course field ID", 1),
    "numberOfBeneficiaries": ("number_of_beneficiaries", "number of beneficiaries", 0),
    "numberOfGraduates": ("number_of_graduates", "number of graduates", 0),
    "courseDuration": ("course_duration", "course duration", 1),
    "courseHours": ("course_hours", "course hours", 1),
}
_DATE_FIELDS = {
    "courseStartDate": ("course_start_date", "start date"),
    "courseEndDate": ("course_end_date", "end date"),
}


@dataclass
class CourseUpdate:
    """One optional slot per mutable attribute; None means "not supplied"."""

    course_number: str | None = None
    course_code: str | None = None
    course_field_id: int | None = None
    course_name: str | None = None
    number_of_beneficiaries: int | None = None
    number_of_graduates: int | None = None
    course_duration: int | None = None
    course_hours: int | None = None
    course_venue: str | None = None
    course_start_date: date | None = None
    course_end_date: date | None = None
    trainer_name: str | None = None
    trainer_phone_number: str | None = None
    notes: str | None = None  # "" clears the notes

    def supplied(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not None}


@dataclass
class CourseCreate:
    course_number: str
    course_code: str
    course_field_id: int
    course_name: str
    number_of_beneficiaries: int
    number_of_graduates: int
    course_duration: int
    course_hours: int
    course_venue: str
    course_start_date: date
    course_end_date: date
    trainer_name: str
    trainer_phone_number: str
    notes: str | None = None


def _parse_int(raw: Any) -> int | None:
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, str) and raw.strip().lstrip("-").isdigit():
        return int(raw.strip())
    return None


def _parse_payload(payload: dict, *, partial: bool) -> tuple[dict[str, Any], list[FieldError]]:
    """
    Validate a course payload keyed by wire names.

    With ``partial`` only keys present in the payload are checked.
    Returns attribute values keyed by model attribute name.
    """
    values: dict[str, Any] = {}
    errors: list[FieldError] = []

    for key, (attr, label, max_length) in _STRING_FIELDS.items():
        if partial and key not in payload:
            continue
        raw = payload.get(key)
        value = raw.strip() if isinstance(raw, str) else ""
        if not value:
            errors.append(FieldError(key, f"{label} is required"))
        elif len(value) > max_length:
            errors.append(FieldError(key, f"{label} must be at most {max_length} characters"))
        else:
            values[attr] = value

    for key, (attr, label, minimum) in _INT_FIELDS.items():
        if partial and key not in payload:
            continue
        value = _parse_int(payload.get(key))
        if value is None or not minimum <= value <= INT_MAX:
            errors.append(FieldError(key, f"Invalid {label}"))
        else:
            values[attr] = value

    for key, (attr, label) in _DATE_FIELDS.items():
        if partial and key not in payload:
            continue
        try:
            value = parse_date(payload.get(key))
        except (TypeError, ValueError):
            value = None
        if value is None:
            errors.append(FieldError(key, f"Invalid {label}"))
        else:
            values[attr] = value

    if "notes" in payload:
        raw = payload.get("notes")
        if raw is not None and not isinstance(raw, str):
            errors.append(FieldError("notes", "Notes must be text"))
        elif partial:
            values["notes"] = (raw or "").strip()
        else:
            values["notes"] = (raw or "").strip() or None

    return values, errors


def parse_course_create(payload: dict) -> CourseCreate:
    values, errors = _parse_payload(payload, partial=False)
    if errors:
        raise ValidationError(errors)
    return CourseCreate(**values)


def parse_course_update(payload: dict) -> CourseUpdate:
    values, errors = _parse_payload(payload, partial=True)
    if errors:
        raise ValidationError(errors)
    return CourseUpdate(**values)


@dataclass(frozen=True)
class CourseFilters:
    search: str = ""
    field_id: int | None = None
    start_date: date | None = None
    end_date: date | None = None


def _ensure_field_exists(s: "Session", field_id: int) -> None:
    from app.course_archive.modules.course_fields.models import CourseField

    if s.get(CourseField, field_id) is None:
        raise InvalidReference("Invalid course field ID. Field does not exist.")


def _ensure_number_free(s: "Session", course_number: str, exclude_id: int | None = None) -> None:
    from app.course_archive.modules.courses.models import Course

    q = s.query(Course.id).filter(Course.course_number == course_number)
    if exclude_id is not None:
        q = q.filter(Course.id != exclude_id)
    if q.first() is not None:
        raise Conflict("Course number already exists")


def _flush_or_conflict(s: "Session") -> None:
    try:
        s.flush()
    except IntegrityError:
        s.rollback()
        raise Conflict("Course number already exists") from None


def list_courses(s: "Session", filters: CourseFilters, *, page: int, limit: int) -> tuple[list["Course"], int]:
    from app.course_archive.modules.courses.models import Course

    q = s.query(Course)
    search = (filters.search or "").strip()
    if search:
        needle = search.lower()
        q = q.filter(
            or_(
                *(
                    func.lower(col).contains(needle, autoescape=True)
                    for col in (Course.course_number, Course.course_name, Course.trainer_name)
                )
            )
        )
    if filters.field_id is not None:
        q = q.filter(Course.course_field_id == filters.field_id)
    if filters.start_date is not None:
        q = q.filter(Course.course_start_date >= filters.start_date)
    if filters.end_date is not None:
        q = q.filter(Course.course_end_date <= filters.end_date)

    total = q.count()
    courses = (
        q.order_by(Course.course_start_date.desc(), Course.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return courses, total


def get_course(s: "Session", course_id: int) -> "Course":
    from app.course_archive.modules.courses.models import Course

    course = s.get(Course, course_id)
    if not course:
        raise NotFound("Course not found")
    return course


def create_course(s: "Session", data: CourseCreate) -> "Course":
    from app.course_archive.modules.courses.models import Course

    _ensure_field_exists(s, data.course_field_id)
    _ensure_number_free(s, data.course_number)

    course = Course(
        course_number=data.course_number,
        course_code=data.course_code,
        course_field_id=data.course_field_id,
        course_name=data.course_name,
        number_of_beneficiaries=data.number_of_beneficiaries,
        number_of_graduates=data.number_of_graduates,
        course_duration=data.course_duration,
        course_hours=data.course_hours,
        course_venue=data.course_venue,
        course_start_date=data.course_start_date,
        course_end_date=data.course_end_date,
        trainer_name=data.trainer_name,
        trainer_phone_number=data.trainer_phone_number,
        notes=data.notes,
    )
    s.add(course)
    _flush_or_conflict(s)
    return course


def update_course(s: "Session", course_id: int, update: CourseUpdate) -> "Course":
    course = get_course(s, course_id)
    changes = update.supplied()

    if "course_field_id" in changes:
        _ensure_field_exists(s, changes["course_field_id"])
    if "course_number" in changes:
        _ensure_number_free(s, changes["course_number"], exclude_id=course.id)
    if "notes" in changes:
        changes["notes"] = changes["notes"] or None

    for attr, value in changes.items():
        setattr(course, attr, value)
    _flush_or_conflict(s)
    s.refresh(course)
    return course


def delete_course(s: "Session", course_id: int, storage: "LocalUploadStorage") -> list["DeleteOutcome"]:
    """
    Remove every backing file (best effort), then the course row.
    Image and document rows go with the course.
    """
    course = get_course(s, course_id)
    outcomes = storage.delete_pointers(course.file_pointers())
    failed = [o for o in outcomes if not o.ok]
    if failed:
        logger.warning("Course %s: %d of %d file deletions did not complete", course.id, len(failed), len(outcomes))
    s.delete(course)
    s.flush()
    return outcomes
