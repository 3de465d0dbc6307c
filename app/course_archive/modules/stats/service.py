"""
Read-side projections over the course table.

Everything is recomputed per call. Grouping happens in memory: rows are
folded into accumulator objects keyed by the group key, then sorted on an
explicit key so output order never depends on dict insertion order.
"""
from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date
from typing import TYPE_CHECKING

from sqlalchemy import func

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

RECENT_COURSES_LIMIT = 5
TRAILING_MONTHS = 6


@dataclass
class Totals:
    courses: int = 0
    graduates: int = 0
    beneficiaries: int = 0
    hours: int = 0

    def add(self, graduates: int, beneficiaries: int, hours: int) -> None:
        self.courses += 1
        self.graduates += graduates or 0
        self.beneficiaries += beneficiaries or 0
        self.hours += hours or 0

    def overview(self) -> dict[str, int]:
        return {
            "totalCourses": self.courses,
            "totalGraduates": self.graduates,
            "totalBeneficiaries": self.beneficiaries,
            "totalHours": self.hours,
        }


def months_before(d: date, months: int) -> date:
    """Same day ``months`` calendar months earlier, clamped to month end."""
    index = d.year * 12 + (d.month - 1) - months
    year, month = divmod(index, 12)
    month += 1
    return date(year, month, min(d.day, calendar.monthrange(year, month)[1]))


def _group(rows, key) -> dict:
    groups: dict = {}
    for row in rows:
        k = key(row)
        acc = groups.get(k)
        if acc is None:
            acc = groups[k] = Totals()
        acc.add(row.number_of_graduates, row.number_of_beneficiaries, row.course_hours)
    return groups


def _stat_rows(s: "Session", *filters):
    from app.course_archive.modules.courses.models import Course

    return (
        s.query(
            Course.course_field_id,
            Course.course_start_date,
            Course.trainer_name,
            Course.trainer_phone_number,
            Course.number_of_graduates,
            Course.number_of_beneficiaries,
            Course.course_hours,
        )
        .filter(*filters)
        .all()
    )


def dashboard(s: "Session", today: date | None = None) -> dict:
    from app.course_archive.modules.course_fields.models import CourseField
    from app.course_archive.modules.courses.models import Course

    today = today or date.today()

    totals = Totals()
    for row in _stat_rows(s):
        totals.add(row.number_of_graduates, row.number_of_beneficiaries, row.course_hours)

    field_counts = dict(
        s.query(Course.course_field_id, func.count(Course.id)).group_by(Course.course_field_id).all()
    )
    fields = s.query(CourseField).order_by(CourseField.name.asc()).all()
    courses_by_field = [{"id": f.id, "name": f.name, "count": field_counts.get(f.id, 0)} for f in fields]

    recent = (
        s.query(Course)
        .order_by(Course.course_start_date.desc(), Course.id.desc())
        .limit(RECENT_COURSES_LIMIT)
        .all()
    )

    cutoff = months_before(today, TRAILING_MONTHS)
    monthly = _group(
        _stat_rows(s, Course.course_start_date >= cutoff),
        key=lambda r: r.course_start_date.strftime("%Y-%m"),
    )
    courses_by_month = [
        {"month": month, "count": acc.courses, "graduates": acc.graduates}
        for month, acc in sorted(monthly.items(), key=lambda kv: kv[0], reverse=True)
    ]

    return {
        "overview": totals.overview(),
        "coursesByField": courses_by_field,
        "recentCourses": [c.to_dict(include_children=False) for c in recent],
        "coursesByMonth": courses_by_month,
    }


def field_stats(s: "Session") -> list[dict]:
    from app.course_archive.modules.course_fields.models import CourseField

    groups = _group(_stat_rows(s), key=lambda r: r.course_field_id)
    out = []
    for f in s.query(CourseField).order_by(CourseField.name.asc()).all():
        acc = groups.get(f.id) or Totals()
        out.append({"id": f.id, "name": f.name, **acc.overview()})
    return out


def trainer_stats(s: "Session") -> list[dict]:
    groups = _group(_stat_rows(s), key=lambda r: (r.trainer_name, r.trainer_phone_number))
    ordered = sorted(groups.items(), key=lambda kv: (-kv[1].courses, kv[0][0], kv[0][1]))
    return [
        {
            "name": name,
            "phone": phone,
            "totalCourses": acc.courses,
            "totalGraduates": acc.graduates,
            "totalHours": acc.hours,
        }
        for (name, phone), acc in ordered
    ]


def yearly_stats(s: "Session", year: int | None = None) -> dict:
    from app.course_archive.modules.courses.models import Course

    year = year or date.today().year
    rows = _stat_rows(
        s,
        Course.course_start_date >= date(year, 1, 1),
        Course.course_start_date <= date(year, 12, 31),
    )

    totals = Totals()
    for row in rows:
        totals.add(row.number_of_graduates, row.number_of_beneficiaries, row.course_hours)

    monthly = _group(rows, key=lambda r: r.course_start_date.month)
    return {
        "year": year,
        "overview": totals.overview(),
        "monthlyBreakdown": [
            {"month": month, "courses": acc.courses, "graduates": acc.graduates, "hours": acc.hours}
            for month, acc in sorted(monthly.items())
        ],
    }
