from __future__ import annotations

from flask import Blueprint

from app.course_archive.auth import require_auth
from app.course_archive.db import db_session
from app.course_archive.errors import ValidationError
from app.course_archive.modules.stats.service import dashboard, field_stats, trainer_stats, yearly_stats
from app.course_archive.utils import envelope

bp = Blueprint("stats", __name__)


@bp.get("/dashboard")
@require_auth
def stats_dashboard():
    return envelope("Dashboard statistics fetched", dashboard(db_session()))


@bp.get("/fields")
@require_auth
def stats_fields():
    return envelope("Field statistics fetched", field_stats(db_session()))


@bp.get("/trainers")
@require_auth
def stats_trainers():
    return envelope("Trainer statistics fetched", trainer_stats(db_session()))


@bp.get("/yearly")
@bp.get("/yearly/<int:year>")
@require_auth
def stats_yearly(year: int | None = None):
    # 0 means "current year", same as omitting it
    if year is not None and year > 9999:
        raise ValidationError.single("year", "Year must be at most 9999")
    return envelope("Yearly statistics fetched", yearly_stats(db_session(), year))
