from flask import Blueprint

from app.course_archive.utils import envelope

bp = Blueprint("routes", __name__)


@bp.get("/api/health")
def health():
    """Health check endpoint. Returns the JSON envelope."""
    return envelope("Server is running")


@bp.get("/healthz")
def healthz():
    """
    Fast health check for container probes. No DB access, minimal overhead.
    """
    return "ok", 200
