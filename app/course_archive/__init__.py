import logging
import uuid

from dotenv import load_dotenv
from flask import Flask, g, request
from werkzeug.exceptions import HTTPException

from app.course_archive.config import load_config
from app.course_archive.db import init_db, teardown_db_session
from app.course_archive.errors import ApiError, InternalError
from app.course_archive.routes import bp as routes_bp
from app.course_archive.auth import bp as auth_bp
from app.course_archive.modules.course_fields.admin import bp as course_fields_bp
from app.course_archive.modules.courses.admin import bp as courses_bp
from app.course_archive.modules.attachments.admin import bp as attachments_bp, uploads_bp
from app.course_archive.modules.stats.admin import bp as stats_bp
from app.course_archive.storage import storage_from_config
from app.course_archive.utils import error_envelope


def _configure_logging(level_name: str) -> None:
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    root.setLevel(getattr(logging, level_name, logging.INFO))


def _check_production(app: Flask) -> None:
    """Fail fast with clear errors when production config is unsafe."""
    env = (app.config.get("ENV") or "").strip().lower()
    if env not in ("prod", "production"):
        return
    if not app.config.get("DATABASE_URL") or str(app.config["DATABASE_URL"]).strip() == "":
        raise RuntimeError("DATABASE_URL is required in production.")
    if str(app.config["DATABASE_URL"]).startswith("sqlite"):
        raise RuntimeError("DATABASE_URL must be Postgres in production (not sqlite).")
    if not app.config.get("SECRET_KEY") or str(app.config["SECRET_KEY"]) in ("", "change-me"):
        raise RuntimeError("SECRET_KEY must be set to a strong value in production (not default).")
    if not app.config.get("JWT_SECRET"):
        raise RuntimeError("JWT_SECRET must be set in production.")


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(ApiError)
    def _api_error(e: ApiError):  # type: ignore[no-redef]
        if e.status_code >= 500:
            app.logger.error("%s (request_id=%s): %s", type(e).__name__, getattr(g, "request_id", None), e.message)
        return error_envelope(e.message, status=e.status_code, **e.payload())

    @app.errorhandler(HTTPException)
    def _http_error(e: HTTPException):  # type: ignore[no-redef]
        if e.code == 404:
            message = "Route not found"
        elif e.code == 413:
            message = "File too large"
        else:
            message = e.description or e.name
        return error_envelope(message, status=e.code or 500)

    @app.errorhandler(Exception)
    def _unhandled(e: Exception):  # type: ignore[no-redef]
        app.logger.exception("Unhandled error (request_id=%s)", getattr(g, "request_id", None))
        s = getattr(g, "db_session", None)
        if s is not None:
            s.rollback()
        err = InternalError()
        return error_envelope(err.message, status=err.status_code)


def create_app() -> Flask:
    load_dotenv()
    app = Flask(__name__)
    app.config.from_mapping(load_config())
    app.json.sort_keys = False  # type: ignore[attr-defined]

    _configure_logging(app.config["LOG_LEVEL"])
    _check_production(app)

    init_db(app)

    storage = storage_from_config(app.config)
    storage.ensure_dirs()
    app.logger.info("Upload root: %s", storage.resolved_root)

    @app.before_request
    def _assign_request_id():
        if not getattr(g, "request_id", None):
            g.request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex

    app.register_blueprint(routes_bp)
    app.register_blueprint(uploads_bp)
    app.register_blueprint(auth_bp, url_prefix="/api/auth")
    app.register_blueprint(course_fields_bp, url_prefix="/api/fields")
    app.register_blueprint(courses_bp, url_prefix="/api/courses")
    app.register_blueprint(attachments_bp, url_prefix="/api/courses")
    app.register_blueprint(stats_bp, url_prefix="/api/stats")

    app.teardown_appcontext(teardown_db_session)
    _register_error_handlers(app)

    logging.getLogger(__name__).info("create_app() complete; app ready to serve")
    return app
