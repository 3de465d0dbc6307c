from __future__ import annotations

from contextlib import contextmanager
from collections.abc import Generator

from flask import Flask, current_app, g
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

# Applied only to server databases; sqlite keeps its default pool.
POOL_OPTIONS = {"pool_recycle": 1800, "pool_size": 5, "max_overflow": 10, "pool_timeout": 30}


def _is_sqlite(db_url: str) -> bool:
    return db_url.startswith("sqlite")


def make_engine(db_url: str) -> Engine:
    kwargs: dict[str, object] = {"future": True, "pool_pre_ping": True}
    if _is_sqlite(db_url):
        # Request threads share the pool under the dev server and gunicorn threads.
        kwargs["connect_args"] = {"check_same_thread": False}
    else:
        kwargs.update(POOL_OPTIONS)
    engine = create_engine(db_url, **kwargs)

    if _is_sqlite(db_url):
        # Course attachments rely on ON DELETE CASCADE, which sqlite ignores without this.
        @event.listens_for(engine, "connect")
        def _fk_pragma(dbapi_connection, connection_record):  # type: ignore[no-redef]
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


def make_sessionmaker(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, class_=Session, autoflush=False, expire_on_commit=False, future=True)


def init_db(app: Flask) -> None:
    engine = make_engine(app.config["DATABASE_URL"])
    app.extensions["sqlalchemy_engine"] = engine
    app.extensions["sqlalchemy_sessionmaker"] = make_sessionmaker(engine)
    app.logger.debug("Database engine ready (%s)", engine.url.get_backend_name())


def db_session() -> Session:
    """Request-scoped session, opened lazily and closed on teardown."""
    s = getattr(g, "db_session", None)
    if s is None:
        s = g.db_session = current_app.extensions["sqlalchemy_sessionmaker"]()
    return s


def teardown_db_session(exc: BaseException | None) -> None:
    s: Session | None = g.pop("db_session", None)
    if s is None:
        return
    if exc is not None:
        s.rollback()
    s.close()


@contextmanager
def session_scope(app: Flask) -> Generator[Session, None, None]:
    """Session outside a request (tests, one-off jobs); commits on success."""
    s: Session = app.extensions["sqlalchemy_sessionmaker"]()
    try:
        yield s
        s.commit()
    except Exception:
        s.rollback()
        raise
    finally:
        s.close()
