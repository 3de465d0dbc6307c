import os
import re
from dataclasses import dataclass
from pathlib import Path

_DURATION_RE = re.compile(r"^(\d+)\s*([smhd]?)$")
_DURATION_UNITS = {"": 1, "s": 1, "m": 60, "h": 3600, "d": 86400}


@dataclass(frozen=True)
class Settings:
    secret_key: str
    env: str
    database_url: str
    log_level: str

    upload_root: str
    allowed_image_types: tuple[str, ...]
    allowed_document_types: tuple[str, ...]
    max_file_size: int

    jwt_secret: str
    jwt_expires_in: int

    default_password: str
    change_password_key: str


def _getenv(name: str, default: str = "") -> str:
    return (os.environ.get(name) or default).strip()


def _getlist(name: str, default: str) -> tuple[str, ...]:
    return tuple(item.strip().lower() for item in _getenv(name, default).split(",") if item.strip())


def parse_duration(value: str) -> int:
    """
    Parse a token lifetime into seconds.

    Accepts plain integers ("3600") or a number with a unit suffix
    ("45s", "30m", "12h", "1d").
    """
    m = _DURATION_RE.match((value or "").strip().lower())
    if not m:
        raise ValueError(f"Invalid duration: {value!r}")
    return int(m.group(1)) * _DURATION_UNITS[m.group(2)]


def load_settings() -> Settings:
    return Settings(
        secret_key=_getenv("SECRET_KEY", "change-me"),
        env=_getenv("ENV", "development"),
        database_url=_getenv("DATABASE_URL", "sqlite:///course_archive.db"),
        log_level=_getenv("LOG_LEVEL", "INFO").upper(),
        upload_root=_getenv("UPLOAD_ROOT", str(Path(os.getcwd()) / "storage" / "uploads")),
        allowed_image_types=_getlist("ALLOWED_IMAGE_TYPES", "image/jpeg,image/png,image/gif"),
        allowed_document_types=_getlist("ALLOWED_DOCUMENT_TYPES", "application/pdf"),
        max_file_size=int(_getenv("MAX_FILE_SIZE", str(10 * 1024 * 1024))),
        jwt_secret=_getenv("JWT_SECRET", ""),
        jwt_expires_in=parse_duration(_getenv("JWT_EXPIRES_IN", "1d")),
        default_password=_getenv("DEFAULT_PASSWORD", "admin123"),
        change_password_key=_getenv("CHANGE_PASSWORD_KEY", ""),
    )


def load_config() -> dict:
    s = load_settings()
    return {
        "SECRET_KEY": s.secret_key,
        "ENV": s.env,
        "DATABASE_URL": s.database_url,
        "LOG_LEVEL": s.log_level,
        "UPLOAD_ROOT": s.upload_root,
        "ALLOWED_IMAGE_TYPES": s.allowed_image_types,
        "ALLOWED_DOCUMENT_TYPES": s.allowed_document_types,
        "MAX_FILE_SIZE": s.max_file_size,
        "JWT_SECRET": s.jwt_secret,
        "JWT_EXPIRES_IN": s.jwt_expires_in,
        "DEFAULT_PASSWORD": s.default_password,
        "CHANGE_PASSWORD_KEY": s.change_password_key,
        # up to ten files per request plus form overhead
        "MAX_CONTENT_LENGTH": 10 * s.max_file_size + 1024 * 1024,
    }
