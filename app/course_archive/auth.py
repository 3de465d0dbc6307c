from __future__ import annotations

import hmac
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from functools import wraps
from typing import Any

import jwt
from flask import Blueprint, current_app, g, request
from werkzeug.security import check_password_hash, generate_password_hash

from app.course_archive.db import db_session
from app.course_archive.errors import (
    FieldError,
    Forbidden,
    NotFound,
    ServerMisconfigured,
    Unauthorized,
    ValidationError,
)
from app.course_archive.models import User
from app.course_archive.utils import envelope, json_body

bp = Blueprint("auth", __name__)

JWT_ALGORITHM = "HS256"
MIN_PASSWORD_LENGTH = 8


def issue_token(user_id: int, secret: str, expires_in: int | timedelta, now: datetime | None = None) -> str:
    """Signed, time-limited token carrying the user id."""
    if not secret:
        raise ServerMisconfigured("Server misconfiguration: JWT_SECRET is not set")
    if not isinstance(expires_in, timedelta):
        expires_in = timedelta(seconds=int(expires_in))
    now = now or datetime.now(timezone.utc)
    payload = {"id": user_id, "iat": now, "exp": now + expires_in}
    return jwt.encode(payload, secret, algorithm=JWT_ALGORITHM)


def decode_token(token: str, secret: str) -> dict[str, Any]:
    if not secret:
        raise ServerMisconfigured("Server misconfiguration: JWT_SECRET is not set")
    try:
        payload = jwt.decode(token, secret, algorithms=[JWT_ALGORITHM], options={"require": ["exp", "iat"]})
    except jwt.ExpiredSignatureError:
        raise Unauthorized("Token expired") from None
    except jwt.InvalidTokenError:
        raise Unauthorized("Invalid token") from None
    if "id" not in payload:
        raise Unauthorized("Invalid token")
    return payload


def _bearer_token() -> str:
    header = (request.headers.get("Authorization") or "").strip()
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise Unauthorized("No token provided")
    return token.strip()


def require_auth(fn: Callable[..., Any]) -> Callable[..., Any]:
    """Reject the request unless it carries a valid bearer token."""

    @wraps(fn)
    def wrapped(*args: Any, **kwargs: Any):
        payload = decode_token(_bearer_token(), current_app.config.get("JWT_SECRET") or "")
        g.current_user = {"id": payload["id"]}
        return fn(*args, **kwargs)

    return wrapped


def _admin_user(s) -> User | None:
    # Single-admin system: the first row is the identity.
    return s.query(User).order_by(User.id.asc()).first()


def login(s, password: str) -> tuple[str, User]:
    user = _admin_user(s)
    if not user:
        raise Unauthorized("User not found. Please run database seed.")
    if not check_password_hash(user.password_hash, password):
        raise Unauthorized("Invalid password")
    token = issue_token(
        user.id,
        current_app.config.get("JWT_SECRET") or "",
        current_app.config.get("JWT_EXPIRES_IN") or 86400,
    )
    return token, user


def change_password(s, key: str, new_password: str) -> User:
    errors: list[FieldError] = []
    if not key:
        errors.append(FieldError("key", "Authorization key is required"))
    if not new_password:
        errors.append(FieldError("newPassword", "New password is required"))
    elif len(new_password) < MIN_PASSWORD_LENGTH:
        errors.append(FieldError("newPassword", f"New password must be at least {MIN_PASSWORD_LENGTH} characters"))
    if errors:
        raise ValidationError(errors)

    user = _admin_user(s)
    if not user:
        raise NotFound("User not found")
    stored = user.change_password_key or ""
    if not stored or not hmac.compare_digest(stored.encode("utf-8"), key.encode("utf-8")):
        raise Forbidden("Invalid authorization key")

    user.password_hash = generate_password_hash(new_password)
    return user


@bp.post("/login")
def login_post():
    data = json_body()
    password = data.get("password")
    if not isinstance(password, str) or not password:
        raise ValidationError.single("password", "Password is required")

    s = db_session()
    try:
        token, user = login(s, password)
    except Unauthorized:
        current_app.logger.warning("Login failed (request_id=%s)", getattr(g, "request_id", None))
        raise
    current_app.logger.info("Login succeeded for user id=%s", user.id)
    return envelope("Login successful", token=token, user={"id": user.id})


@bp.post("/change-password")
def change_password_post():
    data = json_body()
    key = str(data.get("key") or data.get("oldPassword") or "").strip()
    new_password = data.get("newPassword")
    if new_password is not None and not isinstance(new_password, str):
        raise ValidationError.single("newPassword", "New password must be a string")

    s = db_session()
    try:
        user = change_password(s, key, new_password or "")
    except Forbidden:
        current_app.logger.warning("Password change rejected: bad key (request_id=%s)", getattr(g, "request_id", None))
        raise
    s.commit()
    current_app.logger.info("Password changed for user id=%s", user.id)
    return envelope("Password changed successfully")


@bp.get("/verify")
@require_auth
def verify():
    return envelope("Token is valid", user=g.current_user)
