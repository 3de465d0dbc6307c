from __future__ import annotations

from flask import Blueprint, current_app, request, send_from_directory
from werkzeug.datastructures import FileStorage

from app.course_archive.auth import require_auth
from app.course_archive.db import db_session
from app.course_archive.errors import ValidationError
from app.course_archive.modules.attachments.service import (
    UploadedFile,
    UploadPolicy,
    delete_document,
    delete_image,
    upload_document,
    upload_images,
)
from app.course_archive.storage import storage_from_config
from app.course_archive.utils import envelope

bp = Blueprint("attachments", __name__)
uploads_bp = Blueprint("uploads", __name__)


def _read(fs: FileStorage) -> UploadedFile:
    return UploadedFile(
        filename=fs.filename or "",
        content_type=fs.mimetype or fs.content_type or "",
        data=fs.read(),
    )


def _incoming(field: str) -> list[UploadedFile]:
    return [_read(fs) for fs in request.files.getlist(field) if fs and fs.filename]


# ---------- Images ----------
@bp.post("/<int:course_id>/images")
@require_auth
def images_upload(course_id: int):
    s = db_session()
    storage = storage_from_config(current_app.config)
    images = upload_images(
        s,
        storage,
        UploadPolicy.from_config(current_app.config),
        course_id,
        _incoming("images"),
        alt_text=request.form.get("altText"),
    )
    s.commit()
    current_app.logger.info("Course %s: %d image(s) uploaded", course_id, len(images))
    return envelope("Images uploaded successfully", [img.to_dict() for img in images], status=201)


@bp.delete("/<int:course_id>/images/<int:image_id>")
@require_auth
def image_delete(course_id: int, image_id: int):
    s = db_session()
    delete_image(s, storage_from_config(current_app.config), course_id, image_id)
    s.commit()
    return envelope("Image deleted successfully")


# ---------- Documents ----------
@bp.post("/<int:course_id>/documents")
@require_auth
def document_upload(course_id: int):
    s = db_session()
    storage = storage_from_config(current_app.config)
    files = _incoming("document")
    if len(files) > 1:
        raise ValidationError.single("document", "Upload exactly one document per request")
    doc = upload_document(
        s,
        storage,
        UploadPolicy.from_config(current_app.config),
        course_id,
        (request.form.get("type") or "").strip(),
        files[0] if files else None,
    )
    s.commit()
    current_app.logger.info("Course %s: document %s uploaded (type=%s)", course_id, doc.id, doc.type)
    return envelope("Document uploaded successfully", doc.to_dict(), status=201)


@bp.delete("/<int:course_id>/documents/<int:document_id>")
@require_auth
def document_delete(course_id: int, document_id: int):
    s = db_session()
    delete_document(s, storage_from_config(current_app.config), course_id, document_id)
    s.commit()
    return envelope("Document deleted successfully")


# ---------- Public files ----------
@uploads_bp.get("/uploads/<path:filename>")
def uploaded_file(filename: str):
    storage = storage_from_config(current_app.config)
    return send_from_directory(storage.resolved_root, filename)
