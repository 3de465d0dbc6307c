from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable

from app.course_archive.errors import FileTooLarge, InvalidType, NotFound, ValidationError
from app.course_archive.modules.courses.models import DOCUMENT_TYPES
from app.course_archive.storage import DOCUMENTS_DIR, IMAGES_DIR, StoredFile

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.course_archive.modules.courses.models import CourseDocument, CourseImage
    from app.course_archive.storage import LocalUploadStorage

logger = logging.getLogger(__name__)

MAX_IMAGES_PER_UPLOAD = 10


@dataclass(frozen=True)
class UploadedFile:
    """An incoming file, already read into memory."""

    filename: str
    content_type: str
    data: bytes

    @property
    def mimetype(self) -> str:
        return (self.content_type or "").split(";", 1)[0].strip().lower()


@dataclass(frozen=True)
class UploadPolicy:
    allowed_image_types: tuple[str, ...]
    allowed_document_types: tuple[str, ...]
    max_file_size: int

    @classmethod
    def from_config(cls, config: dict) -> "UploadPolicy":
        return cls(
            allowed_image_types=tuple(config.get("ALLOWED_IMAGE_TYPES") or ()),
            allowed_document_types=tuple(config.get("ALLOWED_DOCUMENT_TYPES") or ()),
            max_file_size=int(config.get("MAX_FILE_SIZE") or 0),
        )


def _check_files(files: Iterable[UploadedFile], allowed: tuple[str, ...], max_size: int, type_message: str) -> None:
    """Every file must pass before any of them is written."""
    files = list(files)
    for f in files:
        if f.mimetype not in allowed:
            raise InvalidType(type_message)
    for f in files:
        if max_size and len(f.data) > max_size:
            raise FileTooLarge(f"File too large: {f.filename or 'upload'} exceeds {max_size} bytes")


def _load_course(s: "Session", course_id: int):
    from app.course_archive.modules.courses.models import Course

    course = s.get(Course, course_id)
    if not course:
        raise NotFound("Course not found")
    return course


def _discard(storage: "LocalUploadStorage", stored: list[StoredFile]) -> None:
    for outcome in storage.discard(stored):
        if not outcome.ok:
            logger.error("Orphaned upload could not be removed: %s (%s)", outcome.pointer, outcome.error or outcome.status)


def upload_images(
    s: "Session",
    storage: "LocalUploadStorage",
    policy: UploadPolicy,
    course_id: int,
    files: list[UploadedFile],
    alt_text: str | None = None,
) -> list["CourseImage"]:
    """
    Store each file and create one CourseImage per file.

    Nothing is written unless every file passes the type and size checks.
    Once anything is written, any failure removes this call's files before
    the error propagates. The caller commits.
    """
    from app.course_archive.modules.courses.models import CourseImage

    if not files:
        raise ValidationError.single("images", "No files uploaded")
    if len(files) > MAX_IMAGES_PER_UPLOAD:
        raise ValidationError.single("images", f"At most {MAX_IMAGES_PER_UPLOAD} images per upload")
    _check_files(
        files,
        policy.allowed_image_types,
        policy.max_file_size,
        "Invalid image type. Allowed types: " + ", ".join(policy.allowed_image_types),
    )

    stored: list[StoredFile] = []
    try:
        for f in files:
            stored.append(storage.put_bytes(IMAGES_DIR, "image", f.filename, f.data))

        course = _load_course(s, course_id)
        alt = (alt_text or "").strip()
        images = []
        for f, sf in zip(files, stored):
            img = CourseImage(course_id=course.id, url=sf.pointer, alt_text=alt or f.filename or None)
            s.add(img)
            images.append(img)
        s.flush()
        return images
    except Exception:
        s.rollback()
        _discard(storage, stored)
        raise


def upload_document(
    s: "Session",
    storage: "LocalUploadStorage",
    policy: UploadPolicy,
    course_id: int,
    doc_type: str,
    file: UploadedFile | None,
) -> "CourseDocument":
    """Store one PDF and add a CourseDocument; repeated types are additive."""
    from app.course_archive.modules.courses.models import CourseDocument

    if doc_type not in DOCUMENT_TYPES:
        raise ValidationError.single("type", "Invalid document type")
    if file is None:
        raise ValidationError.single("document", "No document file uploaded")
    _check_files(
        [file],
        policy.allowed_document_types,
        policy.max_file_size,
        "Invalid document type. Only PDF files are allowed.",
    )

    stored: list[StoredFile] = []
    try:
        stored.append(storage.put_bytes(DOCUMENTS_DIR, "doc", file.filename, file.data))
        course = _load_course(s, course_id)
        doc = CourseDocument(
            course_id=course.id,
            type=doc_type,
            path=stored[0].pointer,
            file_name=file.filename or "document.pdf",
        )
        s.add(doc)
        s.flush()
        return doc
    except Exception:
        s.rollback()
        _discard(storage, stored)
        raise


def delete_image(s: "Session", storage: "LocalUploadStorage", course_id: int, image_id: int) -> None:
    from app.course_archive.modules.courses.models import CourseImage

    image = s.get(CourseImage, image_id)
    if not image or image.course_id != course_id:
        raise NotFound("Image not found")
    outcome = storage.delete_pointer(image.url)
    logger.info("Image %s file %s: %s", image.id, image.url, outcome.status)
    s.delete(image)
    s.flush()


def delete_document(s: "Session", storage: "LocalUploadStorage", course_id: int, document_id: int) -> None:
    from app.course_archive.modules.courses.models import CourseDocument

    doc = s.get(CourseDocument, document_id)
    if not doc or doc.course_id != course_id:
        raise NotFound("Document not found")
    outcome = storage.delete_pointer(doc.path)
    logger.info("Document %s file %s: %s", doc.id, doc.path, outcome.status)
    s.delete(doc)
    s.flush()
