from __future__ import annotations

import logging
import os
import random
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from werkzeug.utils import secure_filename

logger = logging.getLogger(__name__)

POINTER_PREFIX = "/uploads/"
IMAGES_DIR = "images"
DOCUMENTS_DIR = "documents"


class StorageError(RuntimeError):
    pass


@dataclass(frozen=True)
class StoredFile:
    pointer: str  # public URL path, e.g. /uploads/images/image-1700000000000-123.jpg
    path: Path  # absolute location on disk
    original_filename: str
    size_bytes: int


@dataclass(frozen=True)
class DeleteOutcome:
    pointer: str
    status: str  # deleted | missing | skipped | failed
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status in ("deleted", "missing")


def generate_filename(prefix: str, original_filename: str) -> str:
    """``<prefix>-<ms timestamp>-<random>.<ext>`` keeping the original extension."""
    ext = Path(secure_filename(original_filename or "")).suffix.lower()
    unique = f"{int(time.time() * 1000)}-{random.randint(0, 10**9)}"
    return f"{prefix}-{unique}{ext}"


@dataclass(frozen=True)
class LocalUploadStorage:
    """
    Upload root on local disk with two fixed sub-directories (images, documents).

    Records only ever hold pointers; every pointer-to-path resolution goes
    through ``resolve_pointer`` which refuses paths outside the root.
    """

    root: Path

    @property
    def resolved_root(self) -> Path:
        return Path(os.path.abspath(self.root))

    def ensure_dirs(self) -> None:
        for sub in (IMAGES_DIR, DOCUMENTS_DIR):
            (self.resolved_root / sub).mkdir(parents=True, exist_ok=True)

    def put_bytes(self, subdir: str, prefix: str, original_filename: str, data: bytes) -> StoredFile:
        if subdir not in (IMAGES_DIR, DOCUMENTS_DIR):
            raise StorageError(f"Unknown upload directory: {subdir!r}")
        name = generate_filename(prefix, original_filename)
        target_dir = self.resolved_root / subdir
        target_dir.mkdir(parents=True, exist_ok=True)
        path = target_dir / name
        path.write_bytes(data)
        logger.info("Stored upload %s (%s bytes)", path, len(data))
        return StoredFile(
            pointer=f"{POINTER_PREFIX}{subdir}/{name}",
            path=path,
            original_filename=original_filename,
            size_bytes=len(data),
        )

    def resolve_pointer(self, pointer: str) -> Path | None:
        """
        Map a pointer to an absolute path under the upload root.

        Returns None when the normalized path escapes the root.
        """
        rel = str(pointer or "").replace("\\", "/")
        if rel.startswith(POINTER_PREFIX):
            rel = rel[len(POINTER_PREFIX):]
        elif rel.startswith(POINTER_PREFIX.lstrip("/")):
            rel = rel[len(POINTER_PREFIX) - 1:]
        root = str(self.resolved_root)
        resolved = os.path.abspath(os.path.join(root, rel))
        if resolved != root and not resolved.startswith(root + os.sep):
            return None
        return Path(resolved)

    def delete_pointer(self, pointer: str) -> DeleteOutcome:
        """Best-effort delete; never raises."""
        if not pointer:
            return DeleteOutcome(pointer=pointer, status="skipped", error="empty pointer")
        path = self.resolve_pointer(pointer)
        if path is None:
            logger.warning("Skipping deletion outside upload root: %s", pointer)
            return DeleteOutcome(pointer=pointer, status="skipped", error="outside upload root")
        try:
            path.unlink()
        except FileNotFoundError:
            return DeleteOutcome(pointer=pointer, status="missing")
        except OSError as e:
            logger.error("Failed to delete file %s: %s", path, e)
            return DeleteOutcome(pointer=pointer, status="failed", error=str(e))
        logger.info("Deleted upload %s", path)
        return DeleteOutcome(pointer=pointer, status="deleted")

    def delete_pointers(self, pointers: Iterable[str]) -> list[DeleteOutcome]:
        """Attempt every deletion and collect the outcomes."""
        return [self.delete_pointer(p) for p in pointers]

    def discard(self, stored: Iterable[StoredFile]) -> list[DeleteOutcome]:
        """Remove files written earlier in a request that is now failing."""
        return self.delete_pointers(f.pointer for f in stored)


def storage_from_config(config: dict) -> LocalUploadStorage:
    root = (config.get("UPLOAD_ROOT") or "").strip()
    if not root:
        root = str(Path(os.getcwd()) / "storage" / "uploads")
    return LocalUploadStorage(root=Path(root))
