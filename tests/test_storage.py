import re

from app.course_archive.db import session_scope
from app.course_archive.modules.courses.models import CourseImage
from app.course_archive.storage import LocalUploadStorage, generate_filename
from conftest import create_course, create_field


def test_generate_filename_keeps_extension():
    name = generate_filename("image", "Holiday Photo.JPG")
    assert re.fullmatch(r"image-\d+-\d+\.jpg", name)
    assert re.fullmatch(r"doc-\d+-\d+", generate_filename("doc", ""))


def test_put_bytes_writes_under_root(tmp_path):
    storage = LocalUploadStorage(root=tmp_path / "up")
    storage.ensure_dirs()
    stored = storage.put_bytes("images", "image", "../../evil.png", b"data")
    assert stored.pointer.startswith("/uploads/images/image-")
    assert stored.path.parent == storage.resolved_root / "images"
    assert stored.path.read_bytes() == b"data"
    assert storage.resolve_pointer(stored.pointer) == stored.path


def test_pointers_outside_root_never_resolve(tmp_path):
    storage = LocalUploadStorage(root=tmp_path / "up")
    for pointer in (
        "/uploads/../secret.txt",
        "/uploads/images/../../secret.txt",
        "/etc/passwd",
        "uploads/../../secret.txt",
        "/uploads/..\\secret.txt",
    ):
        assert storage.resolve_pointer(pointer) is None, pointer


def test_traversal_pointer_is_skipped_not_deleted(tmp_path):
    outside = tmp_path / "secret.txt"
    outside.write_text("keep me")
    storage = LocalUploadStorage(root=tmp_path / "up")
    storage.ensure_dirs()

    outcome = storage.delete_pointer("/uploads/../secret.txt")
    assert outcome.status == "skipped"
    assert not outcome.ok
    assert outside.read_text() == "keep me"


def test_delete_attempts_every_pointer(tmp_path):
    storage = LocalUploadStorage(root=tmp_path / "up")
    storage.ensure_dirs()
    a = storage.put_bytes("images", "image", "a.jpg", b"a")
    b = storage.put_bytes("documents", "doc", "b.pdf", b"b")

    outcomes = storage.delete_pointers(["/uploads/../x", a.pointer, "/uploads/images/gone.jpg", "", b.pointer])
    assert [o.status for o in outcomes] == ["skipped", "deleted", "missing", "skipped", "deleted"]
    assert not a.path.exists() and not b.path.exists()


def test_course_delete_with_crafted_pointer_spares_outside_file(app, client, auth_headers, tmp_path):
    outside = tmp_path / "outside.txt"
    outside.write_text("precious")

    field_id = create_field(client, auth_headers)
    course = create_course(client, auth_headers, field_id)
    with session_scope(app) as s:
        s.add(CourseImage(course_id=course["id"], url="/uploads/../outside.txt", alt_text="crafted"))

    r = client.delete(f"/api/courses/{course['id']}", headers=auth_headers)
    assert r.status_code == 200
    assert outside.read_text() == "precious"
    assert client.get(f"/api/courses/{course['id']}", headers=auth_headers).status_code == 404
