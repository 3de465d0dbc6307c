import pytest
from werkzeug.security import generate_password_hash

from app.course_archive import create_app
from app.course_archive.db import session_scope
from app.course_archive.models import Base, User

ADMIN_PASSWORD = "pw-admin-1"
CHANGE_KEY = "rotate-key"


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("JWT_SECRET", "test-jwt-secret")
    monkeypatch.setenv("UPLOAD_ROOT", str(tmp_path / "uploads"))
    monkeypatch.setenv("MAX_FILE_SIZE", str(64 * 1024))
    for k in ("ALLOWED_IMAGE_TYPES", "ALLOWED_DOCUMENT_TYPES", "JWT_EXPIRES_IN", "LOG_LEVEL"):
        monkeypatch.delenv(k, raising=False)

    app = create_app()
    engine = app.extensions["sqlalchemy_engine"]
    Base.metadata.create_all(bind=engine)

    with session_scope(app) as s:
        s.add(User(password_hash=generate_password_hash(ADMIN_PASSWORD), change_password_key=CHANGE_KEY))

    return app


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def auth_headers(client):
    r = client.post("/api/auth/login", json={"password": ADMIN_PASSWORD})
    assert r.status_code == 200
    return {"Authorization": f"Bearer {r.json['token']}"}


@pytest.fixture()
def upload_root(app, tmp_path):
    return tmp_path / "uploads"


def course_payload(field_id: int, **overrides) -> dict:
    payload = {
        "courseNumber": "C-001",
        "courseCode": "FIN-101",
        "courseFieldId": field_id,
        "courseName": "Municipal budgeting",
        "numberOfBeneficiaries": 30,
        "numberOfGraduates": 25,
        "courseDuration": 5,
        "courseHours": 20,
        "courseVenue": "City hall, room 2",
        "courseStartDate": "2024-03-01",
        "courseEndDate": "2024-03-05",
        "trainerName": "Sami Haddad",
        "trainerPhoneNumber": "0790000000",
        "notes": "First cohort",
    }
    payload.update(overrides)
    return payload


def create_field(client, headers, name="Municipal finance") -> int:
    r = client.post("/api/fields", json={"name": name}, headers=headers)
    assert r.status_code == 201, r.json
    return r.json["data"]["id"]


def create_course(client, headers, field_id, **overrides) -> dict:
    r = client.post("/api/courses", json=course_payload(field_id, **overrides), headers=headers)
    assert r.status_code == 201, r.json
    return r.json["data"]
