from app.course_archive.db import session_scope
from app.course_archive.modules.courses.models import CourseDocument, CourseImage
from conftest import course_payload, create_course, create_field


def test_create_and_fetch_course(client, auth_headers):
    field_id = create_field(client, auth_headers)
    created = create_course(client, auth_headers, field_id, courseStartDate="2024-03-01T00:00:00.000Z")

    assert created["courseNumber"] == "C-001"
    assert created["courseStartDate"] == "2024-03-01"
    assert created["courseField"]["id"] == field_id
    assert created["images"] == [] and created["documents"] == []

    r = client.get(f"/api/courses/{created['id']}", headers=auth_headers)
    assert r.status_code == 200
    assert r.json["data"] == created


def test_duplicate_course_number_conflicts(client, auth_headers):
    field_id = create_field(client, auth_headers)
    create_course(client, auth_headers, field_id)
    r = client.post("/api/courses", json=course_payload(field_id), headers=auth_headers)
    assert r.status_code == 409


def test_unknown_field_is_invalid_reference(client, auth_headers):
    r = client.post("/api/courses", json=course_payload(999), headers=auth_headers)
    assert r.status_code == 400
    assert "field" in r.json["message"].lower()


def test_validation_reports_each_bad_field(client, auth_headers):
    field_id = create_field(client, auth_headers)
    payload = course_payload(
        field_id,
        courseName="  ",
        courseHours=0,
        numberOfGraduates=-1,
        courseStartDate="2024-02-30",
    )
    del payload["trainerName"]
    r = client.post("/api/courses", json=payload, headers=auth_headers)
    assert r.status_code == 400
    fields = {e["field"] for e in r.json["errors"]}
    assert fields == {"courseName", "courseHours", "numberOfGraduates", "courseStartDate", "trainerName"}


def test_partial_update_touches_only_supplied_fields(client, auth_headers):
    field_id = create_field(client, auth_headers)
    other_field = create_field(client, auth_headers, "Other field")
    course = create_course(client, auth_headers, field_id)

    r = client.put(
        f"/api/courses/{course['id']}",
        json={"courseHours": 32, "courseFieldId": other_field, "notes": ""},
        headers=auth_headers,
    )
    assert r.status_code == 200
    data = r.json["data"]
    assert data["courseHours"] == 32
    assert data["courseField"]["name"] == "Other field"
    assert data["notes"] is None
    assert data["courseName"] == course["courseName"]
    assert data["numberOfGraduates"] == course["numberOfGraduates"]


def test_update_rejects_taken_number_and_bad_reference(client, auth_headers):
    field_id = create_field(client, auth_headers)
    create_course(client, auth_headers, field_id, courseNumber="A")
    b = create_course(client, auth_headers, field_id, courseNumber="B")

    r = client.put(f"/api/courses/{b['id']}", json={"courseNumber": "A"}, headers=auth_headers)
    assert r.status_code == 409
    r = client.put(f"/api/courses/{b['id']}", json={"courseNumber": "B"}, headers=auth_headers)
    assert r.status_code == 200
    r = client.put(f"/api/courses/{b['id']}", json={"courseFieldId": 999}, headers=auth_headers)
    assert r.status_code == 400


def test_missing_course_is_404(client, auth_headers):
    assert client.get("/api/courses/999", headers=auth_headers).status_code == 404
    assert client.put("/api/courses/999", json={"courseHours": 3}, headers=auth_headers).status_code == 404
    assert client.delete("/api/courses/999", headers=auth_headers).status_code == 404


def test_pagination_covers_every_course_once(client, auth_headers):
    field_id = create_field(client, auth_headers)
    for i in range(25):
        create_course(client, auth_headers, field_id, courseNumber=f"P-{i:02d}")

    seen = []
    for page in (1, 2, 3):
        r = client.get(f"/api/courses?page={page}&limit=10", headers=auth_headers)
        assert r.status_code == 200
        assert r.json["pagination"] == {"total": 25, "page": page, "limit": 10, "totalPages": 3}
        seen.extend(c["id"] for c in r.json["data"])
    assert len(seen) == 25
    assert len(set(seen)) == 25

    r = client.get("/api/courses?page=4&limit=10", headers=auth_headers)
    assert r.json["data"] == []


def test_pagination_arguments_are_validated(client, auth_headers):
    assert client.get("/api/courses?page=0", headers=auth_headers).status_code == 400
    assert client.get("/api/courses?limit=abc", headers=auth_headers).status_code == 400
    r = client.get("/api/courses?limit=500", headers=auth_headers)
    assert r.json["pagination"]["limit"] == 100


def test_list_is_newest_first_and_filterable(client, auth_headers):
    finance = create_field(client, auth_headers, "Finance")
    roads = create_field(client, auth_headers, "Roads")
    create_course(client, auth_headers, finance, courseNumber="F-1", courseStartDate="2024-01-10", courseEndDate="2024-01-12")
    create_course(
        client,
        auth_headers,
        roads,
        courseNumber="R-1",
        courseName="Asphalt basics",
        trainerName="Lina Odeh",
        courseStartDate="2024-05-01",
        courseEndDate="2024-05-03",
    )
    create_course(client, auth_headers, finance, courseNumber="F-2", courseStartDate="2024-09-01", courseEndDate="2024-09-30")

    r = client.get("/api/courses", headers=auth_headers)
    assert [c["courseNumber"] for c in r.json["data"]] == ["F-2", "R-1", "F-1"]

    r = client.get(f"/api/courses?field={finance}", headers=auth_headers)
    assert [c["courseNumber"] for c in r.json["data"]] == ["F-2", "F-1"]

    r = client.get("/api/courses?search=lina", headers=auth_headers)
    assert [c["courseNumber"] for c in r.json["data"]] == ["R-1"]

    r = client.get("/api/courses?search=asphalt", headers=auth_headers)
    assert [c["courseNumber"] for c in r.json["data"]] == ["R-1"]

    r = client.get("/api/courses?startDate=2024-02-01&endDate=2024-06-30", headers=auth_headers)
    assert [c["courseNumber"] for c in r.json["data"]] == ["R-1"]

    r = client.get("/api/courses?startDate=not-a-date", headers=auth_headers)
    assert r.status_code == 400


def test_delete_course_removes_records_and_files(app, client, auth_headers, upload_root):
    field_id = create_field(client, auth_headers)
    course = create_course(client, auth_headers, field_id)

    from io import BytesIO

    r = client.post(
        f"/api/courses/{course['id']}/images",
        data={"images": [(BytesIO(b"jpeg-1"), "a.jpg", "image/jpeg")]},
        headers=auth_headers,
        content_type="multipart/form-data",
    )
    assert r.status_code == 201
    image_id = r.json["data"][0]["id"]
    r = client.post(
        f"/api/courses/{course['id']}/documents",
        data={"type": "ATTENDANCE_FORM", "document": (BytesIO(b"%PDF-1.4"), "att.pdf", "application/pdf")},
        headers=auth_headers,
        content_type="multipart/form-data",
    )
    assert r.status_code == 201
    document_id = r.json["data"]["id"]

    files = [p for p in upload_root.rglob("*") if p.is_file()]
    assert len(files) == 2

    r = client.delete(f"/api/courses/{course['id']}", headers=auth_headers)
    assert r.status_code == 200
    assert [p for p in upload_root.rglob("*") if p.is_file()] == []
    assert client.get(f"/api/courses/{course['id']}", headers=auth_headers).status_code == 404

    with session_scope(app) as s:
        assert s.get(CourseImage, image_id) is None
        assert s.get(CourseDocument, document_id) is None
    r = client.delete(f"/api/courses/{course['id']}/images/{image_id}", headers=auth_headers)
    assert r.status_code == 404
    r = client.delete(f"/api/courses/{course['id']}/documents/{document_id}", headers=auth_headers)
    assert r.status_code == 404


def test_search_treats_wildcards_literally(client, auth_headers):
    field_id = create_field(client, auth_headers)
    create_course(client, auth_headers, field_id, courseNumber="A-1", courseName="Budget", trainerName="Sami")
    create_course(client, auth_headers, field_id, courseNumber="B-2", courseName="Roads", trainerName="Lina")
    create_course(client, auth_headers, field_id, courseNumber="C_3", courseName="100% attendance", trainerName="Omar")

    for term, expected in (("_", ["C_3"]), ("%25", ["C_3"]), ("100%25", ["C_3"]), ("a_1", []), ("BUD", ["A-1"])):
        r = client.get(f"/api/courses?search={term}", headers=auth_headers)
        assert r.status_code == 200
        assert [c["courseNumber"] for c in r.json["data"]] == expected, term


def test_out_of_range_values_are_field_errors(client, auth_headers):
    field_id = create_field(client, auth_headers)
    payload = course_payload(
        field_id,
        numberOfGraduates=2**70,
        courseHours=2**31,
        courseNumber="N" * 65,
        courseName="x" * 256,
        trainerPhoneNumber="0" * 65,
    )
    r = client.post("/api/courses", json=payload, headers=auth_headers)
    assert r.status_code == 400
    fields = {e["field"] for e in r.json["errors"]}
    assert fields == {"numberOfGraduates", "courseHours", "courseNumber", "courseName", "trainerPhoneNumber"}

    course = create_course(client, auth_headers, field_id, courseNumber="N" * 64, courseHours=2**31 - 1)
    r = client.put(f"/api/courses/{course['id']}", json={"courseCode": "c" * 65}, headers=auth_headers)
    assert r.status_code == 400
    assert r.json["errors"][0]["field"] == "courseCode"

    r = client.get(f"/api/courses?field={2**70}", headers=auth_headers)
    assert r.status_code == 400
