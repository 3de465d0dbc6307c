from datetime import date

import pytest

from app.course_archive.db import session_scope
from app.course_archive.modules.stats.service import dashboard, months_before
from conftest import create_course, create_field


@pytest.mark.parametrize(
    "start,months,expected",
    [
        (date(2024, 8, 31), 6, date(2024, 2, 29)),
        (date(2024, 3, 15), 6, date(2023, 9, 15)),
        (date(2024, 1, 1), 1, date(2023, 12, 1)),
    ],
)
def test_months_before(start, months, expected):
    assert months_before(start, months) == expected


@pytest.fixture()
def seeded(client, auth_headers):
    finance = create_field(client, auth_headers, "Finance")
    roads = create_field(client, auth_headers, "Roads")
    create_field(client, auth_headers, "Unused")

    def add(number, field_id, start, trainer, graduates, hours, beneficiaries=40):
        create_course(
            client,
            auth_headers,
            field_id,
            courseNumber=number,
            courseStartDate=start,
            courseEndDate=start,
            trainerName=trainer,
            trainerPhoneNumber="0791111111" if trainer == "Lina" else "0792222222",
            numberOfGraduates=graduates,
            numberOfBeneficiaries=beneficiaries,
            courseHours=hours,
        )

    add("S-1", finance, "2024-01-15", "Lina", 10, 12)
    add("S-2", finance, "2024-01-20", "Omar", 5, 8)
    add("S-3", roads, "2024-04-02", "Lina", 7, 20)
    add("S-4", roads, "2023-11-11", "Omar", 3, 6)
    add("S-5", finance, "2024-06-30", "Lina", 9, 10)
    return {"finance": finance, "roads": roads}


def test_dashboard(app, seeded):
    with session_scope(app) as s:
        data = dashboard(s, today=date(2024, 7, 1))

    assert data["overview"] == {
        "totalCourses": 5,
        "totalGraduates": 34,
        "totalBeneficiaries": 200,
        "totalHours": 56,
    }
    assert data["coursesByField"] == [
        {"id": seeded["finance"], "name": "Finance", "count": 3},
        {"id": seeded["roads"], "name": "Roads", "count": 2},
        {"id": data["coursesByField"][2]["id"], "name": "Unused", "count": 0},
    ]
    assert [c["courseNumber"] for c in data["recentCourses"]] == ["S-5", "S-3", "S-2", "S-1", "S-4"]
    assert "images" not in data["recentCourses"][0]
    # cutoff 2024-01-01 drops the November course
    assert data["coursesByMonth"] == [
        {"month": "2024-06", "count": 1, "graduates": 9},
        {"month": "2024-04", "count": 1, "graduates": 7},
        {"month": "2024-01", "count": 2, "graduates": 15},
    ]


def test_dashboard_endpoint(client, auth_headers, seeded):
    r = client.get("/api/stats/dashboard", headers=auth_headers)
    assert r.status_code == 200
    assert r.json["data"]["overview"]["totalCourses"] == 5


def test_field_stats(client, auth_headers, seeded):
    r = client.get("/api/stats/fields", headers=auth_headers)
    assert r.status_code == 200
    by_name = {row["name"]: row for row in r.json["data"]}
    assert [row["name"] for row in r.json["data"]] == ["Finance", "Roads", "Unused"]
    assert by_name["Finance"]["totalCourses"] == 3
    assert by_name["Finance"]["totalGraduates"] == 24
    assert by_name["Roads"]["totalHours"] == 26
    assert by_name["Unused"]["totalCourses"] == 0


def test_trainer_stats(client, auth_headers, seeded):
    r = client.get("/api/stats/trainers", headers=auth_headers)
    assert r.json["data"] == [
        {"name": "Lina", "phone": "0791111111", "totalCourses": 3, "totalGraduates": 26, "totalHours": 42},
        {"name": "Omar", "phone": "0792222222", "totalCourses": 2, "totalGraduates": 8, "totalHours": 14},
    ]


def test_yearly_stats(client, auth_headers, seeded):
    r = client.get("/api/stats/yearly/2024", headers=auth_headers)
    data = r.json["data"]
    assert data["year"] == 2024
    assert data["overview"]["totalCourses"] == 4
    assert data["monthlyBreakdown"] == [
        {"month": 1, "courses": 2, "graduates": 15, "hours": 20},
        {"month": 4, "courses": 1, "graduates": 7, "hours": 20},
        {"month": 6, "courses": 1, "graduates": 9, "hours": 10},
    ]


def test_yearly_stats_for_empty_year(client, auth_headers, seeded):
    r = client.get("/api/stats/yearly/1999", headers=auth_headers)
    assert r.json["data"] == {
        "year": 1999,
        "overview": {"totalCourses": 0, "totalGraduates": 0, "totalBeneficiaries": 0, "totalHours": 0},
        "monthlyBreakdown": [],
    }


def test_yearly_defaults_to_current_year(client, auth_headers):
    r = client.get("/api/stats/yearly", headers=auth_headers)
    assert r.status_code == 200
    assert r.json["data"]["year"] == date.today().year


def test_yearly_zero_means_current_year(client, auth_headers):
    r = client.get("/api/stats/yearly/0", headers=auth_headers)
    assert r.status_code == 200
    assert r.json["data"]["year"] == date.today().year

    assert client.get("/api/stats/yearly/10000", headers=auth_headers).status_code == 400
