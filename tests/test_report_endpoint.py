"""
Tests for GET /report/{user_id}.
"""
import pytest
from datetime import date
from unittest.mock import patch

TEST_USER_ID = "123e4567-e89b-12d3-a456-426614174000"
TODAY = date(2024, 5, 10)


@pytest.fixture
def report_supabase(supabase_factory):
    return supabase_factory(tables={
        "pain_entries": [
            {"pain_date": "2024-05-01", "pain_level": 0, "notes": None},
            {"pain_date": "2024-05-02", "pain_level": 8, "notes": "flare"},
            {"pain_date": "2024-05-03", "pain_level": 4, "notes": None},
        ],
        "medications": [
            {"id": "5f0c8d3e-9a1b-4c2d-8e7f-0a1b2c3d4e5f", "name": "Ibuprofen",
             "archived_at": "2024-05-05T10:00:00+00:00"},
        ],
    })


def test_report_defaults_to_current_month(make_client, report_supabase):
    with patch("api.report.today_in_app_timezone", return_value=TODAY):
        response = make_client(report_supabase).get(f"/report/{TEST_USER_ID}")

    assert response.status_code == 200
    body = response.json()
    assert body["start"] == "2024-05-01"
    assert body["end"] == "2024-05-31"
    assert body["summary"] == {"average": 4.0, "pain_free_days": 1, "high_pain_days": 1, "days": 3}
    assert body["entries"][1] == {
        "pain_date": "2024-05-02", "pain_level": 8, "notes": "flare",
        "medications": [{"id": "5f0c8d3e-9a1b-4c2d-8e7f-0a1b2c3d4e5f", "name": "Ibuprofen", "dosage": None}],
    }


def test_report_includes_archived_medications(make_client, report_supabase):
    with patch("api.report.today_in_app_timezone", return_value=TODAY):
        body = make_client(report_supabase).get(f"/report/{TEST_USER_ID}").json()

    assert [m["name"] for m in body["medications"]] == ["Ibuprofen"]
    query = report_supabase.builders_for("medications", "select")[0]
    assert query.called("is_") == []


def test_report_custom_range(make_client, report_supabase):
    response = make_client(report_supabase).get(
        f"/report/{TEST_USER_ID}?start=2024-04-01&end=2024-04-30"
    )

    assert response.json()["start"] == "2024-04-01"
    query = report_supabase.builders_for("pain_entries", "select")[0]
    assert query.called("gte") == [("gte", ("pain_date", "2024-04-01"), {})]
    assert query.called("lte") == [("lte", ("pain_date", "2024-04-30"), {})]


def test_report_rejects_inverted_range(client):
    response = client.get(f"/report/{TEST_USER_ID}?start=2024-05-31&end=2024-05-01")

    assert response.status_code == 400


def test_empty_report(client):
    body = client.get(f"/report/{TEST_USER_ID}?start=2024-04-01&end=2024-04-30").json()

    assert body["summary"] == {"average": None, "pain_free_days": 0, "high_pain_days": 0, "days": 0}
    assert body["entries"] == []


def test_entries_list_medications_active_that_day(make_client, supabase_factory):
    supabase = supabase_factory(tables={
        "pain_entries": [
            {"pain_date": "2024-05-01", "pain_level": 3, "notes": None},
            {"pain_date": "2024-05-02", "pain_level": 3, "notes": None},
            {"pain_date": "2024-05-03", "pain_level": 3, "notes": None},
        ],
        "medications": [
            # started on the 2nd (local time)
            {"id": "a", "name": "Naproxen", "dosage": "250mg",
             "created_at": "2024-05-02T06:00:00+00:00", "archived_at": None},
            # stopped on the 3rd
            {"id": "b", "name": "Tramadol", "dosage": None,
             "created_at": "2024-04-01T06:00:00+00:00", "archived_at": "2024-05-03T09:00:00+00:00"},
        ],
    })

    body = make_client(supabase).get(f"/report/{TEST_USER_ID}?start=2024-05-01&end=2024-05-31").json()
    names = {e["pain_date"]: [m["name"] for m in e["medications"]] for e in body["entries"]}

    assert names == {
        "2024-05-01": ["Tramadol"],
        "2024-05-02": ["Naproxen", "Tramadol"],
        "2024-05-03": ["Naproxen"],
    }
    assert len(body["medications"]) == 2
