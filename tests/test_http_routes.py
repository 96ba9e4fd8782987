from __future__ import annotations

from datetime import date, time

import pytest

from src.gym_admin.gym_admin.container import wire
from src.gym_admin.gym_admin.core.enums import EventStatus
from src.gym_admin.gym_admin.events.model import Event
from src.gym_admin.gym_admin.main import create_app


@pytest.fixture
def client(monkeypatch, event_store, attendance_store, members):
    monkeypatch.setenv("APP_ENV", "testing")
    container = wire(events_repo=event_store, attendance_repo=attendance_store, members_repo=members)
    app = create_app(container=container)
    return app.test_client()


def test_create_event_returns_201(client):
    res = client.post(
        "/agenda/events",
        json={"title": "Pilates", "date": "2025-06-10", "time": "7:0", "responsible": "Bia"},
    )

    assert res.status_code == 201
    body = res.get_json()
    assert body["result"] == "success"
    assert body["event"]["time"] == "07:00"
    assert [e["title"] for e in body["events"]] == ["Pilates", "Yoga"]


def test_create_in_taken_slot_is_400(client, event_store):
    res = client.post(
        "/agenda/events",
        json={"title": "Pilates", "date": "2025-06-10", "time": "18:00", "responsible": "Bia"},
    )

    assert res.status_code == 400
    assert res.get_json()["result"] == "validation_error"
    assert event_store.writes == []


def test_malformed_date_is_bad_request(client):
    res = client.post(
        "/agenda/events",
        json={"title": "Pilates", "date": "10/06/2025", "time": "18:00", "responsible": "Bia"},
    )
    assert res.status_code == 400


def test_list_filters_by_status(client):
    res = client.get("/agenda/events?status=denied")
    assert res.status_code == 200
    assert res.get_json()["events"] == []


def test_delete_without_confirm_is_declined(client, event_store, yoga):
    res = client.delete(f"/agenda/events/{yoga.id}")

    assert res.status_code == 200
    assert res.get_json()["result"] == "declined"
    assert event_store.writes == []


def test_delete_with_confirm_removes_event(client, yoga):
    res = client.delete(f"/agenda/events/{yoga.id}?confirm=1")

    assert res.status_code == 200
    assert res.get_json()["events"] == []


def test_save_attendance_reconciles_the_day(client, attendance_store):
    attendance_store.mark("A", date(2025, 6, 10))

    res = client.post("/attendance/2025-06-10", json={"present": ["B", "C"]})

    assert res.status_code == 200
    body = res.get_json()
    assert body["result"] == "success"
    assert sorted(body["created"]) == ["B", "C"]
    assert body["deleted"] == ["A"]
    assert attendance_store.present_on(date(2025, 6, 10)) == {"B", "C"}


def test_attendance_day_lists_members_with_ticks(client, attendance_store):
    attendance_store.mark("B", date(2025, 6, 10))

    res = client.get("/attendance/2025-06-10")

    assert res.status_code == 200
    body = res.get_json()
    assert body["present_count"] == 1
    assert [m["present"] for m in body["members"]] == [False, True, False]


def test_weekly_counts(client, attendance_store):
    attendance_store.mark("A", date(2025, 6, 9))

    res = client.get("/attendance/weekly?today=2025-06-12")

    assert res.status_code == 200
    days = res.get_json()["days"]
    assert [d["date"] for d in days][0] == "2025-06-08"
    assert [d["count"] for d in days] == [0, 1, 0, 0, 0, 0, 0]


def test_edit_without_status_keeps_event_denied(client, event_store):
    denied = event_store.seed(
        Event(id=None, title="Boxing", date=date(2025, 6, 10), time=time(9, 0), responsible="Rui", status=EventStatus.DENIED)
    )

    res = client.put(
        f"/agenda/events/{denied.id}",
        json={"title": "Kickboxing", "date": "2025-06-10", "time": "09:00", "responsible": "Rui"},
    )

    assert res.status_code == 200
    assert res.get_json()["event"]["status"] == "denied"


def test_non_string_title_is_bad_request(client, event_store):
    res = client.post(
        "/agenda/events",
        json={"title": 123, "date": "2025-06-10", "time": "07:00", "responsible": "Bia"},
    )

    assert res.status_code == 400
    assert event_store.writes == []
