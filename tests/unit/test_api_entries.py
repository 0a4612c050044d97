"""API tests for the sleep entry endpoints against the in-memory store."""

from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from baby_sleep_tracker.main import app
from baby_sleep_tracker.repositories.dependencies import get_sleep_entry_repository
from baby_sleep_tracker.repositories.interfaces import StoreError
from baby_sleep_tracker.repositories.memory_impl import MemorySleepEntryRepository

BABY = "baby-api"


def nap(start: str, end=None, **extra):
    body = {"type": "nap", "startTime": start, "endTime": end}
    body.update(extra)
    return body


def create(client: TestClient, body, baby_id: str = BABY):
    return client.post(f"/v1/babies/{baby_id}/entries", json=body)


@pytest.mark.unit
class TestCreateEntry:

    def test_create_returns_entry(self, memory_client):
        response = create(memory_client, nap("2024-01-11T09:00:00", "2024-01-11T10:00:00", notes="car seat"))

        assert response.status_code == 201
        data = response.json()
        assert data["warning"] is None
        entry = data["entry"]
        assert entry["babyId"] == BABY
        assert entry["type"] == "nap"
        assert entry["startTime"] == "2024-01-11T09:00:00"
        assert entry["endTime"] == "2024-01-11T10:00:00"
        assert entry["date"] == "2024-01-11"
        assert entry["notes"] == "car seat"

    def test_create_with_warning(self, memory_client):
        response = create(memory_client, nap("2024-01-11T09:00:00", "2024-01-11T13:30:00"))

        assert response.status_code == 201
        warning = response.json()["warning"]
        assert warning["severity"] == "warn"
        assert warning["reasonCode"] == "nap_unusually_long"
        assert warning["message"] == "Unusually long nap"

    def test_blocked_entry(self, memory_client):
        response = create(memory_client, nap("2024-01-11T13:00:00", "2024-01-11T13:00:00"))

        assert response.status_code == 422
        assert response.headers["content-type"] == "application/problem+json"
        problem = response.json()
        assert problem["title"] == "Entry Rejected"
        assert problem["reasonCode"] == "same_start_end"
        assert problem["severity"] == "block"
        assert memory_client.get(f"/v1/babies/{BABY}/entries").json()["entries"] == []

    def test_collision(self, memory_client):
        first = create(memory_client, nap("2024-01-11T10:00:00", "2024-01-11T10:30:00")).json()["entry"]

        response = create(memory_client, nap("2024-01-11T10:15:00", "2024-01-11T10:45:00"))

        assert response.status_code == 409
        problem = response.json()
        assert problem["title"] == "Sleep Entry Collision"
        assert problem["colliding"]["id"] == first["id"]

    def test_replace_resolves_collision(self, memory_client):
        first = create(memory_client, nap("2024-01-11T10:00:00", "2024-01-11T10:30:00")).json()["entry"]
        pending = nap("2024-01-11T10:15:00", "2024-01-11T10:45:00")

        response = memory_client.post(
            f"/v1/babies/{BABY}/entries/replace",
            json={"collidingId": first["id"], "entry": pending},
        )

        assert response.status_code == 200
        entries = memory_client.get(f"/v1/babies/{BABY}/entries").json()["entries"]
        assert [entry["startTime"] for entry in entries] == ["2024-01-11T10:15:00"]

    def test_invalid_payload(self, memory_client):
        response = create(memory_client, nap("2024-01-11T09:00:00", notes="x" * 501))

        assert response.status_code == 422
        assert response.json()["title"] == "Validation Error"

    def test_store_failure_is_503(self, memory_client):
        class BrokenRepository(MemorySleepEntryRepository):
            async def list_for_baby(self, baby_id):
                raise StoreError("database is locked")

        app.dependency_overrides[get_sleep_entry_repository] = lambda: BrokenRepository()

        response = create(memory_client, nap("2024-01-11T09:00:00", "2024-01-11T10:00:00"))

        assert response.status_code == 503
        assert response.json()["retryable"] is True
        assert memory_client.get(f"/v1/babies/{BABY}/awake-state").status_code == 503


@pytest.mark.unit
class TestListEditDelete:

    def test_list_by_date(self, memory_client):
        create(memory_client, nap("2024-01-10T09:00:00", "2024-01-10T10:00:00"))
        create(memory_client, nap("2024-01-11T09:00:00", "2024-01-11T10:00:00"))

        all_entries = memory_client.get(f"/v1/babies/{BABY}/entries").json()["entries"]
        day = memory_client.get(f"/v1/babies/{BABY}/entries", params={"date": "2024-01-11"}).json()["entries"]

        assert len(all_entries) == 2
        assert [entry["date"] for entry in day] == ["2024-01-11"]

    def test_patch_entry(self, memory_client):
        entry = create(memory_client, nap("2024-01-11T09:00:00", "2024-01-11T10:00:00")).json()["entry"]

        response = memory_client.patch(f"/v1/entries/{entry['id']}", json={"endTime": "2024-01-11T10:20:00"})

        assert response.status_code == 200
        assert response.json()["entry"]["endTime"] == "2024-01-11T10:20:00"

    def test_patch_missing_entry(self, memory_client):
        response = memory_client.patch("/v1/entries/missing", json={"notes": "x"})

        assert response.status_code == 404
        assert response.json()["title"] == "Entry Not Found"

    def test_delete_entry(self, memory_client):
        entry = create(memory_client, nap("2024-01-11T09:00:00", "2024-01-11T10:00:00")).json()["entry"]

        assert memory_client.delete(f"/v1/entries/{entry['id']}").status_code == 204
        assert memory_client.delete(f"/v1/entries/{entry['id']}").status_code == 404


@pytest.mark.unit
class TestSleepSession:

    def test_start_and_end_sleep(self, memory_client, clock):
        started = memory_client.post(f"/v1/babies/{BABY}/sleep/start", json={"type": "nap"})
        assert started.status_code == 201
        entry = started.json()["entry"]
        assert entry["endTime"] is None

        state = memory_client.get(f"/v1/babies/{BABY}/awake-state").json()
        assert state["isAsleep"] is True
        assert state["activeSleep"]["id"] == entry["id"]
        assert state["awakeMinutes"] is None

        clock.advance(minutes=5)
        second = memory_client.post(f"/v1/babies/{BABY}/sleep/start", json={"type": "night"})
        assert second.status_code == 409

        body = {"endTime": "2024-01-11T15:45:00"}
        first_end = memory_client.post(f"/v1/entries/{entry['id']}/end", json=body)
        second_end = memory_client.post(f"/v1/entries/{entry['id']}/end", json=body)

        assert first_end.status_code == 200
        assert second_end.status_code == 200
        assert first_end.json()["entry"] == second_end.json()["entry"]

        clock.advance(minutes=80)
        state = memory_client.get(f"/v1/babies/{BABY}/awake-state").json()
        assert state["isAsleep"] is False
        assert state["awakeMinutes"] == 40
        assert state["awakeLabel"] == "40m"

    def test_end_without_body_uses_now(self, memory_client, clock):
        entry = memory_client.post(f"/v1/babies/{BABY}/sleep/start", json={"type": "nap"}).json()["entry"]
        clock.advance(minutes=30)

        response = memory_client.post(f"/v1/entries/{entry['id']}/end")

        assert response.status_code == 200
        assert response.json()["entry"]["endTime"] == "2024-01-11T15:30:00"

    def test_wake_up_ends_night(self, memory_client, clock):
        clock.set(datetime(2024, 1, 10, 20, 0))
        memory_client.post(f"/v1/babies/{BABY}/sleep/start", json={"type": "night"})
        clock.set(datetime(2024, 1, 11, 6, 30))

        response = memory_client.post(f"/v1/babies/{BABY}/wake-up")

        assert response.status_code == 200
        entry = response.json()["entry"]
        assert entry["type"] == "night"
        assert entry["startTime"] == "2024-01-10T20:00:00"
        assert entry["endTime"] == "2024-01-11T06:30:00"


@pytest.mark.unit
class TestDerivedViews:

    def test_timeline(self, memory_client):
        create(
            memory_client,
            {"type": "night", "startTime": "2024-01-10T20:00:00", "endTime": "2024-01-11T07:00:00"},
        )

        response = memory_client.get(f"/v1/babies/{BABY}/timeline", params={"date": "2024-01-11"})

        assert response.status_code == 200
        data = response.json()
        assert data["date"] == "2024-01-11"
        assert [item["kind"] for item in data["items"]] == ["wakeup", "night-sleep-summary"]
        summary = data["items"][1]
        assert summary["durationMinutes"] == 660
        assert summary["durationLabel"] == "11h 0m"

        bedtime_day = memory_client.get(f"/v1/babies/{BABY}/timeline", params={"date": "2024-01-10"}).json()
        assert [item["kind"] for item in bedtime_day["items"]] == ["bedtime"]

    def test_timeline_requires_date(self, memory_client):
        assert memory_client.get(f"/v1/babies/{BABY}/timeline").status_code == 422

    def test_summary(self, memory_client):
        create(memory_client, nap("2024-01-11T09:00:00", "2024-01-11T10:30:00"))
        create(memory_client, nap("2024-01-11T13:00:00", "2024-01-11T14:00:00"))

        data = memory_client.get(f"/v1/babies/{BABY}/summary", params={"date": "2024-01-11"}).json()

        assert data["totalNapMinutes"] == 150
        assert data["napCount"] == 2
        assert data["totalSleepLabel"] == "2h 30m"

    def test_missing_bedtime(self, memory_client):
        url = f"/v1/babies/{BABY}/missing-bedtime"
        assert memory_client.get(url).json() == {"shouldPrompt": False}

        create(memory_client, nap("2024-01-09T09:00:00", "2024-01-09T10:00:00"))

        assert memory_client.get(url).json() == {"shouldPrompt": True}


@pytest.mark.unit
class TestReport:

    def test_report(self, memory_client):
        create(
            memory_client,
            {"type": "night", "startTime": "2024-01-09T19:30:00", "endTime": "2024-01-10T06:30:00"},
        )
        create(memory_client, nap("2024-01-10T09:00:00", "2024-01-10T10:00:00"))
        create(memory_client, nap("2024-01-10T13:00:00", "2024-01-10T14:30:00"))
        create(
            memory_client,
            {"type": "night", "startTime": "2024-01-10T20:30:00", "endTime": "2024-01-11T07:00:00"},
        )

        response = memory_client.get(
            f"/v1/babies/{BABY}/report", params={"start": "2024-01-09", "end": "2024-01-11"}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["completedDays"] == 2
        assert data["daysWithData"] == 2
        assert data["hasEnoughData"] is False
        assert data["avgNapCount"] == 1.0
        assert data["napCountRange"] == {"min": 2, "max": 2}
        assert data["bedtimeSpread"]["earliest"] == "19:30"
        assert data["bedtimeSpread"]["latest"] == "20:30"
        assert data["bedtimeSpread"]["spreadMinutes"] == 60
        assert data["wakeUpSpread"]["earliest"] == "06:30"
        assert data["wakeUpSpread"]["latest"] == "06:30"

    def test_inverted_range(self, memory_client):
        response = memory_client.get(
            f"/v1/babies/{BABY}/report", params={"start": "2024-01-11", "end": "2024-01-01"}
        )

        assert response.status_code == 422
        assert response.json()["title"] == "Invalid Date Range"

    def test_range_too_long(self, memory_client):
        response = memory_client.get(
            f"/v1/babies/{BABY}/report", params={"start": "2022-01-01", "end": "2024-01-01"}
        )

        assert response.status_code == 422

    def test_missing_bounds(self, memory_client):
        assert memory_client.get(f"/v1/babies/{BABY}/report").status_code == 422
