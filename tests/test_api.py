from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from core.exceptions import CollaboratorError
from db.session import get_session
from helpers import add_dealership, add_shift, utc
from main import app
from services.auto_close import CloseOutcome, ShiftCloseResult, SweepReport
from services.scheduling import ScheduledJobRunner, SchedulingContract
from utils.datetime_helpers import format_utc_datetime


@pytest.fixture
def client(session):
    def override_session():
        yield session

    original_runner = app.state.auto_close_runner
    app.dependency_overrides[get_session] = override_session
    yield TestClient(app)
    app.dependency_overrides.clear()
    app.state.auto_close_runner = original_runner


def install_runner(job):
    app.state.auto_close_runner = ScheduledJobRunner(
        SchedulingContract(queue="test", max_attempts=1), job
    )
    return app.state.auto_close_runner


class TestRunAutoClose:

    def test_reports_counts(self, client):
        report = SweepReport(
            started_at=utc("2025-01-27T10:00:01Z"),
            results=[
                ShiftCloseResult(1, "T", CloseOutcome.CLOSED),
                ShiftCloseResult(2, "T", CloseOutcome.FAILED, "boom"),
                ShiftCloseResult(3, "T", CloseOutcome.CLOSED),
            ],
        )
        install_runner(lambda: report)

        response = client.post("/admin/maintenance/run-auto-close")

        assert response.status_code == 200
        assert response.json() == {
            "status": "ok",
            "closed_count": 2,
            "failed_count": 1,
            "skipped_count": 0,
            "ran_at": "2025-01-27T10:00:01Z",
        }

    def test_skipped_while_locked(self, client):
        runner = install_runner(lambda: None)
        runner._acquire()

        response = client.post("/admin/maintenance/run-auto-close")

        assert response.status_code == 200
        assert response.json()["status"] == "skipped"

    def test_collaborator_failure_is_503(self, client):
        def job():
            raise CollaboratorError("cannot list dealerships")

        install_runner(job)
        response = client.post("/admin/maintenance/run-auto-close")

        assert response.status_code == 503
        assert "cannot list dealerships" in response.json()["detail"]

    def test_database_failure_is_503(self, client):
        calls = []

        def job():
            calls.append(1)
            raise OperationalError("SELECT", {}, Exception("connection refused"))

        install_runner(job)
        response = client.post("/admin/maintenance/run-auto-close")

        assert response.status_code == 503
        assert "connection refused" in response.json()["detail"]
        assert calls == [1]


class TestTodaysShifts:

    def test_lists_shifts_ending_today(self, client, session):
        add_dealership(session, "D1")
        now = datetime.now(timezone.utc)
        shift = add_shift(session, "D1", format_utc_datetime(now))
        add_shift(session, "D1", format_utc_datetime(now + timedelta(days=2)))

        response = client.get("/shifts/today/D1")

        assert response.status_code == 200
        body = response.json()
        assert [item["id"] for item in body] == [shift.id]
        assert body[0]["status"] == "open"
        assert body[0]["status_label"] == "Open"
        assert body[0]["scheduled_end"].endswith("Z")
        assert body[0]["shift_end"] is None

    def test_invalid_timezone_is_400(self, client, session):
        add_dealership(session, "D1")
        response = client.get("/shifts/today/D1", params={"tz": "Mars/Base"})
        assert response.status_code == 400
