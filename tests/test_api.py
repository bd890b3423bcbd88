from __future__ import annotations

import datetime
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

APP_DIR = Path(__file__).resolve().parents[1] / "app"
if str(APP_DIR) not in sys.path:
    sys.path.insert(0, str(APP_DIR))

import api  # noqa: E402
from cells import RequestStatus, ShiftRecord  # noqa: E402
from database import Base, create_employee, create_schedule, create_time_off_request, upsert_shift  # noqa: E402

MONDAY = datetime.date(2024, 6, 3)


@pytest.fixture()
def api_client():
    engine = create_engine(
        "sqlite://",
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    Session = sessionmaker(bind=engine, expire_on_commit=False, future=True)

    with Session() as session:
        giulia = create_employee(session, "Giulia Romano")
        marco = create_employee(session, "Marco Bianchi")
        schedule = create_schedule(session, MONDAY, MONDAY + datetime.timedelta(days=6))
        upsert_shift(
            session,
            ShiftRecord(
                employee_id=giulia.id,
                day=MONDAY,
                start_time="09:00",
                end_time="12:30",
                schedule_id=schedule.id,
            ),
        )
        create_time_off_request(session, marco.id, MONDAY, MONDAY, "vacation", status=RequestStatus.APPROVED)
        ids = {"giulia": giulia.id, "marco": marco.id, "schedule": schedule.id}

    def override_db():
        db = Session()
        try:
            yield db
        finally:
            db.close()

    api.app.dependency_overrides[api.get_db] = override_db
    yield TestClient(api.app), ids
    api.app.dependency_overrides.clear()
    engine.dispose()


def test_health(api_client):
    client, _ = api_client
    assert client.get("/health").json() == {"status": "ok"}


def test_hours_endpoint(api_client):
    client, _ = api_client
    response = client.get("/api/v1/hours", params={"start": "04:00", "end": "06:00"})
    assert response.status_code == 200
    assert response.json()["hours"] == 2.0
    assert response.json()["label"] == "2h"
    response = client.get("/api/v1/hours", params={"start": "09:00", "end": "16:30"})
    assert response.json()["label"] == "7h"
    assert client.get("/api/v1/hours", params={"start": "9am", "end": "10:00"}).status_code == 400


def test_grid_config_endpoint(api_client):
    client, _ = api_client
    payload = client.get("/api/v1/grid/config").json()
    assert payload["cell_count"] == 40
    assert payload["slots"][0] == "04:00"
    assert payload["overlap_policy"] == "last_write"


def test_grid_endpoint(api_client):
    client, ids = api_client
    response = client.get(f"/api/v1/schedules/{ids['schedule']}/grid")
    assert response.status_code == 200
    payload = response.json()
    assert payload["read_only"] is False
    assert len(payload["slots"]) == 41
    assert len(payload["days"]) == 7
    monday_rows = {row["employee_id"]: row for row in payload["days"][0]["rows"]}
    assert monday_rows[ids["giulia"]]["total_hours"] == 3.0
    assert monday_rows[ids["giulia"]]["total_label"] == "3h"
    assert monday_rows[ids["marco"]]["notes"] == "Vacation full day"
    assert monday_rows[ids["marco"]]["cells"][0] == {"type": "vacation", "shift_id": None, "is_time_off": True}
    assert payload["weekly_totals"][str(ids["giulia"])] == 3.0
    assert client.get("/api/v1/schedules/999/grid").status_code == 404


def test_toggle_endpoint(api_client):
    client, ids = api_client
    url = f"/api/v1/schedules/{ids['schedule']}/cells/toggle"
    response = client.post(url, json={"employee_id": ids["giulia"], "day": "2024-06-03", "index": 17})
    assert response.status_code == 200
    assert response.json()["total_hours"] == 3.5
    assert response.json()["cells"][17]["type"] == "work"

    time_off = client.post(url, json={"employee_id": ids["marco"], "day": "2024-06-03", "index": 0})
    assert time_off.status_code == 409
    assert client.post(url, json={"employee_id": ids["giulia"], "day": "03/06/2024", "index": 0}).status_code == 400
    assert client.post(url, json={"employee_id": ids["giulia"], "day": "2024-06-03", "index": 99}).status_code == 400
    assert client.post(url, json={"employee_id": ids["giulia"], "day": "2024-06-03"}).status_code == 400
    assert client.post(url, json={"employee_id": 999, "day": "2024-06-03", "index": 0}).status_code == 404
    assert client.post(url, json={"employee_id": ids["giulia"], "day": "2024-07-01", "index": 0}).status_code == 404


def test_notes_endpoint(api_client):
    client, ids = api_client
    response = client.put(
        f"/api/v1/schedules/{ids['schedule']}/notes",
        json={"employee_id": ids["giulia"], "day": "2024-06-03", "notes": "colour course"},
    )
    assert response.status_code == 200
    assert response.json()["notes"] == "colour course"


def test_publish_freezes_edits(api_client):
    client, ids = api_client
    response = client.post(f"/api/v1/schedules/{ids['schedule']}/publish", json={"actor": "owner"})
    assert response.status_code == 200
    assert response.json()["is_published"] is True
    grid = client.get(f"/api/v1/schedules/{ids['schedule']}/grid").json()
    assert grid["read_only"] is True
    toggle = client.post(
        f"/api/v1/schedules/{ids['schedule']}/cells/toggle",
        json={"employee_id": ids["giulia"], "day": "2024-06-03", "index": 1},
    )
    assert toggle.status_code == 409
    assert client.post("/api/v1/schedules/999/publish").status_code == 404


def test_employee_shifts_endpoint(api_client):
    client, ids = api_client
    payload = client.get(f"/api/v1/schedules/{ids['schedule']}/employees/{ids['giulia']}/shifts").json()
    assert payload["days"][0]["shifts"][0]["hours"] == 3.0
    assert payload["days"][0]["weekday"] == "Monday"


def test_export_endpoint(api_client):
    client, ids = api_client
    response = client.get(f"/api/v1/schedules/{ids['schedule']}/export")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    lines = response.text.strip().splitlines()
    assert lines[0].startswith("employee,2024-06-03,")
    assert lines[0].endswith(",total")
    assert lines[1] == "Giulia Romano,3.00,0.00,0.00,0.00,0.00,0.00,0.00,3.00"
    assert lines[2].startswith("Marco Bianchi,0.00,")


def test_template_endpoints(api_client):
    client, ids = api_client
    created = client.post("/api/v1/templates", json={"schedule_id": ids["schedule"], "name": "Regular week"})
    assert created.status_code == 201
    template_id = created.json()["id"]
    assert created.json()["shift_count"] == 1
    assert client.post("/api/v1/templates", json={"schedule_id": ids["schedule"], "name": "x"}).status_code == 400
    listing = client.get("/api/v1/templates").json()
    assert [item["name"] for item in listing] == ["Regular week"]

    applied = client.post("/api/v1/templates/apply", json={"template_id": template_id, "schedule_id": ids["schedule"]})
    assert applied.status_code == 200
    assert applied.json()["shifts_created"] == 1
    assert client.get("/api/v1/templates").json()[0]["usage_count"] == 1
    missing = client.post("/api/v1/templates/apply", json={"template_id": 999, "schedule_id": ids["schedule"]})
    assert missing.status_code == 404
