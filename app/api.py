"""FastAPI wrapper around the shift planner.

Reads assemble the weekly grid from the database on every request; edits go
through the service layer so totals and audit rows stay consistent.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
import calendar
import datetime
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse, Response

# Ensure absolute imports (e.g., "import database") resolve when served from the repo root.
APP_DIR = Path(__file__).resolve().parent
if str(APP_DIR) not in sys.path:
    sys.path.insert(0, str(APP_DIR))

import database  # noqa: E402
import planner  # noqa: E402
from cells import DayEmployeeRow  # noqa: E402
from database import SessionLocal, init_database  # noqa: E402
from errors import PublishedScheduleError, ReadOnlyCellError  # noqa: E402
from exporter import totals_csv_text  # noqa: E402
from grid import WeeklyGrid  # noqa: E402
from grid_defaults import GridConfig  # noqa: E402
from hours import format_hours, hours_from_time_range  # noqa: E402

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    init_database()
    yield


app = FastAPI(title="Shift Planner API", version="0.1", lifespan=lifespan)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_grid_config() -> GridConfig:
    return GridConfig()


def _http_error(exc: Exception) -> HTTPException:
    detail = exc.args[0] if isinstance(exc, KeyError) and exc.args else str(exc)
    if isinstance(exc, (ReadOnlyCellError, PublishedScheduleError)):
        return HTTPException(status_code=409, detail=detail)
    if isinstance(exc, IndexError):
        return HTTPException(status_code=400, detail=detail)
    if isinstance(exc, LookupError):
        return HTTPException(status_code=404, detail=detail)
    return HTTPException(status_code=400, detail=detail)


SERVICE_ERRORS = (ReadOnlyCellError, PublishedScheduleError, LookupError, ValueError)


def _parse_date(value: Any, field: str = "day") -> datetime.date:
    try:
        return datetime.date.fromisoformat(str(value))
    except ValueError:
        raise HTTPException(status_code=400, detail=f"{field} must be YYYY-MM-DD")


def _require_int(payload: Dict[str, Any], key: str) -> int:
    value = payload.get(key)
    if value is None or isinstance(value, bool):
        raise HTTPException(status_code=400, detail=f"{key} is required")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise HTTPException(status_code=400, detail=f"{key} must be an integer")


def _actor(payload: Optional[Dict[str, Any]]) -> str:
    return (str((payload or {}).get("actor") or "api")).strip() or "api"


def _serialize_row(row: DayEmployeeRow) -> Dict[str, Any]:
    return {
        "date": row.day.isoformat(),
        "weekday": calendar.day_name[row.day.weekday()],
        "employee_id": row.employee_id,
        "notes": row.notes,
        "total_hours": row.total_hours,
        "total_label": format_hours(row.total_hours),
        "cells": [
            {"type": cell.cell_type.value, "shift_id": cell.shift_id, "is_time_off": cell.is_time_off}
            for cell in row.cells
        ],
    }


def _serialize_grid(weekly: WeeklyGrid) -> Dict[str, Any]:
    return {
        "schedule_id": weekly.schedule_id,
        "read_only": weekly.read_only,
        "slots": weekly.grid.labels(),
        "days": [
            {
                "date": day.isoformat(),
                "rows": [_serialize_row(row) for row in weekly.rows_for_day(day)],
            }
            for day in weekly.days
        ],
        "weekly_totals": {str(key): value for key, value in weekly.weekly_totals().items()},
        "warnings": [warning.as_dict() for warning in weekly.warnings],
    }


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/api/v1/hours")
def hours_between(start: str = Query(...), end: str = Query(...)) -> JSONResponse:
    try:
        hours = hours_from_time_range(start, end)
    except ValueError as exc:
        raise _http_error(exc) from exc
    return JSONResponse(content={"start": start, "end": end, "hours": hours, "label": format_hours(hours)})


@app.get("/api/v1/grid/config")
def grid_config(config: GridConfig = Depends(get_grid_config)) -> JSONResponse:
    grid = config.build_grid()
    return JSONResponse(content={**config.as_dict(), "slots": grid.labels(), "cell_count": grid.cell_count})


@app.get("/api/v1/schedules/{schedule_id}/grid")
def schedule_grid(
    schedule_id: int,
    db=Depends(get_db),
    config: GridConfig = Depends(get_grid_config),
) -> JSONResponse:
    try:
        weekly = planner.load_week_grid(db, schedule_id, config=config, user_id="api")
    except SERVICE_ERRORS as exc:
        raise _http_error(exc) from exc
    return JSONResponse(content=jsonable_encoder(_serialize_grid(weekly)))


@app.post("/api/v1/schedules/{schedule_id}/cells/toggle")
def toggle_cell(
    schedule_id: int,
    payload: Dict[str, Any],
    db=Depends(get_db),
    config: GridConfig = Depends(get_grid_config),
) -> JSONResponse:
    employee_id = _require_int(payload, "employee_id")
    index = _require_int(payload, "index")
    day = _parse_date(payload.get("day"))
    try:
        row = planner.toggle_and_save(
            db,
            schedule_id,
            employee_id,
            day,
            index,
            config=config,
            user_id=_actor(payload),
        )
    except SERVICE_ERRORS as exc:
        raise _http_error(exc) from exc
    return JSONResponse(content=jsonable_encoder(_serialize_row(row)))


@app.put("/api/v1/schedules/{schedule_id}/notes")
def edit_notes(
    schedule_id: int,
    payload: Dict[str, Any],
    db=Depends(get_db),
    config: GridConfig = Depends(get_grid_config),
) -> JSONResponse:
    employee_id = _require_int(payload, "employee_id")
    day = _parse_date(payload.get("day"))
    try:
        row = planner.update_notes(
            db,
            schedule_id,
            employee_id,
            day,
            str(payload.get("notes") or ""),
            config=config,
            user_id=_actor(payload),
        )
    except SERVICE_ERRORS as exc:
        raise _http_error(exc) from exc
    return JSONResponse(content=jsonable_encoder(_serialize_row(row)))


@app.post("/api/v1/schedules/{schedule_id}/publish")
def publish_schedule(schedule_id: int, payload: Dict[str, Any] | None = None, db=Depends(get_db)) -> JSONResponse:
    try:
        schedule = planner.publish_schedule(db, schedule_id, user_id=_actor(payload))
    except SERVICE_ERRORS as exc:
        raise _http_error(exc) from exc
    return JSONResponse(
        content=jsonable_encoder(
            {
                "schedule_id": schedule.id,
                "is_published": schedule.is_published,
                "published_at": schedule.published_at,
            }
        )
    )


@app.get("/api/v1/schedules/{schedule_id}/employees/{employee_id}/shifts")
def employee_shifts(schedule_id: int, employee_id: int, db=Depends(get_db)) -> JSONResponse:
    try:
        days = planner.employee_shift_view(db, schedule_id, employee_id)
    except SERVICE_ERRORS as exc:
        raise _http_error(exc) from exc
    return JSONResponse(content=jsonable_encoder({"employee_id": employee_id, "days": days}))


@app.get("/api/v1/schedules/{schedule_id}/export")
def export_totals(
    schedule_id: int,
    db=Depends(get_db),
    config: GridConfig = Depends(get_grid_config),
) -> Response:
    try:
        weekly = planner.load_week_grid(db, schedule_id, config=config, user_id="api", audit=False)
    except SERVICE_ERRORS as exc:
        raise _http_error(exc) from exc
    names = {employee.id: employee.name for employee in database.list_employees(db, only_active=False)}
    return Response(
        content=totals_csv_text(weekly, names),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="schedule_{schedule_id}_hours.csv"'},
    )


@app.get("/api/v1/templates")
def list_templates(db=Depends(get_db)) -> JSONResponse:
    payload = [
        {
            "id": template.id,
            "name": template.name,
            "type": template.type,
            "description": template.description,
            "usage_count": template.usage_count,
            "last_used_at": template.last_used_at,
            "shift_count": len(template.shifts),
        }
        for template in database.list_templates(db)
    ]
    return JSONResponse(content=jsonable_encoder(payload))


@app.post("/api/v1/templates")
def save_template(payload: Dict[str, Any], db=Depends(get_db)) -> JSONResponse:
    schedule_id = _require_int(payload, "schedule_id")
    name = str(payload.get("name") or "")
    try:
        template = planner.save_template(
            db,
            schedule_id,
            name,
            template_type=str(payload.get("type") or "custom"),
            description=str(payload.get("description") or ""),
            user_id=_actor(payload),
        )
    except SERVICE_ERRORS as exc:
        raise _http_error(exc) from exc
    return JSONResponse(
        status_code=201,
        content=jsonable_encoder(
            {"id": template.id, "name": template.name, "type": template.type, "shift_count": len(template.shifts)}
        ),
    )


@app.post("/api/v1/templates/apply")
def apply_template(payload: Dict[str, Any], db=Depends(get_db)) -> JSONResponse:
    template_id = _require_int(payload, "template_id")
    schedule_id = _require_int(payload, "schedule_id")
    try:
        created = planner.apply_template(db, template_id, schedule_id, user_id=_actor(payload))
    except SERVICE_ERRORS as exc:
        raise _http_error(exc) from exc
    return JSONResponse(content={"template_id": template_id, "schedule_id": schedule_id, "shifts_created": created})
