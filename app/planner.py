"""Service layer: loads grids from the database and writes cell edits back."""

from __future__ import annotations

import calendar
import datetime
import logging
from dataclasses import replace
from typing import Any, Dict, List, Optional, Tuple

import database
from blocks import expand, row_to_shift_records
from cells import EMPTY_CELL, TYPE_PRIORITY, Cell, CellType, DayEmployeeRow, ShiftRecord
from errors import UnmatchedShiftBoundaryWarning
from grid import WeeklyGrid, assemble_schedule
from grid_defaults import GridConfig
from hours import hours_from_time_range, total_hours
from timegrid import TimeGrid

logger = logging.getLogger(__name__)


def _require_schedule(session, schedule_id: int) -> database.Schedule:
    schedule = database.get_schedule(session, schedule_id)
    if not schedule:
        raise LookupError(f"Schedule with id {schedule_id} was not found.")
    return schedule


def load_week_grid(
    session,
    schedule_id: int,
    *,
    config: Optional[GridConfig] = None,
    user_id: str = "system",
    audit: bool = True,
) -> WeeklyGrid:
    """Assemble the grid of a stored schedule.

    Every shift that could not be placed on the grid is written to the audit
    log as ``SHIFT_SKIPPED`` unless ``audit`` is False.
    """
    schedule = database.schedule_ref(_require_schedule(session, schedule_id))
    employees = database.list_employees(session)
    shifts = database.list_shifts_for_schedule(session, schedule.id)
    requests = database.list_approved_time_off_requests(session, schedule.start_date, schedule.end_date)
    weekly = assemble_schedule(schedule, employees, shifts, requests, config=config)
    if audit:
        for warning in weekly.warnings:
            database.record_audit_log(
                session,
                user_id=user_id,
                action="SHIFT_SKIPPED",
                target_type="Shift",
                target_id=warning.shift_id,
                payload=warning.as_dict(),
            )
    logger.info(
        "Loaded schedule %s: %d rows, %d skipped shifts",
        schedule.id,
        len(weekly.rows),
        len(weekly.warnings),
    )
    return weekly


def _row_area(shifts: List[ShiftRecord]) -> Optional[str]:
    areas = {shift.area for shift in shifts if shift.area}
    return areas.pop() if len(areas) == 1 else None


def _stored_cells(row: DayEmployeeRow, existing: List[ShiftRecord], grid: TimeGrid) -> Tuple[Cell, ...]:
    """Row cells with every time-off cell swapped for the stored shift underneath it."""
    underneath = [EMPTY_CELL] * grid.cell_count
    for shift in existing:
        try:
            writes = expand(shift, grid)
        except UnmatchedShiftBoundaryWarning:
            continue
        for index, cell in writes:
            underneath[index] = cell
    return tuple(underneath[index] if cell.is_time_off else cell for index, cell in enumerate(row.cells))


def save_row(
    session,
    weekly: WeeklyGrid,
    row: DayEmployeeRow,
    *,
    notes: Optional[str] = None,
) -> List[ShiftRecord]:
    """Persist a row's editable cells as consolidated shifts.

    Time off is an overlay: stored shifts under time-off cells are written back
    as they were, and each shift keeps its own notes unless ``notes`` is given.
    Shifts that were skipped while the grid was assembled are kept as stored.
    """
    existing = database.list_shifts_for_schedule(session, weekly.schedule_id, employee_id=row.employee_id)
    existing = [shift for shift in existing if shift.day == row.day]
    stored = replace(row, cells=_stored_cells(row, existing, weekly.grid), notes=notes or "")
    skipped_ids = [
        warning.shift_id
        for warning in weekly.warnings
        if warning.employee_id == row.employee_id and warning.day == row.day
    ]
    records = row_to_shift_records(
        stored,
        weekly.grid,
        schedule_id=weekly.schedule_id,
        area=_row_area(existing),
        notes_by_shift=None if notes is not None else {shift.id: shift.notes for shift in existing if shift.id},
    )
    return database.replace_row_shifts(
        session,
        weekly.schedule_id,
        row.employee_id,
        row.day,
        records,
        keep_ids=skipped_ids,
    )


def toggle_and_save(
    session,
    schedule_id: int,
    employee_id: int,
    day: datetime.date,
    index: int,
    *,
    config: Optional[GridConfig] = None,
    user_id: str = "system",
) -> DayEmployeeRow:
    weekly = load_week_grid(session, schedule_id, config=config, audit=False)
    updated = weekly.toggle(day, employee_id, index)
    row = updated.row(day, employee_id)
    save_row(session, weekly, row)
    database.record_audit_log(
        session,
        user_id=user_id,
        action="CELL_TOGGLE",
        target_type="Schedule",
        target_id=schedule_id,
        payload={
            "employee_id": employee_id,
            "day": day.isoformat(),
            "index": index,
            "cell_type": row.cells[index].cell_type.value,
            "total_hours": row.total_hours,
        },
    )
    # Reload so cells carry the ids of the shifts just written.
    return load_week_grid(session, schedule_id, config=config, audit=False).row(day, employee_id)


def update_notes(
    session,
    schedule_id: int,
    employee_id: int,
    day: datetime.date,
    notes: str,
    *,
    config: Optional[GridConfig] = None,
    user_id: str = "system",
) -> DayEmployeeRow:
    """Store notes on every shift of the row; rows without shifts keep them only in memory."""
    weekly = load_week_grid(session, schedule_id, config=config, audit=False)
    updated = weekly.set_notes(day, employee_id, notes)
    row = updated.row(day, employee_id)
    save_row(session, weekly, row, notes=row.notes)
    database.record_audit_log(
        session,
        user_id=user_id,
        action="NOTES_EDIT",
        target_type="Schedule",
        target_id=schedule_id,
        payload={"employee_id": employee_id, "day": day.isoformat(), "notes": row.notes},
    )
    return row


def publish_schedule(session, schedule_id: int, *, user_id: str = "system") -> database.Schedule:
    schedule = database.set_schedule_published(session, schedule_id, True)
    database.record_audit_log(
        session,
        user_id=user_id,
        action="SCHEDULE_PUBLISH",
        target_type="Schedule",
        target_id=schedule.id,
        payload={"published_at": schedule.published_at},
    )
    logger.info("Schedule %s published by %s", schedule.id, user_id)
    return schedule


def save_template(
    session,
    schedule_id: int,
    name: str,
    *,
    template_type: str = "custom",
    description: str = "",
    user_id: str = "system",
) -> database.ScheduleTemplate:
    template = database.save_schedule_as_template(
        session,
        schedule_id,
        name,
        template_type=template_type,
        description=description,
        created_by=user_id,
    )
    database.record_audit_log(
        session,
        user_id=user_id,
        action="TEMPLATE_SAVE",
        target_type="ScheduleTemplate",
        target_id=template.id,
        payload={"schedule_id": schedule_id, "shifts": len(template.shifts)},
    )
    return template


def apply_template(session, template_id: int, schedule_id: int, *, user_id: str = "system") -> int:
    created = database.apply_template_to_schedule(session, template_id, schedule_id)
    database.record_audit_log(
        session,
        user_id=user_id,
        action="TEMPLATE_APPLY",
        target_type="Schedule",
        target_id=schedule_id,
        payload={"template_id": template_id, "shifts_created": created},
    )
    logger.info("Template %s applied to schedule %s (%d shifts)", template_id, schedule_id, created)
    return created


def _shift_hours(shift: ShiftRecord) -> float:
    if shift.shift_type != CellType.WORK:
        return 0.0
    return hours_from_time_range(shift.start_time, shift.end_time)


def employee_shift_view(session, schedule_id: int, employee_id: int) -> List[Dict[str, Any]]:
    """One employee's shifts grouped by day, work first, then by start time."""
    _require_schedule(session, schedule_id)
    by_day: Dict[datetime.date, List[ShiftRecord]] = {}
    for shift in database.list_shifts_for_schedule(session, schedule_id, employee_id=employee_id):
        by_day.setdefault(shift.day, []).append(shift)

    payload = []
    for day in sorted(by_day):
        shifts = sorted(by_day[day], key=lambda item: (TYPE_PRIORITY[item.shift_type], item.start_time))
        work = [(shift.start_time, shift.end_time) for shift in shifts if shift.shift_type == CellType.WORK]
        payload.append(
            {
                "date": day.isoformat(),
                "weekday": calendar.day_name[day.weekday()],
                "shifts": [
                    {
                        "id": shift.id,
                        "start_time": shift.start_time,
                        "end_time": shift.end_time,
                        "type": shift.shift_type.value,
                        "notes": shift.notes,
                        "area": shift.area,
                        "hours": _shift_hours(shift),
                    }
                    for shift in shifts
                ],
                "total_hours": total_hours(work),
            }
        )
    return payload
