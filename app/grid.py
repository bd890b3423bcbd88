"""Weekly shift grid: rows of half-hour cells per day and employee.

Rows are rebuilt from persisted shifts and approved time off on every load and
are never mutated; edits return new rows whose totals are recomputed from the
cells.
"""

from __future__ import annotations

import datetime
import logging
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from blocks import block_span, consolidate, expand
from cells import (
    EMPTY_CELL,
    Cell,
    CellType,
    DayEmployeeRow,
    EmployeeRef,
    ScheduleRef,
    ShiftRecord,
    TimeOffRequest,
)
from errors import PublishedScheduleError, ReadOnlyCellError, UnmatchedShiftBoundaryWarning
from grid_defaults import GridConfig
from hours import hours_from_cell_run
from roles import is_schedulable_role
from time_off import apply_projection, project
from timegrid import TimeGrid

logger = logging.getLogger(__name__)

RowKey = Tuple[datetime.date, int]

# Sick cells only come from stored data; clicking one turns it into work.
TOGGLE_CYCLE = {
    CellType.EMPTY: CellType.WORK,
    CellType.WORK: CellType.VACATION,
    CellType.VACATION: CellType.LEAVE,
    CellType.LEAVE: CellType.EMPTY,
    CellType.SICK: CellType.WORK,
}


def iter_days(start: datetime.date, end: datetime.date) -> List[datetime.date]:
    if end < start:
        raise ValueError("Date range end must not precede its start.")
    return [start + datetime.timedelta(days=offset) for offset in range((end - start).days + 1)]


def compute_total(cells: Sequence[Cell], grid: TimeGrid) -> float:
    """Paid hours of all work blocks in a row of cells."""
    total = 0.0
    for block in consolidate(cells, only=CellType.WORK):
        total += hours_from_cell_run(
            block.length,
            block_span(block, grid),
            interval_minutes=grid.interval_minutes,
        )
    return round(total, 2)


@dataclass(frozen=True)
class WeeklyGrid:
    grid: TimeGrid
    days: Tuple[datetime.date, ...]
    employee_ids: Tuple[int, ...]
    rows: Mapping[RowKey, DayEmployeeRow]
    warnings: Tuple[UnmatchedShiftBoundaryWarning, ...] = field(default=(), compare=False)
    read_only: bool = False
    schedule_id: Optional[int] = None

    def __post_init__(self) -> None:
        if not isinstance(self.rows, MappingProxyType):
            object.__setattr__(self, "rows", MappingProxyType(dict(self.rows)))

    def row(self, day: datetime.date, employee_id: int) -> DayEmployeeRow:
        try:
            return self.rows[(day, employee_id)]
        except KeyError:
            raise KeyError(f"No grid row for employee {employee_id} on {day.isoformat()}.") from None

    def rows_for_day(self, day: datetime.date) -> List[DayEmployeeRow]:
        return [self.rows[(day, employee_id)] for employee_id in self.employee_ids if (day, employee_id) in self.rows]

    def daily_totals(self) -> Dict[datetime.date, Dict[int, float]]:
        return {day: {row.employee_id: row.total_hours for row in self.rows_for_day(day)} for day in self.days}

    def weekly_totals(self) -> Dict[int, float]:
        totals = {employee_id: 0.0 for employee_id in self.employee_ids}
        for (_, employee_id), row in self.rows.items():
            totals[employee_id] = totals.get(employee_id, 0.0) + row.total_hours
        return {employee_id: round(value, 2) for employee_id, value in totals.items()}

    def replace_row(self, row: DayEmployeeRow) -> "WeeklyGrid":
        key = (row.day, row.employee_id)
        if key not in self.rows:
            raise KeyError(f"No grid row for employee {row.employee_id} on {row.day.isoformat()}.")
        rows = dict(self.rows)
        rows[key] = row
        return replace(self, rows=rows)

    def toggle(self, day: datetime.date, employee_id: int, index: int) -> "WeeklyGrid":
        row = toggle_cell(
            self.row(day, employee_id),
            index,
            self.grid,
            published=self.read_only,
            schedule_id=self.schedule_id,
        )
        return self.replace_row(row)

    def set_notes(self, day: datetime.date, employee_id: int, notes: str) -> "WeeklyGrid":
        row = set_notes(
            self.row(day, employee_id),
            notes,
            published=self.read_only,
            schedule_id=self.schedule_id,
        )
        return self.replace_row(row)


def _schedulable_employee_ids(employees: Iterable[EmployeeRef], role: str) -> List[int]:
    ids: List[int] = []
    for employee in employees:
        if is_schedulable_role(employee.role, role) and employee.id not in ids:
            ids.append(employee.id)
    return ids


def assemble(
    employees: Iterable[EmployeeRef],
    date_range: Tuple[datetime.date, datetime.date],
    shifts: Iterable[ShiftRecord],
    time_off_requests: Iterable[TimeOffRequest],
    *,
    config: Optional[GridConfig] = None,
    read_only: bool = False,
    schedule_id: Optional[int] = None,
) -> WeeklyGrid:
    """Build every (day, employee) row for the date range.

    Shifts are expanded first, approved time off is laid over them in the
    order given, then each row's total is computed from its work blocks.
    Shifts whose boundaries are not on the grid are skipped and reported in
    ``WeeklyGrid.warnings``.
    """
    config = config or GridConfig()
    grid = config.build_grid()
    days = iter_days(*date_range)
    employee_ids = _schedulable_employee_ids(employees, config.employee_role)

    cells: Dict[RowKey, List[Cell]] = {}
    notes: Dict[RowKey, str] = {}
    for day in days:
        for employee_id in employee_ids:
            cells[(day, employee_id)] = [EMPTY_CELL] * grid.cell_count
            notes[(day, employee_id)] = ""

    warnings: List[UnmatchedShiftBoundaryWarning] = []
    for shift in shifts:
        key = (shift.day, shift.employee_id)
        if key not in cells:
            continue
        try:
            writes = expand(shift, grid)
        except UnmatchedShiftBoundaryWarning as warning:
            logger.warning("%s", warning)
            warnings.append(warning)
            continue
        row_cells = cells[key]
        for index, cell in writes:
            row_cells[index] = cell
        if shift.notes:
            notes[key] = shift.notes

    for request in time_off_requests:
        if not request.is_approved:
            continue
        for day in days:
            key = (day, request.employee_id)
            if key not in cells:
                continue
            projection = project(request, grid, day)
            if projection is None:
                continue
            cells[key] = apply_projection(cells[key], projection, overlap_policy=config.overlap_policy)
            notes[key] = projection.note

    rows = {
        key: DayEmployeeRow(
            day=key[0],
            employee_id=key[1],
            cells=tuple(row_cells),
            notes=notes[key],
            total_hours=compute_total(row_cells, grid),
        )
        for key, row_cells in cells.items()
    }
    return WeeklyGrid(
        grid=grid,
        days=tuple(days),
        employee_ids=tuple(employee_ids),
        rows=rows,
        warnings=tuple(warnings),
        read_only=read_only,
        schedule_id=schedule_id,
    )


def assemble_schedule(
    schedule: ScheduleRef,
    employees: Iterable[EmployeeRef],
    shifts: Iterable[ShiftRecord],
    time_off_requests: Iterable[TimeOffRequest],
    *,
    config: Optional[GridConfig] = None,
) -> WeeklyGrid:
    return assemble(
        employees,
        (schedule.start_date, schedule.end_date),
        shifts,
        time_off_requests,
        config=config,
        read_only=schedule.is_published,
        schedule_id=schedule.id,
    )


def _resolve_grid(row: DayEmployeeRow, grid: Optional[TimeGrid]) -> TimeGrid:
    grid = grid or GridConfig().build_grid()
    if len(row.cells) != grid.cell_count:
        raise ValueError(f"Row has {len(row.cells)} cells but the grid has {grid.cell_count}.")
    return grid


def toggle_cell(
    row: DayEmployeeRow,
    index: int,
    grid: Optional[TimeGrid] = None,
    *,
    published: bool = False,
    schedule_id: Optional[int] = None,
) -> DayEmployeeRow:
    """Advance one cell through empty -> work -> vacation -> leave -> empty."""
    if published:
        raise PublishedScheduleError(schedule_id)
    grid = _resolve_grid(row, grid)
    if not 0 <= index < len(row.cells):
        raise IndexError(f"Cell index {index} outside 0..{len(row.cells) - 1}.")
    current = row.cells[index]
    if current.is_time_off:
        raise ReadOnlyCellError(row.day, row.employee_id, index)
    new_type = TOGGLE_CYCLE[current.cell_type]
    shift_id = current.shift_id if new_type != CellType.EMPTY else None
    cells = row.cells[:index] + (Cell(cell_type=new_type, shift_id=shift_id),) + row.cells[index + 1 :]
    return row.with_cells(cells, compute_total(cells, grid))


def set_notes(
    row: DayEmployeeRow,
    notes: str,
    *,
    published: bool = False,
    schedule_id: Optional[int] = None,
) -> DayEmployeeRow:
    if published:
        raise PublishedScheduleError(schedule_id)
    return replace(row, notes=notes or "")
