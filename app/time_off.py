from __future__ import annotations

import datetime
from dataclasses import dataclass
from typing import List, Optional, Sequence

from cells import TYPE_PRIORITY, Cell, CellType, TimeOffRequest, TimeOffScope
from grid_defaults import OVERLAP_LAST_WRITE, OVERLAP_PRIORITY
from timegrid import TimeGrid

TYPE_LABELS = {
    CellType.VACATION: "Vacation",
    CellType.LEAVE: "Leave",
}
SCOPE_LABELS = {
    TimeOffScope.ALL_DAY: "full day",
    TimeOffScope.MORNING: "morning",
    TimeOffScope.AFTERNOON: "afternoon",
}


@dataclass(frozen=True)
class TimeOffProjection:
    request: TimeOffRequest
    day: datetime.date
    start: int
    end: int
    note: str

    @property
    def cell(self) -> Cell:
        return Cell(cell_type=self.request.request_type, shift_id=None, is_time_off=True)


def project(request: TimeOffRequest, grid: TimeGrid, day: datetime.date) -> Optional[TimeOffProjection]:
    """Cell overrides for one approved request on one day, or ``None``.

    Mornings cover the cells before the grid's half index, afternoons the rest.
    """
    if not request.is_approved or not request.covers(day):
        return None
    if request.scope == TimeOffScope.MORNING:
        start, end = 0, min(grid.half_index, grid.cell_count)
    elif request.scope == TimeOffScope.AFTERNOON:
        start, end = min(grid.half_index, grid.cell_count), grid.cell_count
    else:
        start, end = 0, grid.cell_count
    note = f"{TYPE_LABELS[request.request_type]} {SCOPE_LABELS[request.scope]}"
    return TimeOffProjection(request=request, day=day, start=start, end=end, note=note)


def apply_projection(
    cells: Sequence[Cell],
    projection: TimeOffProjection,
    *,
    overlap_policy: str = OVERLAP_LAST_WRITE,
) -> List[Cell]:
    updated = list(cells)
    override = projection.cell
    rank = TYPE_PRIORITY[override.cell_type]
    for index in range(projection.start, projection.end):
        if overlap_policy == OVERLAP_PRIORITY and TYPE_PRIORITY[updated[index].cell_type] > rank:
            continue
        updated[index] = override
    return updated
