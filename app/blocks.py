from __future__ import annotations

from typing import List, Mapping, NamedTuple, Optional, Sequence, Tuple

from cells import Cell, CellType, DayEmployeeRow, ShiftRecord
from errors import UnmatchedShiftBoundaryWarning
from timegrid import TimeGrid, TimeSlot


class Block(NamedTuple):
    cell_type: CellType
    start: int
    end: int  # exclusive

    @property
    def length(self) -> int:
        return self.end - self.start


def consolidate(
    cells: Sequence[Cell],
    *,
    only: Optional[CellType] = None,
    include_time_off: bool = True,
) -> List[Block]:
    """Collapse consecutive same-type cells into maximal blocks.

    Empty cells close any open block. With ``include_time_off=False`` cells
    projected from time-off requests are read as empty.
    """
    blocks: List[Block] = []
    open_type: Optional[CellType] = None
    open_start = 0
    for index, cell in enumerate(cells):
        cell_type = cell.cell_type
        if cell.is_time_off and not include_time_off:
            cell_type = CellType.EMPTY
        if open_type is not None and cell_type != open_type:
            blocks.append(Block(open_type, open_start, index))
            open_type = None
        if open_type is None and cell_type != CellType.EMPTY:
            open_type = cell_type
            open_start = index
    if open_type is not None:
        blocks.append(Block(open_type, open_start, len(cells)))
    if only is not None:
        return [block for block in blocks if block.cell_type == only]
    return blocks


def block_span(block: Block, grid: TimeGrid) -> Tuple[TimeSlot, TimeSlot]:
    return grid.slots[block.start], grid.slots[block.end]


def expand(shift: ShiftRecord, grid: TimeGrid) -> List[Tuple[int, Cell]]:
    """Return the cell writes for ``shift``: every index in ``[start, end)``."""
    start_index = grid.index_of(shift.start_time)
    end_index = grid.index_of(shift.end_time, closing=True)
    reason = None
    if start_index is None and end_index is None:
        reason = "start and end are not on the grid"
    elif start_index is None:
        reason = "start is not on the grid"
    elif end_index is None:
        reason = "end is not on the grid"
    elif end_index <= start_index:
        reason = "end is not after start"
    if reason:
        raise UnmatchedShiftBoundaryWarning(
            shift_id=shift.id,
            employee_id=shift.employee_id,
            day=shift.day,
            start_time=str(shift.start_time),
            end_time=str(shift.end_time),
            reason=reason,
        )
    cell = Cell(cell_type=shift.shift_type, shift_id=shift.id)
    return [(index, cell) for index in range(start_index, end_index)]


def row_to_shift_records(
    row: DayEmployeeRow,
    grid: TimeGrid,
    *,
    schedule_id: Optional[int] = None,
    area: Optional[str] = None,
    notes_by_shift: Optional[Mapping[int, str]] = None,
) -> List[ShiftRecord]:
    """Turn a row's editable cells into one shift record per block.

    Every record carries the row notes unless ``notes_by_shift`` is given; then
    a block takes the notes of the first stored shift its cells came from.
    """
    records: List[ShiftRecord] = []
    for block in consolidate(row.cells, include_time_off=False):
        start, end = block_span(block, grid)
        notes = row.notes
        if notes_by_shift is not None:
            source_ids = [cell.shift_id for cell in row.cells[block.start : block.end] if cell.shift_id is not None]
            notes = notes_by_shift.get(source_ids[0], "") if source_ids else ""
        records.append(
            ShiftRecord(
                employee_id=row.employee_id,
                day=row.day,
                start_time=start.label,
                end_time=end.label,
                shift_type=block.cell_type,
                notes=notes,
                area=area,
                schedule_id=schedule_id,
            )
        )
    return records
