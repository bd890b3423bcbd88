from __future__ import annotations

import datetime
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional, Tuple


class CellType(str, Enum):
    EMPTY = "empty"
    WORK = "work"
    VACATION = "vacation"
    LEAVE = "leave"
    SICK = "sick"

    @classmethod
    def parse(cls, value: Optional[str], *, for_shift: bool = False) -> "CellType":
        """Map a stored type label to a cell type.

        Persisted shifts written without a type (or with the legacy ``normal``
        label) are work shifts; for plain cells a blank label means empty.
        """
        if isinstance(value, CellType):
            return value
        label = (value or "").strip().lower()
        if not label or label == "normal":
            return cls.WORK if for_shift else cls.EMPTY
        try:
            return cls(label)
        except ValueError:
            raise ValueError(f"Unknown cell type '{value}'.") from None


class TimeOffScope(str, Enum):
    ALL_DAY = "all_day"
    MORNING = "morning"
    AFTERNOON = "afternoon"

    @classmethod
    def from_flags(cls, all_day: bool, half_day: Optional[str]) -> "TimeOffScope":
        if all_day:
            return cls.ALL_DAY
        label = (half_day or "").strip().lower()
        if label == "morning":
            return cls.MORNING
        if label == "afternoon":
            return cls.AFTERNOON
        return cls.ALL_DAY


class RequestStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


TIME_OFF_TYPES = (CellType.VACATION, CellType.LEAVE)

# Used by the "priority" overlap policy and to order an employee's shift list.
TYPE_PRIORITY = {
    CellType.EMPTY: 0,
    CellType.WORK: 1,
    CellType.VACATION: 2,
    CellType.LEAVE: 3,
    CellType.SICK: 4,
}


@dataclass(frozen=True)
class Cell:
    cell_type: CellType = CellType.EMPTY
    shift_id: Optional[int] = None
    is_time_off: bool = False

    @property
    def is_empty(self) -> bool:
        return self.cell_type == CellType.EMPTY


EMPTY_CELL = Cell()


@dataclass(frozen=True)
class DayEmployeeRow:
    day: datetime.date
    employee_id: int
    cells: Tuple[Cell, ...]
    notes: str = ""
    total_hours: float = 0.0

    def cell(self, index: int) -> Cell:
        return self.cells[index]

    def with_cells(self, cells: Tuple[Cell, ...], total_hours: float) -> "DayEmployeeRow":
        return replace(self, cells=tuple(cells), total_hours=total_hours)


@dataclass(frozen=True)
class ShiftRecord:
    employee_id: int
    day: datetime.date
    start_time: str
    end_time: str
    shift_type: CellType = CellType.WORK
    notes: str = ""
    area: Optional[str] = None
    id: Optional[int] = None
    schedule_id: Optional[int] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "shift_type", CellType.parse(self.shift_type, for_shift=True))


@dataclass(frozen=True)
class TimeOffRequest:
    employee_id: int
    start_date: datetime.date
    end_date: datetime.date
    request_type: CellType
    scope: TimeOffScope = TimeOffScope.ALL_DAY
    status: RequestStatus = RequestStatus.PENDING
    id: Optional[int] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "request_type", CellType.parse(self.request_type))
        object.__setattr__(self, "scope", TimeOffScope(self.scope))
        object.__setattr__(self, "status", RequestStatus(self.status))
        if self.request_type not in TIME_OFF_TYPES:
            raise ValueError(f"Time off must be vacation or leave, got '{self.request_type}'.")
        if self.end_date < self.start_date:
            raise ValueError("Time off end date must not precede its start date.")

    @property
    def is_approved(self) -> bool:
        return self.status == RequestStatus.APPROVED

    def covers(self, day: datetime.date) -> bool:
        return self.start_date <= day <= self.end_date


@dataclass(frozen=True)
class EmployeeRef:
    id: int
    name: str
    role: str = "employee"
    is_active: bool = True


@dataclass(frozen=True)
class ScheduleRef:
    id: int
    start_date: datetime.date
    end_date: datetime.date
    is_published: bool = False
    days: Tuple[datetime.date, ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.end_date < self.start_date:
            raise ValueError("Schedule end date must not precede its start date.")
        span = (self.end_date - self.start_date).days + 1
        days = tuple(self.start_date + datetime.timedelta(days=offset) for offset in range(span))
        object.__setattr__(self, "days", days)
