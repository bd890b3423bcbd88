from __future__ import annotations

import datetime
from typing import Any, Dict, Optional


class InvalidRangeError(ValueError):
    """Raised when a time grid or time label cannot be built from the given values."""


class ReadOnlyCellError(Exception):
    """Raised when a cell written by an approved time-off request is edited directly."""

    def __init__(self, day: datetime.date, employee_id: int, index: int) -> None:
        super().__init__(
            f"Cell {index} for employee {employee_id} on {day.isoformat()} comes from approved time off."
        )
        self.day = day
        self.employee_id = employee_id
        self.index = index


class PublishedScheduleError(Exception):
    """Raised when an edit targets a schedule that has already been published."""

    def __init__(self, schedule_id: Optional[int] = None) -> None:
        label = f"Schedule {schedule_id}" if schedule_id is not None else "Schedule"
        super().__init__(f"{label} is published and can no longer be edited.")
        self.schedule_id = schedule_id


class UnmatchedShiftBoundaryWarning(UserWarning):
    """A persisted shift whose boundaries do not land on the configured grid."""

    def __init__(
        self,
        *,
        shift_id: Optional[int],
        employee_id: int,
        day: datetime.date,
        start_time: str,
        end_time: str,
        reason: str,
    ) -> None:
        super().__init__(
            f"Shift {shift_id} ({start_time}-{end_time}) for employee {employee_id} "
            f"on {day.isoformat()} skipped: {reason}"
        )
        self.shift_id = shift_id
        self.employee_id = employee_id
        self.day = day
        self.start_time = start_time
        self.end_time = end_time
        self.reason = reason

    def as_dict(self) -> Dict[str, Any]:
        return {
            "type": "unmatched_shift_boundary",
            "severity": "warning",
            "shift_id": self.shift_id,
            "employee_id": self.employee_id,
            "day": self.day.isoformat(),
            "start_time": self.start_time,
            "end_time": self.end_time,
            "reason": self.reason,
            "message": str(self),
        }
