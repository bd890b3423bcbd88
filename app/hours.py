"""Hour totals for shift blocks.

The first half hour of every block is unpaid: a single marked cell is worth
nothing and every further cell adds half an hour. ``hours_from_cell_run`` and
``hours_from_time_range`` apply the same rule and share the table of named
ranges, so they agree on every run of grid cells.
"""

from __future__ import annotations

import math
from typing import Dict, Iterable, Optional, Tuple

from timegrid import DEFAULT_INTERVAL_MINUTES, END_OF_DAY, MINUTES_PER_DAY, TimeSlot, TimeValue

UNPAID_MINUTES = 30

# Keyed by (start minutes, end minutes modulo one day).
NAMED_RANGES: Dict[Tuple[int, int], float] = {
    (4 * 60, 6 * 60): 2.0,
    (4 * 60, END_OF_DAY.minutes % MINUTES_PER_DAY): 20.0,
}


def _named_hours(start: TimeSlot, end: TimeSlot) -> Optional[float]:
    return NAMED_RANGES.get((start.minutes, end.minutes % MINUTES_PER_DAY))


def _paid_hours(minutes: int) -> float:
    if minutes <= UNPAID_MINUTES:
        return 0.0
    return round((minutes - UNPAID_MINUTES) / 60, 2)


def hours_from_cell_run(
    cell_count: int,
    span: Optional[Tuple[TimeSlot, TimeSlot]] = None,
    *,
    interval_minutes: int = DEFAULT_INTERVAL_MINUTES,
) -> float:
    """Hours worth of ``cell_count`` consecutive cells.

    ``span`` is the run's first slot and the slot right after its last cell;
    when given, the named ranges (04:00-06:00, 04:00-end of day) take precedence.
    """
    if cell_count <= 1:
        return 0.0
    if span is not None:
        named = _named_hours(*span)
        if named is not None:
            return named
    return _paid_hours(cell_count * interval_minutes)


def hours_from_time_range(start: TimeValue, end: TimeValue) -> float:
    start_slot = TimeSlot.parse(start)
    end_slot = TimeSlot.parse(end)
    if start_slot == end_slot:
        return 0.0
    named = _named_hours(start_slot, end_slot)
    if named is not None:
        return named
    if end_slot.is_end_of_day:
        diff_minutes = MINUTES_PER_DAY - start_slot.minutes
    else:
        diff_minutes = (end_slot.minutes - start_slot.minutes) % MINUTES_PER_DAY
    return _paid_hours(diff_minutes)


def total_hours(ranges: Iterable[Tuple[TimeValue, TimeValue]]) -> float:
    total = 0.0
    for start, end in ranges:
        total += hours_from_time_range(start, end)
    return round(total, 2)


def format_hours(hours: float) -> str:
    """Render decimal hours as ``"7h 30m"``."""
    if hours is None or math.isnan(hours) or hours < 0:
        return "0h"
    hours = round(hours, 2)
    whole = math.floor(hours)
    minutes = round((hours - whole) * 60)
    if minutes == 60:
        return f"{whole + 1}h"
    if minutes == 0:
        return f"{whole}h"
    return f"{whole}h {minutes}m"
