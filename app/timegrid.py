"""Half-hour time axis used to index shift cells.

Slots are stored as minutes since midnight. The end of the working day is the
dedicated ``END_OF_DAY`` slot (1440 minutes): it is written as ``"00:00"`` on
the wire but never compares equal to the start-of-day ``"00:00"`` slot.
"""

from __future__ import annotations

import datetime
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Union

from errors import InvalidRangeError

MINUTES_PER_DAY = 24 * 60
DEFAULT_INTERVAL_MINUTES = 30
_LABEL_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?$")


@dataclass(frozen=True, order=True)
class TimeSlot:
    minutes: int

    def __post_init__(self) -> None:
        if not isinstance(self.minutes, int) or not 0 <= self.minutes <= MINUTES_PER_DAY:
            raise InvalidRangeError(f"Time slot minutes must be within 0..{MINUTES_PER_DAY}, got {self.minutes!r}.")

    @property
    def is_end_of_day(self) -> bool:
        return self.minutes == MINUTES_PER_DAY

    @property
    def label(self) -> str:
        minutes = self.minutes % MINUTES_PER_DAY
        return f"{minutes // 60:02d}:{minutes % 60:02d}"

    def __str__(self) -> str:
        return self.label

    @classmethod
    def parse(cls, value: "TimeValue", *, closing: bool = False) -> "TimeSlot":
        """Build a slot from an ``HH:MM`` label, a ``datetime.time`` or another slot.

        ``"24:00"`` always means end of day. With ``closing=True`` a midnight
        value is read as the end of the day rather than its start.
        """
        if isinstance(value, TimeSlot):
            slot = value
        elif isinstance(value, datetime.time):
            slot = cls(value.hour * 60 + value.minute)
        elif isinstance(value, str):
            match = _LABEL_PATTERN.match(value.strip())
            if not match:
                raise InvalidRangeError(f"Time must be formatted as HH:MM, got {value!r}.")
            hour, minute = int(match.group(1)), int(match.group(2))
            if minute > 59 or hour > 24 or (hour == 24 and minute != 0):
                raise InvalidRangeError(f"Time out of range: {value!r}.")
            slot = cls(hour * 60 + minute)
        else:
            raise InvalidRangeError(f"Unsupported time value {value!r}.")
        if closing and slot.minutes == 0:
            return END_OF_DAY
        return slot


END_OF_DAY = TimeSlot(MINUTES_PER_DAY)
TimeValue = Union[str, datetime.time, TimeSlot]


def generate_slots(start_hour: int, end_hour: int, interval_minutes: int = DEFAULT_INTERVAL_MINUTES) -> List[TimeSlot]:
    """Return every slot from ``start_hour:00`` through ``end_hour:00`` inclusive."""
    for name, value in (("start_hour", start_hour), ("end_hour", end_hour), ("interval_minutes", interval_minutes)):
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidRangeError(f"{name} must be an integer, got {value!r}.")
    if start_hour < 0 or end_hour > 24:
        raise InvalidRangeError(f"Grid hours must lie within 0..24, got {start_hour}..{end_hour}.")
    if end_hour <= start_hour:
        raise InvalidRangeError(f"end_hour ({end_hour}) must be after start_hour ({start_hour}).")
    if interval_minutes <= 0 or 60 % interval_minutes != 0:
        raise InvalidRangeError(f"interval_minutes must evenly divide 60, got {interval_minutes}.")
    return [
        TimeSlot(minutes)
        for minutes in range(start_hour * 60, end_hour * 60 + 1, interval_minutes)
    ]


@dataclass(frozen=True)
class TimeGrid:
    start_hour: int
    end_hour: int
    interval_minutes: int = DEFAULT_INTERVAL_MINUTES
    slots: Tuple[TimeSlot, ...] = field(init=False, repr=False)
    _index: Dict[int, int] = field(init=False, repr=False, compare=False, hash=False)

    def __post_init__(self) -> None:
        slots = tuple(generate_slots(self.start_hour, self.end_hour, self.interval_minutes))
        object.__setattr__(self, "slots", slots)
        object.__setattr__(self, "_index", {slot.minutes: idx for idx, slot in enumerate(slots)})

    @property
    def slot_count(self) -> int:
        return len(self.slots)

    @property
    def cell_count(self) -> int:
        return len(self.slots) - 1

    @property
    def half_index(self) -> int:
        """First slot index of the afternoon half of the day."""
        return self.slot_count // 2

    def labels(self) -> List[str]:
        return [slot.label for slot in self.slots]

    def index_of(self, value: TimeValue, *, closing: bool = False) -> Optional[int]:
        """Return the slot index for ``value`` or ``None`` when it is not on the grid."""
        try:
            slot = TimeSlot.parse(value, closing=closing)
        except InvalidRangeError:
            return None
        return self._index.get(slot.minutes)

    def cell_span(self, index: int) -> Tuple[TimeSlot, TimeSlot]:
        if not 0 <= index < self.cell_count:
            raise IndexError(f"Cell index {index} outside 0..{self.cell_count - 1}.")
        return self.slots[index], self.slots[index + 1]

    def cell_label(self, index: int) -> str:
        start, end = self.cell_span(index)
        return f"{start.label}-{end.label}"
