from __future__ import annotations

import sys
from pathlib import Path

import pytest

APP_DIR = Path(__file__).resolve().parents[1] / "app"
if str(APP_DIR) not in sys.path:
    sys.path.insert(0, str(APP_DIR))

from errors import InvalidRangeError  # noqa: E402
from hours import format_hours, hours_from_cell_run, hours_from_time_range, total_hours  # noqa: E402
from timegrid import END_OF_DAY, TimeGrid, TimeSlot  # noqa: E402

GRID = TimeGrid(4, 24)


@pytest.mark.parametrize(
    "cells, expected",
    [(-2, 0.0), (0, 0.0), (1, 0.0), (2, 0.5), (3, 1.0), (5, 2.0), (7, 3.0), (40, 19.5)],
)
def test_cell_run_first_cell_is_unpaid(cells, expected):
    assert hours_from_cell_run(cells) == expected


def test_named_ranges_apply_when_span_is_given():
    assert hours_from_cell_run(4) == 1.5
    assert hours_from_cell_run(4, (TimeSlot.parse("04:00"), TimeSlot.parse("06:00"))) == 2.0
    assert hours_from_cell_run(40, (TimeSlot.parse("04:00"), END_OF_DAY)) == 20.0
    assert hours_from_cell_run(4, (TimeSlot.parse("05:00"), TimeSlot.parse("07:00"))) == 1.5


def test_named_time_ranges():
    assert hours_from_time_range("04:00", "06:00") == 2.0
    assert hours_from_time_range("04:00", "00:00") == 20.0
    assert hours_from_time_range("04:00", END_OF_DAY) == 20.0


def test_calculators_agree_on_every_grid_run():
    for start in range(GRID.cell_count):
        for count in range(0, GRID.slot_count - start):
            span = (GRID.slots[start], GRID.slots[start + count])
            assert hours_from_cell_run(count, span) == hours_from_time_range(*span), span


def test_first_half_hour_is_free_everywhere():
    for start, end in zip(GRID.slots, GRID.slots[1:]):
        assert hours_from_time_range(start, end) == 0.0
    assert hours_from_time_range("23:45", "00:15") == 0.0


@pytest.mark.parametrize(
    "start, end, expected",
    [
        ("10:00", "10:00", 0.0),
        ("09:00", "12:30", 3.0),
        ("09:00", "09:45", 0.25),
        ("18:00", "00:00", 5.5),
        ("22:00", "02:00", 3.5),
        ("00:00", "24:00", 23.5),
        ("00:00", "00:00", 0.0),
    ],
)
def test_time_range(start, end, expected):
    assert hours_from_time_range(start, end) == expected


def test_time_range_rejects_malformed_labels():
    with pytest.raises(InvalidRangeError):
        hours_from_time_range("25:00", "26:00")


def test_total_hours_sums_ranges():
    assert total_hours([("09:00", "12:30"), ("14:00", "18:00")]) == 6.5
    assert total_hours([]) == 0.0


@pytest.mark.parametrize(
    "value, expected",
    [
        (7.5, "7h 30m"),
        (2.0, "2h"),
        (0.0, "0h"),
        (0.25, "0h 15m"),
        (-1.0, "0h"),
        (float("nan"), "0h"),
        (None, "0h"),
        (19.5, "19h 30m"),
    ],
)
def test_format_hours(value, expected):
    assert format_hours(value) == expected
