from __future__ import annotations

import datetime
import sys
from pathlib import Path

import pytest

APP_DIR = Path(__file__).resolve().parents[1] / "app"
if str(APP_DIR) not in sys.path:
    sys.path.insert(0, str(APP_DIR))

from errors import InvalidRangeError  # noqa: E402
from grid_defaults import GridConfig, build_default_grid_config  # noqa: E402
from timegrid import END_OF_DAY, TimeGrid, TimeSlot, generate_slots  # noqa: E402


def test_default_grid_runs_from_four_to_midnight():
    grid = GridConfig().build_grid()
    labels = grid.labels()
    assert grid.slot_count == 41
    assert grid.cell_count == 40
    assert grid.half_index == 20
    assert labels[0] == "04:00"
    assert labels[1] == "04:30"
    assert labels[-1] == "00:00"
    assert grid.slots[-1] == END_OF_DAY


def test_generate_slots_is_inclusive_and_strictly_increasing():
    slots = generate_slots(8, 12, 30)
    assert [slot.label for slot in slots] == ["08:00", "08:30", "09:00", "09:30", "10:00", "10:30", "11:00", "11:30", "12:00"]
    assert all(left < right for left, right in zip(slots, slots[1:]))
    assert len(generate_slots(0, 24, 60)) == 25


@pytest.mark.parametrize(
    "start_hour, end_hour, interval",
    [
        (10, 10, 30),
        (12, 9, 30),
        (4, 24, 0),
        (4, 24, -30),
        (4, 24, 7),
        (4, 25, 30),
        (-1, 10, 30),
        (4.5, 10, 30),
    ],
)
def test_generate_slots_rejects_bad_parameters(start_hour, end_hour, interval):
    with pytest.raises(InvalidRangeError):
        generate_slots(start_hour, end_hour, interval)


def test_end_of_day_is_distinct_from_start_of_day():
    midnight = TimeSlot.parse("00:00")
    assert midnight.minutes == 0
    assert midnight != END_OF_DAY
    assert str(END_OF_DAY) == "00:00"
    assert TimeSlot.parse("24:00") == END_OF_DAY
    assert TimeSlot.parse("00:00", closing=True) == END_OF_DAY
    assert TimeSlot.parse("09:00", closing=True).label == "09:00"


def test_parse_accepts_labels_times_and_slots():
    assert TimeSlot.parse("9:30").minutes == 570
    assert TimeSlot.parse("09:30:00").minutes == 570
    assert TimeSlot.parse(datetime.time(13, 15)).label == "13:15"
    slot = TimeSlot(600)
    assert TimeSlot.parse(slot) is slot


@pytest.mark.parametrize("value", ["", "noon", "9", "09:5", "24:30", "10:60", None, 930])
def test_parse_rejects_malformed_values(value):
    with pytest.raises(InvalidRangeError):
        TimeSlot.parse(value)


def test_index_of_lookups():
    grid = TimeGrid(4, 24)
    assert grid.index_of("04:00") == 0
    assert grid.index_of("04:30") == 1
    assert grid.index_of("09:00") == 10
    assert grid.index_of("09:15") is None
    assert grid.index_of("03:30") is None
    assert grid.index_of("garbage") is None
    assert grid.index_of("00:00") is None
    assert grid.index_of("00:00", closing=True) == 40


def test_grid_starting_at_midnight_keeps_both_midnights_apart():
    grid = TimeGrid(0, 24)
    assert grid.index_of("00:00") == 0
    assert grid.index_of("00:00", closing=True) == 48


def test_cell_span_and_label():
    grid = TimeGrid(4, 24)
    assert grid.cell_label(0) == "04:00-04:30"
    assert grid.cell_label(39) == "23:30-00:00"
    with pytest.raises(IndexError):
        grid.cell_span(40)


def test_grid_config_from_mapping_ignores_unknown_keys():
    config = GridConfig.from_mapping({"start_hour": 8, "end_hour": 20, "colour": "blue"})
    assert config.build_grid().cell_count == 24
    assert config.overlap_policy == "last_write"
    assert GridConfig.from_mapping(None) == GridConfig()


def test_grid_config_validation():
    with pytest.raises(InvalidRangeError):
        GridConfig.from_mapping({"end_hour": 3})
    with pytest.raises(InvalidRangeError):
        GridConfig(overlap_policy="merge")


def test_default_config_dict():
    assert build_default_grid_config() == {
        "start_hour": 4,
        "end_hour": 24,
        "interval_minutes": 30,
        "employee_role": "employee",
        "overlap_policy": "last_write",
    }
