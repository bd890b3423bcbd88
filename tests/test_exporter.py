from __future__ import annotations

import csv
import datetime
import sys
from pathlib import Path

APP_DIR = Path(__file__).resolve().parents[1] / "app"
if str(APP_DIR) not in sys.path:
    sys.path.insert(0, str(APP_DIR))

import exporter  # noqa: E402
from cells import EmployeeRef, ShiftRecord  # noqa: E402
from grid import assemble  # noqa: E402

MONDAY = datetime.date(2024, 6, 3)


def _weekly():
    shifts = [
        ShiftRecord(employee_id=1, day=MONDAY, start_time="09:00", end_time="12:30"),
        ShiftRecord(employee_id=1, day=MONDAY + datetime.timedelta(days=1), start_time="04:00", end_time="00:00"),
        ShiftRecord(employee_id=2, day=MONDAY + datetime.timedelta(days=2), start_time="14:00", end_time="18:00"),
    ]
    employees = [EmployeeRef(1, "Giulia"), EmployeeRef(2, "Marco")]
    return assemble(employees, (MONDAY, MONDAY + datetime.timedelta(days=2)), shifts, [])


def test_totals_table():
    table = exporter.totals_table(_weekly(), {1: "Giulia", 2: "Marco"})
    assert table == [
        ["employee", "2024-06-03", "2024-06-04", "2024-06-05", "total"],
        ["Giulia", "3.00", "20.00", "0.00", "23.00"],
        ["Marco", "0.00", "0.00", "3.50", "3.50"],
    ]


def test_totals_table_falls_back_to_ids():
    table = exporter.totals_table(_weekly())
    assert [line[0] for line in table[1:]] == ["1", "2"]


def test_export_schedule_totals_writes_csv(tmp_path, monkeypatch):
    monkeypatch.setattr(exporter, "DATA_DIR", tmp_path)
    path = exporter.export_schedule_totals(_weekly(), {1: "Giulia", 2: "Marco"})
    assert path.parent == tmp_path
    assert path.name.startswith("schedule_2024-06-03_hours_")
    with path.open(encoding="utf-8", newline="") as handle:
        rows = list(csv.reader(handle))
    assert rows[1] == ["Giulia", "3.00", "20.00", "0.00", "23.00"]


def test_totals_csv_text():
    text = exporter.totals_csv_text(_weekly())
    assert text.splitlines()[0] == "employee,2024-06-03,2024-06-04,2024-06-05,total"
