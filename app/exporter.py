from __future__ import annotations

import csv
import datetime
import io
from pathlib import Path
from typing import IO, Dict, List, Mapping, Optional

from grid import WeeklyGrid


DATA_DIR = Path(__file__).resolve().parent / "data" / "exports"
DATA_DIR.mkdir(parents=True, exist_ok=True)


def _timestamp() -> str:
    return datetime.datetime.now().strftime("%Y%m%d_%H%M%S")


def totals_table(weekly: WeeklyGrid, names: Optional[Mapping[int, str]] = None) -> List[List[str]]:
    """Header plus one line per employee: name, hours per day, weekly total."""
    names = names or {}
    daily = weekly.daily_totals()
    weekly_totals = weekly.weekly_totals()
    header = ["employee"] + [day.isoformat() for day in weekly.days] + ["total"]
    table = [header]
    for employee_id in weekly.employee_ids:
        line = [names.get(employee_id, str(employee_id))]
        line.extend(f"{daily[day].get(employee_id, 0.0):.2f}" for day in weekly.days)
        line.append(f"{weekly_totals.get(employee_id, 0.0):.2f}")
        table.append(line)
    return table


def write_totals_csv(weekly: WeeklyGrid, stream: IO[str], names: Optional[Mapping[int, str]] = None) -> int:
    writer = csv.writer(stream)
    table = totals_table(weekly, names)
    writer.writerows(table)
    return len(table) - 1


def totals_csv_text(weekly: WeeklyGrid, names: Optional[Mapping[int, str]] = None) -> str:
    buffer = io.StringIO()
    write_totals_csv(weekly, buffer, names)
    return buffer.getvalue()


def export_schedule_totals(weekly: WeeklyGrid, names: Optional[Dict[int, str]] = None) -> Path:
    label = weekly.schedule_id if weekly.schedule_id is not None else weekly.days[0].isoformat()
    filename = DATA_DIR / f"schedule_{label}_hours_{_timestamp()}.csv"
    with filename.open("w", encoding="utf-8", newline="") as handle:
        write_totals_csv(weekly, handle, names)
    return filename
