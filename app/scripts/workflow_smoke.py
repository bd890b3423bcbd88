from __future__ import annotations

import argparse
import datetime
import sys
from pathlib import Path
from typing import Any, Dict

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

import planner  # noqa: E402
from cells import RequestStatus, ShiftRecord, TimeOffScope  # noqa: E402
from database import (  # noqa: E402
    SessionLocal,
    create_schedule,
    create_time_off_request,
    init_database,
    list_employees,
    upsert_shift,
)
from exporter import export_schedule_totals  # noqa: E402
from hours import format_hours  # noqa: E402
from scripts.seed_employees import seed_employees  # noqa: E402


def _default_week_start(today: datetime.date | None = None) -> datetime.date:
    base = today or datetime.date.today()
    delta = (7 - base.weekday()) % 7
    delta = delta or 7
    return base + datetime.timedelta(days=delta)


# (username, weekday, start, end, type)
SAMPLE_SHIFTS = [
    ("giulia", 0, "09:00", "12:30", "work"),
    ("giulia", 0, "14:00", "18:00", "work"),
    ("giulia", 1, "04:00", "06:00", "work"),
    ("marco", 0, "04:00", "00:00", "work"),
    ("marco", 2, "10:00", "19:00", "work"),
    ("sofia", 3, "08:30", "13:00", "work"),
    ("sofia", 4, "09:15", "12:00", "work"),
    ("luca", 5, "12:00", "20:00", "sick"),
]


def run_workflow(
    week_start: datetime.date,
    *,
    actor: str = "workflow_smoke",
    session_factory=SessionLocal,
    export: bool = True,
) -> Dict[str, Any]:
    ids = seed_employees(session_factory)
    with session_factory() as session:
        schedule = create_schedule(
            session,
            week_start,
            week_start + datetime.timedelta(days=6),
            created_by=actor,
        )
        print(f"[workflow] Schedule {schedule.id}: {schedule.start_date} .. {schedule.end_date}")
        for username, weekday, start, end, shift_type in SAMPLE_SHIFTS:
            upsert_shift(
                session,
                ShiftRecord(
                    employee_id=ids[username],
                    day=week_start + datetime.timedelta(days=weekday),
                    start_time=start,
                    end_time=end,
                    shift_type=shift_type,
                    schedule_id=schedule.id,
                ),
            )
        create_time_off_request(
            session,
            ids["elena"],
            week_start,
            week_start + datetime.timedelta(days=2),
            "vacation",
            status=RequestStatus.APPROVED,
            reason="Family trip",
        )
        create_time_off_request(
            session,
            ids["sofia"],
            week_start + datetime.timedelta(days=3),
            week_start + datetime.timedelta(days=3),
            "leave",
            scope=TimeOffScope.AFTERNOON,
            status=RequestStatus.APPROVED,
        )

        weekly = planner.load_week_grid(session, schedule.id, user_id=actor)
        print(f"[workflow] Assembled {len(weekly.rows)} rows, {len(weekly.warnings)} skipped shifts.")
        for warning in weekly.warnings:
            print(f"[workflow]   {warning}")

        # Extend Giulia's Monday morning block by one cell.
        monday = week_start
        index = weekly.grid.index_of("12:30")
        row = planner.toggle_and_save(session, schedule.id, ids["giulia"], monday, index, user_id=actor)
        print(f"[workflow] Toggled cell {index} for Giulia on {monday}: {format_hours(row.total_hours)}")

        weekly = planner.load_week_grid(session, schedule.id, user_id=actor, audit=False)
        names = {employee.id: employee.name for employee in list_employees(session)}
        for employee_id, total in weekly.weekly_totals().items():
            print(f"[workflow]   {names.get(employee_id, employee_id)}: {format_hours(total)}")

        export_path = export_schedule_totals(weekly, names) if export else None
        if export_path:
            print(f"[workflow] Exported totals to {export_path}")
        planner.publish_schedule(session, schedule.id, user_id=actor)
        print(f"[workflow] Schedule {schedule.id} published.")
        return {
            "schedule_id": schedule.id,
            "weekly_totals": weekly.weekly_totals(),
            "warnings": len(weekly.warnings),
            "export_path": export_path,
        }


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description=(
            "Run an end-to-end smoke test that seeds staff, stores a week of shifts and time off, "
            "assembles the grid, edits a cell, exports hour totals, and publishes the schedule."
        )
    )
    parser.add_argument(
        "--week-start",
        help="ISO date (YYYY-MM-DD) for the Monday to target. Defaults to next Monday.",
    )
    parser.add_argument("--actor", default="workflow_smoke", help="Audit trail actor name.")
    return parser.parse_args()


def main() -> None:
    init_database()
    args = parse_args()
    if args.week_start:
        try:
            week_start = datetime.date.fromisoformat(args.week_start)
        except ValueError as exc:
            raise SystemExit(f"Invalid --week-start value: {exc}") from exc
    else:
        week_start = _default_week_start()
    if week_start.weekday() != 0:
        week_start = week_start - datetime.timedelta(days=week_start.weekday())
    print(f"[workflow] Target week start: {week_start}")
    run_workflow(week_start, actor=args.actor)


if __name__ == "__main__":
    main()
