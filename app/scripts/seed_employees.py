from __future__ import annotations

import sys
from pathlib import Path
from typing import Dict, List

from sqlalchemy import select

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from database import Employee, SessionLocal, init_database  # noqa: E402
from roles import ACCOUNT_ROLES, normalize_role  # noqa: E402


SAMPLE_STAFF: List[Dict[str, str]] = [
    {"name": "Giulia Romano", "username": "giulia", "role": "employee"},
    {"name": "Marco Bianchi", "username": "marco", "role": "employee"},
    {"name": "Sofia Ricci", "username": "sofia", "role": "employee"},
    {"name": "Luca Moretti", "username": "luca", "role": "employee"},
    {"name": "Elena Conti", "username": "elena", "role": "employee"},
    {"name": "Chiara Galli", "username": "chiara", "role": "admin"},
]


def seed_employees(session_factory=SessionLocal) -> Dict[str, int]:
    """Create or refresh the demo staff; returns usernames mapped to ids."""
    created = 0
    refreshed = 0
    ids: Dict[str, int] = {}
    with session_factory() as session:
        for entry in SAMPLE_STAFF:
            role = normalize_role(entry["role"])
            if role not in ACCOUNT_ROLES:
                print(f"[seed] Skipping {entry['name']} because role '{entry['role']}' is unknown.")
                continue
            stmt = select(Employee).where(Employee.username == entry["username"])
            employee = session.scalars(stmt).first()
            if not employee:
                employee = Employee(full_name=entry["name"], username=entry["username"], role=role)
                session.add(employee)
                session.flush()
                created += 1
            else:
                employee.full_name = entry["name"]
                employee.role = role
                employee.is_active = True
                refreshed += 1
            ids[entry["username"]] = employee.id
        session.commit()
    print(f"Seed complete. Created {created} employees, refreshed {refreshed} profiles.")
    return ids


if __name__ == "__main__":
    init_database()
    seed_employees()
