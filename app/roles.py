from __future__ import annotations

from grid_defaults import DEFAULT_EMPLOYEE_ROLE

ACCOUNT_ROLES = {
    "admin": "Administrator",
    "employee": "Employee",
    "user": "User",
}


def normalize_role(role: str) -> str:
    return (role or "").strip().lower()


def is_schedulable_role(role: str, target_role: str = DEFAULT_EMPLOYEE_ROLE) -> bool:
    """Return True when accounts with ``role`` get rows on the shift grid."""
    label = normalize_role(role)
    return bool(label) and label == normalize_role(target_role)
