from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Mapping, Optional

from errors import InvalidRangeError
from timegrid import DEFAULT_INTERVAL_MINUTES, TimeGrid

DEFAULT_START_HOUR = 4
DEFAULT_END_HOUR = 24
DEFAULT_EMPLOYEE_ROLE = "employee"

OVERLAP_LAST_WRITE = "last_write"
OVERLAP_PRIORITY = "priority"
OVERLAP_POLICIES = {OVERLAP_LAST_WRITE, OVERLAP_PRIORITY}


@dataclass(frozen=True)
class GridConfig:
    start_hour: int = DEFAULT_START_HOUR
    end_hour: int = DEFAULT_END_HOUR
    interval_minutes: int = DEFAULT_INTERVAL_MINUTES
    employee_role: str = DEFAULT_EMPLOYEE_ROLE
    overlap_policy: str = OVERLAP_LAST_WRITE

    def __post_init__(self) -> None:
        if self.overlap_policy not in OVERLAP_POLICIES:
            raise InvalidRangeError(
                f"Unsupported overlap policy '{self.overlap_policy}'. "
                f"Expected one of {sorted(OVERLAP_POLICIES)}."
            )

    def build_grid(self) -> TimeGrid:
        return TimeGrid(self.start_hour, self.end_hour, self.interval_minutes)

    @classmethod
    def from_mapping(cls, payload: Optional[Mapping[str, Any]]) -> "GridConfig":
        known = {item.name for item in fields(cls)}
        values = {key: value for key, value in (payload or {}).items() if key in known}
        config = cls(**values)
        config.build_grid()
        return config

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


def build_default_grid_config() -> Dict[str, Any]:
    return GridConfig().as_dict()
