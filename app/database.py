from __future__ import annotations

import datetime
import json
import os
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    create_engine,
    delete,
    select,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship, sessionmaker

from cells import (
    CellType,
    EmployeeRef,
    RequestStatus,
    ScheduleRef,
    ShiftRecord,
    TimeOffRequest,
    TimeOffScope,
)
from errors import PublishedScheduleError
from roles import ACCOUNT_ROLES, normalize_role
from timegrid import TimeSlot


DATA_DIR = Path(__file__).resolve().parent / "data"
DATA_DIR.mkdir(parents=True, exist_ok=True)
DATABASE_URL = os.getenv(
    "SHIFT_PLANNER_DATABASE_URL",
    f"sqlite:///{(DATA_DIR / 'planner.db').as_posix()}",
)
TEMPLATE_TYPES = {"even", "odd", "custom"}


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class Base(DeclarativeBase):
    """Metadata for every planner table living in planner.db."""

    pass


class Employee(Base):
    __tablename__ = "employees"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    full_name: Mapped[str] = mapped_column(String(120), nullable=False)
    username: Mapped[str | None] = mapped_column(String(60), nullable=True, unique=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="employee")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class Schedule(Base):
    __tablename__ = "schedules"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    start_date: Mapped[datetime.date] = mapped_column(Date, nullable=False)
    end_date: Mapped[datetime.date] = mapped_column(Date, nullable=False)
    is_published: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    published_at: Mapped[datetime.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_by: Mapped[str] = mapped_column(String(60), nullable=False, default="system")
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    shifts: Mapped[List["Shift"]] = relationship(back_populates="schedule", cascade="all, delete-orphan")


class Shift(Base):
    __tablename__ = "shifts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    schedule_id: Mapped[int] = mapped_column(ForeignKey("schedules.id", ondelete="CASCADE"), nullable=False)
    employee_id: Mapped[int] = mapped_column(ForeignKey("employees.id"), nullable=False)
    day: Mapped[datetime.date] = mapped_column(Date, nullable=False)
    start_time: Mapped[str] = mapped_column(String(5), nullable=False)
    end_time: Mapped[str] = mapped_column(String(5), nullable=False)
    type: Mapped[str] = mapped_column(String(16), nullable=False, default="work")
    notes: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    area: Mapped[str | None] = mapped_column(String(80), nullable=True)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    schedule: Mapped[Schedule] = relationship(back_populates="shifts")


class TimeOff(Base):
    __tablename__ = "time_off_requests"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    employee_id: Mapped[int] = mapped_column(ForeignKey("employees.id"), nullable=False)
    start_date: Mapped[datetime.date] = mapped_column(Date, nullable=False)
    end_date: Mapped[datetime.date] = mapped_column(Date, nullable=False)
    type: Mapped[str] = mapped_column(String(16), nullable=False, default="vacation")
    all_day: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    half_day: Mapped[str | None] = mapped_column(String(12), nullable=True)  # morning / afternoon
    status: Mapped[str] = mapped_column(String(12), nullable=False, default="pending")
    reason: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class ScheduleTemplate(Base):
    __tablename__ = "schedule_templates"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    type: Mapped[str] = mapped_column(String(12), nullable=False, default="custom")
    description: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    created_by: Mapped[str] = mapped_column(String(60), nullable=False, default="system")
    usage_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_used_at: Mapped[datetime.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    shifts: Mapped[List["TemplateShift"]] = relationship(
        back_populates="template", cascade="all, delete-orphan"
    )


class TemplateShift(Base):
    __tablename__ = "template_shifts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    template_id: Mapped[int] = mapped_column(
        ForeignKey("schedule_templates.id", ondelete="CASCADE"), nullable=False
    )
    employee_id: Mapped[int] = mapped_column(ForeignKey("employees.id"), nullable=False)
    day_of_week: Mapped[int] = mapped_column(Integer, nullable=False)  # 0 = Monday
    start_time: Mapped[str] = mapped_column(String(5), nullable=False)
    end_time: Mapped[str] = mapped_column(String(5), nullable=False)
    type: Mapped[str] = mapped_column(String(16), nullable=False, default="work")
    notes: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    area: Mapped[str | None] = mapped_column(String(80), nullable=True)

    template: Mapped[ScheduleTemplate] = relationship(back_populates="shifts")


class AuditLog(Base):
    __tablename__ = "audit_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(60), nullable=False)
    action: Mapped[str] = mapped_column(String(60), nullable=False)
    target_type: Mapped[str] = mapped_column(String(32), nullable=False, default="Shift")
    target_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    payloadJSON: Mapped[str] = mapped_column(String(2000), nullable=False, default="{}")
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    @property
    def payload(self) -> Dict[str, Any]:
        try:
            value = json.loads(self.payloadJSON or "{}")
            if isinstance(value, dict):
                return value
        except json.JSONDecodeError:
            pass
        return {}


engine = create_engine(
    DATABASE_URL,
    echo=False,
    future=True,
)
SessionLocal = sessionmaker(bind=engine, expire_on_commit=False, future=True)


def init_database(bind=None) -> None:
    Base.metadata.create_all(bind or engine)


def employee_ref(employee: Employee) -> EmployeeRef:
    return EmployeeRef(
        id=employee.id,
        name=employee.full_name,
        role=employee.role,
        is_active=bool(employee.is_active),
    )


def schedule_ref(schedule: Schedule) -> ScheduleRef:
    return ScheduleRef(
        id=schedule.id,
        start_date=schedule.start_date,
        end_date=schedule.end_date,
        is_published=bool(schedule.is_published),
    )


def shift_record(shift: Shift) -> ShiftRecord:
    return ShiftRecord(
        employee_id=shift.employee_id,
        day=shift.day,
        start_time=shift.start_time,
        end_time=shift.end_time,
        shift_type=shift.type,
        notes=shift.notes or "",
        area=shift.area,
        id=shift.id,
        schedule_id=shift.schedule_id,
    )


def time_off_request(entry: TimeOff) -> TimeOffRequest:
    return TimeOffRequest(
        employee_id=entry.employee_id,
        start_date=entry.start_date,
        end_date=entry.end_date,
        request_type=entry.type,
        scope=TimeOffScope.from_flags(entry.all_day, entry.half_day),
        status=entry.status,
        id=entry.id,
    )


def _boundary_labels(start_time: Any, end_time: Any) -> tuple[str, str]:
    start = TimeSlot.parse(start_time)
    end = TimeSlot.parse(end_time, closing=True)
    if end <= start:
        raise ValueError("Shift end time must be after start time.")
    return start.label, end.label


def _require_schedule(session, schedule_id: int) -> Schedule:
    schedule = session.get(Schedule, schedule_id)
    if not schedule:
        raise LookupError(f"Schedule with id {schedule_id} was not found.")
    return schedule


def _require_editable(session, schedule_id: int) -> Schedule:
    schedule = _require_schedule(session, schedule_id)
    if schedule.is_published:
        raise PublishedScheduleError(schedule.id)
    return schedule


def create_employee(
    session,
    full_name: str,
    *,
    username: Optional[str] = None,
    role: str = "employee",
    is_active: bool = True,
) -> Employee:
    name = (full_name or "").strip()
    if not name:
        raise ValueError("Employee name is required.")
    label = normalize_role(role) or "employee"
    if label not in ACCOUNT_ROLES:
        raise ValueError(f"Unknown role: {role}")
    employee = Employee(
        full_name=name,
        username=username,
        role=label,
        is_active=is_active,
    )
    session.add(employee)
    session.commit()
    session.refresh(employee)
    return employee


def list_employees(session, only_active: bool = True) -> List[EmployeeRef]:
    stmt = select(Employee)
    if only_active:
        stmt = stmt.where(Employee.is_active.is_(True))
    stmt = stmt.order_by(Employee.full_name.asc(), Employee.id.asc())
    return [employee_ref(employee) for employee in session.scalars(stmt)]


def create_schedule(
    session,
    start_date: datetime.date,
    end_date: datetime.date,
    *,
    created_by: str = "system",
) -> Schedule:
    if not isinstance(start_date, datetime.date) or not isinstance(end_date, datetime.date):
        raise TypeError("Schedule start and end must be date instances.")
    if end_date < start_date:
        raise ValueError("Schedule end date must not precede its start date.")
    schedule = Schedule(start_date=start_date, end_date=end_date, created_by=created_by)
    session.add(schedule)
    session.commit()
    session.refresh(schedule)
    return schedule


def get_schedule(session, schedule_id: int) -> Optional[Schedule]:
    return session.get(Schedule, schedule_id)


def list_schedules(session) -> List[Schedule]:
    stmt = select(Schedule).order_by(Schedule.start_date.desc(), Schedule.id.desc())
    return list(session.scalars(stmt))


def list_shifts_for_schedule(
    session,
    schedule_id: int,
    *,
    employee_id: Optional[int] = None,
) -> List[ShiftRecord]:
    stmt = (
        select(Shift)
        .where(Shift.schedule_id == schedule_id)
        .order_by(Shift.day, Shift.start_time, Shift.id)
    )
    if employee_id is not None:
        stmt = stmt.where(Shift.employee_id == employee_id)
    return [shift_record(shift) for shift in session.scalars(stmt)]


def create_time_off_request(
    session,
    employee_id: int,
    start_date: datetime.date,
    end_date: datetime.date,
    request_type: str,
    *,
    scope: TimeOffScope = TimeOffScope.ALL_DAY,
    status: RequestStatus = RequestStatus.PENDING,
    reason: str = "",
) -> TimeOff:
    # Validates type, scope, status and the date order before anything is stored.
    request = TimeOffRequest(
        employee_id=employee_id,
        start_date=start_date,
        end_date=end_date,
        request_type=request_type,
        scope=scope,
        status=status,
    )
    entry = TimeOff(
        employee_id=employee_id,
        start_date=start_date,
        end_date=end_date,
        type=request.request_type.value,
        all_day=request.scope == TimeOffScope.ALL_DAY,
        half_day=None if request.scope == TimeOffScope.ALL_DAY else request.scope.value,
        status=request.status.value,
        reason=reason or "",
    )
    session.add(entry)
    session.commit()
    session.refresh(entry)
    return entry


def set_time_off_status(session, request_id: int, status: str) -> TimeOff:
    entry = session.get(TimeOff, request_id)
    if not entry:
        raise LookupError(f"Time off request with id {request_id} was not found.")
    entry.status = RequestStatus((status or "").strip().lower()).value
    session.commit()
    session.refresh(entry)
    return entry


def list_approved_time_off_requests(
    session,
    start_date: Optional[datetime.date] = None,
    end_date: Optional[datetime.date] = None,
    *,
    employee_id: Optional[int] = None,
) -> List[TimeOffRequest]:
    """Approved requests overlapping ``[start_date, end_date]``, oldest first."""
    stmt = select(TimeOff).where(TimeOff.status == RequestStatus.APPROVED.value)
    if start_date is not None:
        stmt = stmt.where(TimeOff.end_date >= start_date)
    if end_date is not None:
        stmt = stmt.where(TimeOff.start_date <= end_date)
    if employee_id is not None:
        stmt = stmt.where(TimeOff.employee_id == employee_id)
    stmt = stmt.order_by(TimeOff.id)
    return [time_off_request(entry) for entry in session.scalars(stmt)]


def upsert_shift(session, shift: ShiftRecord) -> ShiftRecord:
    if shift.schedule_id is None:
        raise ValueError("Shift schedule_id is required.")
    schedule = _require_editable(session, shift.schedule_id)
    if not schedule.start_date <= shift.day <= schedule.end_date:
        raise ValueError(f"Shift day {shift.day.isoformat()} is outside schedule {schedule.id}.")
    start_label, end_label = _boundary_labels(shift.start_time, shift.end_time)

    if shift.id:
        db_shift = session.get(Shift, shift.id)
        if not db_shift:
            raise LookupError(f"Shift with id {shift.id} was not found.")
    else:
        db_shift = Shift(schedule_id=schedule.id)
        session.add(db_shift)

    db_shift.schedule_id = schedule.id
    db_shift.employee_id = shift.employee_id
    db_shift.day = shift.day
    db_shift.start_time = start_label
    db_shift.end_time = end_label
    db_shift.type = shift.shift_type.value
    db_shift.notes = shift.notes or ""
    db_shift.area = shift.area
    session.commit()
    session.refresh(db_shift)
    return shift_record(db_shift)


def delete_shift(session, shift_id: int) -> None:
    db_shift = session.get(Shift, shift_id)
    if not db_shift:
        return
    _require_editable(session, db_shift.schedule_id)
    session.delete(db_shift)
    session.commit()


def replace_row_shifts(
    session,
    schedule_id: int,
    employee_id: int,
    day: datetime.date,
    records: Iterable[ShiftRecord],
    *,
    keep_ids: Iterable[int] = (),
) -> List[ShiftRecord]:
    """Swap the stored shifts of one employee on one day for ``records``.

    Shifts listed in ``keep_ids`` are left in place.
    """
    _require_editable(session, schedule_id)
    stmt = delete(Shift).where(
        Shift.schedule_id == schedule_id,
        Shift.employee_id == employee_id,
        Shift.day == day,
    )
    kept = [shift_id for shift_id in keep_ids if shift_id is not None]
    if kept:
        stmt = stmt.where(Shift.id.not_in(kept))
    session.execute(stmt)
    created: List[Shift] = []
    for record in records:
        start_label, end_label = _boundary_labels(record.start_time, record.end_time)
        db_shift = Shift(
            schedule_id=schedule_id,
            employee_id=employee_id,
            day=day,
            start_time=start_label,
            end_time=end_label,
            type=record.shift_type.value,
            notes=record.notes or "",
            area=record.area,
        )
        session.add(db_shift)
        created.append(db_shift)
    session.commit()
    for db_shift in created:
        session.refresh(db_shift)
    return [shift_record(db_shift) for db_shift in created]


def set_schedule_published(session, schedule_id: int, published: bool = True) -> Schedule:
    schedule = _require_schedule(session, schedule_id)
    schedule.is_published = bool(published)
    schedule.published_at = _utcnow() if published else None
    session.commit()
    session.refresh(schedule)
    return schedule


def save_schedule_as_template(
    session,
    schedule_id: int,
    name: str,
    *,
    template_type: str = "custom",
    description: str = "",
    created_by: str = "system",
) -> ScheduleTemplate:
    label = (name or "").strip()
    if len(label) < 3:
        raise ValueError("Template name must have at least 3 characters.")
    normalized_type = (template_type or "custom").strip().lower()
    if normalized_type not in TEMPLATE_TYPES:
        raise ValueError(f"Unsupported template type '{template_type}'.")
    schedule = _require_schedule(session, schedule_id)
    template = ScheduleTemplate(
        name=label,
        type=normalized_type,
        description=description or "",
        created_by=created_by,
    )
    stmt = select(Shift).where(Shift.schedule_id == schedule.id).order_by(Shift.day, Shift.start_time, Shift.id)
    for shift in session.scalars(stmt):
        template.shifts.append(
            TemplateShift(
                employee_id=shift.employee_id,
                day_of_week=shift.day.weekday(),
                start_time=shift.start_time,
                end_time=shift.end_time,
                type=shift.type,
                notes=shift.notes,
                area=shift.area,
            )
        )
    session.add(template)
    session.commit()
    session.refresh(template)
    return template


def list_templates(session) -> List[ScheduleTemplate]:
    stmt = select(ScheduleTemplate).order_by(ScheduleTemplate.name.asc(), ScheduleTemplate.id.asc())
    return list(session.scalars(stmt))


def get_template(session, template_id: int) -> Optional[ScheduleTemplate]:
    return session.get(ScheduleTemplate, template_id)


def apply_template_to_schedule(session, template_id: int, schedule_id: int) -> int:
    """Copy a template's shifts onto every matching weekday of a schedule.

    Dates whose weekday has template shifts lose their current shifts first;
    other dates are left alone. Returns the number of shifts created.
    """
    template = session.get(ScheduleTemplate, template_id)
    if not template:
        raise LookupError(f"Template with id {template_id} was not found.")
    schedule = _require_editable(session, schedule_id)
    by_weekday: Dict[int, List[TemplateShift]] = {}
    for item in template.shifts:
        by_weekday.setdefault(item.day_of_week, []).append(item)

    created = 0
    for day in schedule_ref(schedule).days:
        items = by_weekday.get(day.weekday())
        if not items:
            continue
        session.execute(delete(Shift).where(Shift.schedule_id == schedule.id, Shift.day == day))
        for item in items:
            session.add(
                Shift(
                    schedule_id=schedule.id,
                    employee_id=item.employee_id,
                    day=day,
                    start_time=item.start_time,
                    end_time=item.end_time,
                    type=CellType.parse(item.type, for_shift=True).value,
                    notes=item.notes,
                    area=item.area,
                )
            )
            created += 1
    template.usage_count = (template.usage_count or 0) + 1
    template.last_used_at = _utcnow()
    session.commit()
    session.expire(schedule, ["shifts"])
    return created


def list_audit_log(session, *, action: Optional[str] = None) -> List[AuditLog]:
    stmt = select(AuditLog).order_by(AuditLog.id)
    if action:
        stmt = stmt.where(AuditLog.action == action)
    return list(session.scalars(stmt))


def record_audit_log(
    session,
    user_id: str,
    action: str,
    target_type: str = "Shift",
    target_id: Optional[int] = None,
    payload: Optional[Dict[str, Any]] = None,
) -> AuditLog:
    log = AuditLog(
        user_id=user_id,
        action=action,
        target_type=target_type,
        target_id=target_id,
        payloadJSON=json.dumps(payload or {}, default=str),
    )
    session.add(log)
    session.commit()
    return log
