from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.exceptions import (
    DuplicateConfigError,
    InvalidStateError,
    ResourceNotFoundError,
    ValidationError,
)
from app.models.enums import DayOfWeek, LifecycleStatus, SCHEDULABLE_PERIOD_TYPES, PeriodType
from app.models.timetable_config import TimetableConfig
from app.schemas.calendar import (
    PeriodDefinition,
    ShiftDefinition,
    TimetableConfigCreate,
    TimetableConfigUpdate,
)

logger = logging.getLogger(__name__)


def _dump_periods(periods: list[PeriodDefinition]) -> list[dict]:
    ordered = sorted(periods, key=lambda item: item.period_number)
    return [item.model_dump(mode="json") for item in ordered]


def _dump_shifts(shifts: list[ShiftDefinition]) -> list[dict]:
    return [item.model_dump(mode="json") for item in shifts]


def _check_period_shifts(periods: list[dict], shifts: list[dict]) -> None:
    shift_ids = {item["shift_id"] for item in shifts}
    for period in periods:
        shift_id = period.get("shift_id")
        if shift_id and shift_id not in shift_ids:
            raise ValidationError(
                f"Period {period['period_number']} references unknown shift {shift_id}",
                details={"period_number": period["period_number"], "shift_id": shift_id},
            )


def period_map(config: TimetableConfig | None) -> dict[int, dict]:
    if config is None:
        return {}
    return {int(item["period_number"]): item for item in config.periods or []}


def schedulable_periods(config: TimetableConfig | None) -> list[dict]:
    if config is None:
        return []
    allowed = {item.value for item in SCHEDULABLE_PERIOD_TYPES}
    return [item for item in config.periods or [] if item.get("type", PeriodType.regular.value) in allowed]


def regular_periods(config: TimetableConfig | None) -> list[dict]:
    if config is None:
        return []
    return [item for item in config.periods or [] if item.get("type", PeriodType.regular.value) == PeriodType.regular.value]


def working_days(config: TimetableConfig | None) -> list[DayOfWeek]:
    if config is None:
        return []
    return [DayOfWeek(item) for item in config.working_days or []]


def find_active_config(db: Session, school_id: str) -> TimetableConfig | None:
    return db.execute(
        select(TimetableConfig).where(
            TimetableConfig.school_id == school_id,
            TimetableConfig.is_active.is_(True),
        )
    ).scalar_one_or_none()


def get_active_config(db: Session, school_id: str) -> TimetableConfig:
    config = find_active_config(db, school_id)
    if config is None:
        raise ResourceNotFoundError("Active timetable configuration", school_id)
    return config


def get_config(db: Session, school_id: str, config_id: str) -> TimetableConfig:
    config = db.get(TimetableConfig, config_id)
    if config is None or config.school_id != school_id:
        raise ResourceNotFoundError("Timetable configuration", config_id)
    return config


def list_configs(db: Session, school_id: str, *, include_inactive: bool = False) -> list[TimetableConfig]:
    query = select(TimetableConfig).where(TimetableConfig.school_id == school_id)
    if not include_inactive:
        query = query.where(TimetableConfig.status == LifecycleStatus.active)
    return list(db.execute(query.order_by(TimetableConfig.created_at.desc())).scalars())


def _year_taken(db: Session, school_id: str, academic_year: str, exclude_id: str | None = None) -> bool:
    query = select(TimetableConfig.id).where(
        TimetableConfig.school_id == school_id,
        TimetableConfig.academic_year == academic_year,
    )
    if exclude_id is not None:
        query = query.where(TimetableConfig.id != exclude_id)
    return db.execute(query).first() is not None


def _deactivate_others(db: Session, school_id: str, keep_id: str | None) -> None:
    query = select(TimetableConfig).where(
        TimetableConfig.school_id == school_id,
        TimetableConfig.is_active.is_(True),
    )
    for other in db.execute(query).scalars():
        if other.id != keep_id:
            other.is_active = False
    # The partial unique index on active configs must see the old row cleared first.
    db.flush()


def create_config(db: Session, school_id: str, payload: TimetableConfigCreate) -> TimetableConfig:
    if _year_taken(db, school_id, payload.academic_year):
        raise DuplicateConfigError(payload.academic_year)

    if payload.working_days is None:
        days = [DayOfWeek(item) for item in get_settings().default_working_days]
    elif not payload.working_days:
        raise ValidationError("At least one working day is required")
    else:
        days = payload.working_days
    periods = _dump_periods(payload.periods or [])
    shifts = _dump_shifts(payload.shifts or [])
    _check_period_shifts(periods, shifts)

    _deactivate_others(db, school_id, keep_id=None)
    config = TimetableConfig(
        school_id=school_id,
        academic_year=payload.academic_year,
        working_days=[day.value for day in days],
        periods=periods,
        shifts=shifts,
        is_active=True,
        status=LifecycleStatus.active,
    )
    try:
        with db.begin_nested():
            db.add(config)
            db.flush()
    except IntegrityError as exc:
        logger.info("Config insert for school %s lost a race: %s", school_id, exc.orig)
        raise DuplicateConfigError(payload.academic_year) from exc
    logger.info("Created timetable config %s for school %s (%s)", config.id, school_id, config.academic_year)
    return config


def update_config(db: Session, school_id: str, config_id: str, payload: TimetableConfigUpdate) -> TimetableConfig:
    config = get_config(db, school_id, config_id)
    data = payload.model_dump(exclude_unset=True)

    if data.get("academic_year") and data["academic_year"] != config.academic_year:
        if _year_taken(db, school_id, data["academic_year"], exclude_id=config.id):
            raise DuplicateConfigError(data["academic_year"])
        config.academic_year = data["academic_year"]

    periods = _dump_periods(payload.periods) if payload.periods is not None else list(config.periods or [])
    shifts = _dump_shifts(payload.shifts) if payload.shifts is not None else list(config.shifts or [])
    _check_period_shifts(periods, shifts)

    if payload.working_days is not None:
        if not payload.working_days:
            raise ValidationError("At least one working day is required")
        config.working_days = [day.value for day in payload.working_days]
    config.periods = periods
    config.shifts = shifts
    db.flush()
    return config


def set_active_config(db: Session, school_id: str, config_id: str) -> TimetableConfig:
    config = get_config(db, school_id, config_id)
    if config.status != LifecycleStatus.active:
        raise InvalidStateError("Cannot activate a deleted timetable configuration", current_status=config.status.value)
    if config.is_active:
        return config
    _deactivate_others(db, school_id, keep_id=config.id)
    config.is_active = True
    db.flush()
    logger.info("Activated timetable config %s for school %s", config.id, school_id)
    return config


def delete_config(db: Session, school_id: str, config_id: str) -> TimetableConfig:
    config = get_config(db, school_id, config_id)
    config.status = LifecycleStatus.inactive
    config.is_active = False
    db.flush()
    return config


def upsert_period(db: Session, school_id: str, config_id: str, period: PeriodDefinition) -> TimetableConfig:
    config = get_config(db, school_id, config_id)
    data = period.model_dump(mode="json")
    periods = [item for item in config.periods or [] if int(item["period_number"]) != period.period_number]
    periods.append(data)
    periods.sort(key=lambda item: int(item["period_number"]))
    _check_period_shifts(periods, list(config.shifts or []))
    config.periods = periods
    db.flush()
    return config


def remove_period(db: Session, school_id: str, config_id: str, period_number: int) -> TimetableConfig:
    # Entries referencing the number stay untouched and surface as period_undefined.
    config = get_config(db, school_id, config_id)
    config.periods = [item for item in config.periods or [] if int(item["period_number"]) != period_number]
    db.flush()
    return config


def upsert_shift(db: Session, school_id: str, config_id: str, shift: ShiftDefinition) -> TimetableConfig:
    config = get_config(db, school_id, config_id)
    shifts = [item for item in config.shifts or [] if item["shift_id"] != shift.shift_id]
    shifts.append(shift.model_dump(mode="json"))
    config.shifts = shifts
    db.flush()
    return config


def remove_shift(db: Session, school_id: str, config_id: str, shift_id: str) -> TimetableConfig:
    config = get_config(db, school_id, config_id)
    in_use = [item["period_number"] for item in config.periods or [] if item.get("shift_id") == shift_id]
    if in_use:
        raise ValidationError(
            f"Shift {shift_id} is still used by periods",
            details={"shift_id": shift_id, "period_numbers": in_use},
        )
    config.shifts = [item for item in config.shifts or [] if item["shift_id"] != shift_id]
    db.flush()
    return config
