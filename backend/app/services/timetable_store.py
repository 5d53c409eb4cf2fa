from __future__ import annotations

import logging
import uuid
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.exceptions import (
    AppError,
    InvalidStateError,
    ResourceNotFoundError,
    SchedulingConflictError,
    ValidationError,
)
from app.models.enums import DayOfWeek, LifecycleStatus, PeriodType, SCHEDULABLE_PERIOD_TYPES
from app.models.subject import Subject
from app.models.teacher import Teacher
from app.models.timetable_config import TimetableConfig
from app.models.timetable_entry import TimetableEntry
from app.schemas.calendar import TimetableConfigOut
from app.schemas.timetable import (
    ScheduledEntryOut,
    ScheduleView,
    TimetableEntryCreate,
    TimetableEntryOut,
    TimetableEntryUpdate,
)
from app.services import calendar, rooms
from app.services.conflict_service import find_slot_conflicts

logger = logging.getLogger(__name__)

DAY_ORDER = {day: index for index, day in enumerate(DayOfWeek)}
SLOT_FIELDS = (
    "class_id",
    "section_id",
    "subject_id",
    "teacher_id",
    "day_of_week",
    "period_number",
    "room_id",
    "shift_id",
    "effective_from",
    "effective_to",
    "notes",
)


def sort_entries(entries: Iterable[TimetableEntry]) -> list[TimetableEntry]:
    return sorted(entries, key=lambda item: (DAY_ORDER[DayOfWeek(item.day_of_week)], item.period_number, item.class_id))


def _resolve_period(config: TimetableConfig, day: DayOfWeek, period_number: int) -> dict:
    if day.value not in (config.working_days or []):
        raise ValidationError(
            f"{day.value} is not a working day",
            details={"day_of_week": day.value, "working_days": list(config.working_days or [])},
        )
    period = calendar.period_map(config).get(period_number)
    if period is None:
        raise ValidationError(
            f"Period {period_number} is not defined in the active configuration",
            details={"period_number": period_number},
        )
    period_type = PeriodType(period.get("type", PeriodType.regular.value))
    if period_type not in SCHEDULABLE_PERIOD_TYPES:
        raise ValidationError(
            f"Period {period_number} is a {period_type.value} period and cannot be scheduled",
            details={"period_number": period_number, "period_type": period_type.value},
        )
    return period


def _check_room(db: Session, school_id: str, room_id: str | None) -> None:
    if not room_id:
        return
    room = rooms.get_room(db, school_id, room_id)
    if not room.is_bookable:
        raise ValidationError(f"Room {room.code} is not available for booking", details={"room_id": room_id})


def _build_candidate(
    db: Session,
    school_id: str,
    data: dict,
    entry_id: str,
    *,
    existing: TimetableEntry | None = None,
    slot_changed: bool = True,
    room_changed: bool = True,
) -> TimetableEntry:
    """Transient entry for the conflict check.

    When editing, an unchanged slot or room is not re-validated: a period removed
    from the calendar or a room taken out of service must not block other edits.
    """
    day = DayOfWeek(data["day_of_week"])
    if existing is None or slot_changed:
        config = calendar.get_active_config(db, school_id)
        period = _resolve_period(config, day, data["period_number"])
        period_type = PeriodType(period.get("type", PeriodType.regular.value))
        default_shift = period.get("shift_id")
    else:
        period_type = PeriodType(existing.period_type)
        default_shift = existing.shift_id
    if existing is None or room_changed:
        _check_room(db, school_id, data.get("room_id"))
    return TimetableEntry(
        id=entry_id,
        school_id=school_id,
        class_id=data["class_id"],
        section_id=data["section_id"],
        subject_id=data["subject_id"],
        teacher_id=data["teacher_id"],
        day_of_week=day,
        period_number=data["period_number"],
        room_id=data.get("room_id") or None,
        shift_id=data.get("shift_id") or default_shift,
        period_type=period_type,
        effective_from=data.get("effective_from"),
        effective_to=data.get("effective_to"),
        notes=data.get("notes"),
        status=LifecycleStatus.active,
    )


def _raise_if_conflicting(db: Session, school_id: str, candidate: TimetableEntry) -> None:
    conflicts = find_slot_conflicts(db, school_id, candidate, exclude_ids=[candidate.id])
    if conflicts:
        raise SchedulingConflictError(
            f"Slot {candidate.day_of_week.value} period {candidate.period_number} is already taken",
            conflicts,
        )


def _lost_race(db: Session, school_id: str, candidate: TimetableEntry, exc: IntegrityError) -> SchedulingConflictError:
    logger.warning(
        "Entry write for school %s at %s/%s rejected by slot index: %s",
        school_id,
        candidate.day_of_week.value,
        candidate.period_number,
        exc.orig,
    )
    conflicts = find_slot_conflicts(db, school_id, candidate, exclude_ids=[candidate.id])
    return SchedulingConflictError("Slot was taken by a concurrent write", conflicts)


def get_entry(db: Session, school_id: str, entry_id: str) -> TimetableEntry:
    entry = db.get(TimetableEntry, entry_id)
    if entry is None or entry.school_id != school_id:
        raise ResourceNotFoundError("Timetable entry", entry_id)
    return entry


def get_active_entry(db: Session, school_id: str, entry_id: str) -> TimetableEntry:
    entry = get_entry(db, school_id, entry_id)
    if not entry.is_active:
        raise ResourceNotFoundError("Timetable entry", entry_id)
    return entry


def create_entry(db: Session, school_id: str, payload: TimetableEntryCreate) -> TimetableEntry:
    candidate = _build_candidate(db, school_id, payload.model_dump(), str(uuid.uuid4()))
    _raise_if_conflicting(db, school_id, candidate)
    try:
        with db.begin_nested():
            db.add(candidate)
            db.flush()
    except IntegrityError as exc:
        raise _lost_race(db, school_id, candidate, exc) from exc
    logger.info(
        "Scheduled entry %s: teacher %s, class %s/%s on %s period %s",
        candidate.id,
        candidate.teacher_id,
        candidate.class_id,
        candidate.section_id,
        candidate.day_of_week.value,
        candidate.period_number,
    )
    return candidate


def bulk_create_entries(db: Session, school_id: str, payloads: list[TimetableEntryCreate]) -> dict:
    created: list[TimetableEntry] = []
    failed: list[dict] = []
    for index, payload in enumerate(payloads):
        try:
            created.append(create_entry(db, school_id, payload))
        except SchedulingConflictError as exc:
            failed.append({"index": index, "entry": payload, "reason": exc.message, "conflicts": exc.conflicts})
        except AppError as exc:
            failed.append({"index": index, "entry": payload, "reason": exc.message, "conflicts": []})
    logger.info("Bulk create for school %s: %s created, %s failed", school_id, len(created), len(failed))
    return {"created": created, "failed": failed}


def update_entry(db: Session, school_id: str, entry_id: str, payload: TimetableEntryUpdate) -> TimetableEntry:
    entry = get_entry(db, school_id, entry_id)
    if not entry.is_active:
        raise InvalidStateError("Inactive timetable entries cannot be updated", current_status=entry.status.value)

    changes = {key: value for key, value in payload.model_dump(exclude_unset=True).items()}
    for required in ("class_id", "section_id", "subject_id", "teacher_id", "day_of_week", "period_number"):
        if required in changes and changes[required] is None:
            raise ValidationError(f"{required} cannot be cleared")
    merged = {field: getattr(entry, field) for field in SLOT_FIELDS}
    merged.update(changes)
    if merged.get("effective_from") and merged.get("effective_to") and merged["effective_to"] < merged["effective_from"]:
        raise ValidationError("effective_to must not be before effective_from")
    if "period_number" in changes and "shift_id" not in changes:
        merged["shift_id"] = None

    slot_changed = any(
        field in changes and changes[field] != getattr(entry, field) for field in ("day_of_week", "period_number")
    )
    room_changed = "room_id" in changes and changes["room_id"] != entry.room_id
    candidate = _build_candidate(
        db,
        school_id,
        merged,
        entry.id,
        existing=entry,
        slot_changed=slot_changed,
        room_changed=room_changed,
    )
    _raise_if_conflicting(db, school_id, candidate)

    try:
        with db.begin_nested():
            for field in (*SLOT_FIELDS, "period_type"):
                setattr(entry, field, getattr(candidate, field))
            db.flush()
    except IntegrityError as exc:
        raise _lost_race(db, school_id, candidate, exc) from exc
    return entry


def deactivate_entry(db: Session, school_id: str, entry_id: str) -> TimetableEntry:
    entry = get_entry(db, school_id, entry_id)
    entry.status = LifecycleStatus.inactive
    db.flush()
    logger.info("Deactivated entry %s for school %s", entry.id, school_id)
    return entry


def list_entries(
    db: Session,
    school_id: str,
    *,
    class_id: str | None = None,
    section_id: str | None = None,
    teacher_id: str | None = None,
    room_id: str | None = None,
    day: DayOfWeek | None = None,
    period_number: int | None = None,
    include_inactive: bool = False,
) -> list[TimetableEntry]:
    query = select(TimetableEntry).where(TimetableEntry.school_id == school_id)
    if class_id is not None:
        query = query.where(TimetableEntry.class_id == class_id)
    if section_id is not None:
        query = query.where(TimetableEntry.section_id == section_id)
    if teacher_id is not None:
        query = query.where(TimetableEntry.teacher_id == teacher_id)
    if room_id is not None:
        query = query.where(TimetableEntry.room_id == room_id)
    if day is not None:
        query = query.where(TimetableEntry.day_of_week == day)
    if period_number is not None:
        query = query.where(TimetableEntry.period_number == period_number)
    if not include_inactive:
        query = query.where(TimetableEntry.status == LifecycleStatus.active)
    return sort_entries(db.execute(query).scalars())


def schedule_view(db: Session, school_id: str, entries: list[TimetableEntry]) -> ScheduleView:
    """Decorate entries with display names and whether their period still exists."""
    config = calendar.find_active_config(db, school_id)
    periods = calendar.period_map(config)
    teacher_ids = {item.teacher_id for item in entries}
    subject_ids = {item.subject_id for item in entries}
    teacher_names = {
        item.id: item.full_name
        for item in db.execute(select(Teacher).where(Teacher.school_id == school_id, Teacher.id.in_(teacher_ids))).scalars()
    } if teacher_ids else {}
    subject_names = {
        item.id: item.name
        for item in db.execute(select(Subject).where(Subject.school_id == school_id, Subject.id.in_(subject_ids))).scalars()
    } if subject_ids else {}

    rows = []
    for entry in entries:
        base = TimetableEntryOut.model_validate(entry).model_dump()
        rows.append(
            ScheduledEntryOut(
                **base,
                period_defined=config is not None and entry.period_number in periods,
                teacher_name=teacher_names.get(entry.teacher_id),
                subject_name=subject_names.get(entry.subject_id),
            )
        )
    config_out = TimetableConfigOut.model_validate(config) if config is not None else None
    return ScheduleView(config=config_out, entries=rows)
