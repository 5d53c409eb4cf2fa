from __future__ import annotations

import logging
from datetime import date, datetime, timezone

from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.exceptions import (
    AlreadyProcessedError,
    DuplicateAssignmentError,
    InvalidStateError,
    ResourceNotFoundError,
    SubstituteBusyError,
    ValidationError,
)
from app.models.enums import DayOfWeek, LifecycleStatus
from app.models.substitute_assignment import OPEN_SUBSTITUTE_STATUSES, SubstituteAssignment, SubstituteStatus
from app.models.teacher import Teacher
from app.schemas.substitute import SubstituteCreate, SubstituteDetailOut, SubstituteOut
from app.schemas.timetable import TimetableEntryOut
from app.services.availability import subject_match, substitute_busy_reason
from app.services.timetable_store import get_active_entry, get_entry

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[SubstituteStatus, set[SubstituteStatus]] = {
    SubstituteStatus.pending: {SubstituteStatus.confirmed, SubstituteStatus.cancelled},
    SubstituteStatus.confirmed: {SubstituteStatus.completed, SubstituteStatus.cancelled},
    SubstituteStatus.completed: set(),
    SubstituteStatus.cancelled: set(),
}


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _open_assignment_for(db: Session, school_id: str, entry_id: str, on_date: date) -> SubstituteAssignment | None:
    return db.execute(
        select(SubstituteAssignment).where(
            SubstituteAssignment.school_id == school_id,
            SubstituteAssignment.original_entry_id == entry_id,
            SubstituteAssignment.assignment_date == on_date,
            SubstituteAssignment.status.in_(OPEN_SUBSTITUTE_STATUSES),
        )
    ).scalars().first()


def get_substitute(db: Session, school_id: str, substitute_id: str) -> SubstituteAssignment:
    assignment = db.get(SubstituteAssignment, substitute_id)
    if assignment is None or assignment.school_id != school_id:
        raise ResourceNotFoundError("Substitute assignment", substitute_id)
    return assignment


def create_substitute(
    db: Session,
    school_id: str,
    payload: SubstituteCreate,
    *,
    created_by: str,
) -> SubstituteAssignment:
    entry = get_active_entry(db, school_id, payload.original_entry_id)
    day = DayOfWeek(entry.day_of_week)
    on_date = payload.assignment_date

    if DayOfWeek.from_date(on_date) != day:
        raise ValidationError(
            f"{on_date.isoformat()} is a {DayOfWeek.from_date(on_date).value}, the entry runs on {day.value}",
            details={"assignment_date": on_date.isoformat(), "day_of_week": day.value},
        )
    if payload.substitute_teacher_id == entry.teacher_id:
        raise ValidationError(
            "Substitute teacher must differ from the original teacher",
            details={"teacher_id": entry.teacher_id},
        )

    substitute = db.get(Teacher, payload.substitute_teacher_id)
    if substitute is None or substitute.school_id != school_id or substitute.status != LifecycleStatus.active:
        raise ResourceNotFoundError("Teacher", payload.substitute_teacher_id)

    existing = _open_assignment_for(db, school_id, entry.id, on_date)
    if existing is not None:
        raise DuplicateAssignmentError(entry.id, on_date.isoformat())

    busy = substitute_busy_reason(db, school_id, substitute.id, day, entry.period_number, on_date)
    if busy is not None:
        reason, blocking_ids = busy
        raise SubstituteBusyError(substitute.id, reason, blocking_ids)

    if subject_match(substitute, entry.subject_id) is None:
        raise ValidationError(
            f"Teacher {substitute.full_name} is not eligible to teach subject {entry.subject_id}",
            details={"teacher_id": substitute.id, "subject_id": entry.subject_id},
        )

    assignment = SubstituteAssignment(
        school_id=school_id,
        original_entry_id=entry.id,
        original_teacher_id=entry.teacher_id,
        substitute_teacher_id=substitute.id,
        assignment_date=on_date,
        reason=payload.reason,
        created_by=created_by,
        status=SubstituteStatus.pending if payload.require_confirmation else SubstituteStatus.confirmed,
    )
    try:
        with db.begin_nested():
            db.add(assignment)
            db.flush()
    except IntegrityError as exc:
        logger.warning("Substitute insert for entry %s on %s lost a race: %s", entry.id, on_date, exc.orig)
        raise DuplicateAssignmentError(entry.id, on_date.isoformat()) from exc

    logger.info(
        "Assigned substitute %s for entry %s on %s (%s)",
        substitute.id,
        entry.id,
        on_date.isoformat(),
        assignment.status.value,
    )
    return assignment


def update_substitute_status(
    db: Session,
    school_id: str,
    substitute_id: str,
    new_status: SubstituteStatus,
) -> SubstituteAssignment:
    assignment = get_substitute(db, school_id, substitute_id)
    allowed_from = [state for state, targets in ALLOWED_TRANSITIONS.items() if new_status in targets]
    values: dict = {"status": new_status}
    if new_status == SubstituteStatus.cancelled:
        values["cancelled_at"] = _utc_now()
    elif new_status == SubstituteStatus.completed:
        values["completed_at"] = _utc_now()
    # The status guard lives in the WHERE clause so a concurrent transition wins cleanly.
    result = db.execute(
        update(SubstituteAssignment)
        .where(
            SubstituteAssignment.id == assignment.id,
            SubstituteAssignment.school_id == school_id,
            SubstituteAssignment.status.in_(allowed_from),
        )
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    db.refresh(assignment)
    if result.rowcount == 0:
        current = SubstituteStatus(assignment.status)
        if not ALLOWED_TRANSITIONS[current]:
            raise AlreadyProcessedError("Substitute assignment", current.value)
        raise InvalidStateError(
            f"Cannot move substitute assignment from {current.value} to {new_status.value}",
            current_status=current.value,
        )
    return assignment


def cancel_substitute(db: Session, school_id: str, substitute_id: str) -> SubstituteAssignment:
    return update_substitute_status(db, school_id, substitute_id, SubstituteStatus.cancelled)


def complete_elapsed_substitutes(db: Session, school_id: str, today: date) -> list[SubstituteAssignment]:
    rows = list(
        db.execute(
            select(SubstituteAssignment).where(
                SubstituteAssignment.school_id == school_id,
                SubstituteAssignment.status == SubstituteStatus.confirmed,
                SubstituteAssignment.assignment_date < today,
            )
        ).scalars()
    )
    if not rows:
        return []
    db.execute(
        update(SubstituteAssignment)
        .where(
            SubstituteAssignment.id.in_([assignment.id for assignment in rows]),
            SubstituteAssignment.status == SubstituteStatus.confirmed,
        )
        .values(status=SubstituteStatus.completed, completed_at=_utc_now())
        .execution_options(synchronize_session=False)
    )
    for assignment in rows:
        db.refresh(assignment)
    completed = [assignment for assignment in rows if assignment.status == SubstituteStatus.completed]
    logger.info("Completed %s elapsed substitute assignments for school %s", len(completed), school_id)
    return completed


def list_substitutes_for_date(db: Session, school_id: str, on_date: date) -> list[SubstituteAssignment]:
    query = select(SubstituteAssignment).where(
        SubstituteAssignment.school_id == school_id,
        SubstituteAssignment.assignment_date == on_date,
        SubstituteAssignment.status != SubstituteStatus.cancelled,
    )
    return list(db.execute(query.order_by(SubstituteAssignment.created_at)).scalars())


def substitute_history(
    db: Session,
    school_id: str,
    *,
    teacher_id: str | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    limit: int | None = None,
) -> list[SubstituteAssignment]:
    query = select(SubstituteAssignment).where(SubstituteAssignment.school_id == school_id)
    if teacher_id:
        query = query.where(
            or_(
                SubstituteAssignment.substitute_teacher_id == teacher_id,
                SubstituteAssignment.original_teacher_id == teacher_id,
            )
        )
    if start_date is not None:
        query = query.where(SubstituteAssignment.assignment_date >= start_date)
    if end_date is not None:
        query = query.where(SubstituteAssignment.assignment_date <= end_date)
    query = query.order_by(SubstituteAssignment.assignment_date.desc(), SubstituteAssignment.created_at.desc())
    return list(db.execute(query.limit(limit or get_settings().substitute_history_limit)).scalars())


def describe(db: Session, school_id: str, assignments: list[SubstituteAssignment]) -> list[SubstituteDetailOut]:
    teacher_ids = {item.original_teacher_id for item in assignments} | {
        item.substitute_teacher_id for item in assignments
    }
    names = {}
    if teacher_ids:
        names = {
            item.id: item.full_name
            for item in db.execute(
                select(Teacher).where(Teacher.school_id == school_id, Teacher.id.in_(teacher_ids))
            ).scalars()
        }
    results = []
    for assignment in assignments:
        try:
            entry = TimetableEntryOut.model_validate(get_entry(db, school_id, assignment.original_entry_id))
        except ResourceNotFoundError:
            entry = None
        results.append(
            SubstituteDetailOut(
                **SubstituteOut.model_validate(assignment).model_dump(),
                entry=entry,
                original_teacher_name=names.get(assignment.original_teacher_id),
                substitute_teacher_name=names.get(assignment.substitute_teacher_id),
            )
        )
    return results
