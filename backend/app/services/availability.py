from __future__ import annotations

import logging
from collections import Counter
from datetime import date

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.core.exceptions import ResourceNotFoundError, ValidationError
from app.models.enums import DayOfWeek, LifecycleStatus
from app.models.leave_request import ApplicantType, LeaveRequest, LeaveStatus
from app.models.room import RoomType
from app.models.substitute_assignment import OPEN_SUBSTITUTE_STATUSES, SubstituteAssignment
from app.models.teacher import Teacher
from app.models.timetable_entry import TimetableEntry
from app.schemas.availability import (
    FreePeriodOut,
    FreeRoomsOut,
    FreeTeacherOut,
    FreeTeachersOut,
    SubstituteCandidateOut,
    SubstituteSuggestionsOut,
    TeacherFreePeriodsOut,
    TeacherLeaveOut,
    TeachersOnLeaveOut,
)
from app.schemas.room import RoomAvailabilityOut, RoomBookedPeriod, RoomOut
from app.services import calendar, rooms
from app.services.timetable_store import get_active_entry, list_entries

logger = logging.getLogger(__name__)

BUSY_SCHEDULED = "scheduled"
BUSY_ON_LEAVE = "on_leave"
BUSY_COVERING = "covering"


def active_teachers(db: Session, school_id: str) -> list[Teacher]:
    query = select(Teacher).where(Teacher.school_id == school_id, Teacher.status == LifecycleStatus.active)
    return list(db.execute(query.order_by(Teacher.first_name, Teacher.last_name)).scalars())


def _leaves_on(db: Session, school_id: str, on_date: date) -> list[LeaveRequest]:
    query = select(LeaveRequest).where(
        LeaveRequest.school_id == school_id,
        LeaveRequest.applicant_type == ApplicantType.teacher,
        LeaveRequest.status == LeaveStatus.approved,
        LeaveRequest.start_date <= on_date,
        LeaveRequest.end_date >= on_date,
    )
    return list(db.execute(query.order_by(LeaveRequest.start_date)).scalars())


def _busy_teacher_ids(db: Session, school_id: str, day: DayOfWeek, period_number: int) -> set[str]:
    query = select(TimetableEntry.teacher_id).where(
        TimetableEntry.school_id == school_id,
        TimetableEntry.day_of_week == day,
        TimetableEntry.period_number == period_number,
        TimetableEntry.status == LifecycleStatus.active,
    )
    return set(db.execute(query).scalars())


def _covering_assignments(
    db: Session,
    school_id: str,
    day: DayOfWeek,
    period_number: int,
    on_date: date,
    teacher_id: str | None = None,
) -> list[SubstituteAssignment]:
    query = (
        select(SubstituteAssignment)
        .join(TimetableEntry, TimetableEntry.id == SubstituteAssignment.original_entry_id)
        .where(
            SubstituteAssignment.school_id == school_id,
            SubstituteAssignment.assignment_date == on_date,
            SubstituteAssignment.status.in_(OPEN_SUBSTITUTE_STATUSES),
            TimetableEntry.day_of_week == day,
            TimetableEntry.period_number == period_number,
        )
    )
    if teacher_id is not None:
        query = query.where(SubstituteAssignment.substitute_teacher_id == teacher_id)
    return list(db.execute(query).scalars())


def substitute_busy_reason(
    db: Session,
    school_id: str,
    teacher_id: str,
    day: DayOfWeek,
    period_number: int,
    on_date: date | None = None,
) -> tuple[str, list[str]] | None:
    """Why the teacher cannot take this slot, or None when they are free.

    Returns the reason and the ids of the blocking entries or assignments.
    """
    scheduled = list_entries(db, school_id, teacher_id=teacher_id, day=day, period_number=period_number)
    if scheduled:
        return BUSY_SCHEDULED, [item.id for item in scheduled]
    if on_date is None:
        return None
    leaves = [item for item in _leaves_on(db, school_id, on_date) if item.applicant_id == teacher_id]
    if leaves:
        return BUSY_ON_LEAVE, [item.id for item in leaves]
    covering = _covering_assignments(db, school_id, day, period_number, on_date, teacher_id=teacher_id)
    if covering:
        return BUSY_COVERING, [item.id for item in covering]
    return None


def free_teachers(
    db: Session,
    school_id: str,
    day: DayOfWeek,
    period_number: int,
    on_date: date | None = None,
) -> FreeTeachersOut:
    if on_date is not None and DayOfWeek.from_date(on_date) != day:
        raise ValidationError(
            f"{on_date.isoformat()} is not a {day.value}",
            details={"on_date": on_date.isoformat(), "day_of_week": day.value},
        )
    config = calendar.find_active_config(db, school_id)
    excluded = _busy_teacher_ids(db, school_id, day, period_number)
    if on_date is not None:
        excluded |= {item.applicant_id for item in _leaves_on(db, school_id, on_date)}
        excluded |= {
            item.substitute_teacher_id
            for item in _covering_assignments(db, school_id, day, period_number, on_date)
        }
    teachers = [
        FreeTeacherOut(
            teacher_id=item.id,
            name=item.full_name,
            email=item.email,
            department=item.department,
            subjects=list(item.subjects or []),
        )
        for item in active_teachers(db, school_id)
        if item.id not in excluded
    ]
    return FreeTeachersOut(
        day_of_week=day,
        period_number=period_number,
        period_defined=period_number in calendar.period_map(config),
        on_date=on_date,
        teachers=teachers,
    )


def free_rooms(
    db: Session,
    school_id: str,
    day: DayOfWeek,
    period_number: int,
    room_type: RoomType | None = None,
) -> FreeRoomsOut:
    config = calendar.find_active_config(db, school_id)
    booked = {
        item.room_id
        for item in list_entries(db, school_id, day=day, period_number=period_number)
        if item.room_id
    }
    candidates = [
        item
        for item in rooms.list_rooms(db, school_id, room_type=room_type)
        if item.is_bookable and item.id not in booked
    ]
    return FreeRoomsOut(
        day_of_week=day,
        period_number=period_number,
        period_defined=period_number in calendar.period_map(config),
        rooms=[RoomOut.model_validate(item) for item in candidates],
    )


def teachers_on_leave(db: Session, school_id: str, on_date: date) -> TeachersOnLeaveOut:
    leaves = _leaves_on(db, school_id, on_date)
    teacher_ids = sorted({item.applicant_id for item in leaves})
    return TeachersOnLeaveOut(
        on_date=on_date,
        teacher_ids=teacher_ids,
        leaves=[
            TeacherLeaveOut(
                teacher_id=item.applicant_id,
                teacher_name=item.applicant_name,
                leave_type=item.leave_type,
                reason=item.reason,
                start_date=item.start_date,
                end_date=item.end_date,
            )
            for item in leaves
        ],
    )


def weekly_load(db: Session, school_id: str) -> Counter:
    query = (
        select(TimetableEntry.teacher_id, func.count(TimetableEntry.id))
        .where(TimetableEntry.school_id == school_id, TimetableEntry.status == LifecycleStatus.active)
        .group_by(TimetableEntry.teacher_id)
    )
    return Counter({teacher_id: count for teacher_id, count in db.execute(query)})


def subject_match(teacher: Teacher, subject_id: str) -> str | None:
    """'explicit' or 'unrestricted' when the teacher may cover the subject, else None."""
    subjects = list(teacher.subjects or [])
    if not subjects:
        return "unrestricted"
    if subject_id in subjects:
        return "explicit"
    return None


def suggest_substitutes(db: Session, school_id: str, entry_id: str, on_date: date) -> SubstituteSuggestionsOut:
    entry = get_active_entry(db, school_id, entry_id)
    day = DayOfWeek(entry.day_of_week)
    free = free_teachers(db, school_id, day, entry.period_number, on_date=on_date)
    free_ids = {item.teacher_id for item in free.teachers}
    loads = weekly_load(db, school_id)

    candidates: list[SubstituteCandidateOut] = []
    for teacher in active_teachers(db, school_id):
        if teacher.id not in free_ids or teacher.id == entry.teacher_id:
            continue
        match = subject_match(teacher, entry.subject_id)
        if match is None:
            continue
        candidates.append(
            SubstituteCandidateOut(
                teacher_id=teacher.id,
                name=teacher.full_name,
                subject_match=match,
                weekly_periods=loads.get(teacher.id, 0),
            )
        )
    candidates.sort(key=lambda item: (item.subject_match != "explicit", item.weekly_periods, item.name.lower()))
    return SubstituteSuggestionsOut(
        entry_id=entry.id,
        on_date=on_date,
        day_of_week=day,
        period_number=entry.period_number,
        subject_id=entry.subject_id,
        candidates=candidates,
    )


def teacher_free_periods(
    db: Session,
    school_id: str,
    teacher_id: str,
    day: DayOfWeek | None = None,
) -> TeacherFreePeriodsOut:
    config = calendar.get_active_config(db, school_id)
    teacher = db.get(Teacher, teacher_id)
    if teacher is None or teacher.school_id != school_id:
        raise ResourceNotFoundError("Teacher", teacher_id)

    days = [day] if day is not None else calendar.working_days(config)
    occupied: dict[DayOfWeek, set[int]] = {}
    for entry in list_entries(db, school_id, teacher_id=teacher_id):
        occupied.setdefault(DayOfWeek(entry.day_of_week), set()).add(entry.period_number)

    periods = calendar.schedulable_periods(config)
    result: dict[str, list[FreePeriodOut]] = {}
    for current in days:
        taken = occupied.get(current, set())
        result[current.value] = [
            FreePeriodOut(
                period_number=int(item["period_number"]),
                name=item.get("name"),
                start_time=item["start_time"],
                end_time=item["end_time"],
            )
            for item in periods
            if int(item["period_number"]) not in taken
        ]
    return TeacherFreePeriodsOut(teacher_id=teacher_id, free_periods=result)


def room_bookings(db: Session, school_id: str, room_id: str, day: DayOfWeek) -> RoomAvailabilityOut:
    room = rooms.get_room(db, school_id, room_id)
    config = calendar.find_active_config(db, school_id)
    booked = list_entries(db, school_id, room_id=room_id, day=day)
    booked_numbers = {item.period_number for item in booked}
    return RoomAvailabilityOut(
        room=RoomOut.model_validate(room),
        day_of_week=day,
        booked_periods=[
            RoomBookedPeriod(
                entry_id=item.id,
                period_number=item.period_number,
                class_id=item.class_id,
                section_id=item.section_id,
                subject_id=item.subject_id,
                teacher_id=item.teacher_id,
            )
            for item in booked
        ],
        free_periods=[
            int(item["period_number"])
            for item in calendar.schedulable_periods(config)
            if int(item["period_number"]) not in booked_numbers
        ],
    )
