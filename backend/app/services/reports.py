from __future__ import annotations

from collections import defaultdict
from datetime import date
from typing import Literal

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.exceptions import ResourceNotFoundError, ValidationError
from app.models.enums import DayOfWeek, LifecycleStatus
from app.models.period_swap import PeriodSwapRequest, SwapStatus
from app.models.room import Room
from app.models.school_class import SchoolClass
from app.models.subject import Subject
from app.models.substitute_assignment import SubstituteAssignment, SubstituteStatus
from app.models.teacher import Teacher
from app.models.timetable_entry import TimetableEntry
from app.schemas.report import (
    EffectiveEntryOut,
    EffectiveScheduleOut,
    GridAnomaly,
    GridCell,
    SubjectDistributionOut,
    SubjectRef,
    TeacherWorkloadOut,
    TimetableGridOut,
    TimetableSummaryOut,
    UnplacedEntry,
    WorkloadReportOut,
)
from app.schemas.timetable import TimetableEntryOut
from app.services import calendar
from app.services.availability import active_teachers
from app.services.timetable_store import list_entries, sort_entries


def _percentage(part: int, whole: int) -> int:
    if whole <= 0:
        return 0
    return round(part / whole * 100)


def _subjects_by_id(db: Session, school_id: str) -> dict[str, Subject]:
    return {item.id: item for item in db.execute(select(Subject).where(Subject.school_id == school_id)).scalars()}


def teacher_workload(db: Session, school_id: str, teacher_id: str | None = None) -> WorkloadReportOut:
    config = calendar.find_active_config(db, school_id)
    days = calendar.working_days(config)
    max_periods = len(calendar.regular_periods(config)) * len(days)
    subjects = _subjects_by_id(db, school_id)

    teachers = active_teachers(db, school_id)
    if teacher_id is not None:
        teachers = [item for item in teachers if item.id == teacher_id]

    by_teacher: dict[str, list[TimetableEntry]] = defaultdict(list)
    for entry in list_entries(db, school_id, teacher_id=teacher_id):
        by_teacher[entry.teacher_id].append(entry)

    rows: list[TeacherWorkloadOut] = []
    for teacher in teachers:
        entries = by_teacher.get(teacher.id, [])
        per_day = {day.value: 0 for day in days}
        for entry in entries:
            day = DayOfWeek(entry.day_of_week).value
            if day in per_day:
                per_day[day] += 1
        subject_ids = sorted({entry.subject_id for entry in entries})
        rows.append(
            TeacherWorkloadOut(
                teacher_id=teacher.id,
                teacher_name=teacher.full_name,
                email=teacher.email,
                periods_per_week=len(entries),
                max_periods_per_week=max_periods,
                workload_percentage=_percentage(len(entries), max_periods),
                periods_per_day=per_day,
                subjects=[
                    SubjectRef(subject_id=item, name=subjects[item].name if item in subjects else item)
                    for item in subject_ids
                ],
                class_count=len({entry.class_id for entry in entries}),
            )
        )
    rows.sort(key=lambda item: (-item.workload_percentage, item.teacher_name.lower()))

    average = round(sum(item.workload_percentage for item in rows) / len(rows)) if rows else 0
    return WorkloadReportOut(
        total_teachers=len(rows),
        average_workload_percentage=average,
        max_periods_per_week=max_periods,
        teachers=rows,
    )


def subject_distribution(db: Session, school_id: str, class_id: str | None = None) -> list[SubjectDistributionOut]:
    subjects = _subjects_by_id(db, school_id)
    periods: dict[str, int] = defaultdict(int)
    classes: dict[str, set[str]] = defaultdict(set)
    for entry in list_entries(db, school_id, class_id=class_id):
        periods[entry.subject_id] += 1
        classes[entry.subject_id].add(entry.class_id)

    rows = [
        SubjectDistributionOut(
            subject_id=subject_id,
            name=subjects[subject_id].name if subject_id in subjects else subject_id,
            code=subjects[subject_id].code if subject_id in subjects else "",
            periods_per_week=count,
            class_count=len(classes[subject_id]),
        )
        for subject_id, count in periods.items()
    ]
    rows.sort(key=lambda item: (-item.periods_per_week, item.name.lower()))
    return rows


def timetable_summary(db: Session, school_id: str) -> TimetableSummaryOut:
    config = calendar.find_active_config(db, school_id)
    entries = list_entries(db, school_id)
    teachers = active_teachers(db, school_id)
    classes = list(
        db.execute(
            select(SchoolClass).where(SchoolClass.school_id == school_id, SchoolClass.status == LifecycleStatus.active)
        ).scalars()
    )
    subject_count = len(
        [item for item in _subjects_by_id(db, school_id).values() if item.status == LifecycleStatus.active]
    )
    # A class without declared sections still fills one row of the grid.
    section_count = sum(max(1, len(item.sections or [])) for item in classes)
    periods_per_day = len(calendar.regular_periods(config))
    possible = len(calendar.working_days(config)) * periods_per_day * section_count

    return TimetableSummaryOut(
        has_active_config=config is not None,
        academic_year=config.academic_year if config is not None else None,
        working_days=list(config.working_days or []) if config is not None else [],
        periods_per_day=periods_per_day,
        total_entries=len(entries),
        total_teachers=len(teachers),
        total_classes=len(classes),
        total_sections=section_count,
        total_subjects=subject_count,
        fill_rate=_percentage(len(entries), possible),
    )


def timetable_grid(
    db: Session,
    school_id: str,
    kind: Literal["class", "teacher"],
    owner_id: str,
    section_id: str | None = None,
) -> TimetableGridOut:
    """Day by period grid for one class section or one teacher."""
    config = calendar.get_active_config(db, school_id)
    if kind == "class":
        school_class = db.get(SchoolClass, owner_id)
        owner_name = school_class.name if school_class is not None and school_class.school_id == school_id else owner_id
        entries = list_entries(db, school_id, class_id=owner_id, section_id=section_id)
    elif kind == "teacher":
        teacher = db.get(Teacher, owner_id)
        if teacher is None or teacher.school_id != school_id:
            raise ResourceNotFoundError("Teacher", owner_id)
        owner_name = teacher.full_name
        entries = list_entries(db, school_id, teacher_id=owner_id)
    else:
        raise ValidationError("Grid kind must be 'class' or 'teacher'", details={"kind": kind})

    period_numbers = [int(item["period_number"]) for item in calendar.schedulable_periods(config)]
    days = calendar.working_days(config)
    subjects = _subjects_by_id(db, school_id)
    teacher_names = {item.id: item.full_name for item in active_teachers(db, school_id)}
    class_names = {
        item.id: item.name
        for item in db.execute(select(SchoolClass).where(SchoolClass.school_id == school_id)).scalars()
    }
    room_names = {item.id: item.name for item in db.execute(select(Room).where(Room.school_id == school_id)).scalars()}

    placed: dict[tuple[DayOfWeek, int], list[TimetableEntry]] = defaultdict(list)
    unplaced: list[UnplacedEntry] = []
    for entry in entries:
        day = DayOfWeek(entry.day_of_week)
        if day not in days:
            unplaced.append(UnplacedEntry(entry=TimetableEntryOut.model_validate(entry), reason="day_not_working"))
        elif entry.period_number not in period_numbers:
            unplaced.append(UnplacedEntry(entry=TimetableEntryOut.model_validate(entry), reason="period_undefined"))
        else:
            placed[(day, entry.period_number)].append(entry)

    grid: dict[str, list[GridCell]] = {}
    anomalies: list[GridAnomaly] = []
    for day in days:
        cells = []
        for period_number in period_numbers:
            occupants = placed.get((day, period_number), [])
            if len(occupants) > 1:
                anomalies.append(
                    GridAnomaly(day_of_week=day, period_number=period_number, entries=[item.id for item in occupants])
                )
            if not occupants:
                cells.append(GridCell(period_number=period_number))
                continue
            entry = occupants[0]
            cells.append(
                GridCell(
                    period_number=period_number,
                    entry=TimetableEntryOut.model_validate(entry),
                    subject_name=subjects[entry.subject_id].name if entry.subject_id in subjects else entry.subject_id,
                    teacher_name=teacher_names.get(entry.teacher_id, entry.teacher_id),
                    class_name=class_names.get(entry.class_id, entry.class_id),
                    room_name=room_names.get(entry.room_id) if entry.room_id else None,
                )
            )
        grid[day.value] = cells

    return TimetableGridOut(
        kind=kind,
        owner_id=owner_id,
        owner_name=owner_name,
        section_id=section_id,
        academic_year=config.academic_year,
        period_numbers=period_numbers,
        days=grid,
        unplaced_entries=unplaced,
        anomalies=anomalies,
    )


def _runs_on(entry: TimetableEntry, on_date: date) -> bool:
    if entry.effective_from and on_date < entry.effective_from:
        return False
    if entry.effective_to and on_date > entry.effective_to:
        return False
    return True


def effective_schedule(
    db: Session,
    school_id: str,
    on_date: date,
    *,
    teacher_id: str | None = None,
    class_id: str | None = None,
) -> EffectiveScheduleOut:
    """Weekly entries for the date with approved swaps and live substitutions applied."""
    day = DayOfWeek.from_date(on_date)
    entries = [item for item in list_entries(db, school_id, day=day) if _runs_on(item, on_date)]
    by_id = {item.id: item for item in entries}

    rows: dict[str, EffectiveEntryOut] = {
        item.id: EffectiveEntryOut(
            entry=TimetableEntryOut.model_validate(item),
            teaching_teacher_id=item.teacher_id,
            source="weekly",
        )
        for item in entries
    }

    swaps = db.execute(
        select(PeriodSwapRequest)
        .where(
            PeriodSwapRequest.school_id == school_id,
            PeriodSwapRequest.swap_date == on_date,
            PeriodSwapRequest.status == SwapStatus.approved,
        )
        .order_by(PeriodSwapRequest.approved_at)
    ).scalars()
    for swap in swaps:
        first, second = by_id.get(swap.entry_id_1), by_id.get(swap.entry_id_2)
        if first is None or second is None:
            continue
        # A swap touching an entry already swapped that day is applied on neither side.
        if rows[first.id].source != "weekly" or rows[second.id].source != "weekly":
            continue
        for entry, other in ((first, second), (second, first)):
            rows[entry.id] = EffectiveEntryOut(
                entry=TimetableEntryOut.model_validate(entry),
                teaching_teacher_id=other.teacher_id,
                source="swap",
                swap_id=swap.id,
                swapped_with_entry_id=other.id,
            )

    substitutes = db.execute(
        select(SubstituteAssignment).where(
            SubstituteAssignment.school_id == school_id,
            SubstituteAssignment.assignment_date == on_date,
            SubstituteAssignment.status.in_([SubstituteStatus.confirmed, SubstituteStatus.completed]),
        )
    ).scalars()
    for assignment in substitutes:
        entry = by_id.get(assignment.original_entry_id)
        if entry is None:
            continue
        rows[entry.id] = EffectiveEntryOut(
            entry=TimetableEntryOut.model_validate(entry),
            teaching_teacher_id=assignment.substitute_teacher_id,
            source="substitute",
            substitute_id=assignment.id,
        )

    ordered = [rows[item.id] for item in sort_entries(entries)]
    if teacher_id is not None:
        ordered = [item for item in ordered if item.teaching_teacher_id == teacher_id]
    if class_id is not None:
        ordered = [item for item in ordered if item.entry.class_id == class_id]
    return EffectiveScheduleOut(on_date=on_date, day_of_week=day, entries=ordered)
