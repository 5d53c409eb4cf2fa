from datetime import date
from typing import Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import Actor, get_current_actor, get_db
from app.schemas.report import (
    EffectiveScheduleOut,
    SubjectDistributionOut,
    TimetableGridOut,
    TimetableSummaryOut,
    WorkloadReportOut,
)
from app.services import reports

router = APIRouter()


@router.get("/reports/workload", response_model=WorkloadReportOut)
def teacher_workload(
    school_id: str,
    teacher_id: str | None = Query(default=None),
    current_actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> WorkloadReportOut:
    return reports.teacher_workload(db, school_id, teacher_id)


@router.get("/reports/subject-distribution", response_model=list[SubjectDistributionOut])
def subject_distribution(
    school_id: str,
    class_id: str | None = Query(default=None),
    current_actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> list[SubjectDistributionOut]:
    return reports.subject_distribution(db, school_id, class_id)


@router.get("/reports/summary", response_model=TimetableSummaryOut)
def timetable_summary(
    school_id: str,
    current_actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> TimetableSummaryOut:
    return reports.timetable_summary(db, school_id)


@router.get("/reports/grid", response_model=TimetableGridOut)
def timetable_grid(
    school_id: str,
    kind: Literal["class", "teacher"] = Query(...),
    owner_id: str = Query(..., alias="id"),
    section_id: str | None = Query(default=None),
    current_actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> TimetableGridOut:
    return reports.timetable_grid(db, school_id, kind, owner_id, section_id)


@router.get("/reports/effective", response_model=EffectiveScheduleOut)
def effective_schedule(
    school_id: str,
    on_date: date = Query(..., alias="date"),
    teacher_id: str | None = Query(default=None),
    class_id: str | None = Query(default=None),
    current_actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> EffectiveScheduleOut:
    return reports.effective_schedule(db, school_id, on_date, teacher_id=teacher_id, class_id=class_id)
