from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import Actor, get_current_actor, get_db
from app.models.enums import DayOfWeek
from app.models.room import RoomType
from app.schemas.availability import (
    FreeRoomsOut,
    FreeTeachersOut,
    SubstituteSuggestionsOut,
    TeacherFreePeriodsOut,
    TeachersOnLeaveOut,
)
from app.services import availability

router = APIRouter()


@router.get("/availability/free-teachers", response_model=FreeTeachersOut)
def free_teachers(
    school_id: str,
    day: DayOfWeek = Query(...),
    period_number: int = Query(..., ge=1, le=50),
    on_date: date | None = Query(default=None, alias="date"),
    current_actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> FreeTeachersOut:
    return availability.free_teachers(db, school_id, day, period_number, on_date=on_date)


@router.get("/availability/free-rooms", response_model=FreeRoomsOut)
def free_rooms(
    school_id: str,
    day: DayOfWeek = Query(...),
    period_number: int = Query(..., ge=1, le=50),
    room_type: RoomType | None = Query(default=None, alias="type"),
    current_actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> FreeRoomsOut:
    return availability.free_rooms(db, school_id, day, period_number, room_type=room_type)


@router.get("/availability/teachers-on-leave", response_model=TeachersOnLeaveOut)
def teachers_on_leave(
    school_id: str,
    on_date: date = Query(..., alias="date"),
    current_actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> TeachersOnLeaveOut:
    return availability.teachers_on_leave(db, school_id, on_date)


@router.get("/availability/substitute-suggestions", response_model=SubstituteSuggestionsOut)
def substitute_suggestions(
    school_id: str,
    entry_id: str = Query(...),
    on_date: date = Query(..., alias="date"),
    current_actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> SubstituteSuggestionsOut:
    return availability.suggest_substitutes(db, school_id, entry_id, on_date)


@router.get("/availability/teachers/{teacher_id}/free-periods", response_model=TeacherFreePeriodsOut)
def teacher_free_periods(
    school_id: str,
    teacher_id: str,
    day: DayOfWeek | None = Query(default=None),
    current_actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> TeacherFreePeriodsOut:
    return availability.teacher_free_periods(db, school_id, teacher_id, day)
