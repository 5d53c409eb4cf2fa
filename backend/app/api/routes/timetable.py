from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.deps import Actor, ActorRole, get_current_actor, get_db, require_roles
from app.models.enums import DayOfWeek
from app.schemas.timetable import (
    BulkEntryCreate,
    BulkEntryResult,
    ScheduleView,
    TimetableEntryCreate,
    TimetableEntryOut,
    TimetableEntryUpdate,
)
from app.services import timetable_store
from app.services.audit import log_activity

router = APIRouter()

SCHEDULERS = (ActorRole.admin, ActorRole.scheduler)


def _entry_details(entry) -> dict:
    return {
        "teacher_id": entry.teacher_id,
        "class_id": entry.class_id,
        "section_id": entry.section_id,
        "day_of_week": entry.day_of_week.value,
        "period_number": entry.period_number,
        "room_id": entry.room_id,
    }


@router.get("/timetable/entries", response_model=ScheduleView)
def list_entries(
    school_id: str,
    include_inactive: bool = Query(default=False),
    current_actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> ScheduleView:
    entries = timetable_store.list_entries(db, school_id, include_inactive=include_inactive)
    return timetable_store.schedule_view(db, school_id, entries)


@router.post("/timetable/entries", response_model=TimetableEntryOut, status_code=status.HTTP_201_CREATED)
def create_entry(
    school_id: str,
    payload: TimetableEntryCreate,
    current_actor: Actor = Depends(require_roles(*SCHEDULERS)),
    db: Session = Depends(get_db),
) -> TimetableEntryOut:
    entry = timetable_store.create_entry(db, school_id, payload)
    log_activity(
        db,
        school_id=school_id,
        actor_id=current_actor.id,
        action="timetable.entry.create",
        entity_type="timetable_entry",
        entity_id=entry.id,
        details=_entry_details(entry),
    )
    db.commit()
    db.refresh(entry)
    return entry


@router.post("/timetable/entries/bulk", response_model=BulkEntryResult)
def bulk_create_entries(
    school_id: str,
    payload: BulkEntryCreate,
    current_actor: Actor = Depends(require_roles(*SCHEDULERS)),
    db: Session = Depends(get_db),
) -> BulkEntryResult:
    result = timetable_store.bulk_create_entries(db, school_id, payload.entries)
    log_activity(
        db,
        school_id=school_id,
        actor_id=current_actor.id,
        action="timetable.entry.bulk_create",
        entity_type="timetable_entry",
        details={"created": len(result["created"]), "failed": len(result["failed"])},
    )
    db.commit()
    for entry in result["created"]:
        db.refresh(entry)
    return BulkEntryResult(
        created=[TimetableEntryOut.model_validate(entry) for entry in result["created"]],
        failed=result["failed"],
    )


@router.get("/timetable/entries/class/{class_id}/{section_id}", response_model=ScheduleView)
def class_schedule(
    school_id: str,
    class_id: str,
    section_id: str,
    current_actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> ScheduleView:
    entries = timetable_store.list_entries(db, school_id, class_id=class_id, section_id=section_id)
    return timetable_store.schedule_view(db, school_id, entries)


@router.get("/timetable/entries/teacher/{teacher_id}", response_model=ScheduleView)
def teacher_schedule(
    school_id: str,
    teacher_id: str,
    current_actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> ScheduleView:
    entries = timetable_store.list_entries(db, school_id, teacher_id=teacher_id)
    return timetable_store.schedule_view(db, school_id, entries)


@router.get("/timetable/entries/room/{room_id}", response_model=ScheduleView)
def room_schedule(
    school_id: str,
    room_id: str,
    current_actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> ScheduleView:
    entries = timetable_store.list_entries(db, school_id, room_id=room_id)
    return timetable_store.schedule_view(db, school_id, entries)


@router.get("/timetable/entries/day/{day}", response_model=ScheduleView)
def day_schedule(
    school_id: str,
    day: DayOfWeek,
    current_actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> ScheduleView:
    entries = timetable_store.list_entries(db, school_id, day=day)
    return timetable_store.schedule_view(db, school_id, entries)


@router.get("/timetable/entries/{entry_id}", response_model=TimetableEntryOut)
def get_entry(
    school_id: str,
    entry_id: str,
    current_actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> TimetableEntryOut:
    return timetable_store.get_entry(db, school_id, entry_id)


@router.put("/timetable/entries/{entry_id}", response_model=TimetableEntryOut)
def update_entry(
    school_id: str,
    entry_id: str,
    payload: TimetableEntryUpdate,
    current_actor: Actor = Depends(require_roles(*SCHEDULERS)),
    db: Session = Depends(get_db),
) -> TimetableEntryOut:
    entry = timetable_store.update_entry(db, school_id, entry_id, payload)
    log_activity(
        db,
        school_id=school_id,
        actor_id=current_actor.id,
        action="timetable.entry.update",
        entity_type="timetable_entry",
        entity_id=entry.id,
        details={"fields": sorted(payload.model_dump(exclude_unset=True)), **_entry_details(entry)},
    )
    db.commit()
    db.refresh(entry)
    return entry


@router.delete("/timetable/entries/{entry_id}", response_model=TimetableEntryOut)
def deactivate_entry(
    school_id: str,
    entry_id: str,
    current_actor: Actor = Depends(require_roles(*SCHEDULERS)),
    db: Session = Depends(get_db),
) -> TimetableEntryOut:
    entry = timetable_store.deactivate_entry(db, school_id, entry_id)
    log_activity(
        db,
        school_id=school_id,
        actor_id=current_actor.id,
        action="timetable.entry.deactivate",
        entity_type="timetable_entry",
        entity_id=entry.id,
    )
    db.commit()
    db.refresh(entry)
    return entry
