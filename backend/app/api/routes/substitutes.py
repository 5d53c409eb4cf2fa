from datetime import date

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.deps import Actor, ActorRole, get_current_actor, get_db, require_roles
from app.schemas.substitute import (
    CompletedSubstitutesOut,
    SubstituteCreate,
    SubstituteDetailOut,
    SubstituteOut,
    SubstituteStatusUpdate,
)
from app.services import substitutes
from app.services.audit import log_activity

router = APIRouter()

SCHEDULERS = (ActorRole.admin, ActorRole.scheduler)


@router.post("/substitutes", response_model=SubstituteOut, status_code=status.HTTP_201_CREATED)
def create_substitute(
    school_id: str,
    payload: SubstituteCreate,
    current_actor: Actor = Depends(require_roles(ActorRole.admin, ActorRole.scheduler, ActorRole.teacher)),
    db: Session = Depends(get_db),
) -> SubstituteOut:
    assignment = substitutes.create_substitute(db, school_id, payload, created_by=current_actor.id)
    log_activity(
        db,
        school_id=school_id,
        actor_id=current_actor.id,
        action="substitute.create",
        entity_type="substitute_assignment",
        entity_id=assignment.id,
        details={
            "original_entry_id": assignment.original_entry_id,
            "substitute_teacher_id": assignment.substitute_teacher_id,
            "assignment_date": assignment.assignment_date.isoformat(),
            "status": assignment.status.value,
        },
    )
    db.commit()
    db.refresh(assignment)
    return assignment


@router.get("/substitutes/date/{on_date}", response_model=list[SubstituteDetailOut])
def substitutes_for_date(
    school_id: str,
    on_date: date,
    current_actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> list[SubstituteDetailOut]:
    rows = substitutes.list_substitutes_for_date(db, school_id, on_date)
    return substitutes.describe(db, school_id, rows)


@router.get("/substitutes/history", response_model=list[SubstituteDetailOut])
def substitute_history(
    school_id: str,
    teacher_id: str | None = Query(default=None),
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    limit: int | None = Query(default=None, ge=1, le=500),
    current_actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> list[SubstituteDetailOut]:
    rows = substitutes.substitute_history(
        db,
        school_id,
        teacher_id=teacher_id,
        start_date=start_date,
        end_date=end_date,
        limit=limit,
    )
    return substitutes.describe(db, school_id, rows)


@router.post("/substitutes/complete-elapsed", response_model=CompletedSubstitutesOut)
def complete_elapsed_substitutes(
    school_id: str,
    today: date | None = Query(default=None),
    current_actor: Actor = Depends(require_roles(*SCHEDULERS)),
    db: Session = Depends(get_db),
) -> CompletedSubstitutesOut:
    rows = substitutes.complete_elapsed_substitutes(db, school_id, today or date.today())
    log_activity(
        db,
        school_id=school_id,
        actor_id=current_actor.id,
        action="substitute.complete_elapsed",
        entity_type="substitute_assignment",
        details={"completed_count": len(rows)},
    )
    db.commit()
    return CompletedSubstitutesOut(completed_count=len(rows), substitute_ids=[item.id for item in rows])


@router.post("/substitutes/{substitute_id}/cancel", response_model=SubstituteOut)
def cancel_substitute(
    school_id: str,
    substitute_id: str,
    current_actor: Actor = Depends(require_roles(*SCHEDULERS)),
    db: Session = Depends(get_db),
) -> SubstituteOut:
    assignment = substitutes.cancel_substitute(db, school_id, substitute_id)
    log_activity(
        db,
        school_id=school_id,
        actor_id=current_actor.id,
        action="substitute.cancel",
        entity_type="substitute_assignment",
        entity_id=assignment.id,
    )
    db.commit()
    db.refresh(assignment)
    return assignment


@router.patch("/substitutes/{substitute_id}/status", response_model=SubstituteOut)
def update_substitute_status(
    school_id: str,
    substitute_id: str,
    payload: SubstituteStatusUpdate,
    current_actor: Actor = Depends(require_roles(*SCHEDULERS)),
    db: Session = Depends(get_db),
) -> SubstituteOut:
    assignment = substitutes.update_substitute_status(db, school_id, substitute_id, payload.status)
    log_activity(
        db,
        school_id=school_id,
        actor_id=current_actor.id,
        action="substitute.status",
        entity_type="substitute_assignment",
        entity_id=assignment.id,
        details={"status": assignment.status.value},
    )
    db.commit()
    db.refresh(assignment)
    return assignment
