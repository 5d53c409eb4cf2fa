from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.deps import Actor, ActorRole, get_current_actor, get_db, require_roles
from app.schemas.calendar import (
    PeriodDefinition,
    ShiftDefinition,
    TimetableConfigCreate,
    TimetableConfigOut,
    TimetableConfigUpdate,
)
from app.services import calendar
from app.services.audit import log_activity

router = APIRouter()

SCHEDULERS = (ActorRole.admin, ActorRole.scheduler)


def _commit(db: Session, config, *, school_id: str, actor: Actor, action: str, details: dict | None = None):
    log_activity(
        db,
        school_id=school_id,
        actor_id=actor.id,
        action=action,
        entity_type="timetable_config",
        entity_id=config.id,
        details=details,
    )
    db.commit()
    db.refresh(config)
    return config


@router.get("/timetable/configs", response_model=list[TimetableConfigOut])
def list_configs(
    school_id: str,
    include_inactive: bool = Query(default=False),
    current_actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> list[TimetableConfigOut]:
    return calendar.list_configs(db, school_id, include_inactive=include_inactive)


@router.post("/timetable/configs", response_model=TimetableConfigOut, status_code=status.HTTP_201_CREATED)
def create_config(
    school_id: str,
    payload: TimetableConfigCreate,
    current_actor: Actor = Depends(require_roles(*SCHEDULERS)),
    db: Session = Depends(get_db),
) -> TimetableConfigOut:
    config = calendar.create_config(db, school_id, payload)
    return _commit(
        db,
        config,
        school_id=school_id,
        actor=current_actor,
        action="timetable.config.create",
        details={"academic_year": config.academic_year},
    )


@router.get("/timetable/configs/active", response_model=TimetableConfigOut)
def get_active_config(
    school_id: str,
    current_actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> TimetableConfigOut:
    return calendar.get_active_config(db, school_id)


@router.get("/timetable/configs/{config_id}", response_model=TimetableConfigOut)
def get_config(
    school_id: str,
    config_id: str,
    current_actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> TimetableConfigOut:
    return calendar.get_config(db, school_id, config_id)


@router.put("/timetable/configs/{config_id}", response_model=TimetableConfigOut)
def update_config(
    school_id: str,
    config_id: str,
    payload: TimetableConfigUpdate,
    current_actor: Actor = Depends(require_roles(*SCHEDULERS)),
    db: Session = Depends(get_db),
) -> TimetableConfigOut:
    config = calendar.update_config(db, school_id, config_id, payload)
    return _commit(
        db,
        config,
        school_id=school_id,
        actor=current_actor,
        action="timetable.config.update",
        details={"fields": sorted(payload.model_dump(exclude_unset=True))},
    )


@router.delete("/timetable/configs/{config_id}", response_model=TimetableConfigOut)
def delete_config(
    school_id: str,
    config_id: str,
    current_actor: Actor = Depends(require_roles(*SCHEDULERS)),
    db: Session = Depends(get_db),
) -> TimetableConfigOut:
    config = calendar.delete_config(db, school_id, config_id)
    return _commit(db, config, school_id=school_id, actor=current_actor, action="timetable.config.delete")


@router.post("/timetable/configs/{config_id}/activate", response_model=TimetableConfigOut)
def activate_config(
    school_id: str,
    config_id: str,
    current_actor: Actor = Depends(require_roles(*SCHEDULERS)),
    db: Session = Depends(get_db),
) -> TimetableConfigOut:
    config = calendar.set_active_config(db, school_id, config_id)
    return _commit(db, config, school_id=school_id, actor=current_actor, action="timetable.config.activate")


@router.put("/timetable/configs/{config_id}/periods", response_model=TimetableConfigOut)
def upsert_period(
    school_id: str,
    config_id: str,
    payload: PeriodDefinition,
    current_actor: Actor = Depends(require_roles(*SCHEDULERS)),
    db: Session = Depends(get_db),
) -> TimetableConfigOut:
    config = calendar.upsert_period(db, school_id, config_id, payload)
    return _commit(
        db,
        config,
        school_id=school_id,
        actor=current_actor,
        action="timetable.config.period.upsert",
        details={"period_number": payload.period_number},
    )


@router.delete("/timetable/configs/{config_id}/periods/{period_number}", response_model=TimetableConfigOut)
def remove_period(
    school_id: str,
    config_id: str,
    period_number: int,
    current_actor: Actor = Depends(require_roles(*SCHEDULERS)),
    db: Session = Depends(get_db),
) -> TimetableConfigOut:
    config = calendar.remove_period(db, school_id, config_id, period_number)
    return _commit(
        db,
        config,
        school_id=school_id,
        actor=current_actor,
        action="timetable.config.period.remove",
        details={"period_number": period_number},
    )


@router.put("/timetable/configs/{config_id}/shifts", response_model=TimetableConfigOut)
def upsert_shift(
    school_id: str,
    config_id: str,
    payload: ShiftDefinition,
    current_actor: Actor = Depends(require_roles(*SCHEDULERS)),
    db: Session = Depends(get_db),
) -> TimetableConfigOut:
    config = calendar.upsert_shift(db, school_id, config_id, payload)
    return _commit(
        db,
        config,
        school_id=school_id,
        actor=current_actor,
        action="timetable.config.shift.upsert",
        details={"shift_id": payload.shift_id},
    )


@router.delete("/timetable/configs/{config_id}/shifts/{shift_id}", response_model=TimetableConfigOut)
def remove_shift(
    school_id: str,
    config_id: str,
    shift_id: str,
    current_actor: Actor = Depends(require_roles(*SCHEDULERS)),
    db: Session = Depends(get_db),
) -> TimetableConfigOut:
    config = calendar.remove_shift(db, school_id, config_id, shift_id)
    return _commit(
        db,
        config,
        school_id=school_id,
        actor=current_actor,
        action="timetable.config.shift.remove",
        details={"shift_id": shift_id},
    )
