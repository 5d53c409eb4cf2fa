from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.deps import Actor, ActorRole, get_current_actor, get_db, require_roles
from app.models.period_swap import SwapStatus
from app.schemas.period_swap import SwapReject, SwapRequestCreate, SwapRequestDetailOut, SwapRequestOut
from app.services import period_swaps
from app.services.audit import log_activity

router = APIRouter()

SCHEDULERS = (ActorRole.admin, ActorRole.scheduler)


def _audit(db: Session, swap, *, school_id: str, actor: Actor, action: str, details: dict | None = None) -> None:
    log_activity(
        db,
        school_id=school_id,
        actor_id=actor.id,
        action=action,
        entity_type="period_swap_request",
        entity_id=swap.id,
        details=details,
    )


@router.post("/period-swaps", response_model=SwapRequestOut, status_code=status.HTTP_201_CREATED)
def request_swap(
    school_id: str,
    payload: SwapRequestCreate,
    current_actor: Actor = Depends(require_roles(ActorRole.admin, ActorRole.scheduler, ActorRole.teacher)),
    db: Session = Depends(get_db),
) -> SwapRequestOut:
    swap = period_swaps.request_swap(db, school_id, payload, requested_by=current_actor.id)
    _audit(
        db,
        swap,
        school_id=school_id,
        actor=current_actor,
        action="period_swap.request",
        details={"entries": [swap.entry_id_1, swap.entry_id_2], "swap_date": swap.swap_date.isoformat()},
    )
    db.commit()
    db.refresh(swap)
    return swap


@router.get("/period-swaps", response_model=list[SwapRequestDetailOut])
def list_swaps(
    school_id: str,
    swap_status: SwapStatus | None = Query(default=None, alias="status"),
    requested_by: str | None = Query(default=None),
    current_actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> list[SwapRequestDetailOut]:
    rows = period_swaps.list_swaps(db, school_id, status=swap_status, requested_by=requested_by)
    return period_swaps.describe(db, school_id, rows)


@router.post("/period-swaps/{swap_id}/approve", response_model=SwapRequestOut)
def approve_swap(
    school_id: str,
    swap_id: str,
    current_actor: Actor = Depends(require_roles(*SCHEDULERS)),
    db: Session = Depends(get_db),
) -> SwapRequestOut:
    swap = period_swaps.approve_swap(db, school_id, swap_id, approved_by=current_actor.id)
    _audit(db, swap, school_id=school_id, actor=current_actor, action="period_swap.approve")
    db.commit()
    db.refresh(swap)
    return swap


@router.post("/period-swaps/{swap_id}/reject", response_model=SwapRequestOut)
def reject_swap(
    school_id: str,
    swap_id: str,
    payload: SwapReject,
    current_actor: Actor = Depends(require_roles(*SCHEDULERS)),
    db: Session = Depends(get_db),
) -> SwapRequestOut:
    swap = period_swaps.reject_swap(
        db,
        school_id,
        swap_id,
        rejected_by=current_actor.id,
        rejection_reason=payload.rejection_reason,
    )
    _audit(
        db,
        swap,
        school_id=school_id,
        actor=current_actor,
        action="period_swap.reject",
        details={"rejection_reason": payload.rejection_reason},
    )
    db.commit()
    db.refresh(swap)
    return swap


@router.post("/period-swaps/{swap_id}/cancel", response_model=SwapRequestOut)
def cancel_swap(
    school_id: str,
    swap_id: str,
    current_actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> SwapRequestOut:
    swap = period_swaps.cancel_swap(
        db,
        school_id,
        swap_id,
        actor_id=current_actor.id,
        is_admin=current_actor.is_admin,
    )
    _audit(db, swap, school_id=school_id, actor=current_actor, action="period_swap.cancel")
    db.commit()
    db.refresh(swap)
    return swap
