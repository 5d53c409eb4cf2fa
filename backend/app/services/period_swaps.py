from __future__ import annotations

import logging
from datetime import date, datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.exceptions import (
    DuplicateSwapRequestError,
    InvalidStateError,
    PermissionDeniedError,
    ResourceNotFoundError,
    ValidationError,
)
from app.models.enums import DayOfWeek
from app.models.period_swap import PeriodSwapRequest, SwapStatus, swap_pair_key
from app.models.teacher import Teacher
from app.schemas.period_swap import SwapRequestCreate, SwapRequestDetailOut, SwapRequestOut
from app.schemas.timetable import TimetableEntryOut
from app.services.timetable_store import get_active_entry, get_entry

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def get_swap(db: Session, school_id: str, swap_id: str) -> PeriodSwapRequest:
    swap = db.get(PeriodSwapRequest, swap_id)
    if swap is None or swap.school_id != school_id:
        raise ResourceNotFoundError("Period swap request", swap_id)
    return swap


def _pending_swap(db: Session, school_id: str, pair_key: str, on_date: date) -> PeriodSwapRequest | None:
    return db.execute(
        select(PeriodSwapRequest).where(
            PeriodSwapRequest.school_id == school_id,
            PeriodSwapRequest.pair_key == pair_key,
            PeriodSwapRequest.swap_date == on_date,
            PeriodSwapRequest.status == SwapStatus.pending,
        )
    ).scalars().first()


def request_swap(
    db: Session,
    school_id: str,
    payload: SwapRequestCreate,
    *,
    requested_by: str,
) -> PeriodSwapRequest:
    first = get_active_entry(db, school_id, payload.entry_id_1)
    second = get_active_entry(db, school_id, payload.entry_id_2)
    if first.id == second.id:
        raise ValidationError("Cannot swap a period with itself", details={"entry_id": first.id})

    weekday = DayOfWeek.from_date(payload.swap_date)
    for entry in (first, second):
        if DayOfWeek(entry.day_of_week) != weekday:
            raise ValidationError(
                f"Entry {entry.id} does not run on {weekday.value} {payload.swap_date.isoformat()}",
                details={"entry_id": entry.id, "swap_date": payload.swap_date.isoformat()},
            )

    pair_key = swap_pair_key(first.id, second.id)
    existing = _pending_swap(db, school_id, pair_key, payload.swap_date)
    if existing is not None:
        raise DuplicateSwapRequestError(existing.id)

    swap = PeriodSwapRequest(
        school_id=school_id,
        requested_by=requested_by,
        entry_id_1=first.id,
        entry_id_2=second.id,
        pair_key=pair_key,
        swap_date=payload.swap_date,
        reason=payload.reason,
        status=SwapStatus.pending,
    )
    try:
        with db.begin_nested():
            db.add(swap)
            db.flush()
    except IntegrityError as exc:
        logger.warning("Swap request for %s on %s lost a race: %s", pair_key, payload.swap_date, exc.orig)
        raise DuplicateSwapRequestError() from exc
    logger.info("Swap %s requested by %s for %s on %s", swap.id, requested_by, pair_key, payload.swap_date)
    return swap


def _transition_pending(db: Session, school_id: str, swap_id: str, values: dict) -> PeriodSwapRequest:
    result = db.execute(
        update(PeriodSwapRequest)
        .where(
            PeriodSwapRequest.id == swap_id,
            PeriodSwapRequest.school_id == school_id,
            PeriodSwapRequest.status == SwapStatus.pending,
        )
        .values(processed_at=_utc_now(), **values)
        .execution_options(synchronize_session=False)
    )
    swap = get_swap(db, school_id, swap_id)
    db.refresh(swap)
    if result.rowcount == 0:
        raise InvalidStateError(
            f"Period swap request is already {SwapStatus(swap.status).value}",
            current_status=SwapStatus(swap.status).value,
        )
    return swap


def approve_swap(db: Session, school_id: str, swap_id: str, *, approved_by: str) -> PeriodSwapRequest:
    # Weekly entries stay as they are; the exchange applies to swap_date only.
    swap = _transition_pending(
        db,
        school_id,
        swap_id,
        {"status": SwapStatus.approved, "approved_by": approved_by, "approved_at": _utc_now()},
    )
    logger.info("Swap %s approved by %s", swap.id, approved_by)
    return swap


def reject_swap(
    db: Session,
    school_id: str,
    swap_id: str,
    *,
    rejected_by: str,
    rejection_reason: str | None = None,
) -> PeriodSwapRequest:
    swap = _transition_pending(
        db,
        school_id,
        swap_id,
        {"status": SwapStatus.rejected, "approved_by": rejected_by, "rejection_reason": rejection_reason},
    )
    logger.info("Swap %s rejected by %s", swap.id, rejected_by)
    return swap


def cancel_swap(db: Session, school_id: str, swap_id: str, *, actor_id: str, is_admin: bool) -> PeriodSwapRequest:
    swap = get_swap(db, school_id, swap_id)
    if swap.requested_by != actor_id and not is_admin:
        raise PermissionDeniedError("Only the requester or an admin can cancel a swap request")
    return _transition_pending(db, school_id, swap_id, {"status": SwapStatus.cancelled})


def list_swaps(
    db: Session,
    school_id: str,
    *,
    status: SwapStatus | None = None,
    requested_by: str | None = None,
    swap_date: date | None = None,
) -> list[PeriodSwapRequest]:
    query = select(PeriodSwapRequest).where(PeriodSwapRequest.school_id == school_id)
    if status is not None:
        query = query.where(PeriodSwapRequest.status == status)
    if requested_by:
        query = query.where(PeriodSwapRequest.requested_by == requested_by)
    if swap_date is not None:
        query = query.where(PeriodSwapRequest.swap_date == swap_date)
    return list(db.execute(query.order_by(PeriodSwapRequest.created_at.desc())).scalars())


def describe(db: Session, school_id: str, swaps: list[PeriodSwapRequest]) -> list[SwapRequestDetailOut]:
    requester_ids = {item.requested_by for item in swaps}
    names = {}
    if requester_ids:
        names = {
            item.id: item.full_name
            for item in db.execute(
                select(Teacher).where(Teacher.school_id == school_id, Teacher.id.in_(requester_ids))
            ).scalars()
        }

    def entry_out(entry_id: str) -> TimetableEntryOut | None:
        try:
            return TimetableEntryOut.model_validate(get_entry(db, school_id, entry_id))
        except ResourceNotFoundError:
            return None

    return [
        SwapRequestDetailOut(
            **SwapRequestOut.model_validate(item).model_dump(),
            entry_1=entry_out(item.entry_id_1),
            entry_2=entry_out(item.entry_id_2),
            requester_name=names.get(item.requested_by),
        )
        for item in swaps
    ]
