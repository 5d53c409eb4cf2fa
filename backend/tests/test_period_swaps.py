from datetime import date

import pytest
from sqlalchemy.exc import IntegrityError

from app.core.exceptions import (
    DuplicateSwapRequestError,
    InvalidStateError,
    PermissionDeniedError,
    ResourceNotFoundError,
    ValidationError,
)
from app.models.period_swap import PeriodSwapRequest, SwapStatus, swap_pair_key
from app.schemas.period_swap import SwapRequestCreate
from app.schemas.timetable import TimetableEntryCreate
from app.services import period_swaps, reports, timetable_store

from conftest import ADMIN_HEADERS, SCHOOL_ID

MONDAY = date(2025, 3, 10)
TEACHER_HEADERS = {"X-Actor-Id": "t-alice", "X-Actor-Role": "teacher"}


def schedule(db, teacher_id, period, subject_id, day="monday"):
    return timetable_store.create_entry(
        db,
        SCHOOL_ID,
        TimetableEntryCreate(
            class_id="class-7",
            section_id="A",
            subject_id=subject_id,
            teacher_id=teacher_id,
            day_of_week=day,
            period_number=period,
        ),
    )


@pytest.fixture()
def pair(db_session, active_config, roster):
    first = schedule(db_session, "t-alice", 1, "math")
    second = schedule(db_session, "t-bob", 2, "science")
    db_session.commit()
    return first, second


def request(db, first_id, second_id, on_date=MONDAY, requested_by="t-alice"):
    return period_swaps.request_swap(
        db,
        SCHOOL_ID,
        SwapRequestCreate(entry_id_1=first_id, entry_id_2=second_id, swap_date=on_date, reason="Lab booking"),
        requested_by=requested_by,
    )


def test_pair_key_ignores_order():
    assert swap_pair_key("b", "a") == swap_pair_key("a", "b") == "a|b"


def test_request_swap_starts_pending(db_session, pair):
    first, second = pair

    swap = request(db_session, first.id, second.id)

    assert swap.status == SwapStatus.pending
    assert swap.pair_key == swap_pair_key(first.id, second.id)
    assert swap.requested_by == "t-alice"


def test_reversed_pair_on_same_date_is_duplicate(db_session, pair):
    first, second = pair
    existing = request(db_session, first.id, second.id)

    with pytest.raises(DuplicateSwapRequestError) as exc_info:
        request(db_session, second.id, first.id, requested_by="t-bob")

    assert exc_info.value.details == {"existing_swap_id": existing.id}


def test_pair_can_be_requested_again_once_resolved(db_session, pair):
    first, second = pair
    swap = request(db_session, first.id, second.id)
    period_swaps.reject_swap(db_session, SCHOOL_ID, swap.id, rejected_by="admin-1", rejection_reason="Exams")

    again = request(db_session, second.id, first.id)

    assert again.status == SwapStatus.pending


def test_pending_pair_index_blocks_racing_inserts(db_session, pair):
    first, second = pair
    request(db_session, first.id, second.id)
    db_session.commit()

    db_session.add(
        PeriodSwapRequest(
            school_id=SCHOOL_ID,
            requested_by="t-bob",
            entry_id_1=second.id,
            entry_id_2=first.id,
            pair_key=swap_pair_key(second.id, first.id),
            swap_date=MONDAY,
            status=SwapStatus.pending,
        )
    )
    with pytest.raises(IntegrityError):
        db_session.flush()
    db_session.rollback()


def test_request_swap_validates_entries(db_session, pair):
    first, second = pair
    tuesday_entry = schedule(db_session, "t-carol", 1, "math", day="tuesday")

    with pytest.raises(ValidationError):
        request(db_session, first.id, first.id)
    with pytest.raises(ValidationError):
        request(db_session, first.id, tuesday_entry.id)
    with pytest.raises(ValidationError):
        request(db_session, first.id, second.id, on_date=date(2025, 3, 11))
    with pytest.raises(ResourceNotFoundError):
        request(db_session, first.id, "missing-entry")


def test_approve_leaves_weekly_entries_untouched(db_session, pair):
    first, second = pair
    swap = request(db_session, first.id, second.id)

    approved = period_swaps.approve_swap(db_session, SCHOOL_ID, swap.id, approved_by="admin-1")

    assert approved.status == SwapStatus.approved
    assert approved.approved_by == "admin-1"
    assert approved.approved_at is not None
    assert timetable_store.get_entry(db_session, SCHOOL_ID, first.id).teacher_id == "t-alice"
    assert timetable_store.get_entry(db_session, SCHOOL_ID, second.id).teacher_id == "t-bob"


def test_approved_swap_shows_in_effective_schedule(db_session, pair):
    first, second = pair
    swap = request(db_session, first.id, second.id)
    period_swaps.approve_swap(db_session, SCHOOL_ID, swap.id, approved_by="admin-1")

    on_swap_day = reports.effective_schedule(db_session, SCHOOL_ID, MONDAY)
    next_week = reports.effective_schedule(db_session, SCHOOL_ID, date(2025, 3, 17))

    teaching = {item.entry.id: (item.teaching_teacher_id, item.source) for item in on_swap_day.entries}
    assert teaching == {first.id: ("t-bob", "swap"), second.id: ("t-alice", "swap")}
    assert {item.source for item in next_week.entries} == {"weekly"}


def test_processed_swap_cannot_change_again(db_session, pair):
    first, second = pair
    swap = request(db_session, first.id, second.id)
    period_swaps.approve_swap(db_session, SCHOOL_ID, swap.id, approved_by="admin-1")

    with pytest.raises(InvalidStateError) as exc_info:
        period_swaps.reject_swap(db_session, SCHOOL_ID, swap.id, rejected_by="admin-2")
    assert exc_info.value.details == {"current_status": "approved"}

    with pytest.raises(InvalidStateError):
        period_swaps.cancel_swap(db_session, SCHOOL_ID, swap.id, actor_id="t-alice", is_admin=False)


def test_reject_records_processor_and_reason(db_session, pair):
    first, second = pair
    swap = request(db_session, first.id, second.id)

    rejected = period_swaps.reject_swap(
        db_session, SCHOOL_ID, swap.id, rejected_by="admin-1", rejection_reason="Exam week"
    )

    assert rejected.status == SwapStatus.rejected
    assert rejected.approved_by == "admin-1"
    assert rejected.rejection_reason == "Exam week"
    assert rejected.processed_at is not None


def test_only_requester_or_admin_may_cancel(db_session, pair):
    first, second = pair
    swap = request(db_session, first.id, second.id)

    with pytest.raises(PermissionDeniedError):
        period_swaps.cancel_swap(db_session, SCHOOL_ID, swap.id, actor_id="t-bob", is_admin=False)

    cancelled = period_swaps.cancel_swap(db_session, SCHOOL_ID, swap.id, actor_id="t-alice", is_admin=False)
    assert cancelled.status == SwapStatus.cancelled

    other = request(db_session, first.id, second.id)
    by_admin = period_swaps.cancel_swap(db_session, SCHOOL_ID, other.id, actor_id="admin-1", is_admin=True)
    assert by_admin.status == SwapStatus.cancelled


def test_list_swaps_filters(db_session, pair):
    first, second = pair
    pending = request(db_session, first.id, second.id)
    approved = request(db_session, first.id, second.id, on_date=date(2025, 3, 17), requested_by="t-bob")
    period_swaps.approve_swap(db_session, SCHOOL_ID, approved.id, approved_by="admin-1")

    assert [item.id for item in period_swaps.list_swaps(db_session, SCHOOL_ID, status=SwapStatus.pending)] == [
        pending.id
    ]
    assert [item.id for item in period_swaps.list_swaps(db_session, SCHOOL_ID, requested_by="t-bob")] == [
        approved.id
    ]
    assert [item.id for item in period_swaps.list_swaps(db_session, SCHOOL_ID, swap_date=MONDAY)] == [pending.id]


def test_swap_routes(client, pair):
    first, second = pair
    base = f"/api/schools/{SCHOOL_ID}/period-swaps"

    created = client.post(
        base,
        json={"entry_id_1": first.id, "entry_id_2": second.id, "swap_date": "2025-03-10"},
        headers=TEACHER_HEADERS,
    )
    assert created.status_code == 201
    swap_id = created.json()["id"]

    reversed_pair = client.post(
        base,
        json={"entry_id_1": second.id, "entry_id_2": first.id, "swap_date": "2025-03-10"},
        headers=TEACHER_HEADERS,
    )
    assert reversed_pair.status_code == 409

    teacher_approve = client.post(f"{base}/{swap_id}/approve", headers=TEACHER_HEADERS)
    assert teacher_approve.status_code == 403

    stranger_cancel = client.post(
        f"{base}/{swap_id}/cancel",
        headers={"X-Actor-Id": "t-bob", "X-Actor-Role": "teacher"},
    )
    assert stranger_cancel.status_code == 403

    approved = client.post(f"{base}/{swap_id}/approve", headers=ADMIN_HEADERS)
    assert approved.status_code == 200
    assert approved.json()["status"] == "approved"

    listed = client.get(base, params={"status": "approved"}, headers=TEACHER_HEADERS)
    assert listed.status_code == 200
    assert listed.json()[0]["requester_name"] == "Alice Moreau"
    assert listed.json()[0]["entry_1"]["id"] == first.id

    rejected = client.post(f"{base}/{swap_id}/reject", json={"rejection_reason": "late"}, headers=ADMIN_HEADERS)
    assert rejected.status_code == 409
