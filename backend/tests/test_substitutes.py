from datetime import date

import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from app.core.exceptions import (
    AlreadyProcessedError,
    DuplicateAssignmentError,
    InvalidStateError,
    ResourceNotFoundError,
    SubstituteBusyError,
    ValidationError,
)
from app.models.leave_request import ApplicantType, LeaveRequest, LeaveStatus
from app.models.substitute_assignment import SubstituteAssignment, SubstituteStatus
from app.schemas.substitute import SubstituteCreate
from app.schemas.timetable import TimetableEntryCreate
from app.services import substitutes, timetable_store

from conftest import ADMIN_HEADERS, SCHEDULER_HEADERS, SCHOOL_ID

MONDAY = date(2025, 3, 10)
NEXT_MONDAY = date(2025, 3, 17)


def schedule(db, teacher_id, section_id="A", period=1, subject_id="math"):
    return timetable_store.create_entry(
        db,
        SCHOOL_ID,
        TimetableEntryCreate(
            class_id="class-7",
            section_id=section_id,
            subject_id=subject_id,
            teacher_id=teacher_id,
            day_of_week="monday",
            period_number=period,
        ),
    )


def assign(db, entry, teacher_id, on_date=MONDAY, **kwargs):
    return substitutes.create_substitute(
        db,
        SCHOOL_ID,
        SubstituteCreate(
            original_entry_id=entry.id,
            substitute_teacher_id=teacher_id,
            assignment_date=on_date,
            **kwargs,
        ),
        created_by="admin-1",
    )


@pytest.fixture()
def math_entry(db_session, active_config, roster):
    entry = schedule(db_session, "t-alice")
    db_session.commit()
    return entry


def test_create_substitute_confirms_by_default(db_session, math_entry):
    assignment = assign(db_session, math_entry, "t-dan", reason="Alice at training")

    assert assignment.status == SubstituteStatus.confirmed
    assert assignment.original_teacher_id == "t-alice"
    assert assignment.created_by == "admin-1"


def test_create_substitute_can_wait_for_confirmation(db_session, math_entry):
    assignment = assign(db_session, math_entry, "t-dan", require_confirmation=True)

    assert assignment.status == SubstituteStatus.pending


def test_substitute_scheduled_elsewhere_is_refused(db_session, math_entry):
    blocking = schedule(db_session, "t-dan", section_id="B", subject_id="science")

    with pytest.raises(SubstituteBusyError) as exc_info:
        assign(db_session, math_entry, "t-dan")

    assert exc_info.value.reason == "scheduled"
    assert exc_info.value.details["entries"] == [blocking.id]


def test_substitute_on_leave_is_refused(db_session, math_entry):
    db_session.add(
        LeaveRequest(
            school_id=SCHOOL_ID,
            applicant_id="t-dan",
            applicant_type=ApplicantType.teacher,
            status=LeaveStatus.approved,
            start_date=date(2025, 3, 7),
            end_date=MONDAY,
        )
    )
    db_session.flush()

    with pytest.raises(SubstituteBusyError) as exc_info:
        assign(db_session, math_entry, "t-dan")

    assert exc_info.value.reason == "on_leave"


def test_substitute_already_covering_the_slot_is_refused(db_session, math_entry):
    other = schedule(db_session, "t-bob", section_id="B", subject_id="science")
    assign(db_session, other, "t-dan")

    with pytest.raises(SubstituteBusyError) as exc_info:
        assign(db_session, math_entry, "t-dan")

    assert exc_info.value.reason == "covering"


def test_second_open_assignment_for_same_period_is_duplicate(db_session, math_entry):
    assign(db_session, math_entry, "t-dan")

    with pytest.raises(DuplicateAssignmentError):
        assign(db_session, math_entry, "t-carol")
    # Repeating the identical request reports the duplicate rather than the cover clash.
    with pytest.raises(DuplicateAssignmentError):
        assign(db_session, math_entry, "t-dan")


def test_cancelled_assignment_frees_the_period(db_session, math_entry):
    first = assign(db_session, math_entry, "t-dan")
    substitutes.cancel_substitute(db_session, SCHOOL_ID, first.id)

    second = assign(db_session, math_entry, "t-carol")

    assert second.status == SubstituteStatus.confirmed


def test_same_period_on_another_date_is_independent(db_session, math_entry):
    assign(db_session, math_entry, "t-dan")
    later = assign(db_session, math_entry, "t-dan", on_date=NEXT_MONDAY)

    assert later.assignment_date == NEXT_MONDAY


def test_open_assignment_index_blocks_racing_inserts(db_session, math_entry):
    assign(db_session, math_entry, "t-dan")
    db_session.commit()

    db_session.add(
        SubstituteAssignment(
            school_id=SCHOOL_ID,
            original_entry_id=math_entry.id,
            original_teacher_id="t-alice",
            substitute_teacher_id="t-carol",
            assignment_date=MONDAY,
            created_by="admin-1",
            status=SubstituteStatus.pending,
        )
    )
    with pytest.raises(IntegrityError):
        db_session.flush()
    db_session.rollback()


@pytest.mark.parametrize(
    ("teacher_id", "on_date", "error"),
    [
        ("t-alice", MONDAY, ValidationError),
        ("t-dan", date(2025, 3, 11), ValidationError),
        ("t-bob", MONDAY, ValidationError),
        ("t-erin", MONDAY, ResourceNotFoundError),
        ("t-nobody", MONDAY, ResourceNotFoundError),
    ],
)
def test_create_substitute_rejects_ineligible_requests(db_session, math_entry, teacher_id, on_date, error):
    with pytest.raises(error):
        assign(db_session, math_entry, teacher_id, on_date=on_date)


def test_create_substitute_for_inactive_entry_is_not_found(db_session, math_entry):
    timetable_store.deactivate_entry(db_session, SCHOOL_ID, math_entry.id)

    with pytest.raises(ResourceNotFoundError):
        assign(db_session, math_entry, "t-dan")


def test_status_transitions(db_session, math_entry):
    assignment = assign(db_session, math_entry, "t-dan", require_confirmation=True)

    with pytest.raises(InvalidStateError):
        substitutes.update_substitute_status(db_session, SCHOOL_ID, assignment.id, SubstituteStatus.completed)

    substitutes.update_substitute_status(db_session, SCHOOL_ID, assignment.id, SubstituteStatus.confirmed)
    done = substitutes.update_substitute_status(db_session, SCHOOL_ID, assignment.id, SubstituteStatus.completed)

    assert done.status == SubstituteStatus.completed
    assert done.completed_at is not None
    with pytest.raises(AlreadyProcessedError):
        substitutes.cancel_substitute(db_session, SCHOOL_ID, assignment.id)


def test_cancel_twice_reports_already_processed(db_session, math_entry):
    assignment = assign(db_session, math_entry, "t-dan")
    cancelled = substitutes.cancel_substitute(db_session, SCHOOL_ID, assignment.id)

    assert cancelled.cancelled_at is not None
    with pytest.raises(AlreadyProcessedError) as exc_info:
        substitutes.cancel_substitute(db_session, SCHOOL_ID, assignment.id)
    assert exc_info.value.details == {"current_status": "cancelled"}


def test_cancel_loses_to_a_completion_committed_elsewhere(engine, db_session, math_entry):
    assignment_id = assign(db_session, math_entry, "t-dan").id
    db_session.commit()

    # Both sessions share one in-memory connection, so each keeps its transaction short.
    Session = sessionmaker(autoflush=False, expire_on_commit=False, bind=engine)
    reader, writer = Session(), Session()
    try:
        stale = substitutes.get_substitute(reader, SCHOOL_ID, assignment_id)
        assert stale.status == SubstituteStatus.confirmed
        reader.commit()

        substitutes.update_substitute_status(writer, SCHOOL_ID, assignment_id, SubstituteStatus.completed)
        writer.commit()

        with pytest.raises(AlreadyProcessedError) as exc_info:
            substitutes.cancel_substitute(reader, SCHOOL_ID, assignment_id)
        reader.rollback()

        assert exc_info.value.details == {"current_status": "completed"}
        final = reader.get(SubstituteAssignment, assignment_id, populate_existing=True)
        assert final.status == SubstituteStatus.completed
        assert final.cancelled_at is None
    finally:
        reader.close()
        writer.close()


def test_complete_elapsed_only_touches_confirmed_past_assignments(db_session, math_entry):
    past = assign(db_session, math_entry, "t-dan")
    pending = assign(db_session, math_entry, "t-carol", on_date=NEXT_MONDAY, require_confirmation=True)
    upcoming = assign(db_session, math_entry, "t-dan", on_date=date(2025, 3, 24))

    completed = substitutes.complete_elapsed_substitutes(db_session, SCHOOL_ID, date(2025, 3, 20))

    assert [item.id for item in completed] == [past.id]
    assert pending.status == SubstituteStatus.pending
    assert upcoming.status == SubstituteStatus.confirmed


def test_list_for_date_skips_cancelled(db_session, math_entry):
    other = schedule(db_session, "t-bob", section_id="B", subject_id="science")
    kept = assign(db_session, math_entry, "t-dan")
    dropped = assign(db_session, other, "t-carol")
    substitutes.cancel_substitute(db_session, SCHOOL_ID, dropped.id)

    rows = substitutes.list_substitutes_for_date(db_session, SCHOOL_ID, MONDAY)

    assert [item.id for item in rows] == [kept.id]


def test_history_matches_teacher_on_either_side(db_session, math_entry):
    other = schedule(db_session, "t-bob", section_id="B", subject_id="science")
    covered_for_alice = assign(db_session, math_entry, "t-dan")
    covered_by_carol = assign(db_session, other, "t-carol", on_date=NEXT_MONDAY)

    alice = substitutes.substitute_history(db_session, SCHOOL_ID, teacher_id="t-alice")
    carol = substitutes.substitute_history(db_session, SCHOOL_ID, teacher_id="t-carol")
    ranged = substitutes.substitute_history(db_session, SCHOOL_ID, start_date=date(2025, 3, 15))

    assert [item.id for item in alice] == [covered_for_alice.id]
    assert [item.id for item in carol] == [covered_by_carol.id]
    assert [item.id for item in ranged] == [covered_by_carol.id]


def test_substitute_routes(client, math_entry):
    base = f"/api/schools/{SCHOOL_ID}/substitutes"
    body = {
        "original_entry_id": math_entry.id,
        "substitute_teacher_id": "t-dan",
        "assignment_date": "2025-03-10",
    }

    created = client.post(base, json=body, headers=SCHEDULER_HEADERS)
    assert created.status_code == 201
    substitute_id = created.json()["id"]

    duplicate = client.post(base, json={**body, "substitute_teacher_id": "t-carol"}, headers=SCHEDULER_HEADERS)
    assert duplicate.status_code == 409
    assert duplicate.json()["details"]["original_entry_id"] == math_entry.id

    listed = client.get(f"{base}/date/2025-03-10", headers=SCHEDULER_HEADERS)
    assert listed.status_code == 200
    assert listed.json()[0]["substitute_teacher_name"] == "Dan Lindqvist"
    assert listed.json()[0]["entry"]["id"] == math_entry.id

    teacher_cancel = client.post(
        f"{base}/{substitute_id}/cancel",
        headers={"X-Actor-Id": "t-alice", "X-Actor-Role": "teacher"},
    )
    assert teacher_cancel.status_code == 403

    cancelled = client.post(f"{base}/{substitute_id}/cancel", headers=ADMIN_HEADERS)
    assert cancelled.status_code == 200
    assert cancelled.json()["status"] == "cancelled"

    again = client.post(f"{base}/{substitute_id}/cancel", headers=ADMIN_HEADERS)
    assert again.status_code == 409


def test_complete_elapsed_route(client, math_entry):
    base = f"/api/schools/{SCHOOL_ID}/substitutes"
    client.post(
        base,
        json={"original_entry_id": math_entry.id, "substitute_teacher_id": "t-dan", "assignment_date": "2025-03-10"},
        headers=ADMIN_HEADERS,
    )

    response = client.post(f"{base}/complete-elapsed", params={"today": "2025-03-11"}, headers=ADMIN_HEADERS)

    assert response.status_code == 200
    assert response.json()["completed_count"] == 1
