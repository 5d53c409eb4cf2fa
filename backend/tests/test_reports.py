from datetime import date

import pytest

from app.core.exceptions import ResourceNotFoundError
from app.schemas.calendar import TimetableConfigUpdate
from app.schemas.period_swap import SwapRequestCreate
from app.schemas.substitute import SubstituteCreate
from app.schemas.timetable import TimetableEntryCreate
from app.services import calendar, period_swaps, reports, substitutes, timetable_store

from conftest import ADMIN_HEADERS, SCHOOL_ID

MONDAY = date(2025, 3, 10)


def schedule(db, teacher_id, day, period, subject_id="math", section_id="A", **extra):
    return timetable_store.create_entry(
        db,
        SCHOOL_ID,
        TimetableEntryCreate(
            class_id="class-7",
            section_id=section_id,
            subject_id=subject_id,
            teacher_id=teacher_id,
            day_of_week=day,
            period_number=period,
            **extra,
        ),
    )


@pytest.fixture()
def week(db_session, active_config, roster):
    entries = {
        "alice_mon_1": schedule(db_session, "t-alice", "monday", 1),
        "alice_mon_2": schedule(db_session, "t-alice", "monday", 2),
        "alice_tue_1": schedule(db_session, "t-alice", "tuesday", 1),
        "dan_mon_1": schedule(db_session, "t-dan", "monday", 1, subject_id="science", section_id="B"),
    }
    db_session.commit()
    return entries


def test_teacher_workload(db_session, week):
    report = reports.teacher_workload(db_session, SCHOOL_ID)

    assert report.max_periods_per_week == 15
    assert [item.teacher_id for item in report.teachers] == ["t-alice", "t-dan", "t-bob", "t-carol"]
    alice = report.teachers[0]
    assert alice.periods_per_week == 3
    assert alice.workload_percentage == 20
    assert alice.periods_per_day["monday"] == 2
    assert alice.periods_per_day["friday"] == 0
    assert [item.name for item in alice.subjects] == ["Mathematics"]
    assert alice.class_count == 1
    assert report.teachers[1].workload_percentage == 7
    assert report.average_workload_percentage == 7


def test_teacher_workload_for_one_teacher(db_session, week):
    report = reports.teacher_workload(db_session, SCHOOL_ID, teacher_id="t-dan")

    assert report.total_teachers == 1
    assert report.teachers[0].periods_per_week == 1


def test_workload_without_active_config_has_no_capacity(db_session, roster):
    report = reports.teacher_workload(db_session, SCHOOL_ID)

    assert report.max_periods_per_week == 0
    assert {item.workload_percentage for item in report.teachers} == {0}


def test_subject_distribution(db_session, week):
    rows = reports.subject_distribution(db_session, SCHOOL_ID)

    assert [(item.subject_id, item.periods_per_week, item.class_count) for item in rows] == [
        ("math", 3, 1),
        ("science", 1, 1),
    ]
    assert rows[0].code == "MATH"


def test_timetable_summary(db_session, week):
    summary = reports.timetable_summary(db_session, SCHOOL_ID)

    assert summary.has_active_config is True
    assert summary.academic_year == "2025-2026"
    assert summary.periods_per_day == 3
    assert summary.total_entries == 4
    assert summary.total_teachers == 4
    assert summary.total_classes == 1
    assert summary.total_sections == 2
    assert summary.total_subjects == 2
    # 4 entries over 5 days x 3 regular periods x 2 sections.
    assert summary.fill_rate == 13


def test_summary_without_config(db_session):
    summary = reports.timetable_summary(db_session, SCHOOL_ID)

    assert summary.has_active_config is False
    assert summary.fill_rate == 0
    assert summary.working_days == []


def test_class_grid_flags_shared_cells(db_session, week):
    grid = reports.timetable_grid(db_session, SCHOOL_ID, "class", "class-7")

    assert grid.owner_name == "Grade 7"
    assert grid.period_numbers == [1, 2, 4, 5]
    assert list(grid.days) == ["monday", "tuesday", "wednesday", "thursday", "friday"]
    assert [(item.day_of_week.value, item.period_number) for item in grid.anomalies] == [("monday", 1)]
    assert set(grid.anomalies[0].entries) == {week["alice_mon_1"].id, week["dan_mon_1"].id}


def test_section_grid_has_one_entry_per_cell(db_session, week):
    grid = reports.timetable_grid(db_session, SCHOOL_ID, "class", "class-7", section_id="A")

    monday = {cell.period_number: cell for cell in grid.days["monday"]}
    assert grid.anomalies == []
    assert monday[1].subject_name == "Mathematics"
    assert monday[1].teacher_name == "Alice Moreau"
    assert monday[4].entry is None


def test_grid_lists_unplaced_entries(db_session, week, active_config):
    friday = schedule(db_session, "t-alice", "friday", 4)
    calendar.remove_period(db_session, SCHOOL_ID, active_config.id, 2)
    calendar.update_config(
        db_session,
        SCHOOL_ID,
        active_config.id,
        TimetableConfigUpdate(working_days=["monday", "tuesday", "wednesday", "thursday"]),
    )

    grid = reports.timetable_grid(db_session, SCHOOL_ID, "teacher", "t-alice")

    reasons = {item.entry.id: item.reason for item in grid.unplaced_entries}
    assert reasons == {week["alice_mon_2"].id: "period_undefined", friday.id: "day_not_working"}
    assert "friday" not in grid.days


def test_teacher_grid_unknown_teacher(db_session, active_config, roster):
    with pytest.raises(ResourceNotFoundError):
        reports.timetable_grid(db_session, SCHOOL_ID, "teacher", "t-nobody")


def test_effective_schedule_applies_live_substitutes(db_session, week):
    substitutes.create_substitute(
        db_session,
        SCHOOL_ID,
        SubstituteCreate(original_entry_id=week["alice_mon_1"].id, substitute_teacher_id="t-carol", assignment_date=MONDAY),
        created_by="admin-1",
    )
    substitutes.create_substitute(
        db_session,
        SCHOOL_ID,
        SubstituteCreate(
            original_entry_id=week["alice_mon_2"].id,
            substitute_teacher_id="t-dan",
            assignment_date=MONDAY,
            require_confirmation=True,
        ),
        created_by="admin-1",
    )

    schedule_day = reports.effective_schedule(db_session, SCHOOL_ID, MONDAY)
    carol = reports.effective_schedule(db_session, SCHOOL_ID, MONDAY, teacher_id="t-carol")

    by_entry = {item.entry.id: item for item in schedule_day.entries}
    assert by_entry[week["alice_mon_1"].id].teaching_teacher_id == "t-carol"
    assert by_entry[week["alice_mon_1"].id].source == "substitute"
    assert by_entry[week["alice_mon_2"].id].source == "weekly"
    assert [item.entry.id for item in carol.entries] == [week["alice_mon_1"].id]
    assert "t-alice" not in {item.teaching_teacher_id for item in carol.entries}


def test_effective_schedule_honours_effective_dates(db_session, week):
    later = schedule(db_session, "t-bob", "monday", 4, subject_id="science", effective_from=date(2025, 4, 1))

    before = reports.effective_schedule(db_session, SCHOOL_ID, MONDAY)
    after = reports.effective_schedule(db_session, SCHOOL_ID, date(2025, 4, 7))

    assert later.id not in {item.entry.id for item in before.entries}
    assert later.id in {item.entry.id for item in after.entries}
    assert before.day_of_week.value == "monday"


def test_effective_schedule_skips_swap_overlapping_an_applied_one(db_session, week):
    dan = week["dan_mon_1"]
    for entry in (week["alice_mon_1"], week["alice_mon_2"]):
        swap = period_swaps.request_swap(
            db_session,
            SCHOOL_ID,
            SwapRequestCreate(entry_id_1=entry.id, entry_id_2=dan.id, swap_date=MONDAY),
            requested_by="t-alice",
        )
        period_swaps.approve_swap(db_session, SCHOOL_ID, swap.id, approved_by="admin-1")
    db_session.commit()

    by_entry = {item.entry.id: item for item in reports.effective_schedule(db_session, SCHOOL_ID, MONDAY).entries}

    swapped = [item for item in by_entry.values() if item.source == "swap"]
    assert len(swapped) == 2
    assert len({item.swap_id for item in swapped}) == 1
    for item in swapped:
        partner = by_entry[item.swapped_with_entry_id]
        assert partner.source == "swap"
        assert partner.swapped_with_entry_id == item.entry.id
        assert item.teaching_teacher_id == partner.entry.teacher_id
    assert by_entry[dan.id].teaching_teacher_id == "t-alice"
    assert sorted(by_entry[entry.id].source for entry in (week["alice_mon_1"], week["alice_mon_2"])) == [
        "swap",
        "weekly",
    ]


def test_report_routes(client, week):
    base = f"/api/schools/{SCHOOL_ID}/reports"

    summary = client.get(f"{base}/summary", headers=ADMIN_HEADERS)
    assert summary.status_code == 200
    assert summary.json()["total_entries"] == 4

    grid = client.get(f"{base}/grid", params={"kind": "teacher", "id": "t-alice"}, headers=ADMIN_HEADERS)
    assert grid.status_code == 200
    assert grid.json()["owner_name"] == "Alice Moreau"

    missing = client.get(f"{base}/grid", params={"kind": "teacher", "id": "t-nobody"}, headers=ADMIN_HEADERS)
    assert missing.status_code == 404

    effective = client.get(f"{base}/effective", params={"date": "2025-03-10", "class_id": "class-7"}, headers=ADMIN_HEADERS)
    assert effective.status_code == 200
    assert len(effective.json()["entries"]) == 3

    unauthenticated = client.get(f"{base}/summary")
    assert unauthenticated.status_code == 401
