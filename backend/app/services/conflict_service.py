from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.enums import DayOfWeek, LifecycleStatus
from app.models.room import Room
from app.models.teacher import Teacher
from app.models.timetable_entry import TimetableEntry
from app.schemas.conflict import ConflictDetail, ConflictReport


class ConflictDetector:
    """Groups active entries per (day, period) and reports every double booking.

    Three resources are checked in each slot: the teacher, the room (entries
    without a room are ignored) and the class section.
    """

    def __init__(
        self,
        entries: Iterable[TimetableEntry],
        teacher_names: Optional[Dict[str, str]] = None,
        room_names: Optional[Dict[str, str]] = None,
    ):
        self.entries: List[TimetableEntry] = [item for item in entries if item.status == LifecycleStatus.active]
        self.teacher_names = teacher_names or {}
        self.room_names = room_names or {}

    def detect_conflicts(self) -> ConflictReport:
        conflicts: List[ConflictDetail] = []

        slots: Dict[Tuple[DayOfWeek, int], List[TimetableEntry]] = defaultdict(list)
        for entry in self.entries:
            slots[(DayOfWeek(entry.day_of_week), entry.period_number)].append(entry)

        day_order = {day: index for index, day in enumerate(DayOfWeek)}
        for (day, period_number) in sorted(slots, key=lambda key: (day_order[key[0]], key[1])):
            slot_entries = slots[(day, period_number)]
            if len(slot_entries) < 2:
                continue

            by_teacher: Dict[str, List[str]] = defaultdict(list)
            by_room: Dict[str, List[str]] = defaultdict(list)
            by_section: Dict[Tuple[str, str], List[str]] = defaultdict(list)
            for entry in slot_entries:
                by_teacher[entry.teacher_id].append(entry.id)
                if entry.room_id:
                    by_room[entry.room_id].append(entry.id)
                by_section[(entry.class_id, entry.section_id)].append(entry.id)

            label = f"{day.value} period {period_number}"
            for teacher_id, ids in by_teacher.items():
                if len(ids) > 1:
                    name = self.teacher_names.get(teacher_id, teacher_id)
                    conflicts.append(ConflictDetail(
                        type="teacher",
                        day_of_week=day,
                        period_number=period_number,
                        resource_id=teacher_id,
                        description=f"Teacher {name} is booked {len(ids)} times on {label}",
                        entries=ids,
                    ))
            for room_id, ids in by_room.items():
                if len(ids) > 1:
                    name = self.room_names.get(room_id, room_id)
                    conflicts.append(ConflictDetail(
                        type="room",
                        day_of_week=day,
                        period_number=period_number,
                        resource_id=room_id,
                        description=f"Room {name} is booked {len(ids)} times on {label}",
                        entries=ids,
                    ))
            for (class_id, section_id), ids in by_section.items():
                if len(ids) > 1:
                    conflicts.append(ConflictDetail(
                        type="section",
                        day_of_week=day,
                        period_number=period_number,
                        resource_id=f"{class_id}/{section_id}",
                        description=f"Class {class_id} section {section_id} has {len(ids)} entries on {label}",
                        entries=ids,
                    ))

        return ConflictReport(total_conflicts=len(conflicts), conflicts=conflicts)


def _name_maps(db: Session, school_id: str) -> Tuple[Dict[str, str], Dict[str, str]]:
    teachers = db.execute(select(Teacher).where(Teacher.school_id == school_id)).scalars()
    rooms = db.execute(select(Room).where(Room.school_id == school_id)).scalars()
    return {item.id: item.full_name for item in teachers}, {item.id: item.name for item in rooms}


def scan_conflicts(db: Session, school_id: str) -> ConflictReport:
    entries = db.execute(
        select(TimetableEntry).where(
            TimetableEntry.school_id == school_id,
            TimetableEntry.status == LifecycleStatus.active,
        )
    ).scalars()
    teacher_names, room_names = _name_maps(db, school_id)
    return ConflictDetector(entries, teacher_names, room_names).detect_conflicts()


def find_slot_conflicts(
    db: Session,
    school_id: str,
    candidate: TimetableEntry,
    exclude_ids: Iterable[str] = (),
) -> List[dict]:
    """Conflicts the candidate would create at its slot, with the candidate left out of each entry list."""
    excluded = set(exclude_ids)
    query = select(TimetableEntry).where(
        TimetableEntry.school_id == school_id,
        TimetableEntry.day_of_week == candidate.day_of_week,
        TimetableEntry.period_number == candidate.period_number,
        TimetableEntry.status == LifecycleStatus.active,
    )
    existing = [item for item in db.execute(query).scalars() if item.id not in excluded and item.id != candidate.id]
    if not existing:
        return []

    report = ConflictDetector([*existing, candidate]).detect_conflicts()
    results: List[dict] = []
    for conflict in report.conflicts:
        if candidate.id not in conflict.entries:
            continue
        data = conflict.model_dump(mode="json")
        data["entries"] = [entry_id for entry_id in conflict.entries if entry_id != candidate.id]
        results.append(data)
    return results
