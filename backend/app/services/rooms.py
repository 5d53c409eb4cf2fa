from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.exceptions import DuplicateRoomError, ResourceNotFoundError
from app.models.enums import LifecycleStatus
from app.models.room import Room, RoomType
from app.schemas.room import RoomCreate, RoomUpdate


def get_room(db: Session, school_id: str, room_id: str) -> Room:
    room = db.get(Room, room_id)
    if room is None or room.school_id != school_id:
        raise ResourceNotFoundError("Room", room_id)
    return room


def list_rooms(
    db: Session,
    school_id: str,
    *,
    room_type: RoomType | None = None,
    include_inactive: bool = False,
) -> list[Room]:
    query = select(Room).where(Room.school_id == school_id)
    if room_type is not None:
        query = query.where(Room.type == room_type)
    if not include_inactive:
        query = query.where(Room.status == LifecycleStatus.active)
    return list(db.execute(query.order_by(Room.code)).scalars())


def _code_taken(db: Session, school_id: str, code: str, exclude_id: str | None = None) -> bool:
    query = select(Room.id).where(Room.school_id == school_id, Room.code == code)
    if exclude_id is not None:
        query = query.where(Room.id != exclude_id)
    return db.execute(query).first() is not None


def create_room(db: Session, school_id: str, payload: RoomCreate) -> Room:
    if _code_taken(db, school_id, payload.code):
        raise DuplicateRoomError(payload.code)
    room = Room(school_id=school_id, **payload.model_dump())
    try:
        with db.begin_nested():
            db.add(room)
            db.flush()
    except IntegrityError as exc:
        raise DuplicateRoomError(payload.code) from exc
    return room


def update_room(db: Session, school_id: str, room_id: str, payload: RoomUpdate) -> Room:
    room = get_room(db, school_id, room_id)
    data = payload.model_dump(exclude_unset=True)
    if data.get("code") and _code_taken(db, school_id, data["code"], exclude_id=room.id):
        raise DuplicateRoomError(data["code"])
    for key, value in data.items():
        if value is None and key not in {"floor", "building"}:
            continue
        setattr(room, key, value)
    db.flush()
    return room


def deactivate_room(db: Session, school_id: str, room_id: str) -> Room:
    # Existing entries keep their room_id; the room just stops being offered.
    room = get_room(db, school_id, room_id)
    room.status = LifecycleStatus.inactive
    room.is_available = False
    db.flush()
    return room
