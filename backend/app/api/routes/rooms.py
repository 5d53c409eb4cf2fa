from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.deps import Actor, ActorRole, get_current_actor, get_db, require_roles
from app.models.enums import DayOfWeek
from app.models.room import RoomType
from app.schemas.room import RoomAvailabilityOut, RoomCreate, RoomOut, RoomUpdate
from app.services import availability, rooms
from app.services.audit import log_activity

router = APIRouter()


@router.get("/rooms", response_model=list[RoomOut])
def list_rooms(
    school_id: str,
    room_type: RoomType | None = Query(default=None, alias="type"),
    include_inactive: bool = Query(default=False),
    current_actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> list[RoomOut]:
    return rooms.list_rooms(db, school_id, room_type=room_type, include_inactive=include_inactive)


@router.post("/rooms", response_model=RoomOut, status_code=status.HTTP_201_CREATED)
def create_room(
    school_id: str,
    payload: RoomCreate,
    current_actor: Actor = Depends(require_roles(ActorRole.admin, ActorRole.scheduler)),
    db: Session = Depends(get_db),
) -> RoomOut:
    room = rooms.create_room(db, school_id, payload)
    log_activity(
        db,
        school_id=school_id,
        actor_id=current_actor.id,
        action="room.create",
        entity_type="room",
        entity_id=room.id,
        details={"code": room.code, "type": room.type.value},
    )
    db.commit()
    db.refresh(room)
    return room


@router.get("/rooms/{room_id}", response_model=RoomOut)
def get_room(
    school_id: str,
    room_id: str,
    current_actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> RoomOut:
    return rooms.get_room(db, school_id, room_id)


@router.put("/rooms/{room_id}", response_model=RoomOut)
def update_room(
    school_id: str,
    room_id: str,
    payload: RoomUpdate,
    current_actor: Actor = Depends(require_roles(ActorRole.admin, ActorRole.scheduler)),
    db: Session = Depends(get_db),
) -> RoomOut:
    room = rooms.update_room(db, school_id, room_id, payload)
    log_activity(
        db,
        school_id=school_id,
        actor_id=current_actor.id,
        action="room.update",
        entity_type="room",
        entity_id=room.id,
        details={"fields": sorted(payload.model_dump(exclude_unset=True))},
    )
    db.commit()
    db.refresh(room)
    return room


@router.delete("/rooms/{room_id}", response_model=RoomOut)
def delete_room(
    school_id: str,
    room_id: str,
    current_actor: Actor = Depends(require_roles(ActorRole.admin, ActorRole.scheduler)),
    db: Session = Depends(get_db),
) -> RoomOut:
    room = rooms.deactivate_room(db, school_id, room_id)
    log_activity(
        db,
        school_id=school_id,
        actor_id=current_actor.id,
        action="room.delete",
        entity_type="room",
        entity_id=room.id,
    )
    db.commit()
    db.refresh(room)
    return room


@router.get("/rooms/{room_id}/availability", response_model=RoomAvailabilityOut)
def room_availability(
    school_id: str,
    room_id: str,
    day: DayOfWeek = Query(...),
    current_actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> RoomAvailabilityOut:
    return availability.room_bookings(db, school_id, room_id, day)
