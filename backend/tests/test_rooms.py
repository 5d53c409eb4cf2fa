import pytest

from app.core.exceptions import DuplicateRoomError, ResourceNotFoundError
from app.models.enums import LifecycleStatus
from app.models.room import RoomType
from app.schemas.room import RoomCreate, RoomUpdate
from app.services import rooms

from conftest import ADMIN_HEADERS, OTHER_SCHOOL_ID, SCHOOL_ID


def test_create_room_normalizes_code(db_session):
    room = rooms.create_room(db_session, SCHOOL_ID, RoomCreate(name="Chemistry Lab", code=" lab-2 ", type="lab"))

    assert room.code == "LAB-2"
    assert room.type == RoomType.lab
    assert room.is_bookable


def test_room_codes_are_unique_per_school(db_session):
    rooms.create_room(db_session, SCHOOL_ID, RoomCreate(name="Room 101", code="R101"))

    with pytest.raises(DuplicateRoomError):
        rooms.create_room(db_session, SCHOOL_ID, RoomCreate(name="Another 101", code="r101"))
    other = rooms.create_room(db_session, OTHER_SCHOOL_ID, RoomCreate(name="Room 101", code="R101"))
    assert other.school_id == OTHER_SCHOOL_ID


def test_update_room_checks_code_collisions(db_session):
    first = rooms.create_room(db_session, SCHOOL_ID, RoomCreate(name="Room 101", code="R101"))
    second = rooms.create_room(db_session, SCHOOL_ID, RoomCreate(name="Room 102", code="R102"))

    with pytest.raises(DuplicateRoomError):
        rooms.update_room(db_session, SCHOOL_ID, second.id, RoomUpdate(code="R101"))

    updated = rooms.update_room(db_session, SCHOOL_ID, first.id, RoomUpdate(capacity=30, is_available=False))
    assert updated.capacity == 30
    assert updated.is_bookable is False


def test_deactivated_rooms_are_hidden_by_default(db_session):
    kept = rooms.create_room(db_session, SCHOOL_ID, RoomCreate(name="Room 101", code="R101"))
    gone = rooms.create_room(db_session, SCHOOL_ID, RoomCreate(name="Room 102", code="R102"))
    rooms.deactivate_room(db_session, SCHOOL_ID, gone.id)

    assert [item.id for item in rooms.list_rooms(db_session, SCHOOL_ID)] == [kept.id]
    assert len(rooms.list_rooms(db_session, SCHOOL_ID, include_inactive=True)) == 2
    assert gone.status == LifecycleStatus.inactive


def test_rooms_are_scoped_to_school(db_session):
    room = rooms.create_room(db_session, SCHOOL_ID, RoomCreate(name="Room 101", code="R101"))

    with pytest.raises(ResourceNotFoundError):
        rooms.get_room(db_session, OTHER_SCHOOL_ID, room.id)


def test_room_routes(client, active_config):
    base = f"/api/schools/{SCHOOL_ID}/rooms"

    created = client.post(base, json={"name": "Physics Lab", "code": "lab1", "type": "lab"}, headers=ADMIN_HEADERS)
    assert created.status_code == 201
    room_id = created.json()["id"]

    duplicate = client.post(base, json={"name": "Copy", "code": "LAB1"}, headers=ADMIN_HEADERS)
    assert duplicate.status_code == 409
    assert duplicate.json()["details"] == {"code": "LAB1"}

    teacher = client.post(
        base,
        json={"name": "Room 9", "code": "R9"},
        headers={"X-Actor-Id": "t-alice", "X-Actor-Role": "teacher"},
    )
    assert teacher.status_code == 403

    labs = client.get(base, params={"type": "lab"}, headers=ADMIN_HEADERS)
    assert [item["code"] for item in labs.json()] == ["LAB1"]

    availability = client.get(f"{base}/{room_id}/availability", params={"day": "monday"}, headers=ADMIN_HEADERS)
    assert availability.status_code == 200
    assert availability.json()["free_periods"] == [1, 2, 4, 5]

    deleted = client.delete(f"{base}/{room_id}", headers=ADMIN_HEADERS)
    assert deleted.json()["status"] == "inactive"
