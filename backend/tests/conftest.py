import os
import tempfile
from pathlib import Path

# The app lifespan bootstraps the settings database; point it at a throwaway file.
TEST_DB_PATH = Path(tempfile.gettempdir()) / "timegrid-pytest.db"
if TEST_DB_PATH.exists():
    TEST_DB_PATH.unlink()
os.environ.setdefault("DATABASE_URL", f"sqlite+pysqlite:///{TEST_DB_PATH}")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.api.deps import get_db  # noqa: E402
from app.db.base import Base  # noqa: E402
from app.db.session import build_engine  # noqa: E402
from app.main import app  # noqa: E402
from app.models.enums import LifecycleStatus  # noqa: E402
from app.models.school_class import SchoolClass  # noqa: E402
from app.models.subject import Subject  # noqa: E402
from app.models.teacher import Teacher  # noqa: E402
from app.schemas.calendar import TimetableConfigCreate  # noqa: E402
from app.services import calendar  # noqa: E402

SCHOOL_ID = "school-1"
OTHER_SCHOOL_ID = "school-2"

ADMIN_HEADERS = {"X-Actor-Id": "admin-1", "X-Actor-Role": "admin"}
SCHEDULER_HEADERS = {"X-Actor-Id": "scheduler-1", "X-Actor-Role": "scheduler"}

STANDARD_PERIODS = [
    {"period_number": 1, "start_time": "08:00", "end_time": "08:45"},
    {"period_number": 2, "start_time": "08:45", "end_time": "09:30"},
    {"period_number": 3, "start_time": "09:30", "end_time": "09:45", "type": "break"},
    {"period_number": 4, "start_time": "09:45", "end_time": "10:30"},
    {"period_number": 5, "start_time": "10:30", "end_time": "11:15", "type": "lab"},
]


@pytest.fixture()
def engine():
    test_engine = build_engine("sqlite+pysqlite://", poolclass=StaticPool)
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    test_engine.dispose()


@pytest.fixture()
def db_session(engine):
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def client(db_session):
    # Requests share the test session so seeded rows and API writes see each other.
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture()
def active_config(db_session):
    config = calendar.create_config(
        db_session,
        SCHOOL_ID,
        TimetableConfigCreate(academic_year="2025-2026", periods=STANDARD_PERIODS),
    )
    db_session.commit()
    return config


@pytest.fixture()
def roster(db_session):
    teachers = {
        "alice": Teacher(id="t-alice", school_id=SCHOOL_ID, first_name="Alice", last_name="Moreau", subjects=["math"]),
        "bob": Teacher(id="t-bob", school_id=SCHOOL_ID, first_name="Bob", last_name="Okafor", subjects=["science"]),
        "carol": Teacher(id="t-carol", school_id=SCHOOL_ID, first_name="Carol", last_name="Singh", subjects=[]),
        "dan": Teacher(
            id="t-dan",
            school_id=SCHOOL_ID,
            first_name="Dan",
            last_name="Lindqvist",
            subjects=["math", "science"],
        ),
        "erin": Teacher(
            id="t-erin",
            school_id=SCHOOL_ID,
            first_name="Erin",
            last_name="Walsh",
            subjects=["math"],
            status=LifecycleStatus.inactive,
        ),
    }
    db_session.add_all(teachers.values())
    db_session.add_all(
        [
            Subject(id="math", school_id=SCHOOL_ID, name="Mathematics", code="MATH"),
            Subject(id="science", school_id=SCHOOL_ID, name="Science", code="SCI"),
            SchoolClass(
                id="class-7",
                school_id=SCHOOL_ID,
                name="Grade 7",
                sections=[{"section_id": "A", "name": "7A"}, {"section_id": "B", "name": "7B"}],
            ),
        ]
    )
    db_session.commit()
    return teachers
