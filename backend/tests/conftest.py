"""
Pytest configuration and shared fixtures for Shuttlebook backend tests.
"""
import os
import sys
from datetime import date, time
from typing import List

import pytest

# Tests never talk to PostgreSQL; must be set before config is imported.
os.environ.setdefault("USE_DATABASE", "false")
os.environ.setdefault("SEED_DEMO_DATA", "false")

# Add backend to path
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from db import models as db_models
from db.memory import InMemoryRepository
from db.repository import SqlAlchemyRepository
from models import DriverAssignment, Route, Stop, Student, TimeSlot
from services.booking_engine import BookingEngine
from services.pickup_tracker import PickupTracker
from services.slot_locks import SlotLockRegistry

PARENT_ID = "parent-1"
OTHER_PARENT_ID = "parent-2"
DRIVER_ID = "driver-1"
ROUTE_ID = "route-frisco"
OTHER_ROUTE_ID = "route-dallas"

TUESDAY = date(2026, 3, 10)
FRIDAY = date(2026, 3, 13)


def _make_test_session():
    engine = create_engine("sqlite:///:memory:", connect_args={"check_same_thread": False})
    db_models.Base.metadata.create_all(bind=engine)
    Session = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    return Session()


def populate_frisco(repository, capacity: int = 14):
    """
    One route with stops A, B, C: morning order A-B-C, afternoon C-B-A.
    Plus a second route so stop/route mismatches can be tested.
    """
    repository.add_route(Route(id=ROUTE_ID, name="Frisco Route", area="frisco", capacity=capacity))
    repository.add_route(Route(id=OTHER_ROUTE_ID, name="Dallas Route", area="dallas", capacity=capacity))

    stops = [
        Stop(
            id="stop-a", route_id=ROUTE_ID, name="A", address="1 Main St",
            morning_order=1, afternoon_order=3,
            morning_pickup_time=time(7, 30), afternoon_dropoff_time=time(15, 45),
            friday_morning_pickup_time=time(7, 30), friday_afternoon_dropoff_time=time(14, 45),
            early_release_morning_pickup_time=time(7, 30), early_release_afternoon_dropoff_time=time(13, 45),
        ),
        Stop(
            id="stop-b", route_id=ROUTE_ID, name="B", address="2 Oak Ave",
            morning_order=2, afternoon_order=2,
            morning_pickup_time=time(7, 45), afternoon_dropoff_time=time(16, 0),
            friday_afternoon_dropoff_time=time(15, 0),
        ),
        Stop(
            id="stop-c", route_id=ROUTE_ID, name="C", address="3 Sports Dr",
            morning_order=3, afternoon_order=1,
            morning_pickup_time=time(8, 0), afternoon_dropoff_time=time(16, 15),
        ),
        Stop(id="stop-x", route_id=OTHER_ROUTE_ID, name="X", morning_order=1, afternoon_order=1),
    ]
    for stop in stops:
        repository.add_stop(stop)

    repository.add_student(Student(id="student-alex", name="Alex Johnson", grade="4th", parent_id=PARENT_ID))
    repository.add_student(Student(id="student-emma", name="Emma Davis", grade="6th", parent_id=PARENT_ID))
    repository.add_student(Student(id="student-sam", name="Sam Lee", grade="5th", parent_id=OTHER_PARENT_ID))

    repository.add_driver_assignment(
        DriverAssignment(id="assignment-1", driver_id=DRIVER_ID, route_id=ROUTE_ID, time_slot=TimeSlot.MORNING)
    )
    return repository


def add_students(repository, count: int, parent_id: str = PARENT_ID, prefix: str = "kid") -> List[str]:
    ids = []
    for i in range(count):
        student = Student(id=f"{prefix}-{i}", name=f"Kid {i:02d}", grade="5th", parent_id=parent_id)
        repository.add_student(student)
        ids.append(student.id)
    return ids


# ============================================================
# FIXTURES
# ============================================================

@pytest.fixture
def repository() -> InMemoryRepository:
    """In-memory repository with the Frisco scenario loaded."""
    return populate_frisco(InMemoryRepository())


@pytest.fixture
def sql_repository():
    """SQLAlchemy repository on an in-memory SQLite database with the Frisco scenario."""
    db = _make_test_session()
    try:
        yield populate_frisco(SqlAlchemyRepository(db))
    finally:
        db.close()


@pytest.fixture(params=["memory", "sqlite"])
def any_repository(request):
    """Both repository implementations; they must honour the same contract."""
    if request.param == "memory":
        yield populate_frisco(InMemoryRepository())
        return
    db = _make_test_session()
    try:
        yield populate_frisco(SqlAlchemyRepository(db))
    finally:
        db.close()


@pytest.fixture
def locks() -> SlotLockRegistry:
    return SlotLockRegistry()


@pytest.fixture
def engine(repository, locks) -> BookingEngine:
    return BookingEngine(repository, locks=locks)


@pytest.fixture
def tracker() -> PickupTracker:
    return PickupTracker()
