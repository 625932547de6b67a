"""
Concurrent booking bursts must never oversell a stop.
"""

from concurrent.futures import ThreadPoolExecutor
from threading import Barrier, Lock

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool

from conftest import PARENT_ID, ROUTE_ID, TUESDAY, add_students, populate_frisco
from db.models import Base
from db.repository import SqlAlchemyRepository
from models import TimeSlot
from services.booking_engine import BookingEngine
from services.errors import CapacityExceededError
from services.slot_locks import SlotLockRegistry


def _burst(repository, student_ids, stop_id, engine_factory):
    barrier = Barrier(len(student_ids))

    def attempt(student_id):
        engine = engine_factory()
        barrier.wait()
        try:
            engine.create_booking(PARENT_ID, student_id, ROUTE_ID, stop_id, TUESDAY, TimeSlot.MORNING)
            return "ok"
        except CapacityExceededError:
            return "full"

    with ThreadPoolExecutor(max_workers=len(student_ids)) as pool:
        return list(pool.map(attempt, student_ids))


def test_thirty_parents_race_for_fourteen_seats(repository, locks):
    ids = add_students(repository, 30)
    results = _burst(repository, ids, "stop-a", lambda: BookingEngine(repository, locks=locks))

    assert results.count("ok") == 14
    assert results.count("full") == 16
    assert repository.count_confirmed(ROUTE_ID, "stop-a", TimeSlot.MORNING, TUESDAY) == 14


def test_repository_insert_guards_without_shared_locks(repository):
    # Each engine gets its own lock registry, as with separate processes;
    # the repository's atomic insert still caps the stop.
    ids = add_students(repository, 20)
    results = _burst(repository, ids, "stop-b", lambda: BookingEngine(repository, locks=SlotLockRegistry()))

    assert results.count("ok") == 14
    assert repository.count_confirmed(ROUTE_ID, "stop-b", TimeSlot.MORNING, TUESDAY) == 14


def test_last_seat_goes_to_exactly_one(repository, locks):
    engine = BookingEngine(repository, locks=locks)
    ids = add_students(repository, 13, prefix="early")
    for sid in ids:
        engine.create_booking(PARENT_ID, sid, ROUTE_ID, "stop-c", TUESDAY, TimeSlot.MORNING)

    late = add_students(repository, 8, prefix="late")
    results = _burst(repository, late, "stop-c", lambda: BookingEngine(repository, locks=locks))

    assert results.count("ok") == 1
    assert repository.count_confirmed(ROUTE_ID, "stop-c", TimeSlot.MORNING, TUESDAY) == 14


@pytest.fixture
def sqlite_file_sessions(tmp_path):
    """Session factory on a file-backed SQLite database, one connection per session."""
    db_engine = create_engine(
        f"sqlite:///{tmp_path / 'shuttle.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
        poolclass=NullPool,
    )
    Base.metadata.create_all(bind=db_engine)
    Session = sessionmaker(bind=db_engine, autoflush=False, autocommit=False)

    setup = Session()
    populate_frisco(SqlAlchemyRepository(setup))
    setup.close()

    yield Session
    db_engine.dispose()


def test_sqlite_burst_with_session_per_thread(sqlite_file_sessions):
    # Separate sessions and lock registries, so only the database stands
    # between the racers, as with several server processes.
    Session = sqlite_file_sessions
    setup = Session()
    ids = add_students(SqlAlchemyRepository(setup), 30)
    setup.close()

    sessions = []
    sessions_guard = Lock()

    def engine_factory():
        db = Session()
        with sessions_guard:
            sessions.append(db)
        return BookingEngine(SqlAlchemyRepository(db), locks=SlotLockRegistry())

    try:
        results = _burst(None, ids, "stop-a", engine_factory)
    finally:
        for db in sessions:
            db.close()

    assert results.count("ok") == 14
    assert results.count("full") == 16

    check = Session()
    try:
        assert SqlAlchemyRepository(check).count_confirmed(ROUTE_ID, "stop-a", TimeSlot.MORNING, TUESDAY) == 14
    finally:
        check.close()
