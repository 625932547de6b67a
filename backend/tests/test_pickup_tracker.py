"""
Tests for session-scoped pickup tracking.
"""

from datetime import date, timedelta

import pytest

from conftest import DRIVER_ID, FRIDAY, PARENT_ID, ROUTE_ID, TUESDAY
from models import BookingStatus, TimeSlot
from services.errors import NotFoundError
from services.manifest_builder import ManifestBuilder


@pytest.fixture
def manifest(repository, engine):
    engine.create_booking(PARENT_ID, "student-alex", ROUTE_ID, "stop-a", TUESDAY, TimeSlot.MORNING)
    engine.create_booking(PARENT_ID, "student-emma", ROUTE_ID, "stop-c", TUESDAY, TimeSlot.MORNING)
    return ManifestBuilder(repository).build_for_driver(DRIVER_ID, TimeSlot.MORNING, TUESDAY)


@pytest.fixture
def session(tracker, manifest):
    key = tracker.key_for(DRIVER_ID, manifest)
    tracker.open_session(key, manifest)
    return key


def test_new_session_has_nobody_picked_up(tracker, manifest):
    key = tracker.key_for(DRIVER_ID, manifest)
    view = tracker.open_session(key, manifest)
    assert view.picked_up_count == 0
    assert all(not e.is_picked_up for s in view.stops for e in s.students)


def test_toggle_on_and_off(tracker, session):
    assert tracker.toggle_pickup(session, "student-alex") is True
    assert tracker.is_picked_up(session, "student-alex")
    assert tracker.toggle_pickup(session, "student-alex") is False
    assert not tracker.is_picked_up(session, "student-alex")


def test_view_reflects_pickups(tracker, session):
    tracker.toggle_pickup(session, "student-alex")
    view = tracker.view(session)

    assert view.picked_up_count == 1
    assert view.stops[0].is_complete
    # First stop done, so the highlight moves on.
    assert view.next_stop_id == "stop-c"


def test_all_picked_up(tracker, session):
    tracker.toggle_pickup(session, "student-alex")
    tracker.toggle_pickup(session, "student-emma")
    view = tracker.view(session)
    assert view.picked_up_count == view.total_students == 2
    assert view.next_stop_id is None


def test_out_of_order_pickup_allowed(tracker, session):
    assert tracker.toggle_pickup(session, "student-emma") is True
    assert tracker.view(session).next_stop_id == "stop-a"


def test_reopening_resets_progress(tracker, session, manifest):
    tracker.toggle_pickup(session, "student-alex")
    view = tracker.open_session(session, manifest)
    assert view.picked_up_count == 0
    assert not tracker.is_picked_up(session, "student-alex")


def test_pickups_never_touch_bookings(tracker, session, repository):
    tracker.toggle_pickup(session, "student-alex")
    bookings = repository.list_confirmed_bookings(ROUTE_ID, TimeSlot.MORNING, TUESDAY)
    assert all(b.status == BookingStatus.CONFIRMED for b in bookings)


def test_sessions_are_isolated(tracker, manifest, session):
    other = tracker.key_for("driver-2", manifest)
    tracker.open_session(other, manifest)
    tracker.toggle_pickup(session, "student-alex")
    assert not tracker.is_picked_up(other, "student-alex")
    assert len(tracker) == 2


def test_student_not_on_manifest(tracker, session):
    with pytest.raises(NotFoundError):
        tracker.toggle_pickup(session, "student-sam")


def test_missing_session(tracker, manifest):
    key = tracker.key_for(DRIVER_ID, manifest)
    assert tracker.find(key) is None
    with pytest.raises(NotFoundError):
        tracker.toggle_pickup(key, "student-alex")


def test_close_session(tracker, session):
    assert tracker.close_session(session)
    assert not tracker.close_session(session)
    assert len(tracker) == 0


def test_refresh_drops_cancelled_student(tracker, session, engine, repository):
    tracker.toggle_pickup(session, "student-alex")
    tracker.toggle_pickup(session, "student-emma")
    booking = repository.find_confirmed_booking("student-alex", TimeSlot.MORNING, TUESDAY)
    engine.cancel_booking(booking.id, PARENT_ID)

    fresh = ManifestBuilder(repository).build_for_driver(DRIVER_ID, TimeSlot.MORNING, TUESDAY)
    view = tracker.refresh(session, fresh)

    assert view.student_ids() == ["student-emma"]
    assert view.picked_up_count == 1
    with pytest.raises(NotFoundError):
        tracker.toggle_pickup(session, "student-alex")


def test_refresh_keeps_progress_when_bookings_unchanged(tracker, session, manifest):
    tracker.toggle_pickup(session, "student-alex")
    view = tracker.refresh(session, manifest)
    assert view.picked_up_count == 1


def test_refresh_opens_missing_session(tracker, manifest):
    key = tracker.key_for(DRIVER_ID, manifest)
    view = tracker.refresh(key, manifest)
    assert view.picked_up_count == 0
    assert tracker.find(key) is not None


def test_new_date_closes_drivers_older_sessions(tracker, manifest):
    start = date(2026, 2, 1)
    for offset in range(28):
        day = manifest.model_copy(update={"service_date": start + timedelta(days=offset)})
        tracker.open_session(tracker.key_for(DRIVER_ID, day), day)
    assert len(tracker) == 1


def test_same_day_sessions_and_other_drivers_survive(tracker, manifest, session):
    afternoon = manifest.model_copy(update={"time_slot": TimeSlot.AFTERNOON})
    tracker.open_session(tracker.key_for(DRIVER_ID, afternoon), afternoon)
    other_driver = tracker.key_for("driver-2", manifest)
    tracker.open_session(other_driver, manifest)
    assert len(tracker) == 3

    friday = manifest.model_copy(update={"service_date": FRIDAY})
    tracker.open_session(tracker.key_for(DRIVER_ID, friday), friday)

    assert tracker.find(session) is None
    assert tracker.find(other_driver) is not None
    assert len(tracker) == 2
