"""
Tests for manifest derivation and driver assignment lookup.
"""

from datetime import time

import pytest

from conftest import DRIVER_ID, FRIDAY, OTHER_ROUTE_ID, PARENT_ID, ROUTE_ID, TUESDAY, add_students
from models import DayVariant, DriverAssignment, Stop, TimeSlot
from services.errors import NotFoundError, OwnershipError, ValidationError
from services.manifest_builder import ManifestBuilder
from services.stop_directory import StopDirectory


@pytest.fixture
def booked(repository, engine):
    """Alex at A, Emma at B and one extra student at C, for both runs."""
    extra = add_students(repository, 1)[0]
    for slot in (TimeSlot.MORNING, TimeSlot.AFTERNOON):
        engine.create_booking(PARENT_ID, "student-alex", ROUTE_ID, "stop-a", TUESDAY, slot)
        engine.create_booking(PARENT_ID, "student-emma", ROUTE_ID, "stop-b", TUESDAY, slot)
        engine.create_booking(PARENT_ID, extra, ROUTE_ID, "stop-c", TUESDAY, slot)
    return repository


def _stop_ids(manifest):
    return [s.stop_id for s in manifest.stops]


class TestBuildManifest:

    def test_morning_follows_morning_order(self, booked):
        manifest = ManifestBuilder(booked).build_manifest(ROUTE_ID, TimeSlot.MORNING, TUESDAY)
        assert _stop_ids(manifest) == ["stop-a", "stop-b", "stop-c"]
        assert [s.position for s in manifest.stops] == [1, 2, 3]
        assert manifest.total_students == 3

    def test_afternoon_follows_afternoon_order(self, booked):
        manifest = ManifestBuilder(booked).build_manifest(ROUTE_ID, TimeSlot.AFTERNOON, TUESDAY)
        assert _stop_ids(manifest) == ["stop-c", "stop-b", "stop-a"]

    def test_stops_without_bookings_are_omitted(self, repository, engine):
        engine.create_booking(PARENT_ID, "student-alex", ROUTE_ID, "stop-b", TUESDAY, TimeSlot.MORNING)
        manifest = ManifestBuilder(repository).build_manifest(ROUTE_ID, TimeSlot.MORNING, TUESDAY)
        assert _stop_ids(manifest) == ["stop-b"]

    def test_cancelled_bookings_are_excluded(self, repository, engine):
        booking = engine.create_booking(PARENT_ID, "student-alex", ROUTE_ID, "stop-a", TUESDAY, TimeSlot.MORNING)
        engine.cancel_booking(booking.id, PARENT_ID)
        manifest = ManifestBuilder(repository).build_manifest(ROUTE_ID, TimeSlot.MORNING, TUESDAY)
        assert manifest.stops == []
        assert manifest.next_stop_id is None

    def test_students_keep_booking_order_within_stop(self, repository, engine):
        ids = add_students(repository, 4)
        for sid in ids:
            engine.create_booking(PARENT_ID, sid, ROUTE_ID, "stop-a", TUESDAY, TimeSlot.MORNING)
        manifest = ManifestBuilder(repository).build_manifest(ROUTE_ID, TimeSlot.MORNING, TUESDAY)
        assert [e.student_id for e in manifest.stops[0].students] == ids

    def test_entries_carry_student_details(self, booked):
        manifest = ManifestBuilder(booked).build_manifest(ROUTE_ID, TimeSlot.MORNING, TUESDAY)
        entry = manifest.stops[0].students[0]
        assert entry.student_name == "Alex Johnson"
        assert entry.grade == "4th"
        assert entry.stop_name == "A"
        assert entry.is_picked_up is False

    def test_unordered_stop_comes_last(self, repository, engine):
        repository.add_stop(Stop(id="stop-new", route_id=ROUTE_ID, name="New"))
        engine.create_booking(PARENT_ID, "student-alex", ROUTE_ID, "stop-new", TUESDAY, TimeSlot.MORNING)
        engine.create_booking(PARENT_ID, "student-emma", ROUTE_ID, "stop-c", TUESDAY, TimeSlot.MORNING)

        manifest = ManifestBuilder(repository).build_manifest(ROUTE_ID, TimeSlot.MORNING, TUESDAY)
        assert _stop_ids(manifest) == ["stop-c", "stop-new"]
        assert manifest.stops[1].position is None

    def test_schedule_time_follows_day_variant(self, repository, engine):
        engine.create_booking(PARENT_ID, "student-alex", ROUTE_ID, "stop-a", FRIDAY, TimeSlot.AFTERNOON)
        manifest = ManifestBuilder(repository).build_manifest(ROUTE_ID, TimeSlot.AFTERNOON, FRIDAY)
        assert manifest.day_variant == DayVariant.FRIDAY
        assert manifest.stops[0].scheduled_time == time(14, 45)

        directory = StopDirectory(repository, early_release_dates=frozenset({FRIDAY}))
        manifest = ManifestBuilder(repository, directory).build_manifest(ROUTE_ID, TimeSlot.AFTERNOON, FRIDAY)
        assert manifest.day_variant == DayVariant.EARLY_RELEASE
        assert manifest.stops[0].scheduled_time == time(13, 45)

    def test_next_stop_is_first_untouched_stop(self, booked):
        manifest = ManifestBuilder(booked).build_manifest(ROUTE_ID, TimeSlot.MORNING, TUESDAY)
        assert manifest.next_stop_id == "stop-a"
        assert not manifest.stops[0].is_complete

    def test_same_inputs_same_manifest(self, booked):
        builder = ManifestBuilder(booked)
        first = builder.build_manifest(ROUTE_ID, TimeSlot.MORNING, TUESDAY)
        second = builder.build_manifest(ROUTE_ID, TimeSlot.MORNING, TUESDAY)
        assert first == second

    def test_unknown_route(self, repository):
        with pytest.raises(NotFoundError):
            ManifestBuilder(repository).build_manifest("nope", TimeSlot.MORNING, TUESDAY)

    def test_unknown_slot(self, repository):
        with pytest.raises(ValidationError):
            ManifestBuilder(repository).build_manifest(ROUTE_ID, "midday", TUESDAY)


class TestDriverAssignment:

    def test_assigned_route(self, repository):
        assert ManifestBuilder(repository).assigned_route_id(DRIVER_ID) == ROUTE_ID

    def test_slot_specific_assignment_wins(self, repository):
        repository.add_driver_assignment(
            DriverAssignment(id="assignment-2", driver_id=DRIVER_ID, route_id=OTHER_ROUTE_ID,
                             time_slot=TimeSlot.AFTERNOON)
        )
        builder = ManifestBuilder(repository)
        assert builder.assigned_route_id(DRIVER_ID, TimeSlot.MORNING) == ROUTE_ID
        assert builder.assigned_route_id(DRIVER_ID, TimeSlot.AFTERNOON) == OTHER_ROUTE_ID

    def test_inactive_assignment_ignored(self, repository):
        repository.add_driver_assignment(
            DriverAssignment(id="assignment-3", driver_id="driver-2", route_id=ROUTE_ID,
                             time_slot=TimeSlot.MORNING, is_active=False)
        )
        with pytest.raises(NotFoundError):
            ManifestBuilder(repository).assigned_route_id("driver-2")

    def test_build_for_driver(self, booked):
        manifest = ManifestBuilder(booked).build_for_driver(DRIVER_ID, TimeSlot.MORNING, TUESDAY)
        assert manifest.route_id == ROUTE_ID
        assert manifest.total_students == 3

    def test_driver_cannot_read_unassigned_route(self, repository):
        with pytest.raises(OwnershipError):
            ManifestBuilder(repository).build_for_driver(
                DRIVER_ID, TimeSlot.MORNING, TUESDAY, route_id=OTHER_ROUTE_ID
            )

    def test_unassigned_driver(self, repository):
        with pytest.raises(NotFoundError):
            ManifestBuilder(repository).build_for_driver("nobody", TimeSlot.MORNING, TUESDAY)
