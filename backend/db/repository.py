"""
Persistence interface for the booking core.

Services depend on `ShuttleRepository` only. Two implementations exist:
`SqlAlchemyRepository` (this module) and `InMemoryRepository` (db/memory.py),
used when the database is disabled and by the test-suite.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import date
from typing import Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models import (
    Booking,
    BookingStatus,
    DriverAssignment,
    Route,
    Stop,
    Student,
    TimeSlot,
)
from services.errors import NotFoundError, ValidationError

from . import crud

logger = logging.getLogger(__name__)


class ShuttleRepository(ABC):
    """Transactional CRUD over routes, stops, students, bookings and assignments."""

    # Routes
    @abstractmethod
    def get_route(self, route_id: str) -> Optional[Route]: ...

    @abstractmethod
    def list_routes(self) -> List[Route]: ...

    @abstractmethod
    def add_route(self, route: Route) -> Route: ...

    # Stops
    @abstractmethod
    def get_stop(self, stop_id: str) -> Optional[Stop]: ...

    @abstractmethod
    def list_stops(self, route_id: str) -> List[Stop]: ...

    @abstractmethod
    def add_stop(self, stop: Stop) -> Stop: ...

    @abstractmethod
    def save_stop(self, stop: Stop) -> Stop: ...

    @abstractmethod
    def delete_stop(self, stop_id: str) -> bool: ...

    # Students
    @abstractmethod
    def get_student(self, student_id: str) -> Optional[Student]: ...

    @abstractmethod
    def list_students(self, parent_id: str) -> List[Student]: ...

    @abstractmethod
    def add_student(self, student: Student) -> Student: ...

    # Bookings
    @abstractmethod
    def get_booking(self, booking_id: str) -> Optional[Booking]: ...

    @abstractmethod
    def list_bookings_for_parent(
        self,
        parent_id: str,
        service_date: Optional[date] = None,
        status: Optional[BookingStatus] = None,
    ) -> List[Booking]: ...

    @abstractmethod
    def list_confirmed_bookings(self, route_id: str, time_slot: TimeSlot, service_date: date) -> List[Booking]:
        """Confirmed bookings for one run, in insertion order."""

    @abstractmethod
    def count_confirmed(self, route_id: str, stop_id: str, time_slot: TimeSlot, service_date: date) -> int: ...

    @abstractmethod
    def count_confirmed_by_stop(self, route_id: str, time_slot: TimeSlot, service_date: date) -> Dict[str, int]: ...

    @abstractmethod
    def count_confirmed_at_stop(self, stop_id: str) -> int:
        """Confirmed bookings at a stop across every date and slot."""

    @abstractmethod
    def find_confirmed_booking(self, student_id: str, time_slot: TimeSlot, service_date: date) -> Optional[Booking]: ...

    @abstractmethod
    def add_booking_if_available(self, booking: Booking, capacity: int) -> bool:
        """
        Atomically count confirmed bookings at the booking's stop/slot/date and
        insert it only if the count is below `capacity`.
        """

    @abstractmethod
    def transition_booking_status(
        self,
        booking_id: str,
        expected: BookingStatus,
        new: BookingStatus,
    ) -> Optional[Booking]:
        """Set `new` only if the current status is `expected`; None otherwise."""

    # Driver assignments
    @abstractmethod
    def get_driver_assignments(self, driver_id: str) -> List[DriverAssignment]: ...

    @abstractmethod
    def add_driver_assignment(self, assignment: DriverAssignment) -> DriverAssignment: ...


def _to_route(row) -> Route:
    return Route.model_validate(row, from_attributes=True)


def _to_stop(row) -> Stop:
    return Stop.model_validate(row, from_attributes=True)


def _to_student(row) -> Student:
    return Student.model_validate(row, from_attributes=True)


def _to_booking(row) -> Booking:
    return Booking.model_validate(row, from_attributes=True)


def _to_assignment(row) -> DriverAssignment:
    return DriverAssignment.model_validate(row, from_attributes=True)


def _booking_row(booking: Booking) -> dict:
    data = booking.model_dump()
    data["time_slot"] = booking.time_slot.value
    data["status"] = booking.status.value
    return data


class SqlAlchemyRepository(ShuttleRepository):
    """Repository bound to one SQLAlchemy session (one request)."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def get_route(self, route_id: str) -> Optional[Route]:
        row = crud.get_route(self.db, route_id)
        return _to_route(row) if row else None

    def list_routes(self) -> List[Route]:
        return [_to_route(r) for r in crud.get_routes(self.db)]

    def add_route(self, route: Route) -> Route:
        return _to_route(crud.create_route(self.db, route.model_dump()))

    def get_stop(self, stop_id: str) -> Optional[Stop]:
        row = crud.get_stop(self.db, stop_id)
        return _to_stop(row) if row else None

    def list_stops(self, route_id: str) -> List[Stop]:
        return [_to_stop(s) for s in crud.get_stops_by_route(self.db, route_id)]

    def add_stop(self, stop: Stop) -> Stop:
        try:
            return _to_stop(crud.create_stop(self.db, stop.model_dump()))
        except IntegrityError as exc:
            self.db.rollback()
            logger.warning(f"Stop order conflict on route {stop.route_id}: {exc.orig}")
            raise ValidationError("Stop order already used on this route") from exc

    def save_stop(self, stop: Stop) -> Stop:
        changes = stop.model_dump(exclude={"id", "route_id"})
        try:
            row = crud.update_stop(self.db, stop.id, changes)
        except IntegrityError as exc:
            self.db.rollback()
            logger.warning(f"Stop order conflict on route {stop.route_id}: {exc.orig}")
            raise ValidationError("Stop order already used on this route") from exc
        if row is None:
            # Deleted between read and write.
            raise NotFoundError(f"Stop {stop.id} not found")
        return _to_stop(row)

    def delete_stop(self, stop_id: str) -> bool:
        return crud.delete_stop(self.db, stop_id)

    def get_student(self, student_id: str) -> Optional[Student]:
        row = crud.get_student(self.db, student_id)
        return _to_student(row) if row else None

    def list_students(self, parent_id: str) -> List[Student]:
        return [_to_student(s) for s in crud.get_students_by_parent(self.db, parent_id)]

    def add_student(self, student: Student) -> Student:
        return _to_student(crud.create_student(self.db, student.model_dump()))

    def get_booking(self, booking_id: str) -> Optional[Booking]:
        row = crud.get_booking(self.db, booking_id)
        return _to_booking(row) if row else None

    def list_bookings_for_parent(
        self,
        parent_id: str,
        service_date: Optional[date] = None,
        status: Optional[BookingStatus] = None,
    ) -> List[Booking]:
        rows = crud.get_bookings_by_parent(
            self.db,
            parent_id,
            service_date=service_date,
            status=status.value if status else None,
        )
        return [_to_booking(b) for b in rows]

    def list_confirmed_bookings(self, route_id: str, time_slot: TimeSlot, service_date: date) -> List[Booking]:
        rows = crud.get_confirmed_bookings(self.db, route_id, TimeSlot(time_slot).value, service_date)
        return [_to_booking(b) for b in rows]

    def count_confirmed(self, route_id: str, stop_id: str, time_slot: TimeSlot, service_date: date) -> int:
        return crud.count_confirmed(self.db, route_id, stop_id, TimeSlot(time_slot).value, service_date)

    def count_confirmed_by_stop(self, route_id: str, time_slot: TimeSlot, service_date: date) -> Dict[str, int]:
        return crud.count_confirmed_by_stop(self.db, route_id, TimeSlot(time_slot).value, service_date)

    def count_confirmed_at_stop(self, stop_id: str) -> int:
        return crud.count_confirmed_at_stop(self.db, stop_id)

    def find_confirmed_booking(self, student_id: str, time_slot: TimeSlot, service_date: date) -> Optional[Booking]:
        row = crud.find_confirmed_booking(self.db, student_id, TimeSlot(time_slot).value, service_date)
        return _to_booking(row) if row else None

    def add_booking_if_available(self, booking: Booking, capacity: int) -> bool:
        row = crud.add_booking_if_available(self.db, _booking_row(booking), capacity)
        return row is not None

    def transition_booking_status(
        self,
        booking_id: str,
        expected: BookingStatus,
        new: BookingStatus,
    ) -> Optional[Booking]:
        row = crud.transition_booking_status(self.db, booking_id, expected.value, new.value)
        return _to_booking(row) if row else None

    def get_driver_assignments(self, driver_id: str) -> List[DriverAssignment]:
        return [_to_assignment(a) for a in crud.get_driver_assignments(self.db, driver_id)]

    def add_driver_assignment(self, assignment: DriverAssignment) -> DriverAssignment:
        data = assignment.model_dump()
        data["time_slot"] = assignment.time_slot.value
        return _to_assignment(crud.create_driver_assignment(self.db, data))
