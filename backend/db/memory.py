"""
In-memory repository.

Used when the database is disabled or unreachable, and by tests. Every call
holds one re-entrant lock, so check-and-insert is atomic within the process.
Nothing survives a restart.
"""

from __future__ import annotations

from datetime import date
from threading import RLock
from typing import Dict, List, Optional

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

from .repository import ShuttleRepository


class InMemoryRepository(ShuttleRepository):
    """Thread-safe dict-backed store; dicts keep insertion order for bookings."""

    def __init__(self) -> None:
        self._routes: Dict[str, Route] = {}
        self._stops: Dict[str, Stop] = {}
        self._students: Dict[str, Student] = {}
        self._bookings: Dict[str, Booking] = {}
        self._assignments: Dict[str, DriverAssignment] = {}
        self._lock = RLock()

    # ------------------------------------------------------------------ routes

    def get_route(self, route_id: str) -> Optional[Route]:
        with self._lock:
            route = self._routes.get(route_id)
            return route.model_copy() if route else None

    def list_routes(self) -> List[Route]:
        with self._lock:
            return sorted((r.model_copy() for r in self._routes.values()), key=lambda r: r.name)

    def add_route(self, route: Route) -> Route:
        with self._lock:
            self._routes[route.id] = route.model_copy()
            return route

    # ------------------------------------------------------------------- stops

    def get_stop(self, stop_id: str) -> Optional[Stop]:
        with self._lock:
            stop = self._stops.get(stop_id)
            return stop.model_copy() if stop else None

    def list_stops(self, route_id: str) -> List[Stop]:
        with self._lock:
            stops = [s.model_copy() for s in self._stops.values() if s.route_id == route_id]
            stops.sort(key=lambda s: (s.name, s.id))
            return stops

    def _check_orders(self, stop: Stop) -> None:
        for other in self._stops.values():
            if other.route_id != stop.route_id or other.id == stop.id:
                continue
            if stop.morning_order is not None and other.morning_order == stop.morning_order:
                raise ValidationError("Stop order already used on this route")
            if stop.afternoon_order is not None and other.afternoon_order == stop.afternoon_order:
                raise ValidationError("Stop order already used on this route")

    def add_stop(self, stop: Stop) -> Stop:
        with self._lock:
            self._check_orders(stop)
            self._stops[stop.id] = stop.model_copy()
            return stop

    def save_stop(self, stop: Stop) -> Stop:
        with self._lock:
            if stop.id not in self._stops:
                raise NotFoundError(f"Stop {stop.id} not found")
            self._check_orders(stop)
            self._stops[stop.id] = stop.model_copy()
            return stop

    def delete_stop(self, stop_id: str) -> bool:
        with self._lock:
            if self._stops.pop(stop_id, None) is None:
                return False
            self._bookings = {
                booking_id: b
                for booking_id, b in self._bookings.items()
                if not (b.stop_id == stop_id and b.status == BookingStatus.CANCELLED)
            }
            return True

    # ---------------------------------------------------------------- students

    def get_student(self, student_id: str) -> Optional[Student]:
        with self._lock:
            student = self._students.get(student_id)
            return student.model_copy() if student else None

    def list_students(self, parent_id: str) -> List[Student]:
        with self._lock:
            students = [s.model_copy() for s in self._students.values() if s.parent_id == parent_id]
            students.sort(key=lambda s: s.name)
            return students

    def add_student(self, student: Student) -> Student:
        with self._lock:
            self._students[student.id] = student.model_copy()
            return student

    # ---------------------------------------------------------------- bookings

    def get_booking(self, booking_id: str) -> Optional[Booking]:
        with self._lock:
            booking = self._bookings.get(booking_id)
            return booking.model_copy() if booking else None

    def list_bookings_for_parent(
        self,
        parent_id: str,
        service_date: Optional[date] = None,
        status: Optional[BookingStatus] = None,
    ) -> List[Booking]:
        with self._lock:
            student_ids = {s.id for s in self._students.values() if s.parent_id == parent_id}
            bookings = [
                b.model_copy()
                for b in self._bookings.values()
                if b.student_id in student_ids
                and (service_date is None or b.service_date == service_date)
                and (status is None or b.status == status)
            ]
            bookings.sort(key=lambda b: (b.service_date, b.created_at))
            return bookings

    def _confirmed(self, route_id: str, time_slot: TimeSlot, service_date: date) -> List[Booking]:
        slot = TimeSlot(time_slot)
        return [
            b
            for b in self._bookings.values()
            if b.route_id == route_id
            and b.time_slot == slot
            and b.service_date == service_date
            and b.status == BookingStatus.CONFIRMED
        ]

    def list_confirmed_bookings(self, route_id: str, time_slot: TimeSlot, service_date: date) -> List[Booking]:
        with self._lock:
            return [b.model_copy() for b in self._confirmed(route_id, time_slot, service_date)]

    def count_confirmed(self, route_id: str, stop_id: str, time_slot: TimeSlot, service_date: date) -> int:
        with self._lock:
            return sum(1 for b in self._confirmed(route_id, time_slot, service_date) if b.stop_id == stop_id)

    def count_confirmed_by_stop(self, route_id: str, time_slot: TimeSlot, service_date: date) -> Dict[str, int]:
        with self._lock:
            counts: Dict[str, int] = {}
            for b in self._confirmed(route_id, time_slot, service_date):
                counts[b.stop_id] = counts.get(b.stop_id, 0) + 1
            return counts

    def count_confirmed_at_stop(self, stop_id: str) -> int:
        with self._lock:
            return sum(
                1
                for b in self._bookings.values()
                if b.stop_id == stop_id and b.status == BookingStatus.CONFIRMED
            )

    def find_confirmed_booking(self, student_id: str, time_slot: TimeSlot, service_date: date) -> Optional[Booking]:
        slot = TimeSlot(time_slot)
        with self._lock:
            for b in self._bookings.values():
                if (
                    b.student_id == student_id
                    and b.time_slot == slot
                    and b.service_date == service_date
                    and b.status == BookingStatus.CONFIRMED
                ):
                    return b.model_copy()
            return None

    def add_booking_if_available(self, booking: Booking, capacity: int) -> bool:
        with self._lock:
            booked = self.count_confirmed(
                booking.route_id, booking.stop_id, booking.time_slot, booking.service_date
            )
            if booked >= capacity:
                return False
            self._bookings[booking.id] = booking.model_copy()
            return True

    def transition_booking_status(
        self,
        booking_id: str,
        expected: BookingStatus,
        new: BookingStatus,
    ) -> Optional[Booking]:
        with self._lock:
            booking = self._bookings.get(booking_id)
            if booking is None or booking.status != expected:
                return None
            updated = booking.model_copy(update={"status": new})
            self._bookings[booking_id] = updated
            return updated.model_copy()

    # -------------------------------------------------------- driver assignments

    def get_driver_assignments(self, driver_id: str) -> List[DriverAssignment]:
        with self._lock:
            assignments = [a.model_copy() for a in self._assignments.values() if a.driver_id == driver_id]
            assignments.sort(key=lambda a: a.time_slot.value)
            return assignments

    def add_driver_assignment(self, assignment: DriverAssignment) -> DriverAssignment:
        with self._lock:
            self._assignments[assignment.id] = assignment.model_copy()
            return assignment
