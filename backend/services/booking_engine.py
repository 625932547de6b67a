"""
Booking engine.

The only code path that creates or cancels reservations. Capacity is checked
and the booking inserted while holding the slot lock, and the repository
insert re-checks the count atomically, so two requests racing for the last
seat cannot both win.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime
from typing import List, Optional

from db.repository import ShuttleRepository
from models import Booking, BookingStatus, Route, Stop, Student, TimeSlot
from services.capacity_ledger import CapacityLedger
from services.errors import (
    CapacityExceededError,
    InvalidStateError,
    NotFoundError,
    OwnershipError,
    ValidationError,
)
from services.slot_locks import SlotKey, SlotLockRegistry, slot_locks

logger = logging.getLogger(__name__)


def parse_time_slot(value) -> TimeSlot:
    try:
        return TimeSlot(value)
    except ValueError as exc:
        raise ValidationError(f"Unknown time slot '{value}' (expected morning or afternoon)") from exc


class BookingEngine:
    """Creates and cancels bookings on behalf of a parent."""

    def __init__(
        self,
        repository: ShuttleRepository,
        ledger: Optional[CapacityLedger] = None,
        locks: Optional[SlotLockRegistry] = None,
    ) -> None:
        self.repository = repository
        self.ledger = ledger or CapacityLedger(repository)
        self.locks = locks or slot_locks

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _owned_student(self, parent_id: str, student_id: str) -> Student:
        student = self.repository.get_student(student_id)
        if student is None:
            raise NotFoundError(f"Student {student_id} not found")
        if student.parent_id != parent_id:
            raise OwnershipError("Cannot book for a student that does not belong to you")
        return student

    def _route(self, route_id: str) -> Route:
        route = self.repository.get_route(route_id)
        if route is None:
            raise NotFoundError(f"Route {route_id} not found")
        return route

    def _stop_on_route(self, route: Route, stop_id: str) -> Stop:
        stop = self.repository.get_stop(stop_id)
        if stop is None:
            raise NotFoundError(f"Stop {stop_id} not found")
        if stop.route_id != route.id:
            raise ValidationError(f"Stop '{stop.name}' is not on route '{route.name}'")
        return stop

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def create_booking(
        self,
        parent_id: str,
        student_id: str,
        route_id: str,
        stop_id: str,
        service_date: date,
        time_slot: TimeSlot,
    ) -> Booking:
        """
        Reserve a seat for a student.

        Raises:
            ValidationError: unknown time slot, or stop not on the route
            NotFoundError: student, route or stop does not exist
            OwnershipError: student belongs to another parent
            InvalidStateError: student already booked for that date and slot
            CapacityExceededError: no seat left at the stop
        """
        slot = parse_time_slot(time_slot)
        student = self._owned_student(parent_id, student_id)
        route = self._route(route_id)
        stop = self._stop_on_route(route, stop_id)

        key = SlotKey(route.id, stop.id, service_date, slot)
        with self.locks.hold(key):
            existing = self.repository.find_confirmed_booking(student.id, slot, service_date)
            if existing is not None:
                raise InvalidStateError(
                    f"{student.name} already has a {slot.value} booking on {service_date.isoformat()}"
                )

            if not self.ledger.is_bookable(route, stop, slot, service_date):
                logger.warning(f"Stop {stop.id} full for {slot.value} on {service_date}: rejecting {student.id}")
                raise CapacityExceededError(f"'{stop.name}' is fully booked for the {slot.value} run")

            booking = Booking(
                id=str(uuid.uuid4()),
                student_id=student.id,
                route_id=route.id,
                stop_id=stop.id,
                service_date=service_date,
                time_slot=slot,
                status=BookingStatus.CONFIRMED,
                created_at=datetime.utcnow(),
            )
            if not self.repository.add_booking_if_available(booking, route.capacity):
                # Another process took the seat between check and insert.
                logger.warning(f"Capacity race lost at stop {stop.id} ({slot.value} {service_date})")
                raise CapacityExceededError(f"'{stop.name}' is fully booked for the {slot.value} run")

        logger.info(
            f"Booking {booking.id} confirmed: student {student.id} at stop {stop.id} "
            f"({slot.value} {service_date})"
        )
        return booking

    def cancel_booking(self, booking_id: str, parent_id: str) -> Booking:
        """
        Cancel a confirmed booking. Cancelling twice raises InvalidStateError.
        """
        booking = self.repository.get_booking(booking_id)
        if booking is None:
            raise NotFoundError(f"Booking {booking_id} not found")
        student = self.repository.get_student(booking.student_id)
        if student is None or student.parent_id != parent_id:
            raise OwnershipError("Cannot modify a booking that does not belong to you")
        if booking.status != BookingStatus.CONFIRMED:
            raise InvalidStateError(f"Booking {booking_id} is already {booking.status.value}")

        key = SlotKey(booking.route_id, booking.stop_id, booking.service_date, booking.time_slot)
        with self.locks.hold(key):
            cancelled = self.repository.transition_booking_status(
                booking_id, BookingStatus.CONFIRMED, BookingStatus.CANCELLED
            )
        if cancelled is None:
            raise InvalidStateError(f"Booking {booking_id} is already cancelled")

        logger.info(f"Booking {booking_id} cancelled by parent {parent_id}")
        return cancelled

    def list_bookings(
        self,
        parent_id: str,
        service_date: Optional[date] = None,
        status: Optional[BookingStatus] = None,
    ) -> List[Booking]:
        return self.repository.list_bookings_for_parent(parent_id, service_date=service_date, status=status)
