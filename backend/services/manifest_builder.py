"""
Manifest builder.

Derives the driver-facing pickup list for one route, time slot and date
from the confirmed bookings. Stops are ordered by the slot's order key
(morning_order for morning runs, afternoon_order for afternoon runs);
students within a stop keep booking order.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from datetime import date
from typing import Dict, List, Optional

from db.repository import ShuttleRepository
from models import Booking, DriverAssignment, Manifest, ManifestEntry, ManifestStop, Stop, Student, TimeSlot
from services.booking_engine import parse_time_slot
from services.errors import NotFoundError, OwnershipError
from services.stop_directory import StopDirectory, order_for, sort_stops

logger = logging.getLogger(__name__)


class ManifestBuilder:
    """Builds manifests; holds no state between calls."""

    def __init__(self, repository: ShuttleRepository, directory: Optional[StopDirectory] = None) -> None:
        self.repository = repository
        self.directory = directory or StopDirectory(repository)

    # ------------------------------------------------------------------
    # Driver assignment
    # ------------------------------------------------------------------

    def active_assignments(self, driver_id: str) -> List[DriverAssignment]:
        return [a for a in self.repository.get_driver_assignments(driver_id) if a.is_active]

    def assigned_route_id(self, driver_id: str, time_slot: Optional[TimeSlot] = None) -> str:
        """
        Route the driver runs. An assignment for the requested slot wins;
        otherwise the driver's first active assignment is used.
        """
        assignments = self.active_assignments(driver_id)
        if not assignments:
            raise NotFoundError(f"Driver {driver_id} has no active route assignment")
        if time_slot is not None:
            slot = TimeSlot(time_slot)
            for assignment in assignments:
                if assignment.time_slot == slot:
                    return assignment.route_id
        return assignments[0].route_id

    # ------------------------------------------------------------------
    # Building
    # ------------------------------------------------------------------

    def _stops_by_id(self, route_id: str, bookings: List[Booking]) -> Dict[str, Stop]:
        stops = {stop.id: stop for stop in self.repository.list_stops(route_id)}
        for booking in bookings:
            if booking.stop_id not in stops:
                stop = self.repository.get_stop(booking.stop_id)
                if stop is None:
                    raise NotFoundError(f"Stop {booking.stop_id} referenced by booking {booking.id} not found")
                stops[stop.id] = stop
        return stops

    def _student(self, cache: Dict[str, Student], booking: Booking) -> Student:
        student = cache.get(booking.student_id)
        if student is None:
            student = self.repository.get_student(booking.student_id)
            if student is None:
                raise NotFoundError(f"Student {booking.student_id} referenced by booking {booking.id} not found")
            cache[student.id] = student
        return student

    def build_manifest(self, route_id: str, time_slot: TimeSlot, service_date: date) -> Manifest:
        slot = parse_time_slot(time_slot)
        route = self.repository.get_route(route_id)
        if route is None:
            raise NotFoundError(f"Route {route_id} not found")

        bookings = self.repository.list_confirmed_bookings(route.id, slot, service_date)
        stops = self._stops_by_id(route.id, bookings)
        students: Dict[str, Student] = {}

        grouped: "OrderedDict[str, List[ManifestEntry]]" = OrderedDict()
        for booking in bookings:
            stop = stops[booking.stop_id]
            student = self._student(students, booking)
            grouped.setdefault(stop.id, []).append(
                ManifestEntry(
                    booking_id=booking.id,
                    student_id=student.id,
                    student_name=student.name,
                    grade=student.grade,
                    stop_id=stop.id,
                    stop_name=stop.name,
                    time_slot=slot,
                )
            )

        variant = self.directory.day_variant_for(service_date)
        manifest_stops = [
            ManifestStop(
                stop_id=stop.id,
                stop_name=stop.name,
                address=stop.address,
                position=order_for(stop, slot),
                scheduled_time=self.directory.schedule_time_for(stop, slot, variant),
                students=grouped[stop.id],
            )
            for stop in sort_stops((stops[stop_id] for stop_id in grouped), slot)
        ]

        manifest = Manifest(
            route_id=route.id,
            route_name=route.name,
            time_slot=slot,
            service_date=service_date,
            day_variant=variant,
            stops=manifest_stops,
        )
        logger.debug(
            f"Manifest for {route.id} {slot.value} {service_date}: "
            f"{manifest.total_students} students at {len(manifest_stops)} stops"
        )
        return manifest

    def build_for_driver(
        self,
        driver_id: str,
        time_slot: TimeSlot,
        service_date: date,
        route_id: Optional[str] = None,
    ) -> Manifest:
        """Manifest for a route the driver is assigned to."""
        slot = parse_time_slot(time_slot)
        if route_id is None:
            route_id = self.assigned_route_id(driver_id, slot)
        elif route_id not in {a.route_id for a in self.active_assignments(driver_id)}:
            raise OwnershipError(f"Driver {driver_id} is not assigned to route {route_id}")
        return self.build_manifest(route_id, slot, service_date)
