"""
Route capacity ledger.

The single place where seat arithmetic happens. Each (route, stop, date,
time slot) is checked against the full route capacity; the ledger keeps no
running count and re-derives everything from confirmed bookings.
"""

from __future__ import annotations

from datetime import date
from typing import Iterable, List, Union

from db.repository import ShuttleRepository
from models import Route, Stop, StopAvailability, TimeSlot


def _stop_id(stop: Union[Stop, str]) -> str:
    return stop.id if isinstance(stop, Stop) else str(stop)


class CapacityLedger:
    """Read-only seat accounting over the current booking set."""

    def __init__(self, repository: ShuttleRepository) -> None:
        self.repository = repository

    def booked_seats(self, route: Route, stop: Union[Stop, str], time_slot: TimeSlot, service_date: date) -> int:
        return self.repository.count_confirmed(route.id, _stop_id(stop), TimeSlot(time_slot), service_date)

    def seats_left(self, route: Route, booked: int) -> int:
        return max(0, route.capacity - booked)

    def available_seats(self, route: Route, stop: Union[Stop, str], time_slot: TimeSlot, service_date: date) -> int:
        """Seats still free at the stop; clamps at zero."""
        return self.seats_left(route, self.booked_seats(route, stop, time_slot, service_date))

    def is_bookable(self, route: Route, stop: Union[Stop, str], time_slot: TimeSlot, service_date: date) -> bool:
        return self.available_seats(route, stop, time_slot, service_date) > 0

    def stop_availability(
        self,
        route: Route,
        stops: Iterable[Stop],
        time_slot: TimeSlot,
        service_date: date,
    ) -> List[StopAvailability]:
        counts = self.repository.count_confirmed_by_stop(route.id, TimeSlot(time_slot), service_date)
        result = []
        for stop in stops:
            booked = counts.get(stop.id, 0)
            result.append(
                StopAvailability(
                    stop_id=stop.id,
                    stop_name=stop.name,
                    capacity=route.capacity,
                    booked_seats=booked,
                    available_seats=self.seats_left(route, booked),
                )
            )
        return result

    def route_occupancy(self, route: Route, time_slot: TimeSlot, service_date: date) -> int:
        """Total confirmed seats on the run, summed over stops."""
        counts = self.repository.count_confirmed_by_stop(route.id, TimeSlot(time_slot), service_date)
        return sum(counts.values())
