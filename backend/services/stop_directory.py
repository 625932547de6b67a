"""
Stop directory.

Ordered stops per route, their schedule time for a given day and the stop
management operations drivers use to configure a route.
"""

from __future__ import annotations

import logging
import math
import uuid
from datetime import date, time
from typing import Any, Dict, FrozenSet, Iterable, List, Optional

import pydantic

from db.repository import ShuttleRepository
from models import DayVariant, Stop, TimeSlot
from services.errors import InvalidStateError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

# Returned when a stop has no time for the requested slot/variant.
NOT_SET: Optional[time] = None
NOT_SET_LABEL = "Not set"

FRIDAY = 4

_SCHEDULE_FIELDS = {
    (TimeSlot.MORNING, DayVariant.REGULAR): "morning_pickup_time",
    (TimeSlot.AFTERNOON, DayVariant.REGULAR): "afternoon_dropoff_time",
    (TimeSlot.MORNING, DayVariant.FRIDAY): "friday_morning_pickup_time",
    (TimeSlot.AFTERNOON, DayVariant.FRIDAY): "friday_afternoon_dropoff_time",
    (TimeSlot.MORNING, DayVariant.EARLY_RELEASE): "early_release_morning_pickup_time",
    (TimeSlot.AFTERNOON, DayVariant.EARLY_RELEASE): "early_release_afternoon_dropoff_time",
}


def order_for(stop: Stop, time_slot: Optional[TimeSlot] = None) -> Optional[int]:
    """Position of the stop in the run for the slot (morning order by default)."""
    if time_slot is not None and TimeSlot(time_slot) == TimeSlot.AFTERNOON:
        return stop.afternoon_order
    return stop.morning_order


def sort_stops(stops: Iterable[Stop], time_slot: Optional[TimeSlot] = None) -> List[Stop]:
    """
    Sort stops by the order key of the time slot.

    Stops without an order sort last (treated as +inf) so a route stays
    renderable while orders are being assigned. Name and id break ties.
    """
    def _key(stop: Stop) -> tuple:
        position = order_for(stop, time_slot)
        return (math.inf if position is None else position, stop.name, stop.id)

    return sorted(stops, key=_key)


def day_variant_for(service_date: date, early_release_dates: FrozenSet[date] = frozenset()) -> DayVariant:
    """Early release days win over Fridays; everything else is a regular day."""
    if service_date in early_release_dates:
        return DayVariant.EARLY_RELEASE
    if service_date.weekday() == FRIDAY:
        return DayVariant.FRIDAY
    return DayVariant.REGULAR


def schedule_time_for(stop: Stop, time_slot: TimeSlot, day_variant: DayVariant) -> Optional[time]:
    """Scheduled pickup/dropoff time, or NOT_SET. Never raises."""
    try:
        field = _SCHEDULE_FIELDS[(TimeSlot(time_slot), DayVariant(day_variant))]
    except (KeyError, ValueError):
        return NOT_SET
    return getattr(stop, field, NOT_SET)


def _validated_stop(data: Dict[str, Any]) -> Stop:
    try:
        return Stop.model_validate(data)
    except pydantic.ValidationError as exc:
        raise ValidationError(f"Invalid stop: {exc.errors()[0]['msg']}") from exc


def format_schedule_time(value: Optional[time]) -> str:
    if value is None:
        return NOT_SET_LABEL
    return value.strftime("%H:%M")


class StopDirectory:
    """Reads and maintains the stops of each route."""

    def __init__(self, repository: ShuttleRepository, early_release_dates: FrozenSet[date] = frozenset()) -> None:
        self.repository = repository
        self.early_release_dates = frozenset(early_release_dates)

    def list_stops(self, route_id: str, time_slot: Optional[TimeSlot] = None) -> List[Stop]:
        if self.repository.get_route(route_id) is None:
            raise NotFoundError(f"Route {route_id} not found")
        return sort_stops(self.repository.list_stops(route_id), time_slot)

    def get_stop(self, stop_id: str) -> Stop:
        stop = self.repository.get_stop(stop_id)
        if stop is None:
            raise NotFoundError(f"Stop {stop_id} not found")
        return stop

    def day_variant_for(self, service_date: date) -> DayVariant:
        return day_variant_for(service_date, self.early_release_dates)

    def schedule_time_for(self, stop: Stop, time_slot: TimeSlot, day_variant: DayVariant) -> Optional[time]:
        return schedule_time_for(stop, time_slot, day_variant)

    def scheduled_time_on(self, stop: Stop, time_slot: TimeSlot, service_date: date) -> Optional[time]:
        return schedule_time_for(stop, time_slot, self.day_variant_for(service_date))

    # ------------------------------------------------------------------
    # Stop management
    # ------------------------------------------------------------------

    def _ensure_unique_orders(self, candidate: Stop) -> None:
        for other in self.repository.list_stops(candidate.route_id):
            if other.id == candidate.id:
                continue
            if candidate.morning_order is not None and other.morning_order == candidate.morning_order:
                raise ValidationError(
                    f"Morning order {candidate.morning_order} is already used by stop '{other.name}'"
                )
            if candidate.afternoon_order is not None and other.afternoon_order == candidate.afternoon_order:
                raise ValidationError(
                    f"Afternoon order {candidate.afternoon_order} is already used by stop '{other.name}'"
                )

    def create_stop(self, route_id: str, payload: Dict[str, Any]) -> Stop:
        if self.repository.get_route(route_id) is None:
            raise NotFoundError(f"Route {route_id} not found")
        data = dict(payload)
        data.pop("id", None)
        data["route_id"] = route_id
        stop = _validated_stop({**data, "id": str(uuid.uuid4())})
        self._ensure_unique_orders(stop)
        created = self.repository.add_stop(stop)
        logger.info(f"Stop '{created.name}' added to route {route_id}")
        return created

    def update_stop(self, stop_id: str, changes: Dict[str, Any]) -> Stop:
        existing = self.get_stop(stop_id)
        allowed = {k: v for k, v in changes.items() if k not in ("id", "route_id")}
        updated = _validated_stop({**existing.model_dump(), **allowed})
        self._ensure_unique_orders(updated)
        saved = self.repository.save_stop(updated)
        logger.info(f"Stop {stop_id} updated: {sorted(allowed)}")
        return saved

    def delete_stop(self, stop_id: str) -> None:
        self.get_stop(stop_id)
        active = self.repository.count_confirmed_at_stop(stop_id)
        if active:
            raise InvalidStateError(f"Stop {stop_id} still has {active} confirmed booking(s)")
        if not self.repository.delete_stop(stop_id):
            raise NotFoundError(f"Stop {stop_id} not found")
        logger.info(f"Stop {stop_id} deleted")
