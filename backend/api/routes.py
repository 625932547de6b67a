"""
Route browsing API: routes and their stops with seats left for a day.
"""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query

from api.deps import get_capacity_ledger, get_repository, get_stop_directory, to_http_exception
from db.repository import ShuttleRepository
from db.schemas import AvailabilityResponse, RouteDetailResponse, RouteListResponse, StopSeatView
from models import Route, TimeSlot
from services.capacity_ledger import CapacityLedger
from services.errors import NotFoundError, ShuttleError
from services.stop_directory import StopDirectory, format_schedule_time, order_for

router = APIRouter(prefix="/api/routes", tags=["routes"])


def _route_or_404(repository: ShuttleRepository, route_id: str) -> Route:
    route = repository.get_route(route_id)
    if route is None:
        raise to_http_exception(NotFoundError(f"Route {route_id} not found"))
    return route


@router.get("", response_model=RouteListResponse)
def list_routes(
    repository: ShuttleRepository = Depends(get_repository),
) -> RouteListResponse:
    return RouteListResponse(routes=repository.list_routes())


@router.get("/{route_id}", response_model=RouteDetailResponse)
def get_route_detail(
    route_id: str,
    service_date: date = Query(alias="date"),
    time_slot: TimeSlot = Query(),
    repository: ShuttleRepository = Depends(get_repository),
    directory: StopDirectory = Depends(get_stop_directory),
    ledger: CapacityLedger = Depends(get_capacity_ledger),
) -> RouteDetailResponse:
    route = _route_or_404(repository, route_id)
    try:
        stops = directory.list_stops(route.id, time_slot)
    except ShuttleError as exc:
        raise to_http_exception(exc) from exc

    variant = directory.day_variant_for(service_date)
    availability = {a.stop_id: a for a in ledger.stop_availability(route, stops, time_slot, service_date)}

    views = []
    for stop in stops:
        scheduled = directory.schedule_time_for(stop, time_slot, variant)
        seats = availability[stop.id]
        views.append(
            StopSeatView(
                id=stop.id,
                name=stop.name,
                address=stop.address,
                position=order_for(stop, time_slot),
                scheduled_time=scheduled,
                scheduled_time_label=format_schedule_time(scheduled),
                booked_seats=seats.booked_seats,
                available_seats=seats.available_seats,
            )
        )

    return RouteDetailResponse(
        id=route.id,
        name=route.name,
        area=route.area,
        capacity=route.capacity,
        service_date=service_date,
        time_slot=time_slot,
        day_variant=variant.value,
        booked_seats=ledger.route_occupancy(route, time_slot, service_date),
        stops=views,
    )


@router.get("/{route_id}/stops/{stop_id}/availability", response_model=AvailabilityResponse)
def get_stop_availability(
    route_id: str,
    stop_id: str,
    service_date: date = Query(alias="date"),
    time_slot: TimeSlot = Query(),
    repository: ShuttleRepository = Depends(get_repository),
    ledger: CapacityLedger = Depends(get_capacity_ledger),
) -> AvailabilityResponse:
    route = _route_or_404(repository, route_id)
    stop = repository.get_stop(stop_id)
    if stop is None or stop.route_id != route.id:
        raise to_http_exception(NotFoundError(f"Stop {stop_id} not found on route {route_id}"))

    booked = ledger.booked_seats(route, stop, time_slot, service_date)
    return AvailabilityResponse(
        route_id=route.id,
        stop_id=stop.id,
        service_date=service_date,
        time_slot=time_slot,
        capacity=route.capacity,
        booked_seats=booked,
        available_seats=ledger.seats_left(route, booked),
    )
