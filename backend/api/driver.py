"""
Driver API.

Assignments, the day's manifest with pickup toggling, and stop management
for the routes a driver configures. Every endpoint needs X-Driver-Id.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from api.deps import (
    current_driver_id,
    get_manifest_builder,
    get_pickup_tracker,
    get_stop_directory,
    to_http_exception,
)
from db.schemas import (
    AssignmentListResponse,
    PickupToggleResponse,
    StopCreate,
    StopListResponse,
    StopResponse,
    StopUpdate,
)
from models import Manifest, Stop, TimeSlot
from services.errors import ShuttleError
from services.manifest_builder import ManifestBuilder
from services.pickup_tracker import PickupTracker
from services.stop_directory import StopDirectory

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/driver", tags=["driver"])


def _stop_response(stop: Stop) -> StopResponse:
    return StopResponse(**stop.model_dump())


@router.get("/assignments", response_model=AssignmentListResponse)
def list_assignments(
    driver_id: str = Depends(current_driver_id),
    builder: ManifestBuilder = Depends(get_manifest_builder),
) -> AssignmentListResponse:
    return AssignmentListResponse(assignments=builder.active_assignments(driver_id))


# =============================================================================
# Manifest & pickups
# =============================================================================

@router.get("/manifest", response_model=Manifest)
def get_manifest(
    service_date: date = Query(alias="date"),
    time_slot: TimeSlot = Query(),
    route_id: Optional[str] = Query(default=None),
    driver_id: str = Depends(current_driver_id),
    builder: ManifestBuilder = Depends(get_manifest_builder),
    tracker: PickupTracker = Depends(get_pickup_tracker),
) -> Manifest:
    """Build the manifest and start a fresh pickup session (progress resets on reload)."""
    try:
        manifest = builder.build_for_driver(driver_id, time_slot, service_date, route_id=route_id)
    except ShuttleError as exc:
        raise to_http_exception(exc) from exc
    return tracker.open_session(tracker.key_for(driver_id, manifest), manifest)


@router.post("/manifest/pickups/{student_id}", response_model=PickupToggleResponse)
def toggle_pickup(
    student_id: str,
    service_date: date = Query(alias="date"),
    time_slot: TimeSlot = Query(),
    route_id: Optional[str] = Query(default=None),
    driver_id: str = Depends(current_driver_id),
    builder: ManifestBuilder = Depends(get_manifest_builder),
    tracker: PickupTracker = Depends(get_pickup_tracker),
) -> PickupToggleResponse:
    try:
        manifest = builder.build_for_driver(driver_id, time_slot, service_date, route_id=route_id)
        key = tracker.key_for(driver_id, manifest)
        # Bookings may have changed since the manifest was opened.
        tracker.refresh(key, manifest)
        is_picked_up = tracker.toggle_pickup(key, student_id)
        view = tracker.view(key)
    except ShuttleError as exc:
        raise to_http_exception(exc) from exc

    logger.debug(f"Driver {driver_id} marked {student_id} picked_up={is_picked_up}")
    return PickupToggleResponse(student_id=student_id, is_picked_up=is_picked_up, manifest=view)


# =============================================================================
# Stop management
# =============================================================================

@router.get("/routes/{route_id}/stops", response_model=StopListResponse)
def list_route_stops(
    route_id: str,
    time_slot: Optional[TimeSlot] = Query(default=None),
    _driver_id: str = Depends(current_driver_id),
    directory: StopDirectory = Depends(get_stop_directory),
) -> StopListResponse:
    try:
        stops = directory.list_stops(route_id, time_slot)
    except ShuttleError as exc:
        raise to_http_exception(exc) from exc
    return StopListResponse(stops=[_stop_response(s) for s in stops])


@router.post("/routes/{route_id}/stops", response_model=StopResponse, status_code=status.HTTP_201_CREATED)
def create_stop(
    route_id: str,
    payload: StopCreate,
    _driver_id: str = Depends(current_driver_id),
    directory: StopDirectory = Depends(get_stop_directory),
) -> StopResponse:
    try:
        stop = directory.create_stop(route_id, payload.model_dump())
    except ShuttleError as exc:
        raise to_http_exception(exc) from exc
    return _stop_response(stop)


@router.put("/stops/{stop_id}", response_model=StopResponse)
def update_stop(
    stop_id: str,
    payload: StopUpdate,
    _driver_id: str = Depends(current_driver_id),
    directory: StopDirectory = Depends(get_stop_directory),
) -> StopResponse:
    try:
        stop = directory.update_stop(stop_id, payload.model_dump(exclude_unset=True))
    except ShuttleError as exc:
        raise to_http_exception(exc) from exc
    return _stop_response(stop)


@router.delete("/stops/{stop_id}")
def delete_stop(
    stop_id: str,
    _driver_id: str = Depends(current_driver_id),
    directory: StopDirectory = Depends(get_stop_directory),
) -> dict:
    try:
        directory.delete_stop(stop_id)
    except ShuttleError as exc:
        raise to_http_exception(exc) from exc
    return {"success": True, "stop_id": stop_id}
