"""
Shared FastAPI dependencies.

Identity comes from the upstream auth gateway as request headers; this
backend only checks that one is present and scopes data with it.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from config import config
from db.database import get_db
from db.memory import InMemoryRepository
from db.repository import ShuttleRepository, SqlAlchemyRepository
from services.booking_engine import BookingEngine
from services.capacity_ledger import CapacityLedger
from services.errors import ShuttleError
from services.manifest_builder import ManifestBuilder
from services.pickup_tracker import PickupTracker, pickup_tracker
from services.stop_directory import StopDirectory
from services.student_registry import StudentRegistry

# Fallback store when no database is reachable.
memory_repository = InMemoryRepository()


def to_http_exception(exc: ShuttleError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=exc.message)


def current_parent_id(x_parent_id: Optional[str] = Header(default=None)) -> str:
    if not x_parent_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Parent authentication required")
    return x_parent_id


def current_driver_id(x_driver_id: Optional[str] = Header(default=None)) -> str:
    if not x_driver_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Driver authentication required")
    return x_driver_id


def get_repository(db: Optional[Session] = Depends(get_db)) -> ShuttleRepository:
    """SQLAlchemy repository per request, or the in-memory store in fallback mode."""
    if db is None:
        return memory_repository
    return SqlAlchemyRepository(db)


def get_stop_directory(repository: ShuttleRepository = Depends(get_repository)) -> StopDirectory:
    return StopDirectory(repository, early_release_dates=config.EARLY_RELEASE_DATES)


def get_capacity_ledger(repository: ShuttleRepository = Depends(get_repository)) -> CapacityLedger:
    return CapacityLedger(repository)


def get_booking_engine(repository: ShuttleRepository = Depends(get_repository)) -> BookingEngine:
    return BookingEngine(repository)


def get_student_registry(repository: ShuttleRepository = Depends(get_repository)) -> StudentRegistry:
    return StudentRegistry(repository)


def get_manifest_builder(
    repository: ShuttleRepository = Depends(get_repository),
    directory: StopDirectory = Depends(get_stop_directory),
) -> ManifestBuilder:
    return ManifestBuilder(repository, directory)


def get_pickup_tracker() -> PickupTracker:
    return pickup_tracker
