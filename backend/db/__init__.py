"""
Database module for Shuttlebook backend.

This module provides PostgreSQL/SQLite integration using SQLAlchemy and the
repository interface the booking services depend on.
It can be disabled by setting USE_DATABASE=false in environment variables,
in which case the in-memory repository is used.
"""

from .database import (
    get_db,
    SessionLocal,
    engine,
    Base,
    USE_DATABASE,
    is_database_available,
)
from .models import (
    RouteModel,
    StopModel,
    StudentModel,
    BookingModel,
    DriverAssignmentModel,
)
from .repository import ShuttleRepository, SqlAlchemyRepository
from .memory import InMemoryRepository
from . import crud, schemas

__all__ = [
    "get_db",
    "SessionLocal",
    "engine",
    "Base",
    "USE_DATABASE",
    "is_database_available",
    "RouteModel",
    "StopModel",
    "StudentModel",
    "BookingModel",
    "DriverAssignmentModel",
    "ShuttleRepository",
    "SqlAlchemyRepository",
    "InMemoryRepository",
    "crud",
    "schemas",
]
