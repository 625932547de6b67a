"""
CRUD operations for Shuttlebook database.

Provides functions to create, read, update, and delete:
- Routes and stops
- Students
- Bookings (including the atomic capacity-checked insert)
- Driver assignments
"""

import logging
from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from . import models

logger = logging.getLogger(__name__)


# =============================================================================
# Route CRUD
# =============================================================================

def create_route(db: Session, route_data: Dict[str, Any]) -> models.RouteModel:
    db_route = models.RouteModel(**route_data)
    db.add(db_route)
    db.commit()
    db.refresh(db_route)

    logger.info(f"Created route {db_route.id} ({db_route.name}, capacity {db_route.capacity})")
    return db_route


def get_route(db: Session, route_id: str) -> Optional[models.RouteModel]:
    return db.query(models.RouteModel).filter(models.RouteModel.id == route_id).first()


def get_routes(db: Session, skip: int = 0, limit: int = 100) -> List[models.RouteModel]:
    return (
        db.query(models.RouteModel)
        .order_by(models.RouteModel.name)
        .offset(skip)
        .limit(limit)
        .all()
    )


# =============================================================================
# Stop CRUD
# =============================================================================

def create_stop(db: Session, stop_data: Dict[str, Any]) -> models.StopModel:
    db_stop = models.StopModel(**stop_data)
    db.add(db_stop)
    db.commit()
    db.refresh(db_stop)

    logger.info(f"Created stop {db_stop.id} on route {db_stop.route_id}")
    return db_stop


def get_stop(db: Session, stop_id: str) -> Optional[models.StopModel]:
    return db.query(models.StopModel).filter(models.StopModel.id == stop_id).first()


def get_stops_by_route(db: Session, route_id: str) -> List[models.StopModel]:
    """Stops of a route in storage order; callers apply the time-slot ordering."""
    return (
        db.query(models.StopModel)
        .filter(models.StopModel.route_id == route_id)
        .order_by(models.StopModel.name, models.StopModel.id)
        .all()
    )


def update_stop(db: Session, stop_id: str, changes: Dict[str, Any]) -> Optional[models.StopModel]:
    db_stop = get_stop(db, stop_id)
    if not db_stop:
        return None

    for field, value in changes.items():
        setattr(db_stop, field, value)

    db.commit()
    db.refresh(db_stop)

    logger.info(f"Updated stop {stop_id}: {sorted(changes)}")
    return db_stop


def delete_stop(db: Session, stop_id: str) -> bool:
    """
    Delete a stop together with its cancelled bookings.

    Callers must check for confirmed bookings first.
    """
    db_stop = get_stop(db, stop_id)
    if not db_stop:
        return False

    db.query(models.BookingModel).filter(
        models.BookingModel.stop_id == stop_id,
        models.BookingModel.status == "cancelled",
    ).delete(synchronize_session=False)
    db.delete(db_stop)
    db.commit()

    logger.info(f"Deleted stop {stop_id}")
    return True


# =============================================================================
# Student CRUD
# =============================================================================

def create_student(db: Session, student_data: Dict[str, Any]) -> models.StudentModel:
    db_student = models.StudentModel(**student_data)
    db.add(db_student)
    db.commit()
    db.refresh(db_student)
    return db_student


def get_student(db: Session, student_id: str) -> Optional[models.StudentModel]:
    return db.query(models.StudentModel).filter(models.StudentModel.id == student_id).first()


def get_students_by_parent(db: Session, parent_id: str) -> List[models.StudentModel]:
    return (
        db.query(models.StudentModel)
        .filter(models.StudentModel.parent_id == parent_id)
        .order_by(models.StudentModel.name)
        .all()
    )


# =============================================================================
# Booking CRUD
# =============================================================================

def _confirmed_query(db: Session, route_id: str, time_slot: str, service_date: date):
    return db.query(models.BookingModel).filter(
        models.BookingModel.route_id == route_id,
        models.BookingModel.time_slot == time_slot,
        models.BookingModel.service_date == service_date,
        models.BookingModel.status == "confirmed",
    )


def get_booking(db: Session, booking_id: str) -> Optional[models.BookingModel]:
    return db.query(models.BookingModel).filter(models.BookingModel.id == booking_id).first()


def get_bookings_by_parent(
    db: Session,
    parent_id: str,
    service_date: Optional[date] = None,
    status: Optional[str] = None,
) -> List[models.BookingModel]:
    query = (
        db.query(models.BookingModel)
        .join(models.StudentModel, models.StudentModel.id == models.BookingModel.student_id)
        .filter(models.StudentModel.parent_id == parent_id)
    )
    if service_date is not None:
        query = query.filter(models.BookingModel.service_date == service_date)
    if status:
        query = query.filter(models.BookingModel.status == status)
    return query.order_by(models.BookingModel.service_date, models.BookingModel.created_at).all()


def get_confirmed_bookings(
    db: Session,
    route_id: str,
    time_slot: str,
    service_date: date,
) -> List[models.BookingModel]:
    """Confirmed bookings for one run, oldest first."""
    return (
        _confirmed_query(db, route_id, time_slot, service_date)
        .order_by(models.BookingModel.created_at, models.BookingModel.id)
        .all()
    )


def count_confirmed(db: Session, route_id: str, stop_id: str, time_slot: str, service_date: date) -> int:
    return (
        _confirmed_query(db, route_id, time_slot, service_date)
        .filter(models.BookingModel.stop_id == stop_id)
        .count()
    )


def count_confirmed_by_stop(db: Session, route_id: str, time_slot: str, service_date: date) -> Dict[str, int]:
    rows = (
        db.query(models.BookingModel.stop_id, func.count(models.BookingModel.id))
        .filter(
            models.BookingModel.route_id == route_id,
            models.BookingModel.time_slot == time_slot,
            models.BookingModel.service_date == service_date,
            models.BookingModel.status == "confirmed",
        )
        .group_by(models.BookingModel.stop_id)
        .all()
    )
    return {stop_id: int(count) for stop_id, count in rows}


def count_confirmed_at_stop(db: Session, stop_id: str) -> int:
    return (
        db.query(models.BookingModel)
        .filter(
            models.BookingModel.stop_id == stop_id,
            models.BookingModel.status == "confirmed",
        )
        .count()
    )


def find_confirmed_booking(
    db: Session,
    student_id: str,
    time_slot: str,
    service_date: date,
) -> Optional[models.BookingModel]:
    return (
        db.query(models.BookingModel)
        .filter(
            models.BookingModel.student_id == student_id,
            models.BookingModel.time_slot == time_slot,
            models.BookingModel.service_date == service_date,
            models.BookingModel.status == "confirmed",
        )
        .first()
    )


def add_booking_if_available(
    db: Session,
    booking_data: Dict[str, Any],
    capacity: int,
) -> Optional[models.BookingModel]:
    """
    Insert a confirmed booking only if the stop still has a free seat.

    The route row is touched with a no-op UPDATE before counting, so concurrent
    inserts for the same route serialize at the database. The UPDATE holds the
    PostgreSQL row lock, or the SQLite write lock, until commit.

    Returns:
        The created BookingModel, or None if the stop is full.
    """
    try:
        db.query(models.RouteModel).filter(
            models.RouteModel.id == booking_data["route_id"]
        ).update({models.RouteModel.capacity: models.RouteModel.capacity}, synchronize_session=False)

        booked = count_confirmed(
            db,
            booking_data["route_id"],
            booking_data["stop_id"],
            booking_data["time_slot"],
            booking_data["service_date"],
        )
        if booked >= capacity:
            db.rollback()
            return None

        db_booking = models.BookingModel(**booking_data)
        db.add(db_booking)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(db_booking)
    return db_booking


def transition_booking_status(
    db: Session,
    booking_id: str,
    expected: str,
    new: str,
) -> Optional[models.BookingModel]:
    """Compare-and-set on status; returns None when the booking is not in `expected`."""
    try:
        updated = (
            db.query(models.BookingModel)
            .filter(
                models.BookingModel.id == booking_id,
                models.BookingModel.status == expected,
            )
            .update({models.BookingModel.status: new}, synchronize_session=False)
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    if not updated:
        return None
    # commit() expired the identity map, so this reloads the new status
    return get_booking(db, booking_id)


# =============================================================================
# Driver Assignment CRUD
# =============================================================================

def create_driver_assignment(db: Session, assignment_data: Dict[str, Any]) -> models.DriverAssignmentModel:
    db_assignment = models.DriverAssignmentModel(**assignment_data)
    db.add(db_assignment)
    db.commit()
    db.refresh(db_assignment)
    return db_assignment


def get_driver_assignments(db: Session, driver_id: str) -> List[models.DriverAssignmentModel]:
    return (
        db.query(models.DriverAssignmentModel)
        .filter(models.DriverAssignmentModel.driver_id == driver_id)
        .order_by(models.DriverAssignmentModel.time_slot)
        .all()
    )
