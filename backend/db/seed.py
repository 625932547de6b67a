"""
Demo data: the Frisco and Dallas routes, one parent with two students and one
driver assigned to the Frisco morning run.
"""

from __future__ import annotations

import logging
from datetime import date, time
from typing import Optional

from config import config
from models import DriverAssignment, Route, Stop, Student, TimeSlot
from services.booking_engine import BookingEngine

from .repository import ShuttleRepository

logger = logging.getLogger(__name__)

DEMO_PARENT_ID = "demo-parent-1"
DEMO_DRIVER_ID = "demo-driver-1"
FRISCO_ROUTE_ID = "route-frisco-1"
DALLAS_ROUTE_ID = "route-dallas-1"


def _stop(stop_id, route_id, name, address, morning_order, afternoon_order,
          morning, afternoon, friday_afternoon, early_afternoon) -> Stop:
    # Morning pickup is the same on every day variant.
    return Stop(
        id=stop_id,
        route_id=route_id,
        name=name,
        address=address,
        morning_order=morning_order,
        afternoon_order=afternoon_order,
        morning_pickup_time=morning,
        afternoon_dropoff_time=afternoon,
        friday_morning_pickup_time=morning,
        friday_afternoon_dropoff_time=friday_afternoon,
        early_release_morning_pickup_time=morning,
        early_release_afternoon_dropoff_time=early_afternoon,
    )


DEMO_ROUTES = [
    Route(id=FRISCO_ROUTE_ID, name="Frisco Route", area="frisco", capacity=config.DEFAULT_ROUTE_CAPACITY),
    Route(id=DALLAS_ROUTE_ID, name="Dallas Route", area="dallas", capacity=config.DEFAULT_ROUTE_CAPACITY),
]

DEMO_STOPS = [
    _stop("stop-frisco-1", FRISCO_ROUTE_ID, "Main Street Plaza", "123 Main St, Frisco, TX 75034",
          1, 3, time(7, 30), time(15, 45), time(14, 45), time(13, 45)),
    _stop("stop-frisco-2", FRISCO_ROUTE_ID, "Community Center", "456 Oak Ave, Frisco, TX 75035",
          2, 2, time(7, 45), time(16, 0), time(15, 0), time(14, 0)),
    _stop("stop-frisco-3", FRISCO_ROUTE_ID, "Soccer Academy", "789 Sports Dr, Frisco, TX 75033",
          3, 1, time(8, 0), time(16, 15), time(15, 15), time(14, 15)),
    _stop("stop-dallas-1", DALLAS_ROUTE_ID, "Downtown Station", "100 Commerce St, Dallas, TX 75202",
          1, 3, time(7, 15), time(15, 30), time(14, 30), time(13, 30)),
    _stop("stop-dallas-2", DALLAS_ROUTE_ID, "Park Plaza", "200 Elm St, Dallas, TX 75201",
          2, 2, time(7, 30), time(15, 45), time(14, 45), time(13, 45)),
    _stop("stop-dallas-3", DALLAS_ROUTE_ID, "Sports Complex", "300 Victory Ave, Dallas, TX 75219",
          3, 1, time(7, 45), time(16, 0), time(15, 0), time(14, 0)),
]

DEMO_STUDENTS = [
    Student(id="student-alex", name="Alex Johnson", grade="4th", parent_id=DEMO_PARENT_ID),
    Student(id="student-emma", name="Emma Davis", grade="6th", parent_id=DEMO_PARENT_ID),
]

DEMO_ASSIGNMENTS = [
    DriverAssignment(
        id="assignment-1",
        driver_id=DEMO_DRIVER_ID,
        route_id=FRISCO_ROUTE_ID,
        time_slot=TimeSlot.MORNING,
        is_active=True,
    ),
]


def seed_demo_data(repository: ShuttleRepository, today: Optional[date] = None) -> bool:
    """
    Load the demo data set. Idempotent: returns False if it is already there.
    """
    if repository.get_route(FRISCO_ROUTE_ID) is not None:
        logger.info("Demo data already present, skipping seed")
        return False

    for route in DEMO_ROUTES:
        repository.add_route(route)
    for stop in DEMO_STOPS:
        repository.add_stop(stop)
    for student in DEMO_STUDENTS:
        repository.add_student(student)
    for assignment in DEMO_ASSIGNMENTS:
        repository.add_driver_assignment(assignment)

    service_date = today or date.today()
    engine = BookingEngine(repository)
    engine.create_booking(DEMO_PARENT_ID, "student-alex", FRISCO_ROUTE_ID, "stop-frisco-1",
                          service_date, TimeSlot.MORNING)
    engine.create_booking(DEMO_PARENT_ID, "student-emma", FRISCO_ROUTE_ID, "stop-frisco-2",
                          service_date, TimeSlot.MORNING)
    engine.create_booking(DEMO_PARENT_ID, "student-alex", FRISCO_ROUTE_ID, "stop-frisco-3",
                          service_date, TimeSlot.AFTERNOON)

    logger.info(
        f"Seeded {len(DEMO_ROUTES)} routes, {len(DEMO_STOPS)} stops, "
        f"{len(DEMO_STUDENTS)} students and 3 bookings for {service_date}"
    )
    return True
