"""
SQLAlchemy models for Shuttlebook database.

These models define the database schema for:
- Routes and their stops
- Students and bookings
- Driver route assignments
"""

from sqlalchemy import (
    Column, String, Integer, Date, DateTime,
    Boolean, ForeignKey, Time, Index, UniqueConstraint
)
from sqlalchemy.orm import declarative_base, relationship
import uuid
from datetime import datetime

Base = declarative_base()


def _uuid() -> str:
    return str(uuid.uuid4())


class RouteModel(Base):
    """Shuttle route (one van)"""
    __tablename__ = "routes"

    id = Column(String, primary_key=True, default=_uuid)
    name = Column(String, nullable=False)
    area = Column(String, nullable=False)  # 'frisco', 'dallas'
    capacity = Column(Integer, nullable=False, default=14)

    stops = relationship("StopModel", back_populates="route", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<RouteModel(id='{self.id}', name='{self.name}', capacity={self.capacity})>"


class StopModel(Base):
    """Pickup/dropoff point of a route"""
    __tablename__ = "stops"
    __table_args__ = (
        UniqueConstraint("route_id", "morning_order", name="uq_stop_morning_order"),
        UniqueConstraint("route_id", "afternoon_order", name="uq_stop_afternoon_order"),
    )

    id = Column(String, primary_key=True, default=_uuid)
    route_id = Column(String, ForeignKey("routes.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False)
    address = Column(String, nullable=False, default="")
    morning_order = Column(Integer, nullable=True)
    afternoon_order = Column(Integer, nullable=True)
    morning_pickup_time = Column(Time, nullable=True)
    afternoon_dropoff_time = Column(Time, nullable=True)
    friday_morning_pickup_time = Column(Time, nullable=True)
    friday_afternoon_dropoff_time = Column(Time, nullable=True)
    early_release_morning_pickup_time = Column(Time, nullable=True)
    early_release_afternoon_dropoff_time = Column(Time, nullable=True)

    route = relationship("RouteModel", back_populates="stops")

    def __repr__(self):
        return (
            f"<StopModel(name='{self.name}', morning_order={self.morning_order}, "
            f"afternoon_order={self.afternoon_order})>"
        )


class StudentModel(Base):
    """Student owned by exactly one parent"""
    __tablename__ = "students"

    id = Column(String, primary_key=True, default=_uuid)
    name = Column(String, nullable=False)
    grade = Column(String, nullable=False)  # '3rd' .. '7th'
    parent_id = Column(String, nullable=False, index=True)

    def __repr__(self):
        return f"<StudentModel(id='{self.id}', name='{self.name}')>"


class BookingModel(Base):
    """Seat reservation for one student, stop, date and time slot"""
    __tablename__ = "bookings"
    __table_args__ = (
        Index("ix_bookings_slot", "route_id", "stop_id", "service_date", "time_slot", "status"),
    )

    id = Column(String, primary_key=True, default=_uuid)
    student_id = Column(String, ForeignKey("students.id"), nullable=False, index=True)
    route_id = Column(String, ForeignKey("routes.id"), nullable=False)
    stop_id = Column(String, ForeignKey("stops.id"), nullable=False)
    service_date = Column(Date, nullable=False)
    time_slot = Column(String, nullable=False)  # 'morning' or 'afternoon'
    status = Column(String, nullable=False, default="confirmed")  # confirmed, cancelled
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return (
            f"<BookingModel(id='{self.id}', stop_id='{self.stop_id}', "
            f"date={self.service_date}, slot='{self.time_slot}', status='{self.status}')>"
        )


class DriverAssignmentModel(Base):
    """Which route and time slot a driver runs"""
    __tablename__ = "driver_assignments"

    id = Column(String, primary_key=True, default=_uuid)
    driver_id = Column(String, nullable=False, index=True)
    route_id = Column(String, ForeignKey("routes.id", ondelete="CASCADE"), nullable=False)
    time_slot = Column(String, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)

    def __repr__(self):
        return f"<DriverAssignmentModel(driver_id='{self.driver_id}', route_id='{self.route_id}')>"
