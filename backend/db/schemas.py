"""
Pydantic schemas for API requests and responses.

These schemas are used for:
- Request validation (input data)
- Response serialization (output data)

Note: These are separate from the domain models in models.py (Route, Stop, Booking...)
"""

from datetime import date, datetime, time
from typing import List, Optional

from pydantic import BaseModel, Field, computed_field, field_validator

from models import GRADES, BookingStatus, DriverAssignment, Manifest, Route, TimeSlot


# =============================================================================
# Stop Schemas
# =============================================================================

class StopBase(BaseModel):
    """Base schema for Stop (common fields)"""
    name: str = Field(min_length=1, max_length=120)
    address: str = Field(default="", max_length=240)
    morning_order: Optional[int] = Field(default=None, ge=1)
    afternoon_order: Optional[int] = Field(default=None, ge=1)
    morning_pickup_time: Optional[time] = None
    afternoon_dropoff_time: Optional[time] = None
    friday_morning_pickup_time: Optional[time] = None
    friday_afternoon_dropoff_time: Optional[time] = None
    early_release_morning_pickup_time: Optional[time] = None
    early_release_afternoon_dropoff_time: Optional[time] = None


class StopCreate(StopBase):
    """Schema for creating a new stop"""
    pass


class StopUpdate(BaseModel):
    """Partial update; only fields sent by the client are applied"""
    name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    address: Optional[str] = Field(default=None, max_length=240)
    morning_order: Optional[int] = Field(default=None, ge=1)
    afternoon_order: Optional[int] = Field(default=None, ge=1)
    morning_pickup_time: Optional[time] = None
    afternoon_dropoff_time: Optional[time] = None
    friday_morning_pickup_time: Optional[time] = None
    friday_afternoon_dropoff_time: Optional[time] = None
    early_release_morning_pickup_time: Optional[time] = None
    early_release_afternoon_dropoff_time: Optional[time] = None


class StopResponse(StopBase):
    id: str
    route_id: str

    class Config:
        from_attributes = True


class StopListResponse(BaseModel):
    stops: List[StopResponse]


class StopSeatView(BaseModel):
    """Stop as shown in the booking form: time for the day plus seats"""
    id: str
    name: str
    address: str
    position: Optional[int] = None
    scheduled_time: Optional[time] = None
    scheduled_time_label: str
    booked_seats: int
    available_seats: int

    @computed_field
    @property
    def is_bookable(self) -> bool:
        return self.available_seats > 0


# =============================================================================
# Route Schemas
# =============================================================================

class RouteListResponse(BaseModel):
    routes: List[Route]


class RouteDetailResponse(BaseModel):
    id: str
    name: str
    area: str
    capacity: int
    service_date: date
    time_slot: TimeSlot
    day_variant: str
    booked_seats: int
    stops: List[StopSeatView] = Field(default_factory=list)


class AvailabilityResponse(BaseModel):
    route_id: str
    stop_id: str
    service_date: date
    time_slot: TimeSlot
    capacity: int
    booked_seats: int
    available_seats: int

    @computed_field
    @property
    def is_bookable(self) -> bool:
        return self.available_seats > 0


# =============================================================================
# Student Schemas
# =============================================================================

class StudentCreate(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    grade: str

    @field_validator("grade")
    @classmethod
    def validate_grade(cls, v: str) -> str:
        if v not in GRADES:
            raise ValueError(f"grade must be one of {', '.join(GRADES)}")
        return v


class StudentResponse(BaseModel):
    id: str
    name: str
    grade: str
    parent_id: str


class StudentListResponse(BaseModel):
    students: List[StudentResponse]


# =============================================================================
# Booking Schemas
# =============================================================================

class BookingCreate(BaseModel):
    student_id: str
    route_id: str
    stop_id: str
    service_date: date
    time_slot: TimeSlot


class BookingResponse(BaseModel):
    id: str
    student_id: str
    route_id: str
    stop_id: str
    service_date: date
    time_slot: TimeSlot
    status: BookingStatus
    created_at: datetime


class BookingListResponse(BaseModel):
    bookings: List[BookingResponse]


# =============================================================================
# Driver Schemas
# =============================================================================

class AssignmentListResponse(BaseModel):
    assignments: List[DriverAssignment]


class PickupToggleResponse(BaseModel):
    student_id: str
    is_picked_up: bool
    manifest: Manifest
