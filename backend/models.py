from pydantic import BaseModel, Field, computed_field
from typing import List, Optional
from datetime import date, datetime, time
from enum import Enum


class TimeSlot(str, Enum):
    MORNING = "morning"
    AFTERNOON = "afternoon"


class BookingStatus(str, Enum):
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class DayVariant(str, Enum):
    REGULAR = "regular"
    FRIDAY = "friday"
    EARLY_RELEASE = "early_release"


GRADES = ("3rd", "4th", "5th", "6th", "7th")


class Route(BaseModel):
    id: str
    name: str
    area: str
    capacity: int = Field(default=14, ge=0)

class Stop(BaseModel):
    id: str
    route_id: str
    name: str
    address: str = ""
    morning_order: Optional[int] = None  # pickup sequence, 1 -> n
    afternoon_order: Optional[int] = None  # dropoff sequence, usually reversed
    morning_pickup_time: Optional[time] = None
    afternoon_dropoff_time: Optional[time] = None
    friday_morning_pickup_time: Optional[time] = None
    friday_afternoon_dropoff_time: Optional[time] = None
    early_release_morning_pickup_time: Optional[time] = None
    early_release_afternoon_dropoff_time: Optional[time] = None

class Student(BaseModel):
    id: str
    name: str
    grade: str
    parent_id: str

class Booking(BaseModel):
    id: str
    student_id: str
    route_id: str
    stop_id: str
    service_date: date
    time_slot: TimeSlot
    status: BookingStatus = BookingStatus.CONFIRMED
    created_at: datetime

    @property
    def is_confirmed(self) -> bool:
        return self.status == BookingStatus.CONFIRMED

class DriverAssignment(BaseModel):
    id: str
    driver_id: str
    route_id: str
    time_slot: TimeSlot
    is_active: bool = True


class ManifestEntry(BaseModel):
    booking_id: str
    student_id: str
    student_name: str
    grade: str
    stop_id: str
    stop_name: str
    time_slot: TimeSlot
    is_picked_up: bool = False


class ManifestStop(BaseModel):
    stop_id: str
    stop_name: str
    address: str = ""
    position: Optional[int] = None
    scheduled_time: Optional[time] = None
    students: List[ManifestEntry] = Field(default_factory=list)

    @computed_field
    @property
    def student_count(self) -> int:
        return len(self.students)

    @computed_field
    @property
    def picked_up_count(self) -> int:
        return sum(1 for s in self.students if s.is_picked_up)

    @computed_field
    @property
    def is_complete(self) -> bool:
        return self.picked_up_count == self.student_count


class Manifest(BaseModel):
    route_id: str
    route_name: str
    time_slot: TimeSlot
    service_date: date
    day_variant: DayVariant = DayVariant.REGULAR
    stops: List[ManifestStop] = Field(default_factory=list)

    @computed_field
    @property
    def total_students(self) -> int:
        return sum(stop.student_count for stop in self.stops)

    @computed_field
    @property
    def picked_up_count(self) -> int:
        return sum(stop.picked_up_count for stop in self.stops)

    @computed_field
    @property
    def next_stop_id(self) -> Optional[str]:
        # Highlight only; drivers may pick up out of order.
        for stop in self.stops:
            if stop.student_count and stop.picked_up_count == 0:
                return stop.stop_id
        return None

    def student_ids(self) -> List[str]:
        return [entry.student_id for stop in self.stops for entry in stop.students]


class StopAvailability(BaseModel):
    stop_id: str
    stop_name: str
    capacity: int
    booked_seats: int
    available_seats: int

    @computed_field
    @property
    def is_bookable(self) -> bool:
        return self.available_seats > 0
