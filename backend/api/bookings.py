"""
Parent API: students and bookings.

Every endpoint acts on behalf of the parent identified by X-Parent-Id.
"""

from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from api.deps import current_parent_id, get_booking_engine, get_student_registry, to_http_exception
from db.schemas import (
    BookingCreate,
    BookingListResponse,
    BookingResponse,
    StudentCreate,
    StudentListResponse,
    StudentResponse,
)
from models import Booking, BookingStatus, Student
from services.booking_engine import BookingEngine
from services.errors import ShuttleError
from services.student_registry import StudentRegistry

router = APIRouter(prefix="/api", tags=["bookings"])


def _student_response(student: Student) -> StudentResponse:
    return StudentResponse(**student.model_dump())


def _booking_response(booking: Booking) -> BookingResponse:
    return BookingResponse(**booking.model_dump())


@router.get("/students", response_model=StudentListResponse)
def list_students(
    parent_id: str = Depends(current_parent_id),
    registry: StudentRegistry = Depends(get_student_registry),
) -> StudentListResponse:
    return StudentListResponse(students=[_student_response(s) for s in registry.list_students(parent_id)])


@router.post("/students", response_model=StudentResponse, status_code=status.HTTP_201_CREATED)
def create_student(
    payload: StudentCreate,
    parent_id: str = Depends(current_parent_id),
    registry: StudentRegistry = Depends(get_student_registry),
) -> StudentResponse:
    try:
        student = registry.add_student(parent_id, payload.name, payload.grade)
    except ShuttleError as exc:
        raise to_http_exception(exc) from exc
    return _student_response(student)


@router.get("/bookings", response_model=BookingListResponse)
def list_bookings(
    service_date: Optional[date] = Query(default=None, alias="date"),
    booking_status: Optional[BookingStatus] = Query(default=None, alias="status"),
    parent_id: str = Depends(current_parent_id),
    engine: BookingEngine = Depends(get_booking_engine),
) -> BookingListResponse:
    bookings = engine.list_bookings(parent_id, service_date=service_date, status=booking_status)
    return BookingListResponse(bookings=[_booking_response(b) for b in bookings])


@router.post("/bookings", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
def create_booking(
    payload: BookingCreate,
    parent_id: str = Depends(current_parent_id),
    engine: BookingEngine = Depends(get_booking_engine),
) -> BookingResponse:
    try:
        booking = engine.create_booking(
            parent_id,
            payload.student_id,
            payload.route_id,
            payload.stop_id,
            payload.service_date,
            payload.time_slot,
        )
    except ShuttleError as exc:
        raise to_http_exception(exc) from exc
    return _booking_response(booking)


@router.post("/bookings/{booking_id}/cancel", response_model=BookingResponse)
def cancel_booking(
    booking_id: str,
    parent_id: str = Depends(current_parent_id),
    engine: BookingEngine = Depends(get_booking_engine),
) -> BookingResponse:
    try:
        booking = engine.cancel_booking(booking_id, parent_id)
    except ShuttleError as exc:
        raise to_http_exception(exc) from exc
    return _booking_response(booking)
