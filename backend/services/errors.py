"""
Typed failures raised by the booking and manifest services.

API handlers translate these into HTTP responses; services never swallow them.
"""

from __future__ import annotations


class ShuttleError(Exception):
    """Base class for every domain failure."""

    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class OwnershipError(ShuttleError):
    """Caller acted on a resource it does not own."""

    status_code = 403


class CapacityExceededError(ShuttleError):
    """No seat left at the stop for that date and time slot."""

    status_code = 409


class NotFoundError(ShuttleError):
    status_code = 404


class InvalidStateError(ShuttleError):
    """Illegal status transition, e.g. cancelling twice."""

    status_code = 409


class ValidationError(ShuttleError, ValueError):
    status_code = 400
