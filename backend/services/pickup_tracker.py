"""
Pickup state tracker.

Session-scoped "picked up" flags layered over a built manifest. State lives
in process memory only and is never written back to bookings: reopening a
session (reloading the manifest) or restarting the process drops it. Opening
a session for a new service date closes the driver's older ones.
"""

from __future__ import annotations

from datetime import date
from threading import RLock
from typing import Dict, NamedTuple, Optional, Set

from models import Manifest, TimeSlot
from services.errors import NotFoundError


class PickupSessionKey(NamedTuple):
    driver_id: str
    route_id: str
    service_date: date
    time_slot: TimeSlot


def apply_pickups(manifest: Manifest, picked_up: Set[str]) -> Manifest:
    """Copy of the manifest with is_picked_up set from `picked_up` student ids."""
    stops = []
    for stop in manifest.stops:
        students = [
            entry.model_copy(update={"is_picked_up": entry.student_id in picked_up})
            for entry in stop.students
        ]
        stops.append(stop.model_copy(update={"students": students}))
    return manifest.model_copy(update={"stops": stops})


def _booking_ids(manifest: Manifest) -> Set[str]:
    return {entry.booking_id for stop in manifest.stops for entry in stop.students}


class _Session:
    __slots__ = ("manifest", "picked_up")

    def __init__(self, manifest: Manifest) -> None:
        self.manifest = manifest
        self.picked_up: Set[str] = set()


class PickupTracker:
    """Thread-safe store of pickup sessions keyed by driver, route, date and slot."""

    def __init__(self) -> None:
        self._sessions: Dict[PickupSessionKey, _Session] = {}
        self._lock = RLock()

    @staticmethod
    def key_for(driver_id: str, manifest: Manifest) -> PickupSessionKey:
        return PickupSessionKey(driver_id, manifest.route_id, manifest.service_date, manifest.time_slot)

    def open_session(self, key: PickupSessionKey, manifest: Manifest) -> Manifest:
        """Start (or restart) a session; any previous pickup progress is discarded.

        The driver's sessions for other service dates are closed, so each
        driver holds at most one day of sessions.
        """
        with self._lock:
            stale = [
                other for other in self._sessions
                if other.driver_id == key.driver_id and other.service_date != key.service_date
            ]
            for other in stale:
                del self._sessions[other]
            self._sessions[key] = _Session(manifest)
            return apply_pickups(manifest, set())

    def refresh(self, key: PickupSessionKey, manifest: Manifest) -> Manifest:
        """Swap in a freshly built manifest without resetting the session.

        Opens the session if it is missing. Pickups are kept for students
        still on the manifest; cancelled students drop off with their flags.
        """
        with self._lock:
            session = self._sessions.get(key)
            if session is None:
                return self.open_session(key, manifest)
            if _booking_ids(session.manifest) != _booking_ids(manifest):
                session.manifest = manifest
                session.picked_up &= set(manifest.student_ids())
            return apply_pickups(session.manifest, set(session.picked_up))

    def _session(self, key: PickupSessionKey) -> _Session:
        session = self._sessions.get(key)
        if session is None:
            raise NotFoundError("No manifest loaded for this route, date and time slot")
        return session

    def toggle_pickup(self, key: PickupSessionKey, student_id: str) -> bool:
        """Flip the student's flag and return the new state. Both directions are legal."""
        with self._lock:
            session = self._session(key)
            if student_id not in session.manifest.student_ids():
                raise NotFoundError(f"Student {student_id} is not on this manifest")
            if student_id in session.picked_up:
                session.picked_up.discard(student_id)
                return False
            session.picked_up.add(student_id)
            return True

    def is_picked_up(self, key: PickupSessionKey, student_id: str) -> bool:
        with self._lock:
            return student_id in self._session(key).picked_up

    def view(self, key: PickupSessionKey) -> Manifest:
        with self._lock:
            session = self._session(key)
            return apply_pickups(session.manifest, set(session.picked_up))

    def find(self, key: PickupSessionKey) -> Optional[Manifest]:
        with self._lock:
            if key not in self._sessions:
                return None
            return self.view(key)

    def close_session(self, key: PickupSessionKey) -> bool:
        with self._lock:
            return self._sessions.pop(key, None) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)


# Process-wide store used by the driver API.
pickup_tracker = PickupTracker()
