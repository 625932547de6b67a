"""
Per-slot mutual exclusion for booking check-and-insert.

Locks exist only while some thread holds or waits on them, so the registry
does not grow with every (route, stop, date, slot) ever booked.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from datetime import date
from typing import Dict, Iterator, List, NamedTuple

from models import TimeSlot


class SlotKey(NamedTuple):
    route_id: str
    stop_id: str
    service_date: date
    time_slot: TimeSlot


class _Entry:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.users = 0


class SlotLockRegistry:
    """Hands out one lock per (route, stop, date, time slot)."""

    def __init__(self) -> None:
        self._locks: Dict[SlotKey, _Entry] = {}
        self._guard = threading.Lock()

    def _acquire_entry(self, key: SlotKey) -> _Entry:
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = _Entry()
                self._locks[key] = entry
            entry.users += 1
            return entry

    def _release_entry(self, key: SlotKey, entry: _Entry) -> None:
        with self._guard:
            entry.users -= 1
            if entry.users == 0:
                del self._locks[key]

    @contextmanager
    def hold(self, key: SlotKey) -> Iterator[None]:
        entry = self._acquire_entry(key)
        try:
            with entry.lock:
                yield
        finally:
            self._release_entry(key, entry)

    def active_keys(self) -> List[SlotKey]:
        with self._guard:
            return list(self._locks)

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


# Shared by every engine in the process.
slot_locks = SlotLockRegistry()
