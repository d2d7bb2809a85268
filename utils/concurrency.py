"""
In-flight guard for fridge and collection toggles.

Overlapping toggle requests for the same id would read the same stored list
and one write would be lost. Callers claim the id first and skip the request
when another toggle for it is still running.
"""

import threading
from contextlib import contextmanager
from typing import Hashable, Iterator, Set


class InFlightGuard:
    """Thread-safe set of keys with an operation in progress"""

    def __init__(self):
        self._lock = threading.Lock()
        self._in_flight: Set[Hashable] = set()

    def try_acquire(self, key: Hashable) -> bool:
        """Claim a key. Returns False if it is already claimed."""
        with self._lock:
            if key in self._in_flight:
                return False
            self._in_flight.add(key)
            return True

    def release(self, key: Hashable):
        """Release a claimed key (no-op if not claimed)"""
        with self._lock:
            self._in_flight.discard(key)

    def is_in_flight(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._in_flight

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[bool]:
        """
        Claim a key for the duration of a block.

        Yields True when the key was claimed; the key is released on exit.
        Yields False (and releases nothing) when another holder has it.
        """
        acquired = self.try_acquire(key)
        try:
            yield acquired
        finally:
            if acquired:
                self.release(key)
