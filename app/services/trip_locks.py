import logging
import threading
from contextlib import contextmanager
from typing import Dict, Optional

logger = logging.getLogger(__name__)


class TripLockRegistry:
    """
    Hands out one lock per trip so settlement reconciliation is single-writer.

    Entries are reference counted by hold() and dropped when the last holder
    or waiter leaves, so the registry only keeps trips that are in use.
    """

    def __init__(self):
        self._locks: Dict[str, threading.Lock] = {}
        self._holders: Dict[str, int] = {}
        self._guard = threading.Lock()

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    def get_lock(self, trip_id: str) -> threading.Lock:
        """Get or create the lock for a trip"""
        with self._guard:
            lock = self._locks.get(trip_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[trip_id] = lock
            return lock

    def is_held(self, trip_id: str) -> bool:
        """True while some thread holds or waits for the trip lock"""
        with self._guard:
            return self._holders.get(trip_id, 0) > 0

    def _checkout(self, trip_id: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(trip_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[trip_id] = lock
            self._holders[trip_id] = self._holders.get(trip_id, 0) + 1
            return lock

    def _checkin(self, trip_id: str) -> None:
        with self._guard:
            remaining = self._holders[trip_id] - 1
            if remaining:
                self._holders[trip_id] = remaining
            else:
                del self._holders[trip_id]
                del self._locks[trip_id]

    @contextmanager
    def hold(self, trip_id: str):
        """Hold the trip lock for the duration of the block"""
        lock = self._checkout(trip_id)
        try:
            if not lock.acquire(blocking=False):
                logger.info(f"Waiting for settlement reconciliation lock on trip {trip_id}")
                lock.acquire()
            try:
                yield
            finally:
                lock.release()
        finally:
            self._checkin(trip_id)


# Global lock registry
_trip_lock_registry: Optional[TripLockRegistry] = None
_registry_guard = threading.Lock()


def get_trip_lock_registry() -> TripLockRegistry:
    """Get or create the process-wide lock registry"""
    global _trip_lock_registry
    with _registry_guard:
        if _trip_lock_registry is None:
            _trip_lock_registry = TripLockRegistry()
        return _trip_lock_registry
