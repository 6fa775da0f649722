"""
Unit tests for per-trip reconciliation locks.
"""
import threading
import time
import pytest
from app.services.trip_locks import TripLockRegistry, get_trip_lock_registry


@pytest.mark.unit
class TestTripLockRegistry:
    """Test TripLockRegistry."""

    def test_same_trip_same_lock(self):
        registry = TripLockRegistry()
        assert registry.get_lock("trip-1") is registry.get_lock("trip-1")

    def test_different_trips_different_locks(self):
        registry = TripLockRegistry()
        assert registry.get_lock("trip-1") is not registry.get_lock("trip-2")

    def test_hold_releases_on_error(self):
        registry = TripLockRegistry()
        with pytest.raises(RuntimeError):
            with registry.hold("trip-1"):
                assert registry.get_lock("trip-1").locked()
                raise RuntimeError("boom")
        assert not registry.is_held("trip-1")
        assert len(registry) == 0

    def test_hold_serializes_threads_on_one_trip(self):
        registry = TripLockRegistry()
        active = []
        overlaps = []

        def worker():
            with registry.hold("trip-1"):
                active.append(1)
                if len(active) > 1:
                    overlaps.append(len(active))
                time.sleep(0.005)
                active.pop()

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert overlaps == []

    def test_other_trips_are_not_blocked(self):
        registry = TripLockRegistry()
        acquired = threading.Event()

        def worker():
            with registry.hold("trip-2"):
                acquired.set()

        with registry.hold("trip-1"):
            thread = threading.Thread(target=worker)
            thread.start()
            assert acquired.wait(timeout=2)
            thread.join()

    def test_concurrent_get_lock_returns_one_lock(self):
        registry = TripLockRegistry()
        locks = []
        barrier = threading.Barrier(10)

        def worker():
            barrier.wait()
            locks.append(registry.get_lock("trip-1"))

        threads = [threading.Thread(target=worker) for _ in range(10)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len({id(lock) for lock in locks}) == 1

    def test_released_trips_are_dropped(self):
        registry = TripLockRegistry()
        for i in range(1000):
            with registry.hold(f"trip-{i}"):
                assert registry.is_held(f"trip-{i}")
        assert len(registry) == 0

    def test_entry_survives_while_a_waiter_is_queued(self):
        registry = TripLockRegistry()
        waiting = threading.Event()
        done = threading.Event()

        def worker():
            waiting.set()
            with registry.hold("trip-1"):
                done.set()

        with registry.hold("trip-1"):
            thread = threading.Thread(target=worker)
            thread.start()
            waiting.wait(timeout=2)
            # Wait until the worker is counted as a holder
            for _ in range(200):
                if registry._holders.get("trip-1") == 2:
                    break
                time.sleep(0.005)
            assert registry._holders.get("trip-1") == 2

        assert done.wait(timeout=2)
        thread.join()
        assert len(registry) == 0


@pytest.mark.unit
def test_global_registry_is_shared():
    assert get_trip_lock_registry() is get_trip_lock_registry()
