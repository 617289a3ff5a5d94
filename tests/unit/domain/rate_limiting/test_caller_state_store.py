"""Unit tests for the per-key locked caller state store."""

import threading
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone

import pytest

from src.domain.rate_limiting.entities import CallerState
from src.domain.rate_limiting.state_store import CallerStateStore

NOW = datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def _append(ts):
    def mutation(state):
        state = state or CallerState()
        state.request_timestamps.append(ts)
        return state, state.request_count

    return mutation


class TestCallerStateStore:
    """Test cases for CallerStateStore."""

    def test_unknown_key_returns_none(self):
        assert CallerStateStore().get("Anonymous_1.2.3.4", NOW) is None

    def test_upsert_creates_and_returns_result(self):
        # Arrange
        store = CallerStateStore()

        # Act
        first = store.upsert("k", _append(NOW))
        second = store.upsert("k", _append(NOW))

        # Assert
        assert (first, second) == (1, 2)
        assert "k" in store
        assert len(store) == 1

    def test_failed_mutation_leaves_state_unchanged(self):
        store = CallerStateStore()
        store.upsert("k", _append(NOW))

        def broken(state):
            state.request_timestamps.clear()
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            store.upsert("k", broken)
        assert store.get("k", NOW).request_count == 1

    def test_get_returns_copy(self):
        store = CallerStateStore()
        store.upsert("k", _append(NOW))
        store.get("k", NOW).request_timestamps.clear()
        assert store.get("k", NOW).request_count == 1

    def test_none_state_removes_key(self):
        store = CallerStateStore()
        store.upsert("k", _append(NOW))
        store.upsert("k", lambda state: (None, None))
        assert "k" not in store

    def test_get_prunes_to_window(self):
        store = CallerStateStore(window_seconds=60)
        store.upsert("k", _append(NOW - timedelta(seconds=61)))
        store.upsert("k", _append(NOW - timedelta(seconds=60)))
        store.upsert("k", _append(NOW - timedelta(seconds=59)))

        state = store.get("k", NOW)

        assert state.request_timestamps == [NOW - timedelta(seconds=59)]

    def test_get_uses_clock_when_now_missing(self):
        store = CallerStateStore(clock=lambda: NOW)
        store.upsert("k", _append(NOW - timedelta(seconds=120)))
        assert store.get("k").request_count == 0

    def test_clear_removes_state(self):
        store = CallerStateStore()
        store.upsert("a", _append(NOW))
        store.upsert("b", _append(NOW))
        store.clear("a")
        assert store.keys() == ["b"]

    def test_concurrent_upserts_on_same_key_are_serialized(self):
        # Arrange
        store = CallerStateStore()

        def slow_increment(state):
            state = state or CallerState()
            snapshot = list(state.request_timestamps)
            time.sleep(0.001)
            snapshot.append(NOW)
            return CallerState(request_timestamps=snapshot), None

        # Act
        with ThreadPoolExecutor(max_workers=8) as pool:
            for _ in range(50):
                pool.submit(store.upsert, "k", slow_increment)

        # Assert
        assert store.get("k", NOW).request_count == 50

    def test_different_keys_do_not_block_each_other(self):
        store = CallerStateStore()
        entered = threading.Event()
        release = threading.Event()

        def holding(state):
            entered.set()
            release.wait(timeout=5)
            return CallerState(), None

        worker = threading.Thread(target=store.upsert, args=("slow", holding))
        worker.start()
        assert entered.wait(timeout=5)

        # completes while "slow" still holds its own lock
        assert store.upsert("fast", _append(NOW)) == 1

        release.set()
        worker.join(timeout=5)
        assert "slow" in store

    def test_clear_releases_key_lock(self):
        store = CallerStateStore()
        store.upsert("k", _append(NOW))
        assert "k" in store._locks

        store.clear("k")

        assert store._locks == {}

    def test_lookups_of_unknown_keys_leave_no_locks(self):
        store = CallerStateStore()
        for i in range(100):
            store.get(f"Anonymous_10.0.0.{i}", NOW)
            store.upsert(f"alice_10.0.0.{i}", lambda state: (None, None))
        assert store._locks == {}
        assert len(store) == 0

    def test_failed_mutation_on_new_key_releases_lock(self):
        store = CallerStateStore()

        def broken(state):
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            store.upsert("k", broken)
        assert store._locks == {}

    def test_lock_kept_while_another_thread_waits(self):
        store = CallerStateStore()
        entered = threading.Event()
        release = threading.Event()

        def holding(state):
            entered.set()
            release.wait(timeout=5)
            return None, None

        first = threading.Thread(target=store.upsert, args=("k", holding))
        first.start()
        assert entered.wait(timeout=5)
        second = threading.Thread(target=store.upsert, args=("k", _append(NOW)))
        second.start()

        release.set()
        first.join(timeout=5)
        second.join(timeout=5)

        # the second upsert runs after the removal and keeps its key lock
        assert store.get("k", NOW).request_count == 1
        assert list(store._locks) == ["k"]
