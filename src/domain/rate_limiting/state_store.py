"""
Caller State Store

In-process table mapping a caller key to its recent request timestamps and
any active block. One instance is owned by the application and injected into
the decision service; tests create a fresh store each.

Concurrency contract:
- All mutations for one key are serialized by a lock dedicated to that key
- Mutations for different keys never wait on each other
- The registry lock is held only long enough to look up, create or release a key lock
- A key lock lives only while the key has state or a call is using it

Memory: a caller's state is kept until it is cleared or a mutation removes it,
so idle state grows with the number of distinct callers seen. Key locks do not
outlive their state.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Callable, Dict, Iterator, List, Optional, Tuple, TypeVar

from .entities import CallerState
from .value_objects import WINDOW_SECONDS, utc_now

T = TypeVar("T")

Mutation = Callable[[Optional[CallerState]], Tuple[Optional[CallerState], T]]


class _KeyLock:
    __slots__ = ("lock", "users")

    def __init__(self):
        self.lock = threading.Lock()
        self.users = 0


class CallerStateStore:
    """Thread-safe mapping from composite caller key to ``CallerState``."""

    def __init__(
        self,
        window_seconds: int = WINDOW_SECONDS,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.window = timedelta(seconds=window_seconds)
        self.clock = clock
        self._states: Dict[str, CallerState] = {}
        self._locks: Dict[str, _KeyLock] = {}
        self._registry_lock = threading.Lock()

    @contextmanager
    def _locked(self, key: str) -> Iterator[None]:
        with self._registry_lock:
            entry = self._locks.get(key)
            if entry is None:
                entry = self._locks[key] = _KeyLock()
            entry.users += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._registry_lock:
                entry.users -= 1
                if entry.users == 0 and key not in self._states:
                    del self._locks[key]

    def get(self, key: str, now: Optional[datetime] = None) -> Optional[CallerState]:
        """Return a copy of the caller's state with timestamps pruned to the window."""
        now = now or self.clock()
        with self._locked(key):
            state = self._states.get(key)
            if state is None:
                return None
            snapshot = state.copy()
        snapshot.request_timestamps = [
            ts for ts in snapshot.request_timestamps if now - ts < self.window
        ]
        return snapshot

    def upsert(self, key: str, mutation: Mutation) -> T:
        """
        Atomically read, mutate and write back the state for ``key``.

        ``mutation`` receives a copy of the current state (None when the key
        is unknown) and returns ``(new_state, result)``. A ``None`` new state
        removes the key. The mutation's result is returned to the caller.
        """
        with self._locked(key):
            current = self._states.get(key)
            new_state, result = mutation(current.copy() if current else None)
            if new_state is None:
                self._states.pop(key, None)
            else:
                self._states[key] = new_state
            return result

    def clear(self, key: str) -> None:
        with self._locked(key):
            self._states.pop(key, None)

    def keys(self) -> List[str]:
        return list(self._states)

    def __len__(self) -> int:
        return len(self._states)

    def __contains__(self, key: str) -> bool:
        return key in self._states
