"""Process-local mutual exclusion keyed by case id."""

from __future__ import annotations

from contextlib import contextmanager
from threading import Lock
from typing import Dict, Iterator, List


class CaseLockRegistry:
    """Hands out one lock per case id and forgets it once nobody holds or waits on it."""

    def __init__(self) -> None:
        self._guard = Lock()
        # case_id -> [lock, number of holders + waiters]
        self._entries: Dict[str, List] = {}

    @contextmanager
    def hold(self, case_id: str) -> Iterator[None]:
        with self._guard:
            entry = self._entries.setdefault(case_id, [Lock(), 0])
            entry[1] += 1
        lock: Lock = entry[0]
        lock.acquire()
        try:
            yield
        finally:
            lock.release()
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    self._entries.pop(case_id, None)

    def active(self) -> int:
        """Number of case ids currently held or awaited."""

        with self._guard:
            return len(self._entries)
