"""In-process dedup store."""

import threading
from typing import Dict, Optional

from .base import DedupStore


class MemoryDedupStore(DedupStore):
    """Single-node map guarded by a lock.

    Safe to share between threads and event loops in one process. Gives no
    coordination across processes, so it is only suitable for tests and
    single-node deployments.
    """

    name = "memory"

    def __init__(self, map_name: str = "feeder-file-semaphore"):
        self.map_name = map_name
        self._entries: Dict[int, bytes] = {}
        self._lock = threading.Lock()

    async def insert_if_absent(self, key: int, value: bytes) -> Optional[bytes]:
        self._check_entry(key, value)
        with self._lock:
            previous = self._entries.get(key)
            if previous is None:
                self._entries[key] = bytes(value)
        return self._check_stored(key, previous)

    async def get(self, key: int) -> Optional[bytes]:
        self._check_entry(key)
        with self._lock:
            value = self._entries.get(key)
        return self._check_stored(key, value)

    async def put(self, key: int, value: bytes) -> None:
        self._check_entry(key, value)
        with self._lock:
            self._entries[key] = bytes(value)

    async def size(self) -> int:
        with self._lock:
            return len(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
