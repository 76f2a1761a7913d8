"""
In-memory TTL cache for assembled API responses.
"""
import time
from typing import Any, Dict, Optional, Tuple


class ResponseCache:
    """Key -> (value, expiry). Expired entries are purged once the cache grows past max_entries."""

    def __init__(self, ttl_sec: float, max_entries: int = 1000):
        self._ttl = ttl_sec
        self._max_entries = max_entries
        self._store: Dict[str, Tuple[Any, float]] = {}

    def get(self, key: str) -> Optional[Any]:
        entry = self._store.get(key)
        if entry is None:
            return None
        value, expiry = entry
        if time.monotonic() >= expiry:
            del self._store[key]
            return None
        return value

    def set(self, key: str, value: Any) -> None:
        self._store[key] = (value, time.monotonic() + self._ttl)
        if len(self._store) > self._max_entries:
            now = time.monotonic()
            for k in [k for k, (_, expiry) in self._store.items() if now >= expiry]:
                del self._store[k]

    def clear(self) -> None:
        self._store.clear()

    def __len__(self) -> int:
        return len(self._store)
