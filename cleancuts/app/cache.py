"""
cache.py — Per-app TTL cache for catalog reads.

An instance is created by the app factory and stored on
app.extensions["catalog_cache"]; routes fetch it from there. Nothing is held
at module level, so each app (and each test app) owns its cache and a shared
backend can be swapped in by replacing that one object.

Entries are best-effort: a value may be served up to `ttl` seconds after the
underlying rows changed. Admins can clear the cache explicitly.

Every distinct search query gets its own key, so writes prune expired entries
and the map never holds more than `max_entries`; when full, the oldest write
is evicted.
"""

from __future__ import annotations

import threading
import time
from typing import Any, Callable


class TTLCache:

    def __init__(
            self,
            ttl: float = 60.0,
            max_entries: int = 1024,
            clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl = float(ttl)
        self.max_entries = max(1, int(max_entries))
        self._clock = clock
        self._entries: dict[str, tuple[Any, float]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Any | None:
        """Returns the cached value, or None if absent or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if self._clock() > expires_at:
                del self._entries[key]
                return None
            return value

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        now = self._clock()
        expires_at = now + (self.ttl if ttl is None else float(ttl))
        with self._lock:
            self._entries.pop(key, None)
            self._prune_expired(now)
            while len(self._entries) >= self.max_entries:
                del self._entries[next(iter(self._entries))]
            self._entries[key] = (value, expires_at)

    def _prune_expired(self, now: float) -> None:
        # Caller holds the lock.
        expired = [key for key, (_, expires_at) in self._entries.items() if now > expires_at]
        for key in expired:
            del self._entries[key]

    def clear(self, prefix: str = "") -> int:
        """Drops every entry whose key starts with `prefix` (all if empty)."""
        with self._lock:
            if not prefix:
                count = len(self._entries)
                self._entries.clear()
                return count
            doomed = [key for key in self._entries if key.startswith(prefix)]
            for key in doomed:
                del self._entries[key]
            return len(doomed)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
