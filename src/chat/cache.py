"""Short-lived in-process caches.

Used for the idempotency guard, the repeat-message hash per user and the
ghost-mode cooldown. Entries expire lazily on access.
"""

from __future__ import annotations

import time
from collections.abc import Callable


class TTLCache:
    """A dict of string keys whose entries vanish after a per-entry TTL.

    Args:
        clock: Monotonic time source (seconds). Override in tests.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: dict[str, tuple[str, float]] = {}

    def get(self, key: str) -> str | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        return value

    def set(self, key: str, value: str, ttl: float) -> None:
        self._entries[key] = (value, self._clock() + ttl)
        self._purge()

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def add_if_absent(self, key: str, ttl: float, value: str = "1") -> bool:
        """Store *key* unless a live entry exists. Returns True if stored."""
        if key in self:
            return False
        self.set(key, value, ttl)
        return True

    def _purge(self) -> None:
        now = self._clock()
        expired = [k for k, (_, exp) in self._entries.items() if now >= exp]
        for k in expired:
            del self._entries[k]
