"""Process-local TTL cache for ranked recommendation lists.

Entries expire lazily on read; `cleanup()` is run periodically by the
scheduler to bound memory. No cross-instance coherence: a stale entry
only affects ranking freshness.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Any, Callable

from pulse_recs.log import get_logger

logger = get_logger("rec_cache")

DEFAULT_TTL_SECONDS = 3600


@dataclass
class CacheEntry:
    value: Any
    expires_at: float


class RecommendationCache:
    def __init__(
        self,
        default_ttl: int = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        """Raw storage check, ignores expiry."""
        return key in self._entries

    def get(self, key: str) -> Any | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._clock() >= entry.expires_at:
                del self._entries[key]
                return None
            return entry.value

    def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        ttl = self.default_ttl if ttl_seconds is None else ttl_seconds
        with self._lock:
            self._entries[key] = CacheEntry(value=value, expires_at=self._clock() + ttl)

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def cleanup(self) -> int:
        """Drop every expired entry. Returns how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [k for k, e in self._entries.items() if now >= e.expires_at]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.debug("cache_cleanup", removed=len(expired), remaining=len(self._entries))
        return len(expired)

    def invalidate_user(self, user_id: str) -> int:
        """Drop all cached lists of one user, whatever their filters."""
        base = recommendation_cache_key(user_id)
        with self._lock:
            keys = [k for k in self._entries if k == base or k.startswith(base + ":")]
            for key in keys:
                del self._entries[key]
        return len(keys)


def recommendation_cache_key(
    user_id: str,
    genre: str | None = None,
    style: str | None = None,
    scope: str | None = None,
) -> str:
    """rec:<user>[:g:<genre>][:s:<style>][:scope:<scope>]"""
    parts = ["rec", user_id]
    if genre:
        parts.append(f"g:{genre}")
    if style:
        parts.append(f"s:{style}")
    if scope:
        parts.append(f"scope:{scope}")
    return ":".join(parts)
