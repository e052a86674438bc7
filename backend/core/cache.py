"""
Caching Utilities

In-memory report cache with TTL support and the order snapshot session store.
"""

import hashlib
import json
import time
from collections import OrderedDict
from threading import Lock
from typing import Any, Callable, Optional

from config import get_settings
from core.logging_config import cache_logger as logger


class TTLCache:
    """Thread-safe LRU cache with TTL support."""

    def __init__(self, maxsize: int = 32, ttl_seconds: float = 300):
        self.maxsize = maxsize
        self.ttl_seconds = ttl_seconds
        self._cache: OrderedDict[str, tuple[Any, float]] = OrderedDict()
        self._lock = Lock()

    @staticmethod
    def make_key(*parts: Any, **options: Any) -> str:
        """
        Build a stable cache key.

        Options are serialized with sorted keys so that equal filter dicts
        map to the same entry regardless of insertion order.
        """
        payload = json.dumps(
            {"parts": [str(p) for p in parts], "options": options},
            sort_keys=True,
            default=str,
        )
        return hashlib.md5(payload.encode()).hexdigest()

    def get(self, key: str) -> Optional[Any]:
        """Get value from cache if not expired."""
        with self._lock:
            if key not in self._cache:
                return None

            value, stored_at = self._cache[key]
            if time.monotonic() - stored_at > self.ttl_seconds:
                del self._cache[key]
                logger.debug(f"Cache entry {key[:8]} expired")
                return None

            self._cache.move_to_end(key)
            return value

    def set(self, key: str, value: Any) -> None:
        """Set value in cache, evicting the least recently used entries."""
        with self._lock:
            self._cache.pop(key, None)
            while len(self._cache) >= self.maxsize:
                self._cache.popitem(last=False)

            self._cache[key] = (value, time.monotonic())

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._cache.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None


class SessionStore:
    """
    Uploaded order snapshots, keyed by session id.

    Removal listeners run after a session is deleted or found expired, so
    per-session state held elsewhere can be released with it.
    """

    def __init__(self, ttl_seconds: Optional[float] = None):
        self._sessions: dict[str, dict[str, Any]] = {}
        self._lock = Lock()
        self._listeners: list[Callable[[str], None]] = []
        if ttl_seconds is None:
            ttl_seconds = get_settings().session_ttl_hours * 3600
        self.ttl_seconds = ttl_seconds

    def add_removal_listener(self, listener: Callable[[str], None]) -> None:
        self._listeners.append(listener)

    def _notify_removed(self, session_ids: list[str]) -> None:
        for session_id in session_ids:
            for listener in self._listeners:
                listener(session_id)

    def _is_expired(self, session: dict[str, Any], now: float) -> bool:
        return now - session["created_at"] > self.ttl_seconds

    def create(self, session_id: str, orders: list[Any], metadata: dict[str, Any]) -> None:
        with self._lock:
            self._sessions[session_id] = {
                **metadata,
                "orders": orders,
                "created_at": time.time(),
            }
        logger.info(f"Session {session_id} stored with {len(orders)} orders")

    def get(self, session_id: str) -> Optional[dict[str, Any]]:
        """Get a session, dropping it when expired."""
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                return None
            if not self._is_expired(session, time.time()):
                return session
            del self._sessions[session_id]

        logger.info(f"Session {session_id} expired")
        self._notify_removed([session_id])
        return None

    def get_orders(self, session_id: str) -> Optional[list[Any]]:
        session = self.get(session_id)
        return session["orders"] if session else None

    def delete(self, session_id: str) -> bool:
        with self._lock:
            removed = self._sessions.pop(session_id, None) is not None
        if removed:
            self._notify_removed([session_id])
        return removed

    def list_sessions(self) -> list[str]:
        """List all active session IDs, pruning expired ones."""
        with self._lock:
            now = time.time()
            expired = [sid for sid, session in self._sessions.items() if self._is_expired(session, now)]
            for sid in expired:
                del self._sessions[sid]
            active = list(self._sessions)

        if expired:
            logger.info(f"Pruned {len(expired)} expired sessions")
            self._notify_removed(expired)
        return active


# Global instance
session_store = SessionStore()
