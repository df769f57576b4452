"""Proxy-session -> upstream-session mapping."""

from __future__ import annotations

import logging
import secrets
import threading
import time
from collections import OrderedDict
from typing import Callable

logger = logging.getLogger(__name__)


class SessionTable:
    """Maps proxy-issued session ids to upstream session ids.

    Bounded LRU with an optional idle TTL.  ``get`` refreshes recency;
    expired entries are dropped lazily.  One lock guards every operation,
    so each call sees a consistent view of the table.
    """

    def __init__(
        self,
        max_entries: int = 10_000,
        idle_ttl_seconds: float | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        self.max_entries = max_entries
        self.idle_ttl_seconds = idle_ttl_seconds
        self._clock = clock
        # proxy id -> (upstream id, last access)
        self._entries: OrderedDict[str, tuple[str, float]] = OrderedDict()
        self._lock = threading.Lock()
        self._evicted = 0

    @staticmethod
    def _new_id() -> str:
        return f"{time.time_ns():x}-{secrets.token_hex(8)}"

    def generate(self) -> str:
        """Return a fresh proxy session id not currently in the table."""
        with self._lock:
            while True:
                sid = self._new_id()
                if sid not in self._entries:
                    return sid

    def _expired(self, last_access: float, now: float) -> bool:
        ttl = self.idle_ttl_seconds
        return ttl is not None and now - last_access > ttl

    def _purge_expired(self, now: float) -> None:
        # Oldest first, so stop at the first live entry.
        while self._entries:
            sid, (_, last) = next(iter(self._entries.items()))
            if not self._expired(last, now):
                break
            del self._entries[sid]
            self._evicted += 1

    def put(self, proxy_session_id: str, upstream_session_id: str) -> None:
        """Insert or overwrite a mapping, evicting the LRU entry when full."""
        with self._lock:
            now = self._clock()
            self._purge_expired(now)
            self._entries[proxy_session_id] = (upstream_session_id, now)
            self._entries.move_to_end(proxy_session_id)
            while len(self._entries) > self.max_entries:
                old, _ = self._entries.popitem(last=False)
                self._evicted += 1
                logger.info("Session evicted (lru): %s", old[:12])

    def get(self, proxy_session_id: str | None) -> str | None:
        """Resolve a proxy id, or None when missing, unknown or expired."""
        if not proxy_session_id:
            return None
        with self._lock:
            entry = self._entries.get(proxy_session_id)
            if entry is None:
                return None
            upstream_id, last = entry
            now = self._clock()
            if self._expired(last, now):
                del self._entries[proxy_session_id]
                self._evicted += 1
                logger.info("Session expired: %s", proxy_session_id[:12])
                return None
            self._entries[proxy_session_id] = (upstream_id, now)
            self._entries.move_to_end(proxy_session_id)
            return upstream_id

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, proxy_session_id: object) -> bool:
        with self._lock:
            return proxy_session_id in self._entries

    def snapshot(self) -> dict:
        with self._lock:
            return {
                "sessions": len(self._entries),
                "max_entries": self.max_entries,
                "idle_ttl_seconds": self.idle_ttl_seconds,
                "evicted": self._evicted,
            }
