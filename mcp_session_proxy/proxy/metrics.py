"""Thread-safe event collector for the proxy."""

from __future__ import annotations

import statistics
import threading
import time
from collections import deque
from datetime import datetime, timezone


class ProxyMetrics:
    """Collects structured events from the routing pipeline.

    Only the most recent ``max_events`` events are kept; totals are
    tracked separately so they survive the ring buffer rolling over.
    """

    def __init__(self, max_events: int = 1000) -> None:
        self.start_time: float = time.time()
        self._events: deque[dict] = deque(maxlen=max_events)
        self._lock = threading.Lock()
        self._seq = 0
        self._totals: dict[str, int] = {}
        self._errors = 0

    def record(self, event: dict) -> None:
        """Append an event (thread-safe). Adds ``_seq`` and ``ts``."""
        with self._lock:
            event = dict(event)  # shallow copy to avoid caller mutation
            event["_seq"] = self._seq
            if "ts" not in event:
                event["ts"] = datetime.now(timezone.utc).isoformat()
            self._seq += 1
            self._events.append(event)
            kind = event.get("kind") or event.get("type", "unknown")
            self._totals[kind] = self._totals.get(kind, 0) + 1
            if event.get("status", 0) >= 400:
                self._errors += 1

    def snapshot(self) -> dict:
        """Aggregate stats over the retained events."""
        with self._lock:
            requests = [e for e in self._events if e.get("type") == "request"]
            elapsed = [r["elapsed_ms"] for r in requests if "elapsed_ms" in r]
            return {
                "uptime_s": round(time.time() - self.start_time, 1),
                "total_events": self._seq,
                "by_kind": dict(self._totals),
                "errors": self._errors,
                "avg_elapsed_ms": round(statistics.mean(elapsed), 1) if elapsed else 0,
                "recent_requests": list(requests[-50:]),
            }
