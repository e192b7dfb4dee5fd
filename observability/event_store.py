"""
In-memory store for room trail events, queryable by room_id.

Bounded so a long-running engine process does not grow without limit.
Nothing here survives a restart.
"""

from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


_ENVELOPE_KEYS = ("ts", "room_id", "component", "event_type", "severity", "correlation_id")


@dataclass
class StoredEvent:
    """A trail event stored in memory."""

    ts: datetime
    room_id: str
    component: str
    event_type: str
    severity: str
    correlation_id: str
    payload: Dict[str, Any]  # All other event fields

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "ts": self.ts.isoformat(),
            "room_id": self.room_id,
            "component": self.component,
            "event_type": self.event_type,
            "severity": self.severity,
            "correlation_id": self.correlation_id,
        }
        result.update(self.payload)
        return result


class EventStore:
    """
    In-memory event store.

    Stores events in a bounded deque (FIFO); the oldest events are dropped
    once max_events is reached.
    """

    def __init__(self, max_events: int = 10000):
        self._events: deque[StoredEvent] = deque(maxlen=max_events)
        self._max_events = max_events
        self._lock = threading.Lock()

    def store(self, event: Dict[str, Any]) -> None:
        """
        Store a trail event.

        Args:
            event: envelope dict (ts, room_id, component, event_type, severity,
                correlation_id) plus any payload fields
        """
        ts_str = event.get("ts")
        if isinstance(ts_str, str):
            ts = datetime.fromisoformat(ts_str.replace("Z", "+00:00"))
        else:
            ts = datetime.now(timezone.utc)

        room_id = event.get("room_id", "")
        stored = StoredEvent(
            ts=ts,
            room_id=room_id,
            component=event.get("component", "unknown"),
            event_type=event.get("event_type", "unknown"),
            severity=event.get("severity", "info"),
            correlation_id=event.get("correlation_id", room_id),
            payload={k: v for k, v in event.items() if k not in _ENVELOPE_KEYS},
        )

        with self._lock:
            self._events.append(stored)

    def query(
        self,
        room_id: Optional[str] = None,
        event_type: Optional[str] = None,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """
        Query events with optional filters.

        Returns:
            List of event dicts, oldest first
        """
        with self._lock:
            snapshot = list(self._events)

        results: List[StoredEvent] = []
        for event in snapshot:
            if room_id and event.room_id != room_id:
                continue
            if event_type and event.event_type != event_type:
                continue
            if since and event.ts < since:
                continue
            if until and event.ts > until:
                continue

            results.append(event)

            if limit and len(results) >= limit:
                break

        return [e.to_dict() for e in results]

    def discard(self, room_id: str) -> int:
        """Drop every event for room_id. Returns how many were dropped."""
        with self._lock:
            kept = [e for e in self._events if e.room_id != room_id]
            dropped = len(self._events) - len(kept)
            self._events.clear()
            self._events.extend(kept)
        return dropped

    def clear(self) -> None:
        with self._lock:
            self._events.clear()

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "total_events": len(self._events),
                "max_events": self._max_events,
                "oldest_event_ts": self._events[0].ts.isoformat() if self._events else None,
                "newest_event_ts": self._events[-1].ts.isoformat() if self._events else None,
            }
