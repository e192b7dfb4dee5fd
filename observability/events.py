"""
Structured JSON event emission for the room audit trail.

Every registry operation that changes (or refuses to change) a room leaves one
envelope event behind: printed to stdout as a JSON line and kept in the
in-memory event store so it can be read back per room.
"""

from __future__ import annotations

import json
import sys
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from .event_store import EventStore


class Component(str, Enum):
    """Components that emit trail events."""

    ENGINE = "engine"
    ROOM_REGISTRY = "room_registry"
    HTTP_SERVER = "http_server"


class Severity(str, Enum):
    """Event severity levels."""

    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


class EventEmitter:
    """Emits structured JSON trail events."""

    def __init__(
        self,
        component: Component,
        store: Optional[EventStore] = None,
        echo: bool = True,
    ):
        self.component = component
        self.store = store if store is not None else EventStore()
        self.echo = echo

    def emit(
        self,
        event_type: str,
        room_id: str,
        severity: Severity = Severity.INFO,
        correlation_id: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        event = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "room_id": room_id,
            "component": self.component.value,
            "event_type": event_type,
            "severity": severity.value,
            "correlation_id": correlation_id or room_id,
        }
        event.update(kwargs)

        if self.echo:
            sys.stdout.write(json.dumps(event, ensure_ascii=False))
            sys.stdout.write("\n")
            sys.stdout.flush()

        self.store.store(event)

    def room_created(self, room_id: str) -> None:
        self.emit("room.created", room_id)

    def event_applied(
        self,
        room_id: str,
        event_type: str,
        status: str,
        events: int,
    ) -> None:
        self.emit(
            "room.event_applied",
            room_id,
            voice_event=event_type,
            status=status,
            events=events,
        )

    def event_ignored(self, room_id: str, event_type: str, status: str) -> None:
        """A terminal session swallowed an event without counting it."""
        self.emit(
            "room.event_ignored",
            room_id,
            severity=Severity.DEBUG,
            voice_event=event_type,
            status=status,
        )

    def session_failed(self, room_id: str, reason: str) -> None:
        self.emit("session.failed", room_id, severity=Severity.WARN, reason=reason)

    def session_passed(self, room_id: str) -> None:
        self.emit("session.passed", room_id)

    def room_removed(self, room_id: str) -> None:
        self.emit("room.removed", room_id)
