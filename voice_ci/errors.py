"""
Structural errors raised by the engine.

These are integration faults (unknown room, malformed event) and propagate to
the caller. Rule violations are never raised; they show up as
status="fail" on the session state.
"""
from typing import Any, Dict, List, Optional


class ErrorCategory:
    """Stable error categories, used in logs and HTTP error bodies."""

    ROOM_NOT_FOUND = "room.not_found"
    INVALID_EVENT = "event.invalid"


class EngineError(Exception):
    """Base class for structural engine errors."""

    category: str = "engine.error"


class RoomNotFound(EngineError):
    """No session exists for the referenced room id."""

    category = ErrorCategory.ROOM_NOT_FOUND

    def __init__(self, room_id: str):
        self.room_id = room_id
        super().__init__(f"Room not found: {room_id}")


class InvalidEvent(EngineError):
    """An event with an unrecognized type or missing/ill-typed fields."""

    category = ErrorCategory.INVALID_EVENT

    def __init__(self, message: str, errors: Optional[List[Dict[str, Any]]] = None):
        self.errors = errors or []
        super().__init__(message)
