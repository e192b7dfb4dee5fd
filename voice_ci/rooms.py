"""
Room registry: maps room ids to live Sessions.

Each voice test runs inside one room. In-memory only; a room lives until it is
explicitly removed.

Locking:
- a registry lock guards the room map itself (create / lookup / remove)
- a per-room lock serializes everything that touches that room's Session
Rule evaluation never runs under the registry lock, so rooms do not wait on
each other.
"""
from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from logging_setup import Component, get_logger
from observability.event_store import EventStore
from observability.events import Component as TrailComponent, EventEmitter

from .errors import RoomNotFound
from .events import VoiceEvent, parse_event
from .session import RuleThresholds, Session, SessionState, SessionStatus


@dataclass
class RoomSummary:
    room_id: str
    status: SessionStatus

    def to_wire(self) -> Dict[str, Any]:
        return {"roomId": self.room_id, "status": self.status.value}


@dataclass
class _Room:
    session: Session
    lock: threading.Lock = field(default_factory=threading.Lock)


class RoomRegistry:
    """Owns every Session, keyed by room id."""

    def __init__(
        self,
        thresholds: Optional[RuleThresholds] = None,
        emitter: Optional[EventEmitter] = None,
    ):
        self.thresholds = thresholds or RuleThresholds()
        self.emitter = emitter or EventEmitter(TrailComponent.ROOM_REGISTRY, store=EventStore())
        self._rooms: Dict[str, _Room] = {}
        self._lock = threading.Lock()
        self._logger = get_logger(Component.ROOM_REGISTRY)

    def __len__(self) -> int:
        with self._lock:
            return len(self._rooms)

    def __contains__(self, room_id: object) -> bool:
        with self._lock:
            return room_id in self._rooms

    def create_room(self, room_id: str) -> SessionState:
        """
        Create a session for room_id.

        Idempotent: an existing room is returned as-is, never reset.
        """
        with self._lock:
            room = self._rooms.get(room_id)
            created = room is None
            if created:
                room = _Room(session=Session(room_id, thresholds=self.thresholds))
                self._rooms[room_id] = room

        if created:
            self._logger.info("Room created", room_id=room_id)
            self.emitter.room_created(room_id)

        with room.lock:
            return room.session.get_state()

    def send_event(self, room_id: str, event: VoiceEvent | Dict[str, Any]) -> SessionState:
        """
        Deliver one event to a room's session.

        Raises:
            RoomNotFound: no session exists for room_id
            InvalidEvent: a wire payload failed validation
        """
        room = self._get_room(room_id)
        event = parse_event(event)

        with room.lock:
            was_terminal = room.session.is_terminal()
            state = room.session.on_event(event)

        self._report(room_id, event.type, state, was_terminal)
        return state

    def finalize_room(self, room_id: str) -> SessionState:
        """Run the end-of-call checks now, whether or not call_ended arrived."""
        room = self._get_room(room_id)
        with room.lock:
            was_terminal = room.session.is_terminal()
            state = room.session.finalize()

        if not was_terminal:
            self._logger.info(
                "Room finalized",
                room_id=room_id,
                status=state.status.value,
                failure_reason=state.failure_reason,
            )
            self._emit_verdict(room_id, state)
        return state

    def get_state(self, room_id: str) -> Optional[SessionState]:
        """Snapshot of the room, or None if the room is unknown."""
        with self._lock:
            room = self._rooms.get(room_id)
        if room is None:
            return None
        with room.lock:
            return room.session.get_state()

    def list_rooms(self) -> List[RoomSummary]:
        """All known rooms with their status, in creation order."""
        with self._lock:
            rooms = list(self._rooms.items())
        return [RoomSummary(room_id=room_id, status=room.session.status) for room_id, room in rooms]

    def remove_room(self, room_id: str) -> bool:
        """
        Drop a room and its trail. Returns whether anything was removed.

        A room later created under the same id starts with an empty trail.
        """
        with self._lock:
            removed = self._rooms.pop(room_id, None) is not None
        if removed:
            self._logger.info("Room removed", room_id=room_id)
            self.emitter.room_removed(room_id)
            self.emitter.store.discard(room_id)
        return removed

    def _get_room(self, room_id: str) -> _Room:
        with self._lock:
            room = self._rooms.get(room_id)
        if room is None:
            self._logger.warning("Room not found", room_id=room_id)
            raise RoomNotFound(room_id)
        return room

    def _report(self, room_id: str, event_type: str, state: SessionState, was_terminal: bool) -> None:
        if was_terminal:
            self._logger.debug(
                "Event ignored by finished session",
                room_id=room_id,
                event_type=event_type,
                status=state.status.value,
            )
            self.emitter.event_ignored(room_id, event_type, state.status.value)
            return

        self._logger.info(
            "Event applied",
            room_id=room_id,
            event_type=event_type,
            status=state.status.value,
            failure_reason=state.failure_reason,
            events=state.events,
        )
        self.emitter.event_applied(room_id, event_type, state.status.value, state.events)
        self._emit_verdict(room_id, state)

    def _emit_verdict(self, room_id: str, state: SessionState) -> None:
        if state.status == SessionStatus.FAIL:
            self.emitter.session_failed(room_id, state.failure_reason or "")
        elif state.status == SessionStatus.PASS:
            self.emitter.session_passed(room_id)
