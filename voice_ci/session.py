"""
Per-room rule evaluation.

A Session consumes voice events in order and keeps the derived call state.
Two rule classes live here:
- streaming checks, run as each event arrives; a violation fails the session
  on the spot (slow first response, dead air, too many barge-ins)
- structural checks, run only by finalize() once the call is over (started,
  ended, responded, required step reached)

Status moves running -> pass or running -> fail exactly once. Every event after
that is a no-op.
"""
from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from logging_setup import Component, get_logger

from .events import (
    AgentTranscript,
    BargeIn,
    CallEnded,
    CallStarted,
    LatencySample,
    UserTranscript,
    VoiceEvent,
)


REQUIRED_STEP_KEYWORDS = ("verify", "confirm")
HOLD_KEYWORD = "hold"


class SessionStatus(str, Enum):
    RUNNING = "running"
    PASS = "pass"
    FAIL = "fail"


@dataclass(frozen=True)
class RuleThresholds:
    """Limits the rules are judged against."""

    max_first_response_ms: int = 3000
    max_dead_air_ms: int = 4000
    max_interruptions: int = 1


@dataclass
class SessionState:
    """Snapshot of one room's evaluation."""

    room_id: str
    started_at: Optional[int] = None
    first_response_ms: Optional[int] = None
    dead_air_detected: bool = False
    required_step_seen: bool = False
    interruption_count: int = 0
    ended: bool = False
    status: SessionStatus = SessionStatus.RUNNING
    failure_reason: Optional[str] = None
    events: int = 0

    def is_terminal(self) -> bool:
        return self.status != SessionStatus.RUNNING

    def to_wire(self) -> Dict[str, Any]:
        """Snapshot in the camelCase shape the transport hands out."""
        return {
            "roomId": self.room_id,
            "startedAt": self.started_at,
            "firstResponseMs": self.first_response_ms,
            "deadAirDetected": self.dead_air_detected,
            "requiredStepSeen": self.required_step_seen,
            "interruptionCount": self.interruption_count,
            "ended": self.ended,
            "status": self.status.value,
            "failureReason": self.failure_reason,
            "events": self.events,
        }


class Session:
    """
    Rule-evaluation state machine for one room.

    Not thread-safe on its own; the room registry serializes access.
    """

    def __init__(self, room_id: str, thresholds: Optional[RuleThresholds] = None):
        if not room_id:
            raise ValueError("room_id is required")
        self._state = SessionState(room_id=room_id)
        self.thresholds = thresholds or RuleThresholds()
        self._last_agent_text = ""
        self._logger = get_logger(Component.SESSION, room_id=room_id)

    @property
    def room_id(self) -> str:
        return self._state.room_id

    @property
    def status(self) -> SessionStatus:
        return self._state.status

    def is_terminal(self) -> bool:
        return self._state.is_terminal()

    def on_event(self, event: VoiceEvent) -> SessionState:
        """Advance by exactly one event and return a snapshot."""
        if self.is_terminal():
            return self.get_state()

        self._state.events += 1

        if isinstance(event, CallStarted):
            self._on_call_started(event)
        elif isinstance(event, AgentTranscript):
            self._on_agent_transcript(event)
        elif isinstance(event, UserTranscript):
            # context only, no rule attached
            pass
        elif isinstance(event, LatencySample):
            self._on_latency(event)
        elif isinstance(event, BargeIn):
            self._on_barge_in()
        elif isinstance(event, CallEnded):
            self._state.ended = True
            self.finalize()

        return self.get_state()

    def finalize(self) -> SessionState:
        """
        Run the structural checks and settle pass/fail.

        First failing check wins. No-op on a terminal session.
        """
        if self.is_terminal():
            return self.get_state()

        reason = next(self._structural_failures(), None)
        if reason is not None:
            self._fail(reason)
            return self.get_state()

        self._state.status = SessionStatus.PASS
        self._logger.info("Session passed", events=self._state.events)
        return self.get_state()

    def get_state(self) -> SessionState:
        """Independent copy of the current state."""
        return dataclasses.replace(self._state)

    # --- streaming checks ---

    def _on_call_started(self, event: CallStarted) -> None:
        if self._state.started_at is None:
            self._state.started_at = event.ts

    def _on_agent_transcript(self, event: AgentTranscript) -> None:
        state = self._state
        if state.first_response_ms is None and state.started_at is not None:
            state.first_response_ms = event.ts - state.started_at
            if state.first_response_ms > self.thresholds.max_first_response_ms:
                self._fail(self._slow_response_reason(state.first_response_ms))
                return

        lowered = event.text.lower()
        if any(keyword in lowered for keyword in REQUIRED_STEP_KEYWORDS):
            state.required_step_seen = True

        self._last_agent_text = event.text

    def _on_latency(self, event: LatencySample) -> None:
        if event.ms <= self.thresholds.max_dead_air_ms:
            return
        # Only the most recent agent utterance can exempt a gap.
        if HOLD_KEYWORD in self._last_agent_text.lower():
            self._logger.debug("Long latency exempted by hold", latency_ms=event.ms)
            return
        self._state.dead_air_detected = True
        self._fail(f'Dead air: {event.ms}ms latency without agent saying "{HOLD_KEYWORD}"')

    def _on_barge_in(self) -> None:
        self._state.interruption_count += 1
        if self._state.interruption_count > self.thresholds.max_interruptions:
            self._fail(self._interruptions_reason(self._state.interruption_count))

    # --- structural checks ---

    def _structural_failures(self):
        state = self._state
        limits = self.thresholds

        if state.started_at is None:
            yield "Call never started"
        if not state.ended:
            yield "Call never ended"
        if state.first_response_ms is None:
            yield "Agent never responded"
        elif state.first_response_ms > limits.max_first_response_ms:
            yield self._slow_response_reason(state.first_response_ms)
        if state.dead_air_detected:
            yield f"Dead air detected (latency > {limits.max_dead_air_ms}ms without '{HOLD_KEYWORD}')"
        if not state.required_step_seen:
            yield 'Required step missing: agent never said "verify" or "confirm"'
        if state.interruption_count > limits.max_interruptions:
            yield self._interruptions_reason(state.interruption_count)

    # --- helpers ---

    def _slow_response_reason(self, value: int) -> str:
        return f"First response too slow: {value}ms > {self.thresholds.max_first_response_ms}ms"

    def _interruptions_reason(self, count: int) -> str:
        return f"Too many interruptions: {count} > {self.thresholds.max_interruptions}"

    def _fail(self, reason: str) -> None:
        if self.is_terminal():
            return
        self._state.status = SessionStatus.FAIL
        self._state.failure_reason = reason
        self._logger.info("Session failed", reason=reason, events=self._state.events)
