"""
Voice event contract.

The closed set of telemetry events a call under test produces. One JSON
object per event, tagged by "type":

    {"type": "call_started", "ts": 1700000000000}
    {"type": "user_transcript", "text": "...", "ts": 1700000004000}
    {"type": "agent_transcript", "text": "...", "ts": 1700000001500}
    {"type": "latency", "ms": 1200}
    {"type": "barge_in", "ts": 1700000014000}
    {"type": "call_ended", "ts": 1700000020000}

Timestamps and durations are integer milliseconds. Types are strict: a
string "1500" is not a timestamp.
"""
from __future__ import annotations

from typing import Annotated, Any, Dict, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr, TypeAdapter, ValidationError

from .errors import InvalidEvent


class _Event(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    def to_wire(self) -> Dict[str, Any]:
        """Serialize back to the wire shape."""
        return self.model_dump()


class CallStarted(_Event):
    type: Literal["call_started"] = "call_started"
    ts: StrictInt


class UserTranscript(_Event):
    type: Literal["user_transcript"] = "user_transcript"
    text: StrictStr
    ts: StrictInt


class AgentTranscript(_Event):
    type: Literal["agent_transcript"] = "agent_transcript"
    text: StrictStr
    ts: StrictInt


class LatencySample(_Event):
    type: Literal["latency"] = "latency"
    ms: StrictInt = Field(..., ge=0)


class BargeIn(_Event):
    type: Literal["barge_in"] = "barge_in"
    ts: StrictInt


class CallEnded(_Event):
    type: Literal["call_ended"] = "call_ended"
    ts: StrictInt


VoiceEvent = Annotated[
    Union[CallStarted, UserTranscript, AgentTranscript, LatencySample, BargeIn, CallEnded],
    Field(discriminator="type"),
]

EVENT_TYPES = (
    "call_started",
    "user_transcript",
    "agent_transcript",
    "latency",
    "barge_in",
    "call_ended",
)

_adapter: TypeAdapter = TypeAdapter(VoiceEvent)


def parse_event(payload: Any) -> VoiceEvent:
    """
    Validate a wire payload into a typed event.

    Raises InvalidEvent for an unknown "type", a missing "type", or missing /
    ill-typed fields.
    """
    if isinstance(payload, (CallStarted, UserTranscript, AgentTranscript, LatencySample, BargeIn, CallEnded)):
        return payload
    try:
        return _adapter.validate_python(payload)
    except ValidationError as e:
        errors = e.errors(include_url=False, include_context=False, include_input=False)
        raise InvalidEvent(_summarize(errors), errors=errors) from e


def _summarize(errors: list) -> str:
    parts = []
    for err in errors:
        loc = ".".join(str(p) for p in err.get("loc", ()))
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "Invalid event: " + "; ".join(parts)
