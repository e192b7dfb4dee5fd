"""
Mock event runner.

Replays a canned ~20s voice call into a registry. The timeline intentionally
fails one rule: the agent never says "verify" or "confirm".

Usage:
    python -m voice_ci.mock_runner

With VOICE_CI_URL set, the timeline is sent to that engine over HTTP instead
of an in-process registry.
"""
import asyncio
import json
import time
from typing import List, Optional

from logging_setup import Component, get_logger, setup_logging

from .client import EngineClient, get_engine_base_url
from .events import (
    AgentTranscript,
    BargeIn,
    CallEnded,
    CallStarted,
    LatencySample,
    UserTranscript,
    VoiceEvent,
)
from .rooms import RoomRegistry
from .session import SessionState, SessionStatus

MOCK_ROOM_ID = "smoke-test-001"

logger = get_logger(Component.MOCK_RUNNER)


def build_mock_timeline(t0: Optional[int] = None) -> List[VoiceEvent]:
    """A realistic call timeline starting at t0 (epoch ms, default now)."""
    if t0 is None:
        t0 = int(time.time() * 1000)
    return [
        CallStarted(ts=t0),
        AgentTranscript(text="Hello, thank you for calling. How can I help you today?", ts=t0 + 1500),
        UserTranscript(text="Hi, I need help with my account.", ts=t0 + 4000),
        LatencySample(ms=1200),
        AgentTranscript(text="Sure, I can help you with that. Let me pull up your details.", ts=t0 + 6500),
        UserTranscript(text="I think there's a charge I don't recognize.", ts=t0 + 9000),
        LatencySample(ms=2000),
        AgentTranscript(text="I see the charge you're referring to. Let me look into it.", ts=t0 + 12000),
        BargeIn(ts=t0 + 14000),
        UserTranscript(text="Wait, actually it might be from last month.", ts=t0 + 15000),
        AgentTranscript(text="No problem, let me check last month's statement for you.", ts=t0 + 17000),
        LatencySample(ms=800),
        CallEnded(ts=t0 + 20000),
    ]


def run_mock_test(
    registry: RoomRegistry,
    room_id: str = MOCK_ROOM_ID,
    events: Optional[List[VoiceEvent]] = None,
) -> SessionState:
    """
    Feed the timeline into room_id, stopping at the first failure.

    Returns the final state of the room.
    """
    room_logger = logger.with_room(room_id)
    room_logger.info("Mock test starting", expected="fail (missing required step)")

    registry.create_room(room_id)
    for event in events if events is not None else build_mock_timeline():
        state = registry.send_event(room_id, event)
        room_logger.info(
            "Mock step",
            step=state.events,
            event_type=event.type,
            status=state.status.value,
            failure_reason=state.failure_reason,
        )
        if state.status == SessionStatus.FAIL:
            break

    final_state = registry.get_state(room_id)
    room_logger.info("Mock test finished", final_state=final_state.to_wire())
    return final_state


async def run_remote_mock_test(base_url: str, room_id: str = MOCK_ROOM_ID) -> dict:
    """Replay the timeline against a running engine over HTTP."""
    logger.info("Remote mock test starting", base_url=base_url, room_id=room_id)
    async with EngineClient(base_url) as client:
        await client.health()
        return await client.replay(room_id, build_mock_timeline())


def main() -> None:
    setup_logging(level="INFO", use_json=True)
    base_url = get_engine_base_url()
    if base_url:
        final = asyncio.run(run_remote_mock_test(base_url))
    else:
        final = run_mock_test(RoomRegistry()).to_wire()
    print(json.dumps(final, indent=2))


if __name__ == "__main__":
    main()
