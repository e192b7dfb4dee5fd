"""
Tests for the mock event runner.
"""
import json

from observability.event_store import EventStore
from observability.events import Component, EventEmitter
from voice_ci import mock_runner
from voice_ci.events import BargeIn, CallStarted, LatencySample
from voice_ci.mock_runner import MOCK_ROOM_ID, build_mock_timeline, run_mock_test
from voice_ci.rooms import RoomRegistry
from voice_ci.session import SessionStatus


def make_registry():
    return RoomRegistry(emitter=EventEmitter(Component.ROOM_REGISTRY, store=EventStore(), echo=False))


def test_timeline_shape():
    timeline = build_mock_timeline(t0=1000)

    assert len(timeline) == 13
    assert timeline[0] == CallStarted(ts=1000)
    assert timeline[-1].type == "call_ended"
    assert timeline[-1].ts == 21000
    assert sum(1 for e in timeline if isinstance(e, BargeIn)) == 1
    assert max(e.ms for e in timeline if isinstance(e, LatencySample)) <= 4000


def test_timeline_defaults_to_now():
    timeline = build_mock_timeline()

    assert timeline[0].ts > 1_600_000_000_000


def test_run_mock_test_fails_on_required_step():
    registry = make_registry()

    state = run_mock_test(registry)

    assert state.room_id == MOCK_ROOM_ID
    assert state.status == SessionStatus.FAIL
    assert state.failure_reason == 'Required step missing: agent never said "verify" or "confirm"'
    assert state.events == 13
    assert registry.list_rooms()[0].room_id == MOCK_ROOM_ID


def test_run_mock_test_stops_at_first_failure():
    registry = make_registry()
    events = [
        CallStarted(ts=0),
        LatencySample(ms=9000),
        LatencySample(ms=10),
        LatencySample(ms=10),
    ]

    state = run_mock_test(registry, room_id="dead-air", events=events)

    assert state.status == SessionStatus.FAIL
    assert state.events == 2
    assert state.failure_reason.startswith("Dead air: 9000ms")


def test_main_runs_locally_without_engine_url(monkeypatch, capsys):
    monkeypatch.delenv("VOICE_CI_URL", raising=False)
    monkeypatch.setattr(mock_runner, "setup_logging", lambda **kwargs: None)

    mock_runner.main()

    out = capsys.readouterr().out
    final = json.loads(out[out.index("{\n"):])
    assert final["status"] == "fail"
    assert final["roomId"] == MOCK_ROOM_ID


def test_main_uses_remote_engine_when_configured(monkeypatch, capsys):
    calls = []

    async def fake_remote(base_url, room_id=MOCK_ROOM_ID):
        calls.append((base_url, room_id))
        return {"roomId": room_id, "status": "pass"}

    monkeypatch.setenv("VOICE_CI_URL", "http://engine.test:4000/")
    monkeypatch.setattr(mock_runner, "setup_logging", lambda **kwargs: None)
    monkeypatch.setattr(mock_runner, "run_remote_mock_test", fake_remote)

    mock_runner.main()

    assert calls == [("http://engine.test:4000", MOCK_ROOM_ID)]
    assert '"status": "pass"' in capsys.readouterr().out
