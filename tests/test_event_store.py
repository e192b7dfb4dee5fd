"""
Tests for the audit trail emitter and event store.
"""
import json
from datetime import datetime, timedelta, timezone

from observability.event_store import EventStore
from observability.events import Component, EventEmitter, Severity


def test_emit_prints_json_line_and_stores(capsys):
    store = EventStore()
    emitter = EventEmitter(Component.ROOM_REGISTRY, store=store)

    emitter.emit("room.created", room_id="room-1")

    event = json.loads(capsys.readouterr().out.strip())
    assert event["room_id"] == "room-1"
    assert event["component"] == "room_registry"
    assert event["event_type"] == "room.created"
    assert event["severity"] == "info"
    assert event["correlation_id"] == "room-1"
    assert store.query(room_id="room-1")[0]["event_type"] == "room.created"


def test_echo_disabled(capsys):
    store = EventStore()
    EventEmitter(Component.ENGINE, store=store, echo=False).emit("x", room_id="r")

    assert capsys.readouterr().out == ""
    assert len(store.query()) == 1


def test_payload_round_trip():
    store = EventStore()
    emitter = EventEmitter(Component.ROOM_REGISTRY, store=store, echo=False)

    emitter.session_failed("room-1", "Call never started")

    stored = store.query(room_id="room-1")[0]
    assert stored["reason"] == "Call never started"
    assert stored["severity"] == Severity.WARN.value


def test_query_filters():
    store = EventStore()
    emitter = EventEmitter(Component.ROOM_REGISTRY, store=store, echo=False)
    emitter.room_created("a")
    emitter.room_created("b")
    emitter.event_applied("a", "latency", "running", 1)

    assert len(store.query(room_id="a")) == 2
    assert len(store.query(event_type="room.created")) == 2
    assert len(store.query(room_id="a", event_type="room.created")) == 1
    assert len(store.query(limit=1)) == 1

    future = datetime.now(timezone.utc) + timedelta(days=1)
    assert store.query(since=future) == []
    assert len(store.query(until=future)) == 3


def test_store_is_bounded():
    store = EventStore(max_events=3)
    emitter = EventEmitter(Component.ROOM_REGISTRY, store=store, echo=False)
    for i in range(5):
        emitter.room_created(f"room-{i}")

    stats = store.get_stats()
    assert stats["total_events"] == 3
    assert stats["max_events"] == 3
    assert [e["room_id"] for e in store.query()] == ["room-2", "room-3", "room-4"]


def test_clear():
    store = EventStore()
    EventEmitter(Component.ENGINE, store=store, echo=False).emit("x", room_id="r")

    store.clear()

    assert store.query() == []
    assert store.get_stats()["oldest_event_ts"] is None


def test_discard_drops_only_that_room():
    store = EventStore()
    emitter = EventEmitter(Component.ROOM_REGISTRY, store=store, echo=False)
    emitter.room_created("a")
    emitter.room_created("b")
    emitter.room_removed("a")

    assert store.discard("a") == 2
    assert store.query(room_id="a") == []
    assert [e["room_id"] for e in store.query()] == ["b"]
    assert store.discard("missing") == 0


def test_emitters_without_store_do_not_share():
    first = EventEmitter(Component.ROOM_REGISTRY, echo=False)
    second = EventEmitter(Component.ROOM_REGISTRY, echo=False)

    first.room_created("room-1")

    assert len(first.store.query(room_id="room-1")) == 1
    assert second.store.query(room_id="room-1") == []
