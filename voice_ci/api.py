"""
HTTP API for the engine.

This module exposes:
- Room API: create, list, inspect, finalize and remove rooms
- Event API: feed one voice event into a room
- Trail API: query a room's audit trail events

Engine errors map to stable status codes: RoomNotFound -> 404,
InvalidEvent / malformed body -> 400. Rule failures are a normal 200 with
status "fail" in the body.
"""

from __future__ import annotations

import json
import random
import string
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException, Query, Request, Response
from pydantic import BaseModel, Field

from logging_setup import Component, get_logger

from .errors import InvalidEvent, RoomNotFound
from .rooms import RoomRegistry


router = APIRouter(tags=["rooms"])
logger = get_logger(Component.HTTP_SERVER)


class CreateRoomRequest(BaseModel):
    roomId: Optional[str] = Field(None, min_length=1, description="Room id; generated when omitted")


class RoomSummaryResponse(BaseModel):
    roomId: str
    status: str


class SessionStateResponse(BaseModel):
    roomId: str
    startedAt: Optional[int] = None
    firstResponseMs: Optional[int] = None
    deadAirDetected: bool
    requiredStepSeen: bool
    interruptionCount: int
    ended: bool
    status: str
    failureReason: Optional[str] = None
    events: int


def get_registry(request: Request) -> RoomRegistry:
    return request.app.state.registry


def new_room_id() -> str:
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=6))
    return f"room-{int(time.time() * 1000)}-{suffix}"


def _parse_ts(value: Optional[str], name: str) -> Optional[datetime]:
    if not value:
        return None
    try:
        # "+" in a query string may arrive as a space
        clean = value.replace(" ", "+").replace("Z", "+00:00")
        parsed = datetime.fromisoformat(clean)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid {name} timestamp: {value}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@router.post("/rooms", status_code=201, response_model=SessionStateResponse)
async def create_room(request: Request, req: Optional[CreateRoomRequest] = None) -> Dict[str, Any]:
    """Create a test session for a room (idempotent for a known roomId)."""
    room_id = (req.roomId if req else None) or new_room_id()
    state = get_registry(request).create_room(room_id)
    return state.to_wire()


@router.get("/rooms", response_model=List[RoomSummaryResponse])
async def list_rooms(request: Request) -> List[Dict[str, Any]]:
    return [summary.to_wire() for summary in get_registry(request).list_rooms()]


@router.post("/event", response_model=SessionStateResponse)
async def send_event(request: Request) -> Dict[str, Any]:
    """
    Send one voice event to a room.

    Body: {"roomId": "...", "event": {"type": "...", ...}}
    """
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise HTTPException(status_code=400, detail="Request body must be JSON")

    if not isinstance(body, dict):
        raise HTTPException(status_code=400, detail="Request body must be a JSON object")

    room_id = body.get("roomId")
    event = body.get("event")
    if not isinstance(room_id, str) or not room_id or not event:
        raise HTTPException(status_code=400, detail="Missing roomId or event")

    try:
        state = get_registry(request).send_event(room_id, event)
    except RoomNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidEvent as e:
        logger.warning("Rejected invalid event", room_id=room_id, error=str(e), category=e.category)
        raise HTTPException(status_code=400, detail=str(e))

    return state.to_wire()


@router.get("/state", response_model=SessionStateResponse)
async def get_state(
    request: Request,
    roomId: Optional[str] = Query(None, description="Room id"),
) -> Dict[str, Any]:
    if not roomId:
        raise HTTPException(status_code=400, detail="Missing roomId query param")
    return _state_or_404(get_registry(request), roomId)


@router.get("/rooms/{room_id}", response_model=SessionStateResponse)
async def get_room(request: Request, room_id: str) -> Dict[str, Any]:
    return _state_or_404(get_registry(request), room_id)


@router.post("/rooms/{room_id}/finalize", response_model=SessionStateResponse)
async def finalize_room(request: Request, room_id: str) -> Dict[str, Any]:
    """Force the end-of-call checks, e.g. when a call dropped without call_ended."""
    try:
        state = get_registry(request).finalize_room(room_id)
    except RoomNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    return state.to_wire()


@router.delete("/rooms/{room_id}", status_code=204)
async def remove_room(request: Request, room_id: str) -> Response:
    if not get_registry(request).remove_room(room_id):
        raise HTTPException(status_code=404, detail=f"Room not found: {room_id}")
    return Response(status_code=204)


@router.get("/rooms/{room_id}/events")
async def get_room_events(
    request: Request,
    room_id: str,
    event_type: Optional[str] = Query(None, description="Filter by event_type"),
    since: Optional[str] = Query(None, description="ISO timestamp (inclusive)"),
    until: Optional[str] = Query(None, description="ISO timestamp (inclusive)"),
    limit: Optional[int] = Query(None, ge=1, le=1000, description="Max events to return"),
) -> dict:
    """Audit trail for a room, oldest first."""
    registry = get_registry(request)
    if room_id not in registry:
        raise HTTPException(status_code=404, detail=f"Room not found: {room_id}")

    events = registry.emitter.store.query(
        room_id=room_id,
        event_type=event_type,
        since=_parse_ts(since, "since"),
        until=_parse_ts(until, "until"),
        limit=limit,
    )
    return {"roomId": room_id, "events": events, "count": len(events)}


def _state_or_404(registry: RoomRegistry, room_id: str) -> Dict[str, Any]:
    state = registry.get_state(room_id)
    if state is None:
        raise HTTPException(status_code=404, detail=f"Room not found: {room_id}")
    return state.to_wire()
