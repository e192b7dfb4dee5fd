"""
HTTP client for a running engine.

Used to drive a deployed engine from outside: create a room, push a timeline
of events and read the verdict back.
"""

from __future__ import annotations

import json
import os
import time
from typing import Any, Dict, Iterable, Optional

import aiohttp

from logging_setup import Component, get_logger

from .events import VoiceEvent


logger = get_logger(Component.ENGINE_CLIENT)


class EngineHTTPError(Exception):
    """The engine answered with a non-2xx status."""

    def __init__(self, status: int, detail: Any, endpoint: str):
        self.status = status
        self.detail = detail
        self.endpoint = endpoint
        super().__init__(f"{endpoint} -> {status}: {detail}")


def get_engine_base_url() -> Optional[str]:
    """
    Base URL for the engine HTTP API, e.g. http://127.0.0.1:4000
    """
    url = os.getenv("VOICE_CI_URL")
    if not url:
        return None
    return url.rstrip("/")


class EngineClient:
    """Async client; use as `async with EngineClient(base_url) as client:`."""

    def __init__(self, base_url: str, timeout_s: float = 5.0):
        self.base_url = base_url.rstrip("/")
        self.timeout = aiohttp.ClientTimeout(total=timeout_s)
        self._session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self) -> "EngineClient":
        self._session = aiohttp.ClientSession(timeout=self.timeout)
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def health(self) -> Dict[str, Any]:
        return await self._request("GET", "/health")

    async def create_room(self, room_id: Optional[str] = None) -> Dict[str, Any]:
        body = {"roomId": room_id} if room_id else {}
        return await self._request("POST", "/rooms", json=body)

    async def send_event(self, room_id: str, event: VoiceEvent | Dict[str, Any]) -> Dict[str, Any]:
        wire = event if isinstance(event, dict) else event.to_wire()
        return await self._request("POST", "/event", json={"roomId": room_id, "event": wire})

    async def get_state(self, room_id: str) -> Dict[str, Any]:
        return await self._request("GET", "/state", params={"roomId": room_id})

    async def replay(self, room_id: str, events: Iterable[VoiceEvent]) -> Dict[str, Any]:
        """
        Create room_id and push events in order, stopping at the first fail.

        Returns the final state as reported by the engine.
        """
        await self.create_room(room_id)
        for event in events:
            state = await self.send_event(room_id, event)
            if state.get("status") == "fail":
                break
        return await self.get_state(room_id)

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        if self._session is None:
            raise RuntimeError("EngineClient must be used as an async context manager")

        endpoint = f"{self.base_url}{path}"
        start_ts = time.time()
        async with self._session.request(method, endpoint, **kwargs) as resp:
            try:
                payload = await resp.json(content_type=None)
            except json.JSONDecodeError:
                # proxy error pages and plain-text 500s
                payload = await resp.text()
            latency_ms = int((time.time() - start_ts) * 1000)
            if not 200 <= resp.status < 300:
                detail = payload.get("detail") if isinstance(payload, dict) else payload
                logger.warning(
                    "Engine request failed",
                    endpoint=endpoint,
                    method=method,
                    status=resp.status,
                    detail=detail,
                    latency_ms=latency_ms,
                )
                raise EngineHTTPError(resp.status, detail, endpoint)

            logger.debug(
                "Engine request ok",
                endpoint=endpoint,
                method=method,
                status=resp.status,
                latency_ms=latency_ms,
            )
            return payload
