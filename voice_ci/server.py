"""
FastAPI application factory.

One app owns one RoomRegistry. This is what runs inside a hosting
container; tests build their own app around a fresh registry.
"""
from typing import Optional

from fastapi import FastAPI

from logging_setup import Component, get_logger

from .api import router
from .config import EngineConfig, get_config
from .rooms import RoomRegistry

logger = get_logger(Component.HTTP_SERVER)


def create_app(
    registry: Optional[RoomRegistry] = None,
    config: Optional[EngineConfig] = None,
) -> FastAPI:
    config = config or get_config()
    if registry is None:
        registry = RoomRegistry(thresholds=config.thresholds())

    app = FastAPI(title="Voice Agent CI Engine")
    app.state.registry = registry
    app.state.config = config
    app.include_router(router)

    @app.get("/health")
    async def health():
        """Health check endpoint, with room count and trail store usage."""
        return {
            "ok": True,
            "processId": config.process_id,
            "component": "engine",
            "rooms": len(registry),
            "trail": registry.emitter.store.get_stats(),
        }

    logger.debug("App created", process_id=config.process_id, region=config.region)
    return app
