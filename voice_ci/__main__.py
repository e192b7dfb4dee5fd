"""
Entry point for running the engine.

Usage:
    python -m voice_ci

Starts the FastAPI server on PORT (default 4000). When the hosting platform
assigned an initial room it is created up front; in local dev mode the mock
timeline is replayed once at startup (set SKIP_MOCK=true to disable).
"""
import uvicorn

from logging_setup import Component, get_logger, setup_logging

from .config import get_config
from .mock_runner import run_mock_test
from .rooms import RoomRegistry
from .server import create_app


def main() -> None:
    config = get_config()
    setup_logging(level=config.log_level, use_json=config.log_json)
    logger = get_logger(Component.ENGINE)

    registry = RoomRegistry(thresholds=config.thresholds())
    app = create_app(registry, config)

    logger.info(
        "Voice Agent CI engine starting",
        process_id=config.process_id,
        region=config.region,
        port=config.port,
    )

    if config.initial_room_id:
        logger.info("Auto-creating assigned room", room_id=config.initial_room_id)
        registry.create_room(config.initial_room_id)

    if config.run_mock_on_startup:
        logger.info("Running mock test (local dev mode)")
        run_mock_test(registry)

    uvicorn.run(app, host=config.host, port=config.port, log_level=config.log_level.lower())


if __name__ == "__main__":
    main()
