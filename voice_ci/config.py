"""
Engine configuration.

Loads from environment variables (and a .env file, if present) with sensible
defaults. HATHORA_* variables are injected by the hosting platform; locally
they fall back to "local".
"""
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .session import RuleThresholds


def _parse_int_env(key: str, default: int) -> int:
    """
    Parse integer environment variable, stripping comments and whitespace.

    Handles cases like:
    - "4000  # comment" -> 4000
    - "4000" -> 4000
    - None -> default
    """
    value = os.environ.get(key)
    if not value:
        return default

    if "#" in value:
        value = value.split("#")[0]
    value = value.strip()

    if not value:
        return default

    try:
        return int(value)
    except ValueError:
        return default


def _parse_bool_env(key: str, default: bool = False) -> bool:
    value = os.environ.get(key)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class EngineConfig:
    """Engine process configuration."""

    host: str = "0.0.0.0"
    port: int = 4000

    log_level: str = "INFO"
    log_json: bool = True

    # Hosting platform
    process_id: str = "local"
    region: str = "local"
    initial_room_id: Optional[str] = None

    # Replay the canned timeline on startup when running locally
    skip_mock: bool = False

    # Rule thresholds
    max_first_response_ms: int = 3000
    max_dead_air_ms: int = 4000
    max_interruptions: int = 1

    @property
    def is_local(self) -> bool:
        return self.process_id == "local"

    @property
    def run_mock_on_startup(self) -> bool:
        return self.is_local and not self.skip_mock

    def thresholds(self) -> RuleThresholds:
        return RuleThresholds(
            max_first_response_ms=self.max_first_response_ms,
            max_dead_air_ms=self.max_dead_air_ms,
            max_interruptions=self.max_interruptions,
        )

    @classmethod
    def from_env(cls) -> "EngineConfig":
        """Load configuration from environment variables."""
        return cls(
            host=os.environ.get("HOST", "0.0.0.0"),
            port=_parse_int_env("PORT", default=4000),
            log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
            log_json=_parse_bool_env("LOG_JSON", default=True),
            process_id=os.environ.get("HATHORA_PROCESS_ID") or "local",
            region=os.environ.get("HATHORA_REGION") or "local",
            initial_room_id=os.environ.get("HATHORA_INITIAL_ROOM_ID") or None,
            skip_mock=_parse_bool_env("SKIP_MOCK"),
            max_first_response_ms=_parse_int_env("MAX_FIRST_RESPONSE_MS", default=3000),
            max_dead_air_ms=_parse_int_env("MAX_DEAD_AIR_MS", default=4000),
            max_interruptions=_parse_int_env("MAX_INTERRUPTIONS", default=1),
        )


def load_env_file(path: Optional[Path] = None) -> None:
    """Load .env from the project root; real environment variables win."""
    env_file = path or Path(__file__).parent.parent / ".env"
    if env_file.exists():
        load_dotenv(env_file, override=False)


def get_config() -> EngineConfig:
    """Get or create global config instance."""
    global _config
    if _config is None:
        load_env_file()
        _config = EngineConfig.from_env()
    return _config


# Global config instance (lazy loaded)
_config: Optional[EngineConfig] = None
