"""
Centralized configuration for the UNO room server.

Configuration is loaded from (in order of precedence):
1. Environment variables
2. .env file (if exists)
3. Default values

Usage:
    from config import config
    print(config.PORT)
    print(config.game.hand_size)
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

env_path = Path(__file__).parent.parent / ".env"
if env_path.exists():
    load_dotenv(env_path)


def get_env(key: str, default: str = "") -> str:
    """Get environment variable with default."""
    return os.environ.get(key, default)


def get_env_bool(key: str, default: bool = False) -> bool:
    """Get boolean environment variable."""
    val = os.environ.get(key, "").lower()
    if val in ("true", "1", "yes", "on"):
        return True
    if val in ("false", "0", "no", "off"):
        return False
    return default


def get_env_int(key: str, default: int = 0) -> int:
    """Get integer environment variable."""
    try:
        return int(os.environ.get(key, str(default)))
    except ValueError:
        return default


@dataclass
class GameSettings:
    """Rules knobs that vary between table variants."""
    hand_size: int = 7
    min_players_to_start: int = 2
    start_requires_all_ready: bool = True


@dataclass
class ServerConfig:
    """Server configuration."""
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    ENVIRONMENT: str = "development"

    # Error tracking
    SENTRY_DSN: str = ""

    # Room settings
    MAX_PLAYERS_PER_ROOM: int = 10
    ROOM_CODE_LENGTH: int = 6

    # Chat
    CHAT_HISTORY_LIMIT: int = 100
    CHAT_MAX_LENGTH: int = 500

    game: GameSettings = field(default_factory=GameSettings)

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """Load configuration from environment variables."""
        return cls(
            HOST=get_env("HOST", "0.0.0.0"),
            PORT=get_env_int("PORT", 8000),
            DEBUG=get_env_bool("DEBUG", False),
            LOG_LEVEL=get_env("LOG_LEVEL", "INFO"),
            ENVIRONMENT=get_env("ENVIRONMENT", "development"),
            SENTRY_DSN=get_env("SENTRY_DSN", ""),
            MAX_PLAYERS_PER_ROOM=get_env_int("MAX_PLAYERS_PER_ROOM", 10),
            ROOM_CODE_LENGTH=get_env_int("ROOM_CODE_LENGTH", 6),
            CHAT_HISTORY_LIMIT=get_env_int("CHAT_HISTORY_LIMIT", 100),
            CHAT_MAX_LENGTH=get_env_int("CHAT_MAX_LENGTH", 500),
            game=GameSettings(
                hand_size=get_env_int("HAND_SIZE", 7),
                min_players_to_start=get_env_int("MIN_PLAYERS_TO_START", 2),
                start_requires_all_ready=get_env_bool("START_REQUIRES_ALL_READY", True),
            ),
        )


# Global config instance - loaded once at module import
config = ServerConfig.from_env()


def reload_config() -> ServerConfig:
    """Reload configuration from environment (useful for testing)."""
    global config
    config = ServerConfig.from_env()
    return config
