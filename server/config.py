"""
Centralized configuration for the Not-a-Hat party server.

Configuration is loaded from (in order of precedence):
1. Environment variables
2. .env file (if exists)
3. Default values

Usage:
    from config import config
    print(config.PORT)
    print(config.drag.threshold_px)
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
class DeckSettings:
    """Deck composition - the single source of truth for card assets."""
    card_count: int = 110
    front_template: str = "/cards/items/card_{num}.png"
    back_black: str = "/cards/backs/back_black.png"
    back_white: str = "/cards/backs/back_white.png"

    @property
    def black_back_count(self) -> int:
        """First half of the deck uses the black back."""
        return self.card_count // 2


@dataclass
class DragSettings:
    """Client drag-and-drop tuning."""
    threshold_px: int = 10
    double_tap_window_ms: int = 300


@dataclass
class ServerConfig:
    """Server configuration."""
    HOST: str = "0.0.0.0"
    PORT: int = 1999
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    ENVIRONMENT: str = "development"
    SENTRY_DSN: str = ""

    # Room settings
    MAX_PLAYERS_PER_ROOM: int = 8
    MIN_PLAYERS_TO_START: int = 2
    MAX_PENALTIES: int = 3
    NORMAL_SLOT_COUNT: int = 2
    HARD_SLOT_COUNT: int = 3

    deck: DeckSettings = field(default_factory=DeckSettings)
    drag: DragSettings = field(default_factory=DragSettings)

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """Load configuration from environment variables."""
        return cls(
            HOST=get_env("HOST", "0.0.0.0"),
            PORT=get_env_int("PORT", 1999),
            DEBUG=get_env_bool("DEBUG", False),
            LOG_LEVEL=get_env("LOG_LEVEL", "INFO"),
            ENVIRONMENT=get_env("ENVIRONMENT", "development"),
            SENTRY_DSN=get_env("SENTRY_DSN", ""),
            MAX_PLAYERS_PER_ROOM=get_env_int("MAX_PLAYERS_PER_ROOM", 8),
            MIN_PLAYERS_TO_START=get_env_int("MIN_PLAYERS_TO_START", 2),
            MAX_PENALTIES=get_env_int("MAX_PENALTIES", 3),
            NORMAL_SLOT_COUNT=get_env_int("NORMAL_SLOT_COUNT", 2),
            HARD_SLOT_COUNT=get_env_int("HARD_SLOT_COUNT", 3),
            deck=DeckSettings(
                card_count=get_env_int("DECK_CARD_COUNT", 110),
                front_template=get_env("DECK_FRONT_TEMPLATE", "/cards/items/card_{num}.png"),
                back_black=get_env("DECK_BACK_BLACK", "/cards/backs/back_black.png"),
                back_white=get_env("DECK_BACK_WHITE", "/cards/backs/back_white.png"),
            ),
            drag=DragSettings(
                threshold_px=get_env_int("DRAG_THRESHOLD_PX", 10),
                double_tap_window_ms=get_env_int("DOUBLE_TAP_WINDOW_MS", 300),
            ),
        )


# Global config instance - loaded once at module import
config = ServerConfig.from_env()


def reload_config() -> ServerConfig:
    """Reload configuration from environment (useful for testing)."""
    global config
    config = ServerConfig.from_env()
    return config
