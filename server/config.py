"""
Centralized configuration for the Playing Cards bot.

Configuration is loaded from (in order of precedence):
1. Command line flag (bot token only, ``-t``)
2. Environment variables
3. .env file (if exists)
4. Default values

Usage:
    from config import config
    print(config.PORT)
    print(config.JOIN_WINDOW_SECONDS)
"""

import argparse
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

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


def get_env_float(key: str, default: float = 0.0) -> float:
    """Get numeric environment variable."""
    try:
        return float(os.environ.get(key, str(default)))
    except ValueError:
        return default


def get_env_int(key: str, default: int = 0) -> int:
    """Get integer environment variable."""
    try:
        return int(os.environ.get(key, str(default)))
    except ValueError:
        return default


def token_from_argv(argv: Optional[list[str]] = None) -> str:
    """Read the bot token from a ``-t`` flag, ignoring unrelated arguments."""
    parser = argparse.ArgumentParser(add_help=False)
    parser.add_argument("-t", dest="token", default="")
    args, _ = parser.parse_known_args(argv)
    return args.token


@dataclass
class BotConfig:
    """Bot and HTTP server configuration."""
    BOT_TOKEN: str = ""
    COMMAND_PREFIX: str = "$pcb "

    HOST: str = "0.0.0.0"
    PORT: int = 8080
    HOST_URL: str = "http://localhost:8080"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    ENVIRONMENT: str = "development"

    # High or Low timing, in seconds
    JOIN_WINDOW_SECONDS: float = 7.0
    GUESS_WINDOW_SECONDS: float = 5.0

    # Per-guild defaults
    DEFAULT_CARD_STYLE: str = "kenney"
    DEFAULT_INCLUDE_JOKERS: bool = False

    # Static files
    CARD_IMAGES_DIR: str = "card_images"
    PUBLIC_DIR: str = "public"

    @classmethod
    def from_env(cls, argv: Optional[list[str]] = None) -> "BotConfig":
        """Load configuration from the command line and environment variables."""
        # The -t flag wins over BOT_TOKEN when it is non-empty
        token = token_from_argv(argv) or get_env("BOT_TOKEN", "")

        return cls(
            BOT_TOKEN=token,
            COMMAND_PREFIX=get_env("COMMAND_PREFIX", "$pcb "),
            HOST=get_env("HOST", "0.0.0.0"),
            PORT=get_env_int("PORT", 8080),
            HOST_URL=get_env("HOST_URL", "http://localhost:8080"),
            DEBUG=get_env_bool("DEBUG", False),
            LOG_LEVEL=get_env("LOG_LEVEL", "INFO"),
            ENVIRONMENT=get_env("ENVIRONMENT", "development"),
            JOIN_WINDOW_SECONDS=get_env_float("JOIN_WINDOW_SECONDS", 7.0),
            GUESS_WINDOW_SECONDS=get_env_float("GUESS_WINDOW_SECONDS", 5.0),
            DEFAULT_CARD_STYLE=get_env("DEFAULT_CARD_STYLE", "kenney"),
            DEFAULT_INCLUDE_JOKERS=get_env_bool("DEFAULT_INCLUDE_JOKERS", False),
            CARD_IMAGES_DIR=get_env("CARD_IMAGES_DIR", "card_images"),
            PUBLIC_DIR=get_env("PUBLIC_DIR", "public"),
        )


# Global config instance - loaded once at module import
config = BotConfig.from_env([])
