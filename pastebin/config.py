"""
Configuration module for Pastebin Lite.
Loads environment variables and provides config objects.
"""
import logging
import os
from typing import Mapping, Optional
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

TRUTHY = ("true", "1", "yes")
DEFAULT_LOG_LEVEL = "INFO"


def _flag(value: Optional[str], default: str = "0") -> bool:
    return (value if value is not None else default).strip().lower() in TRUTHY


def _log_level(value: Optional[str]) -> str:
    # getLevelName maps known names to ints and anything else to a "Level ..." string
    level = (value or DEFAULT_LOG_LEVEL).strip().upper()
    return level if isinstance(logging.getLevelName(level), int) else DEFAULT_LOG_LEVEL


class Settings:
    """Application settings loaded from environment variables.

    Values are read once, when the instance is built. Pass ``environ`` to
    build settings from an explicit mapping instead of ``os.environ``.
    """

    def __init__(self, environ: Optional[Mapping[str, str]] = None):
        env = os.environ if environ is None else environ

        # Presence of a Redis URL selects the networked backend
        self.REDIS_URL: Optional[str] = env.get("REDIS_URL") or None
        self.DATABASE_PATH: str = env.get("DATABASE_PATH") or os.path.join("data", "pastes.db")
        self.APP_DOMAIN: Optional[str] = env.get("APP_DOMAIN") or None
        self.TEST_MODE: bool = _flag(env.get("TEST_MODE"))
        self.DEBUG: bool = _flag(env.get("DEBUG"))
        self.LOG_LEVEL: str = _log_level(env.get("LOG_LEVEL"))

    @property
    def storage_backend(self) -> str:
        """Name of the storage backend this configuration selects."""
        return "redis" if self.REDIS_URL else "sqlite"


settings = Settings()
