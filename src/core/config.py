"""
Configuration loaded from environment variables (optionally from a .env file) with sensible defaults.
"""

import os

from dotenv import load_dotenv

load_dotenv()


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


class Config:
    """All runtime settings in one place."""

    # Persistence
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./mess.db")
    SQL_ECHO = _as_bool(os.getenv("SQL_ECHO", "false"))

    # Dictionary oracle
    DICTIONARY_API_URL = os.getenv(
        "DICTIONARY_API_URL", "https://api.dictionaryapi.dev/api/v2/entries/en"
    )
    DICTIONARY_TIMEOUT_SECONDS = float(os.getenv("DICTIONARY_TIMEOUT_SECONDS", 5))
    DICTIONARY_WORKERS = int(os.getenv("DICTIONARY_WORKERS", 8))

    # Game defaults
    DEFAULT_PIECE_COUNT = int(os.getenv("DEFAULT_PIECE_COUNT", 100))
    MAX_PLAYERS = int(os.getenv("MAX_PLAYERS", 8))
    MAX_UPDATE_RETRIES = int(os.getenv("MAX_UPDATE_RETRIES", 3))

    # Logging
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


config = Config()
