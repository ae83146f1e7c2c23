"""Logging setup, called once when the application starts."""

import logging

from src.core.config import config

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(level=(level or config.LOG_LEVEL).upper(), format=LOG_FORMAT)
