"""Logging setup for scripts and embedding applications."""

from __future__ import annotations

import logging

from hostelpulse.config import get_section

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(level: str | int | None = None) -> None:
    """Configure root logging. ``level`` overrides ``logging.level`` in config.yaml."""
    if level is None:
        level = get_section("logging").get("level", "INFO")
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    logging.basicConfig(level=level, format=LOG_FORMAT)
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
