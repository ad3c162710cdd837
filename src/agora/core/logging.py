"""Logging setup shared by the API process and scripts."""

from __future__ import annotations

import logging

from agora.core.settings import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Attach a single stream handler to the ``agora`` logger."""
    logger = logging.getLogger("agora")
    logger.setLevel((level or settings.log_level).upper())
    if not any(getattr(h, "_agora_handler", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._agora_handler = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
