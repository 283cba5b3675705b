"""
Greenhouse Telemetry - Logging setup
"""

import logging

from greenhouse.core.config import settings

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

_configured = False


def configure_logging(level: str | int | None = None) -> None:
    """Configure root logging once per process."""
    global _configured
    if _configured:
        return

    logging.basicConfig(
        level=level if level is not None else settings.log_level,
        format=LOG_FORMAT,
    )
    _configured = True
