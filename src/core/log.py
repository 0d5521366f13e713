"""Root logging setup for command-line entry points."""

from __future__ import annotations

import logging


_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Configure root logging once for the process."""
    if level is None:
        from core.config import get_settings

        level = get_settings().log_level
    resolved = getattr(logging, str(level).strip().upper(), logging.INFO)
    logging.basicConfig(level=resolved, format=_LOG_FORMAT)


__all__ = ["configure_logging"]
