"""Process-wide logging setup."""

from __future__ import annotations

import logging
import sys

from .config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Attach a stdout handler to the root logger once."""
    resolved_level = getattr(logging, (level or settings.log_level).upper(), logging.INFO)
    root_logger = logging.getLogger()
    root_logger.setLevel(resolved_level)
    if any(getattr(handler, "_sessions_handler", False) for handler in root_logger.handlers):
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._sessions_handler = True  # type: ignore[attr-defined]
    root_logger.addHandler(handler)

    # SQL echo is controlled by settings.db_echo, keep the engine logger quiet otherwise.
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
