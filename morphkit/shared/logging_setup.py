"""
morphkit/shared/logging_setup.py
--------------------------------

Central logging configuration for morphkit.

Every module logs through structlog:

    import structlog
    logger = structlog.get_logger()

    logger.info("pack_loaded", url=url, size=len(data))

`init_logging` wires structlog on top of the standard library so that the
level from MORPH_LOG_LEVEL is honoured and events render either as JSON lines
(MORPH_LOG_FORMAT=json) or in the human-friendly console format.

The worker process calls `init_logging` again after it starts, because a
spawned interpreter does not inherit the parent's configuration.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional

import structlog

from morphkit.shared.config import settings

# Internal flag to avoid re-configuring logging multiple times
_INITIALIZED = False


def init_logging(
    level: Optional[str] = None,
    fmt: Optional[str] = None,
    *,
    force: bool = False,
) -> None:
    """
    Configure structlog and the root stdlib logger.

    Args:
        level: Level name (DEBUG, INFO, ...). Defaults to settings.LOG_LEVEL.
        fmt: "json" or "console". Defaults to settings.LOG_FORMAT.
        force: Reconfigure even if logging was already initialized.
    """
    global _INITIALIZED

    if _INITIALIZED and not force:
        return

    level_name = (level or settings.LOG_LEVEL).upper()
    numeric_level = getattr(logging, level_name, logging.INFO)
    fmt = (fmt or settings.LOG_FORMAT).lower()

    logging.basicConfig(
        level=numeric_level,
        stream=sys.stderr,
        format="%(message)s",
        force=True,
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if fmt == "json"
        else structlog.dev.ConsoleRenderer(colors=False)
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )

    _INITIALIZED = True


__all__ = ["init_logging"]
