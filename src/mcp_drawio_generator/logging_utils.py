"""Logging setup for the MCP server process."""

import logging
import sys
from typing import Optional

from . import config

_CONFIGURED = False

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: Optional[str] = None) -> None:
    """Route all package logging to stderr.

    stdout carries the MCP stdio transport, so nothing may be printed there.
    Calling this more than once only adjusts the level.
    """
    global _CONFIGURED
    level_name = (level or config.log_level()).upper()
    resolved = getattr(logging, level_name, logging.INFO)

    root = logging.getLogger()
    root.setLevel(resolved)
    if _CONFIGURED:
        return

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)

    _CONFIGURED = True
    logging.getLogger(__name__).debug("Logging initialized at %s", level_name)
