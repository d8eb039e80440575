"""
Runtime configuration sourced from environment variables.

The CLI entry point writes its options back into the environment before the
server module is imported, so every value here can be set either way.
"""

import os
import tempfile
from pathlib import Path

_TRUE_VALUES = ("1", "true", "yes", "on")


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUE_VALUES


def output_dir() -> Path:
    """Directory that save_diagram writes into (defaults to ~/Downloads)."""
    raw = os.environ.get("MCP_DRAWIO_OUTPUT_DIR", "").strip()
    if raw:
        return Path(raw).expanduser().resolve()
    return Path.home() / "Downloads"


def temp_dir() -> Path:
    """Scratch directory for working copies handed to the desktop app."""
    raw = os.environ.get("MCP_DRAWIO_TEMP_DIR", "").strip()
    return Path(raw).expanduser().resolve() if raw else Path(tempfile.gettempdir())


def open_in_app() -> bool:
    return _env_flag("MCP_DRAWIO_OPEN_APP")


def strict_connections() -> bool:
    return _env_flag("MCP_DRAWIO_STRICT_CONNECTIONS")


def diagram_ttl() -> float:
    """Seconds a stored diagram survives without being read."""
    raw = os.environ.get("MCP_DRAWIO_DIAGRAM_TTL", "").strip()
    try:
        return float(raw) if raw else 3600.0
    except ValueError:
        return 3600.0


def log_level() -> str:
    return os.environ.get("MCP_DRAWIO_LOG_LEVEL", "INFO").strip().upper() or "INFO"
