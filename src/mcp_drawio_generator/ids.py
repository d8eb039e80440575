"""Identifier helpers for cells, stored diagrams and resource URIs."""

import hashlib
import itertools
import re
import threading
import time
from typing import Optional

# Cells "0" and "1" are the canvas root and default layer.
RESERVED_CELL_IDS = ("0", "1")
FIRST_CELL_NUMBER = 2

URI_SCHEME = "drawio"

_URI_PATTERN = re.compile(rf"^{URI_SCHEME}://(diagram|preview|metadata)/(.+)$")


class IdGenerator:
    """Hands out cell-2, cell-3, ... for one diagram-building session."""

    def __init__(self, start: int = FIRST_CELL_NUMBER):
        if start < FIRST_CELL_NUMBER:
            raise ValueError(f"start must be >= {FIRST_CELL_NUMBER}, got {start}")
        self._start = start
        self._lock = threading.Lock()
        self._counter = itertools.count(start)

    def next_id(self) -> str:
        with self._lock:
            return f"cell-{next(self._counter)}"

    def reset(self) -> None:
        with self._lock:
            self._counter = itertools.count(self._start)


def sanitize_title(title: str) -> str:
    """Lowercase the title, replacing anything but ASCII alphanumerics with '_'."""
    return re.sub(r"[^a-z0-9]", "_", title, flags=re.IGNORECASE).lower()


def timestamp_ms(now: Optional[float] = None) -> int:
    return int((time.time() if now is None else now) * 1000)


def generate_diagram_id(title: str, now: Optional[float] = None) -> str:
    return f"{sanitize_title(title)}_{timestamp_ms(now)}"


def generate_content_hash(content: str) -> str:
    return hashlib.md5(content.encode("utf-8"), usedforsecurity=False).hexdigest()[:12]


def generate_diagram_uri(diagram_id: str) -> str:
    return f"{URI_SCHEME}://diagram/{diagram_id}"


def generate_preview_uri(diagram_id: str) -> str:
    return f"{URI_SCHEME}://preview/{diagram_id}"


def generate_metadata_uri(diagram_id: str) -> str:
    return f"{URI_SCHEME}://metadata/{diagram_id}"


def parse_diagram_uri(uri: str) -> Optional[tuple]:
    """Split a drawio:// resource URI into (view, diagram_id), or None."""
    match = _URI_PATTERN.match(uri)
    if not match:
        return None
    return match.group(1), match.group(2)
