"""
In-memory diagram store with time-to-live expiry.

Entries expire once they have not been read for ``ttl_seconds``. Expiry is
best effort: a single cleanup pass is kept pending while the store holds
entries, re-armed for the next possible expiry after each run, and reads and
listings drop expired entries they come across.
"""

import logging
import threading
import time
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from .exceptions import DiagramNotFoundError
from .ids import (
    generate_content_hash,
    generate_diagram_id,
    generate_diagram_uri,
    generate_metadata_uri,
    generate_preview_uri,
)
from .xml_builder import (
    DEFAULT_PAGE_HEIGHT,
    DEFAULT_PAGE_WIDTH,
    count_edges,
    count_vertices,
    extract_graph_model,
)

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 3600.0
PREVIEW_LENGTH = 500
MIN_CLEANUP_DELAY = 1.0

Scheduler = Callable[[float, Callable[[], Any]], Any]


def _schedule_timer(delay: float, callback: Callable[[], Any]) -> threading.Timer:
    timer = threading.Timer(delay, callback)
    timer.daemon = True
    timer.start()
    return timer


@dataclass
class DiagramMetadata:
    """Derived facts about a stored document.

    Counts are taken from the graph model, decoding a compressed page first;
    ``size`` is the UTF-8 encoded length of the stored document.
    """

    id: str
    title: str
    type: str
    created: str
    modified: str
    format: str
    page_width: float
    page_height: float
    element_count: int
    connection_count: int
    size: int
    content_hash: str


@dataclass
class StoredDiagram:
    id: str
    title: str
    xml: str
    metadata: DiagramMetadata
    file_path: Optional[str]
    created: float
    accessed: float


class DiagramStore:
    """Process-local cache of generated diagrams keyed by diagram id."""

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
        scheduler: Optional[Scheduler] = _schedule_timer,
    ):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._scheduler = scheduler
        self._diagrams = {}
        self._lock = threading.RLock()
        self._cleanup_pending = False

    def __len__(self) -> int:
        with self._lock:
            return len(self._diagrams)

    def __contains__(self, diagram_id: str) -> bool:
        with self._lock:
            return diagram_id in self._diagrams

    def _iso(self, moment: float) -> str:
        return datetime.fromtimestamp(moment, timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")

    def _is_expired(self, diagram: StoredDiagram, now: float) -> bool:
        return now - diagram.accessed > self.ttl_seconds

    def store(
        self,
        title: str,
        xml: str,
        metadata: Optional[dict] = None,
        file_path: Optional[str] = None,
    ) -> str:
        """Store a diagram and return its id (sanitized title + ms timestamp)."""
        metadata = metadata or {}
        now = self._clock()
        graph_model = extract_graph_model(xml)
        stamp = self._iso(now)

        with self._lock:
            diagram_id = generate_diagram_id(title, now)
            base_id, suffix = diagram_id, 1
            while diagram_id in self._diagrams:
                suffix += 1
                diagram_id = f"{base_id}_{suffix}"

            full_metadata = DiagramMetadata(
                id=diagram_id,
                title=title,
                type=metadata.get("type") or "custom",
                created=stamp,
                modified=stamp,
                format=metadata.get("format") or "uncompressed",
                page_width=metadata.get("page_width") or DEFAULT_PAGE_WIDTH,
                page_height=metadata.get("page_height") or DEFAULT_PAGE_HEIGHT,
                element_count=count_vertices(graph_model),
                connection_count=count_edges(graph_model),
                size=len(xml.encode("utf-8")),
                content_hash=generate_content_hash(xml),
            )
            self._diagrams[diagram_id] = StoredDiagram(
                id=diagram_id,
                title=title,
                xml=xml,
                metadata=full_metadata,
                file_path=file_path,
                created=now,
                accessed=now,
            )

        logger.info("Stored diagram %s (%d bytes)", diagram_id, full_metadata.size)
        self._arm_cleanup(self.ttl_seconds)
        return diagram_id

    def get(self, diagram_id: str) -> StoredDiagram:
        """Fetch a diagram and refresh its last-access time."""
        now = self._clock()
        with self._lock:
            diagram = self._diagrams.get(diagram_id)
            if diagram is None:
                raise DiagramNotFoundError(diagram_id)
            if self._is_expired(diagram, now):
                del self._diagrams[diagram_id]
                logger.debug("Diagram %s expired on access", diagram_id)
                raise DiagramNotFoundError(diagram_id)
            diagram.accessed = now
            return diagram

    def get_xml(self, diagram_id: str) -> str:
        return self.get(diagram_id).xml

    def get_metadata(self, diagram_id: str) -> DiagramMetadata:
        return self.get(diagram_id).metadata

    def get_preview(self, diagram_id: str) -> dict:
        """First 500 characters of the document plus its metadata."""
        diagram = self.get(diagram_id)
        return {
            "id": diagram.id,
            "title": diagram.title,
            "type": diagram.metadata.type,
            "preview": diagram.xml[:PREVIEW_LENGTH],
            "metadata": asdict(diagram.metadata),
        }

    def list(self) -> list:
        """Metadata of every live diagram, oldest first."""
        self.cleanup_expired()
        with self._lock:
            return [diagram.metadata for diagram in self._diagrams.values()]

    def delete(self, diagram_id: str) -> bool:
        with self._lock:
            return self._diagrams.pop(diagram_id, None) is not None

    def cleanup_expired(self) -> int:
        """Drop every entry idle for longer than the TTL; returns the count."""
        now = self._clock()
        with self._lock:
            expired = [
                diagram_id
                for diagram_id, diagram in self._diagrams.items()
                if self._is_expired(diagram, now)
            ]
            for diagram_id in expired:
                del self._diagrams[diagram_id]
        if expired:
            logger.info("Expired %d diagram(s)", len(expired))
        return len(expired)

    def _arm_cleanup(self, delay: float) -> None:
        """Schedule the cleanup pass unless one is already pending."""
        if self._scheduler is None:
            return
        with self._lock:
            if self._cleanup_pending:
                return
            self._cleanup_pending = True
        self._scheduler(delay, self._scheduled_cleanup)

    def _scheduled_cleanup(self) -> int:
        """Run one cleanup pass, then re-arm for the next entry due to expire."""
        with self._lock:
            self._cleanup_pending = False
        removed = self.cleanup_expired()

        now = self._clock()
        with self._lock:
            if not self._diagrams:
                return removed
            next_due = min(diagram.accessed for diagram in self._diagrams.values()) + self.ttl_seconds
        # Entries expire strictly after the TTL, so never re-arm for zero.
        self._arm_cleanup(max(next_due - now, MIN_CLEANUP_DELAY))
        return removed

    def get_resource_uris(self, diagram_id: str) -> dict:
        return {
            "diagram": generate_diagram_uri(diagram_id),
            "preview": generate_preview_uri(diagram_id),
            "metadata": generate_metadata_uri(diagram_id),
        }
