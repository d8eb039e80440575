"""
draw.io XML Construction
========================

Builds mxGraphModel documents as plain text. A document is never parsed:
cells are appended by inserting their serialized form in front of the
closing ``</root>`` tag, so callers must only pass documents that came from
this module.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Optional
from xml.sax.saxutils import escape

from .codec import compress_xml, decompress_xml
from .exceptions import DanglingReferenceError
from .ids import RESERVED_CELL_IDS, IdGenerator
from .styles import get_connection_style, get_shape_style

logger = logging.getLogger(__name__)

ROOT_CLOSE = "</root>"

DEFAULT_PAGE_WIDTH = 1100
DEFAULT_PAGE_HEIGHT = 850

_CELL_ID = re.compile(r'<mxCell\s+id="([^"]*)"')
_DIAGRAM_BODY = re.compile(r"<diagram\b[^>]*>\s*(.*?)\s*</diagram>", re.DOTALL)

_QUOTE_ENTITIES = {'"': "&quot;", "'": "&apos;"}


def escape_xml(text: str) -> str:
    """Escape &, <, >, " and ' for use in attribute values or text."""
    return escape(text, _QUOTE_ENTITIES)


def _num(value) -> str:
    """Render a coordinate without a trailing .0 for whole numbers."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


@dataclass
class Shape:
    id: str
    type: str
    text: str
    x: float
    y: float
    width: float
    height: float
    fill_color: str
    stroke_color: str
    style: str


@dataclass
class Connection:
    id: str
    source_id: str
    target_id: str
    label: Optional[str]
    style: str
    arrow_end: bool
    arrow_start: bool


@dataclass
class ShapeResult:
    xml: str
    id: str
    shape: Shape


@dataclass
class ConnectionResult:
    xml: str
    id: str
    connection: Connection


def _insert_cell(xml: str, cell_xml: str) -> str:
    # Only the first marker is replaced; documents hold exactly one.
    if ROOT_CLOSE not in xml:
        logger.warning("Document has no %s marker; cell not inserted", ROOT_CLOSE)
    return xml.replace(ROOT_CLOSE, f"{cell_xml}\n  {ROOT_CLOSE}", 1)


def extract_cell_ids(xml: str) -> list:
    """Return every cell id in document order, excluding the two root cells."""
    return [cell_id for cell_id in _CELL_ID.findall(xml) if cell_id not in RESERVED_CELL_IDS]


def extract_graph_model(document: str) -> str:
    """Return the mxGraphModel text of a document, decoding a compressed page.

    Bare graph models and uncompressed mxfiles are returned unchanged.
    """
    if "<mxGraphModel" in document:
        return document
    match = _DIAGRAM_BODY.search(document)
    if match is None:
        return document
    return decompress_xml(match.group(1))


def count_vertices(xml: str) -> int:
    return xml.count('vertex="1"')


def count_edges(xml: str) -> int:
    return xml.count('edge="1"')


@dataclass
class DiagramBuilder:
    """Creates and extends mxGraphModel documents.

    Each builder owns its id generator, so ids are unique per builder rather
    than per process. With ``strict`` set, connections to cells that are not
    in the document raise DanglingReferenceError instead of being accepted.
    """

    ids: IdGenerator = field(default_factory=IdGenerator)
    strict: bool = False

    def create_base_model(
        self,
        page_width: float = DEFAULT_PAGE_WIDTH,
        page_height: float = DEFAULT_PAGE_HEIGHT,
    ) -> str:
        """Return an empty graph model holding only the two root cells."""
        return (
            f'<mxGraphModel dx="1394" dy="747" grid="1" gridSize="10" guides="1" '
            f'tooltips="1" connect="1" arrows="1" fold="1" page="1" pageScale="1" '
            f'pageWidth="{_num(page_width)}" pageHeight="{_num(page_height)}" '
            f'math="0" shadow="0">\n'
            f"  <root>\n"
            f'    <mxCell id="0"/>\n'
            f'    <mxCell id="1" parent="0"/>\n'
            f"  </root>\n"
            f"</mxGraphModel>"
        )

    def add_shape(
        self,
        xml: str,
        shape_type: str,
        text: str,
        x: float,
        y: float,
        width: float,
        height: float,
        fill_color: str = "#ffffff",
        stroke_color: str = "#000000",
    ) -> ShapeResult:
        """Append a vertex and return the new document with its cell id."""
        cell_id = self.ids.next_id()
        style = get_shape_style(shape_type, fill_color, stroke_color)

        cell_xml = (
            f'    <mxCell id="{cell_id}" value="{escape_xml(text)}" style="{style}" '
            f'vertex="1" parent="1">\n'
            f'      <mxGeometry x="{_num(x)}" y="{_num(y)}" width="{_num(width)}" '
            f'height="{_num(height)}" as="geometry"/>\n'
            f"    </mxCell>"
        )

        shape = Shape(
            id=cell_id,
            type=shape_type,
            text=text,
            x=x,
            y=y,
            width=width,
            height=height,
            fill_color=fill_color,
            stroke_color=stroke_color,
            style=style,
        )
        return ShapeResult(xml=_insert_cell(xml, cell_xml), id=cell_id, shape=shape)

    def add_connection(
        self,
        xml: str,
        source_id: str,
        target_id: str,
        label: Optional[str] = None,
        style: str = "orthogonal",
        arrow_end: bool = True,
        arrow_start: bool = False,
    ) -> ConnectionResult:
        """Append an edge between two cell ids.

        The ids are not checked against the document unless the builder is
        strict; draw.io itself tolerates dangling edges.
        """
        if self.strict:
            known = set(extract_cell_ids(xml))
            missing = [ref for ref in (source_id, target_id) if ref not in known]
            if missing:
                raise DanglingReferenceError(missing)

        cell_id = self.ids.next_id()
        edge_style = get_connection_style(style, arrow_end, arrow_start)
        label_attr = f' value="{escape_xml(label)}"' if label else ""

        cell_xml = (
            f'    <mxCell id="{cell_id}"{label_attr} style="{edge_style}" edge="1" parent="1" '
            f'source="{escape_xml(source_id)}" target="{escape_xml(target_id)}">\n'
            f'      <mxGeometry relative="1" as="geometry"/>\n'
            f"    </mxCell>"
        )

        connection = Connection(
            id=cell_id,
            source_id=source_id,
            target_id=target_id,
            label=label,
            style=style,
            arrow_end=arrow_end,
            arrow_start=arrow_start,
        )
        return ConnectionResult(xml=_insert_cell(xml, cell_xml), id=cell_id, connection=connection)


def _iso_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def wrap_in_mxfile(
    graph_model: str,
    title: str = "Diagram",
    compressed: bool = False,
    timestamp: Optional[str] = None,
    encoder: Callable[[str], str] = compress_xml,
) -> str:
    """Embed a graph model in the mxfile container draw.io opens.

    With ``compressed`` the model is replaced by ``encoder(graph_model)``.
    """
    content = encoder(graph_model) if compressed else graph_model
    modified = timestamp or _iso_now()

    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        f'<mxfile host="app.diagrams.net" modified="{modified}" agent="MCP Draw.io Generator" '
        f'version="24.0.0" type="device">\n'
        f'  <diagram name="{escape_xml(title)}" id="diagram-1">\n'
        f"    {content}\n"
        f"  </diagram>\n"
        f"</mxfile>"
    )
