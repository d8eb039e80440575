#!/usr/bin/env python3
"""
MCP Draw.io Generator - Server Implementation
==============================================

Generates draw.io (diagrams.net) XML that opens directly in draw.io.

Tools:
- create_diagram: Empty canvas to build on with add_shape/add_connection
- create_flowchart: Complete, laid-out flowchart in one call
- add_shape: Add one shape to an existing diagram
- add_connection: Connect two shapes of an existing diagram
- save_diagram: Save diagram XML to the output directory
- list_tools / search_tools / get_tool_schema: Progressive tool discovery
- extract_cell_ids: List the cell ids of a diagram
- list_diagrams / delete_diagram: Manage diagrams held by the server

Resources:
- drawio://diagram/{id}: Full diagram XML
- drawio://preview/{id}: First 500 characters plus metadata
- drawio://metadata/{id}: Metadata only
"""

import json
import logging
from contextlib import asynccontextmanager
from dataclasses import asdict
from typing import Annotated, Optional

from mcp.server.fastmcp import FastMCP
from pydantic import Field, ValidationError

from . import config, discovery
from .codec import create_diagrams_net_url
from .exceptions import DanglingReferenceError, DiagramNotFoundError, ToolNotFoundError
from .files import open_in_drawio, save_diagram_to_downloads, save_diagram_to_temp
from .flowchart import CANVAS_HEIGHT, CANVAS_WIDTH, layout_flowchart
from .ids import parse_diagram_uri
from .models import (
    AddConnectionRequest,
    AddShapeRequest,
    CreateDiagramRequest,
    CreateFlowchartRequest,
    DiagramType,
    FlowchartStep,
    OutputFormat,
    SaveDiagramRequest,
    format_validation_error,
)
from .store import DiagramStore
from .styles import ConnectorStyle, ShapeType
from .xml_builder import DiagramBuilder, extract_cell_ids as _extract_cell_ids, wrap_in_mxfile

logger = logging.getLogger(__name__)

MIME_TYPE = "application/vnd.jgraph.mxfile"

# Shared for the lifetime of the server process
builder = DiagramBuilder(strict=config.strict_connections())
store = DiagramStore(ttl_seconds=config.diagram_ttl())


@asynccontextmanager
async def server_lifespan(server: FastMCP):
    """Initialize on startup, cleanup on shutdown."""
    logger.info("Output directory: %s", config.output_dir())
    yield
    logger.info("Shutting down with %d stored diagram(s)", len(store))


# Initialize the MCP server
mcp = FastMCP("mcp-drawio-generator", lifespan=server_lifespan)


def create_server() -> FastMCP:
    """Create and return the MCP server instance."""
    return mcp


def apply_config() -> None:
    """Re-read settings that are fixed on the shared builder and store."""
    builder.strict = config.strict_connections()
    store.ttl_seconds = config.diagram_ttl()


def _error(message: str) -> str:
    return json.dumps({"error": message})


def _publish(xml: str, title: str, metadata: dict) -> dict:
    """Keep a scratch copy, register the diagram and optionally open it."""
    file_path = None
    try:
        file_path = save_diagram_to_temp(xml, title)
    except OSError as e:
        logger.warning("Could not write scratch copy of %r: %s", title, e)

    diagram_id = store.store(title, xml, metadata, str(file_path) if file_path else None)

    opened_in_app = False
    if file_path is not None and config.open_in_app():
        opened_in_app = open_in_drawio(file_path)

    return {
        "success": True,
        "title": title,
        "diagram_id": diagram_id,
        "resource_uri": store.get_resource_uris(diagram_id)["diagram"],
        "resources": store.get_resource_uris(diagram_id),
        "web_url": create_diagrams_net_url(xml),
        "file_path": str(file_path) if file_path else None,
        "opened_in_app": opened_in_app,
        "xml": xml,
    }


# ============================================================================
# Diagram Generation
# ============================================================================

@mcp.tool()
def create_diagram(
    title: Annotated[str, Field(description="Title/name for the diagram")],
    description: Annotated[str, Field(description="Text description of what to diagram")],
    diagram_type: Annotated[DiagramType, Field(description="Type of diagram to create")],
    output_format: Annotated[OutputFormat, Field(description="uncompressed for readability, compressed for smaller files")] = "uncompressed",
    page_width: Annotated[float, Field(description="Canvas width in pixels")] = 1100,
    page_height: Annotated[float, Field(description="Canvas height in pixels")] = 850,
) -> str:
    """Create an EMPTY draw.io canvas.

    Only useful when shapes will be added one by one with add_shape and
    add_connection (network topologies, architecture diagrams). For
    flowcharts, decision trees or process flows use create_flowchart.

    Args:
        title: Diagram title
        description: What the diagram is meant to show
        diagram_type: flowchart, sequence, class, er, network, infrastructure or custom
        output_format: "uncompressed" (default) or "compressed"
        page_width: Canvas width (default: 1100)
        page_height: Canvas height (default: 850)

    Returns:
        JSON string with the diagram XML, its resource URI and a diagrams.net link
    """
    try:
        request = CreateDiagramRequest(
            title=title,
            description=description,
            diagram_type=diagram_type,
            output_format=output_format,
            page_width=page_width,
            page_height=page_height,
        )
    except ValidationError as e:
        return _error(format_validation_error(e))

    logger.info("create_diagram title=%r type=%s", request.title, request.diagram_type)
    try:
        graph_model = builder.create_base_model(request.page_width, request.page_height)
        wrapped = wrap_in_mxfile(graph_model, request.title, request.output_format == "compressed")
        result = _publish(wrapped, request.title, {
            "type": request.diagram_type,
            "format": request.output_format,
            "page_width": request.page_width,
            "page_height": request.page_height,
        })
        result["hint"] = "Use add_shape to add shapes, or save_diagram to keep a copy."
        return json.dumps(result, indent=2)
    except Exception as e:
        logger.exception("create_diagram failed")
        return _error(f"Failed to create diagram: {str(e)}")


@mcp.tool()
def create_flowchart(
    title: Annotated[str, Field(description="Flowchart title")],
    steps: Annotated[list[FlowchartStep], Field(description="Ordered list of flowchart steps")],
    output_format: Annotated[OutputFormat, Field(description="uncompressed (default) or compressed")] = "uncompressed",
) -> str:
    """RECOMMENDED: Create a complete flowchart with connections and decision branching.

    All shapes and arrows are generated in one call. Steps are stacked top to
    bottom in the order given; the successors of a decision are spread left
    and right (the first successor goes left, the second right).

    Colors: green start/end, yellow decisions, blue input/output, white process.

    Step structure:
    - id: Unique identifier (e.g. "start", "check_auth")
    - type: start, end, process, decision, input or output
    - text: Label shown in the shape
    - next: IDs of the following steps (several for decisions)
    - decision_labels: Branch labels aligned with next (e.g. ["Yes", "No"])

    Define ALL steps upfront with their connections.

    Args:
        title: Flowchart title
        steps: Ordered list of step definitions
        output_format: "uncompressed" (default) or "compressed"

    Returns:
        JSON string with the flowchart XML, its resource URI and a diagrams.net link
    """
    try:
        request = CreateFlowchartRequest(title=title, steps=steps, output_format=output_format)
    except ValidationError as e:
        return _error(format_validation_error(e))

    logger.info("create_flowchart title=%r steps=%d", request.title, len(request.steps))
    try:
        xml = layout_flowchart(request.title, request.steps, request.output_format, builder=builder)
        result = _publish(xml, request.title, {
            "type": "flowchart",
            "format": request.output_format,
            "page_width": CANVAS_WIDTH,
            "page_height": CANVAS_HEIGHT,
        })
        result["step_count"] = len(request.steps)
        return json.dumps(result, indent=2)
    except Exception as e:
        logger.exception("create_flowchart failed")
        return _error(f"Failed to create flowchart: {str(e)}")


# ============================================================================
# Incremental Editing
# ============================================================================

@mcp.tool()
def add_shape(
    xml: Annotated[str, Field(description="Existing diagram XML (from create_diagram or add_shape)")],
    shape_type: Annotated[ShapeType, Field(description="Type of shape to add")],
    text: Annotated[str, Field(description="Text content for the shape")],
    x: Annotated[float, Field(description="X coordinate (pixels from left)")],
    y: Annotated[float, Field(description="Y coordinate (pixels from top)")],
    width: Annotated[float, Field(description="Width in pixels")],
    height: Annotated[float, Field(description="Height in pixels")],
    fill_color: Annotated[str, Field(description="Fill color in hex, e.g. '#dae8fc'")] = "#ffffff",
    stroke_color: Annotated[str, Field(description="Border color in hex")] = "#000000",
) -> str:
    """Add ONE shape to an existing diagram (incremental building only).

    For flowcharts use create_flowchart instead.

    Shape types:
    - rectangle, rounded, ellipse, rhombus, hexagon
    - cylinder (databases), cloud (cloud services)
    - actor (UML figures), note (annotations), swimlane (grouping)

    Args:
        xml: Diagram XML returned by a previous call
        shape_type: Shape kind
        text: Label
        x, y: Position
        width, height: Dimensions
        fill_color, stroke_color: Colors

    Returns:
        JSON string with the updated XML and the new shape id (use it in add_connection)
    """
    try:
        request = AddShapeRequest(
            xml=xml,
            shape_type=shape_type,
            text=text,
            x=x,
            y=y,
            width=width,
            height=height,
            fill_color=fill_color,
            stroke_color=stroke_color,
        )
    except ValidationError as e:
        return _error(format_validation_error(e))

    try:
        result = builder.add_shape(
            request.xml,
            request.shape_type,
            request.text,
            request.x,
            request.y,
            request.width,
            request.height,
            request.fill_color,
            request.stroke_color,
        )
        logger.info("add_shape %s id=%s", request.shape_type, result.id)
        return json.dumps({
            "success": True,
            "id": result.id,
            "shape": asdict(result.shape),
            "web_url": create_diagrams_net_url(result.xml),
            "xml": result.xml,
        }, indent=2)
    except Exception as e:
        logger.exception("add_shape failed")
        return _error(f"Failed to add shape: {str(e)}")


@mcp.tool()
def add_connection(
    xml: Annotated[str, Field(description="Existing diagram XML")],
    source_id: Annotated[str, Field(description="ID of the source shape (from add_shape or extract_cell_ids)")],
    target_id: Annotated[str, Field(description="ID of the target shape")],
    label: Annotated[Optional[str], Field(description="Optional label text")] = None,
    style: Annotated[ConnectorStyle, Field(description="Connection line style")] = "orthogonal",
    arrow_end: Annotated[bool, Field(description="Show arrow at the target")] = True,
    arrow_start: Annotated[bool, Field(description="Show arrow at the source")] = False,
) -> str:
    """Add ONE connection between two shapes (incremental building only).

    For flowcharts use create_flowchart, which adds all connections itself.

    Styles: orthogonal (right angles, recommended), straight, curved,
    dashed, dotted. Set arrow_start as well for a bidirectional arrow.

    Args:
        xml: Diagram XML
        source_id: Source cell id
        target_id: Target cell id
        label: Optional connection label
        style: Line style
        arrow_end: Arrowhead at the target
        arrow_start: Arrowhead at the source

    Returns:
        JSON string with the updated XML
    """
    try:
        request = AddConnectionRequest(
            xml=xml,
            source_id=source_id,
            target_id=target_id,
            label=label,
            style=style,
            arrow_end=arrow_end,
            arrow_start=arrow_start,
        )
    except ValidationError as e:
        return _error(format_validation_error(e))

    try:
        result = builder.add_connection(
            request.xml,
            request.source_id,
            request.target_id,
            request.label,
            request.style,
            request.arrow_end,
            request.arrow_start,
        )
        logger.info("add_connection %s -> %s id=%s", request.source_id, request.target_id, result.id)
        return json.dumps({
            "success": True,
            "id": result.id,
            "connection": asdict(result.connection),
            "web_url": create_diagrams_net_url(result.xml),
            "xml": result.xml,
        }, indent=2)
    except DanglingReferenceError as e:
        return _error(str(e))
    except Exception as e:
        logger.exception("add_connection failed")
        return _error(f"Failed to add connection: {str(e)}")


@mcp.tool()
def extract_cell_ids(
    xml: Annotated[str, Field(description="Diagram XML")],
) -> str:
    """List the ids of all shapes and connections in a diagram (root cells excluded).

    Returns:
        JSON array of cell ids in document order
    """
    return json.dumps(_extract_cell_ids(xml))


# ============================================================================
# Diagram Management
# ============================================================================

@mcp.tool()
def save_diagram(
    xml: Annotated[str, Field(description="Complete diagram XML to save")],
    title: Annotated[str, Field(description="Title for the diagram (used in filename)")],
) -> str:
    """Save diagram XML to the output directory (Downloads by default).

    The file is named <title>_<timestamp>.drawio. Other tools only keep
    temporary copies, so use this when the user wants to keep the file.

    Returns:
        JSON string with the file path and resource URI
    """
    try:
        request = SaveDiagramRequest(xml=xml, title=title)
    except ValidationError as e:
        return _error(format_validation_error(e))

    try:
        file_path = save_diagram_to_downloads(request.xml, request.title)
    except OSError as e:
        logger.warning("save_diagram failed for %r: %s", request.title, e)
        return _error(f"Failed to save diagram: {str(e)}")

    diagram_id = store.store(request.title, request.xml, None, str(file_path))
    logger.info("save_diagram %s -> %s", diagram_id, file_path)
    return json.dumps({
        "success": True,
        "file_path": str(file_path),
        "diagram_id": diagram_id,
        "resource_uri": store.get_resource_uris(diagram_id)["diagram"],
    }, indent=2)


@mcp.tool()
def list_diagrams() -> str:
    """List metadata of the diagrams currently held by the server.

    Diagrams not read for an hour are dropped.
    """
    return json.dumps([asdict(metadata) for metadata in store.list()], indent=2)


@mcp.tool()
def delete_diagram(
    diagram_id: Annotated[str, Field(description="Diagram id or drawio:// resource URI as returned by create/save tools")],
) -> str:
    """Remove a stored diagram."""
    parsed = parse_diagram_uri(diagram_id)
    if parsed is not None:
        diagram_id = parsed[1]
    if not store.delete(diagram_id):
        return _error(str(DiagramNotFoundError(diagram_id)))
    return json.dumps({"success": True, "diagram_id": diagram_id})


# ============================================================================
# Tool Discovery
# ============================================================================

@mcp.tool()
def list_tools(
    detail_level: Annotated[
        discovery.DetailLevel,
        Field(description="minimal (names), brief (descriptions and tags) or full (with schemas)"),
    ] = "minimal",
) -> str:
    """List the diagram tools at the requested level of detail."""
    return discovery.list_tools(detail_level)


@mcp.tool()
def search_tools(
    query: Annotated[Optional[str], Field(description="Keyword matched against name, description and tags")] = None,
    category: Annotated[Optional[str], Field(description=f"One of: {', '.join(discovery.get_categories())}")] = None,
) -> str:
    """Search the diagram tools by keyword and/or category."""
    return discovery.search_tools(query, category)


@mcp.tool()
def get_tool_schema(
    tool_name: Annotated[str, Field(description="Name of the tool")],
) -> str:
    """Return the full descriptor, including parameter schema, of one tool."""
    try:
        return discovery.get_tool_schema(tool_name)
    except ToolNotFoundError as e:
        return _error(str(e))


# ============================================================================
# Resources
# ============================================================================

@mcp.resource("drawio://diagram/{diagram_id}", mime_type=MIME_TYPE)
def diagram_resource(diagram_id: str) -> str:
    """Full XML of a stored diagram."""
    return store.get_xml(diagram_id)


@mcp.resource("drawio://preview/{diagram_id}", mime_type="application/json")
def preview_resource(diagram_id: str) -> str:
    """First 500 characters of a stored diagram plus its metadata."""
    return json.dumps(store.get_preview(diagram_id), indent=2)


@mcp.resource("drawio://metadata/{diagram_id}", mime_type="application/json")
def metadata_resource(diagram_id: str) -> str:
    """Metadata of a stored diagram."""
    return json.dumps(asdict(store.get_metadata(diagram_id)), indent=2)
