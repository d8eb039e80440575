"""
Request models for the MCP tools.

Every tool validates its arguments through one of these models before
touching any document or the store.
"""

from typing import Literal, Optional

from pydantic import BaseModel, Field, ValidationError

from .styles import ConnectorStyle, ShapeType

DiagramType = Literal["flowchart", "sequence", "class", "er", "network", "infrastructure", "custom"]

OutputFormat = Literal["uncompressed", "compressed"]

FlowchartElementType = Literal["start", "end", "process", "decision", "input", "output"]


class CreateDiagramRequest(BaseModel):
    """Create an empty canvas."""
    title: str = Field(..., description="Title/name for the diagram")
    description: str = Field(..., description="Text description of what to diagram")
    diagram_type: DiagramType = Field(..., description="Type of diagram to create")
    output_format: OutputFormat = Field("uncompressed", description="Whether to compress the XML output")
    page_width: float = Field(1100, description="Page width in pixels")
    page_height: float = Field(850, description="Page height in pixels")


class FlowchartStep(BaseModel):
    """One node of a flowchart, before layout."""
    id: str = Field(..., description="Unique identifier for this step (e.g. 'start', 'check_auth')")
    type: FlowchartElementType = Field(..., description="Type of flowchart element")
    text: str = Field(..., description="Text content for the element")
    next: Optional[list[str]] = Field(None, description="IDs of next steps; decisions list one per branch")
    decision_labels: Optional[list[str]] = Field(
        None, description="Labels for decision branches, aligned with next (e.g. ['Yes', 'No'])"
    )


class CreateFlowchartRequest(BaseModel):
    """Create a complete flowchart."""
    title: str = Field(..., description="Flowchart title")
    steps: list[FlowchartStep] = Field(..., description="Ordered list of flowchart steps")
    output_format: OutputFormat = Field("uncompressed", description="Whether to compress the XML output")


class AddShapeRequest(BaseModel):
    """Add one shape to an existing diagram."""
    xml: str = Field(..., description="Existing diagram XML (from create_diagram or add_shape)")
    shape_type: ShapeType = Field(..., description="Type of shape to add")
    text: str = Field(..., description="Text content for the shape")
    x: float = Field(..., description="X coordinate position (pixels from left)")
    y: float = Field(..., description="Y coordinate position (pixels from top)")
    width: float = Field(..., description="Width of the shape in pixels")
    height: float = Field(..., description="Height of the shape in pixels")
    fill_color: str = Field("#ffffff", description="Fill color in hex format")
    stroke_color: str = Field("#000000", description="Border color in hex format")


class AddConnectionRequest(BaseModel):
    """Add one connection between two shapes."""
    xml: str = Field(..., description="Existing diagram XML")
    source_id: str = Field(..., description="ID of source shape")
    target_id: str = Field(..., description="ID of target shape")
    label: Optional[str] = Field(None, description="Optional label for the connection")
    style: ConnectorStyle = Field("orthogonal", description="Connection line style")
    arrow_end: bool = Field(True, description="Show arrow at the end (target)")
    arrow_start: bool = Field(False, description="Show arrow at the start (source)")


class SaveDiagramRequest(BaseModel):
    """Save a diagram to the output directory."""
    xml: str = Field(..., description="Complete diagram XML to save")
    title: str = Field(..., description="Title for the diagram (used in filename)")


def format_validation_error(exc: ValidationError) -> str:
    """Flatten a pydantic error into 'Invalid arguments: field: reason, ...'."""
    parts = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"]) or "<root>"
        parts.append(f"{location}: {error['msg']}")
    return "Invalid arguments: " + ", ".join(parts)
