"""
Tool discovery for progressive disclosure.

Clients that do not want every schema up front can list tool names, search
by keyword or category, and fetch a single schema on demand.
"""

import json
from dataclasses import asdict, dataclass, field
from typing import Literal, Optional

from .exceptions import ToolNotFoundError
from .models import (
    AddConnectionRequest,
    AddShapeRequest,
    CreateDiagramRequest,
    CreateFlowchartRequest,
    SaveDiagramRequest,
)

DetailLevel = Literal["minimal", "brief", "full"]


@dataclass(frozen=True)
class ToolInfo:
    name: str
    description: str
    category: str
    tags: tuple
    schema: dict = field(default_factory=dict, compare=False)

    def brief(self) -> dict:
        return {
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "tags": list(self.tags),
        }

    def full(self) -> dict:
        data = asdict(self)
        data["tags"] = list(self.tags)
        return data


TOOL_REGISTRY = (
    ToolInfo(
        name="create_flowchart",
        description="Create a complete flowchart with proper connections and decision branching",
        category="generation",
        tags=("flowchart", "process", "workflow", "decision", "diagram"),
        schema=CreateFlowchartRequest.model_json_schema(),
    ),
    ToolInfo(
        name="create_diagram",
        description="Creates an empty base canvas for draw.io diagrams",
        category="generation",
        tags=("diagram", "canvas", "base", "empty"),
        schema=CreateDiagramRequest.model_json_schema(),
    ),
    ToolInfo(
        name="add_shape",
        description="Add a single shape to an existing diagram",
        category="editing",
        tags=("shape", "add", "element", "incremental"),
        schema=AddShapeRequest.model_json_schema(),
    ),
    ToolInfo(
        name="add_connection",
        description="Add a connection between two shapes in a diagram",
        category="editing",
        tags=("connection", "arrow", "link", "edge"),
        schema=AddConnectionRequest.model_json_schema(),
    ),
    ToolInfo(
        name="save_diagram",
        description="Save a diagram XML to the Downloads folder",
        category="management",
        tags=("save", "download", "export", "file"),
        schema=SaveDiagramRequest.model_json_schema(),
    ),
)


def list_tools(detail_level: DetailLevel = "minimal") -> str:
    """Serialize the catalog: names only, brief entries, or full descriptors."""
    if detail_level == "minimal":
        return json.dumps([tool.name for tool in TOOL_REGISTRY])

    if detail_level == "brief":
        return json.dumps([tool.brief() for tool in TOOL_REGISTRY], indent=2)

    return json.dumps([tool.full() for tool in TOOL_REGISTRY], indent=2)


def find_tools(query: Optional[str] = None, category: Optional[str] = None) -> list:
    """Filter the catalog by exact category and case-insensitive keyword."""
    results = list(TOOL_REGISTRY)

    if category:
        results = [tool for tool in results if tool.category == category]

    if query:
        needle = query.lower()
        results = [
            tool
            for tool in results
            if needle in tool.name.lower()
            or needle in tool.description.lower()
            or any(needle in tag.lower() for tag in tool.tags)
        ]

    return results


def search_tools(query: Optional[str] = None, category: Optional[str] = None) -> str:
    return json.dumps([tool.brief() for tool in find_tools(query, category)], indent=2)


def get_tool(name: str) -> ToolInfo:
    for tool in TOOL_REGISTRY:
        if tool.name == name:
            return tool
    raise ToolNotFoundError(name)


def get_tool_schema(name: str) -> str:
    """Full descriptor for one tool; raises ToolNotFoundError if unknown."""
    return json.dumps(get_tool(name).full(), indent=2)


def get_categories() -> list:
    """Distinct categories in catalog order."""
    return list(dict.fromkeys(tool.category for tool in TOOL_REGISTRY))
