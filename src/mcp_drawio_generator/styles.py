"""
draw.io style strings for shapes and connectors.

Both resolvers are total: an unrecognized kind falls back to the plain
rectangle / orthogonal connector instead of raising.
"""

from typing import Literal

ShapeType = Literal[
    "rectangle",
    "rounded",
    "ellipse",
    "rhombus",
    "hexagon",
    "cylinder",
    "cloud",
    "actor",
    "note",
    "swimlane",
]

ConnectorStyle = Literal["straight", "orthogonal", "curved", "dashed", "dotted"]

SHAPE_TYPES = (
    "rectangle",
    "rounded",
    "ellipse",
    "rhombus",
    "hexagon",
    "cylinder",
    "cloud",
    "actor",
    "note",
    "swimlane",
)

CONNECTOR_STYLES = ("straight", "orthogonal", "curved", "dashed", "dotted")

# Appended after "fillColor=...;strokeColor=...;"
_SHAPE_SUFFIXES = {
    "rectangle": "whiteSpace=wrap;html=1;",
    "rounded": "rounded=1;whiteSpace=wrap;html=1;",
    "ellipse": "ellipse;whiteSpace=wrap;html=1;",
    "rhombus": "rhombus;whiteSpace=wrap;html=1;",
    "hexagon": "shape=hexagon;perimeter=hexagonPerimeter2;whiteSpace=wrap;html=1;",
    "cylinder": "shape=cylinder;whiteSpace=wrap;html=1;",
    "cloud": "ellipse;shape=cloud;whiteSpace=wrap;html=1;",
    "actor": "shape=umlActor;verticalLabelPosition=bottom;verticalAlign=top;html=1;",
    "note": "shape=note;whiteSpace=wrap;html=1;size=20;",
    "swimlane": "swimlane;whiteSpace=wrap;html=1;startSize=23;",
}

_ORTHOGONAL = "edgeStyle=orthogonalEdgeStyle;rounded=0;orthogonalLoop=1;jettySize=auto;html=1;"

_EDGE_STYLES = {
    "straight": "edgeStyle=none;",
    "orthogonal": _ORTHOGONAL,
    "curved": "edgeStyle=orthogonalEdgeStyle;rounded=1;orthogonalLoop=1;jettySize=auto;html=1;",
    "dashed": _ORTHOGONAL + "dashed=1;",
    "dotted": _ORTHOGONAL + "dashed=1;dashPattern=1 4;",
}


def get_shape_style(shape_type: str, fill_color: str, stroke_color: str = "#000000") -> str:
    """Return the style attribute for a vertex of the given kind.

    Colors are inserted verbatim; they are trusted caller input.
    """
    suffix = _SHAPE_SUFFIXES.get(shape_type, _SHAPE_SUFFIXES["rectangle"])
    return f"fillColor={fill_color};strokeColor={stroke_color};{suffix}"


def get_connection_style(style: str, arrow_end: bool = True, arrow_start: bool = False) -> str:
    """Return the style attribute for an edge, with independent arrowheads."""
    base = _EDGE_STYLES.get(style, _EDGE_STYLES["orthogonal"])

    if arrow_end:
        base += "endArrow=classic;endFill=1;"
    else:
        base += "endArrow=none;"

    if arrow_start:
        base += "startArrow=classic;startFill=1;"

    return base
