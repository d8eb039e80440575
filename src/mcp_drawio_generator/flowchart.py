"""
Flowchart layout.

Steps are stacked top to bottom in input order on a single center line.
Successors of a decision are then pushed left and right of that line. This
is a fixed formula, not a layout engine: nothing avoids overlaps, and a step
that follows several decisions keeps the x of whichever decision came last.
"""

import logging
from typing import NamedTuple, Optional, Sequence, Union

from .models import FlowchartStep
from .xml_builder import DiagramBuilder, wrap_in_mxfile

logger = logging.getLogger(__name__)

CANVAS_WIDTH = 1400
CANVAS_HEIGHT = 1200
CENTER_X = 700
START_Y = 80
VERTICAL_SPACING = 140
HORIZONTAL_SPACING = 280


class FlowchartShapeConfig(NamedTuple):
    shape_type: str
    width: int
    height: int
    fill_color: str


_TERMINAL = FlowchartShapeConfig("ellipse", 120, 60, "#d5e8d4")
_DECISION = FlowchartShapeConfig("rhombus", 140, 90, "#fff2cc")
_IO = FlowchartShapeConfig("rounded", 140, 60, "#dae8fc")
_PROCESS = FlowchartShapeConfig("rectangle", 140, 60, "#ffffff")

_SHAPE_CONFIGS = {
    "start": _TERMINAL,
    "end": _TERMINAL,
    "decision": _DECISION,
    "input": _IO,
    "output": _IO,
    "process": _PROCESS,
}


def get_flowchart_shape_config(step_type: str) -> FlowchartShapeConfig:
    """Shape, size and fill for a step type; unknown types render as process."""
    return _SHAPE_CONFIGS.get(step_type, _PROCESS)


def _coerce_steps(steps) -> list:
    return [step if isinstance(step, FlowchartStep) else FlowchartStep.model_validate(step) for step in steps]


def compute_positions(steps: Sequence[FlowchartStep]) -> dict:
    """Map step id -> [x, y] using the vertical stack plus decision spreading."""
    positions = {}
    for index, step in enumerate(steps):
        positions[step.id] = [CENTER_X, START_Y + index * VERTICAL_SPACING]

    for step in steps:
        if step.type != "decision" or not step.next or len(step.next) <= 1:
            continue

        branch_count = len(step.next)
        for branch_index, next_id in enumerate(step.next):
            target = positions.get(next_id)
            if target is None:
                continue
            if branch_count == 2:
                # Input order decides the side: first left, second right.
                offset = -HORIZONTAL_SPACING if branch_index == 0 else HORIZONTAL_SPACING
            else:
                total_width = (branch_count - 1) * HORIZONTAL_SPACING
                offset = -total_width / 2 + branch_index * HORIZONTAL_SPACING
            target[0] = CENTER_X + offset

    return positions


def build_flowchart_model(
    steps: Sequence[Union[FlowchartStep, dict]],
    builder: Optional[DiagramBuilder] = None,
) -> str:
    """Emit every shape and connection of a flowchart into a bare graph model."""
    builder = builder or DiagramBuilder()
    steps = _coerce_steps(steps)

    xml = builder.create_base_model(CANVAS_WIDTH, CANVAS_HEIGHT)
    positions = compute_positions(steps)
    shape_ids = {}

    for step in steps:
        x, y = positions.get(step.id, (CENTER_X, START_Y))
        shape_config = get_flowchart_shape_config(step.type)
        result = builder.add_shape(
            xml,
            shape_config.shape_type,
            step.text,
            x,
            y,
            shape_config.width,
            shape_config.height,
            fill_color=shape_config.fill_color,
            stroke_color="#000000",
        )
        xml = result.xml
        shape_ids[step.id] = result.id

    skipped = 0
    for step in steps:
        if not step.next:
            continue
        source_id = shape_ids[step.id]
        labels = step.decision_labels or []
        for branch_index, next_id in enumerate(step.next):
            target_id = shape_ids.get(next_id)
            if target_id is None:
                skipped += 1
                continue
            label = labels[branch_index] if branch_index < len(labels) else None
            xml = builder.add_connection(
                xml,
                source_id,
                target_id,
                label=label,
                style="orthogonal",
                arrow_end=True,
                arrow_start=False,
            ).xml

    if skipped:
        logger.debug("Skipped %d connection(s) to unknown step ids", skipped)
    return xml


def layout_flowchart(
    title: str,
    steps: Sequence[Union[FlowchartStep, dict]],
    output_format: str = "uncompressed",
    builder: Optional[DiagramBuilder] = None,
    timestamp: Optional[str] = None,
) -> str:
    """Lay out the steps and return the finished mxfile document."""
    graph_model = build_flowchart_model(steps, builder)
    return wrap_in_mxfile(graph_model, title, output_format == "compressed", timestamp=timestamp)
