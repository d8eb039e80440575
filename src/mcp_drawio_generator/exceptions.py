"""Exception types raised by the diagram engine."""


class DiagramError(Exception):
    """Base class for all diagram generator errors."""


class ToolNotFoundError(DiagramError, LookupError):
    """Raised when a tool name is not present in the discovery catalog."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Tool not found: {name}")


class DiagramNotFoundError(DiagramError, LookupError):
    """Raised when a stored diagram id is unknown or has expired."""

    def __init__(self, diagram_id: str):
        self.diagram_id = diagram_id
        super().__init__(f"Diagram not found: {diagram_id}")


class DanglingReferenceError(DiagramError, ValueError):
    """Raised in strict mode when a connection points at a missing cell."""

    def __init__(self, missing: list):
        self.missing = list(missing)
        super().__init__(
            "Connection references unknown cell id(s): " + ", ".join(self.missing)
        )
