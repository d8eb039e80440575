"""
MCP Draw.io Generator
=====================

MCP server that generates draw.io (diagrams.net) XML.

Supports:
- Empty canvases and incremental shape/connection editing
- Complete flowcharts with automatic vertical layout and decision branching
- Compressed or plain mxfile output
- Tool discovery at minimal/brief/full detail
- Stored diagrams exposed as drawio:// resources

Transport modes:
- STDIO (default): For Claude Desktop and other MCP clients
- SSE: Server-Sent Events over HTTP
- HTTP: Streamable HTTP transport
"""

__version__ = "0.1.0"

from .server import create_server, mcp

__all__ = ["create_server", "mcp", "__version__"]
