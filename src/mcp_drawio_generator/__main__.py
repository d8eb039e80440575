#!/usr/bin/env python3
"""
MCP Draw.io Generator - Entry Point

Supports multiple transport modes:
- stdio: Standard I/O (default, for Claude Desktop)
- sse: Server-Sent Events over HTTP
- http: Streamable HTTP transport
"""

import argparse
import logging
import os
import sys

logger = logging.getLogger("mcp_drawio_generator")


def main():
    parser = argparse.ArgumentParser(
        description="MCP server that generates draw.io diagrams",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run with STDIO transport (default, for Claude Desktop)
  mcp-drawio-generator

  # Run with SSE transport on port 8080
  mcp-drawio-generator --transport sse --port 8080

  # Save diagrams somewhere other than ~/Downloads
  mcp-drawio-generator --output-dir /path/to/diagrams

  # Open created diagrams in the draw.io desktop app
  mcp-drawio-generator --open-app
"""
    )
    parser.add_argument(
        "--transport",
        choices=["stdio", "sse", "http"],
        default="stdio",
        help="Transport mode (default: stdio)"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8080,
        help="Port for SSE/HTTP transport (default: 8080)"
    )
    parser.add_argument(
        "--host",
        type=str,
        default="0.0.0.0",
        help="Host to bind for SSE/HTTP transport (default: 0.0.0.0)"
    )
    parser.add_argument(
        "--output-dir",
        type=str,
        default=None,
        help="Directory save_diagram writes to (default: ~/Downloads)"
    )
    parser.add_argument(
        "--open-app",
        action="store_true",
        help="Open created diagrams in the draw.io desktop app"
    )
    parser.add_argument(
        "--strict-connections",
        action="store_true",
        help="Reject connections whose source or target id is not in the diagram"
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Log level for stderr output (default: INFO)"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__import__('mcp_drawio_generator').__version__}"
    )

    args = parser.parse_args()

    # Configuration is passed to the server through the environment
    if args.output_dir:
        os.environ["MCP_DRAWIO_OUTPUT_DIR"] = os.path.abspath(args.output_dir)
    if args.open_app:
        os.environ["MCP_DRAWIO_OPEN_APP"] = "1"
    if args.strict_connections:
        os.environ["MCP_DRAWIO_STRICT_CONNECTIONS"] = "1"
    if args.log_level:
        os.environ["MCP_DRAWIO_LOG_LEVEL"] = args.log_level

    from .logging_utils import setup_logging
    setup_logging()

    from .server import apply_config, mcp
    apply_config()

    if args.transport == "stdio":
        # Standard STDIO transport (default)
        mcp.run()
        return

    try:
        from starlette.applications import Starlette
        from starlette.responses import Response
        from starlette.routing import Mount, Route
        import uvicorn
    except ImportError as e:
        logger.error("%s transport requires additional dependencies: %s", args.transport, e)
        logger.error("Install with: pip install 'mcp-drawio-generator[http]'")
        sys.exit(1)

    if args.transport == "sse":
        from mcp.server.sse import SseServerTransport

        sse = SseServerTransport("/messages/")

        async def handle_sse(request):
            async with sse.connect_sse(
                request.scope, request.receive, request._send
            ) as streams:
                await mcp._mcp_server.run(
                    streams[0], streams[1], mcp._mcp_server.create_initialization_options()
                )
            return Response()

        app = Starlette(
            routes=[
                Route("/sse", endpoint=handle_sse),
                Mount("/messages/", app=sse.handle_post_message),
            ],
        )
        logger.info("SSE endpoint: http://%s:%s/sse", args.host, args.port)
    else:
        # FastMCP wires the session manager and its lifespan into this app
        app = mcp.streamable_http_app()
        logger.info("MCP endpoint: http://%s:%s/mcp", args.host, args.port)

    uvicorn.run(app, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
