# =============================================================================
# main.py  -  Entry Point for the Ads Insights MCP server
# =============================================================================
#
# HOW TO RUN:
#   uv run python main.py                       # HTTP on MCP_HOST:MCP_PORT
#   MCP_TRANSPORT=stdio uv run python main.py   # stdio, for local clients
#
# HTTP ROUTES:
#   /mcp          -> streamable HTTP transport
#   /sse          -> SSE event stream
#   /sse/message  -> SSE client-to-server messages
#   anything else -> 404 Not Found
#
#   Both transports dispatch into the same FastMCP tool registry
#   (tools/mcp_server.py).
# =============================================================================

import logging

from dotenv import load_dotenv

# Must run BEFORE importing the tool server: it resolves its settings
# from the environment at import time.
load_dotenv()

import uvicorn
from fastmcp.server.http import create_sse_app
from starlette.applications import Starlette

from tools.mcp_server import mcp, settings

logger = logging.getLogger(__name__)

SSE_PATH = "/sse"
SSE_MESSAGE_PATH = "/sse/message/"


def create_app() -> Starlette:
    """Build the ASGI app serving both MCP transports.

    The streamable HTTP app owns a session manager that must be started by
    its lifespan, so the combined app borrows that lifespan.
    """
    streamable_app = mcp.http_app(path="/mcp", transport="streamable-http")
    sse_app = create_sse_app(server=mcp, message_path=SSE_MESSAGE_PATH, sse_path=SSE_PATH)
    return Starlette(
        routes=[*streamable_app.routes, *sse_app.routes],
        lifespan=streamable_app.lifespan,
    )


def main() -> None:
    if settings.transport == "stdio":
        logger.info("Starting MCP server on stdio")
        mcp.run()
        return

    logger.info("Starting MCP server on http://%s:%d (/mcp, /sse)", settings.host, settings.port)
    uvicorn.run(create_app(), host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
