"""
SSE Transport for the Sentry MCP Server

Serves the MCP server over HTTP with Server-Sent Events, plus a health check.
"""

import errno
import socket
import uuid
from typing import Set, Tuple

import structlog
import uvicorn
from mcp.server import Server
from mcp.server.sse import SseServerTransport
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse, PlainTextResponse, Response
from starlette.routing import Mount, Route

logger = structlog.get_logger(__name__)


class _MessagesApp:
    """ASGI endpoint for posted client messages, with or without a trailing slash."""

    def __init__(self, sse: SseServerTransport, open_streams: Set[str]):
        self.sse = sse
        self.open_streams = open_streams

    async def __call__(self, scope, receive, send):
        if not self.open_streams:
            logger.warning("Message posted without an open SSE stream")
            response = PlainTextResponse("SSE transport not initialized", status_code=400)
            await response(scope, receive, send)
            return
        await self.sse.handle_post_message(scope, receive, send)


def create_starlette_app(mcp_server: Server, *, debug: bool = False) -> Starlette:
    """Create the Starlette app exposing ``/health``, ``/sse`` and ``/messages``.

    Posted messages are rejected with HTTP 400 while no event stream is open.
    """
    sse = SseServerTransport("/messages/")
    open_streams: Set[str] = set()

    async def handle_health(request: Request) -> JSONResponse:
        return JSONResponse({"status": "ok", "server": "mcp-sentry"})

    async def handle_sse(request: Request) -> Response:
        stream_id = uuid.uuid4().hex
        open_streams.add(stream_id)
        logger.info("New SSE connection established", stream_id=stream_id)
        try:
            async with sse.connect_sse(
                request.scope, request.receive, request._send
            ) as streams:
                await mcp_server.run(
                    streams[0], streams[1], mcp_server.create_initialization_options()
                )
        finally:
            open_streams.discard(stream_id)
            logger.info("SSE connection closed", stream_id=stream_id)
        # Return empty response to avoid NoneType error
        return Response()

    messages_app = _MessagesApp(sse, open_streams)

    return Starlette(
        debug=debug,
        routes=[
            Route("/health", endpoint=handle_health),
            Route("/sse", endpoint=handle_sse),
            Route("/messages", endpoint=messages_app, methods=["POST"]),
            Mount("/messages/", app=messages_app),
        ],
    )


def _bind_socket(host: str, port: int) -> socket.socket:
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, port))
    except OSError:
        sock.close()
        raise
    sock.set_inheritable(True)
    return sock


def bind_with_retry(host: str, port: int, max_retries: int = 3) -> Tuple[socket.socket, int]:
    """Bind a listening socket, moving to the next port when one is taken.

    Args:
        host: Host to bind to
        port: First port to try
        max_retries: Total number of ports to try

    Returns:
        Tuple of the bound socket and its port

    Raises:
        RuntimeError: If every attempted port is in use
        OSError: On any other bind failure
    """
    current_port = port
    for attempt in range(1, max_retries + 1):
        try:
            return _bind_socket(host, current_port), current_port
        except OSError as e:
            if e.errno != errno.EADDRINUSE:
                raise
            if attempt == max_retries:
                raise RuntimeError(
                    f"Failed to start server after {max_retries} attempts due to port conflicts. "
                    f"Last attempted port: {current_port}. Error: {e}"
                ) from e
            logger.warning("Port is in use, trying next port",
                           port=current_port, next_port=current_port + 1)
            current_port += 1
    raise RuntimeError(f"Failed to start server: invalid retry count {max_retries}")


async def start_sse_server(mcp_server: Server, host: str, port: int, max_retries: int = 3) -> None:
    """Run the SSE transport server until shutdown."""
    app = create_starlette_app(mcp_server)
    sock, bound_port = bind_with_retry(host, port, max_retries)

    logger.info("MCP Server running with SSE",
                sse_url=f"http://localhost:{bound_port}/sse",
                health_url=f"http://localhost:{bound_port}/health")

    config = uvicorn.Config(app=app, log_level="info", access_log=True)
    server = uvicorn.Server(config)
    await server.serve(sockets=[sock])
