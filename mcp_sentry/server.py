#!/usr/bin/env python3
"""
MCP server exposing Sentry issues as tools and prompts, over stdio or SSE.
"""

import argparse
import asyncio
import sys
from typing import Any, Dict, List, Optional

import structlog
from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import GetPromptResult, Prompt, TextContent, Tool

from .config import Config, ConfigLoader
from .log_config import configure_logging
from .sentry.client import SentryClient
from .sentry.errors import SentryError
from .tools.issue import SentryIssueTool
from .tools.issues_list import SentryIssuesListTool
from .transport.sse import start_sse_server

logger = structlog.get_logger(__name__)


def create_server(config: Config, client: Optional[SentryClient] = None) -> Server:
    """Create the MCP server with the Sentry tools and prompts registered.

    Args:
        config: Server configuration
        client: Sentry client, built from ``config`` when omitted

    Returns:
        Server: Configured MCP server
    """
    if client is None:
        client = SentryClient(config.sentry)

    tools = [SentryIssueTool(client), SentryIssuesListTool(client)]
    tools_by_name = {tool.tool_name: tool for tool in tools}
    prompts_by_name = {tool.prompt_name: tool for tool in tools}

    server = Server(config.mcp.server_name, version=config.mcp.version)

    @server.list_prompts()
    async def list_prompts() -> List[Prompt]:
        return [tool.get_prompt_definition() for tool in tools]

    @server.get_prompt()
    async def get_prompt(name: str, arguments: Optional[Dict[str, str]] = None) -> GetPromptResult:
        tool = prompts_by_name.get(name)
        if tool is None:
            raise ValueError(f"Unknown prompt: {name}")
        try:
            return await tool.render_prompt(arguments)
        except SentryError as e:
            logger.error("Sentry prompt failed", prompt=name, kind=e.kind.value, error=str(e))
            raise

    @server.list_tools()
    async def list_tools() -> List[Tool]:
        return [tool.get_tool_definition() for tool in tools]

    @server.call_tool()
    async def call_tool(name: str, arguments: Dict[str, Any]) -> List[TextContent]:
        tool = tools_by_name.get(name)
        if tool is None:
            raise ValueError(f"Unknown tool: {name}")
        try:
            return await tool.execute(arguments)
        except SentryError as e:
            logger.error("Sentry tool failed", tool=name, kind=e.kind.value, error=str(e))
            raise

    return server


async def run_stdio(mcp_server: Server) -> None:
    """Serve the MCP server over stdin/stdout."""
    async with stdio_server() as (read_stream, write_stream):
        await mcp_server.run(
            read_stream, write_stream, mcp_server.create_initialization_options()
        )


async def serve(config: Config) -> None:
    """Run the MCP server on the configured transport."""
    mcp_server = create_server(config, SentryClient(config.sentry))
    if config.transport.transport == "sse":
        await start_sse_server(
            mcp_server,
            config.transport.host,
            config.transport.port,
            config.transport.max_port_retries,
        )
    else:
        logger.info("Using stdio transport")
        await run_stdio(mcp_server)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="mcp-sentry",
        description="MCP server for retrieving Sentry issues",
    )
    parser.add_argument("-t", "--auth-token", help="Sentry authentication token (default: $SENTRY_TOKEN)")
    parser.add_argument("-b", "--api-base", help="Sentry API base URL (default: $SENTRY_API_BASE or https://sentry.io/api/0/)")
    parser.add_argument("--sse", action="store_true", help="Use SSE transport instead of stdio")
    parser.add_argument("--host", help="Host to bind the SSE server to (default: 0.0.0.0)")
    parser.add_argument("--port", type=int, help="Port to run the SSE server on (default: 3579)")
    parser.add_argument("--version", action="version", version="%(prog)s 1.8.0")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> None:
    args = parse_args(argv)
    configure_logging()

    try:
        config = ConfigLoader({
            "auth_token": args.auth_token,
            "api_base": args.api_base,
            "transport": "sse" if args.sse else "stdio",
            "host": args.host,
            "port": args.port,
        }).load()
    except ValueError as e:
        print(str(e), file=sys.stderr)
        sys.exit(1)

    try:
        asyncio.run(serve(config))
    except KeyboardInterrupt:
        logger.info("Server interrupted")
    except (RuntimeError, OSError) as e:
        print(f"Server error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
