#!/usr/bin/env python3
"""
Analysis retriever MCP Server - stdio transport

MCP protocol wrapper for local clients (stdio mode), built on the mcp SDK.
Same tool and handlers as the HTTP server.

Run with: mcp-analysis-retriever-stdio
"""

import asyncio
from typing import Any

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from .config import load_settings
from .dispatcher import SERVER_NAME
from .handlers import call_tool as handle_tool
from .logging_config import setup_async_logging, shutdown_async_logging
from .tools import get_mcp_tools
from .upstream import AnalysisClient

app = Server(SERVER_NAME)
settings = load_settings()
upstream = AnalysisClient(settings)


@app.list_tools()  # type: ignore[misc,no-untyped-call]
async def list_tools() -> list[Tool]:
    """List available MCP tools - imported from tools.py (single source of truth)"""
    return get_mcp_tools()


@app.call_tool()  # type: ignore[misc]
async def call_tool(name: str, arguments: Any) -> list[TextContent]:  # noqa: ANN401
    """Handle tool execution - delegates to handlers.py"""
    result = await handle_tool(upstream, name, arguments or {})
    return [TextContent(type="text", text=result)]


async def main() -> None:
    """Run the MCP server"""
    async with stdio_server() as (read_stream, write_stream):
        await app.run(
            read_stream,
            write_stream,
            app.create_initialization_options()
        )


def run() -> None:
    """Console entry point"""
    setup_async_logging(settings.log_file, settings.log_level)
    try:
        asyncio.run(main())
    finally:
        shutdown_async_logging()


if __name__ == "__main__":
    run()
