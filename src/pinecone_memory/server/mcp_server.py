"""Pinecone Memory MCP Server -- stdio-based MCP server exposing the memory tools."""

import asyncio
import logging
import sys

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from pinecone_memory.server.handlers import build_handlers
from pinecone_memory.server.tool_schemas import TOOL_SCHEMAS

logger = logging.getLogger("pinecone_memory.server")

SERVER_NAME = "pinecone-memory"


def create_server(bridge) -> Server:
    """Build an MCP ``Server`` whose tools are bound to ``bridge``."""
    server = Server(SERVER_NAME)
    handlers = build_handlers(bridge)

    @server.list_tools()
    async def list_tools() -> list[Tool]:
        """Return all memory tools."""
        return [
            Tool(
                name=schema["name"],
                description=schema["description"],
                inputSchema=schema["inputSchema"],
            )
            for schema in TOOL_SCHEMAS
        ]

    @server.call_tool()
    async def call_tool(name: str, arguments: dict) -> list[TextContent]:
        """Dispatch tool call to the appropriate handler."""
        handler = handlers.get(name)
        if not handler:
            return [TextContent(type="text", text=f"Unknown tool: {name}")]

        try:
            result = await handler(arguments or {})
            # Extract text from MCP response format
            content_list = result.get("content", [{}])
            text = content_list[0].get("text", str(result)) if content_list else str(result)
            return [TextContent(type="text", text=text)]
        except Exception as e:
            logger.error("Tool %s failed: %s", name, e)
            return [TextContent(type="text", text=f"Error in {name}: {e}")]

    return server


async def main(bridge=None):
    """Entry point for the stdio MCP server."""
    logging.basicConfig(level=logging.WARNING, stream=sys.stderr)
    logger.info("Starting Pinecone memory MCP server...")

    if bridge is None:
        from pinecone_memory.bridge import create_bridge

        bridge = create_bridge()
    server = create_server(bridge)

    # Start UDS hook server for fast hook dispatch
    from pinecone_memory.server.hook_server import start_hook_server, stop_hook_server

    hook_srv = await start_hook_server(bridge)
    try:
        async with stdio_server() as (read_stream, write_stream):
            await server.run(
                read_stream,
                write_stream,
                server.create_initialization_options(),
            )
    finally:
        await stop_hook_server(hook_srv, bridge.settings.hook_socket)


if __name__ == "__main__":
    asyncio.run(main())
