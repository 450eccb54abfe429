"""MCP server binding for the request dispatcher.

Registers the dispatcher's tools and resources on the MCP SDK low-level
Server and runs it over the STDIO transport. Dispatcher calls are blocking
(requests), so each one runs in a worker thread.
"""

import asyncio
import logging
from typing import Any, Dict, List

from mcp import types
from mcp.server import Server
from mcp.server.lowlevel.helper_types import ReadResourceContents
from mcp.server.stdio import stdio_server
from pydantic import AnyUrl

from .dispatcher import RequestDispatcher

logger = logging.getLogger(__name__)

SERVER_NAME = "mcp-confluence-server"
SERVER_VERSION = "1.1.5"


def build_server(dispatcher: RequestDispatcher) -> Server:
    """Create an MCP server that routes every request to the dispatcher."""
    server = Server(SERVER_NAME, version=SERVER_VERSION)

    @server.list_tools()
    async def handle_list_tools() -> List[types.Tool]:
        return dispatcher.list_tools()

    # Argument validation happens in the dispatcher so failures are
    # reported as tool results
    @server.call_tool(validate_input=False)
    async def handle_call_tool(
        name: str,
        arguments: Dict[str, Any]
    ) -> List[types.TextContent]:
        return await asyncio.to_thread(dispatcher.call_tool, name, arguments)

    @server.list_resources()
    async def handle_list_resources() -> List[types.Resource]:
        return dispatcher.list_resources()

    @server.read_resource()
    async def handle_read_resource(uri: AnyUrl) -> List[ReadResourceContents]:
        text, mime_type = await asyncio.to_thread(dispatcher.read_resource, str(uri))
        return [ReadResourceContents(content=text, mime_type=mime_type)]

    return server


async def run_stdio(dispatcher: RequestDispatcher) -> None:
    """Serve MCP requests over stdin/stdout until the client disconnects."""
    server = build_server(dispatcher)
    async with stdio_server() as (read_stream, write_stream):
        logger.info(f"{SERVER_NAME} listening on stdio")
        await server.run(
            read_stream,
            write_stream,
            server.create_initialization_options(),
        )
