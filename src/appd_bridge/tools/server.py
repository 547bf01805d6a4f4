"""MCP stdio server exposing read-only AppDynamics queries as tools.

Usage:
    appd-bridge tools serve

stdout carries the MCP protocol; logs go to stderr.
"""

import logging
from typing import Any

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from appd_bridge.appd.client import ControllerClient
from appd_bridge.config import Settings
from appd_bridge.exceptions import BridgeError
from appd_bridge.factory import create_controller_client
from appd_bridge.tools.handlers import TOOLS, dispatch

logger = logging.getLogger(__name__)

SERVER_NAME = "appdynamics-mcp"


class ToolCallError(BridgeError):
    """Raised to make the MCP server return an isError result."""


def build_server(client: ControllerClient) -> Server:
    """Create an MCP Server with every tool bound to `client`."""
    server = Server(SERVER_NAME)

    @server.list_tools()
    async def list_tools() -> list[Tool]:
        return [
            Tool(name=tool.name, description=tool.description, inputSchema=tool.input_schema())
            for tool in TOOLS
        ]

    @server.call_tool()
    async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
        result = await dispatch(name, arguments, client)
        if result.is_error:
            raise ToolCallError(result.text)
        return [TextContent(type="text", text=result.text)]

    return server


async def serve(settings: Settings) -> None:
    """Run the MCP server on stdio until the client disconnects."""
    client = create_controller_client(settings)
    server = build_server(client)
    logger.info("Starting %s (controller: %s)", SERVER_NAME, settings.appd_url)
    try:
        async with stdio_server() as (read_stream, write_stream):
            await server.run(read_stream, write_stream, server.create_initialization_options())
    finally:
        await client.http.aclose()
