"""MCP tool server CLI commands.

- serve: Run the MCP server on stdio
- list: Show the registered tools
"""

import asyncio

import typer
from rich.console import Console
from rich.table import Table

from appd_bridge.config import get_settings
from appd_bridge.log import configure_logging
from appd_bridge.tools.handlers import TOOLS

tools_app = typer.Typer(help="Serve read-only AppDynamics queries to agents")


@tools_app.command("serve")
def serve_tools() -> None:
    """Run the MCP server on stdio."""
    # Imported here so the mcp dependency is only loaded when serving
    from appd_bridge.tools.server import serve

    settings = get_settings()
    configure_logging(settings.log_level, stderr=True)
    asyncio.run(serve(settings))


@tools_app.command("list")
def list_tools() -> None:
    """List the tools exposed by the MCP server."""
    table = Table(title="Tools")
    table.add_column("Name", style="cyan")
    table.add_column("Arguments")
    table.add_column("Description")
    for tool in TOOLS:
        props = tool.input_schema().get("properties", {})
        table.add_row(tool.name, ", ".join(props) or "-", tool.description)
    Console().print(table)
