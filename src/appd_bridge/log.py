"""Logging setup shared by the CLI entry points."""

import logging

from rich.console import Console
from rich.logging import RichHandler


def configure_logging(level: str = "INFO", stderr: bool = False) -> None:
    """
    Install a rich handler on the root logger.

    Args:
        level: Log level name (e.g., "INFO", "DEBUG")
        stderr: Log to stderr. Required when stdout carries a protocol
            (the MCP stdio server).
    """
    console = Console(stderr=True) if stderr else None
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
        force=True,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
