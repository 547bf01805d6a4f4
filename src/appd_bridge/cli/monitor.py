"""Monitor daemon CLI commands.

This module provides the CLI commands for the reconciliation loop:
- run: Start continuous violation checking until SIGINT/SIGTERM
- once: Run a single reconciliation tick and print the summary

Configuration comes from the environment (see appd_bridge.config.Settings);
options here override the most commonly tuned values.
"""

import asyncio
from pathlib import Path

import typer
from pydantic import ValidationError
from rich.console import Console

from appd_bridge.config import Settings, get_settings
from appd_bridge.factory import open_monitor
from appd_bridge.log import configure_logging

monitor_app = typer.Typer(help="Run the violation monitor")


def _load_settings(state_file: Path | None, interval_ms: int | None) -> Settings:
    try:
        settings = get_settings()
    except ValidationError as e:
        print(f"Error: invalid configuration\n{e}")
        raise typer.Exit(1)
    updates = {}
    if state_file is not None:
        updates["state_file"] = state_file
    if interval_ms is not None:
        updates["check_interval_ms"] = interval_ms
    return settings.model_copy(update=updates)


@monitor_app.command("run")
def run_monitor(
    interval_ms: int = typer.Option(
        None, "--interval-ms", "-i", min=1, help="Check interval in milliseconds"
    ),
    state_file: Path = typer.Option(None, "--state", help="Path to the state file"),
) -> None:
    """
    Run the monitor daemon.

    Checks for health rule violations at the configured interval, creating
    and closing Jira tickets. Runs until interrupted with Ctrl+C, then
    flushes state and exits 0.

    Environment variables:
        APPD_URL, APPD_CLIENT_NAME/APPD_API_KEY, APPD_CLIENT_SECRET,
        APPD_ACCOUNT_NAME, JIRA_URL, JIRA_USERNAME, JIRA_TOKEN,
        JIRA_PROJECT_KEY, CHECK_INTERVAL_MS, STATE_FILE
    """
    settings = _load_settings(state_file, interval_ms)
    configure_logging(settings.log_level)

    print("Starting AppDynamics Health Violations Monitor...")
    print(f"  Controller: {settings.appd_url}")
    print(f"  Jira project: {settings.jira_project_key}")
    print(f"  Interval: {settings.check_interval_seconds}s")
    print(f"  State file: {settings.state_file}")
    print()
    print("Press Ctrl+C to stop")
    print()

    async def _run() -> None:
        async with open_monitor(settings) as loop:
            await loop.run()

    asyncio.run(_run())


@monitor_app.command("once")
def run_once(
    state_file: Path = typer.Option(None, "--state", help="Path to the state file"),
) -> None:
    """Run a single reconciliation tick."""
    settings = _load_settings(state_file, None)
    configure_logging(settings.log_level)

    async def _once():
        async with open_monitor(settings) as loop:
            return await loop.reconcile()

    summary = asyncio.run(_once())
    Console().print(summary.describe())
    if summary.aborted:
        raise typer.Exit(1)
