"""Tracked violation state CLI commands.

- list: Display tracked violations in table or JSON format
"""

import json
from datetime import datetime
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from appd_bridge.config import get_settings
from appd_bridge.monitor.state import StateStore
from appd_bridge.types import IncidentStatus

state_app = typer.Typer(help="Inspect tracked violations")

_STATUS_STYLE = {
    IncidentStatus.OPEN.value: "[red]OPEN[/red]",
    IncidentStatus.CANCELLED.value: "[green]CANCELLED[/green]",
}


@state_app.command("list")
def list_state(
    state_file: Path = typer.Option(None, "--state", help="Path to the state file"),
    status: str = typer.Option(None, "--status", "-s", help="Filter by status (OPEN, CANCELLED, ...)"),
    json_output: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """List tracked violations."""
    path = state_file or get_settings().state_file
    state = StateStore(path).load()
    records = sorted(state.items(), key=lambda item: item[1].last_checked, reverse=True)
    if status:
        records = [(k, r) for k, r in records if r.status == status.upper()]

    if json_output:
        print(json.dumps({k: r.to_dict() for k, r in records}, indent=2))
        return

    console = Console()
    table = Table(title=f"Tracked violations ({path})")
    table.add_column("Incident", justify="right", style="cyan")
    table.add_column("Ticket")
    table.add_column("Status")
    table.add_column("Last Checked")

    for incident_id, record in records:
        checked = datetime.fromtimestamp(record.last_checked / 1000)
        table.add_row(
            incident_id,
            record.jira_key,
            _STATUS_STYLE.get(record.status, record.status or "-"),
            checked.strftime("%Y-%m-%d %H:%M:%S"),
        )

    console.print(table)
