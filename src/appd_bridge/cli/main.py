"""appd-bridge CLI - AppDynamics violations to Jira tickets."""

import typer

from appd_bridge.cli.monitor import monitor_app
from appd_bridge.cli.state import state_app
from appd_bridge.cli.tools import tools_app

app = typer.Typer(
    name="appd-bridge",
    help="Bridge AppDynamics health rule violations to Jira tickets",
    no_args_is_help=True,
)

# Add command groups
app.add_typer(monitor_app, name="monitor")
app.add_typer(state_app, name="state")
app.add_typer(tools_app, name="tools")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
