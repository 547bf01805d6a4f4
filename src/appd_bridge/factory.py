"""
Factory functions for building clients from Settings.

Used by the CLI to create the controller client, the ticket gateway and
the monitor loop with pre-configured httpx clients. Each httpx client gets
the configured per-request timeout.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx

from appd_bridge.appd.client import ControllerClient
from appd_bridge.config import Settings
from appd_bridge.jira.gateway import TicketGateway
from appd_bridge.monitor.loop import MonitorLoop
from appd_bridge.monitor.state import StateStore


def create_controller_client(
    settings: Settings, http: httpx.AsyncClient | None = None
) -> ControllerClient:
    """
    Create a ControllerClient.

    Args:
        settings: Loaded configuration
        http: Optional pre-configured httpx client. If None, a new client is
            created with base_url=APPD_URL and the configured timeout.
    """
    if http is None:
        http = httpx.AsyncClient(
            base_url=settings.appd_url, timeout=settings.request_timeout_seconds
        )
    return ControllerClient(
        http=http,
        client_name=settings.appd_client_name,
        client_secret=settings.appd_client_secret,
        account_name=settings.appd_account_name,
    )


def create_ticket_gateway(
    settings: Settings, http: httpx.AsyncClient | None = None
) -> TicketGateway:
    """
    Create a TicketGateway.

    Without JIRA_URL and JIRA_TOKEN the gateway has no http client and
    every operation fails softly.
    """
    if http is None and settings.jira_url and settings.jira_token:
        http = httpx.AsyncClient(
            base_url=settings.jira_url,
            auth=(settings.jira_username or "", settings.jira_token),
            timeout=settings.request_timeout_seconds,
        )
    return TicketGateway(http=http, project_key=settings.jira_project_key)


@asynccontextmanager
async def open_monitor(settings: Settings) -> AsyncIterator[MonitorLoop]:
    """
    Build a MonitorLoop and close its http clients on exit.

    Example:
        async with open_monitor(get_settings()) as loop:
            await loop.run()
    """
    controller = create_controller_client(settings)
    gateway = create_ticket_gateway(settings)
    try:
        yield MonitorLoop(
            source=controller,
            tickets=gateway,
            store=StateStore(settings.state_file),
            interval_seconds=settings.check_interval_seconds,
        )
    finally:
        await controller.http.aclose()
        if gateway.http is not None:
            await gateway.http.aclose()
