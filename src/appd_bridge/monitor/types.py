"""
Interfaces and result types for the monitor loop.

This module defines:
- ViolationSource: Anything that can list active violations per application
- TicketSink: Anything that can create and close tickets
- TickSummary: Counters describing one reconciliation tick

ControllerClient and TicketGateway satisfy these protocols; tests use
in-memory fakes.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol, runtime_checkable

from appd_bridge.types import Application, TicketKey, Violation


@runtime_checkable
class ViolationSource(Protocol):
    """Source of the current violation feed."""

    async def list_active_violations(self) -> list[tuple[Application, list[Violation]]]:
        """
        Fetch current violations grouped by application.

        Raises on failure to fetch the feed as a whole. Per-application
        failures are handled inside the source.
        """
        ...


@runtime_checkable
class TicketSink(Protocol):
    """Issue tracker operations used by the monitor loop. Never raise."""

    async def create_ticket(
        self, violation: Violation, application_name: str
    ) -> TicketKey | None: ...

    async def close_ticket(self, ticket_key: TicketKey) -> bool: ...


@dataclass
class TickSummary:
    """
    Outcome of one reconciliation tick.

    Attributes:
        started_at: When the tick began
        active: Distinct incident ids in the feed
        created: Tickets created
        closed: Records marked CANCELLED (by status or disappearance)
        updated: Records whose status was overwritten with another value
        failed_creates: New incidents whose ticket creation failed
        errors: Incidents skipped because handling them raised
        aborted: The feed could not be fetched; nothing was reconciled
    """

    started_at: datetime = field(default_factory=datetime.now)
    active: int = 0
    created: int = 0
    closed: int = 0
    updated: int = 0
    failed_creates: int = 0
    errors: int = 0
    aborted: bool = False

    def describe(self) -> str:
        if self.aborted:
            return "Check aborted: violation feed unavailable"
        return (
            f"Check complete. Active violations: {self.active} "
            f"(created {self.created}, closed {self.closed}, "
            f"updated {self.updated}, failed {self.failed_creates}, "
            f"errors {self.errors})"
        )
