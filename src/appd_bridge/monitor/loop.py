"""
MonitorLoop daemon reconciling controller violations with Jira tickets.

This module implements the monitor loop daemon that:
- Loads tracked violations from the state file before the first tick
- On each tick, fetches all active violations and diffs them against state
- Creates one ticket per new incident
- Closes the ticket when an incident turns CANCELLED or leaves the feed
- Persists state after every mutation
- Handles graceful shutdown on SIGINT/SIGTERM, flushing state on exit

Scheduling is completion-driven: the next tick starts `interval` seconds
after the previous one finished, so ticks never overlap. The wait uses
asyncio.Event with a timeout so a shutdown signal interrupts it.
"""

import asyncio
import functools
import logging
import signal

from appd_bridge.monitor.state import StateStore, TrackedState
from appd_bridge.monitor.types import TicketSink, TickSummary, ViolationSource
from appd_bridge.types import (
    Application,
    IncidentStatus,
    TrackedViolation,
    Violation,
    now_ms,
)

logger = logging.getLogger(__name__)


class MonitorLoop:
    """
    Long-running daemon that keeps Jira tickets in step with violations.

    Per-incident lifecycle:
        unknown --ticket created--> tracked (status copied from feed)
        unknown --create failed---> unknown (retried next tick)
        OPEN    --CANCELLED seen--> CANCELLED, ticket closed
        OPEN    --absent from feed-> CANCELLED, ticket closed
        any     --other status----> status overwritten, no ticket call

    Closing is best-effort: the record is marked CANCELLED even if the
    ticket could not be transitioned, so the close is never retried.

    Example:
        loop = MonitorLoop(
            source=controller_client,
            tickets=ticket_gateway,
            store=StateStore(Path("violations-state.json")),
            interval_seconds=60.0,
        )
        await loop.run()  # Runs until SIGINT/SIGTERM
    """

    def __init__(
        self,
        source: ViolationSource,
        tickets: TicketSink,
        store: StateStore,
        interval_seconds: float = 60.0,
    ) -> None:
        """
        Initialize monitor loop.

        Args:
            source: Provider of the active violation feed
            tickets: Ticket create/close operations
            store: Persistence for tracked violations
            interval_seconds: Pause between the end of one tick and the
                start of the next (default 60)
        """
        self.source = source
        self.tickets = tickets
        self.store = store
        self.interval = interval_seconds
        self.state: TrackedState = {}
        self._loaded = False
        self._shutdown = asyncio.Event()

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def load_state(self) -> None:
        """Replace in-memory state with the persisted state."""
        self.state = self.store.load()
        self._loaded = True

    def flush(self) -> bool:
        return self.store.save(self.state)

    def request_shutdown(self) -> None:
        """Stop after the in-flight tick completes."""
        self._shutdown.set()

    async def run(self) -> None:
        """
        Run ticks until a shutdown signal, then flush state.

        Registers SIGINT and SIGTERM handlers for graceful shutdown.
        """
        loop = asyncio.get_running_loop()
        signals = (signal.SIGINT, signal.SIGTERM)
        for sig in signals:
            loop.add_signal_handler(sig, functools.partial(self._handle_signal, sig))

        logger.info("Monitor loop starting (interval: %ss)", self.interval)
        self.load_state()

        try:
            while not self._shutdown.is_set():
                summary = await self.reconcile()
                logger.info(summary.describe())

                # Wait for interval or shutdown signal
                try:
                    await asyncio.wait_for(self._shutdown.wait(), timeout=self.interval)
                except asyncio.TimeoutError:
                    pass
        finally:
            for sig in signals:
                loop.remove_signal_handler(sig)
            self.flush()
            logger.info("Monitor loop stopped")

    def _handle_signal(self, sig: signal.Signals) -> None:
        logger.info("Received %s, shutting down...", sig.name)
        self.request_shutdown()

    # -------------------------------------------------------------------------
    # Reconciliation
    # -------------------------------------------------------------------------

    async def reconcile(self) -> TickSummary:
        """
        Run one reconciliation tick.

        1. Fetch every active violation. If that fails the tick is aborted.
        2. Walk the feed in order: create tickets for unknown incidents,
           apply status changes to known ones.
        3. Close every OPEN record whose incident is no longer in the feed.
           This runs only after the whole feed is merged.

        An error while handling one incident is logged with its id and
        counted; the remaining incidents are still processed.

        Returns:
            Counters for the tick
        """
        if not self._loaded:
            self.load_state()

        summary = TickSummary()
        logger.info("Checking for health violations...")

        try:
            feed = await self.source.list_active_violations()
        except Exception as e:
            # Next tick retries from scratch
            logger.error("Error checking violations: %s", e)
            summary.aborted = True
            return summary

        current: set[str] = set()
        for application, violations in feed:
            for violation in violations:
                current.add(violation.id)
                try:
                    await self._observe(application, violation, summary)
                except Exception as e:
                    logger.error("Error processing incident %s: %s", violation.id, e)
                    summary.errors += 1

        for incident_id, record in list(self.state.items()):
            if incident_id not in current and record.is_open:
                logger.info(
                    "Violation %s no longer present, updating Jira ticket %s to Done",
                    incident_id,
                    record.jira_key,
                )
                try:
                    await self._close(incident_id, record)
                except Exception as e:
                    logger.error("Error closing incident %s: %s", incident_id, e)
                    summary.errors += 1
                    continue
                summary.closed += 1

        summary.active = len(current)
        return summary

    async def _observe(
        self, application: Application, violation: Violation, summary: TickSummary
    ) -> None:
        """Apply one feed entry to state, persisting any change."""
        incident_id = violation.id
        observed = violation.incident_status
        record = self.state.get(incident_id)

        if record is None:
            logger.info(
                "New violation detected: Incident %s - %s",
                incident_id,
                violation.affected_entity_name,
            )
            key = await self.tickets.create_ticket(violation, application.name)
            if key is None:
                # Nothing recorded, so the next tick retries creation
                summary.failed_creates += 1
                return
            self.state[incident_id] = TrackedViolation(
                jira_key=key, status=observed, last_checked=now_ms()
            )
            summary.created += 1
            logger.info("Created Jira ticket %s for incident %s", key, incident_id)
            self.flush()
            return

        if record.is_open and observed == IncidentStatus.CANCELLED.value:
            logger.info(
                "Violation %s closed, updating Jira ticket %s to Done",
                incident_id,
                record.jira_key,
            )
            await self._close(incident_id, record)
            summary.closed += 1
            return

        if record.status != observed:
            if (
                record.status == IncidentStatus.CANCELLED.value
                and observed == IncidentStatus.OPEN.value
            ):
                logger.warning(
                    "Incident %s reopened upstream; ticket %s is not reopened",
                    incident_id,
                    record.jira_key,
                )
            logger.info(
                "Incident %s status %s -> %s", incident_id, record.status, observed
            )
            record.status = observed
            record.touch()
            summary.updated += 1
            self.flush()
            return

        record.touch()
        self.flush()

    async def _close(self, incident_id: str, record: TrackedViolation) -> None:
        closed = await self.tickets.close_ticket(record.jira_key)
        if not closed:
            logger.warning(
                "Ticket %s for incident %s was not transitioned; marking closed anyway",
                record.jira_key,
                incident_id,
            )
        record.status = IncidentStatus.CANCELLED.value
        record.touch()
        self.flush()
