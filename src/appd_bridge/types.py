"""
Shared data types for the violation bridge.

This module defines the internal data structures passed between the
controller client, the ticket gateway, the state store and the monitor loop.
These are not API models: raw controller payloads are converted here via
Violation.from_raw and Application.from_raw.

All types use @dataclass. Pydantic models are reserved for configuration,
API responses and tool arguments.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

IncidentId = str
"""Upstream incident identifier, always compared as a string."""

TicketKey = str
"""Jira issue key (e.g., "TAF-123")."""


class IncidentStatus(str, Enum):
    """Incident status values the monitor loop acts on.

    Any other upstream value is stored as-is and treated as
    "tracked but not open".
    """

    OPEN = "OPEN"
    CANCELLED = "CANCELLED"


def now_ms() -> int:
    """Current time as epoch milliseconds."""
    return int(time.time() * 1000)


def _mapping(value: Any) -> dict[str, Any]:
    # Entity definitions are objects on every known controller, but not guaranteed
    return value if isinstance(value, dict) else {}


@dataclass(frozen=True)
class Token:
    """
    Bearer token for controller requests.

    Attributes:
        value: The bearer value sent in the Authorization header
        expires_at: Monotonic deadline in seconds, None for API keys
    """

    value: str
    expires_at: float | None = None

    def is_valid(self, now: float | None = None) -> bool:
        if self.expires_at is None:
            return True
        current = time.monotonic() if now is None else now
        return current < self.expires_at


@dataclass
class Application:
    """A business application registered on the controller."""

    id: int
    name: str

    @classmethod
    def from_raw(cls, raw: dict[str, Any]) -> "Application":
        return cls(id=int(raw["id"]), name=str(raw.get("name", "")))


@dataclass
class Violation:
    """
    A health rule violation as reported by the controller.

    Attributes:
        id: Incident identifier (stringified)
        incident_status: Upstream status, e.g. OPEN or CANCELLED
        severity: Upstream severity, e.g. CRITICAL or WARNING
        affected_entity_name: Entity that breached the rule
        affected_entity_id: Controller id of that entity
        policy_name: Health rule (triggered entity) name
        description: Upstream description, may contain HTML
        deep_link_url: Link back to the controller UI
        raw: The untouched upstream payload
    """

    id: IncidentId
    incident_status: str = ""
    severity: str = ""
    affected_entity_name: str | None = None
    affected_entity_id: str | None = None
    policy_name: str | None = None
    description: str | None = None
    deep_link_url: str | None = None
    raw: dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_raw(cls, raw: dict[str, Any]) -> "Violation":
        """
        Build a Violation from a controller payload.

        Args:
            raw: One violation/problem object. Must contain "id".

        Raises:
            KeyError: If the payload has no "id".
        """
        affected = _mapping(raw.get("affectedEntityDefinition"))
        triggered = _mapping(raw.get("triggeredEntityDefinition"))
        entity_id = affected.get("entityId")
        return cls(
            id=str(raw["id"]),
            incident_status=str(raw.get("incidentStatus") or ""),
            severity=str(raw.get("severity") or ""),
            affected_entity_name=affected.get("name"),
            affected_entity_id=str(entity_id) if entity_id is not None else None,
            policy_name=triggered.get("name"),
            description=raw.get("description"),
            deep_link_url=raw.get("deepLinkUrl"),
            raw=raw,
        )


@dataclass
class TrackedViolation:
    """
    Local record of an incident that has a Jira ticket.

    Records are never deleted; they form the audit trail of every
    incident the bridge has ticketed.

    Attributes:
        jira_key: Ticket created for this incident, immutable once set
        status: Last observed incident status
        last_checked: Epoch ms of the last observation
    """

    jira_key: TicketKey
    status: str
    last_checked: int = field(default_factory=now_ms)

    @property
    def is_open(self) -> bool:
        return self.status == IncidentStatus.OPEN.value

    def touch(self, at: int | None = None) -> None:
        """Advance last_checked, never moving it backwards."""
        self.last_checked = max(self.last_checked, now_ms() if at is None else at)

    def to_dict(self) -> dict[str, Any]:
        """Convert to the persisted JSON shape."""
        return {
            "jiraKey": self.jira_key,
            "status": self.status,
            "lastChecked": self.last_checked,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TrackedViolation":
        """
        Build from the persisted JSON shape. Unknown keys are ignored.

        Raises:
            KeyError: If "jiraKey" is missing.
            ValueError: If "jiraKey" is null or empty.
        """
        jira_key = data["jiraKey"]
        if jira_key is None or str(jira_key) == "":
            raise ValueError("jiraKey is empty")
        return cls(
            jira_key=str(jira_key),
            status=str(data.get("status") or ""),
            last_checked=int(data.get("lastChecked") or 0),
        )
