"""
Jira ticket gateway.

This module provides the TicketGateway class for:
- Creating a Jira issue for a health rule violation
- Transitioning an issue to Done

Neither operation raises. Failures are logged with the incident id or
ticket key plus the HTTP status and body, and reported to the caller as
None/False so that one incident never aborts a monitor tick.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel

from appd_bridge.exceptions import TicketGatewayError
from appd_bridge.jira.response_types import CreatedIssue, Transition, TransitionsResponse
from appd_bridge.types import TicketKey, Violation

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

_HTML_TAG = re.compile(r"<[^>]*>")

DONE = "done"


def ticket_priority(severity: str) -> str:
    """Map violation severity to a Jira priority name."""
    return "Critical" if severity == "CRITICAL" else "High"


def ticket_summary(violation: Violation) -> str:
    entity = violation.affected_entity_name or "Unknown"
    return (
        f"AppDynamics Health Rule Violation: {entity} - "
        f"{violation.severity} Response Time Exceeded"
    )


def ticket_description(violation: Violation, application_name: str) -> str:
    """Markdown body for a new ticket."""
    entity = violation.affected_entity_name or "Unknown"
    description = (
        _HTML_TAG.sub("", violation.description) if violation.description else "N/A"
    )
    lines = [
        "## AppDynamics Health Rule Violation",
        "",
        f"**Application:** {application_name} (ID: {violation.affected_entity_id or 'N/A'})",
        f"**Severity:** {violation.severity}",
        f"**Status:** {violation.incident_status}",
        f"**Policy:** {violation.policy_name or 'N/A'}",
        f"**Incident ID:** {violation.id}",
        "",
        "### Violation Details",
        f"- **Business Transaction:** {entity}",
        "- **Issue:** Average Response Time exceeded threshold",
        f"- **Description:** {description}",
    ]
    if violation.deep_link_url:
        lines += [
            "",
            "### View in AppDynamics",
            f"[View Violation Details]({violation.deep_link_url})",
        ]
    return "\n".join(lines)


def find_done_transition(transitions: list[Transition]) -> Transition | None:
    """Pick the transition named "done", or leading to a "done" state."""
    for transition in transitions:
        name = (transition.name or "").lower()
        target = ((transition.to.name if transition.to else None) or "").lower()
        if name == DONE or target == DONE:
            return transition
    return None


def _parse(model: type[ModelT], response: httpx.Response) -> ModelT:
    """Validate a Jira response body, failing like an HTTP error would."""
    try:
        return model.model_validate(response.json())
    except ValueError as e:
        # Covers both invalid JSON and pydantic ValidationError
        raise TicketGatewayError(
            f"Unexpected response body for {model.__name__}: {e}",
            response.status_code,
            response.text,
        ) from e


@dataclass
class TicketGateway:
    """
    Jira REST v2 client with injected httpx client.

    Attributes:
        http: Pre-configured httpx.AsyncClient with base_url set to Jira,
            basic auth and a bounded timeout. None when Jira is not
            configured; every call then fails softly.
        project_key: Project new issues are created in.

    Example:
        async with httpx.AsyncClient(base_url=jira_url, auth=(user, token)) as http:
            gateway = TicketGateway(http=http, project_key="OPS")
            key = await gateway.create_ticket(violation, "checkout")
    """

    http: httpx.AsyncClient | None
    project_key: str

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        if self.http is None:
            raise TicketGatewayError("Jira not configured (JIRA_URL/JIRA_TOKEN)")
        try:
            response = await self.http.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise TicketGatewayError(f"{method} {path} failed: {e!r}") from e
        if response.is_error:
            raise TicketGatewayError(
                f"{method} {path} failed", response.status_code, response.text
            )
        return response

    async def create_ticket(
        self, violation: Violation, application_name: str
    ) -> TicketKey | None:
        """
        Create a Jira issue for a violation.

        Args:
            violation: The violation to ticket
            application_name: Owning application, shown in the description

        Returns:
            The new issue key, or None if creation failed (already logged)
        """
        payload = {
            "fields": {
                "project": {"key": self.project_key},
                "summary": ticket_summary(violation),
                "description": ticket_description(violation, application_name),
                "issuetype": {"name": "Task"},
                "priority": {"name": ticket_priority(violation.severity)},
            }
        }
        try:
            response = await self._request("POST", "/rest/api/2/issue", json=payload)
            key = _parse(CreatedIssue, response).key
            if not key:
                raise TicketGatewayError("Issue created but no key returned")
        except TicketGatewayError as e:
            logger.error("Error creating Jira ticket for incident %s: %s", violation.id, e)
            return None
        return key

    async def close_ticket(self, ticket_key: TicketKey) -> bool:
        """
        Transition an issue to Done.

        Returns:
            True if the transition was applied. False if the issue has no
            Done transition or any call failed (already logged).
        """
        path = f"/rest/api/2/issue/{ticket_key}/transitions"
        try:
            response = await self._request("GET", path)
            transition = find_done_transition(_parse(TransitionsResponse, response).transitions)
            if transition is None:
                logger.warning('No "Done" transition found for %s', ticket_key)
                return False
            await self._request("POST", path, json={"transition": {"id": transition.id}})
        except TicketGatewayError as e:
            logger.error("Error updating Jira ticket %s: %s", ticket_key, e)
            return False

        logger.info("Updated %s to Done", ticket_key)
        return True
