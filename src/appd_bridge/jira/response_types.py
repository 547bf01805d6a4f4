"""
Pydantic response types for the Jira REST v2 API.

A body that does not match these shapes is treated like a failed call.
"""

from pydantic import BaseModel, ConfigDict


class CreatedIssue(BaseModel):
    """
    Response from POST /rest/api/2/issue.

    Example response:
    {"id": "10001", "key": "OPS-1", "self": "https://jira/rest/api/2/issue/10001"}
    """

    model_config = ConfigDict(extra="ignore")

    key: str | None = None


class TransitionTarget(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str | None = None


class Transition(BaseModel):
    """Single workflow transition available on an issue."""

    model_config = ConfigDict(extra="ignore")

    id: str | int
    name: str | None = None
    to: TransitionTarget | None = None


class TransitionsResponse(BaseModel):
    """Response from GET /rest/api/2/issue/{key}/transitions."""

    model_config = ConfigDict(extra="ignore")

    transitions: list[Transition] = []
