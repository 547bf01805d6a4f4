"""
Pydantic response types for the AppDynamics controller REST API.

Only the responses the bridge reads fields from are modelled here. The
violation endpoints vary too much in shape to model directly and go
through appd_bridge.appd.normalize instead.
"""

from pydantic import BaseModel, ConfigDict


class OAuthTokenResponse(BaseModel):
    """
    Response from POST /controller/api/oauth/access_token.

    Example response:
    {"access_token": "eyJ...", "expires_in": 300}
    """

    model_config = ConfigDict(extra="ignore")

    access_token: str | None = None
    expires_in: int = 300


class ApplicationItem(BaseModel):
    """Single entry from GET /controller/rest/applications."""

    model_config = ConfigDict(extra="ignore")

    id: int
    name: str = ""
    description: str | None = None


class BusinessTransactionItem(BaseModel):
    """Single entry from GET /controller/rest/applications/{id}/business-transactions."""

    model_config = ConfigDict(extra="ignore")

    id: int
    name: str
    tierName: str = ""
    entryPointType: str | None = None
