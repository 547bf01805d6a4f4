"""
AppDynamics controller REST client.

This module provides the ControllerClient class for:
- Authenticating (OAuth client credentials, or API key fallback)
- Listing applications
- Fetching health rule violations for one or all applications
- Read-only diagnostic queries used by the MCP tool server
  (business transactions, metrics, topology, snapshots, errors, anomalies)

Key design decisions:
- Uses injected httpx.AsyncClient with base_url set to the controller
- The bearer token is an explicit Token value owned by the client instance;
  concurrent callers share a single in-flight refresh
- 404 raises UpstreamNotFound, other failures raise UpstreamError
- One application's failure never aborts list_active_violations
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any

import httpx

from appd_bridge.appd.normalize import (
    extract_raw_violations,
    normalize_violation_response,
)
from appd_bridge.appd.response_types import (
    ApplicationItem,
    BusinessTransactionItem,
    OAuthTokenResponse,
)
from appd_bridge.exceptions import (
    AuthConfigurationError,
    UpstreamError,
    UpstreamNotFound,
)
from appd_bridge.types import Application, Token, Violation

logger = logging.getLogger(__name__)

# Tokens are treated as expired this many seconds early
TOKEN_EXPIRY_MARGIN_SECONDS = 300

VIOLATION_LOOKBACK_MINUTES = 1440

BT_METRIC_NAMES = (
    "Average Response Time (ms)",
    "Calls per Minute",
    "Errors per Minute",
    "Number of Slow Calls",
    "Number of Very Slow Calls",
    "Stall Count",
)

ERROR_EVENT_TYPES = "ERROR,APPLICATION_ERROR,APPLICATION_CRASH"

ANOMALY_EVENT_TYPES = (
    "ANOMALY_OPEN_WARNING,ANOMALY_OPEN_CRITICAL,ANOMALY_CLOSE_WARNING,"
    "ANOMALY_CLOSE_CRITICAL,ANOMALY_UPGRADED,ANOMALY_DOWNGRADED"
)


def _time_range(duration_in_mins: int) -> dict[str, Any]:
    return {"time-range-type": "BEFORE_NOW", "duration-in-mins": duration_in_mins}


@dataclass
class ControllerClient:
    """
    Controller REST client with injected httpx client.

    Attributes:
        http: Pre-configured httpx.AsyncClient with base_url set to the
            controller and a bounded timeout.
        client_name: OAuth client name, or an API key when no secret is set.
        client_secret: OAuth client secret. None selects API key mode.
        account_name: Optional account; client_id becomes name@account.

    Example:
        async with httpx.AsyncClient(base_url=url, timeout=30.0) as http:
            client = ControllerClient(http=http, client_name="monitor",
                                      client_secret="...", account_name="acme")
            for app, violations in await client.list_active_violations():
                print(app.name, len(violations))
    """

    http: httpx.AsyncClient
    client_name: str | None = None
    client_secret: str | None = None
    account_name: str | None = None
    _token: Token | None = field(default=None, init=False, repr=False)
    _token_lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False, repr=False)

    # -------------------------------------------------------------------------
    # Authentication
    # -------------------------------------------------------------------------

    @property
    def client_id(self) -> str | None:
        if self.client_name and self.account_name:
            return f"{self.client_name}@{self.account_name}"
        return self.client_name

    async def get_access_token(self) -> Token:
        """
        Return a usable bearer token.

        Cached OAuth tokens are reused until TOKEN_EXPIRY_MARGIN_SECONDS before
        they expire. With a client name but no secret the name is used as
        the bearer value directly (API key mode).

        Raises:
            AuthConfigurationError: Neither OAuth credentials nor an API key.
            UpstreamError: The token exchange failed.
        """
        if not self.client_name:
            raise AuthConfigurationError()
        if not self.client_secret:
            return Token(value=self.client_name)

        token = self._token
        if token is not None and token.is_valid():
            return token

        async with self._token_lock:
            # Another caller may have refreshed while we waited
            token = self._token
            if token is not None and token.is_valid():
                return token
            self._token = await self._exchange_client_credentials()
            return self._token

    async def _exchange_client_credentials(self) -> Token:
        try:
            response = await self.http.post(
                "/controller/api/oauth/access_token",
                data={
                    "grant_type": "client_credentials",
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                },
            )
        except httpx.HTTPError as e:
            raise UpstreamError(f"OAuth token request failed: {e!r}") from e

        if response.is_error:
            raise UpstreamError(
                "OAuth authentication failed", response.status_code, response.text
            )

        data = OAuthTokenResponse.model_validate(response.json())
        if not data.access_token:
            raise UpstreamError("No access token received from OAuth endpoint")

        expires_at = time.monotonic() + data.expires_in - TOKEN_EXPIRY_MARGIN_SECONDS
        logger.debug("Obtained controller token, valid for %ss", data.expires_in)
        return Token(value=data.access_token, expires_at=expires_at)

    # -------------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------------

    async def _get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """
        Authenticated GET returning decoded JSON.

        Raises:
            UpstreamNotFound: On 404.
            UpstreamError: On any other HTTP error, timeout or transport error.
        """
        token = await self.get_access_token()
        query = {**(params or {}), "output": "JSON"}
        try:
            response = await self.http.get(
                path,
                params=query,
                headers={"Authorization": f"Bearer {token.value}"},
            )
        except httpx.HTTPError as e:
            raise UpstreamError(f"GET {path} failed: {e!r}") from e

        if response.status_code == 404:
            raise UpstreamNotFound(f"GET {path} not found", 404, response.text)
        if response.is_error:
            raise UpstreamError(f"GET {path} failed", response.status_code, response.text)

        try:
            return response.json()
        except ValueError as e:
            raise UpstreamError(f"GET {path} returned invalid JSON") from e

    # -------------------------------------------------------------------------
    # Applications and violations
    # -------------------------------------------------------------------------

    async def list_applications_raw(self) -> list[dict[str, Any]]:
        data = await self._get("/controller/rest/applications")
        return data if isinstance(data, list) else []

    async def list_applications(self) -> list[Application]:
        """
        List all business applications.

        Raises:
            UpstreamError: On HTTP errors.
        """
        raw = await self.list_applications_raw()
        items = [ApplicationItem.model_validate(a) for a in raw]
        return [Application(id=item.id, name=item.name) for item in items]

    async def get_violations_payload(self, application_id: int) -> Any:
        """
        Fetch the raw violations body for one application.

        Tries the healthrule-violations endpoint and falls back to the
        generic problems endpoint when the first is not found.

        Raises:
            UpstreamNotFound: Both endpoints returned 404.
            UpstreamError: On other HTTP errors.
        """
        params = _time_range(VIOLATION_LOOKBACK_MINUTES)
        base = f"/controller/rest/applications/{application_id}/problems"
        try:
            return await self._get(f"{base}/healthrule-violations", params)
        except UpstreamNotFound:
            logger.debug("healthrule-violations not found for app %s, trying problems", application_id)
            return await self._get(base, params)

    async def list_violations(self, application_id: int) -> list[Violation]:
        """List health rule violations for one application (last 24h)."""
        payload = await self.get_violations_payload(application_id)
        return normalize_violation_response(payload)

    async def get_raw_violations(self, application_id: int) -> list[dict[str, Any]]:
        """Health rule violations for one application as raw dicts."""
        payload = await self.get_violations_payload(application_id)
        return extract_raw_violations(payload)

    async def _violations_for(
        self, app: Application
    ) -> tuple[Application, list[Violation]] | None:
        try:
            violations = await self.list_violations(app.id)
        except UpstreamNotFound:
            # No violations endpoint configured for this application
            return None
        except Exception as e:
            # One application's bad feed must not hide the others
            logger.error(
                "Error fetching violations for application %s (%s): %s",
                app.id,
                app.name,
                e,
            )
            return None
        if not violations:
            return None
        return app, violations

    async def list_active_violations(self) -> list[tuple[Application, list[Violation]]]:
        """
        Fetch violations for every application.

        Per-application fetches run concurrently. Applications whose feed
        is not found, is empty, or fails are left out; failures are logged.
        Results keep application order.

        Raises:
            AuthConfigurationError: No credentials configured.
            UpstreamError: Listing applications failed.
        """
        applications = await self.list_applications()
        results = await asyncio.gather(*(self._violations_for(app) for app in applications))
        return [r for r in results if r is not None]

    # -------------------------------------------------------------------------
    # Diagnostics (read-only, used by the MCP tool server)
    # -------------------------------------------------------------------------

    async def list_business_transactions(self, application_id: int) -> Any:
        return await self._get(
            f"/controller/rest/applications/{application_id}/business-transactions"
        )

    async def get_metric_data(
        self, application_id: int, metric_path: str, duration_in_mins: int = 60
    ) -> Any:
        """Query any metric path in the application's metric tree."""
        return await self._get(
            f"/controller/rest/applications/{application_id}/metric-data",
            {"metric-path": metric_path, **_time_range(duration_in_mins)},
        )

    async def get_business_transaction_performance(
        self, application_id: int, bt_id: int, duration_in_mins: int = 60
    ) -> dict[str, Any] | None:
        """
        Collect the standard performance metrics for one business transaction.

        Returns:
            Dict with a "businessTransaction" summary plus one entry per
            metric that returned data, or None if the BT does not exist.
        """
        raw = await self.list_business_transactions(application_id)
        bts = [BusinessTransactionItem.model_validate(b) for b in raw or []]
        bt = next((b for b in bts if b.id == bt_id), None)
        if bt is None:
            return None

        async def fetch(metric: str) -> tuple[str, Any]:
            path = (
                "Business Transaction Performance|Business Transactions|"
                f"{bt.tierName}|{bt.name}|{metric}"
            )
            try:
                return metric, await self.get_metric_data(application_id, path, duration_in_mins)
            except UpstreamError as e:
                logger.debug("Metric %s unavailable for BT %s: %s", metric, bt_id, e)
                return metric, None

        result: dict[str, Any] = {
            "businessTransaction": {
                "id": bt.id,
                "name": bt.name,
                "tierName": bt.tierName,
                "entryPointType": bt.entryPointType,
            }
        }
        for metric, data in await asyncio.gather(*(fetch(m) for m in BT_METRIC_NAMES)):
            if isinstance(data, list) and data:
                result[metric] = data[0]
        return result

    async def get_tiers_and_nodes(self, application_id: int) -> list[dict[str, Any]]:
        """Tiers of an application, each with its nodes under "nodes"."""
        tiers, nodes = await asyncio.gather(
            self._get(f"/controller/rest/applications/{application_id}/tiers"),
            self._get(f"/controller/rest/applications/{application_id}/nodes"),
        )
        nodes_by_tier: dict[Any, list[dict[str, Any]]] = {}
        for node in nodes or []:
            nodes_by_tier.setdefault(node.get("tierId"), []).append(node)
        return [{**tier, "nodes": nodes_by_tier.get(tier.get("id"), [])} for tier in tiers or []]

    async def get_snapshots(
        self,
        application_id: int,
        duration_in_mins: int = 30,
        max_results: int = 20,
        guids: str | None = None,
        data_collector_name: str | None = None,
        data_collector_type: str | None = None,
        data_collector_value: str | None = None,
    ) -> Any:
        params: dict[str, Any] = {
            **_time_range(duration_in_mins),
            "maximum-results": max_results,
        }
        optional = {
            "guids": guids,
            "data-collector-name": data_collector_name,
            "data-collector-type": data_collector_type,
            "data-collector-value": data_collector_value,
        }
        params.update({k: v for k, v in optional.items() if v})
        return await self._get(
            f"/controller/rest/applications/{application_id}/request-snapshots", params
        )

    async def get_events(
        self,
        application_id: int,
        event_types: str,
        severities: str,
        duration_in_mins: int,
    ) -> Any:
        return await self._get(
            f"/controller/rest/applications/{application_id}/events",
            {
                **_time_range(duration_in_mins),
                "event-types": event_types,
                "severities": severities,
            },
        )

    async def get_errors(self, application_id: int, duration_in_mins: int = 60) -> Any:
        """Error and exception events for root-cause analysis."""
        return await self.get_events(
            application_id, ERROR_EVENT_TYPES, "ERROR,WARN", duration_in_mins
        )

    async def get_anomalies(
        self,
        application_id: int,
        duration_in_mins: int = 1440,
        severities: str = "INFO,WARN,ERROR",
    ) -> Any:
        return await self.get_events(
            application_id, ANOMALY_EVENT_TYPES, severities, duration_in_mins
        )
