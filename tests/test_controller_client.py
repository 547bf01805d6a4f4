"""
Tests for the AppDynamics controller client.

These tests verify the ControllerClient correctly:
- Exchanges client credentials for a token and caches it
- Uses name@account as client_id when an account is set
- Falls back to the API key as bearer value when no secret is set
- Shares one in-flight token refresh between concurrent callers
- Falls back from healthrule-violations to problems on 404
- Isolates per-application failures in list_active_violations
"""

import asyncio
import time
from urllib.parse import parse_qs

import httpx
import pytest

from appd_bridge.appd.client import TOKEN_EXPIRY_MARGIN_SECONDS, ControllerClient
from appd_bridge.exceptions import AuthConfigurationError, UpstreamError, UpstreamNotFound

BASE_URL = "https://controller.test"


class FakeController:
    """Routes requests by path and records what was asked."""

    def __init__(self, routes: dict[str, object] | None = None, expires_in: int = 3600):
        self.routes = routes or {}
        self.expires_in = expires_in
        self.token_requests: list[dict[str, list[str]]] = []
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path == "/controller/api/oauth/access_token":
            self.token_requests.append(parse_qs(request.content.decode()))
            return httpx.Response(
                200,
                json={"access_token": f"token-{len(self.token_requests)}", "expires_in": self.expires_in},
            )
        route = self.routes.get(path)
        if route is None:
            return httpx.Response(404, text="not found")
        if isinstance(route, httpx.Response):
            return route
        return httpx.Response(200, json=route)


def make_client(fake: FakeController, **kwargs) -> ControllerClient:
    kwargs.setdefault("client_name", "monitor")
    kwargs.setdefault("client_secret", "s3cret")
    http = httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(fake.handler))
    return ControllerClient(http=http, **kwargs)


class TestAuthentication:
    @pytest.mark.asyncio
    async def test_client_credentials_exchange(self):
        fake = FakeController()
        client = make_client(fake, account_name="acme")

        token = await client.get_access_token()

        assert token.value == "token-1"
        form = fake.token_requests[0]
        assert form["grant_type"] == ["client_credentials"]
        assert form["client_id"] == ["monitor@acme"]
        assert form["client_secret"] == ["s3cret"]

    @pytest.mark.asyncio
    async def test_client_id_without_account(self):
        fake = FakeController()
        client = make_client(fake)

        await client.get_access_token()

        assert fake.token_requests[0]["client_id"] == ["monitor"]

    @pytest.mark.asyncio
    async def test_token_is_cached(self):
        fake = FakeController()
        client = make_client(fake)

        first = await client.get_access_token()
        second = await client.get_access_token()

        assert first is second
        assert len(fake.token_requests) == 1

    @pytest.mark.asyncio
    async def test_token_expires_with_safety_margin(self):
        fake = FakeController(expires_in=3600)
        client = make_client(fake)

        token = await client.get_access_token()

        remaining = token.expires_at - time.monotonic()
        assert 3600 - TOKEN_EXPIRY_MARGIN_SECONDS - 5 < remaining <= 3600 - TOKEN_EXPIRY_MARGIN_SECONDS

    @pytest.mark.asyncio
    async def test_token_shorter_than_margin_is_refreshed(self):
        fake = FakeController(expires_in=TOKEN_EXPIRY_MARGIN_SECONDS)
        client = make_client(fake)

        await client.get_access_token()
        await client.get_access_token()

        assert len(fake.token_requests) == 2

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_refresh(self):
        fake = FakeController()
        client = make_client(fake)

        tokens = await asyncio.gather(*(client.get_access_token() for _ in range(10)))

        assert len(fake.token_requests) == 1
        assert {t.value for t in tokens} == {"token-1"}

    @pytest.mark.asyncio
    async def test_api_key_fallback(self):
        fake = FakeController(routes={"/controller/rest/applications": []})
        client = make_client(fake, client_name="api-key-123", client_secret=None)

        token = await client.get_access_token()
        await client.list_applications()

        assert token.value == "api-key-123"
        assert token.is_valid()
        assert fake.token_requests == []
        assert fake.requests[-1].headers["Authorization"] == "Bearer api-key-123"

    @pytest.mark.asyncio
    async def test_missing_credentials(self):
        client = make_client(FakeController(), client_name=None, client_secret=None)

        with pytest.raises(AuthConfigurationError):
            await client.get_access_token()

    @pytest.mark.asyncio
    async def test_oauth_failure_raises_upstream_error(self):
        def handler(request):
            return httpx.Response(401, json={"error": "invalid_client"})

        http = httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(handler))
        client = ControllerClient(http=http, client_name="monitor", client_secret="bad")

        with pytest.raises(UpstreamError) as exc_info:
            await client.get_access_token()
        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_token_response_without_token(self):
        def handler(request):
            return httpx.Response(200, json={"expires_in": 300})

        http = httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(handler))
        client = ControllerClient(http=http, client_name="monitor", client_secret="s")

        with pytest.raises(UpstreamError, match="No access token"):
            await client.get_access_token()


class TestRequests:
    @pytest.mark.asyncio
    async def test_requests_carry_bearer_and_json_output(self):
        fake = FakeController(routes={"/controller/rest/applications": [{"id": 1, "name": "shop"}]})
        client = make_client(fake)

        apps = await client.list_applications()

        assert [(a.id, a.name) for a in apps] == [(1, "shop")]
        request = fake.requests[-1]
        assert request.headers["Authorization"] == "Bearer token-1"
        assert request.url.params["output"] == "JSON"

    @pytest.mark.asyncio
    async def test_http_error_raises_upstream_error(self):
        fake = FakeController(
            routes={"/controller/rest/applications": httpx.Response(500, text="boom")}
        )
        client = make_client(fake)

        with pytest.raises(UpstreamError) as exc_info:
            await client.list_applications()
        assert exc_info.value.status_code == 500
        assert exc_info.value.body == "boom"

    @pytest.mark.asyncio
    async def test_timeout_raises_upstream_error(self):
        def handler(request):
            if request.url.path.endswith("access_token"):
                return httpx.Response(200, json={"access_token": "t", "expires_in": 3600})
            raise httpx.ReadTimeout("timed out", request=request)

        http = httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(handler))
        client = ControllerClient(http=http, client_name="monitor", client_secret="s")

        with pytest.raises(UpstreamError):
            await client.list_applications()


class TestViolations:
    @pytest.mark.asyncio
    async def test_primary_endpoint(self):
        fake = FakeController(
            routes={
                "/controller/rest/applications/1/problems/healthrule-violations": [
                    {"id": 100, "incidentStatus": "OPEN"}
                ]
            }
        )
        client = make_client(fake)

        violations = await client.list_violations(1)

        assert [v.id for v in violations] == ["100"]
        params = fake.requests[-1].url.params
        assert params["time-range-type"] == "BEFORE_NOW"
        assert params["duration-in-mins"] == "1440"

    @pytest.mark.asyncio
    async def test_falls_back_to_problems_on_404(self):
        fake = FakeController(
            routes={
                "/controller/rest/applications/1/problems": {
                    "problems": [
                        {"id": 5, "type": "HEALTH_RULE_VIOLATION"},
                        {"id": 6, "type": "OTHER"},
                    ]
                }
            }
        )
        client = make_client(fake)

        violations = await client.list_violations(1)

        assert [v.id for v in violations] == ["5"]

    @pytest.mark.asyncio
    async def test_both_endpoints_missing_raises_not_found(self):
        client = make_client(FakeController())

        with pytest.raises(UpstreamNotFound):
            await client.list_violations(1)

    @pytest.mark.asyncio
    async def test_active_violations_isolates_failures(self):
        fake = FakeController(
            routes={
                "/controller/rest/applications": [
                    {"id": 1, "name": "ok"},
                    {"id": 2, "name": "broken"},
                    {"id": 3, "name": "unconfigured"},
                    {"id": 4, "name": "quiet"},
                ],
                "/controller/rest/applications/1/problems/healthrule-violations": [
                    {"id": 100, "incidentStatus": "OPEN"}
                ],
                "/controller/rest/applications/2/problems/healthrule-violations": httpx.Response(
                    500, text="internal"
                ),
                "/controller/rest/applications/4/problems/healthrule-violations": [],
            }
        )
        client = make_client(fake)

        result = await client.list_active_violations()

        assert [(app.name, [v.id for v in vs]) for app, vs in result] == [("ok", ["100"])]

    @pytest.mark.asyncio
    async def test_odd_entity_definition_does_not_hide_other_applications(self):
        fake = FakeController(
            routes={
                "/controller/rest/applications": [{"id": 1, "name": "odd"}, {"id": 2, "name": "ok"}],
                "/controller/rest/applications/1/problems/healthrule-violations": [
                    {"id": 10, "affectedEntityDefinition": "odd", "triggeredEntityDefinition": 3}
                ],
                "/controller/rest/applications/2/problems/healthrule-violations": [
                    {"id": 20, "affectedEntityDefinition": {"name": "/pay", "entityId": 9}}
                ],
            }
        )
        client = make_client(fake)

        result = await client.list_active_violations()

        assert [(app.name, [v.id for v in vs]) for app, vs in result] == [
            ("odd", ["10"]),
            ("ok", ["20"]),
        ]
        odd = result[0][1][0]
        assert odd.affected_entity_name is None
        assert odd.policy_name is None

    @pytest.mark.asyncio
    async def test_unexpected_error_in_one_application_is_isolated(self, monkeypatch):
        fake = FakeController(
            routes={
                "/controller/rest/applications": [{"id": 1, "name": "bad"}, {"id": 2, "name": "ok"}],
                "/controller/rest/applications/2/problems/healthrule-violations": [{"id": 20}],
            }
        )
        client = make_client(fake)
        real_list_violations = client.list_violations

        async def list_violations(application_id):
            if application_id == 1:
                raise AttributeError("'str' object has no attribute 'get'")
            return await real_list_violations(application_id)

        monkeypatch.setattr(client, "list_violations", list_violations)

        result = await client.list_active_violations()

        assert [(app.name, [v.id for v in vs]) for app, vs in result] == [("ok", ["20"])]

    @pytest.mark.asyncio
    async def test_active_violations_keeps_application_order(self):
        fake = FakeController(
            routes={
                "/controller/rest/applications": [{"id": 2, "name": "b"}, {"id": 1, "name": "a"}],
                "/controller/rest/applications/1/problems/healthrule-violations": [{"id": 10}],
                "/controller/rest/applications/2/problems/healthrule-violations": [{"id": 20}],
            }
        )
        client = make_client(fake)

        result = await client.list_active_violations()

        assert [app.name for app, _ in result] == ["b", "a"]

    @pytest.mark.asyncio
    async def test_active_violations_propagates_application_list_failure(self):
        fake = FakeController(
            routes={"/controller/rest/applications": httpx.Response(503, text="down")}
        )
        client = make_client(fake)

        with pytest.raises(UpstreamError):
            await client.list_active_violations()


class TestDiagnostics:
    @pytest.mark.asyncio
    async def test_tiers_and_nodes_are_grouped(self):
        fake = FakeController(
            routes={
                "/controller/rest/applications/1/tiers": [{"id": 10, "name": "web"}, {"id": 11, "name": "db"}],
                "/controller/rest/applications/1/nodes": [
                    {"id": 1, "name": "web-1", "tierId": 10},
                    {"id": 2, "name": "web-2", "tierId": 10},
                ],
            }
        )
        client = make_client(fake)

        result = await client.get_tiers_and_nodes(1)

        assert [len(t["nodes"]) for t in result] == [2, 0]

    @pytest.mark.asyncio
    async def test_bt_performance_collects_available_metrics(self):
        fake = FakeController(
            routes={
                "/controller/rest/applications/1/business-transactions": [
                    {"id": 7, "name": "/checkout", "tierName": "web", "entryPointType": "SERVLET"}
                ],
                "/controller/rest/applications/1/metric-data": [{"metricName": "x", "metricValues": []}],
            }
        )
        client = make_client(fake)

        result = await client.get_business_transaction_performance(1, 7, 15)

        assert result["businessTransaction"]["name"] == "/checkout"
        assert "Average Response Time (ms)" in result
        metric_requests = [r for r in fake.requests if r.url.path.endswith("metric-data")]
        assert len(metric_requests) == 6
        assert all(r.url.params["duration-in-mins"] == "15" for r in metric_requests)
        assert any(
            r.url.params["metric-path"]
            == "Business Transaction Performance|Business Transactions|web|/checkout|Stall Count"
            for r in metric_requests
        )

    @pytest.mark.asyncio
    async def test_bt_performance_unknown_bt(self):
        fake = FakeController(
            routes={"/controller/rest/applications/1/business-transactions": []}
        )
        client = make_client(fake)

        assert await client.get_business_transaction_performance(1, 99) is None

    @pytest.mark.asyncio
    async def test_snapshots_pass_only_given_filters(self):
        fake = FakeController(routes={"/controller/rest/applications/1/request-snapshots": []})
        client = make_client(fake)

        await client.get_snapshots(1, guids="abc", data_collector_type="http")

        params = fake.requests[-1].url.params
        assert params["maximum-results"] == "20"
        assert params["duration-in-mins"] == "30"
        assert params["guids"] == "abc"
        assert params["data-collector-type"] == "http"
        assert "data-collector-name" not in params
