"""
Read-only controller queries exposed as agent tools.

Each tool is a ToolSpec pairing a name and description with a pydantic
argument model and an async handler. Handlers translate arguments into
ControllerClient calls and return JSON-serializable data; they hold no
state of their own.

dispatch() is transport-independent: it validates arguments, runs the
handler and renders the result (or error) as text. The MCP server in
appd_bridge.tools.server is a thin adapter over it.
"""

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from appd_bridge.appd.client import ControllerClient
from appd_bridge.exceptions import BridgeError, UpstreamNotFound
from appd_bridge.tools.arguments import (
    AnomalyArgs,
    ApplicationArgs,
    BtPerformanceArgs,
    ErrorsArgs,
    MetricDataArgs,
    NoArgs,
    OptionalApplicationArgs,
    SnapshotArgs,
    ToolArgs,
)

logger = logging.getLogger(__name__)

Handler = Callable[[ControllerClient, Any], Awaitable[Any]]


class ToolInputError(BridgeError):
    """Arguments were valid but refer to something that does not exist."""


@dataclass(frozen=True)
class ToolSpec:
    name: str
    description: str
    args_model: type[ToolArgs]
    handler: Handler

    def input_schema(self) -> dict[str, Any]:
        schema = self.args_model.model_json_schema(by_alias=True)
        schema.pop("title", None)
        return schema


@dataclass(frozen=True)
class ToolResult:
    """Text payload of a tool call, flagged if it describes an error."""

    text: str
    is_error: bool = False

    @classmethod
    def error(cls, message: str) -> "ToolResult":
        return cls(text=f"Error: {message}", is_error=True)


# -----------------------------------------------------------------------------
# Handlers
# -----------------------------------------------------------------------------


async def get_applications(client: ControllerClient, args: NoArgs) -> Any:
    return await client.list_applications_raw()


async def get_health_violations(
    client: ControllerClient, args: OptionalApplicationArgs
) -> Any:
    if args.application_id is not None:
        return await client.get_raw_violations(args.application_id)
    return [
        {
            "applicationId": app.id,
            "applicationName": app.name,
            "violations": [v.raw for v in violations],
        }
        for app, violations in await client.list_active_violations()
    ]


async def get_business_transactions(client: ControllerClient, args: ApplicationArgs) -> Any:
    return await client.list_business_transactions(args.application_id)


async def get_bt_performance(client: ControllerClient, args: BtPerformanceArgs) -> Any:
    result = await client.get_business_transaction_performance(
        args.application_id, args.bt_id, args.duration_in_mins
    )
    if result is None:
        raise ToolInputError(f"Business transaction with ID {args.bt_id} not found.")
    return result


async def get_tiers_and_nodes(client: ControllerClient, args: ApplicationArgs) -> Any:
    return await client.get_tiers_and_nodes(args.application_id)


async def get_snapshots(client: ControllerClient, args: SnapshotArgs) -> Any:
    return await client.get_snapshots(
        args.application_id,
        duration_in_mins=args.duration_in_mins,
        max_results=args.max_results,
        guids=args.guids,
        data_collector_name=args.data_collector_name,
        data_collector_type=args.data_collector_type,
        data_collector_value=args.data_collector_value,
    )


async def get_errors(client: ControllerClient, args: ErrorsArgs) -> Any:
    return await client.get_errors(args.application_id, args.duration_in_mins)


async def get_metric_data(client: ControllerClient, args: MetricDataArgs) -> Any:
    return await client.get_metric_data(
        args.application_id, args.metric_path, args.duration_in_mins
    )


async def get_anomalies(client: ControllerClient, args: AnomalyArgs) -> Any:
    if args.application_id is not None:
        return await client.get_anomalies(
            args.application_id, args.duration_in_mins, args.severities
        )

    applications = await client.list_applications()

    async def for_app(app):
        try:
            events = await client.get_anomalies(app.id, args.duration_in_mins, args.severities)
        except UpstreamNotFound:
            return None
        except BridgeError as e:
            logger.error("Error fetching anomalies for application %s (%s): %s", app.id, app.name, e)
            return None
        if not isinstance(events, list) or not events:
            return None
        return {"applicationId": app.id, "applicationName": app.name, "anomalies": events}

    results = await asyncio.gather(*(for_app(app) for app in applications))
    return [r for r in results if r is not None]


TOOLS: tuple[ToolSpec, ...] = (
    ToolSpec(
        "get_applications",
        "Retrieve a list of all business applications from AppDynamics",
        NoArgs,
        get_applications,
    ),
    ToolSpec(
        "get_health_violations",
        "Retrieve health rule violations for a specific application or all applications. "
        "If applicationId is not provided, returns violations for all applications.",
        OptionalApplicationArgs,
        get_health_violations,
    ),
    ToolSpec(
        "get_business_transactions",
        "Retrieve a list of all business transactions for a given application.",
        ApplicationArgs,
        get_business_transactions,
    ),
    ToolSpec(
        "get_bt_performance",
        "Retrieve performance metrics (average response time, calls per minute, "
        "errors per minute) for a specific business transaction.",
        BtPerformanceArgs,
        get_bt_performance,
    ),
    ToolSpec(
        "get_tiers_and_nodes",
        "Retrieve the tiers and nodes (infrastructure topology) for a given application.",
        ApplicationArgs,
        get_tiers_and_nodes,
    ),
    ToolSpec(
        "get_snapshots",
        "Retrieve transaction snapshots (slow, error, stall) for an application. "
        "Snapshots provide deep diagnostic details for individual requests.",
        SnapshotArgs,
        get_snapshots,
    ),
    ToolSpec(
        "get_errors",
        "Retrieve error and exception events for an application. "
        "Useful for root-cause analysis of failures.",
        ErrorsArgs,
        get_errors,
    ),
    ToolSpec(
        "get_metric_data",
        "Retrieve any metric data from AppDynamics using a metric path.",
        MetricDataArgs,
        get_metric_data,
    ),
    ToolSpec(
        "get_anomalies",
        "Retrieve anomaly detection events for a specific application or all applications. "
        "Returns events such as anomaly openings, closings, upgrades, and downgrades.",
        AnomalyArgs,
        get_anomalies,
    ),
)

TOOLS_BY_NAME = {tool.name: tool for tool in TOOLS}


async def dispatch(
    name: str, arguments: dict[str, Any] | None, client: ControllerClient
) -> ToolResult:
    """
    Run a tool by name.

    Returns:
        Pretty-printed JSON on success, or an error result. Never raises
        for unknown tools, bad arguments or controller failures.
    """
    tool = TOOLS_BY_NAME.get(name)
    if tool is None:
        return ToolResult.error(f"Tool not found: {name}")

    try:
        args = tool.args_model.model_validate(arguments or {})
    except ValidationError as e:
        return ToolResult.error(f"Invalid arguments for {name}: {e}")

    try:
        data = await tool.handler(client, args)
    except (BridgeError, ValidationError) as e:
        logger.error("Tool %s failed: %s", name, e)
        return ToolResult.error(str(e))

    return ToolResult(text=json.dumps(data, indent=2, default=str))
