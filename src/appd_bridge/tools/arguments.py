"""
Pydantic argument models for the MCP tools.

Field aliases match the camelCase/dashed names agents send. Each model's
JSON schema (by alias) is published as the tool's inputSchema.
"""

from pydantic import BaseModel, ConfigDict, Field


class ToolArgs(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class NoArgs(ToolArgs):
    pass


class OptionalApplicationArgs(ToolArgs):
    application_id: int | None = Field(
        None,
        alias="applicationId",
        description="Optional: The ID of the application. If not provided, checks all applications.",
    )


class ApplicationArgs(ToolArgs):
    application_id: int = Field(..., alias="applicationId", description="The ID of the application.")


class BtPerformanceArgs(ApplicationArgs):
    bt_id: int = Field(..., alias="btId", description="The ID of the business transaction.")
    duration_in_mins: int = Field(
        60,
        gt=0,
        alias="durationInMins",
        description="Optional: Time range in minutes to look back. Defaults to 60 (last hour).",
    )


class SnapshotArgs(ApplicationArgs):
    duration_in_mins: int = Field(
        30,
        gt=0,
        alias="durationInMins",
        description="Optional: Time range in minutes to look back. Defaults to 30.",
    )
    guids: str | None = Field(
        None, description="Optional: Comma-separated request GUIDs to retrieve specific snapshots."
    )
    data_collector_name: str | None = Field(
        None, alias="data-collector-name", description="Optional: Filter by data collector name."
    )
    data_collector_type: str | None = Field(
        None, alias="data-collector-type", description="Optional: Filter by data collector type."
    )
    data_collector_value: str | None = Field(
        None, alias="data-collector-value", description="Optional: Filter by data collector value."
    )
    max_results: int = Field(
        20,
        gt=0,
        alias="maxResults",
        description="Optional: Maximum number of snapshots to return. Defaults to 20.",
    )


class ErrorsArgs(ApplicationArgs):
    duration_in_mins: int = Field(
        60,
        gt=0,
        alias="durationInMins",
        description="Optional: Time range in minutes to look back. Defaults to 60.",
    )


class MetricDataArgs(ApplicationArgs):
    metric_path: str = Field(
        ...,
        alias="metricPath",
        description=(
            "The metric path to query (e.g. 'Overall Application Performance|"
            "Average Response Time (ms)')."
        ),
    )
    duration_in_mins: int = Field(
        60,
        gt=0,
        alias="durationInMins",
        description="Optional: Time range in minutes to look back. Defaults to 60.",
    )


class AnomalyArgs(OptionalApplicationArgs):
    duration_in_mins: int = Field(
        1440,
        gt=0,
        alias="durationInMins",
        description="Optional: Time range in minutes to look back. Defaults to 1440 (last 24 hours).",
    )
    severities: str = Field(
        "INFO,WARN,ERROR",
        description="Optional: Comma-separated severity levels to include. Defaults to 'INFO,WARN,ERROR'.",
    )
