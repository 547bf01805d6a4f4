"""Environment-based configuration for the violation bridge."""

from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Bridge configuration.

    All settings come from environment variables (or a local .env file).
    For example:
        APPD_CLIENT_NAME=monitor APPD_CLIENT_SECRET=... APPD_ACCOUNT_NAME=acme
        JIRA_URL=https://acme.atlassian.net JIRA_TOKEN=...
    """

    # Controller
    appd_url: str = Field(
        "https://experience.saas.appdynamics.com",
        validation_alias="APPD_URL",
    )
    appd_client_name: str | None = Field(
        None,
        validation_alias=AliasChoices("APPD_CLIENT_NAME", "APPD_API_KEY"),
    )
    appd_client_secret: str | None = Field(None, validation_alias="APPD_CLIENT_SECRET")
    appd_account_name: str | None = Field(None, validation_alias="APPD_ACCOUNT_NAME")

    # Jira
    jira_url: str | None = Field(None, validation_alias="JIRA_URL")
    jira_username: str | None = Field(None, validation_alias="JIRA_USERNAME")
    jira_token: str | None = Field(None, validation_alias="JIRA_TOKEN")
    jira_project_key: str = Field("TAF", validation_alias="JIRA_PROJECT_KEY")

    # Monitor
    check_interval_ms: int = Field(60000, gt=0, validation_alias="CHECK_INTERVAL_MS")
    state_file: Path = Field(Path("violations-state.json"), validation_alias="STATE_FILE")
    request_timeout_seconds: float = Field(
        30.0, gt=0, validation_alias="REQUEST_TIMEOUT_SECONDS"
    )
    log_level: str = Field("INFO", validation_alias="LOG_LEVEL")

    model_config = SettingsConfigDict(
        env_file=".env", extra="ignore", populate_by_name=True
    )

    @property
    def check_interval_seconds(self) -> float:
        return self.check_interval_ms / 1000


def get_settings() -> Settings:
    """Load settings from the environment."""
    return Settings()
