"""Configuration for the geo-insights service.

The service is "credentials-late": it starts and answers health checks even if
no API keys are configured. Endpoints and workflow steps that need a provider
validate credentials at request time.

Configuration is loaded from:
- environment variables
- and a local `.env` file (if present)
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ServiceSettings(BaseSettings):
    """Settings for the engine, providers and REST API.

    Notes:
        Pydantic-settings supports overriding the env file in tests via:
        `ServiceSettings(_env_file=path_to_env)`.
    """

    ipgeolocation_api_key: str = Field(
        default="",
        validation_alias="IPGEOLOCATION_API_KEY",
        description="API key for ipgeolocation.io",
    )
    ipgeolocation_base_url: str = Field(
        default="https://api.ipgeolocation.io",
        validation_alias="IPGEOLOCATION_BASE_URL",
    )

    openai_api_key: str = Field(
        default="",
        validation_alias="OPENAI_API_KEY",
        description="OpenAI API key used for location insights",
    )
    openai_model: str = Field(default="gpt-4o-mini", validation_alias="OPENAI_MODEL")
    openai_temperature: float = Field(
        default=0.7,
        ge=0.0,
        le=2.0,
        validation_alias="OPENAI_TEMPERATURE",
    )

    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Root logging level",
    )
    environment: str = Field(default="development", validation_alias="ENVIRONMENT")

    step_timeout_seconds: float = Field(
        default=15.0,
        gt=0,
        validation_alias="GEO_INSIGHTS_STEP_TIMEOUT_SECONDS",
        description="Upper bound on a single workflow step's call to its provider.",
    )
    poll_interval_seconds: float = Field(
        default=2.0,
        gt=0,
        validation_alias="GEO_INSIGHTS_POLL_INTERVAL_SECONDS",
        description="Sampling interval for workflow update subscriptions.",
    )

    # When unset, executions live in memory only.
    executions_file: Path | None = Field(
        default=None,
        validation_alias="GEO_INSIGHTS_EXECUTIONS_FILE",
        description="JSON file used to persist workflow executions (best-effort).",
    )

    cors_origins: str = Field(
        default="*",
        validation_alias="GEO_INSIGHTS_CORS_ORIGINS",
        description="Comma-separated list of allowed CORS origins.",
    )

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )

    def parsed_cors_origins(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def geolocation_configured(self) -> bool:
        return bool(self.ipgeolocation_api_key.strip())

    @property
    def insights_configured(self) -> bool:
        return bool(self.openai_api_key.strip())
