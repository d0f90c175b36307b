"""
Configuration models and helpers.

Centralizes settings management so every entity store, the schema
reconciler and the maintenance scripts share one configuration surface.
Settings are read once at start-up and are immutable afterwards.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

BILLING_MODES = ("PAY_PER_REQUEST", "PROVISIONED")


class DynamoDBSettings(BaseSettings):
    """Settings for the DynamoDB tables backing the entity stores."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
        populate_by_name=True,
    )

    region_name: str = Field("us-east-1", validation_alias="AWS_REGION")
    endpoint_url: Optional[str] = Field(
        None,
        validation_alias="DYNAMODB_ENDPOINT_URL",
        description="Optional endpoint override, e.g. DynamoDB Local.",
    )
    applications_table_name: str = Field(
        "applications", validation_alias="DYNAMODB_APPLICATIONS_TABLE"
    )
    application_redirects_table_name: str = Field(
        "application_redirects",
        validation_alias="DYNAMODB_APPLICATION_REDIRECTS_TABLE",
    )
    authorizations_table_name: str = Field(
        "authorizations", validation_alias="DYNAMODB_AUTHORIZATIONS_TABLE"
    )
    scopes_table_name: str = Field("scopes", validation_alias="DYNAMODB_SCOPES_TABLE")
    scope_resources_table_name: str = Field(
        "scope_resources", validation_alias="DYNAMODB_SCOPE_RESOURCES_TABLE"
    )
    tokens_table_name: str = Field("tokens", validation_alias="DYNAMODB_TOKENS_TABLE")
    billing_mode: str = Field("PAY_PER_REQUEST", validation_alias="DYNAMODB_BILLING_MODE")
    read_capacity_units: int = Field(
        1,
        ge=1,
        validation_alias="DYNAMODB_READ_CAPACITY_UNITS",
        description="Only used when billing mode is PROVISIONED.",
    )
    write_capacity_units: int = Field(
        1,
        ge=1,
        validation_alias="DYNAMODB_WRITE_CAPACITY_UNITS",
        description="Only used when billing mode is PROVISIONED.",
    )
    table_ready_timeout_seconds: float = Field(
        3600.0,
        ge=0,
        validation_alias="DYNAMODB_TABLE_READY_TIMEOUT",
        description="Upper bound for waiting on a table or index to become ACTIVE.",
    )
    table_ready_poll_interval_seconds: float = Field(
        1.0, ge=0, validation_alias="DYNAMODB_TABLE_READY_POLL_INTERVAL"
    )
    table_ready_max_poll_interval_seconds: float = Field(
        20.0, ge=0, validation_alias="DYNAMODB_TABLE_READY_MAX_POLL_INTERVAL"
    )

    @field_validator("billing_mode", mode="before")
    @classmethod
    def _normalize_billing_mode(cls, value: str) -> str:
        """Accept billing modes in any case, e.g. ``provisioned``."""
        normalized = str(value).strip().upper()
        if normalized not in BILLING_MODES:
            raise ValueError(
                f"Unsupported billing mode {value!r}; expected one of {', '.join(BILLING_MODES)}."
            )
        return normalized

    @field_validator(
        "applications_table_name",
        "application_redirects_table_name",
        "authorizations_table_name",
        "scopes_table_name",
        "scope_resources_table_name",
        "tokens_table_name",
    )
    @classmethod
    def _require_table_name(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("Table names must not be blank.")
        return value.strip()

    @property
    def provisioned_throughput(self) -> Optional[dict[str, int]]:
        """Throughput block for create/update requests, if provisioned."""
        if self.billing_mode != "PROVISIONED":
            return None
        return {
            "ReadCapacityUnits": self.read_capacity_units,
            "WriteCapacityUnits": self.write_capacity_units,
        }


class AppSettings(BaseSettings):
    """Root settings object for processes hosting the stores."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
        populate_by_name=True,
    )

    environment: str = Field("development", validation_alias="APP_ENV")
    log_level: str = Field("INFO", validation_alias="APP_LOG_LEVEL")
    dynamodb: DynamoDBSettings = Field(default_factory=DynamoDBSettings)


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()


__all__ = [
    "AppSettings",
    "BILLING_MODES",
    "DynamoDBSettings",
    "get_settings",
]
