"""
Configuration for the secrets cache.

SecretsCacheConfig validates options passed in code; unknown options are
rejected. SecretsCacheSettings loads the same options from environment
variables (prefix ``SECRETS_CACHE_``) or a .env file using Pydantic Settings.

Invalid configuration raises pydantic.ValidationError at construction time,
before any client is created or any fetch is attempted.

Environment Variables:
    SECRETS_CACHE_SECRET_MAPPINGS (JSON object, required):
        Alias -> secret id/ARN, e.g. '{"db": "prod/database/credentials"}'
    SECRETS_CACHE_REGION (str, optional):
        AWS region; falls back to AWS_REGION, AWS_DEFAULT_REGION, then us-east-1
    SECRETS_CACHE_REFRESH_INTERVAL_SECONDS (float, default 300)
    SECRETS_CACHE_MAX_RETRIES (int, default 3)
    SECRETS_CACHE_RETRY_DELAY_SECONDS (float, default 1)
    SECRETS_CACHE_DISABLE_EVENTS (bool, default false)
"""

import os
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from aws_secrets_cache.source import DEFAULT_REGION


def _validate_mappings(value: dict[str, str]) -> dict[str, str]:
    if not value:
        raise ValueError("At least one secret mapping is required")
    for alias, secret_id in value.items():
        if not alias.strip():
            raise ValueError("Secret mapping aliases must be non-empty strings")
        if not secret_id.strip():
            raise ValueError(f"Secret mapping for alias '{alias}' must have a non-empty secret id")
    return value


class SecretsCacheConfig(BaseModel):
    """
    Validated cache configuration.

    Example:
        >>> config = SecretsCacheConfig(
        ...     secret_mappings={"db": "prod/database/credentials"},
        ...     refresh_interval_seconds=60,
        ... )
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    secret_mappings: dict[str, str] = Field(
        ...,
        description="Alias -> provider secret identifier (name or ARN)",
    )
    region: str = Field(
        default=DEFAULT_REGION,
        min_length=1,
        description="AWS region used when the default secret source is constructed",
    )
    refresh_interval_seconds: float = Field(
        default=300.0,
        gt=0,
        description="Time between scheduled refresh cycles",
    )
    max_retries: int = Field(
        default=3,
        ge=0,
        description="Retries after the first failed attempt (0 = single attempt)",
    )
    retry_delay_seconds: float = Field(
        default=1.0,
        gt=0,
        description="Base backoff delay, doubled after every failed attempt",
    )
    disable_events: bool = Field(
        default=False,
        description="Suppress all notifications (cache still updates)",
    )

    @field_validator("secret_mappings")
    @classmethod
    def validate_secret_mappings(cls, v: dict[str, str]) -> dict[str, str]:
        return _validate_mappings(v)


class SecretsCacheSettings(BaseSettings):
    """Environment-backed variant of SecretsCacheConfig."""

    model_config = SettingsConfigDict(
        env_prefix="SECRETS_CACHE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    secret_mappings: dict[str, str] = Field(default_factory=dict)
    region: str | None = None
    refresh_interval_seconds: float = Field(default=300.0, gt=0)
    max_retries: int = Field(default=3, ge=0)
    retry_delay_seconds: float = Field(default=1.0, gt=0)
    disable_events: bool = False

    def resolved_region(self) -> str:
        """Region priority: SECRETS_CACHE_REGION > AWS_REGION > AWS_DEFAULT_REGION > us-east-1."""
        return (
            self.region
            or os.environ.get("AWS_REGION")
            or os.environ.get("AWS_DEFAULT_REGION", DEFAULT_REGION)
        )

    def to_config(self, **overrides: Any) -> SecretsCacheConfig:
        """Validate these settings (plus explicit overrides) as a SecretsCacheConfig."""
        fields: dict[str, Any] = {
            "secret_mappings": self.secret_mappings,
            "region": self.resolved_region(),
            "refresh_interval_seconds": self.refresh_interval_seconds,
            "max_retries": self.max_retries,
            "retry_delay_seconds": self.retry_delay_seconds,
            "disable_events": self.disable_events,
        }
        return SecretsCacheConfig.model_validate({**fields, **overrides})
