"""
Pydantic configuration models for the CPI.

Validates the CPI config at construction time instead of silently
passing bad values to the provider client or the registry.
"""

from __future__ import annotations

import os
from typing import Any
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

DEFAULT_AVAILABILITY_ZONE = "us-east-1a"


class AWSConfig(BaseModel):
    """Configuration for the EC2 provider client.

    Credentials are resolved in order:
    1. Explicit values passed in the config dict.
    2. Environment variables (AWS_ACCESS_KEY_ID, AWS_SECRET_ACCESS_KEY, AWS_DEFAULT_REGION).
    3. If neither is set, fields are left as None so boto3 can fall back to its
       own credential chain (instance metadata, ~/.aws/credentials, etc.).
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    aws_access_key_id: str | None = Field(default=None, description="AWS access key ID")
    aws_secret_access_key: str | None = Field(default=None, description="AWS secret access key")
    region_name: str | None = Field(default=None, description="AWS region (e.g. 'us-east-1')")
    max_attempts: int = Field(
        default=3, ge=1, description="Attempts per EC2 call on throttling / connection errors"
    )

    @model_validator(mode="before")
    @classmethod
    def resolve_from_env(cls, values: dict[str, Any]) -> dict[str, Any]:
        """Fall back to environment variables for missing credentials."""
        if not isinstance(values, dict):
            return values
        env_map = {
            "aws_access_key_id": "AWS_ACCESS_KEY_ID",
            "aws_secret_access_key": "AWS_SECRET_ACCESS_KEY",
            "region_name": "AWS_DEFAULT_REGION",
        }
        for field, env_var in env_map.items():
            if not values.get(field):
                values[field] = os.environ.get(env_var)
        return values


class RegistryConfig(BaseModel):
    """Connection settings for the agent settings registry."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    endpoint: str = Field(description="Registry base URL (e.g. 'http://registry:3333')")
    user: str | None = Field(default=None, description="Basic auth user")
    password: str | None = Field(default=None, description="Basic auth password")
    timeout: float = Field(default=30.0, gt=0, description="HTTP timeout in seconds")

    @model_validator(mode="before")
    @classmethod
    def resolve_from_env(cls, values: dict[str, Any]) -> dict[str, Any]:
        """Fall back to ``CPI_REGISTRY_*`` environment variables."""
        if not isinstance(values, dict):
            return values
        env_map = {
            "endpoint": "CPI_REGISTRY_ENDPOINT",
            "user": "CPI_REGISTRY_USER",
            "password": "CPI_REGISTRY_PASSWORD",
        }
        for field, env_var in env_map.items():
            if not values.get(field) and os.environ.get(env_var):
                values[field] = os.environ[env_var]
        return values

    @field_validator("endpoint")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


class CPIConfig(BaseModel):
    """Immutable configuration handed to :class:`cpi.cloud.Cloud`.

    ``agent`` holds extra key/value pairs merged at the top level of every
    agent settings document (e.g. blobstore or mbus settings).
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    aws: AWSConfig = Field(default_factory=AWSConfig)
    registry: RegistryConfig
    default_availability_zone: str = Field(default=DEFAULT_AVAILABILITY_ZONE)
    default_key_name: str | None = Field(
        default=None, description="Key pair used when the resource pool names none"
    )
    default_security_groups: list[str] = Field(
        default_factory=lambda: ["default"],
        description="Groups requested when no network declares any",
    )
    wait_timeout: float = Field(
        default=600.0, gt=0, description="Seconds to wait for an instance to reach running"
    )
    agent: dict[str, Any] = Field(default_factory=dict)


# Map provider names to their config models for dynamic validation
CONFIG_REGISTRY: dict[str, type[BaseModel]] = {
    "aws": CPIConfig,
}


def validate_config(cloud_provider: str, config: dict) -> CPIConfig:
    """Validate and return a typed config model for the given provider.

    Args:
        cloud_provider: The cloud provider name (e.g. 'aws').
        config: Raw configuration dictionary.

    Returns:
        A validated :class:`CPIConfig`.

    Raises:
        ValueError: If the provider is unknown.
        pydantic.ValidationError: If the config is invalid.
    """
    model = CONFIG_REGISTRY.get(cloud_provider)
    if model is None:
        raise ValueError(f"No config model registered for provider: {cloud_provider}")
    return model(**config)  # type: ignore[return-value]


__all__ = [
    "DEFAULT_AVAILABILITY_ZONE",
    "AWSConfig",
    "RegistryConfig",
    "CPIConfig",
    "CONFIG_REGISTRY",
    "validate_config",
]
