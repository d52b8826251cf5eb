"""
Pydantic configuration model for the message queue.

Validates the transport config at initialization time instead of
silently passing bad values to the SQS / SNS clients.
"""

from __future__ import annotations

import os
from typing import Any
from pydantic import BaseModel, ConfigDict, Field, model_validator


class QueueConfig(BaseModel):
    """Configuration for the SQS / SNS transport.

    Credentials are resolved in order:
    1. Explicit values passed in the config dict.
    2. Environment variables (AWS_ACCESS_KEY_ID, AWS_SECRET_ACCESS_KEY,
       AWS_SESSION_TOKEN, AWS_DEFAULT_REGION, AWS_ENDPOINT_URL).
    3. If neither is set, fields are left as None so boto3 can fall back to its
       own credential chain (instance metadata, ~/.aws/credentials, etc.).
    """

    model_config = ConfigDict(extra="forbid")

    aws_access_key_id: str | None = Field(default=None, description="AWS access key ID")
    aws_secret_access_key: str | None = Field(default=None, description="AWS secret access key")
    aws_session_token: str | None = Field(default=None, description="Temporary session token")
    region_name: str | None = Field(default=None, description="AWS region (e.g. 'eu-central-1')")
    endpoint_url: str | None = Field(
        default=None, description="Override endpoint, e.g. a local SQS/SNS emulator"
    )
    wait_time_seconds: int = Field(
        default=10, ge=0, le=20, description="Long-poll wait for standard queue receives"
    )
    max_messages: int = Field(
        default=10, ge=1, le=10, description="Batch size requested per receive call"
    )

    @model_validator(mode="before")
    @classmethod
    def resolve_from_env(cls, values: dict[str, Any]) -> dict[str, Any]:
        """Fall back to environment variables for missing connection settings."""
        env_map = {
            "aws_access_key_id": "AWS_ACCESS_KEY_ID",
            "aws_secret_access_key": "AWS_SECRET_ACCESS_KEY",
            "aws_session_token": "AWS_SESSION_TOKEN",
            "region_name": "AWS_DEFAULT_REGION",
            "endpoint_url": "AWS_ENDPOINT_URL",
        }
        for field, env_var in env_map.items():
            if not values.get(field):
                values[field] = os.environ.get(env_var)
        return values


def validate_config(config: QueueConfig | dict | None = None) -> QueueConfig:
    """Validate and return a typed config model.

    Args:
        config: A ready :class:`QueueConfig`, a raw dictionary, or ``None``
            to build one purely from the environment.

    Returns:
        A validated :class:`QueueConfig`.

    Raises:
        pydantic.ValidationError: If the config is invalid.
    """
    if isinstance(config, QueueConfig):
        return config
    return QueueConfig(**(config or {}))


__all__ = [
    "QueueConfig",
    "validate_config",
]
