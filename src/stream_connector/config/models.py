"""Pydantic configuration models for stream connectors."""

from __future__ import annotations

from enum import StrEnum
from typing import Any, Self

from pydantic import BaseModel, ConfigDict, Field, SecretStr, model_validator


class SourceType(StrEnum):
    """Built-in source types."""

    AWS_KINESIS = "awskinesis"


class KinesisSourceConfig(BaseModel):
    """Amazon Kinesis Data Streams source configuration.

    Field names follow the connector blob format (``streamName``,
    ``awsAccessKeyId`` ...); snake_case names are accepted as well.
    Static credentials are only used when both the key id and the secret
    are present, otherwise boto3's default credential chain applies.
    Keys the connector does not know are ignored.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    stream_name: str = Field(alias="streamName", min_length=1)
    region: str = Field(min_length=1)
    aws_access_key_id: str | None = Field(default=None, alias="awsAccessKeyId")
    aws_secret_access_key: SecretStr | None = Field(
        default=None, alias="awsSecretAccessKey"
    )
    aws_session_token: SecretStr | None = Field(default=None, alias="awsSessionToken")
    # LocalStack or VPC endpoint override
    endpoint_url: str | None = Field(default=None, alias="endpointUrl")
    # GetRecords Limit; None leaves the service default
    max_records: int | None = Field(default=None, alias="maxRecords", ge=1, le=10000)
    fetch_timeout_seconds: float | None = Field(
        default=None, alias="fetchTimeoutSeconds", gt=0
    )

    @property
    def has_static_credentials(self) -> bool:
        return bool(self.aws_access_key_id) and bool(
            self.aws_secret_access_key and self.aws_secret_access_key.get_secret_value()
        )


class RunnerConfig(BaseModel):
    """Host-side polling settings for :class:`SourceRunner`."""

    poll_interval_seconds: float = Field(default=1.0, gt=0)
    checkpoint_file: str | None = None


class ConnectorFileConfig(BaseModel, extra="forbid"):
    """A connector definition file: source type, source blob, runner tuning."""

    source_type: str = SourceType.AWS_KINESIS.value
    source: dict[str, Any]
    runner: RunnerConfig = RunnerConfig()

    @model_validator(mode="after")
    def check_source_not_empty(self) -> Self:
        if not self.source:
            msg = "source config must not be empty"
            raise ValueError(msg)
        return self
