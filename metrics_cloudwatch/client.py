# Copyright 2025 ATP Project Contributors
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
CloudWatch Client

Builds the boto3 CloudWatch client the reporter publishes through.
"""

import logging
import os
from dataclasses import dataclass
from typing import Any

import boto3
from botocore.config import Config

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CloudWatchSettings:
    """Connection settings for the CloudWatch API.

    Attributes:
        region: AWS region
        endpoint_url: Custom endpoint for LocalStack/testing
        access_key_id: optional if using IAM roles
        secret_access_key: optional if using IAM roles
        connect_timeout: seconds to wait for a connection
        read_timeout: seconds to wait for a PutMetricData response
        max_attempts: total attempts per call; 1 disables botocore retries
    """

    region: str = "us-east-1"
    endpoint_url: str | None = None
    access_key_id: str | None = None
    secret_access_key: str | None = None
    connect_timeout: float = 5.0
    read_timeout: float = 10.0
    max_attempts: int = 1

    @classmethod
    def from_environment(cls) -> "CloudWatchSettings":
        """Load settings from environment variables.

        Environment variables (checked in order):
            - METRICS_CLOUDWATCH_REGION / AWS_DEFAULT_REGION / AWS_REGION -> region
            - METRICS_CLOUDWATCH_ENDPOINT_URL / AWS_ENDPOINT_URL -> endpoint_url
            - AWS_ACCESS_KEY_ID, AWS_SECRET_ACCESS_KEY -> credentials
            - METRICS_CLOUDWATCH_CONNECT_TIMEOUT, METRICS_CLOUDWATCH_READ_TIMEOUT
        """
        region = (
            os.environ.get("METRICS_CLOUDWATCH_REGION")
            or os.environ.get("AWS_DEFAULT_REGION")
            or os.environ.get("AWS_REGION")
            or "us-east-1"
        )

        kwargs: dict[str, Any] = {}
        for env, key in (
            ("METRICS_CLOUDWATCH_CONNECT_TIMEOUT", "connect_timeout"),
            ("METRICS_CLOUDWATCH_READ_TIMEOUT", "read_timeout"),
        ):
            if os.environ.get(env):
                try:
                    kwargs[key] = float(os.environ[env])
                except ValueError:
                    raise ConfigurationError(f"{env} must be a number of seconds.")

        return cls(
            region=region,
            endpoint_url=os.environ.get("METRICS_CLOUDWATCH_ENDPOINT_URL") or os.environ.get("AWS_ENDPOINT_URL"),
            access_key_id=os.environ.get("AWS_ACCESS_KEY_ID"),
            secret_access_key=os.environ.get("AWS_SECRET_ACCESS_KEY"),
            **kwargs,
        )

    def to_boto3_kwargs(self) -> dict[str, Any]:
        """Build kwargs for ``boto3.client``."""
        kwargs: dict[str, Any] = {
            "region_name": self.region,
            "config": Config(
                connect_timeout=self.connect_timeout,
                read_timeout=self.read_timeout,
                retries={"max_attempts": self.max_attempts},
            ),
        }
        if self.endpoint_url:
            kwargs["endpoint_url"] = self.endpoint_url
        if self.access_key_id:
            kwargs["aws_access_key_id"] = self.access_key_id
        if self.secret_access_key:
            kwargs["aws_secret_access_key"] = self.secret_access_key
        return kwargs


def create_client(settings: CloudWatchSettings | None = None) -> Any:
    """Create a boto3 CloudWatch client."""
    if settings is None:
        settings = CloudWatchSettings.from_environment()

    logger.info(f"Creating CloudWatch client for region {settings.region}")
    return boto3.client("cloudwatch", **settings.to_boto3_kwargs())
