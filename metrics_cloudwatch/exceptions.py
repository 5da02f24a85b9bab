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
Reporter Exceptions

Exception classes raised or returned by the CloudWatch metrics reporter.
"""

from typing import Any


class ReporterError(Exception):
    """Base exception for reporter errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


class ConfigurationError(ReporterError):
    """Raised when the reporter configuration is invalid."""

    pass


class PublishError(ReporterError):
    """A PutMetricData call failed for one batch of data points."""

    def __init__(self, message: str, batch_size: int = 0, details: dict[str, Any] | None = None):
        super().__init__(message, details)
        self.batch_size = batch_size


class DuplicateMetricError(ReporterError):
    """Raised when registering a metric under a name that is already taken."""

    def __init__(self, name: str):
        super().__init__(f"Metric already registered: {name}")
        self.name = name


class MetricTypeError(ReporterError):
    """Raised when a name is registered with a different metric kind than requested."""

    def __init__(self, name: str, expected: str, actual: str):
        super().__init__(f"Metric {name} is a {actual}, not a {expected}")
        self.name = name
        self.expected = expected
        self.actual = actual
