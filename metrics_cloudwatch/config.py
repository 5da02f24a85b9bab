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
Reporter Configuration

Configuration, metric filters and duration units for the CloudWatch reporter.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Protocol

from .exceptions import ConfigurationError
from .registry import REGISTRY, MetricsRegistry

logger = logging.getLogger(__name__)

PERC50 = 0.50
PERC75 = 0.75
PERC95 = 0.95
PERC99 = 0.99
PERC999 = 0.999
PERC100 = 1.0

STANDARD_PERCENTILES = [PERC50, PERC75, PERC95, PERC99, PERC999, PERC100]

# Duration units, expressed in nanoseconds (the timer recording unit)
NANOSECOND = 1
MICROSECOND = 1000 * NANOSECOND
MILLISECOND = 1000 * MICROSECOND
SECOND = 1000 * MILLISECOND

DURATION_UNITS = {
    "ns": NANOSECOND,
    "us": MICROSECOND,
    "ms": MILLISECOND,
    "s": SECOND,
}

MAX_NAMESPACE_LENGTH = 255
MAX_DIMENSIONS = 30


class MetricFilter(Protocol):
    """Decides which derived data points are published."""

    def should_report(self, metric: str, value: float) -> bool: ...

    def percentiles(self, metric: str) -> list[float]: ...


class NoFilter:
    """Report everything, with the standard percentile set."""

    def should_report(self, metric: str, value: float) -> bool:
        return True

    def percentiles(self, metric: str) -> list[float]:
        return list(STANDARD_PERCENTILES)


class AllFilter:
    """Filter out everything; nothing is reported."""

    def should_report(self, metric: str, value: float) -> bool:
        return False

    def percentiles(self, metric: str) -> list[float]:
        return []


FILTERS = {
    "none": NoFilter,
    "all": AllFilter,
}


class PutMetricsClient(Protocol):
    """Anything with the boto3 CloudWatch ``put_metric_data`` signature."""

    def put_metric_data(self, *, Namespace: str, MetricData: list[dict[str, Any]]) -> Any: ...


def silent_logger() -> logging.Logger:
    """Logger that discards every record, for tests and quiet hosts."""
    quiet = logging.getLogger("metrics_cloudwatch.silent")
    quiet.propagate = False
    quiet.disabled = True
    if not quiet.handlers:
        quiet.addHandler(logging.NullHandler())
    return quiet


def parse_duration_unit(value: Any) -> int:
    """Accept a unit name (``ms``) or a positive number of nanoseconds."""
    if isinstance(value, bool):
        raise ConfigurationError(f"Invalid duration unit: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        key = value.strip().lower()
        if key in DURATION_UNITS:
            return DURATION_UNITS[key]
        try:
            return int(key)
        except ValueError:
            pass
    raise ConfigurationError(f"Invalid duration unit: {value!r}", {"allowed": sorted(DURATION_UNITS)})


def parse_dimensions(value: str) -> dict[str, str]:
    """Parse ``k=v,k2=v2`` into a dimension map."""
    dims: dict[str, str] = {}
    for pair in value.split(","):
        pair = pair.strip()
        if not pair:
            continue
        key, sep, val = pair.partition("=")
        if not sep:
            raise ConfigurationError(f"Invalid dimension {pair!r}, expected name=value")
        dims[key.strip()] = val.strip()
    return dims


@dataclass
class ReporterConfig:
    """Configuration for one CloudWatch reporter."""

    registry: MetricsRegistry = field(default_factory=lambda: REGISTRY)
    client: PutMetricsClient | None = None
    filter: MetricFilter = field(default_factory=NoFilter)

    namespace: str = ""
    reporting_interval: float = 60.0  # seconds
    static_dimensions: dict[str, str] = field(default_factory=dict)
    duration_unit: int = MILLISECOND  # nanoseconds per reported unit

    # When provided, counters are reported as the difference from the value
    # stored here instead of being cleared. Only the reporter writes to it.
    previous_counter_values: dict[str, int] | None = None

    logger: logging.Logger = field(default_factory=lambda: logger)

    def validate(self):
        """Raise ConfigurationError if the configuration cannot drive a cycle."""
        if not self.namespace:
            raise ConfigurationError("Namespace is required.")

        if len(self.namespace) > MAX_NAMESPACE_LENGTH:
            raise ConfigurationError(f"Namespace must be at most {MAX_NAMESPACE_LENGTH} characters.")

        if self.namespace.startswith(":"):
            raise ConfigurationError("Namespace must not start with ':'.")

        if self.namespace.startswith("AWS/"):
            raise ConfigurationError("Namespaces starting with 'AWS/' are reserved.")

        if not self.namespace.isascii() or not self.namespace.isprintable():
            raise ConfigurationError("Namespace must contain printable ASCII characters only.")

        if self.reporting_interval <= 0:
            raise ConfigurationError("Reporting interval must be positive.")

        if self.duration_unit <= 0:
            raise ConfigurationError("Duration unit must be positive.")

        if len(self.static_dimensions) > MAX_DIMENSIONS:
            raise ConfigurationError(f"At most {MAX_DIMENSIONS} static dimensions are allowed.")

        for name, value in self.static_dimensions.items():
            if not name or not value:
                raise ConfigurationError("Static dimensions need a non-empty name and value.", {name: value})

        if self.client is None:
            raise ConfigurationError("A CloudWatch client is required.")

    @classmethod
    def from_dict(cls, data: dict[str, Any], **overrides) -> "ReporterConfig":
        """Build a config from plain settings; objects (client, registry) go in overrides."""
        kwargs: dict[str, Any] = {}
        known = {"namespace", "reporting_interval", "static_dimensions", "duration_unit", "filter", "counter_deltas"}
        unknown = set(data) - known
        if unknown:
            raise ConfigurationError(f"Unknown configuration parameters: {sorted(unknown)}")

        if "namespace" in data:
            kwargs["namespace"] = str(data["namespace"])

        if "reporting_interval" in data:
            try:
                kwargs["reporting_interval"] = float(data["reporting_interval"])
            except (TypeError, ValueError):
                raise ConfigurationError(f"Invalid reporting interval: {data['reporting_interval']!r}")

        if "static_dimensions" in data:
            dims = data["static_dimensions"] or {}
            if not isinstance(dims, dict):
                raise ConfigurationError("static_dimensions must be a mapping.")
            kwargs["static_dimensions"] = {str(k): str(v) for k, v in dims.items()}

        if "duration_unit" in data:
            kwargs["duration_unit"] = parse_duration_unit(data["duration_unit"])

        if "filter" in data:
            name = str(data["filter"]).lower()
            if name not in FILTERS:
                raise ConfigurationError(f"Unknown filter: {data['filter']!r}", {"allowed": sorted(FILTERS)})
            kwargs["filter"] = FILTERS[name]()

        if data.get("counter_deltas"):
            kwargs["previous_counter_values"] = {}

        kwargs.update(overrides)
        return cls(**kwargs)

    @classmethod
    def from_file(cls, config_file: str, **overrides) -> "ReporterConfig":
        """Load configuration from a YAML or JSON file."""
        import json

        import yaml

        try:
            with open(config_file) as f:
                if config_file.endswith(".json"):
                    config_data = json.load(f)
                elif config_file.endswith((".yml", ".yaml")):
                    config_data = yaml.safe_load(f)
                else:
                    raise ConfigurationError(f"Unsupported config file format: {config_file}")

        except FileNotFoundError:
            raise ConfigurationError(f"Configuration file not found: {config_file}")
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Invalid configuration file format: {e}")

        if not isinstance(config_data, dict):
            raise ConfigurationError(f"Configuration file must hold a mapping: {config_file}")

        return cls.from_dict(config_data, **overrides)

    @classmethod
    def from_environment(cls, **overrides) -> "ReporterConfig":
        """Load configuration from METRICS_CLOUDWATCH_* environment variables."""
        data: dict[str, Any] = {}

        if os.getenv("METRICS_CLOUDWATCH_NAMESPACE"):
            data["namespace"] = os.getenv("METRICS_CLOUDWATCH_NAMESPACE")

        if os.getenv("METRICS_CLOUDWATCH_INTERVAL"):
            data["reporting_interval"] = os.getenv("METRICS_CLOUDWATCH_INTERVAL")

        if os.getenv("METRICS_CLOUDWATCH_DURATION_UNIT"):
            data["duration_unit"] = os.getenv("METRICS_CLOUDWATCH_DURATION_UNIT")

        if os.getenv("METRICS_CLOUDWATCH_DIMENSIONS"):
            data["static_dimensions"] = parse_dimensions(os.getenv("METRICS_CLOUDWATCH_DIMENSIONS"))

        if os.getenv("METRICS_CLOUDWATCH_FILTER"):
            data["filter"] = os.getenv("METRICS_CLOUDWATCH_FILTER")

        if os.getenv("METRICS_CLOUDWATCH_COUNTER_DELTAS"):
            data["counter_deltas"] = os.getenv("METRICS_CLOUDWATCH_COUNTER_DELTAS").lower() in ("true", "1", "yes")

        return cls.from_dict(data, **overrides)

    def to_dict(self) -> dict[str, Any]:
        """Plain settings view, for logging."""
        return {
            "namespace": self.namespace,
            "reporting_interval": self.reporting_interval,
            "static_dimensions": dict(self.static_dimensions),
            "duration_unit": self.duration_unit,
            "filter": type(self.filter).__name__,
            "counter_deltas": self.previous_counter_values is not None,
            "client": type(self.client).__name__ if self.client is not None else None,
        }
