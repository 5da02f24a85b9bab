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
metrics-cloudwatch

Periodically publishes an in-process metrics registry (counters, gauges,
histograms, meters, timers) to Amazon CloudWatch.
"""

from .client import CloudWatchSettings, create_client
from .config import (
    MICROSECOND,
    MILLISECOND,
    NANOSECOND,
    SECOND,
    STANDARD_PERCENTILES,
    AllFilter,
    MetricFilter,
    NoFilter,
    PutMetricsClient,
    ReporterConfig,
    silent_logger,
)
from .exceptions import (
    ConfigurationError,
    DuplicateMetricError,
    MetricTypeError,
    PublishError,
    ReporterError,
)
from .models import MAX_DATUMS_PER_REQUEST, CycleStats, DataPoint, StandardUnit
from .registry import (
    REGISTRY,
    Counter,
    Gauge,
    GaugeCounter,
    GaugeFloat,
    Histogram,
    Meter,
    MetricsRegistry,
    Timer,
)
from .reporter import batched, collect_data_points, emit_metrics, put_metrics
from .sample import UniformSample
from .scheduler import ReportingScheduler

__version__ = "1.0.0"

__all__ = [
    # Reporting
    "emit_metrics",
    "collect_data_points",
    "put_metrics",
    "batched",
    "ReportingScheduler",
    # Configuration
    "ReporterConfig",
    "MetricFilter",
    "NoFilter",
    "AllFilter",
    "PutMetricsClient",
    "STANDARD_PERCENTILES",
    "NANOSECOND",
    "MICROSECOND",
    "MILLISECOND",
    "SECOND",
    "silent_logger",
    "CloudWatchSettings",
    "create_client",
    # Models
    "DataPoint",
    "CycleStats",
    "StandardUnit",
    "MAX_DATUMS_PER_REQUEST",
    # Registry
    "REGISTRY",
    "MetricsRegistry",
    "Counter",
    "GaugeCounter",
    "Gauge",
    "GaugeFloat",
    "Histogram",
    "Meter",
    "Timer",
    "UniformSample",
    # Exceptions
    "ReporterError",
    "ConfigurationError",
    "PublishError",
    "DuplicateMetricError",
    "MetricTypeError",
]
