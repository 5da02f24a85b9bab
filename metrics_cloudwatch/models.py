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
Reporter Data Models

Data points produced by a reporting cycle and their CloudWatch wire shape.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

# PutMetricData accepts at most this many MetricDatum entries per request
MAX_DATUMS_PER_REQUEST = 20


class StandardUnit(str, Enum):
    """CloudWatch standard units used by the reporter."""

    COUNT = "Count"


@dataclass(frozen=True)
class DataPoint:
    """One named value derived from a metric during a reporting cycle."""

    name: str
    value: float
    timestamp: datetime
    unit: StandardUnit | None = None
    dimensions: tuple[tuple[str, str], ...] = field(default_factory=tuple)

    def to_metric_datum(self) -> dict[str, Any]:
        """Build the MetricDatum dict expected by ``put_metric_data``."""
        datum: dict[str, Any] = {
            "MetricName": self.name,
            "Timestamp": self.timestamp,
            "Value": float(self.value),
            "Dimensions": [{"Name": k, "Value": v} for k, v in self.dimensions],
        }
        if self.unit is not None:
            datum["Unit"] = self.unit.value
        return datum


@dataclass
class CycleStats:
    """Per-kind tallies of metrics read and data points emitted in one cycle."""

    counters: int = 0
    gauges: int = 0
    histograms: int = 0
    meters: int = 0
    timers: int = 0

    counters_out: int = 0
    gauges_out: int = 0
    histograms_out: int = 0
    meters_out: int = 0
    timers_out: int = 0

    @property
    def total(self) -> int:
        return self.counters + self.gauges + self.histograms + self.meters + self.timers

    @property
    def total_out(self) -> int:
        return self.counters_out + self.gauges_out + self.histograms_out + self.meters_out + self.timers_out

    def to_dict(self) -> dict[str, Any]:
        return {
            "sources": {
                "total": self.total,
                "counters": self.counters,
                "gauges": self.gauges,
                "histos": self.histograms,
                "meters": self.meters,
                "timers": self.timers,
            },
            "targets": {
                "total": self.total_out,
                "counters": self.counters_out,
                "gauges": self.gauges_out,
                "histos": self.histograms_out,
                "meters": self.meters_out,
                "timers": self.timers_out,
            },
        }
