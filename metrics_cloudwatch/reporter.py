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
CloudWatch Reporter

Drains a metrics registry into CloudWatch data points and publishes them in
batches. One call to ``emit_metrics`` is one reporting cycle.

Counters, histograms and timers are cleared as they are read (counters only
when no previous-value table is configured). Two cycles must never run at the
same time against the same registry or values would be double counted or lost;
the scheduler guarantees this, the reporter itself takes no lock.
"""

import logging
from collections.abc import Iterator
from datetime import datetime, timezone

from .config import ReporterConfig
from .exceptions import ConfigurationError, PublishError, ReporterError
from .models import MAX_DATUMS_PER_REQUEST, CycleStats, DataPoint, StandardUnit
from .registry import Counter, Gauge, GaugeCounter, GaugeFloat, Histogram, Meter, Metric, Timer

logger = logging.getLogger(__name__)


def emit_metrics(config: ReporterConfig) -> ReporterError | None:
    """Run one reporting cycle.

    Returns the last error encountered (a config error aborts the cycle before
    anything is read; a failed batch does not stop later batches), or None.
    """
    log = config.logger
    try:
        config.validate()
    except ConfigurationError as e:
        log.error(f"component=cloudwatch-reporter fn=emit_metrics at=config-error error={e}")
        return e

    data, _ = collect_data_points(config)

    err: ReporterError | None = None
    for batch in batched(data):
        batch_err = put_metrics(config, batch)
        if batch_err is not None:
            err = batch_err
    return err


def batched(points: list[DataPoint], size: int = MAX_DATUMS_PER_REQUEST) -> Iterator[list[DataPoint]]:
    """Split points into consecutive chunks of at most ``size``, keeping order."""
    if size <= 0:
        raise ValueError("batch size must be positive")
    for start in range(0, len(points), size):
        yield points[start : start + size]


def put_metrics(config: ReporterConfig, batch: list[DataPoint]) -> PublishError | None:
    """Publish one batch with a single PutMetricData call."""
    try:
        config.client.put_metric_data(
            Namespace=config.namespace,
            MetricData=[p.to_metric_datum() for p in batch],
        )
    except Exception as e:
        config.logger.error(
            f"component=cloudwatch-reporter fn=put_metrics at=error batch_size={len(batch)} error={e}"
        )
        error = PublishError(
            f"component=cloudwatch-reporter fn=emit_metrics at=error error={e}",
            batch_size=len(batch),
        )
        error.__cause__ = e
        return error
    return None


def collect_data_points(config: ReporterConfig) -> tuple[list[DataPoint], CycleStats]:
    """Read every metric in the registry and convert it into data points."""
    collector = _Collector(config)
    config.registry.each(collector.visit)
    collector.log_stats()
    return collector.data, collector.stats


class _Collector:
    """Converts metrics into data points for a single cycle."""

    def __init__(self, config: ReporterConfig):
        self.config = config
        self.filter = config.filter
        self.timestamp = datetime.now(timezone.utc)
        self.dimensions = tuple(config.static_dimensions.items())
        self.data: list[DataPoint] = []
        self.stats = CycleStats()

    def _offer(self, name: str, value: float, unit: StandardUnit | None = None) -> bool:
        if not self.filter.should_report(name, value):
            return False
        self._append(name, value, unit)
        return True

    def _append(self, name: str, value: float, unit: StandardUnit | None = None) -> None:
        self.data.append(DataPoint(name, float(value), self.timestamp, unit, self.dimensions))

    def _offer_all(self, values: list[tuple[str, float]]) -> int:
        return sum(1 for name, value in values if self._offer(name, value))

    def _percentiles(self, name: str, values_for) -> list[tuple[str, float]]:
        ps = self.filter.percentiles(name)
        if not ps:
            return []
        return [(f"{name}-perc{p:.3f}", v) for p, v in zip(ps, values_for(ps))]

    def visit(self, name: str, metric: Metric) -> None:
        if isinstance(metric, Counter):
            self._counter(name, metric)
        elif isinstance(metric, GaugeCounter):
            self._gauge_counter(name, metric)
        elif isinstance(metric, (Gauge, GaugeFloat)):
            self._gauge(name, metric)
        elif isinstance(metric, Histogram):
            self._histogram(name, metric)
        elif isinstance(metric, Meter):
            self._meter(name, metric)
        elif isinstance(metric, Timer):
            self._timer(name, metric)
        else:
            self.config.logger.warning(
                f"component=cloudwatch-reporter fn=collect_data_points at=skip metric={name} "
                f"type={type(metric).__name__}"
            )

    def _counter(self, name: str, metric: Counter) -> None:
        self.stats.counters += 1
        previous = self.config.previous_counter_values
        if previous is not None:
            current = metric.count
            count = current - previous.get(name, 0)
            previous[name] = current
        else:
            count = metric.clear()
        if self._offer(name, count, StandardUnit.COUNT):
            self.stats.counters_out += 1

    def _gauge_counter(self, name: str, metric: GaugeCounter) -> None:
        # Read-only, gauge counters are never cleared.
        self.stats.counters += 1
        if self._offer(name, metric.count, StandardUnit.COUNT):
            self.stats.counters_out += 1

    def _gauge(self, name: str, metric: Gauge | GaugeFloat) -> None:
        # Gauges carry the Count unit too.
        self.stats.gauges += 1
        if self._offer(name, metric.value, StandardUnit.COUNT):
            self.stats.gauges_out += 1

    def _histogram(self, name: str, metric: Histogram) -> None:
        self.stats.histograms += 1
        h = metric.clear()
        values = [
            (f"{name}.count", h.count),
            (f"{name}.min", h.min()),
            (f"{name}.max", h.max()),
            (f"{name}.mean", h.mean()),
            (f"{name}.std-dev", h.std_dev()),
        ]
        values += self._percentiles(name, h.percentiles)
        self.stats.histograms_out += self._offer_all(values)

    def _meter(self, name: str, metric: Meter) -> None:
        self.stats.meters += 1
        m = metric.snapshot()
        values = [
            (f"{name}.count", m.count),
            (f"{name}.one-minute", m.rate1),
            (f"{name}.five-minute", m.rate5),
            (f"{name}.fifteen-minute", m.rate15),
            (f"{name}.mean", m.rate_mean),
        ]
        self.stats.meters_out += self._offer_all(values)

    def _timer(self, name: str, metric: Timer) -> None:
        self.stats.timers += 1
        t = metric.clear()
        if t.count == 0:
            return

        unit = self.config.duration_unit
        values = [
            (f"{name}.count", t.count),
            (f"{name}.rate-mean", t.rate_mean),
            (f"{name}.one-minute", t.rate1),
            (f"{name}.five-minute", t.rate5),
            (f"{name}.fifteen-minute", t.rate15),
            (f"{name}.min", t.min() // unit),
            (f"{name}.max", t.max() // unit),
            (f"{name}.mean", t.mean() / unit),
            (f"{name}.std-dev", t.std_dev() / unit),
        ]
        out = self._offer_all(values)
        # Percentiles are filtered on the raw nanosecond value and published converted.
        for pname, pvalue in self._percentiles(name, t.percentiles):
            if self.filter.should_report(pname, pvalue):
                self._append(pname, pvalue / unit)
                out += 1
        self.stats.timers_out += out

    def log_stats(self) -> None:
        s = self.stats
        log = self.config.logger
        log.info(
            f"component=cloudwatch-reporter fn=collect_data_points at=sources total={s.total} "
            f"counters={s.counters} gauges={s.gauges} histos={s.histograms} meters={s.meters} timers={s.timers}"
        )
        log.info(
            f"component=cloudwatch-reporter fn=collect_data_points at=targets total={s.total_out} "
            f"counters={s.counters_out} gauges={s.gauges_out} histos={s.histograms_out} "
            f"meters={s.meters_out} timers={s.timers_out}"
        )
