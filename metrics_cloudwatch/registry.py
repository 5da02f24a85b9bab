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

"""In-process metrics registry drained by the CloudWatch reporter.

Design goals:
- Thread-safe updates from any number of producer threads
- Atomic snapshot-and-clear for counters, histograms and timers so a reporter
  never loses an increment that races with a read
- A closed set of metric kinds the reporter can dispatch on exhaustively
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Union

from .ewma import EWMA, TICK_INTERVAL_SECONDS
from .exceptions import DuplicateMetricError, MetricTypeError
from .sample import SampleSnapshot, UniformSample


class Counter:
    """Resettable integer accumulator."""

    __slots__ = ("_value", "_lock")

    def __init__(self, initial: int = 0) -> None:
        self._value = initial
        self._lock = threading.Lock()

    def inc(self, amount: int = 1) -> None:
        if amount == 0:
            return
        with self._lock:
            self._value += amount

    def dec(self, amount: int = 1) -> None:
        self.inc(-amount)

    def clear(self) -> int:
        """Reset to zero and return the count held at the moment of the reset."""
        with self._lock:
            value = self._value
            self._value = 0
            return value

    @property
    def count(self) -> int:
        return self._value


class GaugeCounter:
    """Integer that moves up and down and is never reset by reporting."""

    __slots__ = ("_value", "_lock")

    def __init__(self, initial: int = 0) -> None:
        self._value = initial
        self._lock = threading.Lock()

    def inc(self, amount: int = 1) -> None:
        with self._lock:
            self._value += amount

    def dec(self, amount: int = 1) -> None:
        with self._lock:
            self._value -= amount

    @property
    def count(self) -> int:
        return self._value


class Gauge:
    __slots__ = ("_value", "_lock")

    def __init__(self, initial: int = 0) -> None:
        self._value = int(initial)
        self._lock = threading.Lock()

    def update(self, v: int) -> None:
        with self._lock:
            self._value = int(v)

    @property
    def value(self) -> int:
        return self._value


class GaugeFloat:
    __slots__ = ("_value", "_lock")

    def __init__(self, initial: float = 0.0) -> None:
        self._value = float(initial)
        self._lock = threading.Lock()

    def update(self, v: float) -> None:
        with self._lock:
            self._value = float(v)

    @property
    def value(self) -> float:
        return self._value


class Histogram:
    """Distribution of recorded values backed by a reservoir sample."""

    __slots__ = ("_sample",)

    def __init__(self, sample: UniformSample | None = None) -> None:
        self._sample = sample or UniformSample()

    def update(self, v: float) -> None:
        self._sample.update(v)

    @property
    def count(self) -> int:
        return self._sample.count

    def snapshot(self) -> SampleSnapshot:
        return self._sample.snapshot()

    def clear(self) -> SampleSnapshot:
        return self._sample.clear()


@dataclass(frozen=True)
class MeterSnapshot:
    count: int
    rate1: float
    rate5: float
    rate15: float
    rate_mean: float


class Meter:
    """Event-rate tracker with 1/5/15-minute moving averages and a mean rate.

    Averages advance lazily: every mark or snapshot applies the 5 second ticks
    that elapsed since the last one.
    """

    __slots__ = ("_clock", "_lock", "_count", "_start", "_last_tick", "_m1", "_m5", "_m15")

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._reset(clock())

    def _reset(self, now: float) -> None:
        self._count = 0
        self._start = now
        self._last_tick = now
        self._m1 = EWMA.one_minute()
        self._m5 = EWMA.five_minute()
        self._m15 = EWMA.fifteen_minute()

    def _tick_if_necessary(self, now: float) -> None:
        age = now - self._last_tick
        if age < TICK_INTERVAL_SECONDS:
            return
        ticks = int(age // TICK_INTERVAL_SECONDS)
        self._last_tick += ticks * TICK_INTERVAL_SECONDS
        for ewma in (self._m1, self._m5, self._m15):
            ewma.tick()
            ewma.decay(ticks - 1)

    def mark(self, n: int = 1) -> None:
        with self._lock:
            self._tick_if_necessary(self._clock())
            self._count += n
            self._m1.update(n)
            self._m5.update(n)
            self._m15.update(n)

    @property
    def count(self) -> int:
        return self._count

    def _snapshot(self, now: float) -> MeterSnapshot:
        self._tick_if_necessary(now)
        elapsed = now - self._start
        rate_mean = self._count / elapsed if elapsed > 0 else 0.0
        return MeterSnapshot(
            count=self._count,
            rate1=self._m1.rate,
            rate5=self._m5.rate,
            rate15=self._m15.rate,
            rate_mean=rate_mean,
        )

    def snapshot(self) -> MeterSnapshot:
        with self._lock:
            return self._snapshot(self._clock())

    def clear(self) -> MeterSnapshot:
        with self._lock:
            now = self._clock()
            snap = self._snapshot(now)
            self._reset(now)
            return snap


class TimerSnapshot:
    """Distribution (in nanoseconds) and rates of a timer at one instant."""

    __slots__ = ("_histogram", "_meter")

    def __init__(self, histogram: SampleSnapshot, meter: MeterSnapshot) -> None:
        self._histogram = histogram
        self._meter = meter

    @property
    def count(self) -> int:
        return self._histogram.count

    def min(self) -> float:
        return self._histogram.min()

    def max(self) -> float:
        return self._histogram.max()

    def mean(self) -> float:
        return self._histogram.mean()

    def std_dev(self) -> float:
        return self._histogram.std_dev()

    def percentile(self, p: float) -> float:
        return self._histogram.percentile(p)

    def percentiles(self, ps: list[float]) -> list[float]:
        return self._histogram.percentiles(ps)

    @property
    def rate1(self) -> float:
        return self._meter.rate1

    @property
    def rate5(self) -> float:
        return self._meter.rate5

    @property
    def rate15(self) -> float:
        return self._meter.rate15

    @property
    def rate_mean(self) -> float:
        return self._meter.rate_mean


class Timer:
    """Durations recorded in nanoseconds plus the rate at which they occur."""

    __slots__ = ("_histogram", "_meter", "_lock")

    def __init__(self, sample: UniformSample | None = None, clock: Callable[[], float] = time.monotonic) -> None:
        self._histogram = Histogram(sample)
        self._meter = Meter(clock)
        self._lock = threading.Lock()

    def update_ns(self, nanoseconds: int) -> None:
        with self._lock:
            self._histogram.update(int(nanoseconds))
            self._meter.mark(1)

    def update(self, duration: timedelta) -> None:
        self.update_ns(duration // timedelta(microseconds=1) * 1000)

    def update_since(self, start_ns: int) -> None:
        """Record the time elapsed since a ``time.perf_counter_ns()`` reading."""
        self.update_ns(time.perf_counter_ns() - start_ns)

    @contextmanager
    def time(self) -> Iterator[None]:
        start = time.perf_counter_ns()
        try:
            yield
        finally:
            self.update_since(start)

    @property
    def count(self) -> int:
        return self._histogram.count

    def snapshot(self) -> TimerSnapshot:
        with self._lock:
            return TimerSnapshot(self._histogram.snapshot(), self._meter.snapshot())

    def clear(self) -> TimerSnapshot:
        with self._lock:
            return TimerSnapshot(self._histogram.clear(), self._meter.clear())


Metric = Union[Counter, GaugeCounter, Gauge, GaugeFloat, Histogram, Meter, Timer]


class MetricsRegistry:
    def __init__(self) -> None:
        self._metrics: dict[str, Metric] = {}
        self._lock = threading.Lock()

    def register(self, name: str, metric: Metric) -> None:
        with self._lock:
            if name in self._metrics:
                raise DuplicateMetricError(name)
            self._metrics[name] = metric

    def unregister(self, name: str) -> None:
        with self._lock:
            self._metrics.pop(name, None)

    def get(self, name: str) -> Metric | None:
        with self._lock:
            return self._metrics.get(name)

    def get_or_register(self, name: str, factory: Callable[[], Metric]) -> Metric:
        with self._lock:
            m = self._metrics.get(name)
            if m is not None:
                return m
            m = factory()
            self._metrics[name] = m
            return m

    def _typed(self, name: str, kind: type, factory: Callable[[], Metric]) -> Any:
        m = self.get_or_register(name, factory)
        if type(m) is not kind:
            raise MetricTypeError(name, kind.__name__, type(m).__name__)
        return m

    def counter(self, name: str) -> Counter:
        return self._typed(name, Counter, Counter)

    def gauge_counter(self, name: str) -> GaugeCounter:
        return self._typed(name, GaugeCounter, GaugeCounter)

    def gauge(self, name: str) -> Gauge:
        return self._typed(name, Gauge, Gauge)

    def gauge_float(self, name: str) -> GaugeFloat:
        return self._typed(name, GaugeFloat, GaugeFloat)

    def histogram(self, name: str, sample: UniformSample | None = None) -> Histogram:
        return self._typed(name, Histogram, lambda: Histogram(sample))

    def meter(self, name: str) -> Meter:
        return self._typed(name, Meter, Meter)

    def timer(self, name: str) -> Timer:
        return self._typed(name, Timer, Timer)

    def each(self, fn: Callable[[str, Metric], None]) -> None:
        """Call ``fn(name, metric)`` for every entry registered when the call starts."""
        with self._lock:
            items = list(self._metrics.items())
        for name, metric in items:
            fn(name, metric)

    def __len__(self) -> int:
        return len(self._metrics)

    def __contains__(self, name: object) -> bool:
        return name in self._metrics

    def export(self) -> dict[str, Any]:
        """Non-destructive view of current values, for debugging endpoints."""
        out: dict[str, Any] = {"counters": {}, "gauges": {}, "histograms": {}, "meters": {}, "timers": {}}

        def visit(name: str, m: Metric) -> None:
            if isinstance(m, (Counter, GaugeCounter)):
                out["counters"][name] = m.count
            elif isinstance(m, (Gauge, GaugeFloat)):
                out["gauges"][name] = m.value
            elif isinstance(m, Histogram):
                s = m.snapshot()
                out["histograms"][name] = {"count": s.count, "min": s.min(), "max": s.max(), "mean": s.mean()}
            elif isinstance(m, Meter):
                s = m.snapshot()
                out["meters"][name] = {"count": s.count, "rate1": s.rate1, "rate_mean": s.rate_mean}
            elif isinstance(m, Timer):
                s = m.snapshot()
                out["timers"][name] = {"count": s.count, "mean_ns": s.mean(), "rate_mean": s.rate_mean}

        self.each(visit)
        out["ts"] = time.time()
        return out


REGISTRY = MetricsRegistry()
