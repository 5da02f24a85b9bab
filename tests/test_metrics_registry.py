"""Tests for the in-process metrics registry and its metric kinds."""

import random
import threading
from datetime import timedelta

import pytest

from metrics_cloudwatch.exceptions import DuplicateMetricError, MetricTypeError
from metrics_cloudwatch.registry import (
    Counter,
    Gauge,
    GaugeCounter,
    Histogram,
    Meter,
    MetricsRegistry,
    Timer,
)
from metrics_cloudwatch.sample import SampleSnapshot, UniformSample


class FakeClock:
    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now


class TestMetricsRegistry:
    def test_typed_helpers_return_same_instance(self, registry):
        assert registry.counter("a") is registry.counter("a")
        assert registry.timer("t") is registry.timer("t")
        assert len(registry) == 2
        assert "a" in registry
        assert "missing" not in registry

    def test_kind_mismatch_raises(self, registry):
        registry.counter("a")
        with pytest.raises(MetricTypeError) as exc:
            registry.gauge_counter("a")
        assert exc.value.expected == "GaugeCounter"
        assert exc.value.actual == "Counter"

    def test_register_duplicate_raises(self, registry):
        registry.register("a", Counter())
        with pytest.raises(DuplicateMetricError):
            registry.register("a", Gauge())

    def test_unregister(self, registry):
        registry.counter("a")
        registry.unregister("a")
        registry.unregister("never-registered")
        assert registry.get("a") is None

    def test_each_visits_snapshot_of_entries(self, registry):
        registry.counter("a")
        registry.counter("b")
        seen = []

        def visit(name, metric):
            seen.append(name)
            registry.counter(f"{name}-added")

        registry.each(visit)

        assert seen == ["a", "b"]
        assert len(registry) == 4

    def test_export(self, registry):
        registry.counter("c").inc(3)
        registry.gauge("g").update(4)
        registry.histogram("h").update(2)

        snap = registry.export()

        assert snap["counters"]["c"] == 3
        assert snap["gauges"]["g"] == 4
        assert snap["histograms"]["h"]["count"] == 1
        assert "ts" in snap
        assert registry.counter("c").count == 3


class TestCounter:
    def test_clear_returns_previous_count(self):
        c = Counter()
        c.inc(5)
        c.dec(2)
        assert c.clear() == 3
        assert c.count == 0

    def test_clear_does_not_lose_concurrent_increments(self):
        c = Counter()
        per_thread = 10_000
        cleared = []

        def work():
            for _ in range(per_thread):
                c.inc()

        threads = [threading.Thread(target=work) for _ in range(4)]
        for t in threads:
            t.start()
        while any(t.is_alive() for t in threads):
            cleared.append(c.clear())
        for t in threads:
            t.join()

        assert sum(cleared) + c.clear() == 4 * per_thread


class TestGaugeCounter:
    def test_inc_dec(self):
        gc = GaugeCounter()
        gc.inc(3)
        gc.dec(5)
        assert gc.count == -2


class TestHistogram:
    def test_snapshot_is_non_destructive(self):
        h = Histogram()
        for v in (1, 2, 3, 4):
            h.update(v)
        snap = h.snapshot()
        assert snap.count == 4
        assert snap.min() == 1
        assert snap.max() == 4
        assert snap.mean() == 2.5
        assert h.count == 4

    def test_clear_resets(self):
        h = Histogram()
        h.update(7)
        snap = h.clear()
        assert snap.count == 1
        assert snap.max() == 7
        assert h.count == 0
        assert h.snapshot().max() == 0


class TestSample:
    def test_empty_snapshot_is_all_zero(self):
        snap = SampleSnapshot(0, [])
        assert snap.min() == 0
        assert snap.max() == 0
        assert snap.mean() == 0.0
        assert snap.std_dev() == 0.0
        assert snap.percentile(0.99) == 0.0
        assert snap.percentiles([0.5, 0.75]) == [0.0, 0.0]

    def test_percentile_interpolation(self):
        snap = SampleSnapshot(4, [10, 20, 30, 40])
        # position p * (n + 1), clamped to the ends
        assert snap.percentile(0.5) == pytest.approx(25.0)
        assert snap.percentile(0.1) == 10.0
        assert snap.percentile(1.0) == 40.0

    def test_reservoir_is_bounded(self):
        sample = UniformSample(reservoir_size=100, rng=random.Random(42))
        for v in range(1000):
            sample.update(v)
        snap = sample.snapshot()
        assert snap.count == 1000
        assert snap.size == 100
        assert all(0 <= v < 1000 for v in snap.values())

    def test_reservoir_size_must_be_positive(self):
        with pytest.raises(ValueError):
            UniformSample(reservoir_size=0)


class TestMeter:
    def test_rates_after_one_tick(self):
        clock = FakeClock()
        m = Meter(clock=clock)
        m.mark(10)
        clock.now = 5.0

        snap = m.snapshot()

        assert snap.count == 10
        assert snap.rate1 == pytest.approx(2.0)
        assert snap.rate_mean == pytest.approx(2.0)

    def test_one_minute_rate_decays(self):
        clock = FakeClock()
        m = Meter(clock=clock)
        m.mark(10)
        clock.now = 5.0
        m.snapshot()
        clock.now = 65.0

        snap = m.snapshot()

        assert snap.rate1 == pytest.approx(2.0 * 0.36787944, rel=1e-6)
        assert snap.rate15 > snap.rate5 > snap.rate1

    def test_no_rate_before_first_tick(self):
        clock = FakeClock()
        m = Meter(clock=clock)
        m.mark(3)
        clock.now = 1.0

        snap = m.snapshot()

        assert snap.rate1 == 0.0
        assert snap.rate_mean == pytest.approx(3.0)


class TestTimer:
    def test_update_records_nanoseconds(self):
        t = Timer()
        t.update(timedelta(milliseconds=250))
        snap = t.snapshot()
        assert snap.count == 1
        assert snap.max() == 250_000_000

    def test_time_context_manager(self):
        t = Timer()
        with t.time():
            pass
        assert t.count == 1
        assert t.snapshot().min() >= 0

    def test_clear_resets_distribution_and_rates(self):
        clock = FakeClock()
        t = Timer(clock=clock)
        t.update_ns(1000)
        t.update_ns(3000)
        clock.now = 5.0

        snap = t.clear()

        assert snap.count == 2
        assert snap.mean() == 2000.0
        assert snap.rate_mean == pytest.approx(0.4)
        assert t.count == 0
        assert t.snapshot().rate_mean == 0.0
