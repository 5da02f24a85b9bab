"""Pytest configuration for repo-wide test behavior."""

# Ensure project root on sys.path for imports
import os
import sys

import pytest

root = os.path.dirname(os.path.abspath(__file__))
proj = os.path.abspath(os.path.join(root, ".."))
if proj not in sys.path:
    sys.path.insert(0, proj)

from metrics_cloudwatch.config import MILLISECOND, NoFilter, ReporterConfig, silent_logger  # noqa: E402
from metrics_cloudwatch.registry import MetricsRegistry  # noqa: E402


class MockPutMetricsClient:
    """Records PutMetricData calls; optionally fails the calls at given indexes."""

    def __init__(self, fail_on=()):
        self.calls = []
        self.fail_on = set(fail_on)

    def put_metric_data(self, *, Namespace, MetricData):
        index = len(self.calls)
        self.calls.append({"Namespace": Namespace, "MetricData": list(MetricData)})
        if index in self.fail_on:
            raise RuntimeError(f"throttled on request {index}")
        return {}

    @property
    def requests(self):
        return len(self.calls)

    @property
    def metrics_put(self):
        return sum(len(c["MetricData"]) for c in self.calls)

    def datums(self):
        return [d for c in self.calls for d in c["MetricData"]]

    def values(self):
        return {d["MetricName"]: d["Value"] for d in self.datums()}


@pytest.fixture
def mock_client():
    return MockPutMetricsClient()


@pytest.fixture
def make_client():
    return MockPutMetricsClient


@pytest.fixture
def registry():
    return MetricsRegistry()


@pytest.fixture
def config(mock_client, registry):
    return ReporterConfig(
        registry=registry,
        client=mock_client,
        filter=NoFilter(),
        namespace="Test/Reporter",
        duration_unit=MILLISECOND,
        logger=silent_logger(),
    )
