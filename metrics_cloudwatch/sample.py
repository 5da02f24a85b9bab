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

"""Reservoir samples backing histograms and timers.

Every statistic of an empty sample is zero.
"""

from __future__ import annotations

import random
import threading

import numpy as np

DEFAULT_RESERVOIR_SIZE = 1028


class SampleSnapshot:
    """Immutable view of a sample's retained values."""

    __slots__ = ("_count", "_values")

    def __init__(self, count: int, values: list[float]) -> None:
        self._count = count
        self._values = np.asarray(values, dtype=np.float64)

    @property
    def count(self) -> int:
        """Total number of updates seen, including values evicted from the reservoir."""
        return self._count

    @property
    def size(self) -> int:
        return int(self._values.size)

    def min(self) -> float:
        if self._values.size == 0:
            return 0.0
        return float(self._values.min())

    def max(self) -> float:
        if self._values.size == 0:
            return 0.0
        return float(self._values.max())

    def mean(self) -> float:
        if self._values.size == 0:
            return 0.0
        return float(self._values.mean())

    def std_dev(self) -> float:
        if self._values.size == 0:
            return 0.0
        return float(self._values.std())

    def percentile(self, p: float) -> float:
        """Value at quantile ``p`` (0..1), interpolated on the (n + 1) basis."""
        return self.percentiles([p])[0]

    def percentiles(self, ps: list[float]) -> list[float]:
        if self._values.size == 0:
            return [0.0] * len(ps)
        qs = np.clip(np.asarray(ps, dtype=np.float64), 0.0, 1.0) * 100.0
        return [float(v) for v in np.percentile(self._values, qs, method="weibull")]

    def values(self) -> list[float]:
        return self._values.tolist()


class UniformSample:
    """Uniform reservoir sample (Vitter's algorithm R)."""

    __slots__ = ("_reservoir_size", "_count", "_values", "_lock", "_rng")

    def __init__(self, reservoir_size: int = DEFAULT_RESERVOIR_SIZE, rng: random.Random | None = None) -> None:
        if reservoir_size <= 0:
            raise ValueError("reservoir_size must be positive")
        self._reservoir_size = reservoir_size
        self._count = 0
        self._values: list[float] = []
        self._lock = threading.Lock()
        self._rng = rng or random.Random()

    def update(self, value: float) -> None:
        with self._lock:
            self._count += 1
            if len(self._values) < self._reservoir_size:
                self._values.append(value)
                return
            r = self._rng.randrange(self._count)
            if r < self._reservoir_size:
                self._values[r] = value

    @property
    def count(self) -> int:
        return self._count

    def snapshot(self) -> SampleSnapshot:
        with self._lock:
            return SampleSnapshot(self._count, list(self._values))

    def clear(self) -> SampleSnapshot:
        """Snapshot and reset in one step so no update lands between the two."""
        with self._lock:
            snap = SampleSnapshot(self._count, self._values)
            self._count = 0
            self._values = []
            return snap
