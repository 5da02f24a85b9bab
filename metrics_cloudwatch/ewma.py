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

"""Exponentially weighted moving averages for 1/5/15-minute event rates."""

from __future__ import annotations

import math

TICK_INTERVAL_SECONDS = 5.0


def _alpha(minutes: float) -> float:
    return 1.0 - math.exp(-TICK_INTERVAL_SECONDS / 60.0 / minutes)


class EWMA:
    """Moving average of a per-second rate, advanced in fixed 5 second ticks.

    Not thread-safe on its own; the owning meter serializes access.
    """

    __slots__ = ("_alpha", "_uncounted", "_rate", "_initialized")

    def __init__(self, alpha: float) -> None:
        self._alpha = alpha
        self._uncounted = 0
        self._rate = 0.0
        self._initialized = False

    @classmethod
    def one_minute(cls) -> EWMA:
        return cls(_alpha(1))

    @classmethod
    def five_minute(cls) -> EWMA:
        return cls(_alpha(5))

    @classmethod
    def fifteen_minute(cls) -> EWMA:
        return cls(_alpha(15))

    def update(self, n: int) -> None:
        self._uncounted += n

    def tick(self) -> None:
        instant_rate = self._uncounted / TICK_INTERVAL_SECONDS
        self._uncounted = 0
        if self._initialized:
            self._rate += self._alpha * (instant_rate - self._rate)
        else:
            self._rate = instant_rate
            self._initialized = True

    def decay(self, ticks: int) -> None:
        """Apply ``ticks`` empty ticks at once."""
        if ticks <= 0 or not self._initialized:
            return
        self._rate *= (1.0 - self._alpha) ** ticks

    @property
    def rate(self) -> float:
        """Events per second."""
        return self._rate
