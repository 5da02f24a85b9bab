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

"""Fixed-interval loop that runs one reporting cycle per tick."""

import threading
import time
from collections.abc import Callable

from .config import ReporterConfig
from .exceptions import ConfigurationError, ReporterError
from .reporter import emit_metrics


class ReportingScheduler:
    """Runs reporting cycles on a background thread, one at a time.

    Ticks sit on a fixed grid of ``reporting_interval`` seconds from start. A
    cycle that overruns the interval drops the ticks it missed; cycles never
    overlap.
    """

    def __init__(
        self,
        config: ReporterConfig,
        cycle: Callable[[ReporterConfig], ReporterError | None] = emit_metrics,
        clock: Callable[[], float] = time.monotonic,
    ):
        if config.reporting_interval <= 0:
            raise ConfigurationError("Reporting interval must be positive.")

        self.config = config
        self.cycle = cycle
        self.clock = clock
        self.logger = config.logger

        self.cycles_run = 0
        self.ticks_dropped = 0

        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()
        self._cycle_lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive() and not self._stop_event.is_set()

    def start(self):
        """Start the reporting thread."""
        with self._lock:
            if self.running:
                return
            # A loop still finishing after a timed-out stop() keeps its own event.
            self._stop_event = threading.Event()
            self._thread = threading.Thread(target=self._loop, args=(self._stop_event,), name="cloudwatch-reporter")
            self._thread.daemon = True
            self._thread.start()
        self.logger.info(
            f"component=cloudwatch-reporter fn=start interval={self.config.reporting_interval}s "
            f"namespace={self.config.namespace}"
        )

    def stop(self, timeout: float | None = None):
        """Stop the loop; a cycle already in flight runs to completion."""
        with self._lock:
            self._stop_event.set()
            thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=timeout)
        self.logger.info("component=cloudwatch-reporter fn=stop")

    def run_forever(self):
        """Run the tick loop on the calling thread until ``stop()`` is called."""
        with self._lock:
            if self.running:
                raise ReporterError("Reporting loop is already running.")
            stop_event = self._stop_event = threading.Event()
            self._thread = threading.current_thread()
        self._loop(stop_event)

    def _loop(self, stop_event: threading.Event):
        interval = self.config.reporting_interval
        next_tick = self.clock() + interval

        while not stop_event.wait(max(0.0, next_tick - self.clock())):
            self._run_cycle()

            next_tick += interval
            now = self.clock()
            if next_tick <= now:
                missed = int((now - next_tick) // interval) + 1
                next_tick += missed * interval
                self.ticks_dropped += missed
                self.logger.warning(
                    f"component=cloudwatch-reporter fn=run_forever at=overrun dropped_ticks={missed}"
                )

    def _run_cycle(self):
        with self._cycle_lock:
            self.cycles_run += 1
            try:
                err = self.cycle(self.config)
            except Exception:
                self.logger.exception("component=cloudwatch-reporter fn=run_forever at=cycle-crash")
                return
        if err is not None:
            self.logger.error(f"component=cloudwatch-reporter fn=run_forever at=error error={err}")
