"""
The scheduled fetch -> parse -> record loop.

One cycle per interval, strictly sequential. A cycle's failure is counted
and logged and never escapes the cycle; only the cancel event ends the
loop, and it is only looked at between cycles.
"""

from __future__ import annotations

import enum
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Union

from pollgauge.collector.fetcher import Fetcher
from pollgauge.collector.parser import parse_value
from pollgauge.config import Config
from pollgauge.errors import ConfigError, CycleError, FetchStage
from pollgauge.sink import MetricsSink

log = logging.getLogger(__name__)


class LoopState(enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


@dataclass(frozen=True)
class Success:
    value: int
    duration: float

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Failure:
    stage: FetchStage
    cause: Exception
    duration: float

    @property
    def ok(self) -> bool:
        return False


CycleResult = Union[Success, Failure]


class PollLoop:

    def __init__(
        self,
        config: Config,
        fetcher: Fetcher,
        sink: MetricsSink,
        clock: Callable[[], float] = time.monotonic,
    ):
        if not config.fetch_url:
            raise ConfigError("fetch url must not be empty")
        if config.scrape_interval <= 0:
            raise ConfigError(f"scrape interval must be positive, got {config.scrape_interval}")

        self._url = config.fetch_url
        self._interval = config.scrape_interval
        self._fetcher = fetcher
        self._sink = sink
        self._clock = clock
        self._state = LoopState.IDLE
        self._state_lock = threading.Lock()

    @property
    def state(self) -> LoopState:
        return self._state

    def run(self, cancel: threading.Event):
        """Poll until `cancel` is set. The first cycle runs one interval in."""
        with self._state_lock:
            if self._state is not LoopState.IDLE:
                raise RuntimeError(f"poll loop already {self._state.value}")
            self._state = LoopState.RUNNING

        log.info("Starting metrics collection: url=%s, interval=%.1fs", self._url, self._interval)
        try:
            while not cancel.wait(self._interval):
                self.run_cycle()
        finally:
            self._state = LoopState.STOPPED
            log.info("Stopping metrics collection")

    def run_cycle(self) -> CycleResult:
        """Fetch, parse and record once. Never raises."""
        start = self._clock()
        try:
            body = self._fetcher.fetch(self._url)
            value = parse_value(body)
        except CycleError as e:
            result = Failure(stage=e.stage, cause=e, duration=self._clock() - start)
        except Exception as e:
            # Anything unexpected from a collaborator still counts as a
            # failed cycle rather than ending the loop.
            result = Failure(stage=FetchStage.NETWORK, cause=e, duration=self._clock() - start)
        else:
            result = Success(value=value, duration=self._clock() - start)

        if result.ok:
            self._sink.record_success(result.value)
            log.info("Successfully fetched value: %d", result.value)
        else:
            self._sink.record_error()
            log.error(
                "Failed to fetch value (stage=%s): %s", result.stage.value, result.cause,
                exc_info=None if isinstance(result.cause, CycleError) else result.cause,
            )
        self._sink.observe_duration(result.duration)
        return result
