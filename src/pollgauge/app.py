"""
Lifecycle controller: wires config, fetcher, sink, poll loop and scrape
server together, runs the loop and the server on background threads, and
owns the one-shot shutdown sequence.
"""

from __future__ import annotations

import logging
import threading
from typing import Optional

from pollgauge.collector.fetcher import Fetcher
from pollgauge.config import Config
from pollgauge.errors import ShutdownDrainError
from pollgauge.poller import PollLoop
from pollgauge.server import ScrapeServer
from pollgauge.sink import MetricsSink

log = logging.getLogger(__name__)


class Bridge:

    def __init__(
        self,
        config: Config,
        fetcher: Optional[Fetcher] = None,
        sink: Optional[MetricsSink] = None,
    ):
        # Bad configuration surfaces here, before any thread exists.
        self.config = config.validate()
        self.sink = sink or MetricsSink(namespace=config.namespace)
        self._fetcher = fetcher or Fetcher(timeout_seconds=config.fetch_timeout)
        self.loop = PollLoop(config, self._fetcher, self.sink)
        self.server: Optional[ScrapeServer] = None

        self._cancel = threading.Event()
        self._done = threading.Event()
        self._shutdown_lock = threading.Lock()
        self._shutdown_started = False
        self._poll_thread: Optional[threading.Thread] = None
        self._server_thread: Optional[threading.Thread] = None

    def start(self):
        """Bind the scrape endpoint, then start polling and serving.

        Raises ServerStartupError if the listen address cannot be bound; in
        that case nothing has been started.
        """
        with self._shutdown_lock:
            if self._shutdown_started:
                raise RuntimeError("bridge already shut down")
        if self.server is not None:
            raise RuntimeError("bridge already started")

        try:
            self.server = ScrapeServer(
                self.sink,
                self.config.bind_address,
                metrics_path=self.config.metrics_path,
                health_path=self.config.health_path,
            )
        except Exception:
            self._fetcher.close()
            raise

        self._poll_thread = threading.Thread(
            target=self.loop.run, args=(self._cancel,), name="pollgauge-poll", daemon=True
        )
        self._server_thread = threading.Thread(
            target=self.server.serve_forever, name="pollgauge-http", daemon=True
        )
        self._poll_thread.start()
        self._server_thread.start()

    def request_shutdown(self):
        """Stop polling and drain the scrape endpoint. Only the first call acts."""
        with self._shutdown_lock:
            if self._shutdown_started:
                return
            self._shutdown_started = True

        log.info("Shutting down server...")
        self._cancel.set()

        try:
            if self.server is not None:
                try:
                    self.server.shutdown(self.config.shutdown_grace)
                except ShutdownDrainError as e:
                    log.error("Server shutdown error: %s", e)

            if self._poll_thread is not None:
                # An in-flight cycle is allowed to finish; it cannot outlast
                # the fetch timeout by much.
                self._poll_thread.join(self.config.fetch_timeout + self.config.shutdown_grace)
                if self._poll_thread.is_alive():
                    log.warning("Poll loop still running a cycle; leaving it behind")
                else:
                    self._fetcher.close()
            else:
                self._fetcher.close()

            if self._server_thread is not None:
                self._server_thread.join(self.config.shutdown_grace)
        finally:
            self._done.set()
            log.info("Server stopped")

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until shutdown has completed. Returns False on timeout."""
        return self._done.wait(timeout)

    @property
    def stopped(self) -> bool:
        return self._done.is_set()

    def __enter__(self) -> "Bridge":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.request_shutdown()
