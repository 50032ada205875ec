"""
HTTP endpoint serving the sink's exposition and a liveness check.

Shutdown stops the accept loop first, then gives requests already being
handled up to a grace period to finish before the socket is closed.
"""

from __future__ import annotations

import logging
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Tuple

from pollgauge.errors import ServerStartupError, ShutdownDrainError
from pollgauge.sink import MetricsSink

log = logging.getLogger(__name__)


class _DrainingHTTPServer(ThreadingHTTPServer):
    """ThreadingHTTPServer that counts requests in flight."""

    daemon_threads = True
    # A second bridge on the same port must fail to bind, not share it.
    allow_reuse_port = False

    def __init__(self, server_address, handler_class):
        self._inflight = 0
        self._idle = threading.Condition()
        super().__init__(server_address, handler_class)

    def process_request(self, request, client_address):
        # Counted on the accept thread, so a request accepted just before
        # shutdown() is already visible to wait_idle().
        with self._idle:
            self._inflight += 1
        try:
            super().process_request(request, client_address)
        except BaseException:
            self._request_done()
            raise

    def process_request_thread(self, request, client_address):
        try:
            super().process_request_thread(request, client_address)
        finally:
            self._request_done()

    def _request_done(self):
        with self._idle:
            self._inflight -= 1
            self._idle.notify_all()

    def wait_idle(self, timeout: float) -> bool:
        with self._idle:
            return self._idle.wait_for(lambda: self._inflight == 0, timeout=timeout)


def _make_handler(sink: MetricsSink, metrics_path: str, health_path: str):

    class _Handler(BaseHTTPRequestHandler):
        def do_GET(self):
            path = self.path.split("?", 1)[0]
            if path == metrics_path:
                body, content_type = sink.exposition()
                self._reply(200, body, content_type)
            elif path == health_path:
                self._reply(200, b"OK", "text/plain; charset=utf-8")
            else:
                self._reply(404, b"404 page not found\n", "text/plain; charset=utf-8")

        def _reply(self, status: int, body: bytes, content_type: str):
            self.send_response(status)
            self.send_header("Content-Type", content_type)
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            self.wfile.write(body)

        def log_message(self, format, *args):
            log.debug("%s - %s", self.client_address[0], format % args)

    return _Handler


class ScrapeServer:

    def __init__(
        self,
        sink: MetricsSink,
        address: Tuple[str, int],
        metrics_path: str = "/metrics",
        health_path: str = "/healthz",
    ):
        handler = _make_handler(sink, metrics_path, health_path)
        try:
            self._httpd = _DrainingHTTPServer(address, handler)
        except OSError as e:
            raise ServerStartupError(f"cannot listen on {address[0]}:{address[1]}: {e}") from e
        self._lock = threading.Lock()
        self._serving = False
        self._closed = False

    @property
    def address(self) -> Tuple[str, int]:
        """The bound (host, port); useful when asked for port 0."""
        host, port = self._httpd.server_address[:2]
        return host, port

    def serve_forever(self):
        with self._lock:
            if self._closed:
                return
            self._serving = True
        host, port = self.address
        log.info("Starting server: address=%s:%d", host, port)
        self._httpd.serve_forever()

    def shutdown(self, grace: float) -> None:
        """Stop accepting and drain in-flight requests for up to `grace` seconds.

        Raises ShutdownDrainError if requests are still running when the
        grace period ends. The listening socket is closed either way.
        """
        with self._lock:
            self._closed = True
            serving = self._serving
        # socketserver.shutdown() waits for serve_forever() to exit and would
        # hang if it never started.
        if serving:
            self._httpd.shutdown()
        try:
            if not self._httpd.wait_idle(grace):
                raise ShutdownDrainError(
                    f"requests still in flight after {grace:.1f}s grace period"
                )
        finally:
            self._httpd.server_close()
