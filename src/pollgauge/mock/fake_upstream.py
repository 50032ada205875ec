"""
Fake upstream for running the bridge without the real guest counter.

    python -m pollgauge.mock.fake_upstream
    pollgauge serve --fetch-url http://127.0.0.1:9200/ --scrape-interval 5s
"""

from __future__ import annotations

import logging
import math
import random
import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Optional, Type

log = logging.getLogger(__name__)


class Occupancy:
    """Slowly drifting 0-100 percentage, like a gym filling up and emptying."""

    def __init__(self, seed: int = 42):
        self._rng = random.Random(seed)
        self._tick = 0
        self._lock = threading.Lock()

    def next(self) -> int:
        with self._lock:
            self._tick += 1
            base = 45 + 35 * math.sin(self._tick * 0.05)
            noise = self._rng.gauss(0, 4)
            return max(0, min(100, int(base + noise)))


def make_handler(
    status: int = 200,
    body: Optional[bytes] = None,
    delay: float = 0.0,
    quoted: bool = True,
    occupancy: Optional[Occupancy] = None,
) -> Type[BaseHTTPRequestHandler]:
    """Build a handler that answers every GET the same way.

    With no fixed `body`, each request gets the next Occupancy reading,
    JSON-quoted like the real endpoint unless `quoted` is False.
    """
    source = occupancy or Occupancy()

    class _UpstreamHandler(BaseHTTPRequestHandler):
        hits = 0

        def do_GET(self):
            type(self).hits += 1
            if delay:
                time.sleep(delay)

            payload = body
            if payload is None:
                value = str(source.next())
                payload = (f'"{value}"' if quoted else value).encode()

            self.send_response(status)
            self.send_header("Content-Type", "application/json")
            self.send_header("Content-Length", str(len(payload)))
            self.end_headers()
            self.wfile.write(payload)

        def log_message(self, format, *args):
            log.debug("fake upstream: %s", format % args)

    return _UpstreamHandler


def run_fake_server(host: str = "127.0.0.1", port: int = 9200):
    """Serve drifting readings until interrupted."""
    server = ThreadingHTTPServer((host, port), make_handler())
    url = f"http://{host}:{port}/"
    print(f"Serving fake occupancy readings on {url} (Ctrl+C to quit)")
    print(f"Point the bridge at it with: pollgauge --fetch-url {url} --scrape-interval 5s")
    with server:
        try:
            server.serve_forever()
        except KeyboardInterrupt:
            print("Interrupted, closing fake upstream.")


if __name__ == "__main__":
    run_fake_server()
