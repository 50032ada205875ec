"""
Single-shot HTTP fetch of the upstream value. No retries and no caching:
the poll loop's next tick is the retry.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from pollgauge.errors import NetworkError, UnexpectedStatusError

log = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0


class Fetcher:

    def __init__(
        self,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        client: Optional[httpx.Client] = None,
    ):
        self._timeout = timeout_seconds
        self._client = client or httpx.Client(timeout=self._timeout, follow_redirects=True)

    def fetch(self, url: str) -> bytes:
        """GET `url` once and return the raw body.

        Raises NetworkError on any request failure (transport errors,
        timeouts, redirect loops, undecodable bodies, malformed URLs) and UnexpectedStatusError on any
        non-2xx response. The response is streamed inside a context manager,
        so the connection is released however this returns.
        """
        if not url:
            raise ValueError("fetch url must not be empty")

        try:
            with self._client.stream("GET", url) as response:
                if not response.is_success:
                    raise UnexpectedStatusError(response.status_code, url)
                body = response.read()
        except (httpx.RequestError, httpx.InvalidURL) as e:
            raise NetworkError(f"failed to fetch data: {e}") from e

        log.debug("Fetched %d bytes from %s", len(body), url)
        return body

    def close(self):
        self._client.close()
