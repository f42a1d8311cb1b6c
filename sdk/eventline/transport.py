"""HTTP transport for delivering event batches to the collection endpoint."""

from __future__ import annotations

import logging
import os
import platform
import socket
import sys
import threading
import time
from typing import Any

import httpx

from eventline.backoff import BackoffPolicy
from eventline.batch import MessageBatch
from eventline.config import TransportConfig, build_config
from eventline.models import Response
from eventline.version import __version__

HEADERS = {
    "Accept": "application/json",
    "Content-Type": "application/json",
    "User-Agent": f"eventline-python/{__version__}",
}


class Transport:
    """Sends one batch per request with bounded retries.

    Server errors (5xx), rate limiting (429) and exceptions raised while
    sending are retried up to *retries* attempts in total, sleeping for the
    backoff policy's next interval in between. Other client errors (4xx) are
    logged and returned immediately.

    :meth:`send_batch` never raises. Whatever the outcome, the backoff policy
    is reset and the batch is cleared once it returns.
    """

    def __init__(
        self,
        url: str | None = None,
        headers: dict[str, str] | None = None,
        retries: int | None = None,
        read_timeout: float | None = None,
        open_timeout: float | None = None,
        write_timeout: float | None = None,
        backoff_policy: BackoffPolicy | None = None,
        logger: logging.Logger | None = None,
        http_transport: httpx.BaseTransport | None = None,
        **backoff_options: Any,
    ) -> None:
        config = build_config(
            TransportConfig,
            url=url,
            headers=headers,
            retries=retries,
            read_timeout=read_timeout,
            open_timeout=open_timeout,
            write_timeout=write_timeout,
        )
        self.url = config.url
        self.headers = config.headers
        self.retries = config.retries
        self.timeout = httpx.Timeout(
            connect=config.open_timeout,
            read=config.read_timeout,
            write=config.write_timeout,
            pool=config.open_timeout,
        )
        self.backoff_policy = backoff_policy or BackoffPolicy(**backoff_options)
        self.logger = logger or logging.getLogger(__name__)

        self._http_transport = http_transport
        self._client: httpx.Client | None = None
        self._pid = os.getpid()

    def send_batch(self, batch: MessageBatch) -> Response:
        """Deliver *batch* and return the final :class:`Response`."""
        self.logger.debug("Sending request for %d items", len(batch))
        try:
            return self._send_with_retries(batch)
        finally:
            self.backoff_policy.reset()
            batch.clear()

    def shutdown(self) -> None:
        """Close the persistent connection, if one is open."""
        if self._client is not None:
            self._client.close()
            self._client = None

    def _send_with_retries(self, batch: MessageBatch) -> Response:
        payload = batch.to_json()
        remaining = self.retries
        response: Response | None = None
        error: Exception | None = None

        while True:
            error = None
            try:
                http_response = self._send_request(payload)
                response = Response(status=http_response.status_code, error=self._parse_error(http_response))
                should_retry = self._should_retry(http_response)
            except Exception as e:
                error = e
                should_retry = True

            if not should_retry or remaining <= 1:
                break

            self.logger.debug("Retrying request, %d retries left", remaining)
            time.sleep(self.backoff_policy.next_interval() / 1000)
            remaining -= 1

        if error is not None:
            self.logger.error("Failed to send batch %s: %s", batch.uuid, error, exc_info=error)
            return Response.failure(error)
        return response

    def _send_request(self, payload: str) -> httpx.Response:
        http_response = self._http().post(self.url, content=payload, headers=self._request_headers())
        self.logger.debug("Response status code: %d", http_response.status_code)
        return http_response

    def _should_retry(self, http_response: httpx.Response) -> bool:
        status = http_response.status_code
        if status >= 500:
            return True  # Server error
        if status == 429:
            return True  # Rate limited
        if status >= 400:
            # Client error, log and give up
            self.logger.error("Batch rejected with HTTP %d: %s", status, http_response.text[:200])
            return False
        return False

    def _parse_error(self, http_response: httpx.Response) -> str | None:
        try:
            body = http_response.json()
        except ValueError:
            return None
        if isinstance(body, dict) and isinstance(body.get("error"), str):
            self.logger.debug("Response error: %s", body["error"])
            return body["error"]
        return None

    def _request_headers(self) -> httpx.Headers:
        headers = httpx.Headers(HEADERS)
        headers.update(
            {
                "Client-Language": "python",
                "Client-Language-Version": platform.python_version(),
                "Client-Platform": sys.platform,
                "Client-Engine": platform.python_implementation(),
                "Client-Hostname": socket.gethostname(),
                "Client-Pid": str(os.getpid()),
                "Client-Thread": str(threading.get_ident()),
            }
        )
        # Caller-supplied headers win, compared case-insensitively.
        headers.update(self.headers)
        return headers

    def _http(self) -> httpx.Client:
        # A forked child must not share the parent's pooled sockets.
        if self._pid != os.getpid():
            self._client = None
            self._pid = os.getpid()
        if self._client is None:
            self._client = httpx.Client(timeout=self.timeout, transport=self._http_transport)
        return self._client
