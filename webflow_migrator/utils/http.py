"""
Rate limiting and retry utilities shared by the Webflow and Mnemo clients.

Webflow's Data API allows roughly 60 requests per minute on most site
plans and answers 429 with a ``Retry-After`` header when the budget is
spent.  The Mnemo API has no documented limit but runs on a small Cloud
Run instance, so writes are spaced out as well.
"""

from __future__ import annotations

import threading
import time
from typing import Callable, Iterable, Tuple, Type

import requests

READ_RETRY_STATUSES = (429, 500, 502, 503, 504)
# 500 is left out for writes: the Mnemo API answers a duplicate slug with a
# plain 500, and replaying the create would not change that.
WRITE_RETRY_STATUSES = (429, 502, 503, 504)

# A write is only replayed when it never reached the server; a read timeout
# may come after the row was stored.
READ_RETRY_EXCEPTIONS = (requests.RequestException,)
WRITE_RETRY_EXCEPTIONS = (requests.ConnectTimeout,)


class RateLimiter:
    """
    Simple time-based rate limiter.  Ensures that no more than ``rpm``
    requests are dispatched per minute.  Safe to share between the worker
    threads of a batch.
    """

    def __init__(self, rpm: int = 60) -> None:
        self.rpm = max(1, rpm)
        self.interval = 60.0 / float(self.rpm)
        self._last = 0.0
        self._lock = threading.Lock()

    def wait(self, time_fn: Callable[[], float] = time.time, sleep_fn: Callable[[float], None] = time.sleep) -> None:
        with self._lock:
            now = time_fn()
            dt = now - self._last
            if dt < self.interval:
                sleep_fn(self.interval - dt)
            self._last = time_fn()


def with_retries(
    fn: Callable[[], requests.Response],
    *,
    max_attempts: int = 5,
    base_delay: float = 0.7,
    retry_statuses: Iterable[int] = READ_RETRY_STATUSES,
    retry_exceptions: Tuple[Type[requests.RequestException], ...] = READ_RETRY_EXCEPTIONS,
) -> requests.Response:
    """
    Execute a function returning a ``requests.Response``, retrying on
    transient HTTP errors.  Retries are attempted on the status codes in
    ``retry_statuses`` and on connection-level failures.  Backoff is
    exponential unless the server sends ``Retry-After``.

    :param fn: A zero-argument callable that performs the HTTP request.
    :param max_attempts: Maximum number of attempts before giving up.
    :param base_delay: Base delay in seconds for exponential backoff.
    :param retry_statuses: HTTP status codes considered transient.
    :param retry_exceptions: Connection-level errors worth another attempt;
        other ``requests`` errors are raised at once.
    :return: The successful ``requests.Response``.
    :raises requests.HTTPError: if the last attempt still failed with an
        HTTP error status.
    :raises requests.RequestException: if the last attempt failed at the
        connection level.
    """
    retry_statuses = tuple(retry_statuses)
    attempt = 0
    while True:
        try:
            resp = fn()
            resp.raise_for_status()
            return resp
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            if status not in retry_statuses or attempt >= max_attempts - 1:
                raise
            retry_after = e.response.headers.get("Retry-After")
            try:
                wait = float(retry_after) if retry_after else base_delay * (2 ** attempt)
            except ValueError:
                wait = base_delay * (2 ** attempt)
            time.sleep(wait)
            attempt += 1
        except retry_exceptions:
            if attempt >= max_attempts - 1:
                raise
            time.sleep(base_delay * (2 ** attempt))
            attempt += 1
