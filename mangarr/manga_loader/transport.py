"""Process-wide HTTP transport and the retry policy shared by every request."""

from __future__ import annotations

import logging
import ssl
import threading
from typing import Callable, TypeVar

import requests
from requests.adapters import HTTPAdapter
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_fixed, wait_random
from urllib3.util.ssl_ import create_urllib3_context

from mangarr.constants import (
    REQUEST_TIMEOUT,
    RETRY_ATTEMPTS,
    RETRY_DELAY,
    RETRY_MAX_JITTER,
    USER_AGENT,
)
from mangarr.errors import (
    DecodeError,
    DownloadCancelledError,
    TransientTransportError,
    UnrecoverableTransportError,
)

log = logging.getLogger(__name__)

T = TypeVar("T")

RETRYABLE_STATUS_CODES = frozenset({404, 500, 502, 503, 504})


class TLS12Adapter(HTTPAdapter):
    """HTTP adapter refusing anything older than TLS 1.2."""

    def init_poolmanager(self, *args, **kwargs):
        context = create_urllib3_context()
        context.minimum_version = ssl.TLSVersion.TLSv1_2
        kwargs["ssl_context"] = context
        return super().init_poolmanager(*args, **kwargs)


def build_session(
    user_agent: str = USER_AGENT,
    pool_connections: int = 10,
    pool_maxsize: int = 100,
) -> requests.Session:
    """
    Create the shared session used for every request of the process.

    The session keeps connections alive in a bounded pool. It is built once at
    startup and must not be mutated afterwards so it can be used from any
    number of worker threads.
    """
    session = requests.Session()
    session.headers.update({"User-Agent": user_agent})
    adapter = TLS12Adapter(pool_connections=pool_connections, pool_maxsize=pool_maxsize)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session


def check_status_code(status_code: int, url: str = "") -> None:
    """
    Classify a response status code.

    Returns silently for 200, raises ``TransientTransportError`` for statuses
    worth retrying (404 and 5xx gateway/server errors) and
    ``UnrecoverableTransportError`` for everything else.
    """
    if status_code == 200:
        return

    if status_code in (401, 403):
        raise UnrecoverableTransportError(
            f"unrecoverable error downloading {url}: status code {status_code}",
            url=url,
            status_code=status_code,
        )
    if status_code == 405:
        raise UnrecoverableTransportError(
            f"method not allowed for {url}: status code {status_code}",
            url=url,
            status_code=status_code,
        )
    if status_code == 404:
        raise TransientTransportError(
            f"not found, retrying {url}: status code {status_code}",
            url=url,
            status_code=status_code,
        )
    if status_code in RETRYABLE_STATUS_CODES:
        raise TransientTransportError(
            f"server error for {url}: status code {status_code}, retrying",
            url=url,
            status_code=status_code,
        )
    raise UnrecoverableTransportError(
        f"unexpected status code {status_code} for {url}",
        url=url,
        status_code=status_code,
    )


def wrap_request_error(exc: requests.RequestException, url: str) -> TransientTransportError | UnrecoverableTransportError:
    """Map a ``requests`` failure onto the transport error kinds."""
    if isinstance(exc, (requests.ConnectionError, requests.Timeout, requests.exceptions.ChunkedEncodingError)):
        return TransientTransportError(f"request to {url} failed: {exc}", url=url)
    return UnrecoverableTransportError(f"request to {url} failed: {exc}", url=url)


class RetryPolicy:
    """
    Fixed-delay retry policy that honours a shared cancellation event.

    Only ``TransientTransportError`` is retried. Waiting between attempts
    blocks on ``cancel_event`` so a shutdown request abandons the remaining
    attempts immediately.
    """

    def __init__(
        self,
        *,
        attempts: int = RETRY_ATTEMPTS,
        delay: float = RETRY_DELAY,
        max_jitter: float = RETRY_MAX_JITTER,
        cancel_event: threading.Event | None = None,
    ) -> None:
        self.attempts = attempts
        self.delay = delay
        self.max_jitter = max_jitter
        self.cancel_event = cancel_event or threading.Event()

    def _sleep(self, seconds: float) -> None:
        if self.cancel_event.wait(seconds):
            raise DownloadCancelledError("download cancelled while waiting to retry")

    def _log_retry(self, retry_state) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        log.debug("Attempt %s failed: %s", retry_state.attempt_number, exc)

    def call(self, func: Callable[[], T]) -> T:
        """Run ``func`` under the policy and return its result."""
        retrying = Retrying(
            stop=stop_after_attempt(self.attempts),
            wait=wait_fixed(self.delay) + wait_random(0, self.max_jitter),
            retry=retry_if_exception_type(TransientTransportError),
            sleep=self._sleep,
            before_sleep=self._log_retry,
            reraise=True,
        )
        for attempt in retrying:
            with attempt:
                if self.cancel_event.is_set():
                    raise DownloadCancelledError("download cancelled")
                return func()
        raise AssertionError("unreachable")  # pragma: no cover


def _get(
    session: requests.Session,
    url: str,
    policy: RetryPolicy,
    read: Callable[[requests.Response], T],
    **kwargs,
) -> T:
    def _request() -> T:
        try:
            response = session.get(url, timeout=REQUEST_TIMEOUT, **kwargs)
        except requests.RequestException as exc:
            raise wrap_request_error(exc, url) from exc
        with response:
            check_status_code(response.status_code, url)
            return read(response)

    return policy.call(_request)


def get_json(session: requests.Session, url: str, policy: RetryPolicy, **kwargs) -> object:
    """
    GET ``url`` under ``policy`` and decode the JSON body.

    Raises ``DecodeError`` (never retried) when the body is not valid JSON.
    """

    def _read(response: requests.Response) -> object:
        try:
            return response.json()
        except ValueError as exc:
            raise DecodeError(f"invalid JSON payload from {url}: {exc}") from exc

    return _get(session, url, policy, _read, **kwargs)


def get_content(session: requests.Session, url: str, policy: RetryPolicy, **kwargs) -> bytes:
    """GET ``url`` under ``policy`` and return the raw body."""
    return _get(session, url, policy, lambda response: response.content, **kwargs)


def get_text(session: requests.Session, url: str, policy: RetryPolicy, **kwargs) -> str:
    """GET ``url`` under ``policy`` and return the decoded body, e.g. an HTML page."""
    return _get(session, url, policy, lambda response: response.text, **kwargs)
