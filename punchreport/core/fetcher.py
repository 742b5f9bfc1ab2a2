"""
Resilient Fetch

One JSON GET with a per-attempt timeout and linear retry backoff.
"""

import json
import logging
import re
import time
from typing import Any, Callable, Dict, Optional

import requests

from .config import DEFAULT_BACKOFF_MS, DEFAULT_RETRIES, DEFAULT_TIMEOUT_MS
from .errors import FetchError

logger = logging.getLogger(__name__)

MAX_ERROR_MESSAGE_LENGTH = 280

_TAG_RE = re.compile(r'<[^>]+>')
_SPACE_RE = re.compile(r'\s+')


def sanitize_error_message(value: Any) -> str:
    """Strip HTML tags, collapse whitespace and cap the length."""
    if not value:
        return ""
    text = _TAG_RE.sub(" ", str(value))
    text = _SPACE_RE.sub(" ", text).strip()
    return text[:MAX_ERROR_MESSAGE_LENGTH]


def timeout_message(timeout_ms: int) -> str:
    return f"Request timed out after {timeout_ms} ms."


def _parse_body(text: str) -> Any:
    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError:
        return None


def _error_from_response(response, body: Any, text: str) -> FetchError:
    raw_message = None
    if isinstance(body, dict):
        raw_message = body.get('message') or body.get('error')
    raw_message = raw_message or text or response.reason
    message = sanitize_error_message(raw_message) or f"HTTP {response.status_code}"
    return FetchError(message, status=response.status_code, body=body)


def _attempt(session, url: str, headers: Dict[str, str], params: Optional[dict],
             timeout_ms: int) -> Any:
    try:
        response = session.get(
            url,
            headers=headers,
            params=params,
            timeout=timeout_ms / 1000,
        )
    except requests.Timeout as e:
        raise FetchError(timeout_message(timeout_ms)) from e
    except requests.RequestException as e:
        raise FetchError(sanitize_error_message(str(e)) or "Network error") from e

    text = response.text or ""
    body = _parse_body(text)
    if not 200 <= response.status_code < 300:
        raise _error_from_response(response, body, text)
    return body


def fetch_json(
    url: str,
    headers: Dict[str, str] = None,
    retries: int = DEFAULT_RETRIES,
    timeout_ms: int = DEFAULT_TIMEOUT_MS,
    *,
    params: Optional[dict] = None,
    session=None,
    backoff_ms: int = DEFAULT_BACKOFF_MS,
    sleep: Callable[[float], None] = time.sleep,
) -> Any:
    """
    GET a URL and decode its JSON body.

    Args:
        url: Absolute URL
        headers: Extra request headers (auth); Accept is always JSON
        retries: Extra attempts allowed after the first one
        timeout_ms: Per-attempt limit on the connect and on each socket read.
            requests has no whole-transfer deadline, so a server trickling
            bytes can keep one attempt alive longer than this
        params: Query parameters
        session: requests.Session (or compatible) to send through
        backoff_ms: Base delay; attempt N waits N * backoff_ms before retrying
        sleep: Delay function

    Returns:
        Decoded body, or None when the body is empty or not JSON

    Raises:
        FetchError: terminal client error, or the last error once retries
            are used up
    """
    request_headers = dict(headers or {})
    request_headers['Accept'] = 'application/json'
    http = session or requests

    attempt = 0
    while True:
        attempt += 1
        try:
            return _attempt(http, url, request_headers, params, timeout_ms)
        except FetchError as e:
            if not e.retryable or attempt > retries:
                raise
            delay_ms = attempt * backoff_ms
            logger.warning(
                "GET %s failed (%s), retry %d/%d in %d ms",
                url, e.message, attempt, retries, delay_ms,
            )
            sleep(delay_ms / 1000)


class JsonFetcher:
    """
    The retry/timeout policy bound to one HTTP session.

    timeout_ms bounds each connect and each read, not the total transfer.

    Usage:
        with JsonFetcher(timeout_ms=5000) as fetcher:
            body = fetcher("https://api.example.com/people", headers)
    """

    def __init__(
        self,
        retries: int = DEFAULT_RETRIES,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        backoff_ms: int = DEFAULT_BACKOFF_MS,
        session=None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.retries = retries
        self.timeout_ms = timeout_ms
        self.backoff_ms = backoff_ms
        self.sleep = sleep
        self._owns_session = session is None
        self.session = session or requests.Session()

    def __call__(self, url: str, headers: Dict[str, str] = None, params: Optional[dict] = None) -> Any:
        return fetch_json(
            url,
            headers,
            self.retries,
            self.timeout_ms,
            params=params,
            session=self.session,
            backoff_ms=self.backoff_ms,
            sleep=self.sleep,
        )

    def close(self):
        if self._owns_session:
            self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
