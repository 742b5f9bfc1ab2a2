"""
Pytest configuration and shared fixtures.

Nothing here touches the network: HTTP is replaced by a fake requests
session (for the fetch layer) or a fake fetcher (for everything above it).
"""

import pytest

from punchreport.core.config import Settings
from punchreport.core.errors import FetchError


class FakeResponse:
    """Just enough of requests.Response for the fetch layer."""

    def __init__(self, status_code=200, text="", reason="OK"):
        self.status_code = status_code
        self.text = text
        self.reason = reason


class FakeSession:
    """Replays queued responses (or raises queued exceptions) in order."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = []
        self.closed = False

    def get(self, url, headers=None, params=None, timeout=None):
        self.calls.append({
            "url": url,
            "headers": dict(headers or {}),
            "params": params,
            "timeout": timeout,
        })
        if not self.outcomes:
            raise AssertionError(f"Unexpected request to {url}")
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def close(self):
        self.closed = True


class FakeApi:
    """
    A fetcher serving fixed routes.

    Routes map an absolute URL to a body, or to a callable
    ``handler(headers, params)`` returning a body or raising FetchError.
    Unknown URLs answer 404.
    """

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.calls = []

    def __call__(self, url, headers=None, params=None):
        self.calls.append((url, dict(headers or {}), dict(params or {})))
        handler = self.routes.get(url)
        if handler is None:
            raise FetchError("Not Found", status=404)
        if callable(handler):
            return handler(headers or {}, params or {})
        return handler


@pytest.fixture
def fake_response():
    return FakeResponse


@pytest.fixture
def fake_session():
    return FakeSession


@pytest.fixture
def fake_api():
    return FakeApi


@pytest.fixture
def no_sleep():
    """Sleep replacement recording requested delays."""
    delays = []

    def sleep(seconds):
        delays.append(seconds)

    sleep.delays = delays
    return sleep


@pytest.fixture
def settings():
    """Default settings, never read from the user's home directory."""
    return Settings()


@pytest.fixture
def sample_people():
    return {
        "data": [
            {"id": "p-1", "first_name": "Ada", "last_name": "Lovelace"},
            {"person_id": "p-2", "display_name": "Grace H."},
            {"name": "No Id Person"},
        ]
    }


@pytest.fixture
def sample_entries():
    return [
        {"location": "Head office", "start": "2024-05-02T09:00:00Z", "end": "2024-05-02T12:00:00Z"},
        {"location": "Head office", "start": "2024-05-02T13:00:00Z", "end": "2024-05-02T17:00:00Z"},
        {"project_name": "Site visit", "time_in": "2024-05-02T17:30:00Z", "time_out": "2024-05-02T18:15:00Z"},
    ]
