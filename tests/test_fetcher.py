import pytest
import requests

from punchreport.core.errors import FetchError
from punchreport.core.fetcher import (
    MAX_ERROR_MESSAGE_LENGTH,
    JsonFetcher,
    fetch_json,
    sanitize_error_message,
    timeout_message,
)

URL = "https://api.example.com/people"


def test_client_error_is_not_retried(fake_session, fake_response, no_sleep):
    session = fake_session(fake_response(404, '{"message": "No such route"}', "Not Found"))

    with pytest.raises(FetchError) as excinfo:
        fetch_json(URL, {}, retries=3, timeout_ms=1000, session=session, sleep=no_sleep)

    assert excinfo.value.status == 404
    assert excinfo.value.message == "No such route"
    assert len(session.calls) == 1
    assert no_sleep.delays == []


def test_server_errors_are_retried_until_success(fake_session, fake_response, no_sleep):
    session = fake_session(
        fake_response(500, "boom", "Internal Server Error"),
        fake_response(500, "boom", "Internal Server Error"),
        fake_response(200, '{"data": [1, 2]}'),
    )

    body = fetch_json(URL, {}, retries=2, timeout_ms=1000,
                      session=session, backoff_ms=500, sleep=no_sleep)

    assert body == {"data": [1, 2]}
    assert len(session.calls) == 3
    assert no_sleep.delays == [0.5, 1.0]


def test_last_error_is_raised_when_retries_run_out(fake_session, fake_response, no_sleep):
    session = fake_session(
        fake_response(502, "first", "Bad Gateway"),
        fake_response(503, "second", "Service Unavailable"),
    )

    with pytest.raises(FetchError) as excinfo:
        fetch_json(URL, {}, retries=1, timeout_ms=1000, session=session, sleep=no_sleep)

    assert excinfo.value.status == 503
    assert excinfo.value.message == "second"
    assert len(session.calls) == 2


def test_timeout_is_retryable_with_fixed_message(fake_session, no_sleep):
    session = fake_session(requests.Timeout("read timed out"), requests.Timeout("read timed out"))

    with pytest.raises(FetchError) as excinfo:
        fetch_json(URL, {}, retries=1, timeout_ms=2500, session=session, sleep=no_sleep)

    assert excinfo.value.status is None
    assert excinfo.value.retryable
    assert excinfo.value.message == timeout_message(2500)
    assert len(session.calls) == 2
    assert session.calls[0]["timeout"] == 2.5


def test_network_failure_is_retried(fake_session, fake_response, no_sleep):
    session = fake_session(
        requests.ConnectionError("connection refused"),
        fake_response(200, "[]"),
    )

    assert fetch_json(URL, {}, retries=1, timeout_ms=1000, session=session, sleep=no_sleep) == []
    assert len(session.calls) == 2


def test_accept_header_and_params_are_sent(fake_session, fake_response):
    session = fake_session(fake_response(200, "{}"))

    fetch_json(URL, {"Authorization": "Bearer s"}, session=session,
               params={"person_id": "p-1"})

    call = session.calls[0]
    assert call["headers"] == {"Authorization": "Bearer s", "Accept": "application/json"}
    assert call["params"] == {"person_id": "p-1"}


@pytest.mark.parametrize("text", ["", "not json at all", "<html>ok</html>"])
def test_unparseable_success_body_is_none(fake_session, fake_response, text):
    session = fake_session(fake_response(200, text))
    assert fetch_json(URL, session=session) is None


def test_error_message_prefers_error_field(fake_session, fake_response):
    session = fake_session(fake_response(401, '{"error": "Invalid API key"}', "Unauthorized"))

    with pytest.raises(FetchError) as excinfo:
        fetch_json(URL, session=session)

    assert excinfo.value.message == "Invalid API key"
    assert excinfo.value.body == {"error": "Invalid API key"}


def test_error_message_falls_back_to_status_phrase(fake_session, fake_response):
    session = fake_session(fake_response(404, "", "Not Found"))

    with pytest.raises(FetchError) as excinfo:
        fetch_json(URL, session=session)

    assert excinfo.value.message == "Not Found"


def test_html_error_pages_are_sanitized(fake_session, fake_response):
    page = "<html><body>\n<h1>Forbidden</h1>\n   <p>Go away</p></body></html>"
    session = fake_session(fake_response(403, page, "Forbidden"))

    with pytest.raises(FetchError) as excinfo:
        fetch_json(URL, session=session)

    assert excinfo.value.message == "Forbidden Go away"


def test_sanitize_truncates_long_messages():
    assert len(sanitize_error_message("x" * 1000)) == MAX_ERROR_MESSAGE_LENGTH
    assert sanitize_error_message(None) == ""


class TestJsonFetcher:
    def test_applies_its_policy(self, fake_session, fake_response, no_sleep):
        session = fake_session(
            fake_response(500, "", "Internal Server Error"),
            fake_response(200, '{"ok": true}'),
        )
        fetcher = JsonFetcher(retries=1, timeout_ms=4000, backoff_ms=100,
                              session=session, sleep=no_sleep)

        assert fetcher(URL, {"X-API-KEY": "k"}) == {"ok": True}
        assert no_sleep.delays == [0.1]
        assert session.calls[0]["timeout"] == 4.0

    def test_does_not_close_a_borrowed_session(self, fake_session):
        session = fake_session()
        with JsonFetcher(session=session):
            pass
        assert not session.closed
