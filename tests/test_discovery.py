import pytest

from punchreport.core.candidates import build_auth_strategies
from punchreport.core.discovery import (
    UNABLE_TO_FETCH,
    ApiDiscovery,
    DiscoveryContext,
    try_endpoints,
)
from punchreport.core.errors import DiscoveryError, FetchError

BASE = "https://api.example.com"
STRATEGIES = build_auth_strategies("auto", "id", "secret")
BASIC, BEARER, API_KEY, KEY_SECRET = STRATEGIES


def strategy_key(headers):
    for strategy in STRATEGIES:
        if strategy.headers == headers:
            return strategy.key
    return None


class TestTryEndpoints:
    def test_first_success_wins(self):
        calls = []

        def fetcher(url, headers, params=None):
            calls.append((url, strategy_key(headers)))
            if url == f"{BASE}/users" and headers == BEARER.headers:
                return {"data": []}
            raise FetchError("Unauthorized", status=401)

        result = try_endpoints(BASE, STRATEGIES, ["/people", "/users", "/persons"], fetcher)

        assert result.endpoint == "/users"
        assert result.auth == BEARER
        assert result.url == f"{BASE}/users"
        assert result.json == {"data": []}
        assert calls == [
            (f"{BASE}/people", "basic"),
            (f"{BASE}/people", "bearer"),
            (f"{BASE}/people", "api_key"),
            (f"{BASE}/people", "key_secret"),
            (f"{BASE}/users", "basic"),
            (f"{BASE}/users", "bearer"),
        ]

    def test_server_errors_do_not_stop_the_search(self):
        def fetcher(url, headers, params=None):
            if url.endswith("/people"):
                raise FetchError("Bad Gateway", status=502)
            return [{"id": 1}]

        result = try_endpoints(BASE, [BASIC], ["/people", "/users"], fetcher)
        assert result.endpoint == "/users"

    def test_raises_error_of_last_combination(self):
        def fetcher(url, headers, params=None):
            status = 500 if url.endswith("/a") else 403
            raise FetchError(f"{url} {strategy_key(headers)}", status=status)

        with pytest.raises(FetchError) as excinfo:
            try_endpoints(BASE, [BASIC, BEARER], ["/a", "/b"], fetcher)

        assert excinfo.value.message == f"{BASE}/b bearer"
        assert excinfo.value.status == 403

    def test_generic_error_when_nothing_was_tried(self):
        def fetcher(url, headers, params=None):
            raise AssertionError("should not be called")

        with pytest.raises(FetchError) as excinfo:
            try_endpoints(BASE, STRATEGIES, [], fetcher)

        assert excinfo.value.message == UNABLE_TO_FETCH

    def test_params_are_passed_to_every_attempt(self, fake_api):
        api = fake_api()
        with pytest.raises(FetchError):
            try_endpoints(BASE, [BASIC], ["/a", "/b"], api, params={"date": "2024-05-02"})
        assert [call[2] for call in api.calls] == [{"date": "2024-05-02"}] * 2


class TestDiscoverPeople:
    def test_stops_at_first_working_base_url(self, fake_api):
        api = fake_api({f"{BASE}/v1/members": {"items": []}})
        base_urls = [BASE, f"{BASE}/v1", f"{BASE}/v2"]

        context, result = ApiDiscovery(api).discover_people(base_urls, STRATEGIES)

        assert context.base_url == f"{BASE}/v1"
        assert context.people_endpoint == "/members"
        assert context.auth == BASIC
        assert context.auth_strategies == tuple(STRATEGIES)
        assert result.json == {"items": []}
        assert not any(url.startswith(f"{BASE}/v2") for url, _, _ in api.calls)
        # every alias on the root was tried with every strategy
        assert len([c for c in api.calls if not c[0].startswith(f"{BASE}/v")]) == 5 * 4

    def test_failure_lists_every_candidate(self, fake_api):
        api = fake_api()
        base_urls = [BASE, "https://other.example.com"]

        with pytest.raises(DiscoveryError) as excinfo:
            ApiDiscovery(api).discover_people(base_urls, [BASIC])

        error = excinfo.value
        assert error.tried_base_urls == base_urls
        assert error.details == "Not Found"
        assert error.to_dict() == {
            "message": error.message,
            "details": "Not Found",
            "triedBaseUrls": base_urls,
        }


class TestFetchTimeEntries:
    def context(self):
        return DiscoveryContext(
            base_url=BASE,
            auth=BASIC,
            people_endpoint="/people",
            auth_strategies=tuple(STRATEGIES),
        )

    def test_tries_param_shapes_in_order(self, fake_api):
        def timesheets(headers, params):
            if "from" in params and headers == KEY_SECRET.headers:
                return {"results": [{"task": "Desk"}]}
            raise FetchError("Bad Request", status=400)

        api = fake_api({f"{BASE}/timesheets": timesheets})

        entries, result = ApiDiscovery(api).fetch_time_entries(self.context(), "p-1", "2024-05-02")

        assert entries == [{"task": "Desk"}]
        assert result.endpoint == "/timesheets"
        assert result.auth == KEY_SECRET
        shapes_seen = []
        for _, _, params in api.calls:
            shape = sorted(params)
            if shape not in shapes_seen:
                shapes_seen.append(shape)
        assert shapes_seen == [
            ["end_date", "person_id", "start_date"],
            ["date", "person_id"],
            ["from", "person_id", "to"],
        ]
        assert all(url.startswith(BASE + "/") for url, _, _ in api.calls)

    def test_exhaustion_gives_empty_entries(self, fake_api):
        api = fake_api()

        entries, result = ApiDiscovery(api).fetch_time_entries(self.context(), "p-1", "2024-05-02")

        assert entries == []
        assert result is None
        assert len(api.calls) == 4 * len(ApiDiscovery.TIME_ENTRY_ENDPOINTS) * len(STRATEGIES)
