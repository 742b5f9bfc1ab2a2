"""
API Discovery Module

Finds a working base URL, authentication strategy and resource path for
the time-tracking API by trying candidates in order.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple

from .candidates import AuthStrategy, build_time_entry_param_sets
from .errors import DiscoveryError, FetchError
from .records import extract_array

logger = logging.getLogger(__name__)

# fetcher(url, headers, params) -> decoded body
Fetcher = Callable[[str, Dict[str, str], Optional[dict]], Any]

UNABLE_TO_FETCH = "Unable to fetch data from the time-tracking API."


@dataclass(frozen=True)
class EndpointMatch:
    """The first (endpoint, auth) combination that answered."""
    endpoint: str
    auth: AuthStrategy
    url: str
    json: Any


@dataclass(frozen=True)
class DiscoveryContext:
    """What the people lookup settled on; reused for every person."""
    base_url: str
    auth: AuthStrategy
    people_endpoint: str
    auth_strategies: Tuple[AuthStrategy, ...]


def iter_attempts(endpoints: Sequence[str], auth_strategies: Sequence[AuthStrategy]
                ) -> Iterator[Tuple[str, AuthStrategy]]:
    """Yield (endpoint, strategy) pairs, endpoint-major, lazily."""
    for endpoint in endpoints:
        for strategy in auth_strategies:
            yield endpoint, strategy


def try_endpoints(
    base_url: str,
    auth_strategies: Sequence[AuthStrategy],
    endpoints: Sequence[str],
    fetcher: Fetcher,
    params: Optional[dict] = None,
) -> EndpointMatch:
    """
    Try endpoint x auth combinations until one succeeds.

    Args:
        base_url: Normalized base URL
        auth_strategies: Strategies to try for every endpoint
        endpoints: Resource path aliases, in priority order
        fetcher: Resilient fetch callable
        params: Query parameters sent with every attempt

    Returns:
        EndpointMatch of the first success

    Raises:
        FetchError: the last failure once every combination has failed
    """
    last_error: Optional[FetchError] = None

    for endpoint, strategy in iter_attempts(endpoints, auth_strategies):
        url = f"{base_url}{endpoint}"
        try:
            body = fetcher(url, strategy.headers, params)
        except FetchError as e:
            logger.debug("Attempt %s [%s] failed: %s", url, strategy.label, e.message)
            last_error = e
            continue

        logger.debug("Attempt %s [%s] succeeded", url, strategy.label)
        return EndpointMatch(endpoint=endpoint, auth=strategy, url=url, json=body)

    raise last_error or FetchError(UNABLE_TO_FETCH)


class ApiDiscovery:
    """
    Discovers the time-tracking API layout for one report request.

    Usage:
        discovery = ApiDiscovery(fetcher)
        context, people = discovery.discover_people(base_urls, strategies)
        entries, match = discovery.fetch_time_entries(context, person_id, date)
    """

    PEOPLE_ENDPOINTS = ["/people", "/users", "/persons", "/members", "/staff"]

    TIME_ENTRY_ENDPOINTS = ["/time_entries", "/time-entries", "/timesheets", "/entries"]

    def __init__(self, fetcher: Fetcher):
        self.fetcher = fetcher

    def discover_people(
        self,
        base_urls: Sequence[str],
        auth_strategies: Sequence[AuthStrategy],
    ) -> Tuple[DiscoveryContext, EndpointMatch]:
        """
        Find the first base URL that serves the people resource.

        Args:
            base_urls: Candidates in priority order
            auth_strategies: Strategies to try on each people endpoint

        Returns:
            Tuple of (resolved context, people match)

        Raises:
            DiscoveryError: no base URL answered
        """
        last_error: Optional[Exception] = None

        for base_url in base_urls:
            logger.info("Trying %s for people", base_url)
            try:
                result = try_endpoints(
                    base_url, auth_strategies, self.PEOPLE_ENDPOINTS, self.fetcher
                )
            except FetchError as e:
                last_error = e
                continue

            logger.info(
                "Resolved %s%s using %s", base_url, result.endpoint, result.auth.label
            )
            context = DiscoveryContext(
                base_url=base_url,
                auth=result.auth,
                people_endpoint=result.endpoint,
                auth_strategies=tuple(auth_strategies),
            )
            return context, result

        details = str(last_error) if last_error else "Unknown error"
        raise DiscoveryError(
            "Unable to fetch people from the time-tracking API. "
            "Check your base URL and API credentials.",
            details=details,
            tried_base_urls=list(base_urls),
        )

    def fetch_time_entries(
        self,
        context: DiscoveryContext,
        person_id: str,
        date: str,
    ) -> Tuple[List, Optional[EndpointMatch]]:
        """
        Fetch one person's entries for a date.

        Tries each known query-parameter shape in turn against the resolved
        base URL with the full strategy set.

        Returns:
            Tuple of (entry records, match or None when nothing answered)
        """
        for params in build_time_entry_param_sets(person_id, date):
            try:
                result = try_endpoints(
                    context.base_url,
                    context.auth_strategies,
                    self.TIME_ENTRY_ENDPOINTS,
                    self.fetcher,
                    params=params,
                )
            except FetchError as e:
                logger.debug(
                    "No entries for %s with params %s: %s",
                    person_id, sorted(params), e.message,
                )
                continue
            return extract_array(result.json), result

        logger.warning("No time-entry endpoint answered for person %s", person_id)
        return [], None
