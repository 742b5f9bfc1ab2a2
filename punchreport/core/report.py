"""
Report pipeline: discovery, normalization and aggregation for one request.
"""

import logging
from datetime import date as Date
from typing import Optional

from .candidates import build_auth_strategies, build_base_url_candidates
from .calculator import WorkTimeCalculator
from .config import ReportConfig
from .discovery import ApiDiscovery, Fetcher
from .fetcher import JsonFetcher, sanitize_error_message
from .records import extract_array, normalize_person

logger = logging.getLogger(__name__)


def failure_message(error: Exception) -> str:
    """Generic failure text for errors that escape the pipeline."""
    return (
        "Unable to fetch data from the time-tracking API: "
        f"{sanitize_error_message(str(error)) or type(error).__name__}"
    )


def generate_report(config: ReportConfig, fetcher: Optional[Fetcher] = None) -> dict:
    """
    Generate the daily work report.

    Args:
        config: Validated or unvalidated request configuration
        fetcher: Resilient fetch callable; a JsonFetcher with its own session
            is created (and closed) when None

    Returns:
        Report payload dictionary

    Raises:
        InputError: configuration incomplete (no request is sent)
        DiscoveryError: no base URL answered the people request
    """
    config.validate()

    if fetcher is None:
        with JsonFetcher(
            retries=config.retries,
            timeout_ms=config.timeout_ms,
            backoff_ms=config.backoff_ms,
        ) as own_fetcher:
            return _run(config, own_fetcher)
    return _run(config, fetcher)


def _run(config: ReportConfig, fetcher: Fetcher) -> dict:
    report_date = Date.fromisoformat(config.date)
    base_urls = build_base_url_candidates(config.base_url)
    strategies = build_auth_strategies(
        config.auth_mode, config.api_key_id, config.api_key_secret
    )

    discovery = ApiDiscovery(fetcher)
    context, people_result = discovery.discover_people(base_urls, strategies)
    calculator = WorkTimeCalculator(config.shift_minutes, report_date)

    reports = []
    entries_endpoint = None

    for record in extract_array(people_result.json):
        person = normalize_person(record)
        if person is None:
            continue

        entries, entries_result = discovery.fetch_time_entries(
            context, person.id, config.date
        )
        if entries_result and entries_endpoint is None:
            entries_endpoint = entries_result.endpoint

        reports.append(calculator.build_person_report(person, entries).to_dict())

    logger.info("Built %d person reports for %s", len(reports), config.date)

    return {
        'date': config.date,
        'baseUrl': context.base_url,
        'authStrategy': context.auth.label,
        'peopleEndpoint': context.people_endpoint,
        'entriesEndpoint': entries_endpoint,
        'peopleCount': len(reports),
        'reports': reports,
    }
