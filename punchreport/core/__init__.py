"""Core modules for PunchReport."""

from .config import ReportConfig, Settings, load_settings, save_settings
from .errors import DiscoveryError, FetchError, InputError, PunchReportError
from .fetcher import JsonFetcher, fetch_json
from .discovery import ApiDiscovery, try_endpoints
from .calculator import WorkTimeCalculator
from .report import generate_report

__all__ = [
    "ReportConfig",
    "Settings",
    "load_settings",
    "save_settings",
    "DiscoveryError",
    "FetchError",
    "InputError",
    "PunchReportError",
    "JsonFetcher",
    "fetch_json",
    "ApiDiscovery",
    "try_endpoints",
    "WorkTimeCalculator",
    "generate_report",
]
