"""
Configuration management for PunchReport.

Handles the persisted YAML settings file, credentials from the environment,
and the immutable per-request report configuration.
"""

import logging
import math
import os
import yaml
from datetime import date as Date
from pathlib import Path
from dataclasses import dataclass, field, asdict
from typing import Optional

from .errors import InputError

logger = logging.getLogger(__name__)

# Default config directory
CONFIG_DIR = Path.home() / ".punchreport"
CONFIG_FILE = CONFIG_DIR / "config.yaml"

DEFAULT_SHIFT_HOURS = 8
DEFAULT_TIMEOUT_MS = 15000
DEFAULT_RETRIES = 2
DEFAULT_BACKOFF_MS = 500


@dataclass
class ApiSettings:
    """Time-tracking API connection defaults."""
    base_url: str = ""  # Empty means the built-in production address
    auth_mode: str = "auto"
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    retries: int = DEFAULT_RETRIES
    backoff_ms: int = DEFAULT_BACKOFF_MS


@dataclass
class Credentials:
    """API key pair (the secret is never written to disk)."""
    api_key_id: str = ""
    api_key_secret: str = ""


@dataclass
class Settings:
    """Main settings class."""
    api: ApiSettings = field(default_factory=ApiSettings)
    credentials: Credentials = field(default_factory=Credentials)
    shift_hours: float = DEFAULT_SHIFT_HOURS

    def to_dict(self) -> dict:
        """Convert settings to dictionary (excluding the secret)."""
        data = asdict(self)
        data['credentials']['api_key_secret'] = ""
        return data

    @classmethod
    def from_dict(cls, data: dict) -> 'Settings':
        """Create settings from dictionary."""
        settings = cls()

        if 'api' in data:
            settings.api = ApiSettings(**data['api'])

        if 'credentials' in data:
            settings.credentials = Credentials(**data['credentials'])

        if 'shift_hours' in data:
            settings.shift_hours = data['shift_hours']

        return settings


@dataclass(frozen=True)
class ReportConfig:
    """Everything one report request needs. Never mutated once built."""
    api_key_id: str
    api_key_secret: str
    date: str
    base_url: str = ""
    shift_hours: Optional[float] = DEFAULT_SHIFT_HOURS
    auth_mode: str = "auto"
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    retries: int = DEFAULT_RETRIES
    backoff_ms: int = DEFAULT_BACKOFF_MS

    @property
    def shift_minutes(self) -> int:
        """Shift length in minutes; anything not finite and positive means 8h."""
        try:
            hours = float(self.shift_hours)
        except (TypeError, ValueError):
            hours = 0
        if math.isfinite(hours) and hours > 0:
            return round(hours * 60)
        return DEFAULT_SHIFT_HOURS * 60

    def validate(self):
        """
        Check the required fields.

        Raises:
            InputError: credentials or date missing
        """
        if not self.api_key_id or not self.api_key_secret:
            raise InputError(
                "Provide both the API Key ID and API Key Secret to continue."
            )
        if not self.date:
            raise InputError("Please pick a date to run the report.")
        try:
            Date.fromisoformat(self.date)
        except ValueError:
            raise InputError(f"Invalid date '{self.date}', expected YYYY-MM-DD.") from None

    @classmethod
    def from_payload(cls, payload: dict, settings: Settings = None) -> 'ReportConfig':
        """
        Build a config from a JSON request body.

        Args:
            payload: Body with camelCase keys (apiKeyId, apiKeySecret, ...)
            settings: Defaults for anything the body leaves out

        Returns:
            ReportConfig (not yet validated)
        """
        settings = settings or Settings()
        if not isinstance(payload, dict):
            payload = {}
        api = settings.api

        def text(key, default=""):
            value = payload.get(key)
            if value is None:
                return default
            return str(value).strip()

        def number(key, default, minimum):
            value = payload.get(key)
            if value in (None, ""):
                return default
            try:
                value = int(value)
            except (TypeError, ValueError):
                return default
            return value if value >= minimum else default

        return cls(
            api_key_id=text('apiKeyId', settings.credentials.api_key_id),
            api_key_secret=text('apiKeySecret', settings.credentials.api_key_secret),
            date=text('date'),
            base_url=text('baseUrl', api.base_url),
            shift_hours=payload.get('shiftHours') or settings.shift_hours,
            auth_mode=text('authMode', api.auth_mode) or "auto",
            timeout_ms=number('timeoutMs', api.timeout_ms, 1),
            retries=number('retries', api.retries, 0),
            backoff_ms=api.backoff_ms,
        )


def ensure_config_dir():
    """Ensure configuration directory exists."""
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)


def load_settings(config_path: Path = None) -> Settings:
    """
    Load settings from YAML file.

    Args:
        config_path: Path to config file (uses default if None)

    Returns:
        Settings object
    """
    if config_path is None:
        config_path = CONFIG_FILE

    if not config_path.exists():
        return Settings()

    try:
        with open(config_path, 'r') as f:
            data = yaml.safe_load(f) or {}
        return Settings.from_dict(data)
    except (OSError, TypeError, yaml.YAMLError) as e:
        logger.warning("Error loading settings from %s: %s", config_path, e)
        return Settings()


def save_settings(settings: Settings, config_path: Path = None):
    """
    Save settings to YAML file.

    Args:
        settings: Settings object to save
        config_path: Path to save to (uses default if None)
    """
    if config_path is None:
        ensure_config_dir()
        config_path = CONFIG_FILE
    else:
        config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, 'w') as f:
        yaml.dump(settings.to_dict(), f, default_flow_style=False, sort_keys=False)


def load_credentials() -> Credentials:
    """Load credentials from environment."""
    return Credentials(
        api_key_id=os.getenv("PUNCHREPORT_API_KEY_ID", ""),
        api_key_secret=os.getenv("PUNCHREPORT_API_KEY_SECRET", ""),
    )
