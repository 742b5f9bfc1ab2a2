"""
Candidate Generators

Ordered guesses for where the time-tracking API lives, how it wants
credentials, and how it names the time-entry query parameters.
"""

import base64
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

DEFAULT_BASE_URL = "https://api.jibble.io"

VERSION_SUFFIXES = ["/v1", "/v2", "/api/v1", "/api/v2"]

# Known production addresses, tried after the user-supplied ones
FALLBACK_BASE_URLS = [DEFAULT_BASE_URL] + [
    DEFAULT_BASE_URL + suffix for suffix in VERSION_SUFFIXES
]

_SCHEME_RE = re.compile(r'^https?://', re.IGNORECASE)
_VERSION_RE = re.compile(r'(/api)?/v\d+$', re.IGNORECASE)

AUTO_MODE = "auto"


@dataclass(frozen=True)
class AuthStrategy:
    """One way of presenting the API key pair."""
    key: str
    label: str
    headers: Dict[str, str] = field(default_factory=dict)


def normalize_base_url(raw: Optional[str]) -> str:
    """Enforce a scheme and drop trailing slashes; blank means the default."""
    value = (raw or "").strip()
    if not value:
        return DEFAULT_BASE_URL
    if not _SCHEME_RE.match(value):
        value = f"https://{value}"
    return value.rstrip("/")


def _unique(values: List[str]) -> List[str]:
    seen = set()
    result = []
    for value in values:
        if value and value not in seen:
            seen.add(value)
            result.append(value)
    return result


def build_base_url_candidates(raw: Optional[str]) -> List[str]:
    """
    Build the ordered list of base URLs to try.

    The normalized input and its version variants come first, then the
    fixed production list.

    Args:
        raw: User-supplied base URL (may be empty)

    Returns:
        Duplicate-free list of absolute URLs
    """
    normalized = normalize_base_url(raw)
    candidates = [normalized]

    if _VERSION_RE.search(normalized):
        root = _VERSION_RE.sub("", normalized)
        candidates.append(root)
        candidates.extend(root + suffix for suffix in VERSION_SUFFIXES)
    else:
        candidates.extend(normalized + suffix for suffix in VERSION_SUFFIXES)

    candidates.extend(FALLBACK_BASE_URLS)
    return _unique(candidates)


def build_auth_strategies(mode: Optional[str], key_id: str, secret: str) -> List[AuthStrategy]:
    """
    Build the authentication strategies to try.

    Args:
        mode: Strategy key, "auto" or empty (unknown keys behave like "auto")
        key_id: API key ID
        secret: API key secret

    Returns:
        All four strategies in fixed order, or the single requested one
    """
    token = base64.b64encode(f"{key_id}:{secret}".encode("utf-8")).decode("ascii")
    strategies = [
        AuthStrategy("basic", "HTTP Basic", {"Authorization": f"Basic {token}"}),
        AuthStrategy("bearer", "Bearer token", {"Authorization": f"Bearer {secret}"}),
        AuthStrategy("api_key", "API key header", {"X-API-KEY": secret}),
        AuthStrategy("key_secret", "API key + secret headers", {
            "X-API-KEY": key_id,
            "X-API-SECRET": secret,
        }),
    ]

    wanted = (mode or "").strip().lower()
    if not wanted or wanted == AUTO_MODE:
        return strategies

    for strategy in strategies:
        if strategy.key == wanted:
            return [strategy]

    return strategies


def build_time_entry_param_sets(person_id: str, date: str) -> List[Dict[str, str]]:
    """Query-parameter shapes used by the known API variants, in order."""
    return [
        {"person_id": person_id, "start_date": date, "end_date": date},
        {"person_id": person_id, "date": date},
        {"person_id": person_id, "from": date, "to": date},
        {"person_id": person_id, "start": date, "end": date},
    ]
