"""
Record Normalizer

Pulls record lists out of response envelopes and resolves loosely named
fields through ordered alias tables.
"""

from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, Optional, Union

# Envelope keys, highest priority first
ENVELOPE_KEYS = ("data", "people", "persons", "results", "items", "value")

Accessor = Union[str, Callable[[dict], Any]]


def _full_name(record: dict) -> str:
    parts = [record.get('first_name'), record.get('last_name')]
    return " ".join(str(part) for part in parts if part)


PERSON_ID_FIELDS = ("id", "person_id", "uuid", "_id")
PERSON_NAME_FIELDS = ("name", _full_name, "display_name")

ENTRY_LABEL_FIELDS = (
    "location_name", "locationName", "location",
    "project_name", "projectName", "project",
    "activity_name", "activityName", "activity",
    "task_name", "task",
    "title",
)
TIME_IN_FIELDS = ("time_in", "timeIn", "start", "start_time", "started_at")
TIME_OUT_FIELDS = ("time_out", "timeOut", "end", "end_time", "ended_at")

UNKNOWN_NAME = "Unknown"


def pick_first(record: Any, accessors: Iterable[Accessor], default: Any = None) -> Any:
    """
    Return the first non-empty value found through ``accessors``.

    Each accessor is either a key or a callable taking the record.
    """
    if not isinstance(record, dict):
        return default
    for accessor in accessors:
        if callable(accessor):
            value = accessor(record)
        else:
            value = record.get(accessor)
        if value not in (None, "", [], {}):
            return value
    return default


def extract_array(payload: Any) -> List:
    """
    Extract the record list from a response body.

    Lists pass through, envelopes are unwrapped by ENVELOPE_KEYS (one nested
    level deep), anything else gives an empty list.
    """
    if isinstance(payload, list):
        return payload
    if not isinstance(payload, dict):
        return []

    value = pick_first(payload, ENVELOPE_KEYS)
    if isinstance(value, list):
        return value
    if isinstance(value, dict):
        nested = pick_first(value, ENVELOPE_KEYS)
        if isinstance(nested, list):
            return nested
    return []


@dataclass(frozen=True)
class Person:
    """A person record reduced to what the report needs."""
    id: str
    name: str


def normalize_person(record: Any) -> Optional[Person]:
    """Normalize a raw person record; None when it carries no usable id."""
    person_id = pick_first(record, PERSON_ID_FIELDS)
    if person_id is None:
        return None
    name = pick_first(record, PERSON_NAME_FIELDS, UNKNOWN_NAME)
    return Person(id=str(person_id), name=str(name))
