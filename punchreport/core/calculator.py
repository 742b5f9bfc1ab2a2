"""
Work Time Calculator Module

Groups a person's time entries by label and works out worked time and the
balance left against the shift length.
"""

import math
import re
from datetime import date, datetime, timezone
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .config import DEFAULT_SHIFT_HOURS
from .records import (
    ENTRY_LABEL_FIELDS, TIME_IN_FIELDS, TIME_OUT_FIELDS, Person, pick_first,
)

UNSPECIFIED_LABEL = "Unspecified"
MISSING_TIME = "-"

_TIME_ONLY_RE = re.compile(r'^\d{1,2}:\d{2}(:\d{2})?$')
# Fractions other than 3 or 6 digits and colon-less offsets (+0200)
_FRACTION_RE = re.compile(r'(T?\d{2}:\d{2}:\d{2})\.(\d+)')
_COMPACT_OFFSET_RE = re.compile(r'(\d{2}:\d{2}(?::\d{2}(?:\.\d+)?)?)([+-]\d{2})(\d{2})$')

# Epoch values above this are taken to be milliseconds
_EPOCH_MS_THRESHOLD = 10 ** 11


def _normalize_iso(text: str) -> str:
    """Rewrite ISO-8601 forms older fromisoformat() rejects."""
    if text.endswith(('Z', 'z')):
        text = text[:-1] + '+00:00'
    text = _COMPACT_OFFSET_RE.sub(r'\1\2:\3', text)
    return _FRACTION_RE.sub(
        lambda m: f"{m.group(1)}.{m.group(2)[:6].ljust(6, '0')}", text
    )


def format_duration(minutes: int) -> str:
    """Render minutes as '7h 05m'."""
    safe_minutes = max(0, int(minutes))
    hours, mins = divmod(safe_minutes, 60)
    return f"{hours}h {mins:02d}m"


def format_time(value: Optional[datetime]) -> str:
    """Render a timestamp as HH:MM:SS, or '-' when absent."""
    if value is None:
        return MISSING_TIME
    return value.strftime("%H:%M:%S")


@dataclass
class GroupedEntry:
    """All of a person's entries sharing one label."""
    property: str
    time_in: Optional[datetime] = None
    time_out: Optional[datetime] = None
    total_minutes: int = 0

    def to_dict(self) -> dict:
        """Convert to the report payload shape."""
        return {
            'property': self.property,
            'timeIn': self.time_in.isoformat() if self.time_in else None,
            'timeOut': self.time_out.isoformat() if self.time_out else None,
            'totalMinutes': self.total_minutes,
            'timeInFormatted': format_time(self.time_in),
            'timeOutFormatted': format_time(self.time_out),
            'totalFormatted': format_duration(self.total_minutes),
        }


@dataclass
class PersonReport:
    """Daily work report for one person."""
    id: str
    name: str
    grouped_entries: List[GroupedEntry] = field(default_factory=list)
    total_minutes: int = 0
    balance_minutes: int = 0

    def to_dict(self) -> dict:
        """Convert to the report payload shape."""
        return {
            'id': self.id,
            'name': self.name,
            'groupedEntries': [entry.to_dict() for entry in self.grouped_entries],
            'totalMinutes': self.total_minutes,
            'balanceMinutes': self.balance_minutes,
            'totalFormatted': format_duration(self.total_minutes),
            'balanceFormatted': format_duration(self.balance_minutes),
        }


class WorkTimeCalculator:
    """
    Calculator for daily work reports.

    Usage:
        calc = WorkTimeCalculator(shift_minutes=480, report_date=date(2024, 5, 2))
        report = calc.build_person_report(person, entries)
    """

    def __init__(self, shift_minutes: int = DEFAULT_SHIFT_HOURS * 60,
                 report_date: Optional[date] = None):
        """Initialize calculator with the shift length and the day reported on."""
        self.shift_minutes = shift_minutes
        self.report_date = report_date

    def parse_time(self, value: Any) -> Optional[datetime]:
        """
        Parse a loosely formatted timestamp.

        Accepts datetimes, ISO-8601 strings, epoch seconds or milliseconds and
        bare HH:MM[:SS] times (placed on the report date). Naive values are
        taken as UTC so every result compares with every other.

        Returns:
            Timezone-aware datetime, or None when the value is unusable
        """
        if value is None or value == "" or isinstance(value, bool):
            return None

        parsed = None
        if isinstance(value, datetime):
            parsed = value
        elif isinstance(value, (int, float)):
            if not math.isfinite(value):
                return None
            seconds = value / 1000 if abs(value) > _EPOCH_MS_THRESHOLD else value
            try:
                parsed = datetime.fromtimestamp(seconds, tz=timezone.utc)
            except (OverflowError, OSError, ValueError):
                return None
        elif isinstance(value, str):
            text = value.strip()
            if _TIME_ONLY_RE.match(text):
                clock_format = "%H:%M:%S" if text.count(':') == 2 else "%H:%M"
                try:
                    clock = datetime.strptime(text, clock_format).time()
                except ValueError:
                    return None
                parsed = datetime.combine(self.report_date or date.today(), clock)
            else:
                try:
                    parsed = datetime.fromisoformat(_normalize_iso(text))
                except ValueError:
                    return None

        if parsed is None:
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed

    def minutes_between(self, start: Optional[datetime], end: Optional[datetime]) -> int:
        """Rounded minutes from start to end, never negative; 0 if either is missing."""
        if start is None or end is None:
            return 0
        # Halves round up
        return max(0, math.floor((end - start).total_seconds() / 60 + 0.5))

    def entry_label(self, entry: dict) -> str:
        """Label an entry is grouped under."""
        label = pick_first(entry, ENTRY_LABEL_FIELDS, UNSPECIFIED_LABEL)
        if isinstance(label, dict):
            # Expanded references, e.g. {"id": ..., "name": "Head office"}
            label = label.get('name') or label.get('title') or UNSPECIFIED_LABEL
        return str(label)

    def entry_times(self, entry: dict):
        """Return (time_in, time_out) for a raw entry."""
        time_in = self.parse_time(pick_first(entry, TIME_IN_FIELDS))
        time_out = self.parse_time(pick_first(entry, TIME_OUT_FIELDS))
        return time_in, time_out

    def on_report_date(self, time_in: Optional[datetime]) -> bool:
        """Entries starting on another calendar day belong to another report."""
        if self.report_date is None or time_in is None:
            return True
        return time_in.date() == self.report_date

    def group_entries(self, entries: List[Dict]) -> List[GroupedEntry]:
        """
        Group entries by label.

        time_in/time_out are the outer bounds of the group; total_minutes is
        the sum of the individual entry durations.

        Args:
            entries: Raw time-entry records

        Returns:
            One GroupedEntry per label, in first-seen order
        """
        grouped: Dict[str, GroupedEntry] = {}

        for entry in entries:
            if not isinstance(entry, dict):
                continue

            time_in, time_out = self.entry_times(entry)
            if not self.on_report_date(time_in):
                continue

            label = self.entry_label(entry)
            group = grouped.get(label)
            if group is None:
                group = grouped[label] = GroupedEntry(property=label)

            if time_in and (group.time_in is None or time_in < group.time_in):
                group.time_in = time_in
            if time_out and (group.time_out is None or time_out > group.time_out):
                group.time_out = time_out
            group.total_minutes += self.minutes_between(time_in, time_out)

        return list(grouped.values())

    def balance(self, total_minutes: int) -> int:
        """Minutes left to reach the shift length, floored at zero."""
        return max(0, self.shift_minutes - total_minutes)

    def build_person_report(self, person: Person, entries: List[Dict]) -> PersonReport:
        """
        Build one person's report.

        Args:
            person: Normalized person
            entries: Raw time-entry records for the report date

        Returns:
            PersonReport object
        """
        grouped_entries = self.group_entries(entries)
        total_minutes = sum(group.total_minutes for group in grouped_entries)

        return PersonReport(
            id=person.id,
            name=person.name,
            grouped_entries=grouped_entries,
            total_minutes=total_minutes,
            balance_minutes=self.balance(total_minutes),
        )
