"""PunchReport - daily work reports from any time-tracking API."""

__version__ = "1.0.0"
