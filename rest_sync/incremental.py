"""
Incremental filtering of extracted records by time window.

When the provider can restrict records to a time window itself (ProviderSide), or the object carries
no usable timestamp (None), the filter is a passthrough. Otherwise (ConnectorSide) the connector reads
the record's timestamp field and keeps only the records inside [since, until).

For chronologically ordered objects the filter also tells the caller to stop paginating as soon as a
record falls past the window edge away from which the provider is reading, since no later record can
be inside the window.
"""

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional

from rest_sync.errors import TimestampParseError
from rest_sync.params import FilterPolicy, Ordering

RFC3339 = "RFC3339"
_FRACTION = re.compile(r"(?<=\d{2}:\d{2}:\d{2})\.(\d+)")


@dataclass
class FilterOutcome:
    records: List[Any]
    stop: bool = False


FilterFunc = Callable[[List[Any]], FilterOutcome]


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes as UTC so they compare with timezone-aware ones."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class TimeWindow:
    since: Optional[datetime] = None
    until: Optional[datetime] = None

    def __post_init__(self):
        object.__setattr__(self, "since", as_utc(self.since))
        object.__setattr__(self, "until", as_utc(self.until))

    def is_unbounded(self) -> bool:
        return self.since is None and self.until is None

    def contains(self, timestamp: datetime) -> bool:
        if self.since is not None and timestamp < self.since:
            return False
        if self.until is not None and timestamp >= self.until:
            return False
        return True


@dataclass(frozen=True)
class IncrementalSettings:
    """Per-object declaration of how the time window is honoured."""

    policy: FilterPolicy = FilterPolicy.NONE
    ordering: Ordering = Ordering.UNORDERED
    timestamp_field: str = ""
    timestamp_format: str = RFC3339


def format_rfc3339(value: datetime) -> str:
    """Format a datetime as RFC 3339 in UTC, e.g. 2024-01-15T10:00:00Z."""
    return as_utc(value).strftime("%Y-%m-%dT%H:%M:%SZ")


def parse_timestamp(value: Any, timestamp_format: str = RFC3339, field: str = "") -> datetime:
    """
    Parse a record timestamp. RFC3339 accepts ISO 8601 strings with a trailing "Z",
    any other format string is handed to strptime. Results without a timezone are UTC.
    Raises:
        TimestampParseError: if the value is not a string in the expected format.
    """
    if not isinstance(value, str):
        raise TimestampParseError(field, value, timestamp_format)

    try:
        if timestamp_format == RFC3339:
            parsed = datetime.fromisoformat(_normalize_rfc3339(value))
        else:
            parsed = datetime.strptime(value, timestamp_format)
    except ValueError as e:
        raise TimestampParseError(field, value, timestamp_format) from e

    return as_utc(parsed)


def _normalize_rfc3339(value: str) -> str:
    """Rewrite an RFC 3339 string into the subset datetime.fromisoformat accepts on every supported Python."""
    text = value.strip()
    if text[-1:] in ("Z", "z"):
        text = text[:-1] + "+00:00"
    # fromisoformat before Python 3.11 only takes 3 or 6 fractional digits
    return _FRACTION.sub(lambda match: "." + match.group(1)[:6].ljust(6, "0"), text, count=1)


def make_identity_filter() -> FilterFunc:
    def identity(records: List[Any]) -> FilterOutcome:
        return FilterOutcome(records=list(records), stop=False)

    return identity


def make_filter(
    policy: FilterPolicy,
    ordering: Ordering,
    timestamp_field: str,
    timestamp_format: str,
    window: TimeWindow,
) -> FilterFunc:
    """
    Build the record filter for one object and time window.
    Args:
        policy: who applies the window.
        ordering: order of records across pages, only used for connector-side filtering.
        timestamp_field: record field holding the timestamp.
        timestamp_format: RFC3339 or a strptime format.
        window: the requested time window.
    Returns:
        A function taking the extracted records of one page and returning the in-window subset
        along with the stop signal.
    """
    if policy != FilterPolicy.CONNECTOR_SIDE or window.is_unbounded():
        return make_identity_filter()

    def timestamp_of(record: Any) -> Optional[datetime]:
        if not isinstance(record, dict):
            return None
        value = record.get(timestamp_field)
        if value is None:
            return None
        return parse_timestamp(value, timestamp_format, timestamp_field)

    def past_window(timestamp: datetime) -> bool:
        if ordering == Ordering.CHRONOLOGICAL:
            return window.until is not None and timestamp >= window.until
        if ordering == Ordering.REVERSE_CHRONOLOGICAL:
            return window.since is not None and timestamp < window.since
        return False

    def time_filter(records: List[Any]) -> FilterOutcome:
        kept = []
        for record in records:
            timestamp = timestamp_of(record)
            # Records without a timestamp cannot be placed in the window
            if timestamp is None:
                continue

            if past_window(timestamp):
                return FilterOutcome(records=kept, stop=True)

            if window.contains(timestamp):
                kept.append(record)

        return FilterOutcome(records=kept, stop=False)

    return time_filter


def make_filter_for(settings: IncrementalSettings, window: TimeWindow) -> FilterFunc:
    return make_filter(settings.policy, settings.ordering, settings.timestamp_field, settings.timestamp_format, window)
