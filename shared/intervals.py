"""
Half-open time intervals.

An Interval covers [start, end): it includes its start instant and
excludes its end instant, so back-to-back bookings do not overlap.
All timestamps are handled as naive UTC datetimes, which is how the
database columns store them.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Union

from shared.errors import InvalidInterval, InvalidTimeRange


def to_utc_naive(value: datetime) -> datetime:
    """
    Normalize a datetime to naive UTC.

    Aware datetimes are converted to UTC and stripped of tzinfo;
    naive datetimes are assumed to already be UTC.
    """
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def parse_timestamp(value: Union[str, datetime, None], field: str = "time") -> datetime:
    """
    Parse an ISO-8601 timestamp coming from the wire.

    Args:
        value: ISO-8601 string (a trailing "Z" is accepted) or datetime
        field: Name used in the error message

    Returns:
        datetime: Naive UTC datetime

    Raises:
        InvalidTimeRange: If the value is missing or not ISO-8601

    Example:
        >>> parse_timestamp("2025-03-01T09:00:00Z")
        datetime.datetime(2025, 3, 1, 9, 0)
    """
    if isinstance(value, datetime):
        return to_utc_naive(value)
    if not value or not isinstance(value, str):
        raise InvalidTimeRange(f"{field} must be specified")
    try:
        parsed = datetime.fromisoformat(value.strip())
    except ValueError:
        raise InvalidTimeRange(
            f"Invalid {field} format. Please use ISO format (YYYY-MM-DDTHH:MM:SS)."
        )
    return to_utc_naive(parsed)


@dataclass(frozen=True)
class Interval:
    """
    Half-open interval [start, end) between two instants.

    Raises:
        InvalidInterval: If start is not strictly before end
    """

    start: datetime
    end: datetime

    def __post_init__(self):
        if self.start is None or self.end is None:
            raise InvalidInterval("Start time and end time must be specified")
        object.__setattr__(self, "start", to_utc_naive(self.start))
        object.__setattr__(self, "end", to_utc_naive(self.end))
        if self.start >= self.end:
            raise InvalidInterval("End time must be after start time")

    @classmethod
    def parse(cls, start: Optional[str], end: Optional[str]) -> "Interval":
        """
        Build an interval from two ISO-8601 strings.

        Unparseable input raises InvalidTimeRange, a reversed or empty
        range raises InvalidInterval.
        """
        return cls(parse_timestamp(start, "start time"), parse_timestamp(end, "end time"))

    @classmethod
    def of(cls, record) -> "Interval":
        """Interval of any record with start_time and end_time attributes."""
        return cls(record.start_time, record.end_time)

    def overlaps(self, other: "Interval") -> bool:
        return overlaps(self, other)

    def contains(self, instant: datetime) -> bool:
        """True if instant lies in [start, end)."""
        return self.start <= to_utc_naive(instant) < self.end

    def covers(self, other: "Interval") -> bool:
        """True if other lies entirely within this interval."""
        return self.start <= other.start and other.end <= self.end

    @property
    def duration(self):
        return self.end - self.start


def overlaps(a: Interval, b: Interval) -> bool:
    """
    Check whether two half-open intervals share at least one instant.

    Example:
        >>> ten = datetime(2025, 3, 1, 10)
        >>> eleven = datetime(2025, 3, 1, 11)
        >>> noon = datetime(2025, 3, 1, 12)
        >>> overlaps(Interval(ten, eleven), Interval(eleven, noon))
        False
    """
    return a.start < b.end and b.start < a.end
