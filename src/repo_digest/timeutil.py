"""Timestamp parsing and calendar arithmetic.

GitHub reports every timestamp as ISO 8601 in UTC (``2016-05-04T12:30:00Z``).
The pipeline reasons about those values (pagination cut-off, window
membership) so a value that cannot be parsed is an error, not a skip.
"""

import calendar
from datetime import UTC, datetime


class TimeParseError(ValueError):
    """Raised when a timestamp field cannot be parsed."""

    def __init__(self, value: object, field: str = "") -> None:
        self.value = value
        self.field = field
        label = f"{field} " if field else ""
        super().__init__(f"couldn't parse {label}timestamp {value!r}")


def parse_timestamp(value: str | None, field: str = "") -> datetime:
    """Parse an ISO 8601 timestamp into an aware UTC datetime.

    Args:
        value: Timestamp string, e.g. "2025-01-15T10:30:00Z".
        field: Field name used in the error message.

    Returns:
        Timezone-aware datetime in UTC.

    Raises:
        TimeParseError: If the value is empty or not ISO 8601.
    """
    if not value or not isinstance(value, str):
        raise TimeParseError(value, field)
    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as e:
        raise TimeParseError(value, field) from e
    return ensure_utc(dt)


def ensure_utc(dt: datetime) -> datetime:
    """Return ``dt`` as an aware UTC datetime; naive values are taken as UTC."""
    return dt.replace(tzinfo=UTC) if dt.tzinfo is None else dt.astimezone(UTC)


def format_rfc3339(dt: datetime) -> str:
    """Format an aware datetime as RFC 3339 with a ``Z`` suffix for UTC."""
    text = ensure_utc(dt).replace(microsecond=0).isoformat()
    return text.replace("+00:00", "Z")


def subtract_months(dt: datetime, months: int) -> datetime:
    """Move ``dt`` back by whole calendar months.

    The day of month is clamped to the length of the target month, so
    March 31 minus one month is February 28 (or 29).
    """
    month_index = dt.year * 12 + (dt.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return dt.replace(year=year, month=month, day=day)
