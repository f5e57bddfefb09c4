"""Resolution of report periods into concrete UTC date ranges."""

from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Optional, Tuple

from reporting_gateway.errors import InvalidDateRange
from reporting_gateway.models.request import DateRange

LAST_WEEK = "last_week"

_END_OF_DAY = time(23, 59, 59, 999000)


def to_iso(value: datetime) -> str:
    """Format a datetime as a UTC instant with millisecond precision."""
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def previous_iso_week(now: Optional[datetime] = None) -> DateRange:
    """Monday 00:00:00.000 through Sunday 23:59:59.999 (UTC) of the week before ``now``."""
    now = now or utc_now()
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    today = now.date()
    start_of_this_week = today - timedelta(days=today.weekday())
    start = start_of_this_week - timedelta(days=7)
    end = start + timedelta(days=6)
    return DateRange(
        start=to_iso(datetime.combine(start, time.min, tzinfo=timezone.utc)),
        end=to_iso(datetime.combine(end, _END_OF_DAY, tzinfo=timezone.utc)),
    )


def _parse(value: Any) -> Tuple[datetime, bool]:
    """Parse an ISO-8601 date or datetime.

    Returns:
        (UTC datetime, True when the input was a bare date)

    Raises:
        ValueError: If the value is not a parseable string
    """
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"not a date: {value!r}")
    text = value.strip()
    if len(text) == 10:
        return datetime.combine(date.fromisoformat(text), time.min, tzinfo=timezone.utc), True
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc), False


def is_valid_date(value: Any) -> bool:
    try:
        _parse(value)
    except ValueError:
        return False
    return True


def parse_bound(value: Any, field: str) -> datetime:
    """Parse one side of a range; date-only ``to`` values extend to the end of that day."""
    try:
        parsed, date_only = _parse(value)
    except ValueError:
        raise InvalidDateRange(field, f"{field} must be an ISO-8601 date") from None
    if date_only and field == "to":
        parsed = datetime.combine(parsed.date(), _END_OF_DAY, tzinfo=timezone.utc)
    return parsed


def resolve_date_range(
    period: Optional[str] = None,
    from_: Any = None,
    to: Any = None,
    now: Optional[datetime] = None,
) -> DateRange:
    """Turn a symbolic period or explicit bounds into a DateRange.

    ``last_week`` (or no bounds at all) selects the previous ISO week.

    Raises:
        InvalidDateRange: If a bound is missing, unparseable, or start > end
    """
    if period == LAST_WEEK or (not from_ and not to):
        return previous_iso_week(now)

    start = parse_bound(from_, "from")
    end = parse_bound(to, "to")
    if start > end:
        raise InvalidDateRange("to", "to must not be earlier than from")
    return DateRange(start=to_iso(start), end=to_iso(end))
