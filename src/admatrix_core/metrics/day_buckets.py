"""Calendar-day bucketing under the fixed +05:30 reporting offset.

All metric dates are IST calendar dates, independent of the host timezone
and of the timezone the caller's instants carry.
"""
from datetime import date, datetime, timedelta, timezone
from typing import Iterator, Optional, Union

from ..schemas.metrics import DateRange


IST = timezone(timedelta(hours=5, minutes=30), name="IST")
IST_OFFSET = "+05:30"

RANGE_PRESETS = (
    "today",
    "yesterday",
    "last7days",
    "last30days",
    "thisMonth",
    "lastMonth",
)
DEFAULT_RANGE = "last30days"


def _as_aware(instant: datetime) -> datetime:
    # Naive datetimes are treated as UTC instants.
    if instant.tzinfo is None:
        return instant.replace(tzinfo=timezone.utc)
    return instant


def date_key(instant: datetime) -> str:
    """Return the YYYY-MM-DD calendar date of an instant under +05:30."""
    return _as_aware(instant).astimezone(IST).strftime("%Y-%m-%d")


def day_boundaries(instant: datetime) -> tuple[datetime, datetime]:
    """Return the UTC start and end instants of the instant's IST day.

    The boundaries are parsed back from the date key with an explicit
    offset, so the result never depends on arithmetic against the input.

    Args:
        instant: Any aware (or naive UTC) datetime

    Returns:
        (start, end) where start is 00:00:00.000 and end is 23:59:59.999
        of that IST calendar day, both expressed in UTC
    """
    key = date_key(instant)
    start = datetime.fromisoformat(f"{key}T00:00:00.000{IST_OFFSET}")
    end = datetime.fromisoformat(f"{key}T23:59:59.999{IST_OFFSET}")
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def start_of_day(day: date) -> datetime:
    """UTC instant at which an IST calendar date begins."""
    start = datetime.fromisoformat(f"{day.isoformat()}T00:00:00.000{IST_OFFSET}")
    return start.astimezone(timezone.utc)


def to_query_timestamp(instant: datetime) -> str:
    """Format an instant as a millisecond UTC timestamp ending in Z."""
    utc = _as_aware(instant).astimezone(timezone.utc)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"


def today_ist(now: Optional[datetime] = None) -> date:
    now = now or datetime.now(timezone.utc)
    return date.fromisoformat(date_key(now))


def yesterday_ist(now: Optional[datetime] = None) -> date:
    return today_ist(now) - timedelta(days=1)


def trailing_window(days: int, now: Optional[datetime] = None) -> DateRange:
    """Window of `days` IST calendar days ending yesterday (inclusive)."""
    if days < 1:
        raise ValueError(f"days must be >= 1, got {days}")
    end = yesterday_ist(now)
    return DateRange(start=end - timedelta(days=days - 1), end=end)


def iter_dates(start: date, end: date) -> Iterator[date]:
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def iter_date_keys(start: datetime, end: datetime) -> Iterator[str]:
    """Yield every IST date key from start's day to end's day inclusive."""
    first = date.fromisoformat(date_key(start))
    last = date.fromisoformat(date_key(end))
    for day in iter_dates(first, last):
        yield day.isoformat()


def resolve_range(
    value: Union[DateRange, str, None] = None,
    now: Optional[datetime] = None,
) -> DateRange:
    """Resolve a DateRange or a named preset against today's IST date.

    Args:
        value: DateRange (returned as-is), preset name, or None for the
            default preset

    Returns:
        Inclusive DateRange of IST calendar dates

    Raises:
        ValueError: If the preset name is unknown
    """
    if isinstance(value, DateRange):
        return value

    preset = value or DEFAULT_RANGE
    today = today_ist(now)

    if preset == "today":
        return DateRange(start=today, end=today)
    if preset == "yesterday":
        yesterday = today - timedelta(days=1)
        return DateRange(start=yesterday, end=yesterday)
    if preset == "last7days":
        return DateRange(start=today - timedelta(days=6), end=today)
    if preset == "last30days":
        return DateRange(start=today - timedelta(days=29), end=today)
    if preset == "thisMonth":
        return DateRange(start=today.replace(day=1), end=today)
    if preset == "lastMonth":
        last_month_end = today.replace(day=1) - timedelta(days=1)
        return DateRange(start=last_month_end.replace(day=1), end=last_month_end)

    raise ValueError(
        f"Unknown range preset '{preset}', expected one of {', '.join(RANGE_PRESETS)}"
    )
