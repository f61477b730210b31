"""Date helpers shared by layout, DnD and deep-link code.

Day boundaries are always local calendar days in the configured timezone,
never rolling 24h windows.
"""

import re
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from zoneinfo import ZoneInfo

_YMD = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")

DISPLAY_FORMAT = "%d/%m/%Y %H:%M"


def resolve_tz(name: str | tzinfo | None) -> tzinfo:
    """Turn a config timezone name into a tzinfo (UTC when empty)."""
    if name is None or name == "":
        return timezone.utc
    if isinstance(name, tzinfo):
        return name
    if name.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(name)


def ensure_aware(value: datetime, tz: tzinfo = timezone.utc) -> datetime:
    """Attach tz to naive datetimes; aware ones are returned unchanged."""
    if value.tzinfo is None:
        return value.replace(tzinfo=tz)
    return value


def local_date(value: datetime, tz: tzinfo = timezone.utc) -> date:
    return ensure_aware(value, tz).astimezone(tz).date()


def local_time(value: datetime, tz: tzinfo = timezone.utc) -> time:
    return ensure_aware(value, tz).astimezone(tz).timetz().replace(tzinfo=None)


def is_same_local_day(a: datetime, b: datetime, tz: tzinfo = timezone.utc) -> bool:
    return local_date(a, tz) == local_date(b, tz)


def parse_ymd(value: str | None) -> date | None:
    """Parse YYYY-MM-DD as a calendar date. Anything else yields None."""
    match = _YMD.match(str(value or ""))
    if not match:
        return None
    try:
        return date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
    except ValueError:
        return None


def to_ymd(day: date | datetime) -> str:
    if isinstance(day, datetime):
        day = day.date()
    return day.isoformat()


def parse_time(value: str | None) -> tuple[int, int] | None:
    """Parse "HH:mm" (separators ignored) into (hours, minutes)."""
    digits = re.sub(r"\D", "", value or "")
    if len(digits) != 4:
        return None
    hours, minutes = int(digits[:2]), int(digits[2:])
    if not (0 <= hours <= 23 and 0 <= minutes <= 59):
        return None
    return hours, minutes


def parse_display_date(value: str | None) -> date | None:
    """Parse a "dd/mm/yyyy" form value."""
    digits = re.sub(r"\D", "", value or "")
    if len(digits) != 8:
        return None
    try:
        return date(int(digits[4:]), int(digits[2:4]), int(digits[:2]))
    except ValueError:
        return None


def combine_date_time(
    date_str: str, time_str: str, tz: tzinfo = timezone.utc
) -> datetime | None:
    """Combine "dd/mm/yyyy" and "HH:mm" form inputs into an aware datetime."""
    day = parse_display_date(date_str)
    hm = parse_time(time_str)
    if day is None or hm is None:
        return None
    return datetime(day.year, day.month, day.day, hm[0], hm[1], tzinfo=tz)


def at_time_of(day: date, source: datetime, tz: tzinfo = timezone.utc) -> datetime:
    """Place `day` at the local time-of-day of `source`.

    Seconds are kept; the result is expressed in `tz`.
    """
    clock = local_time(source, tz)
    return datetime.combine(day, clock, tzinfo=tz)


def start_of_week(day: date, week_starts_on: int = 6) -> date:
    """First day of the grid row containing `day` (Python weekday numbering)."""
    offset = (day.weekday() - week_starts_on) % 7
    return day - timedelta(days=offset)


def to_utc_z(value: datetime) -> str:
    """Serialize as the store expects: 2024-05-12T14:00:00Z."""
    return ensure_aware(value).astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def format_display(value: datetime, tz: tzinfo = timezone.utc) -> str:
    return ensure_aware(value, tz).astimezone(tz).strftime(DISPLAY_FORMAT)
