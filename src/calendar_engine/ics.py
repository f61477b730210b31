"""iCalendar (.ics) export of a single calendar item."""

import re
from datetime import datetime, timedelta, timezone

from src.calendar_engine.dates import ensure_aware
from src.calendar_engine.models import CalendarItem, Kind

PRODID = "-//School Calendar//Calendar Item//EN"
DEFAULT_DURATION = timedelta(hours=1)

_UNSAFE_FILENAME = re.compile(r"[^a-z0-9]", re.IGNORECASE)


def _stamp(value: datetime) -> str:
    return ensure_aware(value).astimezone(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def escape_text(value: str) -> str:
    """Escape a TEXT property value (RFC 5545 3.3.11)."""
    return (
        value.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\r\n", "\\n")
        .replace("\n", "\\n")
    )


def build_ics(
    item: CalendarItem,
    *,
    uid_domain: str = "calendar.school.local",
    now: datetime | None = None,
) -> str:
    """Render `item` as a one-event VCALENDAR document.

    Deadline kinds and events without an end become one-hour blocks starting
    at the due / start instant.

    Args:
        item: Normalized calendar item.
        uid_domain: Domain part of the event UID.
        now: DTSTAMP value (defaults to the current time).

    Returns:
        The document with CRLF line endings, including the final one.
    """
    start = item.start_at
    end = item.end_at if item.kind is Kind.EVENT and item.end_at is not None else None
    if end is None or end <= start:
        end = start + DEFAULT_DURATION

    description = item.title
    if item.location_text:
        description = f"{description} - {item.location_text}"

    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        f"PRODID:{PRODID}",
        "BEGIN:VEVENT",
        f"UID:{item.record_id}@{uid_domain}",
        f"DTSTAMP:{_stamp(now or datetime.now(timezone.utc))}",
        f"DTSTART:{_stamp(start)}",
        f"DTEND:{_stamp(end)}",
        f"SUMMARY:{escape_text(item.title)}",
    ]
    if item.location_text:
        lines.append(f"LOCATION:{escape_text(item.location_text)}")
    lines.append(f"DESCRIPTION:{escape_text(description)}")
    lines += ["END:VEVENT", "END:VCALENDAR"]
    return "\r\n".join(lines) + "\r\n"


def ics_filename(title: str) -> str:
    """File name for a downloaded item: non-alphanumerics become underscores."""
    stem = _UNSAFE_FILENAME.sub("_", title or "") or "event"
    return f"{stem}.ics"
