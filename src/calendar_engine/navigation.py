"""Calendar deep links.

Builds and parses the calendar page URLs other screens link to:

    /<role>/calendar?d=2024-05-12&classId=c1&postId=p9&highlight=true&v=week&modal=day
    /<role>/class/<classId>/calendar?d=2024-05-12&modal=day

plus the student day-summary pair (`day=YYYY-MM-DD&summary=1`). Parsing never
fails: bad values fall back to safe defaults and are reported in `errors`.
"""

import datetime as dt
from datetime import date, datetime, timezone, tzinfo
from typing import Literal
from urllib.parse import parse_qsl, quote, urlencode

from pydantic import BaseModel, ConfigDict, Field

from src.calendar_engine.dates import local_date, parse_ymd, to_ymd
from src.calendar_engine.drawer import is_valid_id
from src.calendar_engine.logging import get_logger
from src.calendar_engine.models import ALL_CLASSES, CalendarItem, Role

log = get_logger(__name__)

CALENDAR_ROUTES: dict[Role, str] = {
    Role.STUDENT: "/student/calendar",
    Role.TEACHER: "/teacher/calendar",
    Role.REGISTRAR: "/registrar/calendar",
}
FALLBACK_ROUTE = "/calendar"

VIEWS = ("month", "week")
DATE_RANGE_YEARS = 10

DAY_KEY = "day"
SUMMARY_KEY = "summary"

View = Literal["month", "week"]


class CalendarLink(BaseModel):
    """What a link into the calendar should show."""

    model_config = ConfigDict(frozen=True)

    date: dt.date | None = None
    class_id: str | None = None
    post_id: str | None = None
    view: View = "month"
    highlight_post: bool = False
    open_day_modal: bool = False


class CalendarParams(BaseModel):
    """Sanitized calendar page parameters."""

    model_config = ConfigDict(frozen=True)

    date: dt.date
    view: View = "month"
    class_id: str | None = None
    post_id: str | None = None
    errors: tuple[str, ...] = Field(default=())

    @property
    def is_valid(self) -> bool:
        return not self.errors


def _role(role: Role | str | None) -> Role | None:
    try:
        return Role(role) if role is not None else None
    except ValueError:
        return None


def calendar_route(role: Role | str | None) -> str:
    resolved = _role(role)
    if resolved is None:
        return FALLBACK_ROUTE
    return CALENDAR_ROUTES[resolved]


def build_calendar_url(
    role: Role | str | None,
    link: CalendarLink | None = None,
    *,
    today: date | None = None,
) -> str:
    """Build a calendar URL for `role` showing `link`.

    Args:
        role: Viewer role; unknown roles get the generic route.
        link: Target date, class, post, view and modal flags.
        today: Date used when the day modal is requested without a date.

    Returns:
        Route plus query string (no "?" when there are no parameters).
    """
    link = link or CalendarLink()
    params: list[tuple[str, str]] = []

    if link.date is not None:
        params.append(("d", to_ymd(link.date)))

    if link.class_id and link.class_id != ALL_CLASSES:
        params.append(("classId", link.class_id))

    if link.post_id:
        params.append(("postId", link.post_id))
        if link.highlight_post:
            params.append(("highlight", "true"))

    if link.view != "month":
        params.append(("v", link.view))

    if link.open_day_modal:
        params.append(("modal", "day"))
        if link.date is None:
            params.insert(0, ("d", to_ymd(today or date.today())))

    base = calendar_route(role)
    query = urlencode(params)
    return f"{base}?{query}" if query else base


def class_calendar_url(
    role: Role | str | None, class_id: str, day: date | None = None
) -> str:
    """URL of one class's calendar, optionally opening the day modal on `day`.

    Raises:
        ValueError: If class_id is empty.
    """
    if not class_id:
        raise ValueError("class_id is required")
    resolved = _role(role) or Role.REGISTRAR
    route = f"/{resolved.value}/class/{quote(class_id, safe='')}/calendar"
    if day is not None:
        route += "?" + urlencode([("d", to_ymd(day)), ("modal", "day")])
    return route


def item_calendar_url(
    item: CalendarItem, role: Role | str | None, tz: tzinfo = timezone.utc
) -> str:
    """Link that opens the calendar on `item`'s day with the item highlighted."""
    return build_calendar_url(
        role,
        CalendarLink(
            date=local_date(item.start_at, tz),
            class_id=item.primary_class_id,
            post_id=item.record_id,
            highlight_post=True,
        ),
    )


def _date_in_range(value: date, today: date) -> bool:
    earliest = date(today.year - DATE_RANGE_YEARS, 1, 1)
    latest = date(today.year + DATE_RANGE_YEARS, 12, 31)
    return earliest <= value <= latest


def parse_calendar_params(query: str, *, today: date | None = None) -> CalendarParams:
    """Read `d`, `v`, `classId` and `postId` from a calendar query string.

    Args:
        query: Query string, with or without the leading "?".
        today: Fallback date and anchor of the accepted date window.

    Returns:
        CalendarParams with sanitized values and one message per rejected
        parameter.
    """
    today = today or date.today()
    raw = dict(parse_qsl((query or "").lstrip("?"), keep_blank_values=True))
    errors: list[str] = []

    day = today
    raw_date = raw.get("d")
    if raw_date:
        parsed = parse_ymd(raw_date)
        if parsed is None:
            errors.append("Invalid date format")
        elif not _date_in_range(parsed, today):
            errors.append("Date is outside acceptable range")
        else:
            day = parsed

    view: View = "month"
    raw_view = raw.get("v")
    if raw_view:
        if raw_view in VIEWS:
            view = raw_view  # type: ignore[assignment]
        else:
            errors.append("Invalid view type")

    class_id = raw.get("classId") or None
    if class_id == ALL_CLASSES:
        class_id = None
    elif class_id is not None and not is_valid_id(class_id):
        errors.append("Invalid class ID format")
        class_id = None

    post_id = raw.get("postId") or None
    if post_id is not None and not is_valid_id(post_id):
        errors.append("Invalid post ID format")
        post_id = None

    if errors:
        log.warning("calendar_params_sanitized", errors=errors)
    return CalendarParams(
        date=day, view=view, class_id=class_id, post_id=post_id, errors=tuple(errors)
    )


def encode_day_summary(day: date | datetime, base_query: str = "") -> str:
    """Add the day-summary deep link for `day`, keeping other keys."""
    pairs = [
        (k, v)
        for k, v in parse_qsl((base_query or "").lstrip("?"), keep_blank_values=True)
        if k not in (DAY_KEY, SUMMARY_KEY)
    ]
    pairs.append((DAY_KEY, to_ymd(day)))
    pairs.append((SUMMARY_KEY, "1"))
    return urlencode(pairs)


def decode_day_summary(query: str) -> date | None:
    """Day named by a `day` + `summary=1` pair, or None."""
    raw = dict(parse_qsl((query or "").lstrip("?"), keep_blank_values=True))
    if raw.get(SUMMARY_KEY) != "1":
        return None
    return parse_ymd(raw.get(DAY_KEY))


def clear_day_summary(query: str) -> str:
    pairs = [
        (k, v)
        for k, v in parse_qsl((query or "").lstrip("?"), keep_blank_values=True)
        if k not in (DAY_KEY, SUMMARY_KEY)
    ]
    return urlencode(pairs)
