"""DayScheduleComputer - per-day sorted, visible/overflow-partitioned schedules.

Recomputing is pure: the same days, items and limit function always produce
equal buckets. Nothing here looks at the wall clock.

Sort order inside a day:
  1. all-day items first
  2. local time-of-day ascending
  3. start instant ascending
  4. title
  5. item id, so equal-time equal-title items never depend on input order
"""

from collections import defaultdict
from collections.abc import Callable, Iterable, Sequence
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Literal

from src.calendar_engine.dates import local_date, local_time, start_of_week, to_ymd
from src.calendar_engine.logging import get_logger
from src.calendar_engine.models import CalendarItem, DayBucket

log = get_logger(__name__)


def date_key(day: date | datetime) -> str:
    return to_ymd(day)


def week_index(day: date, first_day: date, week_starts_on: int = 6) -> int:
    """Row of `day` in a grid whose first cell is `first_day`."""
    delta = start_of_week(day, week_starts_on) - start_of_week(first_day, week_starts_on)
    return delta.days // 7


def month_grid_days(
    anchor: date,
    view: Literal["month", "week"] = "month",
    week_starts_on: int = 6,
) -> list[date]:
    """Days shown by a month or week grid around `anchor`.

    A month grid covers whole rows: from the start of the week holding the
    1st to the end of the week holding the last day of the month.
    """
    if view == "week":
        first = start_of_week(anchor, week_starts_on)
        return [first + timedelta(days=i) for i in range(7)]

    month_start = anchor.replace(day=1)
    next_month = (month_start + timedelta(days=32)).replace(day=1)
    month_end = next_month - timedelta(days=1)
    first = start_of_week(month_start, week_starts_on)
    last = start_of_week(month_end, week_starts_on) + timedelta(days=6)
    return [first + timedelta(days=i) for i in range((last - first).days + 1)]


def sort_day_items(
    items: Iterable[CalendarItem], tz: tzinfo = timezone.utc
) -> list[CalendarItem]:
    return sorted(
        items,
        key=lambda item: (
            0 if item.all_day else 1,
            local_time(item.start_at, tz),
            item.start_at,
            item.title,
            item.id,
        ),
    )


def partition_by_day(
    items: Iterable[CalendarItem], tz: tzinfo = timezone.utc
) -> dict[date, list[CalendarItem]]:
    by_day: dict[date, list[CalendarItem]] = defaultdict(list)
    for item in items:
        by_day[local_date(item.start_at, tz)].append(item)
    return by_day


def build_bucket(
    day: date,
    items: Sequence[CalendarItem],
    visible_limit: int,
    week_idx: int = 0,
    tz: tzinfo = timezone.utc,
) -> DayBucket:
    ordered = tuple(sort_day_items(items, tz))
    limit = max(0, visible_limit)
    visible = ordered[:limit]
    overflow = ordered[limit:]
    return DayBucket(
        date=day,
        week_index=week_idx,
        all_items=ordered,
        visible_items=visible,
        overflow_items=overflow,
        overflow_count=len(overflow),
    )


def compute_day_buckets(
    days: Sequence[date],
    items: Iterable[CalendarItem],
    visible_limit_fn: Callable[[int], int],
    *,
    tz: tzinfo = timezone.utc,
    week_starts_on: int = 6,
) -> dict[str, DayBucket]:
    """Compute one bucket per requested day.

    Args:
        days: Grid days, in display order. Week rows are counted from days[0].
        items: Normalized (and already filtered) items.
        visible_limit_fn: Maps a week row index to that row's visible limit.
        tz: Timezone defining local day boundaries.
        week_starts_on: First weekday of a row (Python numbering).

    Returns:
        Dict keyed by YYYY-MM-DD, in the order of `days`. Days without items
        get empty buckets; items outside `days` are ignored.
    """
    if not days:
        return {}

    by_day = partition_by_day(items, tz)
    first_day = days[0]
    buckets: dict[str, DayBucket] = {}
    for day in days:
        idx = week_index(day, first_day, week_starts_on)
        buckets[date_key(day)] = build_bucket(
            day, by_day.get(day, ()), visible_limit_fn(idx), idx, tz
        )

    log.debug(
        "day_buckets_computed",
        days=len(buckets),
        overflowing=sum(1 for b in buckets.values() if b.has_overflow),
    )
    return buckets
