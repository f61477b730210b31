"""Calendar filters applied to normalized items before day layout."""

from collections.abc import Iterable
from datetime import datetime, timedelta, timezone, tzinfo

from pydantic import BaseModel, ConfigDict

from src.calendar_engine.dates import ensure_aware, local_date, start_of_week
from src.calendar_engine.models import CalendarItem, Kind


class ActiveFilters(BaseModel):
    """Header toggles: show events, show deadlines."""

    model_config = ConfigDict(frozen=True)

    events: bool = True
    deadlines: bool = True


class AdvancedFilters(BaseModel):
    """Advanced filter panel. Empty collections mean "no restriction"."""

    model_config = ConfigDict(frozen=True)

    search_query: str = ""
    kinds: frozenset[Kind] = frozenset()
    author_names: frozenset[str] = frozenset()
    class_ids: frozenset[str] = frozenset()
    has_weight: bool = False
    min_weight: float | None = None
    max_weight: float | None = None
    has_attachments: bool = False
    this_week: bool = False
    upcoming: bool = False
    overdue: bool = False


def _matches_search(item: CalendarItem, query: str) -> bool:
    haystacks = (item.title, item.body_text or "", item.author_name)
    return any(query in text.lower() for text in haystacks)


def _matches_classes(item: CalendarItem, class_ids: frozenset[str]) -> bool:
    # Global items are visible under every class filter
    if item.is_global:
        return True
    return any(c in class_ids for c in item.class_scope)


def _matches_weight(item: CalendarItem, flt: AdvancedFilters) -> bool:
    if item.weight is None:
        return False
    if flt.min_weight is not None and item.weight < flt.min_weight:
        return False
    if flt.max_weight is not None and item.weight > flt.max_weight:
        return False
    return True


def _matches_period(
    item: CalendarItem,
    flt: AdvancedFilters,
    now: datetime,
    tz: tzinfo,
    week_starts_on: int,
) -> bool:
    if flt.this_week:
        first = start_of_week(local_date(now, tz), week_starts_on)
        day = local_date(item.start_at, tz)
        if not (first <= day <= first + timedelta(days=6)):
            return False
    if flt.upcoming and item.start_at <= now:
        return False
    # Events are never overdue, so the overdue filter only restricts deadlines
    if flt.overdue and item.kind.is_deadline and item.start_at > now:
        return False
    return True


def apply_filters(
    items: Iterable[CalendarItem],
    active: ActiveFilters | None = None,
    advanced: AdvancedFilters | None = None,
    *,
    now: datetime | None = None,
    tz: tzinfo = timezone.utc,
    week_starts_on: int = 6,
) -> list[CalendarItem]:
    """Keep the items that pass every enabled filter, preserving order."""
    active = active or ActiveFilters()
    now = ensure_aware(now, tz) if now is not None else datetime.now(tz)
    query = advanced.search_query.strip().lower() if advanced else ""

    kept: list[CalendarItem] = []
    for item in items:
        if item.kind is Kind.EVENT and not active.events:
            continue
        if item.kind.is_deadline and not active.deadlines:
            continue

        if advanced is not None:
            if query and not _matches_search(item, query):
                continue
            if advanced.kinds and item.kind not in advanced.kinds:
                continue
            if advanced.author_names and item.author_name not in advanced.author_names:
                continue
            if advanced.class_ids and not _matches_classes(item, advanced.class_ids):
                continue
            if advanced.has_weight and not _matches_weight(item, advanced):
                continue
            if advanced.has_attachments and not item.has_attachments:
                continue
            if not _matches_period(item, advanced, now, tz, week_starts_on):
                continue

        kept.append(item)
    return kept
