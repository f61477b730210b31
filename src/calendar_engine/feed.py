"""Projects stored posts onto a date range as raw feed entries.

Events are included when their span touches the range (or covers it
entirely); deadline kinds when the due instant falls inside it. Entry ids
are the post ids, so one post yields at most one entry per kind.
"""

from collections.abc import Iterable, Mapping
from datetime import datetime, timezone, tzinfo
from typing import Any

from pydantic import ValidationError

from src.calendar_engine.dates import ensure_aware, to_utc_z
from src.calendar_engine.logging import get_logger
from src.calendar_engine.models import ALL_CLASSES, GLOBAL_SCOPE, RawPost

log = get_logger(__name__)

EVENT_TYPES = frozenset({"EVENT"})
DEADLINE_TYPES = frozenset({"ACTIVITY", "ASSIGNMENT", "EXAM"})


def post_in_scope(row: Mapping[str, Any], scope_id: str | None) -> bool:
    """True when a post row is visible under a class scope (None = every class)."""
    if not scope_id or scope_id == ALL_CLASSES:
        return True
    if str(row.get("audience", "")).upper() == GLOBAL_SCOPE:
        return True
    return row.get("classId") == scope_id or scope_id in (row.get("classIds") or [])


def _within(value: datetime, start: datetime, end: datetime) -> bool:
    return start <= value <= end


def expand_posts(
    posts: Iterable[Mapping[str, Any]],
    start: datetime,
    end: datetime,
    *,
    tz: tzinfo = timezone.utc,
) -> list[dict[str, Any]]:
    """Build raw feed entries for every post scheduled in [start, end].

    Args:
        posts: Post rows (camelCase mappings) as returned by the store.
        start: Range start (inclusive).
        end: Range end (inclusive).
        tz: Timezone for naive timestamps.

    Returns:
        List of camelCase feed entries with the original post embedded.
    """
    start = ensure_aware(start, tz)
    end = ensure_aware(end, tz)
    entries: list[dict[str, Any]] = []

    for row in posts:
        try:
            post = RawPost.model_validate(row)
        except ValidationError as e:
            log.warning("feed_post_skipped", post_id=row.get("id"), errors=e.error_count())
            continue

        post_type = post.type.upper()
        if post_type in EVENT_TYPES and post.event_start_at is not None:
            event_start = ensure_aware(post.event_start_at, tz)
            event_end = ensure_aware(post.event_end_at or post.event_start_at, tz)
            touches = (
                _within(event_start, start, end)
                or _within(event_end, start, end)
                or (event_start < start and event_end > end)
            )
            if touches:
                entries.append(
                    {
                        "id": post.id,
                        "type": "event",
                        "startDate": to_utc_z(event_start),
                        "endDate": to_utc_z(event_end),
                        "post": dict(row),
                    }
                )
        elif post_type in DEADLINE_TYPES and post.due_at is not None:
            due = ensure_aware(post.due_at, tz)
            if _within(due, start, end):
                entries.append(
                    {
                        "id": post.id,
                        "type": "deadline",
                        "startDate": to_utc_z(due),
                        "endDate": to_utc_z(due),
                        "post": dict(row),
                    }
                )

    log.debug("feed_expanded", posts_in_range=len(entries))
    return entries
