"""EventNormalizer - turns raw feed entries into CalendarItem.

Raw entries come from the record store's event feed: an outer event
(`type` event/deadline, start/end) with the post embedded. The post carries
the real schedule (eventStartAt/eventEndAt or dueAt), so that is what is
used; the outer dates are a fallback for older rows.

Malformed entries are dropped and logged. One bad row must never blank the
whole calendar, so nothing in here raises.
"""

from collections.abc import Iterable, Mapping
from datetime import datetime, time, timedelta, timezone, tzinfo
from typing import Any

from pydantic import ValidationError

from src.calendar_engine.dates import ensure_aware, local_time
from src.calendar_engine.logging import get_logger
from src.calendar_engine.models import (
    ALL_CLASSES,
    GLOBAL_SCOPE,
    CalendarItem,
    Kind,
    PublishState,
    RawEvent,
    Role,
)

log = get_logger(__name__)

# Post type -> calendar kind. Announcements and anything unknown are not schedulable.
POST_KINDS: dict[str, Kind] = {
    "EVENT": Kind.EVENT,
    "ACTIVITY": Kind.ACTIVITY,
    "ASSIGNMENT": Kind.ASSIGNMENT,
    "EXAM": Kind.EXAM,
}

# Roles that see drafts and scheduled posts as clickable
PUBLISH_GATE_BYPASS: frozenset[Role] = frozenset({Role.TEACHER, Role.REGISTRAR})


def is_clickable(viewer_role: Role | str | None, publish_state: PublishState) -> bool:
    try:
        role = Role(viewer_role) if viewer_role is not None else None
    except ValueError:
        role = None
    return role in PUBLISH_GATE_BYPASS or publish_state is PublishState.PUBLISHED


def _class_scope(audience: str, class_id: str | None, class_ids: list[str] | None):
    if audience.upper() == GLOBAL_SCOPE:
        return GLOBAL_SCOPE
    ids = list(class_ids or [])
    if class_id and class_id not in ids:
        ids.insert(0, class_id)
    ids = [c for c in ids if c and c != ALL_CLASSES]
    return tuple(ids) if ids else GLOBAL_SCOPE


def _is_midnight(value: datetime, tz: tzinfo) -> bool:
    return local_time(value, tz) == time(0, 0)


def normalize(
    raw_event: RawEvent | Mapping[str, Any],
    viewer_role: Role | str | None,
    *,
    tz: tzinfo = timezone.utc,
    show_weight: bool = False,
) -> CalendarItem | None:
    """Convert one feed entry into a CalendarItem.

    Args:
        raw_event: Feed entry (model or camelCase mapping) with embedded post.
        viewer_role: Role of the viewer, used for publish gating.
        tz: Timezone naive timestamps are interpreted in.
        show_weight: Weight feature flag; when off, weight is never exposed.

    Returns:
        The normalized item, or None when the entry is malformed.
    """
    if not isinstance(raw_event, RawEvent):
        raw_id = raw_event.get("id") if isinstance(raw_event, Mapping) else None
        if not isinstance(raw_event, Mapping) or not raw_event.get("post"):
            log.warning("calendar_item_dropped", raw_id=raw_id, reason="missing_post")
            return None
        try:
            raw_event = RawEvent.model_validate(raw_event)
        except ValidationError as e:
            log.warning(
                "calendar_item_dropped",
                raw_id=raw_id,
                reason="invalid_shape",
                errors=e.error_count(),
            )
            return None

    post = raw_event.post
    title = (post.title or "").strip()
    if not title:
        log.warning("calendar_item_dropped", raw_id=raw_event.id, reason="empty_title")
        return None

    kind = POST_KINDS.get((post.type or "").upper())
    if kind is None:
        log.warning(
            "calendar_item_dropped",
            raw_id=raw_event.id,
            reason="unrecognized_type",
            post_type=post.type,
        )
        return None

    if kind is Kind.EVENT:
        start_at = post.event_start_at or raw_event.start_date
        end_at = post.event_end_at or raw_event.end_date
    else:
        start_at = post.due_at or raw_event.start_date
        end_at = None

    start_at = ensure_aware(start_at, tz)
    if end_at is not None:
        end_at = ensure_aware(end_at, tz)
        # Feed rows project deadlines as zero-length spans; collapse those
        if end_at == start_at:
            end_at = None

    if post.all_day is not None:
        all_day = post.all_day
    else:
        all_day = (
            kind is Kind.EVENT
            and _is_midnight(start_at, tz)
            and (
                end_at is None
                or _is_midnight(end_at, tz)
                or end_at - start_at >= timedelta(days=1)
            )
        )

    weight = None
    if show_weight and post.activity_meta is not None:
        weight = post.activity_meta.weight

    try:
        return CalendarItem(
            id=raw_event.id,
            record_id=post.id,
            kind=kind,
            class_scope=_class_scope(post.audience, post.class_id, post.class_ids),
            start_at=start_at,
            end_at=end_at,
            all_day=all_day,
            title=title,
            author_name=post.author_name,
            author_id=post.author_id,
            author_role=post.author_role,
            location_text=post.event_location or None,
            weight=weight,
            body_text=post.body or None,
            publish_state=post.status,
            clickable=is_clickable(viewer_role, post.status),
            has_attachments=bool(post.attachments),
        )
    except ValidationError as e:
        log.warning(
            "calendar_item_dropped",
            raw_id=raw_event.id,
            reason="invalid_span",
            errors=e.error_count(),
        )
        return None


def normalize_all(
    raw_events: Iterable[RawEvent | Mapping[str, Any]],
    viewer_role: Role | str | None,
    *,
    tz: tzinfo = timezone.utc,
    show_weight: bool = False,
) -> list[CalendarItem]:
    """Normalize a feed, skipping malformed entries.

    Returns:
        Items in feed order; duplicates by item id keep the first occurrence.
    """
    items: list[CalendarItem] = []
    seen: set[str] = set()
    dropped = 0
    for raw in raw_events:
        item = normalize(raw, viewer_role, tz=tz, show_weight=show_weight)
        if item is None:
            dropped += 1
            continue
        if item.id in seen:
            continue
        seen.add(item.id)
        items.append(item)

    log.debug("feed_normalized", kept=len(items), dropped=dropped)
    return items
