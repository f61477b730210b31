"""Builders for post rows, feed entries and items used across tests."""

from datetime import datetime, timezone

from src.calendar_engine.config import CalendarConfig
from src.calendar_engine.models import CalendarItem, Kind, PublishState, Role, Viewer

UTC = timezone.utc

TEACHER = Viewer(id="t1", name="Ana Teacher", role=Role.TEACHER)
OTHER_TEACHER = Viewer(id="t2", name="Bruno Teacher", role=Role.TEACHER)
REGISTRAR = Viewer(id="r1", name="Rita Registrar", role=Role.REGISTRAR)
STUDENT = Viewer(id="s1", name="Sam Student", role=Role.STUDENT)


def utc(*args):
    return datetime(*args, tzinfo=UTC)


def make_config(**overrides):
    values = {
        "timezone": "UTC",
        "modal_settle_delay_ms": 0,
        "store_api_key": "",
    }
    values.update(overrides)
    return CalendarConfig(**values)


def post_row(post_id, post_type="ASSIGNMENT", **fields):
    row = {
        "id": post_id,
        "type": post_type,
        "title": fields.pop("title", f"Post {post_id}"),
        "authorName": TEACHER.name,
        "authorId": TEACHER.id,
        "authorRole": "teacher",
        "status": "PUBLISHED",
        "audience": "CLASS",
        "classId": "c1",
    }
    row.update(fields)
    return row


def feed_entry(row, start=None, end=None):
    """Wrap a post row the way the event feed does."""
    start = start or row.get("eventStartAt") or row.get("dueAt")
    return {
        "id": row["id"],
        "type": "event" if row["type"] == "EVENT" else "deadline",
        "startDate": start,
        "endDate": end or row.get("eventEndAt") or start,
        "post": row,
    }


def make_item(item_id, kind=Kind.ASSIGNMENT, start=None, **fields):
    values = {
        "id": item_id,
        "record_id": fields.pop("record_id", item_id),
        "kind": kind,
        "class_scope": ("c1",),
        "start_at": start or utc(2024, 5, 10, 14, 0),
        "title": f"Item {item_id}",
        "author_name": TEACHER.name,
        "author_id": TEACHER.id,
        "author_role": "teacher",
        "publish_state": PublishState.PUBLISHED,
        "clickable": True,
    }
    values.update(fields)
    return CalendarItem(**values)
