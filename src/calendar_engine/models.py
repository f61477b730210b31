"""Pydantic models for calendar data.

All data structures use Pydantic v2 for validation, serialization, and type safety.

Wire shapes (RawPost, RawEvent) mirror the record store's camelCase columns.
Everything downstream of normalization only sees CalendarItem, whose `kind`
tag is fixed once and never re-derived from optional fields.
"""

from datetime import date, datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

GLOBAL_SCOPE = "GLOBAL"
ALL_CLASSES = "ALL_CLASSES"  # UI sentinel for "no class filter"; never a real scope


class Role(str, Enum):
    STUDENT = "student"
    TEACHER = "teacher"
    REGISTRAR = "registrar"


class Kind(str, Enum):
    """Schedulable item kinds. Everything except EVENT is deadline-kind."""

    EVENT = "EVENT"
    ACTIVITY = "ACTIVITY"
    ASSIGNMENT = "ASSIGNMENT"
    EXAM = "EXAM"

    @property
    def is_deadline(self) -> bool:
        return self is not Kind.EVENT


class PublishState(str, Enum):
    DRAFT = "DRAFT"
    SCHEDULED = "SCHEDULED"
    PUBLISHED = "PUBLISHED"


class Viewer(BaseModel):
    """The signed-in user looking at (and acting on) the calendar."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    role: Role


class ActivityMeta(BaseModel):
    model_config = ConfigDict(extra="ignore")

    weight: float | None = None


class RawPost(BaseModel):
    """A post row as stored in the record store."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    type: str  # EVENT, ACTIVITY, ASSIGNMENT, EXAM, ANNOUNCEMENT, ...
    title: str = ""
    author_name: str = Field(default="", alias="authorName")
    author_id: str | None = Field(default=None, alias="authorId")
    author_role: str | None = Field(default=None, alias="authorRole")
    status: PublishState = PublishState.PUBLISHED
    audience: str = "CLASS"  # GLOBAL or CLASS
    class_id: str | None = Field(default=None, alias="classId")
    class_ids: list[str] | None = Field(default=None, alias="classIds")
    due_at: datetime | None = Field(default=None, alias="dueAt")
    event_start_at: datetime | None = Field(default=None, alias="eventStartAt")
    event_end_at: datetime | None = Field(default=None, alias="eventEndAt")
    event_location: str | None = Field(default=None, alias="eventLocation")
    all_day: bool | None = Field(default=None, alias="allDay")
    body: str | None = None
    activity_meta: ActivityMeta | None = Field(default=None, alias="activityMeta")
    attachments: list[dict[str, Any]] | None = None


class RawEvent(BaseModel):
    """One entry of the event feed: a post projected onto a date."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    type: str  # "event" or "deadline"
    start_date: datetime = Field(alias="startDate")
    end_date: datetime | None = Field(default=None, alias="endDate")
    post: RawPost


class CalendarItem(BaseModel):
    """Normalized calendar entry, the only shape layout and DnD code sees."""

    model_config = ConfigDict(frozen=True)

    id: str
    record_id: str
    kind: Kind
    class_scope: Literal["GLOBAL"] | tuple[str, ...]
    start_at: datetime
    end_at: datetime | None = None
    all_day: bool = False
    title: str
    author_name: str = ""
    author_id: str | None = None
    author_role: str | None = None
    location_text: str | None = None
    weight: float | None = None
    body_text: str | None = None
    publish_state: PublishState
    clickable: bool
    has_attachments: bool = False

    @model_validator(mode="after")
    def _check_span(self) -> "CalendarItem":
        if self.end_at is not None:
            if self.kind.is_deadline:
                raise ValueError("deadline items carry a due instant only")
            if self.end_at < self.start_at:
                raise ValueError("end_at precedes start_at")
        return self

    @property
    def is_global(self) -> bool:
        return self.class_scope == GLOBAL_SCOPE

    @property
    def primary_class_id(self) -> str | None:
        if self.is_global:
            return None
        return self.class_scope[0]


class DayBucket(BaseModel):
    """Schedule of a single grid day. Rebuilt on every recompute."""

    model_config = ConfigDict(frozen=True)

    date: date
    week_index: int
    all_items: tuple[CalendarItem, ...] = ()
    visible_items: tuple[CalendarItem, ...] = ()
    overflow_items: tuple[CalendarItem, ...] = ()
    overflow_count: int = 0

    @property
    def has_overflow(self) -> bool:
        return self.overflow_count > 0


class DndDecision(BaseModel):
    model_config = ConfigDict(frozen=True)

    allowed: bool
    reason: str | None = None
    toast_variant: Literal["info", "warning"] | None = None
    toast_message: str | None = None


class MovePlan(BaseModel):
    """Concrete new instants for an allowed move, plus the store patch."""

    model_config = ConfigDict(frozen=True)

    record_id: str
    new_start: datetime
    new_end: datetime | None = None
    update_fields: dict[str, str]
    changes_nothing: bool = False


class Notification(BaseModel):
    """Transient user-facing message (toast)."""

    model_config = ConfigDict(frozen=True)

    variant: Literal["info", "warning", "error"]
    title: str
    message: str


class MoveOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    decision: DndDecision | None = None
    plan: MovePlan | None = None
    notification: Notification | None = None
    updated: bool = False


class DrawerParams(BaseModel):
    """Arguments of DrawerStateStore.open()."""

    model_config = ConfigDict(frozen=True)

    post_id: str
    class_id: str | None = None
    mode: Literal["calendar", "feed"] = "calendar"
    type: str | None = None  # "event" or "deadline"
    subtype: str | None = None  # Kind value
    status: str | None = None


class DrawerState(BaseModel):
    model_config = ConfigDict(frozen=True)

    is_open: bool = False
    post_id: str | None = None
    class_id: str | None = None
    mode: Literal["calendar", "feed"] = "calendar"
    type: str | None = None
    subtype: str | None = None
    status: str | None = None

    @classmethod
    def opened(cls, params: DrawerParams) -> "DrawerState":
        return cls(is_open=True, **params.model_dump())
