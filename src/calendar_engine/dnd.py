"""DndRuleEngine - allow/deny/warn decisions for drag-and-drop date changes.

Every decision is a pure function of its inputs. "Now" is an explicit
argument (defaulting to the current time only when the caller omits it), and
nothing here touches the store or the network.

Policy:
  - only EVENT, ACTIVITY, ASSIGNMENT and EXAM can be moved
  - students never move anything
  - the author may move their own record; a registrar may also move GLOBAL
    records and records authored by another registrar
  - dropping onto a past day is allowed but flagged with a warning
  - drops absurdly far in the future are rejected as invalid targets
"""

from datetime import date, datetime, timezone, tzinfo

from pydantic import BaseModel, ConfigDict

from src.calendar_engine.dates import (
    at_time_of,
    ensure_aware,
    local_date,
    to_utc_z,
)
from src.calendar_engine.models import (
    CalendarItem,
    DndDecision,
    Kind,
    MovePlan,
    Role,
    Viewer,
)

MOVABLE_KINDS: frozenset[Kind] = frozenset(Kind)

KIND_LABELS: dict[Kind, str] = {
    Kind.EVENT: "Event",
    Kind.ACTIVITY: "Activity",
    Kind.ASSIGNMENT: "Assignment",
    Kind.EXAM: "Exam",
}

# Denial reason codes
PERMISSION_DENIED = "permission_denied"
KIND_NOT_MOVABLE = "kind_not_movable"
TARGET_OUT_OF_RANGE = "target_out_of_range"
EXAM_BACKDATING = "exam_backdating"


class MoveActor(BaseModel):
    """Who is dragging, relative to the record being dragged."""

    model_config = ConfigDict(frozen=True)

    role: Role
    is_owner: bool = False
    registrar_eligible: bool = False

    @classmethod
    def for_item(cls, viewer: Viewer, item: CalendarItem) -> "MoveActor":
        if item.author_id and viewer.id:
            is_owner = item.author_id == viewer.id
        else:
            is_owner = bool(item.author_name) and item.author_name == viewer.name

        registrar_eligible = viewer.role is Role.REGISTRAR and (
            item.is_global or (item.author_role or "").lower() == Role.REGISTRAR.value
        )
        return cls(role=viewer.role, is_owner=is_owner, registrar_eligible=registrar_eligible)


def _coerce_kind(kind: Kind | str) -> Kind | None:
    if isinstance(kind, Kind):
        return kind
    try:
        return Kind(str(kind).upper())
    except ValueError:
        return None


def _add_years(day: date, years: int) -> date:
    try:
        return day.replace(year=day.year + years)
    except ValueError:
        # Feb 29 -> Feb 28
        return day.replace(year=day.year + years, day=28)


def _deny(reason: str, message: str) -> DndDecision:
    return DndDecision(allowed=False, reason=reason, toast_message=message)


def validate_move(
    kind: Kind | str,
    from_at: datetime,
    to_date: date | datetime,
    actor: MoveActor,
    *,
    now: datetime | None = None,
    tz: tzinfo = timezone.utc,
    deny_exam_backdating: bool = False,
    max_future_years: int = 10,
) -> DndDecision:
    """Decide whether an item of `kind` may move from `from_at` to `to_date`.

    Args:
        kind: Item kind (Kind or its string value; anything else is denied).
        from_at: Current start / due instant of the item.
        to_date: Target calendar day (datetimes are reduced to their local day).
        actor: The dragging user relative to the record.
        now: Reference instant for past/future checks.
        tz: Timezone defining "today" and local days.
        deny_exam_backdating: Hard-deny exams dropped onto a past day.
        max_future_years: Reject targets further ahead than this.

    Returns:
        DndDecision. Denials carry a reason code and a user-facing message;
        allowed moves carry an info or warning toast.
    """
    movable = _coerce_kind(kind)
    if movable is None or movable not in MOVABLE_KINDS:
        return _deny(KIND_NOT_MOVABLE, "This type of item cannot be moved.")

    if actor.role is Role.STUDENT or not (actor.is_owner or actor.registrar_eligible):
        if actor.role is Role.TEACHER:
            return _deny(PERMISSION_DENIED, "You can only move items you created.")
        return _deny(PERMISSION_DENIED, "You do not have permission to move this item.")

    if isinstance(to_date, datetime):
        to_date = local_date(to_date, tz)
    now = ensure_aware(now, tz) if now is not None else datetime.now(tz)
    today = local_date(now, tz)

    if to_date > _add_years(today, max_future_years):
        return _deny(TARGET_OUT_OF_RANGE, "That date is too far in the future.")

    label = KIND_LABELS[movable]
    from_text = local_date(from_at, tz).strftime("%d/%m/%Y")
    to_text = to_date.strftime("%d/%m/%Y")

    if to_date < today:
        if movable is Kind.EXAM and deny_exam_backdating:
            return _deny(EXAM_BACKDATING, "Exams cannot be moved to a past date.")
        return DndDecision(
            allowed=True,
            toast_variant="warning",
            toast_message=(
                f"{label} moved from {from_text} to a past date ({to_text}). "
                "Check that this is intended."
            ),
        )

    return DndDecision(
        allowed=True,
        toast_variant="info",
        toast_message=f"{label} moved from {from_text} to {to_text}.",
    )


def plan_move(item: CalendarItem, to_date: date, tz: tzinfo = timezone.utc) -> MovePlan:
    """Compute the new instants and store patch for moving `item` to `to_date`.

    Events keep their local time-of-day and duration. Deadline kinds keep
    their local time-of-day; only the date changes.
    """
    new_start = at_time_of(to_date, item.start_at, tz)

    if item.kind is Kind.EVENT:
        new_end = None
        fields = {"eventStartAt": to_utc_z(new_start)}
        if item.end_at is not None:
            # Absolute duration; aware arithmetic in `tz` would be wall-clock across DST
            duration = item.end_at.astimezone(timezone.utc) - item.start_at.astimezone(timezone.utc)
            new_end = (new_start.astimezone(timezone.utc) + duration).astimezone(tz)
            fields["eventEndAt"] = to_utc_z(new_end)
    else:
        new_end = None
        fields = {"dueAt": to_utc_z(new_start)}

    return MovePlan(
        record_id=item.record_id,
        new_start=new_start,
        new_end=new_end,
        update_fields=fields,
        changes_nothing=new_start == item.start_at,
    )
