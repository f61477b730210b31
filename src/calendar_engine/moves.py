"""Drag-and-drop handler: validate a drop, patch the record, report back.

A drop carries only the dragged record's id (the `text/plain` payload). The
item is looked up among the currently loaded items, the rule engine decides,
and an allowed move that actually changes the date results in exactly one
store update.
"""

from collections.abc import Iterable
from datetime import date, datetime, tzinfo

from src.calendar_engine.config import CalendarConfig, get_config
from src.calendar_engine.dates import ensure_aware, resolve_tz, to_ymd
from src.calendar_engine.dnd import KIND_LABELS, MoveActor, plan_move, validate_move
from src.calendar_engine.logging import get_logger
from src.calendar_engine.models import (
    CalendarItem,
    MoveOutcome,
    Notification,
    Viewer,
)
from src.calendar_engine.store import RecordStore

log = get_logger(__name__)


def _error(title: str, message: str) -> Notification:
    return Notification(variant="error", title=title, message=message)


class MoveService:
    """Applies drag-and-drop moves to the record store."""

    def __init__(
        self,
        store: RecordStore,
        tz: tzinfo | None = None,
        config: CalendarConfig | None = None,
    ) -> None:
        self.store = store
        self.config = config or get_config()
        self.tz = tz or resolve_tz(self.config.timezone)

    def find_item(self, record_id: str, items: Iterable[CalendarItem]) -> CalendarItem | None:
        for item in items:
            if item.record_id == record_id:
                return item
        return None

    def handle_drop(
        self,
        payload: str | None,
        target_date: date,
        viewer: Viewer,
        items: Iterable[CalendarItem],
        now: datetime | None = None,
    ) -> MoveOutcome:
        """Handle one drop of `payload` onto `target_date`.

        Args:
            payload: Dragged record id.
            target_date: Day cell the item was dropped on.
            viewer: User performing the drag.
            items: Items currently on screen.
            now: Reference instant for past-date checks.

        Returns:
            MoveOutcome with the decision, the plan (when allowed), the
            notification to show, and whether the store was updated.
        """
        record_id = (payload or "").strip()
        if not record_id:
            log.warning("dnd_invalid_payload")
            return MoveOutcome(notification=_error("Move failed", "Nothing was dragged."))

        item = self.find_item(record_id, items)
        if item is None:
            log.warning("dnd_unknown_record", record_id=record_id)
            return MoveOutcome(
                notification=_error("Move failed", "This item is no longer on the calendar.")
            )

        now = ensure_aware(now, self.tz) if now is not None else datetime.now(self.tz)
        actor = MoveActor.for_item(viewer, item)
        decision = validate_move(
            item.kind,
            item.start_at,
            target_date,
            actor,
            now=now,
            tz=self.tz,
            deny_exam_backdating=self.config.exam_backdating_denied,
            max_future_years=self.config.max_future_years,
        )

        if not decision.allowed:
            log.info(
                "dnd_blocked",
                record_id=record_id,
                kind=item.kind.value,
                target=to_ymd(target_date),
                reason=decision.reason,
            )
            return MoveOutcome(
                decision=decision,
                notification=_error("Move not allowed", decision.toast_message or ""),
            )

        plan = plan_move(item, target_date, self.tz)
        if plan.changes_nothing:
            log.debug("dnd_noop", record_id=record_id)
            return MoveOutcome(decision=decision, plan=plan)

        updated = self.store.update(plan.record_id, plan.update_fields)
        if updated is None:
            log.error("dnd_update_failed", record_id=record_id, fields=plan.update_fields)
            return MoveOutcome(
                decision=decision,
                plan=plan,
                notification=_error("Move failed", "Could not move the item. Please try again."),
            )

        log.info(
            "dnd_moved",
            record_id=record_id,
            kind=item.kind.value,
            target=to_ymd(target_date),
            backdated=decision.toast_variant == "warning",
        )
        return MoveOutcome(
            decision=decision,
            plan=plan,
            notification=Notification(
                variant=decision.toast_variant or "info",
                title=f"{KIND_LABELS[item.kind]} moved",
                message=decision.toast_message or "",
            ),
            updated=True,
        )
