"""CalendarSession - one viewer's calendar screen.

Owns the drawer store, the modal coordinator and the loaded items for a
single session. Nothing here is module-global: two sessions never share
drawer or modal state.
"""

from collections.abc import Sequence
from datetime import date, datetime

from src.calendar_engine.config import CalendarConfig, get_config
from src.calendar_engine.dates import resolve_tz, to_ymd
from src.calendar_engine.drawer import DrawerStateStore, MemoryLocation
from src.calendar_engine.errors import StoreError
from src.calendar_engine.filters import ActiveFilters, AdvancedFilters, apply_filters
from src.calendar_engine.layout import Breakpoint, visible_limit_fn
from src.calendar_engine.logging import bind_viewer_context, clear_viewer_context, get_logger
from src.calendar_engine.modals import ModalCoordinator, ModalId
from src.calendar_engine.models import (
    CalendarItem,
    DayBucket,
    DrawerParams,
    Kind,
    MoveOutcome,
    Notification,
    Role,
    Viewer,
)
from src.calendar_engine.moves import MoveService
from src.calendar_engine.navigation import clear_day_summary, decode_day_summary, encode_day_summary
from src.calendar_engine.normalize import normalize_all
from src.calendar_engine.schedule import compute_day_buckets, week_index
from src.calendar_engine.store import RecordStore

logger = get_logger(__name__)


class CalendarSession:
    """Wires normalization, layout, DnD, drawer and modals for one viewer."""

    def __init__(
        self,
        viewer: Viewer,
        store: RecordStore,
        location: MemoryLocation | None = None,
        config: CalendarConfig | None = None,
    ) -> None:
        """Initialize CalendarSession.

        Args:
            viewer: Signed-in user.
            store: Record store for loading and moving posts.
            location: URL holder shared with the drawer (a fresh one if omitted).
            config: Engine configuration (defaults to get_config()).
        """
        self.viewer = viewer
        self.store = store
        self.config = config or get_config()
        self.tz = resolve_tz(self.config.timezone)
        self.location = location or MemoryLocation()

        self.drawer = DrawerStateStore(self.location)
        self.modals = ModalCoordinator(self.config.settle_delay_seconds)
        self.moves = MoveService(store, self.tz, self.config)

        self.modals.register(
            ModalId.ACTIVITY_DRAWER,
            on_open=self.drawer.open,
            on_close=self.drawer.close,
        )
        self.modals.register(
            ModalId.DAY_SUMMARY,
            on_open=self._write_day_summary,
            on_close=self._clear_day_summary,
        )

        self.items: list[CalendarItem] = []
        self.notifications: list[Notification] = []
        self._range: tuple[datetime, datetime, str | None] | None = None
        self._mounted = False

        bind_viewer_context(viewer.id, viewer.role.value)
        logger.info("calendar_session_started", role=viewer.role.value)

    def notify(self, notification: Notification) -> None:
        self.notifications.append(notification)

    def load_range(
        self, start: datetime, end: datetime, scope_id: str | None = None
    ) -> list[CalendarItem]:
        """Fetch and normalize the items scheduled in [start, end].

        On store errors the previous items are kept and an error
        notification is queued.
        """
        self._range = (start, end, scope_id)
        try:
            raw = self.store.get_by_id_and_date_range(scope_id, start, end)
        except StoreError as e:
            logger.error(
                "calendar_load_failed",
                scope_id=scope_id,
                error=str(e),
                type=type(e).__name__,
            )
            self.notify(
                Notification(
                    variant="error",
                    title="Could not load calendar",
                    message="The calendar could not be refreshed. Showing the last loaded items.",
                )
            )
            return self.items

        self.items = normalize_all(
            raw, self.viewer.role, tz=self.tz, show_weight=self.config.show_weight
        )
        logger.info("calendar_loaded", scope_id=scope_id, items=len(self.items))
        return self.items

    def reload(self) -> list[CalendarItem]:
        if self._range is None:
            return self.items
        return self.load_range(*self._range)

    def buckets(
        self,
        days: Sequence[date],
        breakpoint: Breakpoint,
        active: ActiveFilters | None = None,
        advanced: AdvancedFilters | None = None,
        now: datetime | None = None,
    ) -> dict[str, DayBucket]:
        """Filtered, laid-out day buckets for the grid `days`."""
        if not days:
            return {}
        week_starts_on = self.config.week_starts_on
        visible = apply_filters(
            self.items, active, advanced, now=now, tz=self.tz, week_starts_on=week_starts_on
        )
        week_count = week_index(days[-1], days[0], week_starts_on) + 1
        return compute_day_buckets(
            days,
            visible,
            visible_limit_fn(breakpoint, week_count, self.config),
            tz=self.tz,
            week_starts_on=week_starts_on,
        )

    def mount(self) -> str | None:
        """Restore overlay state from the URL. Effective once per session.

        Returns:
            Id of the restored overlay, or None.
        """
        if self._mounted:
            return None
        self._mounted = True

        if self.drawer.restore_from_url():
            self.modals.adopt(ModalId.ACTIVITY_DRAWER, self.drawer.state)
            return ModalId.ACTIVITY_DRAWER.value

        if self.viewer.role is Role.STUDENT:
            day = decode_day_summary(self.location.query)
            if day is not None:
                self.modals.adopt(ModalId.DAY_SUMMARY, day)
                logger.info("day_summary_restored", day=to_ymd(day))
                return ModalId.DAY_SUMMARY.value
        return None

    def open_details(self, item: CalendarItem) -> bool:
        """Open the activity drawer on `item`.

        Returns:
            False when the viewer may not open the item (unpublished post
            for a student).
        """
        if not item.clickable:
            logger.debug("details_blocked", record_id=item.record_id, state=item.publish_state.value)
            return False

        params = DrawerParams(
            post_id=item.record_id,
            class_id=item.primary_class_id,
            type="event" if item.kind is Kind.EVENT else "deadline",
            subtype=item.kind.value,
            status=item.publish_state.value,
        )
        if self.modals.is_modal_open(ModalId.ACTIVITY_DRAWER) and self.drawer.is_open:
            # Re-target in place; closing first would flash the CLOSED state
            self.drawer.open(params)
            self.modals.adopt(ModalId.ACTIVITY_DRAWER, params)
        else:
            self.modals.open_modal(ModalId.ACTIVITY_DRAWER, params)
        return True

    def close_details(self) -> None:
        if self.modals.is_modal_open(ModalId.ACTIVITY_DRAWER) or (
            self.modals.pending_id == ModalId.ACTIVITY_DRAWER.value
        ):
            self.modals.close_modal(ModalId.ACTIVITY_DRAWER)
        elif self.drawer.is_open:
            self.drawer.close()

    def handle_day_click(self, day: date) -> bool:
        """Click on a day cell.

        Returns:
            True if the day view opened; False when the click only dismissed
            an open drawer.
        """
        if self.drawer.is_open:
            self.close_details()
            return False
        self.modals.open_modal(ModalId.DAY_FOCUS, day)
        return True

    def open_day_summary(self, day: date) -> None:
        """Open the student day summary; the URL link is written once it opens."""
        self.modals.open_modal(ModalId.DAY_SUMMARY, day)

    def handle_drop(
        self, payload: str | None, target_day: date, now: datetime | None = None
    ) -> MoveOutcome:
        outcome = self.moves.handle_drop(payload, target_day, self.viewer, self.items, now)
        if outcome.notification is not None:
            self.notify(outcome.notification)
        if outcome.updated:
            self.reload()
        return outcome

    def close(self) -> None:
        self.modals.close_modal()
        clear_viewer_context()
        logger.info("calendar_session_closed")

    def _write_day_summary(self, day: date) -> None:
        self.location.replace(encode_day_summary(day, self.location.query))

    def _clear_day_summary(self) -> None:
        query = clear_day_summary(self.location.query)
        if query != self.location.query:
            self.location.replace(query)
