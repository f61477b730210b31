"""ModalCoordinator - at most one top-level overlay open at a time.

Opening an overlay is two-phase: whatever is active closes immediately, and
the requested overlay opens after a short settle delay so two transitions
never mount together. The delayed half is a single PendingTransition; a newer
open (or a matching close) cancels it, so the last request always wins.
"""

import asyncio
from collections.abc import Callable
from enum import Enum
from typing import Any

from src.calendar_engine.logging import get_logger

log = get_logger(__name__)


class ModalId(str, Enum):
    DAY_DRAWER = "day_drawer"
    ACTIVITY_DRAWER = "activity_drawer"
    DAY_FOCUS = "day_focus"
    POST_COMPOSER = "post_composer"
    DAY_SUMMARY = "day_summary"


ModalListener = Callable[[str | None, Any], None]


class PendingTransition:
    """A deferred modal open that has not happened yet."""

    def __init__(self, modal_id: str, data: Any, task: asyncio.Task) -> None:
        self.modal_id = modal_id
        self.data = data
        self.task = task

    @property
    def done(self) -> bool:
        return self.task.done()

    def cancel(self) -> None:
        if not self.task.done():
            self.task.cancel()


class ModalCoordinator:
    """Serializes open/close requests for the session's overlays."""

    def __init__(self, settle_delay: float = 0.15) -> None:
        """Initialize ModalCoordinator.

        Args:
            settle_delay: Seconds between closing the active overlay and
                opening the next one. 0 opens immediately.
        """
        self.settle_delay = settle_delay
        self._active_id: str | None = None
        self._active_data: Any = None
        self._pending: PendingTransition | None = None
        self._on_open: dict[str, Callable[[Any], None]] = {}
        self._on_close: dict[str, Callable[[], None]] = {}
        self._listeners: list[ModalListener] = []

    @property
    def active_id(self) -> str | None:
        return self._active_id

    @property
    def active_data(self) -> Any:
        return self._active_data

    @property
    def pending_id(self) -> str | None:
        return self._pending.modal_id if self._pending is not None else None

    def register(
        self,
        modal_id: ModalId | str,
        *,
        on_open: Callable[[Any], None] | None = None,
        on_close: Callable[[], None] | None = None,
    ) -> None:
        """Attach hooks run when `modal_id` actually opens or closes."""
        key = _key(modal_id)
        if on_open is not None:
            self._on_open[key] = on_open
        if on_close is not None:
            self._on_close[key] = on_close

    def subscribe(self, listener: ModalListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def is_modal_open(self, modal_id: ModalId | str) -> bool:
        return self._active_id == _key(modal_id)

    def open_modal(self, modal_id: ModalId | str, data: Any = None) -> None:
        key = _key(modal_id)
        self._cancel_pending()
        self._close_active()

        if self.settle_delay <= 0:
            self._activate(key, data)
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No event loop to defer on (scripts, sync callers)
            self._activate(key, data)
            return

        task = loop.create_task(self._open_after_settle(key, data))
        self._pending = PendingTransition(key, data, task)
        log.debug("modal_open_scheduled", modal_id=key, delay=self.settle_delay)

    def close_modal(self, modal_id: ModalId | str | None = None) -> None:
        """Close the active (or pending) overlay.

        With an id, the call is ignored unless that id is the active or the
        pending overlay; a late close for an overlay that was already
        replaced must not dismiss its successor.
        """
        if modal_id is not None:
            key = _key(modal_id)
            if key != self._active_id and key != self.pending_id:
                log.debug("modal_close_ignored", modal_id=key, active=self._active_id)
                return
            if key == self.pending_id:
                self._cancel_pending()
            if key == self._active_id:
                self._close_active()
            return

        self._cancel_pending()
        self._close_active()

    def adopt(self, modal_id: ModalId | str, data: Any = None) -> None:
        """Mark an overlay as open without running its open hook.

        Used when the overlay's own state was already restored (e.g. from
        the URL) and only the coordinator needs to learn about it.
        """
        self._cancel_pending()
        self._active_id = _key(modal_id)
        self._active_data = data
        self._emit()

    async def settle(self) -> None:
        """Wait until no transition is pending."""
        while self._pending is not None:
            pending = self._pending
            try:
                await pending.task
            except asyncio.CancelledError:
                if not pending.task.cancelled():
                    raise
            if self._pending is pending:
                self._pending = None

    async def _open_after_settle(self, key: str, data: Any) -> None:
        await asyncio.sleep(self.settle_delay)
        if self._pending is not None and self._pending.task is asyncio.current_task():
            self._pending = None
        self._activate(key, data)

    def _activate(self, key: str, data: Any) -> None:
        self._active_id = key
        self._active_data = data
        hook = self._on_open.get(key)
        if hook is not None:
            hook(data)
        log.debug("modal_opened", modal_id=key)
        self._emit()

    def _close_active(self) -> None:
        if self._active_id is None:
            return
        key = self._active_id
        self._active_id = None
        self._active_data = None
        hook = self._on_close.get(key)
        if hook is not None:
            hook()
        log.debug("modal_closed", modal_id=key)
        self._emit()

    def _cancel_pending(self) -> None:
        if self._pending is None:
            return
        log.debug("modal_open_superseded", modal_id=self._pending.modal_id)
        self._pending.cancel()
        self._pending = None

    def _emit(self) -> None:
        for listener in list(self._listeners):
            listener(self._active_id, self._active_data)


def _key(modal_id: ModalId | str) -> str:
    return modal_id.value if isinstance(modal_id, ModalId) else str(modal_id)
