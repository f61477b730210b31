"""DrawerStateStore - which activity drawer is open, mirrored to the URL.

URL schema (stable, bookmarked by users):
    drawer=activity   literal tag, required
    postId=<id>       record shown, required
    classId=<id>      class scope, only for class-scoped records

Every state change rewrites the query string with replace semantics, so
opening and closing drawers never adds browser-history entries. Query keys
outside the schema are preserved untouched.
"""

from collections.abc import Callable
from urllib.parse import parse_qsl, urlencode

from src.calendar_engine.logging import get_logger
from src.calendar_engine.models import ALL_CLASSES, DrawerParams, DrawerState

log = get_logger(__name__)

DRAWER_KEY = "drawer"
POST_ID_KEY = "postId"
CLASS_ID_KEY = "classId"
DRAWER_TAG = "activity"
DRAWER_KEYS: frozenset[str] = frozenset({DRAWER_KEY, POST_ID_KEY, CLASS_ID_KEY})

MAX_ID_LENGTH = 100

DrawerListener = Callable[[DrawerState], None]


class MemoryLocation:
    """In-process stand-in for the browser location + history.

    `entries` is the history stack of query strings; `replace` rewrites the
    top entry, `push` adds one.
    """

    def __init__(self, path: str = "/", query: str = "") -> None:
        self.path = path
        self.entries: list[str] = [query.lstrip("?")]

    @property
    def query(self) -> str:
        return self.entries[-1]

    @property
    def url(self) -> str:
        return f"{self.path}?{self.query}" if self.query else self.path

    def replace(self, query: str) -> None:
        self.entries[-1] = query.lstrip("?")

    def push(self, query: str) -> None:
        self.entries.append(query.lstrip("?"))


def _parse(query: str) -> list[tuple[str, str]]:
    return parse_qsl((query or "").lstrip("?"), keep_blank_values=True)


def is_valid_id(value: str | None) -> bool:
    return value is not None and 0 < len(value.strip()) <= MAX_ID_LENGTH


def encode_drawer(state: DrawerState, base_query: str = "") -> str:
    """Render `state` into `base_query`, replacing any previous drawer keys."""
    pairs = [(k, v) for k, v in _parse(base_query) if k not in DRAWER_KEYS]
    if state.is_open and state.post_id:
        pairs.append((DRAWER_KEY, DRAWER_TAG))
        pairs.append((POST_ID_KEY, state.post_id))
        if state.class_id and state.class_id != ALL_CLASSES:
            pairs.append((CLASS_ID_KEY, state.class_id))
    return urlencode(pairs)


def decode_drawer(query: str) -> DrawerState | None:
    """Parse drawer keys from a query string.

    Returns:
        An open DrawerState when the query carries a complete, well-formed
        parameter set; None for missing, partial or malformed drawer keys.
    """
    params = dict(_parse(query))
    if params.get(DRAWER_KEY) != DRAWER_TAG:
        return None

    post_id = params.get(POST_ID_KEY)
    if not is_valid_id(post_id):
        return None

    class_id = params.get(CLASS_ID_KEY)
    if class_id == ALL_CLASSES or class_id == "":
        class_id = None
    elif class_id is not None and not is_valid_id(class_id):
        return None

    return DrawerState(is_open=True, post_id=post_id.strip(), class_id=class_id)


class DrawerStateStore:
    """Open/close state of the activity drawer for one calendar session.

    States are CLOSED and OPEN(post, class, mode). Opening while open
    re-targets the drawer in a single transition, so observers never see an
    intermediate CLOSED state.
    """

    def __init__(self, location: MemoryLocation) -> None:
        self.location = location
        self._state = DrawerState()
        self._listeners: list[DrawerListener] = []
        self._restore_done = False

    @property
    def state(self) -> DrawerState:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state.is_open

    def subscribe(self, listener: DrawerListener) -> Callable[[], None]:
        """Register an observer. Returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def open(self, params: DrawerParams) -> None:
        # Any user-driven change means the mount-time restore window is over
        self._restore_done = True
        previous = self._state
        self._state = DrawerState.opened(params)
        self._sync_url()
        if self._state != previous:
            log.info(
                "drawer_opened",
                post_id=params.post_id,
                class_id=params.class_id,
                mode=params.mode,
                retarget=previous.is_open,
            )
            self._emit()

    def close(self) -> None:
        self._restore_done = True
        if not self._state.is_open:
            self._sync_url()
            return
        post_id = self._state.post_id
        self._state = DrawerState()
        self._sync_url()
        log.info("drawer_closed", post_id=post_id)
        self._emit()

    def restore_from_url(self) -> bool:
        """Re-open the drawer described by the current URL, once per store.

        Returns:
            True if a drawer was restored. False for URLs without a complete
            drawer parameter set, and for every call after the first.
        """
        if self._restore_done:
            log.debug("drawer_restore_skipped", reason="already_restored")
            return False
        self._restore_done = True

        restored = decode_drawer(self.location.query)
        if restored is None:
            log.debug("drawer_restore_skipped", reason="no_drawer_params")
            return False

        self.open(DrawerParams(post_id=restored.post_id, class_id=restored.class_id))
        log.info("drawer_restored", post_id=restored.post_id)
        return True

    def _sync_url(self) -> None:
        query = encode_drawer(self._state, self.location.query)
        if query != self.location.query:
            self.location.replace(query)

    def _emit(self) -> None:
        for listener in list(self._listeners):
            listener(self._state)
