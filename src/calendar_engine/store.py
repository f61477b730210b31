"""Record store clients.

The calendar engine only needs a key-indexed store of post rows:

    get(id) -> row | None
    update(id, fields) -> row | None     (None = not found / update failed)
    create(fields) -> row
    delete(id) -> bool
    get_by_id_and_date_range(scope_id, start, end) -> [feed entry, ...]

RestRecordStore talks to a PostgREST-style endpoint (e.g. Supabase) and
retries transient failures with tenacity. InMemoryRecordStore is the
dict-backed equivalent used by tests and offline scripts.
"""

import copy
import uuid
from collections.abc import Mapping
from datetime import datetime, timezone, tzinfo
from typing import Any, Protocol

import requests
from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from src.calendar_engine.config import CalendarConfig, get_config
from src.calendar_engine.dates import ensure_aware, resolve_tz, to_utc_z
from src.calendar_engine.errors import (
    AuthenticationError,
    PermanentStoreError,
    RateLimitError,
    RecordNotFoundError,
    StoreError,
    TransientStoreError,
)
from src.calendar_engine.feed import expand_posts, post_in_scope
from src.calendar_engine.logging import get_logger
from src.calendar_engine.models import ALL_CLASSES

logger = get_logger(__name__)


class RecordStore(Protocol):
    def get(self, record_id: str) -> dict[str, Any] | None: ...

    def update(self, record_id: str, fields: Mapping[str, Any]) -> dict[str, Any] | None: ...

    def create(self, fields: Mapping[str, Any]) -> dict[str, Any]: ...

    def delete(self, record_id: str) -> bool: ...

    def get_by_id_and_date_range(
        self, scope_id: str | None, start: datetime, end: datetime
    ) -> list[dict[str, Any]]: ...


class InMemoryRecordStore:
    """Dict-backed store. Rows are copied in and out, never shared."""

    def __init__(
        self,
        records: list[Mapping[str, Any]] | None = None,
        tz: tzinfo = timezone.utc,
    ) -> None:
        self.tz = tz
        self._rows: dict[str, dict[str, Any]] = {}
        self.update_calls: list[tuple[str, dict[str, Any]]] = []
        for row in records or []:
            self._rows[str(row["id"])] = dict(row)

    def get(self, record_id: str) -> dict[str, Any] | None:
        row = self._rows.get(record_id)
        return copy.deepcopy(row) if row is not None else None

    def update(self, record_id: str, fields: Mapping[str, Any]) -> dict[str, Any] | None:
        self.update_calls.append((record_id, dict(fields)))
        row = self._rows.get(record_id)
        if row is None:
            logger.warning("store_update_missing", record_id=record_id)
            return None
        row.update(copy.deepcopy(dict(fields)))
        return copy.deepcopy(row)

    def create(self, fields: Mapping[str, Any]) -> dict[str, Any]:
        row = copy.deepcopy(dict(fields))
        row.setdefault("id", str(uuid.uuid4()))
        self._rows[str(row["id"])] = row
        return copy.deepcopy(row)

    def delete(self, record_id: str) -> bool:
        return self._rows.pop(record_id, None) is not None

    def get_by_id_and_date_range(
        self, scope_id: str | None, start: datetime, end: datetime
    ) -> list[dict[str, Any]]:
        rows = [r for r in self._rows.values() if post_in_scope(r, scope_id)]
        return expand_posts(copy.deepcopy(rows), start, end, tz=self.tz)


def _raise_for_status(resp: requests.Response) -> None:
    status = resp.status_code
    if status < 400:
        return
    if status == 429:
        raise RateLimitError(f"Store rate limited ({status})")
    if status >= 500:
        raise TransientStoreError(f"Store unavailable ({status})")
    if status in (401, 403):
        raise AuthenticationError(f"Store rejected credentials ({status})")
    if status == 404:
        raise RecordNotFoundError(f"Store resource not found ({status})")
    raise PermanentStoreError(f"Store request failed ({status}): {resp.text[:200]}")


class RestRecordStore:
    """PostgREST client for the posts table."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        table: str = "posts",
        timeout: float = 15.0,
        max_attempts: int = 3,
        retry_wait_seconds: float = 0.5,
        session: requests.Session | None = None,
        tz: tzinfo = timezone.utc,
    ) -> None:
        """Initialize RestRecordStore.

        Args:
            base_url: Project URL, e.g. https://xyz.supabase.co.
            api_key: Key sent as `apikey` and bearer token.
            table: Table holding post rows.
            timeout: Per-request timeout in seconds.
            max_attempts: Attempts per call on transient errors.
            retry_wait_seconds: Base of the exponential backoff.
            session: Optional requests session (injected in tests).
            tz: Timezone for naive timestamps in rows.
        """
        self.endpoint = f"{base_url.rstrip('/')}/rest/v1/{table}"
        self.timeout = timeout
        self.tz = tz
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "apikey": api_key,
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            }
        )
        self._retrying = Retrying(
            stop=stop_after_attempt(max_attempts),
            wait=wait_exponential(multiplier=retry_wait_seconds, max=8),
            retry=retry_if_exception_type(TransientStoreError),
            reraise=True,
        )

        logger.info("rest_store_initialized", endpoint=self.endpoint, max_attempts=max_attempts)

    @classmethod
    def from_config(cls, config: CalendarConfig | None = None) -> "RestRecordStore":
        config = config or get_config()
        return cls(
            config.store_url,
            config.store_api_key,
            table=config.store_table,
            timeout=config.store_timeout_seconds,
            max_attempts=config.store_max_attempts,
            tz=resolve_tz(config.timezone),
        )

    def _send(
        self,
        method: str,
        params: dict[str, str] | None = None,
        json_body: Any = None,
        prefer: str | None = None,
    ) -> list[dict[str, Any]]:
        headers = {"Prefer": prefer} if prefer else None
        try:
            resp = self.session.request(
                method,
                self.endpoint,
                params=params,
                json=json_body,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.Timeout as e:
            logger.warning("store_timeout", method=method, error=str(e))
            raise TransientStoreError(f"Store timed out: {e}") from e
        except requests.ConnectionError as e:
            logger.warning("store_connection_error", method=method, error=str(e))
            raise TransientStoreError(f"Store unreachable: {e}") from e

        _raise_for_status(resp)
        if not resp.content:
            return []
        data = resp.json()
        return data if isinstance(data, list) else [data]

    def _request(self, method: str, **kwargs: Any) -> list[dict[str, Any]]:
        return self._retrying(self._send, method, **kwargs)

    def get(self, record_id: str) -> dict[str, Any] | None:
        rows = self._request("GET", params={"id": f"eq.{record_id}", "select": "*"})
        return rows[0] if rows else None

    def update(self, record_id: str, fields: Mapping[str, Any]) -> dict[str, Any] | None:
        """PATCH one row. Any failure is reported as None, never raised."""
        try:
            rows = self._request(
                "PATCH",
                params={"id": f"eq.{record_id}"},
                json_body=dict(fields),
                prefer="return=representation",
            )
        except StoreError as e:
            logger.error(
                "store_update_failed",
                record_id=record_id,
                error=str(e),
                type=type(e).__name__,
            )
            return None

        if not rows:
            logger.warning("store_update_missing", record_id=record_id)
            return None
        return rows[0]

    def create(self, fields: Mapping[str, Any]) -> dict[str, Any]:
        rows = self._request("POST", json_body=dict(fields), prefer="return=representation")
        if not rows:
            raise PermanentStoreError("Store accepted the insert but returned no row")
        return rows[0]

    def delete(self, record_id: str) -> bool:
        rows = self._request(
            "DELETE",
            params={"id": f"eq.{record_id}"},
            prefer="return=representation",
        )
        return bool(rows)

    def get_by_id_and_date_range(
        self, scope_id: str | None, start: datetime, end: datetime
    ) -> list[dict[str, Any]]:
        """Fetch posts scheduled in [start, end] for a class scope.

        The server-side filter is a superset; expand_posts applies the exact
        range rules.

        Raises:
            StoreError: If the store cannot be read after retries.
        """
        start_z = to_utc_z(ensure_aware(start, self.tz))
        end_z = to_utc_z(ensure_aware(end, self.tz))
        in_range = (
            f"or(and(dueAt.gte.{start_z},dueAt.lte.{end_z}),"
            f"and(eventStartAt.lte.{end_z},eventEndAt.gte.{start_z}),"
            f"and(eventStartAt.gte.{start_z},eventStartAt.lte.{end_z}))"
        )
        params = {"select": "*"}
        if scope_id and scope_id != ALL_CLASSES:
            in_scope = f"or(audience.eq.GLOBAL,classId.eq.{scope_id},classIds.cs.{{{scope_id}}})"
            params["and"] = f"({in_range},{in_scope})"
        else:
            params["and"] = f"({in_range})"

        rows = self._request("GET", params=params)
        logger.info("store_range_fetched", scope_id=scope_id, rows=len(rows))
        return expand_posts(rows, start, end, tz=self.tz)
