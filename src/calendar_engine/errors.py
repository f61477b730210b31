"""Error hierarchy for record-store failure classification.

This hierarchy lets tenacity retry decorators tell transient store failures
(should retry) from permanent ones (should not retry).

Example usage with tenacity:
    @retry(retry=retry_if_exception_type(TransientStoreError), stop=stop_after_attempt(3))
    def fetch_posts(start: datetime, end: datetime):
        ...

Calendar business outcomes (denied moves, malformed records, incomplete deep
links) are NOT exceptions; they are returned as decisions, dropped items or
notifications.
"""


class CalendarError(Exception):
    """Base exception for all calendar engine errors."""

    pass


class StoreError(CalendarError):
    """Base exception for record store failures."""

    pass


class TransientStoreError(StoreError):
    """Temporary failure that may succeed on retry.

    Examples: network timeouts, 503 Service Unavailable, dropped connections.
    """

    pass


class RateLimitError(TransientStoreError):
    """Rate limit exceeded - needs longer backoff.

    Inherits from TransientStoreError so tenacity will retry it.
    """

    pass


class PermanentStoreError(StoreError):
    """Failure that won't succeed on retry.

    Examples: malformed filter, rejected payload, unknown table.
    """

    pass


class AuthenticationError(PermanentStoreError):
    """API key missing, expired or lacking permission on the table."""

    pass


class RecordNotFoundError(PermanentStoreError):
    """The store answered 404 for the requested table or record."""

    pass
