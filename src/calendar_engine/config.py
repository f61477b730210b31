"""Calendar engine configuration loaded from environment variables."""

from pydantic import Field
from pydantic_settings import BaseSettings


class CalendarConfig(BaseSettings):
    """Calendar engine configuration loaded from environment variables.

    Settings are loaded from environment variables with sensible defaults.
    For local development, create a .env file in the project root.
    """

    # Record store (PostgREST / Supabase style REST endpoint)
    store_url: str = Field(
        default="http://localhost:54321",
        description="Base URL of the record store REST API",
    )
    store_api_key: str = Field(
        default="",
        description="API key sent as apikey + bearer token",
    )
    store_table: str = Field(
        default="posts",
        description="Table holding schedulable posts",
    )
    store_timeout_seconds: float = Field(
        default=15.0,
        description="Per-request timeout for store calls",
    )
    store_max_attempts: int = Field(
        default=3,
        description="Attempts per store call before giving up on transient errors",
    )

    # Calendar
    timezone: str = Field(
        default="UTC",
        description="IANA timezone used for day boundaries and time-of-day",
    )
    week_starts_on: int = Field(
        default=6,
        description="First weekday of a grid row (Python weekday, 6 = Sunday)",
    )

    # Day cell layout
    visible_per_day_mobile: int = Field(default=2)
    visible_per_day_tablet: int = Field(default=3)
    visible_per_day_desktop: int = Field(default=4)
    compressed_week_threshold: int = Field(
        default=5,
        description="Rows at or beyond this index show one item fewer",
    )

    # Interaction
    modal_settle_delay_ms: int = Field(
        default=150,
        description="Pause between closing one overlay and opening the next",
    )
    show_weight: bool = Field(
        default=False,
        description="Expose activity weight on calendar items",
    )
    exam_backdating_denied: bool = Field(
        default=False,
        description="Hard-deny moving exams to a past date instead of warning",
    )
    max_future_years: int = Field(
        default=10,
        description="Drops further than this many years ahead are rejected",
    )

    # Export
    ics_uid_domain: str = Field(
        default="calendar.school.local",
        description="Domain part of exported iCalendar UIDs",
    )

    # Logging
    log_json: bool = Field(
        default=False,
        description="Output logs in JSON format (for production)",
    )
    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    model_config = {
        "env_prefix": "CALENDAR_",
        "case_sensitive": False,
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @property
    def settle_delay_seconds(self) -> float:
        return max(self.modal_settle_delay_ms, 0) / 1000.0


# Singleton pattern
_config: CalendarConfig | None = None


def get_config() -> CalendarConfig:
    """Get the calendar configuration singleton.

    Returns:
        CalendarConfig: Calendar configuration instance
    """
    global _config
    if _config is None:
        _config = CalendarConfig()
    return _config
