"""Per-breakpoint visible-item limits for day cells."""

from collections.abc import Callable
from enum import Enum

from src.calendar_engine.config import CalendarConfig, get_config


class Breakpoint(str, Enum):
    MOBILE = "mobile"
    TABLET = "tablet"
    DESKTOP = "desktop"


# Viewport width (px) at which each breakpoint starts
BREAKPOINT_MIN_WIDTH: dict[Breakpoint, int] = {
    Breakpoint.MOBILE: 0,
    Breakpoint.TABLET: 768,
    Breakpoint.DESKTOP: 1024,
}


def breakpoint_for_width(width: int) -> Breakpoint:
    if width >= BREAKPOINT_MIN_WIDTH[Breakpoint.DESKTOP]:
        return Breakpoint.DESKTOP
    if width >= BREAKPOINT_MIN_WIDTH[Breakpoint.TABLET]:
        return Breakpoint.TABLET
    return Breakpoint.MOBILE


def base_visible_limit(breakpoint: Breakpoint, config: CalendarConfig | None = None) -> int:
    config = config or get_config()
    return {
        Breakpoint.MOBILE: config.visible_per_day_mobile,
        Breakpoint.TABLET: config.visible_per_day_tablet,
        Breakpoint.DESKTOP: config.visible_per_day_desktop,
    }[breakpoint]


def visible_limit_fn(
    breakpoint: Breakpoint,
    week_count: int,
    config: CalendarConfig | None = None,
) -> Callable[[int], int]:
    """Build the week-row -> visible limit function for a grid.

    Grids with more rows than `compressed_week_threshold` lose one chip per
    cell on the rows at or past the threshold (never below one).
    """
    config = config or get_config()
    base = base_visible_limit(breakpoint, config)
    threshold = config.compressed_week_threshold

    def limit(week_index: int) -> int:
        if week_count > threshold and week_index >= threshold and base > 1:
            return base - 1
        return base

    return limit
