"""
Print a month's day-cell layout: how many items each day shows and how many
overflow into "+N more" for a given breakpoint.

Usage:
    python scripts/month_overview.py --month 2024-05
    python scripts/month_overview.py --month 2024-05 --breakpoint mobile --class-id c1
    python scripts/month_overview.py --month 2024-05 --posts-file data/posts.json
"""

import argparse
import sys
from datetime import date, datetime, time
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent))
from config import get_store, init_logging, script_viewer  # noqa: E402

from src.calendar_engine.config import get_config  # noqa: E402
from src.calendar_engine.dates import resolve_tz  # noqa: E402
from src.calendar_engine.drawer import MemoryLocation  # noqa: E402
from src.calendar_engine.layout import Breakpoint  # noqa: E402
from src.calendar_engine.schedule import month_grid_days  # noqa: E402
from src.calendar_engine.session import CalendarSession  # noqa: E402


def parse_month(value):
    try:
        return datetime.strptime(value, "%Y-%m").date()
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected YYYY-MM, got {value!r}")


def main():
    parser = argparse.ArgumentParser(description="Print month day-cell layout")
    parser.add_argument("--month", type=parse_month, default=date.today().replace(day=1),
                        help="Month to show (YYYY-MM, default: current)")
    parser.add_argument("--breakpoint", default="desktop", choices=[b.value for b in Breakpoint])
    parser.add_argument("--class-id", default=None, help="Restrict to one class (plus global posts)")
    parser.add_argument("--posts-file", default=None, help="Offline JSON file of post rows")
    parser.add_argument("--role", default="registrar", choices=["student", "teacher", "registrar"])
    args = parser.parse_args()

    init_logging()
    config = get_config()
    tz = resolve_tz(config.timezone)

    days = month_grid_days(args.month, "month", config.week_starts_on)
    session = CalendarSession(script_viewer(args.role), get_store(args.posts_file), MemoryLocation(), config)
    session.load_range(
        datetime.combine(days[0], time.min, tzinfo=tz),
        datetime.combine(days[-1], time.max, tzinfo=tz),
        args.class_id,
    )
    for note in session.notifications:
        print(f"[{note.variant}] {note.title}: {note.message}")

    buckets = session.buckets(days, Breakpoint(args.breakpoint))

    print("=" * 60)
    print(f"MONTH OVERVIEW {args.month:%Y-%m} [{args.breakpoint.upper()}]")
    print("=" * 60)

    current_week = -1
    for bucket in buckets.values():
        if not bucket.all_items:
            continue
        if bucket.week_index != current_week:
            current_week = bucket.week_index
            print(f"\nWeek {current_week + 1}")
        overflow = f"  (+{bucket.overflow_count} more)" if bucket.has_overflow else ""
        print(f"  {bucket.date:%a %d/%m}: {len(bucket.visible_items)} shown{overflow}")
        for item in bucket.visible_items:
            clock = "all day" if item.all_day else f"{item.start_at.astimezone(tz):%H:%M}"
            print(f"      {clock:<8} {item.kind.value:<10} {item.title}")

    total = sum(len(b.all_items) for b in buckets.values())
    hidden = sum(b.overflow_count for b in buckets.values())
    print(f"\nItems: {total}  |  Hidden behind overflow: {hidden}")
    session.close()


if __name__ == "__main__":
    main()
