"""
Export calendar items in a date range as .ics files.

Fetches posts from the record store (or an offline JSON file), normalizes
them the way the calendar screen does, and writes one iCalendar file per item.

Usage:
    python scripts/export_calendar.py --start 2024-05-01 --end 2024-05-31
    python scripts/export_calendar.py --start 2024-05-01 --end 2024-05-31 --class-id c1
    python scripts/export_calendar.py --start 2024-05-01 --end 2024-05-31 \\
        --posts-file data/posts.json --out reports/ics
"""

import argparse
import sys
from datetime import datetime, time, timezone
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent))
from config import REPORTS_DIR, get_store, init_logging, script_viewer  # noqa: E402

from src.calendar_engine.config import get_config  # noqa: E402
from src.calendar_engine.dates import parse_ymd, resolve_tz  # noqa: E402
from src.calendar_engine.ics import build_ics, ics_filename  # noqa: E402
from src.calendar_engine.normalize import normalize_all  # noqa: E402


def parse_day(value):
    day = parse_ymd(value)
    if day is None:
        raise argparse.ArgumentTypeError(f"expected YYYY-MM-DD, got {value!r}")
    return day


def main():
    parser = argparse.ArgumentParser(description="Export calendar items as .ics files")
    parser.add_argument("--start", type=parse_day, required=True, help="First day (YYYY-MM-DD)")
    parser.add_argument("--end", type=parse_day, required=True, help="Last day (YYYY-MM-DD)")
    parser.add_argument("--class-id", default=None, help="Restrict to one class (plus global posts)")
    parser.add_argument("--posts-file", default=None, help="Offline JSON file of post rows")
    parser.add_argument(
        "--role", default="registrar", choices=["student", "teacher", "registrar"],
        help="Role the items are normalized for (students only get published posts)",
    )
    parser.add_argument("--out", default=str(REPORTS_DIR / "ics"), help="Output directory")
    args = parser.parse_args()

    if args.end < args.start:
        print("--end must not be before --start")
        sys.exit(1)

    init_logging()
    config = get_config()
    tz = resolve_tz(config.timezone)
    store = get_store(args.posts_file)
    viewer = script_viewer(args.role)

    start = datetime.combine(args.start, time.min, tzinfo=tz)
    end = datetime.combine(args.end, time.max, tzinfo=tz)
    raw = store.get_by_id_and_date_range(args.class_id, start, end)
    items = normalize_all(raw, viewer.role, tz=tz, show_weight=config.show_weight)

    print("=" * 60)
    print(f"ICS EXPORT {args.start} .. {args.end}")
    print("=" * 60)

    out_dir = Path(args.out)
    out_dir.mkdir(parents=True, exist_ok=True)
    now = datetime.now(timezone.utc)

    written = 0
    skipped = 0
    for item in items:
        if not item.clickable:
            skipped += 1
            continue
        path = out_dir / f"{item.record_id}_{ics_filename(item.title)}"
        path.write_text(build_ics(item, uid_domain=config.ics_uid_domain, now=now), encoding="utf-8", newline="")
        print(f"  {item.kind.value:<10} {item.start_at.astimezone(tz):%d/%m/%Y %H:%M}  {item.title}")
        written += 1

    print(f"\nWrote {written} file(s) to {out_dir}  |  Skipped (unpublished): {skipped}")


if __name__ == "__main__":
    main()
