"""
Shared configuration and store helpers for calendar engine scripts.
"""

import json
import sys
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

PROJECT_ROOT = Path(__file__).resolve().parent.parent
DATA_DIR = PROJECT_ROOT / "data"
REPORTS_DIR = PROJECT_ROOT / "reports"

# Scripts run as files, so the project root is not on sys.path by default
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from src.calendar_engine.config import get_config  # noqa: E402
from src.calendar_engine.dates import resolve_tz  # noqa: E402
from src.calendar_engine.logging import setup_logging  # noqa: E402
from src.calendar_engine.models import Role, Viewer  # noqa: E402
from src.calendar_engine.store import InMemoryRecordStore, RestRecordStore  # noqa: E402


def init_logging():
    """Configure structlog from CALENDAR_LOG_* settings."""
    config = get_config()
    setup_logging(json_output=config.log_json, log_level=config.log_level)


def get_store(posts_file=None):
    """Build the record store scripts read from.

    Args:
        posts_file: Optional JSON file with a list of post rows. When given,
                    an offline in-memory store is used instead of the REST API.
    """
    config = get_config()
    tz = resolve_tz(config.timezone)
    if posts_file:
        with open(posts_file, encoding="utf-8") as f:
            rows = json.load(f)
        return InMemoryRecordStore(rows, tz=tz)
    if not config.store_api_key:
        print("CALENDAR_STORE_API_KEY is not set (use --posts-file for offline mode)")
        sys.exit(1)
    return RestRecordStore.from_config(config)


def script_viewer(role="registrar"):
    """Viewer used by scripts; registrars see every post as clickable."""
    return Viewer(id="script", name="Calendar script", role=Role(role))
