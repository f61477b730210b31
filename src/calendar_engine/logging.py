"""Structured logging for the calendar engine.

JSON lines in production, console output for local runs. Every event carries
the acting viewer (bound per session through contextvars) and the component
that emitted it, so audit events like dnd_moved need no actor kwargs.
"""

import logging
import sys

import structlog

VIEWER_KEYS = ("viewer_id", "viewer_role")


def setup_logging(json_output: bool = False, log_level: str = "INFO") -> None:
    """Configure structlog for the engine and the scripts.

    Args:
        json_output: If True, output JSON lines. If False, console format.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    processors = [
        # Viewer context first so renderers see it next to the event
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if json_output:
        processors.append(structlog.processors.JSONRenderer(sort_keys=True))
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # The record store's HTTP stack (requests, urllib3) logs through stdlib;
    # send it to stdout as well, quieter than the engine's own events
    root = logging.getLogger()
    root.handlers = [logging.StreamHandler(sys.stdout)]
    root.setLevel(numeric_level)
    logging.getLogger("urllib3").setLevel(max(numeric_level, logging.WARNING))


def get_logger(name: str) -> structlog.BoundLogger:
    """Logger bound with the emitting component.

    Args:
        name: Module name; "src.calendar_engine.moves" binds component="moves".

    Returns:
        structlog logger. Viewer fields are merged in at render time.
    """
    return structlog.get_logger(name, component=name.rsplit(".", 1)[-1])


def bind_viewer_context(viewer_id: str, role: str) -> None:
    """Attach the acting viewer to every log line emitted in this context.

    Audit events (dnd_moved, dnd_blocked, drawer_opened) rely on this instead
    of repeating the actor on each call.
    """
    structlog.contextvars.bind_contextvars(**dict(zip(VIEWER_KEYS, (viewer_id, role))))


def clear_viewer_context() -> None:
    """Drop viewer context bound by bind_viewer_context()."""
    structlog.contextvars.unbind_contextvars(*VIEWER_KEYS)
