"""
Central logging configuration for opsagenda.

Agenda evaluations run on every facet edit, scroll and feed update, so the
per-call detail is logged at DEBUG and kept quiet by default. Every record is
stamped with the view being evaluated (``maintenance``, ``guest``, ...) so
interleaved logs from several panels stay readable.
"""

import logging
import os
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Optional

# View currently being evaluated; set by AgendaPipeline around each evaluation
current_view_var: ContextVar[str] = ContextVar("current_view", default="")

AGENDA_MODULES = [
    "opsagenda",
    "opsagenda.domain.grouping",
    "opsagenda.domain.pagination",
    "opsagenda.domain.range_expansion",
    "opsagenda.domain.change_detector",
    "opsagenda.domain.pipeline",
    "opsagenda.core.config_manager",
]


def get_current_view() -> str:
    """Return the view name of the running evaluation, or "no-view"."""
    return current_view_var.get() or "no-view"


@contextmanager
def view_context(view: str) -> Iterator[None]:
    """Stamp log records emitted inside the block with ``view``."""
    token = current_view_var.set(view)
    try:
        yield
    finally:
        current_view_var.reset(token)


class ViewContextFilter(logging.Filter):
    """Add the active view name to all log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.view = get_current_view()
        return True


_TRUTHY = ("1", "true", "yes", "on")
_ROOT_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")

# Libraries that must not inherit DEBUG from the agenda modules
QUIET_LOGGERS = ("pydantic", "dateutil")

_VIEW_FORMAT = "[%(asctime)s] [%(view)s] %(levelname)s - %(name)s - %(message)s"


def _debug_requested(debug_mode: bool, force_debug: Optional[bool]) -> bool:
    """force_debug beats OPSAGENDA_DEBUG, which beats debug_mode."""
    if force_debug is not None:
        return force_debug
    if os.getenv("OPSAGENDA_DEBUG", "").strip().lower() in _TRUTHY:
        return True
    return debug_mode


def _install_view_filter(root: logging.Logger, level: int) -> None:
    """Make every root handler stamp ``record.view``; add a handler if there is none."""
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setLevel(level)
        handler.setFormatter(logging.Formatter(_VIEW_FORMAT))
        root.addHandler(handler)

    for handler in root.handlers:
        if not any(isinstance(f, ViewContextFilter) for f in handler.filters):
            handler.addFilter(ViewContextFilter())


def configure_agenda_logging(debug_mode: bool = False, force_debug: Optional[bool] = None) -> None:
    """
    Configure logging levels for opsagenda.

    Agenda modules log at DEBUG when debug is requested and at INFO
    otherwise. The root level follows the same rule unless
    OPSAGENDA_LOG_LEVEL names one explicitly. Calling this repeatedly is
    safe: handlers and filters are never duplicated.

    Args:
        debug_mode: Whether to enable debug logging for opsagenda modules
        force_debug: Override debug mode setting (None to use env var detection)

    Environment Variables:
        OPSAGENDA_DEBUG: Set to '1', 'true', 'yes' or 'on' to force debug logging
        OPSAGENDA_LOG_LEVEL: Override root log level (DEBUG, INFO, WARNING, ERROR)
    """
    debug = _debug_requested(debug_mode, force_debug)
    agenda_level = logging.DEBUG if debug else logging.INFO

    requested_root = os.getenv("OPSAGENDA_LOG_LEVEL", "").strip().upper()
    root_level = getattr(logging, requested_root) if requested_root in _ROOT_LEVELS else agenda_level

    root_logger = logging.getLogger()
    root_logger.setLevel(root_level)
    _install_view_filter(root_logger, root_level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    for name in AGENDA_MODULES:
        logging.getLogger(name).setLevel(agenda_level)

    root_logger.debug(
        "Agenda logging configured: agenda=%s root=%s",
        logging.getLevelName(agenda_level),
        logging.getLevelName(root_level),
    )


def get_logging_status() -> dict[str, str]:
    """
    Get current logging configuration status.

    Returns:
        Dictionary mapping logger names to their current levels
    """
    status = {"root": logging.getLevelName(logging.getLogger().level)}
    for logger_name in AGENDA_MODULES:
        status[logger_name] = logging.getLevelName(logging.getLogger(logger_name).level)
    return status
