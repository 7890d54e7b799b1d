"""opsagenda - windowed agenda pipeline for the short-term-rental operations dashboard.

Resolves period presets, filters and groups maintenance tickets and reservations
into day buckets, paginates them incrementally, manages the calendar fetch
window and detects newly arrived entities. Top-level imports stay light; the
public API is re-exported lazily.
"""

__version__ = "0.1.0"

from typing import Any, Optional

_LAZY_EXPORTS = {
    "AgendaPipeline": "opsagenda.domain.pipeline",
    "AgendaView": "opsagenda.domain.pipeline",
    "AgendaSettings": "opsagenda.core.settings",
    "ConfigManager": "opsagenda.core.config_manager",
    "FilterCriteria": "opsagenda.domain.models",
    "PeriodSelection": "opsagenda.domain.models",
    "TimeInterval": "opsagenda.domain.models",
    "FetchWindow": "opsagenda.domain.models",
    "resolve": "opsagenda.domain.period_resolver",
    "group": "opsagenda.domain.grouping",
    "paginate": "opsagenda.domain.pagination",
    "detect_new": "opsagenda.domain.change_detector",
    "RangeExpansionCache": "opsagenda.domain.range_expansion",
    "compute_signature": "opsagenda.domain.signature",
}

__all__ = ["__version__", *_LAZY_EXPORTS]


def __getattr__(name: str) -> Any:
    module_name = _LAZY_EXPORTS.get(name)
    if module_name is None:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    import importlib

    return getattr(importlib.import_module(module_name), name)


def _init_logging(level_name: Optional[str]) -> None:
    """Initialize root logging to stream colorized output to the console.

    Honors OPSAGENDA_DEBUG (truthy values: "1", "true", "yes", "on"), which
    forces DEBUG verbosity regardless of ``level_name``.
    """
    import logging
    import os
    import sys

    from colorlog import ColoredFormatter

    debug_env = os.environ.get("OPSAGENDA_DEBUG", "")
    if debug_env.strip().lower() in ("1", "true", "yes", "on"):
        level_name = "DEBUG"

    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler(stream=sys.stderr)
        # HH:MM:SS  LEVEL   logger.name: message  (only the level is colorized)
        fmt = "%(asctime)s %(log_color)s%(levelname)-7s%(reset)s %(name)s: %(message)s"
        log_colors = {
            "DEBUG": "cyan",
            "INFO": "green",
            "WARNING": "yellow",
            "ERROR": "red",
            "CRITICAL": "bold_red",
        }
        handler.setFormatter(ColoredFormatter(fmt, datefmt="%H:%M:%S", log_colors=log_colors))
        root.addHandler(handler)

    level = logging.INFO
    if isinstance(level_name, str):
        level = getattr(logging, level_name.upper(), logging.INFO)
    root.setLevel(level)
    logging.getLogger(__name__).debug(
        "Logging initialized at level %s", logging.getLevelName(level)
    )
