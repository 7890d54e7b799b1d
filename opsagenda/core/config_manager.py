"""Configuration management for opsagenda.

Settings come from ``OPSAGENDA_*`` environment variables, with an optional
``.env`` file supplying defaults for variables the environment does not set.
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Any, Callable

from .exceptions import ConfigurationError
from .settings import AgendaSettings

logger = logging.getLogger(__name__)

ENV_PREFIX = "OPSAGENDA_"

# KEY=VALUE with optional "export", whitespace around "=", and a quoted or bare value
_ENV_LINE_RE = re.compile(
    r"""^(?:export\s+)?(?P<key>[A-Za-z_][A-Za-z0-9_]*)\s*=\s*
        (?:"(?P<dq>[^"]*)"|'(?P<sq>[^']*)'|(?P<bare>[^#]*?))\s*(?:\#.*)?$""",
    re.VERBOSE,
)


def parse_env_file(path: Path) -> dict[str, str]:
    """Parse a .env file into a dict.

    Blank lines, ``#`` comments and lines that are not assignments are
    skipped. Quoted values keep their content verbatim (including ``#``);
    bare values end at an inline ``#`` comment. A later assignment of the
    same key wins.

    Args:
        path: Path to the .env file

    Returns:
        Parsed assignments; empty when the file is missing or unreadable
    """
    try:
        lines = path.read_text(encoding="utf-8").splitlines()
    except FileNotFoundError:
        return {}
    except OSError:
        logger.warning("Cannot read .env file %s; ignoring it", path, exc_info=True)
        return {}

    result: dict[str, str] = {}
    for lineno, raw_line in enumerate(lines, start=1):
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        match = _ENV_LINE_RE.match(line)
        if match is None:
            logger.debug("%s:%d is not an assignment; skipped", path.name, lineno)
            continue
        value = next(v for v in (match["dq"], match["sq"], match["bare"]) if v is not None)
        result[match["key"]] = value
    return result


# Environment variable -> (settings field, converter)
ENV_SETTINGS_MAP: dict[str, tuple[str, Callable[[str], Any]]] = {
    "OPSAGENDA_PAGE_SIZE": ("default_page_size", int),
    "OPSAGENDA_BUFFER_DAYS": ("buffer_days", int),
    "OPSAGENDA_EXPANSION_DAYS": ("expansion_days", int),
    "OPSAGENDA_WEEK_START": ("week_start", str),
    "OPSAGENDA_CHECKOUT_HORIZON_DAYS": ("checkout_horizon_days", int),
    "OPSAGENDA_FULLSCREEN_WINDOW_DAYS": ("fullscreen_window_days", int),
    "OPSAGENDA_COMPACT_WINDOW_MONTHS": ("compact_window_months", int),
    "OPSAGENDA_TIMEZONE": ("timezone", str),
}


class ConfigManager:
    """Manages opsagenda configuration from environment variables and .env files."""

    def __init__(self, env_file_path: Path | None = None):
        """Initialize configuration manager.

        Args:
            env_file_path: Optional path to .env file (defaults to .env in current directory)
        """
        self.env_file_path = env_file_path or Path.cwd() / ".env"

    def load_env_file(self) -> list[str]:
        """Export ``OPSAGENDA_*`` assignments from the .env file as defaults.

        Variables already present in the environment win over the file, and
        keys without the ``OPSAGENDA_`` prefix are left alone so a .env file
        shared with other tools does not leak into this process.

        Returns:
            Sorted keys that were exported from the file
        """
        parsed = parse_env_file(self.env_file_path)
        if not parsed:
            logger.debug("No .env defaults at %s", self.env_file_path)
            return []

        foreign = sorted(k for k in parsed if not k.startswith(ENV_PREFIX))
        if foreign:
            logger.debug("Ignoring non-%s keys in %s: %s", ENV_PREFIX, self.env_file_path, foreign)

        exported = sorted(
            k for k in parsed if k.startswith(ENV_PREFIX) and k not in os.environ
        )
        for key in exported:
            os.environ[key] = parsed[key]

        if exported:
            logger.debug("Exported .env defaults: %s", ", ".join(exported))
        return exported

    def build_config_from_env(self) -> dict[str, Any]:
        """Build a settings dictionary from OPSAGENDA_* environment variables.

        Values that cannot be converted are logged and ignored so the
        corresponding default applies.

        Returns:
            Dictionary of AgendaSettings field values
        """
        cfg: dict[str, Any] = {}

        for env_key, (field_name, convert) in ENV_SETTINGS_MAP.items():
            raw = os.environ.get(env_key)
            if raw is None or not raw.strip():
                continue
            try:
                cfg[field_name] = convert(raw.strip())
            except ValueError:
                logger.warning("Invalid %s=%r; ignoring", env_key, raw)

        return cfg

    def load_settings(self) -> AgendaSettings:
        """Load .env file and build validated settings from the environment.

        This is the main entry point for loading configuration. A value that
        converts but fails validation is dropped with a warning and the rest of
        the configuration is kept.

        Returns:
            AgendaSettings instance
        """
        self.load_env_file()
        cfg = self.build_config_from_env()

        while True:
            try:
                return AgendaSettings(**cfg)
            except ConfigurationError as e:
                if e.field_name not in cfg:
                    raise
                logger.warning("Ignoring invalid setting %s: %s", e.field_name, e.message)
                cfg.pop(e.field_name)

