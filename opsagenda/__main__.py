"""Command-line entry for opsagenda.

Renders an agenda page or a calendar fetch-window decision from a JSON export
of the data feed. Useful for checking filter behavior against real data
without the dashboard.
"""

from __future__ import annotations

import argparse
import datetime
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Optional

from dateutil import parser as date_parser

from . import _init_logging
from .agenda_logging import configure_agenda_logging
from .core.config_manager import ConfigManager
from .core.exceptions import InvalidPresetError
from .core.time_utils import now_local, to_day
from .domain.models import FilterCriteria, PeriodPreset, PeriodSelection, TimeInterval
from .domain.pipeline import VIEW_GUEST, VIEW_MAINTENANCE, AgendaPipeline
from .domain.range_expansion import MODE_COMPACT, MODE_FULLSCREEN, RangeExpansionCache

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_BAD_INPUT = 2


def _create_parser() -> argparse.ArgumentParser:
    """Create argument parser for the opsagenda CLI.

    Returns:
        Configured argument parser
    """
    parser = argparse.ArgumentParser(
        prog="opsagenda",
        description="opsagenda - agenda filtering, pagination and calendar window tools",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m opsagenda agenda --input feed.json --preset next7days
  python -m opsagenda agenda --input feed.json --view guest --status CHECKOUT --status CHECKIN
  python -m opsagenda window --mode fullscreen --viewport-start 2024-03-10 --viewport-days 31
        """,
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--env-file", type=Path, help="Path to a .env file (default: ./.env)")

    sub = parser.add_subparsers(dest="command", required=True)

    agenda = sub.add_parser("agenda", help="Print the first page of an agenda view")
    agenda.add_argument("--input", required=True, type=Path, help="JSON file with tickets/reservations")
    agenda.add_argument("--view", choices=[VIEW_MAINTENANCE, VIEW_GUEST], default=VIEW_MAINTENANCE)
    agenda.add_argument(
        "--preset", default=PeriodPreset.ALL.value, help="Period preset (default: all)"
    )
    agenda.add_argument("--from", dest="date_from", help="Custom period start (YYYY-MM-DD)")
    agenda.add_argument("--to", dest="date_to", help="Custom period end, inclusive (YYYY-MM-DD)")
    agenda.add_argument("--search", default="")
    agenda.add_argument("--status", action="append", help="Status facet (repeatable)")
    agenda.add_argument("--assignee", default="all")
    agenda.add_argument("--property", action="append", dest="properties", help="Property code (repeatable)")
    agenda.add_argument("--category", default="all")
    agenda.add_argument("--type", dest="ticket_type", default="all")
    agenda.add_argument("--page-size", type=_positive_int, help="Items per page")
    agenda.add_argument("--pages", type=_positive_int, default=1, help="Number of pages to reveal")
    agenda.add_argument("--now", help="Override the current instant (ISO 8601)")

    window = sub.add_parser("window", help="Show the calendar fetch window for a viewport")
    window.add_argument("--mode", choices=[MODE_COMPACT, MODE_FULLSCREEN], default=MODE_COMPACT)
    window.add_argument("--viewport-start", required=True, help="First visible day (YYYY-MM-DD)")
    window.add_argument("--viewport-days", type=_positive_int, default=31, help="Visible days")
    window.add_argument("--today", help="Override today (YYYY-MM-DD)")

    return parser


def _load_feed(path: Path) -> dict[str, list[Any]]:
    """Read a feed export: a list of tickets, or {"tickets": [...], "reservations": [...]}."""
    with path.open("r", encoding="utf-8") as fh:
        data = json.load(fh)
    if isinstance(data, list):
        return {"tickets": data, "reservations": []}
    if not isinstance(data, dict):
        raise ValueError("feed JSON root must be a list or an object")
    return {
        "tickets": list(data.get("tickets") or []),
        "reservations": list(data.get("reservations") or []),
    }


def _resolve_now(value: Optional[str], tz: Optional[str]) -> datetime.datetime:
    if value:
        return date_parser.isoparse(value)
    return now_local(tz)


def _positive_int(value: str) -> int:
    """argparse type for counts that must be at least 1."""
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid integer: {value!r}") from None
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {number}")
    return number


def _build_criteria(args: argparse.Namespace) -> FilterCriteria:
    if args.date_from or args.date_to:
        # The resolver treats a bad bound as "no date filter"; the CLI rejects it instead
        for flag, value in (("--from", args.date_from), ("--to", args.date_to)):
            if to_day(value) is None:
                raise ValueError(f"{flag} must be a date (YYYY-MM-DD), got {value!r}")
        period = PeriodSelection.custom(args.date_from, args.date_to)
    else:
        period = PeriodSelection.preset(args.preset, strict=True)
    return FilterCriteria(
        search=args.search,
        status=args.status or "all",
        assignee=args.assignee,
        property_code=args.properties or "all",
        category=args.category,
        ticket_type=args.ticket_type,
        period=period,
    )


def _describe_item(item: Any) -> str:
    reservation = getattr(item, "reservation", None)
    if reservation is not None:
        return f"[checkout] {reservation.property_code} {reservation.guest_name}"
    if hasattr(item, "guest_name"):
        status = item.daily_status or "CHECKOUT"
        return f"[{status}] {item.property_code} {item.guest_name}"
    return f"[{item.status}] {item.property_code} {item.description}"


def _run_agenda(args: argparse.Namespace, manager: ConfigManager) -> int:
    settings = manager.load_settings()
    try:
        feed = _load_feed(args.input)
    except (OSError, ValueError) as e:
        print(f"Error: cannot read {args.input}: {e}", file=sys.stderr)
        return EXIT_BAD_INPUT

    try:
        criteria = _build_criteria(args)
        now = _resolve_now(args.now, settings.timezone)
    except (InvalidPresetError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_BAD_INPUT

    pipeline = AgendaPipeline(view=args.view, settings=settings, page_size=args.page_size)
    entities = feed["reservations"] if args.view == VIEW_GUEST else feed["tickets"]
    view = pipeline.evaluate(entities, criteria, now, reservations=feed["reservations"])
    for _ in range(args.pages - 1):
        view = pipeline.load_more() or view

    for bucket in view.page.visible:
        print(bucket.label)
        for item in bucket.items:
            print(f"  {_describe_item(item)}")

    meta = view.pagination_meta
    print(
        f"\n{view.page.visible_count} of {meta['total_items']} items shown"
        + (" (more available)" if meta["has_more"] else "")
    )
    return EXIT_OK


def _run_window(args: argparse.Namespace, manager: ConfigManager) -> int:
    settings = manager.load_settings()
    today = to_day(args.today) if args.today else now_local(settings.timezone).date()
    start = to_day(args.viewport_start)
    if today is None or start is None:
        print("Error: dates must be YYYY-MM-DD", file=sys.stderr)
        return EXIT_BAD_INPUT

    cache = RangeExpansionCache(
        mode=args.mode,
        today=today,
        buffer_days=settings.buffer_days,
        expansion_days=settings.expansion_days,
        fullscreen_window_days=settings.fullscreen_window_days,
        compact_window_months=settings.compact_window_months,
    )
    print(f"Initial window ({cache.mode}): {cache.window.from_date} -> {cache.window.to_date}")

    viewport = TimeInterval.for_days(start, args.viewport_days)
    expanded = cache.maybe_expand(viewport)
    if expanded is None:
        print("No expansion needed")
    else:
        print(f"Expanded window: {expanded.from_date} -> {expanded.to_date}")
    return EXIT_OK


def main(argv: Optional[list[str]] = None) -> int:
    """Run the opsagenda CLI."""
    parser = _create_parser()
    args = parser.parse_args(argv)

    _init_logging(os.environ.get("OPSAGENDA_LOG_LEVEL"))
    configure_agenda_logging(debug_mode=args.debug)

    manager = ConfigManager(args.env_file)
    if args.command == "agenda":
        return _run_agenda(args, manager)
    return _run_window(args, manager)


if __name__ == "__main__":
    sys.exit(main())
