"""Clock, timezone and calendar-day helpers for opsagenda."""

from __future__ import annotations

import datetime
import logging
import os
import re
import zoneinfo
from functools import lru_cache
from typing import Any, Optional, Union

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

logger = logging.getLogger(__name__)

TEST_TIME_ENV = "OPSAGENDA_TEST_TIME"

_DATE_ONLY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

TzLike = Union[str, datetime.tzinfo, None]


@lru_cache(maxsize=64)
def _zone_from_name(name: str) -> Optional[zoneinfo.ZoneInfo]:
    try:
        return zoneinfo.ZoneInfo(name)
    except (zoneinfo.ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown timezone %r; falling back to naive local time", name)
        return None


def get_zone(tz: TzLike) -> Optional[datetime.tzinfo]:
    """Resolve a timezone name or tzinfo into a tzinfo.

    Args:
        tz: IANA timezone name, tzinfo instance, or None

    Returns:
        tzinfo instance, or None for naive local wall-clock handling
    """
    if tz is None or isinstance(tz, datetime.tzinfo):
        return tz
    if not tz.strip():
        return None
    return _zone_from_name(tz.strip())


def is_valid_timezone(name: str) -> bool:
    """Return True when ``name`` is a loadable IANA timezone."""
    try:
        zoneinfo.ZoneInfo(name)
    except (zoneinfo.ZoneInfoNotFoundError, ValueError):
        return False
    return True


def now_local(tz: TzLike = None) -> datetime.datetime:
    """Return the current instant for agenda computations.

    Can be overridden for diagnostics via the OPSAGENDA_TEST_TIME environment
    variable (ISO 8601, e.g. "2024-03-15T10:00:00-03:00"). Library code never
    calls this implicitly; callers pass ``now`` explicitly into every operation.

    Args:
        tz: Optional timezone; when given the result is aware in that zone,
            otherwise a naive local wall-clock datetime is returned.

    Returns:
        Current datetime
    """
    zone = get_zone(tz)

    test_time = os.environ.get(TEST_TIME_ENV)
    if test_time:
        try:
            dt = date_parser.isoparse(test_time)
            if zone is not None:
                return dt.astimezone(zone) if dt.tzinfo else dt.replace(tzinfo=zone)
            return dt
        except (ValueError, OverflowError) as e:
            logger.warning("Failed to parse %s=%r: %s", TEST_TIME_ENV, test_time, e)

    if zone is not None:
        return datetime.datetime.now(zone)
    return datetime.datetime.now()


def in_zone(dt: datetime.datetime, tz: TzLike) -> datetime.datetime:
    """Express ``dt`` in ``tz``; naive values are read as wall-clock time there.

    Returns ``dt`` unchanged when ``tz`` does not resolve to a zone.
    """
    zone = get_zone(tz)
    if zone is None:
        return dt
    if dt.tzinfo is None:
        return dt.replace(tzinfo=zone)
    return dt.astimezone(zone)


def midnight(dt: datetime.datetime) -> datetime.datetime:
    """Return the start of the calendar day containing ``dt`` (tzinfo preserved)."""
    return dt.replace(hour=0, minute=0, second=0, microsecond=0)


def at_midnight(day: datetime.date, tzinfo: Optional[datetime.tzinfo] = None) -> datetime.datetime:
    """Return midnight of ``day`` as a datetime, optionally attached to ``tzinfo``."""
    return datetime.datetime(day.year, day.month, day.day, tzinfo=tzinfo)


def first_of_month(day: datetime.date, months_ahead: int = 0) -> datetime.date:
    """Return the first day of the month ``months_ahead`` months after ``day``'s month."""
    return day.replace(day=1) + relativedelta(months=months_ahead)


def days_between(start: datetime.date, end: datetime.date) -> int:
    """Whole days from ``start`` to ``end`` (negative when ``end`` precedes ``start``)."""
    return (_as_date(end) - _as_date(start)).days


def _as_date(value: datetime.date) -> datetime.date:
    if isinstance(value, datetime.datetime):
        return value.date()
    return value


def to_wall_clock(value: Any, tz: TzLike = None) -> Optional[datetime.datetime]:
    """Parse an entity date field into a naive wall-clock datetime.

    Accepted inputs:
      - ``datetime`` (aware values are converted into ``tz`` when given)
      - ``date`` (midnight of that day)
      - ISO-8601 strings, date-only or full timestamps
      - ints/floats as epoch milliseconds

    Anything else, including unparseable strings, yields None. This function
    never raises.

    Args:
        value: Raw field value
        tz: Timezone the calendar day is evaluated in

    Returns:
        Naive datetime in the relevant timezone, or None
    """
    zone = get_zone(tz)

    if value is None or isinstance(value, bool):
        return None

    try:
        if isinstance(value, datetime.datetime):
            dt = value
        elif isinstance(value, datetime.date):
            return at_midnight(value)
        elif isinstance(value, (int, float)):
            dt = datetime.datetime.fromtimestamp(value / 1000.0, tz=datetime.timezone.utc)
        elif isinstance(value, str):
            text = value.strip()
            if not text:
                return None
            if _DATE_ONLY_RE.match(text):
                return at_midnight(datetime.date.fromisoformat(text))
            dt = date_parser.isoparse(text)
        else:
            return None
    except (ValueError, OverflowError, OSError) as e:
        logger.debug("Unparseable date value %r: %s", value, e)
        return None

    if dt.tzinfo is not None:
        if zone is not None:
            dt = dt.astimezone(zone)
        dt = dt.replace(tzinfo=None)
    return dt


def to_day(value: Any, tz: TzLike = None) -> Optional[datetime.date]:
    """Parse an entity date field into its calendar day (the DateKey)."""
    dt = to_wall_clock(value, tz)
    return dt.date() if dt is not None else None
