"""Resolve period selections into concrete half-open intervals."""

from __future__ import annotations

import datetime
import logging
from typing import Callable, Optional

from dateutil.relativedelta import relativedelta

from ..core.time_utils import at_midnight, midnight, to_day
from .models import PeriodPreset, PeriodSelection, TimeInterval

logger = logging.getLogger(__name__)

ONE_DAY = datetime.timedelta(days=1)

# Monday; matches datetime.date.weekday() numbering.
DEFAULT_WEEK_START = 0


def _today(now: datetime.datetime) -> TimeInterval:
    start = midnight(now)
    return TimeInterval(start=start, end=start + ONE_DAY)


def _next_days(days: int) -> Callable[[datetime.datetime, int], TimeInterval]:
    def resolve_next(now: datetime.datetime, week_start: int) -> TimeInterval:
        start = midnight(now)
        return TimeInterval(start=start, end=start + datetime.timedelta(days=days))

    return resolve_next


def _this_week(now: datetime.datetime, week_start: int) -> TimeInterval:
    today = midnight(now)
    offset = (today.weekday() - week_start) % 7
    start = today - datetime.timedelta(days=offset)
    return TimeInterval(start=start, end=start + datetime.timedelta(days=7))


def _this_month(now: datetime.datetime, week_start: int) -> TimeInterval:
    start = midnight(now).replace(day=1)
    return TimeInterval(start=start, end=start + relativedelta(months=1))


def _year_to_date(now: datetime.datetime, week_start: int) -> TimeInterval:
    start = midnight(now).replace(month=1, day=1)
    return TimeInterval(start=start, end=midnight(now) + ONE_DAY)


def _last_30_days(now: datetime.datetime, week_start: int) -> TimeInterval:
    today = midnight(now)
    return TimeInterval(start=today - datetime.timedelta(days=30), end=today + ONE_DAY)


def _last_12_months(now: datetime.datetime, week_start: int) -> TimeInterval:
    today = midnight(now)
    # relativedelta clamps Feb 29 to Feb 28 in non-leap years
    return TimeInterval(start=today - relativedelta(years=1), end=today + ONE_DAY)


_PRESET_RESOLVERS: dict[str, Callable[[datetime.datetime, int], TimeInterval]] = {
    PeriodPreset.TODAY.value: lambda now, _: _today(now),
    PeriodPreset.NEXT_7_DAYS.value: _next_days(7),
    PeriodPreset.NEXT_30_DAYS.value: _next_days(30),
    PeriodPreset.THIS_WEEK.value: _this_week,
    PeriodPreset.THIS_MONTH.value: _this_month,
    PeriodPreset.YEAR_TO_DATE.value: _year_to_date,
    PeriodPreset.LAST_30_DAYS.value: _last_30_days,
    PeriodPreset.LAST_12_MONTHS.value: _last_12_months,
}


def _resolve_custom(
    selection: PeriodSelection, now: datetime.datetime
) -> Optional[TimeInterval]:
    zone = now.tzinfo
    start_day = to_day(selection.start_date, zone)
    end_day = to_day(selection.end_date, zone)

    if start_day is None or end_day is None:
        logger.debug(
            "Custom period with missing/unparseable bound (%r, %r); not filtering by date",
            selection.start_date,
            selection.end_date,
        )
        return None

    if start_day > end_day:
        logger.debug("Custom period bounds reversed (%s > %s); swapping", start_day, end_day)
        start_day, end_day = end_day, start_day

    return TimeInterval(
        start=at_midnight(start_day, zone),
        end=at_midnight(end_day, zone) + ONE_DAY,
    )


def resolve(
    selection: Optional[PeriodSelection],
    now: datetime.datetime,
    week_start: int = DEFAULT_WEEK_START,
) -> Optional[TimeInterval]:
    """Resolve a period selection against ``now``.

    Presets:
      - today:        [midnight(now), +1 day)
      - next7days:    [midnight(now), +7 days)
      - next30days:   [midnight(now), +30 days)
      - thisWeek:     7 days starting on the most recent ``week_start`` weekday
      - thisMonth:    [first of month, first of next month)
      - yearToDate:   [Jan 1, midnight(now) + 1 day)
      - last30days:   [midnight(now) - 30 days, midnight(now) + 1 day)
      - last12months: [same day one year earlier, midnight(now) + 1 day)
      - all:          None

    Custom selections resolve to ``[midnight(start), midnight(end) + 1 day)``;
    an absent or unparseable bound resolves to None, as do unknown preset
    names. None means "do not filter by date". This function never raises.

    Args:
        selection: Period selection, None behaves as ``all``
        now: Current instant; its tzinfo (if any) defines calendar days
        week_start: First weekday of ``thisWeek`` (0=Monday .. 6=Sunday)

    Returns:
        Resolved interval or None
    """
    if selection is None:
        return None

    if selection.is_custom:
        return _resolve_custom(selection, now)

    if selection.name == PeriodPreset.ALL.value:
        return None

    resolver = _PRESET_RESOLVERS.get(selection.name)
    if resolver is None:
        logger.warning("Unknown period preset %r; not filtering by date", selection.name)
        return None

    return resolver(now, week_start % 7)
