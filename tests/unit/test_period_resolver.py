"""Unit tests for period_resolver module."""

import datetime
import zoneinfo

import pytest

from opsagenda.core.exceptions import InvalidPresetError
from opsagenda.domain.models import PeriodPreset, PeriodSelection
from opsagenda.domain.period_resolver import resolve

pytestmark = pytest.mark.unit


def _dt(y: int, m: int, d: int) -> datetime.datetime:
    return datetime.datetime(y, m, d)


class TestPresetResolution:
    """Tests for named presets."""

    def test_today_covers_current_calendar_day(self, fixed_now):
        interval = resolve(PeriodSelection.preset("today"), fixed_now)

        assert interval.start == _dt(2024, 3, 15)
        assert interval.end == _dt(2024, 3, 16)

    def test_next7days_starts_at_midnight(self, fixed_now):
        interval = resolve(PeriodSelection.preset(PeriodPreset.NEXT_7_DAYS), fixed_now)

        assert interval.start == _dt(2024, 3, 15)
        assert interval.end == _dt(2024, 3, 22)

    def test_next30days(self, fixed_now):
        interval = resolve(PeriodSelection.preset("next30days"), fixed_now)

        assert interval.end == _dt(2024, 4, 14)

    def test_this_week_defaults_to_monday(self, fixed_now):
        interval = resolve(PeriodSelection.preset("thisWeek"), fixed_now)

        assert interval.start == _dt(2024, 3, 11)
        assert interval.end == _dt(2024, 3, 18)

    def test_this_week_with_sunday_start(self, fixed_now):
        interval = resolve(PeriodSelection.preset("thisWeek"), fixed_now, week_start=6)

        assert interval.start == _dt(2024, 3, 10)
        assert interval.end == _dt(2024, 3, 17)

    def test_this_week_when_today_is_week_start(self):
        monday = datetime.datetime(2024, 3, 11, 23, 59)

        interval = resolve(PeriodSelection.preset("thisWeek"), monday)

        assert interval.start == _dt(2024, 3, 11)

    def test_this_month_spans_calendar_month(self, fixed_now):
        interval = resolve(PeriodSelection.preset("thisMonth"), fixed_now)

        assert interval.start == _dt(2024, 3, 1)
        assert interval.end == _dt(2024, 4, 1)

    def test_this_month_in_december_rolls_over_year(self):
        interval = resolve(PeriodSelection.preset("thisMonth"), datetime.datetime(2024, 12, 31, 8))

        assert interval.end == _dt(2025, 1, 1)

    def test_year_to_date_includes_today(self, fixed_now):
        interval = resolve(PeriodSelection.preset("yearToDate"), fixed_now)

        assert interval.start == _dt(2024, 1, 1)
        assert interval.end == _dt(2024, 3, 16)

    def test_last30days(self, fixed_now):
        interval = resolve(PeriodSelection.preset("last30days"), fixed_now)

        assert interval.start == _dt(2024, 2, 14)
        assert interval.end == _dt(2024, 3, 16)

    def test_last12months_clamps_leap_day(self):
        interval = resolve(PeriodSelection.preset("last12months"), datetime.datetime(2024, 2, 29, 12))

        assert interval.start == _dt(2023, 2, 28)
        assert interval.end == _dt(2024, 3, 1)

    def test_all_means_no_constraint(self, fixed_now):
        assert resolve(PeriodSelection.preset("all"), fixed_now) is None

    def test_none_selection_means_no_constraint(self, fixed_now):
        assert resolve(None, fixed_now) is None

    def test_unknown_preset_resolves_to_none(self, fixed_now):
        assert resolve(PeriodSelection.preset("nextDecade"), fixed_now) is None

    def test_strict_preset_rejects_unknown_name(self):
        with pytest.raises(InvalidPresetError) as exc_info:
            PeriodSelection.preset("nextDecade", strict=True)

        assert exc_info.value.preset == "nextDecade"
        assert "today" in exc_info.value.valid

    def test_aware_now_keeps_timezone(self):
        zone = zoneinfo.ZoneInfo("America/Sao_Paulo")
        now = datetime.datetime(2024, 3, 15, 22, 30, tzinfo=zone)

        interval = resolve(PeriodSelection.preset("today"), now)

        assert interval.start == datetime.datetime(2024, 3, 15, tzinfo=zone)

    def test_resolved_interval_is_well_formed(self, fixed_now):
        for preset in PeriodPreset:
            interval = resolve(PeriodSelection.preset(preset), fixed_now)
            if interval is not None:
                assert interval.start <= interval.end


class TestCustomResolution:
    """Tests for custom date ranges."""

    def test_custom_end_is_inclusive_day(self, fixed_now):
        interval = resolve(PeriodSelection.custom("2024-03-01", "2024-03-10"), fixed_now)

        assert interval.start == _dt(2024, 3, 1)
        assert interval.end == _dt(2024, 3, 11)
        assert interval.contains(datetime.datetime(2024, 3, 10, 23, 59))

    def test_custom_accepts_date_objects(self, fixed_now):
        interval = resolve(
            PeriodSelection.custom(datetime.date(2024, 3, 1), datetime.date(2024, 3, 1)), fixed_now
        )

        assert interval.start == _dt(2024, 3, 1)
        assert interval.end == _dt(2024, 3, 2)

    def test_reversed_bounds_are_swapped(self, fixed_now):
        interval = resolve(PeriodSelection.custom("2024-03-10", "2024-03-01"), fixed_now)

        assert interval.start == _dt(2024, 3, 1)
        assert interval.end == _dt(2024, 3, 11)

    def test_missing_bound_means_no_constraint(self, fixed_now):
        assert resolve(PeriodSelection.custom("2024-03-01", None), fixed_now) is None
        assert resolve(PeriodSelection.custom(None, "2024-03-01"), fixed_now) is None

    def test_unparseable_bound_means_no_constraint(self, fixed_now):
        assert resolve(PeriodSelection.custom("not-a-date", "2024-03-01"), fixed_now) is None
