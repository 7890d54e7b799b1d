"""Unit tests for time_utils module."""

import datetime
import zoneinfo

import pytest

from opsagenda.core.time_utils import (
    days_between,
    first_of_month,
    get_zone,
    in_zone,
    now_local,
    to_day,
    to_wall_clock,
)

pytestmark = pytest.mark.unit


class TestToWallClock:
    """Tests for to_wall_clock and to_day."""

    def test_date_only_string_is_midnight(self):
        assert to_wall_clock("2024-03-15") == datetime.datetime(2024, 3, 15)

    def test_iso_timestamp(self):
        assert to_wall_clock("2024-03-15T14:30:00") == datetime.datetime(2024, 3, 15, 14, 30)

    def test_aware_value_converted_into_zone(self):
        value = "2024-03-16T01:30:00+00:00"

        assert to_day(value, "America/Sao_Paulo") == datetime.date(2024, 3, 15)

    def test_aware_value_without_zone_keeps_wall_clock(self):
        value = datetime.datetime(2024, 3, 16, 1, 30, tzinfo=datetime.timezone.utc)

        assert to_wall_clock(value) == datetime.datetime(2024, 3, 16, 1, 30)

    def test_epoch_milliseconds(self):
        assert to_day(1710460800000, "UTC") == datetime.date(2024, 3, 15)

    def test_date_object(self):
        assert to_wall_clock(datetime.date(2024, 3, 15)) == datetime.datetime(2024, 3, 15)

    @pytest.mark.parametrize("value", [None, "", "   ", "not a date", "2024-13-45", True, object()])
    def test_unparseable_values_yield_none(self, value):
        assert to_wall_clock(value) is None
        assert to_day(value) is None


class TestCalendarHelpers:
    """Tests for small calendar helpers."""

    def test_first_of_month(self):
        assert first_of_month(datetime.date(2024, 1, 31)) == datetime.date(2024, 1, 1)
        assert first_of_month(datetime.date(2024, 11, 30), 3) == datetime.date(2025, 2, 1)

    def test_days_between_is_signed(self):
        assert days_between(datetime.date(2024, 3, 1), datetime.date(2024, 3, 10)) == 9
        assert days_between(datetime.date(2024, 3, 10), datetime.date(2024, 3, 1)) == -9

    def test_get_zone(self):
        assert get_zone(None) is None
        assert get_zone("") is None
        assert get_zone("UTC") == zoneinfo.ZoneInfo("UTC")
        assert get_zone("Not/AZone") is None


class TestNowLocal:
    """Tests for now_local and the OPSAGENDA_TEST_TIME override."""

    def test_test_time_override(self, monkeypatch):
        monkeypatch.setenv("OPSAGENDA_TEST_TIME", "2024-03-15T10:00:00")

        assert now_local() == datetime.datetime(2024, 3, 15, 10, 0)

    def test_test_time_override_converted_into_zone(self, monkeypatch):
        monkeypatch.setenv("OPSAGENDA_TEST_TIME", "2024-03-15T13:00:00+00:00")

        now = now_local("America/Sao_Paulo")

        assert now.hour == 10
        assert now.tzinfo == zoneinfo.ZoneInfo("America/Sao_Paulo")

    def test_invalid_override_falls_back_to_clock(self, monkeypatch):
        monkeypatch.setenv("OPSAGENDA_TEST_TIME", "yesterday-ish")

        assert now_local().year >= 2024


class TestInZone:
    """Tests for in_zone."""

    def test_aware_value_is_converted(self):
        value = datetime.datetime(2024, 3, 16, 1, 0, tzinfo=datetime.timezone.utc)

        result = in_zone(value, "America/Sao_Paulo")

        assert (result.day, result.hour) == (15, 22)
        assert result == value

    def test_naive_value_gets_zone_attached(self):
        result = in_zone(datetime.datetime(2024, 3, 15, 22, 0), "America/Sao_Paulo")

        assert result.hour == 22
        assert result.tzinfo == zoneinfo.ZoneInfo("America/Sao_Paulo")

    def test_no_zone_leaves_value_alone(self):
        value = datetime.datetime(2024, 3, 15, 22, 0)

        assert in_zone(value, None) is value
