"""Unit tests for settings validation and ConfigManager."""

import os
from pathlib import Path

import pytest

from opsagenda.core.config_manager import ConfigManager, parse_env_file
from opsagenda.core.exceptions import ConfigurationError
from opsagenda.core.settings import AgendaSettings

pytestmark = pytest.mark.unit


class TestAgendaSettings:
    """Tests for AgendaSettings validation."""

    def test_defaults(self):
        settings = AgendaSettings()

        assert settings.default_page_size == 20
        assert settings.buffer_days == 30
        assert settings.expansion_days == 90
        assert settings.week_start == 0
        assert settings.checkout_horizon_days == 15
        assert settings.timezone is None

    def test_week_start_accepts_names_and_numeric_strings(self):
        assert AgendaSettings(week_start="Sunday").week_start == 6
        assert AgendaSettings(week_start="2").week_start == 2

    def test_week_start_out_of_range(self):
        with pytest.raises(ConfigurationError) as exc_info:
            AgendaSettings(week_start=7)

        assert exc_info.value.field_name == "week_start"

    def test_week_start_unknown_name(self):
        with pytest.raises(ConfigurationError):
            AgendaSettings(week_start="funday")

    def test_non_positive_counts_rejected(self):
        with pytest.raises(ConfigurationError) as exc_info:
            AgendaSettings(default_page_size=0)

        assert exc_info.value.field_name == "default_page_size"
        assert "at least 1" in str(exc_info.value)

    def test_timezone_validated(self):
        assert AgendaSettings(timezone="America/Sao_Paulo").timezone == "America/Sao_Paulo"
        assert AgendaSettings(timezone="  ").timezone is None
        with pytest.raises(ConfigurationError):
            AgendaSettings(timezone="Mars/Olympus_Mons")


class TestParseEnvFile:
    """Tests for parse_env_file."""

    def test_parses_pairs_comments_and_quotes(self, tmp_path: Path):
        env_file = tmp_path / ".env"
        env_file.write_text(
            "# comment\n"
            "\n"
            "OPSAGENDA_PAGE_SIZE=50\n"
            "OPSAGENDA_TIMEZONE=\"America/Sao_Paulo\"\n"
            "OPSAGENDA_WEEK_START = 'sunday'\n"
            "not a pair\n"
        )

        assert parse_env_file(env_file) == {
            "OPSAGENDA_PAGE_SIZE": "50",
            "OPSAGENDA_TIMEZONE": "America/Sao_Paulo",
            "OPSAGENDA_WEEK_START": "sunday",
        }

    def test_export_prefix_and_inline_comments(self, tmp_path: Path):
        env_file = tmp_path / ".env"
        env_file.write_text(
            "export OPSAGENDA_BUFFER_DAYS=12  # two weeks-ish\n"
            "OPSAGENDA_TIMEZONE='Europe/Lisbon # not a comment'\n"
            "OPSAGENDA_PAGE_SIZE=10\n"
            "OPSAGENDA_PAGE_SIZE=15\n"
            "9INVALID=1\n"
        )

        assert parse_env_file(env_file) == {
            "OPSAGENDA_BUFFER_DAYS": "12",
            "OPSAGENDA_TIMEZONE": "Europe/Lisbon # not a comment",
            "OPSAGENDA_PAGE_SIZE": "15",
        }

    def test_missing_file(self, tmp_path: Path):
        assert parse_env_file(tmp_path / "missing.env") == {}


class TestConfigManager:
    """Tests for ConfigManager.load_settings."""

    def test_env_variables_override_defaults(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("OPSAGENDA_PAGE_SIZE", "35")
        monkeypatch.setenv("OPSAGENDA_WEEK_START", "sunday")

        settings = ConfigManager(tmp_path / ".env").load_settings()

        assert settings.default_page_size == 35
        assert settings.week_start == 6

    def test_env_file_does_not_override_environment(self, tmp_path: Path, monkeypatch):
        env_file = tmp_path / ".env"
        env_file.write_text("OPSAGENDA_PAGE_SIZE=50\nOPSAGENDA_BUFFER_DAYS=10\n")
        monkeypatch.setenv("OPSAGENDA_PAGE_SIZE", "25")
        # register for cleanup; load_env_file writes into os.environ
        monkeypatch.setenv("OPSAGENDA_BUFFER_DAYS", "")
        monkeypatch.delenv("OPSAGENDA_BUFFER_DAYS")

        manager = ConfigManager(env_file)
        loaded = manager.load_env_file()
        settings = manager.load_settings()

        assert loaded == ["OPSAGENDA_BUFFER_DAYS"]
        assert settings.default_page_size == 25
        assert settings.buffer_days == 10

    def test_unconvertible_value_is_ignored(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("OPSAGENDA_EXPANSION_DAYS", "lots")

        settings = ConfigManager(tmp_path / ".env").load_settings()

        assert settings.expansion_days == 90

    def test_invalid_value_is_dropped_and_rest_kept(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("OPSAGENDA_PAGE_SIZE", "-5")
        monkeypatch.setenv("OPSAGENDA_TIMEZONE", "Nowhere/Special")
        monkeypatch.setenv("OPSAGENDA_BUFFER_DAYS", "12")

        settings = ConfigManager(tmp_path / ".env").load_settings()

        assert settings.default_page_size == 20
        assert settings.timezone is None
        assert settings.buffer_days == 12

    def test_env_file_only_exports_agenda_keys(self, tmp_path: Path, monkeypatch):
        env_file = tmp_path / ".env"
        env_file.write_text("OPSAGENDA_COMPACT_WINDOW_MONTHS=6\nDATABASE_URL=postgres://x\n")
        # register both keys for cleanup; load_env_file writes into os.environ
        for key in ("OPSAGENDA_COMPACT_WINDOW_MONTHS", "DATABASE_URL"):
            monkeypatch.setenv(key, "")
            monkeypatch.delenv(key)

        manager = ConfigManager(env_file)
        loaded = manager.load_env_file()

        assert loaded == ["OPSAGENDA_COMPACT_WINDOW_MONTHS"]
        assert "DATABASE_URL" not in os.environ
        assert manager.load_settings().compact_window_months == 6
