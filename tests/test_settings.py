"""Tests for environment and YAML configuration loading."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from rolodex.engine.grid import MONDAY, SUNDAY
from rolodex.settings import (
    PROJECT_ROOT,
    CalendarSettings,
    EnvSettings,
    RolodexYamlSettings,
    _load_yaml_settings,
    build_settings,
)


def test_defaults_match_documented_windows():
    settings = RolodexYamlSettings()

    assert settings.calendar.week_start_index == SUNDAY
    assert settings.calendar.today_window_days == 1
    assert settings.calendar.week_window_days == 7
    assert settings.calendar.upcoming_window_days == 30
    assert settings.reminders.enabled is True
    assert settings.export.ics_path is None


def test_week_start_is_case_insensitive():
    assert CalendarSettings(week_start=" Monday ").week_start_index == MONDAY


def test_windows_must_nest():
    with pytest.raises(ValidationError):
        CalendarSettings(today_window_days=3, week_window_days=2)


def test_unknown_week_start_is_rejected():
    with pytest.raises(ValidationError):
        CalendarSettings(week_start="someday")


def test_load_yaml_settings(tmp_path: Path):
    config_path = tmp_path / "rolodex.yaml"
    config_path.write_text(
        "calendar:\n"
        "  week_start: monday\n"
        "  upcoming_window_days: 45\n"
        "reminders:\n"
        "  enabled: false\n"
        "export:\n"
        "  ics_path: exports/rolodex.ics\n"
        "unknown_section: ignored\n",
        encoding="utf-8",
    )

    settings = _load_yaml_settings(config_path)

    assert settings.calendar.week_start == "monday"
    assert settings.calendar.upcoming_window_days == 45
    assert settings.reminders.enabled is False
    assert settings.export.ics_path == Path("exports/rolodex.ics")


def test_empty_yaml_uses_defaults(tmp_path: Path):
    config_path = tmp_path / "rolodex.yaml"
    config_path.write_text("", encoding="utf-8")

    assert _load_yaml_settings(config_path) == RolodexYamlSettings()


def test_yaml_must_be_a_mapping(tmp_path: Path):
    config_path = tmp_path / "rolodex.yaml"
    config_path.write_text("- a\n- b\n", encoding="utf-8")

    with pytest.raises(ValueError, match="mapping"):
        _load_yaml_settings(config_path)


def test_missing_yaml_raises(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        _load_yaml_settings(tmp_path / "missing.yaml")


def test_env_settings_read_environment(monkeypatch):
    monkeypatch.setenv("ROLODEX_ENV", "prod")
    monkeypatch.setenv("ROLODEX_TIMEZONE", "Europe/Berlin")

    env = EnvSettings(_env_file=None)

    assert env.rolodex_env == "prod"
    assert env.rolodex_timezone == "Europe/Berlin"


def test_env_settings_reject_unknown_timezone():
    with pytest.raises(ValidationError):
        EnvSettings(_env_file=None, rolodex_timezone="Mars/Olympus")


def test_build_settings_resolves_relative_paths(tmp_path: Path):
    env = EnvSettings(
        _env_file=None,
        rolodex_timezone="UTC",
        rolodex_db_path=tmp_path / "rolodex.db",
        rolodex_config_path=Path("config/rolodex.yaml"),
    )
    yaml_settings = RolodexYamlSettings.model_validate({"export": {"ics_path": "data/out.ics"}})

    settings = build_settings(env, yaml_settings)

    assert settings.db_path == tmp_path / "rolodex.db"
    assert settings.config_path == PROJECT_ROOT / "config" / "rolodex.yaml"
    assert settings.ics_export_path == PROJECT_ROOT / "data" / "out.ics"
    assert settings.timezone.key == "UTC"


def test_bundled_config_is_valid():
    settings = _load_yaml_settings(PROJECT_ROOT / "config" / "rolodex.yaml")
    assert settings.calendar.week_start == "sunday"
