from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .engine.grid import WEEKDAY_NAMES

PROJECT_ROOT = Path(__file__).resolve().parents[2]

WeekdayName = Literal["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]


class CalendarSettings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    week_start: WeekdayName = "sunday"
    today_window_days: int = Field(default=1, ge=1, le=7)
    week_window_days: int = Field(default=7, ge=1, le=31)
    upcoming_window_days: int = Field(default=30, ge=1, le=366)
    birthday_window_days: int = Field(default=30, ge=1, le=366)

    @field_validator("week_start", mode="before")
    @classmethod
    def normalize_week_start(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @model_validator(mode="after")
    def validate_window_order(self) -> CalendarSettings:
        if not self.today_window_days <= self.week_window_days <= self.upcoming_window_days:
            raise ValueError(
                "calendar windows must satisfy today_window_days <= week_window_days <= upcoming_window_days"
            )
        return self

    @property
    def week_start_index(self) -> int:
        return WEEKDAY_NAMES[self.week_start]


class ReminderSettings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    enabled: bool = True
    misfire_grace_seconds: int = Field(default=300, ge=0, le=86400)


class ExportSettings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    ics_path: Path | None = None
    calendar_name: str = "Rolodex"

    @field_validator("ics_path")
    @classmethod
    def validate_ics_path(cls, value: Path | None) -> Path | None:
        if value is None:
            return None
        text = str(value).strip()
        if not text:
            raise ValueError("export.ics_path must not be empty")
        return Path(text)

    @field_validator("calendar_name")
    @classmethod
    def validate_calendar_name(cls, value: str) -> str:
        text = value.strip()
        if not text:
            raise ValueError("export.calendar_name must not be empty")
        return text


class RolodexYamlSettings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    calendar: CalendarSettings = Field(default_factory=CalendarSettings)
    reminders: ReminderSettings = Field(default_factory=ReminderSettings)
    export: ExportSettings = Field(default_factory=ExportSettings)


class EnvSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    rolodex_env: Literal["dev", "test", "prod"] = "dev"
    rolodex_timezone: str = "Asia/Tokyo"
    rolodex_config_path: Path = Path("config/rolodex.yaml")
    rolodex_db_path: Path = Path("data/rolodex.db")

    @field_validator("rolodex_timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except ZoneInfoNotFoundError as exc:
            raise ValueError(f"Unknown timezone: {value}") from exc
        return value


class AppSettings(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    env: EnvSettings
    yaml: RolodexYamlSettings
    project_root: Path
    config_path: Path
    db_path: Path
    ics_export_path: Path | None
    timezone: ZoneInfo


def _resolve_project_path(path: Path) -> Path:
    if path.is_absolute():
        return path
    return (PROJECT_ROOT / path).resolve()


def _load_yaml_settings(path: Path) -> RolodexYamlSettings:
    if not path.exists():
        raise FileNotFoundError(f"Rolodex config file not found: {path}")

    raw_config = yaml.safe_load(path.read_text(encoding="utf-8"))
    if raw_config is None:
        raw_config = {}
    if not isinstance(raw_config, dict):
        raise ValueError("Rolodex config must be a YAML mapping/object at the top level")
    return RolodexYamlSettings.model_validate(raw_config)


def build_settings(env: EnvSettings, yaml_settings: RolodexYamlSettings) -> AppSettings:
    ics_path = yaml_settings.export.ics_path
    return AppSettings(
        env=env,
        yaml=yaml_settings,
        project_root=PROJECT_ROOT,
        config_path=_resolve_project_path(env.rolodex_config_path),
        db_path=_resolve_project_path(env.rolodex_db_path),
        ics_export_path=_resolve_project_path(ics_path) if ics_path is not None else None,
        timezone=ZoneInfo(env.rolodex_timezone),
    )


@lru_cache(maxsize=1)
def load_settings() -> AppSettings:
    env = EnvSettings()
    yaml_settings = _load_yaml_settings(_resolve_project_path(env.rolodex_config_path))
    return build_settings(env, yaml_settings)
