from __future__ import annotations

import calendar
import uuid
from datetime import date, datetime, time, timedelta

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

DEFAULT_EVENT_DURATION = timedelta(hours=1)
REMINDER_ID_PREFIX = "event_"


def _new_id() -> str:
    return uuid.uuid4().hex


def reminder_id_for(event_id: str) -> str:
    return f"{REMINDER_ID_PREFIX}{event_id}"


class CalendarEvent(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str = Field(default_factory=_new_id)
    title: str
    details: str | None = None
    start_at: datetime
    end_at: datetime | None = None
    is_all_day: bool = False
    location: str | None = None
    reminder_offset_minutes: int | None = Field(default=None, ge=0)
    participant_ids: frozenset[str] = Field(default_factory=frozenset)
    group_id: str | None = None

    @field_validator("id", "title")
    @classmethod
    def validate_non_empty_text(cls, value: str) -> str:
        text = value.strip()
        if not text:
            raise ValueError("calendar event id and title must not be empty")
        return text

    @field_validator("details", "location", "group_id")
    @classmethod
    def validate_optional_text(cls, value: str | None) -> str | None:
        if value is None:
            return None
        text = value.strip()
        return text or None

    @model_validator(mode="after")
    def resolve_end_at(self) -> CalendarEvent:
        if self.end_at is None:
            if self.is_all_day:
                next_day = self.start_at.date() + timedelta(days=1)
                self.end_at = datetime.combine(next_day, time.min, tzinfo=self.start_at.tzinfo)
            else:
                self.end_at = self.start_at + DEFAULT_EVENT_DURATION
        if not self.is_all_day and self.end_at < self.start_at:
            raise ValueError("calendar event end_at must be >= start_at")
        return self

    @property
    def reminder_at(self) -> datetime | None:
        if self.reminder_offset_minutes is None:
            return None
        return self.start_at - timedelta(minutes=self.reminder_offset_minutes)

    @property
    def duration_minutes(self) -> int:
        end_at = self.end_at or self.start_at + DEFAULT_EVENT_DURATION
        return int((end_at - self.start_at).total_seconds() // 60)


class EventQuery(BaseModel):
    model_config = ConfigDict(extra="ignore")

    contact_id: str | None = None
    group_id: str | None = None
    start: datetime | None = None
    end: datetime | None = None


class MonthDay(BaseModel):
    """Year-independent anniversary, optionally remembering the birth year."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    month: int = Field(ge=1, le=12)
    day: int = Field(ge=1, le=31)
    year: int | None = Field(default=None, ge=1, le=9999)

    @model_validator(mode="after")
    def validate_calendar_day(self) -> MonthDay:
        # Feb 29 is valid without a year; a concrete year must be a leap year.
        reference_year = self.year if self.year is not None else 2000
        if self.day > calendar.monthrange(reference_year, self.month)[1]:
            raise ValueError(f"invalid day {self.day} for month {self.month}")
        return self


class ContactBirthday(BaseModel):
    model_config = ConfigDict(extra="ignore")

    contact_id: str
    display_name: str
    birthday: MonthDay


class BirthdayOccurrence(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    contact_id: str
    display_name: str
    month_day: MonthDay
    projected_date: date
    age_at_occurrence: int | None = Field(default=None, ge=0)

    def days_until(self, reference: date) -> int:
        return (self.projected_date - reference).days


class DayCell(BaseModel):
    model_config = ConfigDict(frozen=True)

    date: date
    is_current_month_day: bool
    is_today: bool = False
    is_selected: bool = False


class DayBucket(BaseModel):
    model_config = ConfigDict(frozen=True)

    date: date
    events: tuple[CalendarEvent, ...] = ()
    birthdays: tuple[BirthdayOccurrence, ...] = ()

    @property
    def has_events(self) -> bool:
        return bool(self.events)

    @property
    def has_birthdays(self) -> bool:
        return bool(self.birthdays)

    @property
    def is_empty(self) -> bool:
        return not self.events and not self.birthdays


class AnnotatedDay(BaseModel):
    model_config = ConfigDict(frozen=True)

    cell: DayCell
    bucket: DayBucket


class ReminderRequest(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    id: str
    event_id: str
    trigger_at: datetime
    title: str
    body: str
