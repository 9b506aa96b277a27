from __future__ import annotations

import logging
from datetime import date, datetime, time, tzinfo
from typing import Callable, Iterable

from pydantic import BaseModel, ConfigDict

from .adapters.calendar.base import CalendarExportError, ExternalCalendarService
from .domain.models import (
    AnnotatedDay,
    BirthdayOccurrence,
    CalendarEvent,
    ContactBirthday,
    EventQuery,
)
from .engine.aggregator import EventAggregator
from .engine.birthdays import project_birthdays
from .engine.grid import SUNDAY, build_month_grid, build_week
from .reminders.scheduler import ReminderScheduler
from .storage.base import ContactStore, EventStore, StoreReadError

LOGGER = logging.getLogger(__name__)


class UpcomingDigest(BaseModel):
    model_config = ConfigDict(frozen=True)

    reference: datetime
    today: list[CalendarEvent]
    this_week: list[CalendarEvent]
    upcoming: list[CalendarEvent]
    birthdays_today: list[BirthdayOccurrence]
    upcoming_birthdays: list[BirthdayOccurrence]


class DayView(BaseModel):
    model_config = ConfigDict(frozen=True)

    date: date
    events: list[CalendarEvent]
    birthdays: list[BirthdayOccurrence]


class CalendarService:
    """Event commands and calendar queries over the stores and reminder scheduler.

    Queries build a fresh aggregator from the stores on every call, so results
    reflect the latest committed writes. Reminder side effects only run after
    the store accepted the write.
    """

    def __init__(
        self,
        *,
        event_store: EventStore,
        contact_store: ContactStore,
        reminders: ReminderScheduler,
        timezone_value: tzinfo,
        external_calendar: ExternalCalendarService | None = None,
        week_start: int = SUNDAY,
        today_window_days: int = 1,
        week_window_days: int = 7,
        upcoming_window_days: int = 30,
        birthday_window_days: int = 30,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._events = event_store
        self._contacts = contact_store
        self._reminders = reminders
        self._timezone = timezone_value
        self._external_calendar = external_calendar
        self._week_start = week_start
        self._today_window_days = today_window_days
        self._week_window_days = week_window_days
        self._upcoming_window_days = upcoming_window_days
        self._birthday_window_days = birthday_window_days
        self._clock = clock or (lambda: datetime.now(self._timezone))

    @property
    def reminders(self) -> ReminderScheduler:
        return self._reminders

    def now(self) -> datetime:
        return self._clock()

    def _start_of_day(self, reference: datetime) -> datetime:
        local_reference = self._localize(reference)
        return datetime.combine(local_reference.date(), time.min, tzinfo=local_reference.tzinfo)

    def _localize(self, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=self._timezone)
        return value.astimezone(self._timezone)

    def _normalize_event(self, event: CalendarEvent) -> CalendarEvent:
        update = {"start_at": self._localize(event.start_at)}
        if event.end_at is not None:
            update["end_at"] = self._localize(event.end_at)
        return event.model_copy(update=update)

    def _read_events(self, query: EventQuery | None = None) -> list[CalendarEvent]:
        try:
            return self._events.list_events(query)
        except StoreReadError as exc:
            LOGGER.warning("Event source unavailable, showing no events: %s", exc)
        except Exception:  # pragma: no cover
            LOGGER.exception("Event source failed unexpectedly, showing no events")
        return []

    def _read_birthdays(self) -> list[ContactBirthday]:
        try:
            return self._contacts.list_contacts_with_birthday()
        except StoreReadError as exc:
            LOGGER.warning("Contact source unavailable, showing no birthdays: %s", exc)
        except Exception:  # pragma: no cover
            LOGGER.exception("Contact source failed unexpectedly, showing no birthdays")
        return []

    def load_aggregator(
        self,
        reference: datetime | None = None,
        *,
        query: EventQuery | None = None,
    ) -> EventAggregator:
        reference = self._localize(reference or self.now())
        events = [self._normalize_event(event) for event in self._read_events(query)]
        birthdays = project_birthdays(self._read_birthdays(), reference)
        return EventAggregator(events, birthdays, timezone_value=self._timezone)

    def month_view(
        self,
        month_anchor: date,
        *,
        reference: datetime | None = None,
        selected: date | None = None,
    ) -> list[AnnotatedDay]:
        reference = self._localize(reference or self.now())
        cells = build_month_grid(
            month_anchor,
            self._week_start,
            today=reference.date(),
            selected=selected,
        )
        return self.load_aggregator(reference).annotate(cells)

    def week_view(
        self,
        anchor: date,
        *,
        reference: datetime | None = None,
        selected: date | None = None,
    ) -> list[AnnotatedDay]:
        reference = self._localize(reference or self.now())
        cells = build_week(
            anchor,
            self._week_start,
            today=reference.date(),
            selected=selected,
        )
        return self.load_aggregator(reference).annotate(cells)

    def day_view(
        self,
        day: date,
        *,
        reference: datetime | None = None,
        search_text: str | None = None,
    ) -> DayView:
        aggregator = self.load_aggregator(reference)
        return DayView(
            date=day,
            events=aggregator.filter(day=day, search_text=search_text),
            birthdays=aggregator.birthdays_for_day(day),
        )

    def search_events(self, search_text: str, *, reference: datetime | None = None) -> list[CalendarEvent]:
        return self.load_aggregator(reference).filter(search_text=search_text)

    def upcoming_digest(self, reference: datetime | None = None) -> UpcomingDigest:
        reference = self._localize(reference or self.now())
        start_of_today = self._start_of_day(reference)
        aggregator = self.load_aggregator(reference)
        return UpcomingDigest(
            reference=reference,
            today=aggregator.upcoming(self._today_window_days, start_of_today),
            this_week=aggregator.upcoming(self._week_window_days, start_of_today),
            upcoming=aggregator.upcoming(self._upcoming_window_days, start_of_today),
            birthdays_today=aggregator.birthdays_for_day(start_of_today.date()),
            upcoming_birthdays=aggregator.upcoming_birthdays(self._birthday_window_days, start_of_today),
        )

    def get_event(self, event_id: str) -> CalendarEvent | None:
        return self._events.get_event(event_id)

    def create_event(self, event: CalendarEvent) -> CalendarEvent:
        stored = self._events.create_event(self._normalize_event(event))
        self._reminders.schedule(stored, now=self.now())
        LOGGER.info("Created event '%s'", stored.id)
        return stored

    def update_event(self, event: CalendarEvent) -> CalendarEvent:
        stored = self._events.update_event(self._normalize_event(event))
        self._reminders.reschedule(stored, now=self.now())
        LOGGER.info("Updated event '%s'", stored.id)
        return stored

    def _delete_one(self, event_id: str) -> None:
        # The row goes first; a failed delete leaves the event and its reminder intact.
        self._events.delete_event(event_id)
        self._reminders.cancel(event_id)

    def delete_event(self, event_id: str) -> None:
        self._delete_one(event_id)
        LOGGER.info("Deleted event '%s'", event_id)

    def delete_events(self, event_ids: Iterable[str]) -> int:
        ids = list(dict.fromkeys(event_ids))
        for event_id in ids:
            self._delete_one(event_id)
        LOGGER.info("Deleted %d events", len(ids))
        return len(ids)

    def delete_events_for_contact(self, contact_id: str) -> int:
        # Read errors propagate here: a bulk delete must know every affected reminder.
        events = self._events.list_events(EventQuery(contact_id=contact_id))
        return self.delete_events(event.id for event in events)

    def export_event(self, event: CalendarEvent) -> bool:
        if self._external_calendar is None:
            LOGGER.warning("No external calendar configured; event '%s' was not exported", event.id)
            return False
        try:
            self._external_calendar.add_event(event)
        except CalendarExportError as exc:
            LOGGER.warning("Export of event '%s' failed: %s", event.id, exc)
            return False
        return True
