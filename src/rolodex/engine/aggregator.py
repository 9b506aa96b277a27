from __future__ import annotations

from datetime import date, datetime, timedelta, tzinfo
from typing import Iterable, Sequence

from ..domain.models import AnnotatedDay, BirthdayOccurrence, CalendarEvent, DayBucket, DayCell


def local_date(value: datetime, timezone_value: tzinfo | None = None) -> date:
    if timezone_value is not None and value.tzinfo is not None:
        return value.astimezone(timezone_value).date()
    return value.date()


def _sorted_events(events: Iterable[CalendarEvent]) -> list[CalendarEvent]:
    # list.sort is stable, so events sharing a start instant keep input order
    return sorted(events, key=lambda event: event.start_at)


def group_by_day(
    events: Iterable[CalendarEvent],
    timezone_value: tzinfo | None = None,
) -> dict[date, list[CalendarEvent]]:
    grouped: dict[date, list[CalendarEvent]] = {}
    for event in _sorted_events(events):
        grouped.setdefault(local_date(event.start_at, timezone_value), []).append(event)
    return dict(sorted(grouped.items()))


def matches_search(event: CalendarEvent, search_text: str) -> bool:
    needle = search_text.strip().casefold()
    if not needle:
        return True
    haystack = f"{event.title} {event.details or ''}".casefold()
    return needle in haystack


class EventAggregator:
    """Day-level view over one snapshot of events and birthday projections.

    The aggregator never queries a store; callers build a new one after any
    write so results always reflect a single consistent snapshot.
    """

    def __init__(
        self,
        events: Iterable[CalendarEvent] = (),
        birthdays: Iterable[BirthdayOccurrence] = (),
        *,
        timezone_value: tzinfo | None = None,
    ) -> None:
        self._timezone = timezone_value
        self._events = tuple(_sorted_events(events))
        self._birthdays = tuple(sorted(birthdays, key=lambda occurrence: occurrence.projected_date))

    @property
    def events(self) -> tuple[CalendarEvent, ...]:
        return self._events

    @property
    def birthdays(self) -> tuple[BirthdayOccurrence, ...]:
        return self._birthdays

    def _event_date(self, event: CalendarEvent) -> date:
        return local_date(event.start_at, self._timezone)

    def events_for_day(self, day: date) -> list[CalendarEvent]:
        return [event for event in self._events if self._event_date(event) == day]

    def birthdays_for_day(self, day: date) -> list[BirthdayOccurrence]:
        return [occurrence for occurrence in self._birthdays if occurrence.projected_date == day]

    def upcoming(self, window_days: int, from_: datetime) -> list[CalendarEvent]:
        if window_days < 0:
            raise ValueError("window_days must be >= 0")
        window_end = from_ + timedelta(days=window_days)
        return [event for event in self._events if from_ <= event.start_at < window_end]

    def upcoming_birthdays(self, window_days: int, from_: datetime | date) -> list[BirthdayOccurrence]:
        if window_days < 0:
            raise ValueError("window_days must be >= 0")
        start = from_.date() if isinstance(from_, datetime) else from_
        window_end = start + timedelta(days=window_days)
        return [
            occurrence
            for occurrence in self._birthdays
            if start <= occurrence.projected_date < window_end
        ]

    def grouped_by_day(
        self,
        events: Iterable[CalendarEvent] | None = None,
    ) -> dict[date, list[CalendarEvent]]:
        return group_by_day(self._events if events is None else events, self._timezone)

    def filter(
        self,
        events: Iterable[CalendarEvent] | None = None,
        *,
        day: date | None = None,
        search_text: str | None = None,
    ) -> list[CalendarEvent]:
        source = self._events if events is None else _sorted_events(events)
        filtered: list[CalendarEvent] = []
        for event in source:
            if day is not None and self._event_date(event) != day:
                continue
            if search_text and not matches_search(event, search_text):
                continue
            filtered.append(event)
        return filtered

    def bucket(self, day: date) -> DayBucket:
        return DayBucket(
            date=day,
            events=tuple(self.events_for_day(day)),
            birthdays=tuple(self.birthdays_for_day(day)),
        )

    def buckets(self, start: date, end: date) -> list[DayBucket]:
        """Inclusive range of day buckets, built from one grouping pass."""
        if end < start:
            return []
        events_by_day = self.grouped_by_day()
        birthdays_by_day: dict[date, list[BirthdayOccurrence]] = {}
        for occurrence in self._birthdays:
            birthdays_by_day.setdefault(occurrence.projected_date, []).append(occurrence)

        result: list[DayBucket] = []
        day = start
        while day <= end:
            result.append(
                DayBucket(
                    date=day,
                    events=tuple(events_by_day.get(day, ())),
                    birthdays=tuple(birthdays_by_day.get(day, ())),
                )
            )
            day += timedelta(days=1)
        return result

    def annotate(self, cells: Sequence[DayCell]) -> list[AnnotatedDay]:
        if not cells:
            return []
        buckets_by_day = {
            bucket.date: bucket for bucket in self.buckets(cells[0].date, cells[-1].date)
        }
        return [
            AnnotatedDay(cell=cell, bucket=buckets_by_day.get(cell.date) or self.bucket(cell.date))
            for cell in cells
        ]
