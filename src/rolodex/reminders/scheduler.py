from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from ..adapters.notifications.base import NotificationError, NotificationService
from ..domain.models import CalendarEvent, ReminderRequest, reminder_id_for

LOGGER = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _system_clock() -> datetime:
    return datetime.now().astimezone()


def _as_aware(value: datetime) -> datetime:
    # Naive values are wall-clock times in the host's local zone.
    if value.tzinfo is None:
        return value.astimezone()
    return value


def _reminder_body(event: CalendarEvent) -> str:
    if event.details:
        return event.details
    return f"Reminder: {event.title}"


class ReminderScheduler:
    """Keeps at most one pending notification per event.

    Per event id a reminder is either absent or scheduled. Scheduling an event
    that already has a reminder replaces it under the same deterministic id;
    past-due reminders are never submitted.
    """

    def __init__(self, notifications: NotificationService, *, clock: Clock | None = None) -> None:
        self._notifications = notifications
        self._clock = clock or _system_clock
        self._authorized: bool | None = None

    def request_authorization(self) -> bool:
        if self._authorized is None:
            try:
                self._authorized = bool(self._notifications.request_authorization())
            except NotificationError as exc:
                LOGGER.warning("Notification authorization failed: %s", exc)
                self._authorized = False
            if not self._authorized:
                LOGGER.warning("Notification authorization denied; reminders will not be scheduled")
        return self._authorized

    def build_request(self, event: CalendarEvent) -> ReminderRequest | None:
        trigger_at = event.reminder_at
        if trigger_at is None:
            return None
        return ReminderRequest(
            id=reminder_id_for(event.id),
            event_id=event.id,
            trigger_at=trigger_at,
            title=event.title,
            body=_reminder_body(event),
        )

    def schedule(self, event: CalendarEvent, *, now: datetime | None = None) -> ReminderRequest | None:
        request = self.build_request(event)
        if request is None:
            return None

        reference = now or self._clock()
        if _as_aware(request.trigger_at) <= _as_aware(reference):
            LOGGER.debug("Skipping past-due reminder for event '%s'", event.id)
            return None
        if not self.request_authorization():
            return None

        # No transactional replace: the old request is removed before the new one is added.
        self.cancel(event.id)
        try:
            self._notifications.submit(request)
        except NotificationError as exc:
            LOGGER.warning("Reminder for event '%s' was not scheduled: %s", event.id, exc)
            return None
        LOGGER.info("Scheduled reminder '%s' at %s", request.id, request.trigger_at.isoformat())
        return request

    def cancel(self, event_id: str) -> None:
        try:
            self._notifications.cancel(reminder_id_for(event_id))
        except NotificationError as exc:
            LOGGER.warning("Reminder for event '%s' could not be cancelled: %s", event_id, exc)

    def list_pending(self) -> list[ReminderRequest]:
        try:
            return self._notifications.list_pending()
        except NotificationError as exc:
            LOGGER.warning("Pending reminders could not be listed: %s", exc)
            return []

    def reschedule(self, event: CalendarEvent, *, now: datetime | None = None) -> ReminderRequest | None:
        request = self.schedule(event, now=now)
        if request is None:
            self.cancel(event.id)
        return request
