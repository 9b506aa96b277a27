from __future__ import annotations

from typing import Protocol

from ..domain.models import CalendarEvent, ContactBirthday, EventQuery


class StoreError(RuntimeError):
    """Raised when the local store cannot complete a request."""


class StoreReadError(StoreError):
    """Raised when events or contacts cannot be read from the store."""


class StoreWriteError(StoreError):
    """Raised when an event cannot be created, updated or deleted."""


class EventStore(Protocol):
    def list_events(self, query: EventQuery | None = None) -> list[CalendarEvent]:
        """Return stored events matching ``query``, ascending by start."""

    def get_event(self, event_id: str) -> CalendarEvent | None:
        """Return one event or None when it does not exist."""

    def create_event(self, event: CalendarEvent) -> CalendarEvent:
        """Persist a new event."""

    def update_event(self, event: CalendarEvent) -> CalendarEvent:
        """Replace an existing event, including its participants."""

    def delete_event(self, event_id: str) -> None:
        """Remove an event; deleting a missing event is not an error."""


class ContactStore(Protocol):
    def list_contacts_with_birthday(self) -> list[ContactBirthday]:
        """Return every contact with a usable birth date."""
