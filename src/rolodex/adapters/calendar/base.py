from __future__ import annotations

from typing import Protocol

from ...domain.models import CalendarEvent


class CalendarExportError(RuntimeError):
    """Raised when an event cannot be pushed to an external calendar."""


class ExternalCalendarService(Protocol):
    def add_event(self, event: CalendarEvent) -> None:
        """Push one event to the external calendar; nothing is read back."""
