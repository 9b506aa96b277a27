from __future__ import annotations

from typing import Protocol

from ...domain.models import ReminderRequest


class NotificationError(RuntimeError):
    """Raised when a reminder cannot be submitted to or removed from the notifier."""


class NotificationService(Protocol):
    def request_authorization(self) -> bool:
        """Return True when reminders may be delivered."""

    def submit(self, request: ReminderRequest) -> None:
        """Register a reminder; an existing request with the same id is replaced."""

    def cancel(self, request_id: str) -> None:
        """Remove a pending reminder; unknown ids are ignored."""

    def list_pending(self) -> list[ReminderRequest]:
        """Return reminders that have not fired yet."""
