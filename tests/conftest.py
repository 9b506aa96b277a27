from __future__ import annotations

from datetime import datetime
from pathlib import Path

import pytest

from rolodex.adapters.notifications.base import NotificationError
from rolodex.domain.models import ReminderRequest
from rolodex.reminders.scheduler import ReminderScheduler
from rolodex.storage import SqliteContactStore, SqliteEventStore, initialize_database


class FakeNotificationService:
    """In-memory notifier that, unlike a real one, keeps duplicate ids.

    Keeping duplicates lets tests prove the scheduler removes the previous
    request before submitting a replacement.
    """

    def __init__(self, *, authorized: bool = True, fail_submit: bool = False) -> None:
        self.authorized = authorized
        self.fail_submit = fail_submit
        self.authorization_requests = 0
        self.pending: list[ReminderRequest] = []
        self.cancelled: list[str] = []

    def request_authorization(self) -> bool:
        self.authorization_requests += 1
        return self.authorized

    def submit(self, request: ReminderRequest) -> None:
        if self.fail_submit:
            raise NotificationError("notifier offline")
        self.pending.append(request)

    def cancel(self, request_id: str) -> None:
        self.cancelled.append(request_id)
        self.pending = [request for request in self.pending if request.id != request_id]

    def list_pending(self) -> list[ReminderRequest]:
        return list(self.pending)

    def pending_for(self, event_id: str) -> list[ReminderRequest]:
        return [request for request in self.pending if request.event_id == event_id]


@pytest.fixture
def notifications() -> FakeNotificationService:
    return FakeNotificationService()


@pytest.fixture
def reminders(notifications: FakeNotificationService) -> ReminderScheduler:
    return ReminderScheduler(notifications, clock=lambda: datetime(2024, 6, 1, 9, 0))


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    path = tmp_path / "rolodex.db"
    initialize_database(path)
    return path


@pytest.fixture
def event_store(db_path: Path) -> SqliteEventStore:
    return SqliteEventStore(db_path=db_path)


@pytest.fixture
def contact_store(db_path: Path) -> SqliteContactStore:
    return SqliteContactStore(db_path=db_path)
