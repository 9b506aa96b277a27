from __future__ import annotations

import logging
from typing import Any

from apscheduler.jobstores.base import ConflictingIdError, JobLookupError
from apscheduler.schedulers.base import BaseScheduler
from pydantic import ValidationError

from ...domain.models import REMINDER_ID_PREFIX, ReminderRequest
from .base import NotificationError

LOGGER = logging.getLogger(__name__)

DEFAULT_MISFIRE_GRACE_SECONDS = 300


def deliver_reminder(payload: dict[str, Any]) -> None:
    request = ReminderRequest.model_validate(payload)
    LOGGER.info(
        "Reminder '%s' due at %s: %s - %s",
        request.id,
        request.trigger_at.isoformat(),
        request.title,
        request.body,
    )


class SchedulerNotificationService:
    """Reminder delivery backed by one-shot APScheduler ``date`` jobs.

    Job ids are the reminder ids, so the scheduler's own id uniqueness keeps at
    most one pending job per event.
    """

    def __init__(
        self,
        *,
        scheduler: BaseScheduler,
        enabled: bool = True,
        misfire_grace_seconds: int = DEFAULT_MISFIRE_GRACE_SECONDS,
    ) -> None:
        self._scheduler = scheduler
        self._enabled = enabled
        self._misfire_grace_seconds = misfire_grace_seconds

    def request_authorization(self) -> bool:
        if not self._enabled:
            LOGGER.warning("Reminder notifications are disabled in configuration")
        return self._enabled

    def submit(self, request: ReminderRequest) -> None:
        try:
            self._scheduler.add_job(
                deliver_reminder,
                "date",
                run_date=request.trigger_at,
                kwargs={"payload": request.model_dump(mode="json")},
                id=request.id,
                name=request.title,
                replace_existing=True,
                misfire_grace_time=self._misfire_grace_seconds,
            )
        except (ConflictingIdError, ValueError, TypeError) as exc:
            raise NotificationError(f"Unable to schedule reminder {request.id}") from exc

    def cancel(self, request_id: str) -> None:
        try:
            self._scheduler.remove_job(request_id)
        except JobLookupError:
            return

    def list_pending(self) -> list[ReminderRequest]:
        pending: list[ReminderRequest] = []
        for job in self._scheduler.get_jobs():
            if not job.id.startswith(REMINDER_ID_PREFIX):
                continue
            payload = job.kwargs.get("payload")
            if not isinstance(payload, dict):
                continue
            try:
                pending.append(ReminderRequest.model_validate(payload))
            except ValidationError:
                LOGGER.warning("Ignoring malformed reminder job '%s'", job.id)
        pending.sort(key=lambda request: request.trigger_at)
        return pending
