from __future__ import annotations

import logging

from apscheduler.schedulers.background import BackgroundScheduler

from .adapters.calendar import CalendarExportError, IcsCalendarExporter
from .adapters.notifications import SchedulerNotificationService
from .reminders.scheduler import ReminderScheduler
from .service import CalendarService
from .settings import AppSettings
from .storage import SqliteContactStore, SqliteEventStore

LOGGER = logging.getLogger(__name__)

BIRTHDAY_DIGEST_HOUR = 8


def run_birthday_digest_job(service: CalendarService) -> None:
    digest = service.upcoming_digest()
    for occurrence in digest.birthdays_today:
        if occurrence.age_at_occurrence is None:
            LOGGER.info("Birthday today: %s", occurrence.display_name)
        else:
            LOGGER.info(
                "Birthday today: %s turns %d",
                occurrence.display_name,
                occurrence.age_at_occurrence,
            )
    LOGGER.info(
        "Birthday digest: %d today, %d upcoming",
        len(digest.birthdays_today),
        len(digest.upcoming_birthdays),
    )


def build_scheduler(settings: AppSettings) -> BackgroundScheduler:
    return BackgroundScheduler(timezone=settings.timezone)


def _build_external_calendar(settings: AppSettings) -> IcsCalendarExporter | None:
    if settings.ics_export_path is None:
        return None
    try:
        return IcsCalendarExporter(
            path=settings.ics_export_path,
            timezone_name=settings.env.rolodex_timezone,
            calendar_name=settings.yaml.export.calendar_name,
        )
    except CalendarExportError:
        LOGGER.exception("Calendar export configuration failed")
        return None


def build_calendar_service(settings: AppSettings, scheduler: BackgroundScheduler) -> CalendarService:
    notifications = SchedulerNotificationService(
        scheduler=scheduler,
        enabled=settings.yaml.reminders.enabled,
        misfire_grace_seconds=settings.yaml.reminders.misfire_grace_seconds,
    )
    calendar_settings = settings.yaml.calendar
    return CalendarService(
        event_store=SqliteEventStore(db_path=settings.db_path),
        contact_store=SqliteContactStore(db_path=settings.db_path),
        reminders=ReminderScheduler(notifications),
        timezone_value=settings.timezone,
        external_calendar=_build_external_calendar(settings),
        week_start=calendar_settings.week_start_index,
        today_window_days=calendar_settings.today_window_days,
        week_window_days=calendar_settings.week_window_days,
        upcoming_window_days=calendar_settings.upcoming_window_days,
        birthday_window_days=calendar_settings.birthday_window_days,
    )


def add_housekeeping_jobs(scheduler: BackgroundScheduler, service: CalendarService) -> None:
    scheduler.add_job(
        run_birthday_digest_job,
        "cron",
        kwargs={"service": service},
        hour=BIRTHDAY_DIGEST_HOUR,
        minute=0,
        id="birthday_digest_job",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
        misfire_grace_time=3600,
    )


def restore_pending_reminders(service: CalendarService) -> int:
    """Re-submit reminders for future events after a restart.

    The scheduler keeps jobs in memory only, so pending reminders are rebuilt
    from the event store at startup.
    """
    restored = 0
    now = service.now()
    for event in service.load_aggregator(now).events:
        if service.reminders.schedule(event, now=now) is not None:
            restored += 1
    LOGGER.info("Restored %d pending reminders", restored)
    return restored
