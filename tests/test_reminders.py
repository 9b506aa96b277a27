"""Tests for the one-reminder-per-event lifecycle."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from rolodex.domain.models import CalendarEvent
from rolodex.reminders.scheduler import ReminderScheduler

NOW = datetime(2024, 6, 1, 9, 0)


def _event(**kwargs) -> CalendarEvent:
    values = {
        "id": "evt1",
        "title": "Coffee with Aiko",
        "start_at": datetime(2024, 6, 1, 10, 0),
        "reminder_offset_minutes": 30,
    }
    values.update(kwargs)
    return CalendarEvent(**values)


def test_schedule_registers_reminder_at_offset(reminders: ReminderScheduler, notifications):
    request = reminders.schedule(_event(), now=NOW)

    assert request is not None
    assert request.id == "event_evt1"
    assert request.trigger_at == datetime(2024, 6, 1, 9, 30)
    assert notifications.list_pending() == [request]


def test_edit_moves_the_single_reminder(reminders: ReminderScheduler, notifications):
    reminders.schedule(_event(), now=NOW)

    reminders.reschedule(_event(start_at=datetime(2024, 6, 1, 11, 0)), now=NOW)

    pending = notifications.pending_for("evt1")
    assert len(pending) == 1
    assert pending[0].trigger_at == datetime(2024, 6, 1, 10, 30)


def test_schedule_twice_keeps_one_request(reminders: ReminderScheduler, notifications):
    reminders.schedule(_event(), now=NOW)
    reminders.schedule(_event(), now=NOW)

    assert len(notifications.pending_for("evt1")) == 1


def test_past_due_reminder_is_not_scheduled(reminders: ReminderScheduler, notifications):
    event = _event(start_at=datetime(2024, 6, 1, 9, 20))

    assert reminders.schedule(event, now=NOW) is None
    assert notifications.pending_for("evt1") == []


def test_trigger_exactly_now_is_not_scheduled(reminders: ReminderScheduler, notifications):
    event = _event(start_at=datetime(2024, 6, 1, 9, 30))

    assert reminders.schedule(event, now=NOW) is None
    assert notifications.list_pending() == []


def test_event_without_offset_is_not_scheduled(reminders: ReminderScheduler, notifications):
    assert reminders.schedule(_event(reminder_offset_minutes=None), now=NOW) is None
    assert notifications.list_pending() == []
    assert notifications.authorization_requests == 0


def test_clock_is_used_when_now_is_omitted(reminders: ReminderScheduler, notifications):
    assert reminders.schedule(_event(start_at=datetime(2024, 6, 1, 9, 10))) is None
    assert reminders.schedule(_event()) is not None


def test_edit_removing_reminder_cancels_it(reminders: ReminderScheduler, notifications):
    reminders.schedule(_event(), now=NOW)

    assert reminders.reschedule(_event(reminder_offset_minutes=None), now=NOW) is None
    assert notifications.pending_for("evt1") == []


def test_edit_into_the_past_cancels_reminder(reminders: ReminderScheduler, notifications):
    reminders.schedule(_event(), now=NOW)

    reminders.reschedule(_event(start_at=datetime(2024, 6, 1, 8, 0)), now=NOW)

    assert notifications.pending_for("evt1") == []


def test_cancel_is_idempotent(reminders: ReminderScheduler, notifications):
    reminders.schedule(_event(), now=NOW)

    reminders.cancel("evt1")
    reminders.cancel("evt1")
    reminders.cancel("never-scheduled")

    assert notifications.list_pending() == []


def test_denied_authorization_makes_schedule_a_noop(notifications, caplog):
    notifications.authorized = False
    scheduler = ReminderScheduler(notifications, clock=lambda: NOW)

    with caplog.at_level(logging.WARNING, logger="rolodex.reminders.scheduler"):
        assert scheduler.schedule(_event()) is None
        assert scheduler.schedule(_event(id="evt2")) is None

    assert notifications.list_pending() == []
    assert notifications.authorization_requests == 1
    assert "authorization denied" in caplog.text


def test_submit_failure_is_absorbed(notifications, caplog):
    notifications.fail_submit = True
    scheduler = ReminderScheduler(notifications, clock=lambda: NOW)

    with caplog.at_level(logging.WARNING, logger="rolodex.reminders.scheduler"):
        assert scheduler.schedule(_event()) is None

    assert "was not scheduled" in caplog.text


def test_reminder_body_uses_details_when_present(reminders: ReminderScheduler):
    with_details = reminders.build_request(_event(details="Bring the book"))
    without_details = reminders.build_request(_event())

    assert with_details is not None and with_details.body == "Bring the book"
    assert without_details is not None and without_details.body == "Reminder: Coffee with Aiko"


# ---------------------------------------------------------------------------
# System clock and mixed naive/aware times
# ---------------------------------------------------------------------------


def test_default_clock_accepts_naive_event_times(notifications):
    scheduler = ReminderScheduler(notifications)
    start_at = datetime.now().replace(microsecond=0) + timedelta(days=1)

    request = scheduler.schedule(_event(start_at=start_at))

    assert request is not None
    assert request.trigger_at == start_at - timedelta(minutes=30)


def test_default_clock_skips_naive_past_due_reminder(notifications):
    scheduler = ReminderScheduler(notifications)
    start_at = datetime.now() + timedelta(minutes=10)

    assert scheduler.schedule(_event(start_at=start_at)) is None
    assert notifications.list_pending() == []


def test_default_clock_accepts_aware_event_times(notifications):
    scheduler = ReminderScheduler(notifications)
    start_at = datetime.now(timezone.utc) + timedelta(days=1)

    assert scheduler.schedule(_event(start_at=start_at)) is not None


def test_aware_now_with_naive_event(reminders: ReminderScheduler):
    local_now = datetime.now().astimezone()
    start_at = local_now.replace(tzinfo=None) + timedelta(hours=2)

    assert reminders.schedule(_event(start_at=start_at), now=local_now) is not None
