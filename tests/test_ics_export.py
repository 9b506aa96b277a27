"""Tests for the local ICS calendar exporter."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from zoneinfo import ZoneInfo

import pytest

from rolodex.adapters.calendar import CalendarExportError, IcsCalendarExporter
from rolodex.domain.models import CalendarEvent

TOKYO = ZoneInfo("Asia/Tokyo")


def _exporter(tmp_path: Path) -> IcsCalendarExporter:
    return IcsCalendarExporter(path=tmp_path / "calendar.ics", timezone_name="Asia/Tokyo", calendar_name="Friends")


def _unfolded_lines(path: Path) -> list[str]:
    text = path.read_bytes().decode("utf-8")
    return text.replace("\r\n ", "").split("\r\n")


def test_first_export_creates_calendar(tmp_path: Path):
    exporter = _exporter(tmp_path)
    event = CalendarEvent(
        id="evt1",
        title="Dinner, with Aiko",
        details="Bring wine; 7pm",
        start_at=datetime(2024, 6, 3, 19, 0, tzinfo=TOKYO),
        location="Ebisu",
        reminder_offset_minutes=30,
    )

    exporter.add_event(event)

    lines = _unfolded_lines(exporter.path)
    assert lines[0] == "BEGIN:VCALENDAR"
    assert "X-WR-CALNAME:Friends" in lines
    assert "UID:evt1@rolodex" in lines
    assert "SUMMARY:Dinner\\, with Aiko" in lines
    assert "DESCRIPTION:Bring wine\\; 7pm" in lines
    assert "DTSTART:20240603T100000Z" in lines
    assert "DTEND:20240603T110000Z" in lines
    assert "LOCATION:Ebisu" in lines
    assert "TRIGGER:-PT30M" in lines
    assert lines[-2:] == ["END:VCALENDAR", ""]


def test_naive_times_use_configured_timezone(tmp_path: Path):
    exporter = _exporter(tmp_path)

    exporter.add_event(CalendarEvent(title="Call", start_at=datetime(2024, 6, 3, 9, 0)))

    assert "DTSTART:20240603T000000Z" in _unfolded_lines(exporter.path)


def test_all_day_event_uses_date_values(tmp_path: Path):
    exporter = _exporter(tmp_path)

    exporter.add_event(CalendarEvent(title="Holiday", start_at=datetime(2024, 6, 10), is_all_day=True))

    lines = _unfolded_lines(exporter.path)
    assert "DTSTART;VALUE=DATE:20240610" in lines
    assert "DTEND;VALUE=DATE:20240611" in lines
    assert not any(line.startswith("BEGIN:VALARM") for line in lines)


def test_second_export_appends_to_same_calendar(tmp_path: Path):
    exporter = _exporter(tmp_path)

    exporter.add_event(CalendarEvent(title="First", start_at=datetime(2024, 6, 3, 9, 0)))
    exporter.add_event(CalendarEvent(title="Second", start_at=datetime(2024, 6, 4, 9, 0)))

    lines = _unfolded_lines(exporter.path)
    assert lines.count("BEGIN:VCALENDAR") == 1
    assert lines.count("END:VCALENDAR") == 1
    assert lines.count("BEGIN:VEVENT") == 2
    assert lines.index("SUMMARY:First") < lines.index("SUMMARY:Second")


def test_long_lines_are_folded(tmp_path: Path):
    exporter = _exporter(tmp_path)
    title = "誕生日パーティー " * 12

    exporter.add_event(CalendarEvent(title=title, start_at=datetime(2024, 6, 3, 9, 0)))

    raw_lines = exporter.path.read_bytes().split(b"\r\n")
    assert all(len(line) <= 75 for line in raw_lines)
    assert f"SUMMARY:{title.strip()}" in _unfolded_lines(exporter.path)


def test_existing_non_calendar_file_is_rejected(tmp_path: Path):
    exporter = _exporter(tmp_path)
    exporter.path.write_text("hello\n", encoding="utf-8")

    with pytest.raises(CalendarExportError):
        exporter.add_event(CalendarEvent(title="Call", start_at=datetime(2024, 6, 3, 9, 0)))


def test_unknown_timezone_is_rejected(tmp_path: Path):
    with pytest.raises(CalendarExportError):
        IcsCalendarExporter(path=tmp_path / "calendar.ics", timezone_name="Mars/Olympus")


def test_re_export_replaces_event_with_same_uid(tmp_path: Path):
    exporter = _exporter(tmp_path)
    original = CalendarEvent(id="e1", title="Call", start_at=datetime(2024, 6, 3, 9, 0))
    other = CalendarEvent(id="e2", title="Lunch", start_at=datetime(2024, 6, 3, 12, 0))

    exporter.add_event(original)
    exporter.add_event(other)
    exporter.add_event(original.model_copy(update={"title": "Call moved"}))

    lines = _unfolded_lines(exporter.path)
    assert lines.count("UID:e1@rolodex") == 1
    assert lines.count("UID:e2@rolodex") == 1
    assert "SUMMARY:Call" not in lines
    assert lines.index("SUMMARY:Lunch") < lines.index("SUMMARY:Call moved")
    assert lines.count("BEGIN:VEVENT") == lines.count("END:VEVENT") == 2
