from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ...domain.models import CalendarEvent
from .base import CalendarExportError

MAX_LINE_OCTETS = 75
PRODUCT_ID = "-//rolodex//calendar export//EN"
CALENDAR_FOOTER = "END:VCALENDAR"


def _read_ics_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except UnicodeDecodeError:
        try:
            return path.read_text(encoding="utf-8-sig")
        except (OSError, UnicodeDecodeError) as exc:
            raise CalendarExportError(f"Unable to read ICS file: {path}") from exc
    except OSError as exc:
        raise CalendarExportError(f"Unable to read ICS file: {path}") from exc


def _escape_text(value: str) -> str:
    return (
        value.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\r\n", "\\n")
        .replace("\n", "\\n")
    )


def _fold_line(line: str) -> list[str]:
    folded: list[str] = []
    current = ""
    for char in line:
        limit = MAX_LINE_OCTETS if not folded else MAX_LINE_OCTETS - 1
        if len((current + char).encode("utf-8")) > limit:
            folded.append(current)
            current = char
            continue
        current += char
    folded.append(current)
    return [folded[0], *(f" {part}" for part in folded[1:])]


def _format_compact_date(value: date) -> str:
    return value.strftime("%Y%m%d")


def _format_utc_datetime(value: datetime, default_timezone: ZoneInfo) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=default_timezone)
    return value.astimezone(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def _event_uid(event: CalendarEvent) -> str:
    return f"{event.id}@rolodex"


def _unfold(block: list[str]) -> list[str]:
    unfolded: list[str] = []
    for line in block:
        if line[:1] in (" ", "\t") and unfolded:
            unfolded[-1] += line[1:]
        else:
            unfolded.append(line)
    return unfolded


def _drop_event_blocks(lines: list[str], uid: str) -> list[str]:
    """Remove every VEVENT whose UID is ``uid`` so a re-export replaces it."""
    kept: list[str] = []
    block: list[str] | None = None
    for line in lines:
        marker = line.strip().upper()
        if block is None:
            if marker == "BEGIN:VEVENT":
                block = [line]
            else:
                kept.append(line)
            continue
        block.append(line)
        if marker == "END:VEVENT":
            if f"UID:{uid}" not in (item.strip() for item in _unfold(block)):
                kept.extend(block)
            block = None
    if block is not None:
        kept.extend(block)
    return kept


def _event_lines(
    event: CalendarEvent,
    *,
    default_timezone: ZoneInfo,
    stamped_at: datetime,
) -> list[str]:
    end_at = event.end_at or event.start_at
    lines = [
        "BEGIN:VEVENT",
        f"UID:{_event_uid(event)}",
        f"DTSTAMP:{_format_utc_datetime(stamped_at, default_timezone)}",
        f"SUMMARY:{_escape_text(event.title)}",
    ]
    if event.is_all_day:
        end_date = max(end_at.date(), event.start_at.date() + timedelta(days=1))
        lines.append(f"DTSTART;VALUE=DATE:{_format_compact_date(event.start_at.date())}")
        lines.append(f"DTEND;VALUE=DATE:{_format_compact_date(end_date)}")
    else:
        lines.append(f"DTSTART:{_format_utc_datetime(event.start_at, default_timezone)}")
        lines.append(f"DTEND:{_format_utc_datetime(end_at, default_timezone)}")
    if event.details:
        lines.append(f"DESCRIPTION:{_escape_text(event.details)}")
    if event.location:
        lines.append(f"LOCATION:{_escape_text(event.location)}")
    if event.reminder_offset_minutes is not None:
        lines.extend(
            [
                "BEGIN:VALARM",
                "ACTION:DISPLAY",
                f"DESCRIPTION:{_escape_text(event.title)}",
                f"TRIGGER:-PT{event.reminder_offset_minutes}M",
                "END:VALARM",
            ]
        )
    lines.append("END:VEVENT")
    return lines


def _calendar_header(calendar_name: str) -> list[str]:
    return [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        f"PRODID:{PRODUCT_ID}",
        "CALSCALE:GREGORIAN",
        f"X-WR-CALNAME:{_escape_text(calendar_name)}",
    ]


class IcsCalendarExporter:
    """Appends events to a local ``.ics`` file other calendar apps can subscribe to."""

    def __init__(
        self,
        *,
        path: Path,
        timezone_name: str,
        calendar_name: str = "Rolodex",
    ) -> None:
        self._path = Path(path)
        self._calendar_name = calendar_name.strip() or "Rolodex"
        try:
            self._timezone = ZoneInfo(timezone_name)
        except ZoneInfoNotFoundError as exc:
            raise CalendarExportError(f"Unknown timezone for calendar export: {timezone_name}") from exc

    @property
    def path(self) -> Path:
        return self._path

    def _existing_lines(self, uid: str) -> list[str]:
        if not self._path.exists():
            return _calendar_header(self._calendar_name)

        lines = [line for line in _read_ics_text(self._path).splitlines() if line.strip()]
        if not lines or lines[0].strip().upper() != "BEGIN:VCALENDAR":
            raise CalendarExportError(f"Not an ICS calendar file: {self._path}")
        if lines[-1].strip().upper() == CALENDAR_FOOTER:
            lines.pop()
        return _drop_event_blocks(lines, uid)

    def add_event(self, event: CalendarEvent) -> None:
        lines = self._existing_lines(_event_uid(event))
        for line in _event_lines(
            event,
            default_timezone=self._timezone,
            stamped_at=datetime.now(timezone.utc),
        ):
            lines.extend(_fold_line(line))
        lines.append(CALENDAR_FOOTER)

        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text("\r\n".join(lines) + "\r\n", encoding="utf-8")
        except OSError as exc:
            raise CalendarExportError(f"Unable to write ICS file: {self._path}") from exc
