from __future__ import annotations

import sqlite3
from datetime import datetime
from pathlib import Path

from ..domain.models import CalendarEvent, EventQuery
from .base import StoreReadError, StoreWriteError
from .db import open_db

_EVENT_COLUMNS = (
    "id, title, details, start_at, end_at, is_all_day, location, reminder_offset_minutes, group_id"
)


def _row_to_event(row: sqlite3.Row, participant_ids: frozenset[str]) -> CalendarEvent:
    return CalendarEvent(
        id=row["id"],
        title=row["title"],
        details=row["details"],
        start_at=datetime.fromisoformat(row["start_at"]),
        end_at=datetime.fromisoformat(row["end_at"]),
        is_all_day=bool(row["is_all_day"]),
        location=row["location"],
        reminder_offset_minutes=row["reminder_offset_minutes"],
        participant_ids=participant_ids,
        group_id=row["group_id"],
    )


def _event_params(event: CalendarEvent) -> tuple:
    end_at = event.end_at or event.start_at
    return (
        event.title,
        event.details,
        event.start_at.isoformat(),
        end_at.isoformat(),
        int(event.is_all_day),
        event.location,
        event.reminder_offset_minutes,
        event.group_id,
        event.id,
    )


def _align_bound(bound: datetime, value: datetime) -> datetime:
    # A naive bound takes the row's zone; a naive row is a host-local wall time.
    if bound.tzinfo is None and value.tzinfo is not None:
        return bound.replace(tzinfo=value.tzinfo)
    if bound.tzinfo is not None and value.tzinfo is None:
        return bound.astimezone().replace(tzinfo=None)
    return bound


def _matches_range(event: CalendarEvent, query: EventQuery) -> bool:
    start_at = event.start_at
    if query.start is not None and start_at < _align_bound(query.start, start_at):
        return False
    if query.end is not None and start_at >= _align_bound(query.end, start_at):
        return False
    return True


class SqliteEventStore:
    def __init__(self, *, db_path: Path) -> None:
        self._db_path = Path(db_path)

    def _participants(self, connection: sqlite3.Connection) -> dict[str, set[str]]:
        participants: dict[str, set[str]] = {}
        for row in connection.execute("SELECT event_id, contact_id FROM event_participants"):
            participants.setdefault(row["event_id"], set()).add(row["contact_id"])
        return participants

    def list_events(self, query: EventQuery | None = None) -> list[CalendarEvent]:
        query = query or EventQuery()
        sql = f"SELECT {_EVENT_COLUMNS} FROM events"
        clauses: list[str] = []
        params: list[str] = []
        if query.contact_id is not None:
            clauses.append("id IN (SELECT event_id FROM event_participants WHERE contact_id = ?)")
            params.append(query.contact_id)
        if query.group_id is not None:
            clauses.append("group_id = ?")
            params.append(query.group_id)
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)

        try:
            with open_db(self._db_path) as connection:
                rows = connection.execute(sql, params).fetchall()
                participants = self._participants(connection)
            events = [
                _row_to_event(row, frozenset(participants.get(row["id"], ())))
                for row in rows
            ]
        except (sqlite3.Error, ValueError) as exc:
            raise StoreReadError(f"Unable to read events from {self._db_path}") from exc

        events = [event for event in events if _matches_range(event, query)]
        events.sort(key=lambda event: event.start_at)
        return events

    def get_event(self, event_id: str) -> CalendarEvent | None:
        try:
            with open_db(self._db_path) as connection:
                row = connection.execute(
                    f"SELECT {_EVENT_COLUMNS} FROM events WHERE id = ?",
                    (event_id,),
                ).fetchone()
                contact_rows = connection.execute(
                    "SELECT contact_id FROM event_participants WHERE event_id = ?",
                    (event_id,),
                ).fetchall()
        except sqlite3.Error as exc:
            raise StoreReadError(f"Unable to read event {event_id}") from exc

        if row is None:
            return None
        return _row_to_event(row, frozenset(str(item["contact_id"]) for item in contact_rows))

    def _write_participants(self, connection: sqlite3.Connection, event: CalendarEvent) -> None:
        connection.execute("DELETE FROM event_participants WHERE event_id = ?", (event.id,))
        connection.executemany(
            "INSERT INTO event_participants (event_id, contact_id) VALUES (?, ?)",
            [(event.id, contact_id) for contact_id in sorted(event.participant_ids)],
        )

    def create_event(self, event: CalendarEvent) -> CalendarEvent:
        try:
            with open_db(self._db_path) as connection:
                connection.execute(
                    """
                    INSERT INTO events (
                        title, details, start_at, end_at, is_all_day,
                        location, reminder_offset_minutes, group_id, id
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    _event_params(event),
                )
                self._write_participants(connection, event)
                connection.commit()
        except sqlite3.Error as exc:
            raise StoreWriteError(f"Unable to create event {event.id}") from exc
        return event

    def update_event(self, event: CalendarEvent) -> CalendarEvent:
        try:
            with open_db(self._db_path) as connection:
                cursor = connection.execute(
                    """
                    UPDATE events SET
                        title = ?, details = ?, start_at = ?, end_at = ?, is_all_day = ?,
                        location = ?, reminder_offset_minutes = ?, group_id = ?
                    WHERE id = ?
                    """,
                    _event_params(event),
                )
                if cursor.rowcount == 0:
                    raise StoreWriteError(f"Event not found: {event.id}")
                self._write_participants(connection, event)
                connection.commit()
        except sqlite3.Error as exc:
            raise StoreWriteError(f"Unable to update event {event.id}") from exc
        return event

    def delete_event(self, event_id: str) -> None:
        try:
            with open_db(self._db_path) as connection:
                connection.execute("DELETE FROM event_participants WHERE event_id = ?", (event_id,))
                connection.execute("DELETE FROM events WHERE id = ?", (event_id,))
                connection.commit()
        except sqlite3.Error as exc:
            raise StoreWriteError(f"Unable to delete event {event_id}") from exc
