from __future__ import annotations

import logging
import sqlite3
import uuid
from pathlib import Path

from ..domain.models import ContactBirthday
from ..engine.birthdays import InvalidDateInput, parse_birth_date
from .base import StoreReadError, StoreWriteError
from .db import open_db

LOGGER = logging.getLogger(__name__)


def _display_name(first_name: str | None, last_name: str | None) -> str:
    parts = [(first_name or "").strip(), (last_name or "").strip()]
    name = " ".join(part for part in parts if part)
    return name or "Unnamed contact"


class SqliteContactStore:
    def __init__(self, *, db_path: Path) -> None:
        self._db_path = Path(db_path)

    def add_contact(
        self,
        *,
        first_name: str,
        last_name: str = "",
        birthday: str | None = None,
        contact_id: str | None = None,
    ) -> str:
        new_id = contact_id or uuid.uuid4().hex
        try:
            with open_db(self._db_path) as connection:
                connection.execute(
                    "INSERT INTO contacts (id, first_name, last_name, birthday) VALUES (?, ?, ?, ?)",
                    (new_id, first_name.strip(), last_name.strip(), birthday),
                )
                connection.commit()
        except sqlite3.Error as exc:
            raise StoreWriteError(f"Unable to create contact {first_name!r}") from exc
        return new_id

    def list_contacts_with_birthday(self) -> list[ContactBirthday]:
        try:
            with open_db(self._db_path) as connection:
                rows = connection.execute(
                    """
                    SELECT id, first_name, last_name, birthday
                    FROM contacts
                    WHERE birthday IS NOT NULL AND TRIM(birthday) != ''
                    ORDER BY first_name ASC, last_name ASC
                    """
                ).fetchall()
        except sqlite3.Error as exc:
            raise StoreReadError(f"Unable to read contacts from {self._db_path}") from exc

        contacts: list[ContactBirthday] = []
        for row in rows:
            try:
                birthday = parse_birth_date(row["birthday"])
            except InvalidDateInput as exc:
                LOGGER.warning("Skipping birthday for contact '%s': %s", row["id"], exc)
                continue
            contacts.append(
                ContactBirthday(
                    contact_id=row["id"],
                    display_name=_display_name(row["first_name"], row["last_name"]),
                    birthday=birthday,
                )
            )
        return contacts
