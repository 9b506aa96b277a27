from __future__ import annotations

import calendar
import re
from datetime import date, datetime
from typing import Iterable

from pydantic import ValidationError

from ..domain.models import BirthdayOccurrence, ContactBirthday, MonthDay

LEAP_DAY = (2, 29)

_FULL_DATE_PATTERN = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$")
_MONTH_DAY_PATTERN = re.compile(r"^(?:--)?(\d{1,2})-(\d{1,2})$")


class InvalidDateInput(ValueError):
    """Raised when a stored birth date cannot be interpreted."""


def parse_birth_date(raw_value: str) -> MonthDay:
    text = raw_value.strip()
    full_match = _FULL_DATE_PATTERN.match(text)
    month_day_match = _MONTH_DAY_PATTERN.match(text)
    try:
        if full_match:
            year, month, day = (int(part) for part in full_match.groups())
            return MonthDay(month=month, day=day, year=year)
        if month_day_match:
            month, day = (int(part) for part in month_day_match.groups())
            return MonthDay(month=month, day=day)
    except ValidationError as exc:
        raise InvalidDateInput(f"Invalid birth date: {raw_value!r}") from exc
    raise InvalidDateInput(f"Unrecognized birth date format: {raw_value!r}")


def anniversary_in_year(birthday: MonthDay, year: int) -> date:
    """Concrete anniversary in ``year``; Feb 29 falls on Feb 28 in common years."""
    if (birthday.month, birthday.day) == LEAP_DAY and not calendar.isleap(year):
        return date(year, 2, 28)
    return date(year, birthday.month, birthday.day)


def _reference_date(reference: datetime | date) -> date:
    if isinstance(reference, datetime):
        return reference.date()
    return reference


def project_next_occurrence(
    birthday: MonthDay,
    reference: datetime | date,
) -> tuple[date, int | None]:
    today = _reference_date(reference)
    projected = anniversary_in_year(birthday, today.year)
    if projected < today:
        projected = anniversary_in_year(birthday, today.year + 1)

    if birthday.year is None:
        return projected, None
    return projected, max(projected.year - birthday.year, 0)


def project_birthdays(
    contacts: Iterable[ContactBirthday],
    reference: datetime | date,
) -> list[BirthdayOccurrence]:
    occurrences: list[BirthdayOccurrence] = []
    for contact in contacts:
        projected, age = project_next_occurrence(contact.birthday, reference)
        occurrences.append(
            BirthdayOccurrence(
                contact_id=contact.contact_id,
                display_name=contact.display_name,
                month_day=contact.birthday,
                projected_date=projected,
                age_at_occurrence=age,
            )
        )
    occurrences.sort(key=lambda occurrence: occurrence.projected_date)
    return occurrences
