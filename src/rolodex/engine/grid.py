from __future__ import annotations

import calendar
from datetime import date, timedelta
from typing import Sequence

from dateutil.relativedelta import relativedelta

from ..domain.models import DayCell

GRID_ROWS = 6
GRID_CELLS = GRID_ROWS * 7

MONDAY = calendar.MONDAY
SUNDAY = calendar.SUNDAY

WEEKDAY_NAMES = {
    "monday": calendar.MONDAY,
    "tuesday": calendar.TUESDAY,
    "wednesday": calendar.WEDNESDAY,
    "thursday": calendar.THURSDAY,
    "friday": calendar.FRIDAY,
    "saturday": calendar.SATURDAY,
    "sunday": calendar.SUNDAY,
}


def _validate_week_start(week_start: int) -> int:
    if week_start not in range(7):
        raise ValueError(f"week_start must be a weekday number 0-6, got {week_start}")
    return week_start


def _make_cell(
    day: date,
    *,
    is_current_month_day: bool,
    today: date | None,
    selected: date | None,
) -> DayCell:
    return DayCell(
        date=day,
        is_current_month_day=is_current_month_day,
        is_today=today is not None and day == today,
        is_selected=selected is not None and day == selected,
    )


def leading_day_count(month_anchor: date, week_start: int = SUNDAY) -> int:
    first_of_month = month_anchor.replace(day=1)
    return (first_of_month.weekday() - _validate_week_start(week_start)) % 7


def build_month_grid(
    month_anchor: date,
    week_start: int = SUNDAY,
    *,
    today: date | None = None,
    selected: date | None = None,
) -> tuple[DayCell, ...]:
    """Return the 6x7 grid of days shown for the month containing ``month_anchor``.

    The grid always has 42 cells. Days before the 1st belong to the previous
    month and days after the last belong to the next month; both are flagged
    with ``is_current_month_day=False``.
    """
    first_of_month = month_anchor.replace(day=1)
    grid_start = first_of_month - timedelta(days=leading_day_count(first_of_month, week_start))

    cells: list[DayCell] = []
    for offset in range(GRID_CELLS):
        day = grid_start + timedelta(days=offset)
        in_month = day.year == first_of_month.year and day.month == first_of_month.month
        cells.append(_make_cell(day, is_current_month_day=in_month, today=today, selected=selected))
    return tuple(cells)


def build_week(
    anchor: date,
    week_start: int = SUNDAY,
    *,
    today: date | None = None,
    selected: date | None = None,
) -> tuple[DayCell, ...]:
    offset = (anchor.weekday() - _validate_week_start(week_start)) % 7
    week_start_date = anchor - timedelta(days=offset)
    return tuple(
        _make_cell(
            week_start_date + timedelta(days=index),
            is_current_month_day=(week_start_date + timedelta(days=index)).month == anchor.month,
            today=today,
            selected=selected,
        )
        for index in range(7)
    )


def shift_month(anchor: date, months: int) -> date:
    """Move ``anchor`` by whole months, clamping the day to the target month's length."""
    return anchor + relativedelta(months=months)


def month_bounds(cells: Sequence[DayCell]) -> tuple[date, date]:
    if not cells:
        raise ValueError("cannot compute bounds of an empty grid")
    return cells[0].date, cells[-1].date
