from .aggregator import EventAggregator, group_by_day, local_date
from .birthdays import InvalidDateInput, parse_birth_date, project_birthdays, project_next_occurrence
from .grid import MONDAY, SUNDAY, WEEKDAY_NAMES, build_month_grid, build_week, month_bounds, shift_month

__all__ = [
    "EventAggregator",
    "InvalidDateInput",
    "MONDAY",
    "SUNDAY",
    "WEEKDAY_NAMES",
    "build_month_grid",
    "build_week",
    "group_by_day",
    "local_date",
    "month_bounds",
    "parse_birth_date",
    "project_birthdays",
    "project_next_occurrence",
    "shift_month",
]
