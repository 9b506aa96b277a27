from .base import CalendarExportError, ExternalCalendarService
from .ics import IcsCalendarExporter

__all__ = [
    "CalendarExportError",
    "ExternalCalendarService",
    "IcsCalendarExporter",
]
