from .base import NotificationError, NotificationService
from .scheduled import SchedulerNotificationService, deliver_reminder

__all__ = [
    "NotificationError",
    "NotificationService",
    "SchedulerNotificationService",
    "deliver_reminder",
]
