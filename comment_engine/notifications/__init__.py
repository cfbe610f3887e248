"""Reply and like notifications for comment authors.

Note: Router is imported directly in main.py to avoid circular imports.
"""

from .models import NOTIFICATIONS_TABLES_CQL, Notification, NotificationType
from .service import NotificationList, NotificationService


__all__ = [
    "NOTIFICATIONS_TABLES_CQL",
    "Notification",
    "NotificationList",
    "NotificationService",
    "NotificationType",
]
