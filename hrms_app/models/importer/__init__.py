from .schema import ImportNotification, ImportStateEntry, NotificationCategory

__all__ = ["ImportNotification", "ImportStateEntry", "NotificationCategory"]
