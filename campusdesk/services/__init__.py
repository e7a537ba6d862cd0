from .notifications import LoggingNotifier, Notification, NotificationBuffer, Notifier, Severity

__all__ = ["LoggingNotifier", "Notification", "NotificationBuffer", "Notifier", "Severity"]
