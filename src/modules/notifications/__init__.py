"""E-mail notifications sent when orders are placed or change status."""

from modules.notifications.notifier import EmailNotifier, NotificationKind, Notifier

__all__ = ["EmailNotifier", "NotificationKind", "Notifier"]
