"""Outbound notification channels."""

from app.integrations.notifications.base import NotificationSink
from app.integrations.notifications.telegram_notifier import TelegramNotifier

__all__ = ["NotificationSink", "TelegramNotifier"]
