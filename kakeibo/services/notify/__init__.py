"""Outbound notification channels."""

from kakeibo.services.notify.interface import NotificationChannelInterface
from kakeibo.services.notify.line import LineNotificationChannel
from kakeibo.services.notify.memory import InMemoryNotificationChannel

__all__ = [
    "InMemoryNotificationChannel",
    "LineNotificationChannel",
    "NotificationChannelInterface",
]
