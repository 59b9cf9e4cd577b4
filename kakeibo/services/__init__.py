"""Services package."""

from kakeibo.services.notify import (
    InMemoryNotificationChannel,
    LineNotificationChannel,
    NotificationChannelInterface,
)
from kakeibo.services.sources import (
    EventSourceInterface,
    GmailMessageSource,
    GoogleCalendarEventSource,
    InMemoryEventSource,
    InMemoryMessageSource,
    MessageSourceInterface,
    SourceError,
)
from kakeibo.services.storage import (
    AuditStorageInterface,
    ConnectionError,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsLedgerStore,
    GoogleSheetsSettingsStore,
    InMemoryAuditStorage,
    InMemoryLedgerStore,
    InMemorySettingsStore,
    LedgerStoreInterface,
    NotFoundError,
    SettingsStoreInterface,
    StorageError,
)

__all__ = [
    # Notification channels
    "InMemoryNotificationChannel",
    "LineNotificationChannel",
    "NotificationChannelInterface",
    # Message and event sources
    "EventSourceInterface",
    "GmailMessageSource",
    "GoogleCalendarEventSource",
    "InMemoryEventSource",
    "InMemoryMessageSource",
    "MessageSourceInterface",
    "SourceError",
    # Storage services
    "AuditStorageInterface",
    "ConnectionError",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsLedgerStore",
    "GoogleSheetsSettingsStore",
    "InMemoryAuditStorage",
    "InMemoryLedgerStore",
    "InMemorySettingsStore",
    "LedgerStoreInterface",
    "NotFoundError",
    "SettingsStoreInterface",
    "StorageError",
]
