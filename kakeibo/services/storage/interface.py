"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap Google Sheets for a real database later
2. Use in-memory storage for testing
3. Keep business logic decoupled from storage implementation

The ledger store is deliberately small: append, read everything, point
update of category/memo, and period-scoped bulk delete. All filtering and
aggregation happens in Python on the snapshot returned by read_all().

Positions are 1-based and follow ledger order. They stay valid only until
a delete shifts later entries; callers must not cache them across a delete.
"""

from abc import ABC, abstractmethod
from typing import Optional

from kakeibo.models.alert import AlertState
from kakeibo.models.audit import AuditEvent
from kakeibo.models.ledger import (
    EntryUpdate,
    HouseholdSettings,
    LedgerEntry,
    PeriodFilter,
)


class LedgerStoreInterface(ABC):
    """
    Abstract interface for the ledger.

    Any storage implementation (Google Sheets, SQLite, etc.)
    must implement these methods.
    """

    @abstractmethod
    async def append(self, entry: LedgerEntry) -> int:
        """
        Append an entry at the end of the ledger.

        Returns:
            The position assigned to the new entry

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def read_all(self, period: Optional[PeriodFilter] = None) -> list[LedgerEntry]:
        """
        Read entries in ledger order, each carrying its position.

        Args:
            period: Restrict to a year or a single month

        Raises:
            StorageError: If the read fails
        """
        pass

    @abstractmethod
    async def update(self, position: int, update: EntryUpdate) -> bool:
        """
        Change the category and/or memo of one entry.

        Returns:
            True if updated, False if no entry exists at `position`
        """
        pass

    @abstractmethod
    async def delete(self, period: PeriodFilter) -> int:
        """
        Delete every entry inside `period`.

        Returns:
            Number of entries removed
        """
        pass


class SettingsStoreInterface(ABC):
    """Household settings and the persisted alert flags."""

    @abstractmethod
    async def load_settings(self) -> HouseholdSettings:
        """Return stored settings, defaults for anything missing."""
        pass

    @abstractmethod
    async def save_settings(self, settings: HouseholdSettings) -> bool:
        pass

    @abstractmethod
    async def load_alert_state(self) -> AlertState:
        pass

    @abstractmethod
    async def save_alert_state(self, state: AlertState) -> bool:
        pass

    @abstractmethod
    async def save_recipient(self, recipient_id: str) -> bool:
        """Remember who receives alerts and reports."""
        pass

    @abstractmethod
    async def save_advice(self, message: str) -> bool:
        """Keep the most recent advisor message for the dashboard."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """The configured spreadsheet or table does not exist."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
