"""
In-Memory Storage

Process-local implementations of the storage interfaces. Used by the test
suite and for dry runs; nothing survives the process.
"""

from typing import Optional

from kakeibo.models.alert import AlertState
from kakeibo.models.audit import AuditEvent
from kakeibo.models.ledger import (
    EntryUpdate,
    HouseholdSettings,
    LedgerEntry,
    PeriodFilter,
)
from kakeibo.services.storage.interface import (
    AuditStorageInterface,
    LedgerStoreInterface,
    SettingsStoreInterface,
)


class InMemoryLedgerStore(LedgerStoreInterface):
    """A list of entries; positions are list index + 1."""

    def __init__(self, entries: Optional[list[LedgerEntry]] = None):
        self._entries: list[LedgerEntry] = []
        for entry in entries or []:
            self._entries.append(entry.model_copy(update={"position": None}))

    def __len__(self) -> int:
        return len(self._entries)

    def _positioned(self, index: int) -> LedgerEntry:
        return self._entries[index].model_copy(update={"position": index + 1})

    async def append(self, entry: LedgerEntry) -> int:
        self._entries.append(entry.model_copy(update={"position": None}))
        return len(self._entries)

    async def read_all(self, period: Optional[PeriodFilter] = None) -> list[LedgerEntry]:
        return [
            self._positioned(index)
            for index, entry in enumerate(self._entries)
            if period is None or period.contains(entry.entry_date)
        ]

    async def update(self, position: int, update: EntryUpdate) -> bool:
        if position < 1 or position > len(self._entries):
            return False
        changes = update.model_dump(exclude_none=True)
        self._entries[position - 1] = self._entries[position - 1].model_copy(update=changes)
        return True

    async def delete(self, period: PeriodFilter) -> int:
        kept = [e for e in self._entries if not period.contains(e.entry_date)]
        removed = len(self._entries) - len(kept)
        self._entries = kept
        return removed


class InMemorySettingsStore(SettingsStoreInterface):

    def __init__(
        self,
        settings: Optional[HouseholdSettings] = None,
        alert_state: Optional[AlertState] = None,
    ):
        self._settings = settings or HouseholdSettings()
        self._alert_state = alert_state or AlertState()

    async def load_settings(self) -> HouseholdSettings:
        return self._settings.model_copy(deep=True)

    async def save_settings(self, settings: HouseholdSettings) -> bool:
        self._settings = settings.model_copy(deep=True)
        return True

    async def load_alert_state(self) -> AlertState:
        return self._alert_state.model_copy()

    async def save_alert_state(self, state: AlertState) -> bool:
        self._alert_state = state.model_copy()
        return True

    async def save_recipient(self, recipient_id: str) -> bool:
        self._settings = self._settings.model_copy(update={"recipient_id": recipient_id})
        return True

    async def save_advice(self, message: str) -> bool:
        self._settings = self._settings.model_copy(update={"advice_message": message})
        return True


class InMemoryAuditStorage(AuditStorageInterface):

    def __init__(self):
        self.events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return sorted(self.events, key=lambda e: e.timestamp, reverse=True)[:limit]
