"""
Duplicate Detection

DESIGN DECISION: Duplicates are SKIPPED, never raised.

Automatic ingestion may see the same notification more than once (a
re-run after a partial batch, two issuer queries matching one mail).
The guard answers "is this already in the ledger?" against a snapshot
loaded at the start of the run, and every entry appended during the run
is registered so later candidates see it too.

IMPORTANT: The check-then-append sequence is not atomic. At-most-once
ingestion holds only for sequential runs.
"""

from collections.abc import Iterable
from typing import Union

from kakeibo.models.ledger import FixedExpense, LedgerEntry, ParsedTransaction

DedupKey = tuple[str, int, str]


def dedup_key(candidate: Union[LedgerEntry, ParsedTransaction]) -> DedupKey:
    """(date_label, amount, memo) for an entry or a parsed candidate."""
    return (candidate.date_label, candidate.amount, candidate.memo)


class DeduplicationGuard:
    """
    Exact-match membership over (date, amount, memo).

    Every entry in the snapshot participates, whatever its origin, so a
    manual entry with the same triple also blocks automatic ingestion.
    """

    def __init__(self, entries: Iterable[LedgerEntry] = ()):
        self._keys: set[DedupKey] = {dedup_key(entry) for entry in entries}

    def __len__(self) -> int:
        return len(self._keys)

    def is_duplicate(self, candidate: Union[LedgerEntry, ParsedTransaction]) -> bool:
        return dedup_key(candidate) in self._keys

    def register(self, entry: Union[LedgerEntry, ParsedTransaction]) -> None:
        """Record an entry appended during the current run."""
        self._keys.add(dedup_key(entry))


class FixedExpenseGuard:
    """
    Month-scoped guard for scheduled fixed expenses.

    A fixed expense counts as recorded for the month when an entry with
    the same category, memo and amount already exists in that month.
    """

    def __init__(self, entries: Iterable[LedgerEntry], year: int, month: int):
        self.year = year
        self.month = month
        self._keys: set[tuple[str, str, int]] = {
            (entry.category, entry.memo, entry.amount)
            for entry in entries
            if entry.entry_date.year == year and entry.entry_date.month == month
        }

    def is_recorded(self, item: Union[FixedExpense, LedgerEntry]) -> bool:
        return (item.category, item.memo, item.amount) in self._keys

    def register(self, item: Union[FixedExpense, LedgerEntry]) -> None:
        self._keys.add((item.category, item.memo, item.amount))
