"""Tests for duplicate detection."""

from datetime import date, datetime

from kakeibo.models import FixedExpense, LedgerEntry, OriginMethod, ParsedTransaction
from kakeibo.validation import DeduplicationGuard, FixedExpenseGuard, dedup_key


def entry(day: date, amount: int, memo: str, **kwargs) -> LedgerEntry:
    return LedgerEntry(entry_date=day, amount=amount, memo=memo, **kwargs)


class TestDeduplicationGuard:
    """Tests for the (date, amount, memo) guard."""

    def test_candidate_matching_existing_entry(self):
        """Test that a parsed candidate collides with a stored entry."""
        guard = DeduplicationGuard([entry(date(2026, 2, 21), 9350, "Mastercard加盟店")])
        candidate = ParsedTransaction(
            issuer="smbc",
            occurred_at=datetime(2026, 2, 21, 12, 34),
            amount=9350,
            memo="Mastercard加盟店",
        )
        assert guard.is_duplicate(candidate)

    def test_any_field_difference_is_new(self):
        guard = DeduplicationGuard([entry(date(2026, 2, 21), 9350, "ローソン")])
        assert not guard.is_duplicate(entry(date(2026, 2, 22), 9350, "ローソン"))
        assert not guard.is_duplicate(entry(date(2026, 2, 21), 9351, "ローソン"))
        assert not guard.is_duplicate(entry(date(2026, 2, 21), 9350, "ファミマ"))

    def test_manual_entries_block_automatic_ingestion(self):
        """Test that origin does not matter for the identity."""
        manual = entry(date(2026, 2, 21), 500, "ランチ", origin=OriginMethod.MANUAL)
        card = entry(date(2026, 2, 21), 500, "ランチ", origin=OriginMethod.CARD_AUTO)
        assert DeduplicationGuard([manual]).is_duplicate(card)

    def test_register_within_a_run(self):
        """Test that entries appended during a run are seen by later candidates."""
        guard = DeduplicationGuard()
        first = entry(date(2026, 2, 21), 500, "ランチ")
        assert not guard.is_duplicate(first)

        guard.register(first)
        assert guard.is_duplicate(first)
        assert len(guard) == 1

    def test_dedup_key(self):
        assert dedup_key(entry(date(2026, 2, 1), 100, "x")) == ("2026/02/01", 100, "x")


class TestFixedExpenseGuard:
    """Tests for the month-scoped fixed-expense guard."""

    def test_recorded_only_within_the_month(self):
        rent = FixedExpense(day=25, memo="家賃", amount=80000, category="住居")
        entries = [
            entry(date(2026, 1, 25), 80000, "家賃", category="住居"),
        ]
        january = FixedExpenseGuard(entries, 2026, 1)
        february = FixedExpenseGuard(entries, 2026, 2)

        assert january.is_recorded(rent)
        assert not february.is_recorded(rent)

    def test_category_is_part_of_the_identity(self):
        rent = FixedExpense(day=25, memo="家賃", amount=80000, category="住居")
        guard = FixedExpenseGuard([entry(date(2026, 2, 25), 80000, "家賃")], 2026, 2)
        assert not guard.is_recorded(rent)

    def test_register(self):
        rent = FixedExpense(day=25, memo="家賃", amount=80000)
        guard = FixedExpenseGuard([], 2026, 2)
        guard.register(rent)
        assert guard.is_recorded(rent)
