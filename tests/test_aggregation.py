"""Tests for the aggregation engine."""

from datetime import date

import pytest

from kakeibo.aggregation import (
    BUDGET_NODE,
    INCOME_NODE,
    REMAINING_NODE,
    AggregationEngine,
)
from kakeibo.models import Account, FlowType, LedgerEntry


def expense(day: date, amount: int, category: str, memo: str = "", account: str = "財布") -> LedgerEntry:
    return LedgerEntry(entry_date=day, amount=amount, category=category, memo=memo, account=account)


def income(day: date, amount: int, memo: str = "", account: str = "銀行") -> LedgerEntry:
    return LedgerEntry(
        entry_date=day,
        amount=amount,
        category="収入",
        memo=memo,
        flow_type=FlowType.INCOME,
        account=account,
    )


@pytest.fixture
def ledger():
    return [
        income(date(2026, 1, 10), 300000, "給与"),
        expense(date(2026, 1, 15), 50000, "食費", "まとめ買い"),
        expense(date(2026, 2, 1), 3000, "食費", "ランチ"),
        expense(date(2026, 2, 3), 5000, "日用品", "ダイソー", account="カード"),
        expense(date(2026, 2, 5), 2000, "食費", "カフェ"),
        income(date(2026, 2, 5), 10000, "臨時収入"),
        expense(date(2026, 3, 1), 1000, "食費", "パン"),
    ]


@pytest.fixture
def engine():
    return AggregationEngine(accounts=[Account(name="財布", initial_balance=10000), Account(name="銀行")])


class TestMonthlySnapshot:
    """Tests for AggregationEngine.aggregate."""

    def test_totals_and_carry_over(self, engine, ledger):
        snapshot = engine.aggregate(ledger, 2026, 2, budget=120000)

        assert snapshot.carry_over == 250000
        assert snapshot.total_income == 10000
        assert snapshot.total_expense == 10000
        assert snapshot.net_savings == 0
        assert snapshot.remaining_budget == 110000

    def test_carry_over_chains_month_to_month(self, engine, ledger):
        """Test that next month's carry-over is this month's closing balance."""
        for year, month, next_year, next_month in [(2026, 1, 2026, 2), (2026, 2, 2026, 3), (2025, 12, 2026, 1)]:
            current = engine.aggregate(ledger, year, month)
            following = engine.aggregate(ledger, next_year, next_month)
            assert following.carry_over == current.closing_balance

    def test_category_totals_sorted_with_stable_ties(self, engine, ledger):
        """Test descending order with equal amounts in first-seen order."""
        snapshot = engine.aggregate(ledger, 2026, 2)
        totals = [(row.category, row.amount) for row in snapshot.category_totals]

        assert totals == [("食費", 5000), ("日用品", 5000)]
        amounts = [amount for _, amount in totals]
        assert amounts == sorted(amounts, reverse=True)

    def test_income_is_not_a_category_row(self, engine, ledger):
        snapshot = engine.aggregate(ledger, 2026, 2)
        assert "収入" not in [row.category for row in snapshot.category_totals]

    def test_custom_categories_padded_with_zero(self, engine, ledger):
        snapshot = engine.aggregate(ledger, 2026, 2, custom_categories=["食費", "ペット"])
        totals = [(row.category, row.amount) for row in snapshot.category_totals]

        assert totals == [("食費", 5000), ("日用品", 5000), ("ペット", 0)]

    def test_recent_entries_newest_first(self, engine, ledger):
        snapshot = engine.aggregate(ledger, 2026, 2)
        recent = [(e.entry_date.day, e.memo) for e in snapshot.recent_entries]

        # Same-day entries keep ledger order
        assert recent == [(5, "カフェ"), (5, "臨時収入"), (3, "ダイソー"), (1, "ランチ")]

    def test_recent_entries_limit(self, ledger):
        engine = AggregationEngine(recent_limit=2)
        snapshot = engine.aggregate(ledger, 2026, 2)
        assert len(snapshot.recent_entries) == 2

    def test_account_balances_cover_all_history(self, engine, ledger):
        """Test that balances ignore the target month."""
        snapshot = engine.aggregate(ledger, 2026, 1)

        assert snapshot.account_balances == {
            "財布": 10000 - 50000 - 3000 - 2000 - 1000,
            "銀行": 310000,
            "カード": -5000,
        }

    def test_empty_ledger(self, engine):
        """Test that an empty ledger yields a zero-valued snapshot."""
        snapshot = engine.aggregate([], 2026, 2, budget=120000)

        assert snapshot.is_empty
        assert snapshot.carry_over == 0
        assert snapshot.category_totals == []
        assert snapshot.account_balances == {"財布": 10000, "銀行": 0}
        assert snapshot.budget_used_percent == 0


class TestFlowGraph:
    """Tests for the single-month flow graph."""

    def test_income_is_the_source(self, engine, ledger):
        graph = engine.flow_graph(ledger, 2026, 2, budget=120000)

        assert graph.source_label == INCOME_NODE
        assert graph.source_amount == 10000
        targets = {edge.target: edge.amount for edge in graph.edges}
        assert targets == {"食費": 5000, "日用品": 5000}
        # Nothing left over, so no remaining edge
        assert REMAINING_NODE not in targets

    def test_budget_is_the_source_without_income(self, engine, ledger):
        graph = engine.flow_graph(ledger, 2026, 3, budget=120000)

        assert graph.source_label == BUDGET_NODE
        assert graph.source_amount == 120000
        targets = {edge.target: edge.amount for edge in graph.edges}
        assert targets == {"食費": 1000, REMAINING_NODE: 119000}

    def test_edges_start_at_the_source(self, engine, ledger):
        graph = engine.flow_graph(ledger, 2026, 3, budget=120000)
        assert all(edge.source == graph.source_label for edge in graph.edges)


class TestYearlyRollup:
    """Tests for the yearly rollup."""

    def test_monthly_rows(self, engine, ledger):
        rollup = engine.yearly_rollup(ledger, 2026)

        assert len(rollup.months) == 12
        assert rollup.carry_over == 0
        january, february, march = rollup.months[:3]
        assert (january.income, january.expense, january.savings) == (300000, 50000, 250000)
        assert february.savings == 0
        assert march.cumulative_savings == 249000
        assert rollup.months[-1].cumulative_savings == 249000
        assert rollup.total_income == 310000
        assert rollup.total_expense == 61000

    def test_cumulative_starts_from_previous_years(self, engine, ledger):
        rollup = engine.yearly_rollup(ledger, 2027)

        assert rollup.carry_over == 249000
        assert all(m.cumulative_savings == 249000 for m in rollup.months)


class TestPeriodComparison:
    """Tests for the advisor's period comparison."""

    def test_weekly_current_window(self, engine, ledger):
        analysis = engine.period_comparison(ledger, date(2026, 2, 7), weekly=True, monthly_budget=120000)

        assert (analysis.current_label, analysis.previous_label) == ("今週", "先週")
        assert analysis.current_expense == 10000
        assert analysis.previous_expense == 0
        assert analysis.period_budget == 30000
        assert [(d.label, d.amount) for d in analysis.daily_totals] == [
            ("2/1(日)", 3000),
            ("2/3(火)", 5000),
            ("2/5(木)", 2000),
        ]
        assert [t.category for t in analysis.top_categories] == ["食費", "日用品"]

    def test_weekly_previous_window(self, engine, ledger):
        """Test that days 7..13 back form the previous week."""
        analysis = engine.period_comparison(ledger, date(2026, 2, 10), weekly=True, monthly_budget=120000)

        assert analysis.current_expense == 2000
        assert analysis.previous_expense == 8000
        changes = {c.category: (c.current, c.previous) for c in analysis.category_changes}
        assert changes == {"食費": (2000, 3000), "日用品": (0, 5000)}

    def test_monthly(self, engine, ledger):
        analysis = engine.period_comparison(ledger, date(2026, 3, 10), weekly=False, monthly_budget=120000)

        assert (analysis.current_label, analysis.previous_label) == ("今月", "先月")
        assert analysis.current_expense == 1000
        assert analysis.previous_expense == 10000
        assert analysis.days_elapsed == 10
        assert analysis.days_in_period == 31
        assert analysis.period_budget == 120000
        assert [d.label for d in analysis.daily_totals] == ["3/1"]

    def test_monthly_wraps_year(self, engine, ledger):
        analysis = engine.period_comparison(ledger, date(2026, 1, 20), weekly=False, monthly_budget=120000)

        assert analysis.current_expense == 50000
        assert analysis.previous_expense == 0
