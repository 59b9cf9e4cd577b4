"""
Aggregation Engine

DESIGN DECISION: Aggregation is a PURE, READ-ONLY projection.

The engine takes a full ledger snapshot (in ledger order) and returns
summary models. It never touches storage, so a snapshot is computed the
same way for the dashboard, alerts and the advisor.

All sums are exact integers. Percentages are presentation helpers on the
summary models and are never fed back into a total.
"""

import calendar
from collections.abc import Iterable, Sequence
from datetime import date
from typing import Optional

from kakeibo.models.ledger import Account, LedgerEntry
from kakeibo.models.summary import (
    AggregationSnapshot,
    CategoryChange,
    CategoryTotal,
    DailyTotal,
    FlowEdge,
    FlowGraph,
    MonthlyRollup,
    SpendingAnalysis,
    YearlyRollup,
)

INCOME_NODE = "income"
BUDGET_NODE = "budget"
REMAINING_NODE = "remaining"

WEEKDAY_LABELS = ("月", "火", "水", "木", "金", "土", "日")

TOP_CATEGORY_COUNT = 3
WEEK_DAYS = 7


def _month_index(day: date) -> int:
    return day.year * 12 + day.month - 1


def _previous_month(year: int, month: int) -> tuple[int, int]:
    return (year - 1, 12) if month == 1 else (year, month - 1)


def _category_totals(entries: Iterable[LedgerEntry]) -> dict[str, int]:
    """Expense totals per category, keyed in first-seen order."""
    totals: dict[str, int] = {}
    for entry in entries:
        if entry.is_income:
            continue
        totals[entry.category] = totals.get(entry.category, 0) + entry.amount
    return totals


def _sorted_totals(totals: dict[str, int]) -> list[CategoryTotal]:
    # sorted() is stable, so equal amounts keep first-seen order
    ranked = sorted(totals.items(), key=lambda item: item[1], reverse=True)
    return [CategoryTotal(category=category, amount=amount) for category, amount in ranked]


def _daily_label(day: date, weekly: bool) -> str:
    if weekly:
        return f"{day.month}/{day.day}({WEEKDAY_LABELS[day.weekday()]})"
    return f"{day.month}/{day.day}"


class AggregationEngine:
    """
    Ledger -> period summary projections.

    Usage:
        engine = AggregationEngine(accounts=settings.accounts)
        snapshot = engine.aggregate(entries, 2026, 2, budget=120000)
    """

    def __init__(
        self,
        accounts: Sequence[Account] = (),
        recent_limit: int = 10,
    ):
        self._accounts = list(accounts)
        self._recent_limit = recent_limit

    # =========================================================================
    # MONTHLY SNAPSHOT
    # =========================================================================

    def aggregate(
        self,
        entries: Sequence[LedgerEntry],
        year: int,
        month: int,
        budget: Optional[int] = None,
        custom_categories: Sequence[str] = (),
        advice_message: Optional[str] = None,
    ) -> AggregationSnapshot:
        """
        Build the snapshot for (year, month).

        Args:
            entries: Full ledger in ledger order
            budget: Monthly budget to attach, if known
            custom_categories: Labels padded with zero rows when the month
                has no spend in them

        Returns:
            AggregationSnapshot; zero-valued for an empty ledger
        """
        target = year * 12 + month - 1
        balances = self.account_balances(entries)

        carry_over = 0
        month_entries: list[LedgerEntry] = []
        for entry in entries:
            index = _month_index(entry.entry_date)
            if index < target:
                carry_over += entry.signed_amount
            elif index == target:
                month_entries.append(entry)

        total_income = sum(e.amount for e in month_entries if e.is_income)
        total_expense = sum(e.amount for e in month_entries if not e.is_income)

        totals = _category_totals(month_entries)
        category_totals = _sorted_totals(totals)
        for label in custom_categories:
            if label not in totals:
                category_totals.append(CategoryTotal(category=label, amount=0))
                totals[label] = 0

        # reverse=True keeps ledger order among equal timestamps
        recent = sorted(month_entries, key=lambda e: e.timestamp, reverse=True)

        return AggregationSnapshot(
            year=year,
            month=month,
            carry_over=carry_over,
            total_income=total_income,
            total_expense=total_expense,
            category_totals=category_totals,
            recent_entries=recent[:self._recent_limit],
            account_balances=balances,
            budget=budget,
            advice_message=advice_message,
        )

    def account_balances(self, entries: Iterable[LedgerEntry]) -> dict[str, int]:
        """
        All-time balances per account.

        Configured accounts start at their initial balance; accounts only
        seen in the ledger start at 0.
        """
        balances = {account.name: account.initial_balance for account in self._accounts}
        for entry in entries:
            balances[entry.account] = balances.get(entry.account, 0) + entry.signed_amount
        return balances

    # =========================================================================
    # FLOW GRAPH & YEARLY ROLLUP
    # =========================================================================

    def flow_graph(
        self,
        entries: Sequence[LedgerEntry],
        year: int,
        month: int,
        budget: int,
    ) -> FlowGraph:
        """
        Single-month flow graph.

        Income is the source when the month has any, otherwise the budget.
        """
        month_entries = [
            e for e in entries
            if e.entry_date.year == year and e.entry_date.month == month
        ]
        total_income = sum(e.amount for e in month_entries if e.is_income)
        total_expense = sum(e.amount for e in month_entries if not e.is_income)

        if total_income > 0:
            source_label, source_amount = INCOME_NODE, total_income
        else:
            source_label, source_amount = BUDGET_NODE, budget

        edges = [
            FlowEdge(source=source_label, target=category, amount=amount)
            for category, amount in _category_totals(month_entries).items()
        ]
        remaining = source_amount - total_expense
        if remaining > 0:
            edges.append(FlowEdge(source=source_label, target=REMAINING_NODE, amount=remaining))

        return FlowGraph(
            source_label=source_label,
            source_amount=source_amount,
            total_income=total_income,
            total_expense=total_expense,
            edges=edges,
        )

    def yearly_rollup(self, entries: Iterable[LedgerEntry], year: int) -> YearlyRollup:
        """Twelve monthly rows; cumulative savings start from the pre-year carry-over."""
        income = [0] * 12
        expense = [0] * 12
        carry_over = 0

        for entry in entries:
            entry_year = entry.entry_date.year
            if entry_year < year:
                carry_over += entry.signed_amount
            elif entry_year == year:
                if entry.is_income:
                    income[entry.entry_date.month - 1] += entry.amount
                else:
                    expense[entry.entry_date.month - 1] += entry.amount

        months = []
        cumulative = carry_over
        for index in range(12):
            savings = income[index] - expense[index]
            cumulative += savings
            months.append(MonthlyRollup(
                month=index + 1,
                income=income[index],
                expense=expense[index],
                savings=savings,
                cumulative_savings=cumulative,
            ))

        return YearlyRollup(year=year, carry_over=carry_over, months=months)

    # =========================================================================
    # PERIOD COMPARISON (advisor input)
    # =========================================================================

    def period_comparison(
        self,
        entries: Iterable[LedgerEntry],
        today: date,
        weekly: bool,
        monthly_budget: int,
    ) -> SpendingAnalysis:
        """
        Compare expense in the current period with the previous one.

        Weekly: the 7 days ending today vs the 7 days before that, against
        a quarter of the monthly budget. Monthly: this calendar month vs
        the previous one.
        """
        current: list[LedgerEntry] = []
        previous: list[LedgerEntry] = []
        previous_year, previous_month = _previous_month(today.year, today.month)

        for entry in entries:
            if entry.is_income:
                continue
            if weekly:
                age = (today - entry.entry_date).days
                if 0 <= age < WEEK_DAYS:
                    current.append(entry)
                elif WEEK_DAYS <= age < 2 * WEEK_DAYS:
                    previous.append(entry)
            else:
                entry_date = entry.entry_date
                if (entry_date.year, entry_date.month) == (today.year, today.month):
                    current.append(entry)
                elif (entry_date.year, entry_date.month) == (previous_year, previous_month):
                    previous.append(entry)

        current_totals = _category_totals(current)
        previous_totals = _category_totals(previous)
        changes = [
            CategoryChange(
                category=category,
                current=current_totals.get(category, 0),
                previous=previous_totals.get(category, 0),
            )
            for category in {**current_totals, **previous_totals}
        ]

        daily: dict[date, int] = {}
        for entry in current:
            daily[entry.entry_date] = daily.get(entry.entry_date, 0) + entry.amount
        daily_totals = [
            DailyTotal(label=_daily_label(day, weekly), amount=daily[day])
            for day in sorted(daily)
        ]

        if weekly:
            period_budget = monthly_budget // 4
            days_elapsed = WEEK_DAYS
            days_in_period = WEEK_DAYS
            labels = ("今週", "先週")
        else:
            period_budget = monthly_budget
            days_elapsed = today.day
            days_in_period = calendar.monthrange(today.year, today.month)[1]
            labels = ("今月", "先月")

        return SpendingAnalysis(
            weekly=weekly,
            current_label=labels[0],
            previous_label=labels[1],
            current_expense=sum(current_totals.values()),
            previous_expense=sum(previous_totals.values()),
            category_changes=changes,
            daily_totals=daily_totals,
            top_categories=_sorted_totals(current_totals)[:TOP_CATEGORY_COUNT],
            monthly_budget=monthly_budget,
            period_budget=period_budget,
            days_elapsed=days_elapsed,
            days_in_period=days_in_period,
        )
