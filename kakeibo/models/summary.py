"""
Summary Models for Kakeibo

Read-only projections produced by the aggregation engine.

All stored and propagated totals are integers. Percentages exist only as
presentation helpers (`*_percent`) and are never fed back into a total.
"""

from typing import Optional

from pydantic import BaseModel, Field

from kakeibo.models.ledger import LedgerEntry


def rounded_percent(part: int, whole: int) -> Optional[int]:
    """Presentation-only percentage; None when the base is not positive."""
    if whole <= 0:
        return None
    return round(part * 100 / whole)


class CategoryTotal(BaseModel):
    """Expense total for one category."""

    category: str
    amount: int = Field(..., ge=0)


class AggregationSnapshot(BaseModel):
    """
    Period summary for one (year, month).

    `account_balances` covers the entire ledger history, every other
    figure is scoped to the target month (or, for carry-over, to
    everything strictly before it).
    """

    year: int
    month: int = Field(..., ge=1, le=12)
    carry_over: int = 0
    total_income: int = Field(default=0, ge=0)
    total_expense: int = Field(default=0, ge=0)
    category_totals: list[CategoryTotal] = Field(default_factory=list)
    recent_entries: list[LedgerEntry] = Field(default_factory=list)
    account_balances: dict[str, int] = Field(default_factory=dict)
    budget: Optional[int] = Field(
        default=None,
        description="Budget the snapshot was built against, if any"
    )
    advice_message: Optional[str] = None

    @property
    def month_key(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"

    @property
    def month_label(self) -> str:
        return f"{self.year}年{self.month}月"

    @property
    def net_savings(self) -> int:
        return self.total_income - self.total_expense

    @property
    def closing_balance(self) -> int:
        """Carry-over into the following month."""
        return self.carry_over + self.net_savings

    @property
    def remaining_budget(self) -> Optional[int]:
        if self.budget is None:
            return None
        return self.budget - self.total_expense

    @property
    def budget_used_percent(self) -> Optional[int]:
        if self.budget is None:
            return None
        return rounded_percent(self.total_expense, self.budget)

    @property
    def is_empty(self) -> bool:
        return (
            self.total_income == 0
            and self.total_expense == 0
            and not self.recent_entries
        )


class FlowEdge(BaseModel):
    """One edge of the single-month flow graph."""

    source: str
    target: str
    amount: int = Field(..., ge=0)


class FlowGraph(BaseModel):
    """Income (or budget) flowing into categories and the remainder."""

    source_label: str
    source_amount: int
    total_income: int = 0
    total_expense: int = 0
    edges: list[FlowEdge] = Field(default_factory=list)


class MonthlyRollup(BaseModel):
    """One month of a yearly report."""

    month: int = Field(..., ge=1, le=12)
    income: int = 0
    expense: int = 0
    savings: int = 0
    cumulative_savings: int = 0


class YearlyRollup(BaseModel):
    """Twelve monthly rows for one year."""

    year: int
    carry_over: int = Field(
        default=0,
        description="Net balance of everything before the year"
    )
    months: list[MonthlyRollup] = Field(default_factory=list)

    @property
    def total_income(self) -> int:
        return sum(m.income for m in self.months)

    @property
    def total_expense(self) -> int:
        return sum(m.expense for m in self.months)


class CategoryChange(BaseModel):
    """Expense of a category in the current vs previous period."""

    category: str
    current: int = 0
    previous: int = 0

    @property
    def difference(self) -> int:
        return self.current - self.previous

    @property
    def change_percent(self) -> Optional[int]:
        return rounded_percent(self.difference, self.previous)


class DailyTotal(BaseModel):
    """Expense total for one calendar day."""

    label: str
    amount: int = 0


class SpendingAnalysis(BaseModel):
    """
    Structured input for the generative advisor.

    Weekly analyses compare the last 7 days with the 7 before that and
    use a quarter of the monthly budget; monthly analyses compare the
    current month with the previous one.
    """

    weekly: bool
    current_label: str
    previous_label: str
    current_expense: int = 0
    previous_expense: int = 0
    category_changes: list[CategoryChange] = Field(default_factory=list)
    daily_totals: list[DailyTotal] = Field(default_factory=list)
    top_categories: list[CategoryTotal] = Field(default_factory=list)
    monthly_budget: int
    period_budget: int
    days_elapsed: int = Field(..., ge=0)
    days_in_period: int = Field(..., ge=1)

    @property
    def expense_change(self) -> int:
        return self.current_expense - self.previous_expense

    @property
    def remaining_budget(self) -> int:
        return self.period_budget - self.current_expense

    @property
    def remaining_days(self) -> int:
        return max(self.days_in_period - self.days_elapsed, 0)

    @property
    def budget_used_percent(self) -> Optional[int]:
        return rounded_percent(self.current_expense, self.period_budget)

    @property
    def daily_allowance(self) -> int:
        """Presentation: budget left per remaining day."""
        if self.remaining_days <= 0:
            return 0
        return round(self.remaining_budget / self.remaining_days)

    @property
    def daily_pace(self) -> int:
        """Presentation: average spend per elapsed (or recorded) day."""
        days = self.days_elapsed if not self.weekly else len(self.daily_totals)
        if days <= 0:
            return 0
        return round(self.current_expense / days)

    @property
    def projected_total(self) -> int:
        """Presentation: month-end landing at the current pace."""
        return self.daily_pace * self.days_in_period
