"""
Core Ledger Models for Kakeibo

These models define the schemas for everything that flows between the
parser, the ledger store and the aggregation engine.

DESIGN DECISION: Amounts are plain integers in the minor currency unit.
A refund is an income entry with a positive magnitude, never a negative
amount, so every sum in the system stays exact integer arithmetic.
"""

from datetime import date, datetime, time
from enum import Enum
from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


# =============================================================================
# SENTINEL LABELS
# =============================================================================

UNCATEGORIZED = "uncategorized"
REFUND = "refund"
UNSET_ACCOUNT = "unset"

REFUND_MEMO_PREFIX = "【返金】"

DATE_LABEL_FORMAT = "%Y/%m/%d"


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class FlowType(str, Enum):
    """Direction of money for a ledger entry."""
    EXPENSE = "expense"
    INCOME = "income"


class OriginMethod(str, Enum):
    """Where a ledger entry came from."""
    MANUAL = "manual"            # chat shorthand ("ランチ 1200")
    DASHBOARD = "dashboard"      # dashboard form
    CARD_AUTO = "card-auto"      # parsed card-issuer notification
    FIXED_AUTO = "fixed-auto"    # scheduled fixed-expense recording


# =============================================================================
# LEDGER ENTRY
# =============================================================================

class LedgerEntry(BaseModel):
    """
    One recorded income/expense transaction.

    `position` is assigned by the ledger store on append and is only
    valid until a period delete shifts later entries.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    entry_date: date = Field(
        ...,
        description="Calendar day of the transaction"
    )
    entry_time: Optional[time] = Field(
        default=None,
        description="Time of day when known (fixed-expense records)"
    )
    amount: int = Field(
        ...,
        gt=0,
        description="Positive amount in the minor currency unit"
    )
    category: str = Field(
        default=UNCATEGORIZED,
        max_length=100,
        description="Open category label"
    )
    memo: str = Field(
        default="",
        max_length=200,
        description="Merchant name or free text"
    )
    flow_type: FlowType = Field(
        default=FlowType.EXPENSE,
        description="Expense or income"
    )
    origin: OriginMethod = Field(
        default=OriginMethod.MANUAL,
        description="How the entry was created"
    )
    account: str = Field(
        default=UNSET_ACCOUNT,
        max_length=100,
        description="Account key the money moved through"
    )
    fixed: bool = Field(
        default=False,
        description="Recorded from a fixed-expense schedule"
    )
    position: Optional[int] = Field(
        default=None,
        ge=1,
        description="Store-assigned position"
    )

    @field_validator('category', mode='before')
    @classmethod
    def default_category(cls, v: Optional[str]) -> str:
        """Blank categories collapse to the sentinel label."""
        if v is None or not str(v).strip():
            return UNCATEGORIZED
        return v

    @field_validator('account', mode='before')
    @classmethod
    def default_account(cls, v: Optional[str]) -> str:
        """Blank accounts collapse to the sentinel label."""
        if v is None or not str(v).strip():
            return UNSET_ACCOUNT
        return v

    @field_validator('memo', mode='before')
    @classmethod
    def default_memo(cls, v: Optional[str]) -> str:
        return "" if v is None else v

    @property
    def date_label(self) -> str:
        """Date rendered as yyyy/mm/dd."""
        return self.entry_date.strftime(DATE_LABEL_FORMAT)

    @property
    def timestamp(self) -> datetime:
        """Full timestamp; date-only entries sit at midnight."""
        return datetime.combine(self.entry_date, self.entry_time or time.min)

    @property
    def month_key(self) -> str:
        return f"{self.entry_date.year:04d}-{self.entry_date.month:02d}"

    @property
    def dedup_key(self) -> tuple[str, int, str]:
        """Identity used to reject duplicate automatic ingestion."""
        return (self.date_label, self.amount, self.memo)

    @property
    def is_income(self) -> bool:
        return self.flow_type == FlowType.INCOME

    @property
    def signed_amount(self) -> int:
        """Income adds, expense subtracts."""
        return self.amount if self.is_income else -self.amount


class EntryUpdate(BaseModel):
    """
    Editable fields of an existing entry.

    Amount and date are immutable once recorded.
    """
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    category: Optional[str] = Field(default=None, max_length=100)
    memo: Optional[str] = Field(default=None, max_length=200)

    @model_validator(mode='after')
    def require_a_change(self) -> 'EntryUpdate':
        if self.category is None and self.memo is None:
            raise ValueError("Nothing to update: give a category or a memo")
        if self.category is not None and not self.category:
            self.category = UNCATEGORIZED
        return self

    @property
    def has_changes(self) -> bool:
        return self.category is not None or self.memo is not None


class PeriodFilter(BaseModel):
    """A calendar year, or a single month within it."""

    year: int = Field(..., ge=1900, le=9999)
    month: Optional[int] = Field(default=None, ge=1, le=12)

    def contains(self, day: date) -> bool:
        if day.year != self.year:
            return False
        return self.month is None or day.month == self.month

    @property
    def label(self) -> str:
        if self.month is None:
            return f"{self.year:04d}"
        return f"{self.year:04d}/{self.month:02d}"


# =============================================================================
# ACCOUNTS & HOUSEHOLD SETTINGS
# =============================================================================

class Account(BaseModel):
    """A configured account; its running balance is always derived."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=100)
    initial_balance: int = Field(
        default=0,
        description="Signed opening balance"
    )


class FixedExpense(BaseModel):
    """A recurring expense recorded automatically on its day of month."""
    model_config = ConfigDict(str_strip_whitespace=True)

    day: int = Field(..., ge=1, le=31, description="Day of month")
    memo: str = Field(default="固定費", min_length=1, max_length=200)
    amount: int = Field(..., gt=0)
    category: str = Field(default=UNCATEGORIZED, max_length=100)
    account: str = Field(default=UNSET_ACCOUNT, max_length=100)

    @field_validator('category', mode='before')
    @classmethod
    def default_category(cls, v: Optional[str]) -> str:
        if v is None or not str(v).strip():
            return UNCATEGORIZED
        return v

    @field_validator('account', mode='before')
    @classmethod
    def default_account(cls, v: Optional[str]) -> str:
        if v is None or not str(v).strip():
            return UNSET_ACCOUNT
        return v


class HouseholdSettings(BaseModel):
    """User-editable settings persisted next to the ledger."""

    monthly_budget: int = Field(
        default=120000,
        description="Monthly spending budget"
    )
    categories: list[str] = Field(
        default_factory=list,
        description="Custom category labels shown even with zero spend"
    )
    fixed_expenses: list[FixedExpense] = Field(default_factory=list)
    accounts: list[Account] = Field(default_factory=list)
    recipient_id: Optional[str] = Field(
        default=None,
        description="Notification recipient for alerts and reports"
    )
    advice_message: Optional[str] = Field(
        default=None,
        description="Most recent advisor message"
    )

    @field_validator('categories', mode='before')
    @classmethod
    def split_categories(cls, v):
        """Accept the comma-separated form the dashboard sends."""
        if isinstance(v, str):
            v = v.split(",")
        return [c.strip() for c in (v or []) if c and c.strip()]

    @model_validator(mode='after')
    def unique_account_names(self) -> 'HouseholdSettings':
        names = [account.name for account in self.accounts]
        if len(names) != len(set(names)):
            raise ValueError("Account names must be unique")
        return self


# =============================================================================
# INBOUND MESSAGES
# =============================================================================

class RawMessage(BaseModel):
    """An inbound notification as delivered by a message source."""

    sender: str = Field(default="", description="From header")
    subject: str = Field(default="")
    body: str = Field(default="", description="Plain-text body")
    timestamp: Optional[datetime] = Field(
        default=None,
        description="When the message was received"
    )
    message_id: Optional[str] = Field(
        default=None,
        description="Source-specific id used to mark it processed"
    )


class CalendarEvent(BaseModel):
    """A calendar event used as a merchant hint."""

    title: str = Field(default="")
    start: datetime
    end: Optional[datetime] = None


class ParsedTransaction(BaseModel):
    """
    Candidate entry extracted from a notification.

    This is PROPOSED data: it still has to pass the dedup guard
    before it reaches the ledger.
    """

    issuer: str = Field(..., description="Rule set that produced it")
    occurred_at: datetime = Field(
        ...,
        description="Transaction time (noon when the source gives only a day)"
    )
    amount: int = Field(..., gt=0)
    memo: str
    merchant: Optional[str] = Field(
        default=None,
        description="Merchant as printed, None when the default label was used"
    )
    category: str = Field(default=UNCATEGORIZED)
    flow_type: FlowType = Field(default=FlowType.EXPENSE)
    account: str = Field(default=UNSET_ACCOUNT)
    is_refund: bool = False

    @property
    def date_label(self) -> str:
        return self.occurred_at.strftime(DATE_LABEL_FORMAT)

    def to_entry(self, origin: OriginMethod = OriginMethod.CARD_AUTO) -> LedgerEntry:
        """Convert to a date-only ledger entry."""
        return LedgerEntry(
            entry_date=self.occurred_at.date(),
            amount=self.amount,
            category=self.category,
            memo=self.memo,
            flow_type=self.flow_type,
            origin=origin,
            account=self.account,
        )
