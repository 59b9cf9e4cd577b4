"""
Data Models Package

This package contains all Pydantic models used by the household ledger.
All data flowing through the system must conform to these schemas.
"""

from kakeibo.models.ledger import (
    DATE_LABEL_FORMAT,
    REFUND,
    REFUND_MEMO_PREFIX,
    UNCATEGORIZED,
    UNSET_ACCOUNT,
    Account,
    CalendarEvent,
    EntryUpdate,
    FixedExpense,
    FlowType,
    HouseholdSettings,
    LedgerEntry,
    OriginMethod,
    ParsedTransaction,
    PeriodFilter,
    RawMessage,
)
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
    rounded_percent,
)
from kakeibo.models.alert import AlertDecision, AlertKind, AlertState
from kakeibo.models.results import (
    IngestionReport,
    OperationResult,
    OperationStatus,
)
from kakeibo.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "DATE_LABEL_FORMAT",
    "REFUND",
    "REFUND_MEMO_PREFIX",
    "UNCATEGORIZED",
    "UNSET_ACCOUNT",
    "Account",
    "CalendarEvent",
    "EntryUpdate",
    "FixedExpense",
    "FlowType",
    "HouseholdSettings",
    "LedgerEntry",
    "OriginMethod",
    "ParsedTransaction",
    "PeriodFilter",
    "RawMessage",
    # Summary models
    "AggregationSnapshot",
    "CategoryChange",
    "CategoryTotal",
    "DailyTotal",
    "FlowEdge",
    "FlowGraph",
    "MonthlyRollup",
    "SpendingAnalysis",
    "YearlyRollup",
    "rounded_percent",
    # Alert models
    "AlertDecision",
    "AlertKind",
    "AlertState",
    # Results
    "IngestionReport",
    "OperationResult",
    "OperationStatus",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
