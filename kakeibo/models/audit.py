"""
Audit Models for Kakeibo

Every ledger mutation and every skipped or failed ingestion is logged as an
audit event. Audit logs are append-only.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Each step of the ingestion pipeline and each scheduled job has its
    own event type.
    """
    # Ingestion
    ENTRY_INGESTED = "entry_ingested"
    DUPLICATE_SKIPPED = "duplicate_skipped"
    PARSE_FAILED = "parse_failed"
    CONTEXT_RESOLVED = "context_resolved"
    BATCH_COMPLETED = "batch_completed"

    # Manual edits
    ENTRY_RECORDED = "entry_recorded"
    ENTRY_UPDATED = "entry_updated"
    ENTRIES_DELETED = "entries_deleted"
    SAVE_FAILED = "save_failed"

    # Scheduled jobs
    FIXED_EXPENSE_RECORDED = "fixed_expense_recorded"
    ALERT_SENT = "alert_sent"
    REPORT_SENT = "report_sent"

    # System events
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """A single audit event."""

    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # What the event is about, e.g. ("entry", "42") or ("period", "2026/02")
    entity_type: Optional[str] = None
    entity_id: Optional[str] = None

    # Ties together every event of one run
    correlation_id: Optional[UUID] = None

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         correlation_id, description, details_json, error_message, is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            self.entity_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, ensure_ascii=False) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.entry_ingested(entry, "smbc", correlation_id)
        event = AuditEventBuilder.duplicate_skipped(entry, correlation_id)
    """

    @staticmethod
    def entry_ingested(
        position: int,
        date_label: str,
        amount: int,
        memo: str,
        issuer: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTRY_INGESTED,
            entity_type="entry",
            entity_id=str(position),
            correlation_id=correlation_id,
            description=f"Entry ingested: {date_label} {memo} ¥{amount:,}",
            details={
                "date": date_label,
                "amount": amount,
                "memo": memo,
                "issuer": issuer,
            },
        )

    @staticmethod
    def entry_recorded(
        position: int,
        amount: int,
        memo: str,
        origin: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTRY_RECORDED,
            entity_type="entry",
            entity_id=str(position),
            correlation_id=correlation_id,
            description=f"Entry recorded from {origin}: {memo} ¥{amount:,}",
            details={
                "amount": amount,
                "memo": memo,
                "origin": origin,
            },
            is_user_action=True,
        )

    @staticmethod
    def duplicate_skipped(
        date_label: str,
        amount: int,
        memo: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DUPLICATE_SKIPPED,
            entity_type="candidate",
            correlation_id=correlation_id,
            description=f"Duplicate skipped: {date_label} {memo} ¥{amount:,}",
            details={
                "date": date_label,
                "amount": amount,
                "memo": memo,
            },
        )

    @staticmethod
    def parse_failed(
        sender: str,
        subject: str,
        snippet: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PARSE_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="message",
            correlation_id=correlation_id,
            description=f"No transaction extracted from: {subject[:80]}",
            details={
                "sender": sender,
                "subject": subject,
                "snippet": snippet,
            },
        )

    @staticmethod
    def context_resolved(
        placeholder: str,
        hint: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CONTEXT_RESOLVED,
            entity_type="candidate",
            correlation_id=correlation_id,
            description=f"Merchant '{placeholder}' relabelled as '{hint}'",
            details={
                "placeholder": placeholder,
                "hint": hint,
            },
        )

    @staticmethod
    def batch_completed(
        fetched: int,
        written: int,
        skipped: int,
        unparsed: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BATCH_COMPLETED,
            entity_type="batch",
            correlation_id=correlation_id,
            description=(
                f"Ingestion batch: {written} written, {skipped} duplicates, "
                f"{unparsed} unparsed of {fetched}"
            ),
            details={
                "fetched": fetched,
                "written": written,
                "skipped": skipped,
                "unparsed": unparsed,
            },
        )

    @staticmethod
    def entry_updated(
        position: int,
        changes: dict,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTRY_UPDATED,
            entity_type="entry",
            entity_id=str(position),
            correlation_id=correlation_id,
            description=f"Entry {position} updated",
            details=changes,
            is_user_action=True,
        )

    @staticmethod
    def entries_deleted(
        period_label: str,
        count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTRIES_DELETED,
            severity=AuditSeverity.WARNING,
            entity_type="period",
            entity_id=period_label,
            correlation_id=correlation_id,
            description=f"Deleted {count} entries for {period_label}",
            details={"count": count},
            is_user_action=True,
        )

    @staticmethod
    def fixed_expense_recorded(
        memo: str,
        amount: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.FIXED_EXPENSE_RECORDED,
            entity_type="fixed_expense",
            correlation_id=correlation_id,
            description=f"Fixed expense recorded: {memo} ¥{amount:,}",
            details={"memo": memo, "amount": amount},
        )

    @staticmethod
    def alert_sent(
        kind: str,
        month_key: str,
        total_expense: int,
        budget: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ALERT_SENT,
            entity_type="alert",
            entity_id=month_key,
            correlation_id=correlation_id,
            description=f"Budget alert '{kind}' for {month_key}",
            details={
                "kind": kind,
                "total_expense": total_expense,
                "budget": budget,
            },
        )

    @staticmethod
    def report_sent(
        report_type: str,
        delivered: bool,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REPORT_SENT,
            severity=AuditSeverity.INFO if delivered else AuditSeverity.WARNING,
            entity_type="report",
            entity_id=report_type,
            correlation_id=correlation_id,
            description=f"{report_type.capitalize()} report {'sent' if delivered else 'not delivered'}",
            details={"delivered": delivered},
        )

    @staticmethod
    def save_failed(
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="entry",
            correlation_id=correlation_id,
            description="Ledger write failed",
            error_message=error_message,
            details=details or {},
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={"service": service},
            correlation_id=correlation_id,
        )
