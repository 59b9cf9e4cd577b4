"""
Audit Logger

DESIGN DECISION: Every ledger mutation and every skipped or failed
ingestion is logged. This provides:
1. A trail for "why is this entry here / why is it missing"
2. Parser tuning material (snippets of unparsed notifications)
3. A history the household can read next to the ledger

The audit logger:
- Never fails the flow that called it (storage errors are logged, not raised)
- Supports correlation IDs so one ingestion run reads as one story
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from kakeibo.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from kakeibo.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer(ensure_ascii=False)
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. The audit storage, when one is configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger()

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_entry_ingested(
        self,
        position: int,
        date_label: str,
        amount: int,
        memo: str,
        issuer: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.entry_ingested(
            position=position,
            date_label=date_label,
            amount=amount,
            memo=memo,
            issuer=issuer,
            correlation_id=correlation_id,
        ))

    async def log_entry_recorded(
        self,
        position: int,
        amount: int,
        memo: str,
        origin: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.entry_recorded(
            position=position,
            amount=amount,
            memo=memo,
            origin=origin,
            correlation_id=correlation_id,
        ))

    async def log_duplicate_skipped(
        self,
        date_label: str,
        amount: int,
        memo: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.duplicate_skipped(
            date_label=date_label,
            amount=amount,
            memo=memo,
            correlation_id=correlation_id,
        ))

    async def log_parse_failed(
        self,
        sender: str,
        subject: str,
        snippet: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Keep the snippet so the rule sets can be tuned later."""
        await self.log(AuditEventBuilder.parse_failed(
            sender=sender,
            subject=subject,
            snippet=snippet,
            correlation_id=correlation_id,
        ))

    async def log_context_resolved(
        self,
        placeholder: str,
        hint: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.context_resolved(
            placeholder=placeholder,
            hint=hint,
            correlation_id=correlation_id,
        ))

    async def log_batch_completed(
        self,
        fetched: int,
        written: int,
        skipped: int,
        unparsed: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.batch_completed(
            fetched=fetched,
            written=written,
            skipped=skipped,
            unparsed=unparsed,
            correlation_id=correlation_id,
        ))

    async def log_entry_updated(
        self,
        position: int,
        changes: dict,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.entry_updated(
            position=position,
            changes=changes,
            correlation_id=correlation_id,
        ))

    async def log_entries_deleted(
        self,
        period_label: str,
        count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.entries_deleted(
            period_label=period_label,
            count=count,
            correlation_id=correlation_id,
        ))

    async def log_fixed_expense_recorded(
        self,
        memo: str,
        amount: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.fixed_expense_recorded(
            memo=memo,
            amount=amount,
            correlation_id=correlation_id,
        ))

    async def log_alert_sent(
        self,
        kind: str,
        month_key: str,
        total_expense: int,
        budget: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.alert_sent(
            kind=kind,
            month_key=month_key,
            total_expense=total_expense,
            budget=budget,
            correlation_id=correlation_id,
        ))

    async def log_report_sent(
        self,
        report_type: str,
        delivered: bool,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.report_sent(
            report_type=report_type,
            delivered=delivered,
            correlation_id=correlation_id,
        ))

    async def log_save_failed(
        self,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.save_failed(
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log external service error."""
        await self.log(AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a run (a batch, a chat message, a scheduled
    job) and pass it through all subsequent operations.
    """
    return uuid4()
