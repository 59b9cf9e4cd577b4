"""
Main Orchestrator for Kakeibo

This module ties together all the components and defines the
end-to-end flows for:
1. Ingestion (notification → parse → resolve context → dedup → append)
2. Manual entries and edits (chat shorthand, dashboard form)
3. Reports (monthly snapshot, flow graph, yearly rollup)
4. Scheduled jobs (budget alerts, fixed expenses, advisor reports)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Parsing and context resolution never fail a run
- Nothing automatic reaches the ledger without passing the dedup guard
- A missing ledger store is reported as UNCONFIGURED, not as "empty"
- Every mutation is audited
"""

import calendar
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Optional, Union
from uuid import UUID
from zoneinfo import ZoneInfo

import structlog

from kakeibo.agents import (
    ADVISOR_APOLOGY,
    AdvisorInterface,
    GeminiAdvisor,
    build_advice_prompt,
    build_analysis_prompt,
)
from kakeibo.aggregation import AggregationEngine
from kakeibo.alerts import BudgetAlertMachine
from kakeibo.audit import AuditLogger, create_correlation_id
from kakeibo.classification import CategoryClassifier
from kakeibo.config import LedgerSettings, Settings, get_settings
from kakeibo.context import ContextResolver, apply_hint, is_placeholder_merchant
from kakeibo.models.alert import AlertKind
from kakeibo.models.ledger import (
    EntryUpdate,
    FlowType,
    HouseholdSettings,
    LedgerEntry,
    OriginMethod,
    ParsedTransaction,
    PeriodFilter,
    RawMessage,
)
from kakeibo.models.results import IngestionReport, OperationResult, OperationStatus
from kakeibo.parsing import MANUAL_INPUT_PATTERN, MessageParser, parse_amount, parse_manual_input
from kakeibo.services.notify import LineNotificationChannel, NotificationChannelInterface
from kakeibo.services.sources import (
    EventSourceInterface,
    GmailMessageSource,
    GoogleCalendarEventSource,
    MessageSourceInterface,
)
from kakeibo.services.storage import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsLedgerStore,
    GoogleSheetsSettingsStore,
    LedgerStoreInterface,
    SettingsStoreInterface,
)
from kakeibo.validation import DeduplicationGuard, FixedExpenseGuard

logger = structlog.get_logger()


USAGE_GUIDE = (
    "📝 使い方ガイド\n\n"
    "「品名 金額」の形式で送ってね！\n\n"
    "✅ 例：\n・ランチ 1200\n・コンビニ 350\n・電車代 500"
)
INVALID_AMOUNT_REPLY = "❌ 金額を正しく読み取れませんでした。"

WEEKLY_REPORT_HEADER = "📊 週次データ分析レポート"
MONTHLY_REPORT_HEADER = "📈 月次データ分析レポート"
ADVICE_HEADER = "🤖 【AI家計アドバイス】"
ADVICE_FOOTER = "※このメッセージはAIが作成しました✨"


def local_now(timezone: str) -> datetime:
    """Wall-clock time in the ledger's timezone, without tzinfo."""
    return datetime.now(ZoneInfo(timezone)).replace(tzinfo=None)


class IngestOutcome(str, Enum):
    WRITTEN = "written"
    DUPLICATE = "duplicate"
    UNPARSED = "unparsed"


class IngestionFlow:
    """
    Orchestrates automatic ingestion of card notifications.

    Flow per message:
    1. Parse → candidate (or nothing)
    2. Duplicate check on the parsed candidate
    3. Placeholder merchant → context resolution → relabel
    4. Duplicate check on the relabelled candidate
    5. Append → register in the run's guard

    A failed run is safe to re-run: everything already appended is seen
    by the guard next time.
    """

    def __init__(
        self,
        ledger_store: Optional[LedgerStoreInterface] = None,
        message_source: Optional[MessageSourceInterface] = None,
        parser: Optional[MessageParser] = None,
        resolver: Optional[ContextResolver] = None,
        classifier: Optional[CategoryClassifier] = None,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[LedgerSettings] = None,
    ):
        self._settings = settings or LedgerSettings()
        self._store = ledger_store
        self._source = message_source
        self._classifier = classifier or CategoryClassifier()
        self._parser = parser or MessageParser(
            classifier=self._classifier,
            snippet_chars=self._settings.parse_failure_snippet_chars,
        )
        self._resolver = resolver
        self._audit_logger = audit_logger

    @property
    def is_configured(self) -> bool:
        return self._store is not None

    async def ingest(
        self,
        message: RawMessage,
        guard: Optional[DeduplicationGuard] = None,
        correlation_id: Optional[UUID] = None,
    ) -> OperationResult:
        """
        Ingest a single notification.

        Returns:
            UNCONFIGURED without a ledger store. Otherwise OK, with the
            appended entry (carrying its position) in `entry`, or no entry
            and the outcome ("duplicate", "unparsed") in `message`.

        Raises:
            StorageError: if the ledger store rejects the append
        """
        if self._store is None:
            logger.warning("ingest_skipped", reason="ledger store not configured")
            return OperationResult.unconfigured()

        correlation_id = correlation_id or create_correlation_id()
        if guard is None:
            guard = DeduplicationGuard(await self._store.read_all())

        outcome, entry = await self._ingest_one(message, guard, correlation_id)
        return OperationResult(status=OperationStatus.OK, message=outcome.value, entry=entry)

    async def _ingest_one(
        self,
        message: RawMessage,
        guard: DeduplicationGuard,
        correlation_id: UUID,
    ) -> tuple[IngestOutcome, Optional[LedgerEntry]]:
        candidate = self._parser.parse(message)
        if candidate is None:
            if self._audit_logger and self._looks_like_notification(message):
                await self._audit_logger.log_parse_failed(
                    sender=message.sender,
                    subject=message.subject,
                    snippet=self._parser.snippet(message.body),
                    correlation_id=correlation_id,
                )
            return IngestOutcome.UNPARSED, None

        if guard.is_duplicate(candidate):
            await self._log_duplicate(candidate, correlation_id)
            return IngestOutcome.DUPLICATE, None

        candidate = await self._resolve_context(candidate, correlation_id)
        if guard.is_duplicate(candidate):
            await self._log_duplicate(candidate, correlation_id)
            return IngestOutcome.DUPLICATE, None

        entry = candidate.to_entry(OriginMethod.CARD_AUTO)
        position = await self._store.append(entry)
        guard.register(entry)
        entry = entry.model_copy(update={"position": position})

        if self._audit_logger:
            await self._audit_logger.log_entry_ingested(
                position=position,
                date_label=entry.date_label,
                amount=entry.amount,
                memo=entry.memo,
                issuer=candidate.issuer,
                correlation_id=correlation_id,
            )
        return IngestOutcome.WRITTEN, entry

    def _looks_like_notification(self, message: RawMessage) -> bool:
        return (
            not self._parser.is_excluded(message.subject)
            and self._parser.select_rule_set(message) is not None
        )

    async def _resolve_context(
        self,
        candidate: ParsedTransaction,
        correlation_id: UUID,
    ) -> ParsedTransaction:
        if self._resolver is None or not is_placeholder_merchant(candidate.merchant):
            return candidate

        hint = await self._resolver.resolve(candidate.occurred_at)
        if not hint:
            return candidate

        resolved = apply_hint(candidate, hint, self._classifier)
        if self._audit_logger:
            await self._audit_logger.log_context_resolved(
                placeholder=candidate.merchant,
                hint=hint,
                correlation_id=correlation_id,
            )
        return resolved

    async def _log_duplicate(self, candidate: ParsedTransaction, correlation_id: UUID) -> None:
        if self._audit_logger:
            await self._audit_logger.log_duplicate_skipped(
                date_label=candidate.date_label,
                amount=candidate.amount,
                memo=candidate.memo,
                correlation_id=correlation_id,
            )

    async def run_batch(
        self,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
        correlation_id: Optional[UUID] = None,
    ) -> IngestionReport:
        """
        Search every issuer query and ingest what is found.

        The ledger snapshot is read once. Each query is capped at
        `ingest_batch_size` messages and its messages are marked processed
        right after they are handled, so an interrupted run resumes where
        it stopped. Messages whose append failed are left unmarked.
        """
        if self._store is None or self._source is None:
            return IngestionReport(status=OperationStatus.UNCONFIGURED)

        correlation_id = correlation_id or create_correlation_id()
        if since is None:
            since = local_now(self._settings.timezone) - timedelta(days=self._settings.ingest_lookback_days)

        report = IngestionReport()
        guard = DeduplicationGuard(await self._store.read_all())
        seen: set[str] = set()

        for rule_set in self._parser.rule_sets:
            if not rule_set.search_query:
                continue
            try:
                messages = await self._source.search(
                    rule_set.search_query,
                    since=since,
                    until=until,
                    max_results=self._settings.ingest_batch_size,
                )
            except Exception as e:
                report.status = OperationStatus.FAILED
                logger.error("message_search_failed", issuer=rule_set.name, error=str(e))
                if self._audit_logger:
                    await self._audit_logger.log_external_service_error(
                        service="message_source",
                        error_message=str(e),
                        correlation_id=correlation_id,
                    )
                continue

            handled = []
            for message in messages:
                if message.message_id:
                    if message.message_id in seen:
                        continue
                    seen.add(message.message_id)
                report.fetched += 1

                try:
                    outcome, _ = await self._ingest_one(message, guard, correlation_id)
                except Exception as e:
                    report.failed += 1
                    report.status = OperationStatus.FAILED
                    if self._audit_logger:
                        await self._audit_logger.log_save_failed(
                            error_message=str(e),
                            details={"subject": message.subject},
                            correlation_id=correlation_id,
                        )
                    continue

                handled.append(message)
                if outcome == IngestOutcome.WRITTEN:
                    report.written += 1
                elif outcome == IngestOutcome.DUPLICATE:
                    report.skipped += 1
                else:
                    report.unparsed += 1

            if handled:
                try:
                    await self._source.mark_processed(handled)
                except Exception as e:
                    logger.error("mark_processed_failed", issuer=rule_set.name, error=str(e))
                    if self._audit_logger:
                        await self._audit_logger.log_error(
                            error_type="mark_processed_failed",
                            error_message=str(e),
                            details={"issuer": rule_set.name, "messages": len(handled)},
                            correlation_id=correlation_id,
                        )

        logger.info(
            "ingestion_batch_completed",
            fetched=report.fetched,
            written=report.written,
            skipped=report.skipped,
            unparsed=report.unparsed,
            failed=report.failed,
        )
        if self._audit_logger:
            await self._audit_logger.log_batch_completed(
                fetched=report.fetched,
                written=report.written,
                skipped=report.skipped,
                unparsed=report.unparsed,
                correlation_id=correlation_id,
            )
        return report


class LedgerFlow:
    """
    Manual entries and edits.

    Chat shorthand and the dashboard form both end up in add_entry; edits
    may only touch category and memo.
    """

    def __init__(
        self,
        ledger_store: Optional[LedgerStoreInterface] = None,
        settings_store: Optional[SettingsStoreInterface] = None,
        classifier: Optional[CategoryClassifier] = None,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[LedgerSettings] = None,
    ):
        self._store = ledger_store
        self._settings_store = settings_store
        self._classifier = classifier or CategoryClassifier()
        self._audit_logger = audit_logger
        self._settings = settings or LedgerSettings()

    async def record_chat_message(
        self,
        text: str,
        sender_id: Optional[str] = None,
        today: Optional[date] = None,
    ) -> str:
        """Record "<memo> <amount>" and return the reply text."""
        if sender_id and self._settings_store is not None:
            try:
                await self._settings_store.save_recipient(sender_id)
            except Exception as e:
                logger.warning("recipient_save_failed", error=str(e))

        text = (text or "").strip()
        if not MANUAL_INPUT_PATTERN.match(text):
            return USAGE_GUIDE

        manual = parse_manual_input(text)
        if manual is None:
            return INVALID_AMOUNT_REPLY

        result = await self.add_entry(
            memo=manual.memo,
            amount=manual.amount,
            origin=OriginMethod.MANUAL,
            entry_date=today,
        )
        if not result.success:
            return f"❌ 記録失敗: {result.message}"
        return (
            "✅ 記録完了！\n"
            f"📦 {manual.memo}: {manual.amount:,}円\n"
            "家計簿にバッチリ追記しました🧾"
        )

    async def add_entry(
        self,
        memo: Optional[str],
        amount: Union[int, str, None],
        category: Optional[str] = None,
        entry_date: Optional[date] = None,
        account: Optional[str] = None,
        flow_type: FlowType = FlowType.EXPENSE,
        origin: OriginMethod = OriginMethod.DASHBOARD,
        correlation_id: Optional[UUID] = None,
    ) -> OperationResult:
        """
        Validate and append one manual entry.

        A missing category is inferred from the memo.
        """
        if self._store is None:
            return OperationResult.unconfigured()

        memo = (memo or "").strip()
        if not memo or amount in (None, ""):
            return OperationResult(
                status=OperationStatus.INVALID,
                message="品名と金額を入力してください",
            )

        value = amount if isinstance(amount, int) else parse_amount(str(amount))
        if value is None or value <= 0:
            return OperationResult(
                status=OperationStatus.INVALID,
                message="金額は正の数値で入力してください",
            )

        entry = LedgerEntry(
            entry_date=entry_date or local_now(self._settings.timezone).date(),
            amount=value,
            category=category or self._classifier.classify(memo),
            memo=memo,
            flow_type=flow_type,
            origin=origin,
            account=account,
        )

        correlation_id = correlation_id or create_correlation_id()
        try:
            position = await self._store.append(entry)
        except Exception as e:
            logger.error("entry_save_failed", memo=memo, error=str(e))
            if self._audit_logger:
                await self._audit_logger.log_save_failed(
                    error_message=str(e),
                    details={"memo": memo, "amount": value},
                    correlation_id=correlation_id,
                )
            return OperationResult(
                status=OperationStatus.FAILED,
                message=f"記録に失敗しました: {e}",
            )

        entry = entry.model_copy(update={"position": position})
        if self._audit_logger:
            await self._audit_logger.log_entry_recorded(
                position=position,
                amount=value,
                memo=memo,
                origin=origin.value,
                correlation_id=correlation_id,
            )
        return OperationResult(
            status=OperationStatus.OK,
            message=f"{memo}: ¥{value:,} を記録しました",
            entry=entry,
        )

    async def monthly_records(self, year: int, month: int) -> OperationResult:
        """Entries of one month, newest date first."""
        if self._store is None:
            return OperationResult.unconfigured()

        entries = await self._store.read_all(PeriodFilter(year=year, month=month))
        entries = sorted(entries, key=lambda e: e.entry_date, reverse=True)
        return OperationResult(
            status=OperationStatus.OK,
            count=len(entries),
            data=entries,
        )

    async def update_entry(
        self,
        position: int,
        update: EntryUpdate,
        correlation_id: Optional[UUID] = None,
    ) -> OperationResult:
        """
        Change category and/or memo of an entry.

        Positions shift after a period delete; reload before editing.
        """
        if self._store is None:
            return OperationResult.unconfigured()
        if position < 1:
            return OperationResult(
                status=OperationStatus.INVALID,
                message=f"Invalid position: {position}",
            )

        if not await self._store.update(position, update):
            return OperationResult(
                status=OperationStatus.INVALID,
                message=f"No entry at position {position}",
            )

        if self._audit_logger:
            await self._audit_logger.log_entry_updated(
                position=position,
                changes=update.model_dump(exclude_none=True),
                correlation_id=correlation_id,
            )
        return OperationResult(status=OperationStatus.OK, message="更新しました")

    async def delete_period(
        self,
        year: int,
        month: Optional[int] = None,
        correlation_id: Optional[UUID] = None,
    ) -> OperationResult:
        """Delete every entry of a year or a month."""
        if self._store is None:
            return OperationResult.unconfigured()

        period = PeriodFilter(year=year, month=month)
        count = await self._store.delete(period)
        if self._audit_logger:
            await self._audit_logger.log_entries_deleted(
                period_label=period.label,
                count=count,
                correlation_id=correlation_id,
            )
        return OperationResult(
            status=OperationStatus.OK,
            message=f"{period.label} のデータを {count} 件削除しました",
            count=count,
        )


class _LedgerReader:
    """Shared loading of entries and household settings."""

    def __init__(
        self,
        ledger_store: Optional[LedgerStoreInterface],
        settings_store: Optional[SettingsStoreInterface],
        settings: Optional[LedgerSettings],
        fallback_recipient: Optional[str] = None,
    ):
        self._store = ledger_store
        self._settings_store = settings_store
        self._settings = settings or LedgerSettings()
        self._fallback_recipient = fallback_recipient

    async def _household(self) -> HouseholdSettings:
        """Stored settings; the recipient falls back to the configured one."""
        if self._settings_store is None:
            household = HouseholdSettings(monthly_budget=self._settings.default_monthly_budget)
        else:
            household = await self._settings_store.load_settings()

        if not household.recipient_id and self._fallback_recipient:
            household = household.model_copy(update={"recipient_id": self._fallback_recipient})
        return household

    def _budget(self, household: HouseholdSettings) -> int:
        # An explicit 0 disables alerts; the stores apply the default
        return household.monthly_budget

    def _engine(self, household: HouseholdSettings) -> AggregationEngine:
        return AggregationEngine(
            accounts=household.accounts,
            recent_limit=self._settings.recent_entries_limit,
        )


class ReportFlow(_LedgerReader):
    """Dashboard projections over the full ledger."""

    def __init__(
        self,
        ledger_store: Optional[LedgerStoreInterface] = None,
        settings_store: Optional[SettingsStoreInterface] = None,
        settings: Optional[LedgerSettings] = None,
    ):
        super().__init__(ledger_store, settings_store, settings)

    async def dashboard(self, year: int, month: int) -> OperationResult:
        if self._store is None:
            return OperationResult.unconfigured()

        household = await self._household()
        entries = await self._store.read_all()
        snapshot = self._engine(household).aggregate(
            entries,
            year,
            month,
            budget=self._budget(household),
            custom_categories=household.categories,
            advice_message=household.advice_message,
        )
        return OperationResult(status=OperationStatus.OK, data=snapshot)

    async def flow_graph(self, year: int, month: int) -> OperationResult:
        if self._store is None:
            return OperationResult.unconfigured()

        household = await self._household()
        entries = await self._store.read_all()
        graph = self._engine(household).flow_graph(entries, year, month, self._budget(household))
        return OperationResult(status=OperationStatus.OK, data=graph)

    async def yearly(self, year: int) -> OperationResult:
        if self._store is None:
            return OperationResult.unconfigured()

        household = await self._household()
        entries = await self._store.read_all()
        rollup = self._engine(household).yearly_rollup(entries, year)
        return OperationResult(status=OperationStatus.OK, data=rollup)


class BudgetAlertFlow(_LedgerReader):
    """
    Daily budget check.

    Alert flags are persisted even when delivery fails, so each threshold
    is attempted once per month.
    """

    def __init__(
        self,
        ledger_store: Optional[LedgerStoreInterface] = None,
        settings_store: Optional[SettingsStoreInterface] = None,
        channel: Optional[NotificationChannelInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[LedgerSettings] = None,
        fallback_recipient: Optional[str] = None,
    ):
        super().__init__(ledger_store, settings_store, settings, fallback_recipient)
        self._channel = channel
        self._audit_logger = audit_logger

    async def check(self, today: Optional[date] = None) -> Optional[AlertKind]:
        if self._store is None or self._settings_store is None:
            return None

        household = await self._household()
        if not household.recipient_id:
            logger.info("budget_alert_skipped", reason="no recipient")
            return None

        today = today or local_now(self._settings.timezone).date()
        budget = self._budget(household)
        entries = await self._store.read_all()
        snapshot = self._engine(household).aggregate(entries, today.year, today.month, budget=budget)

        machine = BudgetAlertMachine(await self._settings_store.load_alert_state())
        decision = machine.evaluate(snapshot, budget)

        if decision.alert is not None:
            if self._channel is not None:
                await self._channel.send(
                    household.recipient_id,
                    machine.message_for(decision, snapshot, budget),
                )
            if self._audit_logger:
                await self._audit_logger.log_alert_sent(
                    kind=decision.alert.value,
                    month_key=snapshot.month_key,
                    total_expense=snapshot.total_expense,
                    budget=budget,
                )

        if decision.state_changed:
            await self._settings_store.save_alert_state(decision.new_state)
        return decision.alert


class FixedExpenseFlow(_LedgerReader):
    """
    Records configured fixed expenses on their day of month.

    On the last day of a month, items set for a later day (e.g. the 31st
    in a 30-day month) are recorded too.
    """

    def __init__(
        self,
        ledger_store: Optional[LedgerStoreInterface] = None,
        settings_store: Optional[SettingsStoreInterface] = None,
        channel: Optional[NotificationChannelInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[LedgerSettings] = None,
        fallback_recipient: Optional[str] = None,
    ):
        super().__init__(ledger_store, settings_store, settings, fallback_recipient)
        self._channel = channel
        self._audit_logger = audit_logger

    async def record_due(self, now: Optional[datetime] = None) -> list[LedgerEntry]:
        if self._store is None or self._settings_store is None:
            return []

        now = now or local_now(self._settings.timezone)
        today = now.date()
        household = await self._household()

        last_day = calendar.monthrange(today.year, today.month)[1]
        due = [
            item for item in household.fixed_expenses
            if item.day == today.day or (today.day == last_day and item.day > today.day)
        ]
        if not due:
            return []

        guard = FixedExpenseGuard(await self._store.read_all(), today.year, today.month)
        recorded = []
        for item in due:
            if guard.is_recorded(item):
                continue
            entry = LedgerEntry(
                entry_date=today,
                entry_time=now.time().replace(microsecond=0),
                amount=item.amount,
                category=item.category,
                memo=item.memo,
                flow_type=FlowType.EXPENSE,
                origin=OriginMethod.FIXED_AUTO,
                account=item.account,
                fixed=True,
            )
            position = await self._store.append(entry)
            guard.register(entry)
            recorded.append(entry.model_copy(update={"position": position}))
            if self._audit_logger:
                await self._audit_logger.log_fixed_expense_recorded(memo=item.memo, amount=item.amount)

        if recorded and household.recipient_id and self._channel is not None:
            lines = "\n".join(f"・{e.memo} ({e.amount:,}円)" for e in recorded)
            await self._channel.send(
                household.recipient_id,
                "🤖 【固定費の自動記録】\n\n"
                "本日設定されていた以下の固定費を記録しました！\n\n"
                f"{lines}\n\n"
                "※すでに同じ記録がある場合はスキップされています。",
            )
        return recorded


class AdvisorFlow(_LedgerReader):
    """
    Weekly/monthly analysis reports and the short dashboard advice.

    The advisor only sees figures computed by the aggregation engine.
    """

    def __init__(
        self,
        ledger_store: Optional[LedgerStoreInterface] = None,
        settings_store: Optional[SettingsStoreInterface] = None,
        advisor: Optional[AdvisorInterface] = None,
        channel: Optional[NotificationChannelInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[LedgerSettings] = None,
        fallback_recipient: Optional[str] = None,
    ):
        super().__init__(ledger_store, settings_store, settings, fallback_recipient)
        self._advisor = advisor
        self._channel = channel
        self._audit_logger = audit_logger

    async def analysis_text(self, today: date, weekly: bool) -> str:
        if self._advisor is None:
            return "AI分析機能が有効ではありません（GEMINI_API_KEY未設定）。"
        if self._store is None:
            return "DBが設定されていません。"

        entries = await self._store.read_all()
        if not entries:
            return "分析するデータがありません。"

        household = await self._household()
        analysis = self._engine(household).period_comparison(
            entries, today, weekly, self._budget(household)
        )
        return await self._advisor.analyze(build_analysis_prompt(analysis))

    async def report(self, today: Optional[date] = None, weekly: bool = True) -> bool:
        """Push a weekly or monthly analysis; False when nothing was delivered."""
        household = await self._household()
        if not household.recipient_id or self._channel is None:
            logger.warning("report_skipped", weekly=weekly, reason="no recipient")
            return False

        today = today or local_now(self._settings.timezone).date()
        header = WEEKLY_REPORT_HEADER if weekly else MONTHLY_REPORT_HEADER
        text = await self.analysis_text(today, weekly)
        delivered = await self._channel.send(household.recipient_id, f"{header}\n\n{text}")

        if self._audit_logger:
            await self._audit_logger.log_report_sent(
                report_type="weekly" if weekly else "monthly",
                delivered=delivered,
            )
        return delivered

    async def advise(self, today: Optional[date] = None) -> Optional[str]:
        """Generate, store and push the current month's advice."""
        if self._store is None:
            return None

        today = today or local_now(self._settings.timezone).date()
        household = await self._household()
        entries = await self._store.read_all()
        snapshot = self._engine(household).aggregate(
            entries, today.year, today.month, budget=self._budget(household)
        )

        if self._advisor is None:
            text = ADVISOR_APOLOGY
        else:
            text = await self._advisor.analyze(build_advice_prompt(snapshot))
        message = f"{ADVICE_HEADER}\n\n{text}\n\n{ADVICE_FOOTER}"

        if self._settings_store is not None:
            await self._settings_store.save_advice(message)
        if household.recipient_id and self._channel is not None:
            delivered = await self._channel.send(household.recipient_id, message)
            if self._audit_logger:
                await self._audit_logger.log_report_sent(report_type="advice", delivered=delivered)
        return message


@dataclass
class AppComponents:
    """Every flow, wired against the same collaborators."""

    ingestion: IngestionFlow
    ledger: LedgerFlow
    reports: ReportFlow
    alerts: BudgetAlertFlow
    fixed_expenses: FixedExpenseFlow
    advisor: AdvisorFlow


def _optional(name: str, factory):
    """Build a collaborator, or None when its configuration is missing."""
    try:
        return factory()
    except Exception as e:
        logger.warning("collaborator_not_configured", collaborator=name, error=str(e))
        return None


def create_app_components(
    settings: Optional[Settings] = None,
    use_storage: bool = True,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        settings: Root settings; defaults to the cached environment settings.
        use_storage: Whether to initialize Google Sheets storage.
                    Set to False for testing without storage.

    Collaborators whose configuration is missing are left out; the flows
    that need them report UNCONFIGURED instead of raising.
    """
    settings = settings or get_settings()
    ledger_settings = settings.ledger

    ledger_store = None
    settings_store = None
    audit_logger = AuditLogger()  # Local-only logging until storage is up

    if use_storage:
        client = _optional("google_sheets", lambda: GoogleSheetsClient(settings.google_sheets))
        if client is not None:
            try:
                client.get_spreadsheet()
                ledger_store = GoogleSheetsLedgerStore(client)
                settings_store = GoogleSheetsSettingsStore(
                    client, default_budget=ledger_settings.default_monthly_budget
                )
                audit_logger = AuditLogger(GoogleSheetsAuditStorage(client))
            except Exception as e:
                logger.warning("storage_not_configured", error=str(e))
                ledger_store = None
                settings_store = None

    message_source: Optional[MessageSourceInterface] = _optional(
        "gmail", lambda: GmailMessageSource(settings.gmail, ledger_settings.timezone)
    )
    event_source: Optional[EventSourceInterface] = _optional(
        "calendar", lambda: GoogleCalendarEventSource(settings.gmail, ledger_settings.timezone)
    )
    line_settings = _optional("line", lambda: settings.line)
    channel = LineNotificationChannel(line_settings) if line_settings else None
    fallback_recipient = line_settings.user_id if line_settings else None
    advisor = _optional("gemini", lambda: GeminiAdvisor(settings.gemini))

    classifier = CategoryClassifier()
    resolver = ContextResolver(event_source, message_source, ledger_settings)

    return AppComponents(
        ingestion=IngestionFlow(
            ledger_store=ledger_store,
            message_source=message_source,
            resolver=resolver,
            classifier=classifier,
            audit_logger=audit_logger,
            settings=ledger_settings,
        ),
        ledger=LedgerFlow(
            ledger_store=ledger_store,
            settings_store=settings_store,
            classifier=classifier,
            audit_logger=audit_logger,
            settings=ledger_settings,
        ),
        reports=ReportFlow(ledger_store, settings_store, ledger_settings),
        alerts=BudgetAlertFlow(
            ledger_store, settings_store, channel, audit_logger, ledger_settings,
            fallback_recipient=fallback_recipient,
        ),
        fixed_expenses=FixedExpenseFlow(
            ledger_store, settings_store, channel, audit_logger, ledger_settings,
            fallback_recipient=fallback_recipient,
        ),
        advisor=AdvisorFlow(
            ledger_store, settings_store, advisor, channel, audit_logger, ledger_settings,
            fallback_recipient=fallback_recipient,
        ),
    )
