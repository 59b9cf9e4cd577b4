"""
Flow tests for the orchestrator.

Every collaborator is an in-memory implementation; no network calls.
"""

from datetime import date, datetime, time

import pytest

from kakeibo.agents import ADVISOR_APOLOGY, AdvisorInterface
from kakeibo.audit import AuditLogger
from kakeibo.config import LedgerSettings, Settings
from kakeibo.context import ContextResolver
from kakeibo.models import (
    UNCATEGORIZED,
    AlertKind,
    AlertState,
    AuditEventType,
    CalendarEvent,
    EntryUpdate,
    FixedExpense,
    FlowType,
    HouseholdSettings,
    LedgerEntry,
    OperationStatus,
    OriginMethod,
    RawMessage,
)
from kakeibo.orchestrator import (
    ADVICE_HEADER,
    INVALID_AMOUNT_REPLY,
    MONTHLY_REPORT_HEADER,
    USAGE_GUIDE,
    WEEKLY_REPORT_HEADER,
    AdvisorFlow,
    BudgetAlertFlow,
    FixedExpenseFlow,
    IngestionFlow,
    LedgerFlow,
    ReportFlow,
    create_app_components,
)
from kakeibo.services.notify import InMemoryNotificationChannel
from kakeibo.services.sources import InMemoryEventSource, InMemoryMessageSource, SourceError
from kakeibo.services.storage import (
    InMemoryAuditStorage,
    InMemoryLedgerStore,
    InMemorySettingsStore,
    StorageError,
)


SMBC_SENDER = "statement@vpass.ne.jp"
SMBC_SUBJECT = "ご利用のお知らせ【三井住友カード】"
SMBC_BODY = (
    "◇利用日：2026/02/21 12:34\n"
    "◇利用先：Mastercard加盟店\n"
    "◇利用金額：9,350円\n"
)


def smbc_message(message_id: str = "smbc-1", body: str = SMBC_BODY, subject: str = SMBC_SUBJECT) -> RawMessage:
    return RawMessage(sender=SMBC_SENDER, subject=subject, body=body, message_id=message_id)


def expense(day: date, amount: int, memo: str = "", category: str = "食費") -> LedgerEntry:
    return LedgerEntry(entry_date=day, amount=amount, memo=memo, category=category)


class FailingLedgerStore(InMemoryLedgerStore):
    """Reads work, writes are rejected."""

    async def append(self, entry):
        raise StorageError("sheet is read-only")


class FailingMessageSource(InMemoryMessageSource):

    async def search(self, query, since=None, until=None, max_results=100):
        raise SourceError("mailbox unavailable")


class UnmarkableMessageSource(InMemoryMessageSource):

    async def mark_processed(self, messages):
        raise SourceError("label quota exceeded")


class FakeAdvisor(AdvisorInterface):
    """Records prompts and answers with a fixed text."""

    def __init__(self, answer: str = "節約しましょう"):
        self.answer = answer
        self.prompts: list[str] = []

    async def analyze(self, prompt: str) -> str:
        self.prompts.append(prompt)
        return self.answer


def audit_types(storage: InMemoryAuditStorage) -> list[AuditEventType]:
    return [event.event_type for event in storage.events]


# =============================================================================
# INGESTION
# =============================================================================

class TestIngestionFlow:
    """Tests for automatic ingestion of card notifications."""

    @pytest.mark.asyncio
    async def test_ingest_is_idempotent(self):
        """Test that the same notification is written once."""
        store = InMemoryLedgerStore()
        flow = IngestionFlow(ledger_store=store)

        first = await flow.ingest(smbc_message())
        second = await flow.ingest(smbc_message())

        assert first.status == OperationStatus.OK
        assert first.entry.position == 1
        assert first.entry.origin == OriginMethod.CARD_AUTO
        assert first.entry.memo == "Mastercard加盟店"
        assert second.status == OperationStatus.OK
        assert second.entry is None
        assert second.message == "duplicate"
        assert len(store) == 1

    @pytest.mark.asyncio
    async def test_ingest_without_store(self):
        """Test that a missing store is not reported as an empty message."""
        flow = IngestionFlow()
        result = await flow.ingest(smbc_message())

        assert not flow.is_configured
        assert result.status == OperationStatus.UNCONFIGURED
        assert result.entry is None

    @pytest.mark.asyncio
    async def test_unrelated_message_is_unparsed(self):
        result = await IngestionFlow(ledger_store=InMemoryLedgerStore()).ingest(
            RawMessage(sender="news@shop.example", subject="今週のおすすめ", body="セール開催中")
        )
        assert result.status == OperationStatus.OK
        assert result.entry is None
        assert result.message == "unparsed"

    @pytest.mark.asyncio
    async def test_unresolved_placeholder_keeps_card_label(self):
        """Test a plain SMBC body when no event or mail explains the charge."""
        store = InMemoryLedgerStore()
        resolver = ContextResolver(
            event_source=InMemoryEventSource([
                CalendarEvent(title="歯医者", start=datetime(2026, 2, 22, 18, 0)),
            ]),
            message_source=InMemoryMessageSource(),
        )
        flow = IngestionFlow(ledger_store=store, resolver=resolver)

        result = await flow.ingest(smbc_message(
            body="利用日：2026/02/21\n利用金額：9,350円\n利用先：Mastercard加盟店",
        ))

        entry = result.entry
        assert entry.date_label == "2026/02/21"
        assert entry.amount == 9350
        assert entry.memo == "Mastercard加盟店"
        assert entry.flow_type == FlowType.EXPENSE
        assert entry.category == UNCATEGORIZED
        assert entry.account == "三井住友カード"

    @pytest.mark.asyncio
    async def test_placeholder_merchant_is_resolved(self):
        """Test that a nearby calendar event relabels the entry."""
        store = InMemoryLedgerStore()
        events = InMemoryEventSource([
            CalendarEvent(title="ヨドバシカメラ", start=datetime(2026, 2, 21, 12, 0)),
        ])
        audit_storage = InMemoryAuditStorage()
        flow = IngestionFlow(
            ledger_store=store,
            resolver=ContextResolver(event_source=events),
            audit_logger=AuditLogger(audit_storage),
        )

        entry = (await flow.ingest(smbc_message())).entry

        assert entry.memo == "ヨドバシカメラ（推定）"
        assert entry.category == "日用品"
        assert AuditEventType.CONTEXT_RESOLVED in audit_types(audit_storage)

    @pytest.mark.asyncio
    async def test_relabelled_candidate_is_checked_again(self):
        """Test that an earlier relabelled entry blocks the same mail."""
        store = InMemoryLedgerStore([
            LedgerEntry(entry_date=date(2026, 2, 21), amount=9350, memo="ヨドバシカメラ（推定）"),
        ])
        events = InMemoryEventSource([
            CalendarEvent(title="ヨドバシカメラ", start=datetime(2026, 2, 21, 12, 0)),
        ])
        flow = IngestionFlow(ledger_store=store, resolver=ContextResolver(event_source=events))

        assert (await flow.ingest(smbc_message())).entry is None
        assert len(store) == 1

    @pytest.mark.asyncio
    async def test_run_batch_counts(self):
        """Test counters, processed marks and the audit trail of a batch."""
        store = InMemoryLedgerStore()
        source = InMemoryMessageSource([
            smbc_message("a"),
            smbc_message("b"),
            smbc_message("c", subject="【三井住友カード】キャンペーンのご案内"),
            smbc_message("d", body="◇利用日：2026/02/21\n◇利用先：ローソン\n"),
        ])
        audit_storage = InMemoryAuditStorage()
        flow = IngestionFlow(
            ledger_store=store,
            message_source=source,
            audit_logger=AuditLogger(audit_storage),
        )

        report = await flow.run_batch(since=datetime(2026, 2, 1))

        assert report.status == OperationStatus.OK
        assert (report.fetched, report.written, report.skipped, report.unparsed, report.failed) == (4, 1, 1, 2, 0)
        assert source.processed == {"a", "b", "c", "d"}
        assert len(store) == 1

        types = audit_types(audit_storage)
        assert types.count(AuditEventType.ENTRY_INGESTED) == 1
        assert types.count(AuditEventType.DUPLICATE_SKIPPED) == 1
        # The campaign mail is not a notification, only "d" is reported
        assert types.count(AuditEventType.PARSE_FAILED) == 1
        assert types[-1] == AuditEventType.BATCH_COMPLETED

    @pytest.mark.asyncio
    async def test_rerun_writes_nothing(self):
        store = InMemoryLedgerStore()
        flow = IngestionFlow(ledger_store=store, message_source=InMemoryMessageSource([smbc_message()]))
        await flow.run_batch(since=datetime(2026, 2, 1))

        rerun = IngestionFlow(ledger_store=store, message_source=InMemoryMessageSource([smbc_message()]))
        report = await rerun.run_batch(since=datetime(2026, 2, 1))

        assert report.written == 0
        assert report.skipped == 1
        assert len(store) == 1

    @pytest.mark.asyncio
    async def test_failed_append_is_not_marked_processed(self):
        source = InMemoryMessageSource([smbc_message()])
        flow = IngestionFlow(ledger_store=FailingLedgerStore(), message_source=source)

        report = await flow.run_batch(since=datetime(2026, 2, 1))

        assert report.status == OperationStatus.FAILED
        assert report.failed == 1
        assert source.processed == set()

    @pytest.mark.asyncio
    async def test_mark_processed_failure_is_audited(self):
        """Test that the write stands and the marking error is recorded."""
        store = InMemoryLedgerStore()
        audit_storage = InMemoryAuditStorage()
        flow = IngestionFlow(
            ledger_store=store,
            message_source=UnmarkableMessageSource([smbc_message()]),
            audit_logger=AuditLogger(audit_storage),
        )

        report = await flow.run_batch(since=datetime(2026, 2, 1))

        assert report.written == 1
        assert len(store) == 1
        errors = [e for e in audit_storage.events if e.event_type == AuditEventType.SYSTEM_ERROR]
        assert len(errors) == 1
        assert errors[0].details["issuer"] == "smbc"

    @pytest.mark.asyncio
    async def test_search_failure(self):
        flow = IngestionFlow(ledger_store=InMemoryLedgerStore(), message_source=FailingMessageSource())

        report = await flow.run_batch(since=datetime(2026, 2, 1))

        assert report.status == OperationStatus.FAILED
        assert report.fetched == 0

    @pytest.mark.asyncio
    async def test_run_batch_unconfigured(self):
        report = await IngestionFlow(message_source=InMemoryMessageSource()).run_batch()
        assert report.status == OperationStatus.UNCONFIGURED


# =============================================================================
# MANUAL ENTRIES
# =============================================================================

class TestLedgerFlow:
    """Tests for chat and dashboard entries and edits."""

    @pytest.mark.asyncio
    async def test_chat_message_recorded(self):
        store = InMemoryLedgerStore()
        settings_store = InMemorySettingsStore()
        flow = LedgerFlow(ledger_store=store, settings_store=settings_store)

        reply = await flow.record_chat_message("ランチ 1200", sender_id="U123", today=date(2026, 2, 21))

        assert "記録完了" in reply
        assert "ランチ: 1,200円" in reply
        entries = await store.read_all()
        assert entries[0].category == "食費"
        assert entries[0].origin == OriginMethod.MANUAL
        assert entries[0].entry_date == date(2026, 2, 21)
        assert (await settings_store.load_settings()).recipient_id == "U123"

    @pytest.mark.asyncio
    async def test_chat_guide_and_invalid_amount(self):
        flow = LedgerFlow(ledger_store=InMemoryLedgerStore())

        assert await flow.record_chat_message("こんにちは") == USAGE_GUIDE
        assert await flow.record_chat_message("ランチ 0") == INVALID_AMOUNT_REPLY

    @pytest.mark.asyncio
    async def test_chat_without_store(self):
        reply = await LedgerFlow().record_chat_message("ランチ 1200")
        assert reply.startswith("❌ 記録失敗")

    @pytest.mark.asyncio
    async def test_add_entry_validation(self):
        flow = LedgerFlow(ledger_store=InMemoryLedgerStore())

        missing = await flow.add_entry(memo="", amount=100)
        not_numeric = await flow.add_entry(memo="本", amount="abc")
        negative = await flow.add_entry(memo="本", amount=-5)

        assert missing.status == OperationStatus.INVALID
        assert not_numeric.status == OperationStatus.INVALID
        assert negative.message == "金額は正の数値で入力してください"

    @pytest.mark.asyncio
    async def test_add_entry_from_dashboard(self):
        store = InMemoryLedgerStore()
        flow = LedgerFlow(ledger_store=store)

        result = await flow.add_entry(
            memo="給与",
            amount="３００，０００",
            category="収入",
            entry_date=date(2026, 2, 25),
            account="銀行",
            flow_type=FlowType.INCOME,
        )

        assert result.success
        assert result.entry.amount == 300000
        assert result.entry.origin == OriginMethod.DASHBOARD
        assert result.entry.position == 1
        assert result.message == "給与: ¥300,000 を記録しました"

    @pytest.mark.asyncio
    async def test_add_entry_store_failure(self):
        audit_storage = InMemoryAuditStorage()
        flow = LedgerFlow(ledger_store=FailingLedgerStore(), audit_logger=AuditLogger(audit_storage))

        result = await flow.add_entry(memo="本", amount=1000)

        assert result.status == OperationStatus.FAILED
        assert result.message.startswith("記録に失敗しました")
        assert audit_types(audit_storage) == [AuditEventType.SAVE_FAILED]

    @pytest.mark.asyncio
    async def test_monthly_records_newest_first(self):
        store = InMemoryLedgerStore([
            expense(date(2026, 2, 1), 100, "a"),
            expense(date(2026, 2, 20), 200, "b"),
            expense(date(2026, 3, 1), 300, "c"),
        ])
        result = await LedgerFlow(ledger_store=store).monthly_records(2026, 2)

        assert result.count == 2
        assert [e.memo for e in result.data] == ["b", "a"]

    @pytest.mark.asyncio
    async def test_update_entry(self):
        store = InMemoryLedgerStore([expense(date(2026, 2, 1), 100, "ランチ")])
        flow = LedgerFlow(ledger_store=store)

        ok = await flow.update_entry(1, EntryUpdate(category="交際費"))
        missing = await flow.update_entry(5, EntryUpdate(memo="x"))
        invalid = await flow.update_entry(0, EntryUpdate(memo="x"))

        assert ok.success
        assert (await store.read_all())[0].category == "交際費"
        assert (await store.read_all())[0].amount == 100
        assert missing.status == OperationStatus.INVALID
        assert invalid.status == OperationStatus.INVALID

    @pytest.mark.asyncio
    async def test_delete_period(self):
        store = InMemoryLedgerStore([
            expense(date(2026, 2, 1), 100),
            expense(date(2026, 2, 2), 100),
            expense(date(2026, 3, 1), 100),
        ])
        result = await LedgerFlow(ledger_store=store).delete_period(2026, 2)

        assert result.count == 2
        assert result.message == "2026/02 のデータを 2 件削除しました"
        assert len(store) == 1


# =============================================================================
# REPORTS
# =============================================================================

class TestReportFlow:
    """Tests for dashboard projections."""

    @pytest.mark.asyncio
    async def test_unconfigured_is_not_empty(self):
        """Test that a missing store is distinguishable from an empty ledger."""
        unconfigured = await ReportFlow().dashboard(2026, 2)
        empty = await ReportFlow(InMemoryLedgerStore()).dashboard(2026, 2)

        assert unconfigured.status == OperationStatus.UNCONFIGURED
        assert empty.status == OperationStatus.OK
        assert empty.data.is_empty

    @pytest.mark.asyncio
    async def test_dashboard_uses_household_settings(self):
        store = InMemoryLedgerStore([expense(date(2026, 2, 1), 3000, "ランチ")])
        settings_store = InMemorySettingsStore(HouseholdSettings(
            monthly_budget=50000,
            categories=["食費", "ペット"],
            advice_message="いい調子です",
        ))
        result = await ReportFlow(store, settings_store).dashboard(2026, 2)

        snapshot = result.data
        assert snapshot.budget == 50000
        assert snapshot.remaining_budget == 47000
        assert [row.category for row in snapshot.category_totals] == ["食費", "ペット"]
        assert snapshot.advice_message == "いい調子です"

    @pytest.mark.asyncio
    async def test_flow_graph_and_yearly(self):
        store = InMemoryLedgerStore([expense(date(2026, 2, 1), 3000)])
        flow = ReportFlow(store, InMemorySettingsStore(HouseholdSettings(monthly_budget=50000)))

        graph = await flow.flow_graph(2026, 2)
        yearly = await flow.yearly(2026)

        assert graph.data.source_amount == 50000
        assert yearly.data.total_expense == 3000


# =============================================================================
# SCHEDULED JOBS
# =============================================================================

class TestBudgetAlertFlow:
    """Tests for the daily budget check."""

    @pytest.mark.asyncio
    async def test_alerts_fire_once(self):
        store = InMemoryLedgerStore([expense(date(2026, 2, 1), 8000)])
        settings_store = InMemorySettingsStore(HouseholdSettings(monthly_budget=10000, recipient_id="U1"))
        channel = InMemoryNotificationChannel()
        flow = BudgetAlertFlow(store, settings_store, channel)

        assert await flow.check(date(2026, 2, 21)) == AlertKind.APPROACHING_BUDGET
        assert await flow.check(date(2026, 2, 21)) is None

        await store.append(expense(date(2026, 2, 22), 2000))
        assert await flow.check(date(2026, 2, 22)) == AlertKind.OVER_BUDGET

        assert len(channel.sent) == 2
        assert "予算超過" in channel.sent[1][1]
        assert await settings_store.load_alert_state() == AlertState(
            month_key="2026-02", sent80=True, sent100=True
        )

    @pytest.mark.asyncio
    async def test_no_recipient(self):
        store = InMemoryLedgerStore([expense(date(2026, 2, 1), 9000)])
        settings_store = InMemorySettingsStore(HouseholdSettings(monthly_budget=10000))
        channel = InMemoryNotificationChannel()

        assert await BudgetAlertFlow(store, settings_store, channel).check(date(2026, 2, 21)) is None
        assert channel.sent == []

    @pytest.mark.asyncio
    async def test_configured_recipient_is_the_fallback(self):
        store = InMemoryLedgerStore([expense(date(2026, 2, 1), 9000)])
        settings_store = InMemorySettingsStore(HouseholdSettings(monthly_budget=10000))
        channel = InMemoryNotificationChannel()
        flow = BudgetAlertFlow(store, settings_store, channel, fallback_recipient="U-env")

        assert await flow.check(date(2026, 2, 21)) == AlertKind.APPROACHING_BUDGET
        assert channel.sent[0][0] == "U-env"

    @pytest.mark.asyncio
    async def test_stored_recipient_wins_over_fallback(self):
        store = InMemoryLedgerStore([expense(date(2026, 2, 1), 9000)])
        settings_store = InMemorySettingsStore(HouseholdSettings(monthly_budget=10000, recipient_id="U1"))
        channel = InMemoryNotificationChannel()

        await BudgetAlertFlow(store, settings_store, channel, fallback_recipient="U-env").check(date(2026, 2, 21))
        assert channel.sent[0][0] == "U1"

    @pytest.mark.asyncio
    async def test_zero_budget_disables_alerts(self):
        """Test that an explicit 0 is not replaced by the default budget."""
        store = InMemoryLedgerStore([expense(date(2026, 2, 1), 500000)])
        settings_store = InMemorySettingsStore(HouseholdSettings(monthly_budget=0, recipient_id="U1"))
        channel = InMemoryNotificationChannel()

        assert await BudgetAlertFlow(store, settings_store, channel).check(date(2026, 2, 21)) is None
        assert channel.sent == []
        assert await settings_store.load_alert_state() == AlertState()

    @pytest.mark.asyncio
    async def test_state_saved_when_delivery_fails(self):
        store = InMemoryLedgerStore([expense(date(2026, 2, 1), 9000)])
        settings_store = InMemorySettingsStore(HouseholdSettings(monthly_budget=10000, recipient_id="U1"))
        flow = BudgetAlertFlow(store, settings_store, InMemoryNotificationChannel(accept=False))

        assert await flow.check(date(2026, 2, 21)) == AlertKind.APPROACHING_BUDGET
        assert (await settings_store.load_alert_state()).sent80


class TestFixedExpenseFlow:
    """Tests for scheduled fixed-expense recording."""

    @pytest.fixture
    def settings_store(self):
        return InMemorySettingsStore(HouseholdSettings(
            recipient_id="U1",
            fixed_expenses=[
                FixedExpense(day=25, memo="家賃", amount=80000, category="住居"),
                FixedExpense(day=31, memo="保険", amount=5000),
            ],
        ))

    @pytest.mark.asyncio
    async def test_recorded_once_per_month(self, settings_store):
        store = InMemoryLedgerStore()
        channel = InMemoryNotificationChannel()
        flow = FixedExpenseFlow(store, settings_store, channel)

        recorded = await flow.record_due(datetime(2026, 2, 25, 9, 0))
        again = await flow.record_due(datetime(2026, 2, 25, 21, 0))

        assert [e.memo for e in recorded] == ["家賃"]
        assert recorded[0].fixed
        assert recorded[0].origin == OriginMethod.FIXED_AUTO
        assert recorded[0].entry_time == time(9, 0)
        assert again == []
        assert len(store) == 1
        assert len(channel.sent) == 1
        assert "固定費の自動記録" in channel.sent[0][1]

    @pytest.mark.asyncio
    async def test_month_end_catch_up(self, settings_store):
        """Test that a day-31 item is recorded on the last day of February."""
        store = InMemoryLedgerStore()
        flow = FixedExpenseFlow(store, settings_store)

        recorded = await flow.record_due(datetime(2026, 2, 28, 9, 0))

        assert [e.memo for e in recorded] == ["保険"]

    @pytest.mark.asyncio
    async def test_nothing_due(self, settings_store):
        store = InMemoryLedgerStore()
        assert await FixedExpenseFlow(store, settings_store).record_due(datetime(2026, 2, 10, 9, 0)) == []


class TestAdvisorFlow:
    """Tests for advisor reports and dashboard advice."""

    @pytest.fixture
    def store(self):
        return InMemoryLedgerStore([
            expense(date(2026, 2, 3), 3000, "ランチ"),
            expense(date(2026, 2, 5), 5000, "ダイソー", category="日用品"),
        ])

    @pytest.mark.asyncio
    async def test_analysis_text_fallbacks(self, store):
        advisor = FakeAdvisor()
        today = date(2026, 2, 7)

        assert "GEMINI_API_KEY" in await AdvisorFlow(store).analysis_text(today, weekly=True)
        assert await AdvisorFlow(advisor=advisor).analysis_text(today, weekly=True) == "DBが設定されていません。"
        empty = AdvisorFlow(InMemoryLedgerStore(), advisor=advisor)
        assert await empty.analysis_text(today, weekly=True) == "分析するデータがありません。"
        assert advisor.prompts == []

    @pytest.mark.asyncio
    async def test_weekly_report(self, store):
        advisor = FakeAdvisor()
        channel = InMemoryNotificationChannel()
        settings_store = InMemorySettingsStore(HouseholdSettings(recipient_id="U1"))
        flow = AdvisorFlow(store, settings_store, advisor, channel)

        assert await flow.report(date(2026, 2, 7), weekly=True)

        recipient, text = channel.sent[0]
        assert recipient == "U1"
        assert text.startswith(WEEKLY_REPORT_HEADER)
        assert "節約しましょう" in text
        assert "今週" in advisor.prompts[0]
        assert "8,000円" in advisor.prompts[0]

    @pytest.mark.asyncio
    async def test_monthly_report(self, store):
        channel = InMemoryNotificationChannel()
        settings_store = InMemorySettingsStore(HouseholdSettings(recipient_id="U1"))
        flow = AdvisorFlow(store, settings_store, FakeAdvisor(), channel)

        assert await flow.report(date(2026, 2, 28), weekly=False)
        assert channel.sent[0][1].startswith(MONTHLY_REPORT_HEADER)

    @pytest.mark.asyncio
    async def test_report_without_recipient(self, store):
        flow = AdvisorFlow(store, InMemorySettingsStore(), FakeAdvisor(), InMemoryNotificationChannel())
        assert not await flow.report(date(2026, 2, 7))

    @pytest.mark.asyncio
    async def test_advice_is_stored_and_pushed(self, store):
        advisor = FakeAdvisor("食費を少し抑えましょう")
        channel = InMemoryNotificationChannel()
        settings_store = InMemorySettingsStore(HouseholdSettings(recipient_id="U1"))
        flow = AdvisorFlow(store, settings_store, advisor, channel)

        message = await flow.advise(date(2026, 2, 7))

        assert message.startswith(ADVICE_HEADER)
        assert "食費を少し抑えましょう" in message
        assert (await settings_store.load_settings()).advice_message == message
        assert channel.sent == [("U1", message)]
        assert "2026年2月" in advisor.prompts[0]

    @pytest.mark.asyncio
    async def test_advice_without_advisor(self, store):
        message = await AdvisorFlow(store, InMemorySettingsStore()).advise(date(2026, 2, 7))
        assert ADVISOR_APOLOGY in message


class TestAppComponents:

    @pytest.mark.asyncio
    async def test_without_storage_reports_unconfigured(self):
        components = create_app_components(Settings(), use_storage=False)

        result = await components.reports.dashboard(2026, 2)
        report = await components.ingestion.run_batch()

        assert result.status == OperationStatus.UNCONFIGURED
        assert report.status == OperationStatus.UNCONFIGURED
        assert isinstance(components.ledger, LedgerFlow)

    @pytest.mark.asyncio
    async def test_line_user_id_is_the_fallback_recipient(self, monkeypatch):
        monkeypatch.setenv("LINE_ACCESS_TOKEN", "token")
        monkeypatch.setenv("LINE_USER_ID", "U-env")
        components = create_app_components(Settings(), use_storage=False)

        household = await components.alerts._household()
        assert household.recipient_id == "U-env"
