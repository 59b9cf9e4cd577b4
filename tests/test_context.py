"""Tests for merchant context resolution."""

from datetime import datetime, timedelta

import pytest

from kakeibo.classification import CategoryClassifier
from kakeibo.config import LedgerSettings
from kakeibo.context import (
    ContextResolver,
    apply_hint,
    hint_from_event_title,
    hint_from_mail,
    is_placeholder_merchant,
)
from kakeibo.models import REFUND, CalendarEvent, FlowType, ParsedTransaction, RawMessage
from kakeibo.services.sources import (
    EventSourceInterface,
    InMemoryEventSource,
    InMemoryMessageSource,
    SourceError,
)


PAID_AT = datetime(2026, 2, 21, 12, 0)


class FailingEventSource(EventSourceInterface):
    """Calendar that is always unreachable."""

    async def list_events(self, start, end):
        raise SourceError("calendar unavailable")


def placeholder_candidate(**overrides) -> ParsedTransaction:
    values = dict(
        issuer="smbc",
        occurred_at=PAID_AT,
        amount=9350,
        memo="Mastercard加盟店",
        merchant="Mastercard加盟店",
        account="三井住友カード",
    )
    values.update(overrides)
    return ParsedTransaction(**values)


class TestHints:
    """Tests for the hint helpers."""

    @pytest.mark.parametrize("label,expected", [
        ("Mastercard加盟店", True),
        ("VISA", True),
        ("JCB加盟店", True),
        ("ローソン", False),
        ("", False),
        (None, False),
    ])
    def test_placeholder_detection(self, label, expected):
        assert is_placeholder_merchant(label) is expected

    def test_generic_event_titles_are_ignored(self):
        """Test that titles saying nothing about a shop are skipped."""
        assert hint_from_event_title("予定") is None
        assert hint_from_event_title("todo") is None
        assert hint_from_event_title("a") is None
        assert hint_from_event_title("") is None
        assert hint_from_event_title(" 渋谷でランチ ") == "渋谷でランチ"

    def test_mail_hint_prefers_display_name(self):
        hint = hint_from_mail('"Amazon.co.jp" <auto-confirm@amazon.co.jp>', "ご注文の確認")
        assert hint == "Amazon.co.jp"

    def test_mail_hint_skips_system_senders(self):
        """Test that a system sender name falls back to the subject."""
        hint = hint_from_mail('"Info Center" <info@shop.example>', "ご購入ありがとうございます")
        assert hint == "ご購入ありがとうございます"

    def test_mail_hint_subject_is_truncated(self):
        hint = hint_from_mail("orders@shop.example", "あ" * 40)
        assert hint == "あ" * 30

    def test_mail_hint_too_short(self):
        assert hint_from_mail("noreply@shop.example", "ok") is None


class TestContextResolver:
    """Tests for ContextResolver lookups."""

    @pytest.mark.asyncio
    async def test_calendar_event_wins(self):
        """Test that the first non-generic event title is the hint."""
        events = InMemoryEventSource([
            CalendarEvent(title="予定", start=PAID_AT - timedelta(minutes=30)),
            CalendarEvent(title="渋谷でランチ", start=PAID_AT + timedelta(minutes=30)),
        ])
        messages = InMemoryMessageSource([
            RawMessage(
                sender='"ヨドバシカメラ" <order@yodobashi.example>',
                subject="ご注文ありがとうございます",
                timestamp=PAID_AT,
            ),
        ])
        resolver = ContextResolver(event_source=events, message_source=messages)

        assert await resolver.resolve(PAID_AT) == "渋谷でランチ"
        assert messages.queries == []

    @pytest.mark.asyncio
    async def test_falls_back_to_mail(self):
        """Test the purchase-mail lookup when no event is near."""
        events = InMemoryEventSource([
            CalendarEvent(title="歯医者", start=PAID_AT + timedelta(hours=3)),
        ])
        messages = InMemoryMessageSource([
            RawMessage(
                sender='"ヨドバシカメラ" <order@yodobashi.example>',
                subject="ご注文ありがとうございます",
                timestamp=PAID_AT + timedelta(minutes=20),
            ),
        ])
        resolver = ContextResolver(event_source=events, message_source=messages)

        assert await resolver.resolve(PAID_AT) == "ヨドバシカメラ"
        assert len(messages.queries) == 1
        assert "ご注文" in messages.queries[0]

    @pytest.mark.asyncio
    async def test_mail_outside_window_is_ignored(self):
        messages = InMemoryMessageSource([
            RawMessage(
                sender='"ヨドバシカメラ" <order@yodobashi.example>',
                subject="ご注文ありがとうございます",
                timestamp=PAID_AT + timedelta(minutes=90),
            ),
        ])
        resolver = ContextResolver(message_source=messages)

        assert await resolver.resolve(PAID_AT) is None

    @pytest.mark.asyncio
    async def test_window_is_configurable(self):
        messages = InMemoryMessageSource([
            RawMessage(
                sender='"ヨドバシカメラ" <order@yodobashi.example>',
                subject="ご注文ありがとうございます",
                timestamp=PAID_AT + timedelta(minutes=90),
            ),
        ])
        settings = LedgerSettings(mail_window_minutes=120)
        resolver = ContextResolver(message_source=messages, settings=settings)

        assert await resolver.resolve(PAID_AT) == "ヨドバシカメラ"

    @pytest.mark.asyncio
    async def test_failing_source_is_skipped(self):
        """Test that a lookup failure never fails resolution."""
        messages = InMemoryMessageSource([
            RawMessage(
                sender="orders@shop.example",
                subject="ご購入の確認",
                timestamp=PAID_AT,
            ),
        ])
        resolver = ContextResolver(event_source=FailingEventSource(), message_source=messages)

        assert await resolver.resolve(PAID_AT) == "ご購入の確認"

    @pytest.mark.asyncio
    async def test_no_sources(self):
        assert await ContextResolver().resolve(PAID_AT) is None


class TestApplyHint:
    """Tests for relabelling a candidate with a hint."""

    def test_hint_replaces_memo_and_category(self):
        classifier = CategoryClassifier()
        updated = apply_hint(placeholder_candidate(), "ヨドバシカメラ", classifier)

        assert updated.memo == "ヨドバシカメラ（推定）"
        assert updated.category == "日用品"
        assert updated.amount == 9350

    def test_unclassified_hint_keeps_category(self):
        classifier = CategoryClassifier()
        candidate = placeholder_candidate(category="娯楽")
        updated = apply_hint(candidate, "佐藤さんと打合せ", classifier)

        assert updated.memo == "佐藤さんと打合せ（推定）"
        assert updated.category == "娯楽"

    def test_refund_keeps_prefix_and_category(self):
        """Test that refunds stay refunds after relabelling."""
        classifier = CategoryClassifier()
        candidate = placeholder_candidate(
            memo="【返金】Mastercard加盟店",
            category=REFUND,
            flow_type=FlowType.INCOME,
            is_refund=True,
        )
        updated = apply_hint(candidate, "ヨドバシカメラ", classifier)

        assert updated.memo == "【返金】ヨドバシカメラ（推定）"
        assert updated.category == REFUND
        assert updated.flow_type == FlowType.INCOME
