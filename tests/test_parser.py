"""Tests for notification and chat-shorthand parsing."""

from datetime import datetime

import pytest

from kakeibo.models import REFUND, UNCATEGORIZED, FlowType, RawMessage
from kakeibo.parsing import (
    MessageParser,
    clean_merchant,
    parse_amount,
    parse_date,
    parse_manual_input,
)


SMBC_SENDER = "statement@vpass.ne.jp"
SMBC_SUBJECT = "ご利用のお知らせ【三井住友カード】"


def smbc_message(body: str, subject: str = SMBC_SUBJECT) -> RawMessage:
    return RawMessage(sender=SMBC_SENDER, subject=subject, body=body, message_id="m-1")


@pytest.fixture
def parser():
    return MessageParser()


class TestNormalisation:
    """Tests for the field normalisation helpers."""

    def test_parse_amount_full_width(self):
        """Test full-width digits, commas and minus signs."""
        assert parse_amount("１，２００") == 1200
        assert parse_amount("－500") == -500
        assert parse_amount("9,350円") == 9350

    def test_parse_amount_garbage(self):
        assert parse_amount("") is None
        assert parse_amount(None) is None
        assert parse_amount("abc") is None

    def test_parse_date_formats(self):
        """Test slash, dash and kanji date layouts."""
        assert parse_date("2026/02/21") == datetime(2026, 2, 21, 12, 0)
        assert parse_date("2026-2-1") == datetime(2026, 2, 1, 12, 0)
        assert parse_date("2026年2月5日", "22:53") == datetime(2026, 2, 5, 22, 53)

    def test_parse_date_rejects_impossible_dates(self):
        assert parse_date("2026/02/30") is None
        assert parse_date("2026/13/01") is None
        assert parse_date("2026/02/21", "25:00") is None

    def test_clean_merchant(self):
        assert clean_merchant("  ローソン  ") == "ローソン"
        assert clean_merchant("   ") is None
        assert len(clean_merchant("あ" * 80)) == 50


class TestIssuerNotifications:
    """Tests for issuer-specific notification layouts."""

    def test_smbc_labelled_fields(self, parser):
        """Test a standard SMBC usage notification."""
        body = (
            "いつも三井住友カードをご利用頂きありがとうございます。\n"
            "◇利用日：2026/02/21 12:34\n"
            "◇利用先：Mastercard加盟店\n"
            "◇利用金額：9,350円\n"
        )
        candidate = parser.parse(smbc_message(body))

        assert candidate is not None
        assert candidate.issuer == "smbc"
        assert candidate.date_label == "2026/02/21"
        assert candidate.occurred_at == datetime(2026, 2, 21, 12, 34)
        assert candidate.amount == 9350
        assert candidate.memo == "Mastercard加盟店"
        assert candidate.flow_type == FlowType.EXPENSE

    def test_smbc_plain_labels(self, parser):
        """Test the three-line body without bullet marks."""
        body = "利用日：2026/02/21\n利用金額：9,350円\n利用先：Mastercard加盟店"
        candidate = parser.parse(smbc_message(body))

        assert candidate.date_label == "2026/02/21"
        assert candidate.occurred_at == datetime(2026, 2, 21, 12, 0)
        assert candidate.amount == 9350
        assert candidate.merchant == "Mastercard加盟店"
        assert candidate.memo == "Mastercard加盟店"
        assert candidate.flow_type == FlowType.EXPENSE
        assert candidate.category == UNCATEGORIZED
        assert not candidate.is_refund
        assert candidate.account == "三井住友カード"
        assert not candidate.is_refund

    def test_smbc_refund_becomes_income(self, parser):
        """Test that a negative amount is recorded as a refund."""
        body = (
            "◇利用日：2026/02/21\n"
            "◇利用先：Amazon\n"
            "◇利用金額：-500円\n"
        )
        candidate = parser.parse(smbc_message(body))

        assert candidate is not None
        assert candidate.amount == 500
        assert candidate.flow_type == FlowType.INCOME
        assert candidate.category == REFUND
        assert candidate.memo == "【返金】Amazon"
        assert candidate.is_refund

    def test_smbc_without_merchant_uses_default_memo(self, parser):
        body = "◇利用日：2026/02/21\n◇利用金額：1,000円\n"
        candidate = parser.parse(smbc_message(body))

        assert candidate is not None
        assert candidate.merchant is None
        assert candidate.memo == "三井住友カード利用"

    def test_paypay_flash_notice(self, parser):
        """Test the one-line PayPay flash notice."""
        message = RawMessage(
            sender="paypay-card@mail.paypay-card.co.jp",
            subject="【PayPayカード】利用速報",
            body="PayPayカード ゴールド（Visa）利用速報  ソフトバンク(B) 2026年2月5日 22:53 4,733円",
        )
        candidate = parser.parse(message)

        assert candidate is not None
        assert candidate.issuer == "paypay"
        assert candidate.memo == "ソフトバンク(B)"
        assert candidate.occurred_at == datetime(2026, 2, 5, 22, 53)
        assert candidate.amount == 4733
        assert candidate.category == "通信費"
        assert candidate.account == "PayPayカード"

    def test_generic_fallback(self, parser):
        """Test cards without a dedicated rule set."""
        message = RawMessage(
            sender="info@mail.rakuten-card.co.jp",
            subject="カード利用のお知らせ",
            body="ご利用日 2026/03/01\n加盟店：セブンイレブン\nご利用金額 1,200円\n",
        )
        candidate = parser.parse(message)

        assert candidate is not None
        assert candidate.issuer == "generic"
        assert candidate.amount == 1200
        assert candidate.memo == "セブンイレブン"
        assert candidate.category == "食費"
        assert candidate.account == "楽天カード"


class TestRejections:
    """Tests for messages that must not yield a candidate."""

    def test_campaign_subject_is_excluded(self, parser):
        body = "◇利用日：2026/02/21\n◇利用金額：1,000円\n"
        message = smbc_message(body, subject="【三井住友カード】キャンペーンのご案内")
        assert parser.parse(message) is None

    def test_impossible_date(self, parser):
        """Test that an impossible calendar date yields no candidate."""
        body = "◇利用日：2026/02/30\n◇利用金額：1,000円\n"
        assert parser.parse(smbc_message(body)) is None

    def test_missing_amount(self, parser):
        body = "◇利用日：2026/02/21\n◇利用先：ローソン\n"
        assert parser.parse(smbc_message(body)) is None

    def test_unrelated_mail(self, parser):
        message = RawMessage(sender="friend@example.com", subject="こんにちは", body="元気？")
        assert parser.parse(message) is None

    def test_no_generic_rules(self):
        """Test that disabling the fallback drops unknown issuers."""
        parser = MessageParser(generic=None)
        message = RawMessage(
            sender="info@mail.rakuten-card.co.jp",
            subject="カード利用のお知らせ",
            body="ご利用日 2026/03/01\nご利用金額 1,200円\n",
        )
        assert parser.parse(message) is None
        assert all(rule_set.name != "generic" for rule_set in parser.rule_sets)


class TestManualInput:
    """Tests for the "<memo> <amount>" chat shorthand."""

    def test_ascii(self):
        parsed = parse_manual_input("ランチ 1,200")
        assert parsed.memo == "ランチ"
        assert parsed.amount == 1200

    def test_full_width(self):
        """Test full-width space, digits and the 円 suffix."""
        parsed = parse_manual_input("コンビニ　３５０円")
        assert parsed.memo == "コンビニ"
        assert parsed.amount == 350

    @pytest.mark.parametrize("text", ["ランチ", "", None, "ランチ 0", "1200"])
    def test_not_shorthand(self, text):
        assert parse_manual_input(text) is None
