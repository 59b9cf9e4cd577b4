"""
Issuer Rule Sets

DESIGN DECISION: Extraction rules are data, not code paths.

Each card issuer is described by an IssuerRuleSet: how to recognise its
notifications (sender markers + subject keywords) and an ordered list of
extraction variants. A variant is an explicit (predicate, extractor) pair:

- FieldPatternVariant: independent ordered pattern lists for date, amount
  and merchant; each field takes the first pattern that matches
- LinePatternVariant: a single pattern that carries every field at once
  (e.g. the one-line PayPay "利用速報" flash notice)

Supporting a new issuer or a new mail layout means adding a rule set or a
variant here; the parser itself does not change.
"""

import re
from dataclasses import dataclass
from typing import Optional

from kakeibo.models.ledger import RawMessage


# =============================================================================
# PATTERN FRAGMENTS
# =============================================================================

# yyyy/mm/dd, yyyy-mm-dd or yyyy年m月d日, optionally followed by HH:MM
DATE = (
    r"(\d{4}\s*[/\-年]\s*\d{1,2}\s*[/\-月]\s*\d{1,2})日?"
    r"(?:\s*(\d{1,2}[:：]\d{2}))?"
)

# Signed amount with ASCII or full-width digits, commas and minus signs
AMOUNT = r"([-－−]?[0-9０-９][0-9０-９,，]*)"

YEN = r"[\\¥￥]?"

LABEL_SEP = r"\s*[：:・]?\s*"


@dataclass(frozen=True)
class ExtractedFields:
    """Raw field text as captured, before normalisation."""

    date_text: Optional[str] = None
    time_text: Optional[str] = None
    amount_text: Optional[str] = None
    merchant: Optional[str] = None

    @property
    def complete(self) -> bool:
        return bool(self.date_text) and bool(self.amount_text)


def _first_match(text: str, patterns: tuple[re.Pattern, ...]) -> Optional[re.Match]:
    for pattern in patterns:
        match = pattern.search(text)
        if match:
            return match
    return None


def _compile(patterns) -> tuple[re.Pattern, ...]:
    return tuple(re.compile(p) for p in patterns)


@dataclass(frozen=True)
class FieldPatternVariant:
    """Each field resolved independently by its first matching pattern."""

    name: str
    date_patterns: tuple[re.Pattern, ...]
    amount_patterns: tuple[re.Pattern, ...]
    merchant_patterns: tuple[re.Pattern, ...] = ()
    body_keywords: tuple[str, ...] = ()

    @classmethod
    def build(
        cls,
        name: str,
        dates: list[str],
        amounts: list[str],
        merchants: Optional[list[str]] = None,
        body_keywords: tuple[str, ...] = (),
    ) -> "FieldPatternVariant":
        return cls(
            name=name,
            date_patterns=_compile(dates),
            amount_patterns=_compile(amounts),
            merchant_patterns=_compile(merchants or []),
            body_keywords=body_keywords,
        )

    def applies(self, message: RawMessage) -> bool:
        if not self.body_keywords:
            return True
        return any(k in message.body for k in self.body_keywords)

    def extract(self, text: str) -> ExtractedFields:
        date_match = _first_match(text, self.date_patterns)
        amount_match = _first_match(text, self.amount_patterns)
        merchant_match = _first_match(text, self.merchant_patterns)

        time_text = None
        if date_match and date_match.re.groups >= 2:
            time_text = date_match.group(2)

        return ExtractedFields(
            date_text=date_match.group(1) if date_match else None,
            time_text=time_text,
            amount_text=amount_match.group(1) if amount_match else None,
            merchant=merchant_match.group(1) if merchant_match else None,
        )


@dataclass(frozen=True)
class LinePatternVariant:
    """One pattern with named groups: date, amount, and optionally time and merchant."""

    name: str
    pattern: re.Pattern
    body_keywords: tuple[str, ...] = ()

    @classmethod
    def build(
        cls,
        name: str,
        pattern: str,
        body_keywords: tuple[str, ...] = (),
    ) -> "LinePatternVariant":
        return cls(name=name, pattern=re.compile(pattern), body_keywords=body_keywords)

    def applies(self, message: RawMessage) -> bool:
        if not self.body_keywords:
            return True
        return any(k in message.body for k in self.body_keywords)

    def extract(self, text: str) -> ExtractedFields:
        match = self.pattern.search(text)
        if not match:
            return ExtractedFields()
        groups = match.groupdict()
        return ExtractedFields(
            date_text=groups.get("date"),
            time_text=groups.get("time"),
            amount_text=groups.get("amount"),
            merchant=groups.get("merchant"),
        )


@dataclass(frozen=True)
class IssuerRuleSet:
    """
    Recognition and extraction rules for one notification source.

    `default_memo` is used when no merchant resolves; None means "first
    `subject_memo_chars` characters of the subject".
    """

    name: str
    account: str
    variants: tuple
    sender_markers: tuple[str, ...] = ()
    subject_keywords: tuple[str, ...] = ()
    default_memo: Optional[str] = None
    subject_memo_chars: int = 30
    account_markers: tuple[tuple[str, str], ...] = ()
    search_query: Optional[str] = None

    def matches_sender(self, sender: str) -> bool:
        sender = sender.lower()
        return any(marker in sender for marker in self.sender_markers)

    def matches_subject(self, subject: str) -> bool:
        return any(keyword in subject for keyword in self.subject_keywords)

    def matches(self, message: RawMessage) -> bool:
        return self.matches_sender(message.sender) and self.matches_subject(message.subject)

    def account_for(self, sender: str) -> str:
        sender = sender.lower()
        for marker, account in self.account_markers:
            if marker in sender:
                return account
        return self.account

    def fallback_memo(self, subject: str) -> str:
        if self.default_memo is not None:
            return self.default_memo
        return subject.strip()[:self.subject_memo_chars]


# =============================================================================
# BUILT-IN ISSUERS
# =============================================================================

SMBC_RULES = IssuerRuleSet(
    name="smbc",
    account="三井住友カード",
    default_memo="三井住友カード利用",
    sender_markers=("vpass.ne.jp", "smbc-card"),
    subject_keywords=("ご利用", "確認"),
    search_query='from:(vpass.ne.jp OR smbc-card.com) subject:"ご利用"',
    variants=(
        FieldPatternVariant.build(
            name="labelled-fields",
            dates=[
                rf"利用日{LABEL_SEP}{DATE}",
                rf"日時{LABEL_SEP}{DATE}",
                rf"{DATE}\s*にカードの利用",
            ],
            amounts=[
                rf"利用金額{LABEL_SEP}{YEN}{AMOUNT}\s*円?",
                rf"金額{LABEL_SEP}{YEN}{AMOUNT}\s*円",
                rf"[\\¥￥]{AMOUNT}\s*のご利用",
            ],
            merchants=[
                rf"利用店名[・等]*{LABEL_SEP}(.+)",
                rf"利用先{LABEL_SEP}(.+)",
                rf"お店[（(]?名[）)]?{LABEL_SEP}(.+)",
            ],
        ),
    ),
)

PAYPAY_RULES = IssuerRuleSet(
    name="paypay",
    account="PayPayカード",
    default_memo="PayPayカード利用",
    sender_markers=("paypay",),
    subject_keywords=("利用速報", "ご利用", "確認"),
    search_query='from:paypay-card.co.jp (subject:"利用速報" OR subject:"ご利用")',
    variants=(
        # 「PayPayカード ゴールド（Visa）利用速報  ソフトバンク(B) 2026年2月5日 22:53 4,733円」
        LinePatternVariant.build(
            name="flash-notice",
            pattern=(
                r"利用速報\s+(?P<merchant>.+?)\s+"
                r"(?P<date>\d{4}年\d{1,2}月\d{1,2})日\s+"
                r"(?P<time>\d{1,2}:\d{2})\s+"
                r"(?P<amount>[-－−]?[0-9０-９][0-9０-９,，]*)円"
            ),
            body_keywords=("利用速報",),
        ),
        FieldPatternVariant.build(
            name="labelled-fields",
            dates=[
                rf"利用日時?{LABEL_SEP}{DATE}",
            ],
            amounts=[
                rf"利用金額{LABEL_SEP}{YEN}{AMOUNT}\s*円?",
                rf"金額{LABEL_SEP}{YEN}{AMOUNT}",
            ],
            merchants=[
                rf"利用店名等?{LABEL_SEP}(.+)",
                rf"利用先{LABEL_SEP}(.+)",
            ],
        ),
    ),
)

# Cross-issuer fallback for cards without a dedicated rule set
GENERIC_RULES = IssuerRuleSet(
    name="generic",
    account="その他カード",
    default_memo=None,
    subject_keywords=("ご利用", "カード", "お知らせ"),
    account_markers=(
        ("rakuten", "楽天カード"),
        ("aeon", "イオンカード"),
        ("saison", "セゾンカード"),
    ),
    search_query='subject:("カードご利用" OR "カード利用のお知らせ")',
    variants=(
        FieldPatternVariant.build(
            name="loose-fields",
            dates=[DATE],
            amounts=[rf"{YEN}([-－−]?[0-9０-９,，]{{3,}})\s*円"],
            merchants=[rf"(?:利用先|店名|加盟店){LABEL_SEP}(.+)"],
        ),
    ),
)

DEFAULT_RULE_SETS: tuple[IssuerRuleSet, ...] = (SMBC_RULES, PAYPAY_RULES)

# Campaign / newsletter subjects never carry a transaction
DEFAULT_EXCLUSION_KEYWORDS: tuple[str, ...] = (
    "キャンペーン",
    "特典",
    "プレゼント",
    "抽選",
    "エントリー",
    "メールマガジン",
    "メルマガ",
    "ポイント還元",
)
