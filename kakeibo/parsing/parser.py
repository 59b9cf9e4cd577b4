"""
Message Parser

Turns card-issuer notification mails into candidate ledger entries.

Flow for one message:
1. Subjects carrying campaign/newsletter keywords are dropped
2. The first issuer rule set whose sender AND subject match is selected;
   if none matches, the generic rule set is used when the subject looks
   like a purchase notification
3. The rule set's variants are tried in order, first complete one wins
4. Captured text is normalised (dates, full-width digits, refunds)

A message that yields no candidate is not an error. The parser logs a
truncated body snippet so the rules can be tuned, and returns None.
"""

import re
import unicodedata
from dataclasses import dataclass
from datetime import datetime, time
from typing import Optional, Sequence

import structlog

from kakeibo.classification import CategoryClassifier
from kakeibo.models.ledger import (
    REFUND,
    REFUND_MEMO_PREFIX,
    FlowType,
    ParsedTransaction,
    RawMessage,
)
from kakeibo.parsing.rules import (
    DEFAULT_EXCLUSION_KEYWORDS,
    DEFAULT_RULE_SETS,
    GENERIC_RULES,
    ExtractedFields,
    IssuerRuleSet,
)

logger = structlog.get_logger()

MERCHANT_MAX_CHARS = 50

# Time used when a notification only carries the calendar day
DEFAULT_TRANSACTION_TIME = time(12, 0)

_DATE_SEPARATORS = re.compile(r"[年月\-/]")
_MINUS_SIGNS = str.maketrans({"−": "-", "－": "-"})


# =============================================================================
# NORMALISATION
# =============================================================================

def parse_amount(text: Optional[str]) -> Optional[int]:
    """
    Parse a captured amount into a signed integer.

    Full-width digits, full-width commas and the various minus signs are
    folded to ASCII first. Returns None when nothing numeric is left.
    """
    if not text:
        return None
    normalized = unicodedata.normalize("NFKC", text).translate(_MINUS_SIGNS)
    normalized = normalized.replace(",", "").replace("円", "").strip()
    try:
        return int(normalized)
    except ValueError:
        return None


def parse_date(date_text: Optional[str], time_text: Optional[str] = None) -> Optional[datetime]:
    """
    Parse "yyyy/m/d", "yyyy-m-d" or "yyyy年m月d日" (+ optional "HH:MM").

    Impossible calendar dates (2026/02/30) are rejected with None.
    """
    if not date_text:
        return None

    normalized = unicodedata.normalize("NFKC", date_text)
    normalized = re.sub(r"\s+", "", normalized).rstrip("日")
    parts = [p for p in _DATE_SEPARATORS.split(normalized) if p]
    if len(parts) != 3:
        return None

    at = DEFAULT_TRANSACTION_TIME
    if time_text:
        hour, _, minute = unicodedata.normalize("NFKC", time_text).partition(":")
        try:
            at = time(int(hour), int(minute))
        except ValueError:
            return None

    try:
        year, month, day = (int(p) for p in parts)
        return datetime(year, month, day, at.hour, at.minute)
    except ValueError:
        return None


def clean_merchant(text: Optional[str]) -> Optional[str]:
    """Trim a captured merchant and cap it; blank becomes None."""
    if text is None:
        return None
    cleaned = text.strip()
    return cleaned[:MERCHANT_MAX_CHARS] or None


# =============================================================================
# PARSER
# =============================================================================

class MessageParser:
    """
    Rule-driven extraction of ParsedTransaction candidates.

    Usage:
        parser = MessageParser()
        candidate = parser.parse(message)
        if candidate is None:
            ...  # not a transaction, or layout not understood
    """

    def __init__(
        self,
        rule_sets: Sequence[IssuerRuleSet] = DEFAULT_RULE_SETS,
        generic: Optional[IssuerRuleSet] = GENERIC_RULES,
        classifier: Optional[CategoryClassifier] = None,
        exclusion_keywords: Sequence[str] = DEFAULT_EXCLUSION_KEYWORDS,
        snippet_chars: int = 200,
    ):
        self._rule_sets = tuple(rule_sets)
        self._generic = generic
        self._classifier = classifier or CategoryClassifier()
        self._exclusions = tuple(exclusion_keywords)
        self._snippet_chars = snippet_chars

    @property
    def rule_sets(self) -> tuple[IssuerRuleSet, ...]:
        """Issuer rule sets followed by the generic one, if any."""
        if self._generic is None:
            return self._rule_sets
        return self._rule_sets + (self._generic,)

    def is_excluded(self, subject: str) -> bool:
        return any(keyword in subject for keyword in self._exclusions)

    def select_rule_set(self, message: RawMessage) -> Optional[IssuerRuleSet]:
        for rule_set in self._rule_sets:
            if rule_set.matches(message):
                return rule_set
        if self._generic is not None and self._generic.matches_subject(message.subject):
            return self._generic
        return None

    def parse(self, message: RawMessage) -> Optional[ParsedTransaction]:
        """Extract a candidate from one message, or None."""
        if self.is_excluded(message.subject):
            logger.debug("message_excluded", subject=message.subject)
            return None

        rule_set = self.select_rule_set(message)
        if rule_set is None:
            return None

        body = message.body or ""
        for variant in rule_set.variants:
            if not variant.applies(message):
                continue
            fields = variant.extract(body)
            if not fields.complete:
                continue
            candidate = self._build(rule_set, fields, message)
            if candidate is not None:
                return candidate

        logger.warning(
            "parse_failed",
            issuer=rule_set.name,
            subject=message.subject,
            snippet=self.snippet(body),
        )
        return None

    def snippet(self, body: str) -> str:
        return (body or "")[:self._snippet_chars]

    def _build(
        self,
        rule_set: IssuerRuleSet,
        fields: ExtractedFields,
        message: RawMessage,
    ) -> Optional[ParsedTransaction]:
        occurred_at = parse_date(fields.date_text, fields.time_text)
        signed_amount = parse_amount(fields.amount_text)
        if occurred_at is None or not signed_amount:
            return None

        merchant = clean_merchant(fields.merchant)
        memo = merchant or rule_set.fallback_memo(message.subject)
        is_refund = signed_amount < 0

        if is_refund:
            category = REFUND
            memo = f"{REFUND_MEMO_PREFIX}{memo}"
        else:
            category = self._classifier.classify(merchant or memo)

        return ParsedTransaction(
            issuer=rule_set.name,
            occurred_at=occurred_at,
            amount=abs(signed_amount),
            memo=memo,
            merchant=merchant,
            category=category,
            flow_type=FlowType.INCOME if is_refund else FlowType.EXPENSE,
            account=rule_set.account_for(message.sender),
            is_refund=is_refund,
        )


# =============================================================================
# MANUAL (CHAT) INPUT
# =============================================================================

MANUAL_INPUT_PATTERN = re.compile(r"^(.+?)[\s　]+([0-9０-９,，]+)円?$")


@dataclass(frozen=True)
class ManualInput:
    """A "<memo> <amount>" chat message."""

    memo: str
    amount: int


def parse_manual_input(text: Optional[str]) -> Optional[ManualInput]:
    """
    Parse chat shorthand such as "ランチ 1200" or "コンビニ　３５０円".

    Returns None when the text does not follow the shorthand or the amount
    is not positive.
    """
    if not text:
        return None
    match = MANUAL_INPUT_PATTERN.match(text.strip())
    if not match:
        return None

    memo = match.group(1).strip()
    amount = parse_amount(match.group(2))
    if not memo or amount is None or amount <= 0:
        return None
    return ManualInput(memo=memo, amount=amount)
