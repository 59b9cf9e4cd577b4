"""
Context Resolver

Some card notifications only name the payment network ("Mastercard加盟店")
instead of the shop. When that happens we look around the transaction time
for a better label:

1. Calendar events within +/- event window (2h by default)
2. Purchase-confirmation mails within +/- mail window (1h by default),
   using the sender's display name or the subject

This step is best effort. Every failure is treated as "no better label",
and it never fails ingestion.
"""

import re
from datetime import datetime, timedelta
from typing import Optional

import structlog

from kakeibo.classification import CategoryClassifier
from kakeibo.config import LedgerSettings
from kakeibo.models.ledger import REFUND_MEMO_PREFIX, ParsedTransaction
from kakeibo.services.sources.interface import (
    EventSourceInterface,
    MessageSourceInterface,
)

logger = structlog.get_logger()

PLACEHOLDER_PATTERN = re.compile(r"加盟店|Mastercard|Visa|JCB", re.IGNORECASE)

# Event titles that say nothing about where money was spent
GENERIC_EVENT_TITLES = re.compile(r"^(予定|TODO|タスク|リマインダー)$", re.IGNORECASE)

SYSTEM_SENDERS = re.compile(r"info|noreply|no-reply|support|mail")
SENDER_DISPLAY_NAME = re.compile(r'"?([^"<]+)"?\s*<')

PURCHASE_SUBJECT_TERMS = (
    "ご注文", "ご購入", "お買い上げ", "レシート", "お支払い", "receipt", "order",
)
PURCHASE_QUERY = "(" + " OR ".join(f"subject:{term}" for term in PURCHASE_SUBJECT_TERMS) + ")"

HINT_SUFFIX = "（推定）"
SUBJECT_HINT_CHARS = 30


def is_placeholder_merchant(label: Optional[str]) -> bool:
    """True when the label is a card-network placeholder, not a shop."""
    return bool(label) and PLACEHOLDER_PATTERN.search(label) is not None


def hint_from_event_title(title: Optional[str]) -> Optional[str]:
    if not title:
        return None
    title = title.strip()
    if len(title) <= 1 or GENERIC_EVENT_TITLES.match(title):
        return None
    return title


def hint_from_mail(sender: str, subject: str) -> Optional[str]:
    """Sender display name unless it is a system sender, else the subject."""
    match = SENDER_DISPLAY_NAME.search(sender or "")
    if match:
        name = match.group(1).strip()
        if len(name) > 1 and not SYSTEM_SENDERS.search(name.lower()):
            return name

    subject = (subject or "").strip()
    if len(subject) > 2:
        return subject[:SUBJECT_HINT_CHARS]
    return None


class ContextResolver:
    """
    Finds a merchant hint for a placeholder-labelled transaction.

    Either source may be None; it is then skipped.
    """

    def __init__(
        self,
        event_source: Optional[EventSourceInterface] = None,
        message_source: Optional[MessageSourceInterface] = None,
        settings: Optional[LedgerSettings] = None,
    ):
        settings = settings or LedgerSettings()
        self._events = event_source
        self._messages = message_source
        self._event_window = timedelta(minutes=settings.event_window_minutes)
        self._mail_window = timedelta(minutes=settings.mail_window_minutes)
        self._mail_limit = settings.mail_search_limit

    async def resolve(self, occurred_at: datetime) -> Optional[str]:
        """Return the first non-trivial hint, or None."""
        for lookup in (self._from_events, self._from_mail):
            try:
                hint = await lookup(occurred_at)
            except Exception as e:
                logger.info(
                    "context_lookup_skipped",
                    lookup=lookup.__name__,
                    error=str(e),
                )
                continue
            if hint:
                return hint
        return None

    async def _from_events(self, occurred_at: datetime) -> Optional[str]:
        if self._events is None:
            return None
        events = await self._events.list_events(
            occurred_at - self._event_window,
            occurred_at + self._event_window,
        )
        for event in events:
            hint = hint_from_event_title(event.title)
            if hint:
                return hint
        return None

    async def _from_mail(self, occurred_at: datetime) -> Optional[str]:
        if self._messages is None:
            return None
        day_start = datetime.combine(occurred_at.date(), datetime.min.time())
        messages = await self._messages.search(
            PURCHASE_QUERY,
            since=day_start,
            until=day_start + timedelta(days=1),
            max_results=self._mail_limit,
        )
        for message in messages:
            if message.timestamp is None:
                continue
            if abs(message.timestamp - occurred_at) >= self._mail_window:
                continue
            hint = hint_from_mail(message.sender, message.subject)
            if hint:
                return hint
        return None


def apply_hint(
    candidate: ParsedTransaction,
    hint: str,
    classifier: CategoryClassifier,
) -> ParsedTransaction:
    """
    Relabel a candidate with a resolved hint.

    The memo becomes "<hint>（推定）". A non-default category derived from
    the hint replaces the placeholder's category; refunds keep theirs.
    """
    memo = f"{hint}{HINT_SUFFIX}"
    category = candidate.category

    if candidate.is_refund:
        memo = f"{REFUND_MEMO_PREFIX}{memo}"
    else:
        hinted = classifier.classify(hint)
        if not classifier.is_default(hinted):
            category = hinted

    return candidate.model_copy(update={"memo": memo, "category": category})
