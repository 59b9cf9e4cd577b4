"""Merchant-label disambiguation from calendar and mail context."""

from kakeibo.context.resolver import (
    HINT_SUFFIX,
    PURCHASE_QUERY,
    ContextResolver,
    apply_hint,
    hint_from_event_title,
    hint_from_mail,
    is_placeholder_merchant,
)

__all__ = [
    "HINT_SUFFIX",
    "PURCHASE_QUERY",
    "ContextResolver",
    "apply_hint",
    "hint_from_event_title",
    "hint_from_mail",
    "is_placeholder_merchant",
]
