"""Ingestion guards."""

from kakeibo.validation.dedup import (
    DeduplicationGuard,
    FixedExpenseGuard,
    dedup_key,
)

__all__ = [
    "DeduplicationGuard",
    "FixedExpenseGuard",
    "dedup_key",
]
