"""Category classification package."""

from kakeibo.classification.classifier import (
    CLOTHING,
    DAILY_GOODS,
    DEFAULT_CATEGORY_LABELS,
    DEFAULT_CATEGORY_RULES,
    ENTERTAINMENT,
    FOOD,
    MEDICAL,
    OTHER,
    SOCIAL,
    TELECOM,
    TRANSPORT,
    CategoryClassifier,
    CategoryRule,
    classify,
)
from kakeibo.models.ledger import REFUND, UNCATEGORIZED

__all__ = [
    "CategoryClassifier",
    "CategoryRule",
    "DEFAULT_CATEGORY_LABELS",
    "DEFAULT_CATEGORY_RULES",
    "classify",
    # Labels
    "CLOTHING",
    "DAILY_GOODS",
    "ENTERTAINMENT",
    "FOOD",
    "MEDICAL",
    "OTHER",
    "REFUND",
    "SOCIAL",
    "TELECOM",
    "TRANSPORT",
    "UNCATEGORIZED",
]
