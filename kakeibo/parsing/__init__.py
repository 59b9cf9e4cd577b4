"""
Message Parsing Package

Rule-driven extraction of candidate ledger entries from card-issuer
notification mails and chat shorthand.
"""

from kakeibo.parsing.parser import (
    MANUAL_INPUT_PATTERN,
    ManualInput,
    MessageParser,
    clean_merchant,
    parse_amount,
    parse_date,
    parse_manual_input,
)
from kakeibo.parsing.rules import (
    DEFAULT_EXCLUSION_KEYWORDS,
    DEFAULT_RULE_SETS,
    GENERIC_RULES,
    PAYPAY_RULES,
    SMBC_RULES,
    ExtractedFields,
    FieldPatternVariant,
    IssuerRuleSet,
    LinePatternVariant,
)

__all__ = [
    # Parser
    "MANUAL_INPUT_PATTERN",
    "ManualInput",
    "MessageParser",
    "clean_merchant",
    "parse_amount",
    "parse_date",
    "parse_manual_input",
    # Rules
    "DEFAULT_EXCLUSION_KEYWORDS",
    "DEFAULT_RULE_SETS",
    "GENERIC_RULES",
    "PAYPAY_RULES",
    "SMBC_RULES",
    "ExtractedFields",
    "FieldPatternVariant",
    "IssuerRuleSet",
    "LinePatternVariant",
]
