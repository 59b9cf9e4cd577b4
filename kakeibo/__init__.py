"""
Kakeibo - Household Ledger Core

Turns card-issuer notification mails and chat shorthand into ledger
entries, and the ledger into monthly summaries and budget alerts.

DESIGN PRINCIPLES:
1. Amounts are exact integers; refunds are income, never negative
2. Automatic ingestion is idempotent (dedup guard + processed markers)
3. Best-effort steps (parsing, context lookup, notifications) never fail a run
4. Every mutation is auditable
5. Storage and message sources are swappable
"""

__version__ = "1.0.0"
__author__ = "Kakeibo Team"
