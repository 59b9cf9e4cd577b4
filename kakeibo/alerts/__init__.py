"""Budget threshold alerts."""

from kakeibo.alerts.budget_alert import (
    BudgetAlertMachine,
    evaluate_alerts,
    format_alert_message,
)

__all__ = [
    "BudgetAlertMachine",
    "evaluate_alerts",
    "format_alert_message",
]
