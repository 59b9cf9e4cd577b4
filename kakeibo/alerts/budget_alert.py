"""
Budget Alert State Machine

State per month key: (sent80, sent100). One pass:

1. A stored month key different from the snapshot's resets both flags
2. A non-positive budget is a no-op
3. expense >= budget and not sent100 -> over-budget, stop
4. 80% <= ratio < 100% and not sent80 -> approaching-budget
5. Otherwise nothing

IMPORTANT: 100% is checked first. A jump from below 80% straight past
100% between two passes fires only the over-budget alert, and the
approaching alert is never sent for that month.

Thresholds are compared in integers (5 * expense >= 4 * budget), so
there is no float ratio to round.
"""

from typing import Optional

from kakeibo.models.alert import AlertDecision, AlertKind, AlertState
from kakeibo.models.summary import AggregationSnapshot, rounded_percent


def _reached_full(expense: int, budget: int) -> bool:
    return expense >= budget


def _reached_eighty(expense: int, budget: int) -> bool:
    return 5 * expense >= 4 * budget


def evaluate_alerts(
    snapshot: AggregationSnapshot,
    budget: int,
    state: Optional[AlertState],
) -> AlertDecision:
    """
    Decide which alert, if any, this pass emits.

    Pure: the caller persists `new_state` when `state_changed` is set and
    delivers the alert.
    """
    month_key = snapshot.month_key
    current = state or AlertState()
    changed = False

    if current.month_key != month_key:
        current = AlertState(month_key=month_key)
        changed = True

    if budget <= 0:
        return AlertDecision(new_state=current, state_changed=changed)

    expense = snapshot.total_expense

    if _reached_full(expense, budget):
        if not current.sent100:
            return AlertDecision(
                alert=AlertKind.OVER_BUDGET,
                new_state=current.model_copy(update={"sent100": True}),
                state_changed=True,
            )
        return AlertDecision(new_state=current, state_changed=changed)

    if _reached_eighty(expense, budget) and not current.sent80:
        return AlertDecision(
            alert=AlertKind.APPROACHING_BUDGET,
            new_state=current.model_copy(update={"sent80": True}),
            state_changed=True,
        )

    return AlertDecision(new_state=current, state_changed=changed)


def format_alert_message(kind: AlertKind, expense: int, budget: int) -> str:
    """Notification text for an alert."""
    if kind == AlertKind.OVER_BUDGET:
        percent = rounded_percent(expense, budget) or 0
        return (
            "🚨 【予算超過アラート】\n\n"
            f"今月の支出が予算（{budget:,}円）を超えました！\n"
            f"現在: {expense:,}円（{percent}%）\n\n"
            "来月に向けて支出ペースを見直しましょう💦"
        )
    return (
        "⚠️ 【予算アラート】\n\n"
        "今月の支出が予算の80%を超えました。\n"
        f"残り: {budget - expense:,}円\n\n"
        "月末まで少し節約を意識してみましょう👀"
    )


class BudgetAlertMachine:
    """
    Stateful wrapper around evaluate_alerts.

    Holds the last known AlertState between passes within one process;
    durable persistence stays with the settings store.
    """

    def __init__(self, state: Optional[AlertState] = None):
        self.state = state or AlertState()

    def evaluate(self, snapshot: AggregationSnapshot, budget: int) -> AlertDecision:
        decision = evaluate_alerts(snapshot, budget, self.state)
        self.state = decision.new_state
        return decision

    @staticmethod
    def message_for(decision: AlertDecision, snapshot: AggregationSnapshot, budget: int) -> Optional[str]:
        if decision.alert is None:
            return None
        return format_alert_message(decision.alert, snapshot.total_expense, budget)
