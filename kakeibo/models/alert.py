"""
Budget Alert Models

AlertState is persisted between runs and only the alert state machine
mutates it.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class AlertKind(str, Enum):
    """Budget notifications the state machine can emit."""
    APPROACHING_BUDGET = "approaching-budget"   # >= 80%, < 100%
    OVER_BUDGET = "over-budget"                 # >= 100%


class AlertState(BaseModel):
    """Which thresholds have already fired for `month_key`."""

    month_key: str = Field(
        default="",
        description="Month the flags belong to (YYYY-MM)"
    )
    sent80: bool = False
    sent100: bool = False


class AlertDecision(BaseModel):
    """Outcome of one evaluation pass."""

    alert: Optional[AlertKind] = None
    new_state: AlertState
    state_changed: bool = Field(
        default=False,
        description="True when new_state must be persisted"
    )
