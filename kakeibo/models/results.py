"""
Operation Results

Flows return these instead of raising for expected outcomes, so callers
(chat replies, dashboard API) can tell "not configured yet" apart from
"configured but empty" and from real failures.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field

from kakeibo.models.ledger import LedgerEntry


class OperationStatus(str, Enum):
    OK = "ok"
    UNCONFIGURED = "unconfigured"   # no ledger store configured
    INVALID = "invalid"             # rejected input
    FAILED = "failed"               # collaborator error


class OperationResult(BaseModel):
    """Result of a ledger or report operation."""

    status: OperationStatus
    message: str = ""
    entry: Optional[LedgerEntry] = None
    count: Optional[int] = None
    data: Optional[Any] = Field(
        default=None,
        description="Snapshot, graph, rollup or entry list"
    )

    @property
    def success(self) -> bool:
        return self.status == OperationStatus.OK

    @classmethod
    def unconfigured(cls) -> 'OperationResult':
        return cls(
            status=OperationStatus.UNCONFIGURED,
            message="Ledger store is not configured",
        )


class IngestionReport(BaseModel):
    """Counters for one batch ingestion run."""

    status: OperationStatus = OperationStatus.OK
    fetched: int = 0
    written: int = 0
    skipped: int = Field(default=0, description="Duplicates")
    unparsed: int = Field(default=0, description="No candidate extracted")
    failed: int = Field(default=0, description="Store errors")
