"""
Message and Event Source Interfaces

Inbound collaborators: a mailbox holding card-issuer notifications (and
purchase confirmations used as merchant hints), and a calendar whose
events hint at where a card was used.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from kakeibo.models.ledger import CalendarEvent, RawMessage


class MessageSourceInterface(ABC):
    """A searchable mailbox."""

    @abstractmethod
    async def search(
        self,
        query: str,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
        max_results: int = 100,
    ) -> list[RawMessage]:
        """
        Find messages matching a provider query.

        Args:
            query: Provider search expression (Gmail syntax)
            since: Only messages received at or after this time
            until: Only messages received before this time
            max_results: Upper bound on returned messages

        Returns:
            Matching, not yet processed messages (oldest first)
        """
        pass

    @abstractmethod
    async def mark_processed(self, messages: list[RawMessage]) -> int:
        """
        Mark messages so later searches skip them.

        Returns:
            Number of messages marked
        """
        pass


class EventSourceInterface(ABC):
    """A calendar."""

    @abstractmethod
    async def list_events(self, start: datetime, end: datetime) -> list[CalendarEvent]:
        """Events overlapping [start, end), ordered by start time."""
        pass


class SourceError(Exception):
    """A source could not be queried."""
    pass
