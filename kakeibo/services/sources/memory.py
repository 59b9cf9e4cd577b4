"""
In-Memory Sources

Fixed message and event lists standing in for a mailbox and a calendar.
"""

from datetime import datetime
from typing import Callable, Optional

from kakeibo.models.ledger import CalendarEvent, RawMessage
from kakeibo.services.sources.interface import (
    EventSourceInterface,
    MessageSourceInterface,
)

# (query, message) -> does the message match?
QueryMatcher = Callable[[str, RawMessage], bool]


def match_all(query: str, message: RawMessage) -> bool:
    return True


class InMemoryMessageSource(MessageSourceInterface):
    """
    Messages without an id get "m<index>" so they can be marked processed.

    Provider query syntax is not interpreted; pass `matcher` to emulate it.
    """

    def __init__(
        self,
        messages: Optional[list[RawMessage]] = None,
        matcher: QueryMatcher = match_all,
    ):
        self._messages = [
            m if m.message_id else m.model_copy(update={"message_id": f"m{index}"})
            for index, m in enumerate(messages or [])
        ]
        self._matcher = matcher
        self.processed: set[str] = set()
        self.queries: list[str] = []

    async def search(
        self,
        query: str,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
        max_results: int = 100,
    ) -> list[RawMessage]:
        self.queries.append(query)
        found = []
        for message in self._messages:
            if message.message_id in self.processed:
                continue
            if message.timestamp is not None:
                if since is not None and message.timestamp < since:
                    continue
                if until is not None and message.timestamp >= until:
                    continue
            if self._matcher(query, message):
                found.append(message)
        return found[:max_results]

    async def mark_processed(self, messages: list[RawMessage]) -> int:
        ids = {m.message_id for m in messages if m.message_id}
        self.processed.update(ids)
        return len(ids)


class InMemoryEventSource(EventSourceInterface):

    def __init__(self, events: Optional[list[CalendarEvent]] = None):
        self._events = sorted(events or [], key=lambda e: e.start)

    async def list_events(self, start: datetime, end: datetime) -> list[CalendarEvent]:
        return [
            event for event in self._events
            if event.start < end and (event.end or event.start) >= start
        ]
