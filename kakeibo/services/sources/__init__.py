"""Inbound message and calendar sources."""

from kakeibo.services.sources.interface import (
    EventSourceInterface,
    MessageSourceInterface,
    SourceError,
)
from kakeibo.services.sources.google import (
    GmailMessageSource,
    GoogleCalendarEventSource,
    extract_plain_body,
    load_credentials,
)
from kakeibo.services.sources.memory import (
    InMemoryEventSource,
    InMemoryMessageSource,
)

__all__ = [
    "EventSourceInterface",
    "MessageSourceInterface",
    "SourceError",
    "GmailMessageSource",
    "GoogleCalendarEventSource",
    "extract_plain_body",
    "load_credentials",
    "InMemoryEventSource",
    "InMemoryMessageSource",
]
