"""
Gmail and Google Calendar Sources

Both adapters authenticate with the same authorized-user OAuth token
(GMAIL_TOKEN_PATH). Timestamps coming back from Google are converted to
naive datetimes in the ledger timezone so they compare directly with
parsed transaction times.
"""

import base64
import re
from datetime import date, datetime, time
from typing import Optional
from zoneinfo import ZoneInfo

import structlog
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from tenacity import retry, stop_after_attempt, wait_exponential

from kakeibo.config import GmailSettings
from kakeibo.models.ledger import CalendarEvent, RawMessage
from kakeibo.services.sources.interface import (
    EventSourceInterface,
    MessageSourceInterface,
    SourceError,
)

logger = structlog.get_logger()

SCOPES = [
    "https://www.googleapis.com/auth/gmail.modify",
    "https://www.googleapis.com/auth/calendar.readonly",
]


def load_credentials(token_path: str) -> Credentials:
    """Load the authorized-user token, refreshing it when expired."""
    try:
        creds = Credentials.from_authorized_user_file(token_path, SCOPES)
    except FileNotFoundError:
        raise SourceError(f"OAuth token not found: {token_path}")

    if not creds.valid:
        if creds.expired and creds.refresh_token:
            creds.refresh(Request())
            with open(token_path, "w") as f:
                f.write(creds.to_json())
        else:
            raise SourceError(
                "OAuth token is invalid. Re-authorize Gmail and Calendar access."
            )
    return creds


def _decode(data: str) -> str:
    return base64.urlsafe_b64decode(data).decode("utf-8", errors="replace")


def _strip_html(html: str) -> str:
    text = re.sub(r"<(style|script)[^>]*>.*?</\1>", " ", html, flags=re.DOTALL | re.IGNORECASE)
    text = re.sub(r"<br[^>]*>|</(tr|p|div|td|li)>", "\n", text, flags=re.IGNORECASE)
    text = re.sub(r"<[^>]+>", " ", text)
    text = text.replace("&nbsp;", " ").replace("&amp;", "&").replace("&lt;", "<").replace("&gt;", ">")
    lines = [" ".join(line.split()) for line in text.split("\n")]
    return "\n".join(line for line in lines if line)


def extract_plain_body(payload: dict) -> str:
    """
    Plain-text body of a Gmail API payload.

    Prefers text/plain parts (searching nested multiparts); falls back to
    tag-stripped text/html.
    """
    html = ""
    stack = [payload]
    while stack:
        part = stack.pop(0)
        mime_type = part.get("mimeType", "")
        data = part.get("body", {}).get("data", "")
        if data and mime_type == "text/plain":
            return _decode(data)
        if data and mime_type == "text/html" and not html:
            html = _decode(data)
        stack.extend(part.get("parts", []))
    return _strip_html(html) if html else ""


class GmailMessageSource(MessageSourceInterface):
    """Gmail search; processed messages carry a label and are excluded."""

    def __init__(self, settings: GmailSettings, timezone: str = "Asia/Tokyo"):
        self._settings = settings
        self._tz = ZoneInfo(timezone)
        self._service = None
        self._label_id: Optional[str] = None

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self):
        if self._service is None:
            creds = load_credentials(self._settings.token_path)
            self._service = build("gmail", "v1", credentials=creds, cache_discovery=False)
        return self._service

    def _build_query(
        self,
        query: str,
        since: Optional[datetime],
        until: Optional[datetime],
    ) -> str:
        terms = [query, f"-label:{self._settings.processed_label}"]
        if since is not None:
            terms.append(f"after:{int(self._aware(since).timestamp())}")
        if until is not None:
            terms.append(f"before:{int(self._aware(until).timestamp())}")
        return " ".join(t for t in terms if t)

    def _aware(self, moment: datetime) -> datetime:
        return moment if moment.tzinfo else moment.replace(tzinfo=self._tz)

    def _to_message(self, raw: dict) -> RawMessage:
        payload = raw.get("payload", {})
        headers = {h["name"].lower(): h["value"] for h in payload.get("headers", [])}
        received = None
        if raw.get("internalDate"):
            received = datetime.fromtimestamp(int(raw["internalDate"]) / 1000, self._tz)
            received = received.replace(tzinfo=None)
        return RawMessage(
            sender=headers.get("from", ""),
            subject=headers.get("subject", ""),
            body=extract_plain_body(payload),
            timestamp=received,
            message_id=raw.get("id"),
        )

    async def search(
        self,
        query: str,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
        max_results: int = 100,
    ) -> list[RawMessage]:
        try:
            service = self.connect()
            listing = service.users().messages().list(
                userId="me",
                q=self._build_query(query, since, until),
                maxResults=max_results,
            ).execute()
        except SourceError:
            raise
        except Exception as e:
            raise SourceError(f"Gmail search failed: {e}")

        messages = []
        for meta in listing.get("messages", []):
            try:
                raw = service.users().messages().get(
                    userId="me", id=meta["id"], format="full"
                ).execute()
                messages.append(self._to_message(raw))
            except Exception as e:
                logger.warning("gmail_fetch_failed", message_id=meta.get("id"), error=str(e))
                continue

        messages.sort(key=lambda m: m.timestamp or datetime.min)
        return messages

    def _processed_label_id(self) -> str:
        if self._label_id is None:
            service = self.connect()
            labels = service.users().labels().list(userId="me").execute().get("labels", [])
            for label in labels:
                if label.get("name") == self._settings.processed_label:
                    self._label_id = label["id"]
                    break
            else:
                created = service.users().labels().create(
                    userId="me",
                    body={"name": self._settings.processed_label},
                ).execute()
                self._label_id = created["id"]
        return self._label_id

    async def mark_processed(self, messages: list[RawMessage]) -> int:
        ids = [m.message_id for m in messages if m.message_id]
        if not ids:
            return 0
        try:
            label_id = self._processed_label_id()
            self.connect().users().messages().batchModify(
                userId="me",
                body={"ids": ids, "addLabelIds": [label_id]},
            ).execute()
        except Exception as e:
            raise SourceError(f"Failed to label processed messages: {e}")
        return len(ids)


class GoogleCalendarEventSource(EventSourceInterface):

    def __init__(self, settings: GmailSettings, timezone: str = "Asia/Tokyo"):
        self._settings = settings
        self._tz = ZoneInfo(timezone)
        self._service = None

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self):
        if self._service is None:
            creds = load_credentials(self._settings.token_path)
            self._service = build("calendar", "v3", credentials=creds, cache_discovery=False)
        return self._service

    def _local(self, value: dict) -> Optional[datetime]:
        if value.get("dateTime"):
            moment = datetime.fromisoformat(value["dateTime"].replace("Z", "+00:00"))
            return moment.astimezone(self._tz).replace(tzinfo=None)
        if value.get("date"):
            return datetime.combine(date.fromisoformat(value["date"]), time.min)
        return None

    async def list_events(self, start: datetime, end: datetime) -> list[CalendarEvent]:
        aware_start = start if start.tzinfo else start.replace(tzinfo=self._tz)
        aware_end = end if end.tzinfo else end.replace(tzinfo=self._tz)
        try:
            items = self.connect().events().list(
                calendarId=self._settings.calendar_id,
                timeMin=aware_start.isoformat(),
                timeMax=aware_end.isoformat(),
                singleEvents=True,
                orderBy="startTime",
            ).execute().get("items", [])
        except SourceError:
            raise
        except Exception as e:
            raise SourceError(f"Calendar lookup failed: {e}")

        events = []
        for item in items:
            event_start = self._local(item.get("start", {}))
            if event_start is None:
                continue
            events.append(CalendarEvent(
                title=item.get("summary", ""),
                start=event_start,
                end=self._local(item.get("end", {})),
            ))
        return events
