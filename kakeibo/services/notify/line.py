"""
LINE Messaging API push channel.
"""

from typing import Optional

import httpx
import structlog

from kakeibo.config import LineSettings
from kakeibo.services.notify.interface import NotificationChannelInterface

logger = structlog.get_logger()

# LINE rejects text messages longer than this
MAX_TEXT_LENGTH = 5000


class LineNotificationChannel(NotificationChannelInterface):
    """
    Push messages through the LINE Messaging API.

    Non-200 responses and transport errors are logged and reported as
    False.
    """

    def __init__(
        self,
        settings: LineSettings,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._settings = settings
        self._client = client

    def _payload(self, recipient: str, text: str) -> dict:
        return {
            "to": recipient,
            "messages": [{"type": "text", "text": text[:MAX_TEXT_LENGTH]}],
        }

    async def _post(self, client: httpx.AsyncClient, recipient: str, text: str) -> httpx.Response:
        return await client.post(
            self._settings.push_url,
            headers={"Authorization": f"Bearer {self._settings.access_token}"},
            json=self._payload(recipient, text),
        )

    async def send(self, recipient: str, text: str) -> bool:
        if not recipient:
            return False

        try:
            if self._client is not None:
                response = await self._post(self._client, recipient, text)
            else:
                async with httpx.AsyncClient(timeout=self._settings.timeout_seconds) as client:
                    response = await self._post(client, recipient, text)
        except httpx.HTTPError as e:
            logger.error("line_push_failed", error=str(e))
            return False

        if response.status_code != 200:
            logger.error(
                "line_push_rejected",
                status_code=response.status_code,
                body=response.text[:200],
            )
            return False
        return True
