"""Recording notification channel for tests and dry runs."""

from kakeibo.services.notify.interface import NotificationChannelInterface


class InMemoryNotificationChannel(NotificationChannelInterface):

    def __init__(self, accept: bool = True):
        self.sent: list[tuple[str, str]] = []
        self._accept = accept

    async def send(self, recipient: str, text: str) -> bool:
        if not recipient or not self._accept:
            return False
        self.sent.append((recipient, text))
        return True
