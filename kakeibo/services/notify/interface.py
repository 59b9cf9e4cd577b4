"""
Notification Channel Interface

Outbound push messages (budget alerts, fixed-expense notices, advisor
reports). Delivery is best effort: a failed push is logged and reported
as False, never raised.
"""

from abc import ABC, abstractmethod


class NotificationChannelInterface(ABC):

    @abstractmethod
    async def send(self, recipient: str, text: str) -> bool:
        """
        Push a text message to one recipient.

        Returns:
            True if the provider accepted the message
        """
        pass
