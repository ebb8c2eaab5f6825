"""
Notification Sink Base

Receives human-readable event descriptions. Sends are fire-and-forget:
implementations log delivery failures and never raise them.
"""

from abc import ABC, abstractmethod


class NotificationSink(ABC):
    """Abstract outbound notification channel"""

    @abstractmethod
    async def send(self, text: str) -> bool:
        """Deliver `text`; returns False if delivery failed."""
        pass

    async def forward_signal(self, text: str) -> bool:
        """Relay a raw signal (e.g. a token address) to a secondary chat, if any."""
        return False

    async def close(self) -> None:
        pass
