"""
Outbound notification interfaces.

Push and mail delivery are best-effort side channels. The stored
AlertRecord is the source of truth; a failed delivery is logged and audited
but never fails the request that produced the alert.
"""

from abc import ABC, abstractmethod


class NotificationDispatchError(Exception):
    """A push or mail could not be delivered."""
    pass


class PushSender(ABC):
    """Sends a push notification to one device."""

    @abstractmethod
    async def send(self, token: str, title: str, body: str) -> None:
        """
        Deliver one notification.

        Raises:
            NotificationDispatchError: If delivery failed after retries
        """
        pass


class MailSender(ABC):
    """
    Sends a plain-text email.

    Mail transport belongs to the deployment; no implementation ships here.
    """

    @abstractmethod
    async def send_mail(self, to: str, subject: str, text: str) -> None:
        """
        Deliver one email.

        Raises:
            NotificationDispatchError: If delivery failed
        """
        pass
