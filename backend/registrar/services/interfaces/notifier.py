"""
Notification dispatcher interface.
The core hands outcome events to it after commit and never waits on delivery.
"""

from abc import ABC, abstractmethod

from registrar.domain.notifications import RegistrationNotification


class NotificationDispatcher(ABC):
    """
    Implementations:
    - LoggingDispatcher: writes each notification to the structured log
    - RedisNotificationDispatcher: publishes JSON to a Redis channel
    """

    @abstractmethod
    async def dispatch(self, notification: RegistrationNotification) -> None:
        """
        Deliver one notification.

        May raise; the caller logs and drops the failure.
        """
        pass
