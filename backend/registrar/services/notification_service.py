"""
Notification fan-out.

Notifications are advisory: they are published after the ledger commit,
one by one, and a failing dispatcher is logged and counted but never
turns a committed admission or promotion into an error.
"""

import json
from typing import Iterable

import redis.asyncio as redis

from registrar.core.logging import get_logger
from registrar.core.metrics import record_notification_failure
from registrar.domain.notifications import RegistrationNotification
from registrar.services.interfaces.notifier import NotificationDispatcher

logger = get_logger(__name__)


class LoggingDispatcher(NotificationDispatcher):
    """Default dispatcher: notification delivery is someone else's job, we just log."""

    async def dispatch(self, notification: RegistrationNotification) -> None:
        logger.info("notification_emitted", **notification.to_dict())


class RedisNotificationDispatcher(NotificationDispatcher):
    """Publishes each notification as JSON on a Redis pub/sub channel."""

    def __init__(self, client: redis.Redis, channel: str) -> None:
        self._client = client
        self._channel = channel

    async def dispatch(self, notification: RegistrationNotification) -> None:
        payload = json.dumps(notification.to_dict())
        receivers = await self._client.publish(self._channel, payload)
        logger.debug(
            "notification_published",
            channel=self._channel,
            kind=notification.kind.value,
            receivers=receivers,
        )


class NotificationPublisher:

    def __init__(self, dispatcher: NotificationDispatcher) -> None:
        self._dispatcher = dispatcher

    async def publish(self, notifications: Iterable[RegistrationNotification]) -> None:
        for notification in notifications:
            try:
                await self._dispatcher.dispatch(notification)
            except Exception as e:
                record_notification_failure(notification.kind.value)
                logger.error(
                    "notification_dispatch_failed",
                    kind=notification.kind.value,
                    registration_id=notification.registration_id,
                    event_id=notification.event_id,
                    error=str(e),
                )
