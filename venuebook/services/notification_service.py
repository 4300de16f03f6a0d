"""
Notification delivery for booking lifecycle events.

Fire-and-forget:
  Notifications are dispatched only after the booking transaction commits,
  as background tasks. A failing sink is logged and counted, never
  propagated; the booking it describes is already durable.

RedisNotificationSink:
  Publishes one JSON message per event on a Redis channel; the mail worker
  subscribes and renders templates. If Redis is down the event is dropped
  with a warning rather than blocking the request.
"""

import asyncio
import json
from typing import Awaitable, Callable, Optional

from venuebook.core.config import get_settings
from venuebook.core.logging import get_logger
from venuebook.core.metrics import record_notification, redis_connection_errors
from venuebook.infrastructure.redis_client import get_redis
from venuebook.services.interfaces.notification import BookingNotice, NotificationSink

logger = get_logger(__name__)
settings = get_settings()

EVENT_CREATED = "booking_created"
EVENT_CONFIRMED = "booking_confirmed"
EVENT_CANCELLED = "booking_cancelled"


class NotificationUnavailable(Exception):
    """The sink's transport could not take the event."""


class RedisNotificationSink(NotificationSink):
    """Publishes booking events to `NOTIFICATION_CHANNEL`."""

    def __init__(self, channel: Optional[str] = None):
        self.channel = channel or settings.NOTIFICATION_CHANNEL

    async def _publish(self, event: str, notice: BookingNotice) -> None:
        client = await get_redis()
        if client is None:
            raise NotificationUnavailable("Redis is not available")
        message = json.dumps({"event": event, "booking": notice.to_payload()})
        try:
            await client.publish(self.channel, message)
        except Exception as e:
            redis_connection_errors.inc()
            raise NotificationUnavailable(str(e)) from e

    async def booking_created(self, notice: BookingNotice) -> None:
        await self._publish(EVENT_CREATED, notice)

    async def booking_confirmed(self, notice: BookingNotice) -> None:
        await self._publish(EVENT_CONFIRMED, notice)

    async def booking_cancelled(self, notice: BookingNotice) -> None:
        await self._publish(EVENT_CANCELLED, notice)


class NotificationDispatcher:
    """Runs sink calls as tracked background tasks."""

    def __init__(self, sink: NotificationSink):
        self.sink = sink
        self._pending: set[asyncio.Task] = set()

    def _dispatch(self, event: str, send: Callable[[BookingNotice], Awaitable[None]], notice: BookingNotice) -> None:
        task = asyncio.create_task(self._deliver(event, send, notice))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _deliver(self, event: str, send, notice: BookingNotice) -> None:
        try:
            await send(notice)
        except Exception as e:
            record_notification(event, sent=False)
            logger.warning(
                "notification_failed",
                notification=event,
                booking_id=notice.booking_id,
                error=str(e),
            )
            return
        record_notification(event, sent=True)

    def booking_created(self, notice: BookingNotice) -> None:
        self._dispatch(EVENT_CREATED, self.sink.booking_created, notice)

    def booking_confirmed(self, notice: BookingNotice) -> None:
        self._dispatch(EVENT_CONFIRMED, self.sink.booking_confirmed, notice)

    def booking_cancelled(self, notice: BookingNotice) -> None:
        self._dispatch(EVENT_CANCELLED, self.sink.booking_cancelled, notice)

    async def drain(self) -> None:
        """Wait for in-flight notifications (shutdown and tests)."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
