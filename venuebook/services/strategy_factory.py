"""
Notification strategy factory.
Configures which notification sink the dispatcher delivers to.
"""

from typing import Optional

from venuebook.core.config import get_settings
from venuebook.services.interfaces.notification import LogNotificationSink, NotificationSink
from venuebook.services.notification_service import NotificationDispatcher, RedisNotificationSink


def get_notification_sink() -> NotificationSink:
    """
    Get the configured sink.

    - "redis": publish events for the mail worker (production)
    - anything else: log only (development, tests)
    """
    backend = get_settings().NOTIFICATION_BACKEND

    if backend == 'redis':
        return RedisNotificationSink()
    return LogNotificationSink()


# Singleton instance
_dispatcher: Optional[NotificationDispatcher] = None


def get_notifier() -> NotificationDispatcher:
    """Get the dispatcher singleton. Also usable as a FastAPI dependency."""
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = NotificationDispatcher(get_notification_sink())
    return _dispatcher


def set_notifier(dispatcher: Optional[NotificationDispatcher]) -> None:
    """Swap the dispatcher (tests, alternative sinks). None resets to the configured one."""
    global _dispatcher
    _dispatcher = dispatcher
