"""
Shared FastAPI dependencies for the reservation routes.
"""

from venuebook.core.config import get_settings
from venuebook.services.notification_service import NotificationDispatcher
from venuebook.services.policy import BookingPolicy
from venuebook.services.strategy_factory import get_notifier


def get_policy() -> BookingPolicy:
    return BookingPolicy.from_settings(get_settings())


def get_dispatcher() -> NotificationDispatcher:
    return get_notifier()
