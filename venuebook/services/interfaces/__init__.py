"""
Service interfaces for dependency inversion.
Allows swapping implementations without changing business logic.
"""

from .notification import BookingNotice, LogNotificationSink, NotificationSink

__all__ = ['BookingNotice', 'LogNotificationSink', 'NotificationSink']
