"""
Notification sink interface.

The reservation core emits lifecycle events through this interface after
its transaction commits. Delivery (templated email, SMS, webhooks) belongs
to whatever sits behind the sink.
"""

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from venuebook.core.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class BookingNotice:
    """Detached snapshot of a booking, safe to use after the session closes."""

    booking_id: int
    reference: str
    status: str
    facility_id: int
    venue_id: int
    venue_name: str
    contact_name: str
    contact_email: str
    start_time: datetime
    end_time: datetime
    total_price: Decimal
    reason: Optional[str] = None

    def to_payload(self) -> dict:
        payload = asdict(self)
        payload["start_time"] = self.start_time.isoformat()
        payload["end_time"] = self.end_time.isoformat()
        payload["total_price"] = f"{self.total_price:.2f}"
        return payload


class NotificationSink(ABC):
    """
    Receiver of booking lifecycle events.

    Implementations:
    - LogNotificationSink: writes each event to the structured log
    - RedisNotificationSink: publishes JSON events for the mail worker
    """

    @abstractmethod
    async def booking_created(self, notice: BookingNotice) -> None:
        """A booking request was accepted and is pending approval."""

    @abstractmethod
    async def booking_confirmed(self, notice: BookingNotice) -> None:
        """A manager confirmed the booking."""

    @abstractmethod
    async def booking_cancelled(self, notice: BookingNotice) -> None:
        """The booking was cancelled."""


class LogNotificationSink(NotificationSink):
    """
    Log-only sink. Default in development and when no broker is configured.
    """

    async def booking_created(self, notice: BookingNotice) -> None:
        logger.info("notify_booking_created", **notice.to_payload())

    async def booking_confirmed(self, notice: BookingNotice) -> None:
        logger.info("notify_booking_confirmed", **notice.to_payload())

    async def booking_cancelled(self, notice: BookingNotice) -> None:
        logger.info("notify_booking_cancelled", **notice.to_payload())
