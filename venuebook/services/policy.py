"""
Booking policy: lead time, maximum duration and turnaround buffer.

Policy values are passed into the reservation engine per call rather than
read from process state, so tests and multi-tenant callers can vary them.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from venuebook.core.config import Settings
from venuebook.core.exceptions import PolicyViolationError

RULE_MIN_LEAD_TIME = "min_lead_time"
RULE_MAX_DURATION = "max_duration"


def _fmt_hours(hours: float) -> str:
    """2 -> "2 hours", 1 -> "1 hour", 1.5 -> "1.5 hours"."""
    value = int(hours) if float(hours).is_integer() else hours
    return f"{value} hour{'s' if value != 1 else ''}"


@dataclass(frozen=True)
class BookingPolicy:
    min_lead_time_hours: Optional[float] = None
    max_duration_hours: Optional[float] = None
    buffer_minutes: int = 0

    @classmethod
    def from_settings(cls, settings: Settings) -> "BookingPolicy":
        return cls(
            min_lead_time_hours=settings.MIN_LEAD_TIME_HOURS,
            max_duration_hours=settings.MAX_DURATION_HOURS,
            buffer_minutes=settings.BUFFER_MINUTES or 0,
        )

    @property
    def buffer(self) -> timedelta:
        return timedelta(minutes=self.buffer_minutes or 0)

    def check(self, start: datetime, end: datetime, now: Optional[datetime] = None) -> None:
        """Raise PolicyViolationError for the first breached rule."""
        now = now or datetime.now(timezone.utc)

        if self.min_lead_time_hours:
            earliest = now + timedelta(hours=self.min_lead_time_hours)
            if start < earliest:
                raise PolicyViolationError(
                    RULE_MIN_LEAD_TIME,
                    f"Booking must be made at least {_fmt_hours(self.min_lead_time_hours)} in advance",
                )

        if self.max_duration_hours:
            hours = (end - start).total_seconds() / 3600
            if hours > self.max_duration_hours:
                raise PolicyViolationError(
                    RULE_MAX_DURATION,
                    f"Booking duration cannot exceed {_fmt_hours(self.max_duration_hours)}",
                )
