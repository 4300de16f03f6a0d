"""
Availability checker.

Intervals are half-open: [s1, e1) and [s2, e2) overlap iff s1 < e2 and
s2 < e1, so back-to-back bookings never conflict. Only pending and
confirmed bookings hold the calendar.

On its own this is a read; the reservation engine runs it inside the
venue's critical section to make check-then-insert atomic.
"""

from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from venuebook.models.booking import ACTIVE_STATUSES, Booking


def intervals_overlap(a: tuple[datetime, datetime], b: tuple[datetime, datetime]) -> bool:
    return a[0] < b[1] and b[0] < a[1]


def pad_interval(start: datetime, end: datetime, buffer_minutes: int = 0) -> tuple[datetime, datetime]:
    """Inflate [start, end) on both sides to enforce turnaround time."""
    pad = timedelta(minutes=buffer_minutes or 0)
    return start - pad, end + pad


def _overlap_filter(venue_id: int, start: datetime, end: datetime, exclude_booking_id: Optional[int]):
    conditions = [
        Booking.venue_id == venue_id,
        Booking.status.in_(ACTIVE_STATUSES),
        Booking.start_time < end,
        Booking.end_time > start,
    ]
    if exclude_booking_id is not None:
        conditions.append(Booking.id != exclude_booking_id)
    return conditions


async def count_overlapping(
    db: AsyncSession,
    venue_id: int,
    start: datetime,
    end: datetime,
    exclude_booking_id: Optional[int] = None,
) -> int:
    result = await db.execute(
        select(func.count(Booking.id)).where(*_overlap_filter(venue_id, start, end, exclude_booking_id))
    )
    return result.scalar_one()


async def is_venue_available(
    db: AsyncSession,
    venue_id: int,
    start: datetime,
    end: datetime,
    exclude_booking_id: Optional[int] = None,
) -> bool:
    """True iff no active booking on the venue overlaps [start, end)."""
    return await count_overlapping(db, venue_id, start, end, exclude_booking_id) == 0


async def find_conflicts(
    db: AsyncSession,
    venue_id: int,
    start: datetime,
    end: datetime,
    exclude_booking_id: Optional[int] = None,
) -> list[Booking]:
    """The active bookings overlapping [start, end), earliest first."""
    result = await db.execute(
        select(Booking)
        .where(*_overlap_filter(venue_id, start, end, exclude_booking_id))
        .order_by(Booking.start_time.asc())
    )
    return list(result.scalars().all())
