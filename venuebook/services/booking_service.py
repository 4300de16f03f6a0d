"""
Reservation engine: concurrency-safe booking creation.

CONCURRENCY STRATEGY: Row Lock on the Venue
===========================================

Problem:
  Two requests ask for overlapping slots on the same venue at once.
  Both run the overlap query, both see "available", both insert.
  Result: Double booking.

Solution:
  Every reservation attempt first claims the venue inside its transaction:

  1. UPDATE venues SET version = version + 1 WHERE id = :venue_id
  2. The UPDATE holds the venue's row lock until commit; a concurrent
     attempt on the same venue blocks on step 1 until then
  3. Re-count overlapping active bookings against committed data and
     insert only if there are none

  Attempts on the same venue serialize on step 1, so a request for a free
  slot waits its turn instead of failing. Attempts on different venues never
  touch the same row. Lock waits are bounded by the unit-of-work deadline.

Per-booking updates (status, payments) use the mapper's version_id_col
instead: a stale write raises StaleDataError and is retried on fresh state.
"""

import secrets
import time
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from venuebook.core.exceptions import (
    ConflictError,
    NotFoundError,
    ReservationError,
    TransientStorageError,
    ValidationError,
)
from venuebook.core.logging import get_logger
from venuebook.core.metrics import booking_latency, record_booking_attempt, record_db_retry
from venuebook.core.security import Actor, Role
from venuebook.db.session import run_with_deadline
from venuebook.models.booking import Booking, BookingStatus, PaymentStatus, StatusHistoryEntry
from venuebook.models.catalog import Venue
from venuebook.schemas.booking import BookingCreate
from venuebook.services.authorization import Action, authorize
from venuebook.services.availability import count_overlapping, pad_interval
from venuebook.services.catalog_service import get_facility, get_venue, managed_facility_ids
from venuebook.services.interfaces.notification import BookingNotice
from venuebook.services.notification_service import NotificationDispatcher
from venuebook.services.policy import BookingPolicy
from venuebook.services.pricing import compute_price

logger = get_logger(__name__)

MAX_RETRY_ATTEMPTS = 3
SYSTEM_ACTOR = "system"


def as_utc(value: datetime) -> datetime:
    """Naive datetimes are taken to be UTC already."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def new_reference(prefix: str) -> str:
    return f"{prefix}-{secrets.token_hex(5).upper()}"


def actor_id(actor: Optional[Actor]) -> str:
    return actor.id if actor else SYSTEM_ACTOR


def append_history(
    booking: Booking,
    actor: Optional[Actor],
    reason: Optional[str] = None,
    at: Optional[datetime] = None,
) -> StatusHistoryEntry:
    """Append one audit entry carrying the booking's current status."""
    entry = StatusHistoryEntry(
        sequence=len(booking.status_history) + 1,
        status=booking.status,
        actor_id=actor_id(actor),
        changed_at=at or datetime.now(timezone.utc),
        reason=reason,
    )
    booking.status_history.append(entry)
    return entry


def booking_notice(booking: Booking, venue_name: str, reason: Optional[str] = None) -> BookingNotice:
    return BookingNotice(
        booking_id=booking.id,
        reference=booking.reference,
        status=booking.status,
        facility_id=booking.facility_id,
        venue_id=booking.venue_id,
        venue_name=venue_name,
        contact_name=booking.contact_name,
        contact_email=booking.contact_email,
        start_time=booking.start_time,
        end_time=booking.end_time,
        total_price=booking.total_price,
        reason=reason,
    )


async def load_booking(db: AsyncSession, booking_id: int) -> Booking:
    """Load a booking with payments and history, overwriting any stale copy."""
    result = await db.execute(
        select(Booking).where(Booking.id == booking_id).execution_options(populate_existing=True)
    )
    booking = result.scalar_one_or_none()
    if not booking:
        raise NotFoundError(f"Booking {booking_id} not found")
    return booking


REQUIRED_FIELDS = ("facility_id", "venue_id", "start_time", "end_time", "contact_name", "contact_email")


def _require_fields(request: BookingCreate) -> None:
    missing = []
    for name in REQUIRED_FIELDS:
        value = getattr(request, name, None)
        if value is None or (isinstance(value, str) and not value.strip()):
            missing.append(name)
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")


async def create_booking(
    db: AsyncSession,
    request: BookingCreate,
    actor: Optional[Actor] = None,
    policy: Optional[BookingPolicy] = None,
    notifier: Optional[NotificationDispatcher] = None,
    timeout: Optional[float] = None,
    now: Optional[datetime] = None,
) -> Booking:
    """
    Create a pending booking, or fail without leaving anything behind.

    Checks run in order and the first failure wins: required fields,
    interval, venue exists and is bookable, policy. The overlap re-check and
    the insert then run as one unit under the venue row lock.
    """
    started = time.perf_counter()
    try:
        booking = await _create_booking(db, request, actor, policy or BookingPolicy(), notifier, timeout, now)
    except ConflictError:
        record_booking_attempt("conflict")
        raise
    except TransientStorageError:
        record_booking_attempt("error")
        raise
    except ReservationError:
        record_booking_attempt("rejected")
        raise
    finally:
        booking_latency.observe(time.perf_counter() - started)
    record_booking_attempt("success")
    return booking


async def _create_booking(
    db: AsyncSession,
    request: BookingCreate,
    actor: Optional[Actor],
    policy: BookingPolicy,
    notifier: Optional[NotificationDispatcher],
    timeout: Optional[float],
    now: Optional[datetime],
) -> Booking:
    _require_fields(request)
    start, end = as_utc(request.start_time), as_utc(request.end_time)
    if end <= start:
        raise ValidationError("End time must be after start time")

    venue = await get_venue(db, request.venue_id)
    if venue.facility_id != request.facility_id:
        raise NotFoundError(f"Venue {request.venue_id} not found in facility {request.facility_id}")
    if not venue.is_bookable:
        raise ConflictError(f"Venue {venue.id} is not bookable")

    policy.check(start, end, now=now)

    quote = compute_price(venue, start, end, request.amenity_ids)
    window_start, window_end = pad_interval(start, end, policy.buffer_minutes)
    venue_id, venue_name = venue.id, venue.name

    async def reserve() -> Booking:
        # Claim the venue row; concurrent claims on the same venue wait here
        # for the holder to commit, then re-count against its booking
        claimed = await db.execute(
            update(Venue)
            .where(Venue.id == venue_id)
            .values(version=Venue.version + 1)
            .execution_options(synchronize_session=False)
        )
        if claimed.rowcount == 0:
            await db.rollback()
            raise NotFoundError(f"Venue {venue_id} not found")

        overlapping = await count_overlapping(db, venue_id, window_start, window_end)
        if overlapping:
            await db.rollback()
            logger.warning(
                "booking_conflict",
                venue_id=venue_id,
                start_time=start.isoformat(),
                end_time=end.isoformat(),
                overlapping=overlapping,
            )
            raise ConflictError("Time slot overlaps with existing booking")

        booking = Booking(
            reference=new_reference("BK"),
            invoice_number=new_reference("INV"),
            facility_id=request.facility_id,
            venue_id=venue_id,
            requester_id=actor.id if actor else None,
            start_time=start,
            end_time=end,
            status=BookingStatus.PENDING.value,
            contact_name=request.contact_name.strip(),
            contact_email=str(request.contact_email),
            purpose=request.purpose,
            attendees=request.attendees,
            notes=request.notes,
            total_paid=0,
            **quote.snapshot(),
        )
        booking.remaining_balance = booking.total_price
        booking.payment_status = (
            PaymentStatus.PAID.value if booking.total_price <= 0 else PaymentStatus.PENDING.value
        )
        append_history(booking, actor)
        db.add(booking)
        await db.commit()

        logger.info(
            "booking_created",
            booking_id=booking.id,
            reference=booking.reference,
            venue_id=venue_id,
            requester_id=booking.requester_id,
            total_price=str(booking.total_price),
        )
        return booking

    booking = await run_with_deadline(db, reserve(), timeout, name="create_booking")
    booking = await load_booking(db, booking.id)

    if notifier is not None:
        notifier.booking_created(booking_notice(booking, venue_name))
    return booking


async def update_booking(
    db: AsyncSession,
    booking_id: int,
    mutate: Callable[[Booking], Awaitable[None]],
    operation: str,
    timeout: Optional[float] = None,
) -> Booking:
    """
    Read-modify-write one booking under its version check.

    `mutate` validates and changes the freshly loaded booking; a concurrent
    writer makes the commit raise StaleDataError and the whole step reruns.

    `mutate` must raise its guard errors before changing anything. A guard
    failure then ends the read-only transaction without a rollback, so
    objects the caller already holds from this session stay loaded.
    """

    async def attempt_loop() -> Booking:
        for attempt in range(1, MAX_RETRY_ATTEMPTS + 1):
            booking = await load_booking(db, booking_id)
            try:
                await mutate(booking)
                await db.commit()
            except StaleDataError:
                await db.rollback()
                logger.info("booking_update_retry", booking_id=booking_id, operation=operation, attempt=attempt)
                record_db_retry(operation)
                continue
            except ReservationError:
                await _end_failed_update(db)
                raise
            return booking
        raise TransientStorageError(f"{operation} lost too many concurrent updates, please retry")

    await run_with_deadline(db, attempt_loop(), timeout, name=operation)
    return await load_booking(db, booking_id)


async def _end_failed_update(db: AsyncSession) -> None:
    # A rollback would expire every instance in the session
    if db.new or db.dirty or db.deleted:
        await db.rollback()
    else:
        await db.commit()


async def get_booking(db: AsyncSession, booking_id: int, actor: Actor) -> Booking:
    booking = await load_booking(db, booking_id)
    facility = await get_facility(db, booking.facility_id)
    authorize(actor, Action.VIEW, facility, booking)
    return booking


async def list_bookings(db: AsyncSession, actor: Actor, limit: int = 100) -> list[Booking]:
    """
    Bookings visible to `actor`, most recent slot first.
    Admins see everything, managers their facilities, users their own.
    """
    query = select(Booking)
    if actor.role == Role.MANAGER:
        facility_ids = await managed_facility_ids(db, actor.id)
        if not facility_ids:
            return []
        query = query.where(Booking.facility_id.in_(facility_ids))
    elif actor.role != Role.ADMIN:
        query = query.where(Booking.requester_id == actor.id)

    result = await db.execute(query.order_by(Booking.start_time.desc()).limit(limit))
    return list(result.scalars().all())
