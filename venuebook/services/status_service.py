"""
Booking status state machine.

    pending   --confirm--> confirmed
    pending   --reject---> rejected
    pending   --cancel---> cancelled
    confirmed --cancel---> cancelled

rejected and cancelled are terminal. Anything else, including cancelling a
cancelled booking, is an InvalidStateTransitionError. Every transition
appends exactly one status history entry.
"""

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from venuebook.core.exceptions import InvalidStateTransitionError
from venuebook.core.logging import get_logger
from venuebook.core.metrics import record_transition
from venuebook.core.security import Actor
from venuebook.models.booking import Booking, BookingStatus
from venuebook.services.authorization import Action, authorize
from venuebook.services.booking_service import append_history, booking_notice, update_booking
from venuebook.services.catalog_service import get_facility, get_venue
from venuebook.services.notification_service import NotificationDispatcher

logger = get_logger(__name__)

TRANSITIONS: dict[tuple[str, Action], str] = {
    (BookingStatus.PENDING.value, Action.CONFIRM): BookingStatus.CONFIRMED.value,
    (BookingStatus.PENDING.value, Action.REJECT): BookingStatus.REJECTED.value,
    (BookingStatus.PENDING.value, Action.CANCEL): BookingStatus.CANCELLED.value,
    (BookingStatus.CONFIRMED.value, Action.CANCEL): BookingStatus.CANCELLED.value,
}


def next_status(current: str, action: Action) -> str:
    try:
        return TRANSITIONS[(current, action)]
    except KeyError:
        raise InvalidStateTransitionError(f"Cannot {action.value} a booking that is {current}") from None


async def apply_action(
    db: AsyncSession,
    booking_id: int,
    actor: Actor,
    action: Action,
    reason: Optional[str] = None,
    notifier: Optional[NotificationDispatcher] = None,
    timeout: Optional[float] = None,
) -> Booking:
    """Authorize, transition and audit one booking in a single unit of work."""
    previous: dict[str, str] = {}

    async def mutate(booking: Booking) -> None:
        facility = await get_facility(db, booking.facility_id)
        authorize(actor, action, facility, booking)
        target = next_status(booking.status, action)
        previous["status"] = booking.status
        booking.status = target
        append_history(booking, actor, reason)

    booking = await update_booking(db, booking_id, mutate, operation=action.value, timeout=timeout)

    record_transition(action.value)
    logger.info(
        "status_changed",
        booking_id=booking.id,
        reference=booking.reference,
        action=action.value,
        from_status=previous.get("status"),
        to_status=booking.status,
        actor_id=actor.id,
    )

    if notifier is not None and action in (Action.CONFIRM, Action.CANCEL):
        venue = await get_venue(db, booking.venue_id)
        notice = booking_notice(booking, venue.name, reason)
        if action == Action.CONFIRM:
            notifier.booking_confirmed(notice)
        else:
            notifier.booking_cancelled(notice)
    return booking


async def confirm_booking(db: AsyncSession, booking_id: int, actor: Actor, **kwargs) -> Booking:
    return await apply_action(db, booking_id, actor, Action.CONFIRM, **kwargs)


async def reject_booking(db: AsyncSession, booking_id: int, actor: Actor, **kwargs) -> Booking:
    return await apply_action(db, booking_id, actor, Action.REJECT, **kwargs)


async def cancel_booking(db: AsyncSession, booking_id: int, actor: Actor, **kwargs) -> Booking:
    return await apply_action(db, booking_id, actor, Action.CANCEL, **kwargs)
