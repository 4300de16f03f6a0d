"""
Capability checks: (actor, action, facility) -> allow / deny.

Admins may do anything. Managers may act on bookings of facilities that
list them as managers. Requesters may only view their own bookings.
"""

import enum
from typing import Optional

from venuebook.core.exceptions import AuthorizationError
from venuebook.core.security import Actor, Role
from venuebook.models.booking import Booking
from venuebook.models.catalog import Facility


class Action(str, enum.Enum):
    VIEW = "view"
    CONFIRM = "confirm"
    REJECT = "reject"
    CANCEL = "cancel"
    RECORD_PAYMENT = "record_payment"


MANAGEMENT_ACTIONS = frozenset(
    {Action.VIEW, Action.CONFIRM, Action.REJECT, Action.CANCEL, Action.RECORD_PAYMENT}
)


def is_allowed(
    actor: Optional[Actor],
    action: Action,
    facility: Facility,
    booking: Optional[Booking] = None,
) -> bool:
    if actor is None:
        return False
    if actor.role == Role.ADMIN:
        return True
    if actor.role == Role.MANAGER and actor.id in facility.manager_ids:
        return action in MANAGEMENT_ACTIONS
    if action == Action.VIEW and booking is not None:
        return booking.requester_id is not None and booking.requester_id == actor.id
    return False


def authorize(
    actor: Optional[Actor],
    action: Action,
    facility: Facility,
    booking: Optional[Booking] = None,
) -> None:
    """Raise AuthorizationError unless `actor` may perform `action`."""
    if not is_allowed(actor, action, facility, booking):
        who = actor.id if actor else "anonymous"
        raise AuthorizationError(f"{who} is not allowed to {action.value} bookings of facility {facility.id}")
