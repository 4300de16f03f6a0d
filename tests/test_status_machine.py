"""
Tests for booking status transitions and the audit trail.
"""

import asyncio

import pytest

from venuebook.core.exceptions import AuthorizationError, InvalidStateTransitionError, NotFoundError
from venuebook.services.authorization import Action
from venuebook.services.booking_service import create_booking, load_booking
from venuebook.services.payment_service import record_payment
from venuebook.services.status_service import (
    TRANSITIONS,
    apply_action,
    cancel_booking,
    confirm_booking,
    next_status,
    reject_booking,
)

from conftest import ADMIN, MANAGER, OTHER_MANAGER, REQUESTER, make_request

ALL_STATUSES = ["pending", "confirmed", "rejected", "cancelled"]
TRANSITION_ACTIONS = [Action.CONFIRM, Action.REJECT, Action.CANCEL]


@pytest.mark.parametrize("status", ALL_STATUSES)
@pytest.mark.parametrize("action", TRANSITION_ACTIONS)
def test_transition_table(status, action):
    expected = {
        ("pending", Action.CONFIRM): "confirmed",
        ("pending", Action.REJECT): "rejected",
        ("pending", Action.CANCEL): "cancelled",
        ("confirmed", Action.CANCEL): "cancelled",
    }.get((status, action))

    if expected is None:
        with pytest.raises(InvalidStateTransitionError):
            next_status(status, action)
    else:
        assert next_status(status, action) == expected


def test_terminal_statuses_have_no_exits():
    assert not [key for key in TRANSITIONS if key[0] in ("rejected", "cancelled")]


@pytest.mark.asyncio
async def test_confirm_appends_history(db_session, catalog):
    booking = await create_booking(db_session, make_request(catalog), actor=REQUESTER)
    confirmed = await confirm_booking(db_session, booking.id, MANAGER, reason="Approved by committee")

    assert confirmed.status == "confirmed"
    assert [e.status for e in confirmed.status_history] == ["pending", "confirmed"]
    last = confirmed.status_history[-1]
    assert last.actor_id == MANAGER.id
    assert last.reason == "Approved by committee"
    assert last.sequence == 2


@pytest.mark.asyncio
async def test_reject_is_terminal(db_session, catalog):
    booking = await create_booking(db_session, make_request(catalog))
    booking_id = booking.id
    await reject_booking(db_session, booking_id, MANAGER, reason="Double-booked offline")

    for action in (confirm_booking, cancel_booking, reject_booking):
        with pytest.raises(InvalidStateTransitionError):
            await action(db_session, booking_id, ADMIN)


@pytest.mark.asyncio
async def test_cancel_twice_is_invalid(db_session, catalog):
    booking = await create_booking(db_session, make_request(catalog))
    await cancel_booking(db_session, booking.id, MANAGER)

    with pytest.raises(InvalidStateTransitionError):
        await cancel_booking(db_session, booking.id, MANAGER)


@pytest.mark.asyncio
async def test_failed_transition_leaves_no_trace(db_session, catalog):
    booking = await create_booking(db_session, make_request(catalog))
    booking_id = booking.id
    await cancel_booking(db_session, booking_id, ADMIN)

    with pytest.raises(InvalidStateTransitionError):
        await confirm_booking(db_session, booking_id, ADMIN)

    reloaded = await load_booking(db_session, booking_id)
    assert reloaded.status == "cancelled"
    assert len(reloaded.status_history) == 2


@pytest.mark.asyncio
async def test_caller_booking_stays_loaded_after_refused_transition(db_session, catalog):
    booking = await create_booking(db_session, make_request(catalog))
    with pytest.raises(AuthorizationError):
        await cancel_booking(db_session, booking.id, OTHER_MANAGER)

    assert booking.status == "pending"
    assert booking.reference.startswith("BK-")


@pytest.mark.asyncio
async def test_cancel_frees_the_slot(db_session, catalog):
    booking = await create_booking(db_session, make_request(catalog))
    await confirm_booking(db_session, booking.id, MANAGER)
    await cancel_booking(db_session, booking.id, MANAGER, reason="Event postponed")

    again = await create_booking(db_session, make_request(catalog))
    assert again.status == "pending"


@pytest.mark.asyncio
async def test_manager_of_other_facility_is_refused(db_session, catalog):
    booking = await create_booking(db_session, make_request(catalog))
    booking_id = booking.id
    with pytest.raises(AuthorizationError):
        await confirm_booking(db_session, booking_id, OTHER_MANAGER)

    reloaded = await load_booking(db_session, booking_id)
    assert reloaded.status == "pending"
    assert len(reloaded.status_history) == 1


@pytest.mark.asyncio
async def test_requester_cannot_confirm_own_booking(db_session, catalog):
    booking = await create_booking(db_session, make_request(catalog), actor=REQUESTER)
    with pytest.raises(AuthorizationError):
        await confirm_booking(db_session, booking.id, REQUESTER)


@pytest.mark.asyncio
async def test_unknown_booking(db_session, catalog):
    with pytest.raises(NotFoundError):
        await apply_action(db_session, 424242, ADMIN, Action.CONFIRM)


@pytest.mark.asyncio
async def test_history_for_confirm_pay_cancel(db_session, catalog):
    """pending -> confirmed -> payment -> cancelled: one entry per step, in order."""
    booking = await create_booking(db_session, make_request(catalog, amenity_ids=[catalog.projector_id]))
    await confirm_booking(db_session, booking.id, MANAGER)
    await record_payment(db_session, booking.id, MANAGER, "100.00")
    cancelled = await cancel_booking(db_session, booking.id, ADMIN, reason="Customer request")

    history = cancelled.status_history
    # The first entry records creation; the three mutations follow it
    assert [(e.status, e.reason) for e in history[1:]] == [
        ("confirmed", None),
        ("confirmed", "Payment received"),
        ("cancelled", "Customer request"),
    ]
    assert [e.sequence for e in history] == [1, 2, 3, 4]
    stamps = [e.changed_at for e in history]
    assert stamps == sorted(stamps)


@pytest.mark.asyncio
async def test_concurrent_confirm_and_cancel_serialize(catalog, session_factory):
    """Both may succeed only in the order confirm -> cancel; history stays gapless."""
    async with session_factory() as session:
        booking = await create_booking(session, make_request(catalog))

    async def run(action):
        async with session_factory() as session:
            try:
                return await apply_action(session, booking.id, ADMIN, action)
            except InvalidStateTransitionError as e:
                return e

    results = await asyncio.gather(run(Action.CONFIRM), run(Action.CANCEL))

    async with session_factory() as session:
        final = await load_booking(session, booking.id)

    assert final.status == "cancelled"
    assert [e.sequence for e in final.status_history] == list(range(1, len(final.status_history) + 1))
    applied = [r for r in results if not isinstance(r, InvalidStateTransitionError)]
    assert len(final.status_history) == 1 + len(applied)


@pytest.mark.asyncio
async def test_confirm_and_cancel_notify(db_session, catalog, notifier, sink):
    booking = await create_booking(db_session, make_request(catalog), notifier=notifier)
    await confirm_booking(db_session, booking.id, MANAGER, notifier=notifier)
    await cancel_booking(db_session, booking.id, MANAGER, reason="Storm warning", notifier=notifier)
    await notifier.drain()

    assert sink.names() == ["booking_created", "booking_confirmed", "booking_cancelled"]
    cancelled_notice = sink.events[-1][1]
    assert cancelled_notice.status == "cancelled"
    assert cancelled_notice.reason == "Storm warning"


@pytest.mark.asyncio
async def test_reject_does_not_notify(db_session, catalog, notifier, sink):
    booking = await create_booking(db_session, make_request(catalog))
    await reject_booking(db_session, booking.id, MANAGER, notifier=notifier)
    await notifier.drain()
    assert sink.events == []
