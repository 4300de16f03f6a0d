"""
Tests for capability checks and role-scoped reads.
"""

from datetime import timedelta

import pytest

from venuebook.core.exceptions import AuthorizationError
from venuebook.core.security import Actor, Role
from venuebook.models import Booking, Facility, FacilityManager
from venuebook.services.authorization import Action, authorize, is_allowed
from venuebook.services.booking_service import create_booking, get_booking, list_bookings

from conftest import ADMIN, MANAGER, OTHER_MANAGER, REQUESTER, SLOT_START, STRANGER, make_request


def facility_managed_by(*user_ids: str) -> Facility:
    return Facility(id=1, name="Hall", managers=[FacilityManager(user_id=u) for u in user_ids])


@pytest.mark.parametrize("action", list(Action))
def test_admin_may_do_everything(action):
    assert is_allowed(ADMIN, action, facility_managed_by())


@pytest.mark.parametrize("action", list(Action))
def test_listed_manager_may_manage(action):
    assert is_allowed(MANAGER, action, facility_managed_by(MANAGER.id))
    assert not is_allowed(OTHER_MANAGER, action, facility_managed_by(MANAGER.id))


def test_manager_role_needs_the_listing():
    """Holding the manager role is not enough on its own."""
    assert not is_allowed(MANAGER, Action.CONFIRM, facility_managed_by())


def test_user_listed_as_manager_without_role_is_still_a_user():
    plain = Actor(id=MANAGER.id, role=Role.USER)
    assert not is_allowed(plain, Action.CONFIRM, facility_managed_by(MANAGER.id))


def test_requester_may_only_view_own_booking():
    facility = facility_managed_by(MANAGER.id)
    own = Booking(requester_id=REQUESTER.id)
    assert is_allowed(REQUESTER, Action.VIEW, facility, own)
    assert not is_allowed(STRANGER, Action.VIEW, facility, own)
    for action in (Action.CONFIRM, Action.REJECT, Action.CANCEL, Action.RECORD_PAYMENT):
        assert not is_allowed(REQUESTER, action, facility, own)


def test_guest_booking_is_invisible_to_users():
    assert not is_allowed(REQUESTER, Action.VIEW, facility_managed_by(), Booking(requester_id=None))


def test_anonymous_is_refused():
    assert not is_allowed(None, Action.VIEW, facility_managed_by())
    with pytest.raises(AuthorizationError, match="anonymous"):
        authorize(None, Action.CONFIRM, facility_managed_by())


@pytest.mark.asyncio
async def test_get_booking_scoping(db_session, catalog):
    booking = await create_booking(db_session, make_request(catalog), actor=REQUESTER)

    for actor in (ADMIN, MANAGER, REQUESTER):
        assert (await get_booking(db_session, booking.id, actor)).id == booking.id
    for actor in (OTHER_MANAGER, STRANGER):
        with pytest.raises(AuthorizationError):
            await get_booking(db_session, booking.id, actor)


@pytest.mark.asyncio
async def test_list_bookings_scoping(db_session, catalog):
    mine = await create_booking(db_session, make_request(catalog), actor=REQUESTER)
    guest = await create_booking(db_session, make_request(catalog, start=SLOT_START + timedelta(hours=4)))
    elsewhere = await create_booking(
        db_session,
        make_request(catalog, facility_id=catalog.other_facility_id, venue_id=catalog.other_venue_id),
        actor=STRANGER,
    )

    async def ids(actor):
        return {b.id for b in await list_bookings(db_session, actor)}

    assert await ids(ADMIN) == {mine.id, guest.id, elsewhere.id}
    assert await ids(MANAGER) == {mine.id, guest.id}
    assert await ids(OTHER_MANAGER) == {elsewhere.id}
    assert await ids(REQUESTER) == {mine.id}
    assert await ids(STRANGER) == {elsewhere.id}
    assert await ids(Actor(id="manager-9", role=Role.MANAGER)) == set()


@pytest.mark.asyncio
async def test_list_is_most_recent_slot_first(db_session, catalog):
    early = await create_booking(db_session, make_request(catalog), actor=REQUESTER)
    late = await create_booking(
        db_session, make_request(catalog, start=SLOT_START + timedelta(days=1)), actor=REQUESTER
    )
    listed = await list_bookings(db_session, REQUESTER)
    assert [b.id for b in listed] == [late.id, early.id]
