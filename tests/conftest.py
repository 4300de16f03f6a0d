"""
Pytest fixtures for the test database, seeded catalog, actors and HTTP client.

Every test gets a fresh SQLite file (or TEST_DATABASE_URL, e.g. a throwaway
Postgres database) with tables created up front and dropped afterwards.
Services are exercised with their own sessions, the way concurrent requests
would use them.
"""

import os

# Must be set before venuebook reads its settings
os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("NOTIFICATION_BACKEND", "log")
os.environ.setdefault("ENVIRONMENT", "test")

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import AsyncGenerator, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from venuebook.api.dependencies import get_policy
from venuebook.core.security import Actor, Role, create_access_token
from venuebook.db.base import Base
from venuebook.db.session import build_engine, get_db
from venuebook.main import app
from venuebook.models import Amenity, Facility, FacilityManager, Venue
from venuebook.schemas.booking import BookingCreate
from venuebook.services.interfaces.notification import BookingNotice, NotificationSink
from venuebook.services.notification_service import NotificationDispatcher
from venuebook.services.policy import BookingPolicy
from venuebook.services.strategy_factory import set_notifier

TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL")

SLOT_START = datetime(2030, 6, 1, 10, 0, tzinfo=timezone.utc)

ADMIN = Actor(id="admin-1", role=Role.ADMIN)
MANAGER = Actor(id="manager-1", role=Role.MANAGER)
OTHER_MANAGER = Actor(id="manager-2", role=Role.MANAGER)
REQUESTER = Actor(id="user-1", role=Role.USER)
STRANGER = Actor(id="user-2", role=Role.USER)


@dataclass
class Catalog:
    facility_id: int
    venue_id: int
    closed_venue_id: int
    projector_id: int
    sound_id: int
    other_facility_id: int
    other_venue_id: int


class RecordingSink(NotificationSink):
    """Keeps every event in memory; optionally fails to exercise error paths."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.events: list[tuple[str, BookingNotice]] = []

    async def _record(self, event: str, notice: BookingNotice) -> None:
        if self.fail:
            raise ConnectionError("mail relay down")
        self.events.append((event, notice))

    async def booking_created(self, notice: BookingNotice) -> None:
        await self._record("booking_created", notice)

    async def booking_confirmed(self, notice: BookingNotice) -> None:
        await self._record("booking_confirmed", notice)

    async def booking_cancelled(self, notice: BookingNotice) -> None:
        await self._record("booking_cancelled", notice)

    def names(self) -> list[str]:
        return [event for event, _ in self.events]


def auth_headers(actor: Actor) -> dict:
    token = create_access_token(data={"sub": actor.id, "role": actor.role.value})
    return {"Authorization": f"Bearer {token}"}


def make_request(catalog: Catalog, start: datetime = SLOT_START, hours: float = 2, **overrides) -> BookingCreate:
    data = {
        "facility_id": catalog.facility_id,
        "venue_id": catalog.venue_id,
        "start_time": start,
        "end_time": start + timedelta(hours=hours),
        "contact_name": "Mere Tautai",
        "contact_email": "mere@example.com",
        "purpose": "Choir practice",
        "attendees": 40,
    }
    data.update(overrides)
    return BookingCreate(**data)


def booking_json(catalog: Catalog, start: datetime = SLOT_START, hours: float = 2, **overrides) -> dict:
    return make_request(catalog, start, hours, **overrides).model_dump(mode="json")


@pytest_asyncio.fixture
async def engine(tmp_path):
    url = TEST_DATABASE_URL or f"sqlite+aiosqlite:///{tmp_path / 'venuebook_test.db'}"
    test_engine = build_engine(url)
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def catalog(session_factory) -> Catalog:
    """Community centre managed by manager-1: one bookable hall at 100/hr, one closed room."""
    async with session_factory() as session:
        facility = Facility(name="Community Centre", location="Honiara")
        facility.managers.append(FacilityManager(user_id=MANAGER.id))
        hall = Venue(name="Main Hall", capacity=200, hourly_rate=Decimal("100.00"), is_bookable=True)
        projector = Amenity(name="Projector", surcharge=Decimal("25.00"), sort_order=0)
        sound = Amenity(name="Sound system", surcharge=Decimal("40.00"), sort_order=1)
        hall.amenities.extend([projector, sound])
        closed = Venue(name="Storage Room", hourly_rate=Decimal("10.00"), is_bookable=False)
        facility.venues.extend([hall, closed])

        other = Facility(name="Sports Complex", location="Auki")
        other.managers.append(FacilityManager(user_id=OTHER_MANAGER.id))
        court = Venue(name="Court 1", hourly_rate=Decimal("40.00"), is_bookable=True)
        other.venues.append(court)

        session.add_all([facility, other])
        await session.commit()
        return Catalog(
            facility_id=facility.id,
            venue_id=hall.id,
            closed_venue_id=closed.id,
            projector_id=projector.id,
            sound_id=sound.id,
            other_facility_id=other.id,
            other_venue_id=court.id,
        )


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def notifier(sink: RecordingSink) -> NotificationDispatcher:
    return NotificationDispatcher(sink)


@pytest_asyncio.fixture
async def client(session_factory, notifier) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client bound to the test database with a recording notification sink."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_policy] = lambda: BookingPolicy()
    set_notifier(notifier)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    await notifier.drain()
    app.dependency_overrides.clear()
    set_notifier(None)


@pytest.fixture
def admin_headers() -> dict:
    return auth_headers(ADMIN)


@pytest.fixture
def manager_headers() -> dict:
    return auth_headers(MANAGER)


@pytest.fixture
def requester_headers() -> dict:
    return auth_headers(REQUESTER)


def as_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Compare datetimes regardless of whether the backend kept the tz."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
