"""
Seed a demo facility with one bookable venue and a few amenities.

  python -m scripts.seed_catalog [--manager USER_ID] [--rate 50.00] [--create-tables]

Prints the facility and venue ids for the load test.
"""

import argparse
import asyncio
from decimal import Decimal

from venuebook.core.logging import get_logger, setup_logging
from venuebook.db.base import Base
from venuebook.db.session import AsyncSessionLocal, engine
from venuebook.models import Amenity, Facility, FacilityManager, Venue

logger = get_logger(__name__)

DEMO_AMENITIES = [
    ("Projector", "Ceiling projector with HDMI", Decimal("25.00")),
    ("Sound system", "PA with two wireless microphones", Decimal("40.00")),
    ("Catering setup", "Tables and warming trays", Decimal("60.00")),
]


async def seed(manager_id: str, hourly_rate: Decimal, create_tables: bool) -> tuple[int, int]:
    if create_tables:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as session:
        facility = Facility(name="Community Centre", location="Honiara")
        facility.managers.append(FacilityManager(user_id=manager_id))
        venue = Venue(name="Main Hall", capacity=200, hourly_rate=hourly_rate, is_bookable=True)
        for order, (name, description, surcharge) in enumerate(DEMO_AMENITIES):
            venue.amenities.append(
                Amenity(name=name, description=description, surcharge=surcharge, sort_order=order)
            )
        facility.venues.append(venue)
        session.add(facility)
        await session.commit()
        logger.info("catalog_seeded", facility_id=facility.id, venue_id=venue.id, manager_id=manager_id)
        return facility.id, venue.id


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--manager", default="manager-1", help="identity-provider id of the facility manager")
    parser.add_argument("--rate", default="50.00", help="hourly rate of the seeded venue")
    parser.add_argument("--create-tables", action="store_true", help="create tables without alembic")
    args = parser.parse_args()

    setup_logging()
    facility_id, venue_id = asyncio.run(seed(args.manager, Decimal(args.rate), args.create_tables))
    print(f"FACILITY_ID={facility_id} VENUE_ID={venue_id}")


if __name__ == "__main__":
    main()
