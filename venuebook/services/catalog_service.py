"""
Read-only catalog lookups used by the reservation core.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from venuebook.core.exceptions import NotFoundError
from venuebook.models.catalog import Facility, FacilityManager, Venue


async def get_facility(db: AsyncSession, facility_id: int) -> Facility:
    result = await db.execute(select(Facility).where(Facility.id == facility_id))
    facility = result.scalar_one_or_none()
    if not facility:
        raise NotFoundError(f"Facility {facility_id} not found")
    return facility


async def get_venue(db: AsyncSession, venue_id: int) -> Venue:
    """Load a venue with its amenities. Version is re-read on every call."""
    result = await db.execute(
        select(Venue).where(Venue.id == venue_id).execution_options(populate_existing=True)
    )
    venue = result.scalar_one_or_none()
    if not venue:
        raise NotFoundError(f"Venue {venue_id} not found")
    return venue


async def managed_facility_ids(db: AsyncSession, user_id: str) -> list[int]:
    result = await db.execute(
        select(FacilityManager.facility_id).where(FacilityManager.user_id == user_id)
    )
    return list(result.scalars().all())
