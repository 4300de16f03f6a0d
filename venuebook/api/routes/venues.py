"""
Read-only venue endpoints: slot availability and price quotes.
"""

from datetime import datetime
from decimal import Decimal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from venuebook.api.dependencies import get_policy
from venuebook.core.config import get_settings
from venuebook.core.exceptions import ValidationError
from venuebook.db.session import get_db
from venuebook.schemas.catalog import AvailabilityResponse, ConflictingBooking, QuoteResponse
from venuebook.services.availability import find_conflicts, pad_interval
from venuebook.services.booking_service import as_utc
from venuebook.services.catalog_service import get_venue
from venuebook.services.policy import BookingPolicy
from venuebook.services.pricing import compute_price, to_money

router = APIRouter(tags=["Venues"])


def _interval(start_time: datetime, end_time: datetime) -> tuple[datetime, datetime]:
    start, end = as_utc(start_time), as_utc(end_time)
    if end <= start:
        raise ValidationError("End time must be after start time")
    return start, end


@router.get("/availability", response_model=AvailabilityResponse)
async def availability_endpoint(
    venue_id: int = Query(...),
    start_time: datetime = Query(...),
    end_time: datetime = Query(...),
    policy: BookingPolicy = Depends(get_policy),
    db: AsyncSession = Depends(get_db),
):
    """
    Whether [start_time, end_time) is free on the venue.
    The configured turnaround buffer is applied, so the answer matches what
    a booking request would see at this moment.
    """
    start, end = _interval(start_time, end_time)
    venue = await get_venue(db, venue_id)
    window_start, window_end = pad_interval(start, end, policy.buffer_minutes)
    conflicts = await find_conflicts(db, venue.id, window_start, window_end)
    return AvailabilityResponse(
        venue_id=venue.id,
        start_time=start,
        end_time=end,
        available=not conflicts,
        conflicting_bookings=[ConflictingBooking.model_validate(b) for b in conflicts],
    )


@router.get("/venues/{venue_id}/quote", response_model=QuoteResponse)
async def quote_endpoint(
    venue_id: int,
    start_time: datetime = Query(...),
    end_time: datetime = Query(...),
    amenity_ids: list[int] = Query([]),
    db: AsyncSession = Depends(get_db),
):
    start, end = _interval(start_time, end_time)
    venue = await get_venue(db, venue_id)
    quote = compute_price(venue, start, end, amenity_ids)
    return QuoteResponse(
        venue_id=venue.id,
        hours=quote.hours.quantize(Decimal("0.0001")),
        base_price=to_money(quote.base_price),
        amenity_surcharge=to_money(quote.surcharge),
        total_price=to_money(quote.total),
        amenity_ids=quote.amenity_ids,
        currency=get_settings().CURRENCY,
    )
