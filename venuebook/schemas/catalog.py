"""
Pydantic schemas for availability and price quotes.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel


class ConflictingBooking(BaseModel):
    id: int
    start_time: datetime
    end_time: datetime
    status: str

    model_config = {"from_attributes": True}


class AvailabilityResponse(BaseModel):
    venue_id: int
    start_time: datetime
    end_time: datetime
    available: bool
    conflicting_bookings: list[ConflictingBooking]


class QuoteResponse(BaseModel):
    venue_id: int
    hours: Decimal
    base_price: Decimal
    amenity_surcharge: Decimal
    total_price: Decimal
    amenity_ids: list[int]
    currency: str
